"""Run state: RNG, cards, rules and persistent player/enemy state."""

from .rng import XorShift128, Random, seed_to_long
from .cards import (
    Suit, Rank, Card, Hand, HandScore, ALL_SUITS, ALL_RANKS,
    build_deck, shuffle,
)
from .rules import GameRules, default_rules, fold_rules
from .run import (
    EquipmentSlot, EquipmentTier, SLOT_ORDER, Equipment, Consumable,
    ActiveEffect, Wish, CombatantData, PlayerState, EnemyState, create_player,
)
