"""
GenieJack Engine

Deterministic rules and combat engine for a rogue-like blackjack
card-battler. Every encounter is a hand of blackjack whose outcome deals
damage, shaped by stacking effects from gear, consumables, enemies and
the blessings and curses granted by the genie after each boss.

Core subsystems:
- state: RNG (XorShift128), cards, rules, player/enemy run state
- calc: hand scoring, outcome and base damage
- registry: modifier hooks, context and hook runners
- effects: effect catalogue, bounds, validation, conditions, compilers
- content: equipment, consumables, enemies, bosses and curses
- generation: seeded shop inventory
- handlers: hand resolution and the genie encounter
- llm: boon generation client with a fixed fallback

Usage:
    from packages.geniejack import GameEngine

    engine = GameEngine(seed="SEED123")
    while not engine.is_over:
        actions = engine.get_available_actions()
        engine.perform_action(actions[-1])

    same = GameEngine.from_replay(engine.get_replay())
"""

__version__ = "0.1.0"

# Errors
from .errors import GameError, InvariantViolation, ReplayError, UnknownEffectError

# RNG
from .state.rng import Random, XorShift128, seed_to_long

# Cards, rules and run state
from .state.cards import Card, Hand, HandScore, Rank, Suit, build_deck, shuffle
from .state.rules import GameRules, default_rules, fold_rules
from .state.run import (
    ActiveEffect, CombatantData, Consumable, EnemyState, Equipment,
    EquipmentSlot, EquipmentTier, PlayerState, Wish, create_player,
)

# Scoring
from .calc.scoring import calculate_base_damage, compare_hands, score_hand

# Modifiers and effects
from .registry import Modifier, ModifierContext, ModifierHook, ModifierSource, Perspective
from .effects import (
    BlessingDefinition, Condition, ConditionType, Effect, EffectType,
    EFFECT_BOUNDS, build_modifier, validate_blessing_definition,
)

# Engine
from .game import (
    ActionResult, BuyItem, Continue, DoubleDown, EnterWish, GameAction,
    GameEngine, GamePhase, GameReplay, Hit, Peek, RemoveCard, SkipShop,
    Stand, Surrender, UseConsumable, action_from_dict, action_to_dict,
    create_engine_at_genie, fast_forward_to_genie,
)
