"""
Bounds table: valid value range and required qualifiers per effect type.

Boolean flag effects have a single valid value (1); the validator forces
them to it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .types import EffectType as E


@dataclass(frozen=True)
class EffectBounds:
    min: float
    max: float
    is_boolean: bool = False
    requires: Tuple[str, ...] = ()

    def clamp(self, value: float) -> float:
        if self.is_boolean:
            return self.min
        return max(self.min, min(self.max, value))


def _range(lo: float, hi: float, *requires: str) -> EffectBounds:
    return EffectBounds(lo, hi, False, tuple(requires))


def _flag(*requires: str) -> EffectBounds:
    return EffectBounds(1, 1, True, tuple(requires))


EFFECT_BOUNDS: Dict[E, EffectBounds] = {
    # Card & deck
    E.FLEXIBLE_RANK: _flag("rank"),
    E.CHANGE_FACE_CARD_VALUE: _range(5, 15),
    E.CHANGE_ACE_HIGH_VALUE: _range(8, 15),
    E.SUIT_CARD_VALUE_BONUS: _range(1, 5, "suit"),
    E.RANK_VALUE_OVERRIDE: _range(0, 15, "rank"),
    E.REMOVE_RANK_FROM_DECK: _flag("rank"),
    E.REMOVE_SUIT_FROM_DECK: _flag("suit"),
    E.FORCE_DECK_RANKS: _flag("ranks"),
    E.EXTRA_COPIES_OF_RANK: _range(1, 4, "rank"),
    E.NO_RESHUFFLE: _flag(),
    E.MULTIPLE_DECKS: _range(2, 4),

    # Scoring & bust
    E.BUST_THRESHOLD_BONUS: _range(1, 5),
    E.ADDITIONAL_BLACKJACK_VALUE: _range(22, 25),
    E.BUST_SAVE: _range(8, 18),
    E.BUST_CARD_VALUE_HALVED: _flag(),
    E.IGNORE_CARD_ON_BUST: _flag(),
    E.FIVE_CARD_CHARLIE: _range(5, 30),
    E.SOFT_HAND_BONUS: _range(2, 15),
    E.EXACT_TARGET_BONUS: _range(3, 20),

    # Player actions
    E.ENABLE_REMOVE_CARD: _range(1, 3),
    E.ENABLE_PEEK: _flag(),
    E.ENABLE_SURRENDER: _flag(),
    E.ENABLE_SPLIT: _flag(),
    E.EXTRA_STARTING_CARDS: _range(1, 3),
    E.FEWER_STARTING_CARDS: _range(1, 1),
    E.DOUBLE_DOWN_ANY_TIME: _flag(),
    E.HIT_AFTER_DOUBLE: _flag(),

    # Dealer
    E.DEALER_STANDS_ON: _range(14, 19),
    E.DEALER_HITS_SOFT_17: _flag(),
    E.TIES_FAVOR_PLAYER: _flag(),
    E.DOUBLE_BUST_FAVORS_PLAYER: _flag(),
    E.DEALER_REVEALS_CARDS: _flag(),
    E.DEALER_EXTRA_STARTING_CARD: _range(1, 2),
    E.DEALER_FEWER_STARTING_CARDS: _range(1, 1),

    # Damage
    E.FLAT_DAMAGE_BONUS: _range(1, 25),
    E.PERCENT_DAMAGE_BONUS: _range(0.1, 1.0),
    E.DAMAGE_MULTIPLIER: _range(1.5, 3.0),
    E.SUIT_DAMAGE_BONUS: _range(1, 10, "suit"),
    E.FACE_CARD_DAMAGE_BONUS: _range(1, 8),
    E.ACE_DAMAGE_BONUS: _range(2, 15),
    E.EVEN_CARD_BONUS: _range(1, 8),
    E.ODD_CARD_BONUS: _range(1, 8),
    E.LOW_CARD_BONUS: _range(1, 8),
    E.HIGH_CARD_BONUS: _range(1, 8),
    E.BLACKJACK_BONUS_DAMAGE: _range(3, 25),
    E.BLACKJACK_DAMAGE_MULTIPLIER: _range(1.5, 3.0),
    E.DAMAGE_ON_PUSH: _range(2, 15),
    E.DAMAGE_PER_CARD_IN_HAND: _range(1, 5),
    E.OVERKILL_CARRY: _range(0.25, 1.0),
    E.SCALING_DAMAGE_PER_WIN: _range(1, 5),
    E.DOUBLE_DOWN_MULTIPLIER: _range(2, 5),
    E.CONDITIONAL_FLAT_DAMAGE: _range(1, 25, "condition", "bonus_value"),
    E.DEALER_HAND_SIZE_BONUS_DAMAGE: _range(1, 25, "threshold"),
    E.BONUS_DAMAGE_ON_OPPONENT_BUST: _range(1, 15),
    E.BONUS_DAMAGE_ON_SCORE_WIN: _range(1, 15),
    E.CONSECUTIVE_LOSS_DAMAGE_BONUS: _range(1, 5, "max_value"),
    E.COLOR_CARD_DAMAGE_BONUS: _range(1, 5, "color"),
    E.OWN_HAND_COLOR_DAMAGE_BONUS: _range(1, 5, "color"),
    E.FIRST_HAND_DAMAGE_MULTIPLIER: _range(1.5, 3.0),
    E.PERCENT_DAMAGE_PENALTY: _range(0.1, 0.5),

    # Defense
    E.FLAT_DAMAGE_REDUCTION: _range(1, 15),
    E.PERCENT_DAMAGE_REDUCTION: _range(0.05, 0.8),
    E.DODGE_CHANCE: _range(0.05, 0.50),
    E.THORNS: _range(0.1, 0.5),
    E.DAMAGE_SHIELD: _range(5, 30),
    E.DAMAGE_CAP: _range(5, 25),
    E.SUIT_DAMAGE_REDUCTION: _range(0.1, 0.4, "suit"),
    E.REDUCE_BUST_DAMAGE: _range(0.2, 0.8),
    E.CONDITIONAL_DAMAGE_REDUCTION: _range(0.05, 0.5, "condition"),
    E.RANDOM_SUIT_DAMAGE_REDUCTION: _range(0.05, 0.5),
    E.SUIT_IN_ATTACKER_HAND_DAMAGE_REDUCTION: _range(0.1, 0.5, "suit"),

    # Healing
    E.MAX_HP_BONUS: _range(5, 30),
    E.HEAL_PER_HAND: _range(1, 5),
    E.HEAL_ON_WIN: _range(1, 10),
    E.HEAL_ON_BLACKJACK: _range(3, 15),
    E.HEAL_ON_DODGE: _range(2, 10),
    E.LIFESTEAL: _range(0.1, 0.5),
    E.HEAL_PER_BATTLE: _range(3, 15),
    E.HEAL_ON_PUSH: _range(1, 8),
    E.HEAL_ON_BUST: _range(1, 10),
    E.HEAL_ON_OPPONENT_BUST: _range(1, 15),
    E.HEAL_ON_OPPONENT_NEAR_BLACKJACK: _range(1, 10, "min_score", "max_score"),

    # Damage over time
    E.DAMAGE_PER_HAND: _range(1, 5),
    E.POISON: _range(1, 3),
    E.DAMAGE_ON_ENEMY_BUST: _range(3, 15),
    E.DOT_TO_OPPONENT: _range(1, 5),
    E.SELF_DAMAGE_ON_BUST: _range(1, 10),

    # Economy
    E.FLAT_GOLD_BONUS: _range(2, 30),
    E.PERCENT_GOLD_BONUS: _range(0.1, 1.0),
    E.GOLD_PER_HAND_WON: _range(1, 5),
    E.GOLD_PER_BLACKJACK: _range(3, 15),
    E.SHOP_DISCOUNT: _range(0.1, 0.5),
    E.GOLD_IF_HANDS_WON_GTE: _range(1, 30, "threshold"),

    # Instant
    E.INSTANT_HEAL: _range(1, 50),
    E.INSTANT_DAMAGE: _range(1, 50),
    E.INSTANT_GOLD: _range(1, 100),

    # Curse-only
    E.EXTRA_DAMAGE_ON_DEALER_BLACKJACK: _range(1, 15),
}

missing = [t.value for t in E if t not in EFFECT_BOUNDS]
if missing:
    raise RuntimeError(f"Effect types without bounds: {missing}")
del missing
