"""
Effect descriptors - the declarative vocabulary for gameplay effects.

EffectType and ConditionType are closed enums. Static content builds
Effect objects directly (an unknown tag is an UnknownEffectError);
untrusted input (generated boons) goes through effects.validation first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import UnknownEffectError


class EffectType(Enum):
    # Card & deck
    FLEXIBLE_RANK = "flexible_rank"
    CHANGE_FACE_CARD_VALUE = "change_face_card_value"
    CHANGE_ACE_HIGH_VALUE = "change_ace_high_value"
    SUIT_CARD_VALUE_BONUS = "suit_card_value_bonus"
    RANK_VALUE_OVERRIDE = "rank_value_override"
    REMOVE_RANK_FROM_DECK = "remove_rank_from_deck"
    REMOVE_SUIT_FROM_DECK = "remove_suit_from_deck"
    FORCE_DECK_RANKS = "force_deck_ranks"
    EXTRA_COPIES_OF_RANK = "extra_copies_of_rank"
    NO_RESHUFFLE = "no_reshuffle"
    MULTIPLE_DECKS = "multiple_decks"

    # Scoring & bust
    BUST_THRESHOLD_BONUS = "bust_threshold_bonus"
    ADDITIONAL_BLACKJACK_VALUE = "additional_blackjack_value"
    BUST_SAVE = "bust_save"
    BUST_CARD_VALUE_HALVED = "bust_card_value_halved"
    IGNORE_CARD_ON_BUST = "ignore_card_on_bust"
    FIVE_CARD_CHARLIE = "five_card_charlie"
    SOFT_HAND_BONUS = "soft_hand_bonus"
    EXACT_TARGET_BONUS = "exact_target_bonus"

    # Player actions
    ENABLE_REMOVE_CARD = "enable_remove_card"
    ENABLE_PEEK = "enable_peek"
    ENABLE_SURRENDER = "enable_surrender"
    ENABLE_SPLIT = "enable_split"
    EXTRA_STARTING_CARDS = "extra_starting_cards"
    FEWER_STARTING_CARDS = "fewer_starting_cards"
    DOUBLE_DOWN_ANY_TIME = "double_down_any_time"
    HIT_AFTER_DOUBLE = "hit_after_double"

    # Dealer
    DEALER_STANDS_ON = "dealer_stands_on"
    DEALER_HITS_SOFT_17 = "dealer_hits_soft_17"
    TIES_FAVOR_PLAYER = "ties_favor_player"
    DOUBLE_BUST_FAVORS_PLAYER = "double_bust_favors_player"
    DEALER_REVEALS_CARDS = "dealer_reveals_cards"
    DEALER_EXTRA_STARTING_CARD = "dealer_extra_starting_card"
    DEALER_FEWER_STARTING_CARDS = "dealer_fewer_starting_cards"

    # Damage
    FLAT_DAMAGE_BONUS = "flat_damage_bonus"
    PERCENT_DAMAGE_BONUS = "percent_damage_bonus"
    DAMAGE_MULTIPLIER = "damage_multiplier"
    SUIT_DAMAGE_BONUS = "suit_damage_bonus"
    FACE_CARD_DAMAGE_BONUS = "face_card_damage_bonus"
    ACE_DAMAGE_BONUS = "ace_damage_bonus"
    EVEN_CARD_BONUS = "even_card_bonus"
    ODD_CARD_BONUS = "odd_card_bonus"
    LOW_CARD_BONUS = "low_card_bonus"
    HIGH_CARD_BONUS = "high_card_bonus"
    BLACKJACK_BONUS_DAMAGE = "blackjack_bonus_damage"
    BLACKJACK_DAMAGE_MULTIPLIER = "blackjack_damage_multiplier"
    DAMAGE_ON_PUSH = "damage_on_push"
    DAMAGE_PER_CARD_IN_HAND = "damage_per_card_in_hand"
    OVERKILL_CARRY = "overkill_carry"
    SCALING_DAMAGE_PER_WIN = "scaling_damage_per_win"
    DOUBLE_DOWN_MULTIPLIER = "double_down_multiplier"
    CONDITIONAL_FLAT_DAMAGE = "conditional_flat_damage"
    DEALER_HAND_SIZE_BONUS_DAMAGE = "dealer_hand_size_bonus_damage"
    BONUS_DAMAGE_ON_OPPONENT_BUST = "bonus_damage_on_opponent_bust"
    BONUS_DAMAGE_ON_SCORE_WIN = "bonus_damage_on_score_win"
    CONSECUTIVE_LOSS_DAMAGE_BONUS = "consecutive_loss_damage_bonus"
    COLOR_CARD_DAMAGE_BONUS = "color_card_damage_bonus"
    OWN_HAND_COLOR_DAMAGE_BONUS = "own_hand_color_damage_bonus"
    FIRST_HAND_DAMAGE_MULTIPLIER = "first_hand_damage_multiplier"
    PERCENT_DAMAGE_PENALTY = "percent_damage_penalty"

    # Defense
    FLAT_DAMAGE_REDUCTION = "flat_damage_reduction"
    PERCENT_DAMAGE_REDUCTION = "percent_damage_reduction"
    DODGE_CHANCE = "dodge_chance"
    THORNS = "thorns"
    DAMAGE_SHIELD = "damage_shield"
    DAMAGE_CAP = "damage_cap"
    SUIT_DAMAGE_REDUCTION = "suit_damage_reduction"
    REDUCE_BUST_DAMAGE = "reduce_bust_damage"
    CONDITIONAL_DAMAGE_REDUCTION = "conditional_damage_reduction"
    RANDOM_SUIT_DAMAGE_REDUCTION = "random_suit_damage_reduction"
    SUIT_IN_ATTACKER_HAND_DAMAGE_REDUCTION = "suit_in_attacker_hand_damage_reduction"

    # Healing
    MAX_HP_BONUS = "max_hp_bonus"
    HEAL_PER_HAND = "heal_per_hand"
    HEAL_ON_WIN = "heal_on_win"
    HEAL_ON_BLACKJACK = "heal_on_blackjack"
    HEAL_ON_DODGE = "heal_on_dodge"
    LIFESTEAL = "lifesteal"
    HEAL_PER_BATTLE = "heal_per_battle"
    HEAL_ON_PUSH = "heal_on_push"
    HEAL_ON_BUST = "heal_on_bust"
    HEAL_ON_OPPONENT_BUST = "heal_on_opponent_bust"
    HEAL_ON_OPPONENT_NEAR_BLACKJACK = "heal_on_opponent_near_blackjack"

    # Damage over time
    DAMAGE_PER_HAND = "damage_per_hand"
    POISON = "poison"
    DAMAGE_ON_ENEMY_BUST = "damage_on_enemy_bust"
    DOT_TO_OPPONENT = "dot_to_opponent"
    SELF_DAMAGE_ON_BUST = "self_damage_on_bust"

    # Economy
    FLAT_GOLD_BONUS = "flat_gold_bonus"
    PERCENT_GOLD_BONUS = "percent_gold_bonus"
    GOLD_PER_HAND_WON = "gold_per_hand_won"
    GOLD_PER_BLACKJACK = "gold_per_blackjack"
    SHOP_DISCOUNT = "shop_discount"
    GOLD_IF_HANDS_WON_GTE = "gold_if_hands_won_gte"

    # Instant (consumables)
    INSTANT_HEAL = "instant_heal"
    INSTANT_DAMAGE = "instant_damage"
    INSTANT_GOLD = "instant_gold"

    # Curse-only
    EXTRA_DAMAGE_ON_DEALER_BLACKJACK = "extra_damage_on_dealer_blackjack"


INSTANT_EFFECTS = frozenset({
    EffectType.INSTANT_HEAL,
    EffectType.INSTANT_DAMAGE,
    EffectType.INSTANT_GOLD,
})


class ConditionType(Enum):
    # Event latches (set by onCardDrawn, cleared by onHandStart)
    WHEN_PLAYER_DRAWS_RANK = "when_player_draws_rank"
    WHEN_PLAYER_DRAWS_SUIT = "when_player_draws_suit"
    WHEN_DEALER_DRAWS_RANK = "when_dealer_draws_rank"
    WHEN_DEALER_DRAWS_SUIT = "when_dealer_draws_suit"

    # Hand composition
    HAND_CONTAINS_PAIR = "hand_contains_pair"
    HAND_IS_FLUSH = "hand_is_flush"
    HAND_ALL_SAME_COLOR = "hand_all_same_color"
    HAND_SIZE_EQUALS = "hand_size_equals"
    HAND_SIZE_GTE = "hand_size_gte"
    HAND_SIZE_LTE = "hand_size_lte"
    HAND_CONTAINS_RANK = "hand_contains_rank"
    HAND_CONTAINS_SUIT = "hand_contains_suit"
    DEALER_HAND_SIZE_GTE = "dealer_hand_size_gte"

    # Score
    SCORE_EXACTLY = "score_exactly"
    SCORE_GTE = "score_gte"
    SAME_SCORE_AS_PREVIOUS = "same_score_as_previous"

    # Outcome
    ON_BLACKJACK = "on_blackjack"
    ON_BUST = "on_bust"
    ON_SOFT_HAND = "on_soft_hand"
    ON_WIN = "on_win"
    ON_LOSS = "on_loss"
    ON_PUSH = "on_push"
    ON_DODGE = "on_dodge"
    ON_ENEMY_BUST = "on_enemy_bust"
    ON_WIN_NO_DAMAGE_TAKEN = "on_win_no_damage_taken"

    # Run state
    HP_BELOW_PERCENT = "hp_below_percent"
    HP_ABOVE_PERCENT = "hp_above_percent"
    ENEMY_HP_BELOW_PERCENT = "enemy_hp_below_percent"
    GOLD_ABOVE = "gold_above"
    CONSECUTIVE_WINS = "consecutive_wins"
    CONSECUTIVE_LOSSES = "consecutive_losses"
    FIRST_HAND_OF_BATTLE = "first_hand_of_battle"
    ENEMY_KILLED_BY_DOT = "enemy_killed_by_dot"
    ENEMY_KILLED_BY_BLACKJACK = "enemy_killed_by_blackjack"


LATCHED_CONDITIONS = frozenset({
    ConditionType.WHEN_PLAYER_DRAWS_RANK,
    ConditionType.WHEN_PLAYER_DRAWS_SUIT,
    ConditionType.WHEN_DEALER_DRAWS_RANK,
    ConditionType.WHEN_DEALER_DRAWS_SUIT,
})


def parse_effect_type(tag: str) -> EffectType:
    try:
        return EffectType(tag)
    except ValueError:
        raise UnknownEffectError(f"Unknown effect type: {tag!r}") from None


def parse_condition_type(tag: str) -> ConditionType:
    try:
        return ConditionType(tag)
    except ValueError:
        raise UnknownEffectError(f"Unknown condition type: {tag!r}") from None


# Accept the camelCase spellings generated boons tend to use
_KEY_ALIASES = {
    "bonusValue": "bonus_value",
    "minScore": "min_score",
    "maxScore": "max_score",
    "max": "max_value",
}


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_KEY_ALIASES.get(key, key): value for key, value in data.items()}


@dataclass
class Condition:
    type: ConditionType
    value: Optional[float] = None
    rank: Optional[str] = None
    suit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Condition':
        return cls(
            type=parse_condition_type(data["type"]),
            value=data.get("value"),
            rank=data.get("rank"),
            suit=data.get("suit"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value}
        for key in ("value", "rank", "suit"):
            if getattr(self, key) is not None:
                out[key] = getattr(self, key)
        return out


@dataclass
class Effect:
    """One (type, value, qualifiers) descriptor."""
    type: EffectType
    value: float = 0
    suit: Optional[str] = None
    rank: Optional[str] = None
    ranks: Optional[List[str]] = None
    color: Optional[str] = None
    condition: Optional[Condition] = None
    bonus_value: Optional[float] = None
    threshold: Optional[float] = None
    max_value: Optional[float] = None
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Effect':
        """Strict parse: unknown effect/condition tags raise UnknownEffectError."""
        data = _normalize_keys(data)
        condition = data.get("condition")
        return cls(
            type=parse_effect_type(data["type"]),
            value=data.get("value", 0),
            suit=data.get("suit"),
            rank=data.get("rank"),
            ranks=list(data["ranks"]) if data.get("ranks") is not None else None,
            color=data.get("color"),
            condition=Condition.from_dict(condition) if condition else None,
            bonus_value=data.get("bonus_value"),
            threshold=data.get("threshold"),
            max_value=data.get("max_value"),
            min_score=data.get("min_score"),
            max_score=data.get("max_score"),
            duration=data.get("duration"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "value": self.value}
        for key in ("suit", "rank", "color", "bonus_value", "threshold",
                    "min_score", "max_score", "duration"):
            if getattr(self, key) is not None:
                out[key] = getattr(self, key)
        if self.ranks is not None:
            out["ranks"] = list(self.ranks)
        if self.max_value is not None:
            out["max"] = self.max_value
        if self.condition is not None:
            out["condition"] = self.condition.to_dict()
        return out


@dataclass
class BlessingDefinition:
    name: str
    description: str
    effects: List[Effect] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "effects": [effect.to_dict() for effect in self.effects],
        }
