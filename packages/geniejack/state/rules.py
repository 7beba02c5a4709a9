"""
Game rules - the nested configuration every hand is played under.

Rules are never stored authoritatively. fold_rules() rebuilds them from
one canonical default by running every active modifier's rules-transform
handlers in collection order.

Usage:
    rules = fold_rules(default_rules(), modifiers)
    rules.scoring.bust_threshold  # 21, or more with bust_threshold_bonus
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..registry import Modifier


@dataclass
class ScoringRules:
    bust_threshold: int = 21
    blackjack_target: int = 21
    additional_blackjack_values: List[int] = field(default_factory=list)
    bust_save_threshold: Optional[int] = None
    ace_high_value: int = 11
    ace_low_value: int = 1
    face_card_value: int = 10
    flexible_ranks: List[str] = field(default_factory=list)
    rank_value_overrides: Dict[str, int] = field(default_factory=dict)


@dataclass
class TurnOrderRules:
    player_goes_first: bool = True
    initial_cards_player: int = 2
    initial_cards_dealer: int = 2


@dataclass
class DealerRules:
    stands_on: int = 17
    stands_on_soft_17: bool = True
    peeks_for_blackjack: bool = False  # inert: the dealer never peeks early
    reveals_cards: bool = False


@dataclass
class WinConditionRules:
    tie_resolution: str = "push"            # "push" | "player" | "dealer"
    double_bust_resolution: str = "dealer"  # "push" | "player" | "dealer"
    natural_blackjack_bonus: int = 0
    blackjack_payout_multiplier: float = 1.5


@dataclass
class DamageRules:
    base_multiplier: float = 1.0
    minimum_damage: int = 0
    maximum_damage: Optional[int] = None
    flat_bonus_damage: int = 0
    percent_bonus_damage: float = 0.0
    thorns_percent: float = 0.0
    damage_shield: int = 0
    damage_cap: Optional[int] = None
    overkill_carry_percent: float = 0.0


@dataclass
class ActionRules:
    can_hit: bool = True
    can_stand: bool = True
    can_double_down: bool = True
    can_split: bool = False           # inert: no split action exists
    can_surrender: bool = False
    double_down_multiplier: int = 2
    can_remove_card: bool = False
    cards_removable_per_hand: int = 0
    can_peek: bool = False
    can_double_down_any_time: bool = False
    can_hit_after_double: bool = False


@dataclass
class DeckRules:
    number_of_decks: int = 1
    reshuffle_between_hands: bool = True


@dataclass
class EconomyRules:
    gold_per_battle: int = 10
    gold_per_boss: int = 25
    shop_price_multiplier: float = 1.0


@dataclass
class HealthRules:
    player_max_hp: int = 50
    player_starting_hp: int = 50
    regen_per_battle: int = 0
    reset_hp_after_boss: bool = True


@dataclass
class ProgressionRules:
    battles_per_stage: int = 3
    total_stages: int = 3


@dataclass
class GameRules:
    scoring: ScoringRules = field(default_factory=ScoringRules)
    turn_order: TurnOrderRules = field(default_factory=TurnOrderRules)
    dealer: DealerRules = field(default_factory=DealerRules)
    win_conditions: WinConditionRules = field(default_factory=WinConditionRules)
    damage: DamageRules = field(default_factory=DamageRules)
    actions: ActionRules = field(default_factory=ActionRules)
    deck: DeckRules = field(default_factory=DeckRules)
    economy: EconomyRules = field(default_factory=EconomyRules)
    health: HealthRules = field(default_factory=HealthRules)
    progression: ProgressionRules = field(default_factory=ProgressionRules)

    def copy(self) -> 'GameRules':
        return copy.deepcopy(self)


_DEFAULT_RULES = GameRules()


def default_rules() -> GameRules:
    """A fresh copy of the canonical default rules."""
    return copy.deepcopy(_DEFAULT_RULES)


def append_unique(values: list, item) -> None:
    """Append-if-absent, so stacking the same list effect is idempotent."""
    if item not in values:
        values.append(item)


def fold_rules(default: GameRules, modifiers: Iterable['Modifier']) -> GameRules:
    """
    Fold every modifier's rules-transform handlers over a copy of `default`.

    Modifiers are visited in collection order and each modifier's handlers
    in attachment order; each handler returns the (whole) working rules.
    `default` itself is never mutated.
    """
    from ..registry import ModifierHook

    rules = copy.deepcopy(default)
    for modifier in modifiers:
        for transform in modifier.handlers_for(ModifierHook.RULES):
            rules = transform(rules)
    return rules
