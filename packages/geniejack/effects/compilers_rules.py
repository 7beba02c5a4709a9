"""
Compilers for rules, deck, card-value and bust-override effects.

Rules handlers receive the working GameRules copy, change one or two leaf
fields and return it. List fields are appended to only if absent.
"""

from __future__ import annotations

from typing import List

from ..calc.scoring import card_value
from ..registry import BustOverride
from ..state.cards import ALL_SUITS, Card, Rank
from ..state.rules import GameRules, append_unique
from .builder import HookBinder, effect_compiler
from .types import EffectType as E


# =============================================================================
# Scoring rules
# =============================================================================

@effect_compiler(E.FLEXIBLE_RANK)
def flexible_rank(b: HookBinder) -> None:
    rank = b.effect.rank

    def transform(rules: GameRules) -> GameRules:
        append_unique(rules.scoring.flexible_ranks, rank)
        return rules
    b.rules(transform)


@effect_compiler(E.CHANGE_FACE_CARD_VALUE)
def change_face_card_value(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.scoring.face_card_value = int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.CHANGE_ACE_HIGH_VALUE)
def change_ace_high_value(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.scoring.ace_high_value = int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.RANK_VALUE_OVERRIDE)
def rank_value_override(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.scoring.rank_value_overrides[b.effect.rank] = int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.BUST_THRESHOLD_BONUS)
def bust_threshold_bonus(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.scoring.bust_threshold += int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.ADDITIONAL_BLACKJACK_VALUE)
def additional_blackjack_value(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        append_unique(rules.scoring.additional_blackjack_values, int(b.value))
        return rules
    b.rules(transform)


@effect_compiler(E.SUIT_CARD_VALUE_BONUS)
def suit_card_value_bonus(b: HookBinder) -> None:
    suit = b.effect.suit
    b.card_value(lambda card, value: value + int(b.value) if card.suit.value == suit else value)


# =============================================================================
# Deck
# =============================================================================

def _keep_nonempty(filtered: List[Card], original: List[Card]) -> List[Card]:
    return filtered if filtered else original


@effect_compiler(E.REMOVE_RANK_FROM_DECK)
def remove_rank_from_deck(b: HookBinder) -> None:
    rank = b.effect.rank
    b.deck(lambda cards, rules: _keep_nonempty(
        [c for c in cards if c.rank.value != rank], cards))


@effect_compiler(E.REMOVE_SUIT_FROM_DECK)
def remove_suit_from_deck(b: HookBinder) -> None:
    suit = b.effect.suit
    b.deck(lambda cards, rules: _keep_nonempty(
        [c for c in cards if c.suit.value != suit], cards))


@effect_compiler(E.FORCE_DECK_RANKS)
def force_deck_ranks(b: HookBinder) -> None:
    ranks = set(b.effect.ranks or [])
    b.deck(lambda cards, rules: _keep_nonempty(
        [c for c in cards if c.rank.value in ranks], cards))


@effect_compiler(E.EXTRA_COPIES_OF_RANK)
def extra_copies_of_rank(b: HookBinder) -> None:
    rank = Rank(b.effect.rank)

    def transform(cards: List[Card], rules: GameRules) -> List[Card]:
        extra = [Card(suit, rank) for _ in range(int(b.value)) for suit in ALL_SUITS]
        return list(cards) + extra
    b.deck(transform)


@effect_compiler(E.NO_RESHUFFLE)
def no_reshuffle(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.deck.reshuffle_between_hands = False
        return rules
    b.rules(transform)


@effect_compiler(E.MULTIPLE_DECKS)
def multiple_decks(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.deck.number_of_decks = int(b.value)
        return rules
    b.rules(transform)


# =============================================================================
# Bust overrides
# =============================================================================

@effect_compiler(E.BUST_SAVE)
def bust_save(b: HookBinder) -> None:
    b.bust(lambda hand, score, ctx: BustOverride(effective_score=int(b.value)))


@effect_compiler(E.BUST_CARD_VALUE_HALVED)
def bust_card_value_halved(b: HookBinder) -> None:
    def override(hand, score, ctx):
        if not hand.cards:
            return None
        last = card_value(hand.cards[-1], ctx.rules)
        new_score = score - last + last // 2
        if new_score <= ctx.rules.scoring.bust_threshold:
            return BustOverride(effective_score=new_score)
        return None
    b.bust(override)


@effect_compiler(E.IGNORE_CARD_ON_BUST)
def ignore_card_on_bust(b: HookBinder) -> None:
    def override(hand, score, ctx):
        candidates = [c for c in hand.cards if c.rank is not Rank.ACE]
        if not candidates:
            return None
        highest = max(card_value(c, ctx.rules) for c in candidates)
        new_score = score - highest
        if new_score <= ctx.rules.scoring.bust_threshold:
            return BustOverride(effective_score=new_score)
        return None
    b.bust(override)


# =============================================================================
# Player actions
# =============================================================================

def _flag_setter(section: str, attr: str, value):
    def transform(rules: GameRules) -> GameRules:
        setattr(getattr(rules, section), attr, value)
        return rules
    return transform


@effect_compiler(E.ENABLE_REMOVE_CARD)
def enable_remove_card(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.actions.can_remove_card = True
        rules.actions.cards_removable_per_hand = int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.ENABLE_PEEK)
def enable_peek(b: HookBinder) -> None:
    b.rules(_flag_setter("actions", "can_peek", True))


@effect_compiler(E.ENABLE_SURRENDER)
def enable_surrender(b: HookBinder) -> None:
    b.rules(_flag_setter("actions", "can_surrender", True))


@effect_compiler(E.ENABLE_SPLIT)
def enable_split(b: HookBinder) -> None:
    # Sets the flag only; the engine offers no split action, so it is inert
    b.rules(_flag_setter("actions", "can_split", True))


@effect_compiler(E.DOUBLE_DOWN_ANY_TIME)
def double_down_any_time(b: HookBinder) -> None:
    b.rules(_flag_setter("actions", "can_double_down_any_time", True))


@effect_compiler(E.HIT_AFTER_DOUBLE)
def hit_after_double(b: HookBinder) -> None:
    b.rules(_flag_setter("actions", "can_hit_after_double", True))


@effect_compiler(E.DOUBLE_DOWN_MULTIPLIER)
def double_down_multiplier(b: HookBinder) -> None:
    b.rules(_flag_setter("actions", "double_down_multiplier", int(b.value)))


@effect_compiler(E.EXTRA_STARTING_CARDS)
def extra_starting_cards(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.turn_order.initial_cards_player += int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.FEWER_STARTING_CARDS)
def fewer_starting_cards(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        turn = rules.turn_order
        turn.initial_cards_player = max(1, turn.initial_cards_player - int(b.value))
        return rules
    b.rules(transform)


# =============================================================================
# Dealer
# =============================================================================

@effect_compiler(E.DEALER_STANDS_ON)
def dealer_stands_on(b: HookBinder) -> None:
    b.rules(_flag_setter("dealer", "stands_on", int(b.value)))


@effect_compiler(E.DEALER_HITS_SOFT_17)
def dealer_hits_soft_17(b: HookBinder) -> None:
    b.rules(_flag_setter("dealer", "stands_on_soft_17", False))


@effect_compiler(E.DEALER_REVEALS_CARDS)
def dealer_reveals_cards(b: HookBinder) -> None:
    b.rules(_flag_setter("dealer", "reveals_cards", True))


@effect_compiler(E.TIES_FAVOR_PLAYER)
def ties_favor_player(b: HookBinder) -> None:
    b.rules(_flag_setter("win_conditions", "tie_resolution", "player"))


@effect_compiler(E.DOUBLE_BUST_FAVORS_PLAYER)
def double_bust_favors_player(b: HookBinder) -> None:
    b.rules(_flag_setter("win_conditions", "double_bust_resolution", "player"))


@effect_compiler(E.DEALER_EXTRA_STARTING_CARD)
def dealer_extra_starting_card(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.turn_order.initial_cards_dealer += int(b.value)
        return rules
    b.rules(transform)


@effect_compiler(E.DEALER_FEWER_STARTING_CARDS)
def dealer_fewer_starting_cards(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        turn = rules.turn_order
        turn.initial_cards_dealer = max(1, turn.initial_cards_dealer - int(b.value))
        return rules
    b.rules(transform)


# =============================================================================
# Damage-rule knobs (applied by the pipeline when the player defends)
# =============================================================================

@effect_compiler(E.THORNS)
def thorns(b: HookBinder) -> None:
    b.rules(_flag_setter("damage", "thorns_percent", b.value))


@effect_compiler(E.DAMAGE_SHIELD)
def damage_shield(b: HookBinder) -> None:
    b.rules(_flag_setter("damage", "damage_shield", int(b.value)))


@effect_compiler(E.DAMAGE_CAP)
def damage_cap(b: HookBinder) -> None:
    b.rules(_flag_setter("damage", "damage_cap", int(b.value)))


@effect_compiler(E.OVERKILL_CARRY)
def overkill_carry(b: HookBinder) -> None:
    b.rules(_flag_setter("damage", "overkill_carry_percent", b.value))


@effect_compiler(E.SHOP_DISCOUNT)
def shop_discount(b: HookBinder) -> None:
    def transform(rules: GameRules) -> GameRules:
        rules.economy.shop_price_multiplier *= (1 - b.value)
        return rules
    b.rules(transform)
