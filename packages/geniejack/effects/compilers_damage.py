"""
Compilers for damage-dealt, damage-received and dodge effects.

Flat bonuses are additive and commute; percentage and multiplier effects
floor after each step and so apply in attachment order.
"""

from __future__ import annotations

from ..calc.scoring import floor_int
from ..registry import ModifierContext, ModifierHook
from ..state.cards import ALL_SUITS, Rank
from .builder import HookBinder, effect_compiler
from .types import EffectType as E

DEALT = ModifierHook.DAMAGE_DEALT
RECEIVED = ModifierHook.DAMAGE_RECEIVED

LOW_RANKS = frozenset({Rank.TWO, Rank.THREE, Rank.FOUR, Rank.FIVE, Rank.SIX})
HIGH_RANKS = frozenset({Rank.SEVEN, Rank.EIGHT, Rank.NINE, Rank.TEN})


def _add_per_card(b: HookBinder, predicate, opponent: bool = False) -> None:
    """+value for each card in the own (or opponent) hand matching predicate."""
    perspective = b.perspective

    def handler(damage: int, ctx: ModifierContext) -> int:
        hand = ctx.opponent_hand(perspective) if opponent else ctx.own_hand(perspective)
        count = sum(1 for card in hand.cards if predicate(card))
        return damage + int(b.value) * count

    b.transform(DEALT, handler)


def _add_when(b: HookBinder, hook: ModifierHook, predicate) -> None:
    b.transform(hook, lambda damage, ctx: damage + int(b.value) if predicate(ctx) else damage)


def _scale_when(b: HookBinder, hook: ModifierHook, factor: float, predicate=None) -> None:
    def handler(damage: int, ctx: ModifierContext) -> int:
        if predicate is not None and not predicate(ctx):
            return damage
        return floor_int(damage * factor)
    b.transform(hook, handler)


# =============================================================================
# Damage dealt
# =============================================================================

@effect_compiler(E.FLAT_DAMAGE_BONUS)
def flat_damage_bonus(b: HookBinder) -> None:
    b.transform(DEALT, lambda damage, ctx: damage + int(b.value))


@effect_compiler(E.PERCENT_DAMAGE_BONUS)
def percent_damage_bonus(b: HookBinder) -> None:
    _scale_when(b, DEALT, 1 + b.value)


@effect_compiler(E.DAMAGE_MULTIPLIER)
def damage_multiplier(b: HookBinder) -> None:
    _scale_when(b, DEALT, b.value)


@effect_compiler(E.PERCENT_DAMAGE_PENALTY)
def percent_damage_penalty(b: HookBinder) -> None:
    _scale_when(b, DEALT, 1 - b.value)


@effect_compiler(E.SUIT_DAMAGE_BONUS)
def suit_damage_bonus(b: HookBinder) -> None:
    suit = b.effect.suit
    _add_per_card(b, lambda card: card.suit.value == suit)


@effect_compiler(E.FACE_CARD_DAMAGE_BONUS)
def face_card_damage_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank.is_face)


@effect_compiler(E.ACE_DAMAGE_BONUS)
def ace_damage_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank is Rank.ACE)


@effect_compiler(E.EVEN_CARD_BONUS)
def even_card_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank.is_numeric and card.rank.pip_value % 2 == 0)


@effect_compiler(E.ODD_CARD_BONUS)
def odd_card_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank.is_numeric and card.rank.pip_value % 2 == 1)


@effect_compiler(E.LOW_CARD_BONUS)
def low_card_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank in LOW_RANKS)


@effect_compiler(E.HIGH_CARD_BONUS)
def high_card_bonus(b: HookBinder) -> None:
    _add_per_card(b, lambda card: card.rank in HIGH_RANKS)


@effect_compiler(E.DAMAGE_PER_CARD_IN_HAND)
def damage_per_card_in_hand(b: HookBinder) -> None:
    _add_per_card(b, lambda card: True)


@effect_compiler(E.COLOR_CARD_DAMAGE_BONUS)
def color_card_damage_bonus(b: HookBinder) -> None:
    color = b.effect.color
    _add_per_card(b, lambda card: card.color == color, opponent=True)


@effect_compiler(E.OWN_HAND_COLOR_DAMAGE_BONUS)
def own_hand_color_damage_bonus(b: HookBinder) -> None:
    color = b.effect.color
    _add_per_card(b, lambda card: card.color == color)


@effect_compiler(E.BLACKJACK_BONUS_DAMAGE)
def blackjack_bonus_damage(b: HookBinder) -> None:
    p = b.perspective
    _add_when(b, DEALT, lambda ctx: ctx.own_score(p).is_blackjack)


@effect_compiler(E.BLACKJACK_DAMAGE_MULTIPLIER)
def blackjack_damage_multiplier(b: HookBinder) -> None:
    p = b.perspective
    _scale_when(b, DEALT, b.value, lambda ctx: ctx.own_score(p).is_blackjack)


@effect_compiler(E.FIVE_CARD_CHARLIE)
def five_card_charlie(b: HookBinder) -> None:
    p = b.perspective
    _add_when(b, DEALT, lambda ctx: (len(ctx.own_hand(p).cards) >= 5
                                     and not ctx.own_score(p).busted))


@effect_compiler(E.SOFT_HAND_BONUS)
def soft_hand_bonus(b: HookBinder) -> None:
    p = b.perspective
    _add_when(b, DEALT, lambda ctx: ctx.own_score(p).soft)


@effect_compiler(E.EXACT_TARGET_BONUS)
def exact_target_bonus(b: HookBinder) -> None:
    p = b.perspective
    _add_when(b, DEALT, lambda ctx: ctx.own_score(p).value == ctx.rules.scoring.blackjack_target)


@effect_compiler(E.SCALING_DAMAGE_PER_WIN)
def scaling_damage_per_win(b: HookBinder) -> None:
    p = b.perspective
    b.transform(DEALT, lambda damage, ctx: damage + int(b.value) * ctx.own_hands_won(p))


@effect_compiler(E.CONDITIONAL_FLAT_DAMAGE)
def conditional_flat_damage(b: HookBinder) -> None:
    bonus = int(b.effect.bonus_value or 0)

    def handler(damage: int, ctx: ModifierContext) -> int:
        damage += int(b.value)
        if b.effect.condition is not None and b.condition_holds(ctx):
            damage += bonus
        return damage

    b.raw_transform(DEALT, handler)


@effect_compiler(E.DEALER_HAND_SIZE_BONUS_DAMAGE)
def dealer_hand_size_bonus_damage(b: HookBinder) -> None:
    threshold = b.effect.threshold if b.effect.threshold is not None else 4
    _add_when(b, DEALT, lambda ctx: len(ctx.dealer_hand.cards) >= threshold)


@effect_compiler(E.BONUS_DAMAGE_ON_OPPONENT_BUST)
def bonus_damage_on_opponent_bust(b: HookBinder) -> None:
    p = b.perspective
    _add_when(b, DEALT, lambda ctx: ctx.opponent_score(p).busted)


@effect_compiler(E.BONUS_DAMAGE_ON_SCORE_WIN)
def bonus_damage_on_score_win(b: HookBinder) -> None:
    p = b.perspective

    def won_on_score(ctx: ModifierContext) -> bool:
        own, opp = ctx.own_score(p), ctx.opponent_score(p)
        return not own.busted and not opp.busted and own.value > opp.value

    _add_when(b, DEALT, won_on_score)


@effect_compiler(E.CONSECUTIVE_LOSS_DAMAGE_BONUS)
def consecutive_loss_damage_bonus(b: HookBinder) -> None:
    p = b.perspective
    cap = b.effect.max_value if b.effect.max_value is not None else 10

    def handler(damage: int, ctx: ModifierContext) -> int:
        return damage + int(min(b.value * ctx.own_consecutive_losses(p), cap))

    b.transform(DEALT, handler)


@effect_compiler(E.FIRST_HAND_DAMAGE_MULTIPLIER)
def first_hand_damage_multiplier(b: HookBinder) -> None:
    _scale_when(b, DEALT, b.value, lambda ctx: ctx.hand_number == 1)


# =============================================================================
# Damage received
# =============================================================================

@effect_compiler(E.FLAT_DAMAGE_REDUCTION)
def flat_damage_reduction(b: HookBinder) -> None:
    b.transform(RECEIVED, lambda damage, ctx: max(0, damage - int(b.value)))


@effect_compiler(E.PERCENT_DAMAGE_REDUCTION, E.CONDITIONAL_DAMAGE_REDUCTION)
def percent_damage_reduction(b: HookBinder) -> None:
    # conditional_damage_reduction is gated by its condition like any effect
    _scale_when(b, RECEIVED, 1 - b.value)


@effect_compiler(E.SUIT_DAMAGE_REDUCTION)
def suit_damage_reduction(b: HookBinder) -> None:
    p = b.perspective
    suit = b.effect.suit
    _scale_when(b, RECEIVED, 1 - b.value,
                lambda ctx: sum(1 for c in ctx.own_hand(p).cards if c.suit.value == suit) >= 2)


@effect_compiler(E.REDUCE_BUST_DAMAGE)
def reduce_bust_damage(b: HookBinder) -> None:
    p = b.perspective
    _scale_when(b, RECEIVED, 1 - b.value, lambda ctx: ctx.own_score(p).busted)


@effect_compiler(E.SUIT_IN_ATTACKER_HAND_DAMAGE_REDUCTION)
def suit_in_attacker_hand_damage_reduction(b: HookBinder) -> None:
    p = b.perspective
    suit = b.effect.suit
    _scale_when(b, RECEIVED, 1 - b.value,
                lambda ctx: any(c.suit.value == suit for c in ctx.opponent_hand(p).cards))


@effect_compiler(E.RANDOM_SUIT_DAMAGE_REDUCTION)
def random_suit_damage_reduction(b: HookBinder) -> None:
    p = b.perspective
    state = b.state

    def pick_suit(ctx: ModifierContext) -> None:
        state["suit"] = ALL_SUITS[ctx.rng.next_int(0, 3)].value

    def applies(ctx: ModifierContext) -> bool:
        suit = state.get("suit")
        return suit is not None and any(c.suit.value == suit for c in ctx.opponent_hand(p).cards)

    b.modifier.add_handler(ModifierHook.ON_BATTLE_START, pick_suit)
    _scale_when(b, RECEIVED, 1 - b.value, applies)


@effect_compiler(E.EXTRA_DAMAGE_ON_DEALER_BLACKJACK)
def extra_damage_on_dealer_blackjack(b: HookBinder) -> None:
    _add_when(b, RECEIVED, lambda ctx: ctx.dealer_score.is_blackjack)


# =============================================================================
# Dodge
# =============================================================================

@effect_compiler(E.DODGE_CHANCE)
def dodge_chance(b: HookBinder) -> None:
    b.dodge(lambda ctx: ctx.rng.random_boolean_chance(b.value))
