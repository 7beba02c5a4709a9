"""
Compilers for healing, damage-over-time, economy and instant effects.

These are the only effects allowed to mutate player/enemy state, and only
from lifecycle hooks. All hp changes go through the clamped heal/damage
helpers on ModifierContext.
"""

from __future__ import annotations

from ..calc.scoring import PUSH, floor_int
from ..registry import ModifierContext, ModifierHook as H, Perspective
from .builder import HookBinder, effect_compiler
from .types import EffectType as E


def _heal_when(b: HookBinder, hook: H, predicate=None) -> None:
    p = b.perspective

    def handler(ctx: ModifierContext) -> None:
        if predicate is None or predicate(ctx):
            ctx.heal(p, int(b.value))

    b.on(hook, handler)


def _hurt_opponent_when(b: HookBinder, hook: H, predicate=None) -> None:
    p = b.perspective

    def handler(ctx: ModifierContext) -> None:
        if predicate is None or predicate(ctx):
            ctx.damage_opponent(p, int(b.value))

    b.on(hook, handler)


# =============================================================================
# Healing
# =============================================================================

@effect_compiler(E.MAX_HP_BONUS)
def max_hp_bonus(b: HookBinder) -> None:
    p = b.perspective
    state = b.state

    def handler(ctx: ModifierContext) -> None:
        if state.get("applied"):
            return
        state["applied"] = True
        owner = ctx.own_state(p)
        owner.max_hp += int(b.value)
        owner.heal(int(b.value))

    b.on(H.ON_BATTLE_START, handler)


@effect_compiler(E.HEAL_PER_HAND)
def heal_per_hand(b: HookBinder) -> None:
    _heal_when(b, H.ON_HAND_START)


@effect_compiler(E.HEAL_PER_BATTLE)
def heal_per_battle(b: HookBinder) -> None:
    _heal_when(b, H.ON_BATTLE_START)


@effect_compiler(E.HEAL_ON_WIN)
def heal_on_win(b: HookBinder) -> None:
    p = b.perspective
    _heal_when(b, H.ON_HAND_END, lambda ctx: ctx.own_won(p))


@effect_compiler(E.HEAL_ON_BLACKJACK)
def heal_on_blackjack(b: HookBinder) -> None:
    p = b.perspective
    _heal_when(b, H.ON_HAND_END, lambda ctx: ctx.own_score(p).is_blackjack)


@effect_compiler(E.HEAL_ON_BUST)
def heal_on_bust(b: HookBinder) -> None:
    p = b.perspective
    _heal_when(b, H.ON_HAND_END, lambda ctx: ctx.own_score(p).busted)


@effect_compiler(E.HEAL_ON_OPPONENT_BUST)
def heal_on_opponent_bust(b: HookBinder) -> None:
    p = b.perspective
    _heal_when(b, H.ON_HAND_END, lambda ctx: ctx.opponent_score(p).busted)


@effect_compiler(E.HEAL_ON_OPPONENT_NEAR_BLACKJACK)
def heal_on_opponent_near_blackjack(b: HookBinder) -> None:
    p = b.perspective
    low = b.effect.min_score if b.effect.min_score is not None else 18
    high = b.effect.max_score if b.effect.max_score is not None else 20

    def near(ctx: ModifierContext) -> bool:
        opp = ctx.opponent_score(p)
        return low <= opp.value <= high and not opp.busted and not opp.is_blackjack

    _heal_when(b, H.ON_HAND_END, near)


@effect_compiler(E.HEAL_ON_DODGE)
def heal_on_dodge(b: HookBinder) -> None:
    p = b.perspective
    _heal_when(b, H.ON_DODGE, lambda ctx: ctx.dodged_by == p.side)


@effect_compiler(E.HEAL_ON_PUSH)
def heal_on_push(b: HookBinder) -> None:
    _heal_when(b, H.ON_PUSH)


@effect_compiler(E.LIFESTEAL)
def lifesteal(b: HookBinder) -> None:
    p = b.perspective

    def handler(ctx: ModifierContext) -> None:
        amount = floor_int(ctx.own_damage_dealt(p) * b.value)
        if amount > 0:
            ctx.heal(p, amount)

    b.on(H.ON_HAND_END, handler)


# =============================================================================
# Damage over time
# =============================================================================

@effect_compiler(E.DAMAGE_ON_PUSH)
def damage_on_push(b: HookBinder) -> None:
    _hurt_opponent_when(b, H.ON_PUSH, lambda ctx: ctx.outcome() == PUSH)


@effect_compiler(E.DAMAGE_PER_HAND)
def damage_per_hand(b: HookBinder) -> None:
    _hurt_opponent_when(b, H.ON_HAND_START)


@effect_compiler(E.DAMAGE_ON_ENEMY_BUST)
def damage_on_enemy_bust(b: HookBinder) -> None:
    p = b.perspective
    _hurt_opponent_when(b, H.ON_ENEMY_BUST, lambda ctx: ctx.opponent_score(p).busted)


@effect_compiler(E.DOT_TO_OPPONENT)
def dot_to_opponent(b: HookBinder) -> None:
    hook = H.ON_HAND_END if b.perspective is Perspective.PLAYER else H.ON_HAND_START
    _hurt_opponent_when(b, hook)


@effect_compiler(E.POISON)
def poison(b: HookBinder) -> None:
    """Escalating poison: value, value+1, ... each hand; resets each battle."""
    p = b.perspective
    state = b.state

    def reset(ctx: ModifierContext) -> None:
        state["stacks"] = int(b.value)

    def tick(ctx: ModifierContext) -> None:
        stacks = state.get("stacks", int(b.value))
        ctx.damage_opponent(p, stacks)
        state["stacks"] = stacks + 1

    b.modifier.add_handler(H.ON_BATTLE_START, reset)
    b.on(H.ON_HAND_START, tick)


@effect_compiler(E.SELF_DAMAGE_ON_BUST)
def self_damage_on_bust(b: HookBinder) -> None:
    p = b.perspective

    def handler(ctx: ModifierContext) -> None:
        if ctx.own_score(p).busted:
            ctx.damage_self(p, int(b.value))

    b.on(H.ON_HAND_END, handler)


# =============================================================================
# Economy
# =============================================================================

@effect_compiler(E.FLAT_GOLD_BONUS)
def flat_gold_bonus(b: HookBinder) -> None:
    b.transform(H.GOLD_EARNED, lambda gold, ctx: gold + int(b.value))


@effect_compiler(E.PERCENT_GOLD_BONUS)
def percent_gold_bonus(b: HookBinder) -> None:
    b.transform(H.GOLD_EARNED, lambda gold, ctx: floor_int(gold * (1 + b.value)))


@effect_compiler(E.GOLD_PER_HAND_WON)
def gold_per_hand_won(b: HookBinder) -> None:
    p = b.perspective
    b.transform(H.GOLD_EARNED, lambda gold, ctx: gold + int(b.value) * ctx.own_hands_won(p))


@effect_compiler(E.GOLD_IF_HANDS_WON_GTE)
def gold_if_hands_won_gte(b: HookBinder) -> None:
    p = b.perspective
    threshold = b.effect.threshold if b.effect.threshold is not None else 2
    b.transform(H.GOLD_EARNED, lambda gold, ctx: (
        gold + int(b.value) if ctx.own_hands_won(p) >= threshold else gold))


@effect_compiler(E.GOLD_PER_BLACKJACK)
def gold_per_blackjack(b: HookBinder) -> None:
    p = b.perspective

    def handler(ctx: ModifierContext) -> None:
        if p is Perspective.PLAYER and ctx.player_score.is_blackjack:
            ctx.player_state.gold += int(b.value)

    b.on(H.ON_HAND_END, handler)


# =============================================================================
# Instant effects (applied directly by content.consumables.apply_consumable)
# =============================================================================

@effect_compiler(E.INSTANT_HEAL, E.INSTANT_DAMAGE, E.INSTANT_GOLD)
def instant_effect(b: HookBinder) -> None:
    return None
