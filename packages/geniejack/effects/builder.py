"""
Effect -> Modifier builder.

Each EffectType has exactly one compiler, registered with
@effect_compiler. A compiler receives a HookBinder and appends handlers to
the modifier's per-hook lists through it; the binder applies the effect's
condition gate so individual compilers only describe their contribution.
Every EffectType must have a compiler: this is checked when the module
is imported.

Usage:
    mod = build_modifier(
        "mod_spear", "Flint Spear", "+5 damage", ModifierSource.EQUIPMENT,
        [Effect(EffectType.FLAT_DAMAGE_BONUS, 5)],
    )

    @effect_compiler(EffectType.FLAT_DAMAGE_BONUS)
    def flat_damage_bonus(b: HookBinder) -> None:
        b.transform(ModifierHook.DAMAGE_DEALT, lambda dmg, ctx: dmg + b.value)
"""

from __future__ import annotations

import functools
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import UnknownEffectError
from ..registry import (
    BustOverride, Modifier, ModifierContext, ModifierHook, ModifierSource,
    Perspective,
)
from .conditions import check_condition, latch_key, latch_matches
from .types import BlessingDefinition, Effect, EffectType, LATCHED_CONDITIONS


# =============================================================================
# Hook binder
# =============================================================================

def _always(ctx: ModifierContext) -> bool:
    return True


class HookBinder:
    """
    Attaches one effect's handlers to a modifier.

    Context-aware handlers (transforms, dodge, bust, lifecycle) are gated
    by the effect's condition and contribute nothing while it is false.
    Rules, deck and card-value handlers run without a context and are
    never gated.
    """

    def __init__(self, modifier: Modifier, effect: Effect, index: int):
        self.modifier = modifier
        self.effect = effect
        self.state: Dict[str, Any] = modifier.state.setdefault(f"effect_{index}", {})
        self.condition_holds: Callable[[ModifierContext], bool] = _always
        if effect.condition is not None:
            self.condition_holds = self._install_condition()

    @property
    def value(self) -> Any:
        return self.effect.value

    @property
    def perspective(self) -> Perspective:
        return self.modifier.perspective

    def _install_condition(self) -> Callable[[ModifierContext], bool]:
        condition = self.effect.condition
        latches: Dict[str, bool] = self.modifier.state.setdefault("latches", {})
        perspective = self.modifier.perspective

        if condition.type in LATCHED_CONDITIONS:
            key = latch_key(condition)

            def set_latch(card, drawer, ctx):
                if latch_matches(condition, card, drawer):
                    latches[key] = True

            def clear_latch(ctx):
                latches[key] = False

            self.modifier.add_handler(ModifierHook.ON_CARD_DRAWN, set_latch)
            self.modifier.add_handler(ModifierHook.ON_HAND_START, clear_latch)

        return lambda ctx: check_condition(condition, ctx, perspective, latches)

    # -- gated ---------------------------------------------------------------

    def transform(self, hook: ModifierHook,
                  fn: Callable[[Any, ModifierContext], Any]) -> None:
        """value -> value hook (damage dealt/received, gold earned)."""
        gate = self.condition_holds

        def handler(value, ctx):
            if not gate(ctx):
                return value
            return fn(value, ctx)

        self.modifier.add_handler(hook, handler)

    def on(self, hook: ModifierHook, fn: Callable[[ModifierContext], None]) -> None:
        """Lifecycle hook."""
        gate = self.condition_holds

        def handler(ctx):
            if gate(ctx):
                fn(ctx)

        self.modifier.add_handler(hook, handler)

    def dodge(self, fn: Callable[[ModifierContext], bool]) -> None:
        gate = self.condition_holds
        self.modifier.add_handler(ModifierHook.DODGE_CHECK,
                                  lambda ctx: gate(ctx) and fn(ctx))

    def bust(self, fn: Callable[..., Optional[BustOverride]]) -> None:
        gate = self.condition_holds

        def handler(hand, score, ctx):
            if not gate(ctx):
                return None
            return fn(hand, score, ctx)

        self.modifier.add_handler(ModifierHook.BUST_CHECK, handler)

    # -- ungated -------------------------------------------------------------

    def raw_transform(self, hook: ModifierHook,
                      fn: Callable[[Any, ModifierContext], Any]) -> None:
        """value -> value hook that evaluates the condition itself."""
        self.modifier.add_handler(hook, fn)

    def rules(self, fn: Callable[[Any], Any]) -> None:
        self.modifier.add_handler(ModifierHook.RULES, fn)

    def deck(self, fn: Callable[[list, Any], list]) -> None:
        self.modifier.add_handler(ModifierHook.DECK, fn)

    def card_value(self, fn: Callable[[Any, int], int]) -> None:
        self.modifier.add_handler(ModifierHook.CARD_VALUE, fn)


# =============================================================================
# Compiler registry
# =============================================================================

CompilerFn = Callable[[HookBinder], None]

EFFECT_COMPILERS: Dict[EffectType, CompilerFn] = {}


def effect_compiler(*effect_types: EffectType):
    """
    Decorator to register the compiler for one or more effect types.

    Usage:
        @effect_compiler(EffectType.HEAL_ON_WIN)
        def heal_on_win(b: HookBinder) -> None:
            ...
    """
    def decorator(func: CompilerFn) -> CompilerFn:
        for effect_type in effect_types:
            if effect_type in EFFECT_COMPILERS:
                raise RuntimeError(f"Duplicate compiler for {effect_type.value}")
            EFFECT_COMPILERS[effect_type] = func

        @functools.wraps(func)
        def wrapper(b: HookBinder) -> None:
            return func(b)

        return wrapper
    return decorator


def compile_effect(modifier: Modifier, effect: Effect, index: int = 0) -> None:
    compiler = EFFECT_COMPILERS.get(effect.type)
    if compiler is None:
        raise UnknownEffectError(f"No compiler for effect type {effect.type!r}")
    compiler(HookBinder(modifier, effect, index))


def build_modifier(modifier_id: str, name: str, description: str,
                   source: ModifierSource, effects: Sequence[Effect],
                   perspective: Perspective = Perspective.PLAYER) -> Modifier:
    """
    Build a Modifier from effect descriptors.

    Effects are compiled in order; handlers for the same hook run in the
    order their effects were listed.
    """
    modifier = Modifier(
        id=modifier_id,
        name=name,
        description=description,
        source=source,
        perspective=perspective,
    )
    for index, effect in enumerate(effects):
        if not isinstance(effect, Effect):
            raise UnknownEffectError(f"Not an Effect: {effect!r}")
        compile_effect(modifier, effect, index)
    return modifier


def blessing_modifier_id(name: str) -> str:
    return "wish_blessing_" + re.sub(r"\s+", "_", name.lower())


def build_blessing_modifier(definition: BlessingDefinition) -> Modifier:
    """Compile an (already validated) blessing definition."""
    return build_modifier(
        blessing_modifier_id(definition.name),
        definition.name,
        definition.description,
        ModifierSource.BLESSING,
        definition.effects,
    )


def missing_compilers() -> List[EffectType]:
    return [t for t in EffectType if t not in EFFECT_COMPILERS]


# Import compilers to register them (decorators populate EFFECT_COMPILERS)
from . import compilers_rules as _compilers_rules  # noqa: F401, E402
from . import compilers_damage as _compilers_damage  # noqa: F401, E402
from . import compilers_lifecycle as _compilers_lifecycle  # noqa: F401, E402

if missing_compilers():
    raise RuntimeError(
        "Effect types without a compiler: "
        + ", ".join(t.value for t in missing_compilers())
    )
