"""
Consumable catalogue and use.

A consumable is a list of Effect descriptors. Instant effects (heal,
damage, gold) apply the moment it is used; the remaining effects are
compiled into a Modifier and attached to the player as an ActiveEffect
lasting `duration` hands.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..effects.builder import build_modifier
from ..effects.types import Effect, EffectType as E, INSTANT_EFFECTS
from ..registry import ModifierSource
from ..state.run import ActiveEffect, Consumable, EnemyState, PlayerState

logger = logging.getLogger(__name__)


# (id, name, description, cost, duration, effects)
_CONSUMABLE_DEFS: List[Tuple[str, str, str, int, int, Tuple[Effect, ...]]] = [
    ("health_potion", "Health Potion", "Restore 5 HP", 10, 0,
     (Effect(E.INSTANT_HEAL, 5),)),
    ("damage_potion", "Damage Potion", "Deal 5 damage to the enemy", 15, 0,
     (Effect(E.INSTANT_DAMAGE, 5),)),
    ("strength_potion", "Strength Potion", "+30% damage for 1 hand", 20, 1,
     (Effect(E.PERCENT_DAMAGE_BONUS, 0.3),)),
    ("poison_potion", "Poison Potion", "Enemy takes 3 damage per hand for 3 hands", 20, 3,
     (Effect(E.DOT_TO_OPPONENT, 3),)),
    ("armor_elixir", "Elixir of Iron Skin", "30% less damage for 2 hands", 20, 2,
     (Effect(E.PERCENT_DAMAGE_REDUCTION, 0.3),)),
    ("dodge_brew", "Sand Dancer's Brew", "25% dodge chance for 1 hand", 18, 1,
     (Effect(E.DODGE_CHANCE, 0.25),)),
    ("regen_draught", "Phoenix Draught", "Heal 2 HP per hand for 3 hands", 22, 3,
     (Effect(E.HEAL_PER_HAND, 2),)),
    ("battle_trance", "Battle Trance", "+40% damage and 20% less damage taken for 2 hands", 25, 2,
     (Effect(E.PERCENT_DAMAGE_BONUS, 0.4), Effect(E.PERCENT_DAMAGE_REDUCTION, 0.2))),
    ("fortune_vessel", "Fortune's Vessel", "Gain 20 gold", 20, 0,
     (Effect(E.INSTANT_GOLD, 20),)),
    ("wrath_elixir", "Wrath Elixir", "+80% damage for 1 hand", 28, 1,
     (Effect(E.PERCENT_DAMAGE_BONUS, 0.8),)),
]

_DEFS_BY_ID: Dict[str, tuple] = {d[0]: d for d in _CONSUMABLE_DEFS}


def _build(definition: tuple) -> Consumable:
    consumable_id, name, description, cost, duration, effects = definition
    return Consumable(
        id=consumable_id,
        name=name,
        description=description,
        cost=cost,
        effects=list(effects),
        duration=duration,
    )


def get_consumable(consumable_id: str) -> Consumable:
    definition = _DEFS_BY_ID.get(consumable_id)
    if definition is None:
        raise ValueError(f"Unknown consumable: {consumable_id}")
    return _build(definition)


def get_all_consumables() -> List[Consumable]:
    return [_build(d) for d in _CONSUMABLE_DEFS]


def apply_consumable(consumable: Consumable, player: PlayerState,
                     enemy: Optional[EnemyState]) -> str:
    """
    Use a consumable: apply instant effects, attach the rest as an ActiveEffect.

    Returns a one-line log message describing what happened.
    """
    parts: List[str] = []
    lasting: List[Effect] = []
    for effect in consumable.effects:
        if effect.type not in INSTANT_EFFECTS:
            lasting.append(effect)
            continue
        amount = int(effect.value or 0)
        if effect.type is E.INSTANT_HEAL:
            parts.append(f"healed {player.heal(amount)}")
        elif effect.type is E.INSTANT_DAMAGE:
            dealt = enemy.lose_hp(amount) if enemy is not None else 0
            parts.append(f"dealt {dealt} damage")
        elif effect.type is E.INSTANT_GOLD:
            player.gold += max(0, amount)
            parts.append(f"gained {max(0, amount)} gold")

    if lasting:
        duration = max(1, consumable.duration)
        modifier = build_modifier(
            f"consumable_{consumable.id}",
            consumable.name,
            consumable.description,
            ModifierSource.CONSUMABLE,
            lasting,
        )
        player.active_effects.append(ActiveEffect(
            id=consumable.id,
            name=consumable.name,
            remaining_hands=duration,
            modifier=modifier,
        ))
        parts.append(f"active for {duration} hand{'s' if duration != 1 else ''}")

    message = f"Used {consumable.name}: " + (", ".join(parts) if parts else "no effect")
    logger.debug(message)
    return message


def tick_active_effects(player: PlayerState) -> List[str]:
    """Decrement every active effect; drop the expired ones. Returns their names."""
    expired: List[str] = []
    remaining: List[ActiveEffect] = []
    for active in player.active_effects:
        active.remaining_hands -= 1
        if active.remaining_hands <= 0:
            expired.append(active.name)
        else:
            remaining.append(active)
    player.active_effects = remaining
    return expired
