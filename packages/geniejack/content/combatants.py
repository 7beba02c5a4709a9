"""
Enemy pools, stage bosses and their curses.

Enemies carry Equipment-shaped innate abilities compiled with the enemy
perspective, so "own" in their effects means the dealer's hand and hp.
Boss curses are compiled with the player perspective: they are handed to
the player as part of the Wish once the boss is defeated.

Usage:
    rng = Random("seed")
    enemies = sample_enemies_for_stage(1, rng)   # 3 fresh CombatantData
    boss = get_boss_for_stage(1)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..effects.builder import build_modifier
from ..effects.types import Effect, EffectType as E
from ..registry import Modifier, ModifierSource, Perspective
from ..state.rng import Random
from ..state.run import CombatantData, Equipment, EquipmentSlot, EquipmentTier

ENEMIES_PER_STAGE = 3


@dataclass(frozen=True)
class AbilityDef:
    id: str
    name: str
    description: str
    effects: Tuple[Effect, ...]


@dataclass(frozen=True)
class CombatantDef:
    id: str
    name: str
    max_hp: int
    description: str
    abilities: Tuple[AbilityDef, ...]
    is_boss: bool = False
    curse: Optional[AbilityDef] = None


def _ability(ability_id: str, name: str, description: str, *effects: Effect) -> AbilityDef:
    return AbilityDef(ability_id, name, description, tuple(effects))


STAGE_ENEMIES: Dict[int, List[CombatantDef]] = {
    1: [
        CombatantDef("vampire_bat", "Vampire Bat", 18, "A shrieking bat that shies from spades",
                     (_ability("bat_wings", "Leathery Wings",
                               "Takes 50% less damage while you hold a spade",
                               Effect(E.SUIT_IN_ATTACKER_HAND_DAMAGE_REDUCTION, 0.5,
                                      suit="spades")),)),
        CombatantDef("ghul", "Ghul", 20, "A graveyard ghoul that feeds on mistakes",
                     (_ability("ghul_hunger", "Carrion Hunger",
                               "+5 damage when you bust",
                               Effect(E.BONUS_DAMAGE_ON_OPPONENT_BUST, 5)),)),
        CombatantDef("desert_jackal", "Desert Jackal", 15, "A lean scavenger of the dunes",
                     (_ability("jackal_bite", "Jackal Bite", "+3 damage",
                               Effect(E.FLAT_DAMAGE_BONUS, 3)),)),
    ],
    2: [
        CombatantDef("dust_wraith", "Dust Wraith", 25, "A spirit of swirling sand",
                     (_ability("wraith_veil", "Sand Veil", "15% dodge chance",
                               Effect(E.DODGE_CHANCE, 0.15)),)),
        CombatantDef("tomb_guardian", "Tomb Guardian", 30, "A stone sentinel of forgotten kings",
                     (_ability("guardian_stone", "Stone Skin", "25% less damage taken",
                               Effect(E.PERCENT_DAMAGE_REDUCTION, 0.25)),)),
        CombatantDef("sand_serpent", "Sand Serpent", 28, "It strikes from beneath the dunes",
                     (_ability("serpent_fangs", "Venom Fangs", "+5 damage",
                               Effect(E.FLAT_DAMAGE_BONUS, 5)),)),
    ],
    3: [
        CombatantDef("obsidian_golem", "Obsidian Golem", 35, "Volcanic glass given a will",
                     (_ability("golem_shell", "Obsidian Shell", "40% less damage taken",
                               Effect(E.PERCENT_DAMAGE_REDUCTION, 0.4)),)),
        CombatantDef("shadow_assassin", "Shadow Assassin", 32, "Swift, silent and deadly",
                     (_ability("assassin_blade", "Hidden Blade", "+10 damage",
                               Effect(E.FLAT_DAMAGE_BONUS, 10)),
                      _ability("assassin_step", "Shadow Step", "20% dodge chance",
                               Effect(E.DODGE_CHANCE, 0.2)))),
        CombatantDef("fire_dancer", "Fire Dancer", 30, "Each red card feeds her flames",
                     (_ability("dancer_flames", "Crimson Flames",
                               "+3 damage per red card in her hand",
                               Effect(E.OWN_HAND_COLOR_DAMAGE_BONUS, 3, color="red")),)),
    ],
}

STAGE_BOSSES: Dict[int, CombatantDef] = {
    1: CombatantDef(
        "ancient_strix", "Ancient Strix", 50, "An owl-demon older than the desert",
        (_ability("strix_night_fang", "Night Fang", "+10 damage on blackjack",
                  Effect(E.BLACKJACK_BONUS_DAMAGE, 10)),
         _ability("strix_talons", "Strix Talons", "+2 damage per red card you hold",
                  Effect(E.COLOR_CARD_DAMAGE_BONUS, 2, color="red"))),
        is_boss=True,
        curse=_ability("curse_night_fang", "Night Fang Curse",
                       "Take 5 extra damage when the dealer has blackjack",
                       Effect(E.EXTRA_DAMAGE_ON_DEALER_BLACKJACK, 5)),
    ),
    2: CombatantDef(
        "djinn_warden", "Djinn Warden", 75, "Bound guardian of the lamp",
        (_ability("warden_strike", "Warden Strike", "+8 damage",
                  Effect(E.FLAT_DAMAGE_BONUS, 8)),
         _ability("warden_renewal", "Smokeless Fire", "Heals 10 HP on blackjack",
                  Effect(E.HEAL_ON_BLACKJACK, 10))),
        is_boss=True,
        curse=_ability("curse_murads_brand", "Murad's Brand",
                       "Take 4 damage whenever you bust",
                       Effect(E.SELF_DAMAGE_ON_BUST, 4)),
    ),
    3: CombatantDef(
        "crimson_sultan", "Crimson Sultan", 100, "Tyrant of the burning city",
        (_ability("sultan_scimitar", "Crimson Scimitar", "+15 damage",
                  Effect(E.FLAT_DAMAGE_BONUS, 15)),
         _ability("sultan_guard", "Royal Guard", "30% less damage taken",
                  Effect(E.PERCENT_DAMAGE_REDUCTION, 0.3)),
         _ability("sultan_decree", "Decree of Stalemate", "5 damage to you on a push",
                  Effect(E.DAMAGE_ON_PUSH, 5))),
        is_boss=True,
        curse=_ability("curse_zahhaks_mark", "Zahhak's Mark",
                       "Deal 20% less damage",
                       Effect(E.PERCENT_DAMAGE_PENALTY, 0.2)),
    ),
}


# =============================================================================
# Factories
# =============================================================================

def _enemy_ability(ability: AbilityDef) -> Equipment:
    effects = list(ability.effects)
    return Equipment(
        id=ability.id,
        name=ability.name,
        slot=EquipmentSlot.TRINKET,
        tier=EquipmentTier.CLOTH,
        cost=0,
        description=ability.description,
        effects=effects,
        modifier=build_modifier(f"enemy_{ability.id}", ability.name, ability.description,
                                ModifierSource.ENEMY, effects, Perspective.ENEMY),
    )


def build_curse(ability: AbilityDef) -> Modifier:
    return build_modifier(ability.id, ability.name, ability.description,
                          ModifierSource.CURSE, list(ability.effects))


def no_curse_modifier() -> Modifier:
    """Placeholder curse stored in a Wish when the boss carries none."""
    return build_modifier("curse_none", "No Curse", "The genie asks nothing in return",
                          ModifierSource.CURSE, [])


def build_combatant(definition: CombatantDef) -> CombatantData:
    """Fresh CombatantData with newly compiled ability and curse modifiers."""
    return CombatantData(
        id=definition.id,
        name=definition.name,
        max_hp=definition.max_hp,
        is_boss=definition.is_boss,
        description=definition.description,
        equipment=[_enemy_ability(a) for a in definition.abilities],
        curse=build_curse(definition.curse) if definition.curse is not None else None,
    )


def _stage_key(stage: int, table: Dict[int, object]) -> int:
    # Stages beyond the authored content reuse the last pool
    return min(max(1, stage), max(table))


def sample_enemies_for_stage(stage: int, rng: Random,
                             count: int = ENEMIES_PER_STAGE) -> List[CombatantData]:
    """Seeded Fisher-Yates over the stage pool, first `count` taken."""
    pool = list(STAGE_ENEMIES[_stage_key(stage, STAGE_ENEMIES)])
    for i in range(len(pool) - 1, 0, -1):
        j = rng.next_int(0, i)
        pool[i], pool[j] = pool[j], pool[i]
    return [build_combatant(d) for d in pool[:count]]


def get_boss_for_stage(stage: int) -> CombatantData:
    return build_combatant(STAGE_BOSSES[_stage_key(stage, STAGE_BOSSES)])


def get_all_enemy_definitions() -> List[CombatantDef]:
    out: List[CombatantDef] = []
    for stage in sorted(STAGE_ENEMIES):
        out.extend(STAGE_ENEMIES[stage])
        out.append(STAGE_BOSSES[stage])
    return out
