"""
Equipment catalogue.

Every item is a list of Effect descriptors; get_equipment() builds a
fresh Equipment with its own compiled Modifier, so per-modifier state
(random suit picks, once-per-battle flags) is never shared between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..effects.builder import build_modifier
from ..effects.types import Condition, ConditionType, Effect, EffectType as E
from ..registry import ModifierSource, Perspective
from ..state.run import Equipment, EquipmentSlot, EquipmentTier

W, H, A, B, T = (EquipmentSlot.WEAPON, EquipmentSlot.HELM, EquipmentSlot.ARMOR,
                 EquipmentSlot.BOOTS, EquipmentSlot.TRINKET)
CLOTH, BRONZE, IRON = EquipmentTier.CLOTH, EquipmentTier.BRONZE, EquipmentTier.IRON


@dataclass(frozen=True)
class EquipmentDef:
    id: str
    name: str
    slot: EquipmentSlot
    tier: EquipmentTier
    cost: int
    description: str
    effects: Tuple[Effect, ...]


def _cond(ctype: ConditionType, value=None, **kwargs) -> Condition:
    return Condition(type=ctype, value=value, **kwargs)


def _item(item_id, name, slot, tier, cost, description, *effects) -> EquipmentDef:
    return EquipmentDef(item_id, name, slot, tier, cost, description, tuple(effects))


EQUIPMENT_DEFS: List[EquipmentDef] = [
    # Weapons
    _item("weapon_cloth", "Flint Spear", W, CLOTH, 30, "+5 flat damage",
          Effect(E.FLAT_DAMAGE_BONUS, 5)),
    _item("weapon_bronze", "Bronze Saif", W, BRONZE, 60, "+10 flat damage",
          Effect(E.FLAT_DAMAGE_BONUS, 10)),
    _item("weapon_iron", "Iron Scimitar", W, IRON, 100, "+25 flat damage",
          Effect(E.FLAT_DAMAGE_BONUS, 25)),
    # Helms
    _item("helm_cloth", "Cloth Helm", H, CLOTH, 20, "30% less damage on bust",
          Effect(E.REDUCE_BUST_DAMAGE, 0.3)),
    _item("helm_bronze", "Bronze Helm", H, BRONZE, 45, "50% less damage on bust",
          Effect(E.REDUCE_BUST_DAMAGE, 0.5)),
    _item("helm_iron", "Iron Helm", H, IRON, 80, "80% less damage on bust",
          Effect(E.REDUCE_BUST_DAMAGE, 0.8)),
    # Armor
    _item("armor_cloth", "Cloth Armor", A, CLOTH, 25, "20% less incoming damage",
          Effect(E.PERCENT_DAMAGE_REDUCTION, 0.2)),
    _item("armor_bronze", "Bronze Armor", A, BRONZE, 55, "40% less incoming damage",
          Effect(E.PERCENT_DAMAGE_REDUCTION, 0.4)),
    _item("armor_iron", "Iron Armor", A, IRON, 90, "60% less incoming damage",
          Effect(E.PERCENT_DAMAGE_REDUCTION, 0.6)),
    # Boots
    _item("boots_cloth", "Cloth Boots", B, CLOTH, 20, "10% dodge chance",
          Effect(E.DODGE_CHANCE, 0.10)),
    _item("boots_bronze", "Bronze Boots", B, BRONZE, 50, "25% dodge chance",
          Effect(E.DODGE_CHANCE, 0.25)),
    _item("boots_iron", "Iron Boots", B, IRON, 85, "40% dodge chance",
          Effect(E.DODGE_CHANCE, 0.40)),
    # Trinkets
    _item("trinket_cloth", "Cloth Trinket", T, CLOTH, 15, "+10 gold per battle",
          Effect(E.FLAT_GOLD_BONUS, 10)),
    _item("trinket_bronze", "Bronze Trinket", T, BRONZE, 40, "25% less damage from a random suit",
          Effect(E.RANDOM_SUIT_DAMAGE_REDUCTION, 0.25)),
    _item("trinket_iron", "Iron Trinket", T, IRON, 75, "Bust counts as a score of 10",
          Effect(E.BUST_SAVE, 10)),

    # Cloth variants
    _item("weapon_cloth_2", "Copper Khanjar", W, CLOTH, 28,
          "+4 damage; +4 more with 2 or fewer cards",
          Effect(E.CONDITIONAL_FLAT_DAMAGE, 4, bonus_value=4,
                 condition=_cond(ConditionType.HAND_SIZE_LTE, 2))),
    _item("weapon_cloth_3", "Bone Club", W, CLOTH, 30,
          "+3 damage; deals 2 damage to the enemy each hand",
          Effect(E.FLAT_DAMAGE_BONUS, 3), Effect(E.DAMAGE_PER_HAND, 2)),
    _item("helm_cloth_2", "Keffiyeh of Warding", H, CLOTH, 24,
          "20% less damage with 2 or fewer cards",
          Effect(E.CONDITIONAL_DAMAGE_REDUCTION, 0.2,
                 condition=_cond(ConditionType.HAND_SIZE_LTE, 2))),
    _item("trinket_cloth_2", "Copper Coin Ring", T, CLOTH, 18, "+8 gold per battle",
          Effect(E.FLAT_GOLD_BONUS, 8)),
    _item("trinket_cloth_3", "Wanderer's Pouch", T, CLOTH, 22, "+3 gold per hand won this battle",
          Effect(E.GOLD_PER_HAND_WON, 3)),
    _item("trinket_cloth_4", "Lucky Knucklebone", T, CLOTH, 25,
          "+15 gold per battle if you won 2 or more hands",
          Effect(E.GOLD_IF_HANDS_WON_GTE, 15, threshold=2)),

    # Bronze variants
    _item("weapon_bronze_2", "Oasis Blade", W, BRONZE, 55,
          "+9 damage; +6 more with a score of 18 or higher",
          Effect(E.CONDITIONAL_FLAT_DAMAGE, 9, bonus_value=6,
                 condition=_cond(ConditionType.SCORE_GTE, 18))),
    _item("weapon_bronze_3", "Twin Fangs", W, BRONZE, 65,
          "+8 damage; +8 more when holding an Ace",
          Effect(E.CONDITIONAL_FLAT_DAMAGE, 8, bonus_value=8,
                 condition=_cond(ConditionType.HAND_CONTAINS_RANK, rank="A"))),
    _item("helm_bronze_2", "Vizier's Headpiece", H, BRONZE, 48,
          "40% less bust damage; heal 3 HP on bust",
          Effect(E.REDUCE_BUST_DAMAGE, 0.4), Effect(E.HEAL_ON_BUST, 3)),
    _item("trinket_bronze_2", "Merchant's Medallion", T, BRONZE, 45, "+18 gold per battle",
          Effect(E.FLAT_GOLD_BONUS, 18)),
    _item("trinket_bronze_3", "Serpent Amulet", T, BRONZE, 50,
          "+8 gold per battle; +5 gold per blackjack",
          Effect(E.FLAT_GOLD_BONUS, 8), Effect(E.GOLD_PER_BLACKJACK, 5)),
    _item("trinket_bronze_4", "Desert Eye", T, BRONZE, 42,
          "15% less damage from a suit chosen each battle",
          Effect(E.RANDOM_SUIT_DAMAGE_REDUCTION, 0.15)),

    # Iron variants
    _item("weapon_iron_2", "Golden Scimitar", W, IRON, 95, "+22 damage; +10 on blackjack",
          Effect(E.FLAT_DAMAGE_BONUS, 22), Effect(E.BLACKJACK_BONUS_DAMAGE, 10)),
    _item("weapon_iron_3", "Sunfire Lance", W, IRON, 108,
          "+20 damage; +8 if the dealer drew 4 or more cards",
          Effect(E.FLAT_DAMAGE_BONUS, 20),
          Effect(E.DEALER_HAND_SIZE_BONUS_DAMAGE, 8, threshold=4)),
    _item("helm_iron_2", "Sultan's Crown", H, IRON, 85, "75% less bust damage; heal 4 HP on bust",
          Effect(E.REDUCE_BUST_DAMAGE, 0.75), Effect(E.HEAL_ON_BUST, 4)),
    _item("trinket_iron_2", "Lamp of Fortune", T, IRON, 80, "+30 gold per battle",
          Effect(E.FLAT_GOLD_BONUS, 30)),
    _item("trinket_iron_3", "Ring of Solomon", T, IRON, 90, "15% less incoming damage",
          Effect(E.PERCENT_DAMAGE_REDUCTION, 0.15)),
    _item("trinket_iron_4", "Seal of the Caliph", T, IRON, 85,
          "First hand of each battle deals double damage",
          Effect(E.FIRST_HAND_DAMAGE_MULTIPLIER, 2)),
]

_DEFS_BY_ID: Dict[str, EquipmentDef] = {d.id: d for d in EQUIPMENT_DEFS}


def build_equipment(definition: EquipmentDef,
                    perspective: Perspective = Perspective.PLAYER) -> Equipment:
    source = ModifierSource.EQUIPMENT if perspective is Perspective.PLAYER else ModifierSource.ENEMY
    effects = list(definition.effects)
    return Equipment(
        id=definition.id,
        name=definition.name,
        slot=definition.slot,
        tier=definition.tier,
        cost=definition.cost,
        description=definition.description,
        effects=effects,
        modifier=build_modifier(f"mod_{definition.id}", definition.name,
                                definition.description, source, effects, perspective),
    )


def get_equipment(equipment_id: str) -> Equipment:
    definition = _DEFS_BY_ID.get(equipment_id)
    if definition is None:
        raise ValueError(f"Unknown equipment: {equipment_id}")
    return build_equipment(definition)


def get_all_equipment() -> List[Equipment]:
    return [build_equipment(d) for d in EQUIPMENT_DEFS]


def get_equipment_by_slot_and_tier(slot: EquipmentSlot, tier: EquipmentTier) -> Equipment:
    """The base item for a slot/tier pair."""
    return get_equipment(f"{slot.value}_{tier.value}")


def equipment_ids_for_tier(tier: EquipmentTier) -> List[str]:
    return [d.id for d in EQUIPMENT_DEFS if d.tier is tier]
