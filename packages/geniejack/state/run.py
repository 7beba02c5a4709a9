"""
Run State - persistent player state and the per-battle enemy.

PlayerState is created once per run and survives every stage. EnemyState
is created fresh from static CombatantData for each battle and discarded
at battle end. Equipment, consumables, wishes and active effects carry
their compiled Modifier; the active modifier collection itself is always
re-derived from these objects (see handlers.combat.collect_modifiers).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..effects.types import Effect
    from ..registry import Modifier


class EquipmentSlot(Enum):
    WEAPON = "weapon"
    HELM = "helm"
    ARMOR = "armor"
    BOOTS = "boots"
    TRINKET = "trinket"


# Fixed enumeration order used for modifier collection
SLOT_ORDER: List[EquipmentSlot] = [
    EquipmentSlot.WEAPON,
    EquipmentSlot.HELM,
    EquipmentSlot.ARMOR,
    EquipmentSlot.BOOTS,
    EquipmentSlot.TRINKET,
]


class EquipmentTier(Enum):
    CLOTH = "cloth"
    BRONZE = "bronze"
    IRON = "iron"


@dataclass
class Equipment:
    id: str
    name: str
    slot: EquipmentSlot
    tier: EquipmentTier
    cost: int
    description: str
    effects: List['Effect'] = field(default_factory=list)
    modifier: Optional['Modifier'] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slot": self.slot.value,
            "tier": self.tier.value,
            "cost": self.cost,
            "description": self.description,
        }


@dataclass
class Consumable:
    id: str
    name: str
    description: str
    cost: int
    effects: List['Effect'] = field(default_factory=list)
    duration: int = 0  # hands; 0 = instant only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "cost": self.cost,
        }


@dataclass
class ActiveEffect:
    id: str
    name: str
    remaining_hands: int
    modifier: 'Modifier'


@dataclass
class Wish:
    blessing_text: str
    curse: 'Modifier'
    boss_name: str
    blessing: Optional['Modifier'] = None


@dataclass
class CombatantData:
    """Static enemy definition; equipment/curse modifiers are built fresh per encounter."""
    id: str
    name: str
    max_hp: int
    is_boss: bool = False
    description: str = ""
    equipment: List[Equipment] = field(default_factory=list)
    curse: Optional['Modifier'] = None


@dataclass
class PlayerState:
    hp: int = 50
    max_hp: int = 50
    gold: int = 0
    equipment: Dict[EquipmentSlot, Optional[Equipment]] = field(
        default_factory=lambda: {slot: None for slot in SLOT_ORDER}
    )
    consumables: List[Consumable] = field(default_factory=list)
    wishes: List[Wish] = field(default_factory=list)
    active_effects: List[ActiveEffect] = field(default_factory=list)

    def equipped_items(self) -> List[Equipment]:
        """Equipped items in fixed slot order."""
        return [self.equipment[slot] for slot in SLOT_ORDER if self.equipment.get(slot)]

    def equipped_ids(self) -> List[str]:
        return [item.id for item in self.equipped_items()]

    def heal(self, amount: int) -> int:
        before = self.hp
        self.hp = max(0, min(self.max_hp, self.hp + amount))
        return self.hp - before

    def lose_hp(self, amount: int) -> int:
        before = self.hp
        self.hp = max(0, min(self.max_hp, self.hp - amount))
        return before - self.hp


@dataclass
class EnemyState:
    data: CombatantData
    hp: int
    max_hp: int = 0

    def __post_init__(self):
        if self.max_hp <= 0:
            self.max_hp = self.data.max_hp

    @property
    def name(self) -> str:
        return self.data.name

    def heal(self, amount: int) -> int:
        before = self.hp
        self.hp = max(0, min(self.max_hp, self.hp + amount))
        return self.hp - before

    def lose_hp(self, amount: int) -> int:
        before = self.hp
        self.hp = max(0, min(self.max_hp, self.hp - amount))
        return before - self.hp


def create_player(hp: int = 50, max_hp: int = 50, gold: int = 0) -> PlayerState:
    return PlayerState(hp=hp, max_hp=max_hp, gold=gold)
