"""
Shop Inventory Generation

Shop structure (generated once per visit, after each regular battle):
- 3 equipment offers from the stage's tier (cloth, bronze, iron)
- 2 consumable offers

RNG usage (shared run rng, so the shop is part of the replayed sequence):
- one next_int per equipment pick (without replacement)
- one next_int per consumable pick (with replacement)

Equipment the player currently wears is never offered. When the tier pool
runs short the shop simply shows fewer equipment offers.

Prices: floor(item cost * rules.economy.shop_price_multiplier), at least 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..calc.scoring import floor_int
from ..content.consumables import get_all_consumables
from ..content.equipment import equipment_ids_for_tier, get_equipment
from ..state.rng import Random
from ..state.rules import GameRules
from ..state.run import Consumable, Equipment, EquipmentTier, PlayerState

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

EQUIPMENT_OFFERS = 3
CONSUMABLE_OFFERS = 2

STAGE_TIERS = {
    1: EquipmentTier.CLOTH,
    2: EquipmentTier.BRONZE,
    3: EquipmentTier.IRON,
}


class ShopItemKind(Enum):
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class ShopItem:
    """One offer on the shop shelf."""
    index: int
    kind: ShopItemKind
    item: Union[Equipment, Consumable]
    price: int
    sold: bool = False

    def affordable(self, gold: int) -> bool:
        return not self.sold and gold >= self.price

    def to_dict(self, gold: int) -> Dict[str, Any]:
        return {
            "index": self.index,
            "type": self.kind.value,
            "item": self.item.to_dict(),
            "price": self.price,
            "sold": self.sold,
            "affordable": self.affordable(gold),
        }


# ============================================================================
# GENERATION
# ============================================================================

def tier_for_stage(stage: int) -> EquipmentTier:
    return STAGE_TIERS[min(max(1, stage), max(STAGE_TIERS))]


def shop_price(cost: int, rules: GameRules) -> int:
    return max(1, floor_int(cost * rules.economy.shop_price_multiplier))


def generate_shop_inventory(stage: int, player: PlayerState, rng: Random,
                            rules: GameRules) -> List[ShopItem]:
    """
    Roll a shop for the given stage.

    Args:
        stage: Current stage (selects the equipment tier)
        player: Player state (equipped items are excluded)
        rng: Run rng; advanced by one draw per offer
        rules: Folded rules (price multiplier)

    Returns:
        Shop items, equipment first, indexed from 0
    """
    equipped = set(player.equipped_ids())
    pool = [item_id for item_id in equipment_ids_for_tier(tier_for_stage(stage))
            if item_id not in equipped]

    items: List[ShopItem] = []
    for _ in range(min(EQUIPMENT_OFFERS, len(pool))):
        item_id = pool.pop(rng.next_int(0, len(pool) - 1))
        equipment = get_equipment(item_id)
        items.append(ShopItem(len(items), ShopItemKind.EQUIPMENT, equipment,
                              shop_price(equipment.cost, rules)))

    consumables = get_all_consumables()
    for _ in range(CONSUMABLE_OFFERS):
        consumable = consumables[rng.next_int(0, len(consumables) - 1)]
        items.append(ShopItem(len(items), ShopItemKind.CONSUMABLE, consumable,
                              shop_price(consumable.cost, rules)))

    logger.debug("Shop for stage %d: %s", stage, [i.item.id for i in items])
    return items


# ============================================================================
# PURCHASE
# ============================================================================

def purchase_item(shop_item: ShopItem, player: PlayerState) -> Tuple[bool, str]:
    """
    Buy one offer. Equipment replaces whatever occupies its slot; a
    consumable is added to the inventory.

    Returns:
        (success, message)
    """
    if shop_item.sold:
        return False, f"{shop_item.item.name} is already sold"
    if player.gold < shop_item.price:
        return False, f"Not enough gold for {shop_item.item.name}"

    player.gold -= shop_item.price
    shop_item.sold = True

    if shop_item.kind is ShopItemKind.EQUIPMENT:
        equipment = shop_item.item
        replaced: Optional[Equipment] = player.equipment.get(equipment.slot)
        player.equipment[equipment.slot] = equipment
        if replaced is not None:
            return True, f"Equipped {equipment.name} (replaced {replaced.name})"
        return True, f"Equipped {equipment.name}"

    player.consumables.append(shop_item.item)
    return True, f"Bought {shop_item.item.name}"
