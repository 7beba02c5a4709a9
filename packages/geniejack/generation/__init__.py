"""Seeded generation of run content (shops)."""

from .shop import (
    CONSUMABLE_OFFERS,
    EQUIPMENT_OFFERS,
    ShopItem,
    ShopItemKind,
    generate_shop_inventory,
    purchase_item,
    shop_price,
    tier_for_stage,
)
