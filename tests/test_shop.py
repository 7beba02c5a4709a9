"""
Shop Tests

Inventory generation, pricing and purchases.
"""

from packages.geniejack.content.consumables import get_consumable
from packages.geniejack.content.equipment import equipment_ids_for_tier, get_equipment
from packages.geniejack.generation.shop import (
    CONSUMABLE_OFFERS, EQUIPMENT_OFFERS, ShopItem, ShopItemKind,
    generate_shop_inventory, purchase_item, shop_price, tier_for_stage,
)
from packages.geniejack.state.rng import Random
from packages.geniejack.state.run import EquipmentSlot, EquipmentTier, create_player


class TestGenerateShop:

    def test_layout(self, rules):
        items = generate_shop_inventory(1, create_player(), Random("shop"), rules)
        assert len(items) == EQUIPMENT_OFFERS + CONSUMABLE_OFFERS
        assert [i.index for i in items] == list(range(len(items)))
        kinds = [i.kind for i in items]
        assert kinds == [ShopItemKind.EQUIPMENT] * 3 + [ShopItemKind.CONSUMABLE] * 2

    def test_one_draw_per_offer(self, rules):
        rng = Random("shop")
        generate_shop_inventory(1, create_player(), rng, rules)
        assert rng.counter == 5

    def test_stage_tier(self, rules):
        for stage, tier in ((1, EquipmentTier.CLOTH), (2, EquipmentTier.BRONZE),
                            (3, EquipmentTier.IRON)):
            items = generate_shop_inventory(stage, create_player(), Random("tier"), rules)
            assert all(i.item.tier is tier for i in items if i.kind is ShopItemKind.EQUIPMENT)

    def test_equipment_offers_distinct(self, rules):
        for seed in range(20):
            items = generate_shop_inventory(1, create_player(), Random(seed), rules)
            ids = [i.item.id for i in items if i.kind is ShopItemKind.EQUIPMENT]
            assert len(ids) == len(set(ids))

    def test_equipped_items_never_offered(self, rules):
        player = create_player()
        player.equipment[EquipmentSlot.WEAPON] = get_equipment("weapon_cloth")
        for seed in range(30):
            items = generate_shop_inventory(1, player, Random(seed), rules)
            assert "weapon_cloth" not in {i.item.id for i in items}

    def test_deterministic(self, rules):
        first = generate_shop_inventory(2, create_player(), Random("same"), rules)
        second = generate_shop_inventory(2, create_player(), Random("same"), rules)
        assert [i.item.id for i in first] == [i.item.id for i in second]

    def test_discounted_prices(self, rules):
        rules.economy.shop_price_multiplier = 0.5
        for item in generate_shop_inventory(1, create_player(), Random("sale"), rules):
            assert item.price == max(1, int(item.item.cost * 0.5))

    def test_tier_pool_exists(self):
        assert len(equipment_ids_for_tier(tier_for_stage(1))) >= EQUIPMENT_OFFERS


class TestPricing:

    def test_tier_for_stage_clamps(self):
        assert tier_for_stage(0) is EquipmentTier.CLOTH
        assert tier_for_stage(2) is EquipmentTier.BRONZE
        assert tier_for_stage(9) is EquipmentTier.IRON

    def test_price_floor(self, rules):
        rules.economy.shop_price_multiplier = 0.1
        assert shop_price(5, rules) == 1
        assert shop_price(35, rules) == 3


class TestPurchase:

    def offer(self, item, price, kind=ShopItemKind.EQUIPMENT):
        return ShopItem(index=0, kind=kind, item=item, price=price)

    def test_not_enough_gold(self):
        player = create_player(gold=10)
        success, _ = purchase_item(self.offer(get_equipment("weapon_cloth"), 30), player)
        assert not success
        assert player.gold == 10
        assert player.equipment[EquipmentSlot.WEAPON] is None

    def test_buy_equipment(self):
        player = create_player(gold=40)
        offer = self.offer(get_equipment("weapon_cloth"), 30)
        success, message = purchase_item(offer, player)
        assert success
        assert message == "Equipped Flint Spear"
        assert player.gold == 10
        assert player.equipment[EquipmentSlot.WEAPON].id == "weapon_cloth"
        assert offer.sold
        assert not offer.affordable(1000)

    def test_replaces_slot(self):
        player = create_player(gold=100)
        player.equipment[EquipmentSlot.WEAPON] = get_equipment("weapon_cloth")
        success, message = purchase_item(self.offer(get_equipment("weapon_bronze"), 60), player)
        assert success
        assert message == "Equipped Bronze Saif (replaced Flint Spear)"
        assert player.equipped_ids() == ["weapon_bronze"]

    def test_sold_twice(self):
        player = create_player(gold=100)
        offer = self.offer(get_consumable("health_potion"), 10, ShopItemKind.CONSUMABLE)
        assert purchase_item(offer, player)[0]
        assert not purchase_item(offer, player)[0]
        assert len(player.consumables) == 1
        assert player.gold == 90

    def test_to_dict(self):
        offer = self.offer(get_consumable("health_potion"), 10, ShopItemKind.CONSUMABLE)
        data = offer.to_dict(gold=5)
        assert data["type"] == "consumable"
        assert data["item"]["id"] == "health_potion"
        assert data["affordable"] is False
