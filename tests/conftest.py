"""
Shared pytest fixtures for the GenieJack test suite.

This module provides reusable fixtures for:
- Card and hand construction from short notation ("Ah", "10d", "Ks")
- Modifier contexts with known hands
- Engines with a plain enemy and a stacked shoe
- Test equipment built from effect descriptors
"""

import pytest
import sys

# Ensure project root is in path
import os
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)

from packages.geniejack import game as game_module
from packages.geniejack.calc.scoring import score_hand
from packages.geniejack.effects.builder import build_modifier
from packages.geniejack.game import GameEngine
from packages.geniejack.registry import ModifierContext, ModifierSource
from packages.geniejack.state.cards import Card, Hand, Rank, Suit
from packages.geniejack.state.rng import Random
from packages.geniejack.state.rules import default_rules
from packages.geniejack.state.run import (
    CombatantData, EnemyState, Equipment, EquipmentSlot, EquipmentTier, create_player,
)


SUIT_CODES = {"h": Suit.HEARTS, "d": Suit.DIAMONDS, "c": Suit.CLUBS, "s": Suit.SPADES}


def parse_card(text: str) -> Card:
    """'Ah' -> Ace of hearts, '10d' -> Ten of diamonds."""
    return Card(SUIT_CODES[text[-1].lower()], Rank(text[:-1].upper()))


def parse_hand(text: str) -> Hand:
    return Hand(cards=[parse_card(t) for t in text.split()])


def dummy_enemy(hp: int = 40, max_hp: int = 40) -> EnemyState:
    """An enemy with no abilities."""
    return EnemyState(data=CombatantData(id="dummy", name="Training Dummy", max_hp=max_hp), hp=hp)


def make_equipment(slot: EquipmentSlot, *effects, item_id: str = "test_item") -> Equipment:
    effects = list(effects)
    return Equipment(
        id=item_id,
        name=item_id.replace("_", " ").title(),
        slot=slot,
        tier=EquipmentTier.CLOTH,
        cost=1,
        description="test equipment",
        effects=effects,
        modifier=build_modifier(f"mod_{item_id}", item_id, "test equipment",
                                ModifierSource.EQUIPMENT, effects),
    )


# =============================================================================
# Card Fixtures
# =============================================================================


@pytest.fixture
def card():
    """Card parser: card("Ah")."""
    return parse_card


@pytest.fixture
def hand():
    """Hand parser: hand("Ah Kd")."""
    return parse_hand


@pytest.fixture
def rules():
    """A fresh copy of the default rules."""
    return default_rules()


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def make_ctx():
    """
    Factory for a ModifierContext with known hands.

    Scores are computed with plain score_hand under `rules`; extra keyword
    arguments are passed through to ModifierContext (hand_number, streaks...).
    """
    def _make(player="10h 8d", dealer="10c 7s", rules=None, seed="ctx", **kwargs):
        rules = rules or default_rules()
        player_hand = parse_hand(player)
        dealer_hand = parse_hand(dealer)
        return ModifierContext(
            player_hand=player_hand,
            dealer_hand=dealer_hand,
            player_score=score_hand(player_hand, rules),
            dealer_score=score_hand(dealer_hand, rules),
            player_state=create_player(),
            enemy_state=dummy_enemy(hp=50, max_hp=50),
            rules=rules,
            rng=Random(seed),
            **kwargs
        )
    return _make


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh engine on a fixed seed, at the first pre-hand of stage 1."""
    return GameEngine(seed="TEST123")


@pytest.fixture
def dummy_engine(engine):
    """Engine whose current enemy is a 40 HP dummy with no abilities."""
    engine.enemy = dummy_enemy()
    return engine


@pytest.fixture
def stack_shoe(monkeypatch):
    """
    Replace shoe building with a fixed card order.

    Deal order is player cards first, then dealer cards, then hits. When
    the stacked cards run out the same order is dealt again.
    """
    def _stack(*cards):
        stacked = [parse_card(c) for c in cards]
        monkeypatch.setattr(game_module, "build_shoe", lambda rules, mods, rng: list(stacked))
    return _stack


@pytest.fixture
def equip():
    """Equip a test item built from effects: equip(engine, slot, *effects)."""
    def _equip(engine, slot, *effects, item_id="test_item"):
        item = make_equipment(slot, *effects, item_id=item_id)
        engine.player.equipment[slot] = item
        return item
    return _equip
