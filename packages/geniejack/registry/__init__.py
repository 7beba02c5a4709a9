"""
Modifier Registry - hook kinds, the Modifier bundle and the shared context.

A Modifier owns, per hook kind, an ORDERED list of handlers. Compiling an
effect appends a handler instead of wrapping the previous one, and the
runners below fold or fire the lists explicitly:

    transform hooks   value = h(value, ctx) for each handler, in order
    dodge check       first handler returning True wins (short-circuits)
    bust override     first handler returning a BustOverride wins
    lifecycle hooks   every handler is called once per event

Usage:
    from packages.geniejack.registry import Modifier, ModifierHook

    mod = Modifier(id="mod_spear", name="Flint Spear", description="+5",
                   source=ModifierSource.EQUIPMENT)
    mod.add_handler(ModifierHook.DAMAGE_DEALT, lambda dmg, ctx: dmg + 5)
    damage = apply_damage_dealt([mod], 10, ctx)  # 15
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any, Callable, Dict, Iterable, List, Optional, Union, TYPE_CHECKING
)

from ..calc.scoring import DEALER, PLAYER, compare_hands

if TYPE_CHECKING:
    from ..state.cards import Card, Hand, HandScore
    from ..state.rng import Random
    from ..state.rules import GameRules
    from ..state.run import EnemyState, PlayerState


# =============================================================================
# Hook kinds
# =============================================================================

class ModifierHook(Enum):
    # Transforms (side-effect free)
    RULES = "modifyRules"
    DAMAGE_DEALT = "modifyDamageDealt"
    DAMAGE_RECEIVED = "modifyDamageReceived"
    BUST_CHECK = "modifyBust"
    DODGE_CHECK = "dodgeCheck"
    GOLD_EARNED = "modifyGoldEarned"
    CARD_VALUE = "modifyCardValue"
    DECK = "modifyDeck"

    # Lifecycle (may mutate player/enemy state)
    ON_HAND_START = "onHandStart"
    ON_HAND_END = "onHandEnd"
    ON_BATTLE_START = "onBattleStart"
    ON_PUSH = "onPush"
    ON_ENEMY_BUST = "onEnemyBust"
    ON_DODGE = "onDodge"
    ON_CARD_DRAWN = "onCardDrawn"


LIFECYCLE_HOOKS = frozenset({
    ModifierHook.ON_HAND_START,
    ModifierHook.ON_HAND_END,
    ModifierHook.ON_BATTLE_START,
    ModifierHook.ON_PUSH,
    ModifierHook.ON_ENEMY_BUST,
    ModifierHook.ON_DODGE,
    ModifierHook.ON_CARD_DRAWN,
})


class ModifierSource(Enum):
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"
    ENEMY = "enemy"
    BLESSING = "blessing"
    CURSE = "curse"


class Perspective(Enum):
    """Which combatant a modifier belongs to: decides "own" vs "opponent"."""
    PLAYER = "player"
    ENEMY = "enemy"

    @property
    def side(self) -> str:
        """Outcome side string ("player" / "dealer") for this perspective."""
        return PLAYER if self is Perspective.PLAYER else DEALER

    @property
    def opponent_side(self) -> str:
        return DEALER if self is Perspective.PLAYER else PLAYER


@dataclass
class BustOverride:
    """Result of a bust-check override: the hand is rescued."""
    effective_score: int
    busted: bool = False


Handler = Callable[..., Any]


# =============================================================================
# Modifier
# =============================================================================

@dataclass
class Modifier:
    """
    A bundle of hook handlers attached to one combatant.

    `state` holds per-modifier mutable data that lifecycle handlers keep
    between events (draw latches, poison stacks, once-per-battle flags).
    """
    id: str
    name: str
    description: str
    source: ModifierSource
    perspective: Perspective = Perspective.PLAYER
    handlers: Dict[ModifierHook, List[Handler]] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)

    def add_handler(self, hook: ModifierHook, handler: Handler) -> None:
        self.handlers.setdefault(hook, []).append(handler)

    def handlers_for(self, hook: ModifierHook) -> List[Handler]:
        return self.handlers.get(hook, [])

    def has_hook(self, hook: ModifierHook) -> bool:
        return bool(self.handlers.get(hook))

    @property
    def hooks(self) -> List[ModifierHook]:
        return [hook for hook in ModifierHook if self.has_hook(hook)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "source": self.source.value,
        }


# =============================================================================
# Modifier Context
# =============================================================================

@dataclass
class ModifierContext:
    """
    Snapshot passed to every handler at one decision point.

    Hands, scores, rules and counters are read-only for handlers; the
    player and enemy states are live references that lifecycle handlers
    write through (heal/damage helpers clamp to [0, max_hp]).
    """
    player_hand: 'Hand'
    dealer_hand: 'Hand'
    player_score: 'HandScore'
    dealer_score: 'HandScore'
    player_state: 'PlayerState'
    enemy_state: 'EnemyState'
    rules: 'GameRules'
    rng: 'Random'
    stage: int = 1
    battle: int = 1
    hand_number: int = 1
    last_damage_dealt: int = 0
    last_damage_taken: int = 0
    hands_won_this_battle: int = 0
    hands_lost_this_battle: int = 0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    previous_hand_score: Optional[int] = None
    peeked_card: Optional['Card'] = None
    card_removes_used: int = 0
    kill_cause: Optional[str] = None  # "hand_damage" | "dot"
    dodged_by: Optional[str] = None   # "player" | "dealer"
    doubled_down: bool = False

    # -- perspective helpers -------------------------------------------------

    def own_hand(self, perspective: Perspective) -> 'Hand':
        return self.player_hand if perspective is Perspective.PLAYER else self.dealer_hand

    def opponent_hand(self, perspective: Perspective) -> 'Hand':
        return self.dealer_hand if perspective is Perspective.PLAYER else self.player_hand

    def own_score(self, perspective: Perspective) -> 'HandScore':
        return self.player_score if perspective is Perspective.PLAYER else self.dealer_score

    def opponent_score(self, perspective: Perspective) -> 'HandScore':
        return self.dealer_score if perspective is Perspective.PLAYER else self.player_score

    def own_state(self, perspective: Perspective) -> Union['PlayerState', 'EnemyState']:
        return self.player_state if perspective is Perspective.PLAYER else self.enemy_state

    def opponent_state(self, perspective: Perspective) -> Union['PlayerState', 'EnemyState']:
        return self.enemy_state if perspective is Perspective.PLAYER else self.player_state

    def own_hands_won(self, perspective: Perspective) -> int:
        if perspective is Perspective.PLAYER:
            return self.hands_won_this_battle
        return self.hands_lost_this_battle

    def own_consecutive_wins(self, perspective: Perspective) -> int:
        if perspective is Perspective.PLAYER:
            return self.consecutive_wins
        return self.consecutive_losses

    def own_consecutive_losses(self, perspective: Perspective) -> int:
        if perspective is Perspective.PLAYER:
            return self.consecutive_losses
        return self.consecutive_wins

    def own_damage_dealt(self, perspective: Perspective) -> int:
        if perspective is Perspective.PLAYER:
            return self.last_damage_dealt
        return self.last_damage_taken

    def own_damage_taken(self, perspective: Perspective) -> int:
        if perspective is Perspective.PLAYER:
            return self.last_damage_taken
        return self.last_damage_dealt

    # -- outcome helpers -----------------------------------------------------

    def outcome(self) -> str:
        """Winner side of the current hands: "player", "dealer" or "push"."""
        return compare_hands(self.player_score, self.dealer_score, self.rules)

    def own_won(self, perspective: Perspective) -> bool:
        return self.outcome() == perspective.side

    def own_lost(self, perspective: Perspective) -> bool:
        return self.outcome() == perspective.opponent_side

    # -- mutation helpers (lifecycle hooks only) -----------------------------

    def heal(self, perspective: Perspective, amount: int) -> int:
        return self.own_state(perspective).heal(amount)

    def damage_self(self, perspective: Perspective, amount: int) -> int:
        return self.own_state(perspective).lose_hp(amount)

    def damage_opponent(self, perspective: Perspective, amount: int) -> int:
        return self.opponent_state(perspective).lose_hp(amount)


# =============================================================================
# Hook runners
# =============================================================================

def apply_damage_dealt(modifiers: Iterable[Modifier], damage: int,
                       ctx: ModifierContext) -> int:
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.DAMAGE_DEALT):
            damage = handler(damage, ctx)
    return damage


def apply_damage_received(modifiers: Iterable[Modifier], damage: int,
                          ctx: ModifierContext) -> int:
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.DAMAGE_RECEIVED):
            damage = handler(damage, ctx)
    return damage


def apply_gold_earned(modifiers: Iterable[Modifier], gold: int,
                      ctx: ModifierContext) -> int:
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.GOLD_EARNED):
            gold = handler(gold, ctx)
    return max(0, gold)


def check_dodge(modifiers: Iterable[Modifier], ctx: ModifierContext) -> bool:
    """Run dodge checks in order; the first success stops the chain."""
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.DODGE_CHECK):
            if handler(ctx):
                return True
    return False


def check_bust_override(modifiers: Iterable[Modifier], hand: 'Hand', score: int,
                        ctx: ModifierContext) -> Optional[BustOverride]:
    """First rescue wins; None means the bust stands."""
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.BUST_CHECK):
            result = handler(hand, score, ctx)
            if result is not None and not result.busted:
                return result
    return None


def card_value_hooks(modifiers: Iterable[Modifier]) -> List[Handler]:
    hooks: List[Handler] = []
    for modifier in modifiers:
        hooks.extend(modifier.handlers_for(ModifierHook.CARD_VALUE))
    return hooks


def apply_deck_transforms(modifiers: Iterable[Modifier], cards: List['Card'],
                          rules: 'GameRules') -> List['Card']:
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.DECK):
            cards = handler(cards, rules)
    return cards


def fire_hook(modifiers: Iterable[Modifier], hook: ModifierHook,
              ctx: ModifierContext) -> None:
    """Invoke every handler of a lifecycle hook exactly once."""
    for modifier in modifiers:
        for handler in modifier.handlers_for(hook):
            handler(ctx)


def fire_card_drawn(modifiers: Iterable[Modifier], card: 'Card', drawer: str,
                    ctx: ModifierContext) -> None:
    for modifier in modifiers:
        for handler in modifier.handlers_for(ModifierHook.ON_CARD_DRAWN):
            handler(card, drawer, ctx)
