"""
Condition evaluation for gated effects.

Conditions are checked against the ModifierContext from the owning
modifier's perspective. The four draw conditions are event latches: the
builder installs an onCardDrawn handler that sets the latch and an
onHandStart handler that clears it, so they hold for the rest of the hand
in which the matching card was drawn.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, TYPE_CHECKING

from ..calc.scoring import DEALER, PLAYER, PUSH
from ..registry import ModifierContext, Perspective
from .types import Condition, ConditionType as C, LATCHED_CONDITIONS

if TYPE_CHECKING:
    from ..state.cards import Card, Hand


def latch_key(condition: Condition) -> str:
    return f"{condition.type.value}:{condition.rank or condition.suit or ''}"


def latch_matches(condition: Condition, card: 'Card', drawer: str) -> bool:
    """Does drawing `card` by `drawer` ("player"/"dealer") trip this latch?"""
    ctype = condition.type
    if ctype is C.WHEN_PLAYER_DRAWS_RANK:
        return drawer == PLAYER and card.rank.value == condition.rank
    if ctype is C.WHEN_PLAYER_DRAWS_SUIT:
        return drawer == PLAYER and card.suit.value == condition.suit
    if ctype is C.WHEN_DEALER_DRAWS_RANK:
        return drawer == DEALER and card.rank.value == condition.rank
    if ctype is C.WHEN_DEALER_DRAWS_SUIT:
        return drawer == DEALER and card.suit.value == condition.suit
    return False


def _hp_percent(state) -> float:
    if state.max_hp <= 0:
        return 0.0
    return state.hp / state.max_hp * 100


def _is_pair(hand: 'Hand') -> bool:
    ranks = [card.rank for card in hand.cards]
    return len(ranks) != len(set(ranks))


def _is_flush(hand: 'Hand') -> bool:
    return len(hand.cards) >= 2 and len({card.suit for card in hand.cards}) == 1


def _same_color(hand: 'Hand') -> bool:
    return len(hand.cards) >= 2 and len({card.color for card in hand.cards}) == 1


def check_condition(condition: Condition, ctx: ModifierContext,
                    perspective: Perspective = Perspective.PLAYER,
                    latches: Optional[Dict[str, bool]] = None) -> bool:
    """Evaluate `condition` for the modifier owner identified by `perspective`."""
    ctype = condition.type
    value = condition.value if condition.value is not None else 0
    own_hand = ctx.own_hand(perspective)
    own_score = ctx.own_score(perspective)

    if ctype in LATCHED_CONDITIONS:
        return bool(latches and latches.get(latch_key(condition)))

    checks: Dict[C, Callable[[], bool]] = {
        C.HAND_CONTAINS_PAIR: lambda: _is_pair(own_hand),
        C.HAND_IS_FLUSH: lambda: _is_flush(own_hand),
        C.HAND_ALL_SAME_COLOR: lambda: _same_color(own_hand),
        C.HAND_SIZE_EQUALS: lambda: len(own_hand.cards) == value,
        C.HAND_SIZE_GTE: lambda: len(own_hand.cards) >= value,
        C.HAND_SIZE_LTE: lambda: len(own_hand.cards) <= value,
        C.HAND_CONTAINS_RANK: lambda: any(c.rank.value == condition.rank for c in own_hand.cards),
        C.HAND_CONTAINS_SUIT: lambda: any(c.suit.value == condition.suit for c in own_hand.cards),
        C.DEALER_HAND_SIZE_GTE: lambda: len(ctx.dealer_hand.cards) >= value,
        C.SCORE_EXACTLY: lambda: own_score.value == value,
        C.SCORE_GTE: lambda: own_score.value >= value,
        C.SAME_SCORE_AS_PREVIOUS: lambda: (ctx.previous_hand_score is not None
                                           and own_score.value == ctx.previous_hand_score),
        C.ON_BLACKJACK: lambda: own_score.is_blackjack,
        C.ON_BUST: lambda: own_score.busted,
        C.ON_SOFT_HAND: lambda: own_score.soft,
        C.ON_WIN: lambda: ctx.own_won(perspective),
        C.ON_LOSS: lambda: ctx.own_lost(perspective),
        C.ON_PUSH: lambda: ctx.outcome() == PUSH,
        C.ON_DODGE: lambda: ctx.dodged_by == perspective.side,
        C.ON_ENEMY_BUST: lambda: ctx.opponent_score(perspective).busted,
        C.ON_WIN_NO_DAMAGE_TAKEN: lambda: (ctx.own_won(perspective)
                                           and ctx.own_damage_taken(perspective) == 0),
        C.HP_BELOW_PERCENT: lambda: _hp_percent(ctx.own_state(perspective)) < value,
        C.HP_ABOVE_PERCENT: lambda: _hp_percent(ctx.own_state(perspective)) > value,
        C.ENEMY_HP_BELOW_PERCENT: lambda: _hp_percent(ctx.opponent_state(perspective)) < value,
        C.GOLD_ABOVE: lambda: ctx.player_state.gold > value,
        C.CONSECUTIVE_WINS: lambda: ctx.own_consecutive_wins(perspective) >= value,
        C.CONSECUTIVE_LOSSES: lambda: ctx.own_consecutive_losses(perspective) >= value,
        C.FIRST_HAND_OF_BATTLE: lambda: ctx.hand_number == 1,
        C.ENEMY_KILLED_BY_DOT: lambda: ctx.kill_cause == "dot",
        C.ENEMY_KILLED_BY_BLACKJACK: lambda: (ctx.kill_cause == "hand_damage"
                                              and ctx.player_score.is_blackjack),
    }
    return checks[ctype]()
