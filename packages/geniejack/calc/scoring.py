"""
Hand scoring and base damage.

score_hand() derives a HandScore from a Hand under folded rules;
compare_hands() applies the fixed outcome priority; calculate_base_damage()
turns an outcome into the pre-modifier damage number fed to the pipeline.

Usage:
    score = score_hand(hand, rules, card_value_hooks=[...])
    winner = compare_hands(player_score, dealer_score, rules)
    damage = calculate_base_damage(winner, player_score, dealer_score, rules)
"""

from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence

from ..state.cards import Card, Hand, HandScore, Rank
from ..state.rules import GameRules

# (card, value) -> value
CardValueHook = Callable[[Card, int], int]

PLAYER = "player"
DEALER = "dealer"
PUSH = "push"


def floor_int(value: float) -> int:
    """Floor that tolerates float noise from multiplicative scaling."""
    return int(math.floor(value + 1e-9))


def base_card_value(card: Card, rules: GameRules) -> int:
    """Card value before modifier card-value hooks (aces counted high)."""
    scoring = rules.scoring
    override = scoring.rank_value_overrides.get(card.rank.value)
    if override is not None:
        return override
    if card.rank is Rank.ACE:
        return scoring.ace_high_value
    if card.rank.is_face:
        return scoring.face_card_value
    return card.rank.pip_value


def card_value(card: Card, rules: GameRules,
               card_value_hooks: Optional[Sequence[CardValueHook]] = None) -> int:
    value = base_card_value(card, rules)
    for hook in card_value_hooks or ():
        value = hook(card, value)
    return value


def score_hand(hand: Hand, rules: GameRules,
               card_value_hooks: Optional[Sequence[CardValueHook]] = None) -> HandScore:
    """
    Derive the score of a hand.

    Aces are counted high, then softened to `ace_low_value` one at a time
    while the total exceeds the bust threshold; flexible-rank cards soften
    to 1 after the aces. A hand is soft while any softenable card is still
    counted high.
    """
    scoring = rules.scoring
    total = 0
    ace_reductions: List[int] = []
    flexible_reductions: List[int] = []

    for card in hand.cards:
        value = card_value(card, rules, card_value_hooks)
        total += value
        if (card.rank is Rank.ACE
                and card.rank.value not in scoring.rank_value_overrides
                and scoring.ace_high_value > scoring.ace_low_value):
            ace_reductions.append(scoring.ace_high_value - scoring.ace_low_value)
        elif card.rank.value in scoring.flexible_ranks and value > 1:
            flexible_reductions.append(value - 1)

    softenable = ace_reductions + flexible_reductions
    while total > scoring.bust_threshold and softenable:
        total -= softenable.pop(0)

    busted = total > scoring.bust_threshold
    if busted and scoring.bust_save_threshold is not None:
        busted = total > scoring.bust_save_threshold

    blackjack_values = [scoring.blackjack_target] + scoring.additional_blackjack_values
    is_blackjack = (
        len(hand.cards) == 2
        and not busted
        and not hand.is_from_split
        and total in blackjack_values
    )
    return HandScore(value=total, soft=bool(softenable), busted=busted,
                     is_blackjack=is_blackjack)


def compare_hands(player: HandScore, dealer: HandScore, rules: GameRules) -> str:
    """
    Outcome of a hand: "player", "dealer" or "push".

    Priority: player bust, both naturals, player natural, dealer natural,
    dealer bust, higher score, tie resolution.
    """
    wins = rules.win_conditions
    if player.busted:
        if dealer.busted:
            return wins.double_bust_resolution
        return DEALER
    if player.is_blackjack and dealer.is_blackjack:
        return PUSH
    if player.is_blackjack:
        return PLAYER
    if dealer.is_blackjack:
        return DEALER
    if dealer.busted:
        return PLAYER
    if player.value > dealer.value:
        return PLAYER
    if dealer.value > player.value:
        return DEALER
    return wins.tie_resolution


def calculate_base_damage(winner: str, player: HandScore, dealer: HandScore,
                          rules: GameRules) -> int:
    """
    Base damage dealt by the winner of a hand, before modifiers.

    Score difference (or the winner's full value when the loser busted),
    scaled by the base multiplier and blackjack payout, plus the flat and
    percent rule bonuses, clamped to [minimum_damage, maximum_damage].
    """
    if winner == PUSH:
        return 0

    win_score, lose_score = (player, dealer) if winner == PLAYER else (dealer, player)
    if lose_score.busted and not win_score.busted:
        damage = float(win_score.value)
    else:
        damage = float(max(0, win_score.value - lose_score.value))

    dmg = rules.damage
    damage *= dmg.base_multiplier
    if win_score.is_blackjack:
        damage = damage * rules.win_conditions.blackjack_payout_multiplier
        damage += rules.win_conditions.natural_blackjack_bonus
    damage += dmg.flat_bonus_damage
    damage *= (1 + dmg.percent_bonus_damage)

    result = max(floor_int(damage), dmg.minimum_damage)
    if dmg.maximum_damage is not None:
        result = min(result, dmg.maximum_damage)
    return result
