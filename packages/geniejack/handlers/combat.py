"""
Combat Resolution - one hand of blackjack turned into damage.

This module holds the per-hand CombatState and the pure parts of hand
resolution; the GameEngine owns the run counters, commits HP and fires
lifecycle hooks.

Hand Flow:
1. Build (or reuse) the shoe: build_deck -> deck transforms -> shuffle
2. Deal initial cards (player first), each draw fires onCardDrawn
3. Player actions; bust-check overrides may rescue a busted hand
4. Dealer auto-plays: hits below `stands_on`, and on a soft `stands_on`
   total unless `stands_on_soft_17`
5. Outcome via compare_hands, then the damage pipeline:
   base -> attacker DAMAGE_DEALT fold -> defender dodge chain ->
   defender DAMAGE_RECEIVED fold -> cap, shield, thorns (player defending)

Modifier collection order (affects the rng draw sequence):
    player side: equipment by SLOT_ORDER -> active effects -> per wish
                 blessing then curse
    enemy side:  innate equipment in declaration order -> curse
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..calc.scoring import DEALER, PLAYER, PUSH, calculate_base_damage, compare_hands, floor_int, score_hand
from ..registry import (
    Modifier, ModifierContext, apply_damage_dealt, apply_damage_received,
    apply_deck_transforms, card_value_hooks, check_bust_override, check_dodge,
)
from ..state.cards import Card, Hand, HandScore, build_deck, shuffle
from ..state.rng import Random
from ..state.rules import GameRules
from ..state.run import EnemyState, PlayerState

logger = logging.getLogger(__name__)

NO_TARGET = "none"


# =============================================================================
# Combat State
# =============================================================================

@dataclass
class CombatState:
    """Cards and per-hand action bookkeeping for the hand being played."""
    shoe: List[Card] = field(default_factory=list)
    player_hand: Hand = field(default_factory=Hand)
    dealer_hand: Hand = field(default_factory=Hand)
    doubled_down: bool = False
    actions_taken: int = 0
    cards_removed: int = 0
    peeked_card: Optional[Card] = None
    has_peeked: bool = False
    dealer_played: bool = False

    @property
    def is_first_action(self) -> bool:
        return self.actions_taken == 0


@dataclass
class HandResult:
    """Outcome of one resolved hand."""
    player_score: HandScore
    dealer_score: HandScore
    winner: str
    base_damage: int = 0
    damage_dealt: int = 0
    damage_target: str = NO_TARGET
    dodged: bool = False
    shield_absorbed: int = 0
    thorns_damage: int = 0
    surrendered: bool = False
    breakdown: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_score": _score_dict(self.player_score),
            "dealer_score": _score_dict(self.dealer_score),
            "winner": self.winner,
            "base_damage": self.base_damage,
            "damage_dealt": self.damage_dealt,
            "damage_target": self.damage_target,
            "dodged": self.dodged,
            "shield_absorbed": self.shield_absorbed,
            "thorns_damage": self.thorns_damage,
            "surrendered": self.surrendered,
            "breakdown": self.breakdown,
        }


def _score_dict(score: HandScore) -> Dict[str, Any]:
    return {
        "value": score.value,
        "soft": score.soft,
        "busted": score.busted,
        "is_blackjack": score.is_blackjack,
    }


# =============================================================================
# Modifier collection
# =============================================================================

def collect_player_modifiers(player: PlayerState) -> List[Modifier]:
    mods: List[Modifier] = []
    for item in player.equipped_items():
        if item.modifier is not None:
            mods.append(item.modifier)
    for active in player.active_effects:
        mods.append(active.modifier)
    for wish in player.wishes:
        if wish.blessing is not None:
            mods.append(wish.blessing)
        if wish.curse is not None:
            mods.append(wish.curse)
    return mods


def collect_enemy_modifiers(enemy: Optional[EnemyState]) -> List[Modifier]:
    if enemy is None:
        return []
    mods = [item.modifier for item in enemy.data.equipment if item.modifier is not None]
    if enemy.data.curse is not None:
        mods.append(enemy.data.curse)
    return mods


def collect_modifiers(player: PlayerState,
                      enemy: Optional[EnemyState]) -> Tuple[List[Modifier], List[Modifier]]:
    """Fresh, order-stable (player_mods, enemy_mods) collections."""
    return collect_player_modifiers(player), collect_enemy_modifiers(enemy)


# =============================================================================
# Shoe and dealing
# =============================================================================

def build_shoe(rules: GameRules, modifiers: List[Modifier], rng: Random) -> List[Card]:
    """Unshuffled deck, passed through every deck transform, then shuffled."""
    cards = apply_deck_transforms(modifiers, build_deck(rules), rules)
    return shuffle(cards, rng)


def draw_card(combat: CombatState, rebuild_shoe: Callable[[], List[Card]]) -> Card:
    """Take the top card; a depleted shoe is rebuilt first."""
    if not combat.shoe:
        logger.debug("Shoe exhausted, rebuilding")
        combat.shoe = rebuild_shoe()
    return combat.shoe.pop(0)


# =============================================================================
# Scoring
# =============================================================================

def score_for(hand: Hand, rules: GameRules, modifiers: List[Modifier]) -> HandScore:
    """Score a hand with its owner's card-value hooks."""
    return score_hand(hand, rules, card_value_hooks(modifiers))


def rescue_bust(score: HandScore, hand: Hand, modifiers: List[Modifier],
                ctx: ModifierContext) -> HandScore:
    """Apply the first bust-check override, if the hand is busted and one rescues it."""
    if not score.busted:
        return score
    override = check_bust_override(modifiers, hand, score.value, ctx)
    if override is None:
        return score
    return HandScore(value=override.effective_score, soft=score.soft,
                     busted=False, is_blackjack=False)


def dealer_should_hit(score: HandScore, rules: GameRules) -> bool:
    if score.busted:
        return False
    stands_on = rules.dealer.stands_on
    if score.value < stands_on:
        return True
    return score.value == stands_on and score.soft and not rules.dealer.stands_on_soft_17


# =============================================================================
# Damage pipeline
# =============================================================================

@dataclass
class DamageOutcome:
    base: int
    final: int
    dodged: bool = False
    shield_absorbed: int = 0
    thorns: int = 0
    steps: List[str] = field(default_factory=list)


def run_damage_pipeline(winner: str, player_score: HandScore, dealer_score: HandScore,
                        rules: GameRules, player_mods: List[Modifier],
                        enemy_mods: List[Modifier], ctx: ModifierContext,
                        doubled_down: bool = False, shield_remaining: int = 0) -> DamageOutcome:
    """
    Compute the damage one hand deals, without committing it.

    Args:
        winner: "player", "dealer" or "push"
        player_score / dealer_score: override-adjusted scores
        rules: Folded rules for this hand
        player_mods / enemy_mods: Collected modifiers
        ctx: Context whose scores match the ones passed in
        doubled_down: Player doubled this hand
        shield_remaining: Damage shield left this battle (player defending)

    Returns:
        DamageOutcome; `final` is already floored at 0
    """
    if winner == PUSH:
        return DamageOutcome(base=0, final=0, steps=["Push - no damage"])

    base = calculate_base_damage(winner, player_score, dealer_score, rules)
    if winner == PLAYER and doubled_down:
        base = floor_int(base * rules.actions.double_down_multiplier)
    outcome = DamageOutcome(base=base, final=base, steps=[f"base {base}"])

    if winner == PLAYER:
        attackers, defenders = player_mods, enemy_mods
    else:
        attackers, defenders = enemy_mods, player_mods

    damage = apply_damage_dealt(attackers, base, ctx)
    outcome.steps.append(f"dealt {damage}")

    if check_dodge(defenders, ctx):
        outcome.final = 0
        outcome.dodged = True
        outcome.steps.append("dodged")
        return outcome

    damage = apply_damage_received(defenders, damage, ctx)
    outcome.steps.append(f"received {damage}")

    if winner == DEALER:
        dmg_rules = rules.damage
        if dmg_rules.damage_cap is not None and damage > dmg_rules.damage_cap:
            damage = dmg_rules.damage_cap
            outcome.steps.append(f"capped {damage}")
        if shield_remaining > 0 and damage > 0:
            absorbed = min(shield_remaining, damage)
            damage -= absorbed
            outcome.shield_absorbed = absorbed
            outcome.steps.append(f"shield -{absorbed}")
        if dmg_rules.thorns_percent > 0 and damage > 0:
            outcome.thorns = floor_int(damage * dmg_rules.thorns_percent)

    outcome.final = max(0, int(damage))
    return outcome


def build_hand_result(winner: str, player_score: HandScore, dealer_score: HandScore,
                      outcome: DamageOutcome) -> HandResult:
    if winner == PLAYER:
        target = DEALER
    elif winner == DEALER:
        target = PLAYER
    else:
        target = NO_TARGET
    return HandResult(
        player_score=player_score,
        dealer_score=dealer_score,
        winner=winner,
        base_damage=outcome.base,
        damage_dealt=outcome.final,
        damage_target=target,
        dodged=outcome.dodged,
        shield_absorbed=outcome.shield_absorbed,
        thorns_damage=outcome.thorns,
        breakdown=", ".join(outcome.steps),
    )
