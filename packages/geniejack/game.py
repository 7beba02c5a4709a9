"""
Game Engine - Main orchestrator for a GenieJack run.

This module provides the GameEngine class that drives a complete run from
seed to victory or defeat. It handles:
- Run initialization from a seed (one Random instance for the whole run)
- The phase machine: pre_hand -> player_turn -> hand_result / battle_result
  -> shop or genie -> next battle / next stage -> game_over / victory
- Modifier collection, rules folding and hook firing around each hand
- The action API (perform_action / get_available_actions)
- A read-only view projection and replay-only persistence

Usage:
    engine = GameEngine(seed="TEST123")
    while not engine.is_over:
        actions = engine.get_available_actions()
        engine.perform_action(actions[0])

    replay = engine.get_replay()             # {seed, actions}
    same = GameEngine.from_replay(replay)    # identical view
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .calc.scoring import DEALER, PLAYER, PUSH, compare_hands, floor_int
from .content.combatants import get_boss_for_stage, sample_enemies_for_stage
from .content.consumables import apply_consumable, tick_active_effects
from .effects.types import BlessingDefinition
from .errors import GameError, InvariantViolation, ReplayError
from .generation.shop import ShopItem, generate_shop_inventory, purchase_item
from .handlers.combat import (
    CombatState, HandResult, build_hand_result, build_shoe, collect_modifiers,
    dealer_should_hit, draw_card, rescue_bust, run_damage_pipeline, score_for,
)
from .handlers.genie import GenieEncounter, create_genie_encounter, store_blessing_wish
from .registry import (
    Modifier, ModifierContext, ModifierHook, apply_gold_earned, fire_card_drawn,
    fire_hook,
)
from .state.cards import Card, Hand, HandScore
from .state.rng import Random
from .state.rules import GameRules, default_rules, fold_rules
from .state.run import CombatantData, EnemyState, SLOT_ORDER, create_player

logger = logging.getLogger(__name__)

VIEW_LOG_LINES = 5


# =============================================================================
# Game Phase Enumeration
# =============================================================================

class GamePhase(Enum):
    """Current phase of the run."""
    PRE_HAND = "pre_hand"            # Between hands: consumables, then deal
    PLAYER_TURN = "player_turn"      # Player acting on the dealt hand
    HAND_RESULT = "hand_result"      # Hand resolved, battle continues
    BATTLE_RESULT = "battle_result"  # Enemy defeated, gold awarded
    SHOP = "shop"                    # After a regular battle
    GENIE = "genie"                  # After a boss: enter a wish
    GAME_OVER = "game_over"          # Player hp reached 0
    VICTORY = "victory"              # Wish accepted on the final stage


TERMINAL_PHASES = frozenset({GamePhase.GAME_OVER, GamePhase.VICTORY})


# =============================================================================
# Action Types
# =============================================================================

@dataclass(frozen=True)
class Continue:
    """Advance from pre_hand, hand_result or battle_result."""


@dataclass(frozen=True)
class Hit:
    pass


@dataclass(frozen=True)
class Stand:
    pass


@dataclass(frozen=True)
class DoubleDown:
    pass


@dataclass(frozen=True)
class Surrender:
    pass


@dataclass(frozen=True)
class Peek:
    """Look at the next card of the shoe."""


@dataclass(frozen=True)
class RemoveCard:
    card_index: int


@dataclass(frozen=True)
class UseConsumable:
    item_index: int


@dataclass(frozen=True)
class BuyItem:
    item_index: int


@dataclass(frozen=True)
class SkipShop:
    pass


@dataclass(frozen=True)
class EnterWish:
    """Accept the genie's offer; `blessing` is an optional boon definition (dict)."""
    text: str
    blessing: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)


GameAction = Union[
    Continue, Hit, Stand, DoubleDown, Surrender, Peek, RemoveCard,
    UseConsumable, BuyItem, SkipShop, EnterWish,
]

# JSON action dictionary shape used by replays and presentation layers.
ActionDict = Dict[str, Any]

_SIMPLE_ACTIONS = {
    "continue": Continue,
    "hit": Hit,
    "stand": Stand,
    "double_down": DoubleDown,
    "surrender": Surrender,
    "peek": Peek,
    "skip_shop": SkipShop,
}
_SIMPLE_NAMES = {cls: name for name, cls in _SIMPLE_ACTIONS.items()}


def action_to_dict(action: GameAction) -> ActionDict:
    """Convert a GameAction dataclass into a JSON action dict."""
    name = _SIMPLE_NAMES.get(type(action))
    if name is not None:
        return {"type": name}
    if isinstance(action, RemoveCard):
        return {"type": "remove_card", "card_index": action.card_index}
    if isinstance(action, UseConsumable):
        return {"type": "use_consumable", "item_index": action.item_index}
    if isinstance(action, BuyItem):
        return {"type": "buy_item", "item_index": action.item_index}
    if isinstance(action, EnterWish):
        out: ActionDict = {"type": "enter_wish", "text": action.text}
        if action.blessing is not None:
            out["blessing"] = action.blessing
        return out
    raise ValueError(f"Not a game action: {action!r}")


def action_from_dict(data: ActionDict) -> GameAction:
    """Parse a JSON action dict. Raises KeyError/TypeError/ValueError on bad input."""
    action_type = data["type"]
    simple = _SIMPLE_ACTIONS.get(action_type)
    if simple is not None:
        return simple()
    if action_type == "remove_card":
        return RemoveCard(int(data["card_index"]))
    if action_type == "use_consumable":
        return UseConsumable(int(data["item_index"]))
    if action_type == "buy_item":
        return BuyItem(int(data["item_index"]))
    if action_type == "enter_wish":
        blessing = data.get("blessing")
        if isinstance(blessing, BlessingDefinition):
            blessing = blessing.to_dict()
        return EnterWish(str(data.get("text", "")), blessing)
    raise ValueError(f"Unknown action type: {action_type!r}")


# =============================================================================
# Results and replays
# =============================================================================

@dataclass
class ActionResult:
    success: bool
    message: str
    new_phase: GamePhase

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message,
                "new_phase": self.new_phase.value}


@dataclass
class GameReplay:
    """The only durable artifact of a run: its seed and accepted actions."""
    seed: Union[int, str]
    actions: List[ActionDict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"seed": self.seed, "actions": [dict(a) for a in self.actions]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameReplay':
        return cls(seed=data["seed"], actions=list(data.get("actions", [])))


# =============================================================================
# Game Engine
# =============================================================================

class GameEngine:
    """
    Deterministic run engine.

    Every state change goes through perform_action(); rejected actions
    leave the engine untouched and are not recorded. With strict=True an
    InvariantViolation propagates instead of being turned into a failure.
    """

    def __init__(self, seed: Optional[Union[int, str]] = None, strict: bool = False):
        if seed is None:
            seed = random.randrange(1, 2 ** 31)
        self.seed = seed
        self.strict = strict
        self.rng = Random(seed)
        self.base_rules = default_rules()

        health = self.base_rules.health
        self.player = create_player(hp=health.player_starting_hp, max_hp=health.player_max_hp)
        self.phase = GamePhase.PRE_HAND
        self.stage = 1
        self.battle = 1
        self.hand_number = 1

        self.enemy: Optional[EnemyState] = None
        self.stage_enemies: List[CombatantData] = []
        self.combat: Optional[CombatState] = None
        self.shop_items: List[ShopItem] = []
        self.genie: Optional[GenieEncounter] = None
        self.last_hand_result: Optional[HandResult] = None

        # Per-battle counters
        self.hands_won_this_battle = 0
        self.hands_lost_this_battle = 0
        self.consecutive_wins = 0
        self.consecutive_losses = 0
        self.previous_hand_score: Optional[int] = None
        self.last_damage_dealt = 0
        self.last_damage_taken = 0
        self.kill_cause: Optional[str] = None
        self.dodged_by: Optional[str] = None
        self.shield_remaining = 0
        self.pending_overkill = 0

        self.log: List[str] = []
        self.action_log: List[GameAction] = []

        self._start_stage()

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def is_over(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def is_boss_battle(self) -> bool:
        return self.enemy is not None and self.enemy.data.is_boss

    def modifiers(self) -> Tuple[List[Modifier], List[Modifier]]:
        return collect_modifiers(self.player, self.enemy)

    def all_modifiers(self) -> List[Modifier]:
        player_mods, enemy_mods = self.modifiers()
        return player_mods + enemy_mods

    def rules(self) -> GameRules:
        """Default rules folded through every active modifier."""
        return fold_rules(self.base_rules, self.all_modifiers())

    def _context(self, player_score: Optional[HandScore] = None,
                 dealer_score: Optional[HandScore] = None,
                 rules: Optional[GameRules] = None) -> ModifierContext:
        if self.enemy is None:
            raise InvariantViolation("No enemy loaded")
        rules = rules or self.rules()
        player_mods, enemy_mods = self.modifiers()
        combat = self.combat
        player_hand = combat.player_hand if combat is not None else Hand()
        dealer_hand = combat.dealer_hand if combat is not None else Hand()
        if player_score is None:
            player_score = score_for(player_hand, rules, player_mods)
        if dealer_score is None:
            dealer_score = score_for(dealer_hand, rules, enemy_mods)
        return ModifierContext(
            player_hand=player_hand,
            dealer_hand=dealer_hand,
            player_score=player_score,
            dealer_score=dealer_score,
            player_state=self.player,
            enemy_state=self.enemy,
            rules=rules,
            rng=self.rng,
            stage=self.stage,
            battle=self.battle,
            hand_number=self.hand_number,
            last_damage_dealt=self.last_damage_dealt,
            last_damage_taken=self.last_damage_taken,
            hands_won_this_battle=self.hands_won_this_battle,
            hands_lost_this_battle=self.hands_lost_this_battle,
            consecutive_wins=self.consecutive_wins,
            consecutive_losses=self.consecutive_losses,
            previous_hand_score=self.previous_hand_score,
            peeked_card=combat.peeked_card if combat is not None else None,
            card_removes_used=combat.cards_removed if combat is not None else 0,
            kill_cause=self.kill_cause,
            dodged_by=self.dodged_by,
            doubled_down=combat.doubled_down if combat is not None else False,
        )

    def _require_combat(self) -> CombatState:
        if self.combat is None:
            raise InvariantViolation(f"No active hand in phase {self.phase.value}")
        return self.combat

    def _log(self, message: str) -> None:
        self.log.append(message)

    def _result(self, success: bool, message: str) -> ActionResult:
        return ActionResult(success, message, self.phase)

    def _set_phase(self, phase: GamePhase) -> None:
        logger.debug("Phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    # =========================================================================
    # Stage / battle setup
    # =========================================================================

    def _start_stage(self) -> None:
        self.battle = 1
        self.stage_enemies = sample_enemies_for_stage(self.stage, self.rng)
        self._load_enemy(self.stage_enemies[0])
        self._log(f"Stage {self.stage} begins")

    def _load_enemy(self, data: CombatantData) -> None:
        hp = data.max_hp
        if self.pending_overkill > 0:
            hp = max(1, hp - self.pending_overkill)
            self._log(f"Overkill carries {data.max_hp - hp} damage into {data.name}")
            self.pending_overkill = 0
        self.enemy = EnemyState(data=data, hp=hp)

        self.combat = None
        self.hand_number = 1
        self.hands_won_this_battle = 0
        self.hands_lost_this_battle = 0
        self.consecutive_wins = 0
        self.consecutive_losses = 0
        self.previous_hand_score = None
        self.last_damage_dealt = 0
        self.last_damage_taken = 0
        self.kill_cause = None
        self.dodged_by = None
        self.last_hand_result = None

        rules = self.rules()
        self.shield_remaining = rules.damage.damage_shield
        fire_hook(self.all_modifiers(), ModifierHook.ON_BATTLE_START, self._context(rules=rules))

        label = "Boss battle" if data.is_boss else f"Battle {self.battle}"
        self._log(f"{label}: {data.name} ({self.enemy.hp} HP)")
        logger.info("Stage %d battle %d: %s", self.stage, self.battle, data.name)

    # =========================================================================
    # Action API
    # =========================================================================

    def perform_action(self, action: Union[GameAction, ActionDict]) -> ActionResult:
        """
        Execute an action and advance the run.

        Args:
            action: A GameAction dataclass or its JSON dict form

        Returns:
            ActionResult; success=False means nothing changed
        """
        if isinstance(action, dict):
            try:
                action = action_from_dict(action)
            except (KeyError, TypeError, ValueError) as exc:
                return self._result(False, f"Malformed action: {exc}")

        try:
            result = self._dispatch(action)
        except InvariantViolation:
            if self.strict:
                raise
            logger.exception("Invariant violated while handling %r", action)
            return self._result(False, "Internal error")

        if result.success:
            self.action_log.append(action)
        return result

    def _dispatch(self, action: GameAction) -> ActionResult:
        if self.is_over:
            return self._result(False, "The run is over")

        phase = self.phase
        if phase == GamePhase.PRE_HAND:
            if isinstance(action, UseConsumable):
                return self._use_consumable(action.item_index)
            if isinstance(action, Continue):
                return self._start_hand()
        elif phase == GamePhase.PLAYER_TURN:
            return self._handle_player_turn(action)
        elif phase == GamePhase.HAND_RESULT:
            if isinstance(action, Continue):
                self._set_phase(GamePhase.PRE_HAND)
                return self._result(True, "Next hand")
        elif phase == GamePhase.BATTLE_RESULT:
            if isinstance(action, Continue):
                return self._leave_battle()
        elif phase == GamePhase.SHOP:
            if isinstance(action, BuyItem):
                return self._buy_item(action.item_index)
            if isinstance(action, SkipShop):
                return self._advance_after_shop()
        elif phase == GamePhase.GENIE:
            if isinstance(action, EnterWish):
                return self._enter_wish(action)

        return self._result(False, f"Invalid action for phase {phase.value}")

    def get_available_actions(self) -> List[GameAction]:
        """Every action listed here is accepted by perform_action."""
        phase = self.phase
        if phase == GamePhase.PRE_HAND:
            actions: List[GameAction] = [UseConsumable(i) for i in range(len(self.player.consumables))]
            actions.append(Continue())
            return actions
        if phase == GamePhase.PLAYER_TURN:
            return self._player_turn_actions()
        if phase in (GamePhase.HAND_RESULT, GamePhase.BATTLE_RESULT):
            return [Continue()]
        if phase == GamePhase.SHOP:
            actions = [BuyItem(item.index) for item in self.shop_items
                       if item.affordable(self.player.gold)]
            actions.append(SkipShop())
            return actions
        if phase == GamePhase.GENIE:
            return [EnterWish("")]
        return []

    # =========================================================================
    # Pre-hand
    # =========================================================================

    def _use_consumable(self, index: int) -> ActionResult:
        if index < 0 or index >= len(self.player.consumables):
            return self._result(False, "Invalid consumable index")
        consumable = self.player.consumables.pop(index)
        message = apply_consumable(consumable, self.player, self.enemy)
        self._log(message)
        if self.enemy.hp <= 0:
            return self._end_battle()
        return self._result(True, message)

    def _start_hand(self) -> ActionResult:
        previous = self.combat
        self.combat = None
        self.dodged_by = None
        self.last_hand_result = None

        fire_hook(self.all_modifiers(), ModifierHook.ON_HAND_START, self._context())

        if self.player.hp <= 0:
            return self._game_over()
        if self.enemy.hp <= 0:
            self.kill_cause = "dot"
            return self._end_battle()

        rules = self.rules()
        if (previous is not None and previous.shoe
                and not rules.deck.reshuffle_between_hands):
            shoe = previous.shoe
        else:
            shoe = build_shoe(rules, self.all_modifiers(), self.rng)
        self.combat = CombatState(shoe=shoe)

        order = [PLAYER, DEALER] if rules.turn_order.player_goes_first else [DEALER, PLAYER]
        for side in order:
            count = (rules.turn_order.initial_cards_player if side == PLAYER
                     else rules.turn_order.initial_cards_dealer)
            for _ in range(count):
                self._draw(side)

        self._set_phase(GamePhase.PLAYER_TURN)
        score = score_for(self.combat.player_hand, rules, self.modifiers()[0])
        if score.is_blackjack:
            self._log("Blackjack!")
            return self._finish_hand()
        if self._hand_is_over(score, rules):
            return self._finish_hand()
        return self._result(True, f"Hand {self.hand_number} dealt")

    def _draw(self, side: str) -> Card:
        combat = self._require_combat()
        card = draw_card(combat, lambda: build_shoe(self.rules(), self.all_modifiers(), self.rng))
        hand = combat.player_hand if side == PLAYER else combat.dealer_hand
        hand.add(card)
        fire_card_drawn(self.all_modifiers(), card, side, self._context())
        return card

    # =========================================================================
    # Player turn
    # =========================================================================

    def _player_turn_actions(self) -> List[GameAction]:
        combat = self.combat
        if combat is None:
            return []
        actions = self.rules().actions
        out: List[GameAction] = []
        if actions.can_hit:
            out.append(Hit())
        if actions.can_stand:
            out.append(Stand())
        if self._can_double_down(actions, combat):
            out.append(DoubleDown())
        if self._can_remove_card(actions, combat):
            out.extend(RemoveCard(i) for i in range(len(combat.player_hand.cards)))
        if actions.can_peek and not combat.has_peeked:
            out.append(Peek())
        if actions.can_surrender and combat.is_first_action:
            out.append(Surrender())
        return out

    @staticmethod
    def _can_double_down(actions, combat: CombatState) -> bool:
        return (actions.can_double_down
                and (combat.is_first_action or actions.can_double_down_any_time)
                and not combat.doubled_down)

    @staticmethod
    def _can_remove_card(actions, combat: CombatState) -> bool:
        return (actions.can_remove_card
                and combat.cards_removed < actions.cards_removable_per_hand
                and len(combat.player_hand.cards) > 1)

    def _handle_player_turn(self, action: GameAction) -> ActionResult:
        combat = self._require_combat()
        rules = self.rules()
        actions = rules.actions

        if isinstance(action, Hit) and actions.can_hit:
            combat.actions_taken += 1
            card = self._draw(PLAYER)
            self._log(f"Hit: {card}")
            if self._hand_is_over(self._player_score(rules), rules):
                return self._finish_hand()
            return self._result(True, f"Drew {card}")

        if isinstance(action, Stand) and actions.can_stand:
            combat.actions_taken += 1
            return self._finish_hand()

        if isinstance(action, DoubleDown) and self._can_double_down(actions, combat):
            combat.actions_taken += 1
            combat.doubled_down = True
            card = self._draw(PLAYER)
            self._log(f"Double down: {card}")
            score = self._player_score(rules)
            if not actions.can_hit_after_double or self._hand_is_over(score, rules):
                return self._finish_hand()
            return self._result(True, f"Doubled down, drew {card}")

        if isinstance(action, RemoveCard) and self._can_remove_card(actions, combat):
            if not 0 <= action.card_index < len(combat.player_hand.cards):
                return self._result(False, "Invalid card index")
            combat.actions_taken += 1
            removed = combat.player_hand.cards.pop(action.card_index)
            combat.cards_removed += 1
            self._log(f"Removed {removed} from hand")
            if self._hand_is_over(self._player_score(rules), rules):
                return self._finish_hand()
            return self._result(True, f"Removed {removed}")

        if isinstance(action, Peek) and actions.can_peek and not combat.has_peeked:
            combat.has_peeked = True
            combat.peeked_card = combat.shoe[0] if combat.shoe else None
            if combat.peeked_card is None:
                return self._result(True, "No more cards")
            self._log(f"Peeked: {combat.peeked_card}")
            return self._result(True, f"Next card: {combat.peeked_card}")

        if isinstance(action, Surrender) and actions.can_surrender and combat.is_first_action:
            return self._surrender()

        return self._result(False, "Action not allowed now")

    def _player_score(self, rules: GameRules) -> HandScore:
        return score_for(self._require_combat().player_hand, rules, self.modifiers()[0])

    def _hand_is_over(self, score: HandScore, rules: GameRules) -> bool:
        """Unrescued bust or exactly on the bust threshold ends the player's turn."""
        if score.busted:
            rescued = rescue_bust(score, self.combat.player_hand, self.modifiers()[0],
                                  self._context(player_score=score, rules=rules))
            return rescued.busted
        return score.value == rules.scoring.bust_threshold

    # =========================================================================
    # Hand resolution
    # =========================================================================

    def _finish_hand(self) -> ActionResult:
        combat = self._require_combat()
        rules = self.rules()
        player_mods, enemy_mods = self.modifiers()

        while dealer_should_hit(score_for(combat.dealer_hand, rules, enemy_mods), rules):
            self._draw(DEALER)
        combat.dealer_played = True

        raw_ctx = self._context(rules=rules)
        player_score = rescue_bust(raw_ctx.player_score, combat.player_hand, player_mods, raw_ctx)
        dealer_score = rescue_bust(raw_ctx.dealer_score, combat.dealer_hand, enemy_mods, raw_ctx)
        winner = compare_hands(player_score, dealer_score, rules)

        ctx = self._context(player_score, dealer_score, rules)
        outcome = run_damage_pipeline(
            winner, player_score, dealer_score, rules, player_mods, enemy_mods, ctx,
            doubled_down=combat.doubled_down, shield_remaining=self.shield_remaining,
        )
        result = build_hand_result(winner, player_score, dealer_score, outcome)

        # Commit damage
        self.last_damage_dealt = 0
        self.last_damage_taken = 0
        if outcome.dodged:
            self.dodged_by = DEALER if winner == PLAYER else PLAYER
        if winner == PLAYER:
            enemy_hp_before = self.enemy.hp
            self.enemy.lose_hp(outcome.final)
            self.last_damage_dealt = outcome.final
            excess = outcome.final - enemy_hp_before
            if excess > 0 and rules.damage.overkill_carry_percent > 0:
                self.pending_overkill = floor_int(excess * rules.damage.overkill_carry_percent)
        elif winner == DEALER:
            self.player.lose_hp(outcome.final)
            self.last_damage_taken = outcome.final
            self.shield_remaining -= outcome.shield_absorbed
            if outcome.thorns > 0:
                self.enemy.lose_hp(outcome.thorns)

        # Streaks
        if winner == PLAYER:
            self.hands_won_this_battle += 1
            self.consecutive_wins += 1
            self.consecutive_losses = 0
        elif winner == DEALER:
            self.hands_lost_this_battle += 1
            self.consecutive_losses += 1
            self.consecutive_wins = 0
        else:
            self.consecutive_wins = 0
            self.consecutive_losses = 0

        if self.enemy.hp <= 0:
            self.kill_cause = "hand_damage"

        # Lifecycle hooks
        mods = player_mods + enemy_mods
        end_ctx = self._context(player_score, dealer_score, rules)
        if winner == PUSH:
            fire_hook(mods, ModifierHook.ON_PUSH, end_ctx)
        # Fired for either side; handlers check which perspective busted or dodged
        if player_score.busted or dealer_score.busted:
            fire_hook(mods, ModifierHook.ON_ENEMY_BUST, end_ctx)
        if outcome.dodged:
            fire_hook(mods, ModifierHook.ON_DODGE, end_ctx)
        fire_hook(mods, ModifierHook.ON_HAND_END, end_ctx)

        for name in tick_active_effects(self.player):
            self._log(f"{name} wore off")

        if self.enemy.hp <= 0 and self.kill_cause is None:
            self.kill_cause = "dot"

        self.previous_hand_score = player_score.value
        self.last_hand_result = result
        label = {PLAYER: "WIN", DEALER: "LOSS"}.get(winner, "PUSH")
        self._log(f"{label} {player_score.value} vs {dealer_score.value}: "
                  f"{result.damage_dealt} damage ({result.breakdown})")
        return self._after_hand(label)

    def _surrender(self) -> ActionResult:
        combat = self._require_combat()
        rules = self.rules()
        player_mods, enemy_mods = self.modifiers()
        player_score = score_for(combat.player_hand, rules, player_mods)
        dealer_score = score_for(combat.dealer_hand, rules, enemy_mods)
        damage = dealer_score.value // 2

        self.player.lose_hp(damage)
        self.last_damage_taken = damage
        self.last_damage_dealt = 0
        self.hands_lost_this_battle += 1
        self.consecutive_losses += 1
        self.consecutive_wins = 0
        self.previous_hand_score = player_score.value
        self.last_hand_result = HandResult(
            player_score=player_score,
            dealer_score=dealer_score,
            winner=DEALER,
            base_damage=damage,
            damage_dealt=damage,
            damage_target=PLAYER,
            surrendered=True,
            breakdown=f"surrender, half of {dealer_score.value}",
        )
        self._log(f"Surrendered: took {damage} damage")
        return self._after_hand("Surrendered")

    def _after_hand(self, message: str) -> ActionResult:
        if self.player.hp <= 0:
            return self._game_over()
        if self.enemy.hp <= 0:
            return self._end_battle()
        self._set_phase(GamePhase.HAND_RESULT)
        self.hand_number += 1
        return self._result(True, message)

    def _game_over(self) -> ActionResult:
        self._set_phase(GamePhase.GAME_OVER)
        name = self.enemy.name if self.enemy is not None else "the desert"
        self._log(f"Defeated by {name}")
        logger.info("Run %s lost at stage %d battle %d", self.seed, self.stage, self.battle)
        return self._result(True, f"Game over: defeated by {name}")

    def _end_battle(self) -> ActionResult:
        rules = self.rules()
        economy = rules.economy
        gold = economy.gold_per_boss if self.is_boss_battle else economy.gold_per_battle
        gold = apply_gold_earned(self.modifiers()[0], gold, self._context(rules=rules))
        self.player.gold += gold
        if rules.health.regen_per_battle > 0:
            self.player.heal(rules.health.regen_per_battle)

        self._log(f"{self.enemy.name} defeated! +{gold} gold")
        logger.info("Defeated %s (kill: %s), +%d gold", self.enemy.name, self.kill_cause, gold)

        self._set_phase(GamePhase.BATTLE_RESULT)
        self.combat = None
        self.hand_number = 1
        self.hands_won_this_battle = 0
        self.hands_lost_this_battle = 0
        self.consecutive_wins = 0
        self.consecutive_losses = 0
        self.previous_hand_score = None
        self.shield_remaining = 0
        self.kill_cause = None
        return self._result(True, f"Victory! +{gold} gold")

    # =========================================================================
    # Between battles
    # =========================================================================

    def _leave_battle(self) -> ActionResult:
        if self.is_boss_battle:
            self.genie = create_genie_encounter(self.enemy.data)
            self._set_phase(GamePhase.GENIE)
            self._log("The Genie appears!")
            return self._result(True, "The Genie appears!")
        self.shop_items = generate_shop_inventory(self.stage, self.player, self.rng, self.rules())
        self._set_phase(GamePhase.SHOP)
        return self._result(True, "Welcome to the shop")

    def _buy_item(self, index: int) -> ActionResult:
        if index < 0 or index >= len(self.shop_items):
            return self._result(False, "Invalid item index")
        item = self.shop_items[index]
        if not item.affordable(self.player.gold):
            return self._result(False, f"Cannot buy {item.item.name}")
        success, message = purchase_item(item, self.player)
        if success:
            self._log(message)
        return self._result(success, message)

    def _advance_after_shop(self) -> ActionResult:
        self.shop_items = []
        self.battle += 1
        per_stage = self.rules().progression.battles_per_stage
        if self.battle <= per_stage and self.stage_enemies:
            data = self.stage_enemies[(self.battle - 1) % len(self.stage_enemies)]
        else:
            data = get_boss_for_stage(self.stage)
        self._load_enemy(data)
        self._set_phase(GamePhase.PRE_HAND)
        return self._result(True, f"Next battle: {data.name}")

    def _enter_wish(self, action: EnterWish) -> ActionResult:
        if self.genie is None:
            raise InvariantViolation("Genie phase without an encounter")
        wish = store_blessing_wish(self.genie, action.text, action.blessing)
        self.player.wishes.append(wish)
        blessing_name = wish.blessing.name if wish.blessing is not None else "none"
        self._log(f"Blessing: {blessing_name}")
        self._log(f"Curse received: {wish.curse.name}")
        self.genie = None

        rules = self.rules()
        if rules.health.reset_hp_after_boss:
            self.player.hp = self.player.max_hp

        if self.stage >= rules.progression.total_stages:
            self._set_phase(GamePhase.VICTORY)
            self._log("Victory! The desert is yours.")
            logger.info("Run %s won", self.seed)
            return self._result(True, "Victory!")

        self.stage += 1
        self._start_stage()
        self._set_phase(GamePhase.PRE_HAND)
        return self._result(True, f"Stage {self.stage} begins")

    # =========================================================================
    # View projection
    # =========================================================================

    def get_view(self) -> Dict[str, Any]:
        """JSON-serializable snapshot; the dealer's hole card is hidden during the player's turn."""
        rules = self.rules()
        player_mods, enemy_mods = self.modifiers()
        player = self.player
        return {
            "seed": self.seed,
            "phase": self.phase.value,
            "stage": self.stage,
            "battle": self.battle,
            "hand_number": self.hand_number,
            "total_stages": rules.progression.total_stages,
            "battles_per_stage": rules.progression.battles_per_stage,
            "player": {
                "hp": player.hp,
                "max_hp": player.max_hp,
                "gold": player.gold,
                "equipment": {
                    slot.value: (player.equipment[slot].to_dict()
                                 if player.equipment.get(slot) else None)
                    for slot in SLOT_ORDER
                },
                "consumables": [c.to_dict() for c in player.consumables],
                "active_effects": [
                    {"id": a.id, "name": a.name, "remaining_hands": a.remaining_hands}
                    for a in player.active_effects
                ],
                "wishes": [
                    {
                        "blessing_text": w.blessing_text,
                        "blessing": w.blessing.to_dict() if w.blessing is not None else None,
                        "curse": w.curse.to_dict(),
                        "boss_name": w.boss_name,
                    }
                    for w in player.wishes
                ],
            },
            "enemy": self._enemy_view(),
            "hand": self._hand_view(rules, player_mods, enemy_mods),
            "shop": ({"items": [i.to_dict(player.gold) for i in self.shop_items]}
                     if self.phase == GamePhase.SHOP else None),
            "genie": (self.genie.to_dict()
                      if self.phase == GamePhase.GENIE and self.genie is not None else None),
            "last_hand_result": (self.last_hand_result.to_dict()
                                 if self.last_hand_result is not None else None),
            "available_actions": [action_to_dict(a) for a in self.get_available_actions()],
            "log": self.log[-VIEW_LOG_LINES:],
        }

    def _enemy_view(self) -> Optional[Dict[str, Any]]:
        if self.enemy is None:
            return None
        data = self.enemy.data
        return {
            "id": data.id,
            "name": data.name,
            "hp": self.enemy.hp,
            "max_hp": self.enemy.max_hp,
            "is_boss": data.is_boss,
            "description": data.description,
            "abilities": [{"name": e.name, "description": e.description} for e in data.equipment],
            "curse": data.curse.to_dict() if data.curse is not None else None,
        }

    def _hand_view(self, rules: GameRules, player_mods: List[Modifier],
                   enemy_mods: List[Modifier]) -> Optional[Dict[str, Any]]:
        combat = self.combat
        if combat is None:
            return None
        hidden = (self.phase == GamePhase.PLAYER_TURN and not rules.dealer.reveals_cards)
        dealer_cards = [
            None if hidden and i == 0 else card.to_dict()
            for i, card in enumerate(combat.dealer_hand.cards)
        ]
        player_score = score_for(combat.player_hand, rules, player_mods)
        dealer_score = None
        if not hidden:
            score = score_for(combat.dealer_hand, rules, enemy_mods)
            dealer_score = {"value": score.value, "soft": score.soft, "busted": score.busted}
        return {
            "player_cards": [c.to_dict() for c in combat.player_hand.cards],
            "dealer_cards": dealer_cards,
            "player_score": {"value": player_score.value, "soft": player_score.soft,
                             "busted": player_score.busted,
                             "is_blackjack": player_score.is_blackjack},
            "dealer_score": dealer_score,
            "doubled_down": combat.doubled_down,
            "peeked_card": combat.peeked_card.to_dict() if combat.peeked_card else None,
            "cards_in_shoe": len(combat.shoe),
        }

    # =========================================================================
    # Replay
    # =========================================================================

    def get_replay(self) -> GameReplay:
        return GameReplay(seed=self.seed, actions=[action_to_dict(a) for a in self.action_log])

    def serialize(self) -> Dict[str, Any]:
        """Persist the run; only the seed and the accepted actions are stored."""
        return self.get_replay().to_dict()

    @classmethod
    def from_replay(cls, replay: Union[GameReplay, Dict[str, Any]],
                    strict: bool = False) -> 'GameEngine':
        """Rebuild a run by replaying every recorded action from its seed."""
        if isinstance(replay, dict):
            replay = GameReplay.from_dict(replay)
        engine = cls(seed=replay.seed, strict=strict)
        for step, action in enumerate(replay.actions):
            result = engine.perform_action(action)
            if not result.success:
                raise ReplayError(f"Replay action {step} {action!r} rejected: {result.message}")
        return engine


# =============================================================================
# Auto-play helpers
# =============================================================================

MAX_FAST_FORWARD_ACTIONS = 5000
MAX_SEED_RETRIES = 50


def _auto_action(engine: GameEngine) -> GameAction:
    """Stand on 17+, otherwise hit; skip shops; continue everything else."""
    if engine.phase == GamePhase.PLAYER_TURN:
        score = engine._player_score(engine.rules())
        return Stand() if score.value >= 17 else Hit()
    if engine.phase == GamePhase.SHOP:
        return SkipShop()
    return Continue()


def fast_forward_to_genie(engine: GameEngine) -> GameEngine:
    """Auto-play until the genie phase. Raises GameError if the run ends first."""
    for _ in range(MAX_FAST_FORWARD_ACTIONS):
        if engine.phase == GamePhase.GENIE:
            return engine
        if engine.is_over:
            raise GameError(f"Run ended ({engine.phase.value}) before reaching the genie")
        engine.perform_action(_auto_action(engine))
    raise GameError(f"No genie within {MAX_FAST_FORWARD_ACTIONS} actions")


def create_engine_at_genie(seed: Optional[Union[int, str]] = None) -> GameEngine:
    """An engine already at the genie; without a seed, tries "genie-0", "genie-1", ..."""
    if seed is not None:
        return fast_forward_to_genie(GameEngine(seed))
    for attempt in range(MAX_SEED_RETRIES):
        try:
            return fast_forward_to_genie(GameEngine(f"genie-{attempt}"))
        except GameError:
            logger.debug("Seed genie-%d did not reach the genie", attempt)
    raise GameError(f"No seed reached the genie in {MAX_SEED_RETRIES} attempts")
