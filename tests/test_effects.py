"""
Effect Compiler Tests

Each effect compiles into handlers on a Modifier; these tests drive the
handlers through the registry runners with a hand-built context.

Default context hands: player 10h 8d (18) beats dealer 10c 7s (17).
"""

import pytest

from packages.geniejack.effects import (
    Condition, ConditionType, Effect, EffectType, EFFECT_COMPILERS,
    blessing_modifier_id, build_blessing_modifier, build_modifier,
    effect_compiler, missing_compilers, validate_blessing_definition,
    validate_effect,
)
from packages.geniejack.errors import UnknownEffectError
from packages.geniejack.registry import (
    Modifier, ModifierHook, ModifierSource, Perspective, apply_damage_dealt,
    apply_damage_received, apply_gold_earned, check_bust_override,
    check_dodge, fire_card_drawn, fire_hook,
)
from packages.geniejack.state.rng import Random


def mod(*effects, perspective=Perspective.PLAYER, source=ModifierSource.EQUIPMENT):
    return build_modifier("mod_test", "Test", "", source, list(effects), perspective)


def dealt(modifier, damage, ctx):
    return apply_damage_dealt([modifier], damage, ctx)


def received(modifier, damage, ctx):
    return apply_damage_received([modifier], damage, ctx)


# =============================================================================
# Builder
# =============================================================================


class TestBuilder:

    def test_every_effect_type_has_a_compiler(self):
        assert missing_compilers() == []
        assert set(EFFECT_COMPILERS) == set(EffectType)

    @pytest.mark.parametrize("effect_type", list(EffectType))
    def test_every_validated_effect_compiles(self, effect_type):
        effect = validate_effect({"type": effect_type.value, "value": 1})
        modifier = mod(effect)
        assert modifier.id == "mod_test"

    def test_non_effect_rejected(self):
        with pytest.raises(UnknownEffectError):
            build_modifier("bad", "Bad", "", ModifierSource.EQUIPMENT,
                           [{"type": "flat_damage_bonus", "value": 3}])

    def test_duplicate_compiler_rejected(self):
        with pytest.raises(RuntimeError):
            effect_compiler(EffectType.FLAT_DAMAGE_BONUS)(lambda b: None)

    def test_blessing_modifier_id(self):
        assert blessing_modifier_id("Golden  Touch") == "wish_blessing_golden_touch"

    def test_build_blessing_modifier(self):
        definition = validate_blessing_definition({
            "name": "Lion Heart", "description": "+5 damage",
            "effects": [{"type": "flat_damage_bonus", "value": 5}],
        })
        modifier = build_blessing_modifier(definition)
        assert modifier.id == "wish_blessing_lion_heart"
        assert modifier.source is ModifierSource.BLESSING
        assert modifier.hooks == [ModifierHook.DAMAGE_DEALT]

    def test_handlers_run_in_listed_order(self, make_ctx):
        ctx = make_ctx()
        percent_first = mod(Effect(EffectType.PERCENT_DAMAGE_BONUS, 0.5),
                            Effect(EffectType.FLAT_DAMAGE_BONUS, 5))
        flat_first = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5),
                         Effect(EffectType.PERCENT_DAMAGE_BONUS, 0.5))
        assert dealt(percent_first, 10, ctx) == 20
        assert dealt(flat_first, 10, ctx) == 22

    def test_modifiers_fold_in_collection_order(self, make_ctx):
        ctx = make_ctx()
        double = mod(Effect(EffectType.DAMAGE_MULTIPLIER, 2.0))
        flat = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 3))
        assert apply_damage_dealt([double, flat], 5, ctx) == 13
        assert apply_damage_dealt([flat, double], 5, ctx) == 16


# =============================================================================
# Damage dealt
# =============================================================================


class TestDamageDealt:

    def test_flat_bonus(self, make_ctx):
        assert dealt(mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5)), 10, make_ctx()) == 15

    def test_percent_penalty_floors(self, make_ctx):
        assert dealt(mod(Effect(EffectType.PERCENT_DAMAGE_PENALTY, 0.25)), 7, make_ctx()) == 5

    def test_suit_bonus_counts_own_cards(self, make_ctx):
        modifier = mod(Effect(EffectType.SUIT_DAMAGE_BONUS, 2, suit="hearts"))
        assert dealt(modifier, 0, make_ctx(player="Ah 5h 3d")) == 4

    def test_enemy_perspective_counts_dealer_cards(self, make_ctx):
        modifier = mod(Effect(EffectType.FACE_CARD_DAMAGE_BONUS, 3),
                       perspective=Perspective.ENEMY)
        assert dealt(modifier, 0, make_ctx(player="Kh Qd", dealer="Kc 7s")) == 3

    def test_color_bonus_counts_opponent_cards(self, make_ctx):
        modifier = mod(Effect(EffectType.COLOR_CARD_DAMAGE_BONUS, 2, color="red"))
        assert dealt(modifier, 0, make_ctx(dealer="10h 7d")) == 4
        assert dealt(modifier, 0, make_ctx(dealer="10c 7s")) == 0

    def test_even_and_odd(self, make_ctx):
        ctx = make_ctx(player="2h 3d Kc 4s")
        assert dealt(mod(Effect(EffectType.EVEN_CARD_BONUS, 1)), 0, ctx) == 2
        assert dealt(mod(Effect(EffectType.ODD_CARD_BONUS, 1)), 0, ctx) == 1

    def test_blackjack_bonus(self, make_ctx):
        modifier = mod(Effect(EffectType.BLACKJACK_BONUS_DAMAGE, 10))
        assert dealt(modifier, 6, make_ctx(player="Ah Kd")) == 16
        assert dealt(modifier, 6, make_ctx()) == 6

    def test_conditional_flat_damage(self, make_ctx):
        modifier = mod(Effect(EffectType.CONDITIONAL_FLAT_DAMAGE, 2, bonus_value=5,
                              condition=Condition(ConditionType.ON_SOFT_HAND)))
        assert dealt(modifier, 0, make_ctx(player="Ah 7d")) == 7
        assert dealt(modifier, 0, make_ctx(player="10h 8d")) == 2

    def test_consecutive_loss_bonus_capped(self, make_ctx):
        modifier = mod(Effect(EffectType.CONSECUTIVE_LOSS_DAMAGE_BONUS, 2, max_value=5))
        assert dealt(modifier, 0, make_ctx(consecutive_losses=1)) == 2
        assert dealt(modifier, 0, make_ctx(consecutive_losses=4)) == 5

    def test_first_hand_multiplier(self, make_ctx):
        modifier = mod(Effect(EffectType.FIRST_HAND_DAMAGE_MULTIPLIER, 2.0))
        assert dealt(modifier, 10, make_ctx(hand_number=1)) == 20
        assert dealt(modifier, 10, make_ctx(hand_number=2)) == 10

    def test_dealer_hand_size(self, make_ctx):
        modifier = mod(Effect(EffectType.DEALER_HAND_SIZE_BONUS_DAMAGE, 5, threshold=4))
        assert dealt(modifier, 0, make_ctx(dealer="2c 3s 4d 5h")) == 5
        assert dealt(modifier, 0, make_ctx()) == 0

    def test_scaling_per_win(self, make_ctx):
        modifier = mod(Effect(EffectType.SCALING_DAMAGE_PER_WIN, 2))
        assert dealt(modifier, 1, make_ctx(hands_won_this_battle=3)) == 7

    def test_five_card_charlie(self, make_ctx):
        modifier = mod(Effect(EffectType.FIVE_CARD_CHARLIE, 10))
        assert dealt(modifier, 0, make_ctx(player="2h 3d 4c 2s 3h")) == 10

    def test_gated_effect(self, make_ctx):
        modifier = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5,
                              condition=Condition(ConditionType.HAND_CONTAINS_PAIR)))
        assert dealt(modifier, 1, make_ctx(player="8h 8d")) == 6
        assert dealt(modifier, 1, make_ctx(player="8h 9d")) == 1


# =============================================================================
# Damage received and dodge
# =============================================================================


class TestDefense:

    def test_flat_reduction_floors_at_zero(self, make_ctx):
        modifier = mod(Effect(EffectType.FLAT_DAMAGE_REDUCTION, 5))
        assert received(modifier, 10, make_ctx()) == 5
        assert received(modifier, 3, make_ctx()) == 0

    def test_percent_reduction(self, make_ctx):
        assert received(mod(Effect(EffectType.PERCENT_DAMAGE_REDUCTION, 0.25)), 10, make_ctx()) == 7

    def test_reduce_bust_damage(self, make_ctx):
        modifier = mod(Effect(EffectType.REDUCE_BUST_DAMAGE, 0.5))
        assert received(modifier, 10, make_ctx(player="Kh Qd 5c")) == 5
        assert received(modifier, 10, make_ctx()) == 10

    def test_suit_in_attacker_hand(self, make_ctx):
        modifier = mod(Effect(EffectType.SUIT_IN_ATTACKER_HAND_DAMAGE_REDUCTION, 0.5, suit="spades"))
        assert received(modifier, 10, make_ctx(dealer="10c 7s")) == 5
        assert received(modifier, 10, make_ctx(dealer="10c 7d")) == 10

    def test_extra_damage_on_dealer_blackjack(self, make_ctx):
        modifier = mod(Effect(EffectType.EXTRA_DAMAGE_ON_DEALER_BLACKJACK, 4),
                       source=ModifierSource.CURSE)
        assert received(modifier, 5, make_ctx(dealer="As Kc")) == 9

    def test_random_suit_picked_on_battle_start(self, make_ctx):
        ctx = make_ctx()
        modifier = mod(Effect(EffectType.RANDOM_SUIT_DAMAGE_REDUCTION, 0.5))
        assert received(modifier, 10, ctx) == 10
        fire_hook([modifier], ModifierHook.ON_BATTLE_START, ctx)
        assert ctx.rng.counter == 1
        assert modifier.state["effect_0"]["suit"] in {"hearts", "diamonds", "clubs", "spades"}

    def test_dodge_certain_and_never(self, make_ctx):
        ctx = make_ctx()
        assert check_dodge([mod(Effect(EffectType.DODGE_CHANCE, 1.0))], ctx)
        assert not check_dodge([mod(Effect(EffectType.DODGE_CHANCE, 0.0))], ctx)
        assert ctx.rng.counter == 2

    def test_dodge_rate(self, make_ctx):
        ctx = make_ctx()
        modifier = mod(Effect(EffectType.DODGE_CHANCE, 0.2))
        dodges = 0
        for i in range(1000):
            ctx.rng = Random(f"dodge-{i}")
            dodges += check_dodge([modifier], ctx)
            assert ctx.rng.counter == 1
        assert 140 <= dodges <= 260

    def test_gated_dodge_draws_nothing(self, make_ctx):
        ctx = make_ctx(player="10h 6d")  # loses to 17
        modifier = mod(Effect(EffectType.DODGE_CHANCE, 1.0,
                              condition=Condition(ConditionType.ON_WIN)))
        assert not check_dodge([modifier], ctx)
        assert ctx.rng.counter == 0

    def test_first_dodge_short_circuits(self, make_ctx):
        ctx = make_ctx()
        calls = []
        second = Modifier(id="probe", name="Probe", description="",
                          source=ModifierSource.EQUIPMENT)
        second.add_handler(ModifierHook.DODGE_CHECK, lambda c: calls.append(1) or False)
        assert check_dodge([mod(Effect(EffectType.DODGE_CHANCE, 1.0)), second], ctx)
        assert calls == []


# =============================================================================
# Bust overrides
# =============================================================================


class TestBustOverrides:

    def test_bust_save(self, make_ctx, hand):
        ctx = make_ctx(player="Kh Qd 5c")
        result = check_bust_override([mod(Effect(EffectType.BUST_SAVE, 12))],
                                     hand("Kh Qd 5c"), 25, ctx)
        assert result.effective_score == 12
        assert not result.busted

    def test_last_card_halved(self, make_ctx, hand):
        ctx = make_ctx(player="Kh 5d Qc")
        modifier = mod(Effect(EffectType.BUST_CARD_VALUE_HALVED, 1))
        assert check_bust_override([modifier], hand("Kh 5d Qc"), 25, ctx).effective_score == 20
        # 25 - 5 + 2 = 22 is still a bust
        assert check_bust_override([modifier], hand("Kh Qd 5c"), 25, ctx) is None

    def test_ignore_highest_card(self, make_ctx, hand):
        ctx = make_ctx(player="Kh Qd 5c")
        modifier = mod(Effect(EffectType.IGNORE_CARD_ON_BUST, 1))
        assert check_bust_override([modifier], hand("Kh Qd 5c"), 25, ctx).effective_score == 15

    def test_first_rescue_wins(self, make_ctx, hand):
        ctx = make_ctx()
        modifiers = [mod(Effect(EffectType.BUST_SAVE, 10)), mod(Effect(EffectType.BUST_SAVE, 15))]
        assert check_bust_override(modifiers, hand("Kh Qd 5c"), 25, ctx).effective_score == 10


# =============================================================================
# Lifecycle: healing, damage over time, gold
# =============================================================================


class TestLifecycle:

    def test_heal_on_win(self, make_ctx):
        ctx = make_ctx()
        ctx.player_state.hp = 40
        fire_hook([mod(Effect(EffectType.HEAL_ON_WIN, 5))], ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.hp == 45

    def test_heal_clamps_to_max(self, make_ctx):
        ctx = make_ctx()
        ctx.player_state.hp = 48
        fire_hook([mod(Effect(EffectType.HEAL_PER_HAND, 5))], ModifierHook.ON_HAND_START, ctx)
        assert ctx.player_state.hp == 50

    def test_no_heal_on_loss(self, make_ctx):
        ctx = make_ctx(player="10h 6d")
        ctx.player_state.hp = 40
        fire_hook([mod(Effect(EffectType.HEAL_ON_WIN, 5))], ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.hp == 40

    def test_lifesteal(self, make_ctx):
        ctx = make_ctx(last_damage_dealt=9)
        ctx.player_state.hp = 40
        fire_hook([mod(Effect(EffectType.LIFESTEAL, 0.5))], ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.hp == 44

    def test_damage_per_hand(self, make_ctx):
        ctx = make_ctx()
        fire_hook([mod(Effect(EffectType.DAMAGE_PER_HAND, 5))], ModifierHook.ON_HAND_START, ctx)
        assert ctx.enemy_state.hp == 45

    def test_poison_escalates_and_resets(self, make_ctx):
        ctx = make_ctx()
        modifier = mod(Effect(EffectType.POISON, 2))
        fire_hook([modifier], ModifierHook.ON_BATTLE_START, ctx)
        for _ in range(3):
            fire_hook([modifier], ModifierHook.ON_HAND_START, ctx)
        assert ctx.enemy_state.hp == 50 - (2 + 3 + 4)
        fire_hook([modifier], ModifierHook.ON_BATTLE_START, ctx)
        fire_hook([modifier], ModifierHook.ON_HAND_START, ctx)
        assert ctx.enemy_state.hp == 41 - 2

    def test_dot_to_opponent_hook_depends_on_perspective(self, make_ctx):
        ctx = make_ctx()
        enemy_mod = mod(Effect(EffectType.DOT_TO_OPPONENT, 3), perspective=Perspective.ENEMY)
        player_mod = mod(Effect(EffectType.DOT_TO_OPPONENT, 3))
        assert enemy_mod.hooks == [ModifierHook.ON_HAND_START]
        assert player_mod.hooks == [ModifierHook.ON_HAND_END]
        fire_hook([enemy_mod], ModifierHook.ON_HAND_START, ctx)
        fire_hook([player_mod], ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.hp == 47
        assert ctx.enemy_state.hp == 47

    def test_max_hp_bonus_applies_once(self, make_ctx):
        ctx = make_ctx()
        modifier = mod(Effect(EffectType.MAX_HP_BONUS, 10))
        fire_hook([modifier], ModifierHook.ON_BATTLE_START, ctx)
        fire_hook([modifier], ModifierHook.ON_BATTLE_START, ctx)
        assert ctx.player_state.max_hp == 60
        assert ctx.player_state.hp == 60

    def test_self_damage_on_bust(self, make_ctx):
        ctx = make_ctx(player="Kh Qd 5c")
        fire_hook([mod(Effect(EffectType.SELF_DAMAGE_ON_BUST, 4), source=ModifierSource.CURSE)],
                  ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.hp == 46

    def test_gold_per_blackjack(self, make_ctx):
        ctx = make_ctx(player="Ah Kd")
        fire_hook([mod(Effect(EffectType.GOLD_PER_BLACKJACK, 5))], ModifierHook.ON_HAND_END, ctx)
        assert ctx.player_state.gold == 5

    def test_gold_transforms(self, make_ctx):
        ctx = make_ctx(hands_won_this_battle=2)
        modifier = mod(Effect(EffectType.FLAT_GOLD_BONUS, 5),
                       Effect(EffectType.PERCENT_GOLD_BONUS, 0.5),
                       Effect(EffectType.GOLD_IF_HANDS_WON_GTE, 10, threshold=2))
        assert apply_gold_earned([modifier], 10, ctx) == 32

    def test_gold_never_negative(self, make_ctx):
        drain = Modifier(id="drain", name="Drain", description="", source=ModifierSource.CURSE)
        drain.add_handler(ModifierHook.GOLD_EARNED, lambda gold, ctx: gold - 100)
        assert apply_gold_earned([drain], 10, make_ctx()) == 0

    def test_instant_effects_have_no_handlers(self):
        assert mod(Effect(EffectType.INSTANT_HEAL, 5)).hooks == []


# =============================================================================
# Draw latches
# =============================================================================


class TestDrawLatches:

    def test_latch_set_by_draw_and_cleared_by_hand_start(self, make_ctx, card):
        ctx = make_ctx()
        modifier = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5, condition=Condition(
            ConditionType.WHEN_PLAYER_DRAWS_SUIT, suit="hearts")))
        assert dealt(modifier, 0, ctx) == 0

        fire_card_drawn([modifier], card("5d"), "player", ctx)
        fire_card_drawn([modifier], card("5h"), "dealer", ctx)
        assert dealt(modifier, 0, ctx) == 0

        fire_card_drawn([modifier], card("5h"), "player", ctx)
        assert dealt(modifier, 0, ctx) == 5
        fire_card_drawn([modifier], card("2c"), "player", ctx)
        assert dealt(modifier, 0, ctx) == 5

        fire_hook([modifier], ModifierHook.ON_HAND_START, ctx)
        assert dealt(modifier, 0, ctx) == 0

    def test_latches_are_per_modifier(self, make_ctx, card):
        ctx = make_ctx()
        condition = Condition(ConditionType.WHEN_DEALER_DRAWS_RANK, rank="K")
        first = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5, condition=condition))
        second = mod(Effect(EffectType.FLAT_DAMAGE_BONUS, 5, condition=condition))
        fire_card_drawn([first], card("Kc"), "dealer", ctx)
        assert dealt(first, 0, ctx) == 5
        assert dealt(second, 0, ctx) == 0

    def test_context_rng_untouched_by_latches(self, make_ctx, card):
        ctx = make_ctx()
        ctx.rng = Random("latch")
        modifier = mod(Effect(EffectType.HEAL_ON_WIN, 3, condition=Condition(
            ConditionType.WHEN_PLAYER_DRAWS_RANK, rank="A")))
        fire_card_drawn([modifier], card("Ah"), "player", ctx)
        assert ctx.rng.counter == 0
