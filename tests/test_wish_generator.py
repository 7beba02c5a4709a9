"""
Blessing Generation Tests

The chat endpoint is replaced by httpx.MockTransport; nothing touches the
network.
"""

import json

import httpx
import pytest

from packages.geniejack.config import Settings
from packages.geniejack.content.combatants import get_boss_for_stage
from packages.geniejack.content.equipment import get_equipment
from packages.geniejack.effects import EffectType
from packages.geniejack.game import Continue
from packages.geniejack.llm import (
    ChatReply, OpenRouterClient, SYSTEM_PROMPT, WishContext, build_user_message,
    build_wish_context, generate_blessing, parse_json_reply,
)
from packages.geniejack.llm.wish_generator import BLESSING_EFFECT_TAGS
from packages.geniejack.state.run import EnemyState, EquipmentSlot

BASE_URL = "https://example.test/api/v1"


def make_client(handler):
    return OpenRouterClient("test-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))


def reply_with(content, status=200):
    def handler(request):
        return httpx.Response(status, json={
            "model": "mock/model",
            "choices": [{"message": {"content": content}}],
            "usage": {"total_tokens": 12},
        })
    return handler


def context():
    return WishContext(player_hp=30, player_max_hp=50, player_gold=12,
                       current_stage=1, boss_defeated="Ancient Strix")


# =============================================================================
# Client
# =============================================================================


class TestOpenRouterClient:

    def test_requires_key(self):
        with pytest.raises(ValueError):
            OpenRouterClient("")

    def test_request_payload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return reply_with('{"ok": true}')(request)

        with make_client(handler) as client:
            response = client.complete("hello", system="be brief", json_mode=True)

        assert seen["url"] == BASE_URL + "/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        body = seen["body"]
        assert body["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello"},
        ]
        assert body["response_format"] == {"type": "json_object"}
        assert response.model == "mock/model"
        assert response.usage == {"total_tokens": 12}

    def test_http_error_raises(self):
        with make_client(reply_with("", status=503)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.complete("hello")

    def test_from_settings(self):
        settings = Settings(api_key="k", base_url=BASE_URL, model="custom/model")
        client = OpenRouterClient.from_settings(settings, transport=httpx.MockTransport(reply_with("{}")))
        assert client.model == "custom/model"
        assert client.complete("x").content == "{}"
        client.close()

    def test_reply_fields(self):
        def handler(request):
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "hi"}, "finish_reason": "stop"}],
            })

        with make_client(handler) as client:
            reply = client.complete("hello")
        assert reply == ChatReply(content="hi", model=client.model, finish_reason="stop")

    def test_parse_json_reply(self):
        assert parse_json_reply(ChatReply('```json\n{"name": "x"}\n```', "m")) == {"name": "x"}
        assert parse_json_reply(ChatReply('  {"name": "y"} ', "m")) == {"name": "y"}
        with pytest.raises(ValueError):
            parse_json_reply(ChatReply("no json here", "m"))


# =============================================================================
# Prompt and context
# =============================================================================


class TestPrompt:

    def test_wish_context_from_view(self, engine, stack_shoe):
        boss = get_boss_for_stage(1)
        boss.equipment = []
        engine.enemy = EnemyState(data=boss, hp=1)
        engine.player.equipment[EquipmentSlot.WEAPON] = get_equipment("weapon_cloth")
        stack_shoe("Ah", "Kd", "9c", "8s")
        engine.perform_action(Continue())
        engine.perform_action(Continue())

        ctx = build_wish_context(engine.get_view())
        assert ctx.boss_defeated == "Ancient Strix"
        assert ctx.current_stage == 1
        assert ctx.player_gold == 25
        assert ctx.equipped_items == ["Flint Spear"]
        assert ctx.existing_curses == []

    def test_user_message(self):
        message = build_user_message("Make me strong", context())
        assert '"Make me strong"' in message
        assert "HP: 30/50" in message
        assert "Equipment: none" in message
        assert "just defeated Ancient Strix" in message

    def test_system_prompt_lists_effects(self):
        assert "flat_damage_bonus" in SYSTEM_PROMPT
        assert EffectType.SELF_DAMAGE_ON_BUST.value not in BLESSING_EFFECT_TAGS
        assert EffectType.INSTANT_HEAL.value not in BLESSING_EFFECT_TAGS
        assert EffectType.ENABLE_SPLIT.value not in BLESSING_EFFECT_TAGS


# =============================================================================
# generate_blessing
# =============================================================================


class TestGenerateBlessing:

    def test_valid_reply(self):
        content = json.dumps({
            "name": "Lion's Roar",
            "description": "Hit harder",
            "effects": [{"type": "flat_damage_bonus", "value": 999}],
        })
        client = make_client(reply_with(content))
        blessing = generate_blessing("strength", context(), client=client)
        assert blessing.name == "Lion's Roar"
        assert blessing.effects[0].type is EffectType.FLAT_DAMAGE_BONUS
        assert blessing.effects[0].value == 25
        assert not client.client.is_closed

    @pytest.mark.parametrize("handler", [
        reply_with("{}", status=500),
        reply_with("not json at all"),
        reply_with("[1, 2]"),
    ])
    def test_fallback_on_bad_reply(self, handler):
        blessing = generate_blessing("anything", context(), client=make_client(handler))
        assert blessing.name == "Minor Boon"
        assert blessing.effects[0].value == 3

    def test_fallback_on_missing_choices(self):
        client = make_client(lambda request: httpx.Response(200, json={"id": "x"}))
        assert generate_blessing("anything", context(), client=client).name == "Minor Boon"

    def test_fallback_on_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert generate_blessing("anything", context(), client=make_client(handler)).name == "Minor Boon"

    def test_fallback_without_key(self):
        blessing = generate_blessing("anything", context(), settings=Settings(api_key=None))
        assert blessing.name == "Minor Boon"

    def test_reply_with_malformed_qualifiers_is_repaired(self):
        content = json.dumps({"name": "Red Tide", "effects": [
            {"type": "suit_damage_bonus", "value": 2, "suit": ["hearts"], "duration": 1e300},
        ]})
        blessing = generate_blessing("hearts", context(), client=make_client(reply_with(content)))
        assert blessing.name == "Red Tide"
        assert blessing.effects[0].suit == "hearts"
        assert blessing.effects[0].duration is None

    def test_reply_without_effects_is_repaired(self):
        client = make_client(reply_with(json.dumps({"name": "Hollow", "effects": []})))
        blessing = generate_blessing("nothing", context(), client=client)
        assert blessing.name == "Hollow"
        assert blessing.effects[0].type is EffectType.FLAT_DAMAGE_BONUS
