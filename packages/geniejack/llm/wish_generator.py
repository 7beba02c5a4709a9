"""
Wish -> blessing generation.

The engine never calls the network. A front end builds a WishContext from
the genie-phase view, calls generate_blessing() and passes the returned
definition to EnterWish(text, blessing.to_dict()). Any failure (no key,
HTTP error, timeout, non-JSON reply, wrong shape) is logged and replaced
by the fixed fallback blessing; generate_blessing() never raises.

Usage:
    ctx = build_wish_context(engine.get_view())
    blessing = generate_blessing("Make me strong", ctx)
    engine.perform_action(EnterWish("Make me strong", blessing.to_dict()))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

import httpx

from ..config import Settings, load_settings
from ..effects.types import BlessingDefinition, ConditionType, EffectType, INSTANT_EFFECTS
from ..effects.validation import MAX_EFFECTS, fallback_blessing, validate_blessing_definition
from .client import OpenRouterClient, parse_json_reply

logger = logging.getLogger(__name__)

# Effects a blessing may not grant
_EXCLUDED_EFFECTS = frozenset(INSTANT_EFFECTS) | {
    EffectType.EXTRA_DAMAGE_ON_DEALER_BLACKJACK,
    EffectType.PERCENT_DAMAGE_PENALTY,
    EffectType.SELF_DAMAGE_ON_BUST,
    EffectType.ENABLE_SPLIT,
}
BLESSING_EFFECT_TAGS = [t.value for t in EffectType if t not in _EXCLUDED_EFFECTS]
CONDITION_TAGS = [c.value for c in ConditionType]

SYSTEM_PROMPT = f"""You are the Genie in a rogue-like blackjack game called GenieJack. A player has defeated a powerful boss and earned a Wish. Interpret their wish creatively and grant a blessing: a set of gameplay effects that last for the rest of the run.

Reply with a single JSON object and nothing else:
{{"name": str, "description": str, "effects": [{{"type": str, "value": number, "suit"?: str, "rank"?: str, "ranks"?: [str], "color"?: "red"|"black", "condition"?: {{"type": str, "value"?: number, "rank"?: str, "suit"?: str}}}}]}}

Guidelines:
- Choose 1 to {MAX_EFFECTS} effects that thematically fit the wish.
- Give the blessing a short, evocative name (under 40 characters).
- Write a one-sentence description of what the blessing does.
- Use 1 as the value of on/off effects. Values are clamped to safe ranges.
- Scale effect values with the stage (early = weaker, late = stronger).
- Suits: hearts, diamonds, clubs, spades. Ranks: 2-10, J, Q, K, A.

Effect types: {", ".join(BLESSING_EFFECT_TAGS)}

Condition types: {", ".join(CONDITION_TAGS)}"""


@dataclass
class WishContext:
    player_hp: int
    player_max_hp: int
    player_gold: int
    current_stage: int
    boss_defeated: str
    equipped_items: List[str] = field(default_factory=list)
    consumables: List[str] = field(default_factory=list)
    existing_blessings: List[str] = field(default_factory=list)
    existing_curses: List[str] = field(default_factory=list)


def build_wish_context(view: Mapping[str, Any]) -> WishContext:
    """Build the collaborator context from GameEngine.get_view()."""
    player = view["player"]
    genie = view.get("genie") or {}
    wishes = player.get("wishes", [])
    return WishContext(
        player_hp=player["hp"],
        player_max_hp=player["max_hp"],
        player_gold=player["gold"],
        current_stage=view["stage"],
        boss_defeated=genie.get("boss_name", "Unknown"),
        equipped_items=[item["name"] for item in player["equipment"].values() if item],
        consumables=[c["name"] for c in player.get("consumables", [])],
        existing_blessings=[w["blessing"]["description"] for w in wishes if w.get("blessing")],
        existing_curses=[w["curse"]["name"] for w in wishes if w.get("curse")],
    )


def _listing(values: List[str]) -> str:
    return ", ".join(values) if values else "none"


def build_user_message(wish_text: str, context: WishContext) -> str:
    return (
        f'The player says: "{wish_text}"\n\n'
        "Current situation:\n"
        f"- HP: {context.player_hp}/{context.player_max_hp}\n"
        f"- Gold: {context.player_gold}\n"
        f"- Equipment: {_listing(context.equipped_items)}\n"
        f"- Consumables: {_listing(context.consumables)}\n"
        f"- Stage: {context.current_stage} (just defeated {context.boss_defeated})\n"
        f"- Existing blessings: {_listing(context.existing_blessings)}\n"
        f"- Active curses: {_listing(context.existing_curses)}"
    )


def generate_blessing(wish_text: str, context: WishContext,
                      client: Optional[OpenRouterClient] = None,
                      settings: Optional[Settings] = None) -> BlessingDefinition:
    """
    Ask the model for a blessing matching `wish_text`.

    Args:
        wish_text: The player's free-text wish
        context: Run summary for the prompt
        client: Client to use (not closed); one is created from settings otherwise
        settings: Used when no client is given; defaults to load_settings()

    Returns:
        A validated BlessingDefinition (the fallback on any failure)
    """
    owns_client = client is None
    if client is None:
        settings = settings or load_settings()
        if not settings.api_key:
            logger.warning("No API key configured, granting the fallback blessing")
            return fallback_blessing()
        client = OpenRouterClient.from_settings(settings)

    try:
        reply = client.complete(
            build_user_message(wish_text, context),
            system=SYSTEM_PROMPT,
            json_mode=True,
        )
        raw = parse_json_reply(reply)
        if not isinstance(raw, dict):
            logger.warning("Blessing response is not an object, granting the fallback blessing")
            return fallback_blessing()
        return validate_blessing_definition(raw)
    except httpx.HTTPError as exc:
        logger.warning("Blessing request failed (%s), granting the fallback blessing", exc)
        return fallback_blessing()
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.warning("Malformed blessing response (%s), granting the fallback blessing", exc)
        return fallback_blessing()
    finally:
        if owns_client:
            client.close()
