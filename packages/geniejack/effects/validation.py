"""
Blessing validation - turn untrusted boon data into a well-formed definition.

validate_blessing_definition() never raises. Out-of-range values are
clamped into their bounds, boolean flags forced, bad qualifiers replaced
with defaults, and unrecognised or missing effects replaced with the
fallback flat damage bonus.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Union

from ..state.cards import RANK_VALUES, SUIT_VALUES
from .bounds import EFFECT_BOUNDS
from .types import (
    BlessingDefinition, Condition, ConditionType, Effect, EffectType,
)

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 60
MAX_EFFECTS = 3
FALLBACK_VALUE = 3
MAX_MAGNITUDE = 1e9
DEFAULT_NAME = "Blessing"
DEFAULT_DESCRIPTION = "A magical blessing"
DEFAULT_SUIT = "hearts"
DEFAULT_RANK = "A"
COLORS = ("red", "black")

# Defaults for qualifiers a bounds row requires but the input omitted
QUALIFIER_DEFAULTS: Dict[str, Any] = {
    "bonus_value": 0,
    "threshold": 2,
    "max_value": 10,
    "min_score": 18,
    "max_score": 20,
}
THRESHOLD_DEFAULTS = {
    EffectType.DEALER_HAND_SIZE_BONUS_DAMAGE: 4,
    EffectType.GOLD_IF_HANDS_WON_GTE: 2,
}
NUMERIC_QUALIFIERS = (
    ("bonus_value", ("bonusValue",)),
    ("threshold", ()),
    ("max_value", ("max",)),
    ("min_score", ("minScore",)),
    ("max_score", ("maxScore",)),
)


def fallback_effect() -> Effect:
    return Effect(type=EffectType.FLAT_DAMAGE_BONUS, value=FALLBACK_VALUE)


def fallback_blessing() -> BlessingDefinition:
    """The fixed boon used whenever generation fails: +3 flat damage."""
    return BlessingDefinition(
        name="Minor Boon",
        description=f"+{FALLBACK_VALUE} flat damage",
        effects=[fallback_effect()],
    )


def valid_suit(suit: Any) -> str:
    if not isinstance(suit, str):
        return DEFAULT_SUIT
    return suit if suit in SUIT_VALUES else DEFAULT_SUIT


def _rank_text(rank: Any) -> Optional[str]:
    if isinstance(rank, bool) or not isinstance(rank, (str, int)):
        return None
    return str(rank)


def valid_rank(rank: Any) -> str:
    rank = _rank_text(rank)
    return rank if rank in RANK_VALUES else DEFAULT_RANK


def valid_ranks(ranks: Any) -> List[str]:
    if isinstance(ranks, (list, tuple)):
        cleaned = [_rank_text(r) for r in ranks if _rank_text(r) in RANK_VALUES]
        if cleaned:
            return cleaned
    return [DEFAULT_RANK]


def _as_number(value: Any) -> Optional[float]:
    """A finite number, or None. NaN, infinities and huge ints count as missing."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int):
        return value if abs(value) <= MAX_MAGNITUDE else None
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or abs(number) > MAX_MAGNITUDE:
        return None
    return number


def _tidy(number: float):
    """Integral floats become ints so definitions serialise cleanly."""
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _truncate(text: Any, default: str) -> str:
    if not isinstance(text, str) or not text:
        return default
    return text[:MAX_TEXT_LENGTH]


def _field(raw: Union[Effect, Mapping[str, Any]], name: str, *aliases: str) -> Any:
    if isinstance(raw, Effect):
        return getattr(raw, name, None)
    for key in (name,) + aliases:
        if key in raw:
            return raw[key]
    return None


def _validate_condition(raw: Any) -> Optional[Condition]:
    if raw is None:
        return None
    if isinstance(raw, Condition):
        return raw
    if not isinstance(raw, Mapping):
        return None
    try:
        cond_type = ConditionType(raw.get("type"))
    except ValueError:
        logger.warning("Dropping unknown condition type %r", raw.get("type"))
        return None
    condition = Condition(type=cond_type)
    number = _as_number(raw.get("value"))
    if number is not None:
        condition.value = number
    if raw.get("rank") is not None:
        condition.rank = valid_rank(raw.get("rank"))
    if raw.get("suit") is not None:
        condition.suit = valid_suit(raw.get("suit"))
    return condition


def validate_effect(raw: Any) -> Effect:
    """Validate one effect; anything unusable becomes the fallback effect."""
    if isinstance(raw, Effect):
        effect_type = raw.type
    elif isinstance(raw, Mapping):
        try:
            effect_type = EffectType(raw.get("type"))
        except ValueError:
            logger.warning("Substituting fallback for unknown effect type %r", raw.get("type"))
            return fallback_effect()
    else:
        logger.warning("Substituting fallback for malformed effect %r", raw)
        return fallback_effect()

    bounds = EFFECT_BOUNDS[effect_type]
    number = _as_number(_field(raw, "value"))
    value = bounds.clamp(bounds.min if number is None else number)
    effect = Effect(type=effect_type, value=_tidy(value))

    if "suit" in bounds.requires:
        effect.suit = valid_suit(_field(raw, "suit"))
    if "rank" in bounds.requires:
        effect.rank = valid_rank(_field(raw, "rank"))
    if "ranks" in bounds.requires:
        effect.ranks = valid_ranks(_field(raw, "ranks"))
    if "color" in bounds.requires:
        color = _field(raw, "color")
        effect.color = color if color in COLORS else COLORS[0]

    for name, aliases in NUMERIC_QUALIFIERS:
        number = _as_number(_field(raw, name, *aliases))
        if number is None and name in bounds.requires:
            number = THRESHOLD_DEFAULTS.get(effect_type, QUALIFIER_DEFAULTS[name]) \
                if name == "threshold" else QUALIFIER_DEFAULTS[name]
        if number is not None:
            setattr(effect, name, _tidy(max(0, number)))

    effect.condition = _validate_condition(_field(raw, "condition"))
    duration = _as_number(_field(raw, "duration"))
    if duration is not None and duration > 0:
        effect.duration = int(duration)
    return effect


def validate_blessing_definition(definition: Any) -> BlessingDefinition:
    """
    Validate a boon definition from an untrusted source.

    Accepts a BlessingDefinition or a plain mapping (decoded JSON). Always
    returns a definition with a capped name/description and 1-3 valid
    effects.
    """
    if isinstance(definition, BlessingDefinition):
        name, description, effects = definition.name, definition.description, definition.effects
    elif isinstance(definition, Mapping):
        name = definition.get("name")
        description = definition.get("description")
        effects = definition.get("effects")
    else:
        logger.warning("Blessing definition is not a mapping: %r", type(definition).__name__)
        return fallback_blessing()

    if not isinstance(effects, (list, tuple)):
        effects = []
    effects = list(effects)[:MAX_EFFECTS]
    if not effects:
        logger.warning("Blessing %r has no effects, using fallback", name)
        validated = [fallback_effect()]
    else:
        validated = [validate_effect(effect) for effect in effects]

    return BlessingDefinition(
        name=_truncate(name, DEFAULT_NAME),
        description=_truncate(description, DEFAULT_DESCRIPTION),
        effects=validated,
    )
