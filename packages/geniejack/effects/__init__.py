"""
Effect system: descriptors, bounds, validation, conditions and the
Effect -> Modifier builder.
"""

from .types import (
    EffectType, ConditionType, Effect, Condition, BlessingDefinition,
    INSTANT_EFFECTS, LATCHED_CONDITIONS,
)
from .bounds import EffectBounds, EFFECT_BOUNDS
from .validation import (
    validate_blessing_definition, validate_effect, fallback_blessing,
    FALLBACK_VALUE, MAX_EFFECTS, MAX_TEXT_LENGTH,
)
from .conditions import check_condition
from .builder import (
    HookBinder, EFFECT_COMPILERS, effect_compiler, build_modifier,
    build_blessing_modifier, blessing_modifier_id, missing_compilers,
)
