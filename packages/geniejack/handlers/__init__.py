"""Hand resolution and genie handlers driven by the GameEngine."""

from .combat import (
    CombatState,
    DamageOutcome,
    HandResult,
    build_hand_result,
    build_shoe,
    collect_modifiers,
    dealer_should_hit,
    draw_card,
    rescue_bust,
    run_damage_pipeline,
    score_for,
)
from .genie import GenieEncounter, create_genie_encounter, store_blessing_wish
