"""
Static content: equipment, consumables, enemies, bosses and curses.

Everything here is a factory emitting Effect descriptors; each call
returns freshly compiled modifiers.
"""

from .combatants import (
    ENEMIES_PER_STAGE,
    STAGE_BOSSES,
    STAGE_ENEMIES,
    build_combatant,
    build_curse,
    get_all_enemy_definitions,
    get_boss_for_stage,
    no_curse_modifier,
    sample_enemies_for_stage,
)
from .consumables import (
    apply_consumable,
    get_all_consumables,
    get_consumable,
    tick_active_effects,
)
from .equipment import (
    EQUIPMENT_DEFS,
    build_equipment,
    equipment_ids_for_tier,
    get_all_equipment,
    get_equipment,
    get_equipment_by_slot_and_tier,
)
