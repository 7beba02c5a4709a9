"""
Genie encounter: turns a defeated boss into a Wish.

The curse is fixed by the boss (or the "No Curse" placeholder). A blessing
is only attached when a definition is supplied; it always goes through
validate_blessing_definition before being compiled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..content.combatants import no_curse_modifier
from ..effects.builder import build_blessing_modifier
from ..effects.validation import validate_blessing_definition
from ..registry import Modifier
from ..state.run import CombatantData, Wish

logger = logging.getLogger(__name__)


@dataclass
class GenieEncounter:
    boss_name: str
    curse: Modifier
    blessing_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boss_name": self.boss_name,
            "curse_name": self.curse.name,
            "curse_description": self.curse.description,
            "blessing_entered": self.blessing_text is not None,
        }


def create_genie_encounter(boss: CombatantData) -> GenieEncounter:
    curse = boss.curse if boss.curse is not None else no_curse_modifier()
    return GenieEncounter(boss_name=boss.name, curse=curse)


def store_blessing_wish(encounter: GenieEncounter, text: str,
                        blessing: Optional[Any] = None) -> Wish:
    """
    Record the player's wish.

    Args:
        encounter: Active genie encounter
        text: Free-text wish, kept verbatim
        blessing: Optional BlessingDefinition or raw mapping from the
            boon generator; validated, never trusted

    Returns:
        Wish with the boss curse and, if supplied, the compiled blessing
    """
    encounter.blessing_text = text
    modifier = None
    if blessing is not None:
        definition = validate_blessing_definition(blessing)
        modifier = build_blessing_modifier(definition)
        logger.info("Blessing granted: %s (%s)", definition.name, definition.description)
    return Wish(
        blessing_text=text or "",
        curse=encounter.curse,
        boss_name=encounter.boss_name,
        blessing=modifier,
    )
