"""Scoring and damage formulas."""

from .scoring import (
    PLAYER,
    DEALER,
    PUSH,
    floor_int,
    base_card_value,
    card_value,
    score_hand,
    compare_hands,
    calculate_base_damage,
)
