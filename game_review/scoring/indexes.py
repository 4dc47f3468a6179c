"""
Index definitions – named sub-metrics and their weights.

Every index is a weighted sum of sub-metrics that are each clamped to
[0, 100] first; the weights of an index sum to 1.0 and every sub-metric is
oriented so that a larger value never lowers the score.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping

logger = logging.getLogger(__name__)


INDEX_WEIGHTS: dict[str, dict[str, float]] = {
    "precision": {
        "overall_accuracy": 0.30,
        "blunder_avoidance": 0.25,
        "cpl_control": 0.20,
        "opening_accuracy": 0.10,
        "middlegame_accuracy": 0.10,
        "endgame_accuracy": 0.05,
    },
    "tactical_danger": {
        "found_rate": 0.40,
        "missed_mate_avoidance": 0.20,
        "missed_winning_avoidance": 0.20,
        "brilliant_moments": 0.20,
    },
    "stability": {
        "post_blunder_composure": 0.35,
        "unhurried_moves": 0.20,
        "consistency": 0.25,
        "adverse_moment_avoidance": 0.20,
    },
    "conversion": {
        "result_from_winning": 0.50,
        "accuracy_while_ahead": 0.30,
        "missed_win_avoidance": 0.20,
    },
    "preparation": {
        "opening_accuracy": 0.60,
        "evaluation_after_move_10": 0.20,
        "evaluation_after_move_15": 0.20,
    },
    "positional": {
        "overall_accuracy": 0.50,
        "blunder_avoidance": 0.20,
        "middlegame_accuracy": 0.20,
        "inaccuracy_avoidance": 0.10,
    },
    "aggression": {
        "forcing_move_rate": 0.40,
        "check_rate": 0.20,
        "opponent_half_share": 0.40,
    },
    "simplification": {
        "trade_rate": 0.50,
        "early_queen_trade": 0.20,
        "material_reduction": 0.30,
    },
    "training_transfer": {
        "accuracy_trend": 0.60,
        "versus_history": 0.40,
    },
}

INDEX_NAMES = tuple(INDEX_WEIGHTS)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp into [low, high]; NaN goes to ``low``."""
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


def weighted_index(name: str, components: Mapping[str, float]) -> float:
    """Combine ``components`` with the weights registered for ``name``."""
    weights = INDEX_WEIGHTS[name]
    missing = set(weights) - set(components)
    if missing:
        raise KeyError(f"{name}: missing sub-metrics {sorted(missing)}")

    total = 0.0
    for key, weight in weights.items():
        raw = components[key]
        value = clamp(raw)
        if value != raw:
            logger.debug(f"{name}.{key} clamped from {raw} to {value}")
        total += value * weight

    return round(clamp(total), 1)
