# game_review/scoring/__init__.py
"""Composite performance indexes.

Modules:
- indexes: sub-metric weights per index, clamping and combination
- calculator: builds sub-metrics from an analysis and produces CompositeScores
"""

from .calculator import CompositeScoreCalculator
from .indexes import INDEX_NAMES, INDEX_WEIGHTS, clamp, weighted_index

__all__ = [
    "CompositeScoreCalculator",
    "INDEX_NAMES",
    "INDEX_WEIGHTS",
    "clamp",
    "weighted_index",
]
