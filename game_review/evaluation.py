"""
Evaluation arithmetic – mate mapping, perspective flips, move classification.

Every engine score is reduced to a single signed integer
("centipawn-equivalent") so downstream code never branches on mate vs.
centipawn scores. Mate distances saturate near ±MATE_SCORE, which puts any
thrown-away forced mate far beyond the blunder threshold.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import chess.engine


MATE_SCORE = 100_000
MATE_THRESHOLD = 90_000  # anything beyond this is a forced mate

# Swing arithmetic cap (±100 pawns) so mate values do not dominate reports
EVAL_CAP = 10_000


# ═══════════════════════════════════════════════════════════
# Evaluation
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Evaluation:
    """
    Engine score from the perspective of the side to move.

    Exactly one of ``cp`` / ``mate_in`` is set. ``mate_in`` > 0 means the
    side to move mates; < 0 or 0 means it gets mated (0 = already mated).
    """

    cp: Optional[int] = None
    mate_in: Optional[int] = None

    def __post_init__(self):
        if (self.cp is None) == (self.mate_in is None):
            raise ValueError("Evaluation needs exactly one of cp / mate_in")

    @classmethod
    def from_score(cls, score: chess.engine.Score) -> Evaluation:
        """Build from a python-chess score already relative to the side to move."""
        mate = score.mate()
        if mate is not None:
            return cls(mate_in=mate)
        return cls(cp=score.score())

    @property
    def is_mate(self) -> bool:
        return self.mate_in is not None

    @property
    def centipawns(self) -> int:
        if self.mate_in is None:
            return self.cp
        return mate_to_centipawns(self.mate_in)

    def negate(self) -> Evaluation:
        if self.mate_in is None:
            return Evaluation(cp=-self.cp)
        if self.mate_in == 0:
            # Side to move is mated; the other side has delivered mate.
            return Evaluation(cp=MATE_SCORE)
        return Evaluation(mate_in=-self.mate_in)

    def to_dict(self) -> dict:
        return {"cp": self.cp, "mate_in": self.mate_in, "centipawns": self.centipawns}


def mate_to_centipawns(mate_in: int) -> int:
    """Map mate-in-N (side-to-move POV) to a saturating centipawn value."""
    if mate_in > 0:
        return MATE_SCORE - mate_in
    # Negative (or zero) = side to move is being mated
    return -MATE_SCORE - mate_in


def is_mate_score(value: int) -> bool:
    return abs(value) >= MATE_THRESHOLD


def cap(value: int, limit: int = EVAL_CAP) -> int:
    return max(-limit, min(limit, value))


def format_score(value: int) -> str:
    """'+1.25' for centipawns, 'M3' / '-M3' for mates."""
    if is_mate_score(value):
        distance = MATE_SCORE - abs(value)
        return f"M{distance}" if value > 0 else f"-M{distance}"
    return f"{value / 100:+.2f}"


# ═══════════════════════════════════════════════════════════
# Move Classification
# ═══════════════════════════════════════════════════════════


class MoveClassification(str, Enum):
    """Five ordered severities, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"

    @property
    def severity(self) -> int:
        return CLASSIFICATION_ORDER.index(self)


CLASSIFICATION_ORDER = list(MoveClassification)

# Max centipawn loss (inclusive) for each bucket; anything above MISTAKE is a blunder.
MOVE_THRESHOLDS = {
    MoveClassification.EXCELLENT: 10,
    MoveClassification.GOOD: 25,
    MoveClassification.INACCURACY: 75,
    MoveClassification.MISTAKE: 200,
}

CLASSIFICATION_ACCURACY = {
    MoveClassification.EXCELLENT: 100,
    MoveClassification.GOOD: 90,
    MoveClassification.INACCURACY: 70,
    MoveClassification.MISTAKE: 40,
    MoveClassification.BLUNDER: 0,
}


def classify_move(cp_loss: float) -> MoveClassification:
    """
    Classify a move from its centipawn loss (>= 0).

    Buckets are contiguous: <=10 excellent, <=25 good, <=75 inaccuracy,
    <=200 mistake, otherwise blunder.
    """
    if cp_loss < 0 or math.isnan(cp_loss):
        raise ValueError(f"centipawn loss must be >= 0, got {cp_loss}")
    for classification, limit in MOVE_THRESHOLDS.items():
        if cp_loss <= limit:
            return classification
    return MoveClassification.BLUNDER


def accuracy_for(classification: MoveClassification) -> int:
    return CLASSIFICATION_ACCURACY[classification]
