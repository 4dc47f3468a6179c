"""
Critical moment detection – evaluation swings worth a second look.

Swings are measured in a single frame (White-relative) so a sequence of
moments reads like the evaluation graph. The moment's type is judged from
the mover's point of view, most specific type first.
"""

from __future__ import annotations

from typing import Iterable

from .evaluation import MoveClassification, cap
from .schemas import AnalyzedMove, CriticalMoment, MomentType


CRITICAL_SWING_CP = 100  # 1 pawn
WINNING_THRESHOLD = 200  # +2.0 pawns
MISSED_WIN_MIN_LOSS = 100
BRILLIANT_SWING_CP = 300
BRILLIANT_MAX_LOSS = 10


def to_white_frame(value: int, color: str) -> int:
    return value if color == "white" else -value


def classify_moment(move: AnalyzedMove, white_before: int, white_after: int) -> MomentType:
    """Pick the most specific label for a swing across ``move``."""
    mover_swing = move.evaluation_after - move.evaluation_before
    cp_loss = move.centipawn_loss

    if mover_swing < 0 and move.classification == MoveClassification.BLUNDER:
        return MomentType.BLUNDER

    if (
        move.evaluation_before >= WINNING_THRESHOLD
        and not move.played_best
        and cp_loss >= MISSED_WIN_MIN_LOSS
    ):
        return MomentType.MISSED_WIN

    if white_before * white_after < 0:
        return MomentType.TURNING_POINT

    if mover_swing >= BRILLIANT_SWING_CP and cp_loss <= BRILLIANT_MAX_LOSS:
        return MomentType.BRILLIANT

    return MomentType.TURNING_POINT


def describe_moment(move: AnalyzedMove, moment_type: MomentType, swing_pawns: float) -> str:
    san = move.move.san
    magnitude = abs(swing_pawns)
    if moment_type == MomentType.BLUNDER:
        return f"Blunder with {san}, lost {magnitude:.1f} pawns"
    if moment_type == MomentType.MISSED_WIN:
        best = f" ({move.best_move} was stronger)" if move.best_move else ""
        return f"Let a winning advantage slip with {san}{best}"
    if moment_type == MomentType.BRILLIANT:
        return f"Strong punishing move {san}, gained {magnitude:.1f} pawns"
    return f"Evaluation swing of {magnitude:.1f} pawns after {san}"


def detect_critical_moments(
    moves: Iterable[AnalyzedMove],
    threshold_cp: int = CRITICAL_SWING_CP,
) -> list[CriticalMoment]:
    """Report every analyzed move whose White-frame swing exceeds ``threshold_cp``."""
    moments = []
    for move in moves:
        if not move.is_analyzed:
            continue

        white_before = cap(to_white_frame(move.evaluation_before, move.color))
        white_after = cap(to_white_frame(move.evaluation_after, move.color))
        swing_cp = white_after - white_before
        if abs(swing_cp) <= threshold_cp:
            continue

        moment_type = classify_moment(move, white_before, white_after)
        swing_pawns = round(swing_cp / 100, 2)
        moments.append(CriticalMoment(
            move_number=move.move_number,
            ply=move.ply,
            color=move.color,
            type=moment_type,
            swing=swing_pawns,
            evaluation_before=white_before,
            evaluation_after=white_after,
            description=describe_moment(move, moment_type, swing_pawns),
            best_move=move.best_move,
        ))
    return moments
