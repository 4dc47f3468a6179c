"""
Tactical opportunity detection.

A position is "tactical" when the oracle's top move is decisively better
than the next distinct alternative. Whether the player found it is judged
from the played move; the motif is a label derived from the shape of the
top move on the pre-move board.
"""

from __future__ import annotations

from typing import Iterable, Optional

import chess

from .evaluation import MATE_THRESHOLD, cap
from .material import (
    PIECE_VALUES,
    captured_value,
    count_pinned,
    is_back_rank_check,
    is_fork,
    is_sacrifice,
)
from .schemas import Alternative, AnalyzedMove, TacticalOpportunity, TacticOutcome


TACTIC_GAP_CP = 150
FOUND_TOLERANCE_CP = 50

MOTIFS = (
    "mate",
    "fork-like",
    "discovered_attack",
    "back_rank",
    "pin",
    "sacrifice",
    "winning_capture",
    "other",
)


def decisive_gap(alternatives: tuple[Alternative, ...]) -> Optional[tuple[Alternative, Alternative]]:
    """Top line and the next distinct move, or None with fewer than two."""
    if not alternatives:
        return None
    top = alternatives[0]
    for alt in alternatives[1:]:
        if alt.move != top.move:
            return top, alt
    return None


def is_decisive(top: int, second: int, gap_cp: int = TACTIC_GAP_CP) -> bool:
    if top - second > gap_cp:
        return True
    return top >= MATE_THRESHOLD and second < MATE_THRESHOLD


def label_motif(board: chess.Board, best: chess.Move, top_evaluation: int) -> str:
    """First matching shape check, in MOTIFS order."""
    if top_evaluation >= MATE_THRESHOLD:
        return "mate"

    mover = board.turn
    is_capture = board.is_capture(best)
    after = board.copy(stack=False)
    after.push(best)
    gives_check = after.is_check()

    if is_capture and gives_check:
        return "fork-like"
    if is_fork(after, best.to_square):
        return "fork-like"

    if gives_check and best.to_square not in after.checkers():
        return "discovered_attack"

    if is_back_rank_check(after, best):
        return "back_rank"

    if count_pinned(after, not mover) > count_pinned(board, not mover):
        return "pin"

    if is_sacrifice(board, best):
        return "sacrifice"

    if is_capture and captured_value(board, best) >= PIECE_VALUES[chess.KNIGHT]:
        return "winning_capture"

    return "other"


def _describe(outcome: TacticOutcome, motif: str, best_san: str, played_san: str) -> str:
    motif_text = "tactic" if motif == "other" else f"{motif} tactic"
    if outcome == TacticOutcome.FOUND:
        return f"Found {motif_text} with {played_san}"
    return f"Missed {motif_text}: {best_san} instead of {played_san}"


def detect_tactical_opportunities(
    moves: Iterable[AnalyzedMove],
    initial_fen: str = chess.STARTING_FEN,
    gap_cp: int = TACTIC_GAP_CP,
    tolerance_cp: int = FOUND_TOLERANCE_CP,
) -> list[TacticalOpportunity]:
    """Flag positions with a decisive top move and judge found/missed."""
    opportunities = []
    fen_before = initial_fen
    for move in moves:
        board_fen, fen_before = fen_before, move.move.fen
        if not move.is_analyzed:
            continue

        pair = decisive_gap(move.alternatives)
        if pair is None:
            continue
        top, second = pair
        if not is_decisive(top.evaluation, second.evaluation, gap_cp):
            continue

        found = move.move.uci == top.move or move.centipawn_loss <= tolerance_cp
        outcome = TacticOutcome.FOUND if found else TacticOutcome.MISSED

        board = chess.Board(board_fen)
        best = chess.Move.from_uci(top.move)
        if best in board.legal_moves:
            motif = label_motif(board, best, top.evaluation)
            best_san = board.san(best)
        else:
            motif, best_san = "other", top.move

        opportunities.append(TacticalOpportunity(
            move_number=move.move_number,
            ply=move.ply,
            color=move.color,
            outcome=outcome,
            motif=motif,
            gap=cap(top.evaluation) - cap(second.evaluation),
            best_move=top.move,
            evaluation=top.evaluation,
            description=_describe(outcome, motif, best_san, move.move.san),
        ))
    return opportunities
