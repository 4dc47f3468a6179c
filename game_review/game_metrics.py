"""
Per-game counters for the analyzed player.

Two entry points:
- summarize_statistics: headline accuracy / CPL / classification counts
- collect_game_metrics: the ancillary counters behind the composite indexes

Both look only at the analyzed player's moves (except capture trades,
which need both sides) and skip unanalyzed moves for anything derived from
evaluations.
"""

from __future__ import annotations

import statistics
from typing import Optional, Sequence

import chess

from .critical_moments import WINNING_THRESHOLD
from .evaluation import MoveClassification
from .material import count_material, in_opponent_half, queens_on_board
from .schemas import AnalyzedMove, GameMetrics, SummaryStatistics
from .transcript import Transcript


AHEAD_THRESHOLD = 50  # +0.5 pawns
BEHIND_THRESHOLD = -50

OUTCOMES = {
    ("1-0", "white"): "win",
    ("0-1", "black"): "win",
    ("1-0", "black"): "loss",
    ("0-1", "white"): "loss",
    ("1/2-1/2", "white"): "draw",
    ("1/2-1/2", "black"): "draw",
}


def _mean(values) -> Optional[float]:
    values = list(values)
    return sum(values) / len(values) if values else None


def summarize_statistics(moves: Sequence[AnalyzedMove], player_color: str) -> SummaryStatistics:
    """
    Accuracy and CPL over the player's analyzed moves.

    ``unanalyzed_moves`` counts the player's moves the oracle could not judge.
    """
    own = [m for m in moves if m.color == player_color]
    analyzed = [m for m in own if m.is_analyzed]

    counts = {c: 0 for c in MoveClassification}
    for move in analyzed:
        counts[move.classification] += 1

    return SummaryStatistics(
        overall_accuracy=_mean(m.accuracy for m in analyzed),
        average_centipawn_loss=_mean(m.centipawn_loss for m in analyzed),
        excellent=counts[MoveClassification.EXCELLENT],
        good=counts[MoveClassification.GOOD],
        inaccuracies=counts[MoveClassification.INACCURACY],
        mistakes=counts[MoveClassification.MISTAKE],
        blunders=counts[MoveClassification.BLUNDER],
        total_moves=len(analyzed),
        unanalyzed_moves=len(own) - len(analyzed),
    )


def game_outcome(result: str, player_color: str) -> str:
    return OUTCOMES.get((result, player_color), "unknown")


# ═══════════════════════════════════════════════════════════
# Error profile
# ═══════════════════════════════════════════════════════════


def _error_profile(analyzed: list[AnalyzedMove]) -> dict:
    ahead = equal = behind = 0
    forced = unforced = 0
    first_inaccuracy = None

    for move in analyzed:
        classification = move.classification
        if classification == MoveClassification.BLUNDER:
            if move.evaluation_before > AHEAD_THRESHOLD:
                ahead += 1
                unforced += 1
            elif move.evaluation_before < BEHIND_THRESHOLD:
                behind += 1
                forced += 1
            else:
                equal += 1
                unforced += 1
        elif classification == MoveClassification.MISTAKE:
            if move.evaluation_before < BEHIND_THRESHOLD:
                forced += 1
            else:
                unforced += 1

        if first_inaccuracy is None and classification.severity >= MoveClassification.INACCURACY.severity:
            first_inaccuracy = move.move_number

    # Blunder rate among moves played after the first blunder
    after_blunder = blunders_after = 0
    blundered = False
    for move in analyzed:
        is_blunder = move.classification == MoveClassification.BLUNDER
        if blundered:
            after_blunder += 1
            blunders_after += is_blunder
        blundered = blundered or is_blunder

    errors = forced + unforced
    accuracies = [m.accuracy for m in analyzed]
    return {
        "blunders_while_ahead": ahead,
        "blunders_in_equal": equal,
        "blunders_while_behind": behind,
        "forced_error_rate": forced / errors if errors else 0.0,
        "unforced_error_rate": unforced / errors if errors else 0.0,
        "first_inaccuracy_move": first_inaccuracy,
        "post_blunder_blunder_rate": blunders_after / after_blunder if after_blunder else 0.0,
        "accuracy_stdev": statistics.pstdev(accuracies) if len(accuracies) > 1 else 0.0,
    }


def _time_profile(own: list[AnalyzedMove]) -> dict:
    times = [m.move.time_spent for m in own if m.move.time_spent is not None]
    return {
        "timed_moves": len(times),
        "average_time_per_move": _mean(times),
        "moves_under_10s": sum(1 for t in times if t < 10),
        "moves_under_5s": sum(1 for t in times if t < 5),
        "moves_under_2s": sum(1 for t in times if t < 2),
    }


def _evaluation_landmarks(analyzed: list[AnalyzedMove]) -> dict:
    def after_move(number: int) -> Optional[int]:
        for move in analyzed:
            if move.move_number == number:
                return move.evaluation_after
        return None

    winning = [m for m in analyzed if m.evaluation_before >= WINNING_THRESHOLD]
    return {
        "evaluation_at_move_10": after_move(10),
        "evaluation_at_move_15": after_move(15),
        "was_winning": bool(winning),
        "was_losing": any(m.evaluation_before <= -WINNING_THRESHOLD for m in analyzed),
        "accuracy_while_ahead": _mean(m.accuracy for m in winning),
    }


# ═══════════════════════════════════════════════════════════
# Board replay
# ═══════════════════════════════════════════════════════════


def _board_profile(transcript: Transcript) -> dict:
    """Replay the game once and count move shapes for the player."""
    board = chess.Board(transcript.initial_fen)
    player = chess.WHITE if transcript.player_color == "white" else chess.BLACK
    start_material = count_material(board)

    captures = checks = into_half = trades = 0
    castled = False
    queen_trade_move = None
    previous_capture_square = None

    for record in transcript.moves:
        move = chess.Move.from_uci(record.uci)
        mover = board.turn
        is_capture = board.is_capture(move)
        had_queens = queens_on_board(board)

        if mover == player:
            captures += is_capture
            checks += board.gives_check(move)
            castled = castled or board.is_castling(move)
            into_half += in_opponent_half(move.to_square, mover)

        if is_capture and previous_capture_square == move.to_square:
            trades += 1
        previous_capture_square = move.to_square if is_capture else None

        board.push(move)
        if queen_trade_move is None and had_queens and not queens_on_board(board):
            queen_trade_move = record.move_number

    return {
        "captures": captures,
        "checks": checks,
        "castled": castled,
        "moves_into_opponent_half": into_half,
        "capture_trades": trades,
        "queen_trade_move": queen_trade_move,
        "start_material": start_material,
        "end_material": count_material(board),
    }


def collect_game_metrics(transcript: Transcript, moves: Sequence[AnalyzedMove]) -> GameMetrics:
    """Counters for ``transcript.player_color`` over the analyzed move list."""
    own = [m for m in moves if m.color == transcript.player_color]
    analyzed = [m for m in own if m.is_analyzed]

    return GameMetrics(
        **_error_profile(analyzed),
        **_time_profile(own),
        **_board_profile(transcript),
        **_evaluation_landmarks(analyzed),
        player_moves=len(own),
        outcome=game_outcome(transcript.result, transcript.player_color),
    )
