"""Opening / middlegame / endgame windows by full-move number."""

from __future__ import annotations

from typing import Iterable, Optional

from .schemas import AnalyzedMove, GamePhase, GamePhases


OPENING_END_MOVE = 12
MIDDLEGAME_END_MOVE = 35


def phase_windows(
    last_move_number: int,
    opening_end: int = OPENING_END_MOVE,
    middlegame_end: int = MIDDLEGAME_END_MOVE,
) -> list[tuple[str, int, int]]:
    """
    Inclusive (name, start, end) windows partitioning 1..last_move_number.

    Windows the game never reached come back empty as (last + 1, last).
    """
    if opening_end < 1 or middlegame_end < opening_end:
        raise ValueError(
            f"Phase cutoffs must satisfy 1 <= opening_end <= middlegame_end, "
            f"got {opening_end} / {middlegame_end}"
        )

    last = max(0, last_move_number)
    windows = []
    start = 1
    for name, cutoff in (("opening", opening_end), ("middlegame", middlegame_end), ("endgame", None)):
        end = last if cutoff is None else min(cutoff, last)
        if end < start:
            windows.append((name, last + 1, last))
            continue
        windows.append((name, start, end))
        start = end + 1
    return windows


def _mean(values: list[int]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def segment_phases(
    moves: Iterable[AnalyzedMove],
    player_color: str,
    last_move_number: int,
    opening_end: int = OPENING_END_MOVE,
    middlegame_end: int = MIDDLEGAME_END_MOVE,
) -> GamePhases:
    """Per-phase accuracy over the player's own analyzed moves."""
    windows = phase_windows(last_move_number, opening_end, middlegame_end)
    own = [m for m in moves if m.color == player_color and m.is_analyzed]

    phases = []
    for name, start, end in windows:
        accuracies = [m.accuracy for m in own if start <= m.move_number <= end]
        phases.append(GamePhase(
            name=name,
            start=start,
            end=end,
            accuracy=_mean(accuracies),
            move_count=len(accuracies),
        ))
    return GamePhases(*phases)
