"""
Move analysis – per-move evaluations, centipawn loss and classification.

One oracle request per position: P0 (initial) and P1..Pn (after each move).
Move i is judged with the answer for P(i-1) as its "before" evaluation and
the answer for P(i) as its "after" evaluation, so every answer serves two
consecutive moves.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .errors import OracleError
from .evaluation import accuracy_for, classify_move
from .oracle import EvaluatorPool, OracleResult, ProgressCallback, SearchBudget
from .schemas import Alternative, AnalyzedMove
from .transcript import Move, Transcript

logger = logging.getLogger(__name__)


def analyze_move(move: Move, before: OracleResult, after: OracleResult) -> AnalyzedMove:
    """
    Judge one move.

    ``before`` is the oracle answer for the position the mover faced (side
    to move = mover), ``after`` the answer for the resulting position (side
    to move = opponent). Both evaluations are reported in the mover's frame.
    """
    kept = before.evaluation.centipawns
    evaluation_after = after.evaluation.negate().centipawns
    alternatives = tuple(
        Alternative(move=line.move, evaluation=line.evaluation.centipawns)
        for line in before.alternatives
    )

    if before.best_move is not None and move.uci == before.best_move:
        cp_loss = 0
    else:
        # Prefer the played move's score from the same multi-line search
        achieved = next(
            (alt.evaluation for alt in alternatives if alt.move == move.uci),
            evaluation_after,
        )
        cp_loss = max(0, kept - achieved)

    classification = classify_move(cp_loss)
    return AnalyzedMove(
        move=move,
        evaluation_before=kept,
        evaluation_after=evaluation_after,
        centipawn_loss=cp_loss,
        classification=classification,
        accuracy=accuracy_for(classification),
        best_move=before.best_move,
        alternatives=alternatives,
    )


class MoveAnalyzer:
    """Runs the oracle over a transcript and produces AnalyzedMove[] in move order."""

    def __init__(self, pool: EvaluatorPool, budget: SearchBudget):
        self.pool = pool
        self.budget = budget

    async def analyze(
        self,
        transcript: Transcript,
        progress: Optional[ProgressCallback] = None,
    ) -> list[AnalyzedMove]:
        positions = transcript.positions
        outcomes = await self.pool.evaluate_all(positions, self.budget, progress)
        before_outcomes = await self._retry_failed(positions, outcomes)

        analyzed = []
        for index, move in enumerate(transcript.moves):
            before = before_outcomes[index]
            after = outcomes[index + 1]
            if isinstance(before, OracleResult) and isinstance(after, OracleResult):
                analyzed.append(analyze_move(move, before, after))
            else:
                logger.warning(f"Move {move.move_number} ({move.color} {move.san}) not analyzed")
                analyzed.append(AnalyzedMove(move=move))
        return analyzed

    async def _retry_failed(self, positions: Sequence[str], outcomes: list) -> list:
        """
        Answers to use as "before" evaluations, one per move.

        A position that failed is charged to the move that produced it; the
        next move gets one fresh attempt at the same position.
        """
        before_outcomes = list(outcomes[:-1])
        failed = [i for i, outcome in enumerate(before_outcomes) if isinstance(outcome, OracleError)]
        if not failed:
            return before_outcomes

        async with self.pool.gates[0].session() as oracle:
            for index in failed:
                logger.info(f"Retrying position {index} for the following move")
                before_outcomes[index] = await self.pool.evaluate_one(oracle, positions[index], self.budget)
        return before_outcomes
