"""
Game analysis pipeline – one forward pass per game.

transcript → MoveAnalyzer → AnalyzedMove[] → moments / tactics / phases /
counters → CompositeScores → AnalysisSummary

Only the move analysis awaits the oracle; everything after it is a pure
synchronous transform over the analyzed move list. Cancelling the task
running analyze() drops all intermediate results.
"""

from __future__ import annotations

import logging
import time
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from .config import AnalysisSettings, get_settings
from .critical_moments import detect_critical_moments
from .game_metrics import collect_game_metrics, summarize_statistics
from .move_analyzer import MoveAnalyzer
from .oracle import EvaluatorPool, OracleGate, ProgressCallback, SearchBudget, StockfishEvaluator
from .phases import segment_phases
from .schemas import AnalysisSummary
from .scoring import CompositeScoreCalculator
from .tactics import detect_tactical_opportunities
from .transcript import Transcript, validate_transcript

logger = logging.getLogger(__name__)


class GameAnalysisPipeline:
    """Analyze one game at a time against a shared EvaluatorPool."""

    def __init__(self, pool: EvaluatorPool, settings: Optional[AnalysisSettings] = None):
        self.pool = pool
        self.settings = settings or get_settings()
        self.budget = SearchBudget.from_settings(self.settings)
        self.move_analyzer = MoveAnalyzer(pool, self.budget)
        self.calculator = CompositeScoreCalculator()

    async def analyze(
        self,
        transcript: Transcript,
        progress: Optional[ProgressCallback] = None,
        history: Optional[Sequence[float]] = None,
    ) -> AnalysisSummary:
        """
        Full analysis of ``transcript`` for ``transcript.player_color``.

        Raises MalformedTranscript before any oracle call and lets
        OracleUnavailable propagate. ``history`` is a list of the player's
        prior overall accuracies (oldest first) for the training index.
        """
        validate_transcript(transcript)
        settings = self.settings
        started = time.perf_counter()
        logger.info(
            f"Analyzing game {transcript.game_id} ({len(transcript)} plies, "
            f"{transcript.player_color}) with {self.pool.name}"
        )

        moves = await self.move_analyzer.analyze(transcript, progress)

        critical_moments = detect_critical_moments(moves, settings.critical_swing_cp)
        tactical_opportunities = detect_tactical_opportunities(
            moves,
            transcript.initial_fen,
            gap_cp=settings.tactic_gap_cp,
            tolerance_cp=settings.found_tolerance_cp,
        )
        phases = segment_phases(
            moves,
            transcript.player_color,
            transcript.last_move_number,
            settings.opening_end_move,
            settings.middlegame_end_move,
        )
        statistics = summarize_statistics(moves, transcript.player_color)
        metrics = collect_game_metrics(transcript, moves)
        scores = self.calculator.calculate(
            transcript.player_color,
            statistics,
            phases,
            metrics,
            critical_moments,
            tactical_opportunities,
            history=history,
        )

        elapsed = time.perf_counter() - started
        logger.info(
            f"Game {transcript.game_id} analyzed in {elapsed:.1f}s "
            f"({statistics.unanalyzed_moves} player moves not analyzed)"
        )

        return AnalysisSummary(
            game_id=transcript.game_id,
            player_color=transcript.player_color,
            result=transcript.result,
            statistics=statistics,
            moves=tuple(moves),
            critical_moments=tuple(critical_moments),
            tactical_opportunities=tuple(tactical_opportunities),
            phases=phases,
            metrics=metrics,
            scores=scores,
            engine=self.pool.name,
        )


@asynccontextmanager
async def open_pipeline(settings: Optional[AnalysisSettings] = None) -> AsyncIterator[GameAnalysisPipeline]:
    """
    Start ``oracle_instances`` Stockfish processes, each behind its own
    gate, and stop them all on exit.
    """
    settings = settings or get_settings()
    async with AsyncExitStack() as stack:
        gates = []
        for _ in range(settings.oracle_instances):
            evaluator = StockfishEvaluator(
                settings.stockfish_path,
                threads=settings.engine_threads,
                hash_mb=settings.engine_hash_mb,
            )
            await stack.enter_async_context(evaluator)
            gates.append(OracleGate(evaluator, timeout=settings.oracle_timeout_seconds))
        yield GameAnalysisPipeline(EvaluatorPool(gates), settings)
