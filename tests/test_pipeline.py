"""
End-to-end tests for GameAnalysisPipeline against a scripted oracle.

Covers the reference scenarios (blunder, perfect game, short game,
timeout on one move), failure policy, cancellation and idempotence.
"""

import asyncio
import json
import unittest

from game_review.config import AnalysisSettings
from game_review.errors import MalformedTranscript, OracleUnavailable, PositionNotEvaluable
from game_review.evaluation import MoveClassification
from game_review.oracle import EvaluatorPool, OracleGate
from game_review.pipeline import GameAnalysisPipeline
from game_review.schemas import MomentType
from game_review.transcript import Transcript

from oracle_stub import KNIGHT_SHUFFLE, RUY_LOPEZ, ScriptedEvaluator, make_transcript, result


def build_pipeline(evaluator, instances=1, timeout=5.0, **overrides):
    settings = AnalysisSettings(_env_file=None, **overrides)
    gates = [OracleGate(evaluator, timeout=timeout) for _ in range(instances)]
    return GameAnalysisPipeline(EvaluatorPool(gates), settings)


class TestScenarios(unittest.IsolatedAsyncioTestCase):
    """Reference scenarios run through the whole pipeline."""

    async def test_blunder_scenario(self):
        """+20 before and -260 after in the mover's frame is a blunder."""
        transcript = make_transcript(RUY_LOPEZ[:6])
        positions = transcript.positions
        evaluator = ScriptedEvaluator(answers={
            positions[2]: result(cp=20, best="f1c4"),  # white to move before ply 3
            positions[3]: result(cp=260),  # black to move after Nf3
            positions[4]: result(cp=-260),  # black keeps the advantage
        })
        summary = await build_pipeline(evaluator).analyze(transcript)

        move = summary.moves[2]
        self.assertEqual(move.evaluation_before, 20)
        self.assertEqual(move.evaluation_after, -260)
        self.assertEqual(move.centipawn_loss, 280)
        self.assertEqual(move.classification, MoveClassification.BLUNDER)
        self.assertEqual(move.accuracy, 0)
        self.assertEqual(summary.statistics.blunders, 1)

        blunders = [m for m in summary.critical_moments if m.type == MomentType.BLUNDER]
        self.assertEqual([m.ply for m in blunders], [3])

    async def test_perfect_forty_move_game(self):
        """Every move excellent over 40 full moves gives accuracy and Precision 100."""
        transcript = make_transcript(KNIGHT_SHUFFLE * 20)
        self.assertEqual(transcript.last_move_number, 40)

        summary = await build_pipeline(ScriptedEvaluator()).analyze(transcript)

        self.assertEqual(summary.statistics.overall_accuracy, 100.0)
        self.assertEqual(summary.statistics.excellent, 40)
        self.assertEqual(summary.scores.precision, 100.0)
        self.assertEqual([p.accuracy for p in summary.phases], [100.0, 100.0, 100.0])

    async def test_short_game_phases(self):
        """An 8-move game is all opening; later phases are empty with no accuracy."""
        transcript = make_transcript(RUY_LOPEZ[:16])
        summary = await build_pipeline(ScriptedEvaluator()).analyze(transcript)

        opening, middlegame, endgame = summary.phases
        self.assertEqual((opening.start, opening.end), (1, 8))
        self.assertTrue(middlegame.is_empty)
        self.assertTrue(endgame.is_empty)
        self.assertIsNone(middlegame.accuracy)
        self.assertIsNone(endgame.accuracy)
        self.assertEqual(opening.accuracy, 100.0)

    async def test_timeout_on_one_move(self):
        """A timeout leaves that move unanalyzed and the summary is still produced."""
        transcript = make_transcript(RUY_LOPEZ)  # 20 plies
        evaluator = ScriptedEvaluator(fail_once=[transcript.positions[5]])
        summary = await build_pipeline(evaluator).analyze(transcript)

        self.assertEqual(len(summary.moves), 20)
        self.assertFalse(summary.moves[4].is_analyzed)
        self.assertIsNone(summary.moves[4].classification)
        self.assertTrue(summary.moves[5].is_analyzed)  # retried as its "before"
        self.assertEqual(sum(not m.is_analyzed for m in summary.moves), 1)
        self.assertEqual(summary.statistics.unanalyzed_moves, 1)
        self.assertEqual(summary.statistics.total_moves, 9)
        self.assertEqual(summary.statistics.overall_accuracy, 100.0)

    async def test_position_failing_twice_loses_two_moves(self):
        transcript = make_transcript(RUY_LOPEZ)
        evaluator = ScriptedEvaluator(answers={
            transcript.positions[5]: PositionNotEvaluable("no score"),
        })
        summary = await build_pipeline(evaluator).analyze(transcript)
        unanalyzed = [m.ply for m in summary.moves if not m.is_analyzed]
        self.assertEqual(unanalyzed, [5, 6])

    async def test_gate_timeout_marks_move_unanalyzed(self):
        """A slow answer hits the per-request timeout of the gate."""
        transcript = make_transcript(RUY_LOPEZ[:4])
        evaluator = ScriptedEvaluator(delay=0.2)
        summary = await build_pipeline(evaluator, timeout=0.01).analyze(transcript)
        self.assertTrue(all(not m.is_analyzed for m in summary.moves))
        self.assertEqual(summary.scores.precision, 50.0)


class TestPipelineBehaviour(unittest.IsolatedAsyncioTestCase):
    """Validation, failure policy, progress, cancellation, idempotence."""

    async def test_malformed_transcript_before_any_oracle_call(self):
        transcript = make_transcript(RUY_LOPEZ[:4])
        moves = list(transcript.moves)
        moves[1], moves[2] = moves[2], moves[1]
        broken = Transcript(game_id="bad", moves=tuple(moves))

        evaluator = ScriptedEvaluator()
        with self.assertRaises(MalformedTranscript):
            await build_pipeline(evaluator).analyze(broken)
        self.assertEqual(evaluator.calls, [])

    async def test_oracle_unavailable_is_fatal(self):
        transcript = make_transcript(RUY_LOPEZ[:4])
        evaluator = ScriptedEvaluator(answers={
            transcript.positions[2]: OracleUnavailable("engine died"),
        })
        with self.assertRaises(OracleUnavailable):
            await build_pipeline(evaluator).analyze(transcript)

    async def test_one_request_per_position(self):
        transcript = make_transcript(RUY_LOPEZ[:10])
        evaluator = ScriptedEvaluator()
        await build_pipeline(evaluator).analyze(transcript)
        self.assertEqual(evaluator.calls, transcript.positions)

    async def test_progress_callback(self):
        transcript = make_transcript(RUY_LOPEZ[:6])
        seen = []
        await build_pipeline(ScriptedEvaluator()).analyze(
            transcript, progress=lambda current, total, label: seen.append((current, total))
        )
        self.assertEqual(seen[-1], (7, 7))
        self.assertEqual([c for c, _ in seen], list(range(1, 8)))

    async def test_cancellation_returns_nothing(self):
        transcript = make_transcript(RUY_LOPEZ)
        evaluator = ScriptedEvaluator(delay=0.05)
        pipeline = build_pipeline(evaluator)

        task = asyncio.ensure_future(pipeline.analyze(transcript))
        await asyncio.sleep(0.12)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertLess(len(evaluator.calls), len(transcript.positions))
        self.assertFalse(pipeline.pool.gates[0].busy)

    async def test_idempotent(self):
        """Same transcript and same answers give identical summaries."""
        transcript = make_transcript(RUY_LOPEZ, result="1-0")
        answers = {fen: result(cp=15 * i, best="a2a3") for i, fen in enumerate(transcript.positions)}

        first = await build_pipeline(ScriptedEvaluator(answers=answers)).analyze(transcript)
        second = await build_pipeline(ScriptedEvaluator(answers=answers)).analyze(transcript)
        self.assertEqual(first, second)
        self.assertEqual(first.to_json(), second.to_json())

    async def test_parallel_gates_match_sequential(self):
        transcript = make_transcript(RUY_LOPEZ, player_color="black")
        answers = {fen: result(cp=(-1) ** i * 30, best="a2a3") for i, fen in enumerate(transcript.positions)}

        sequential = await build_pipeline(ScriptedEvaluator(answers=answers)).analyze(transcript)
        parallel = await build_pipeline(ScriptedEvaluator(answers=answers), instances=3).analyze(transcript)
        self.assertEqual(sequential, parallel)

    async def test_summary_serializes(self):
        transcript = make_transcript(RUY_LOPEZ[:8], player_color="black", result="0-1")
        summary = await build_pipeline(ScriptedEvaluator()).analyze(transcript, history=[70.0, 75.0])
        data = json.loads(summary.to_json())

        self.assertEqual(data["game_id"], "test-game")
        self.assertEqual(data["player_color"], "black")
        self.assertEqual(data["engine"], "stub")
        self.assertEqual(len(data["move_analysis"]), 8)
        self.assertEqual(set(data["game_phases"]), {"opening", "middlegame", "endgame"})
        self.assertEqual(len(data["composite_scores"]), 9)
        self.assertEqual(data["metrics"]["outcome"], "win")
        self.assertEqual(len(summary.player_moves), 4)


if __name__ == "__main__":
    unittest.main()
