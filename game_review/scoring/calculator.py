"""
Composite score calculator – nine 0-100 indexes for one game.

Inputs are the already-derived pieces of an analysis (statistics, phases,
counters, moments, tactics); nothing here touches the oracle or the board.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..critical_moments import WINNING_THRESHOLD
from ..schemas import (
    CompositeScores,
    CriticalMoment,
    GameMetrics,
    GamePhases,
    MomentType,
    SummaryStatistics,
    TacticalOpportunity,
    TacticOutcome,
)
from .indexes import INDEX_NAMES, clamp, weighted_index


NEUTRAL = 50.0
TREND_MIN_GAMES = 5
EARLY_QUEEN_TRADE_MOVE = 30


def _rate(count: int, total: int) -> float:
    return count / total if total else 0.0


def _evaluation_score(evaluation: Optional[int]) -> float:
    """+2 pawns or better -> 100, -2 pawns or worse -> 0."""
    if evaluation is None:
        return NEUTRAL
    return clamp(NEUTRAL + evaluation / 4)


def _is_adverse(moment: CriticalMoment, player_color: str) -> bool:
    return moment.swing < 0 if player_color == "white" else moment.swing > 0


class CompositeScoreCalculator:
    """
    Builds each index's sub-metrics and combines them with INDEX_WEIGHTS.

    A game with no analyzed moves for the player scores neutral (50) on
    every index.
    """

    def calculate(
        self,
        player_color: str,
        statistics: SummaryStatistics,
        phases: GamePhases,
        metrics: GameMetrics,
        critical_moments: Sequence[CriticalMoment] = (),
        tactical_opportunities: Sequence[TacticalOpportunity] = (),
        history: Optional[Sequence[float]] = None,
    ) -> CompositeScores:
        if not statistics.total_moves:
            return CompositeScores()

        moments = [m for m in critical_moments if m.color == player_color]
        tactics = [t for t in tactical_opportunities if t.color == player_color]

        components = {
            "precision": self.precision_components(statistics, phases),
            "tactical_danger": self.tactical_components(tactics, moments),
            "stability": self.stability_components(metrics, moments, player_color),
            "conversion": self.conversion_components(statistics, metrics, moments),
            "preparation": self.preparation_components(statistics, phases, metrics),
            "positional": self.positional_components(statistics, phases),
            "aggression": self.aggression_components(metrics),
            "simplification": self.simplification_components(metrics),
            "training_transfer": self.training_components(statistics.overall_accuracy, history),
        }
        return CompositeScores(**{
            name: weighted_index(name, components[name]) for name in INDEX_NAMES
        })

    # ─────────────────────────────────────────────────────────
    # Accuracy based
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def _phase_accuracies(statistics: SummaryStatistics, phases: GamePhases) -> dict[str, float]:
        overall = statistics.overall_accuracy
        return {
            f"{phase.name}_accuracy": overall if phase.accuracy is None else phase.accuracy
            for phase in phases
        }

    def precision_components(self, statistics: SummaryStatistics, phases: GamePhases) -> dict[str, float]:
        return {
            "overall_accuracy": statistics.overall_accuracy,
            "blunder_avoidance": 100 - statistics.blunders * 10,
            "cpl_control": 100 - statistics.average_centipawn_loss / 2,
            **self._phase_accuracies(statistics, phases),
        }

    def positional_components(self, statistics: SummaryStatistics, phases: GamePhases) -> dict[str, float]:
        return {
            "overall_accuracy": statistics.overall_accuracy,
            "blunder_avoidance": 100 - statistics.blunders * 15,
            "middlegame_accuracy": self._phase_accuracies(statistics, phases)["middlegame_accuracy"],
            "inaccuracy_avoidance": 100 - statistics.inaccuracies * 5,
        }

    def preparation_components(
        self, statistics: SummaryStatistics, phases: GamePhases, metrics: GameMetrics
    ) -> dict[str, float]:
        return {
            "opening_accuracy": self._phase_accuracies(statistics, phases)["opening_accuracy"],
            "evaluation_after_move_10": _evaluation_score(metrics.evaluation_at_move_10),
            "evaluation_after_move_15": _evaluation_score(metrics.evaluation_at_move_15),
        }

    # ─────────────────────────────────────────────────────────
    # Tactics / swings
    # ─────────────────────────────────────────────────────────

    def tactical_components(
        self, tactics: Sequence[TacticalOpportunity], moments: Sequence[CriticalMoment]
    ) -> dict[str, float]:
        found = sum(1 for t in tactics if t.outcome == TacticOutcome.FOUND)
        missed = [t for t in tactics if t.outcome == TacticOutcome.MISSED]
        missed_mates = sum(1 for t in missed if t.motif == "mate")
        missed_winning = sum(
            1 for t in missed if t.motif != "mate" and t.evaluation >= WINNING_THRESHOLD
        )
        brilliant = sum(1 for m in moments if m.type == MomentType.BRILLIANT)

        return {
            "found_rate": 100 * found / len(tactics) if tactics else NEUTRAL,
            "missed_mate_avoidance": 100 - 50 * missed_mates,
            "missed_winning_avoidance": 100 - 25 * missed_winning,
            "brilliant_moments": NEUTRAL + 25 * brilliant,
        }

    def stability_components(
        self, metrics: GameMetrics, moments: Sequence[CriticalMoment], player_color: str
    ) -> dict[str, float]:
        if metrics.timed_moves:
            unhurried = 100 * (metrics.timed_moves - metrics.moves_under_5s) / metrics.timed_moves
        else:
            unhurried = NEUTRAL
        adverse = sum(1 for m in moments if _is_adverse(m, player_color))

        return {
            "post_blunder_composure": 100 - metrics.post_blunder_blunder_rate * 100,
            "unhurried_moves": unhurried,
            "consistency": 100 - metrics.accuracy_stdev,
            "adverse_moment_avoidance": 100 - 15 * adverse,
        }

    def conversion_components(
        self, statistics: SummaryStatistics, metrics: GameMetrics, moments: Sequence[CriticalMoment]
    ) -> dict[str, float]:
        if not metrics.was_winning:
            result_score = NEUTRAL
        else:
            result_score = {"win": 100.0, "draw": 50.0, "loss": 0.0}.get(metrics.outcome, NEUTRAL)

        ahead = metrics.accuracy_while_ahead
        missed_wins = sum(1 for m in moments if m.type == MomentType.MISSED_WIN)
        return {
            "result_from_winning": result_score,
            "accuracy_while_ahead": statistics.overall_accuracy if ahead is None else ahead,
            "missed_win_avoidance": 100 - 25 * missed_wins,
        }

    # ─────────────────────────────────────────────────────────
    # Style
    # ─────────────────────────────────────────────────────────

    def aggression_components(self, metrics: GameMetrics) -> dict[str, float]:
        moves = metrics.player_moves
        return {
            "forcing_move_rate": _rate(metrics.captures + metrics.checks, moves) * 200,
            "check_rate": _rate(metrics.checks, moves) * 400,
            "opponent_half_share": _rate(metrics.moves_into_opponent_half, moves) * 100,
        }

    def simplification_components(self, metrics: GameMetrics) -> dict[str, float]:
        if metrics.queen_trade_move is None:
            queen_trade = 0.0
        elif metrics.queen_trade_move < EARLY_QUEEN_TRADE_MOVE:
            queen_trade = 100.0
        else:
            queen_trade = NEUTRAL

        reduction = _rate(metrics.start_material - metrics.end_material, metrics.start_material)
        return {
            "trade_rate": _rate(metrics.capture_trades, metrics.player_moves) * 500,
            "early_queen_trade": queen_trade,
            "material_reduction": reduction * 100,
        }

    # ─────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────

    def training_components(
        self, current: float, history: Optional[Sequence[float]]
    ) -> dict[str, float]:
        """
        Trend over prior games plus this one (needs TREND_MIN_GAMES values),
        and this game against the historical mean.
        """
        history = list(history or [])
        if not history:
            return {"accuracy_trend": NEUTRAL, "versus_history": NEUTRAL}

        series = history + [current]
        if len(series) >= TREND_MIN_GAMES:
            half = len(series) // 2
            first, second = series[:half], series[half:]
            improvement = sum(second) / len(second) - sum(first) / len(first)
            trend = NEUTRAL + improvement * 5
        else:
            trend = NEUTRAL

        mean = sum(history) / len(history)
        return {
            "accuracy_trend": trend,
            "versus_history": NEUTRAL + (current - mean) * 2.5,
        }
