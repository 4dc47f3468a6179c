# game_review/schemas.py
"""Data models for game analysis outputs.

All models are:
- Immutable once created (frozen dataclasses)
- Deterministic (same transcript + same oracle answers = equal objects)
- JSON-serializable via to_dict()

Evaluations stored here are centipawn-equivalent integers (see
game_review.evaluation) in the frame stated on each field.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

from .evaluation import MoveClassification
from .transcript import Move


ANALYSIS_VERSION = "1.0"


@dataclass(frozen=True)
class Alternative:
    """One ranked oracle line: move and its evaluation in the mover's frame."""
    move: str  # UCI
    evaluation: int


@dataclass(frozen=True)
class AnalyzedMove:
    """A transcript move with its engine judgment.

    Unanalyzed moves (oracle timeout / no score) keep every
    evaluation-derived field as None and are excluded from aggregates.
    """
    move: Move
    evaluation_before: Optional[int] = None  # mover's frame
    evaluation_after: Optional[int] = None  # mover's frame
    centipawn_loss: Optional[int] = None
    classification: Optional[MoveClassification] = None
    accuracy: Optional[int] = None
    best_move: Optional[str] = None  # UCI
    alternatives: tuple[Alternative, ...] = ()

    @property
    def is_analyzed(self) -> bool:
        return self.classification is not None

    @property
    def ply(self) -> int:
        return self.move.ply

    @property
    def move_number(self) -> int:
        return self.move.move_number

    @property
    def color(self) -> str:
        return self.move.color

    @property
    def played_best(self) -> bool:
        return self.best_move is not None and self.best_move == self.move.uci

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.move.to_dict(),
            "analyzed": self.is_analyzed,
            "evaluation_before": self.evaluation_before,
            "evaluation_after": self.evaluation_after,
            "centipawn_loss": self.centipawn_loss,
            "classification": self.classification.value if self.classification else None,
            "accuracy": self.accuracy,
            "best_move": self.best_move,
            "alternatives": [asdict(a) for a in self.alternatives],
        }


class MomentType(str, Enum):
    BLUNDER = "blunder"
    MISSED_WIN = "missed_win"
    TURNING_POINT = "turning_point"
    BRILLIANT = "brilliant"


@dataclass(frozen=True)
class CriticalMoment:
    """An evaluation swing past the materiality threshold."""
    move_number: int
    ply: int
    color: str
    type: MomentType
    swing: float  # pawns, White-relative, signed
    evaluation_before: int  # White frame, capped
    evaluation_after: int  # White frame, capped
    description: str
    best_move: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


class TacticOutcome(str, Enum):
    FOUND = "found"
    MISSED = "missed"


@dataclass(frozen=True)
class TacticalOpportunity:
    """A position where one move was decisively better than the rest.

    ``motif`` is a heuristic hint derived from the shape of the best move,
    not a verified pattern.
    """
    move_number: int
    ply: int
    color: str
    outcome: TacticOutcome
    motif: str
    gap: int  # centipawns between top line and next distinct alternative
    best_move: str
    evaluation: int  # top line, mover's frame
    description: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data


@dataclass(frozen=True)
class GamePhase:
    """Inclusive move-number window; empty when end < start."""
    name: str
    start: int
    end: int
    accuracy: Optional[float] = None
    move_count: int = 0  # analyzed moves of the player inside the window

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def contains(self, move_number: int) -> bool:
        return self.start <= move_number <= self.end

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GamePhases:
    opening: GamePhase
    middlegame: GamePhase
    endgame: GamePhase

    def __iter__(self):
        return iter((self.opening, self.middlegame, self.endgame))

    def phase_of(self, move_number: int) -> Optional[GamePhase]:
        for phase in self:
            if phase.contains(move_number):
                return phase
        return None

    def to_dict(self) -> dict[str, Any]:
        return {p.name: p.to_dict() for p in self}


@dataclass(frozen=True)
class SummaryStatistics:
    """Headline numbers for the analyzed player's own analyzed moves."""
    overall_accuracy: Optional[float] = None
    average_centipawn_loss: Optional[float] = None
    excellent: int = 0
    good: int = 0
    inaccuracies: int = 0
    mistakes: int = 0
    blunders: int = 0
    total_moves: int = 0
    unanalyzed_moves: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GameMetrics:
    """Ancillary per-game counters collected next to the detectors."""
    # Errors
    blunders_while_ahead: int = 0
    blunders_in_equal: int = 0
    blunders_while_behind: int = 0
    forced_error_rate: float = 0.0
    unforced_error_rate: float = 0.0
    first_inaccuracy_move: Optional[int] = None
    post_blunder_blunder_rate: float = 0.0
    accuracy_stdev: float = 0.0

    # Time management (moves with clock data only)
    timed_moves: int = 0
    average_time_per_move: Optional[float] = None
    moves_under_10s: int = 0
    moves_under_5s: int = 0
    moves_under_2s: int = 0

    # Move shape / material
    player_moves: int = 0
    captures: int = 0
    checks: int = 0
    castled: bool = False
    moves_into_opponent_half: int = 0
    capture_trades: int = 0
    queen_trade_move: Optional[int] = None
    start_material: int = 0  # non-pawn material, both sides
    end_material: int = 0

    # Evaluation landmarks (player frame, after the player's move)
    evaluation_at_move_10: Optional[int] = None
    evaluation_at_move_15: Optional[int] = None
    was_winning: bool = False
    was_losing: bool = False
    accuracy_while_ahead: Optional[float] = None

    # Outcome from the player's point of view: win / draw / loss / unknown
    outcome: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompositeScores:
    """The nine master composite indexes, each in [0, 100]."""
    precision: float = 50.0
    tactical_danger: float = 50.0
    stability: float = 50.0
    conversion: float = 50.0
    preparation: float = 50.0
    positional: float = 50.0
    aggression: float = 50.0
    simplification: float = 50.0
    training_transfer: float = 50.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisSummary:
    """Everything known about one analyzed game; the unit returned to callers."""
    game_id: str
    player_color: str
    result: str
    statistics: SummaryStatistics
    moves: tuple[AnalyzedMove, ...]
    critical_moments: tuple[CriticalMoment, ...]
    tactical_opportunities: tuple[TacticalOpportunity, ...]
    phases: GamePhases
    metrics: GameMetrics
    scores: CompositeScores
    engine: str = "stockfish"
    analysis_version: str = ANALYSIS_VERSION

    @property
    def player_moves(self) -> list[AnalyzedMove]:
        return [m for m in self.moves if m.color == self.player_color]

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_id": self.game_id,
            "player_color": self.player_color,
            "result": self.result,
            "engine": self.engine,
            "analysis_version": self.analysis_version,
            "summary": self.statistics.to_dict(),
            "move_analysis": [m.to_dict() for m in self.moves],
            "critical_moments": [c.to_dict() for c in self.critical_moments],
            "tactical_opportunities": [t.to_dict() for t in self.tactical_opportunities],
            "game_phases": self.phases.to_dict(),
            "metrics": self.metrics.to_dict(),
            "composite_scores": self.scores.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
