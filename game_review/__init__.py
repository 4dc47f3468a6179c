# game_review/__init__.py
"""Game analysis & performance-scoring pipeline.

Turns a finished game transcript into per-move judgments, critical
moments, tactical opportunities, phase accuracy and nine composite
0-100 performance indexes.

Modules:
- transcript: Move / Transcript records, PGN loading, validation
- evaluation: mate mapping, perspective flips, move classification
- oracle: engine adapter, FIFO gate, evaluator pool
- move_analyzer: before/after evaluations and centipawn loss
- critical_moments, tactics, phases, game_metrics: derived views
- scoring: composite indexes
- pipeline: orchestrates one analysis pass
"""

from .config import AnalysisSettings, get_settings
from .errors import (
    AnalysisError,
    MalformedTranscript,
    OracleError,
    OracleTimeout,
    OracleUnavailable,
    PositionNotEvaluable,
)
from .evaluation import Evaluation, MoveClassification, classify_move
from .oracle import (
    EvaluatorPool,
    OracleGate,
    OracleResult,
    SearchBudget,
    StockfishEvaluator,
)
from .pipeline import GameAnalysisPipeline, open_pipeline
from .schemas import (
    AnalysisSummary,
    AnalyzedMove,
    CompositeScores,
    CriticalMoment,
    GamePhases,
    TacticalOpportunity,
)
from .transcript import Move, Transcript

__all__ = [
    "AnalysisSettings",
    "get_settings",
    "AnalysisError",
    "MalformedTranscript",
    "OracleError",
    "OracleTimeout",
    "OracleUnavailable",
    "PositionNotEvaluable",
    "Evaluation",
    "MoveClassification",
    "classify_move",
    "EvaluatorPool",
    "OracleGate",
    "OracleResult",
    "SearchBudget",
    "StockfishEvaluator",
    "GameAnalysisPipeline",
    "open_pipeline",
    "AnalysisSummary",
    "AnalyzedMove",
    "CompositeScores",
    "CriticalMoment",
    "GamePhases",
    "TacticalOpportunity",
    "Move",
    "Transcript",
]
