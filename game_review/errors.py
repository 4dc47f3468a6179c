"""
Analysis errors.

Fatal errors (OracleUnavailable, MalformedTranscript) abort the whole
analysis. OracleTimeout and PositionNotEvaluable are recovered per move:
the move is reported as "not analyzed" and the batch continues.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for every error raised by the analysis pipeline."""

    code = "analysis_failed"

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class MalformedTranscript(AnalysisError):
    """Moves are inconsistent with the supplied positions."""

    code = "malformed_transcript"

    def __init__(self, message: str, ply: int | None = None):
        super().__init__(message)
        self.ply = ply

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["ply"] = self.ply
        return data


class OracleError(AnalysisError):
    """Base class for evaluation oracle failures."""

    code = "oracle_error"


class OracleUnavailable(OracleError):
    """Engine binary missing, failed to start, or died mid-analysis."""

    code = "oracle_unavailable"


class OracleTimeout(OracleError):
    """A single evaluation exceeded its time budget."""

    code = "oracle_timeout"


class PositionNotEvaluable(OracleError):
    """The oracle answered without a usable score."""

    code = "position_not_evaluable"


# Errors that only cost a single move's analysis
RECOVERABLE_ORACLE_ERRORS = (OracleTimeout, PositionNotEvaluable)
