"""
Game Review - Configuration

Loads settings from environment variables with Pydantic validation.
Every variable is prefixed with GAME_REVIEW_ (e.g. GAME_REVIEW_STOCKFISH_PATH).
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    # ─── Stockfish ───
    stockfish_path: str = "/usr/games/stockfish"
    analysis_depth: int = Field(15, ge=1, le=60)
    deep_analysis_depth: int = Field(20, ge=1, le=60)
    deep_analysis: bool = False
    movetime_seconds: Optional[float] = Field(None, gt=0)
    multipv: int = Field(3, ge=1, le=10)
    engine_threads: int = Field(1, ge=1)
    engine_hash_mb: int = Field(64, ge=1)

    # ─── Oracle access ───
    oracle_timeout_seconds: float = Field(5.0, gt=0)
    oracle_instances: int = Field(1, ge=1, le=16)

    # ─── Phase windows (full-move numbers) ───
    opening_end_move: int = Field(12, ge=1)
    middlegame_end_move: int = Field(35, ge=1)

    # ─── Detection thresholds (centipawns) ───
    critical_swing_cp: int = Field(100, ge=0)
    tactic_gap_cp: int = Field(150, ge=0)
    found_tolerance_cp: int = Field(50, ge=0)

    # ─── App ───
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="GAME_REVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_phase_cutoffs(self):
        if self.middlegame_end_move < self.opening_end_move:
            raise ValueError("middlegame_end_move must be >= opening_end_move")
        return self

    @property
    def search_depth(self) -> int:
        return self.deep_analysis_depth if self.deep_analysis else self.analysis_depth


@lru_cache()
def get_settings() -> AnalysisSettings:
    return AnalysisSettings()


def configure_logging(level: Optional[str] = None) -> None:
    """Basic console logging for scripts; libraries only create loggers."""
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
