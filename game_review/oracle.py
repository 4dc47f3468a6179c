"""
Position evaluation oracle – the request/response boundary to the engine.

The engine is a single stateful resource: setting a position and searching
are coupled, so every request goes through an OracleGate that owns one
evaluator and serializes requests FIFO. Callers (the analysis pipeline, an
opponent move-selection policy, ...) share the gate, never the evaluator.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Protocol, Sequence, Union

import chess
import chess.engine

from .errors import (
    OracleError,
    OracleTimeout,
    OracleUnavailable,
    PositionNotEvaluable,
    RECOVERABLE_ORACLE_ERRORS,
)
from .evaluation import Evaluation

if TYPE_CHECKING:
    from .config import AnalysisSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchBudget:
    """Depth and/or time bound for a single evaluation."""

    depth: Optional[int] = 15
    time_limit: Optional[float] = None  # seconds
    multipv: int = 3

    def __post_init__(self):
        if self.depth is None and self.time_limit is None:
            raise ValueError("SearchBudget needs a depth or a time limit")
        if self.multipv < 1:
            raise ValueError("multipv must be >= 1")

    def limit(self) -> chess.engine.Limit:
        return chess.engine.Limit(depth=self.depth, time=self.time_limit)

    @classmethod
    def from_settings(cls, settings: AnalysisSettings) -> SearchBudget:
        return cls(
            depth=settings.search_depth,
            time_limit=settings.movetime_seconds,
            multipv=settings.multipv,
        )


@dataclass(frozen=True)
class OracleLine:
    move: str  # UCI
    evaluation: Evaluation  # side to move


@dataclass(frozen=True)
class OracleResult:
    """
    One oracle answer, side-to-move perspective.

    ``alternatives`` are ranked best first and include the top line.
    """

    evaluation: Evaluation
    best_move: Optional[str] = None
    principal_variation: tuple[str, ...] = ()
    alternatives: tuple[OracleLine, ...] = field(default_factory=tuple)


class PositionEvaluator(Protocol):
    """Anything that can evaluate a FEN within a search budget."""

    name: str

    async def evaluate(self, fen: str, budget: SearchBudget) -> OracleResult:
        ...


def terminal_result(board: chess.Board) -> Optional[OracleResult]:
    """Answer finished positions without a search."""
    if board.is_checkmate():
        return OracleResult(evaluation=Evaluation(mate_in=0))
    if board.is_game_over(claim_draw=False):
        return OracleResult(evaluation=Evaluation(cp=0))
    return None


def result_from_infos(infos: Sequence[chess.engine.InfoDict]) -> OracleResult:
    """Convert python-chess multipv info dicts into an OracleResult."""
    lines = []
    best_pv: tuple[str, ...] = ()
    for info in infos:
        score = info.get("score")
        pv = info.get("pv")
        if score is None or not pv:
            continue
        if not lines:
            best_pv = tuple(m.uci() for m in pv)
        lines.append(OracleLine(move=pv[0].uci(), evaluation=Evaluation.from_score(score.relative)))

    if not lines:
        raise PositionNotEvaluable("Engine returned no scored line")

    return OracleResult(
        evaluation=lines[0].evaluation,
        best_move=lines[0].move,
        principal_variation=best_pv,
        alternatives=tuple(lines),
    )


# ═══════════════════════════════════════════════════════════
# Stockfish
# ═══════════════════════════════════════════════════════════


class StockfishEvaluator:
    """Wrapper for a UCI engine process (Stockfish by default)."""

    def __init__(self, path: str, threads: int = 1, hash_mb: int = 64):
        self.path = path
        self.threads = threads
        self.hash_mb = hash_mb
        self.name = "stockfish"
        self._transport = None
        self._engine: Optional[chess.engine.UciProtocol] = None

    async def __aenter__(self) -> StockfishEvaluator:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        """Start the engine process."""
        try:
            self._transport, self._engine = await chess.engine.popen_uci(self.path)
            await self._engine.configure({"Threads": self.threads, "Hash": self.hash_mb})
        except (OSError, chess.engine.EngineError) as e:
            logger.error(f"Failed to start engine at {self.path}: {e}")
            raise OracleUnavailable(f"Cannot start engine at {self.path}: {e}") from e

        self.name = self._engine.id.get("name", self.name)
        logger.info(f"Engine started: {self.name} ({self.path})")

    async def stop(self) -> None:
        """Stop the engine process."""
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        try:
            await engine.quit()
        except chess.engine.EngineTerminatedError:
            logger.debug("Engine already terminated")
        logger.info("Engine stopped")

    async def evaluate(self, fen: str, budget: SearchBudget) -> OracleResult:
        if self._engine is None:
            raise OracleUnavailable("Engine not started")

        board = chess.Board(fen)
        finished = terminal_result(board)
        if finished is not None:
            return finished

        try:
            infos = await self._engine.analyse(board, budget.limit(), multipv=budget.multipv)
        except chess.engine.EngineTerminatedError as e:
            raise OracleUnavailable(f"Engine terminated: {e}") from e
        except chess.engine.EngineError as e:
            raise PositionNotEvaluable(f"Engine error on {fen}: {e}") from e

        return result_from_infos(infos)


# ═══════════════════════════════════════════════════════════
# Gate / Session / Pool
# ═══════════════════════════════════════════════════════════


class OracleGate:
    """
    Single owner of one evaluator.

    Requests are served one at a time in arrival order (asyncio.Lock is
    FIFO), so a caller never observes another caller's position. Each
    request is bounded by ``timeout`` seconds.
    """

    def __init__(self, evaluator: PositionEvaluator, timeout: Optional[float] = None):
        self._evaluator = evaluator
        self._lock = asyncio.Lock()
        self.timeout = timeout

    @property
    def name(self) -> str:
        return getattr(self._evaluator, "name", "oracle")

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def evaluate(self, fen: str, budget: SearchBudget) -> OracleResult:
        async with self._lock:
            try:
                return await asyncio.wait_for(self._evaluator.evaluate(fen, budget), self.timeout)
            except asyncio.TimeoutError as e:
                raise OracleTimeout(f"No answer within {self.timeout}s for {fen}") from e

    @asynccontextmanager
    async def session(self):
        """Scoped access for one job; the handle is dead after the block."""
        session = OracleSession(self)
        try:
            yield session
        finally:
            session.close()


class OracleSession:
    def __init__(self, gate: OracleGate):
        self._gate: Optional[OracleGate] = gate

    @property
    def closed(self) -> bool:
        return self._gate is None

    def close(self) -> None:
        self._gate = None

    async def evaluate(self, fen: str, budget: SearchBudget) -> OracleResult:
        if self._gate is None:
            raise RuntimeError("Oracle session is closed")
        return await self._gate.evaluate(fen, budget)


Outcome = Union[OracleResult, OracleError]
ProgressCallback = Callable[[int, int, str], None]


class EvaluatorPool:
    """
    Fan positions out over one or more gates.

    Each call to evaluate_all opens one session per gate for the duration
    of the job. With a single gate requests run strictly in order. Results
    always come back indexed like the input regardless of completion order.
    Recoverable failures are returned in place; fatal ones cancel the
    remaining work and propagate.
    """

    def __init__(self, gates: Sequence[OracleGate]):
        if not gates:
            raise ValueError("EvaluatorPool needs at least one gate")
        self.gates = list(gates)

    @property
    def name(self) -> str:
        return self.gates[0].name

    @staticmethod
    async def evaluate_one(oracle: Union[OracleGate, OracleSession], fen: str, budget: SearchBudget) -> Outcome:
        try:
            return await oracle.evaluate(fen, budget)
        except RECOVERABLE_ORACLE_ERRORS as e:
            logger.warning(f"Oracle failed on position ({e.code}): {e}")
            return e

    async def evaluate_all(
        self,
        fens: Sequence[str],
        budget: SearchBudget,
        progress: Optional[ProgressCallback] = None,
    ) -> list[Outcome]:
        results: list[Optional[Outcome]] = [None] * len(fens)
        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(len(fens)):
            queue.put_nowait(index)
        done = 0

        async def worker(gate: OracleGate):
            nonlocal done
            async with gate.session() as oracle:
                while True:
                    try:
                        index = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    results[index] = await self.evaluate_one(oracle, fens[index], budget)
                    done += 1
                    if progress:
                        progress(done, len(fens), f"Evaluated position {index}")

        tasks = [asyncio.ensure_future(worker(gate)) for gate in self.gates]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return results
