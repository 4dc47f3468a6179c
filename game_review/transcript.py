"""
Game transcripts – the input to the analysis pipeline.

A transcript is produced by the rules engine and assumed legal; we only
replay it with python-chess to make sure the recorded positions and moves
agree before any engine time is spent.
"""

from __future__ import annotations

import hashlib
import io
import re
from dataclasses import dataclass, replace
from typing import Iterator, Optional

import chess
import chess.pgn

from .errors import MalformedTranscript


COLORS = ("white", "black")
RESULTS = ("1-0", "0-1", "1/2-1/2", "*")


@dataclass(frozen=True)
class Move:
    """A single recorded ply. Immutable once recorded."""

    ply: int  # 1-based half-move index
    color: str  # "white" or "black"
    san: str
    uci: str  # origin/destination/promotion, e.g. "e7e8q"
    fen: str  # position AFTER the move
    time_spent: Optional[float] = None  # seconds; None when no clock data
    move_number: Optional[int] = None  # full-move number; filled in by Transcript if omitted

    def to_dict(self) -> dict:
        return {
            "ply": self.ply,
            "move_number": self.move_number,
            "color": self.color,
            "san": self.san,
            "uci": self.uci,
            "fen": self.fen,
            "time_spent": self.time_spent,
        }


@dataclass(frozen=True)
class Transcript:
    """Ordered moves of one finished game plus its starting position."""

    game_id: str
    moves: tuple[Move, ...]
    player_color: str = "white"
    initial_fen: str = chess.STARTING_FEN
    result: str = "*"

    def __post_init__(self):
        moves = tuple(self.moves)
        if any(m.move_number is None for m in moves):
            moves = _number_moves(moves, self.initial_fen)
        object.__setattr__(self, "moves", moves)

    def __len__(self) -> int:
        return len(self.moves)

    def __iter__(self) -> Iterator[Move]:
        return iter(self.moves)

    @property
    def positions(self) -> list[str]:
        """FENs P0..Pn: the initial position followed by every post-move position."""
        return [self.initial_fen] + [m.fen for m in self.moves]

    def position_before(self, index: int) -> str:
        """FEN the mover faced before moves[index]."""
        return self.initial_fen if index == 0 else self.moves[index - 1].fen

    @property
    def last_move_number(self) -> int:
        return self.moves[-1].move_number if self.moves else 0

    @classmethod
    def from_pgn(
        cls,
        pgn_text: str,
        player_color: str = "white",
        game_id: Optional[str] = None,
    ) -> Transcript:
        """
        Build a transcript from PGN text (mainline only).

        Move times are derived from [%clk] comments when present:
        previous clock of the same colour minus the current clock, plus the
        increment from the TimeControl header.
        """
        game = chess.pgn.read_game(io.StringIO(pgn_text))
        if game is None:
            raise MalformedTranscript("No game found in PGN")
        if game.errors:
            raise MalformedTranscript(f"PGN could not be parsed: {game.errors[0]}")

        headers = game.headers
        board = game.board()
        initial_fen = board.fen()
        increment = parse_increment(headers.get("TimeControl"))
        last_clock: dict[bool, Optional[float]] = {chess.WHITE: None, chess.BLACK: None}

        moves = []
        for ply, node in enumerate(game.mainline(), start=1):
            mover = board.turn
            move_number = board.fullmove_number
            san = board.san(node.move)
            board.push(node.move)

            clock = parse_clock_comment(node.comment)
            time_spent = None
            if clock is not None:
                prev = last_clock[mover]
                if prev is not None:
                    time_spent = max(0.0, prev - clock + increment)
                last_clock[mover] = clock

            moves.append(Move(
                ply=ply,
                color="white" if mover == chess.WHITE else "black",
                san=san,
                uci=node.move.uci(),
                fen=board.fen(),
                time_spent=time_spent,
                move_number=move_number,
            ))

        if game_id is None:
            game_id = headers.get("GameId") or _hash_game(initial_fen, moves)

        result = headers.get("Result", "*")
        return cls(
            game_id=game_id,
            moves=tuple(moves),
            player_color=player_color,
            initial_fen=initial_fen,
            result=result if result in RESULTS else "*",
        )


def _number_moves(moves: tuple[Move, ...], initial_fen: str) -> tuple[Move, ...]:
    """Fill missing full-move numbers counting from the starting position."""
    try:
        board = chess.Board(initial_fen)
    except ValueError:
        return moves  # rejected by validate_transcript
    offset = 0 if board.turn == chess.WHITE else 1
    return tuple(
        m if m.move_number is not None
        else replace(m, move_number=board.fullmove_number + (index + offset) // 2)
        for index, m in enumerate(moves)
    )


def _hash_game(initial_fen: str, moves: list[Move]) -> str:
    key = initial_fen + "|" + " ".join(m.uci for m in moves)
    return hashlib.md5(key.encode()).hexdigest()[:16]


# ═══════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════


def _same_position(a: chess.Board, b: chess.Board) -> bool:
    return (
        a.board_fen() == b.board_fen()
        and a.turn == b.turn
        and a.castling_rights == b.castling_rights
    )


def validate_transcript(transcript: Transcript) -> None:
    """
    Replay the transcript and raise MalformedTranscript on the first
    inconsistency. Runs before any oracle call.
    """
    if transcript.player_color not in COLORS:
        raise MalformedTranscript(f"Unknown player color: {transcript.player_color!r}")
    if transcript.result not in RESULTS:
        raise MalformedTranscript(f"Unknown result: {transcript.result!r}")

    try:
        board = chess.Board(transcript.initial_fen)
    except ValueError as e:
        raise MalformedTranscript(f"Invalid initial FEN: {e}") from e

    for index, move in enumerate(transcript.moves):
        expected_ply = index + 1
        if move.ply != expected_ply:
            raise MalformedTranscript(
                f"Expected ply {expected_ply}, got {move.ply}", ply=move.ply
            )

        side = "white" if board.turn == chess.WHITE else "black"
        if move.color != side:
            raise MalformedTranscript(
                f"Ply {move.ply} recorded for {move.color} but {side} is to move",
                ply=move.ply,
            )

        if move.move_number != board.fullmove_number:
            raise MalformedTranscript(
                f"Ply {move.ply} numbered {move.move_number}, expected {board.fullmove_number}",
                ply=move.ply,
            )

        if move.time_spent is not None and move.time_spent < 0:
            raise MalformedTranscript(f"Negative time spent at ply {move.ply}", ply=move.ply)

        try:
            parsed = chess.Move.from_uci(move.uci)
        except ValueError as e:
            raise MalformedTranscript(f"Bad move {move.uci!r} at ply {move.ply}", ply=move.ply) from e

        if parsed not in board.legal_moves:
            raise MalformedTranscript(
                f"Illegal move {move.uci} at ply {move.ply}", ply=move.ply
            )

        san = board.san(parsed)
        if move.san != san:
            raise MalformedTranscript(
                f"SAN {move.san!r} at ply {move.ply} does not match {move.uci} ({san})",
                ply=move.ply,
            )
        board.push(parsed)

        try:
            recorded = chess.Board(move.fen)
        except ValueError as e:
            raise MalformedTranscript(f"Invalid FEN at ply {move.ply}: {e}", ply=move.ply) from e

        if not _same_position(board, recorded):
            raise MalformedTranscript(
                f"Position after ply {move.ply} does not match move {move.uci}",
                ply=move.ply,
            )


# ═══════════════════════════════════════════════════════════
# Clock / Move Time Parsing
# ═══════════════════════════════════════════════════════════

_CLK_RE = re.compile(r'\[%clk\s+(\d+):(\d+):(\d+(?:\.\d+)?)\]')


def parse_clock_comment(comment: Optional[str]) -> Optional[float]:
    """
    Parse [%clk H:MM:SS] or [%clk H:MM:SS.s] from a PGN node comment.
    Returns remaining time in seconds, or None if not found.
    """
    if not comment:
        return None
    m = _CLK_RE.search(comment)
    if not m:
        return None
    hours, minutes, seconds = int(m.group(1)), int(m.group(2)), float(m.group(3))
    return hours * 3600 + minutes * 60 + seconds


def parse_increment(time_control: Optional[str]) -> float:
    """Increment in seconds from a TimeControl header like '300+3'."""
    if not time_control or "+" not in time_control:
        return 0.0
    try:
        return float(time_control.split("+", 1)[1])
    except ValueError:
        return 0.0
