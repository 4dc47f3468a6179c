"""
Board helpers – material counting and cheap move-shape checks.

Everything here is a shape heuristic over python-chess boards; nothing
verifies that a tactic actually works.
"""

from __future__ import annotations

import chess


PIECE_VALUES = {
    chess.PAWN: 1, chess.KNIGHT: 3, chess.BISHOP: 3,
    chess.ROOK: 5, chess.QUEEN: 9, chess.KING: 0,
}

NON_PAWN_PIECES = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)
VALUABLE_TARGETS = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN, chess.KING)


def count_material(board: chess.Board) -> int:
    """Count non-pawn material value for both sides."""
    total = 0
    for piece_type in NON_PAWN_PIECES:
        value = PIECE_VALUES[piece_type]
        total += len(board.pieces(piece_type, chess.WHITE)) * value
        total += len(board.pieces(piece_type, chess.BLACK)) * value
    return total


def queens_on_board(board: chess.Board) -> bool:
    return bool(board.pieces(chess.QUEEN, chess.WHITE) or board.pieces(chess.QUEEN, chess.BLACK))


def captured_value(board: chess.Board, move: chess.Move) -> int:
    if board.is_en_passant(move):
        return PIECE_VALUES[chess.PAWN]
    captured = board.piece_at(move.to_square)
    return PIECE_VALUES.get(captured.piece_type, 0) if captured else 0


def is_sacrifice(board: chess.Board, move: chess.Move) -> bool:
    """
    Move a piece (not a pawn or king) onto a square the opponent attacks
    while capturing clearly less than it is worth.
    """
    moving_piece = board.piece_at(move.from_square)
    if not moving_piece:
        return False

    moving_value = PIECE_VALUES.get(moving_piece.piece_type, 0)
    if moving_value <= 1:
        return False

    if not board.is_attacked_by(not moving_piece.color, move.to_square):
        return False

    # +1 margin for approximate equality
    return moving_value > captured_value(board, move) + 1


def is_fork(board_after: chess.Board, square: chess.Square) -> bool:
    """
    The piece on ``square`` attacks two or more valuable enemy pieces and
    one of them is the king, undefended, or worth more than the attacker.
    """
    attacker = board_after.piece_at(square)
    if not attacker:
        return False
    attacker_value = PIECE_VALUES.get(attacker.piece_type, 0)

    targets = []
    for target_square in board_after.attacks(square):
        piece = board_after.piece_at(target_square)
        if piece and piece.color != attacker.color and piece.piece_type in VALUABLE_TARGETS:
            targets.append((piece, target_square))

    if len(targets) < 2:
        return False

    for piece, target_square in targets:
        if piece.piece_type == chess.KING:
            return True
        if not board_after.is_attacked_by(piece.color, target_square):
            return True
        if PIECE_VALUES.get(piece.piece_type, 0) > attacker_value:
            return True
    return False


def count_pinned(board: chess.Board, color: chess.Color) -> int:
    """Absolute pins against ``color``'s king."""
    return sum(
        1
        for square, piece in board.piece_map().items()
        if piece.color == color and piece.piece_type != chess.KING and board.is_pinned(color, square)
    )


def is_back_rank_check(board_after: chess.Board, move: chess.Move) -> bool:
    """Rook or queen check delivered along the enemy king's back rank."""
    if not board_after.is_check():
        return False
    piece = board_after.piece_at(move.to_square)
    if not piece or piece.piece_type not in (chess.ROOK, chess.QUEEN):
        return False
    king_square = board_after.king(board_after.turn)
    if king_square is None:
        return False
    back_rank = 0 if board_after.turn == chess.WHITE else 7
    return (
        chess.square_rank(king_square) == back_rank
        and chess.square_rank(move.to_square) == back_rank
    )


def in_opponent_half(square: chess.Square, color: chess.Color) -> bool:
    rank = chess.square_rank(square)
    return rank >= 4 if color == chess.WHITE else rank <= 3
