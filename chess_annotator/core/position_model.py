# chess_annotator/core/position_model.py
"""
Provides pure functions that relate two Positions through the Move between them.

The rules engine owns legality; this module only checks that a before/after
pair is *consistent* with a declared Move, i.e. that nothing changed outside
the squares the move itself touches. Analysis components call
`verify_move_footprint` before reasoning about a ply so that a mismatched
pair fails loudly instead of producing an invented annotation.
"""

from typing import FrozenSet, Optional, Tuple

import chess

from chess_annotator.exceptions import InconsistentPositionError
from chess_annotator.types import Move, MoveTag, Position


def _castle_rook_squares(move: Move) -> Tuple[chess.Square, chess.Square]:
    """Returns the (origin, destination) of the rook for a standard castling move."""
    rank = chess.square_rank(move.from_square)
    if chess.square_file(move.to_square) > chess.square_file(move.from_square):
        return chess.square(7, rank), chess.square(5, rank)
    return chess.square(0, rank), chess.square(3, rank)


def en_passant_victim_square(move: Move) -> chess.Square:
    return chess.square(chess.square_file(move.to_square), chess.square_rank(move.from_square))


def move_footprint(move: Move) -> FrozenSet[chess.Square]:
    """All squares whose contents a move may change."""
    squares = {move.from_square, move.to_square}
    if move.special == MoveTag.CASTLE:
        squares.update(_castle_rook_squares(move))
    elif move.special == MoveTag.EN_PASSANT:
        squares.add(en_passant_victim_square(move))
    return frozenset(squares)


def _expect(
    board: chess.Board, square: chess.Square, expected: Optional[chess.Piece], what: str
) -> None:
    actual = board.piece_at(square)
    if actual != expected:
        raise InconsistentPositionError(
            f"{what}: expected {expected.symbol() if expected else 'empty'} on "
            f"{chess.square_name(square)}, found {actual.symbol() if actual else 'empty'}."
        )


def verify_move_footprint(
    before: Position, after: Position, move: Move
) -> Tuple[chess.Board, chess.Board]:
    """
    Checks that `after` is exactly `before` with `move` applied to it.

    Args:
        before: The position before the move.
        after: The position after the move.
        move: The declared move.

    Returns:
        Fresh boards for `before` and `after`, for the caller's further analysis.

    Raises:
        InconsistentPositionError: If the pair disagrees with the declared move.
    """
    board_before, board_after = before.board(), after.board()
    mover = board_before.turn

    if board_after.turn == mover:
        raise InconsistentPositionError("Side to move did not change across the ply.")

    _expect(board_before, move.from_square, chess.Piece(move.piece, mover), "Moved piece (before)")
    _expect(board_after, move.from_square, None, "Origin square (after)")
    _expect(
        board_after, move.to_square,
        chess.Piece(move.promotion or move.piece, mover), "Destination square (after)"
    )

    if move.special == MoveTag.EN_PASSANT:
        victim = en_passant_victim_square(move)
        _expect(board_before, move.to_square, None, "En-passant destination (before)")
        _expect(board_before, victim, chess.Piece(chess.PAWN, not mover), "En-passant victim (before)")
        _expect(board_after, victim, None, "En-passant victim (after)")
    elif move.captured is not None:
        _expect(board_before, move.to_square, chess.Piece(move.captured, not mover), "Captured piece (before)")
    else:
        _expect(board_before, move.to_square, None, "Destination square (before)")

    if move.special == MoveTag.CASTLE:
        rook_from, rook_to = _castle_rook_squares(move)
        _expect(board_before, rook_from, chess.Piece(chess.ROOK, mover), "Castling rook (before)")
        _expect(board_before, rook_to, None, "Castling rook path (before)")
        _expect(board_after, rook_from, None, "Castling rook origin (after)")
        _expect(board_after, rook_to, chess.Piece(chess.ROOK, mover), "Castling rook (after)")

    footprint = move_footprint(move)
    for square in chess.SQUARES:
        if square in footprint:
            continue
        if board_before.piece_at(square) != board_after.piece_at(square):
            raise InconsistentPositionError(
                f"Square {chess.square_name(square)} changed outside the footprint of {move.uci}."
            )

    return board_before, board_after
