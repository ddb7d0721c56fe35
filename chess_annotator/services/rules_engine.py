# chess_annotator/services/rules_engine.py
"""
Provides the `RulesEngine` implementation backed by python-chess.
"""

from typing import FrozenSet

import chess

from chess_annotator.exceptions import IllegalMoveError
from chess_annotator.types import Move, Position, RulesEngine


class PythonChessRules(RulesEngine):
    """Legal move generation and move application using `chess.Board`."""

    def legal_moves(self, position: Position) -> FrozenSet[Move]:
        board = position.board()
        return frozenset(Move.from_chess(board, m) for m in board.legal_moves)

    def apply(self, position: Position, move: Move) -> Position:
        """
        Plays `move` on `position`.

        Raises:
            IllegalMoveError: If the move is not legal, or does not describe the
                piece actually standing on its origin square.
        """
        board = position.board()
        chess_move = move.to_chess()
        if chess_move not in board.legal_moves:
            raise IllegalMoveError(f"Illegal move {move.uci} in position {position.fen}.")
        if Move.from_chess(board, chess_move) != move:
            raise IllegalMoveError(f"Move {move.uci} does not match the pieces in position {position.fen}.")
        board.push(chess_move)
        return Position.from_board(board)

    def parse_uci(self, position: Position, uci: str) -> Move:
        """
        Raises:
            IllegalMoveError: If `uci` is malformed or illegal in `position`.
        """
        board = position.board()
        try:
            chess_move = chess.Move.from_uci(uci)
        except ValueError as e:
            raise IllegalMoveError(f"Malformed UCI move '{uci}'.") from e
        if chess_move not in board.legal_moves:
            raise IllegalMoveError(f"Illegal move {uci} in position {position.fen}.")
        return Move.from_chess(board, chess_move)
