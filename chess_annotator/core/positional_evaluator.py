# chess_annotator/core/positional_evaluator.py
"""
A fast, static evaluator of five positional factors.

Each factor is computed independently from python-chess bitboards for both
colors, and the White-minus-Black difference is squashed into [-1, 1] with
tanh. No engine is consulted and no factor reads another factor's result.
"""

import math
from typing import Callable, Dict, TYPE_CHECKING

import chess

from chess_annotator.types import PositionalFactor, PositionalFactors, Position

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings

CENTER_SQUARES = chess.SquareSet([chess.D4, chess.E4, chess.D5, chess.E5])
_ACTIVE_PIECES = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)


def _king_safety(board: chess.Board, color: chess.Color) -> float:
    """Pawn shield minus open-file and king-zone pressure penalties."""
    king_sq = board.king(color)
    if king_sq is None:
        return 0.0

    king_file, king_rank = chess.square_file(king_sq), chess.square_rank(king_sq)
    forward = 1 if color == chess.WHITE else -1
    own_pawns = board.pieces(chess.PAWN, color)

    shield = 0
    for file in range(max(0, king_file - 1), min(7, king_file + 1) + 1):
        for step in (1, 2):
            rank = king_rank + forward * step
            if 0 <= rank <= 7 and chess.square(file, rank) in own_pawns:
                shield += 1
                break

    open_file = not any(chess.square_file(sq) == king_file for sq in own_pawns)

    zone = chess.SquareSet(chess.BB_KING_ATTACKS[king_sq]) | chess.SquareSet.from_square(king_sq)
    pressure = sum(len(board.attackers(not color, sq)) for sq in zone)

    score = shield - (1.0 if open_file else 0.0) - 0.5 * pressure
    if board.is_check() and board.turn == color:
        score -= 2.0
    return score


def _pawn_structure(board: chess.Board, color: chess.Color) -> float:
    """Rewards passed pawns and chains; penalizes doubled and isolated pawns."""
    own_pawns = board.pieces(chess.PAWN, color)
    enemy_pawns = board.pieces(chess.PAWN, not color)
    files = [chess.square_file(sq) for sq in own_pawns]

    doubled = sum(files.count(f) - 1 for f in set(files))
    isolated = passed = chained = 0
    for sq in own_pawns:
        file, rank = chess.square_file(sq), chess.square_rank(sq)
        if not any(f in files for f in (file - 1, file + 1)):
            isolated += 1

        blockers = [
            e for e in enemy_pawns
            if abs(chess.square_file(e) - file) <= 1
            and (chess.square_rank(e) > rank if color == chess.WHITE else chess.square_rank(e) < rank)
        ]
        if not blockers:
            passed += 1

        if board.attackers(color, sq) & own_pawns:
            chained += 1

    return passed * 1.0 + chained * 0.25 - isolated * 0.5 - doubled * 0.5


def _piece_activity(board: chess.Board, color: chess.Color) -> float:
    """Pseudo-legal mobility of minor and major pieces."""
    own = board.occupied_co[color]
    mobility = 0
    for piece_type in _ACTIVE_PIECES:
        for sq in board.pieces(piece_type, color):
            mobility += len(chess.SquareSet(board.attacks_mask(sq) & ~own))
    return float(mobility)


def _center_control(board: chess.Board, color: chess.Color) -> float:
    control = 0.0
    for sq in CENTER_SQUARES:
        control += len(board.attackers(color, sq))
        piece = board.piece_at(sq)
        if piece is not None and piece.color == color:
            control += 1.0
    return control


def _space(board: chess.Board, color: chess.Color) -> float:
    """Distinct squares in the opponent's half attacked by any of `color`'s pieces."""
    enemy_half = chess.BB_RANKS[4] | chess.BB_RANKS[5] | chess.BB_RANKS[6] | chess.BB_RANKS[7]
    if color == chess.BLACK:
        enemy_half = chess.BB_RANKS[0] | chess.BB_RANKS[1] | chess.BB_RANKS[2] | chess.BB_RANKS[3]

    controlled = 0
    for sq in chess.SquareSet(board.occupied_co[color]):
        controlled |= board.attacks_mask(sq)
    return float(len(chess.SquareSet(controlled & enemy_half)))


_FACTOR_FUNCTIONS: Dict[PositionalFactor, Callable[[chess.Board, chess.Color], float]] = {
    PositionalFactor.KING_SAFETY: _king_safety,
    PositionalFactor.PAWN_STRUCTURE: _pawn_structure,
    PositionalFactor.PIECE_ACTIVITY: _piece_activity,
    PositionalFactor.CENTER_CONTROL: _center_control,
    PositionalFactor.SPACE_ADVANTAGE: _space,
}


class PositionalEvaluator:
    """Computes `PositionalFactors` for a single position."""

    def __init__(self, settings: "AnalysisSettings"):
        positional = settings.positional
        self._scales: Dict[PositionalFactor, float] = {
            PositionalFactor.KING_SAFETY: positional.king_safety_scale,
            PositionalFactor.PAWN_STRUCTURE: positional.pawn_structure_scale,
            PositionalFactor.PIECE_ACTIVITY: positional.piece_activity_scale,
            PositionalFactor.CENTER_CONTROL: positional.center_control_scale,
            PositionalFactor.SPACE_ADVANTAGE: positional.space_scale,
        }

    def evaluate(self, position: Position) -> PositionalFactors:
        """
        Scores the five positional factors, positive favoring White.

        Works for any position python-chess can represent, including positions
        with no legal moves (checkmate or stalemate).
        """
        board = position.board()
        scores: Dict[PositionalFactor, float] = {}
        for factor, function in _FACTOR_FUNCTIONS.items():
            raw = function(board, chess.WHITE) - function(board, chess.BLACK)
            scores[factor] = math.tanh(raw / self._scales[factor])

        return PositionalFactors(
            king_safety=scores[PositionalFactor.KING_SAFETY],
            pawn_structure=scores[PositionalFactor.PAWN_STRUCTURE],
            piece_activity=scores[PositionalFactor.PIECE_ACTIVITY],
            center_control=scores[PositionalFactor.CENTER_CONTROL],
            space_advantage=scores[PositionalFactor.SPACE_ADVANTAGE],
        )
