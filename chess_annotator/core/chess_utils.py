# chess_annotator/core/chess_utils.py
"""
Provides a collection of pure, stateless functions for chess-related calculations.

This module acts as the "math library" for the chess domain: piece values,
material balances, and the conversion of engine evaluations into a single,
comparable centipawn scale from a chosen side's perspective.
"""

from typing import Dict, Final, TYPE_CHECKING
import chess

from chess_annotator.exceptions import MissingEvaluationError

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings
    from chess_annotator.types import EngineEvaluation

# A constant dictionary mapping piece types to their standard pawn-unit values.
PIECE_VALUES: Final[Dict[chess.PieceType, float]] = {
    chess.PAWN: 1.0,
    chess.KNIGHT: 3.0,
    chess.BISHOP: 3.0,
    chess.ROOK: 5.0,
    chess.QUEEN: 9.0,
    chess.KING: 0.0,
}

# Each move of mate distance costs this many centipawns off the saturated mate score.
MATE_ADJUSTMENT_FACTOR: Final[int] = 10


def piece_value(piece_type: chess.PieceType) -> float:
    return PIECE_VALUES.get(piece_type, 0.0)


def score_for(
    evaluation: "EngineEvaluation", color: chess.Color, settings: "AnalysisSettings"
) -> float:
    """
    Converts an evaluation into centipawns from `color`'s perspective.

    Mate scores saturate towards `mate_score_equivalent_cp`, shorter mates
    scoring higher for the winning side. Finite scores are clamped to
    `eval_cap_cp`, so any mate outranks any finite score.

    Raises:
        MissingEvaluationError: If the evaluation carries neither a score nor a mate.
    """
    if evaluation.mate is not None:
        winning = evaluation.mate > 0
        if color != evaluation.turn:
            winning = not winning
        max_distance = (settings.mate_score_equivalent_cp // 2) // MATE_ADJUSTMENT_FACTOR
        distance = min(abs(evaluation.mate), max_distance)
        base_score = float(settings.mate_score_equivalent_cp - distance * MATE_ADJUSTMENT_FACTOR)
        return base_score if winning else -base_score

    if evaluation.score_cp is None:
        raise MissingEvaluationError("Engine evaluation has neither a centipawn score nor a mate distance.")

    cap = settings.eval_cap_cp
    score = float(max(-cap, min(cap, evaluation.score_cp)))
    return score if color == evaluation.turn else -score


def get_material_value(board: chess.Board, color: chess.Color) -> float:
    """
    Calculates the total material value for a given color on the board.
    """
    material: float = 0.0
    for piece_type, value in PIECE_VALUES.items():
        material += len(board.pieces(piece_type, color)) * value
    return material


def get_material_diff(board: chess.Board, perspective: chess.Color) -> float:
    """
    Calculates the material difference from a given color's perspective.
    """
    diff: float = 0.0
    for piece in board.piece_map().values():
        value = PIECE_VALUES.get(piece.piece_type, 0.0)
        if piece.color == perspective:
            diff += value
        else:
            diff -= value
    return round(diff, 2)


def format_score(evaluation: "EngineEvaluation", color: chess.Color) -> str:
    """Formats an evaluation from `color`'s perspective, e.g. "+1.23" or "M5" / "-M3"."""
    if evaluation.mate is not None:
        winning = evaluation.mate > 0
        if color != evaluation.turn:
            winning = not winning
        return f"{'' if winning else '-'}M{abs(evaluation.mate)}"
    if evaluation.score_cp is not None:
        score = evaluation.score_cp if color == evaluation.turn else -evaluation.score_cp
        return f"{score / 100.0:+.2f}"
    return "N/A"
