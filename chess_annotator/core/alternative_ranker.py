# chess_annotator/core/alternative_ranker.py
"""
Orders the engine's candidate moves into a short, deterministic list of alternatives.
"""

from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING

import chess

from chess_annotator.core.chess_utils import score_for
from chess_annotator.exceptions import MissingEvaluationError
from chess_annotator.types import AlternativeMove, EngineEvaluation, Move

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings


class AlternativeRanker:
    """
    Ranks candidate (Move, EngineEvaluation) pairs best-first for the side to move.

    Scores are compared on the saturated scale, so a mate for the mover beats
    any finite score and a shorter mate beats a longer one. Equal scores are
    ordered by: moves other than the played move first, then origin square,
    destination square and promotion piece. The result therefore does not
    depend on the order of the input.
    """

    def __init__(self, settings: "AnalysisSettings"):
        self._settings = settings
        self._top_n = settings.ranker.top_n

    def _sort_key(
        self, move: Move, score: float, played_move: Optional[Move]
    ) -> Tuple[float, int, int, int, int]:
        is_played = 1 if played_move is not None and move == played_move else 0
        return (-score, is_played, move.from_square, move.to_square, move.promotion or 0)

    def rank(
        self,
        candidates: Iterable[Tuple[Move, EngineEvaluation]],
        side: chess.Color,
        played_move: Optional[Move] = None,
    ) -> List[AlternativeMove]:
        """
        Returns at most `top_n` alternatives, best first.

        Args:
            candidates: The engine's candidate moves with the evaluation of each.
            side: The color to move in the position the candidates come from.
            played_move: The move actually played, used only to break ties.

        Returns:
            A list of `AlternativeMove`, each with its delta to the best candidate.

        Raises:
            MissingEvaluationError: If a candidate carries an invalid evaluation.
        """
        scored: List[Tuple[Move, EngineEvaluation, float]] = []
        for move, evaluation in candidates:
            if not evaluation.is_valid:
                raise MissingEvaluationError(f"Candidate {move.uci} has no usable evaluation.")
            scored.append((move, evaluation, score_for(evaluation, side, self._settings)))

        if not scored:
            return []

        scored.sort(key=lambda item: self._sort_key(item[0], item[2], played_move))
        best_score = scored[0][2]
        return [
            AlternativeMove(move=move, evaluation=evaluation, delta_cp=best_score - score)
            for move, evaluation, score in scored[: self._top_n]
        ]
