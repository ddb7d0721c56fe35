# chess_annotator/core/move_classifier.py
"""
Contains the evaluation classifier of the annotation engine.

`EvaluationClassifier` turns a pair of engine evaluations (played move, best
move) into a move-quality band by running a short chain of composable
heuristics over the evaluation delta. It also gives the verdict the motif
detector relies on when deciding whether a material investment was sound.
"""
from typing import Iterable, List, Optional, TYPE_CHECKING

import chess

from chess_annotator.core.chess_utils import score_for
from chess_annotator.core.heuristics import (BrilliantSacrificeHeuristic,
                                             ClassificationContext,
                                             DeltaBandHeuristic, Heuristic)
from chess_annotator.exceptions import InvalidConfigurationError, MissingEvaluationError
from chess_annotator.types import EngineEvaluation, Motif, MoveClassification

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings


class EvaluationClassifier:
    """
    A stateless classifier that maps evaluation deltas onto classification bands.

    The baseline band comes from the configured thresholds; the brilliance
    override runs afterwards. The order of the chain determines the priority
    of the rules.
    """

    def __init__(self, settings: "AnalysisSettings"):
        """
        Raises:
            InvalidConfigurationError: If the classification thresholds are not
                strictly increasing.
        """
        thresholds = settings.classification_thresholds
        if not thresholds.is_monotonic():
            raise InvalidConfigurationError(
                "Classification thresholds must satisfy 0 <= inaccuracy < mistake < blunder, "
                f"got {thresholds.inaccuracy}/{thresholds.mistake}/{thresholds.blunder}."
            )
        self._settings = settings
        self._heuristic_chain: List[Heuristic] = [
            DeltaBandHeuristic(),           # 1. Baseline band from the delta
            BrilliantSacrificeHeuristic(),  # 2. Override: sound sacrifice at top-choice level
        ]

    def evaluation_delta(
        self,
        played_eval: Optional[EngineEvaluation],
        best_eval: Optional[EngineEvaluation],
        side_to_move: chess.Color,
    ) -> float:
        """
        Computes best minus played, in centipawns, from the mover's perspective.

        Raises:
            MissingEvaluationError: If either evaluation is absent or invalid.
        """
        if played_eval is None or not played_eval.is_valid:
            raise MissingEvaluationError("Evaluation of the played move is missing.")
        if best_eval is None or not best_eval.is_valid:
            raise MissingEvaluationError("Evaluation of the best move is missing.")
        return (
            score_for(best_eval, side_to_move, self._settings)
            - score_for(played_eval, side_to_move, self._settings)
        )

    def classify_delta(
        self, delta_cp: float, motifs: Iterable[Motif] = ()
    ) -> MoveClassification:
        context = ClassificationContext(
            delta_cp=delta_cp, motifs=frozenset(motifs), settings=self._settings
        )
        current: Optional[MoveClassification] = None
        for heuristic in self._heuristic_chain:
            current = heuristic.apply(context, current)
        if current is None:
            raise RuntimeError("The heuristic chain produced no classification; it needs a baseline heuristic.")
        return current

    def classify(
        self,
        played_eval: Optional[EngineEvaluation],
        best_eval: Optional[EngineEvaluation],
        side_to_move: chess.Color,
        motifs: Iterable[Motif] = (),
    ) -> MoveClassification:
        """
        Classifies a played move against the engine's best move.

        Args:
            played_eval: The evaluation of the move actually played.
            best_eval: The evaluation of the engine's top choice.
            side_to_move: The color of the player who made the move.
            motifs: The motifs the detector found for the played move.

        Returns:
            The `MoveClassification` band for the move.

        Raises:
            MissingEvaluationError: If either evaluation is absent or invalid.
        """
        delta = self.evaluation_delta(played_eval, best_eval, side_to_move)
        return self.classify_delta(delta, motifs)

    def is_forced_improvement(
        self,
        continuation: Optional[EngineEvaluation],
        mover: chess.Color,
        material_delta_cp: float,
    ) -> bool:
        """
        Decides whether the engine line after a material investment vindicates it.

        The line qualifies when it mates for the mover, or when it keeps the
        mover at an acceptable score that is well above the raw material
        deficit (the material comes back or the attack is worth it).

        Args:
            continuation: The engine's evaluation of the position after the move.
            mover: The color of the player who invested the material.
            material_delta_cp: The immediate material change, in centipawns (negative).
        """
        if continuation is None or not continuation.is_valid:
            return False
        line_score = score_for(continuation, mover, self._settings)
        if continuation.mate is not None:
            return line_score > 0
        criteria = self._settings.brilliant_move
        return (
            line_score >= criteria.min_line_score_cp
            and line_score - material_delta_cp >= criteria.min_compensation_cp
        )
