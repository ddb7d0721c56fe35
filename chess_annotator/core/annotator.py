# chess_annotator/core/annotator.py
"""
The annotation facade: turns one ply plus its engine context into an `AnnotatedMove`.

`MoveAnnotator` runs the motif detector and the positional evaluator on the
position pair, classifies the move from the engine evaluations, ranks the
engine's alternatives, and lets the composer merge everything into the move's
explanation. All collaborators are pure, so one annotator can serve many
plies concurrently.
"""

from typing import Optional, Tuple, TYPE_CHECKING

import structlog

from chess_annotator.core.alternative_ranker import AlternativeRanker
from chess_annotator.core.explanation_composer import ExplanationComposer
from chess_annotator.core.motif_detector import MotifDetector
from chess_annotator.core.move_classifier import EvaluationClassifier
from chess_annotator.core.positional_evaluator import PositionalEvaluator
from chess_annotator.exceptions import MissingEvaluationError
from chess_annotator.types import (AlternativeMove, AnnotatedMove, EngineEvaluation,
                                   EvaluationContext, Move, MoveExplanation,
                                   OpeningContext, Position, PositionalShift,
                                   StrategyType)
from chess_annotator.utils import metrics

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings

logger = structlog.get_logger(__name__)


class MoveAnnotator:
    """Produces the annotation of a single ply."""

    def __init__(
        self,
        detector: MotifDetector,
        evaluator: PositionalEvaluator,
        classifier: EvaluationClassifier,
        ranker: AlternativeRanker,
        composer: ExplanationComposer,
    ):
        self._detector = detector
        self._evaluator = evaluator
        self._classifier = classifier
        self._ranker = ranker
        self._composer = composer

    @classmethod
    def from_settings(cls, settings: "AnalysisSettings") -> "MoveAnnotator":
        """Builds an annotator with the default component implementations."""
        classifier = EvaluationClassifier(settings)
        return cls(
            detector=MotifDetector(settings, classifier),
            evaluator=PositionalEvaluator(settings),
            classifier=classifier,
            ranker=AlternativeRanker(settings),
            composer=ExplanationComposer(settings),
        )

    @staticmethod
    def _played_evaluation(played_move: Move, ctx: EvaluationContext) -> Optional[EngineEvaluation]:
        """The explicit played evaluation, else the engine's verdict on the same move as a candidate."""
        if ctx.played_evaluation is not None:
            return ctx.played_evaluation
        for move, evaluation in ctx.candidates:
            if move == played_move:
                return evaluation
        return None

    def annotate(
        self, before: Position, after: Position, played_move: Move, ctx: EvaluationContext
    ) -> AnnotatedMove:
        """
        Annotates one ply.

        Args:
            before: The position before the move.
            after: The position after the move.
            played_move: The move played.
            ctx: The engine evaluations, timing and opening for this ply.

        Returns:
            The `AnnotatedMove`. When an evaluation is missing, the annotation
            is degraded: it has no classification and `missing_evaluation` is set.

        Raises:
            InconsistentPositionError: If the positions do not match the move.
        """
        mover = before.turn
        played_eval = self._played_evaluation(played_move, ctx)
        continuation = ctx.continuation or played_eval

        motifs = self._detector.detect(before, after, played_move, continuation)
        shift = PositionalShift(
            before=self._evaluator.evaluate(before),
            after=self._evaluator.evaluate(after),
            mover=mover,
        )

        alternatives: Tuple[AlternativeMove, ...] = ()
        try:
            alternatives = tuple(self._ranker.rank(ctx.candidates, mover, played_move))
            if not alternatives:
                raise MissingEvaluationError("No engine candidates for the position before the move.")
            best_eval = alternatives[0].evaluation
            delta = self._classifier.evaluation_delta(played_eval, best_eval, mover)
            # A candidate list computed at a different depth can trail the played move.
            delta = max(delta, 0.0)
            classification = self._classifier.classify_delta(delta, (m.motif for m in motifs))
        except MissingEvaluationError as e:
            logger.warning(
                "Annotating ply without classification.", ply=ctx.ply,
                move=played_move.uci, reason=str(e)
            )
            metrics.PLIES_DEGRADED_TOTAL.labels(reason="missing_evaluation").inc()
            metrics.PLIES_ANNOTATED_TOTAL.labels(classification="unclassified").inc()
            return AnnotatedMove(
                ply=ctx.ply, color=mover, position_before=before, move=played_move,
                explanation=self._composer.compose(None, motifs, shift, ctx.opening),
                classification=None, delta_cp=None, evaluation=played_eval,
                alternatives=alternatives, time_spent_seconds=ctx.time_spent_seconds,
                missing_evaluation=True, error=str(e),
            )

        metrics.PLIES_ANNOTATED_TOTAL.labels(classification=classification.value).inc()
        logger.debug(
            "Ply annotated.", ply=ctx.ply, move=played_move.uci,
            classification=classification.value, delta_cp=delta
        )
        return AnnotatedMove(
            ply=ctx.ply, color=mover, position_before=before, move=played_move,
            explanation=self._composer.compose(classification, motifs, shift, ctx.opening),
            classification=classification, delta_cp=delta, evaluation=played_eval,
            alternatives=alternatives, time_spent_seconds=ctx.time_spent_seconds,
        )

    def degraded(
        self,
        ply: int,
        before: Position,
        played_move: Move,
        error: str,
        time_spent_seconds: Optional[float] = None,
        opening: Optional[OpeningContext] = None,
        reason: str = "analysis_error",
    ) -> AnnotatedMove:
        """Builds the annotation of a ply whose analysis failed outright."""
        metrics.PLIES_DEGRADED_TOTAL.labels(reason=reason).inc()
        metrics.PLIES_ANNOTATED_TOTAL.labels(classification="unclassified").inc()
        explanation = MoveExplanation(
            strategy=StrategyType.CONSOLIDATION,
            purpose=f"Analysis unavailable for this move: {error}",
            opening=opening,
        )
        return AnnotatedMove(
            ply=ply, color=before.turn, position_before=before, move=played_move,
            explanation=explanation, classification=None, delta_cp=None, evaluation=None,
            time_spent_seconds=time_spent_seconds, missing_evaluation=True, error=error,
        )
