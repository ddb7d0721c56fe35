# chess_annotator/core/game_aggregator.py
"""
Folds a game's annotated moves, in ply order, into game-level statistics.

One `GameAggregator` exists per game and is driven by a single writer. It
moves through three states: Empty (nothing folded), Accumulating (at least one
ply folded) and Finalized (the `GameAnalysis` is frozen and cached). Accuracy
follows the Lichess-style curve `a * exp(b * mean_deviation) + c`.
"""

import math
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

import chess
import structlog

from chess_annotator.core.chess_utils import format_score
from chess_annotator.exceptions import GameAlreadyFinalizedError
from chess_annotator.types import (AggregatorState, AnnotatedMove, GameAnalysis,
                                   KeyMoment, KeyMomentSignificance, MoveClassification)
from chess_annotator.utils import metrics

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings

logger = structlog.get_logger(__name__)

# Good moves are not listed; every other band has its own list.
_LISTED_CLASSIFICATIONS: Tuple[MoveClassification, ...] = (
    MoveClassification.BLUNDER,
    MoveClassification.MISTAKE,
    MoveClassification.INACCURACY,
    MoveClassification.BRILLIANT,
)


def calculate_accuracy(mean_deviation: Optional[float], settings: "AnalysisSettings") -> Optional[float]:
    """
    Maps an average deviation from best play (centipawns) to an accuracy percentage.

    Returns:
        The accuracy (0-100), rounded to one decimal place, or None without data.
    """
    if mean_deviation is None:
        return None
    consts = settings.aggregator.accuracy
    raw_accuracy = consts.const_a * math.exp(consts.const_b * mean_deviation) + consts.const_c
    return round(max(0.0, min(100.0, raw_accuracy)), 1)


def _move_label(move: AnnotatedMove) -> str:
    dots = "." if move.color == chess.WHITE else "..."
    return f"{move.move_number}{dots} {move.move.uci}"


def _describe_alternative(move: AnnotatedMove) -> str:
    """What best play would have achieved at this ply."""
    if not move.alternatives:
        return "No engine alternatives were available for this position."

    best = move.alternatives[0]
    score = format_score(best.evaluation, move.color)
    line = " ".join(best.evaluation.pv) or best.move.uci
    if best.move == move.move:
        return f"The move played was the engine's top choice ({score}), continuing {line}."
    return f"Best was {best.move.uci} ({score}), with the line {line}."


class GameAggregator:
    """Accumulates `AnnotatedMove`s into a `GameAnalysis`."""

    def __init__(self, settings: "AnalysisSettings"):
        self._settings = settings
        self._moves: List[AnnotatedMove] = []
        self._lists: Dict[MoveClassification, List[int]] = {c: [] for c in _LISTED_CLASSIFICATIONS}
        self._unclassified: List[int] = []
        self._key_moments: List[KeyMoment] = []
        self._deviation_sum: Dict[chess.Color, float] = {chess.WHITE: 0.0, chess.BLACK: 0.0}
        self._deviation_count: Dict[chess.Color, int] = {chess.WHITE: 0, chess.BLACK: 0}
        self._final: Optional[GameAnalysis] = None

    @property
    def state(self) -> AggregatorState:
        if self._final is not None:
            return AggregatorState.FINALIZED
        return AggregatorState.ACCUMULATING if self._moves else AggregatorState.EMPTY

    @property
    def moves(self) -> Tuple[AnnotatedMove, ...]:
        return tuple(self._moves)

    def fold(self, annotated_move: AnnotatedMove) -> Optional[KeyMoment]:
        """
        Adds the next ply to the running statistics.

        Args:
            annotated_move: The annotation of ply `len(moves)`.

        Returns:
            The `KeyMoment` emitted for this ply, if any.

        Raises:
            GameAlreadyFinalizedError: If `finalize()` has already been called.
            ValueError: If the ply arrives out of order.
        """
        if self._final is not None:
            raise GameAlreadyFinalizedError(
                f"Cannot fold ply {annotated_move.ply}: the game analysis is already finalized."
            )
        if annotated_move.ply != len(self._moves):
            raise ValueError(
                f"Plies must be folded in order: expected ply {len(self._moves)}, got {annotated_move.ply}."
            )

        index = len(self._moves)
        self._moves.append(annotated_move)

        classification = annotated_move.classification
        if classification is None or annotated_move.delta_cp is None:
            self._unclassified.append(index)
            return None

        if classification in self._lists:
            self._lists[classification].append(index)

        max_deviation = self._settings.aggregator.max_deviation_cp
        deviation = min(max(annotated_move.delta_cp, 0.0), max_deviation)
        self._deviation_sum[annotated_move.color] += deviation
        self._deviation_count[annotated_move.color] += 1

        key_moment = self._key_moment_for(annotated_move)
        if key_moment is not None:
            self._key_moments.append(key_moment)
            logger.info(
                "Key moment detected.", ply=index,
                significance=key_moment.significance.value, move=annotated_move.move.uci
            )
        return key_moment

    def _key_moment_for(self, move: AnnotatedMove) -> Optional[KeyMoment]:
        significance: Optional[KeyMomentSignificance] = None
        if move.classification == MoveClassification.BLUNDER:
            significance = KeyMomentSignificance.BLUNDER
        elif move.classification == MoveClassification.BRILLIANT:
            significance = KeyMomentSignificance.BRILLIANT
        elif abs(move.delta_cp) > self._settings.aggregator.swing_threshold_cp:
            significance = KeyMomentSignificance.SWING
        if significance is None:
            return None

        explanation = (
            f"{_move_label(move)} is a {move.classification.value.lower()} "
            f"(evaluation delta {move.delta_cp / 100:.2f}). {move.explanation.purpose}"
        )
        return KeyMoment(
            ply=move.ply,
            move_number=move.move_number,
            position_before=move.position_before,
            significance=significance,
            explanation=explanation,
            alternative_outcome=_describe_alternative(move),
        )

    def _accuracy_for(self, colors: Tuple[chess.Color, ...]) -> Optional[float]:
        count = sum(self._deviation_count[c] for c in colors)
        if count == 0:
            return None
        mean = sum(self._deviation_sum[c] for c in colors) / count
        return calculate_accuracy(mean, self._settings)

    def _build(self, finalized: bool) -> GameAnalysis:
        return GameAnalysis(
            accuracy=self._accuracy_for((chess.WHITE, chess.BLACK)),
            white_accuracy=self._accuracy_for((chess.WHITE,)),
            black_accuracy=self._accuracy_for((chess.BLACK,)),
            blunders=tuple(self._lists[MoveClassification.BLUNDER]),
            mistakes=tuple(self._lists[MoveClassification.MISTAKE]),
            inaccuracies=tuple(self._lists[MoveClassification.INACCURACY]),
            brilliant_moves=tuple(self._lists[MoveClassification.BRILLIANT]),
            unclassified=tuple(self._unclassified),
            key_moments=tuple(self._key_moments),
            move_count=len(self._moves),
            finalized=finalized,
        )

    def snapshot(self) -> GameAnalysis:
        """Returns the running analysis (or the final one once finalized)."""
        if self._final is not None:
            return self._final
        return self._build(finalized=False)

    def finalize(self) -> GameAnalysis:
        """
        Freezes the game analysis. Repeated calls return the identical object.
        """
        if self._final is None:
            self._final = self._build(finalized=True)
            metrics.GAMES_FINALIZED_TOTAL.inc()
            logger.info(
                "Game analysis finalized.", plies=self._final.move_count,
                accuracy=self._final.accuracy, blunders=len(self._final.blunders),
                key_moments=len(self._final.key_moments)
            )
        return self._final
