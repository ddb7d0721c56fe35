# chess_annotator/core/heuristics.py
"""
Contains the composable rules of the move classification pipeline.

Each heuristic is a single rule that receives the classification decided so
far and returns a (possibly) updated one. The baseline rule maps the
evaluation delta onto a band; override rules such as brilliance run after it.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Protocol, TYPE_CHECKING

from chess_annotator.types import Motif, MoveClassification

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings


@dataclass(frozen=True, slots=True)
class ClassificationContext:
    """The inputs every heuristic may look at."""
    delta_cp: float
    motifs: FrozenSet[Motif]
    settings: "AnalysisSettings"


class Heuristic(Protocol):
    """Protocol defining the interface for a single, composable classification heuristic."""
    def apply(
        self, context: ClassificationContext, current: Optional[MoveClassification]
    ) -> Optional[MoveClassification]: ...


class DeltaBandHeuristic(Heuristic):
    """
    The baseline heuristic that assigns a band from the evaluation delta.

    Bounds are inclusive on the favorable side: a delta exactly equal to a
    threshold keeps the less severe classification.
    """
    def apply(
        self, context: ClassificationContext, current: Optional[MoveClassification]
    ) -> Optional[MoveClassification]:
        thresholds = context.settings.classification_thresholds
        delta = context.delta_cp
        if delta <= thresholds.inaccuracy:
            return MoveClassification.GOOD
        if delta <= thresholds.mistake:
            return MoveClassification.INACCURACY
        if delta <= thresholds.blunder:
            return MoveClassification.MISTAKE
        return MoveClassification.BLUNDER


class BrilliantSacrificeHeuristic(Heuristic):
    """
    An override heuristic that upgrades a top-choice sacrifice to 'Brilliant' (!!).

    Matching the engine's best move is not enough on its own; the motif
    detector must also have confirmed a sound sacrifice for this move.
    """
    def apply(
        self, context: ClassificationContext, current: Optional[MoveClassification]
    ) -> Optional[MoveClassification]:
        if current != MoveClassification.GOOD:
            return current
        if context.delta_cp > context.settings.brilliant_move.max_delta_cp:
            return current
        if Motif.SACRIFICE not in context.motifs:
            return current
        return MoveClassification.BRILLIANT
