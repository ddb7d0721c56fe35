# chess_annotator/core/explanation_composer.py
"""
Composes the structured explanation of a single move.

The composer follows a "Prepare, Decide, Render" pattern: it orders the
detected motifs and the positional changes of the ply, decides the strategy
label from the strongest signal, and renders purpose, strengths and weaknesses
from nothing but what was actually detected or computed.
"""

from typing import Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from chess_annotator.types import (CLASSIFICATION_SEVERITY, Motif, MoveClassification,
                                   MoveExplanation, OpeningContext, PositionalFactor,
                                   PositionalShift, StrategyType, TacticalElement)

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings

# Lower rank wins when several motifs co-occur.
MOTIF_PRIORITY: Dict[Motif, int] = {
    Motif.SACRIFICE: 0,
    Motif.FORK: 1,
    Motif.PIN: 2, Motif.SKEWER: 2,
    Motif.DISCOVERED_ATTACK: 3, Motif.DOUBLE_ATTACK: 3,
    Motif.DEFLECTION: 4, Motif.DECOY: 4,
}

MOTIF_STRATEGY: Dict[Motif, StrategyType] = {
    Motif.SACRIFICE: StrategyType.SACRIFICIAL_ATTACK,
    Motif.FORK: StrategyType.FORK,
    Motif.PIN: StrategyType.PIN_AND_SKEWER,
    Motif.SKEWER: StrategyType.PIN_AND_SKEWER,
    Motif.DISCOVERED_ATTACK: StrategyType.DIRECT_ATTACK,
    Motif.DOUBLE_ATTACK: StrategyType.DIRECT_ATTACK,
    Motif.DEFLECTION: StrategyType.DEFLECTION,
    Motif.DECOY: StrategyType.DEFLECTION,
}

FACTOR_STRATEGY: Dict[PositionalFactor, StrategyType] = {
    PositionalFactor.KING_SAFETY: StrategyType.KING_SAFETY,
    PositionalFactor.PAWN_STRUCTURE: StrategyType.PAWN_STRUCTURE,
    PositionalFactor.PIECE_ACTIVITY: StrategyType.PIECE_ACTIVITY,
    PositionalFactor.CENTER_CONTROL: StrategyType.CENTER_CONTROL,
    PositionalFactor.SPACE_ADVANTAGE: StrategyType.SPACE,
}

FACTOR_LABELS: Dict[PositionalFactor, str] = {
    PositionalFactor.KING_SAFETY: "king safety",
    PositionalFactor.PAWN_STRUCTURE: "pawn structure",
    PositionalFactor.PIECE_ACTIVITY: "piece activity",
    PositionalFactor.CENTER_CONTROL: "control of the center",
    PositionalFactor.SPACE_ADVANTAGE: "space",
}


def _motif_label(motif: Motif) -> str:
    return motif.value.replace("_", " ")


def _describe_element(element: TacticalElement) -> str:
    """E.g. "fork from c7 against a8, e8"."""
    text = f"{_motif_label(element.motif)} from {element.actor}"
    if element.targets:
        text += f" against {', '.join(sorted(element.targets))}"
    return text


# --- 1. PREPARE ---

def _order_elements(motifs: Iterable[TacticalElement]) -> Tuple[TacticalElement, ...]:
    return tuple(sorted(
        motifs,
        key=lambda e: (MOTIF_PRIORITY[e.motif], e.motif.value, e.actor, tuple(sorted(e.targets))),
    ))


def _significant_changes(
    shift: PositionalShift, min_significance: float
) -> List[Tuple[PositionalFactor, float]]:
    """Factor changes at or above the significance bar, largest first (enum order on ties)."""
    order = list(PositionalFactor)
    changes = [(f, d) for f, d in shift.changes.items() if abs(d) >= min_significance]
    return sorted(changes, key=lambda item: (-abs(item[1]), order.index(item[0])))


# --- 2. DECIDE ---

def _is_sound(classification: Optional[MoveClassification]) -> bool:
    return (
        classification is not None
        and CLASSIFICATION_SEVERITY[classification] <= CLASSIFICATION_SEVERITY[MoveClassification.GOOD]
    )


def _decide_strategy(
    elements: Tuple[TacticalElement, ...], changes: List[Tuple[PositionalFactor, float]]
) -> StrategyType:
    if elements:
        return MOTIF_STRATEGY[elements[0].motif]
    if changes:
        return FACTOR_STRATEGY[changes[0][0]]
    return StrategyType.CONSOLIDATION


# --- 3. RENDER ---

def _render_purpose(
    classification: Optional[MoveClassification],
    elements: Tuple[TacticalElement, ...],
    changes: List[Tuple[PositionalFactor, float]],
) -> str:
    if classification is None:
        purpose = "Engine evaluation unavailable; the move is described from the board alone"
        if elements:
            purpose += f": {_describe_element(elements[0])}"
        return purpose + "."

    sound = _is_sound(classification)
    if elements:
        lead = _describe_element(elements[0])
        if classification == MoveClassification.BRILLIANT:
            return f"A brilliant {lead}, justified by the engine's follow-up."
        if sound:
            return f"Executes a {lead}."
        return f"Attempts a {lead}, but it is a {classification.value.lower()}; a stronger continuation was available."

    if changes:
        factor, delta = changes[0]
        label = FACTOR_LABELS[factor]
        if sound:
            return f"Improves {label}." if delta > 0 else f"Keeps the balance while conceding some {label}."
        if delta > 0:
            return f"Aims to improve {label}, but it is a {classification.value.lower()}; a stronger continuation was available."
        return f"Weakens {label}; this {classification.value.lower()} misses a stronger continuation."

    if sound:
        return "A quiet move that keeps the position in balance."
    return f"A quiet {classification.value.lower()} that misses a stronger continuation."


class ExplanationComposer:
    """Merges classification, motifs and positional changes into a `MoveExplanation`."""

    def __init__(self, settings: "AnalysisSettings"):
        self._min_significance = settings.explanation.min_significance

    def compose(
        self,
        classification: Optional[MoveClassification],
        motifs: Iterable[TacticalElement],
        positional_delta: PositionalShift,
        opening: Optional[OpeningContext] = None,
    ) -> MoveExplanation:
        """
        Builds the explanation of one move.

        Args:
            classification: The move's band, or None when no evaluation was available.
            motifs: The tactical elements the detector found for the move.
            positional_delta: The positional factors before and after the move.
            opening: The opening the game is in, if known.

        Returns:
            A `MoveExplanation` whose strengths and weaknesses come only from
            the supplied motifs and factor changes.
        """
        elements = _order_elements(motifs)
        changes = _significant_changes(positional_delta, self._min_significance)

        strengths: List[str] = [f"Creates a {_describe_element(e)}." for e in elements]
        weaknesses: List[str] = []
        for factor, delta in changes:
            label = FACTOR_LABELS[factor]
            if delta > 0:
                strengths.append(f"Improves {label} ({delta:+.2f}).")
            else:
                weaknesses.append(f"Weakens {label} ({delta:+.2f}).")

        purpose = _render_purpose(classification, elements, changes)
        if opening is not None:
            purpose += f" Opening: {opening.name} ({opening.eco})."

        return MoveExplanation(
            strategy=_decide_strategy(elements, changes),
            purpose=purpose,
            strengths=tuple(strengths),
            weaknesses=tuple(weaknesses),
            tactical_elements=elements,
            opening=opening,
        )
