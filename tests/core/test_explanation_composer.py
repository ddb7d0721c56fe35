# tests/core/test_explanation_composer.py
import chess
import pytest

from chess_annotator.config.settings import AnalysisSettings
from chess_annotator.core.explanation_composer import ExplanationComposer
from chess_annotator.types import (Motif, MoveClassification, OpeningContext,
                                   PositionalFactors, PositionalShift, StrategyType,
                                   TacticalElement)

NEUTRAL = PositionalFactors(0.0, 0.0, 0.0, 0.0, 0.0)


@pytest.fixture
def composer() -> ExplanationComposer:
    return ExplanationComposer(AnalysisSettings())


def _shift(after: PositionalFactors = NEUTRAL, mover: chess.Color = chess.WHITE) -> PositionalShift:
    return PositionalShift(before=NEUTRAL, after=after, mover=mover)


FORK = TacticalElement(motif=Motif.FORK, actor="c7", targets=frozenset({"a8", "e8"}))
PIN = TacticalElement(motif=Motif.PIN, actor="b5", targets=frozenset({"c6", "e8"}))
SACRIFICE = TacticalElement(motif=Motif.SACRIFICE, actor="h7", targets=frozenset({"g8"}))


def test_quiet_good_move(composer):
    # Act
    explanation = composer.compose(MoveClassification.GOOD, [], _shift())

    # Assert
    assert explanation.strategy == StrategyType.CONSOLIDATION
    assert explanation.purpose == "A quiet move that keeps the position in balance."
    assert explanation.strengths == ()
    assert explanation.weaknesses == ()


def test_fork_drives_strategy_and_strengths(composer):
    explanation = composer.compose(MoveClassification.GOOD, {FORK}, _shift())

    assert explanation.strategy == StrategyType.FORK
    assert explanation.purpose == "Executes a fork from c7 against a8, e8."
    assert explanation.strengths == ("Creates a fork from c7 against a8, e8.",)
    assert explanation.tactical_elements == (FORK,)


def test_higher_priority_motif_leads(composer):
    explanation = composer.compose(MoveClassification.BRILLIANT, {PIN, SACRIFICE, FORK}, _shift())

    assert explanation.strategy == StrategyType.SACRIFICIAL_ATTACK
    assert explanation.purpose.startswith("A brilliant sacrifice from h7")
    assert [e.motif for e in explanation.tactical_elements] == [Motif.SACRIFICE, Motif.FORK, Motif.PIN]


def test_faulty_tactic_is_flagged(composer):
    explanation = composer.compose(MoveClassification.MISTAKE, {PIN}, _shift())
    assert explanation.purpose.startswith("Attempts a pin from b5")
    assert "mistake" in explanation.purpose


def test_positional_changes_become_strengths_and_weaknesses(composer):
    after = PositionalFactors(king_safety=-0.2, pawn_structure=0.0, piece_activity=0.3,
                              center_control=0.01, space_advantage=0.0)

    explanation = composer.compose(MoveClassification.GOOD, [], _shift(after))

    assert explanation.strategy == StrategyType.PIECE_ACTIVITY
    assert explanation.purpose == "Improves piece activity."
    assert explanation.strengths == ("Improves piece activity (+0.30).",)
    assert explanation.weaknesses == ("Weakens king safety (-0.20).",)


def test_changes_are_read_from_black(composer):
    after = PositionalFactors(0.0, 0.0, 0.0, center_control=-0.4, space_advantage=0.0)

    explanation = composer.compose(MoveClassification.GOOD, [], _shift(after, mover=chess.BLACK))

    assert explanation.strengths == ("Improves control of the center (+0.40).",)


def test_no_evaluation_still_describes_the_board(composer):
    explanation = composer.compose(None, {FORK}, _shift())

    assert explanation.purpose.startswith("Engine evaluation unavailable")
    assert "fork from c7" in explanation.purpose
    assert explanation.strategy == StrategyType.FORK


def test_opening_is_appended(composer):
    opening = OpeningContext(eco="C50", name="Italian Game")

    explanation = composer.compose(MoveClassification.GOOD, [], _shift(), opening=opening)

    assert explanation.purpose.endswith(" Opening: Italian Game (C50).")
    assert explanation.opening == opening


def test_nothing_is_invented(composer):
    explanation = composer.compose(MoveClassification.BLUNDER, [], _shift())

    assert explanation.tactical_elements == ()
    assert explanation.strengths == ()
    assert explanation.purpose == "A quiet blunder that misses a stronger continuation."
