# tests/core/test_move_classifier.py
import chess
import pytest

from chess_annotator.config.settings import (AnalysisSettings, ClassificationThresholdsModel,
                                             load_analysis_settings)
from chess_annotator.core.heuristics import BrilliantSacrificeHeuristic
from chess_annotator.core.move_classifier import EvaluationClassifier
from chess_annotator.exceptions import InvalidConfigurationError, MissingEvaluationError
from chess_annotator.types import (CLASSIFICATION_SEVERITY, EngineEvaluation, Motif,
                                   MoveClassification)


@pytest.fixture
def classifier() -> EvaluationClassifier:
    return EvaluationClassifier(AnalysisSettings())


def _cp(score, turn=chess.WHITE):
    return EngineEvaluation(score_cp=score, mate=None, depth=12, turn=turn)


@pytest.mark.parametrize("delta, expected", [
    (0, MoveClassification.GOOD),
    (50, MoveClassification.GOOD),
    (50.5, MoveClassification.INACCURACY),
    (100, MoveClassification.INACCURACY),
    (101, MoveClassification.MISTAKE),
    (300, MoveClassification.MISTAKE),
    (301, MoveClassification.BLUNDER),
    (5000, MoveClassification.BLUNDER),
])
def test_bands_round_ties_towards_less_severe(classifier, delta, expected):
    assert classifier.classify_delta(delta) == expected


def test_classification_is_monotonic_in_delta(classifier):
    severities = [CLASSIFICATION_SEVERITY[classifier.classify_delta(d)] for d in range(-100, 1000, 5)]
    assert severities == sorted(severities)


def test_classify_blunder():
    # Arrange
    classifier = EvaluationClassifier(AnalysisSettings())
    best = _cp(100)
    played = _cp(201, turn=chess.BLACK)  # Black to move after the blunder, +2.01 for Black

    # Act
    result = classifier.classify(played, best, chess.WHITE)

    # Assert
    assert result == MoveClassification.BLUNDER
    assert classifier.evaluation_delta(played, best, chess.WHITE) == 301


def test_classify_from_blacks_perspective(classifier):
    best = _cp(-40, turn=chess.WHITE)    # Black's best keeps White at -0.40
    played = _cp(-10, turn=chess.WHITE)  # Black's move leaves White at -0.10

    assert classifier.evaluation_delta(played, best, chess.BLACK) == 30
    assert classifier.classify(played, best, chess.BLACK) == MoveClassification.GOOD


def test_missing_a_forced_mate_is_a_blunder(classifier):
    best = EngineEvaluation(score_cp=None, mate=3, depth=20, turn=chess.WHITE)
    played = _cp(-150, turn=chess.BLACK)

    assert classifier.classify(played, best, chess.WHITE) == MoveClassification.BLUNDER


def test_best_move_is_good_without_a_sacrifice(classifier):
    assert classifier.classify_delta(0) == MoveClassification.GOOD


def test_best_move_with_sacrifice_is_brilliant(classifier):
    assert classifier.classify_delta(0, [Motif.SACRIFICE]) == MoveClassification.BRILLIANT
    assert classifier.classify_delta(-20, [Motif.SACRIFICE, Motif.FORK]) == MoveClassification.BRILLIANT


def test_sacrifice_below_top_choice_is_not_brilliant(classifier):
    assert classifier.classify_delta(30, [Motif.SACRIFICE]) == MoveClassification.GOOD
    assert classifier.classify_delta(400, [Motif.SACRIFICE]) == MoveClassification.BLUNDER


def test_other_motifs_do_not_make_a_move_brilliant(classifier):
    assert classifier.classify_delta(0, [Motif.FORK, Motif.PIN]) == MoveClassification.GOOD


@pytest.mark.parametrize("played, best", [
    (None, _cp(10)),
    (_cp(10), None),
    (EngineEvaluation(score_cp=None, mate=None, depth=0), _cp(10)),
])
def test_missing_evaluations_raise(classifier, played, best):
    with pytest.raises(MissingEvaluationError):
        classifier.classify(played, best, chess.WHITE)


def test_non_monotonic_thresholds_fail_at_construction():
    thresholds = ClassificationThresholdsModel.model_construct(inaccuracy=100, mistake=50, blunder=300)
    settings = AnalysisSettings(classification_thresholds=thresholds)

    with pytest.raises(InvalidConfigurationError):
        EvaluationClassifier(settings)


def test_non_monotonic_thresholds_are_rejected_when_loading():
    with pytest.raises(InvalidConfigurationError):
        load_analysis_settings({"classification_thresholds": {"inaccuracy": 100, "mistake": 50, "blunder": 300}})


def test_custom_thresholds_are_respected():
    settings = load_analysis_settings({"classification_thresholds": {"inaccuracy": 20, "mistake": 60, "blunder": 150}})
    classifier = EvaluationClassifier(settings)

    assert classifier.classify_delta(30) == MoveClassification.INACCURACY
    assert classifier.classify_delta(200) == MoveClassification.BLUNDER


class TestForcedImprovement:
    def test_mate_for_the_mover_qualifies(self, classifier):
        line = EngineEvaluation(score_cp=None, mate=-4, depth=20, turn=chess.BLACK)
        assert classifier.is_forced_improvement(line, chess.WHITE, -900)

    def test_getting_mated_does_not_qualify(self, classifier):
        line = EngineEvaluation(score_cp=None, mate=4, depth=20, turn=chess.BLACK)
        assert not classifier.is_forced_improvement(line, chess.WHITE, -300)

    def test_compensated_investment_qualifies(self, classifier):
        line = _cp(-80, turn=chess.BLACK)  # +0.80 for White
        assert classifier.is_forced_improvement(line, chess.WHITE, -300)

    def test_uncompensated_loss_does_not_qualify(self, classifier):
        line = _cp(600, turn=chess.BLACK)  # -6.00 for White
        assert not classifier.is_forced_improvement(line, chess.WHITE, -900)

    def test_missing_line_does_not_qualify(self, classifier):
        assert not classifier.is_forced_improvement(None, chess.WHITE, -300)


def test_chain_without_a_baseline_raises(classifier, monkeypatch):
    monkeypatch.setattr(classifier, "_heuristic_chain", [BrilliantSacrificeHeuristic()])

    with pytest.raises(RuntimeError):
        classifier.classify_delta(0, [Motif.SACRIFICE])
