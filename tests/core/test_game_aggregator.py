# tests/core/test_game_aggregator.py
import chess
import pytest

from chess_annotator.config.settings import AnalysisSettings
from chess_annotator.core.game_aggregator import GameAggregator, calculate_accuracy
from chess_annotator.exceptions import GameAlreadyFinalizedError
from chess_annotator.types import (AggregatorState, AlternativeMove, AnnotatedMove,
                                   EngineEvaluation, KeyMomentSignificance, Move,
                                   MoveClassification, MoveExplanation, Position,
                                   StrategyType)

SETTINGS = AnalysisSettings()


def _annotated(ply, classification, delta, uci="e2e4", alternatives=()):
    board = chess.Board()
    for _ in range(ply):
        board.push(next(iter(board.legal_moves)))
    chess_move = chess.Move.from_uci(uci) if ply == 0 else next(iter(board.legal_moves))
    return AnnotatedMove(
        ply=ply,
        color=board.turn,
        position_before=Position.from_board(board),
        move=Move.from_chess(board, chess_move),
        explanation=MoveExplanation(strategy=StrategyType.CONSOLIDATION, purpose="Test move."),
        classification=classification,
        delta_cp=delta,
        evaluation=None,
        alternatives=alternatives,
        missing_evaluation=classification is None,
    )


@pytest.fixture
def aggregator() -> GameAggregator:
    return GameAggregator(SETTINGS)


def test_accuracy_curve():
    assert calculate_accuracy(0, SETTINGS) == 100.0
    assert calculate_accuracy(100_000, SETTINGS) == 0.0
    assert calculate_accuracy(None, SETTINGS) is None
    assert 0 < calculate_accuracy(100, SETTINGS) < calculate_accuracy(20, SETTINGS) < 100


def test_lifecycle(aggregator):
    assert aggregator.state == AggregatorState.EMPTY

    aggregator.fold(_annotated(0, MoveClassification.GOOD, 0))
    assert aggregator.state == AggregatorState.ACCUMULATING

    aggregator.finalize()
    assert aggregator.state == AggregatorState.FINALIZED


def test_empty_game_finalizes_without_accuracy(aggregator):
    analysis = aggregator.finalize()

    assert analysis.accuracy is None
    assert analysis.move_count == 0
    assert analysis.finalized


def test_classifications_are_listed_by_ply(aggregator):
    bands = [
        (MoveClassification.GOOD, 10), (MoveClassification.INACCURACY, 70),
        (MoveClassification.BLUNDER, 450), (MoveClassification.MISTAKE, 150),
        (MoveClassification.BRILLIANT, 0), (MoveClassification.BLUNDER, 320),
    ]
    for ply, (classification, delta) in enumerate(bands):
        aggregator.fold(_annotated(ply, classification, delta))

    analysis = aggregator.finalize()

    assert analysis.blunders == (2, 5)
    assert analysis.mistakes == (3,)
    assert analysis.inaccuracies == (1,)
    assert analysis.brilliant_moves == (4,)
    assert analysis.move_count == 6


def test_key_moments_for_blunder_brilliant_and_swing(aggregator):
    # Arrange
    moves = [
        _annotated(0, MoveClassification.GOOD, 10),
        _annotated(1, MoveClassification.BLUNDER, 500),
        _annotated(2, MoveClassification.BRILLIANT, 0),
        _annotated(3, MoveClassification.MISTAKE, 250),
        _annotated(4, MoveClassification.MISTAKE, 150),
    ]

    # Act
    emitted = [aggregator.fold(m) for m in moves]

    # Assert
    assert emitted[0] is None and emitted[4] is None
    assert emitted[1].significance == KeyMomentSignificance.BLUNDER
    assert emitted[2].significance == KeyMomentSignificance.BRILLIANT
    assert emitted[3].significance == KeyMomentSignificance.SWING
    assert [k.ply for k in aggregator.finalize().key_moments] == [1, 2, 3]


def test_key_moment_names_the_better_move(aggregator):
    best = Move.from_chess(chess.Board(), chess.Move.from_uci("d2d4"))
    evaluation = EngineEvaluation(score_cp=40, mate=None, depth=12, pv=("d2d4", "d7d5"))
    move = _annotated(
        0, MoveClassification.BLUNDER, 400, uci="f2f3",
        alternatives=(AlternativeMove(move=best, evaluation=evaluation, delta_cp=0),)
    )

    moment = aggregator.fold(move)

    assert moment.move_number == 1
    assert moment.position_before == Position.initial()
    assert moment.alternative_outcome == "Best was d2d4 (+0.40), with the line d2d4 d7d5."
    assert moment.explanation.startswith("1. f2f3 is a blunder")


def test_unclassified_moves_are_excluded_from_accuracy(aggregator):
    aggregator.fold(_annotated(0, MoveClassification.GOOD, 0))
    aggregator.fold(_annotated(1, None, None))

    analysis = aggregator.finalize()

    assert analysis.unclassified == (1,)
    assert analysis.accuracy == 100.0
    assert analysis.white_accuracy == 100.0
    assert analysis.black_accuracy is None
    assert analysis.move_count == 2


def test_accuracy_per_color(aggregator):
    aggregator.fold(_annotated(0, MoveClassification.GOOD, 0))
    aggregator.fold(_annotated(1, MoveClassification.BLUNDER, 600))

    analysis = aggregator.finalize()

    assert analysis.white_accuracy == 100.0
    assert analysis.black_accuracy == calculate_accuracy(600, SETTINGS)
    assert analysis.accuracy == calculate_accuracy(300, SETTINGS)


def test_deviation_is_capped(aggregator):
    aggregator.fold(_annotated(0, MoveClassification.BLUNDER, 50_000))
    assert aggregator.finalize().accuracy == calculate_accuracy(SETTINGS.aggregator.max_deviation_cp, SETTINGS)


def test_finalize_is_idempotent(aggregator):
    aggregator.fold(_annotated(0, MoveClassification.GOOD, 0))
    assert aggregator.finalize() is aggregator.finalize()


def test_fold_after_finalize_raises(aggregator):
    aggregator.finalize()
    with pytest.raises(GameAlreadyFinalizedError):
        aggregator.fold(_annotated(0, MoveClassification.GOOD, 0))


def test_out_of_order_fold_raises(aggregator):
    with pytest.raises(ValueError):
        aggregator.fold(_annotated(1, MoveClassification.GOOD, 0))


def test_snapshot_is_not_final(aggregator):
    aggregator.fold(_annotated(0, MoveClassification.INACCURACY, 80))

    snapshot = aggregator.snapshot()

    assert not snapshot.finalized
    assert snapshot.inaccuracies == (0,)
    assert aggregator.state == AggregatorState.ACCUMULATING
