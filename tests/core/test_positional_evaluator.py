# tests/core/test_positional_evaluator.py
import chess
import pytest

from chess_annotator.config.settings import AnalysisSettings
from chess_annotator.core.positional_evaluator import PositionalEvaluator
from chess_annotator.types import PositionalFactor, PositionalShift, Position


@pytest.fixture
def evaluator() -> PositionalEvaluator:
    return PositionalEvaluator(AnalysisSettings())


def test_starting_position_is_balanced(evaluator):
    factors = evaluator.evaluate(Position.initial())
    assert all(value == 0.0 for value in factors.as_dict().values())


def test_all_factors_stay_in_range(evaluator):
    fens = [
        "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3",
        "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1",
        "QQQQKQQQ/8/8/8/8/8/8/4k3 b - - 0 1",
    ]
    for fen in fens:
        factors = evaluator.evaluate(Position(fen))
        assert all(-1.0 <= value <= 1.0 for value in factors.as_dict().values())


def test_checkmated_king_is_unsafe(evaluator):
    fools_mate = Position("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
    assert evaluator.evaluate(fools_mate).king_safety < 0


def test_passed_pawn_improves_structure(evaluator):
    factors = evaluator.evaluate(Position("4k3/8/8/3P4/8/8/8/4K3 w - - 0 1"))
    assert factors.pawn_structure > 0


def test_mirrored_position_flips_the_signs(evaluator):
    white_up = evaluator.evaluate(Position("4k3/8/8/3P4/8/8/8/4K3 w - - 0 1"))
    black_up = evaluator.evaluate(Position("4k3/8/8/8/3p4/8/8/4K3 b - - 0 1"))

    for factor, value in white_up.as_dict().items():
        assert black_up.as_dict()[factor] == pytest.approx(-value)


def test_shift_is_seen_from_the_mover(evaluator):
    before_board = chess.Board()
    after_board = chess.Board()
    after_board.push_uci("e2e4")

    shift = PositionalShift(
        before=evaluator.evaluate(Position.from_board(before_board)),
        after=evaluator.evaluate(Position.from_board(after_board)),
        mover=chess.WHITE,
    )

    assert shift.changes[PositionalFactor.CENTER_CONTROL] > 0
    assert shift.changes[PositionalFactor.PIECE_ACTIVITY] > 0


def test_larger_scale_dampens_the_score():
    position = Position("4k3/8/8/3P4/8/8/8/4K3 w - - 0 1")
    tight = PositionalEvaluator(AnalysisSettings()).evaluate(position)
    loose = PositionalEvaluator(
        AnalysisSettings.model_validate({"positional": {"pawn_structure_scale": 40.0}})
    ).evaluate(position)

    assert 0 < loose.pawn_structure < tight.pawn_structure
