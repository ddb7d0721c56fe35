# tests/core/test_chess_utils.py
import chess
import pytest

from chess_annotator.config.settings import AnalysisSettings
from chess_annotator.core.chess_utils import (format_score, get_material_diff,
                                              get_material_value, score_for)
from chess_annotator.exceptions import MissingEvaluationError
from chess_annotator.types import EngineEvaluation

SETTINGS = AnalysisSettings()


def _cp(score, turn=chess.WHITE):
    return EngineEvaluation(score_cp=score, mate=None, depth=10, turn=turn)


def _mate(n, turn=chess.WHITE):
    return EngineEvaluation(score_cp=None, mate=n, depth=10, turn=turn)


def test_score_for_flips_perspective():
    assert score_for(_cp(120), chess.WHITE, SETTINGS) == 120
    assert score_for(_cp(120), chess.BLACK, SETTINGS) == -120
    assert score_for(_cp(120, turn=chess.BLACK), chess.WHITE, SETTINGS) == -120


def test_finite_scores_are_capped():
    assert score_for(_cp(99999), chess.WHITE, SETTINGS) == SETTINGS.eval_cap_cp
    assert score_for(_cp(-99999), chess.WHITE, SETTINGS) == -SETTINGS.eval_cap_cp


def test_mate_scores_saturate_and_outrank_finite_scores():
    mate_in_1 = score_for(_mate(1), chess.WHITE, SETTINGS)
    mate_in_5 = score_for(_mate(5), chess.WHITE, SETTINGS)

    assert mate_in_1 > mate_in_5 > SETTINGS.eval_cap_cp
    assert mate_in_1 == SETTINGS.mate_score_equivalent_cp - 10


def test_being_mated_is_worse_than_any_finite_score():
    mated_in_2 = score_for(_mate(-2), chess.WHITE, SETTINGS)
    mated_in_8 = score_for(_mate(-8), chess.WHITE, SETTINGS)

    assert mated_in_2 < mated_in_8 < -SETTINGS.eval_cap_cp
    # The opponent sees the same mate as a win.
    assert score_for(_mate(-2), chess.BLACK, SETTINGS) == -mated_in_2


def test_mate_zero_means_side_to_move_is_mated():
    assert score_for(_mate(0, turn=chess.BLACK), chess.BLACK, SETTINGS) < 0
    assert score_for(_mate(0, turn=chess.BLACK), chess.WHITE, SETTINGS) > 0


def test_very_long_mates_still_beat_the_cap():
    assert score_for(_mate(10_000), chess.WHITE, SETTINGS) > SETTINGS.eval_cap_cp


def test_invalid_evaluation_raises():
    with pytest.raises(MissingEvaluationError):
        score_for(EngineEvaluation(score_cp=None, mate=None, depth=0), chess.WHITE, SETTINGS)


def test_get_material_value():
    board = chess.Board()
    assert get_material_value(board, chess.WHITE) == 39.0


def test_get_material_diff():
    board = chess.Board()
    assert get_material_diff(board, chess.WHITE) == 0
    board.remove_piece_at(chess.E2)
    assert get_material_diff(board, chess.WHITE) == -1.0
    assert get_material_diff(board, chess.BLACK) == 1.0


def test_format_score():
    assert format_score(_cp(123), chess.WHITE) == "+1.23"
    assert format_score(_cp(123), chess.BLACK) == "-1.23"
    assert format_score(_mate(3), chess.WHITE) == "M3"
    assert format_score(_mate(3), chess.BLACK) == "-M3"
    assert format_score(EngineEvaluation(score_cp=None, mate=None, depth=0), chess.WHITE) == "N/A"
