# tests/core/test_alternative_ranker.py
import itertools

import chess
import pytest

from chess_annotator.config.settings import AnalysisSettings, load_analysis_settings
from chess_annotator.core.alternative_ranker import AlternativeRanker
from chess_annotator.exceptions import MissingEvaluationError
from chess_annotator.types import EngineEvaluation, Move


@pytest.fixture
def ranker() -> AlternativeRanker:
    return AlternativeRanker(AnalysisSettings())


def _move(uci: str, fen: str = chess.STARTING_FEN) -> Move:
    board = chess.Board(fen)
    return Move.from_chess(board, chess.Move.from_uci(uci))


def _cp(score, turn=chess.WHITE):
    return EngineEvaluation(score_cp=score, mate=None, depth=12, turn=turn)


def test_best_first_with_deltas(ranker):
    candidates = [(_move("d2d4"), _cp(25)), (_move("e2e4"), _cp(30)), (_move("g1f3"), _cp(20))]

    ranked = ranker.rank(candidates, chess.WHITE)

    assert [alt.move.uci for alt in ranked] == ["e2e4", "d2d4", "g1f3"]
    assert [alt.delta_cp for alt in ranked] == [0, 5, 10]


def test_scores_are_read_from_the_side_to_move():
    fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    ranker = AlternativeRanker(AnalysisSettings())
    candidates = [
        (_move("e7e5", fen), _cp(-20, turn=chess.WHITE)),
        (_move("c7c5", fen), _cp(-35, turn=chess.WHITE)),
    ]

    ranked = ranker.rank(candidates, chess.BLACK)

    assert ranked[0].move.uci == "c7c5"
    assert ranked[1].delta_cp == 15


def test_mate_beats_any_finite_score(ranker):
    mate = EngineEvaluation(score_cp=None, mate=4, depth=20)
    ranked = ranker.rank([(_move("e2e4"), _cp(2500)), (_move("d2d4"), mate)], chess.WHITE)
    assert ranked[0].move.uci == "d2d4"


def test_ties_prefer_moves_other_than_the_played_one(ranker):
    played = _move("e2e4")
    candidates = [(played, _cp(30)), (_move("d2d4"), _cp(30))]

    ranked = ranker.rank(candidates, chess.WHITE, played_move=played)

    assert [alt.move.uci for alt in ranked] == ["d2d4", "e2e4"]
    assert all(alt.delta_cp == 0 for alt in ranked)


def test_ordering_does_not_depend_on_input_order(ranker):
    candidates = [
        (_move("e2e4"), _cp(30)), (_move("d2d4"), _cp(30)),
        (_move("c2c4"), _cp(30)), (_move("g1f3"), _cp(10)),
    ]
    expected = [alt.move for alt in ranker.rank(candidates, chess.WHITE)]

    for permutation in itertools.permutations(candidates):
        assert [alt.move for alt in ranker.rank(permutation, chess.WHITE)] == expected


def test_list_is_capped_at_top_n():
    ranker = AlternativeRanker(load_analysis_settings({"ranker": {"top_n": 2}}))
    candidates = [(_move(uci), _cp(score)) for uci, score in [("e2e4", 30), ("d2d4", 25), ("g1f3", 20)]]

    assert len(ranker.rank(candidates, chess.WHITE)) == 2


def test_no_candidates_yields_no_alternatives(ranker):
    assert ranker.rank([], chess.WHITE) == []


def test_invalid_candidate_evaluation_raises(ranker):
    broken = EngineEvaluation(score_cp=None, mate=None, depth=0)
    with pytest.raises(MissingEvaluationError):
        ranker.rank([(_move("e2e4"), _cp(30)), (_move("d2d4"), broken)], chess.WHITE)
