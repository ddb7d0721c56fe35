# tests/utils/test_logging_config.py
import json
import logging

import pytest
import structlog

from chess_annotator.utils.logging_config import setup_logging


@pytest.fixture
def reset_logging():
    yield
    setup_logging(log_to_console=False)


def test_log_file_receives_structlog_and_stdlib_records(tmp_path, reset_logging):
    # Arrange
    log_file = tmp_path / "logs" / "annotator.jsonl"
    setup_logging(log_level="INFO", log_to_console=False, log_file=log_file)

    # Act
    structlog.get_logger("chess_annotator.session").info("Ply annotated.", ply=3)
    logging.getLogger("engine.wrapper").warning("plain record")
    logging.getLogger("chess_annotator.session").debug("below the root level")
    for handler in logging.getLogger().handlers:
        handler.flush()

    # Assert
    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [line["event"] for line in lines] == ["Ply annotated.", "plain record"]
    assert lines[0]["ply"] == 3
    assert lines[0]["level"] == "info"
    assert lines[1]["level"] == "warning"


def test_library_loggers_get_their_own_levels(reset_logging):
    setup_logging(log_to_console=False, library_levels={"stockfish": "error"})

    assert logging.getLogger("chess.pgn").level == logging.CRITICAL
    assert logging.getLogger("stockfish").level == logging.ERROR
