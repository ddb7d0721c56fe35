# chess_annotator/orchestration/pgn_ingest.py
"""
Translates PGN games from python-chess into the annotation engine's inputs.

This is the boundary between `chess.pgn` and the domain model: a game becomes
a start `Position`, the list of `Move`s of its main line, the time spent on
each ply (from `[%clk]` comments) and a small metadata record.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles
import chess
import chess.pgn
import structlog

from chess_annotator.core.time_parser import compute_time_spent, parse_clk_comment_to_seconds
from chess_annotator.exceptions import PgnParsingError
from chess_annotator.types import Move, Position

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class GameMetadata:
    white_player: str; black_player: str; result: str
    event: str; date: str
    eco: Optional[str] = None
    opening: Optional[str] = None


@dataclass(frozen=True)
class IngestedGame:
    game_id: str
    metadata: GameMetadata
    start: Position
    moves: Tuple[Move, ...]
    time_spent: Tuple[Optional[float], ...] = field(default_factory=tuple)


def _game_id(headers: chess.pgn.Headers, index: int) -> str:
    """Derives a readable ID from the headers, unique within one file through `index`."""
    if site := headers.get("Site", ""):
        if "lichess.org/" in site:
            return "lichess_" + site.rstrip("/").rsplit("/", 1)[-1]
    white = headers.get("White", "Unknown").replace(" ", "_")
    black = headers.get("Black", "Unknown").replace(" ", "_")
    return f"game{index}_{white}_vs_{black}"


def ingest_game(game: chess.pgn.Game, index: int = 0) -> IngestedGame:
    """
    Converts one `chess.pgn.Game` into an `IngestedGame`.

    Raises:
        PgnParsingError: If the main line contains an illegal move or the PGN
            reported parse errors.
    """
    headers = game.headers
    metadata = GameMetadata(
        white_player=headers.get("White", "Unknown Player"),
        black_player=headers.get("Black", "Unknown Player"),
        result=headers.get("Result", "*"),
        event=headers.get("Event", "Unknown Event"),
        date=headers.get("Date", "????.??.??"),
        eco=headers.get("ECO"),
        opening=headers.get("Opening"),
    )
    label = f"'{metadata.white_player} vs. {metadata.black_player}'"
    if game.errors:
        raise PgnParsingError(f"PGN errors in game {label}: {game.errors[0]}")

    # game.board() honors a FEN header.
    board = game.board()
    start = Position.from_board(board)
    moves: List[Move] = []
    clocks: List[Optional[float]] = []
    try:
        for node in game.mainline():
            if not board.is_legal(node.move):
                raise ValueError(f"illegal move {node.move.uci()} at ply {len(moves)}")
            moves.append(Move.from_chess(board, node.move))
            clocks.append(parse_clk_comment_to_seconds(node.comment))
            board.push(node.move)
    except ValueError as e:
        logger.warning("Rejecting game with illegal main line.", game=label, error=str(e))
        raise PgnParsingError(f"Corrupt or illegal game data in game {label}.") from e

    time_spent = compute_time_spent(clocks, start.turn, headers.get("TimeControl"))
    return IngestedGame(
        game_id=_game_id(headers, index),
        metadata=metadata,
        start=start,
        moves=tuple(moves),
        time_spent=tuple(time_spent),
    )


def parse_pgn_text(text: str) -> List[IngestedGame]:
    """Parses every game in a PGN string. Unreadable games are logged and skipped."""
    handle = io.StringIO(text)
    games: List[IngestedGame] = []
    index = 0
    while (game := chess.pgn.read_game(handle)) is not None:
        try:
            games.append(ingest_game(game, index))
        except PgnParsingError as e:
            logger.warning("Skipping game.", index=index, error=str(e))
        index += 1
    return games


async def read_pgn_file(path: Path) -> List[IngestedGame]:
    """
    Reads and parses a PGN file without blocking the event loop on file I/O.

    Raises:
        PgnParsingError: If the file cannot be read.
    """
    try:
        async with aiofiles.open(path, mode="r", encoding="utf-8", errors="replace") as f:
            text = await f.read()
    except OSError as e:
        raise PgnParsingError(f"Cannot read PGN file {path}: {e}") from e
    games = parse_pgn_text(text)
    logger.info("PGN file parsed.", path=str(path), games=len(games))
    return games


