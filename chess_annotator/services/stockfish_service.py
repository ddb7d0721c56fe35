# chess_annotator/services/stockfish_service.py
"""
Provides a concrete implementation of the `StrengthEngine` protocol for Stockfish.

This module is an adapter to a live Stockfish subprocess. It uses the
`stockfish` library to manage the engine process and translates its output
into the annotation engine's data contracts (`Move`, `EngineEvaluation`).
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

import chess
import structlog
from stockfish import Stockfish, StockfishException

from chess_annotator.exceptions import (EngineAnalysisError, EngineInitializationError,
                                         EngineTimeoutError)
from chess_annotator.types import EngineEvaluation, Move, Position, StrengthEngine
from chess_annotator.utils import metrics

if TYPE_CHECKING:
    from chess_annotator.config.settings import EngineSettings

logger = structlog.get_logger(__name__)


def _terminal_evaluation(board: chess.Board) -> Optional[EngineEvaluation]:
    """The evaluation of a position with no legal moves, which needs no search."""
    if board.is_checkmate():
        return EngineEvaluation(score_cp=None, mate=0, depth=0, turn=board.turn)
    if board.is_stalemate():
        return EngineEvaluation(score_cp=0, mate=None, depth=0, turn=board.turn)
    return None


def parse_top_move(line: Dict[str, Any], depth: int) -> EngineEvaluation:
    """
    Converts one entry of `Stockfish.get_top_moves` into an `EngineEvaluation`.

    The library reports scores from White's point of view, so the evaluation
    is tagged with `turn=WHITE`.
    """
    pv: List[str] = [line["Move"]]
    extra = line.get("PVMoves")
    if isinstance(extra, str):
        pv = extra.split() or pv
    return EngineEvaluation(
        score_cp=line.get("Centipawn"),
        mate=line.get("Mate"),
        depth=depth,
        turn=chess.WHITE,
        pv=tuple(m for m in pv if m),
    )


class StockfishService(StrengthEngine):
    """
    Manages and talks to a single Stockfish subprocess.

    The `stockfish` library is synchronous; its blocking calls run in a worker
    thread via `asyncio.to_thread`, and an `asyncio.Lock` serializes access to
    the one engine process. A search cannot be interrupted once started, so the
    lock is only released after its worker thread returns, even when the request
    timed out or was cancelled.
    """

    def __init__(self, stockfish_instance: Stockfish, identifier: str):
        """
        Private constructor. Use the `create` class method for safe instantiation.
        """
        self._stockfish: Optional[Stockfish] = stockfish_instance
        self._identifier = identifier
        self._lock = asyncio.Lock()
        self._is_closed = False

    @property
    def identifier(self) -> str:
        return self._identifier

    @classmethod
    def _create_sync(cls, settings: "EngineSettings") -> "StockfishService":
        """Finds and starts the Stockfish subprocess. Blocking."""
        stockfish_path = Path(settings.path)
        try:
            stockfish = Stockfish(
                path=str(stockfish_path),
                depth=settings.depth,
                parameters={"MultiPV": settings.multipv, **settings.parameters},
            )
            if not stockfish.is_fen_valid(chess.STARTING_FEN):
                raise EngineInitializationError("Stockfish process started but FEN validation failed.")
        except (StockfishException, FileNotFoundError, PermissionError) as e:
            raise EngineInitializationError(f"Failed to initialize Stockfish at {stockfish_path}: {e}") from e

        logger.info("Stockfish engine started.", path=str(stockfish_path), depth=settings.depth)
        return cls(stockfish, str(stockfish_path))

    @classmethod
    async def create(cls, settings: "EngineSettings") -> "StockfishService":
        """Asynchronously creates and initializes a StockfishService instance."""
        return await asyncio.to_thread(cls._create_sync, settings)

    def _ensure_engine_ready(self) -> Stockfish:
        """Raises an error if the service is closed or the engine has crashed."""
        if self._is_closed or self._stockfish is None:
            raise EngineAnalysisError("StockfishService is closed or the engine has failed.", engine=self)
        return self._stockfish

    def _top_moves_sync(self, fen: str, depth: int, count: int) -> List[Dict[str, Any]]:
        stockfish = self._ensure_engine_ready()
        try:
            stockfish.set_depth(depth)
            stockfish.set_fen_position(fen)
            return stockfish.get_top_moves(count, verbose=True)
        except StockfishException as e:
            # A crashed process cannot be reused.
            self._stockfish = None
            raise EngineAnalysisError("Stockfish process crashed during analysis.", engine=self) from e

    @staticmethod
    async def _drain(work: "asyncio.Future[List[Dict[str, Any]]]") -> None:
        """Waits for an abandoned search to finish and discards its outcome."""
        await asyncio.wait([work])
        if not work.cancelled() and work.exception() is not None:
            logger.warning("Abandoned Stockfish search failed.", error=str(work.exception()))

    async def _top_moves(
        self, position: Position, depth: int, count: int, operation: str, timeout: Optional[float]
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            with metrics.ENGINE_CALL_DURATION_SECONDS.labels(operation=operation).time():
                work = asyncio.ensure_future(
                    asyncio.to_thread(self._top_moves_sync, position.fen, depth, count)
                )
                try:
                    return await asyncio.wait_for(asyncio.shield(work), timeout=timeout)
                except asyncio.TimeoutError:
                    await self._drain(work)
                    raise EngineTimeoutError(
                        f"Stockfish did not finish {operation} within {timeout}s.", engine=self
                    ) from None
                except asyncio.CancelledError:
                    await self._drain(work)
                    raise

    async def evaluate(
        self, position: Position, depth: int, timeout: Optional[float] = None
    ) -> EngineEvaluation:
        """
        Evaluates a position, with its principal variation.

        Raises:
            EngineTimeoutError: If the search outlasts `timeout` seconds.
            EngineAnalysisError: If the engine fails or returns nothing for a
                position that still has legal moves.
        """
        terminal = _terminal_evaluation(position.board())
        if terminal is not None:
            return terminal

        lines = await self._top_moves(position, depth, 1, "evaluate", timeout)
        if not lines:
            raise EngineAnalysisError(f"Stockfish returned no line for {position.fen}.", engine=self)
        return parse_top_move(lines[0], depth)

    async def candidates(
        self, position: Position, depth: int, count: int, timeout: Optional[float] = None
    ) -> List[Tuple[Move, EngineEvaluation]]:
        """
        Returns up to `count` candidate moves with their evaluations, best first.

        Raises:
            EngineTimeoutError: If the search outlasts `timeout` seconds.
            EngineAnalysisError: If the engine fails or suggests an illegal move.
        """
        board = position.board()
        if _terminal_evaluation(board) is not None:
            return []

        lines = await self._top_moves(position, depth, count, "candidates", timeout)
        result: List[Tuple[Move, EngineEvaluation]] = []
        for line in lines:
            try:
                chess_move = chess.Move.from_uci(line["Move"])
                if chess_move not in board.legal_moves:
                    raise ValueError(f"illegal move {line['Move']}")
                move = Move.from_chess(board, chess_move)
            except (KeyError, ValueError) as e:
                raise EngineAnalysisError(f"Stockfish returned an unusable candidate: {e}", engine=self) from e
            result.append((move, parse_top_move(line, depth)))
        return result

    def _close_sync(self) -> None:
        if self._stockfish is not None:
            self._stockfish.send_quit_command()
        self._stockfish = None

    async def close(self) -> None:
        """Gracefully terminates the Stockfish engine subprocess."""
        if self._is_closed:
            return
        self._is_closed = True
        await asyncio.to_thread(self._close_sync)
        logger.info("Stockfish engine closed.", path=self._identifier)
