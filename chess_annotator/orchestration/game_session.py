# chess_annotator/orchestration/game_session.py
"""
Defines the `GameAnalysisSession`, which annotates a whole game.

Plies are analyzed concurrently, bounded by a semaphore, because each one only
needs its own before/after positions and engine results. Folding is not
concurrent: the session awaits the ply tasks in ply order and is the only
writer of the game's `GameAggregator`.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar, TYPE_CHECKING

import structlog

from chess_annotator.core.annotator import MoveAnnotator
from chess_annotator.core.game_aggregator import GameAggregator
from chess_annotator.exceptions import ChessAnnotatorError, EngineError, EngineTimeoutError
from chess_annotator.tracing import trace_step
from chess_annotator.types import (AnnotatedMove, EngineEvaluation, EvaluationContext,
                                   GameAnalysis, Move, OpeningBook, OpeningContext,
                                   Position, RulesEngine, StrengthEngine)
from chess_annotator.utils import metrics
from chess_annotator.utils.retry import retry_with_backoff

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SessionResult:
    annotated_moves: Tuple[AnnotatedMove, ...]
    analysis: GameAnalysis


@dataclass(frozen=True, slots=True)
class PlyInput:
    """The inputs of one ply, resolved through the rules engine before analysis starts."""
    ply: int; before: Position; after: Position; move: Move
    time_spent_seconds: Optional[float] = None
    opening: Optional[OpeningContext] = None


class GameAnalysisSession:
    """Runs the annotation engine over a sequence of moves."""

    def __init__(
        self,
        annotator: MoveAnnotator,
        engine: StrengthEngine,
        rules: RulesEngine,
        opening_book: Optional[OpeningBook],
        settings: "AnalysisSettings",
    ):
        self._annotator = annotator
        self._engine = engine
        self._rules = rules
        self._opening_book = opening_book
        self._settings = settings

    def prepare_plies(
        self,
        start: Position,
        moves: Sequence[Move],
        time_spent: Optional[Sequence[Optional[float]]] = None,
    ) -> List[PlyInput]:
        """
        Resolves every ply's before/after positions and opening.

        Raises:
            IllegalMoveError: If a move is illegal in its position.
        """
        plies: List[PlyInput] = []
        position = start
        played_uci: List[str] = []
        for ply, move in enumerate(moves):
            after = self._rules.apply(position, move)
            played_uci.append(move.uci)
            opening = self._opening_book.lookup(played_uci) if self._opening_book is not None else None
            spent = time_spent[ply] if time_spent is not None and ply < len(time_spent) else None
            plies.append(PlyInput(
                ply=ply, before=position, after=after, move=move,
                time_spent_seconds=spent, opening=opening,
            ))
            position = after
        return plies

    async def _engine_call(self, operation: str, call: Callable[[], Awaitable[T]]) -> Optional[T]:
        """
        Runs one engine request under the configured retry policy.

        The engine applies the timeout itself, so time spent waiting for the
        engine does not count against it. Returns None when the request
        ultimately fails, so the ply is recorded with a missing evaluation
        rather than a guessed one.
        """
        engine_settings = self._settings.engine

        @retry_with_backoff(
            attempts=engine_settings.retry_attempts,
            initial_backoff_s=engine_settings.retry_backoff_seconds,
            operation=operation,
        )
        async def attempt() -> T:
            try:
                return await call()
            except EngineTimeoutError:
                metrics.ENGINE_TIMEOUTS_TOTAL.labels(operation=operation).inc()
                raise

        try:
            return await attempt()
        except EngineError as e:
            logger.warning("Engine request failed.", operation=operation, error=str(e) or type(e).__name__)
            return None

    async def _annotate_ply(self, ply: PlyInput, semaphore: asyncio.Semaphore) -> AnnotatedMove:
        async with semaphore:
            depth = self._settings.engine.depth
            timeout = self._settings.engine.timeout_seconds
            candidates: Optional[List[Tuple[Move, EngineEvaluation]]] = await self._engine_call(
                "candidates",
                lambda: self._engine.candidates(ply.before, depth, self._settings.engine.multipv, timeout=timeout),
            )
            played_eval: Optional[EngineEvaluation] = await self._engine_call(
                "evaluate", lambda: self._engine.evaluate(ply.after, depth, timeout=timeout)
            )

        ctx = EvaluationContext(
            ply=ply.ply,
            played_evaluation=played_eval,
            candidates=tuple(candidates or ()),
            continuation=played_eval,
            time_spent_seconds=ply.time_spent_seconds,
            opening=ply.opening,
        )
        try:
            return self._annotator.annotate(ply.before, ply.after, ply.move, ctx)
        except ChessAnnotatorError as e:
            logger.error(
                "Ply analysis failed; recording a degraded annotation.",
                ply=ply.ply, move=ply.move.uci, error_type=type(e).__name__, error=str(e),
            )
            return self._annotator.degraded(
                ply.ply, ply.before, ply.move, str(e),
                time_spent_seconds=ply.time_spent_seconds, opening=ply.opening,
                reason=type(e).__name__,
            )

    @trace_step
    async def analyze(
        self,
        start: Position,
        moves: Sequence[Move],
        time_spent: Optional[Sequence[Optional[float]]] = None,
        game_id: Optional[str] = None,
    ) -> SessionResult:
        """
        Annotates every ply of a game and finalizes its analysis.

        Args:
            start: The position before the first move.
            moves: The moves of the game, in order.
            time_spent: Optional seconds spent per ply.
            game_id: An identifier bound to all log lines of this session.

        Returns:
            A `SessionResult` with the annotated moves and the finalized `GameAnalysis`.

        Raises:
            IllegalMoveError: If the move sequence is not legal.
        """
        game_id = game_id or uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(game_id=game_id)
        try:
            with metrics.GAME_ANALYSIS_DURATION_SECONDS.time():
                plies = self.prepare_plies(start, moves, time_spent)
                logger.info("Starting game analysis.", plies=len(plies))

                semaphore = asyncio.Semaphore(self._settings.analysis_concurrency)
                tasks = [asyncio.create_task(self._annotate_ply(p, semaphore)) for p in plies]
                aggregator = GameAggregator(self._settings)
                annotated: List[AnnotatedMove] = []
                try:
                    for task in tasks:
                        annotated_move = await task
                        aggregator.fold(annotated_move)
                        annotated.append(annotated_move)
                except BaseException:
                    for task in tasks:
                        task.cancel()
                    raise

                analysis = aggregator.finalize()
            return SessionResult(annotated_moves=tuple(annotated), analysis=analysis)
        finally:
            structlog.contextvars.unbind_contextvars("game_id")
