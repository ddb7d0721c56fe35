# chess_annotator/exceptions.py
"""
Defines custom exceptions for the Chess Annotator.

All errors raised by the annotation engine derive from `ChessAnnotatorError`,
so callers can catch the whole family at an application boundary while
still handling specific failure kinds (an inconsistent ply, a missing engine
evaluation, a misuse of the game aggregator) where they occur.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from chess_annotator.types import StrengthEngine


class ChessAnnotatorError(Exception):
    """Base class for all application-specific, catchable errors."""
    pass


class InconsistentPositionError(ChessAnnotatorError):
    """
    Raised when a before/after position pair does not match the declared move.

    Squares outside the move's own footprint changed, the moved piece is not
    where the move says it was, or the side to move did not flip. The ply
    cannot be analyzed; guessing would produce a fabricated annotation.
    """
    pass


class MissingEvaluationError(ChessAnnotatorError):
    """
    Raised when an engine evaluation needed for classification is absent or invalid.

    This covers evaluations that timed out, failed, or carry neither a
    centipawn score nor a mate distance.
    """
    pass


class GameAlreadyFinalizedError(ChessAnnotatorError):
    """Raised when a move is folded into a game aggregator after `finalize()`."""
    pass


class InvalidConfigurationError(ChessAnnotatorError):
    """
    Raised when analysis settings are malformed.

    Raised at construction time (settings loading or component creation),
    for example when classification thresholds are not strictly increasing.
    """
    pass


class IllegalMoveError(ChessAnnotatorError):
    """Raised by the rules engine when a move is not legal in the given position."""
    pass


class EngineError(ChessAnnotatorError):
    """
    Base class for errors related to the strength-evaluation engine.

    Attributes:
        engine: An optional reference to the failed engine service instance,
                allowing for targeted cleanup.
    """
    def __init__(self, message: str, engine: Optional["StrengthEngine"] = None):
        super().__init__(message)
        self.engine = engine


class EngineInitializationError(EngineError):
    """
    Raised when the engine process fails to initialize correctly.

    This typically occurs if the executable path is invalid or the process
    starts but does not answer its initial UCI handshake.
    """
    pass


class EngineAnalysisError(EngineError):
    """
    Raised when an error occurs while the engine analyzes a position.

    A previously healthy engine process crashed or produced output that
    cannot be interpreted. The engine instance is no longer usable.
    """
    pass


class EngineTimeoutError(EngineAnalysisError):
    """
    Raised when an engine request does not finish within its timeout.

    Unlike a crash, the engine stays usable: the timed-out search is allowed
    to finish, and its result is discarded, before the engine takes a new request.
    """
    pass


class PgnParsingError(ChessAnnotatorError):
    """Raised for game-level PGN integrity errors, such as illegal moves."""
    pass
