# chess_annotator/types.py
"""
A central module for shared data structures and collaborator interfaces (Protocols).

Every entity here is an immutable dataclass so it can be shared freely between
concurrently analyzed plies. Positions are identified by their canonical FEN,
squares are python-chess square indices and colors are python-chess colors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple,
                    TypeAlias, runtime_checkable)

import chess

FEN: TypeAlias = str


class MoveClassification(str, Enum):
    BRILLIANT = "Brilliant"; GOOD = "Good"; INACCURACY = "Inaccuracy"
    MISTAKE = "Mistake"; BLUNDER = "Blunder"

# Lower is more favorable. Used wherever classifications are compared.
CLASSIFICATION_SEVERITY: Dict[MoveClassification, int] = {
    MoveClassification.BRILLIANT: 0,
    MoveClassification.GOOD: 1,
    MoveClassification.INACCURACY: 2,
    MoveClassification.MISTAKE: 3,
    MoveClassification.BLUNDER: 4,
}

class MoveTag(str, Enum):
    CASTLE = "castle"; EN_PASSANT = "en_passant"

class Motif(str, Enum):
    FORK = "fork"; PIN = "pin"; SKEWER = "skewer"
    DISCOVERED_ATTACK = "discovered_attack"; DOUBLE_ATTACK = "double_attack"
    DEFLECTION = "deflection"; DECOY = "decoy"; SACRIFICE = "sacrifice"

class PositionalFactor(str, Enum):
    KING_SAFETY = "king_safety"; PAWN_STRUCTURE = "pawn_structure"
    PIECE_ACTIVITY = "piece_activity"; CENTER_CONTROL = "center_control"
    SPACE_ADVANTAGE = "space_advantage"

class StrategyType(str, Enum):
    SACRIFICIAL_ATTACK = "Sacrificial Attack"; FORK = "Fork"
    PIN_AND_SKEWER = "Pin / Skewer"; DIRECT_ATTACK = "Discovered / Double Attack"
    DEFLECTION = "Deflection / Decoy"; KING_SAFETY = "King Safety"
    PAWN_STRUCTURE = "Pawn Structure"; PIECE_ACTIVITY = "Piece Activity"
    CENTER_CONTROL = "Center Control"; SPACE = "Space"
    CONSOLIDATION = "Consolidation"

class KeyMomentSignificance(str, Enum):
    BLUNDER = "Blunder"; BRILLIANT = "Brilliant"; SWING = "Evaluation Swing"

class AggregatorState(str, Enum):
    EMPTY = "Empty"; ACCUMULATING = "Accumulating"; FINALIZED = "Finalized"


# --- POSITION MODEL ---

@dataclass(frozen=True, slots=True)
class Position:
    """
    A board state identified by its canonical FEN.

    The FEN is normalized on creation (python-chess only keeps an en-passant
    square when a legal en-passant capture exists), so two Positions that
    describe the same state compare and hash equal.
    """
    fen: FEN

    def __post_init__(self) -> None:
        object.__setattr__(self, "fen", chess.Board(self.fen).fen())

    @classmethod
    def initial(cls) -> "Position":
        return cls(chess.STARTING_FEN)

    @classmethod
    def from_board(cls, board: chess.Board) -> "Position":
        return cls(board.fen())

    def board(self) -> chess.Board:
        """Returns a fresh, mutable board for this position."""
        return chess.Board(self.fen)

    @property
    def turn(self) -> chess.Color:
        return self.fen.split()[1] == "w"

    @property
    def fullmove_number(self) -> int:
        return int(self.fen.split()[5])


@dataclass(frozen=True, slots=True)
class Move:
    from_square: chess.Square; to_square: chess.Square; piece: chess.PieceType
    captured: Optional[chess.PieceType] = None
    promotion: Optional[chess.PieceType] = None
    special: Optional[MoveTag] = None

    @property
    def uci(self) -> str:
        return self.to_chess().uci()

    def to_chess(self) -> chess.Move:
        return chess.Move(self.from_square, self.to_square, promotion=self.promotion)

    @classmethod
    def from_chess(cls, board: chess.Board, move: chess.Move) -> "Move":
        """
        Builds a Move from a python-chess move played on `board`.

        Raises:
            ValueError: If there is no piece of the side to move on the origin square.
        """
        piece = board.piece_at(move.from_square)
        if piece is None or piece.color != board.turn:
            raise ValueError(f"No piece of the side to move on {chess.square_name(move.from_square)}.")

        special: Optional[MoveTag] = None
        captured: Optional[chess.PieceType] = None
        if board.is_castling(move):
            special = MoveTag.CASTLE
        elif board.is_en_passant(move):
            special = MoveTag.EN_PASSANT
            captured = chess.PAWN
        elif board.is_capture(move):
            captured = board.piece_type_at(move.to_square)

        return cls(
            from_square=move.from_square, to_square=move.to_square,
            piece=piece.piece_type, captured=captured,
            promotion=move.promotion, special=special,
        )


# --- ENGINE & ANALYSIS DATA CONTRACTS ---

@dataclass(frozen=True, slots=True)
class EngineEvaluation:
    """
    An engine verdict on one position.

    `score_cp` and `mate` are relative to `turn`, the side to move in the
    evaluated position: positive favors that side. `mate` of zero or below
    means the side to move is getting mated.
    """
    score_cp: Optional[int]; mate: Optional[int]; depth: int
    turn: chess.Color = chess.WHITE
    pv: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.score_cp is not None or self.mate is not None

    @property
    def best_move_uci(self) -> Optional[str]:
        return self.pv[0] if self.pv else None


@dataclass(frozen=True, slots=True)
class TacticalElement:
    """A detected motif: the square of the piece executing it and the squares it targets."""
    motif: Motif; actor: str
    targets: FrozenSet[str] = frozenset()
    pieces: FrozenSet[str] = frozenset()

    @property
    def squares(self) -> FrozenSet[str]:
        return self.targets | {self.actor}


@dataclass(frozen=True, slots=True)
class PositionalFactors:
    """Five static scores in [-1.0, 1.0]; positive favors White."""
    king_safety: float; pawn_structure: float; piece_activity: float
    center_control: float; space_advantage: float

    def as_dict(self) -> Dict[PositionalFactor, float]:
        return {
            PositionalFactor.KING_SAFETY: self.king_safety,
            PositionalFactor.PAWN_STRUCTURE: self.pawn_structure,
            PositionalFactor.PIECE_ACTIVITY: self.piece_activity,
            PositionalFactor.CENTER_CONTROL: self.center_control,
            PositionalFactor.SPACE_ADVANTAGE: self.space_advantage,
        }

    def delta(self, other: "PositionalFactors", color: chess.Color) -> Dict[PositionalFactor, float]:
        """Per-factor change from `self` to `other`, positive when it favors `color`."""
        sign = 1.0 if color == chess.WHITE else -1.0
        before = self.as_dict()
        return {factor: sign * (value - before[factor]) for factor, value in other.as_dict().items()}


@dataclass(frozen=True, slots=True)
class PositionalShift:
    """The factor scores on both sides of a ply, seen from the side that moved."""
    before: PositionalFactors; after: PositionalFactors; mover: chess.Color

    @property
    def changes(self) -> Dict[PositionalFactor, float]:
        return self.before.delta(self.after, self.mover)


@dataclass(frozen=True, slots=True)
class OpeningContext:
    eco: str; name: str
    principles: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MoveExplanation:
    strategy: StrategyType; purpose: str
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    tactical_elements: Tuple[TacticalElement, ...] = ()
    opening: Optional[OpeningContext] = None


@dataclass(frozen=True, slots=True)
class AlternativeMove:
    move: Move; evaluation: EngineEvaluation; delta_cp: float


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """Everything the engine side contributes to the annotation of one ply."""
    ply: int
    played_evaluation: Optional[EngineEvaluation] = None
    candidates: Tuple[Tuple[Move, EngineEvaluation], ...] = ()
    continuation: Optional[EngineEvaluation] = None
    time_spent_seconds: Optional[float] = None
    opening: Optional[OpeningContext] = None


@dataclass(frozen=True, slots=True)
class AnnotatedMove:
    ply: int; color: chess.Color; position_before: Position; move: Move
    explanation: MoveExplanation
    classification: Optional[MoveClassification]
    delta_cp: Optional[float]
    evaluation: Optional[EngineEvaluation]
    alternatives: Tuple[AlternativeMove, ...] = ()
    time_spent_seconds: Optional[float] = None
    missing_evaluation: bool = False
    error: Optional[str] = None

    @property
    def move_number(self) -> int:
        return self.position_before.fullmove_number


@dataclass(frozen=True, slots=True)
class KeyMoment:
    ply: int; move_number: int; position_before: Position
    significance: KeyMomentSignificance
    explanation: str; alternative_outcome: str


@dataclass(frozen=True)
class GameAnalysis:
    """Game-level statistics. Moves are referenced by ply index, never copied."""
    accuracy: Optional[float]
    white_accuracy: Optional[float]; black_accuracy: Optional[float]
    blunders: Tuple[int, ...] = ()
    mistakes: Tuple[int, ...] = ()
    inaccuracies: Tuple[int, ...] = ()
    brilliant_moves: Tuple[int, ...] = ()
    unclassified: Tuple[int, ...] = ()
    key_moments: Tuple[KeyMoment, ...] = field(default_factory=tuple)
    move_count: int = 0
    finalized: bool = False


# --- PROTOCOLS: Abstract Interfaces for Collaborators ---
# The core consumes these contracts; it never re-derives legality or searches.

@runtime_checkable
class RulesEngine(Protocol):
    """Move generation and application. Illegal moves raise `IllegalMoveError`."""
    def legal_moves(self, position: Position) -> FrozenSet[Move]: ...
    def apply(self, position: Position, move: Move) -> Position: ...
    def parse_uci(self, position: Position, uci: str) -> Move: ...

@runtime_checkable
class StrengthEngine(Protocol):
    """
    Defines the abstract interface for a chess strength-evaluation engine.

    `timeout` bounds the engine's own work on a request, not time spent queued
    behind other requests; on expiry implementations raise `EngineTimeoutError`.
    Requests must stay cancellable.
    """
    async def evaluate(
        self, position: Position, depth: int, timeout: Optional[float] = None
    ) -> EngineEvaluation: ...
    async def candidates(
        self, position: Position, depth: int, count: int, timeout: Optional[float] = None
    ) -> List[Tuple[Move, EngineEvaluation]]: ...
    async def close(self) -> None: ...

@runtime_checkable
class OpeningBook(Protocol):
    """Best-effort opening lookup. Returns None when the line is unknown."""
    def lookup(self, moves: Sequence[str]) -> Optional[OpeningContext]: ...
