# chess_annotator/core/motif_detector.py
"""
Detects named tactical motifs created by a single move.

The detector compares the position before and after a move and reports every
motif whose structural definition holds: forks, pins, skewers, discovered and
double attacks from the board alone, and sacrifices, deflections and decoys
when the engine's continuation for the resulting position confirms that the
material offered is justified. It never queries an engine itself.
"""

from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, TYPE_CHECKING

import chess
import structlog

from chess_annotator.core.chess_utils import piece_value
from chess_annotator.core.position_model import verify_move_footprint
from chess_annotator.types import EngineEvaluation, Motif, Move, Position, TacticalElement

if TYPE_CHECKING:
    from chess_annotator.config.settings import AnalysisSettings
    from chess_annotator.core.move_classifier import EvaluationClassifier

logger = structlog.get_logger(__name__)

# Ray direction vectors as (file, rank) steps.
_ROOK_DIRECTIONS = [(1, 0), (-1, 0), (0, 1), (0, -1)]
_BISHOP_DIRECTIONS = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
_SLIDERS = (chess.BISHOP, chess.ROOK, chess.QUEEN)


def _ray_directions(piece_type: chess.PieceType) -> List[Tuple[int, int]]:
    directions: List[Tuple[int, int]] = []
    if piece_type in (chess.ROOK, chess.QUEEN):
        directions.extend(_ROOK_DIRECTIONS)
    if piece_type in (chess.BISHOP, chess.QUEEN):
        directions.extend(_BISHOP_DIRECTIONS)
    return directions


def _first_pieces_on_ray(
    board: chess.Board, from_sq: chess.Square, d_file: int, d_rank: int, limit: int = 2
) -> List[Tuple[chess.Square, chess.Piece]]:
    """Walk a ray and return the first `limit` occupied squares, any color."""
    found: List[Tuple[chess.Square, chess.Piece]] = []
    file = chess.square_file(from_sq) + d_file
    rank = chess.square_rank(from_sq) + d_rank
    while 0 <= file <= 7 and 0 <= rank <= 7 and len(found) < limit:
        square = chess.square(file, rank)
        piece = board.piece_at(square)
        if piece is not None:
            found.append((square, piece))
        file += d_file
        rank += d_rank
    return found


def _element(
    motif: Motif, board: chess.Board, actor: chess.Square, targets: Iterable[chess.Square]
) -> TacticalElement:
    target_squares = sorted(set(targets))
    pieces = {
        p.symbol() for sq in [actor, *target_squares] if (p := board.piece_at(sq)) is not None
    }
    return TacticalElement(
        motif=motif,
        actor=chess.square_name(actor),
        targets=frozenset(chess.square_name(sq) for sq in target_squares),
        pieces=frozenset(pieces),
    )


class MotifDetector:
    """A pure detector of the tactical motifs created by one move."""

    def __init__(self, settings: "AnalysisSettings", classifier: "EvaluationClassifier"):
        """
        Args:
            settings: The analysis settings holding the motif thresholds.
            classifier: Provides the verdict on whether an engine line justifies
                        a material investment.
        """
        self._settings = settings
        self._motifs = settings.motifs
        self._classifier = classifier

    def detect(
        self,
        before: Position,
        after: Position,
        played_move: Move,
        continuation: Optional[EngineEvaluation] = None,
    ) -> FrozenSet[TacticalElement]:
        """
        Returns every motif the move creates.

        Args:
            before: The position before the move.
            after: The position after the move.
            played_move: The move connecting the two positions.
            continuation: The engine's evaluation of `after`. Without it, the
                          engine-dependent motifs (sacrifice, deflection, decoy)
                          are never reported.

        Returns:
            An unordered set of `TacticalElement`s, empty for a quiet move.

        Raises:
            InconsistentPositionError: If the positions do not match the move.
        """
        board_before, board_after = verify_move_footprint(before, after, played_move)
        mover = board_before.turn

        elements: Set[TacticalElement] = set()
        elements.update(self._detect_fork(board_after, played_move, mover))
        elements.update(self._detect_pins_and_skewers(board_after, played_move, mover))
        elements.update(self._detect_discovered_attacks(board_before, board_after, played_move, mover))

        material_delta = self._immediate_material_delta(board_after, played_move, mover)
        elements.update(
            self._detect_double_attack(board_before, board_after, played_move, mover, material_delta)
        )

        # A piece left en prise is an offer; the engine line decides if it is sound.
        capturers = self._capturers(board_after, played_move.to_square, not mover)
        if capturers and continuation is not None:
            invested_cp = min(material_delta, 0.0) * 100
            if self._classifier.is_forced_improvement(continuation, mover, invested_cp):
                elements.update(
                    self._detect_investments(board_after, played_move, mover, material_delta, capturers)
                )

        if elements:
            logger.debug(
                "Tactical motifs detected.", move=played_move.uci,
                motifs=sorted(e.motif.value for e in elements)
            )
        return frozenset(elements)

    # --- Value helpers ---

    def _target_value(self, piece: chess.Piece) -> float:
        if piece.piece_type == chess.KING:
            return self._motifs.king_target_value
        return piece_value(piece.piece_type)

    def _is_target(self, piece: Optional[chess.Piece], mover: chess.Color) -> bool:
        return (
            piece is not None and piece.color != mover
            and self._target_value(piece) >= self._motifs.min_target_value
        )

    def _capturers(self, board: chess.Board, square: chess.Square, color: chess.Color) -> List[chess.Square]:
        """Pieces of `color` that can take on `square`; a king only when the square is unprotected."""
        defended = bool(board.attackers(not color, square))
        return [
            sq for sq in board.attackers(color, square)
            if not (defended and board.piece_type_at(sq) == chess.KING)
        ]

    def _immediate_material_delta(self, board_after: chess.Board, move: Move, mover: chess.Color) -> float:
        """
        Material the mover gains with this move minus what the opponent can win back at once.

        The recapture is estimated one exchange deep: the cheapest enemy capturer
        takes, and if the square is defended the mover retakes that capturer.
        """
        gain = piece_value(move.captured) if move.captured is not None else 0.0
        if move.promotion is not None:
            gain += piece_value(move.promotion) - piece_value(chess.PAWN)

        moved_value = piece_value(move.promotion or move.piece)
        capturers = self._capturers(board_after, move.to_square, not mover)
        if not capturers:
            return gain

        defended = bool(board_after.attackers(mover, move.to_square))
        if not defended:
            return gain - moved_value
        cheapest = min(piece_value(board_after.piece_type_at(sq)) for sq in capturers)
        return gain - max(0.0, moved_value - cheapest)

    # --- Board-only motifs ---

    def _detect_fork(self, board_after: chess.Board, move: Move, mover: chess.Color) -> List[TacticalElement]:
        """
        A fork: the moved piece attacks several valuable enemy pieces, and at
        least one of them cannot simply be defended (the king, an undefended
        piece, or a piece worth more than the attacker).
        """
        attacker_value = piece_value(move.promotion or move.piece)
        targets = [
            sq for sq in board_after.attacks(move.to_square)
            if self._is_target(board_after.piece_at(sq), mover)
        ]
        if len(targets) < self._motifs.min_fork_targets:
            return []

        total_value = sum(self._target_value(board_after.piece_at(sq)) for sq in targets)
        if total_value < self._motifs.min_fork_value:
            return []

        def vulnerable(sq: chess.Square) -> bool:
            target = board_after.piece_at(sq)
            return (
                target.piece_type == chess.KING
                or piece_value(target.piece_type) > attacker_value
                or not board_after.attackers(not mover, sq)
            )

        if not any(vulnerable(sq) for sq in targets):
            return []
        return [_element(Motif.FORK, board_after, move.to_square, targets)]

    def _detect_pins_and_skewers(
        self, board_after: chess.Board, move: Move, mover: chess.Color
    ) -> List[TacticalElement]:
        """
        Scans each ray of a moved slider for two enemy pieces in a row.

        Pin: the front piece is worth less than the one behind it (possibly the king).
        Skewer: the front piece is the king, or worth more than a valuable piece behind it.
        """
        piece_type = move.promotion or move.piece
        if piece_type not in _SLIDERS:
            return []

        elements: List[TacticalElement] = []
        for d_file, d_rank in _ray_directions(piece_type):
            line = _first_pieces_on_ray(board_after, move.to_square, d_file, d_rank)
            if len(line) < 2:
                continue
            (front_sq, front), (back_sq, back) = line
            if front.color == mover or back.color == mover:
                continue

            front_value, back_value = self._target_value(front), self._target_value(back)
            if front_value < back_value and back_value >= self._motifs.min_target_value:
                elements.append(_element(Motif.PIN, board_after, move.to_square, [front_sq, back_sq]))
            elif (
                front_value > back_value
                and back.piece_type != chess.KING
                and back_value >= self._motifs.min_target_value
            ):
                elements.append(_element(Motif.SKEWER, board_after, move.to_square, [front_sq, back_sq]))
        return elements

    def _detect_discovered_attacks(
        self, board_before: chess.Board, board_after: chess.Board, move: Move, mover: chess.Color
    ) -> List[TacticalElement]:
        """
        A discovered attack: another friendly slider, standing still, attacks a
        valuable enemy piece through the square the moved piece vacated.
        """
        elements: List[TacticalElement] = []
        vacated = chess.BB_SQUARES[move.from_square]
        for square, piece in board_after.piece_map().items():
            if piece.color != mover or piece.piece_type not in _SLIDERS or square == move.to_square:
                continue
            if board_before.piece_at(square) != piece:
                continue

            new_attacks = board_after.attacks(square) - board_before.attacks(square)
            targets = [
                sq for sq in new_attacks
                if self._is_target(board_after.piece_at(sq), mover)
                and chess.between(square, sq) & vacated
            ]
            if targets:
                elements.append(_element(Motif.DISCOVERED_ATTACK, board_after, square, targets))
        return elements

    def _detect_double_attack(
        self,
        board_before: chess.Board,
        board_after: chess.Board,
        move: Move,
        mover: chess.Color,
        material_delta: float,
    ) -> List[TacticalElement]:
        """
        A double attack: at least two valuable enemy pieces come under attack
        at once from at least two different friendly pieces, without the move
        giving up material.
        """
        if material_delta < 0:
            return []

        targets: List[chess.Square] = []
        attackers: Set[chess.Square] = set()
        for square, piece in board_after.piece_map().items():
            if not self._is_target(piece, mover):
                continue
            if board_before.attackers(mover, square):
                continue
            new_attackers = board_after.attackers(mover, square)
            if new_attackers:
                targets.append(square)
                attackers.update(new_attackers)

        if len(targets) < 2 or len(attackers) < 2:
            return []
        return [_element(Motif.DOUBLE_ATTACK, board_after, move.to_square, targets)]

    # --- Engine-confirmed motifs ---

    def _detect_investments(
        self,
        board_after: chess.Board,
        move: Move,
        mover: chess.Color,
        material_delta: float,
        capturers: List[chess.Square],
    ) -> List[TacticalElement]:
        """
        Motifs that offer the moved piece, reported only once the engine line
        has justified the offer.

        Sacrifice: the offer loses at least `sacrifice_min_material` at once.
        Deflection: a capturer is the only guard of another attacked piece.
        Decoy: only the king or queen can take, and either the mover covers the
        square (which leaves the queen) or taking is the opponent's only legal
        reply (the king dragged out by a check).
        """
        elements: List[TacticalElement] = []

        if material_delta <= -self._motifs.sacrifice_min_material:
            elements.append(_element(Motif.SACRIFICE, board_after, move.to_square, capturers))

        deflected: List[chess.Square] = []
        for defender in capturers:
            for square, piece in board_after.piece_map().items():
                if not self._is_target(piece, mover) or square == defender:
                    continue
                defenders = board_after.attackers(not mover, square)
                if list(defenders) == [defender] and board_after.attackers(mover, square):
                    deflected.extend([defender, square])
        if deflected:
            elements.append(_element(Motif.DEFLECTION, board_after, move.to_square, deflected))

        heavy = [sq for sq in capturers if board_after.piece_type_at(sq) in (chess.KING, chess.QUEEN)]
        if capturers and len(heavy) == len(capturers):
            covered = bool(board_after.attackers(mover, move.to_square))
            replies = list(board_after.legal_moves)
            forced = bool(replies) and all(r.to_square == move.to_square for r in replies)
            if covered or forced:
                elements.append(_element(Motif.DECOY, board_after, move.to_square, heavy))

        return elements
