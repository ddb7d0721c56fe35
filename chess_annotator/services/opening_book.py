# chess_annotator/services/opening_book.py
"""
A read-only, best-effort opening lookup keyed by UCI move sequences.

`StaticOpeningBook` returns the entry with the longest move sequence that is a
prefix of the game so far. It ships a small built-in table of common openings
and can load additional entries from a JSON file.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from chess_annotator.types import OpeningBook, OpeningContext

logger = structlog.get_logger(__name__)

# (ECO, name, UCI moves, principles)
_BUILTIN_OPENINGS: List[Tuple[str, str, str, Tuple[str, ...]]] = [
    ("B00", "King's Pawn Opening", "e2e4",
     ("Occupy the center with a pawn.", "Open lines for the queen and the light-squared bishop.")),
    ("D00", "Queen's Pawn Opening", "d2d4",
     ("Occupy the center with a pawn protected by the queen.",)),
    ("A10", "English Opening", "c2c4",
     ("Control d5 from the flank.",)),
    ("A04", "Zukertort Opening", "g1f3",
     ("Develop a knight towards the center before committing pawns.",)),
    ("C20", "King's Pawn Game", "e2e4 e7e5",
     ("Contest the center symmetrically.",)),
    ("C40", "King's Knight Opening", "e2e4 e7e5 g1f3",
     ("Develop with tempo against e5.",)),
    ("C44", "King's Knight Opening: Normal Variation", "e2e4 e7e5 g1f3 b8c6",
     ("Defend e5 by developing a piece.",)),
    ("C50", "Italian Game", "e2e4 e7e5 g1f3 b8c6 f1c4",
     ("Aim the bishop at f7.", "Castle early.")),
    ("C60", "Ruy Lopez", "e2e4 e7e5 g1f3 b8c6 f1b5",
     ("Pressure the defender of e5.", "Keep the tension in the center.")),
    ("C45", "Scotch Game", "e2e4 e7e5 g1f3 b8c6 d2d4",
     ("Open the center at once.",)),
    ("C42", "Petrov's Defense", "e2e4 e7e5 g1f3 g8f6",
     ("Counterattack e4 instead of defending e5.",)),
    ("B20", "Sicilian Defense", "e2e4 c7c5",
     ("Fight for d4 with a flank pawn.", "Accept an asymmetrical pawn structure.")),
    ("C00", "French Defense", "e2e4 e7e6",
     ("Prepare d5 with a solid pawn chain.",)),
    ("B10", "Caro-Kann Defense", "e2e4 c7c6",
     ("Prepare d5 while keeping the light-squared bishop free.",)),
    ("B01", "Scandinavian Defense", "e2e4 d7d5",
     ("Challenge e4 immediately.",)),
    ("D06", "Queen's Gambit", "d2d4 d7d5 c2c4",
     ("Offer a flank pawn to deflect the d5 pawn from the center.",)),
    ("D30", "Queen's Gambit Declined", "d2d4 d7d5 c2c4 e7e6",
     ("Hold d5 with a pawn chain.",)),
    ("D20", "Queen's Gambit Accepted", "d2d4 d7d5 c2c4 d5c4",
     ("Take the pawn and develop quickly.",)),
    ("E60", "King's Indian Defense", "d2d4 g8f6 c2c4 g7g6",
     ("Let White build a center, then strike at it.",)),
    ("E20", "Nimzo-Indian Defense", "d2d4 g8f6 c2c4 e7e6 b1c3 f8b4",
     ("Pin the knight that controls e4.",)),
]


class StaticOpeningBook(OpeningBook):
    """An in-memory opening table with longest-prefix lookup."""

    def __init__(self, entries: Iterable[Tuple[Sequence[str], OpeningContext]] = ()):
        self._entries: Dict[Tuple[str, ...], OpeningContext] = {}
        self._max_length = 0
        for moves, context in entries:
            self.add(moves, context)

    @classmethod
    def default(cls) -> "StaticOpeningBook":
        return cls(
            (moves.split(), OpeningContext(eco=eco, name=name, principles=principles))
            for eco, name, moves, principles in _BUILTIN_OPENINGS
        )

    @classmethod
    def from_json(cls, path: Path, include_builtin: bool = True) -> "StaticOpeningBook":
        """
        Loads a book from a JSON list of {"eco", "name", "moves", "principles"} objects.

        `moves` is a space-separated UCI string. Malformed entries are logged and skipped.
        """
        book = cls.default() if include_builtin else cls()
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        loaded = 0
        for entry in data:
            try:
                context = OpeningContext(
                    eco=str(entry["eco"]), name=str(entry["name"]),
                    principles=tuple(entry.get("principles", ())),
                )
                book.add(str(entry["moves"]).split(), context)
                loaded += 1
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed opening entry.", entry=entry, error=str(e))
        logger.info("Opening book loaded.", path=str(path), entries=loaded)
        return book

    def add(self, moves: Sequence[str], context: OpeningContext) -> None:
        key = tuple(moves)
        if not key:
            return
        self._entries[key] = context
        self._max_length = max(self._max_length, len(key))

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, moves: Sequence[str]) -> Optional[OpeningContext]:
        """Returns the opening of the longest known prefix of `moves`, or None."""
        for length in range(min(len(moves), self._max_length), 0, -1):
            if (context := self._entries.get(tuple(moves[:length]))) is not None:
                return context
        return None
