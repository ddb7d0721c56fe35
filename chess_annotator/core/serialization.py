# chess_annotator/core/serialization.py
"""
Converts annotation entities into plain, JSON-compatible structures.

Persistence and presentation are left to the caller; this module only
guarantees that every entity can be represented as dicts, lists, strings and
numbers. Enums become their values, squares their names, colors
"white"/"black" and piece types their names.
"""

import dataclasses
from enum import Enum
from typing import Any, Dict

import chess

from chess_annotator.types import Move, Position

_COLOR_FIELDS = frozenset({"color", "turn", "mover"})
_SQUARE_FIELDS = frozenset({"from_square", "to_square"})
_PIECE_FIELDS = frozenset({"piece", "captured", "promotion"})


def _field_value(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _COLOR_FIELDS and isinstance(value, bool):
        return "white" if value == chess.WHITE else "black"
    if name in _SQUARE_FIELDS:
        return chess.square_name(value)
    if name in _PIECE_FIELDS:
        return chess.piece_name(value)
    return to_plain(value)


def to_plain(obj: Any) -> Any:
    """Recursively converts `obj` into JSON-compatible data."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Position):
        return obj.fen
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result: Dict[str, Any] = {
            f.name: _field_value(f.name, getattr(obj, f.name)) for f in dataclasses.fields(obj)
        }
        if "move_number" not in result and hasattr(type(obj), "move_number"):
            result["move_number"] = obj.move_number
        if isinstance(obj, Move):
            result["uci"] = obj.uci
        return result
    if isinstance(obj, dict):
        return {str(to_plain(k)): to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (frozenset, set)):
        return sorted((to_plain(v) for v in obj), key=repr)
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    raise TypeError(f"Cannot convert {type(obj).__name__} to plain data.")
