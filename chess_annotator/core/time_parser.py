# chess_annotator/core/time_parser.py
"""
Pure utilities that turn PGN clock annotations into time spent per move.

Handles the common `[%clk H:MM:SS.d]` comment format and the `TimeControl`
header ("base+increment"). Malformed input yields None, never an exception.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

import chess

CLK_PATTERN = re.compile(
    r"\[%clk\s+"               # Literal start of the tag
    r"((?P<h>\d+):)?"          # Optional hours group (e.g., "1:")
    r"(?P<m>\d{1,2}):"         # Minutes group (e.g., "05:")
    r"(?P<s>\d{1,2})"          # Seconds group (e.g., "33")
    r"(\.(?P<ds>\d+))?"        # Optional fractional seconds (e.g., ".7")
    r"\s*\]"                   # Literal end of the tag
)


def parse_clk_comment_to_seconds(comment: Optional[str]) -> Optional[float]:
    """
    Parses a PGN clock annotation to the seconds remaining on the clock.

    Example annotations handled: "[%clk 0:05:33.7]", "[%clk 1:30:05]", "[%clk 1:15]".

    Returns:
        The seconds remaining, or None if the comment has no valid clock tag.
    """
    if not comment:
        return None

    match = CLK_PATTERN.search(comment)
    if not match:
        return None

    parts = match.groupdict()
    hours = int(parts.get("h") or 0)
    minutes = int(parts["m"])
    seconds = int(parts["s"])
    if minutes >= 60 or seconds >= 60:
        return None

    fractional_seconds = float(f"0.{parts.get('ds') or '0'}")
    return hours * 3600 + minutes * 60 + seconds + fractional_seconds


def parse_time_control(time_control: Optional[str]) -> Tuple[Optional[float], float]:
    """
    Splits a TimeControl header such as "600+5" into (base seconds, increment).

    A missing or unparsable base yields None; a missing increment yields 0.
    """
    if not time_control:
        return None, 0.0
    base_str, _, increment_str = time_control.partition("+")
    try:
        base: Optional[float] = float(base_str)
    except ValueError:
        base = None
    try:
        increment = float(increment_str) if increment_str else 0.0
    except ValueError:
        increment = 0.0
    return base, increment


def compute_time_spent(
    clocks: Sequence[Optional[float]],
    first_mover: chess.Color,
    time_control: Optional[str] = None,
) -> List[Optional[float]]:
    """
    Derives the thinking time of each ply from the clock reading after it.

    Args:
        clocks: The clock of the moving player after each ply, None where unknown.
        first_mover: The color making the first ply.
        time_control: The PGN TimeControl header, used for the starting clock
                      and the increment.

    Returns:
        One entry per ply: seconds spent, or None when it cannot be derived
        (unknown clocks, or an inconsistent negative result).
    """
    base, increment = parse_time_control(time_control)
    last_clock: Dict[chess.Color, Optional[float]] = {chess.WHITE: base, chess.BLACK: base}

    spent: List[Optional[float]] = []
    color = first_mover
    for clock in clocks:
        value: Optional[float] = None
        if clock is not None:
            previous = last_clock[color]
            if previous is not None:
                value = previous - clock + increment
                if value < 0:
                    value = None
            last_clock[color] = clock
        spent.append(value)
        color = not color
    return spent
