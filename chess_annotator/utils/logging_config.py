# chess_annotator/utils/logging_config.py
"""
Configures structured logging for the annotation engine.

structlog events and standard-library records (python-chess, asyncio) share
one processor chain and one set of handlers. The console handler writes to
stderr because the CLI prints its analysis to stdout.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import structlog
from structlog.types import Processor

# python-chess logs every PGN error it recovers from; ingest reports those itself.
DEFAULT_LIBRARY_LEVELS: Dict[str, str] = {
    "chess.pgn": "CRITICAL",
    "asyncio": "WARNING",
}


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _console_handler(shared: List[Processor], as_json: bool) -> logging.Handler:
    renderer: Processor = (
        structlog.processors.JSONRenderer() if as_json
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processor=renderer))
    return handler


def _file_handler(shared: List[Processor], log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processor=structlog.processors.JSONRenderer())
    )
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_to_console: bool = True,
    log_file: Optional[Path] = None,
    force_json_console: bool = False,
    library_levels: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Routes structlog and standard-library logging through one set of handlers.

    Args:
        log_level: The minimum level for the root logger.
        log_to_console: Whether to log to stderr.
        log_file: Optional path of a file that receives one JSON object per line.
        force_json_console: Render console output as JSON instead of the dev renderer.
        library_levels: Minimum levels for third-party loggers, on top of
            `DEFAULT_LIBRARY_LEVELS`.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []
    if log_to_console:
        handlers.append(_console_handler(shared, force_json_console))
    if log_file:
        handlers.append(_file_handler(shared, Path(log_file)))
    logging.basicConfig(handlers=handlers, level=log_level.upper(), force=True)

    for name, level in {**DEFAULT_LIBRARY_LEVELS, **(library_levels or {})}.items():
        logging.getLogger(name).setLevel(level.upper())
