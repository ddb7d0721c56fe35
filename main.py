# main.py
"""
Command-line entry point: annotates the games of a PGN file with Stockfish
and prints the annotated moves and game analysis as JSON.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from chess_annotator.config.settings import Settings, load_settings
from chess_annotator.containers import get_container
from chess_annotator.core.serialization import to_plain
from chess_annotator.exceptions import ChessAnnotatorError
from chess_annotator.orchestration.game_session import GameAnalysisSession
from chess_annotator.orchestration.pgn_ingest import read_pgn_file
from chess_annotator.services.stockfish_service import StockfishService
from chess_annotator.utils.logging_config import setup_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Annotate chess games from a PGN file.")
    parser.add_argument("pgn", type=Path, help="Path to the PGN file to analyze.")
    parser.add_argument("--engine-path", help="Path to the Stockfish executable.")
    parser.add_argument("--depth", type=int, help="Engine search depth per position.")
    parser.add_argument("--log-level", help="Log level (default from settings).")
    parser.add_argument("--log-file", type=Path, help="Also write JSON logs to this file.")
    parser.add_argument("--json-logs", action="store_true", help="Render console logs as JSON.")
    parser.add_argument("--summary-only", action="store_true", help="Omit per-move annotations from the output.")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> List[Dict[str, Any]]:
    engine_settings = settings.analysis_settings.engine
    if args.engine_path:
        engine_settings.path = args.engine_path
    if args.depth:
        engine_settings.depth = args.depth

    games = await read_pgn_file(args.pgn)
    engine = await StockfishService.create(engine_settings)
    output: List[Dict[str, Any]] = []
    try:
        container = get_container(settings, engine)
        for game in games:
            session = container.resolve(GameAnalysisSession)
            result = await session.analyze(game.start, game.moves, game.time_spent, game_id=game.game_id)
            entry: Dict[str, Any] = {
                "game_id": game.game_id,
                "metadata": to_plain(game.metadata),
                "analysis": to_plain(result.analysis),
            }
            if not args.summary_only:
                entry["moves"] = to_plain(result.annotated_moves)
            output.append(entry)
    finally:
        await engine.close()
    return output


def main(argv: Optional[List[str]] = None) -> int:
    """Parses arguments, runs the analysis and prints the JSON result."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ChessAnnotatorError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(
        log_level=args.log_level or settings.default_log_level,
        log_file=args.log_file or (Path(settings.log_file) if settings.log_file else None),
        force_json_console=args.json_logs,
    )

    try:
        output = asyncio.run(run(args, settings))
    except ChessAnnotatorError as e:
        logger.error("Analysis aborted.", error_type=type(e).__name__, error=str(e))
        return 1

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
