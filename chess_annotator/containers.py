# chess_annotator/containers.py
"""
Defines the Dependency Injection (DI) container for the annotation engine.

This module uses the `punq` library to create and wire the analysis
components, the collaborator services and the game session, so the CLI and
other front ends resolve a fully configured `GameAnalysisSession` from one place.
"""

from pathlib import Path

import punq

from chess_annotator.config.settings import AnalysisSettings, Settings
from chess_annotator.core.alternative_ranker import AlternativeRanker
from chess_annotator.core.annotator import MoveAnnotator
from chess_annotator.core.explanation_composer import ExplanationComposer
from chess_annotator.core.motif_detector import MotifDetector
from chess_annotator.core.move_classifier import EvaluationClassifier
from chess_annotator.core.positional_evaluator import PositionalEvaluator
from chess_annotator.orchestration.game_session import GameAnalysisSession
from chess_annotator.services.opening_book import StaticOpeningBook
from chess_annotator.services.rules_engine import PythonChessRules
from chess_annotator.types import OpeningBook, RulesEngine, StrengthEngine


def get_container(settings: Settings, engine: StrengthEngine) -> punq.Container:
    """
    Initializes and returns a DI container for one analysis run.

    Args:
        settings: The application settings.
        engine: A started strength engine. Its lifecycle belongs to the caller.
    """
    container = punq.Container()
    analysis = settings.analysis_settings

    # Instances created outside the container's control.
    container.register(Settings, instance=settings)
    container.register(AnalysisSettings, instance=analysis)
    container.register(StrengthEngine, instance=engine)

    container.register(RulesEngine, factory=lambda: PythonChessRules(), scope=punq.Scope.singleton)

    def create_opening_book() -> StaticOpeningBook:
        if settings.opening_book_path:
            return StaticOpeningBook.from_json(Path(settings.opening_book_path))
        return StaticOpeningBook.default()

    container.register(OpeningBook, factory=create_opening_book, scope=punq.Scope.singleton)

    # Analysis components are pure; one instance each serves the whole run.
    container.register(EvaluationClassifier, factory=lambda: EvaluationClassifier(analysis), scope=punq.Scope.singleton)
    container.register(
        MotifDetector,
        factory=lambda: MotifDetector(analysis, container.resolve(EvaluationClassifier)),
        scope=punq.Scope.singleton,
    )
    container.register(PositionalEvaluator, factory=lambda: PositionalEvaluator(analysis), scope=punq.Scope.singleton)
    container.register(AlternativeRanker, factory=lambda: AlternativeRanker(analysis), scope=punq.Scope.singleton)
    container.register(ExplanationComposer, factory=lambda: ExplanationComposer(analysis), scope=punq.Scope.singleton)
    container.register(
        MoveAnnotator,
        factory=lambda: MoveAnnotator(
            detector=container.resolve(MotifDetector),
            evaluator=container.resolve(PositionalEvaluator),
            classifier=container.resolve(EvaluationClassifier),
            ranker=container.resolve(AlternativeRanker),
            composer=container.resolve(ExplanationComposer),
        ),
        scope=punq.Scope.singleton,
    )

    # A session holds no per-game state, but each caller gets its own.
    container.register(
        GameAnalysisSession,
        factory=lambda: GameAnalysisSession(
            annotator=container.resolve(MoveAnnotator),
            engine=container.resolve(StrengthEngine),
            rules=container.resolve(RulesEngine),
            opening_book=container.resolve(OpeningBook),
            settings=analysis,
        ),
    )

    return container
