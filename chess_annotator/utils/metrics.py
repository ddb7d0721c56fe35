"""
Centralized Prometheus metrics definitions for the Chess Annotator.

This module uses the prometheus-client library to define every metric the
annotation engine exposes. Grouping them here gives a single overview of the
instrumentation points.
"""
from prometheus_client import Counter, Histogram

# A common prefix for all application-specific metrics.
PREFIX = "chess_annotator"

# --- Annotation Metrics ---

PLIES_ANNOTATED_TOTAL = Counter(
    f"{PREFIX}_plies_annotated_total",
    "Total number of plies annotated.",
    ["classification"],  # e.g., classification="Blunder", "unclassified"
)

PLIES_DEGRADED_TOTAL = Counter(
    f"{PREFIX}_plies_degraded_total",
    "Total number of plies annotated without a full analysis.",
    ["reason"],  # e.g., reason="missing_evaluation", "EngineAnalysisError"
)

GAMES_FINALIZED_TOTAL = Counter(
    f"{PREFIX}_games_finalized_total",
    "Total number of games whose analysis was finalized.",
)

GAME_ANALYSIS_DURATION_SECONDS = Histogram(
    f"{PREFIX}_game_analysis_duration_seconds",
    "Histogram of the time taken to analyze a whole game.",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, float("inf"))
)

# --- Engine Metrics ---

ENGINE_CALL_DURATION_SECONDS = Histogram(
    f"{PREFIX}_engine_call_duration_seconds",
    "Histogram of the time taken by a single engine request.",
    ["operation"],  # e.g., operation="evaluate", "candidates"
)

ENGINE_TIMEOUTS_TOTAL = Counter(
    f"{PREFIX}_engine_timeouts_total",
    "Total number of engine requests that exceeded their timeout.",
    ["operation"],
)

ENGINE_TRANSIENT_ERRORS_TOTAL = Counter(
    f"{PREFIX}_engine_transient_errors_total",
    "Total number of transient engine errors that triggered a retry.",
    ["operation"],
)
