# chess_annotator/config/settings.py
"""
Configuration settings for the Chess Annotator, powered by Pydantic.

This module centralizes all tunable parameters: classification bands,
brilliant-move criteria, motif and positional heuristics, aggregation
thresholds and engine settings. Values can be overridden through environment
variables with the `CHESS_ANNOTATOR_` prefix, e.g.
`CHESS_ANNOTATOR_ANALYSIS_SETTINGS__CLASSIFICATION_THRESHOLDS__BLUNDER=250`.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chess_annotator.exceptions import InvalidConfigurationError

# --- Nested Models for Configuration Schemas ---

class ClassificationThresholdsModel(BaseModel):
    """
    Defines the evaluation-delta bands (in centipawns) for move classification.

    The delta is the score of the best move minus the score of the played move,
    from the mover's perspective. A delta exactly on a bound falls into the
    less severe band.
    """
    inaccuracy: int = Field(50, description="Deltas above this are at least an 'Inaccuracy'.")
    mistake: int = Field(100, description="Deltas above this are at least a 'Mistake'.")
    blunder: int = Field(300, description="Deltas above this are a 'Blunder'.")

    def is_monotonic(self) -> bool:
        return 0 <= self.inaccuracy < self.mistake < self.blunder

    @model_validator(mode='after')
    def validate_thresholds_are_sorted(self) -> 'ClassificationThresholdsModel':
        """Ensures that the thresholds are non-negative and strictly increasing."""
        if not self.is_monotonic():
            raise ValueError("Configuration error: Classification thresholds must be strictly increasing.")
        return self

class BrilliantMoveCriteriaModel(BaseModel):
    """Defines the criteria for a move to be classified as 'Brilliant' (!!)."""
    max_delta_cp: float = Field(0.0, description="The played move may trail the engine's top choice by at most this much.")
    min_line_score_cp: float = Field(-50.0, description="After a sacrifice, the engine line must keep the mover at or above this score.")
    min_compensation_cp: float = Field(150.0, description="The line must score at least this much above the raw material deficit.")

class MotifSettingsModel(BaseModel):
    """Thresholds used by the tactical motif detector (values in pawns)."""
    min_fork_targets: int = Field(2, description="Minimum number of enemy pieces attacked by the forking piece.")
    min_fork_value: float = Field(6.0, description="Minimum combined value of the forked pieces.")
    king_target_value: float = Field(10.0, description="The value assigned to a king when it is the target of a motif.")
    min_target_value: float = Field(3.0, description="Pieces worth less than this are not counted as tactical targets.")
    sacrifice_min_material: float = Field(2.0, description="A move must give up at least this much material to be a sacrifice.")

class PositionalSettingsModel(BaseModel):
    """Scales that map raw positional counts onto the [-1, 1] range via tanh."""
    king_safety_scale: float = Field(6.0, gt=0)
    pawn_structure_scale: float = Field(4.0, gt=0)
    piece_activity_scale: float = Field(20.0, gt=0)
    center_control_scale: float = Field(6.0, gt=0)
    space_scale: float = Field(10.0, gt=0)

class RankerSettingsModel(BaseModel):
    """Settings for the alternative move ranker."""
    top_n: int = Field(3, ge=1, description="Maximum number of alternative moves kept per ply.")

class ExplanationSettingsModel(BaseModel):
    """Settings for the explanation composer."""
    min_significance: float = Field(0.05, gt=0, description="Minimum absolute factor change reported as a strength or weakness.")

class AccuracyConstantsModel(BaseModel):
    """Constants of the exponential curve that maps average deviation to accuracy."""
    const_a: float = 103.1668
    const_b: float = -0.004354
    const_c: float = -3.1668

    @model_validator(mode='after')
    def validate_curve_is_decreasing(self) -> 'AccuracyConstantsModel':
        if self.const_a <= 0 or self.const_b >= 0:
            raise ValueError("Configuration error: Accuracy curve must be monotonically decreasing.")
        return self

class AggregatorSettingsModel(BaseModel):
    """Thresholds for game-level aggregation."""
    swing_threshold_cp: float = Field(200.0, gt=0, description="Any move whose delta exceeds this is a key moment.")
    max_deviation_cp: float = Field(1000.0, gt=0, description="Per-move deviations are capped at this value for accuracy.")
    accuracy: AccuracyConstantsModel = Field(default_factory=AccuracyConstantsModel)

class EngineSettings(BaseModel):
    """Configuration for the strength-evaluation engine."""
    path: str = Field("stockfish", description="The file path to the Stockfish executable.")
    depth: int = Field(14, ge=1, description="The search depth for each evaluation.")
    multipv: int = Field(3, ge=1, description="The number of candidate moves requested per position.")
    timeout_seconds: float = Field(20.0, gt=0, description="Per-call timeout for engine requests.")
    retry_attempts: int = Field(2, ge=1, description="Attempts per engine request, including the first.")
    retry_backoff_seconds: float = Field(0.5, ge=0, description="Delay before the first retry; doubles on each further retry.")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="UCI parameters set on engine startup (e.g., {'Threads': 2}).")

class AnalysisSettings(BaseModel):
    """Groups all settings related to move analysis and annotation."""
    mate_score_equivalent_cp: int = Field(10000, description="The centipawn value a forced mate saturates to.")
    eval_cap_cp: int = Field(3000, description="Finite scores are clamped to +/- this value.")
    analysis_concurrency: int = Field(4, ge=1, description="Maximum number of plies analyzed at the same time.")

    classification_thresholds: ClassificationThresholdsModel = Field(default_factory=ClassificationThresholdsModel)
    brilliant_move: BrilliantMoveCriteriaModel = Field(default_factory=BrilliantMoveCriteriaModel)
    motifs: MotifSettingsModel = Field(default_factory=MotifSettingsModel)
    positional: PositionalSettingsModel = Field(default_factory=PositionalSettingsModel)
    ranker: RankerSettingsModel = Field(default_factory=RankerSettingsModel)
    explanation: ExplanationSettingsModel = Field(default_factory=ExplanationSettingsModel)
    aggregator: AggregatorSettingsModel = Field(default_factory=AggregatorSettingsModel)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    @model_validator(mode='after')
    def validate_mate_scores_dominate(self) -> 'AnalysisSettings':
        """Every mate score must outrank every clamped finite score."""
        if not 0 < self.eval_cap_cp < self.mate_score_equivalent_cp // 2:
            raise ValueError("Configuration error: eval_cap_cp must be positive and below half the mate score.")
        return self


def load_analysis_settings(data: Optional[Dict[str, Any]] = None) -> AnalysisSettings:
    """
    Builds `AnalysisSettings` from a plain mapping.

    Raises:
        InvalidConfigurationError: If any value is malformed.
    """
    try:
        return AnalysisSettings.model_validate(data or {})
    except ValidationError as e:
        raise InvalidConfigurationError(str(e)) from e

# --- Main Application Settings Class ---

class Settings(BaseSettings):
    """
    Main configuration class for the application.

    It loads settings from environment variables with the prefix 'CHESS_ANNOTATOR_'.
    Nested models can be configured using a double underscore delimiter.
    """
    model_config = SettingsConfigDict(env_prefix='CHESS_ANNOTATOR_', env_nested_delimiter='__')

    analysis_settings: AnalysisSettings = Field(default_factory=AnalysisSettings)
    default_log_level: str = "INFO"
    log_file: Optional[str] = None
    opening_book_path: Optional[str] = None


def load_settings() -> Settings:
    """
    Reads the application settings from the environment.

    Raises:
        InvalidConfigurationError: If an environment override is malformed.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise InvalidConfigurationError(str(e)) from e
