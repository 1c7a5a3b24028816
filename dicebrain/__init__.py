from .brain import DiceBrain, sessions_from_dicts
from .codec import ACTION_LABELS, PATTERN_LABELS, ActionLabel, FeatureCodec, PatternLabel
from .config import Settings, setup_logging
from .errors import (
    ConfigurationError,
    DeserializationError,
    DiceBrainError,
    EmptyTrainingSetError,
    NoCandidateError,
    ShapeMismatchError,
)
from .models import (
    AIAnalysis,
    AIDecision,
    DiceGroup,
    DiceGroupResult,
    DicePattern,
    GameRound,
    GameSession,
    GameStateSnapshot,
    HistoryEntry,
    MLPrediction,
    PatternAnalysis,
    PlayerAction,
    PlayerStats,
)
from .network import FeedforwardNetwork, NetworkParameters
from .opponent import Difficulty, OpponentDecisionEngine
from .predictor import MovePredictor
from .recognizer import PatternRecognizer
from .storage import ModelStorage
from .training import TrainingPipeline

__all__ = [
    "DiceBrain",
    "sessions_from_dicts",
    "ACTION_LABELS",
    "PATTERN_LABELS",
    "ActionLabel",
    "PatternLabel",
    "FeatureCodec",
    "Settings",
    "setup_logging",
    "ConfigurationError",
    "DeserializationError",
    "DiceBrainError",
    "EmptyTrainingSetError",
    "NoCandidateError",
    "ShapeMismatchError",
    "AIAnalysis",
    "AIDecision",
    "DiceGroup",
    "DiceGroupResult",
    "DicePattern",
    "GameRound",
    "GameSession",
    "GameStateSnapshot",
    "HistoryEntry",
    "MLPrediction",
    "PatternAnalysis",
    "PlayerAction",
    "PlayerStats",
    "FeedforwardNetwork",
    "NetworkParameters",
    "Difficulty",
    "OpponentDecisionEngine",
    "MovePredictor",
    "PatternRecognizer",
    "ModelStorage",
    "TrainingPipeline",
]
