from __future__ import annotations

import logging
import random
from concurrent.futures import Future
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from .codec import FeatureCodec
from .config import Settings
from .models import (
    AIAnalysis,
    AIDecision,
    DiceGroup,
    DicePattern,
    GameSession,
    GameStateSnapshot,
    HistoryEntry,
    MLPrediction,
    PatternAnalysis,
    PlayerStats,
    ProbabilityDistribution,
    format_timestamp,
)
from .opponent import Difficulty, OpponentDecisionEngine
from .predictor import MovePredictor
from .recognizer import PatternRecognizer
from .storage import ModelStorage
from .training import TrainingPipeline

logger = logging.getLogger(__name__)


class DiceBrain:
    """
    Decision-and-learning core for the Knucklebones dice game.

    - PatternRecognizer tags each roll with one of eight behavioural patterns
    - MovePredictor estimates the human's next action type from state + history
    - OpponentDecisionEngine picks the AI's dice from expected value and variance
    - TrainingPipeline retrains both networks in the background from sessions

    One instance is owned by the host application; nothing here is global.
    """

    def __init__(
        self,
        state_dir: Optional[str] = None,
        remember_history: Optional[bool] = None,
        settings: Optional[Settings] = None,
        random_seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        settings = settings or Settings()
        overrides: Dict[str, Any] = {}
        if state_dir is not None:
            overrides["state_dir"] = state_dir
        if remember_history is not None:
            overrides["remember_history"] = remember_history
        self.settings = replace(settings, **overrides)
        seed = random_seed if random_seed is not None else self.settings.random_seed

        self.rng = rng if rng is not None else np.random.default_rng(seed)
        s = self.settings
        self.codec = FeatureCodec(label_threshold=s.label_threshold)
        self.recognizer = PatternRecognizer(
            codec=self.codec,
            learning_rate=s.learning_rate,
            rng=self.rng,
            anomaly_threshold=s.anomaly_threshold,
            trend_threshold=s.trend_threshold,
            trend_window_seconds=s.trend_window_seconds,
        )
        self.predictor = MovePredictor(codec=self.codec, learning_rate=s.learning_rate, rng=self.rng)
        self.opponent = OpponentDecisionEngine(
            synergy_bonus=s.synergy_bonus,
            diversity_penalty=s.diversity_penalty,
            rng=random.Random(seed),
        )

        self.storage = ModelStorage(s.state_dir, redis_url=s.redis_url) if s.remember_history else None
        self.pipeline = TrainingPipeline(
            self.recognizer,
            self.predictor,
            storage=self.storage,
            codec=self.codec,
            epochs=s.epochs,
            eval_window=s.eval_window,
        )
        if self.storage is not None:
            self.pipeline.restore()

    # ---------------------- Opponent ----------------------
    def decide(
        self,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]],
        current_pool: Sequence[DiceGroup],
        available_dice: Sequence[int],
        player_stats: Optional[PlayerStats] = None,
    ) -> AIDecision:
        return self.opponent.decide(difficulty, game_history, current_pool, available_dice, player_stats)

    def analyze_options(
        self,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]],
        current_pool: Sequence[DiceGroup],
        available_dice: Sequence[int],
        player_stats: Optional[PlayerStats] = None,
    ) -> AIAnalysis:
        return self.opponent.full_analysis(difficulty, game_history, current_pool, available_dice, player_stats)

    # ---------------------- Patterns ----------------------
    def analyze_roll(self, values: Sequence[int]) -> Optional[DicePattern]:
        return self.recognizer.analyze_roll(values)

    def analyze_patterns(self, sessions: Sequence[GameSession]) -> PatternAnalysis:
        return self.recognizer.analyze_patterns(sessions)

    # ---------------------- Prediction ----------------------
    def predict_next_move(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> MLPrediction:
        return self.predictor.predict_next_move(state, history)

    def win_probability(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> ProbabilityDistribution:
        return self.predictor.win_probability(state, history)

    # ---------------------- Training & persistence ----------------------
    def train(self, sessions: Iterable[GameSession], background: bool = True) -> Union[bool, Optional[Future]]:
        """Retrain both networks. Background runs return a Future, or None when dropped."""
        sessions = list(sessions)
        if background:
            return self.pipeline.schedule_training(sessions)
        return self.pipeline.train_models(sessions)

    def save(self) -> None:
        if not self.settings.remember_history:
            return
        self.pipeline.save()

    def status(self) -> Dict[str, Any]:
        return {
            "accuracy": self.pipeline.accuracy,
            "is_training": self.pipeline.is_training,
            "training_data_size": self.pipeline.training_data_size,
            "last_trained": format_timestamp(self.pipeline.last_trained),
            "storage": self.storage.backend if self.storage is not None else None,
        }

    def close(self) -> None:
        self.pipeline.shutdown(wait=True)


def sessions_from_dicts(items: Iterable[Dict[str, Any]]) -> List[GameSession]:
    return [GameSession.from_dict(d) for d in items]
