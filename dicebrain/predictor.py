from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np

from .codec import ActionLabel, FeatureCodec, ACTION_LABELS
from .config import PREDICTION_NET_SHAPE
from .models import GameStateSnapshot, HistoryEntry, MLPrediction, ProbabilityDistribution
from .network import FeedforwardNetwork
from .utils import clamp, safe_div


class MovePredictor:
    """Predicts the distribution over a player's next action type (18 -> 36 -> 6)."""

    def __init__(
        self,
        network: Optional[FeedforwardNetwork] = None,
        codec: Optional[FeatureCodec] = None,
        learning_rate: float = 0.01,
        rng: Optional[np.random.Generator] = None,
    ):
        self.network = network or FeedforwardNetwork(*PREDICTION_NET_SHAPE, learning_rate=learning_rate, rng=rng)
        self.codec = codec or FeatureCodec()

    def action_probabilities(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> np.ndarray:
        return self.network.predict(self.codec.encode_game_state(state, history))

    def predict_next_move(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> MLPrediction:
        # Confidence is reported, never used to withhold a recommendation.
        features = self.codec.encode_game_state(state, history)
        ranking = self.codec.decode_action_label(self.network.predict(features))
        best_action, best_p = ranking[0]
        return MLPrediction(
            recommended_action=best_action,
            confidence=best_p,
            alternatives=ranking[1:3],
            ranking=ranking,
            reasoning=self.codec.generate_reasoning(features),
            timestamp=datetime.now(timezone.utc),
        )

    def win_probability(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> ProbabilityDistribution:
        p = self.action_probabilities(state, history)
        slot = {label: i for i, label in enumerate(ACTION_LABELS)}

        aggressive = p[slot[ActionLabel.AGGRESSIVE_ROLL.value]] + p[slot[ActionLabel.RISK_TAKING.value]]
        conservative = p[slot[ActionLabel.CONSERVATIVE_ROLL.value]] + p[slot[ActionLabel.DEFENSIVE_PLAY.value]]
        strategic = p[slot[ActionLabel.STRATEGIC_BLOCK.value]]
        total = aggressive + conservative + strategic

        return ProbabilityDistribution(
            win=clamp(safe_div(aggressive + strategic, total, 0.5), 0.05, 0.95),
            lose=clamp(safe_div(conservative, total, 0.5), 0.05, 0.95),
            draw=clamp(1.0 - safe_div(aggressive + strategic + conservative, total, 1.0), 0.0, 0.9),
            confidence=float(np.max(p)),
        )
