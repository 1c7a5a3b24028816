"""
Feature encoding and output decoding for the two networks.

The label enumerations below are the single source of slot order: the
one-hot training targets and the decoders both index them, so the encoder
and decoder cannot drift apart.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatchError
from .models import GameStateSnapshot, HistoryEntry
from .utils import as_vector, clamp, one_hot, safe_div

DICE_SEQUENCE_LENGTH = 12
GAME_STATE_LENGTH = 18
HISTORY_WINDOW = 10
LABEL_CONFIDENCE_THRESHOLD = 0.6
PRESSURE_THRESHOLD = 0.7

AGGRESSIVE_TYPES = frozenset({"aggressive", "aggressive_roll", "risk_taking"})
CONSERVATIVE_TYPES = frozenset({"conservative", "conservative_roll", "defensive_play"})


class PatternLabel(str, Enum):
    SEQUENTIAL = "sequential"
    PAIRS = "pairs"
    TRIPLES = "triples"
    MIXED = "mixed"
    HIGH_RISK = "high_risk"
    CONSERVATIVE = "conservative"
    RANDOM = "random"
    UNKNOWN = "unknown"


class ActionLabel(str, Enum):
    AGGRESSIVE_ROLL = "aggressive_roll"
    CONSERVATIVE_ROLL = "conservative_roll"
    STRATEGIC_BLOCK = "strategic_block"
    RISK_TAKING = "risk_taking"
    DEFENSIVE_PLAY = "defensive_play"
    RANDOM_PLAY = "random_play"


PATTERN_LABELS: Tuple[str, ...] = tuple(p.value for p in PatternLabel)
ACTION_LABELS: Tuple[str, ...] = tuple(a.value for a in ActionLabel)


class FeatureCodec:
    def __init__(self, label_threshold: float = LABEL_CONFIDENCE_THRESHOLD):
        self.label_threshold = float(label_threshold)

    # ---------------------- Encoders ----------------------
    def encode_dice_sequence(self, values: Sequence[int]) -> np.ndarray:
        """Map d6 faces 1..6 to 0..1, left-aligned in 12 slots.

        Shorter sequences are zero padded. Longer sequences are truncated to
        their first 12 values; this is deliberate and callers rely on it.
        """
        out = np.zeros(DICE_SEQUENCE_LENGTH, dtype=np.float64)
        for i, v in enumerate(list(values)[:DICE_SEQUENCE_LENGTH]):
            out[i] = (float(v) - 1.0) / 5.0
        return out

    def encode_game_state(self, state: GameStateSnapshot, history: Sequence[HistoryEntry]) -> np.ndarray:
        f = np.zeros(GAME_STATE_LENGTH, dtype=np.float64)

        # current state (0-8)
        f[0] = clamp(state.current_round / 10.0)
        f[1] = clamp(state.player_score / 100.0)
        f[2] = clamp(state.opponent_score / 100.0)
        f[3] = clamp(state.remaining_dice / 6.0)
        f[4] = clamp(state.turn_time_remaining / 30.0)
        f[5] = clamp(state.risk_level)
        f[6] = clamp(state.board_advantage, -1.0, 1.0)
        f[7] = clamp(state.streak_count / 5.0)
        f[8] = clamp(state.pressure_level)

        # player history (9-17)
        history = list(history)
        if history:
            recent = history[-HISTORY_WINDOW:]
            n = len(recent)
            f[9] = sum(1 for h in recent if h.type in AGGRESSIVE_TYPES) / n
            f[10] = sum(1 for h in recent if h.type in CONSERVATIVE_TYPES) / n
            f[11] = sum(1 for h in recent if h.success) / n
            f[12] = clamp(sum(h.risk_level for h in recent) / n)
            f[13] = clamp(sum(h.time_to_decide for h in recent) / n / 30.0)
            f[14] = clamp(len(history) / 100.0)
            f[15] = self.consistency(history)
            f[16] = self.adaptability(history)
            f[17] = self.pressure_response(history)
        return f

    def encode_pattern_target(self, label: str) -> np.ndarray:
        idx = PATTERN_LABELS.index(label) if label in PATTERN_LABELS else -1
        return one_hot(idx, len(PATTERN_LABELS))

    def encode_action_target(self, label: str) -> np.ndarray:
        idx = ACTION_LABELS.index(label) if label in ACTION_LABELS else -1
        return one_hot(idx, len(ACTION_LABELS))

    # ---------------------- Decoders ----------------------
    def decode_pattern_label(self, output: Sequence[float]) -> Tuple[str, float]:
        out = _checked(output, len(PATTERN_LABELS), "pattern output")
        idx = int(np.argmax(out))
        confidence = float(out[idx])
        if confidence <= self.label_threshold:
            return PatternLabel.UNKNOWN.value, confidence
        return PATTERN_LABELS[idx], confidence

    def decode_action_label(self, output: Sequence[float]) -> List[Tuple[str, float]]:
        out = _checked(output, len(ACTION_LABELS), "action output")
        ranking = [(label, float(p)) for label, p in zip(ACTION_LABELS, out)]
        # sorted() is stable, so equal probabilities keep slot order
        return sorted(ranking, key=lambda item: -item[1])

    def generate_reasoning(self, features: Sequence[float]) -> str:
        f = as_vector(features)
        reasons = []
        if f[1] < f[2]:
            reasons.append("Player is behind in score")
        if f[4] < 0.3:
            reasons.append("Time pressure detected")
        if f[5] > 0.7:
            reasons.append("High risk situation")
        if f[9] > 0.6:
            reasons.append("Player tends toward aggressive play")
        if f[15] > 0.8:
            reasons.append("Player shows consistent strategy")
        return ", ".join(reasons) if reasons else "Based on current game state analysis"

    # ---------------------- History statistics ----------------------
    @staticmethod
    def consistency(history: Sequence[HistoryEntry]) -> float:
        if len(history) < 5:
            return 0.5
        strategies = [h.strategy or "unknown" for h in history]
        return 1.0 - len(set(strategies)) / len(strategies)

    @staticmethod
    def adaptability(history: Sequence[HistoryEntry]) -> float:
        if len(history) < 10:
            return 0.5
        recent = {h.strategy for h in history[-5:]}
        older = {h.strategy for h in history[-10:-5]}
        return abs(len(recent) - len(older)) / 5.0

    @staticmethod
    def pressure_response(history: Sequence[HistoryEntry]) -> float:
        under_pressure = [h for h in history if h.pressure_level > PRESSURE_THRESHOLD]
        if not under_pressure:
            return 0.5
        return safe_div(sum(1 for h in under_pressure if h.success), len(under_pressure))


def _checked(output: Sequence[float], n: int, what: str) -> np.ndarray:
    v = as_vector(output)
    if v.shape[0] != n:
        raise ShapeMismatchError(what, n, int(v.shape[0]))
    return v
