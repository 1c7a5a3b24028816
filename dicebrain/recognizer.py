from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .codec import FeatureCodec, PatternLabel
from .config import PATTERN_NET_SHAPE
from .models import Anomaly, DicePattern, GameSession, PatternAnalysis, PatternTrend
from .network import FeedforwardNetwork

logger = logging.getLogger(__name__)

ANOMALY_DEVIATION_THRESHOLD = 0.3
TREND_SIGNIFICANCE_THRESHOLD = 0.3
TREND_WINDOW_SECONDS = 3600.0


def pattern_frequencies(patterns: Sequence[DicePattern]) -> Dict[str, int]:
    """Count of patterns per label. Sums to len(patterns), not to 1."""
    return dict(Counter(p.type for p in patterns))


class PatternRecognizer:
    """
    Classifies a dice-roll sequence into one of eight behavioural patterns.

    - 12 -> 24 -> 8 network over FeatureCodec.encode_dice_sequence
    - analyze_roll() returns None when the decoded label is `unknown`
    - analyze_patterns() runs the classifier over whole sessions and reports
      label frequencies, hour-by-hour trends and anomalous confidences
    """

    def __init__(
        self,
        network: Optional[FeedforwardNetwork] = None,
        codec: Optional[FeatureCodec] = None,
        learning_rate: float = 0.01,
        rng: Optional[np.random.Generator] = None,
        anomaly_threshold: float = ANOMALY_DEVIATION_THRESHOLD,
        trend_threshold: float = TREND_SIGNIFICANCE_THRESHOLD,
        trend_window_seconds: float = TREND_WINDOW_SECONDS,
    ):
        self.network = network or FeedforwardNetwork(*PATTERN_NET_SHAPE, learning_rate=learning_rate, rng=rng)
        if (self.network.input_size, self.network.hidden_size, self.network.output_size) != PATTERN_NET_SHAPE:
            logger.warning("pattern network has non-standard shape %s", self.network.parameters.shape)
        self.codec = codec or FeatureCodec()
        self.anomaly_threshold = anomaly_threshold
        self.trend_threshold = trend_threshold
        self.trend_window_seconds = trend_window_seconds

    # ---------------------- Single roll ----------------------
    def classify(self, values: Sequence[int]) -> Tuple[str, float]:
        """(label, confidence) for a roll, `unknown` included."""
        output = self.network.predict(self.codec.encode_dice_sequence(values))
        return self.codec.decode_pattern_label(output)

    def analyze_roll(self, values: Sequence[int]) -> Optional[DicePattern]:
        label, confidence = self.classify(values)
        if label == PatternLabel.UNKNOWN.value:
            return None
        return DicePattern(
            id=uuid.uuid4().hex,
            type=label,
            values=tuple(int(v) for v in values),
            probability=confidence,
        )

    # ---------------------- Batch analysis ----------------------
    def extract_patterns(self, sessions: Sequence[GameSession]) -> List[DicePattern]:
        patterns: List[DicePattern] = []
        for session in sessions:
            for rnd in session.rounds:
                for action in rnd.player_actions:
                    if not action.dice_groups:
                        continue
                    found = self.analyze_roll(action.roll_values())
                    if found is None:
                        continue
                    patterns.append(DicePattern(
                        id=found.id,
                        type=found.type,
                        values=found.values,
                        probability=found.probability,
                        player_id=action.player_id,
                        session_id=session.id,
                        round_number=rnd.round_number,
                        timestamp=action.timestamp,
                    ))
        return patterns

    def identify_trends(
        self, patterns: Sequence[DicePattern], window_seconds: Optional[float] = None
    ) -> List[PatternTrend]:
        timed = [p for p in patterns if p.timestamp is not None]
        if len(timed) < 2:
            return []
        windows = self._group_by_window(timed, window_seconds or self.trend_window_seconds)
        trends = []
        for previous, current in zip(windows, windows[1:]):
            trend = self._compare_windows(current, previous)
            if trend.significance > self.trend_threshold:
                trends.append(trend)
        return trends

    def detect_anomalies(self, patterns: Sequence[DicePattern]) -> List[Anomaly]:
        freq = pattern_frequencies(patterns)
        total = len(patterns)
        anomalies = []
        for p in patterns:
            expected = freq[p.type] / total
            if abs(p.probability - expected) > self.anomaly_threshold:
                severity = "high" if (p.probability < 0.05 or p.probability > 0.95) else "medium"
                anomalies.append(Anomaly(
                    description=f"Unusual {p.type} pattern detected with probability {p.probability:.3f}",
                    severity=severity,
                    timestamp=p.timestamp or datetime.now(timezone.utc),
                    data=p,
                ))
        return anomalies

    @staticmethod
    def analysis_confidence(patterns: Sequence[DicePattern]) -> float:
        if not patterns:
            return 0.0
        avg = sum(p.probability for p in patterns) / len(patterns)
        # grows with sample size, saturating at 100 patterns
        return float(avg * min(len(patterns) / 100.0, 1.0))

    def analyze_patterns(self, sessions: Sequence[GameSession]) -> PatternAnalysis:
        patterns = self.extract_patterns(sessions)
        return PatternAnalysis(
            patterns=patterns,
            frequencies=pattern_frequencies(patterns),
            trends=self.identify_trends(patterns),
            anomalies=self.detect_anomalies(patterns),
            confidence=self.analysis_confidence(patterns),
            timestamp=datetime.now(timezone.utc),
        )

    # ---------------------- Internal helpers ----------------------
    @staticmethod
    def _group_by_window(patterns: Sequence[DicePattern], window_seconds: float) -> List[List[DicePattern]]:
        ordered = sorted(patterns, key=lambda p: p.timestamp)
        windows: List[List[DicePattern]] = []
        current: List[DicePattern] = []
        start = ordered[0].timestamp
        for p in ordered:
            if (p.timestamp - start).total_seconds() > window_seconds:
                if current:
                    windows.append(current)
                current = [p]
                start = p.timestamp
            else:
                current.append(p)
        if current:
            windows.append(current)
        return windows

    @staticmethod
    def _compare_windows(current: Sequence[DicePattern], previous: Sequence[DicePattern]) -> PatternTrend:
        cur = pattern_frequencies(current)
        prev = pattern_frequencies(previous)
        changes = {}
        total_change = 0
        for label in list(dict.fromkeys(list(cur) + list(prev))):
            delta = cur.get(label, 0) - prev.get(label, 0)
            changes[label] = delta
            total_change += abs(delta)
        return PatternTrend(
            changes=changes,
            significance=total_change / max(len(current), len(previous), 1),
            direction="increasing" if total_change > 0 else "decreasing",
        )
