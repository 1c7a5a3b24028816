from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from .errors import ConfigurationError, NoCandidateError
from .models import AIAnalysis, AIDecision, DiceGroup, PlayerStats
from .utils import clamp

logger = logging.getLogger(__name__)

MAX_DICE_COUNT = 5
SYNERGY_BONUS = 0.1
DIVERSITY_PENALTY = 0.05
COMPLEX_POOL_GROUPS = 3
RECENT_ROUNDS = 3


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


# variance multiplier: negative penalises spread (risk-averse), positive rewards it
RISK_FACTORS: Dict[Difficulty, float] = {
    Difficulty.EASY: -0.1,
    Difficulty.MEDIUM: -0.05,
    Difficulty.HARD: 0.0,
    Difficulty.EXPERT: 0.05,
}

# (min seconds, spread seconds)
THINKING_TIME: Dict[Difficulty, tuple] = {
    Difficulty.EASY: (0.5, 1.0),
    Difficulty.MEDIUM: (1.0, 1.5),
    Difficulty.HARD: (1.5, 2.0),
    Difficulty.EXPERT: (2.0, 3.0),
}

DESCRIPTIONS: Dict[Difficulty, str] = {
    Difficulty.EASY: "Makes simple, conservative decisions with basic probability awareness",
    Difficulty.MEDIUM: "Uses balanced strategy with game history analysis",
    Difficulty.HARD: "Employs advanced counter-strategies and player adaptation",
    Difficulty.EXPERT: "Masters complex pattern recognition and meta-game optimization",
}


@dataclass
class DieStats:
    faces: int
    mean: float
    variance: float
    distribution: Dict[int, float] = field(default_factory=dict)


@dataclass
class HistorySummary:
    roll_frequency: Dict[int, int]
    dice_type_usage: Dict[int, int]
    total_rolls: int
    average_roll: float


def dice_probabilities(faces: int) -> DieStats:
    faces = int(faces)
    if faces < 1:
        raise ConfigurationError(f"a die needs at least one face, got {faces}")
    p = 1.0 / faces
    return DieStats(
        faces=faces,
        mean=(faces + 1) / 2.0,
        variance=(faces * faces - 1) / 12.0,
        distribution={face: p for face in range(1, faces + 1)},
    )


def analyze_game_history(history: Sequence[Sequence[DiceGroup]]) -> Optional[HistorySummary]:
    roll_frequency: Dict[int, int] = {}
    usage: Dict[int, int] = {}
    total = 0
    for rnd in history:
        for group in rnd:
            usage[group.type] = usage.get(group.type, 0) + group.count
            for roll in group.results:
                roll_frequency[roll] = roll_frequency.get(roll, 0) + 1
                total += 1
    if total == 0:
        return None
    average = sum(roll * n for roll, n in roll_frequency.items()) / total
    return HistorySummary(roll_frequency, usage, total, average)


def _recent_average(history: Sequence[Sequence[DiceGroup]], rounds: int = RECENT_ROUNDS) -> float:
    recent = [g for rnd in list(history)[-rounds:] for g in rnd]
    n = sum(len(g.results) for g in recent)
    if n == 0:
        return 0.0
    return sum(sum(g.results) for g in recent) / n


def as_difficulty(d: Union[str, Difficulty]) -> Difficulty:
    return d if isinstance(d, Difficulty) else Difficulty(str(d).lower())


class OpponentDecisionEngine:
    """
    Picks how many dice of which type the AI opponent rolls.

    Every (dice type, count 1..5) candidate gets an expected value from the
    die's mean, pool synergy and a difficulty-dependent variance term, and a
    confidence from a per-tier heuristic. The winner maximises
    confidence * expected value; on equal scores the first candidate
    enumerated wins (dice types in the order given, counts ascending).
    """

    def __init__(
        self,
        synergy_bonus: float = SYNERGY_BONUS,
        diversity_penalty: float = DIVERSITY_PENALTY,
        rng: Optional[random.Random] = None,
    ):
        self.synergy_bonus = synergy_bonus
        self.diversity_penalty = diversity_penalty
        self.rng = rng or random.Random()

    # ---------------------- Scoring ----------------------
    def pool_synergy(self, dice_type: int, pool: Sequence[DiceGroup]) -> float:
        synergy = 0.0
        for group in pool:
            if group.type == dice_type:
                synergy += group.count * self.synergy_bonus
            else:
                synergy -= self.diversity_penalty
        return synergy

    def expected_value(
        self,
        dice_type: int,
        dice_count: int,
        pool: Sequence[DiceGroup],
        difficulty: Union[str, Difficulty],
    ) -> float:
        stats = dice_probabilities(dice_type)
        risk = stats.variance * RISK_FACTORS[as_difficulty(difficulty)]
        return stats.mean * dice_count + self.pool_synergy(dice_type, pool) + risk

    def evaluate(
        self,
        dice_type: int,
        dice_count: int,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]] = (),
        current_pool: Sequence[DiceGroup] = (),
        player_stats: Optional[PlayerStats] = None,
        summary: Optional[HistorySummary] = None,
    ) -> AIDecision:
        difficulty = as_difficulty(difficulty)
        stats = dice_probabilities(dice_type)
        ev = self.expected_value(dice_type, dice_count, current_pool, difficulty)
        reasoning = f"Rolling {dice_count}d{dice_type}"

        if difficulty is Difficulty.EASY:
            confidence = max(0.1, 0.8 - stats.variance / 10.0)
            reasoning += " (conservative approach)"

        elif difficulty is Difficulty.MEDIUM:
            confidence = min(0.9, 0.3 + ev / 10.0)
            if summary is not None and summary.average_roll > stats.mean:
                confidence += 0.1
                reasoning += " (adapting to game trends)"

        elif difficulty is Difficulty.HARD:
            confidence = min(0.95, 0.4 + ev / 8.0)
            if player_stats is not None:
                if dice_type in player_stats.preferred_dice:
                    confidence -= 0.1
                    reasoning += " (countering player strategy)"
                if player_stats.risk_tolerance < 0.5 and stats.variance > 5:
                    confidence += 0.15
                    reasoning += " (exploiting conservative play)"

        else:
            confidence = min(0.98, 0.5 + ev / 6.0)
            if summary is not None:
                recent = _recent_average(game_history)
                if recent > stats.mean:
                    confidence += 0.1
                    reasoning += " (exploiting hot streak)"
                elif recent < stats.mean * 0.8:
                    confidence += 0.05
                    reasoning += " (regression to mean expected)"
            if len(current_pool) > COMPLEX_POOL_GROUPS:
                confidence *= 0.9
                reasoning += " (managing complexity)"

        return AIDecision(
            dice_type=int(dice_type),
            dice_count=int(dice_count),
            confidence=clamp(confidence),
            expected_value=float(ev),
            reasoning=reasoning,
        )

    # ---------------------- Public API ----------------------
    def candidates(
        self,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]],
        current_pool: Sequence[DiceGroup],
        available_dice: Sequence[int],
        player_stats: Optional[PlayerStats] = None,
    ) -> List[AIDecision]:
        summary = analyze_game_history(game_history)
        return [
            self.evaluate(dice_type, count, difficulty, game_history, current_pool, player_stats, summary)
            for dice_type in available_dice
            for count in range(1, MAX_DICE_COUNT + 1)
        ]

    def decide(
        self,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]],
        current_pool: Sequence[DiceGroup],
        available_dice: Sequence[int],
        player_stats: Optional[PlayerStats] = None,
    ) -> AIDecision:
        options = self.candidates(difficulty, game_history, current_pool, available_dice, player_stats)
        if not options:
            raise NoCandidateError("no legal dice types to choose from")
        best = options[0]
        for option in options[1:]:
            # strict comparison keeps the earliest candidate on ties
            if option.score > best.score:
                best = option
        logger.debug("decided %dd%d score=%.3f", best.dice_count, best.dice_type, best.score)
        return best

    def full_analysis(
        self,
        difficulty: Union[str, Difficulty],
        game_history: Sequence[Sequence[DiceGroup]],
        current_pool: Sequence[DiceGroup],
        available_dice: Sequence[int],
        player_stats: Optional[PlayerStats] = None,
    ) -> AIAnalysis:
        means: Dict[int, float] = {}
        single: Dict[int, float] = {}
        for dice_type in available_dice:
            means[dice_type] = dice_probabilities(dice_type).mean
            single[dice_type] = self.expected_value(dice_type, 1, current_pool, difficulty)
        best = self.decide(difficulty, game_history, current_pool, available_dice, player_stats)
        values = list(single.values())
        return AIAnalysis(
            probability_distribution=means,
            expected_values=single,
            risk_assessment={
                "conservative": min(values),
                "balanced": sum(values) / len(values),
                "aggressive": max(values),
            },
            optimal_strategy=best,
        )

    def thinking_delay(self, difficulty: Union[str, Difficulty]) -> float:
        """Seconds the UI should wait before revealing a decision."""
        base, spread = THINKING_TIME[as_difficulty(difficulty)]
        return base + self.rng.random() * spread

    @staticmethod
    def describe(difficulty: Union[str, Difficulty]) -> str:
        return DESCRIPTIONS[as_difficulty(difficulty)]
