from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


def _get(d: Dict[str, Any], snake: str, camel: Optional[str] = None, default: Any = None) -> Any:
    if snake in d:
        return d[snake]
    if camel is not None and camel in d:
        return d[camel]
    return default


def parse_timestamp(v: Any) -> Optional[datetime]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)
    if isinstance(v, (int, float)):
        # epoch milliseconds, as the browser client sends them
        return datetime.fromtimestamp(float(v) / 1000.0, tz=timezone.utc)
    s = str(v)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    ts = datetime.fromisoformat(s)
    # naive timestamps are taken as UTC so they compare with epoch input
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def format_timestamp(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _opt_float(v: Any) -> Optional[float]:
    return float(v) if v is not None else None


def _num(d: Dict[str, Any], snake: str, camel: str, default: float) -> float:
    v = _get(d, snake, camel)
    return float(v) if v is not None else default


# ---------------------- Records supplied by the game engine ----------------------
@dataclass(frozen=True)
class DiceGroup:
    type: int
    count: int
    results: Tuple[int, ...] = ()
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "count": self.count, "results": list(self.results), "id": self.id}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DiceGroup":
        results = tuple(int(r) for r in d.get("results", []) or [])
        return DiceGroup(
            type=int(d["type"]),
            count=int(d.get("count", len(results))),
            results=results,
            id=str(d.get("id", "")),
        )


@dataclass(frozen=True)
class DiceGroupResult:
    group: DiceGroup
    player_id: str = ""
    timestamp: Optional[datetime] = None
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group": self.group.to_dict(),
            "player_id": self.player_id,
            "timestamp": format_timestamp(self.timestamp),
            "total": self.total,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DiceGroupResult":
        group = DiceGroup.from_dict(d["group"])
        return DiceGroupResult(
            group=group,
            player_id=str(_get(d, "player_id", "playerId", "")),
            timestamp=parse_timestamp(d.get("timestamp")),
            total=int(d.get("total", sum(group.results))),
        )


@dataclass(frozen=True)
class ActionOutcome:
    success: bool = False
    pattern_type: Optional[str] = None
    score_change: Optional[float] = None
    bonus_points: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "pattern_type": self.pattern_type,
            "score_change": self.score_change,
            "bonus_points": self.bonus_points,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ActionOutcome":
        return ActionOutcome(
            success=bool(d.get("success", False)),
            pattern_type=_get(d, "pattern_type", "patternType"),
            score_change=_opt_float(_get(d, "score_change", "scoreChange")),
            bonus_points=_opt_float(_get(d, "bonus_points", "bonusPoints")),
        )


@dataclass(frozen=True)
class PlayerAction:
    action_type: str
    player_id: str
    timestamp: Optional[datetime] = None
    dice_groups: Tuple[DiceGroupResult, ...] = ()
    outcome: Optional[ActionOutcome] = None
    risk_level: Optional[float] = None
    time_to_decide: Optional[float] = None
    strategy: Optional[str] = None
    pressure_level: Optional[float] = None

    def roll_values(self) -> List[int]:
        return [v for g in self.dice_groups for v in g.group.results]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_type": self.action_type,
            "player_id": self.player_id,
            "timestamp": format_timestamp(self.timestamp),
            "dice_groups": [g.to_dict() for g in self.dice_groups],
            "outcome": self.outcome.to_dict() if self.outcome is not None else None,
            "risk_level": self.risk_level,
            "time_to_decide": self.time_to_decide,
            "strategy": self.strategy,
            "pressure_level": self.pressure_level,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PlayerAction":
        outcome = d.get("outcome")
        return PlayerAction(
            action_type=str(_get(d, "action_type", "actionType", None) or d.get("type", "")),
            player_id=str(_get(d, "player_id", "playerId", "")),
            timestamp=parse_timestamp(d.get("timestamp")),
            dice_groups=tuple(DiceGroupResult.from_dict(g) for g in (_get(d, "dice_groups", "diceGroups") or [])),
            outcome=ActionOutcome.from_dict(outcome) if outcome else None,
            risk_level=_opt_float(_get(d, "risk_level", "riskLevel")),
            time_to_decide=_opt_float(_get(d, "time_to_decide", "timeToDecide")),
            strategy=d.get("strategy"),
            pressure_level=_opt_float(_get(d, "pressure_level", "pressureLevel")),
        )


@dataclass(frozen=True)
class GameRound:
    round_number: int
    player_actions: Tuple[PlayerAction, ...] = ()
    scores: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_number": self.round_number,
            "player_actions": [a.to_dict() for a in self.player_actions],
            "scores": dict(self.scores),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GameRound":
        return GameRound(
            round_number=int(_get(d, "round_number", "roundNumber", 0)),
            player_actions=tuple(PlayerAction.from_dict(a) for a in (_get(d, "player_actions", "playerActions") or [])),
            scores={str(k): float(v) for k, v in (d.get("scores") or {}).items()},
        )


@dataclass(frozen=True)
class GameSession:
    id: str
    players: Tuple[str, ...] = ()
    rounds: Tuple[GameRound, ...] = ()
    status: str = "completed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "players": list(self.players),
            "rounds": [r.to_dict() for r in self.rounds],
            "status": self.status,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GameSession":
        # players may be bare ids or full player records
        players = tuple(str(p["id"]) if isinstance(p, dict) else str(p) for p in d.get("players", []) or [])
        return GameSession(
            id=str(d.get("id", "")),
            players=players,
            rounds=tuple(GameRound.from_dict(r) for r in d.get("rounds", []) or []),
            status=str(d.get("status", "completed")),
        )


# ---------------------- Inputs to the predictor and the opponent ----------------------
@dataclass
class GameStateSnapshot:
    current_round: float = 1
    player_score: float = 0
    opponent_score: float = 0
    remaining_dice: float = 6
    turn_time_remaining: float = 30
    risk_level: float = 0.5
    board_advantage: float = 0.0
    streak_count: float = 0
    pressure_level: float = 0.5

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GameStateSnapshot":
        return GameStateSnapshot(
            current_round=_num(d, "current_round", "currentRound", 1),
            player_score=_num(d, "player_score", "playerScore", 0),
            opponent_score=_num(d, "opponent_score", "opponentScore", 0),
            remaining_dice=_num(d, "remaining_dice", "remainingDice", 6),
            turn_time_remaining=_num(d, "turn_time_remaining", "turnTimeRemaining", 30),
            risk_level=_num(d, "risk_level", "riskLevel", 0.5),
            board_advantage=_num(d, "board_advantage", "boardAdvantage", 0.0),
            streak_count=_num(d, "streak_count", "streakCount", 0),
            pressure_level=_num(d, "pressure_level", "pressureLevel", 0.5),
        )


@dataclass
class HistoryEntry:
    type: str = "unknown"
    success: bool = False
    risk_level: float = 0.5
    time_to_decide: float = 15.0
    strategy: str = "unknown"
    pressure_level: float = 0.5

    @staticmethod
    def from_action(action: PlayerAction) -> "HistoryEntry":
        return HistoryEntry(
            type=action.action_type,
            success=bool(action.outcome.success) if action.outcome is not None else False,
            risk_level=action.risk_level if action.risk_level is not None else 0.5,
            time_to_decide=action.time_to_decide if action.time_to_decide is not None else 15.0,
            strategy=action.strategy or "unknown",
            pressure_level=action.pressure_level if action.pressure_level is not None else 0.5,
        )

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "HistoryEntry":
        return HistoryEntry(
            type=str(d.get("type", "unknown")),
            success=bool(d.get("success", False)),
            risk_level=_num(d, "risk_level", "riskLevel", 0.5),
            time_to_decide=_num(d, "time_to_decide", "timeToDecide", 15.0),
            strategy=str(d.get("strategy", "unknown")),
            pressure_level=_num(d, "pressure_level", "pressureLevel", 0.5),
        )


@dataclass
class PlayerStats:
    average_roll: float = 0.0
    preferred_dice: List[int] = field(default_factory=list)
    risk_tolerance: float = 0.5

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PlayerStats":
        return PlayerStats(
            average_roll=_num(d, "average_roll", "averageRoll", 0.0),
            preferred_dice=[int(x) for x in _get(d, "preferred_dice", "preferredDice", []) or []],
            risk_tolerance=_num(d, "risk_tolerance", "riskTolerance", 0.5),
        )


# ---------------------- Outputs ----------------------
@dataclass(frozen=True)
class DicePattern:
    id: str
    type: str
    values: Tuple[int, ...]
    probability: float
    player_id: Optional[str] = None
    session_id: Optional[str] = None
    round_number: Optional[int] = None
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "values": list(self.values),
            "probability": self.probability,
            "player_id": self.player_id,
            "session_id": self.session_id,
            "round_number": self.round_number,
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass
class Anomaly:
    description: str
    severity: str
    timestamp: datetime
    data: DicePattern
    type: str = "unusual_pattern"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity,
            "timestamp": format_timestamp(self.timestamp),
            "data": self.data.to_dict(),
        }


@dataclass
class PatternTrend:
    changes: Dict[str, int]
    significance: float
    direction: str

    def to_dict(self) -> Dict[str, Any]:
        return {"changes": dict(self.changes), "significance": self.significance, "direction": self.direction}


@dataclass
class PatternAnalysis:
    patterns: List[DicePattern]
    frequencies: Dict[str, int]
    trends: List[PatternTrend]
    anomalies: List[Anomaly]
    confidence: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "frequencies": dict(self.frequencies),
            "trends": [t.to_dict() for t in self.trends],
            "anomalies": [a.to_dict() for a in self.anomalies],
            "confidence": self.confidence,
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass
class MLPrediction:
    recommended_action: str
    confidence: float
    alternatives: List[Tuple[str, float]]
    ranking: List[Tuple[str, float]]
    reasoning: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_action": self.recommended_action,
            "confidence": self.confidence,
            "alternatives": [{"action": a, "probability": p} for a, p in self.alternatives],
            "ranking": [{"action": a, "probability": p} for a, p in self.ranking],
            "reasoning": self.reasoning,
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass
class ProbabilityDistribution:
    win: float
    lose: float
    draw: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"win": self.win, "lose": self.lose, "draw": self.draw, "confidence": self.confidence}


@dataclass
class AIDecision:
    dice_type: int
    dice_count: int
    confidence: float
    expected_value: float
    reasoning: str

    @property
    def score(self) -> float:
        return self.confidence * self.expected_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dice_type": self.dice_type,
            "dice_count": self.dice_count,
            "confidence": self.confidence,
            "expected_value": self.expected_value,
            "reasoning": self.reasoning,
        }


@dataclass
class AIAnalysis:
    probability_distribution: Dict[int, float]
    expected_values: Dict[int, float]
    risk_assessment: Dict[str, float]
    optimal_strategy: AIDecision

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability_distribution": {str(k): v for k, v in self.probability_distribution.items()},
            "expected_values": {str(k): v for k, v in self.expected_values.items()},
            "risk_assessment": dict(self.risk_assessment),
            "optimal_strategy": self.optimal_strategy.to_dict(),
        }
