from datetime import datetime, timedelta, timezone

import numpy as np

from dicebrain import (
    DiceGroup,
    DiceGroupResult,
    FeedforwardNetwork,
    GameRound,
    GameSession,
    NetworkParameters,
    PlayerAction,
)
from dicebrain.models import ActionOutcome

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
ACTION_CYCLE = ["aggressive_roll", "conservative_roll", "strategic_block", "risk_taking"]
PATTERN_ROLLS = {
    "pairs": (2, 2, 5, 5),
    "triples": (4, 4, 4),
    "sequential": (1, 2, 3, 4, 5),
    "high_risk": (6, 6, 1, 1, 6, 1),
}


def make_action(player_id, action_type, values=None, pattern_type=None, ts=None, success=True):
    groups = ()
    if values:
        groups = (DiceGroupResult(group=DiceGroup(type=6, count=len(values), results=tuple(values)), player_id=player_id),)
    outcome = ActionOutcome(success=success, pattern_type=pattern_type) if pattern_type else None
    return PlayerAction(
        action_type=action_type,
        player_id=player_id,
        timestamp=ts,
        dice_groups=groups,
        outcome=outcome,
        risk_level=0.6,
        time_to_decide=10.0,
        strategy=action_type,
    )


def make_session(sid="s1", n_rounds=3, start=START):
    """Two players, each round: p1 rolls a labelled pattern, p2 answers."""
    labels = list(PATTERN_ROLLS)
    rounds = []
    for r in range(n_rounds):
        label = labels[r % len(labels)]
        ts = start + timedelta(minutes=r)
        actions = (
            make_action("p1", ACTION_CYCLE[r % 4], PATTERN_ROLLS[label], label, ts),
            make_action("p2", ACTION_CYCLE[(r + 1) % 4], ts=ts),
        )
        rounds.append(GameRound(round_number=r + 1, player_actions=actions, scores={"p1": 10.0 * r, "p2": 8.0 * r}))
    return GameSession(id=sid, players=("p1", "p2"), rounds=tuple(rounds))


def constant_network(input_size, hidden_size, logits):
    """A network whose output is sigmoid(logits) for every input."""
    logits = np.asarray(logits, dtype=np.float64)
    net = FeedforwardNetwork(input_size, hidden_size, len(logits), rng=np.random.default_rng(0))
    net.load_parameters(NetworkParameters(
        w1=np.zeros((input_size, hidden_size)),
        b1=np.zeros(hidden_size),
        w2=np.zeros((hidden_size, len(logits))),
        b2=logits,
    ))
    return net


def logit(p):
    return float(np.log(p / (1.0 - p)))
