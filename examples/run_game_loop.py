import random
from datetime import datetime, timedelta, timezone

from dicebrain import (
    DiceBrain,
    DiceGroup,
    DiceGroupResult,
    GameRound,
    GameSession,
    GameStateSnapshot,
    HistoryEntry,
    PlayerAction,
    setup_logging,
)
from dicebrain.models import ActionOutcome

DICE_TYPES = [4, 6, 8, 10, 12, 20]
HUMAN_ACTIONS = ["aggressive_roll", "conservative_roll", "risk_taking", "defensive_play"]


def play_round(brain: DiceBrain, rnd: int, history, human_history, scores, start):
    # AI picks dice from the opponent engine
    decision = brain.decide("hard", history, [], DICE_TYPES)
    ai_roll = tuple(random.randint(1, decision.dice_type) for _ in range(decision.dice_count))

    # Simulated human: rolls d6, leans aggressive when behind
    behind = scores["human"] < scores["ai"]
    action_type = "aggressive_roll" if behind and random.random() < 0.7 else random.choice(HUMAN_ACTIONS)
    human_roll = tuple(random.randint(1, 6) for _ in range(4 if action_type == "aggressive_roll" else 2))

    state = GameStateSnapshot(current_round=rnd, player_score=scores["human"], opponent_score=scores["ai"])
    prediction = brain.predict_next_move(state, human_history)
    pattern = brain.analyze_roll(human_roll)

    scores["human"] += sum(human_roll)
    scores["ai"] += sum(ai_roll)
    success = sum(human_roll) >= sum(ai_roll)
    human_history.append(HistoryEntry(type=action_type, success=success, strategy=action_type))

    ts = start + timedelta(minutes=rnd)
    group = DiceGroupResult(group=DiceGroup(type=6, count=len(human_roll), results=human_roll), player_id="human")
    actions = (
        PlayerAction(
            action_type=action_type,
            player_id="human",
            timestamp=ts,
            dice_groups=(group,),
            outcome=ActionOutcome(success=success, pattern_type=pattern.type if pattern else "random"),
        ),
        PlayerAction(action_type="strategic_block", player_id="ai", timestamp=ts),
    )
    history.append([DiceGroup(type=decision.dice_type, count=decision.dice_count, results=ai_roll)])
    print(
        f"Round {rnd}: AI={decision.dice_count}d{decision.dice_type} Human={action_type} "
        f"predicted={prediction.recommended_action} ({prediction.confidence:.2f}) "
        f"pattern={pattern.type if pattern else 'unknown'}"
    )
    return GameRound(round_number=rnd, player_actions=actions, scores=dict(scores))


def main():
    setup_logging("INFO")
    brain = DiceBrain(state_dir="./knucklebones_state", remember_history=True)
    start = datetime.now(timezone.utc)
    sessions = []
    for game in range(3):
        history, human_history = [], []
        scores = {"human": 0.0, "ai": 0.0}
        rounds = [play_round(brain, r, history, human_history, scores, start) for r in range(1, 11)]
        sessions.append(GameSession(id=f"demo-{game}", players=("human", "ai"), rounds=tuple(rounds)))
    brain.train(sessions, background=False)
    print(brain.status())
    brain.save()
    brain.close()


if __name__ == "__main__":
    main()
