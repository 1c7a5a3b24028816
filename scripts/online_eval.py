import json
import random
from typing import Dict, List

from dicebrain import DiceBrain, DiceGroup, Settings

DICE_TYPES = [4, 6, 8, 10, 12, 20]


def roll(rng: random.Random, dice_type: int, count: int) -> DiceGroup:
    results = tuple(rng.randint(1, dice_type) for _ in range(count))
    return DiceGroup(type=dice_type, count=count, results=results)


def simulate_match(brain: DiceBrain, difficulty_a: str, difficulty_b: str, n_rounds: int = 200, seed: int = 0) -> Dict:
    # both sides share the brain; each keeps its own roll history
    rng = random.Random(seed)
    history: Dict[str, List[List[DiceGroup]]] = {"A": [], "B": []}
    wins = {"A": 0, "B": 0, "draw": 0}
    for _ in range(n_rounds):
        totals = {}
        for side, difficulty in (("A", difficulty_a), ("B", difficulty_b)):
            decision = brain.decide(difficulty, history[side], [], DICE_TYPES)
            group = roll(rng, decision.dice_type, decision.dice_count)
            history[side].append([group])
            totals[side] = sum(group.results)
        if totals["A"] > totals["B"]:
            wins["A"] += 1
        elif totals["B"] > totals["A"]:
            wins["B"] += 1
        else:
            wins["draw"] += 1
    return {k: v / n_rounds for k, v in wins.items()}


def run_ab(difficulty_a: str = "easy", difficulty_b: str = "expert"):
    brain = DiceBrain(settings=Settings(remember_history=False, random_seed=0))
    r = simulate_match(brain, difficulty_a, difficulty_b)
    print(json.dumps({"A": difficulty_a, "B": difficulty_b, "rates": r, "uplift": r["B"] - r["A"]}, indent=2))
    brain.close()


if __name__ == "__main__":
    import sys
    run_ab(*sys.argv[1:3])
