import json
import math

import numpy as np

from dicebrain import ACTION_LABELS, DiceBrain, Settings, sessions_from_dicts


def log_loss(p, y):
    return -math.log(max(1e-8, p[y]))


def ece(probs_list, labels, n_bins=10):
    # Expected Calibration Error (multiclass, one-vs-max)
    confs = np.array([p.max() for p in probs_list])
    preds = np.array([int(np.argmax(p)) for p in probs_list])
    labels = np.array(labels)
    bins = np.linspace(0, 1, n_bins + 1)
    total = len(labels)
    e = 0.0
    for i in range(n_bins):
        m = (confs > bins[i]) & (confs <= bins[i + 1])
        if not np.any(m):
            continue
        acc = np.mean(preds[m] == labels[m])
        conf = float(np.mean(confs[m]))
        e += (np.sum(m) / total) * abs(acc - conf)
    return float(e)


def move_samples(brain: DiceBrain, sessions):
    # (normalised action distribution, index of the action actually taken next)
    pipeline = brain.pipeline
    for session in sessions:
        for ri, rnd in enumerate(session.rounds):
            state = pipeline.reconstruct_state(session, ri)
            actions = rnd.player_actions
            for ai, action in enumerate(actions[:-1]):
                nxt = actions[ai + 1].action_type
                if nxt not in ACTION_LABELS:
                    continue
                history = pipeline.player_history(session, action.player_id, ri)
                p = brain.predictor.action_probabilities(state, history)
                yield p / p.sum(), ACTION_LABELS.index(nxt)


def run_offline(data_path: str, split: float = 0.8, seed: int = 0):
    # data format: list of GameSession documents (snake_case or camelCase keys)
    with open(data_path, "r", encoding="utf-8") as f:
        sessions = sessions_from_dicts(json.load(f))

    cut = max(1, int(len(sessions) * split))
    train, test = sessions[:cut], sessions[cut:] or sessions[:cut]

    brain = DiceBrain(settings=Settings(remember_history=False, random_seed=seed))
    brain.train(train, background=False)

    probs = []
    labels = []
    for p, y in move_samples(brain, test):
        probs.append(p)
        labels.append(y)

    report = {
        "train_sessions": len(train),
        "test_sessions": len(test),
        "pattern_accuracy": brain.pipeline.evaluate_accuracy(test),
        "move_samples": len(labels),
    }
    if labels:
        report["move_accuracy"] = float(np.mean([int(np.argmax(p)) == y for p, y in zip(probs, labels)]))
        report["log_loss"] = float(np.mean([log_loss(p, y) for p, y in zip(probs, labels)]))
        report["ece"] = ece(probs, labels)
    print(json.dumps(report, indent=2))
    brain.close()


if __name__ == "__main__":
    import sys
    run_offline(sys.argv[1])
