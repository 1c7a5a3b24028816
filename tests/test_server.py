import numpy as np
from fastapi.testclient import TestClient

from dicebrain import PATTERN_LABELS, DiceBrain, Settings
from dicebrain.server import create_app

from helpers import constant_network, logit, make_session


def make_client():
    brain = DiceBrain(settings=Settings(remember_history=False, random_seed=4, epochs=3))
    return TestClient(create_app(brain)), brain


def test_status():
    client, _ = make_client()
    r = client.get("/status")
    assert r.status_code == 200
    assert r.json()["is_training"] is False


def test_decide():
    client, _ = make_client()
    r = client.post("/decide", json={
        "difficulty": "hard",
        "game_history": [[{"type": 6, "count": 2, "results": [3, 4]}]],
        "current_pool": [{"type": 6, "count": 1}],
        "available_dice": [4, 6, 8],
        "player_stats": {"preferredDice": [8], "riskTolerance": 0.3},
    })
    assert r.status_code == 200
    body = r.json()
    assert body["dice_type"] in (4, 6, 8)
    assert 1.5 <= body["thinking_time"] <= 3.5
    assert set(body["analysis"]["expected_values"]) == {"4", "6", "8"}


def test_decide_rejects_bad_input():
    client, _ = make_client()
    assert client.post("/decide", json={"difficulty": "godlike", "available_dice": [6]}).status_code == 400
    assert client.post("/decide", json={"difficulty": "easy", "available_dice": []}).status_code == 400


def test_predict_and_win_probability():
    client, _ = make_client()
    payload = {
        "state": {"currentRound": 3, "playerScore": 12, "opponentScore": 20},
        "history": [{"type": "aggressive_roll", "success": True, "riskLevel": 0.7}],
    }
    r = client.post("/predict", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert len(body["ranking"]) == 6
    assert body["recommended_action"] == body["ranking"][0]["action"]

    r = client.post("/win-probability", json=payload)
    assert r.status_code == 200
    assert 0.05 <= r.json()["win"] <= 0.95


def test_analyze_roll():
    client, _ = make_client()
    r = client.post("/analyze-roll", json={"values": [1, 2, 3, 4, 5]})
    assert r.status_code == 200
    assert "pattern" in r.json()


def test_train_and_analyze():
    client, brain = make_client()
    sessions = [make_session("x", 3).to_dict()]
    r = client.post("/analyze", json={"sessions": sessions})
    assert r.status_code == 200
    assert "frequencies" in r.json()

    r = client.post("/train", json={"sessions": sessions})
    assert r.status_code == 200
    assert r.json() == {"accepted": True, "sessions": 1}
    brain.close()
    assert brain.pipeline.last_trained is not None

    bad = client.post("/train", json={"sessions": [{"rounds": [{"player_actions": [{"dice_groups": [{}]}]}]}]})
    assert bad.status_code == 400


def test_decide_rejects_faceless_dice():
    client, _ = make_client()
    r = client.post("/decide", json={"difficulty": "easy", "available_dice": [0]})
    assert r.status_code == 400


def test_analyze_accepts_mixed_timestamp_forms():
    client, brain = make_client()
    logits = np.full(len(PATTERN_LABELS), logit(0.05))
    logits[PATTERN_LABELS.index("pairs")] = logit(0.9)
    brain.recognizer.network = constant_network(12, 24, logits)
    session = make_session("t", 2).to_dict()
    session["rounds"][0]["player_actions"][0]["timestamp"] = "2024-01-01T12:00:00"
    session["rounds"][1]["player_actions"][0]["timestamp"] = 1704110400000
    r = client.post("/analyze", json={"sessions": [session]})
    assert r.status_code == 200
    assert r.json()["frequencies"] == {"pairs": 2}


def test_shutdown_waits_for_background_training():
    brain = DiceBrain(settings=Settings(remember_history=False, random_seed=4, epochs=3))
    with TestClient(create_app(brain)) as client:
        r = client.post("/train", json={"sessions": [make_session("y", 3).to_dict()]})
        assert r.json()["accepted"] is True
    # leaving the client runs the lifespan shutdown, which joins the worker
    assert brain.pipeline.last_trained is not None
    assert not brain.pipeline.is_training
