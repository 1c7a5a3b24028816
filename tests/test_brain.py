import json
import os

import numpy as np

from dicebrain import DiceBrain, DiceGroup, GameStateSnapshot, HistoryEntry, Settings
from dicebrain.storage import MODEL_FILE, ModelStorage


def setup_state_dir(tmp_path, name="state"):
    state_dir = tmp_path / name
    state_dir.mkdir()
    return str(state_dir)


def probe(brain):
    state = GameStateSnapshot(current_round=4, player_score=30, opponent_score=25)
    history = [HistoryEntry(type="aggressive_roll", success=True)] * 3
    return brain.predictor.action_probabilities(state, history), brain.recognizer.network.predict(
        brain.codec.encode_dice_sequence([6, 6, 2])
    )


def test_decide_predict_save_load(tmp_path, sessions):
    state_dir = setup_state_dir(tmp_path)
    brain = DiceBrain(state_dir=state_dir, remember_history=True, random_seed=1)

    decision = brain.decide("expert", [[DiceGroup(type=6, count=2, results=(5, 6))]], [], [6, 8, 12])
    assert decision.dice_type in (6, 8, 12)
    assert 1 <= decision.dice_count <= 5

    prediction = brain.predict_next_move(GameStateSnapshot(), [])
    assert prediction.recommended_action == prediction.ranking[0][0]
    assert len(prediction.alternatives) == 2

    assert brain.train(sessions, background=False) is True
    assert os.path.exists(os.path.join(state_dir, MODEL_FILE))
    brain.save()

    # reload into a brain with different initial weights
    brain2 = DiceBrain(state_dir=state_dir, remember_history=True, random_seed=99)
    for x, y in zip(probe(brain), probe(brain2)):
        np.testing.assert_array_equal(x, y)
    assert brain2.pipeline.accuracy == brain.pipeline.accuracy
    assert brain2.pipeline.last_trained == brain.pipeline.last_trained
    brain.close()
    brain2.close()


def test_stored_document_layout(tmp_path, sessions):
    state_dir = setup_state_dir(tmp_path)
    brain = DiceBrain(state_dir=state_dir, random_seed=1)
    brain.train(sessions, background=False)
    with open(os.path.join(state_dir, MODEL_FILE), "r", encoding="utf-8") as f:
        doc = json.load(f)
    assert set(doc) == {
        "pattern_weights", "pattern_biases", "prediction_weights", "prediction_biases", "accuracy", "last_trained",
    }
    assert np.array(doc["pattern_weights"][0]).shape == (12, 24)
    assert np.array(doc["prediction_weights"][1]).shape == (36, 6)
    assert np.array(doc["prediction_biases"][0]).shape == (36,)


def test_corrupt_document_falls_back_to_fresh_weights(tmp_path):
    state_dir = setup_state_dir(tmp_path)
    with open(os.path.join(state_dir, MODEL_FILE), "w", encoding="utf-8") as f:
        f.write("{not json")
    brain = DiceBrain(state_dir=state_dir, random_seed=5)
    fresh = DiceBrain(remember_history=False, random_seed=5)
    for x, y in zip(probe(brain), probe(fresh)):
        np.testing.assert_array_equal(x, y)
    assert brain.pipeline.last_trained is None


def test_undecodable_document_falls_back_to_fresh_weights(tmp_path):
    state_dir = setup_state_dir(tmp_path)
    with open(os.path.join(state_dir, MODEL_FILE), "wb") as f:
        f.write(b"\xff\xfe\x00garbage")
    brain = DiceBrain(state_dir=state_dir, random_seed=5)
    fresh = DiceBrain(remember_history=False, random_seed=5)
    for x, y in zip(probe(brain), probe(fresh)):
        np.testing.assert_array_equal(x, y)
    assert brain.pipeline.restore() is False


def test_wrong_shape_document_falls_back(tmp_path):
    state_dir = setup_state_dir(tmp_path)
    storage = ModelStorage(state_dir)
    storage.save({
        "pattern_weights": [np.zeros((12, 24)), np.zeros((24, 8))],
        "pattern_biases": [np.zeros(24), np.zeros(8)],
        "prediction_weights": [np.zeros((18, 5)), np.zeros((5, 6))],
        "prediction_biases": [np.zeros(5), np.zeros(6)],
        "accuracy": 0.5,
        "last_trained": "2024-01-01T00:00:00+00:00",
    })
    brain = DiceBrain(state_dir=state_dir, random_seed=5)
    fresh = DiceBrain(remember_history=False, random_seed=5)
    for x, y in zip(probe(brain), probe(fresh)):
        np.testing.assert_array_equal(x, y)
    assert brain.pipeline.accuracy == 0.0


def test_privacy_off(tmp_path, sessions):
    state_dir = setup_state_dir(tmp_path)
    brain = DiceBrain(state_dir=state_dir, remember_history=False)
    brain.train(sessions, background=False)
    brain.save()  # should be no-op
    assert os.listdir(state_dir) == []
    assert brain.status()["storage"] is None


def test_settings_are_not_mutated(tmp_path):
    settings = Settings(random_seed=3)
    brain = DiceBrain(state_dir=setup_state_dir(tmp_path), settings=settings)
    assert settings.state_dir == "./knucklebones_state"
    assert brain.settings.state_dir != settings.state_dir


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("STATE_DIR", "/tmp/kb")
    monkeypatch.setenv("DICEBRAIN_EPOCHS", "7")
    monkeypatch.setenv("DICEBRAIN_SEED", "13")
    monkeypatch.setenv("DICEBRAIN_REMEMBER", "0")
    monkeypatch.setenv("ALLOW_ORIGINS", "http://a.test, http://b.test")
    s = Settings.from_env()
    assert s.state_dir == "/tmp/kb"
    assert s.epochs == 7 and s.random_seed == 13
    assert s.remember_history is False
    assert s.allow_origins == ["http://a.test", "http://b.test"]


def test_status_and_analysis(tmp_path, sessions):
    brain = DiceBrain(state_dir=setup_state_dir(tmp_path), random_seed=2)
    status = brain.status()
    assert status["is_training"] is False
    assert status["last_trained"] is None
    assert status["storage"] == "file"

    analysis = brain.analyze_patterns(sessions)
    assert sum(analysis.frequencies.values()) == len(analysis.patterns)
    dist = brain.win_probability(GameStateSnapshot(), [])
    assert 0.05 <= dist.win <= 0.95 and 0.05 <= dist.lose <= 0.95 and 0.0 <= dist.draw <= 0.9
    assert 0.0 < dist.confidence < 1.0


def test_storage_load_and_clear(tmp_path):
    storage = ModelStorage(setup_state_dir(tmp_path))
    assert storage.backend == "file"
    assert storage.load() is None
    storage.save({"accuracy": np.float64(0.25), "pattern_weights": [np.eye(2)]})
    assert storage.load() == {"accuracy": 0.25, "pattern_weights": [[[1.0, 0.0], [0.0, 1.0]]]}
    storage.clear()
    assert storage.load() is None
