from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .codec import FeatureCodec
from .config import DEFAULT_EPOCHS, DEFAULT_EVAL_WINDOW
from .errors import DeserializationError, EmptyTrainingSetError
from .models import GameSession, GameStateSnapshot, HistoryEntry, format_timestamp, parse_timestamp
from .network import NetworkParameters
from .predictor import MovePredictor
from .recognizer import PatternRecognizer
from .storage import ModelStorage

logger = logging.getLogger(__name__)

Example = Tuple[np.ndarray, np.ndarray]


class TrainingPipeline:
    """
    Retrains both networks from recorded game sessions.

    - Single-flight: while a run is active every further request is dropped,
      not queued, and the caller is not blocked
    - Runs train copies of the networks and swap the result in at the end,
      so predictions made during training see the previous parameters
    - After a run the model document is persisted through ModelStorage
    """

    def __init__(
        self,
        recognizer: PatternRecognizer,
        predictor: MovePredictor,
        storage: Optional[ModelStorage] = None,
        codec: Optional[FeatureCodec] = None,
        epochs: int = DEFAULT_EPOCHS,
        eval_window: int = DEFAULT_EVAL_WINDOW,
    ):
        self.recognizer = recognizer
        self.predictor = predictor
        self.storage = storage
        self.codec = codec or recognizer.codec
        self.epochs = int(epochs)
        self.eval_window = int(eval_window)

        self.accuracy = 0.0
        self.last_trained: Optional[datetime] = None
        self.training_data_size = 0

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_training(self) -> bool:
        return self._lock.locked()

    # ---------------------- Training entry points ----------------------
    def train_models(self, sessions: Sequence[GameSession]) -> bool:
        """Train synchronously. Returns True if the networks were updated.

        Returns False without touching any parameter when another run is in
        progress, when no examples can be extracted, or when cancelled.
        """
        if not self._lock.acquire(blocking=False):
            logger.debug("training already in progress; request dropped")
            return False
        self._cancel.clear()
        try:
            return self._train_locked(list(sessions))
        finally:
            self._lock.release()

    def schedule_training(self, sessions: Sequence[GameSession]) -> Optional[Future]:
        """Run train_models on the background worker. None if dropped."""
        if not self._lock.acquire(blocking=False):
            logger.debug("training already in progress; background request dropped")
            return None
        # cleared here so a cancel() sent before the worker starts still applies
        self._cancel.clear()
        try:
            return self._get_executor().submit(self._run_and_release, list(sessions))
        except Exception:
            self._lock.release()
            raise

    def cancel(self) -> None:
        """Ask the active run to stop at the next epoch boundary and discard its result."""
        self._cancel.set()

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # ---------------------- Example extraction ----------------------
    def build_pattern_examples(self, sessions: Sequence[GameSession]) -> List[Example]:
        examples = []
        for session in sessions:
            for rnd in session.rounds:
                for action in rnd.player_actions:
                    if not action.dice_groups or action.outcome is None:
                        continue
                    x = self.codec.encode_dice_sequence(action.roll_values())
                    y = self.codec.encode_pattern_target(action.outcome.pattern_type or "unknown")
                    examples.append((x, y))
        return examples

    def build_move_examples(self, sessions: Sequence[GameSession]) -> List[Example]:
        examples = []
        for session in sessions:
            for ri, rnd in enumerate(session.rounds):
                actions = rnd.player_actions
                if len(actions) < 2:
                    continue
                state = self.reconstruct_state(session, ri)
                # the last action of a round has no successor to learn from
                for ai, action in enumerate(actions[:-1]):
                    history = self.player_history(session, action.player_id, ri)
                    x = self.codec.encode_game_state(state, history)
                    y = self.codec.encode_action_target(actions[ai + 1].action_type)
                    examples.append((x, y))
        return examples

    @staticmethod
    def reconstruct_state(session: GameSession, round_index: int) -> GameStateSnapshot:
        scores = session.rounds[round_index].scores
        players = session.players
        return GameStateSnapshot(
            current_round=round_index + 1,
            player_score=scores.get(players[0], 0.0) if len(players) > 0 else 0.0,
            opponent_score=scores.get(players[1], 0.0) if len(players) > 1 else 0.0,
        )

    @staticmethod
    def player_history(session: GameSession, player_id: str, before_round: int) -> List[HistoryEntry]:
        return [
            HistoryEntry.from_action(action)
            for rnd in session.rounds[:before_round]
            for action in rnd.player_actions
            if action.player_id == player_id
        ]

    def evaluate_accuracy(self, sessions: Sequence[GameSession]) -> float:
        correct = 0
        total = 0
        for session in list(sessions)[-self.eval_window:]:
            for rnd in session.rounds:
                for action in rnd.player_actions:
                    if not action.dice_groups or action.outcome is None:
                        continue
                    label, _ = self.recognizer.classify(action.roll_values())
                    if label == action.outcome.pattern_type:
                        correct += 1
                    total += 1
        return correct / total if total > 0 else 0.0

    # ---------------------- Persistence ----------------------
    def to_document(self) -> Dict[str, Any]:
        pattern = self.recognizer.network.to_dict()
        prediction = self.predictor.network.to_dict()
        return {
            "pattern_weights": pattern["weights"],
            "pattern_biases": pattern["biases"],
            "prediction_weights": prediction["weights"],
            "prediction_biases": prediction["biases"],
            "accuracy": self.accuracy,
            "last_trained": format_timestamp(self.last_trained or datetime.now(timezone.utc)),
        }

    def save(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(self.to_document())
        except OSError as e:
            logger.error("failed to save ML models: %s", e)

    def restore(self) -> bool:
        """Load persisted parameters. False (fresh weights kept) if missing or corrupt."""
        if self.storage is None:
            return False
        try:
            doc = self.storage.load()
            if doc is None:
                logger.info("no stored model document; starting from fresh weights")
                return False
            self.load_document(doc)
        except DeserializationError as e:
            logger.error("failed to load stored ML models, using fresh weights: %s", e)
            return False
        logger.info("restored models (accuracy=%.3f, last_trained=%s)", self.accuracy, self.last_trained)
        return True

    def load_document(self, doc: Dict[str, Any]) -> None:
        try:
            pattern = NetworkParameters.from_lists(doc["pattern_weights"], doc["pattern_biases"])
            prediction = NetworkParameters.from_lists(doc["prediction_weights"], doc["prediction_biases"])
            accuracy = float(doc.get("accuracy", 0.0) or 0.0)
            last_trained = parse_timestamp(doc.get("last_trained"))
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError(f"malformed model document: {e}") from e

        rn, pn = self.recognizer.network, self.predictor.network
        try:
            # validate both before loading either
            pattern.validate(rn.input_size, rn.hidden_size, rn.output_size)
            prediction.validate(pn.input_size, pn.hidden_size, pn.output_size)
        except ValueError as e:
            raise DeserializationError(str(e)) from e
        rn.load_parameters(pattern)
        pn.load_parameters(prediction)
        self.accuracy = accuracy
        self.last_trained = last_trained

    # ---------------------- Internal helpers ----------------------
    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dicebrain-train")
        return self._executor

    def _run_and_release(self, sessions: List[GameSession]) -> bool:
        try:
            return self._train_locked(sessions)
        except Exception:
            logger.exception("background training failed")
            raise
        finally:
            self._lock.release()

    def _collect(self, sessions: List[GameSession]) -> Tuple[List[Example], List[Example]]:
        pattern_examples = self.build_pattern_examples(sessions)
        move_examples = self.build_move_examples(sessions)
        if not pattern_examples and not move_examples:
            raise EmptyTrainingSetError(f"no training examples in {len(sessions)} sessions")
        return pattern_examples, move_examples

    def _train_locked(self, sessions: List[GameSession]) -> bool:
        self.training_data_size = len(sessions)
        try:
            pattern_examples, move_examples = self._collect(sessions)
        except EmptyTrainingSetError as e:
            logger.info("%s; nothing to train", e)
            return False

        logger.info(
            "training on %d sessions: %d pattern examples, %d move examples, %d epochs",
            len(sessions), len(pattern_examples), len(move_examples), self.epochs,
        )
        pattern_net = self.recognizer.network.copy()
        move_net = self.predictor.network.copy()
        if pattern_examples:
            pattern_net.train_batch(pattern_examples, self.epochs, self._cancel.is_set)
        if move_examples:
            move_net.train_batch(move_examples, self.epochs, self._cancel.is_set)
        if self._cancel.is_set():
            logger.info("training cancelled; discarding partial result")
            return False

        self.recognizer.network.load_parameters(pattern_net.parameters)
        self.predictor.network.load_parameters(move_net.parameters)
        self.accuracy = self.evaluate_accuracy(sessions)
        self.last_trained = datetime.now(timezone.utc)
        logger.info("training finished; pattern accuracy %.3f", self.accuracy)
        self.save()
        return True
