from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import numpy as np

from .errors import DeserializationError

try:
    import redis  # type: ignore
except Exception:  # redis is optional
    redis = None  # type: ignore

logger = logging.getLogger(__name__)

MODEL_FILE = "knucklebones_ml_models.json"
MODEL_KEY = "knucklebones:ml_models"


class NumpyEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return json.JSONEncoder.default(self, obj)


class ModelStorage:
    """
    Persists the model document (both networks, accuracy, last-trained stamp).

    - If a Redis URL is given and the redis client is installed, the document
      lives under `knucklebones:ml_models`
    - Otherwise, or when Redis fails, it is a JSON file in state_dir
    load() returns None for a missing document and raises DeserializationError
    for one that exists but cannot be decoded.
    """

    def __init__(self, state_dir: str, redis_url: Optional[str] = None):
        self.state_dir = state_dir
        self._redis = None
        if redis_url and redis is not None:
            try:
                self._redis = redis.from_url(redis_url, decode_responses=True)
            except Exception as e:
                logger.warning("redis unavailable, using file storage: %s", e)
                self._redis = None
        if self._redis is None:
            os.makedirs(self.state_dir, exist_ok=True)

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "file"

    def _model_path(self) -> str:
        return os.path.join(self.state_dir, MODEL_FILE)

    # ---------------------- Public API ----------------------
    def save(self, document: Dict[str, Any]) -> None:
        payload = json.dumps(document, cls=NumpyEncoder)
        if self._redis is not None:
            try:
                self._redis.set(MODEL_KEY, payload)
                return
            except Exception as e:
                logger.warning("redis save failed, falling back to file: %s", e)
        os.makedirs(self.state_dir, exist_ok=True)
        with open(self._model_path(), "w", encoding="utf-8") as f:
            f.write(payload)
        logger.debug("saved model document to %s", self._model_path())

    def load(self) -> Optional[Dict[str, Any]]:
        raw = self._read_raw()
        if raw is None:
            return None
        try:
            d = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DeserializationError(f"model document is not valid JSON: {e}") from e
        if not isinstance(d, dict):
            raise DeserializationError("model document must be a JSON object")
        return d

    def clear(self) -> None:
        if self._redis is not None:
            try:
                self._redis.delete(MODEL_KEY)
            except Exception as e:
                logger.warning("redis delete failed: %s", e)
        p = self._model_path()
        if os.path.exists(p):
            os.remove(p)

    # ---------------------- Internal helpers ----------------------
    def _read_raw(self) -> Optional[str]:
        if self._redis is not None:
            try:
                s = self._redis.get(MODEL_KEY)
                if s is not None:
                    return s
            except Exception as e:
                logger.warning("redis load failed, falling back to file: %s", e)
        p = self._model_path()
        if not os.path.exists(p):
            return None
        try:
            with open(p, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DeserializationError(f"cannot read model document {p}: {e}") from e
