from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

# Network shapes are fixed: 12 dice values -> 8 pattern types,
# 18 state/history features -> 6 move types.
PATTERN_NET_SHAPE = (12, 24, 8)
PREDICTION_NET_SHAPE = (18, 36, 6)

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_EPOCHS = 100
DEFAULT_EVAL_WINDOW = 10

LOG_FORMAT = "%(asctime)s - %(threadName)-18s - %(levelname)-8s - %(name)s - %(message)s"


@dataclass
class Settings:
    """Runtime configuration shared by the brain, the server and the scripts.

    Every empirically chosen threshold lives here so a host can override it
    without touching the components themselves.
    """

    state_dir: str = "./knucklebones_state"
    remember_history: bool = True
    redis_url: Optional[str] = None
    learning_rate: float = DEFAULT_LEARNING_RATE
    epochs: int = DEFAULT_EPOCHS
    eval_window: int = DEFAULT_EVAL_WINDOW
    random_seed: Optional[int] = None

    label_threshold: float = 0.6
    anomaly_threshold: float = 0.3
    trend_threshold: float = 0.3
    trend_window_seconds: float = 3600.0
    synergy_bonus: float = 0.1
    diversity_penalty: float = 0.05

    log_level: str = "INFO"
    allow_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        seed = os.getenv("DICEBRAIN_SEED")
        origins = os.getenv("ALLOW_ORIGINS", "*")
        return cls(
            state_dir=os.getenv("STATE_DIR", "./knucklebones_state"),
            remember_history=os.getenv("DICEBRAIN_REMEMBER", "1") not in ("0", "false", "no"),
            redis_url=os.getenv("REDIS_URL") or None,
            learning_rate=float(os.getenv("DICEBRAIN_LEARNING_RATE", DEFAULT_LEARNING_RATE)),
            epochs=int(os.getenv("DICEBRAIN_EPOCHS", DEFAULT_EPOCHS)),
            random_seed=int(seed) if seed else None,
            log_level=os.getenv("DICEBRAIN_LOG_LEVEL", "INFO"),
            allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers = [logging.FileHandler(log_file, mode="a")]
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
