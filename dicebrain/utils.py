from __future__ import annotations

from typing import Sequence

import numpy as np

# Pre-activations are clamped here so sigmoid stays strictly inside (0, 1)
# in float64 and np.exp never overflows.
SIGMOID_CLAMP = 30.0


def as_vector(x: Sequence[float]) -> np.ndarray:
    return np.asarray(x, dtype=np.float64).reshape(-1)


def sigmoid(x: np.ndarray) -> np.ndarray:
    z = np.clip(np.asarray(x, dtype=np.float64), -SIGMOID_CLAMP, SIGMOID_CLAMP)
    return 1.0 / (1.0 + np.exp(-z))


def sigmoid_derivative(activated: np.ndarray) -> np.ndarray:
    # Takes the sigmoid *output*, not the pre-activation.
    return activated * (1.0 - activated)


def matmul(v: np.ndarray, m: np.ndarray) -> np.ndarray:
    """Row vector (n,) times matrix (n, k) -> (k,)."""
    return v @ m


def add_bias(v: np.ndarray, b: np.ndarray) -> np.ndarray:
    return v + b


def dense(v: np.ndarray, w: np.ndarray, b: np.ndarray) -> np.ndarray:
    """One fully connected layer with sigmoid activation."""
    return sigmoid(add_bias(matmul(v, w), b))


def one_hot(i: int, n: int) -> np.ndarray:
    v = np.zeros(n, dtype=np.float64)
    if 0 <= i < n:
        v[i] = 1.0
    return v


def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return float(max(lo, min(hi, x)))


def safe_div(num: float, den: float, default: float = 0.0) -> float:
    if den == 0:
        return default
    return float(num) / float(den)
