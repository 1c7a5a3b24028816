from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, DeserializationError, ShapeMismatchError
from .utils import as_vector, dense, sigmoid_derivative

logger = logging.getLogger(__name__)

Example = Tuple[Sequence[float], Sequence[float]]


@dataclass
class NetworkParameters:
    """Weights and biases of a single-hidden-layer network.

    w1: (input, hidden), b1: (hidden,), w2: (hidden, output), b2: (output,)
    """

    w1: np.ndarray
    b1: np.ndarray
    w2: np.ndarray
    b2: np.ndarray

    @property
    def shape(self) -> Tuple[int, int, int]:
        return int(self.w1.shape[0]), int(self.w1.shape[1]), int(self.w2.shape[1])

    def validate(self, input_size: int, hidden_size: int, output_size: int) -> None:
        expected = {
            "w1": (input_size, hidden_size),
            "b1": (hidden_size,),
            "w2": (hidden_size, output_size),
            "b2": (output_size,),
        }
        for name, shape in expected.items():
            actual = getattr(self, name).shape
            if actual != shape:
                raise ConfigurationError(f"parameter {name} has shape {actual}, expected {shape}")

    def copy(self) -> "NetworkParameters":
        return NetworkParameters(self.w1.copy(), self.b1.copy(), self.w2.copy(), self.b2.copy())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": [self.w1.tolist(), self.w2.tolist()],
            "biases": [self.b1.tolist(), self.b2.tolist()],
        }

    @staticmethod
    def from_lists(weights: Any, biases: Any) -> "NetworkParameters":
        try:
            w1, w2 = weights
            b1, b2 = biases
            return NetworkParameters(
                w1=np.array(w1, dtype=np.float64),
                b1=np.array(b1, dtype=np.float64),
                w2=np.array(w2, dtype=np.float64),
                b2=np.array(b2, dtype=np.float64),
            )
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"cannot decode network parameters: {e}") from e


class FeedforwardNetwork:
    """
    Input -> hidden -> output network with sigmoid activations on both layers.

    - Weights and biases start uniform in [-1, 1) from an injectable numpy Generator
    - Training is per-example stochastic gradient descent on squared error
    - Parameters are held as one snapshot object; predict() reads it once, so a
      concurrent swap via load_parameters() never yields a half-updated forward pass
    """

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        learning_rate: float = 0.01,
        rng: Optional[np.random.Generator] = None,
    ):
        for name, size in (("input_size", input_size), ("hidden_size", hidden_size), ("output_size", output_size)):
            if int(size) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {size}")
        if learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {learning_rate}")

        self.input_size = int(input_size)
        self.hidden_size = int(hidden_size)
        self.output_size = int(output_size)
        self.learning_rate = float(learning_rate)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.params = self._random_parameters()

    def _random_parameters(self) -> NetworkParameters:
        def uniform(*shape: int) -> np.ndarray:
            return (self.rng.random(shape) - 0.5) * 2.0

        return NetworkParameters(
            w1=uniform(self.input_size, self.hidden_size),
            b1=uniform(self.hidden_size),
            w2=uniform(self.hidden_size, self.output_size),
            b2=uniform(self.output_size),
        )

    # ---------------------- Public API ----------------------
    def predict(self, x: Sequence[float]) -> np.ndarray:
        p = self.params
        v = self._check(x, self.input_size, "input")
        hidden = dense(v, p.w1, p.b1)
        return dense(hidden, p.w2, p.b2)

    def train_batch(
        self,
        examples: Sequence[Example],
        epochs: int,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> int:
        """Run `epochs` passes of per-example backprop. Returns epochs completed."""
        prepared = [
            (self._check(x, self.input_size, "input"), self._check(y, self.output_size, "target"))
            for x, y in examples
        ]
        done = 0
        for _ in range(int(epochs)):
            if should_stop is not None and should_stop():
                logger.info("training stopped after %d of %d epochs", done, epochs)
                break
            for x, y in prepared:
                self._train_single(x, y)
            done += 1
        return done

    def reset(self) -> None:
        self.params = self._random_parameters()

    @property
    def parameters(self) -> NetworkParameters:
        return self.params

    def load_parameters(self, params: NetworkParameters) -> None:
        params.validate(self.input_size, self.hidden_size, self.output_size)
        self.params = params

    def copy(self) -> "FeedforwardNetwork":
        clone = FeedforwardNetwork.__new__(FeedforwardNetwork)
        clone.input_size = self.input_size
        clone.hidden_size = self.hidden_size
        clone.output_size = self.output_size
        clone.learning_rate = self.learning_rate
        clone.rng = self.rng
        clone.params = self.params.copy()
        return clone

    def to_dict(self) -> Dict[str, Any]:
        return self.params.to_dict()

    @staticmethod
    def from_dict(d: Dict[str, Any], learning_rate: float = 0.01) -> "FeedforwardNetwork":
        try:
            params = NetworkParameters.from_lists(d["weights"], d["biases"])
        except KeyError as e:
            raise DeserializationError(f"missing network field {e}") from e
        if params.w1.ndim != 2 or params.w2.ndim != 2:
            raise DeserializationError("network weights must be 2-D matrices")
        net = FeedforwardNetwork(*params.shape, learning_rate=learning_rate, rng=np.random.default_rng(0))
        try:
            net.load_parameters(params)
        except ConfigurationError as e:
            raise DeserializationError(str(e)) from e
        return net

    def load_dict(self, d: Dict[str, Any]) -> None:
        try:
            params = NetworkParameters.from_lists(d["weights"], d["biases"])
        except KeyError as e:
            raise DeserializationError(f"missing network field {e}") from e
        try:
            self.load_parameters(params)
        except ConfigurationError as e:
            raise DeserializationError(str(e)) from e

    # ---------------------- Internal helpers ----------------------
    def _check(self, x: Sequence[float], n: int, what: str) -> np.ndarray:
        v = as_vector(x)
        if v.shape[0] != n:
            raise ShapeMismatchError(what, n, int(v.shape[0]))
        return v

    def _train_single(self, x: np.ndarray, y: np.ndarray) -> None:
        p = self.params
        hidden = dense(x, p.w1, p.b1)
        output = dense(hidden, p.w2, p.b2)

        output_delta = (y - output) * sigmoid_derivative(output)
        # hidden error uses the weights before this step's update
        hidden_delta = (p.w2 @ output_delta) * sigmoid_derivative(hidden)

        lr = self.learning_rate
        p.w2 += lr * np.outer(hidden, output_delta)
        p.b2 += lr * output_delta
        p.w1 += lr * np.outer(x, hidden_delta)
        p.b1 += lr * hidden_delta
