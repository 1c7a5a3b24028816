from __future__ import annotations


class DiceBrainError(Exception):
    """Base class for every error raised by dicebrain."""


class ConfigurationError(DiceBrainError, ValueError):
    """Invalid network dimensions or parameter shapes. Never recovered."""


class ShapeMismatchError(DiceBrainError, ValueError):
    """A feature or target vector has the wrong length for the network."""

    def __init__(self, what: str, expected: int, actual: int):
        super().__init__(f"{what}: expected length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class DeserializationError(DiceBrainError):
    """A persisted model document exists but cannot be decoded."""


class EmptyTrainingSetError(DiceBrainError):
    """No training examples could be extracted from the supplied sessions."""


class NoCandidateError(DiceBrainError, ValueError):
    """The opponent engine was given no legal dice type to choose from."""
