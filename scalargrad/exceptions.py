"""Exceptions raised by scalargrad."""

from __future__ import annotations
from typing import Any


class ScalarGradError(Exception):
    """Base class for all scalargrad errors."""


class DimensionMismatch(ScalarGradError, ValueError):
    """
    A vector does not have the length the receiving component expects.

    Raised when an input vector is fed to a neuron with a different number
    of weights, when consecutive layers do not chain, or when a batch has a
    different number of inputs and targets. Always a programming error.

    Attributes:
        expected: The length that was required.
        actual: The length that was received.
    """

    def __init__(self, expected: int, actual: int, what: str = 'inputs') -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} {what}, got {actual}")


class InvalidTarget(ScalarGradError, ValueError):
    """
    A target cannot be interpreted by the loss function it was given to.

    Attributes:
        target: The offending target.
    """

    def __init__(self, target: Any, reason: str) -> None:
        self.target = target
        super().__init__(f"Invalid target {target!r}: {reason}")
