"""
Loss Functions
==============

A loss owns the network it evaluates and a scalar accumulator. Each
``compute_loss`` call runs the network forward and adds into the
accumulator, so a training step reads:

    loss.compute_loss(batch_x, batch_y)
    loss.backward()
    optimizer.step()
    optimizer.zero_grad()
    loss.zero()

Subclasses only define the contribution of one example, given the network
output and the target.

Model outputs are clamped into [eps, 1 - eps] before any logarithm, so a
saturated softmax never produces log(0).
"""

from __future__ import annotations
import logging
import operator
from typing import Any, List, Optional, Sequence

import numpy as np

from .engine import Value
from .exceptions import DimensionMismatch, InvalidTarget
from .nn import Network

logger = logging.getLogger(__name__)

DEFAULT_LOG_EPS = 1e-7
DEFAULT_GRAD_CLIP = 1.0


class Loss:
    """
    Base class for losses that accumulate into one scalar Value.

    Attributes:
        network: The network whose outputs are scored.
        eps: Clamp margin applied before taking logarithms.
        grad_clip: Symmetric gradient bound used by backward(); None
            disables clipping.
    """

    def __init__(
        self,
        network: Network,
        eps: float = DEFAULT_LOG_EPS,
        grad_clip: Optional[float] = DEFAULT_GRAD_CLIP
    ) -> None:
        if not 0 < eps < 0.5:
            raise ValueError(f"eps must be in (0, 0.5), got {eps}")

        self.network = network
        self.eps = eps
        self.grad_clip = grad_clip
        self._loss: Value = Value(0.0)

    @property
    def value(self) -> Value:
        """The accumulator, root of the current computation graph."""
        return self._loss

    def compute_loss(self, inputs: Sequence[Any], targets: Any) -> Value:
        """
        Add the loss of one example, or the mean loss of a batch.

        A batch is recognized by its inputs being a sequence of vectors.
        For a batch, the examples are summed first; the sum is added to the
        accumulator and then the whole accumulator is divided by the batch
        size. Without a zero() in between, a second batch keeps building on
        the first. A batch that raises leaves the accumulator untouched.

        Args:
            inputs: One input vector, or a sequence of input vectors.
            targets: One target, or a sequence of targets.

        Returns:
            The accumulator Value.

        Raises:
            DimensionMismatch: If batch inputs and targets differ in length,
                or an input does not fit the network.
            InvalidTarget: If a target cannot be used by this loss.
        """
        if not _is_batch(inputs):
            self._loss = self._loss + self._forward_loss(inputs, targets)
            return self._loss

        if len(inputs) != len(targets):
            raise DimensionMismatch(len(inputs), len(targets), 'targets')

        batch_sum = Value.constant(0.0)
        for x, t in zip(inputs, targets):
            batch_sum = batch_sum + self._forward_loss(x, t)

        self._loss = (self._loss + batch_sum) / len(inputs)
        logger.debug(
            "%s batch of %d: loss=%.6f",
            self.__class__.__name__, len(inputs), self._loss.data
        )
        return self._loss

    def backward(self) -> None:
        """Backpropagate from the accumulator into the network parameters."""
        self._loss.backward(clip=self.grad_clip)

    def get(self) -> float:
        """Return the current accumulated loss as a float."""
        return self._loss.data

    def zero(self) -> None:
        """
        Start a fresh accumulator.

        The old graph is not touched; it is released once nothing else
        refers to it, and later backward passes cannot reach it.
        """
        self._loss = Value(0.0)

    def _forward_loss(self, x: Sequence[Any], target: Any) -> Value:
        return self._example_loss(self.network(x), target)

    def _example_loss(self, output: List[Value], target: Any) -> Value:
        """Loss contribution of one example. Implemented by subclasses."""
        raise NotImplementedError

    def _neg_log(self, p: Value) -> Value:
        # -log(p) with p kept away from 0 and 1
        return -p.clamp(self.eps, 1 - self.eps).log()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(loss={self.get():.6f})"


class SparseCategoricalCrossEntropy(Loss):
    """
    Cross-entropy for integer class labels.

    loss = -log(output[target])

    Expects the network output to be a probability vector (softmax layer).
    """

    def _example_loss(self, output: List[Value], target: Any) -> Value:
        return self._neg_log(output[_class_index(target, len(output))])


class CategoricalCrossEntropy(Loss):
    """
    Cross-entropy for one-hot encoded labels, e.g. [0, 1, 0].

    loss = -log(output[i]) where target[i] == 1
    """

    def _example_loss(self, output: List[Value], target: Any) -> Value:
        if np.ndim(target) != 1 or len(target) != len(output):
            raise InvalidTarget(
                target, f"expected a one-hot vector of length {len(output)}"
            )

        hot = [i for i, t in enumerate(target) if t == 1]
        if len(hot) != 1:
            raise InvalidTarget(
                target,
                "not one-hot; use SparseCategoricalCrossEntropy for class indices"
            )
        return self._neg_log(output[hot[0]])


class MeanSquaredError(Loss):
    """
    Squared error against the one-hot encoding of an integer label.

    loss = sum_i (output[i] - [i == target])^2 / n_classes
    """

    def _example_loss(self, output: List[Value], target: Any) -> Value:
        index = _class_index(target, len(output))

        total = Value.constant(0.0)
        for i, o in enumerate(output):
            total = total + ((o - 1.0) ** 2 if i == index else o ** 2)
        return total / len(output)


def _is_batch(inputs: Sequence[Any]) -> bool:
    return len(inputs) > 0 and np.ndim(inputs[0]) > 0


def _class_index(target: Any, n_classes: int) -> int:
    if isinstance(target, bool):
        raise InvalidTarget(target, "expected an integer class index")
    try:
        index = operator.index(target)
    except TypeError:
        raise InvalidTarget(target, "expected an integer class index") from None

    if not 0 <= index < n_classes:
        raise InvalidTarget(target, f"class index out of range [0, {n_classes})")
    return index
