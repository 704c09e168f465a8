"""
Optimizers
==========

Optimizers hold handles onto the live parameter nodes of a network and
rewrite their ``data`` from the accumulated ``grad``. They never zero the
gradients implicitly: call ``zero_grad()`` yourself after ``step()``.
"""

from __future__ import annotations
import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Sequence, Union

import numpy as np

from .engine import Value
from .nn import Module

logger = logging.getLogger(__name__)

Params = Union[Module, Sequence[Value]]


class Optimizer:
    """
    Base class for optimizers.

    Attributes:
        params: Parameters to optimize, in the order given at construction.
            Per-parameter state is aligned to this order.
    """

    def __init__(self, params: Params) -> None:
        if isinstance(params, Module):
            params = params.get_parameters()
        self.params: List[Value] = list(params)

    def step(self) -> None:
        raise NotImplementedError

    def zero_grad(self) -> None:
        """Reset all gradients to zero."""
        for p in self.params:
            p.grad = 0.0


class SGD(Optimizer):
    """
    Stochastic Gradient Descent optimizer.

    Updates parameters: p = p - lr * p.grad

    Attributes:
        params: List of parameters to optimize.
        lr: Learning rate.
    """

    def __init__(self, params: Params, lr: float = 0.01) -> None:
        """
        Initialize SGD optimizer.

        Args:
            params: Parameters (or a module) to optimize.
            lr: Learning rate (step size).
        """
        if lr <= 0:
            raise ValueError(f"lr must be positive, got {lr}")
        super().__init__(params)
        self.lr = lr

    def step(self) -> None:
        """
        Perform one optimization step.

        Call this after backward().
        """
        for p in self.params:
            p.data -= self.lr * p.grad


@dataclass
class AdamConfig:
    """Hyperparameters of the Adam optimizer."""

    step_size: float = 1e-3
    beta1: float = 0.9
    beta2: float = 0.999
    eps: float = 1e-8
    clip_val: float = 1.0


class Adam(Optimizer):
    """
    Adam optimizer: Adaptive Moment Estimation.

    Update rules, at step t:
        g = clip(grad, -clip_val, clip_val)
        m = beta1 * m + (1 - beta1) * g
        v = beta2 * v + (1 - beta2) * g^2
        alpha_t = step_size * sqrt(1 - beta2^t) / (1 - beta1^t)
        eps_t = eps * sqrt(1 - beta2^t)
        p = p - alpha_t * m / (sqrt(v) + eps_t)

    Folding the bias correction into alpha_t and eps_t is equivalent to
    using the corrected moments m_hat and v_hat.

    Attributes:
        params: Parameters to optimize.
        m: First moment estimates, one per parameter.
        v: Second raw moment estimates, one per parameter.
        t: Number of steps taken.
    """

    def __init__(
        self,
        params: Params,
        step_size: float = 1e-3,
        beta1: float = 0.9,
        beta2: float = 0.999,
        eps: float = 1e-8,
        clip_val: float = 1.0
    ) -> None:
        """
        Initialize Adam optimizer.

        Args:
            params: Parameters (or a module) to optimize.
            step_size: Learning rate.
            beta1: First moment decay (default 0.9).
            beta2: Second moment decay (default 0.999).
            eps: Numerical stability constant; must be positive.
            clip_val: Gradients are clipped into [-clip_val, clip_val]
                before the moment update.

        Raises:
            ValueError: If a hyperparameter is out of range.
        """
        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")
        if not 0 <= beta1 < 1 or not 0 <= beta2 < 1:
            raise ValueError(f"betas must be in [0, 1), got ({beta1}, {beta2})")
        if eps <= 0:
            raise ValueError(f"eps must be positive, got {eps}")
        if clip_val <= 0:
            raise ValueError(f"clip_val must be positive, got {clip_val}")

        super().__init__(params)
        self.step_size = step_size
        self.beta1 = beta1
        self.beta2 = beta2
        self.eps = eps
        self.clip_val = clip_val

        self.m: np.ndarray = np.zeros(len(self.params))
        self.v: np.ndarray = np.zeros(len(self.params))
        self.t: int = 0

    @classmethod
    def from_config(cls, params: Params, config: AdamConfig) -> Adam:
        return cls(params, **asdict(config))

    def step(self) -> None:
        """
        Perform one Adam optimization step.

        The clipped gradients are written back to the parameters.
        """
        self.t += 1

        g = np.clip(
            [p.grad for p in self.params], -self.clip_val, self.clip_val
        )
        for p, gi in zip(self.params, g):
            p.grad = gi

        self.m = self.beta1 * self.m + (1 - self.beta1) * g
        self.v = self.beta2 * self.v + (1 - self.beta2) * g ** 2

        correction = math.sqrt(1 - self.beta2 ** self.t)
        alpha_t = self.step_size * correction / (1 - self.beta1 ** self.t)
        eps_t = self.eps * correction

        update = alpha_t * self.m / (np.sqrt(self.v) + eps_t)
        for p, u in zip(self.params, update):
            p.data -= u

        logger.debug("adam step %d: alpha_t=%.3e", self.t, alpha_t)

    def __repr__(self) -> str:
        return (
            f"Adam(step_size={self.step_size}, beta1={self.beta1}, "
            f"beta2={self.beta2}, eps={self.eps}, clip_val={self.clip_val}, t={self.t})"
        )
