"""
ScalarGrad: A Scalar-Value Autograd Engine
==========================================

Reverse-mode automatic differentiation over scalars.

Every arithmetic operation on a :class:`Value` is evaluated immediately and
records a new node in a computation graph, together with a closure that knows
the local derivative of that operation. Calling ``backward()`` on the final
node walks the graph in reverse topological order and applies the chain rule,
leaving d(root)/d(node) in every node's ``grad``.

A ``Value`` is a lightweight handle; the graph itself is made of
:class:`scalargrad.node.ValueNode` objects. Copying a handle shares its node,
which is how one weight can take part in many forward passes and still
accumulate a single gradient.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Union

import numpy as np

from .node import ValueNode
from .ops import apply_operation

# Type alias for numeric inputs
Numeric = Union[int, float, np.integer, np.floating]


class Value:
    """
    A handle onto one scalar node of the computation graph.

    Arithmetic on handles builds the graph; ``data`` and ``grad`` read and
    write the shared node. Two handles compare equal exactly when they view
    the same node.

    Attributes:
        node: The underlying ValueNode.

    Example:
        >>> a = Value(2.0, label='a')
        >>> b = Value(3.0, label='b')
        >>> c = a * b + a
        >>> c.backward()
        >>> print(a.grad)  # dc/da = b + 1 = 4.0
        4.0
        >>> print(b.grad)  # dc/db = a = 2.0
        2.0
    """

    __slots__ = ('node',)

    def __init__(
        self,
        data: Union[Numeric, ValueNode],
        track_grad: bool = True,
        label: str = ''
    ) -> None:
        """
        Create a leaf Value, or wrap an existing node.

        Args:
            data: A number for a new leaf node, or a ValueNode to share.
            track_grad: False marks a constant that backward() never visits.
                Ignored when wrapping an existing node.
            label: Optional name for debugging.

        Raises:
            TypeError: If data is neither numeric nor a ValueNode.
        """
        if isinstance(data, ValueNode):
            self.node: ValueNode = data
        else:
            self.node = ValueNode(data, track_grad=track_grad, label=label)

    @staticmethod
    def constant(data: Numeric, label: str = '') -> Value:
        """Create a leaf that is excluded from gradient tracking."""
        return Value(data, track_grad=False, label=label)

    # =========================================================================
    # Node access
    # =========================================================================

    @property
    def data(self) -> float:
        return self.node.data

    @data.setter
    def data(self, value: float) -> None:
        self.node.data = float(value)

    @property
    def grad(self) -> float:
        return self.node.grad

    @grad.setter
    def grad(self, value: float) -> None:
        self.node.grad = float(value)

    @property
    def label(self) -> str:
        return self.node.label

    @label.setter
    def label(self, value: str) -> None:
        self.node.label = value

    @property
    def track_grad(self) -> bool:
        return self.node.track_grad

    def __repr__(self) -> str:
        """String representation showing data and gradient."""
        if self.node.label:
            return f"Value({self.node.label}={self.data:.4f}, grad={self.grad:.4f})"
        return f"Value(data={self.data:.4f}, grad={self.grad:.4f})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.node is other.node

    def __hash__(self) -> int:
        return hash(self.node)

    def __copy__(self) -> Value:
        return Value(self.node)

    # =========================================================================
    # Arithmetic Operations
    # =========================================================================

    def __add__(self, other: Union[Value, Numeric]) -> Value:
        """
        Addition: out = self + other

        Local derivatives:
            d(out)/d(self) = 1
            d(out)/d(other) = 1
        """
        other = _as_value(other)
        return Value(apply_operation('+', self.node, other.node))

    def __radd__(self, other: Numeric) -> Value:
        """Handle numeric + Value."""
        return _as_value(other) + self

    def __sub__(self, other: Union[Value, Numeric]) -> Value:
        """
        Subtraction: out = self - other

        Local derivatives:
            d(out)/d(self) = 1
            d(out)/d(other) = -1
        """
        other = _as_value(other)
        return Value(apply_operation('-', self.node, other.node))

    def __rsub__(self, other: Numeric) -> Value:
        """Handle numeric - Value."""
        return _as_value(other) - self

    def __mul__(self, other: Union[Value, Numeric]) -> Value:
        """
        Multiplication: out = self * other

        Local derivatives:
            d(out)/d(self) = other.data
            d(out)/d(other) = self.data
        """
        other = _as_value(other)
        return Value(apply_operation('*', self.node, other.node))

    def __rmul__(self, other: Numeric) -> Value:
        """Handle numeric * Value."""
        return _as_value(other) * self

    def __neg__(self) -> Value:
        """Negation: -self."""
        return self * -1

    def __truediv__(self, other: Union[Value, Numeric]) -> Value:
        """Division: self / other = self * other^(-1)."""
        return self * (_as_value(other) ** -1)

    def __rtruediv__(self, other: Numeric) -> Value:
        """Handle numeric / Value."""
        return _as_value(other) * (self ** -1)

    def __pow__(self, n: Union[int, float]) -> Value:
        """
        Power: out = self^n (where n is a constant, not a Value)

        Local derivative:
            d(out)/d(self) = n * self^(n-1)

        Raises:
            TypeError: If n is a Value (not supported).
        """
        if isinstance(n, Value):
            raise TypeError(
                "Power with Value exponent not supported. "
                "Use (n * self.log()).exp() instead."
            )
        return Value(apply_operation('**', self.node, exponent=n))

    # =========================================================================
    # Elementary functions and activations
    # =========================================================================

    def exp(self) -> Value:
        """Exponential: out = e^self, d(out)/d(self) = out."""
        return Value(apply_operation('exp', self.node))

    def log(self) -> Value:
        """
        Natural logarithm: out = ln(self), d(out)/d(self) = 1/self.

        Raises:
            ValueError: If self.data <= 0.
        """
        return Value(apply_operation('log', self.node))

    def relu(self) -> Value:
        """Rectified Linear Unit: out = max(0, self)."""
        return Value(apply_operation('relu', self.node))

    def tanh(self) -> Value:
        """Hyperbolic tangent, d(out)/d(self) = 1 - out^2."""
        return Value(apply_operation('tanh', self.node))

    def clamp(self, lo: float, hi: float) -> Value:
        """
        Restrict the value into [lo, hi].

        The gradient passes through unchanged inside the range and is zero
        where the bound was applied.
        """
        if lo > hi:
            raise ValueError(f"clamp bounds out of order: [{lo}, {hi}]")
        return Value(apply_operation('clamp', self.node, lo=lo, hi=hi))

    # =========================================================================
    # Backpropagation
    # =========================================================================

    def backward(self, clip: Optional[float] = None) -> None:
        """
        Compute gradients for all nodes in the computation graph.

        Sets this node's gradient to 1.0 and propagates it to every tracked
        ancestor in reverse topological order.

        Note: Calling backward() multiple times will ACCUMULATE gradients
        in the leaves. Zero them first if you want fresh gradients.

        Args:
            clip: Optional symmetric bound applied to each node's gradient
                before it is propagated further.

        Example:
            >>> x = Value(2.0)
            >>> y = x ** 2 + 3 * x
            >>> y.backward()
            >>> print(x.grad)  # dy/dx = 2x + 3 = 7.0
            7.0
        """
        self.node.backward(clip=clip)

    def zero_grad(self) -> None:
        """Reset this value's gradient to zero."""
        self.node.zero_grad()

    def zero_grad_all(self) -> None:
        """Reset gradients of this value and all of its tracked ancestors."""
        self.node.zero_grad_all()


def _as_value(x: Union[Value, Numeric]) -> Value:
    # Bare numbers entering an expression are constants
    return x if isinstance(x, Value) else Value(x, track_grad=False)


# =============================================================================
# Compositions
# =============================================================================

def softmax(values: Sequence[Value]) -> List[Value]:
    """
    Softmax over a vector of Values, built from primitive operations.

    softmax(x)_i = exp(x_i - max(x)) / sum_j exp(x_j - max(x))

    The maximum is subtracted from every element for numerical stability;
    it cancels out in the ratio. There is no dedicated backward rule: the
    gradient follows from sub, exp, add and the composed division.

    Args:
        values: Non-empty sequence of Values.

    Returns:
        List of Values summing to 1.

    Raises:
        ValueError: If values is empty.
    """
    if not values:
        raise ValueError("softmax of an empty vector")

    max_val = max(values, key=lambda v: v.data)
    exps = [(v - max_val).exp() for v in values]

    total = Value.constant(0.0)
    for e in exps:
        total = total + e

    return [e / total for e in exps]
