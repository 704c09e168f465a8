"""
Operation Registry
==================

Each differentiable primitive is registered here once, as a pair:

- ``forward``: computes the output data from the operands' data
  (plus optional constant attributes such as an exponent);
- ``backward``: a factory that, given a weak reference to the result node
  and the operand nodes, returns the closure that adds the local
  derivatives into the operands' ``grad``.

Closures read the cached forward ``data`` of the operands and the result;
nothing is recomputed during the backward pass. Every contribution is added
with ``+=`` because an operand may feed several consumers.

Division and negation are deliberately absent: they are composed from
``pow`` and ``mul`` in :mod:`scalargrad.engine`.
"""

from __future__ import annotations
import math
import weakref
from typing import Any, Callable, Dict, NamedTuple

from .node import ValueNode

BackwardFactory = Callable[..., Callable[[], None]]
ResultRef = Callable[[], ValueNode]


class Operation(NamedTuple):
    """A registered primitive: forward function + backward-closure factory."""

    name: str
    arity: int
    forward: Callable[..., float]
    backward: BackwardFactory


OPERATIONS: Dict[str, Operation] = {}


def register_operation(
    name: str,
    arity: int,
    forward: Callable[..., float],
    backward: BackwardFactory
) -> Operation:
    """
    Register a primitive under `name`.

    Args:
        name: Operation name, also stored on result nodes as ``_op``.
        arity: Number of ValueNode operands.
        forward: ``forward(*operand_data, **attrs) -> float``.
        backward: ``backward(result_ref, *operand_nodes, **attrs) -> closure``.

    Returns:
        The registered Operation.

    Raises:
        ValueError: If `name` is already registered.
    """
    if name in OPERATIONS:
        raise ValueError(f"Operation '{name}' is already registered")
    op = Operation(name, arity, forward, backward)
    OPERATIONS[name] = op
    return op


def apply_operation(name: str, *operands: ValueNode, **attrs: Any) -> ValueNode:
    """
    Evaluate a registered operation eagerly and attach its backward closure.

    Args:
        name: Registered operation name.
        *operands: Operand nodes.
        **attrs: Constant, non-differentiable attributes (e.g. exponent).

    Returns:
        The new result node, whose parents are the operand nodes.

    Raises:
        KeyError: If no operation is registered under `name`.
        TypeError: If the number of operands does not match the arity.
    """
    op = OPERATIONS[name]
    if len(operands) != op.arity:
        raise TypeError(
            f"Operation '{name}' takes {op.arity} operand(s), got {len(operands)}"
        )

    data = op.forward(*(node.data for node in operands), **attrs)
    # Results computed only from constants are constants too
    track_grad = any(node.track_grad for node in operands)
    out = ValueNode(data, operands, name, track_grad=track_grad)
    # The closure must not keep its own node alive
    out._backward = op.backward(weakref.ref(out), *operands, **attrs)
    return out


# =============================================================================
# Binary operations
# =============================================================================

def _add_backward(result: ResultRef, left: ValueNode, right: ValueNode):
    def _backward() -> None:
        out = result()
        left.grad += out.grad
        right.grad += out.grad
    return _backward


def _sub_backward(result: ResultRef, left: ValueNode, right: ValueNode):
    def _backward() -> None:
        out = result()
        left.grad += out.grad
        right.grad -= out.grad
    return _backward


def _mul_backward(result: ResultRef, left: ValueNode, right: ValueNode):
    def _backward() -> None:
        out = result()
        left.grad += right.data * out.grad
        right.grad += left.data * out.grad
    return _backward


register_operation('+', 2, lambda a, b: a + b, _add_backward)
register_operation('-', 2, lambda a, b: a - b, _sub_backward)
register_operation('*', 2, lambda a, b: a * b, _mul_backward)


# =============================================================================
# Unary operations
# =============================================================================

def _pow_forward(x: float, exponent: float) -> float:
    return x ** exponent


def _pow_backward(result: ResultRef, operand: ValueNode, exponent: float):
    def _backward() -> None:
        # Power rule: d/dx(x^n) = n * x^(n-1)
        out = result()
        operand.grad += exponent * (operand.data ** (exponent - 1)) * out.grad
    return _backward


def _exp_backward(result: ResultRef, operand: ValueNode):
    def _backward() -> None:
        # d(e^x)/dx = e^x, already stored on the result
        out = result()
        operand.grad += out.data * out.grad
    return _backward


def _log_forward(x: float) -> float:
    if x <= 0:
        raise ValueError(f"log undefined for non-positive values: {x}")
    return math.log(x)


def _log_backward(result: ResultRef, operand: ValueNode):
    def _backward() -> None:
        out = result()
        operand.grad += out.grad / operand.data
    return _backward


def _relu_backward(result: ResultRef, operand: ValueNode):
    def _backward() -> None:
        out = result()
        if operand.data > 0:
            operand.grad += out.grad
    return _backward


def _tanh_backward(result: ResultRef, operand: ValueNode):
    def _backward() -> None:
        out = result()
        operand.grad += (1 - out.data ** 2) * out.grad
    return _backward


def _clamp_forward(x: float, lo: float, hi: float) -> float:
    return min(max(x, lo), hi)


def _clamp_backward(result: ResultRef, operand: ValueNode, lo: float, hi: float):
    def _backward() -> None:
        # Gradient only flows where the clamp was inactive
        out = result()
        if lo <= operand.data <= hi:
            operand.grad += out.grad
    return _backward


register_operation('**', 1, _pow_forward, _pow_backward)
register_operation('exp', 1, math.exp, _exp_backward)
register_operation('log', 1, _log_forward, _log_backward)
register_operation('relu', 1, lambda x: max(0.0, x), _relu_backward)
register_operation('tanh', 1, math.tanh, _tanh_backward)
register_operation('clamp', 1, _clamp_forward, _clamp_backward)
