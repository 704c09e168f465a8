"""
Graph Nodes
===========

The storage layer of the autograd engine: one ValueNode per scalar in the
computation graph.

A node owns its parents (the nodes it was computed from) through ``_prev``,
so holding the root of a graph keeps every ancestor alive. The reverse edge
never exists: a node does not know its consumers, and a node's backward
closure only holds a weak reference to the node itself. The graph is
therefore a DAG of strong references and is freed by reference counting as
soon as the last handle to its root goes away.

Nodes are normally created through :class:`scalargrad.engine.Value`, which is
the user-facing handle. This module is what the handle delegates to.
"""

from __future__ import annotations
import logging
from typing import Callable, Iterable, List, Optional, Set, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


class ValueNode:
    """
    A single scalar node in the computation graph.

    Attributes:
        data: The scalar value computed by the forward pass.
        grad: Accumulated derivative of the backward root w.r.t. this node.
        track_grad: If False, the node is a constant and is never visited
            by the backward traversal.
        label: Optional name for debugging.
    """

    __slots__ = (
        'data', 'grad', '_prev', '_backward', '_op', 'track_grad', 'label',
        '__weakref__',
    )

    def __init__(
        self,
        data: float,
        _children: Iterable[ValueNode] = (),
        _op: str = '',
        track_grad: bool = True,
        label: str = ''
    ) -> None:
        """
        Initialize a node.

        Args:
            data: The scalar value to store.
            _children: Operand nodes this node was computed from. Duplicates
                are dropped, keeping first-seen order.
            _op: Name of the operation that produced this node.
            track_grad: Whether the backward traversal visits this node.
            label: Optional name for debugging.

        Raises:
            TypeError: If data is not a real number.
        """
        if isinstance(data, bool) or not isinstance(
            data, (int, float, np.integer, np.floating)
        ):
            raise TypeError(
                f"ValueNode data must be numeric, got {type(data).__name__}"
            )

        self.data: float = float(data)
        self.grad: float = 0.0
        self._prev: Tuple[ValueNode, ...] = tuple(dict.fromkeys(_children))
        self._backward: Callable[[], None] = _noop
        self._op: str = _op
        self.track_grad: bool = track_grad
        self.label: str = label

    def __repr__(self) -> str:
        if self.label:
            return f"ValueNode({self.label}={self.data:.4f}, grad={self.grad:.4f})"
        return f"ValueNode(data={self.data:.4f}, grad={self.grad:.4f})"

    # =========================================================================
    # Backpropagation
    # =========================================================================

    def backward(self, clip: Optional[float] = None) -> None:
        """
        Propagate gradients from this node to every tracked ancestor.

        The root's gradient is seeded with 1.0, then every node runs its
        backward closure in reverse topological order, so a node only
        propagates once all of its consumers have added into its ``grad``.

        Gradients ACCUMULATE across calls. Zero them (usually through the
        optimizer or the module) before the next pass.

        Args:
            clip: If given, each node's gradient is clamped into
                ``[-clip, clip]`` right before its closure runs.
        """
        topo = topological_sort(self)
        logger.debug(
            "backward from %r over %d nodes (clip=%s)", self, len(topo), clip
        )

        self.grad = 1.0

        for node in reversed(topo):
            if clip is not None:
                node.grad = min(max(node.grad, -clip), clip)
            node._backward()

    def zero_grad(self) -> None:
        """Reset this node's gradient to zero."""
        self.grad = 0.0

    def zero_grad_all(self) -> None:
        """Reset the gradient of this node and of every tracked ancestor."""
        for node in topological_sort(self):
            node.grad = 0.0


def topological_sort(root: ValueNode) -> List[ValueNode]:
    """
    Compute topological ordering of the graph rooted at `root`.

    Every node appears after all of its parents, so the root is last and
    iterating the list in reverse visits consumers before producers. Nodes
    with ``track_grad=False`` are pruned together with everything only
    reachable through them.

    The walk uses an explicit stack: a neuron with hundreds of inputs builds
    an addition chain hundreds of nodes deep, which a recursive DFS cannot
    handle under Python's recursion limit.

    Args:
        root: The root node of the computation graph.

    Returns:
        List of nodes in topological order (root is last).

    Example:
        >>> a = ValueNode(1.0)
        >>> b = ValueNode(2.0)
        >>> c = ValueNode(3.0, (a, b), '+')
        >>> [n.data for n in topological_sort(c)]
        [1.0, 2.0, 3.0]
    """
    topo: List[ValueNode] = []
    if not root.track_grad:
        return topo

    visited: Set[ValueNode] = {root}
    # (node, index of the next parent to expand)
    stack: List[Tuple[ValueNode, int]] = [(root, 0)]

    while stack:
        node, i = stack[-1]
        if i < len(node._prev):
            stack[-1] = (node, i + 1)
            parent = node._prev[i]
            if parent.track_grad and parent not in visited:
                visited.add(parent)
                stack.append((parent, 0))
        else:
            stack.pop()
            topo.append(node)

    return topo

