"""
Neural Network Module
=====================

Neural network building blocks on top of the autograd engine.

This module provides:
- Module: Base class for all neural network components
- Neuron: A single neuron with weights, bias, and activation
- Layer: A collection of neurons (fully connected layer)
- Network: A stack of layers (multi-layer perceptron)

Every component has two forward paths that perform the same arithmetic in
the same order:
- ``__call__`` builds a computation graph of Values for training;
- ``predict`` works on plain floats and allocates no graph nodes, for
  inference.
"""

from __future__ import annotations
import logging
import math
from enum import Enum
from typing import List, Optional, Sequence, Union

import numpy as np

from .engine import Numeric, Value, softmax
from .exceptions import DimensionMismatch

logger = logging.getLogger(__name__)

# Small positive bias keeps ReLU units from starting dead
BIAS_INIT = 1e-5

Seed = Union[None, int, np.random.Generator]


class Activation(str, Enum):
    """Activation applied after a neuron's affine transform."""

    RELU = 'relu'
    SOFTMAX = 'softmax'
    IDENTITY = 'identity'
    TANH = 'tanh'


class Module:
    """
    Base class for all neural network modules.

    Provides:
    - get_parameters(): collect all trainable Values in a stable order
    - zero_grad(): reset gradients before the next backward pass
    """

    def get_parameters(self) -> List[Value]:
        """
        Return all trainable parameters in this module.

        Override this in subclasses. The order must be deterministic: the
        optimizer's state is aligned to it by position.

        Returns:
            List of Value handles onto the live parameter nodes.
        """
        return []

    def parameters(self) -> List[Value]:
        """Alias for get_parameters()."""
        return self.get_parameters()

    def num_parameters(self) -> int:
        return len(self.get_parameters())

    def zero_grad(self) -> None:
        """
        Reset gradients of all parameters to zero.

        Call this after each optimizer step to prevent gradient accumulation.
        """
        for p in self.get_parameters():
            p.grad = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Neuron(Module):
    """
    A single artificial neuron.

    Computes: output = activation(b + sum(w_i * x_i))

    Weights are drawn once at construction, with a scale that depends on
    the activation:
    - relu: He-normal, std = sqrt(2 / nin)
    - softmax, tanh, identity: Xavier-normal, std = sqrt(2 / (nin + nout))

    Softmax is not applied here; it needs the whole layer output and is
    applied by Layer.

    Attributes:
        w: List of weight Values
        b: Bias Value
        activation: Which activation function to use

    Example:
        >>> n = Neuron(3, activation='relu')  # 3 inputs
        >>> out = n([1.0, 2.0, 3.0])  # Forward pass
    """

    def __init__(
        self,
        nin: int,
        nout: int = 1,
        activation: Union[Activation, str] = Activation.RELU,
        rng: Seed = None
    ) -> None:
        """
        Initialize a neuron.

        Args:
            nin: Number of inputs to this neuron.
            nout: Number of neurons in the enclosing layer (used by the
                Xavier initialization).
            activation: Activation function.
            rng: numpy Generator or seed for the weight initialization.

        Raises:
            ValueError: If nin or nout is not positive, or the activation
                is unknown.
        """
        if nin < 1 or nout < 1:
            raise ValueError(f"Neuron sizes must be positive, got nin={nin}, nout={nout}")

        self.activation: Activation = Activation(activation)
        rng = np.random.default_rng(rng)

        if self.activation is Activation.RELU:
            std = math.sqrt(2.0 / nin)
        else:
            std = math.sqrt(2.0 / (nin + nout))

        self.w: List[Value] = [
            Value(float(wi), label=f'w{i}')
            for i, wi in enumerate(rng.normal(0.0, std, size=nin))
        ]
        self.b: Value = Value(BIAS_INIT, label='b')

    @property
    def nin(self) -> int:
        return len(self.w)

    def __call__(self, x: Sequence[Union[Value, Numeric]]) -> Value:
        """
        Forward pass: compute neuron output.

        Args:
            x: List of inputs (Values or numbers).

        Returns:
            Single Value representing neuron output.

        Raises:
            DimensionMismatch: If input length doesn't match weight count.
        """
        if len(x) != len(self.w):
            raise DimensionMismatch(len(self.w), len(x))

        # Weighted sum: b + w_0 * x_0 + w_1 * x_1 + ...
        act = sum((wi * xi for wi, xi in zip(self.w, x)), start=self.b)

        if self.activation is Activation.RELU:
            return act.relu()
        if self.activation is Activation.TANH:
            return act.tanh()
        return act

    def predict(self, x: Sequence[float]) -> float:
        """Graph-free forward pass on plain floats."""
        if len(x) != len(self.w):
            raise DimensionMismatch(len(self.w), len(x))

        act = self.b.data
        for wi, xi in zip(self.w, x):
            act = act + wi.data * xi

        if self.activation is Activation.RELU:
            return max(0.0, act)
        if self.activation is Activation.TANH:
            return math.tanh(act)
        return act

    def get_parameters(self) -> List[Value]:
        """Return weights followed by the bias."""
        return self.w + [self.b]

    def __repr__(self) -> str:
        return f"Neuron({len(self.w)}, {self.activation.value})"


class Layer(Module):
    """
    A fully connected layer of neurons.

    All neurons receive the same input and share one activation. With
    softmax, the neurons' affine outputs are normalized together.

    Attributes:
        neurons: List of Neuron objects
        activation: Activation shared by the layer

    Example:
        >>> layer = Layer(3, 4)  # 3 inputs, 4 outputs
        >>> out = layer([1.0, 2.0, 3.0])  # Returns list of 4 Values
    """

    def __init__(
        self,
        nin: int,
        nout: int,
        activation: Union[Activation, str] = Activation.RELU,
        rng: Seed = None
    ) -> None:
        """
        Initialize a layer.

        Args:
            nin: Number of inputs per neuron.
            nout: Number of neurons (outputs).
            activation: Activation function for the layer.
            rng: numpy Generator or seed shared by all neurons.
        """
        self.activation: Activation = Activation(activation)
        rng = np.random.default_rng(rng)
        self.neurons: List[Neuron] = [
            Neuron(nin, nout, activation=self.activation, rng=rng)
            for _ in range(nout)
        ]

    @property
    def nin(self) -> int:
        return self.neurons[0].nin

    @property
    def nout(self) -> int:
        return len(self.neurons)

    def __call__(self, x: Sequence[Union[Value, Numeric]]) -> List[Value]:
        """
        Forward pass: compute all neuron outputs.

        Args:
            x: Input values.

        Returns:
            List of Values, one per neuron.
        """
        out = [n(x) for n in self.neurons]
        if self.activation is Activation.SOFTMAX:
            return softmax(out)
        return out

    def predict(self, x: Sequence[float]) -> List[float]:
        """Graph-free forward pass, same arithmetic as __call__."""
        out = [n.predict(x) for n in self.neurons]
        if self.activation is Activation.SOFTMAX:
            return _softmax_floats(out)
        return out

    def get_parameters(self) -> List[Value]:
        """Return all parameters from all neurons, neuron by neuron."""
        return [p for n in self.neurons for p in n.get_parameters()]

    def __repr__(self) -> str:
        return f"Layer({self.nin} -> {self.nout}, {self.activation.value})"


class Network(Module):
    """
    A feedforward network: a stack of fully connected layers.

    Architecture:
        Input -> Layer 1 -> ... -> Layer N -> Output

    The shape is fixed at construction. Only parameter values change
    during training.

    Attributes:
        layers: List of Layer objects

    Example:
        >>> net = Network([Layer(3, 4, 'relu'), Layer(4, 2, 'softmax')])
        >>> probs = net([1.0, 0.0, 1.0])  # Two Values summing to 1
        >>> label = net.predict([1.0, 0.0, 1.0])  # 0 or 1
    """

    def __init__(self, layers: Sequence[Layer]) -> None:
        """
        Initialize a network from already-built layers.

        Args:
            layers: Layers in forward order.

        Raises:
            ValueError: If layers is empty.
            DimensionMismatch: If a layer's input size differs from the
                previous layer's output size.
        """
        if not layers:
            raise ValueError("Network needs at least one layer")

        for prev, layer in zip(layers, layers[1:]):
            if layer.nin != prev.nout:
                raise DimensionMismatch(prev.nout, layer.nin, 'layer inputs')

        self.layers: List[Layer] = list(layers)
        logger.debug(
            "built %r with %d parameters", self, self.num_parameters()
        )

    @classmethod
    def from_sizes(
        cls,
        sizes: Sequence[int],
        hidden: Union[Activation, str] = Activation.RELU,
        output: Union[Activation, str] = Activation.SOFTMAX,
        rng: Seed = None
    ) -> Network:
        """
        Build a classifier stack from layer sizes.

        Example:
            Network.from_sizes([784, 64, 10]) creates:
            - Layer 1: 784 -> 64 (relu)
            - Layer 2: 64 -> 10 (softmax)

        Args:
            sizes: Input size followed by each layer's output size.
            hidden: Activation of every layer but the last.
            output: Activation of the last layer.
            rng: numpy Generator or seed shared by all layers.
        """
        if len(sizes) < 2:
            raise ValueError(f"Need an input size and at least one layer size, got {list(sizes)}")

        rng = np.random.default_rng(rng)
        n_layers = len(sizes) - 1
        layers = [
            Layer(
                sizes[i],
                sizes[i + 1],
                activation=output if i == n_layers - 1 else hidden,
                rng=rng
            )
            for i in range(n_layers)
        ]
        return cls(layers)

    def forward(self, x: Sequence[Union[Value, Numeric]]) -> List[Value]:
        """
        Forward pass through all layers, building the computation graph.

        Raw numbers in `x` become constants that backward() never visits.

        Args:
            x: Input vector.

        Returns:
            Output Values of the last layer.
        """
        out: List[Value] = [
            xi if isinstance(xi, Value) else Value.constant(xi) for xi in x
        ]
        for layer in self.layers:
            out = layer(out)
        return out

    __call__ = forward

    def predict_proba(self, x: Sequence[Numeric]) -> List[float]:
        """Graph-free forward pass returning the output vector as floats."""
        out = [float(xi) for xi in x]
        for layer in self.layers:
            out = layer.predict(out)
        return out

    def predict(self, x: Sequence[Numeric]) -> int:
        """
        Predict the class index for one input vector.

        Runs the same arithmetic as forward() on plain floats, without
        allocating any graph nodes, and returns the index of the largest
        output (the first one on ties).
        """
        return int(np.argmax(self.predict_proba(x)))

    def get_parameters(self) -> List[Value]:
        """Return all parameters: layer by layer, neuron by neuron."""
        return [p for layer in self.layers for p in layer.get_parameters()]

    def __repr__(self) -> str:
        layer_strs = [str(layer) for layer in self.layers]
        return f"Network([{', '.join(layer_strs)}])"


def _softmax_floats(values: List[float]) -> List[float]:
    # Mirrors engine.softmax operation for operation
    max_val = max(values)
    exps = [math.exp(v - max_val) for v in values]

    total = 0.0
    for e in exps:
        total = total + e

    return [e * (total ** -1) for e in exps]
