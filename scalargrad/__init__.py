"""ScalarGrad: a scalar-value autograd engine with a small neural-network layer."""

from .node import ValueNode, topological_sort
from .ops import OPERATIONS, Operation, apply_operation, register_operation
from .engine import Value, softmax
from .exceptions import ScalarGradError, DimensionMismatch, InvalidTarget
from .nn import Activation, Module, Neuron, Layer, Network
from .losses import Loss, SparseCategoricalCrossEntropy, CategoricalCrossEntropy, MeanSquaredError
from .optim import Optimizer, SGD, Adam, AdamConfig

__all__ = [
    "ValueNode",
    "topological_sort",
    "OPERATIONS",
    "Operation",
    "apply_operation",
    "register_operation",
    "Value",
    "softmax",
    "ScalarGradError",
    "DimensionMismatch",
    "InvalidTarget",
    "Activation",
    "Module",
    "Neuron",
    "Layer",
    "Network",
    "Loss",
    "SparseCategoricalCrossEntropy",
    "CategoricalCrossEntropy",
    "MeanSquaredError",
    "Optimizer",
    "SGD",
    "Adam",
    "AdamConfig",
]
