"""
Unit Tests: Neural Network Modules
==================================

Test coverage:
- Neuron initialization and forward pass
- Layer and softmax layer
- Network construction, parameter vector and the graph-free predict path
- A short end-to-end training run

Run with: pytest tests/test_nn.py -v
"""

import math

import numpy as np
import pytest

from scalargrad import (
    Activation,
    Adam,
    DimensionMismatch,
    Layer,
    Network,
    Neuron,
    SparseCategoricalCrossEntropy,
    Value,
)
from scalargrad.nn import BIAS_INIT


TOLERANCE = 1e-9


def assert_close(actual: float, expected: float, tol: float = TOLERANCE) -> None:
    """Assert two values are approximately equal."""
    diff = abs(actual - expected)
    assert diff < tol, f"Values differ: {actual} vs {expected} (diff={diff})"


def make_classifier(seed: int = 0) -> Network:
    return Network([
        Layer(3, 4, Activation.RELU, rng=seed),
        Layer(4, 3, Activation.TANH, rng=seed + 1),
        Layer(3, 2, Activation.SOFTMAX, rng=seed + 2),
    ])


class TestNeuron:
    """Test single neurons."""

    def test_neuron_creation(self) -> None:
        """Test neuron construction."""
        n = Neuron(3)
        assert len(n.w) == 3
        assert n.b.data == BIAS_INIT
        assert n.activation is Activation.RELU

    def test_activation_from_string(self) -> None:
        """Activations can be given by name."""
        assert Neuron(2, activation='tanh').activation is Activation.TANH

    def test_unknown_activation(self) -> None:
        """Unknown activation names raise ValueError."""
        with pytest.raises(ValueError):
            Neuron(2, activation='sigmoid')

    def test_neuron_forward(self) -> None:
        """Test an identity neuron for a predictable output."""
        n = Neuron(2, activation=Activation.IDENTITY)
        n.w[0].data = 1.0
        n.w[1].data = 2.0
        n.b.data = 0.5

        out = n([Value(1.0), Value(1.0)])
        # 0.5 + 1*1 + 2*1 = 3.5
        assert out.data == 3.5

    def test_relu_neuron(self) -> None:
        """A ReLU neuron clips negative pre-activations."""
        n = Neuron(1, activation=Activation.RELU)
        n.w[0].data = -1.0
        assert n([2.0]).data == 0.0

    def test_tanh_neuron(self) -> None:
        """A tanh neuron applies tanh."""
        n = Neuron(1, activation=Activation.TANH)
        n.w[0].data = 1.0
        n.b.data = 0.0
        assert_close(n([0.5]).data, math.tanh(0.5))

    def test_neuron_backward(self) -> None:
        """Gradients reach weights and bias."""
        n = Neuron(2, activation=Activation.IDENTITY)
        n([3.0, -2.0]).backward()

        assert n.w[0].grad == 3.0
        assert n.w[1].grad == -2.0
        assert n.b.grad == 1.0

    def test_neuron_parameters(self) -> None:
        """Test parameter count and order."""
        n = Neuron(3)
        params = n.get_parameters()
        assert len(params) == 4  # 3 weights + 1 bias
        assert params[-1] == n.b

    def test_he_initialization(self) -> None:
        """ReLU neurons use He initialization."""
        n = Neuron(20000, activation=Activation.RELU, rng=0)
        std = np.std([w.data for w in n.w])
        assert abs(std - math.sqrt(2 / 20000)) < 0.05 * math.sqrt(2 / 20000)

    def test_xavier_initialization(self) -> None:
        """Softmax neurons use Xavier initialization."""
        n = Neuron(10000, nout=10000, activation=Activation.SOFTMAX, rng=0)
        std = np.std([w.data for w in n.w])
        assert abs(std - math.sqrt(2 / 20000)) < 0.05 * math.sqrt(2 / 20000)

    def test_seeded_initialization_reproducible(self) -> None:
        """The same seed gives the same weights."""
        a = Neuron(5, rng=42)
        b = Neuron(5, rng=42)
        assert [w.data for w in a.w] == [w.data for w in b.w]

    def test_neuron_input_mismatch(self) -> None:
        """Wrong input size raises DimensionMismatch (a ValueError)."""
        n = Neuron(3)
        with pytest.raises(DimensionMismatch) as excinfo:
            n([Value(1.0), Value(2.0)])
        assert excinfo.value.expected == 3
        assert excinfo.value.actual == 2
        assert isinstance(excinfo.value, ValueError)

    def test_invalid_size(self) -> None:
        """Empty neurons are rejected."""
        with pytest.raises(ValueError):
            Neuron(0)


class TestLayer:
    """Test fully connected layers."""

    def test_layer_creation(self) -> None:
        """Test layer construction."""
        layer = Layer(3, 4)
        assert len(layer.neurons) == 4
        assert layer.nin == 3
        assert layer.nout == 4

    def test_layer_forward(self) -> None:
        """One output per neuron."""
        layer = Layer(2, 3)
        out = layer([1.0, 1.0])
        assert len(out) == 3

    def test_softmax_layer(self) -> None:
        """A softmax layer outputs a probability vector."""
        layer = Layer(3, 4, Activation.SOFTMAX, rng=0)
        out = layer([1.0, -2.0, 0.5])
        assert_close(sum(o.data for o in out), 1.0)
        assert all(0.0 < o.data < 1.0 for o in out)

    def test_layer_parameters(self) -> None:
        """Test layer parameter count."""
        layer = Layer(2, 3)
        # 3 neurons * (2 weights + 1 bias) = 9 parameters
        assert len(layer.get_parameters()) == 9


class TestNetwork:
    """Test networks."""

    def test_network_creation(self) -> None:
        """Test network construction."""
        net = make_classifier()
        assert len(net.layers) == 3

    def test_from_sizes(self) -> None:
        """from_sizes builds relu hidden layers and a softmax head."""
        net = Network.from_sizes([4, 8, 3], rng=0)
        assert [layer.activation for layer in net.layers] == [
            Activation.RELU, Activation.SOFTMAX
        ]
        # 8 * (4 + 1) + 3 * (8 + 1)
        assert net.num_parameters() == 67

    def test_empty_network_rejected(self) -> None:
        """A network needs at least one layer."""
        with pytest.raises(ValueError):
            Network([])

    def test_layers_must_chain(self) -> None:
        """Adjacent layer sizes must agree."""
        with pytest.raises(DimensionMismatch):
            Network([Layer(3, 4), Layer(5, 2)])

    def test_forward(self) -> None:
        """forward returns output Values summing to one."""
        net = make_classifier()
        out = net.forward([1.0, 0.0, 1.0])
        assert len(out) == 2
        assert all(isinstance(o, Value) for o in out)
        assert_close(sum(o.data for o in out), 1.0)

    def test_forward_accepts_numpy(self) -> None:
        """forward accepts numpy arrays."""
        net = make_classifier()
        out = net(np.array([1.0, 0.0, 1.0]))
        assert len(out) == 2

    def test_input_mismatch(self) -> None:
        """Wrong input sizes raise DimensionMismatch."""
        net = make_classifier()
        with pytest.raises(DimensionMismatch):
            net.forward([1.0, 2.0])
        with pytest.raises(DimensionMismatch):
            net.predict([1.0, 2.0])

    def test_parameter_order(self) -> None:
        """Layer order, then neuron order, then weights, then bias."""
        net = make_classifier()
        params = net.get_parameters()

        first = net.layers[0].neurons[0]
        assert params[:4] == first.w + [first.b]
        last = net.layers[-1].neurons[-1]
        assert params[-1] == last.b
        # 4*(3+1) + 3*(4+1) + 2*(3+1)
        assert len(params) == 39

    def test_parameter_vector_stable(self) -> None:
        """Repeated calls return the same parameters."""
        net = make_classifier()
        assert net.get_parameters() == net.get_parameters()

    def test_parameters_are_live(self) -> None:
        """The parameter vector views the neurons' own nodes."""
        net = make_classifier()
        net.get_parameters()[0].data = 9.0
        assert net.layers[0].neurons[0].w[0].data == 9.0

    def test_backward_reaches_parameters(self) -> None:
        """backward from an output reaches the parameters."""
        net = make_classifier()
        out = net.forward([1.0, 0.5, -1.0])
        out[0].backward()
        assert any(p.grad != 0.0 for p in net.get_parameters())

    def test_zero_grad(self) -> None:
        """zero_grad resets every parameter."""
        net = make_classifier()
        net.forward([1.0, 2.0, 3.0])[1].backward()

        net.zero_grad()
        for p in net.get_parameters():
            assert p.grad == 0.0

    @pytest.mark.parametrize("seed", range(10))
    def test_predict_matches_graph(self, seed: int) -> None:
        """The fast path is numerically identical to the graph forward."""
        net = make_classifier(seed)
        x = np.random.default_rng(seed).normal(size=3)

        graph_out = [o.data for o in net.forward(x)]
        assert net.predict_proba(x) == graph_out
        assert net.predict(x) == int(np.argmax(graph_out))

    def test_predict_identity_output(self) -> None:
        """predict works on networks without softmax."""
        net = Network([Layer(2, 3, Activation.IDENTITY, rng=3)])
        x = [0.7, -0.2]
        assert net.predict(x) == int(np.argmax([o.data for o in net(x)]))


class TestTraining:
    """Test a short training run end to end."""

    def test_training_reduces_loss(self) -> None:
        """A few Adam steps lower the training loss."""
        net = Network([
            Layer(3, 3, Activation.TANH, rng=1),
            Layer(3, 2, Activation.SOFTMAX, rng=2),
        ])
        loss = SparseCategoricalCrossEntropy(net)
        optimizer = Adam(net, step_size=0.05)

        x = [[1.0, 0.0, 1.0], [0.0, 1.0, 0.0]]
        y = [0, 1]

        losses = []
        for _ in range(30):
            loss.compute_loss(x, y)
            losses.append(loss.get())
            loss.backward()
            optimizer.step()
            optimizer.zero_grad()
            loss.zero()

        assert losses[-1] < losses[0]
