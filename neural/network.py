"""
Feed-Forward Network (numpy)
============================

Small fully-connected network used by the neural scorer:

    output_l = activation(W_l . input_l + b_l)

for every layer, hidden and output alike. Inference guards against
non-finite values: pre-activations are cleaned with `np.nan_to_num` and
clipped before the activation, so a malformed weight never leaks NaN into
downstream fitness comparisons.

Training is mini-batch back-propagation on mean squared error with SGD,
RMSprop or Adam updates. scikit-learn validates the training data, slices
the mini-batches and computes the per-epoch loss.

Usage:
    net = FeedForwardNetwork(NetworkConfig(hidden_layers=[16, 8]), rng=np.random.default_rng(3))
    y = net.predict(features)                 # shape (1,)
    losses = net.train(X, labels)             # per-epoch MSE
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from sklearn.metrics import mean_squared_error
from sklearn.utils import check_X_y, gen_batches

from core.exceptions import ConfigurationError
from planning.features import N_FEATURES

logger = logging.getLogger(__name__)

# Pre-activation clip; keeps exp() finite in the sigmoid
PREACTIVATION_CLIP = 500.0


class Activation(Enum):
    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"


class OptimizerType(Enum):
    ADAM = "adam"
    SGD = "sgd"
    RMSPROP = "rmsprop"


@dataclass
class NetworkConfig:
    """Network shape and training hyperparameters."""
    hidden_layers: List[int] = field(default_factory=lambda: [16, 8])
    activation: Activation = Activation.RELU
    optimizer: OptimizerType = OptimizerType.ADAM
    learning_rate: float = 0.001
    epochs: int = 50
    batch_size: int = 32
    input_size: int = N_FEATURES
    output_size: int = 1

    def __post_init__(self):
        # Accept plain strings from settings files
        try:
            self.activation = Activation(self.activation)
            self.optimizer = OptimizerType(self.optimizer)
        except ValueError as e:
            raise ConfigurationError(str(e), cause=e) from e
        if any(width < 1 for width in self.hidden_layers):
            raise ConfigurationError(
                "hidden layer widths must be >= 1",
                context={'hidden_layers': self.hidden_layers},
            )
        if self.batch_size < 1 or self.epochs < 0:
            raise ConfigurationError(
                "batch_size must be >= 1 and epochs >= 0",
                context={'batch_size': self.batch_size, 'epochs': self.epochs},
            )

    @property
    def layer_sizes(self) -> List[int]:
        return [self.input_size, *self.hidden_layers, self.output_size]


def _activate(z: np.ndarray, kind: Activation) -> np.ndarray:
    if kind is Activation.RELU:
        return np.maximum(0.0, z)
    if kind is Activation.SIGMOID:
        return 1.0 / (1.0 + np.exp(-z))
    return np.tanh(z)


def _derivative(z: np.ndarray, a: np.ndarray, kind: Activation) -> np.ndarray:
    if kind is Activation.RELU:
        return (z > 0).astype(float)
    if kind is Activation.SIGMOID:
        return a * (1.0 - a)
    return 1.0 - a ** 2


def _guard(values: np.ndarray) -> np.ndarray:
    """Replace non-finite entries and clip into the safe range."""
    cleaned = np.nan_to_num(values, nan=0.0, posinf=PREACTIVATION_CLIP, neginf=-PREACTIVATION_CLIP)
    return np.clip(cleaned, -PREACTIVATION_CLIP, PREACTIVATION_CLIP)


class FeedForwardNetwork:
    """Fully-connected network with one activation applied after every layer."""

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or NetworkConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.weights: List[np.ndarray] = []
        self.biases: List[np.ndarray] = []
        self._opt_state: Dict[str, List[np.ndarray]] = {}
        self._step = 0
        self._initialize_weights()

    def _initialize_weights(self) -> None:
        """Uniform weights and biases in [-1, 1]."""
        sizes = self.config.layer_sizes
        self.weights = [
            self.rng.uniform(-1.0, 1.0, size=(sizes[i + 1], sizes[i]))
            for i in range(len(sizes) - 1)
        ]
        self.biases = [
            self.rng.uniform(-1.0, 1.0, size=sizes[i + 1])
            for i in range(len(sizes) - 1)
        ]
        self._opt_state = {}
        self._step = 0

    @property
    def n_layers(self) -> int:
        return len(self.weights)

    def _as_batch(self, inputs: np.ndarray) -> np.ndarray:
        x = np.atleast_2d(np.asarray(inputs, dtype=float))
        if x.shape[1] != self.config.input_size:
            raise ConfigurationError(
                "Feature width does not match network input size",
                context={'expected': self.config.input_size, 'got': x.shape[1]},
            )
        return x

    def forward(self, inputs: np.ndarray) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        """
        Run the network on a batch.

        Returns:
            (pre_activations, activations); activations[0] is the input batch
            and activations[-1] the output.
        """
        a = _guard(self._as_batch(inputs))
        pre: List[np.ndarray] = []
        acts: List[np.ndarray] = [a]
        non_finite = False
        for w, b in zip(self.weights, self.biases):
            raw = a @ w.T + b
            non_finite = non_finite or not np.all(np.isfinite(raw))
            z = _guard(raw)
            a = _activate(z, self.config.activation)
            pre.append(z)
            acts.append(a)
        if non_finite:
            logger.warning("Non-finite pre-activations replaced during forward pass")
        return pre, acts

    def predict(self, features: np.ndarray) -> np.ndarray:
        """
        Forward inference.

        A 1-D feature vector returns a 1-D output vector; a 2-D batch returns
        an (n, output_size) array.
        """
        single = np.asarray(features).ndim == 1
        _, acts = self.forward(features)
        out = acts[-1]
        return out[0] if single else out

    def train(
        self,
        features: np.ndarray,
        labels: np.ndarray,
        epochs: Optional[int] = None,
    ) -> List[float]:
        """
        Fit the network to (features, labels) with mini-batch back-propagation.

        Args:
            features: (n, input_size) array
            labels: (n,) or (n, output_size) array
            epochs: Override of the configured epoch count

        Returns:
            Mean squared error after each epoch
        """
        x = self._as_batch(features)
        if len(x) == 0:
            raise ConfigurationError("Cannot train on an empty feature matrix")
        y = np.asarray(labels, dtype=float).reshape(len(x), -1)
        if y.shape[1] != self.config.output_size:
            raise ConfigurationError(
                "Label width does not match network output size",
                context={'expected': self.config.output_size, 'got': y.shape[1]},
            )
        try:
            x, y = check_X_y(x, y, multi_output=True, y_numeric=True)
        except ValueError as e:
            raise ConfigurationError(
                "Training data must be finite", context={'samples': len(x)}, cause=e,
            ) from e

        n_epochs = self.config.epochs if epochs is None else epochs
        losses: List[float] = []

        for epoch in range(n_epochs):
            order = self.rng.permutation(len(x))
            for batch in gen_batches(len(x), self.config.batch_size):
                idx = order[batch]
                grads_w, grads_b = self._backpropagate(x[idx], y[idx])
                self._apply_gradients(grads_w, grads_b)

            loss = float(mean_squared_error(y, self.predict(x)))
            losses.append(loss)
            logger.debug(f"Epoch {epoch}: mse={loss:.6f}")

        return losses

    def _backpropagate(self, x: np.ndarray, y: np.ndarray) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        pre, acts = self.forward(x)
        kind = self.config.activation
        n = len(x)

        delta = 2.0 * (acts[-1] - y) / n * _derivative(pre[-1], acts[-1], kind)
        grads_w: List[np.ndarray] = [np.empty(0)] * self.n_layers
        grads_b: List[np.ndarray] = [np.empty(0)] * self.n_layers

        for layer in reversed(range(self.n_layers)):
            grads_w[layer] = np.nan_to_num(delta.T @ acts[layer])
            grads_b[layer] = np.nan_to_num(delta.sum(axis=0))
            if layer > 0:
                delta = (delta @ self.weights[layer]) * _derivative(pre[layer - 1], acts[layer], kind)

        return grads_w, grads_b

    def _apply_gradients(self, grads_w: List[np.ndarray], grads_b: List[np.ndarray]) -> None:
        lr = self.config.learning_rate
        opt = self.config.optimizer
        params = self.weights + self.biases
        grads = grads_w + grads_b
        self._step += 1

        if opt is OptimizerType.SGD:
            for p, g in zip(params, grads):
                p -= lr * g
            return

        if not self._opt_state:
            self._opt_state = {
                'm': [np.zeros_like(p) for p in params],
                'v': [np.zeros_like(p) for p in params],
            }
        m, v = self._opt_state['m'], self._opt_state['v']
        eps = 1e-8

        if opt is OptimizerType.RMSPROP:
            for p, g, cache in zip(params, grads, v):
                cache *= 0.9
                cache += 0.1 * g ** 2
                p -= lr * g / (np.sqrt(cache) + eps)
            return

        beta1, beta2 = 0.9, 0.999
        for p, g, m_i, v_i in zip(params, grads, m, v):
            m_i *= beta1
            m_i += (1 - beta1) * g
            v_i *= beta2
            v_i += (1 - beta2) * g ** 2
            m_hat = m_i / (1 - beta1 ** self._step)
            v_hat = v_i / (1 - beta2 ** self._step)
            p -= lr * m_hat / (np.sqrt(v_hat) + eps)

    def to_dict(self) -> Dict:
        """Serialize shape, activation and weights."""
        return {
            'hidden_layers': list(self.config.hidden_layers),
            'activation': self.config.activation.value,
            'optimizer': self.config.optimizer.value,
            'learning_rate': self.config.learning_rate,
            'epochs': self.config.epochs,
            'batch_size': self.config.batch_size,
            'input_size': self.config.input_size,
            'output_size': self.config.output_size,
            'weights': [w.tolist() for w in self.weights],
            'biases': [b.tolist() for b in self.biases],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "FeedForwardNetwork":
        config = NetworkConfig(
            hidden_layers=list(data['hidden_layers']),
            activation=data['activation'],
            optimizer=data.get('optimizer', 'adam'),
            learning_rate=data.get('learning_rate', 0.001),
            epochs=data.get('epochs', 50),
            batch_size=data.get('batch_size', 32),
            input_size=data.get('input_size', N_FEATURES),
            output_size=data.get('output_size', 1),
        )
        net = cls(config)
        net.weights = [np.array(w, dtype=float) for w in data['weights']]
        net.biases = [np.array(b, dtype=float) for b in data['biases']]
        return net

    def save(self, filepath: Union[str, Path]) -> None:
        """Save network to JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f)
        logger.info(f"Saved network to {filepath}")

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> "FeedForwardNetwork":
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))

    def __repr__(self) -> str:
        return (
            f"FeedForwardNetwork(layers={self.config.layer_sizes}, "
            f"activation={self.config.activation.value})"
        )
