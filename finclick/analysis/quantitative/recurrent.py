"""
LSTM Reservoir Forecasting Module

A pure-NumPy LSTM cell with fixed random weights encodes each lookback
window into a hidden state; a ridge regression readout (scikit-learn) maps
the final hidden state to the next value. Only the readout is trained.
"""

import logging
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import Ridge

from finclick import config
from finclick.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -50, 50)))


class SimpleLSTMCell:
    """
    LSTM cell using NumPy with Xavier-initialised fixed weights.
    """

    def __init__(self, input_size: int, hidden_size: int, seed: Optional[int] = config.RANDOM_SEED):
        self.input_size = input_size
        self.hidden_size = hidden_size
        rng = np.random.default_rng(seed)

        scale = np.sqrt(2.0 / (input_size + hidden_size))
        shape = (input_size + hidden_size, hidden_size)

        # Gates: forget, input, cell, output
        self.Wf = rng.standard_normal(shape) * scale
        self.Wi = rng.standard_normal(shape) * scale
        self.Wc = rng.standard_normal(shape) * scale
        self.Wo = rng.standard_normal(shape) * scale

        self.bf = np.ones(hidden_size)  # forget-gate bias of 1 keeps memory early on
        self.bi = np.zeros(hidden_size)
        self.bc = np.zeros(hidden_size)
        self.bo = np.zeros(hidden_size)

    def forward(self, x: np.ndarray, h_prev: np.ndarray, c_prev: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Single step for a batch: x (batch, input), h/c (batch, hidden)."""
        combined = np.concatenate([x, h_prev], axis=-1)

        f = sigmoid(combined @ self.Wf + self.bf)
        i = sigmoid(combined @ self.Wi + self.bi)
        c_tilde = np.tanh(combined @ self.Wc + self.bc)
        o = sigmoid(combined @ self.Wo + self.bo)

        c = f * c_prev + i * c_tilde
        h = o * np.tanh(c)
        return h, c

    def encode(self, sequences: np.ndarray) -> np.ndarray:
        """Final hidden state for each sequence of shape (batch, steps, input)."""
        batch = sequences.shape[0]
        h = np.zeros((batch, self.hidden_size))
        c = np.zeros((batch, self.hidden_size))
        for t in range(sequences.shape[1]):
            h, c = self.forward(sequences[:, t, :], h, c)
        return h


class LSTMReservoirForecaster:
    """
    Next-step forecaster: fixed LSTM encoder plus ridge readout.
    """

    def __init__(self, lookback: int = 10, hidden_size: int = 32, alpha: float = 1.0,
                 seed: Optional[int] = config.RANDOM_SEED):
        self.lookback = lookback
        self.cell = SimpleLSTMCell(1, hidden_size, seed)
        self.readout = Ridge(alpha=alpha)
        self.mean = 0.0
        self.std = 1.0

    def _windows(self, scaled: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        X = np.stack([scaled[i:i + self.lookback] for i in range(len(scaled) - self.lookback)])
        y = scaled[self.lookback:]
        return X[:, :, None], y

    def _features(self, windows: np.ndarray) -> np.ndarray:
        # Last raw value alongside the hidden state so the readout can anchor the level
        return np.hstack([self.cell.encode(windows), windows[:, -1, :]])

    def fit(self, values: np.ndarray) -> 'LSTMReservoirForecaster':
        values = np.asarray(values, dtype=float)
        if len(values) < self.lookback + 5:
            raise InsufficientDataError(f"LSTM forecaster needs at least {self.lookback + 5} observations")
        self.mean = float(values.mean())
        self.std = float(values.std()) or 1.0
        X, y = self._windows((values - self.mean) / self.std)
        self.readout.fit(self._features(X), y)
        return self

    def predict_in_sample(self, values: np.ndarray) -> np.ndarray:
        scaled = (np.asarray(values, dtype=float) - self.mean) / self.std
        X, _ = self._windows(scaled)
        return self.readout.predict(self._features(X)) * self.std + self.mean

    def forecast(self, values: np.ndarray, steps: int = config.FORECAST_HORIZON) -> np.ndarray:
        """Recursive multi-step forecast."""
        history = list((np.asarray(values, dtype=float) - self.mean) / self.std)
        out = []
        for _ in range(steps):
            window = np.asarray(history[-self.lookback:])[None, :, None]
            nxt = float(self.readout.predict(self._features(window))[0])
            out.append(nxt)
            history.append(nxt)
        return np.asarray(out) * self.std + self.mean


def lstm_forecast(series: pd.Series, lookback: int = 10, hidden_size: int = 32,
                  steps: int = config.FORECAST_HORIZON, test_size: float = 0.2) -> Dict[str, Any]:
    """
    Fit on the leading part of the series, score on the holdout, then refit
    on everything and forecast `steps` ahead.
    """
    values = np.asarray(pd.Series(series).dropna(), dtype=float)
    n_test = max(int(len(values) * test_size), 1)
    train = values[:-n_test]
    model = LSTMReservoirForecaster(lookback, hidden_size).fit(train)

    preds = model.predict_in_sample(values[-(n_test + lookback):])
    actual = values[-n_test:]
    rmse = float(np.sqrt(np.mean((actual - preds) ** 2)))
    naive = float(np.sqrt(np.mean((actual - values[-n_test - 1:-1]) ** 2)))

    final = LSTMReservoirForecaster(lookback, hidden_size).fit(values)
    return {
        'forecast': np.round(final.forecast(values, steps), 4).tolist(),
        'test_rmse': round(rmse, 6),
        'naive_rmse': round(naive, 6),
        'beats_naive': rmse < naive,
        'lookback': lookback,
        'hidden_size': hidden_size,
        'test_predictions': np.round(preds, 4).tolist()
    }
