"""
Model Accuracy and Performance Metrics Module
Forecast error measures and confidence intervals.
"""

import numpy as np
from scipy import stats
from typing import Dict, Any, List, Tuple

from finclick import config


def calculate_mape(actual: np.ndarray, predicted: np.ndarray) -> float:
    """
    Mean Absolute Percentage Error.

    Returns:
        MAPE as percentage (e.g., 4.5 means 4.5% average error)
    """
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    # Avoid division by zero
    mask = actual != 0
    if not np.any(mask):
        return 0.0

    return round(float(np.mean(np.abs((actual[mask] - predicted[mask]) / actual[mask])) * 100), 2)


def calculate_rmse(actual: np.ndarray, predicted: np.ndarray) -> float:
    """Root Mean Square Error."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    return round(float(np.sqrt(np.mean((actual - predicted) ** 2))), 4)


def calculate_mae(actual: np.ndarray, predicted: np.ndarray) -> float:
    """Mean Absolute Error."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    return round(float(np.mean(np.abs(actual - predicted))), 4)


def calculate_directional_accuracy(actual: np.ndarray, predicted: np.ndarray) -> float:
    """
    Share of periods where the predicted change has the right sign.

    Args:
        actual: Actual level series
        predicted: Predicted level series aligned with `actual`

    Returns:
        Accuracy as percentage (0-100)
    """
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    if len(actual) < 2:
        return 0.0
    actual_move = np.sign(np.diff(actual))
    predicted_move = np.sign(predicted[1:] - actual[:-1])
    return round(float(np.mean(actual_move == predicted_move) * 100), 1)


def forecast_accuracy(actual: np.ndarray, predicted: np.ndarray) -> Dict[str, Any]:
    """All error measures for one forecast."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    ss_res = float(np.sum((actual - predicted) ** 2))
    ss_tot = float(np.sum((actual - actual.mean()) ** 2))
    return {
        'mape': calculate_mape(actual, predicted),
        'rmse': calculate_rmse(actual, predicted),
        'mae': calculate_mae(actual, predicted),
        'r_squared': round(1 - ss_res / ss_tot, 4) if ss_tot > 0 else None,
        'directional_accuracy': calculate_directional_accuracy(actual, predicted)
    }


def calculate_confidence_interval(
    values: List[float],
    confidence: float = 0.95
) -> Tuple[float, float]:
    """
    t-based confidence interval for the mean of `values`.
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return (0.0, 0.0)
    mean = values.mean()
    margin = stats.t.ppf((1 + confidence) / 2, len(values) - 1) * values.std(ddof=1) / np.sqrt(len(values))
    return (round(float(mean - margin), 6), round(float(mean + margin), 6))


def calculate_price_confidence_interval(
    base_price: float,
    volatility: float,
    periods: int,
    confidence: float = 0.95,
    periods_per_year: int = config.TRADING_DAYS
) -> Tuple[float, float]:
    """
    Lognormal interval for a future price given annualised volatility.
    """
    z = stats.norm.ppf((1 + confidence) / 2)
    scaled_vol = volatility * np.sqrt(periods / periods_per_year)
    return (round(float(base_price * np.exp(-z * scaled_vol)), 2),
            round(float(base_price * np.exp(z * scaled_vol)), 2))
