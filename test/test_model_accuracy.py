"""
Model Accuracy Tests
Unit tests for forecast error measures and confidence intervals.
"""

import numpy as np
import pytest

from finclick.analysis.quantitative.model_accuracy import (
    calculate_mape, calculate_rmse, calculate_mae, calculate_directional_accuracy,
    forecast_accuracy, calculate_confidence_interval, calculate_price_confidence_interval
)


@pytest.mark.unit
def test_error_measures():
    actual = [100, 110, 120]
    predicted = [110, 110, 110]
    assert calculate_mape(actual, predicted) == pytest.approx(6.11, abs=0.005)
    assert calculate_mae(actual, predicted) == pytest.approx(6.6667, abs=1e-4)
    assert calculate_rmse(actual, predicted) == pytest.approx(8.165, abs=1e-3)


@pytest.mark.unit
def test_mape_ignores_zero_actuals():
    assert calculate_mape([0, 0], [1, 2]) == 0.0
    assert calculate_mape([0, 100], [5, 90]) == 10.0


@pytest.mark.unit
def test_directional_accuracy():
    actual = [10, 11, 12, 11]
    # Moves: up, up, down; predicted from previous actual: up, down, down
    predicted = [10, 12, 10.5, 10]
    assert calculate_directional_accuracy(actual, predicted) == pytest.approx(66.7, abs=0.1)
    assert calculate_directional_accuracy([1], [1]) == 0.0


@pytest.mark.unit
def test_forecast_accuracy_perfect_fit():
    actual = np.array([1.0, 2.0, 3.0, 4.0])
    result = forecast_accuracy(actual, actual)
    assert result['rmse'] == 0.0
    assert result['r_squared'] == 1.0
    assert result['directional_accuracy'] == 100.0


@pytest.mark.unit
def test_forecast_accuracy_constant_actuals():
    assert forecast_accuracy([5, 5, 5], [4, 5, 6])['r_squared'] is None


@pytest.mark.unit
def test_confidence_interval():
    low, high = calculate_confidence_interval([1, 2, 3, 4, 5])
    assert low < 3 < high
    assert calculate_confidence_interval([1]) == (0.0, 0.0)


@pytest.mark.unit
def test_price_confidence_interval_widens_with_horizon():
    short = calculate_price_confidence_interval(100, 0.2, 5)
    long = calculate_price_confidence_interval(100, 0.2, 60)
    assert short[0] < 100 < short[1]
    assert long[0] < short[0] and long[1] > short[1]
