"""
Time Series Analysis Module
ARIMA, stationarity, cointegration and GARCH-family volatility models.
"""

import itertools
import logging
import warnings
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
from arch import arch_model
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import coint, adfuller

from finclick import config
from finclick.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


def _fit_arima(values: np.ndarray, order: Tuple[int, int, int]):
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        return ARIMA(values, order=order).fit()


def select_arima_order(
    data: pd.Series,
    max_p: int = config.ARIMA_MAX_ORDER,
    max_d: int = 1,
    max_q: int = config.ARIMA_MAX_ORDER
) -> Dict[str, Any]:
    """
    Grid-search (p, d, q) by AIC.

    Returns:
        Dictionary with best order, its AIC and every candidate tried
    """
    values = np.asarray(data.dropna(), dtype=float)
    candidates = []
    for order in itertools.product(range(max_p + 1), range(max_d + 1), range(max_q + 1)):
        try:
            fitted = _fit_arima(values, order)
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.debug(f"ARIMA{order} failed: {e}")
            continue
        if np.isfinite(fitted.aic):
            candidates.append({'order': order, 'aic': round(float(fitted.aic), 3)})
    if not candidates:
        raise InsufficientDataError("No ARIMA order could be estimated")
    best = min(candidates, key=lambda c: c['aic'])
    return {'order': best['order'], 'aic': best['aic'], 'candidates': candidates}


def arima_forecast(
    data: pd.Series,
    order: Optional[Tuple[int, int, int]] = (1, 1, 1),
    steps: int = config.FORECAST_HORIZON,
    alpha: float = 0.05
) -> Dict[str, Any]:
    """
    Generate ARIMA forecast.

    Args:
        data: Time series data
        order: ARIMA parameters (p, d, q); None selects by AIC
        steps: Number of periods to forecast
        alpha: Significance for the forecast interval

    Returns:
        Dictionary with forecast, interval and fit statistics
    """
    data = data.dropna()
    if len(data) < 8:
        raise InsufficientDataError("ARIMA needs at least 8 observations")

    if order is None:
        order = select_arima_order(data)['order']

    values = np.asarray(data, dtype=float)
    try:
        results = _fit_arima(values, order)
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.warning(f"ARIMA{order} failed ({e}), falling back to random walk")
        order = (0, 1, 0)
        results = _fit_arima(values, order)

    fc = results.get_forecast(steps=steps)
    interval = np.asarray(fc.conf_int(alpha=alpha))

    return {
        'order': list(order),
        'forecast': np.round(np.asarray(fc.predicted_mean), 4).tolist(),
        'lower': np.round(interval[:, 0], 4).tolist(),
        'upper': np.round(interval[:, 1], 4).tolist(),
        'aic': round(float(results.aic), 3),
        'bic': round(float(results.bic), 3),
        'residual_std': round(float(np.std(results.resid)), 6)
    }


def check_cointegration(
    series1: pd.Series,
    series2: pd.Series,
    min_observations: int = 20
) -> Dict[str, Any]:
    """
    Engle-Granger cointegration test between two series.
    """
    df = pd.DataFrame({'s1': np.asarray(series1, dtype=float)[:len(series2)],
                       's2': np.asarray(series2, dtype=float)[:len(series1)]}).dropna()
    if len(df) < min_observations:
        raise InsufficientDataError(f"Cointegration test needs {min_observations} paired observations")

    score, pvalue, crit = coint(df['s1'], df['s2'])
    hedge = np.polyfit(df['s2'], df['s1'], 1)

    return {
        't_statistic': round(float(score), 4),
        'p_value': round(float(pvalue), 4),
        'critical_values': {'1%': round(float(crit[0]), 4), '5%': round(float(crit[1]), 4),
                            '10%': round(float(crit[2]), 4)},
        'hedge_ratio': round(float(hedge[0]), 4),
        'is_cointegrated': bool(pvalue < 0.05)
    }


def stationarity_test(data: pd.Series) -> Dict[str, Any]:
    """
    Augmented Dickey-Fuller test for stationarity.
    """
    data = pd.Series(data).dropna()
    if len(data) < 8:
        raise InsufficientDataError("ADF test needs at least 8 observations")
    result = adfuller(data, autolag='AIC')
    return {
        'test_statistic': round(float(result[0]), 4),
        'p_value': round(float(result[1]), 4),
        'lags_used': int(result[2]),
        'critical_values': {k: round(float(v), 4) for k, v in result[4].items()},
        'is_stationary': bool(result[1] < 0.05)
    }


def _fit_garch(returns: pd.Series, o: int, p: int = 1, q: int = 1, dist: str = 'normal'):
    returns_clean = returns.dropna() * 100  # Percent scale for numerical stability
    if len(returns_clean) < config.GARCH_MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"GARCH needs at least {config.GARCH_MIN_OBSERVATIONS} observations"
        )
    model = arch_model(returns_clean, vol='Garch', p=p, o=o, q=q, mean='Constant', dist=dist)
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        return model.fit(disp='off', show_warning=False)


def garch_volatility_forecast(
    returns: pd.Series,
    forecast_horizon: int = config.FORECAST_HORIZON,
    p: int = 1,
    q: int = 1,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, Any]:
    """
    GARCH(p,q) volatility forecasting.

    GARCH models capture volatility clustering - the tendency for large price
    movements to be followed by large movements and small by small.

    Formula:
        σ²(t) = ω + α × ε²(t-1) + β × σ²(t-1)

    Args:
        returns: Series of periodic returns (not prices)
        forecast_horizon: Number of periods to forecast

    Returns:
        Dictionary with annualised volatility forecasts (percent) and model info
    """
    fitted = _fit_garch(returns, o=0, p=p, q=q)
    ann = np.sqrt(periods_per_year)

    variance_forecast = fitted.forecast(horizon=forecast_horizon).variance.iloc[-1].values
    volatility_forecast = np.sqrt(variance_forecast) * ann
    current_vol = float(fitted.conditional_volatility.iloc[-1]) * ann

    params = fitted.params
    alpha = float(params.get('alpha[1]', 0))
    beta = float(params.get('beta[1]', 0))
    omega = float(params.get('omega', 0))
    persistence = alpha + beta

    long_run_vol = float(np.sqrt(omega / (1 - persistence)) * ann) if persistence < 1 else None
    half_life = float(np.log(0.5) / np.log(persistence)) if 0 < persistence < 1 else None

    return {
        'volatility_forecast': np.round(volatility_forecast, 2).tolist(),
        'current_volatility_annualized': round(current_vol, 2),
        'long_run_volatility': round(long_run_vol, 2) if long_run_vol is not None else None,
        'persistence': round(persistence, 4),
        'half_life': round(half_life, 2) if half_life is not None else None,
        'is_stationary': persistence < 1,
        'alpha': round(alpha, 4),
        'beta': round(beta, 4),
        'omega': round(omega, 6),
        'aic': round(float(fitted.aic), 2),
        'bic': round(float(fitted.bic), 2),
        'conditional_volatility': np.round(np.asarray(fitted.conditional_volatility) * ann, 3).tolist(),
        'volatility_trend': 'increasing' if volatility_forecast[-1] > current_vol else 'decreasing'
    }


def gjr_garch_volatility_forecast(
    returns: pd.Series,
    forecast_horizon: int = config.FORECAST_HORIZON,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, Any]:
    """
    GJR-GARCH volatility forecasting (asymmetric GARCH).

    Formula:
        σ²(t) = ω + (α + γ × I(t-1)) × ε²(t-1) + β × σ²(t-1)

    Where I(t-1) = 1 if ε(t-1) < 0. γ > 0 indicates a leverage effect
    (bad news increases volatility more than good news).
    """
    fitted = _fit_garch(returns, o=1)
    ann = np.sqrt(periods_per_year)

    variance_forecast = fitted.forecast(horizon=forecast_horizon).variance.iloc[-1].values
    volatility_forecast = np.sqrt(variance_forecast) * ann
    current_vol = float(fitted.conditional_volatility.iloc[-1]) * ann

    params = fitted.params
    gamma = float(params.get('gamma[1]', 0))
    alpha = float(params.get('alpha[1]', 0))
    beta = float(params.get('beta[1]', 0))

    if gamma > 0.05:
        leverage_effect = 'strong'
        leverage_description = 'Bad news significantly increases volatility'
    elif gamma > 0:
        leverage_effect = 'moderate'
        leverage_description = 'Bad news moderately increases volatility'
    else:
        leverage_effect = 'none'
        leverage_description = 'No asymmetric volatility response detected'

    return {
        'volatility_forecast': np.round(volatility_forecast, 2).tolist(),
        'current_volatility_annualized': round(current_vol, 2),
        'gamma_asymmetry': round(gamma, 4),
        'leverage_effect': leverage_effect,
        'leverage_description': leverage_description,
        'alpha': round(alpha, 4),
        'beta': round(beta, 4),
        'persistence': round(alpha + beta + 0.5 * gamma, 4),
        'aic': round(float(fitted.aic), 2),
        'model_type': 'GJR-GARCH(1,1,1)'
    }


def ewma_volatility(returns: pd.Series, lam: float = config.EWMA_LAMBDA,
                    periods_per_year: int = config.TRADING_DAYS) -> pd.Series:
    """RiskMetrics EWMA volatility, annualised decimal."""
    values = np.asarray(returns.dropna(), dtype=float)
    var = float(np.var(values[:20])) if len(values) else 0.0
    out = []
    for r in values:
        var = lam * var + (1 - lam) * r ** 2
        out.append(np.sqrt(var * periods_per_year))
    return pd.Series(out)


def classify_volatility_regime(short_vol: float, long_vol: float) -> Dict[str, Any]:
    """Classify the current volatility regime from annualised percent volatilities."""
    if short_vol > 40:
        regime = 'Extreme'
        description = 'Very high volatility - exercise extreme caution'
    elif short_vol > 25:
        regime = 'High'
        description = 'Elevated volatility'
    elif short_vol > 15:
        regime = 'Normal'
        description = 'Average volatility conditions'
    else:
        regime = 'Low'
        description = 'Below-average volatility'

    if short_vol > long_vol * 1.3:
        trend = 'Expanding'
    elif short_vol < long_vol * 0.7:
        trend = 'Contracting'
    else:
        trend = 'Stable'

    return {'regime': regime, 'description': description, 'trend': trend}
