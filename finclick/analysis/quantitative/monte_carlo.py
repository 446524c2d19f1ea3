"""
Monte Carlo Simulation Module
Price simulation using Geometric Brownian Motion, and Value at Risk
"""

import numpy as np
import pandas as pd
from scipy import stats
from typing import Dict, List, Any, Optional

from finclick import config


def geometric_brownian_motion(
    S0: float,
    mu: float,
    sigma: float,
    T: float,
    dt: float,
    num_simulations: int = 1000,
    seed: Optional[int] = config.RANDOM_SEED
) -> np.ndarray:
    """
    Simulate prices using Geometric Brownian Motion.

    Formula:
        dS = μSdt + σSdW
        S(t+dt) = S(t) * exp((μ - σ²/2)dt + σ√dt * Z)

    Args:
        S0: Initial price
        mu: Expected annual return (decimal)
        sigma: Annual volatility (decimal)
        T: Time horizon in years
        dt: Time step in years (e.g., 1/252 for daily)
        num_simulations: Number of simulation paths
        seed: Random seed (None for non-deterministic paths)

    Returns:
        Array of simulated prices (num_simulations x num_steps + 1)
    """
    rng = np.random.default_rng(seed)
    num_steps = max(int(round(T / dt)), 1)

    Z = rng.standard_normal((num_simulations, num_steps))

    drift = (mu - 0.5 * sigma ** 2) * dt
    diffusion = sigma * np.sqrt(dt) * Z

    log_returns = drift + diffusion
    log_returns = np.insert(log_returns, 0, 0, axis=1)  # Add starting point

    return S0 * np.exp(np.cumsum(log_returns, axis=1))


def monte_carlo_simulation(
    current_price: float,
    historical_returns: pd.Series,
    days_forward: int = config.TRADING_DAYS,
    num_simulations: int = config.MONTE_CARLO_SIMULATIONS,
    confidence_levels: List[float] = (0.05, 0.25, 0.5, 0.75, 0.95),
    periods_per_year: int = config.TRADING_DAYS,
    seed: Optional[int] = config.RANDOM_SEED
) -> Dict[str, Any]:
    """
    Run Monte Carlo simulation of a price or value path.

    Args:
        current_price: Starting value
        historical_returns: Series of historical periodic returns
        days_forward: Number of periods to simulate
        num_simulations: Number of simulation paths
        confidence_levels: Quantiles for confidence intervals

    Returns:
        Dictionary with simulation results
    """
    mu = historical_returns.mean() * periods_per_year
    sigma = historical_returns.std() * np.sqrt(periods_per_year)

    dt = 1 / periods_per_year
    T = days_forward / periods_per_year

    simulated_prices = geometric_brownian_motion(
        current_price, mu, sigma, T, dt, num_simulations, seed
    )
    final_prices = simulated_prices[:, -1]
    mean_final = np.mean(final_prices)

    percentiles = {f'p{int(round(level * 100))}': float(np.percentile(final_prices, level * 100))
                   for level in confidence_levels}

    return {
        'current_price': round(current_price, 2),
        'days_forward': days_forward,
        'num_simulations': num_simulations,
        'annualized_return': round(mu * 100, 2),
        'annualized_volatility': round(sigma * 100, 2),
        'mean_final_price': round(float(mean_final), 2),
        'std_final_price': round(float(np.std(final_prices)), 2),
        'expected_return_pct': round(float((mean_final - current_price) / current_price * 100), 2),
        'percentiles': {k: round(v, 2) for k, v in percentiles.items()},
        'prob_above_current': round(float((final_prices > current_price).mean() * 100), 2),
        'prob_up_10pct': round(float((final_prices > current_price * 1.1).mean() * 100), 2),
        'prob_down_10pct': round(float((final_prices < current_price * 0.9).mean() * 100), 2),
        'median_price': round(float(np.median(final_prices)), 2),
        'min_price': round(float(np.min(final_prices)), 2),
        'max_price': round(float(np.max(final_prices)), 2),
        'mean_path': np.round(simulated_prices.mean(axis=0), 4).tolist()
    }


def historical_var(returns: pd.Series, confidence_level: float = config.VAR_CONFIDENCE) -> float:
    """Loss quantile of the empirical distribution, as a positive decimal."""
    return float(-np.percentile(returns, (1 - confidence_level) * 100))


def parametric_var(returns: pd.Series, confidence_level: float = config.VAR_CONFIDENCE,
                   distribution: str = 'normal') -> float:
    """
    Variance-covariance VaR.

    distribution='t' fits a Student-t by maximum likelihood.
    """
    alpha = 1 - confidence_level
    if distribution == 't':
        df, loc, scale = stats.t.fit(returns)
        return float(-stats.t.ppf(alpha, df, loc=loc, scale=scale))
    return float(-(returns.mean() + stats.norm.ppf(alpha) * returns.std()))


def cornish_fisher_var(returns: pd.Series, confidence_level: float = config.VAR_CONFIDENCE) -> float:
    """
    Modified VaR with the Cornish-Fisher expansion for skew and excess kurtosis.

    z_cf = z + (z²-1)S/6 + (z³-3z)K/24 - (2z³-5z)S²/36
    """
    z = stats.norm.ppf(1 - confidence_level)
    s = float(stats.skew(returns))
    k = float(stats.kurtosis(returns))
    z_cf = (z + (z ** 2 - 1) * s / 6 + (z ** 3 - 3 * z) * k / 24
            - (2 * z ** 3 - 5 * z) * s ** 2 / 36)
    return float(-(returns.mean() + z_cf * returns.std()))


def monte_carlo_var(returns: pd.Series, confidence_level: float = config.VAR_CONFIDENCE,
                    time_horizon: int = 1, num_simulations: int = config.MONTE_CARLO_SIMULATIONS,
                    seed: Optional[int] = config.RANDOM_SEED) -> float:
    """Bootstrap-resampled VaR over `time_horizon` periods."""
    rng = np.random.default_rng(seed)
    simulated = rng.choice(np.asarray(returns, dtype=float), size=(num_simulations, time_horizon))
    horizon_returns = simulated.sum(axis=1)
    return float(-np.percentile(horizon_returns, (1 - confidence_level) * 100))


def value_at_risk(
    portfolio_value: float,
    returns: pd.Series,
    confidence_level: float = config.VAR_CONFIDENCE,
    time_horizon: int = config.VAR_HORIZON_DAYS,
    method: str = 'historical'
) -> Dict[str, Any]:
    """
    Calculate Value at Risk (VaR).

    Args:
        portfolio_value: Current portfolio value
        returns: Historical returns series
        confidence_level: Confidence level (e.g., 0.95 for 95%)
        time_horizon: Time horizon in periods (square-root-of-time scaling,
            except Monte Carlo which simulates the horizon directly)
        method: 'historical', 'parametric', 'student_t', 'cornish_fisher' or 'monte_carlo'

    Returns:
        Dictionary with VaR results
    """
    if method == 'historical':
        var_return = historical_var(returns, confidence_level) * np.sqrt(time_horizon)
    elif method == 'parametric':
        var_return = parametric_var(returns, confidence_level) * np.sqrt(time_horizon)
    elif method == 'student_t':
        var_return = parametric_var(returns, confidence_level, 't') * np.sqrt(time_horizon)
    elif method == 'cornish_fisher':
        var_return = cornish_fisher_var(returns, confidence_level) * np.sqrt(time_horizon)
    elif method == 'monte_carlo':
        var_return = monte_carlo_var(returns, confidence_level, time_horizon)
    else:
        raise ValueError(f"Unknown VaR method: {method}")

    return {
        'var_percentage': round(var_return * 100, 2),
        'var_value': round(portfolio_value * var_return, 2),
        'confidence_level': confidence_level * 100,
        'time_horizon_days': time_horizon,
        'method': method
    }


def expected_shortfall(
    returns: pd.Series,
    confidence_level: float = config.VAR_CONFIDENCE
) -> float:
    """
    Calculate Expected Shortfall (Conditional VaR).

    The average loss in the worst (1-confidence_level)% of cases, as a
    positive decimal.
    """
    values = np.sort(np.asarray(returns, dtype=float))
    cutoff = max(int(np.floor((1 - confidence_level) * len(values))), 1)
    return float(-values[:cutoff].mean())


def parametric_expected_shortfall(returns: pd.Series,
                                  confidence_level: float = config.VAR_CONFIDENCE) -> float:
    """Normal ES: -(μ - σ φ(z)/α)."""
    alpha = 1 - confidence_level
    z = stats.norm.ppf(alpha)
    return float(-(returns.mean() - returns.std() * stats.norm.pdf(z) / alpha))
