"""
Portfolio Optimization Module
Mean-variance optimization, risk parity, Black-Litterman, and position sizing.
"""

import logging

import pandas as pd
import numpy as np
from scipy.optimize import minimize
from typing import Dict, Any, List, Optional

from finclick import config

logger = logging.getLogger(__name__)


def calculate_portfolio_returns(
    weights: np.ndarray,
    mean_returns: np.ndarray
) -> float:
    """Calculate expected portfolio return."""
    return float(np.sum(weights * mean_returns))


def calculate_portfolio_volatility(
    weights: np.ndarray,
    cov_matrix: np.ndarray
) -> float:
    """Calculate portfolio volatility (standard deviation)."""
    return float(np.sqrt(np.dot(weights.T, np.dot(cov_matrix, weights))))


def _annualized_moments(returns: pd.DataFrame, periods_per_year: int):
    return returns.mean().values * periods_per_year, returns.cov().values * periods_per_year


def _solve(objective, n: int, constraints=(), long_only: bool = True) -> np.ndarray:
    """SLSQP over fully-invested weights; falls back to equal weights."""
    bounds = [(0.0, 1.0)] * n if long_only else [(-1.0, 1.0)] * n
    cons = [{'type': 'eq', 'fun': lambda w: np.sum(w) - 1.0}] + list(constraints)
    x0 = np.ones(n) / n
    res = minimize(objective, x0, method='SLSQP', bounds=bounds, constraints=cons,
                   options={'maxiter': 500, 'ftol': 1e-10})
    if not res.success:
        logger.debug(f"Optimizer did not converge: {res.message}")
        return x0
    return res.x


def _describe(weights: np.ndarray, mu: np.ndarray, cov: np.ndarray, columns,
              risk_free_rate: float) -> Dict[str, Any]:
    ret = calculate_portfolio_returns(weights, mu)
    vol = calculate_portfolio_volatility(weights, cov)
    return {
        'weights': dict(zip(columns, np.round(weights, 4).tolist())),
        'expected_return': round(ret * 100, 2),
        'volatility': round(vol * 100, 2),
        'sharpe_ratio': round((ret - risk_free_rate) / vol, 4) if vol > 0 else 0.0
    }


def max_sharpe_portfolio(
    returns: pd.DataFrame,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS,
    long_only: bool = True
) -> Dict[str, Any]:
    """Tangency portfolio found by maximising the Sharpe ratio with SLSQP."""
    mu, cov = _annualized_moments(returns, periods_per_year)

    def neg_sharpe(w):
        vol = calculate_portfolio_volatility(w, cov)
        return -(calculate_portfolio_returns(w, mu) - risk_free_rate) / vol if vol > 0 else 0.0

    w = _solve(neg_sharpe, len(mu), long_only=long_only)
    return _describe(w, mu, cov, returns.columns, risk_free_rate)


def min_variance_portfolio(
    returns: pd.DataFrame,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS,
    long_only: bool = True
) -> Dict[str, Any]:
    """
    Minimum variance portfolio.

    Long-only uses SLSQP; otherwise the analytical solution
    w = Σ^(-1) 1 / (1' Σ^(-1) 1).
    """
    mu, cov = _annualized_moments(returns, periods_per_year)
    n = len(mu)
    if long_only:
        w = _solve(lambda x: x @ cov @ x, n)
    else:
        ones = np.ones(n)
        inv = np.linalg.pinv(cov)
        w = inv @ ones / (ones @ inv @ ones)
    return _describe(w, mu, cov, returns.columns, risk_free_rate)


def efficient_frontier(
    returns: pd.DataFrame,
    points: int = 20,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS
) -> List[Dict[str, float]]:
    """Minimum-variance portfolios for target returns between the min-variance and max-return assets."""
    mu, cov = _annualized_moments(returns, periods_per_year)
    n = len(mu)
    w_min = _solve(lambda x: x @ cov @ x, n)
    low = calculate_portfolio_returns(w_min, mu)
    high = float(mu.max())
    frontier = []
    for target in np.linspace(low, high, points):
        cons = [{'type': 'eq', 'fun': lambda w, t=target: w @ mu - t}]
        w = _solve(lambda x: x @ cov @ x, n, cons)
        vol = calculate_portfolio_volatility(w, cov)
        frontier.append({
            'return': round(float(target) * 100, 3),
            'volatility': round(vol * 100, 3),
            'sharpe_ratio': round((float(target) - risk_free_rate) / vol, 4) if vol > 0 else 0.0
        })
    return frontier


def mean_variance_optimization(
    returns: pd.DataFrame,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS,
    frontier_points: int = 20
) -> Dict[str, Any]:
    """
    Perform Mean-Variance Optimization (Markowitz).

    Args:
        returns: DataFrame of asset returns (columns = assets)
        risk_free_rate: Annual risk-free rate
        frontier_points: Number of efficient frontier points

    Returns:
        Dictionary with optimal portfolios and efficient frontier
    """
    return {
        'max_sharpe_portfolio': max_sharpe_portfolio(returns, risk_free_rate, periods_per_year),
        'min_volatility_portfolio': min_variance_portfolio(returns, risk_free_rate, periods_per_year),
        'efficient_frontier': efficient_frontier(returns, frontier_points, risk_free_rate, periods_per_year),
        'assets': list(returns.columns)
    }


def risk_contributions(weights: np.ndarray, cov: np.ndarray) -> np.ndarray:
    """Fraction of portfolio variance contributed by each asset."""
    port_var = weights @ cov @ weights
    if port_var <= 0:
        return np.zeros_like(weights)
    return weights * (cov @ weights) / port_var


def risk_parity(
    returns: pd.DataFrame,
    periods_per_year: int = config.TRADING_DAYS,
    risk_free_rate: float = config.RISK_FREE_RATE
) -> Dict[str, Any]:
    """
    Equal Risk Contribution portfolio.

    Minimises the squared spread of risk contributions, starting from
    inverse-volatility weights.
    """
    mu, cov = _annualized_moments(returns, periods_per_year)
    n = len(mu)
    vols = np.sqrt(np.diag(cov))
    inv_vol = (1 / vols) / np.sum(1 / vols)

    def spread(w):
        rc = risk_contributions(w, cov)
        return float(np.sum((rc - 1.0 / n) ** 2))

    res = minimize(spread, inv_vol, method='SLSQP', bounds=[(1e-6, 1.0)] * n,
                   constraints=[{'type': 'eq', 'fun': lambda w: np.sum(w) - 1.0}],
                   options={'maxiter': 500, 'ftol': 1e-12})
    w = res.x if res.success else inv_vol

    out = _describe(w, mu, cov, returns.columns, risk_free_rate)
    out['risk_contribution'] = dict(zip(returns.columns, np.round(risk_contributions(w, cov) * 100, 2).tolist()))
    out['inverse_volatility_weights'] = dict(zip(returns.columns, np.round(inv_vol, 4).tolist()))
    return out


def diversification_ratio(weights: np.ndarray, cov: np.ndarray) -> float:
    """Weighted average volatility over portfolio volatility."""
    vol = calculate_portfolio_volatility(weights, cov)
    return float(weights @ np.sqrt(np.diag(cov)) / vol) if vol > 0 else 1.0


def kelly_criterion(
    win_rate: float,
    avg_win: float,
    avg_loss: float
) -> Dict[str, Any]:
    """
    Calculate Kelly Criterion for optimal position sizing.

    Formula:
        Kelly % = W - [(1 - W) / R]
        Where: W = Win probability, R = Win/Loss ratio
    """
    if avg_loss == 0:
        return {'kelly_percentage': None, 'interpretation': 'N/A (average loss cannot be zero)'}

    win_loss_ratio = avg_win / avg_loss
    kelly_pct = win_rate - ((1 - win_rate) / win_loss_ratio)

    return {
        'kelly_percentage': round(kelly_pct * 100, 2),
        'half_kelly': round(kelly_pct / 2 * 100, 2),
        'quarter_kelly': round(kelly_pct / 4 * 100, 2),
        'win_rate': round(win_rate * 100, 2),
        'win_loss_ratio': round(win_loss_ratio, 2),
        'interpretation': 'Half-Kelly sizing balances growth and drawdown' if kelly_pct > 0
        else 'Negative edge - no allocation'
    }


def black_litterman_returns(
    market_cap_weights: Dict[str, float],
    expected_views: List[Dict[str, Any]],
    cov_matrix: pd.DataFrame,
    risk_aversion: float = 2.5,
    tau: float = 0.05
) -> Dict[str, float]:
    """
    Calculate Black-Litterman expected returns.

    Combines market equilibrium with investor views.

    Args:
        market_cap_weights: Market capitalization weights
        expected_views: List of views with 'asset', 'view' (percent), 'confidence'
        cov_matrix: Annualised covariance matrix of returns
        risk_aversion: Market risk aversion (default 2.5)
        tau: Scaling factor (default 0.05)

    Returns:
        Dictionary of asset -> expected return in percent
    """
    assets = list(market_cap_weights.keys())
    n = len(assets)

    weights = np.array([market_cap_weights[a] for a in assets])
    sigma = cov_matrix.loc[assets, assets].values

    # Equilibrium returns implied by market weights
    pi = risk_aversion * np.dot(sigma, weights)

    views = [v for v in (expected_views or []) if v.get('asset') in assets]
    if not views:
        return dict(zip(assets, np.round(pi * 100, 2).tolist()))

    P = np.zeros((len(views), n))
    Q = np.zeros(len(views))
    omega_diag = []
    for i, view in enumerate(views):
        idx = assets.index(view['asset'])
        P[i, idx] = 1
        Q[i] = view['view'] / 100
        conf = min(max(view.get('confidence', 0.5), 1e-3), 1.0)
        omega_diag.append(tau * sigma[idx, idx] / conf)

    inv_tau_sigma = np.linalg.pinv(tau * sigma)
    inv_omega = np.linalg.pinv(np.diag(omega_diag))

    precision = inv_tau_sigma + P.T @ inv_omega @ P
    bl_returns = np.linalg.pinv(precision) @ (inv_tau_sigma @ pi + P.T @ inv_omega @ Q)

    return dict(zip(assets, np.round(bl_returns * 100, 2).tolist()))


def portfolio_rebalance_signals(
    current_weights: Dict[str, float],
    target_weights: Dict[str, float],
    threshold: float = 0.05
) -> Dict[str, Any]:
    """
    Rebalancing actions for weights that drifted beyond `threshold`.
    """
    drifts = {}
    actions = {}
    needs_rebalance = False

    for asset, target in target_weights.items():
        drift = current_weights.get(asset, 0) - target
        drifts[asset] = round(drift * 100, 2)
        if abs(drift) > threshold:
            needs_rebalance = True
            actions[asset] = f"REDUCE {abs(drift) * 100:.1f}%" if drift > 0 else f"ADD {abs(drift) * 100:.1f}%"
        else:
            actions[asset] = "HOLD"

    return {'needs_rebalance': needs_rebalance, 'drifts': drifts, 'actions': actions}
