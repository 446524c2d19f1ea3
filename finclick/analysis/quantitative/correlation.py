"""
Correlation Analysis Module
"""

import pandas as pd
import numpy as np
from typing import Dict, Any, Optional

from finclick import config


def calculate_correlation_matrix(
    returns: pd.DataFrame,
    method: str = 'pearson'
) -> pd.DataFrame:
    """
    Calculate correlation matrix for multiple return series.

    Args:
        returns: DataFrame of asset returns (one column per asset)
        method: 'pearson', 'spearman' or 'kendall'

    Returns:
        DataFrame with correlation matrix
    """
    return returns.dropna().corr(method=method)


def rolling_correlation(
    series1: pd.Series,
    series2: pd.Series,
    window: int = 60
) -> pd.Series:
    """
    Calculate rolling correlation between two return series.
    """
    return series1.rolling(window).corr(series2)


def ewma_correlation(
    series1: pd.Series,
    series2: pd.Series,
    lam: float = config.EWMA_LAMBDA
) -> pd.Series:
    """
    RiskMetrics exponentially weighted correlation.

    cov_t = λ cov_{t-1} + (1-λ) x_t y_t, likewise for the variances.
    """
    x = np.asarray(series1, dtype=float)
    y = np.asarray(series2, dtype=float)
    n = min(len(x), len(y))
    x, y = x[:n], y[:n]
    cov = float(np.mean(x[:10] * y[:10])) if n else 0.0
    var_x = float(np.mean(x[:10] ** 2)) if n else 0.0
    var_y = float(np.mean(y[:10] ** 2)) if n else 0.0
    out = []
    for xi, yi in zip(x, y):
        cov = lam * cov + (1 - lam) * xi * yi
        var_x = lam * var_x + (1 - lam) * xi ** 2
        var_y = lam * var_y + (1 - lam) * yi ** 2
        denom = np.sqrt(var_x * var_y)
        out.append(cov / denom if denom > 0 else np.nan)
    return pd.Series(out, index=series1.index[:n])


def beta_calculation(
    stock_returns: pd.Series,
    market_returns: pd.Series,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, float]:
    """
    Calculate beta (systematic risk) of an asset relative to the market.

    Formula:
        β = Cov(asset, market) / Var(market)
    """
    aligned = pd.concat([stock_returns, market_returns], axis=1).dropna()
    stock = aligned.iloc[:, 0]
    market = aligned.iloc[:, 1]

    market_variance = market.var()
    beta = stock.cov(market) / market_variance if market_variance != 0 else 1.0
    alpha = stock.mean() - beta * market.mean()
    correlation = stock.corr(market)
    r_squared = correlation ** 2

    return {
        'beta': round(float(beta), 3),
        'alpha': round(float(alpha * periods_per_year * 100), 2),  # Annualized alpha in %
        'correlation': round(float(correlation), 3),
        'r_squared': round(float(r_squared), 3),
        'systematic_risk_pct': round(float(r_squared * 100), 1),
        'idiosyncratic_risk_pct': round(float((1 - r_squared) * 100), 1)
    }


def rolling_beta(stock_returns: pd.Series, market_returns: pd.Series, window: int = 60) -> pd.Series:
    cov = stock_returns.rolling(window).cov(market_returns)
    var = market_returns.rolling(window).var()
    return cov / var


def portfolio_correlation_risk(
    weights: Dict[str, float],
    correlation_matrix: pd.DataFrame,
    volatilities: Dict[str, float]
) -> Dict[str, Any]:
    """
    Analyze portfolio risk based on correlations.

    Args:
        weights: Dictionary of asset -> weight
        correlation_matrix: Correlation matrix DataFrame
        volatilities: Dictionary of asset -> annualized volatility

    Returns:
        Portfolio risk metrics
    """
    symbols = list(weights.keys())
    w = np.array([weights[s] for s in symbols])
    vol = np.array([volatilities[s] for s in symbols])
    corr = correlation_matrix.loc[symbols, symbols].values

    D = np.diag(vol)
    cov = D @ corr @ D

    portfolio_volatility = float(np.sqrt(w @ cov @ w))

    weighted_vol = float(np.sum(w * vol))
    diversification_ratio = weighted_vol / portfolio_volatility if portfolio_volatility > 0 else 1.0

    upper = corr[np.triu_indices(len(symbols), k=1)]
    avg_corr = float(upper.mean()) if upper.size else None

    return {
        'portfolio_volatility': round(portfolio_volatility * 100, 2),
        'diversification_ratio': round(diversification_ratio, 2),
        'diversification_benefit': round((1 - 1 / diversification_ratio) * 100, 2) if diversification_ratio > 0 else 0,
        'average_correlation': round(avg_corr, 3) if avg_corr is not None else None
    }


def average_pairwise_correlation(matrix: pd.DataFrame) -> Optional[float]:
    values = matrix.values
    upper = values[np.triu_indices(len(values), k=1)]
    return float(upper.mean()) if upper.size else None
