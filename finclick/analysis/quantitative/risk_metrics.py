"""
Risk Metrics Module
Risk-adjusted performance measures for return series.
"""

import pandas as pd
import numpy as np
from typing import Dict, Any, Optional, Tuple

from finclick import config


def _align(returns: pd.Series, benchmark_returns: pd.Series) -> Tuple[pd.Series, pd.Series]:
    """Align two return series on their common index."""
    aligned = pd.concat([returns, benchmark_returns], axis=1).dropna()
    return aligned.iloc[:, 0], aligned.iloc[:, 1]


def annualized_return(returns: pd.Series, periods_per_year: int = config.TRADING_DAYS) -> float:
    """Geometric annualised return."""
    if len(returns) == 0:
        return 0.0
    growth = float((1 + returns).prod())
    years = len(returns) / periods_per_year
    if growth <= 0 or years <= 0:
        return -1.0
    return growth ** (1 / years) - 1


def annualized_volatility(returns: pd.Series, periods_per_year: int = config.TRADING_DAYS) -> float:
    if len(returns) < 2:
        return 0.0
    return float(returns.std() * np.sqrt(periods_per_year))


def sharpe_ratio(
    returns: pd.Series,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS
) -> float:
    """
    Calculate Sharpe Ratio - risk-adjusted return measure.

    Formula:
        Sharpe Ratio = (Portfolio Return - Risk-Free Rate) / Portfolio Std Dev

    Interpretation:
        < 1.0: Suboptimal
        1.0 - 2.0: Good
        2.0 - 3.0: Very Good
        > 3.0: Excellent

    Args:
        returns: Series of periodic returns
        risk_free_rate: Annual risk-free rate
        periods_per_year: Periods per year (252 for daily, 12 for monthly)

    Returns:
        Annualized Sharpe Ratio
    """
    if len(returns) < 2:
        return 0.0

    mean_return = returns.mean() * periods_per_year
    std_dev = returns.std() * np.sqrt(periods_per_year)

    if std_dev < 1e-9:
        return 0.0

    return round(float((mean_return - risk_free_rate) / std_dev), 4)


def downside_deviation(returns: pd.Series, threshold: float = 0.0,
                       periods_per_year: int = config.TRADING_DAYS) -> float:
    """Annualised root-mean-square of returns below `threshold`."""
    shortfall = np.minimum(returns - threshold, 0)
    return float(np.sqrt((shortfall ** 2).mean()) * np.sqrt(periods_per_year))


def sortino_ratio(
    returns: pd.Series,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS
) -> Optional[float]:
    """
    Calculate Sortino Ratio - downside risk-adjusted return.

    Formula:
        Sortino Ratio = (Portfolio Return - Risk-Free Rate) / Downside Deviation

    Returns None when there is no downside at all.
    """
    if len(returns) < 2:
        return 0.0

    dd = downside_deviation(returns, 0.0, periods_per_year)
    if dd < 1e-9:
        return None

    mean_return = returns.mean() * periods_per_year
    return round(float((mean_return - risk_free_rate) / dd), 4)


def maximum_drawdown(returns: pd.Series) -> Dict[str, Any]:
    """
    Calculate Maximum Drawdown and related metrics.

    Formula:
        Drawdown = (Wealth - Running Peak) / Running Peak
        Max Drawdown = Minimum of all drawdowns

    Args:
        returns: Series of periodic returns

    Returns:
        Dictionary with max drawdown, peak/trough positions, duration and recovery
    """
    returns = returns.reset_index(drop=True)
    cumulative = (1 + returns).cumprod()
    running_max = cumulative.cummax().clip(lower=1.0)
    drawdown = cumulative / running_max - 1

    if drawdown.empty:
        return {'max_drawdown': 0.0, 'max_drawdown_pct': 0.0, 'drawdown_series': []}

    trough = int(drawdown.idxmin())
    max_dd = float(drawdown.iloc[trough])
    pre = cumulative.iloc[:trough + 1]
    peak = int(pre.idxmax()) if max_dd < 0 and pre.max() >= 1 else -1
    peak_level = float(cumulative.iloc[peak]) if peak >= 0 else 1.0

    recovery = None
    post = cumulative.iloc[trough:]
    recovered = post[post >= peak_level]
    if max_dd < 0 and len(recovered) > 0:
        recovery = int(recovered.index[0])

    return {
        'max_drawdown': round(max_dd, 4),
        'max_drawdown_pct': round(max_dd * 100, 2),
        'peak_index': peak,
        'trough_index': trough,
        'recovery_index': recovery,
        'drawdown_duration': trough - peak,
        'recovery_duration': (recovery - trough) if recovery is not None else None,
        'current_drawdown': round(float(drawdown.iloc[-1]), 4),
        'drawdown_series': drawdown.round(6).tolist()
    }


def calmar_ratio(
    returns: pd.Series,
    periods_per_year: int = config.TRADING_DAYS
) -> Optional[float]:
    """
    Calculate Calmar Ratio - return vs maximum drawdown.

    Formula:
        Calmar Ratio = Annualized Return / |Maximum Drawdown|
    """
    if len(returns) < 2:
        return 0.0
    max_dd = maximum_drawdown(returns)['max_drawdown']
    if max_dd == 0:
        return None
    return round(annualized_return(returns, periods_per_year) / abs(max_dd), 4)


def omega_ratio(returns: pd.Series, threshold: float = 0.0) -> Optional[float]:
    """Probability-weighted gains over losses relative to `threshold`."""
    excess = returns - threshold
    losses = -excess[excess < 0].sum()
    if losses <= 0:
        return None
    return round(float(excess[excess > 0].sum() / losses), 4)


def treynor_ratio(
    returns: pd.Series,
    benchmark_returns: pd.Series,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS
) -> Optional[float]:
    """
    Calculate Treynor Ratio - beta-adjusted excess return.

    Formula:
        Treynor Ratio = (Portfolio Return - Risk-Free Rate) / Beta
    """
    port, bench = _align(returns, benchmark_returns)
    if len(port) < 2:
        return None
    b = beta(port, bench, periods_per_year)['beta']
    if b == 0:
        return None
    excess_return = port.mean() * periods_per_year - risk_free_rate
    return round(float(excess_return / b), 4)


def tracking_error(returns: pd.Series, benchmark_returns: pd.Series,
                   periods_per_year: int = config.TRADING_DAYS) -> float:
    port, bench = _align(returns, benchmark_returns)
    if len(port) < 2:
        return 0.0
    return float((port - bench).std() * np.sqrt(periods_per_year))


def information_ratio(
    returns: pd.Series,
    benchmark_returns: pd.Series,
    periods_per_year: int = config.TRADING_DAYS
) -> Optional[float]:
    """
    Calculate Information Ratio - active return per unit of active risk.

    Formula:
        IR = (Portfolio Return - Benchmark Return) / Tracking Error

    Interpretation:
        > 0.5: Good
        > 1.0: Excellent
    """
    port, bench = _align(returns, benchmark_returns)
    if len(port) < 2:
        return None
    active = port - bench
    te = active.std() * np.sqrt(periods_per_year)
    if te < 1e-12:
        return None
    return round(float(active.mean() * periods_per_year / te), 4)


def beta(
    returns: pd.Series,
    benchmark_returns: pd.Series,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, float]:
    """
    Calculate Beta and Jensen's Alpha.

    Beta measures systematic risk relative to the market.
    Alpha is the annualized return not explained by beta.
    """
    port, bench = _align(returns, benchmark_returns)
    if len(port) < 2:
        return {'beta': 1.0, 'alpha': 0.0, 'r_squared': 0.0}

    variance = bench.var()
    beta_val = port.cov(bench) / variance if variance != 0 else 1.0
    alpha_val = port.mean() - beta_val * bench.mean()
    corr = port.corr(bench)

    return {
        'beta': round(float(beta_val), 4),
        'alpha': round(float(alpha_val * periods_per_year), 4),
        'r_squared': round(float(corr ** 2), 4) if pd.notna(corr) else 0.0
    }


def comprehensive_risk_analysis(
    returns: pd.Series,
    benchmark_returns: Optional[pd.Series] = None,
    risk_free_rate: float = config.RISK_FREE_RATE,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, Any]:
    """
    Comprehensive risk analysis report.

    Args:
        returns: Portfolio returns
        benchmark_returns: Optional benchmark returns
        risk_free_rate: Annual risk-free rate

    Returns:
        Dictionary with all risk metrics
    """
    ann_vol = annualized_volatility(returns, periods_per_year)
    sharpe = sharpe_ratio(returns, risk_free_rate, periods_per_year)
    dd_stats = maximum_drawdown(returns)
    dd_stats.pop('drawdown_series', None)

    result = {
        'sharpe_ratio': sharpe,
        'sortino_ratio': sortino_ratio(returns, risk_free_rate, periods_per_year),
        'calmar_ratio': calmar_ratio(returns, periods_per_year),
        'omega_ratio': omega_ratio(returns),
        'max_drawdown': dd_stats,
        'volatility': round(ann_vol * 100, 2),
        'downside_deviation': round(downside_deviation(returns, 0.0, periods_per_year) * 100, 2),
        'annualized_return': round(annualized_return(returns, periods_per_year) * 100, 2),
        'positive_periods': round((returns > 0).sum() / len(returns) * 100, 2) if len(returns) else 0.0,
        'skewness': round(float(returns.skew()), 4),
        'kurtosis': round(float(returns.kurtosis()), 4)
    }

    if benchmark_returns is not None and len(benchmark_returns) > 1:
        result['treynor_ratio'] = treynor_ratio(returns, benchmark_returns, risk_free_rate, periods_per_year)
        result['information_ratio'] = information_ratio(returns, benchmark_returns, periods_per_year)
        result['tracking_error'] = round(tracking_error(returns, benchmark_returns, periods_per_year) * 100, 2)
        result['beta_alpha'] = beta(returns, benchmark_returns, periods_per_year)

    # Risk rating
    if sharpe >= 2.0:
        result['risk_rating'] = 'Excellent'
    elif sharpe >= 1.0:
        result['risk_rating'] = 'Good'
    elif sharpe >= 0.5:
        result['risk_rating'] = 'Moderate'
    else:
        result['risk_rating'] = 'Poor'

    return result
