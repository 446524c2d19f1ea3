"""
Descriptive Statistics Module
Distribution moments, normality and autocorrelation tests, long memory.
"""

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf
from typing import Dict, Any

from finclick.core.exceptions import InsufficientDataError


def distribution_moments(values: pd.Series) -> Dict[str, Any]:
    """
    Mean, dispersion, skewness, excess kurtosis and quantiles.
    """
    x = pd.Series(values, dtype=float).dropna()
    if len(x) < 3:
        raise InsufficientDataError("Moments need at least 3 observations")
    mean = float(x.mean())
    std = float(x.std())
    return {
        'count': int(len(x)),
        'mean': round(mean, 6),
        'median': round(float(x.median()), 6),
        'std': round(std, 6),
        'coefficient_of_variation': round(std / abs(mean), 4) if mean else None,
        'skewness': round(float(stats.skew(x)), 4),
        'excess_kurtosis': round(float(stats.kurtosis(x)), 4),
        'min': round(float(x.min()), 6),
        'max': round(float(x.max()), 6),
        'quantiles': {f'p{q}': round(float(x.quantile(q / 100)), 6) for q in (1, 5, 25, 75, 95, 99)}
    }


def jarque_bera_test(values: pd.Series) -> Dict[str, Any]:
    """Jarque-Bera normality test."""
    x = pd.Series(values, dtype=float).dropna()
    if len(x) < 8:
        raise InsufficientDataError("Jarque-Bera needs at least 8 observations")
    result = stats.jarque_bera(x)
    return {
        'statistic': round(float(result.statistic), 4),
        'p_value': round(float(result.pvalue), 4),
        'is_normal': bool(result.pvalue >= 0.05)
    }


def ljung_box_test(values: pd.Series, lags: int = 10) -> Dict[str, Any]:
    """Ljung-Box test for autocorrelation up to `lags`."""
    x = pd.Series(values, dtype=float).dropna()
    lags = min(lags, len(x) // 2 - 1)
    if lags < 1:
        raise InsufficientDataError("Ljung-Box needs at least 4 observations")
    table = acorr_ljungbox(x, lags=[lags], return_df=True)
    stat = float(table['lb_stat'].iloc[-1])
    p_value = float(table['lb_pvalue'].iloc[-1])
    return {
        'lags': lags,
        'statistic': round(stat, 4),
        'p_value': round(p_value, 4),
        'autocorrelated': bool(p_value < 0.05)
    }


def autocorrelation(values: pd.Series, nlags: int = 10) -> Dict[str, Any]:
    """ACF with the ±1.96/√n significance band."""
    x = pd.Series(values, dtype=float).dropna()
    nlags = min(nlags, len(x) - 2)
    if nlags < 1:
        raise InsufficientDataError("ACF needs at least 3 observations")
    coefs = acf(x, nlags=nlags, fft=False)
    band = 1.96 / np.sqrt(len(x))
    return {
        'acf': [round(float(c), 4) for c in coefs[1:]],
        'confidence_band': round(float(band), 4),
        'significant_lags': [i for i, c in enumerate(coefs[1:], 1) if abs(c) > band]
    }


def hurst_exponent(values: pd.Series, min_window: int = 8) -> Dict[str, Any]:
    """
    Hurst exponent by rescaled-range (R/S) analysis.

    H ≈ 0.5 random walk, > 0.5 persistent (trending), < 0.5 mean-reverting.
    """
    x = np.asarray(pd.Series(values, dtype=float).dropna())
    n = len(x)
    if n < 2 * min_window:
        raise InsufficientDataError(f"Hurst exponent needs at least {2 * min_window} observations")

    windows = np.unique(np.floor(np.logspace(np.log10(min_window), np.log10(n // 2), 10)).astype(int))
    log_n, log_rs = [], []
    for w in windows:
        rs_values = []
        for start in range(0, n - w + 1, w):
            chunk = x[start:start + w]
            dev = np.cumsum(chunk - chunk.mean())
            r = dev.max() - dev.min()
            s = chunk.std()
            if s > 0:
                rs_values.append(r / s)
        if rs_values:
            log_n.append(np.log(w))
            log_rs.append(np.log(np.mean(rs_values)))

    if len(log_n) < 2:
        raise InsufficientDataError("Series has no variation for R/S analysis")
    slope = float(np.polyfit(log_n, log_rs, 1)[0])

    if slope > 0.55:
        behaviour = 'persistent'
    elif slope < 0.45:
        behaviour = 'mean_reverting'
    else:
        behaviour = 'random_walk'
    return {'hurst': round(slope, 4), 'behaviour': behaviour, 'windows': [int(w) for w in windows]}


def dfa_exponent(values: pd.Series, min_window: int = 4) -> float:
    """Detrended fluctuation analysis scaling exponent (alpha)."""
    x = np.asarray(pd.Series(values, dtype=float).dropna())
    n = len(x)
    if n < 4 * min_window:
        raise InsufficientDataError(f"DFA needs at least {4 * min_window} observations")
    profile = np.cumsum(x - x.mean())
    windows = np.unique(np.floor(np.logspace(np.log10(min_window), np.log10(n // 4), 10)).astype(int))
    log_n, log_f = [], []
    for w in windows:
        segments = n // w
        f2 = []
        t = np.arange(w)
        for i in range(segments):
            seg = profile[i * w:(i + 1) * w]
            trend = np.polyval(np.polyfit(t, seg, 1), t)
            f2.append(np.mean((seg - trend) ** 2))
        f = np.sqrt(np.mean(f2))
        if f > 0:
            log_n.append(np.log(w))
            log_f.append(np.log(f))
    if len(log_n) < 2:
        raise InsufficientDataError("Series has no variation for DFA")
    return float(np.polyfit(log_n, log_f, 1)[0])
