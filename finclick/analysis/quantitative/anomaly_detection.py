"""
Anomaly Detection Module

Detects unusual observations in financial series:
- Z-score and IQR outliers
- Isolation forest on multivariate features
- Volume spikes
- Volatility clusters
"""

import numpy as np
import pandas as pd
from sklearn.ensemble import IsolationForest
from typing import Dict, Any, Optional

from finclick import config
from finclick.core.exceptions import InsufficientDataError


def zscore_anomalies(values: pd.Series, threshold: float = 3.0) -> Dict[str, Any]:
    """
    Flag points more than `threshold` standard deviations from the mean.
    """
    values = pd.Series(values, dtype=float).dropna()
    if len(values) < 3:
        raise InsufficientDataError("Z-score test needs at least 3 values")
    std = values.std()
    z = (values - values.mean()) / std if std > 0 else values * 0
    flagged = z[z.abs() > threshold]
    return {
        'anomaly_count': int(len(flagged)),
        'anomaly_rate': round(len(flagged) / len(values) * 100, 2),
        'anomalies': [{'index': str(i), 'value': round(float(values[i]), 6), 'z_score': round(float(s), 3)}
                      for i, s in flagged.items()],
        'max_abs_z': round(float(z.abs().max()), 3),
        'threshold': threshold
    }


def iqr_anomalies(values: pd.Series, multiplier: float = 1.5) -> Dict[str, Any]:
    """
    Tukey fences: outside [Q1 - k*IQR, Q3 + k*IQR].
    """
    values = pd.Series(values, dtype=float).dropna()
    if len(values) < 4:
        raise InsufficientDataError("IQR test needs at least 4 values")
    q1, q3 = values.quantile(0.25), values.quantile(0.75)
    iqr = q3 - q1
    lower, upper = q1 - multiplier * iqr, q3 + multiplier * iqr
    flagged = values[(values < lower) | (values > upper)]
    return {
        'anomaly_count': int(len(flagged)),
        'lower_fence': round(float(lower), 6),
        'upper_fence': round(float(upper), 6),
        'anomalies': [{'index': str(i), 'value': round(float(v), 6)} for i, v in flagged.items()]
    }


def isolation_forest_anomalies(features: pd.DataFrame, contamination: float = 0.05) -> Dict[str, Any]:
    """
    Multivariate anomalies with scikit-learn IsolationForest.

    Args:
        features: Rows are observations, columns are features
        contamination: Expected share of anomalies

    Returns:
        Dictionary with flagged rows and anomaly scores (higher = more anomalous)
    """
    features = features.dropna()
    if len(features) < 10:
        raise InsufficientDataError("Isolation forest needs at least 10 observations")
    model = IsolationForest(contamination=contamination, random_state=config.RANDOM_SEED, n_estimators=200)
    labels = model.fit_predict(features.values)
    scores = -model.score_samples(features.values)
    flagged = np.where(labels == -1)[0]
    return {
        'anomaly_count': int(len(flagged)),
        'anomaly_rate': round(len(flagged) / len(features) * 100, 2),
        'anomalies': [{'index': str(features.index[i]), 'score': round(float(scores[i]), 4)} for i in flagged],
        'latest_score': round(float(scores[-1]), 4),
        'latest_is_anomaly': bool(labels[-1] == -1),
        'scores': np.round(scores, 4).tolist()
    }


def detect_volume_spikes(
    volume: pd.Series,
    lookback: int = 20,
    spike_threshold: float = 2.0
) -> Dict[str, Any]:
    """
    Detect unusually high volume periods.

    Args:
        volume: Series of periodic volumes
        lookback: Periods for the trailing average
        spike_threshold: Multiple of average to consider a spike

    Returns:
        Spike detection results
    """
    volume = pd.Series(volume, dtype=float).reset_index(drop=True)
    if len(volume) < lookback + 1:
        raise InsufficientDataError(f"Volume spike detection needs {lookback + 1} observations")

    avg_volume = volume.shift(1).rolling(lookback).mean()
    ratios = (volume / avg_volume).replace([np.inf, -np.inf], np.nan)
    ratio = float(ratios.iloc[-1]) if pd.notna(ratios.iloc[-1]) else 0.0
    is_spike = ratio >= spike_threshold
    spikes = ratios[ratios >= spike_threshold]

    return {
        'detected': bool(is_spike),
        'volume_ratio': round(ratio, 2),
        'threshold': spike_threshold,
        'severity': 'HIGH' if ratio >= 3.0 else ('MEDIUM' if ratio >= 2.0 else 'LOW'),
        'spike_count': int(len(spikes)),
        'spike_indices': [int(i) for i in spikes.index],
        'interpretation': _interpret_volume_spike(ratio, is_spike)
    }


def _interpret_volume_spike(ratio: float, is_spike: bool) -> str:
    """Interpret volume spike significance."""
    if not is_spike:
        return "Normal trading volume"
    elif ratio >= 5.0:
        return "EXTREME volume - major event or coordinated activity likely"
    elif ratio >= 3.0:
        return "HIGH volume - significant interest from large players"
    return "Elevated volume - increased market attention"


def detect_volatility_cluster(
    returns: pd.Series,
    short_window: int = 5,
    long_window: int = 20,
    cluster_threshold: float = 1.5,
    periods_per_year: int = config.TRADING_DAYS
) -> Dict[str, Any]:
    """
    Detect volatility clustering (GARCH-like behaviour) from returns.
    """
    returns = pd.Series(returns, dtype=float).dropna()
    if len(returns) < long_window + 5:
        raise InsufficientDataError(f"Volatility clustering needs {long_window + 5} observations")

    short_vol = returns.rolling(short_window).std() * np.sqrt(periods_per_year) * 100
    long_vol = returns.rolling(long_window).std() * np.sqrt(periods_per_year) * 100

    current_short = float(short_vol.iloc[-1])
    current_long = float(long_vol.iloc[-1])
    vol_ratio = current_short / current_long if current_long > 0 else 1.0
    is_cluster = vol_ratio >= cluster_threshold
    trend = 'INCREASING' if short_vol.iloc[-1] > short_vol.iloc[-5] else 'DECREASING'

    return {
        'detected': bool(is_cluster),
        'short_term_vol': round(current_short, 2),
        'long_term_vol': round(current_long, 2),
        'vol_ratio': round(vol_ratio, 2),
        'volatility_trend': trend,
        'interpretation': _interpret_volatility(vol_ratio, is_cluster, trend)
    }


def _interpret_volatility(ratio: float, is_cluster: bool, trend: str) -> str:
    """Interpret volatility pattern."""
    if not is_cluster:
        return f"Volatility within normal range ({trend.lower()} trend)"
    if ratio >= 2.0:
        return f"HIGH volatility cluster - expect large swings. Trend: {trend}"
    return f"Elevated volatility detected. Trend: {trend}"


def detect_spikes(values: pd.Series, window: int = 20, threshold: float = 3.0) -> Dict[str, Any]:
    """
    Rolling z-score spikes: compare each point to the trailing window only,
    so the latest observation can be scored in real time.
    """
    values = pd.Series(values, dtype=float).reset_index(drop=True)
    if len(values) < window + 1:
        raise InsufficientDataError(f"Spike detection needs {window + 1} observations")
    mean = values.shift(1).rolling(window).mean()
    std = values.shift(1).rolling(window).std()
    z = ((values - mean) / std).replace([np.inf, -np.inf], np.nan)
    flagged = z[z.abs() > threshold].dropna()
    latest: Optional[float] = float(z.iloc[-1]) if pd.notna(z.iloc[-1]) else None
    return {
        'spike_count': int(len(flagged)),
        'spike_indices': [int(i) for i in flagged.index],
        'latest_z': round(latest, 3) if latest is not None else None,
        'latest_is_spike': bool(latest is not None and abs(latest) > threshold)
    }
