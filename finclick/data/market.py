"""
Market Data Module
Return series, prices and portfolios used by the risk and statistical analyses.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from finclick import config

logger = logging.getLogger(__name__)


def to_series(values: Any, name: str = None) -> Optional[pd.Series]:
    """Coerce a list/array/dict/Series to a float Series with NaNs dropped."""
    if values is None:
        return None
    if isinstance(values, pd.DataFrame):
        if values.shape[1] != 1:
            raise ValueError("Expected a single column, got a frame")
        values = values.iloc[:, 0]
    if isinstance(values, dict):
        series = pd.Series(values, dtype=float)
    else:
        series = pd.Series(values).astype(float)
    if name:
        series.name = name
    return series.dropna()


def to_frame(values: Any) -> Optional[pd.DataFrame]:
    """Coerce a dict of lists, list of records or DataFrame to a float DataFrame."""
    if values is None:
        return None
    if isinstance(values, pd.DataFrame):
        frame = values.copy()
    else:
        frame = pd.DataFrame(values)
    return frame.apply(pd.to_numeric, errors='coerce').dropna(how='all')


def returns_from_prices(prices: Any, log_returns: bool = False) -> pd.Series:
    """
    Simple (or log) returns from a price series or frame.

    Args:
        prices: Price Series, DataFrame or list
        log_returns: Use log(P_t / P_{t-1}) instead of P_t / P_{t-1} - 1

    Returns:
        Returns with the first (undefined) observation dropped
    """
    if isinstance(prices, pd.DataFrame):
        data = prices.astype(float)
    else:
        data = to_series(prices)
    if log_returns:
        return np.log(data / data.shift(1)).dropna(how='all')
    return data.pct_change().dropna(how='all')


@dataclass
class MarketData:
    """
    Market inputs for one analysis run.

    Attributes:
        returns: periodic returns of the analysed asset or company stock
        benchmark_returns: market / index returns aligned with `returns`
        asset_returns: one column per asset for multi-asset analyses
        prices: price history of the analysed asset
        factor_returns: factor columns (e.g. MKT, SMB, HML) for factor models
        risk_free_rate: annual risk-free rate
    """
    returns: Optional[pd.Series] = None
    benchmark_returns: Optional[pd.Series] = None
    asset_returns: Optional[pd.DataFrame] = None
    prices: Optional[pd.Series] = None
    factor_returns: Optional[pd.DataFrame] = None
    volumes: Optional[pd.Series] = None
    risk_free_rate: float = config.RISK_FREE_RATE

    def __post_init__(self):
        self.returns = to_series(self.returns, 'returns')
        self.benchmark_returns = to_series(self.benchmark_returns, 'benchmark')
        self.prices = to_series(self.prices, 'price')
        self.volumes = to_series(self.volumes, 'volume')
        self.asset_returns = to_frame(self.asset_returns)
        self.factor_returns = to_frame(self.factor_returns)
        if self.returns is None and self.prices is not None and len(self.prices) > 1:
            self.returns = returns_from_prices(self.prices)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MarketData':
        data = data or {}
        get = lambda *keys: next((data[k] for k in keys if data.get(k) is not None), None)
        return cls(
            returns=get('returns'),
            benchmark_returns=get('benchmark_returns', 'benchmarkReturns', 'market_returns'),
            asset_returns=get('asset_returns', 'assetReturns'),
            prices=get('prices'),
            factor_returns=get('factor_returns', 'factorReturns', 'factors'),
            volumes=get('volumes', 'volume'),
            risk_free_rate=float(get('risk_free_rate', 'riskFreeRate') or config.RISK_FREE_RATE),
        )


@dataclass
class Portfolio:
    """
    Portfolio of assets with weights.

    `weights` may be given in any scale; `normalized_weights()` rescales them
    to sum to one. Missing weights default to equal weighting.
    """
    asset_returns: pd.DataFrame
    weights: Optional[Sequence[float]] = None
    value: float = 1_000_000.0
    benchmark_returns: Optional[pd.Series] = None
    names: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.asset_returns = to_frame(self.asset_returns)
        if self.asset_returns is None or self.asset_returns.empty:
            raise ValueError("Portfolio requires asset returns")
        self.asset_returns = self.asset_returns.dropna()
        self.benchmark_returns = to_series(self.benchmark_returns, 'benchmark')
        if not self.names:
            self.names = [str(c) for c in self.asset_returns.columns]
        if self.weights is None:
            n = self.asset_returns.shape[1]
            self.weights = [1.0 / n] * n
        if len(self.weights) != self.asset_returns.shape[1]:
            raise ValueError(
                f"Got {len(self.weights)} weights for {self.asset_returns.shape[1]} assets")

    def normalized_weights(self) -> np.ndarray:
        w = np.asarray(self.weights, dtype=float)
        total = w.sum()
        if total == 0:
            return np.full(len(w), 1.0 / len(w))
        return w / total

    def portfolio_returns(self) -> pd.Series:
        return pd.Series(self.asset_returns.values @ self.normalized_weights(),
                         index=self.asset_returns.index, name='portfolio')

    @classmethod
    def from_prices(cls, prices: Any, weights: Optional[Sequence[float]] = None, **kwargs) -> 'Portfolio':
        frame = to_frame(prices)
        return cls(asset_returns=frame.pct_change().dropna(), weights=weights, **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Portfolio':
        if data.get('prices') is not None and data.get('asset_returns') is None:
            return cls.from_prices(data['prices'], weights=data.get('weights'),
                                   value=float(data.get('value', 1_000_000.0)))
        get = lambda *keys: next((data[k] for k in keys if data.get(k) is not None), None)
        return cls(
            asset_returns=get('asset_returns', 'assetReturns'),
            weights=data.get('weights'),
            value=float(data.get('value', 1_000_000.0)),
            benchmark_returns=get('benchmark_returns', 'benchmarkReturns'),
        )
