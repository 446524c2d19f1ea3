"""
Backtesting Module
Validation of Value-at-Risk forecasts against realised returns.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from scipy import stats
from typing import Dict, Any, List, Optional

from finclick import config
from finclick.core.exceptions import InsufficientDataError


@dataclass
class VaRBacktest:
    """Exceptions of a VaR series against realised returns."""
    observations: int
    exceptions: int
    expected_rate: float
    exception_indices: List[int] = field(default_factory=list)

    @property
    def exception_rate(self) -> float:
        return self.exceptions / self.observations if self.observations else 0.0

    @property
    def expected_exceptions(self) -> float:
        return self.observations * self.expected_rate


def count_exceptions(returns: pd.Series, var_series, confidence: float = config.VAR_CONFIDENCE) -> VaRBacktest:
    """
    Loss exceptions where the realised return fell below -VaR.

    Args:
        returns: Realised returns
        var_series: VaR per period as positive decimals (scalar or aligned series)
        confidence: VaR confidence level
    """
    r = np.asarray(returns, dtype=float)
    var = np.broadcast_to(np.asarray(var_series, dtype=float), r.shape)
    hits = r < -var
    return VaRBacktest(
        observations=len(r),
        exceptions=int(hits.sum()),
        expected_rate=1 - confidence,
        exception_indices=[int(i) for i in np.where(hits)[0]]
    )


def kupiec_test(backtest: VaRBacktest) -> Dict[str, Any]:
    """
    Kupiec proportion-of-failures likelihood-ratio test.

    LR_pof = -2 ln[(1-p)^(T-x) p^x] + 2 ln[(1-x/T)^(T-x) (x/T)^x] ~ χ²(1)
    """
    T, x, p = backtest.observations, backtest.exceptions, backtest.expected_rate
    if T == 0:
        raise InsufficientDataError("No observations to backtest")
    phat = x / T

    def loglik(prob):
        # 0 * log(0) is taken as 0
        a = (T - x) * np.log(1 - prob) if T - x > 0 else 0.0
        b = x * np.log(prob) if x > 0 else 0.0
        return a + b

    lr = -2 * (loglik(p) - loglik(phat)) if 0 < phat < 1 else -2 * (loglik(p) - 0.0)
    lr = max(float(lr), 0.0)
    p_value = float(1 - stats.chi2.cdf(lr, 1))
    return {
        'lr_statistic': round(lr, 4),
        'p_value': round(p_value, 4),
        'reject_model': p_value < 0.05,
        'exception_rate': round(phat * 100, 2),
        'expected_rate': round(p * 100, 2)
    }


def christoffersen_test(backtest: VaRBacktest) -> Dict[str, Any]:
    """
    Christoffersen independence test on the exception sequence.

    Compares P(exception | exception yesterday) with P(exception | none).
    """
    hits = np.zeros(backtest.observations, dtype=int)
    hits[backtest.exception_indices] = 1
    if len(hits) < 2:
        raise InsufficientDataError("Independence test needs at least 2 observations")

    prev, curr = hits[:-1], hits[1:]
    n00 = int(np.sum((prev == 0) & (curr == 0)))
    n01 = int(np.sum((prev == 0) & (curr == 1)))
    n10 = int(np.sum((prev == 1) & (curr == 0)))
    n11 = int(np.sum((prev == 1) & (curr == 1)))

    pi0 = n01 / (n00 + n01) if (n00 + n01) else 0.0
    pi1 = n11 / (n10 + n11) if (n10 + n11) else 0.0
    pi = (n01 + n11) / (n00 + n01 + n10 + n11)

    def ll(count, prob):
        return count * np.log(prob) if count > 0 and prob > 0 else 0.0

    l_null = ll(n00 + n10, 1 - pi) + ll(n01 + n11, pi)
    l_alt = ll(n00, 1 - pi0) + ll(n01, pi0) + ll(n10, 1 - pi1) + ll(n11, pi1)
    lr = max(float(-2 * (l_null - l_alt)), 0.0)
    p_value = float(1 - stats.chi2.cdf(lr, 1))

    return {
        'lr_statistic': round(lr, 4),
        'p_value': round(p_value, 4),
        'clustered_exceptions': n11,
        'reject_independence': p_value < 0.05
    }


def traffic_light_zone(backtest: VaRBacktest) -> str:
    """
    Basel traffic light zone via the binomial cumulative probability of the
    observed exception count: green < 95%, yellow < 99.99%, else red.
    """
    cumulative = stats.binom.cdf(backtest.exceptions, backtest.observations, backtest.expected_rate)
    if cumulative < 0.95:
        return 'green'
    if cumulative < 0.9999:
        return 'yellow'
    return 'red'


def backtest_var(returns: pd.Series, var_series=None, confidence: float = config.VAR_CONFIDENCE,
                 window: Optional[int] = None) -> Dict[str, Any]:
    """
    Full VaR backtest.

    When `var_series` is None a rolling historical VaR over `window`
    periods is forecast out of sample and tested.
    """
    returns = pd.Series(returns, dtype=float).dropna().reset_index(drop=True)
    if var_series is None:
        window = window or max(min(len(returns) // 2, 250), 20)
        if len(returns) <= window + 10:
            raise InsufficientDataError(f"VaR backtest needs more than {window + 10} observations")
        var_series = -returns.rolling(window).quantile(1 - confidence).shift(1)
        mask = var_series.notna()
        returns, var_series = returns[mask], var_series[mask]

    bt = count_exceptions(returns, var_series, confidence)
    return {
        'observations': bt.observations,
        'exceptions': bt.exceptions,
        'expected_exceptions': round(bt.expected_exceptions, 2),
        'kupiec': kupiec_test(bt),
        'christoffersen': christoffersen_test(bt),
        'traffic_light': traffic_light_zone(bt)
    }
