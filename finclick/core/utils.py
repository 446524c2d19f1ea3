import math
import re
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively sanitize data for JSON serialization.
    Replaces NaN, Inf, -Inf with None.
    Converts pandas Series/DataFrame to lists/dicts.
    """
    if isinstance(obj, dict):
        return {str(k): sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(item) for item in obj]
    elif isinstance(obj, Enum):
        return obj.value
    elif is_dataclass(obj) and not isinstance(obj, type):
        return sanitize_for_json(asdict(obj))
    elif isinstance(obj, pd.Series):
        return sanitize_for_json(obj.tolist())
    elif isinstance(obj, pd.DataFrame):
        return sanitize_for_json(obj.to_dict(orient='list'))
    elif isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    elif isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    elif isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return round(obj, 4)
    elif isinstance(obj, (np.floating, np.integer)):
        val = float(obj)
        if math.isnan(val) or math.isinf(val):
            return None
        if isinstance(obj, np.integer):
            return int(obj)
        return round(val, 4)
    elif isinstance(obj, np.ndarray):
        return sanitize_for_json(obj.tolist())
    return obj


def to_number(value: Any) -> Optional[float]:
    """Convert an input amount to float; handles separators, (negatives) and dashes."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return None if math.isnan(value) else float(value)
    s = str(value).strip()
    if not s:
        return None
    negative = s.startswith('(') and s.endswith(')')
    s = re.sub(r'[^\d.\-eE]', '', s.replace('٫', '.').replace('٬', ''))
    if s in ('', '-', '.', '--'):
        return None
    try:
        number = float(s)
    except ValueError:
        return None
    return -abs(number) if negative else number


def safe_divide(numerator: Optional[float], denominator: Optional[float],
                default: Optional[float] = None) -> Optional[float]:
    """Divide, returning `default` for missing or zero denominators."""
    if numerator is None or denominator is None:
        return default
    if denominator == 0 or (isinstance(denominator, float) and math.isnan(denominator)):
        return default
    return numerator / denominator


def pct_change(current: float, previous: float) -> Optional[float]:
    """Percentage change relative to the absolute previous value."""
    if previous is None or current is None or previous == 0:
        return None
    return (current - previous) / abs(previous) * 100


def cagr(first: float, last: float, periods: int) -> Optional[float]:
    """Compound annual growth rate in percent."""
    if periods <= 0 or first is None or last is None or first <= 0 or last <= 0:
        return None
    return ((last / first) ** (1 / periods) - 1) * 100


def round_or_none(value: Optional[float], digits: int = 4) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, digits)


def clip_score(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return float(max(low, min(high, value)))


def weighted_score(scores: dict, weights: dict) -> float:
    """Weighted average of 0-100 scores; missing weights count as 1."""
    total_weight = 0.0
    total = 0.0
    for key, score in scores.items():
        if score is None:
            continue
        w = weights.get(key, 1.0)
        total += score * w
        total_weight += w
    return total / total_weight if total_weight else 0.0
