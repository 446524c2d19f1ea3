"""
Dividend Discount Models (DDM)
"""

from typing import Dict, Any, List, Sequence, Tuple


def _invalid(required_return: float, growth: float, dividend: float) -> Dict[str, Any]:
    if dividend <= 0:
        return {'fair_value': None, 'error': 'Company must pay dividends for DDM'}
    if required_return <= growth:
        return {'fair_value': None, 'error': 'Required return must be greater than growth rate'}
    return {}


def gordon_growth_model(
    current_dividend: float,
    growth_rate: float,
    required_return: float
) -> Dict[str, Any]:
    """
    Constant-growth (Gordon) dividend discount model.

    Formula:
        P = D1 / (r - g),  D1 = D0 x (1 + g)

    Args:
        current_dividend: Current annual dividend per share (D0)
        growth_rate: Constant growth rate (decimal)
        required_return: Cost of equity (decimal)

    Returns:
        Dictionary with fair value, next dividend and implied yield
    """
    invalid = _invalid(required_return, growth_rate, current_dividend)
    if invalid:
        return invalid

    next_dividend = current_dividend * (1 + growth_rate)
    fair_value = next_dividend / (required_return - growth_rate)

    return {
        'fair_value': round(fair_value, 4),
        'current_dividend': current_dividend,
        'next_dividend': round(next_dividend, 4),
        'growth_rate': round(growth_rate * 100, 2),
        'required_return': round(required_return * 100, 2),
        'implied_dividend_yield': round(next_dividend / fair_value * 100, 2),
    }


def multi_stage_ddm(
    current_dividend: float,
    stages: Sequence[Tuple[int, float]],
    terminal_growth_rate: float,
    required_return: float
) -> Dict[str, Any]:
    """
    Dividend discount model with any number of explicit growth stages.

    Args:
        current_dividend: D0
        stages: (years, growth rate) per stage, in order
        terminal_growth_rate: Perpetual growth after the last stage
        required_return: Cost of equity

    Returns:
        Dictionary with the dividend path, PV per stage and fair value
    """
    invalid = _invalid(required_return, terminal_growth_rate, current_dividend)
    if invalid:
        return invalid

    dividends: List[float] = []
    present_values: List[float] = []
    dividend = current_dividend
    year = 0
    for years, growth in stages:
        for _ in range(int(years)):
            year += 1
            dividend *= (1 + growth)
            dividends.append(dividend)
            present_values.append(dividend / (1 + required_return) ** year)

    terminal_value = dividend * (1 + terminal_growth_rate) / (required_return - terminal_growth_rate)
    pv_terminal = terminal_value / (1 + required_return) ** year
    fair_value = sum(present_values) + pv_terminal

    return {
        'fair_value': round(fair_value, 4),
        'dividends': [round(d, 4) for d in dividends],
        'pv_dividends': [round(p, 4) for p in present_values],
        'pv_explicit_period': round(sum(present_values), 4),
        'terminal_value': round(terminal_value, 4),
        'pv_terminal': round(pv_terminal, 4),
        'terminal_share': round(pv_terminal / fair_value * 100, 1) if fair_value > 0 else None,
        'required_return': round(required_return * 100, 2),
        'years': year,
    }


def two_stage_ddm(
    current_dividend: float,
    high_growth_rate: float,
    high_growth_years: int,
    stable_growth_rate: float,
    required_return: float
) -> Dict[str, Any]:
    """High growth for `high_growth_years`, then Gordon growth."""
    result = multi_stage_ddm(current_dividend, [(high_growth_years, high_growth_rate)],
                             stable_growth_rate, required_return)
    if result.get('fair_value') is not None:
        result['high_growth_rate'] = round(high_growth_rate * 100, 2)
        result['stable_growth_rate'] = round(stable_growth_rate * 100, 2)
    return result


def h_model_ddm(
    current_dividend: float,
    initial_growth_rate: float,
    stable_growth_rate: float,
    half_life_years: float,
    required_return: float
) -> Dict[str, Any]:
    """
    H-Model: growth declines linearly from the initial to the stable rate.

    Formula:
        P = D0 x (1 + gs) / (r - gs) + D0 x H x (gi - gs) / (r - gs)
    """
    invalid = _invalid(required_return, stable_growth_rate, current_dividend)
    if invalid:
        return invalid

    spread = required_return - stable_growth_rate
    stable_value = current_dividend * (1 + stable_growth_rate) / spread
    extraordinary_value = current_dividend * half_life_years * (initial_growth_rate - stable_growth_rate) / spread

    return {
        'fair_value': round(stable_value + extraordinary_value, 4),
        'stable_value_component': round(stable_value, 4),
        'extraordinary_value_component': round(extraordinary_value, 4),
        'half_life_years': half_life_years,
        'required_return': round(required_return * 100, 2),
    }


def estimate_growth_rate(roe: float, payout_ratio: float) -> float:
    """
    Sustainable growth rate.

    Formula:
        g = ROE x (1 - Payout Ratio)
    """
    payout_ratio = min(max(payout_ratio, 0.0), 1.0)
    return roe * (1 - payout_ratio)


def implied_growth_rate(stock_price: float, current_dividend: float, required_return: float) -> float:
    """
    Growth rate the market price implies under the Gordon model.

    Solving P = D0 (1 + g) / (r - g) for g:
        g = (r x P - D0) / (P + D0)
    """
    if stock_price <= 0 or current_dividend <= 0:
        return 0.0
    return round((required_return * stock_price - current_dividend) / (stock_price + current_dividend), 6)
