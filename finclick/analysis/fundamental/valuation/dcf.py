"""
Discounted Cash Flow (DCF) Valuation Model
"""

import logging
from typing import Dict, List, Any, Optional, Sequence

import numpy as np

from finclick import config

logger = logging.getLogger(__name__)


def calculate_cost_of_equity(
    beta: float,
    risk_free_rate: float = config.RISK_FREE_RATE,
    market_risk_premium: float = config.MARKET_RISK_PREMIUM
) -> float:
    """
    Cost of Equity via CAPM.

    Formula:
        Re = Rf + beta x (Rm - Rf)
    """
    return risk_free_rate + beta * market_risk_premium


def calculate_wacc(
    equity_value: float,
    debt_value: float,
    cost_of_equity: float,
    cost_of_debt: float,
    tax_rate: float = config.DEFAULT_TAX_RATE
) -> Dict[str, Any]:
    """
    Weighted Average Cost of Capital.

    Formula:
        WACC = E/V x Re + D/V x Rd x (1 - T)

    Args:
        equity_value: Market (or book) value of equity
        debt_value: Value of interest-bearing debt
        cost_of_equity: Required return on equity (decimal)
        cost_of_debt: Pre-tax cost of debt (decimal)
        tax_rate: Marginal tax rate (decimal)

    Returns:
        Dictionary with WACC and the capital weights
    """
    equity_value = max(equity_value, 0.0)
    debt_value = max(debt_value, 0.0)
    total = equity_value + debt_value
    if total == 0:
        # No capital data: fall back to the equity hurdle
        return {
            'wacc': cost_of_equity,
            'equity_weight': 1.0,
            'debt_weight': 0.0,
            'after_tax_cost_of_debt': cost_of_debt * (1 - tax_rate),
        }

    we = equity_value / total
    wd = debt_value / total
    after_tax_rd = cost_of_debt * (1 - tax_rate)
    return {
        'wacc': we * cost_of_equity + wd * after_tax_rd,
        'equity_weight': we,
        'debt_weight': wd,
        'after_tax_cost_of_debt': after_tax_rd,
    }


def calculate_terminal_value_perpetuity(final_fcf: float, growth: float, discount_rate: float) -> float:
    """
    Terminal value by the perpetuity growth method.

    Formula:
        TV = FCF_n x (1 + g) / (r - g)

    Raises:
        ValueError: discount rate not above the growth rate
    """
    if discount_rate <= growth:
        raise ValueError("Discount rate must exceed the perpetual growth rate")
    return final_fcf * (1 + growth) / (discount_rate - growth)


def calculate_terminal_value_exit_multiple(final_ebitda: float, exit_multiple: float) -> float:
    """TV = EBITDA_n x EV/EBITDA exit multiple"""
    return final_ebitda * exit_multiple


def discount_cash_flows(cash_flows: Sequence[float], discount_rate: float,
                        mid_year: bool = False) -> List[float]:
    """
    Present value of each cash flow, the first one year out.

    Formula:
        PV_t = CF_t / (1 + r)^t     (t - 0.5 with the mid-year convention)
    """
    offset = 0.5 if mid_year else 0.0
    return [cf / (1 + discount_rate) ** (t + 1 - offset) for t, cf in enumerate(cash_flows)]


def project_cash_flows(current_fcf: float, growth_rates: Sequence[float]) -> List[float]:
    """Compound the current free cash flow through each year's growth rate."""
    flows = []
    value = current_fcf
    for g in growth_rates:
        value *= (1 + g)
        flows.append(value)
    return flows


def dcf_valuation(
    wacc: float,
    cash_flows: Optional[Sequence[float]] = None,
    current_fcf: Optional[float] = None,
    growth_rates: Optional[Sequence[float]] = None,
    terminal_growth_rate: float = config.DEFAULT_TERMINAL_GROWTH,
    shares_outstanding: float = 0,
    net_debt: float = 0,
    exit_multiple: Optional[float] = None,
    final_ebitda: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Full DCF valuation.

    Formula:
        EV = sum(FCF_t / (1+r)^t) + TV / (1+r)^n
        Equity = EV - Net Debt

    Either pass explicit `cash_flows`, or `current_fcf` with `growth_rates`.
    The exit-multiple method is used when both `exit_multiple` and
    `final_ebitda` are given.

    Returns:
        Dictionary with projected flows, present values, terminal value,
        enterprise and equity value
    """
    if cash_flows is None:
        if current_fcf is None or not growth_rates:
            raise ValueError("Provide cash_flows or current_fcf with growth_rates")
        cash_flows = project_cash_flows(current_fcf, growth_rates)
    cash_flows = [float(cf) for cf in cash_flows]
    if not cash_flows:
        raise ValueError("At least one projected cash flow is required")

    pv_flows = discount_cash_flows(cash_flows, wacc)
    n = len(cash_flows)

    if exit_multiple is not None and final_ebitda is not None:
        terminal_value = calculate_terminal_value_exit_multiple(final_ebitda, exit_multiple)
        method = 'exit_multiple'
    else:
        terminal_value = calculate_terminal_value_perpetuity(cash_flows[-1], terminal_growth_rate, wacc)
        method = 'perpetuity_growth'
    pv_terminal = terminal_value / (1 + wacc) ** n

    enterprise_value = sum(pv_flows) + pv_terminal
    equity_value = enterprise_value - net_debt
    per_share = equity_value / shares_outstanding if shares_outstanding > 0 else None

    return {
        'projected_fcf': [round(cf, 2) for cf in cash_flows],
        'pv_cash_flows': [round(pv, 2) for pv in pv_flows],
        'terminal_value': round(terminal_value, 2),
        'pv_terminal_value': round(pv_terminal, 2),
        'terminal_method': method,
        'enterprise_value': round(enterprise_value, 2),
        'equity_value': round(equity_value, 2),
        'fair_value_per_share': round(per_share, 4) if per_share is not None else None,
        'wacc': round(wacc * 100, 2),
        'terminal_growth_rate': round(terminal_growth_rate * 100, 2),
        'projection_years': n,
        'tv_as_percentage_of_ev': round(pv_terminal / enterprise_value * 100, 1) if enterprise_value > 0 else None,
    }


def sensitivity_analysis(
    cash_flows: Sequence[float],
    wacc: float,
    terminal_growth_rate: float = config.DEFAULT_TERMINAL_GROWTH,
    net_debt: float = 0,
    shares_outstanding: float = 0,
    wacc_step: float = 0.01,
    growth_step: float = 0.005,
) -> Dict[str, Any]:
    """
    Equity value grid over WACC (columns) and terminal growth (rows).

    Combinations where WACC does not exceed growth are left as None.
    """
    wacc_values = [wacc + k * wacc_step for k in range(-2, 3)]
    growth_values = [terminal_growth_rate + k * growth_step for k in range(-2, 3)]

    grid = []
    for g in growth_values:
        row = []
        for w in wacc_values:
            if w <= g or w <= 0:
                row.append(None)
                continue
            result = dcf_valuation(w, cash_flows=cash_flows, terminal_growth_rate=g,
                                   net_debt=net_debt, shares_outstanding=shares_outstanding)
            row.append(result['fair_value_per_share'] if shares_outstanding > 0 else result['equity_value'])
        grid.append(row)

    values = np.array([v for row in grid for v in row if v is not None], dtype=float)
    return {
        'wacc_values': [round(w * 100, 2) for w in wacc_values],
        'growth_values': [round(g * 100, 2) for g in growth_values],
        'values': grid,
        'min': round(float(values.min()), 2) if values.size else None,
        'max': round(float(values.max()), 2) if values.size else None,
    }
