"""
Valuation and Investment Analysis
Time value of money, capital budgeting and company valuation.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy.optimize import brentq

from finclick import config
from finclick.analysis.base import build_result, require, require_statement, resolve_benchmarks, rounded
from finclick.analysis.fundamental.profitability import calculate_roe
from finclick.analysis.fundamental.valuation.dcf import (
    calculate_cost_of_equity, calculate_wacc, dcf_valuation, sensitivity_analysis
)
from finclick.analysis.fundamental.valuation.ddm import (
    estimate_growth_rate, gordon_growth_model, h_model_ddm, multi_stage_ddm
)
from finclick.analysis.fundamental.valuation.ratios import enterprise_value
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.exceptions import InsufficientDataError
from finclick.core.utils import cagr, clip_score, round_or_none, safe_divide
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement, sort_statements

logger = logging.getLogger(__name__)

CATEGORY = 'intermediate.valuation'

# Haircuts applied to book values in a liquidation
_LIQUIDATION_RECOVERY = {
    'cash': 1.0, 'marketable_securities': 0.95, 'accounts_receivable': 0.8, 'inventory': 0.6,
    'other_current_assets': 0.5, 'ppe': 0.5, 'intangible_assets': 0.0, 'investments': 0.7,
    'other_non_current_assets': 0.3,
}


# Capital budgeting primitives

def npv(rate: float, cash_flows: Sequence[float]) -> float:
    """
    Net present value, first flow at t = 0.

    Formula:
        NPV = sum(CF_t / (1 + r)^t)
    """
    return float(sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows)))


def irr_roots(cash_flows: Sequence[float], low: float = -0.99, high: float = 10.0,
              steps: int = 2000) -> List[float]:
    """
    Every internal rate of return in [low, high].

    Brackets sign changes of NPV on a grid and refines each with Brent's
    method; non-conventional flows may have several roots or none.
    """
    grid = np.linspace(low, high, steps)
    values = [npv(r, cash_flows) for r in grid]
    roots = []
    for i in range(len(grid) - 1):
        a, b = values[i], values[i + 1]
        if a == 0:
            roots.append(float(grid[i]))
        elif a * b < 0:
            roots.append(float(brentq(npv, grid[i], grid[i + 1], args=(cash_flows,))))
    return sorted({round(r, 8) for r in roots})


def mirr(cash_flows: Sequence[float], finance_rate: float, reinvestment_rate: float) -> Optional[float]:
    """
    Modified IRR.

    Formula:
        MIRR = (FV(positive flows, reinvest) / PV(negative flows, finance))^(1/n) - 1
    """
    n = len(cash_flows) - 1
    fv_positive = sum(cf * (1 + reinvestment_rate) ** (n - t) for t, cf in enumerate(cash_flows) if cf > 0)
    pv_negative = -sum(cf / (1 + finance_rate) ** t for t, cf in enumerate(cash_flows) if cf < 0)
    if n <= 0 or pv_negative <= 0 or fv_positive <= 0:
        return None
    return (fv_positive / pv_negative) ** (1 / n) - 1


def payback_period(cash_flows: Sequence[float], rate: Optional[float] = None) -> Optional[float]:
    """Years until cumulative (discounted) flows turn non-negative, interpolated."""
    cumulative = 0.0
    for t, cf in enumerate(cash_flows):
        flow = cf / (1 + rate) ** t if rate is not None else cf
        previous = cumulative
        cumulative += flow
        if t > 0 and previous < 0 <= cumulative:
            return t - 1 + (-previous / flow)
    return None


def profitability_index(rate: float, cash_flows: Sequence[float]) -> Optional[float]:
    """PV of future flows / initial outlay"""
    outlay = -cash_flows[0]
    if outlay <= 0:
        return None
    return npv(rate, [0.0] + list(cash_flows[1:])) / outlay


def equivalent_annual_annuity(rate: float, cash_flows: Sequence[float]) -> Optional[float]:
    n = len(cash_flows) - 1
    if n <= 0:
        return None
    if rate == 0:
        return npv(rate, cash_flows) / n
    return npv(rate, cash_flows) * rate / (1 - (1 + rate) ** -n)


def _flows(cash_flows: Any, analysis_id: str) -> List[float]:
    require(cash_flows is not None and len(cash_flows) >= 2, "At least two cash flows are required", analysis_id)
    flows = [float(cf) for cf in cash_flows]
    require(any(cf < 0 for cf in flows) and any(cf > 0 for cf in flows),
            "Cash flows must contain an outlay and a return", analysis_id)
    return flows


def _project_metrics(flows: List[float], rate: float) -> Dict[str, Any]:
    roots = irr_roots(flows)
    return {
        'npv': npv(rate, flows),
        'irr': roots[0] if len(roots) == 1 else None,
        'irr_candidates': roots,
        'profitability_index': profitability_index(rate, flows),
        'payback_years': payback_period(flows),
        'discounted_payback_years': payback_period(flows, rate),
        'mirr': mirr(flows, rate, rate),
    }


def _capital_costs(st: FinancialStatement, benchmarks: IndustryBenchmarks, beta: float = 1.0,
                   cost_of_debt: Optional[float] = None, tax_rate: Optional[float] = None) -> Dict[str, float]:
    rf = benchmarks.market.get('risk_free_rate', config.RISK_FREE_RATE)
    premium = benchmarks.market.get('market_risk_premium', config.MARKET_RISK_PREMIUM)
    tax = tax_rate if tax_rate is not None else (st.effective_tax_rate or config.DEFAULT_TAX_RATE)
    re = calculate_cost_of_equity(beta, rf, premium)
    if cost_of_debt is None:
        cost_of_debt = safe_divide(st.interest_expense, st.total_debt) or rf + 0.02
    equity = st.market_cap or max(st.total_equity, 0.0)
    wacc = calculate_wacc(equity, st.total_debt, re, cost_of_debt, tax)
    return {'cost_of_equity': re, 'cost_of_debt': cost_of_debt, 'tax_rate': tax, **wacc}


# Catalogue analyses

def time_value_of_money_analysis(present_value: Optional[float] = None,
                                 future_value: Optional[float] = None,
                                 rate: float = config.DEFAULT_DISCOUNT_RATE,
                                 periods: Optional[float] = None,
                                 payment: float = 0.0,
                                 compounding: int = 1) -> AnalysisResult:
    """
    Solve for the missing one of present value, future value or number of
    periods, with an optional level payment per period.

    Formula:
        FV = PV(1+i)^n + PMT((1+i)^n - 1)/i,  i = rate / compounding
    """
    analysis_id = 'inter.valuation.tvm'
    given = sum(v is not None for v in (present_value, future_value, periods))
    require(given >= 2, "Two of present value, future value and periods are required", analysis_id)
    i = rate / compounding

    def growth(n):
        return (1 + i) ** n

    def annuity(n):
        return payment * ((growth(n) - 1) / i if i else n)

    if future_value is None:
        n = periods * compounding
        future_value = present_value * growth(n) + annuity(n)
        solved = 'future_value'
    elif present_value is None:
        n = periods * compounding
        present_value = (future_value - annuity(n)) / growth(n)
        solved = 'present_value'
    else:
        require(present_value > 0 and future_value > 0 and not payment and i > 0,
                "Periods can only be solved for positive values without payments", analysis_id)
        periods = math.log(future_value / present_value) / math.log(1 + i) / compounding
        solved = 'periods'

    effective = (1 + i) ** compounding - 1
    return build_result(
        analysis_id, 'Time Value of Money Analysis', CATEGORY,
        data={'present_value': round(present_value, 2), 'future_value': round(future_value, 2),
              'periods': round(periods, 4), 'rate': rate, 'payment': payment, 'compounding': compounding,
              'effective_annual_rate_pct': round(effective * 100, 4), 'solved_for': solved,
              'rule_of_72_years': round(72 / (rate * 100), 2) if rate > 0 else None},
        interpretation=(f"At {rate * 100:.2f}% a present value of {present_value:,.2f} corresponds to "
                        f"{future_value:,.2f} after {periods:.2f} years."),
        value={'future_value': future_value, 'present_value': present_value, 'periods': periods}[solved],
    )


def npv_analysis(cash_flows: Sequence[float],
                 discount_rate: float = config.DEFAULT_DISCOUNT_RATE) -> AnalysisResult:
    """Net present value with the NPV profile across discount rates."""
    analysis_id = 'inter.valuation.npv'
    flows = _flows(cash_flows, analysis_id)
    value = npv(discount_rate, flows)
    pv_inflows = npv(discount_rate, [max(cf, 0.0) for cf in flows])
    profile = {f"{r:.0%}": round(npv(r, flows), 2) for r in np.arange(0.0, 0.31, 0.05)}

    return build_result(
        analysis_id, 'Net Present Value Analysis', CATEGORY,
        data={'npv': round(value, 2), 'discount_rate': discount_rate,
              'pv_inflows': round(pv_inflows, 2), 'pv_outflows': round(pv_inflows - value, 2),
              'discounted_flows': [round(cf / (1 + discount_rate) ** t, 2) for t, cf in enumerate(flows)],
              'npv_profile': profile, 'decision': 'accept' if value > 0 else 'reject'},
        interpretation=(f"NPV of {value:,.2f} at {discount_rate * 100:.1f}%: the project "
                        f"{'creates' if value > 0 else 'destroys'} value."),
        recommendations=[] if value > 0 else ['Reject or restructure the project; it does not earn its cost of capital'],
        value=value, benchmark=0.0,
        evaluation=Rating.GOOD if value > 0 else Rating.WEAK,
    )


def irr_analysis(cash_flows: Sequence[float],
                 discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                 reinvestment_rate: Optional[float] = None) -> AnalysisResult:
    """
    Internal rate of return by root finding, with detection of multiple
    IRRs for non-conventional flows and the modified IRR.
    """
    analysis_id = 'inter.valuation.irr'
    flows = _flows(cash_flows, analysis_id)
    roots = irr_roots(flows)
    signs = [np.sign(cf) for cf in flows if cf != 0]
    sign_changes = int(sum(1 for a, b in zip(signs, signs[1:]) if a != b))
    modified = mirr(flows, discount_rate, reinvestment_rate if reinvestment_rate is not None else discount_rate)
    irr = roots[0] if len(roots) == 1 else None

    if not roots:
        text = 'No IRR exists for these cash flows; rely on NPV.'
    elif len(roots) > 1:
        text = f"{len(roots)} IRRs found ({', '.join(f'{r * 100:.1f}%' for r in roots)}); use MIRR or NPV."
    else:
        text = f"IRR of {irr * 100:.2f}% against a hurdle of {discount_rate * 100:.1f}%."

    return build_result(
        analysis_id, 'Internal Rate of Return Analysis', CATEGORY,
        data={'irr': round_or_none(irr, 6), 'irr_candidates': roots, 'multiple_irr': len(roots) > 1,
              'sign_changes': sign_changes, 'mirr': round_or_none(modified, 6), 'hurdle_rate': discount_rate,
              'conventional': sign_changes == 1},
        interpretation=text,
        recommendations=(['Non-conventional cash flows: decide on MIRR'] if sign_changes > 1 else []),
        value=(irr if irr is not None else modified),
        benchmark=discount_rate,
    )


def payback_analysis(cash_flows: Sequence[float],
                     discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                     max_payback_years: Optional[float] = None) -> AnalysisResult:
    """Simple and discounted payback periods."""
    analysis_id = 'inter.valuation.payback'
    flows = _flows(cash_flows, analysis_id)
    simple = payback_period(flows)
    discounted = payback_period(flows, discount_rate)
    cumulative = np.cumsum(flows).tolist()
    horizon = len(flows) - 1
    target = max_payback_years or horizon * 0.6

    return build_result(
        analysis_id, 'Payback Period Analysis', CATEGORY,
        data={'simple_payback_years': round_or_none(simple, 2),
              'discounted_payback_years': round_or_none(discounted, 2),
              'cumulative_cash_flows': [round(c, 2) for c in cumulative],
              'project_life_years': horizon, 'target_years': round(target, 2),
              'recovered': simple is not None},
        interpretation=(f"The outlay is recovered in {simple:.1f} years ({discounted:.1f} discounted)."
                        if simple is not None and discounted is not None
                        else 'The outlay is not recovered on a discounted basis within the project life.'
                        if simple is not None else 'The outlay is not recovered within the project life.'),
        recommendations=([] if simple is not None and simple <= target else ['Payback exceeds the target period']),
        value=simple, benchmark=target, higher_is_better=False,
    )


def dcf_analysis(statement: FinancialStatement,
                 statements: Optional[List[FinancialStatement]] = None,
                 benchmarks: Optional[IndustryBenchmarks] = None,
                 growth_rates: Optional[Sequence[float]] = None,
                 discount_rate: Optional[float] = None,
                 terminal_growth: float = config.DEFAULT_TERMINAL_GROWTH,
                 projection_years: int = config.FORECAST_HORIZON,
                 beta: float = 1.0) -> AnalysisResult:
    """
    Discounted cash flow valuation of the company's free cash flow.

    Growth fades from the historical revenue CAGR (capped at 15%) to the
    terminal rate; the discount rate defaults to the WACC.
    """
    analysis_id = 'inter.valuation.dcf'
    st = require_statement(statement, analysis_id)
    require(st.free_cash_flow > 0, "Positive free cash flow is required for a DCF", analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    costs = _capital_costs(st, benchmarks, beta)
    wacc = discount_rate or costs['wacc']
    require(wacc > terminal_growth, "Discount rate must exceed terminal growth", analysis_id)

    if growth_rates is None:
        ordered = sort_statements(statements or [st])
        history = cagr(ordered[0].revenue, ordered[-1].revenue, len(ordered) - 1) if len(ordered) > 1 else None
        start = min(max((history if history is not None else benchmarks.get('revenue_growth', 5.0)) / 100, 0.0), 0.15)
        growth_rates = list(np.linspace(start, terminal_growth, projection_years))

    valuation = dcf_valuation(wacc, current_fcf=st.free_cash_flow, growth_rates=growth_rates,
                              terminal_growth_rate=terminal_growth, shares_outstanding=st.shares_outstanding,
                              net_debt=st.net_debt)
    grid = sensitivity_analysis(valuation['projected_fcf'], wacc, terminal_growth, st.net_debt,
                                st.shares_outstanding)
    per_share = valuation['fair_value_per_share']
    upside = (per_share / st.share_price - 1) * 100 if per_share is not None and st.share_price else None

    recommendations = []
    if valuation['tv_as_percentage_of_ev'] and valuation['tv_as_percentage_of_ev'] > 75:
        recommendations.append('Terminal value dominates; test the growth assumption')
    if upside is not None:
        recommendations.append('Market price below DCF value' if upside > 15 else
                               'Market price above DCF value' if upside < -15 else 'Market price close to DCF value')

    return build_result(
        analysis_id, 'Discounted Cash Flow Analysis', CATEGORY,
        data={**valuation, 'growth_rates': [round(g * 100, 2) for g in growth_rates],
              'capital_costs': rounded(costs, 4), 'sensitivity': grid, 'upside_pct': round_or_none(upside, 2)},
        interpretation=(f"Enterprise value {valuation['enterprise_value']:,.0f} and equity value "
                        f"{valuation['equity_value']:,.0f} at a {wacc * 100:.1f}% discount rate."),
        recommendations=recommendations,
        value=per_share if per_share is not None else valuation['equity_value'],
        benchmark=st.share_price if per_share is not None and st.share_price else None,
    )


def roi_analysis(statement: Optional[FinancialStatement] = None,
                 investment: Optional[float] = None,
                 gain: Optional[float] = None,
                 years: float = 1.0,
                 benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Return on investment for a given investment and gain, or on the
    company's invested capital when none is supplied.
    """
    analysis_id = 'inter.valuation.roi'
    benchmarks = resolve_benchmarks(benchmarks)
    if investment is None:
        st = require_statement(statement, analysis_id)
        require(st.invested_capital > 0, "Invested capital must be positive", analysis_id)
        investment, gain, basis = st.invested_capital, st.net_income, 'company'
    else:
        require(investment > 0 and gain is not None, "Investment and gain are required", analysis_id)
        basis = 'project'
    roi = gain / investment * 100
    annualised = ((1 + gain / investment) ** (1 / years) - 1) * 100 if years > 0 and gain > -investment else None
    benchmark = benchmarks.get('roic')

    return build_result(
        analysis_id, 'Return on Investment Analysis', CATEGORY,
        data={'roi_pct': round(roi, 2), 'annualised_roi_pct': round_or_none(annualised, 2),
              'investment': investment, 'gain': gain, 'years': years, 'basis': basis},
        interpretation=f"Return on investment of {roi:.1f}%" + (f" ({annualised:.1f}% a year)." if annualised is not None
                                                               and years != 1 else '.'),
        value=roi, benchmark=benchmark,
    )


def eva_analysis(statement: FinancialStatement,
                 benchmarks: Optional[IndustryBenchmarks] = None,
                 wacc: Optional[float] = None,
                 beta: float = 1.0) -> AnalysisResult:
    """
    Economic value added.

    Formula:
        EVA = NOPAT - WACC x Invested Capital,  NOPAT = EBIT x (1 - t)
    """
    analysis_id = 'inter.valuation.eva'
    st = require_statement(statement, analysis_id)
    require(st.invested_capital > 0, "Invested capital must be positive", analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    costs = _capital_costs(st, benchmarks, beta)
    wacc = wacc or costs['wacc']

    nopat = st.ebit * (1 - costs['tax_rate'])
    capital_charge = wacc * st.invested_capital
    eva = nopat - capital_charge
    roic = nopat / st.invested_capital
    spread = roic - wacc

    return build_result(
        analysis_id, 'Economic Value Added Analysis', CATEGORY,
        data={'nopat': round(nopat, 2), 'invested_capital': round(st.invested_capital, 2),
              'wacc_pct': round(wacc * 100, 2), 'capital_charge': round(capital_charge, 2),
              'eva': round(eva, 2), 'roic_pct': round(roic * 100, 2), 'spread_pct': round(spread * 100, 2),
              'eva_margin_pct': round_or_none(safe_divide(eva, st.revenue) * 100, 2) if st.revenue else None},
        interpretation=(f"EVA of {eva:,.0f}: ROIC {roic * 100:.1f}% vs WACC {wacc * 100:.1f}%, "
                        f"the company {'creates' if eva > 0 else 'destroys'} shareholder value."),
        recommendations=([] if eva > 0 else ['Raise returns on capital or release under-earning capital']),
        value=eva, benchmark=0.0,
        evaluation=Rating.GOOD if eva > 0 else Rating.WEAK,
    )


def mva_analysis(statement: FinancialStatement,
                 benchmarks: Optional[IndustryBenchmarks] = None,
                 wacc: Optional[float] = None) -> AnalysisResult:
    """
    Market value added.

    Formula:
        MVA = (Market Cap + Debt) - Invested Capital
    """
    analysis_id = 'inter.valuation.mva'
    st = require_statement(statement, analysis_id, needs=('share_price', 'shares_outstanding'))
    benchmarks = resolve_benchmarks(benchmarks)
    market_value = st.market_cap + st.total_debt
    mva = market_value - st.invested_capital
    wacc = wacc or _capital_costs(st, benchmarks)['wacc']
    eva = st.ebit * (1 - (st.effective_tax_rate or config.DEFAULT_TAX_RATE)) - wacc * st.invested_capital
    implied_eva = mva * wacc

    return build_result(
        analysis_id, 'Market Value Added Analysis', CATEGORY,
        data={'market_value': round(market_value, 2), 'invested_capital': round(st.invested_capital, 2),
              'mva': round(mva, 2), 'market_to_book': round_or_none(safe_divide(market_value, st.invested_capital), 3),
              'current_eva': round(eva, 2), 'eva_implied_by_market': round(implied_eva, 2)},
        interpretation=(f"The market values the firm {abs(mva):,.0f} {'above' if mva >= 0 else 'below'} "
                        f"the capital invested in it."),
        recommendations=(['The market expects more value creation than current EVA delivers']
                         if implied_eva > eva > 0 else []),
        value=mva, benchmark=0.0,
        evaluation=Rating.GOOD if mva > 0 else Rating.WEAK,
    )


def _dividend_inputs(st: FinancialStatement, previous: Optional[FinancialStatement],
                     benchmarks: IndustryBenchmarks, required_return: Optional[float], beta: float):
    dps = st.dividends_per_share or safe_divide(abs(st.dividends_paid), st.shares_outstanding, 0.0)
    roe = calculate_roe(st, previous).get('roe')
    payout = safe_divide(dps * st.shares_outstanding, st.net_income) if st.net_income > 0 else None
    growth = estimate_growth_rate(roe / 100, payout) if roe is not None and payout is not None else None
    if required_return is None:
        required_return = _capital_costs(st, benchmarks, beta)['cost_of_equity']
    return dps, growth, payout, required_return


def gordon_growth_analysis(statement: FinancialStatement,
                           previous: Optional[FinancialStatement] = None,
                           benchmarks: Optional[IndustryBenchmarks] = None,
                           growth_rate: Optional[float] = None,
                           required_return: Optional[float] = None,
                           beta: float = 1.0) -> AnalysisResult:
    """
    Gordon constant-growth value per share. Growth defaults to the
    sustainable rate ROE x retention (capped below the required return).
    """
    analysis_id = 'inter.valuation.gordon'
    st = require_statement(statement, analysis_id, needs=('shares_outstanding',))
    benchmarks = resolve_benchmarks(benchmarks)
    dps, sustainable, payout, required_return = _dividend_inputs(st, previous, benchmarks, required_return, beta)
    require(dps > 0, "The company pays no dividend", analysis_id)
    growth = growth_rate if growth_rate is not None else min(sustainable or config.DEFAULT_TERMINAL_GROWTH,
                                                              required_return - 0.01)
    result = gordon_growth_model(dps, growth, required_return)
    require(result.get('fair_value') is not None, result.get('error', 'Model not applicable'), analysis_id)
    fair = result['fair_value']

    return build_result(
        analysis_id, 'Gordon Growth Model Analysis', CATEGORY,
        data={**result, 'payout_ratio': round_or_none(payout), 'sustainable_growth_pct':
              round_or_none(sustainable * 100 if sustainable is not None else None, 2)},
        interpretation=(f"Gordon value of {fair:,.2f} per share with {growth * 100:.1f}% growth and a "
                        f"{required_return * 100:.1f}% required return."),
        value=fair, benchmark=st.share_price or None,
    )


def dividend_discount_analysis(statement: FinancialStatement,
                               previous: Optional[FinancialStatement] = None,
                               benchmarks: Optional[IndustryBenchmarks] = None,
                               stages: Optional[Sequence] = None,
                               terminal_growth: float = config.DEFAULT_TERMINAL_GROWTH,
                               required_return: Optional[float] = None,
                               beta: float = 1.0) -> AnalysisResult:
    """
    Multi-stage dividend discount value with an H-model cross-check.

    Args:
        stages: (years, growth) pairs; defaults to five years at the
            sustainable growth rate then three years fading halfway to
            terminal growth.
    """
    analysis_id = 'inter.valuation.ddm'
    st = require_statement(statement, analysis_id, needs=('shares_outstanding',))
    benchmarks = resolve_benchmarks(benchmarks)
    dps, sustainable, _, required_return = _dividend_inputs(st, previous, benchmarks, required_return, beta)
    require(dps > 0, "The company pays no dividend", analysis_id)
    high = max(sustainable if sustainable is not None else 0.05, terminal_growth)
    stages = stages or [(5, high), (3, (high + terminal_growth) / 2)]

    result = multi_stage_ddm(dps, stages, terminal_growth, required_return)
    require(result.get('fair_value') is not None, result.get('error', 'Model not applicable'), analysis_id)
    h_model = h_model_ddm(dps, stages[0][1], terminal_growth, sum(y for y, _ in stages) / 2, required_return)

    return build_result(
        analysis_id, 'Dividend Discount Model Analysis', CATEGORY,
        data={**result, 'stages': [{'years': y, 'growth_pct': round(g * 100, 2)} for y, g in stages],
              'h_model_value': h_model.get('fair_value')},
        interpretation=(f"Multi-stage DDM value of {result['fair_value']:,.2f} per share "
                        f"(H-model {h_model.get('fair_value') or 0:,.2f})."),
        value=result['fair_value'], benchmark=st.share_price or None,
    )


def _multiples_values(st: FinancialStatement, benchmarks: IndustryBenchmarks) -> Dict[str, float]:
    """Per-share values implied by the sector's multiples."""
    shares = st.shares_outstanding
    values = {}
    if st.eps > 0 and benchmarks.get('pe_ratio'):
        values['pe'] = st.eps * benchmarks.get('pe_ratio')
    if st.book_value_per_share > 0 and benchmarks.get('pb_ratio'):
        values['pb'] = st.book_value_per_share * benchmarks.get('pb_ratio')
    if st.ebitda > 0 and benchmarks.get('ev_ebitda') and shares:
        values['ev_ebitda'] = (st.ebitda * benchmarks.get('ev_ebitda') - st.net_debt) / shares
    if st.revenue > 0 and benchmarks.get('ps_ratio') and shares:
        values['ps'] = st.revenue * benchmarks.get('ps_ratio') / shares
    return {k: v for k, v in values.items() if v > 0}


def fair_value_analysis(statement: FinancialStatement,
                        statements: Optional[List[FinancialStatement]] = None,
                        previous: Optional[FinancialStatement] = None,
                        benchmarks: Optional[IndustryBenchmarks] = None,
                        weights: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Fair value per share blended from DCF, sector multiples and DDM,
    re-weighting over the methods that apply.
    """
    analysis_id = 'inter.valuation.fair_value'
    st = require_statement(statement, analysis_id, needs=('shares_outstanding',))
    benchmarks = resolve_benchmarks(benchmarks)
    weights = weights or {'dcf': 0.5, 'multiples': 0.35, 'ddm': 0.15}

    estimates = {}
    if st.free_cash_flow > 0:
        try:
            estimates['dcf'] = dcf_analysis(st, statements, benchmarks).value
        except InsufficientDataError as e:
            logger.debug(f"DCF estimate not applicable: {e}")
    multiples = _multiples_values(st, benchmarks)
    if multiples:
        estimates['multiples'] = float(np.median(list(multiples.values())))
    if st.dividends_per_share or st.dividends_paid:
        dps, growth, _, re = _dividend_inputs(st, previous, benchmarks, None, 1.0)
        ddm = gordon_growth_model(dps, min(growth or config.DEFAULT_TERMINAL_GROWTH, re - 0.01), re)
        if ddm.get('fair_value'):
            estimates['ddm'] = ddm['fair_value']
    estimates = {k: v for k, v in estimates.items() if v is not None and v > 0}
    require(estimates, "No valuation method applies", analysis_id)

    total_weight = sum(weights.get(k, 0) for k in estimates) or len(estimates)
    fair = sum(v * weights.get(k, 1) for k, v in estimates.items()) / total_weight
    upside = (fair / st.share_price - 1) * 100 if st.share_price else None
    if upside is None:
        verdict = 'no_market_price'
    elif upside > 15:
        verdict = 'undervalued'
    elif upside < -15:
        verdict = 'overvalued'
    else:
        verdict = 'fairly_valued'

    return build_result(
        analysis_id, 'Fair Value Analysis', CATEGORY,
        data={'estimates': rounded(estimates, 4), 'multiples_detail': rounded(multiples, 4),
              'weights': {k: weights.get(k, 1) for k in estimates}, 'fair_value': round(fair, 4),
              'share_price': st.share_price or None, 'upside_pct': round_or_none(upside, 2),
              'range': {'low': round(min(estimates.values()), 4), 'high': round(max(estimates.values()), 4)},
              'verdict': verdict},
        interpretation=(f"Blended fair value {fair:,.2f} per share"
                        + (f", {abs(upside):.0f}% {'above' if upside >= 0 else 'below'} the market price."
                           if upside is not None else '.')),
        value=fair, benchmark=st.share_price or None,
    )


def cost_benefit_analysis(benefits: Sequence[float], costs: Sequence[float],
                          discount_rate: float = config.DEFAULT_DISCOUNT_RATE) -> AnalysisResult:
    """
    Present value of benefits against costs per period (t = 0 first).

    Formula:
        BCR = PV(benefits) / PV(costs)
    """
    analysis_id = 'inter.valuation.cost_benefit'
    require(benefits and costs, "Benefit and cost streams are required", analysis_id)
    n = max(len(benefits), len(costs))
    b = list(benefits) + [0.0] * (n - len(benefits))
    c = list(costs) + [0.0] * (n - len(costs))
    pv_b, pv_c = npv(discount_rate, b), npv(discount_rate, c)
    require(pv_c > 0, "Costs must have a positive present value", analysis_id)
    bcr = pv_b / pv_c
    net = pv_b - pv_c

    return build_result(
        analysis_id, 'Cost-Benefit Analysis', CATEGORY,
        data={'pv_benefits': round(pv_b, 2), 'pv_costs': round(pv_c, 2), 'net_benefit': round(net, 2),
              'benefit_cost_ratio': round(bcr, 4), 'discount_rate': discount_rate,
              'break_even_benefit_reduction_pct': round((1 - 1 / bcr) * 100, 2) if bcr > 0 else None},
        interpretation=f"Each unit of cost returns {bcr:.2f} of benefit in present value terms.",
        recommendations=[] if bcr >= 1 else ['Benefits do not justify the costs'],
        value=bcr, benchmark=1.0,
    )


def financial_feasibility_analysis(cash_flows: Sequence[float],
                                   discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                                   max_payback_years: Optional[float] = None,
                                   flow_shock: float = 0.10) -> AnalysisResult:
    """
    Feasibility tests on a project: NPV, IRR vs hurdle, payback, and NPV
    under pessimistic cash flows and a higher discount rate.
    """
    analysis_id = 'inter.valuation.feasibility'
    flows = _flows(cash_flows, analysis_id)
    metrics = _project_metrics(flows, discount_rate)
    target = max_payback_years or (len(flows) - 1) * 0.6
    pessimistic = [flows[0]] + [cf * (1 - flow_shock) for cf in flows[1:]]
    stress = {
        'npv_flows_down': npv(discount_rate, pessimistic),
        'npv_rate_up_2pts': npv(discount_rate + 0.02, flows),
    }
    irr = metrics['irr'] or metrics['mirr']
    tests = {
        'positive_npv': metrics['npv'] > 0,
        'irr_above_hurdle': irr is not None and irr > discount_rate,
        'payback_within_target': metrics['payback_years'] is not None and metrics['payback_years'] <= target,
        'robust_to_lower_flows': stress['npv_flows_down'] > 0,
        'robust_to_higher_rate': stress['npv_rate_up_2pts'] > 0,
    }
    passed = sum(tests.values())
    score = passed / len(tests) * 100
    verdict = 'feasible' if tests['positive_npv'] and passed >= 4 else 'marginal' if tests['positive_npv'] else 'not_feasible'

    return build_result(
        analysis_id, 'Financial Feasibility Analysis', CATEGORY,
        data={'metrics': rounded({k: v for k, v in metrics.items() if k != 'irr_candidates'}, 4),
              'stress': rounded(stress, 2), 'tests': tests, 'verdict': verdict},
        interpretation=f"The project is {verdict.replace('_', ' ')}: {passed} of {len(tests)} feasibility tests passed.",
        recommendations=[f"Failed test: {k.replace('_', ' ')}" for k, ok in tests.items() if not ok],
        value=score, evaluation=rate_score(score),
    )


def investment_project_analysis(cash_flows: Sequence[float],
                                discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                                risk_premium: float = 0.0) -> AnalysisResult:
    """
    Composite appraisal of one project on NPV, IRR, profitability index
    and payback, at a risk-adjusted discount rate.
    """
    analysis_id = 'inter.valuation.project'
    flows = _flows(cash_flows, analysis_id)
    rate = discount_rate + risk_premium
    m = _project_metrics(flows, rate)
    life = len(flows) - 1
    irr = m['irr'] or m['mirr']

    scores = {
        'npv': 100.0 if m['npv'] > 0 else 0.0,
        'irr': clip_score(50 + (irr - rate) * 500) if irr is not None else 0.0,
        'profitability_index': clip_score((m['profitability_index'] or 0) * 50),
        'payback': clip_score((1 - m['payback_years'] / life) * 100) if m['payback_years'] is not None else 0.0,
    }
    composite = float(np.mean(list(scores.values())))

    return build_result(
        analysis_id, 'Investment Project Analysis', CATEGORY,
        data={'discount_rate': rate, 'metrics': rounded({k: v for k, v in m.items() if k != 'irr_candidates'}, 4),
              'irr_candidates': m['irr_candidates'], 'scores': rounded(scores, 1),
              'equivalent_annual_annuity': round_or_none(equivalent_annual_annuity(rate, flows), 2)},
        interpretation=(f"Project scores {composite:.0f}/100; NPV {m['npv']:,.0f} at {rate * 100:.1f}%."),
        recommendations=(['Accept the project'] if m['npv'] > 0 and composite >= 55 else
                         ['Improve the project economics before committing'] if m['npv'] > 0 else ['Reject the project']),
        value=composite, evaluation=rate_score(composite),
    )


def investment_alternatives_analysis(alternatives: Dict[str, Sequence[float]],
                                     discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                                     budget: Optional[float] = None) -> AnalysisResult:
    """
    Rank mutually exclusive alternatives by NPV, equivalent annual annuity
    (for unequal lives), IRR and profitability index; optionally restrict
    to those whose outlay fits the budget.
    """
    analysis_id = 'inter.valuation.alternatives'
    require(alternatives and len(alternatives) >= 2, "At least two alternatives are required", analysis_id)

    table = {}
    for name, cash_flows in alternatives.items():
        flows = _flows(cash_flows, analysis_id)
        m = _project_metrics(flows, discount_rate)
        table[name] = {
            'npv': round(m['npv'], 2), 'irr': round_or_none(m['irr'], 6),
            'profitability_index': round_or_none(m['profitability_index'], 4),
            'payback_years': round_or_none(m['payback_years'], 2),
            'eaa': round_or_none(equivalent_annual_annuity(discount_rate, flows), 2),
            'life_years': len(flows) - 1, 'outlay': -flows[0],
            'within_budget': budget is None or -flows[0] <= budget,
        }
    unequal = len({t['life_years'] for t in table.values()}) > 1
    key = 'eaa' if unequal else 'npv'
    eligible = [n for n, t in table.items() if t['within_budget'] and t['npv'] > 0]
    ranking = sorted(table, key=lambda n: (table[n]['within_budget'], table[n][key] or 0), reverse=True)
    best = next((n for n in ranking if n in eligible), None)
    rank_by_irr = sorted(table, key=lambda n: table[n]['irr'] or -1, reverse=True)

    return build_result(
        analysis_id, 'Investment Alternatives Analysis', CATEGORY,
        data={'alternatives': table, 'ranking': ranking, 'ranking_basis': key, 'ranking_by_irr': rank_by_irr,
              'conflict': rank_by_irr[0] != ranking[0], 'best': best},
        interpretation=(f"{best} is preferred on {key.upper()}." if best else
                        'No alternative creates value within the budget.'),
        recommendations=(['NPV and IRR rankings conflict; follow NPV'] if rank_by_irr[0] != ranking[0] else []),
        value=table[best][key] if best else None,
    )


def company_valuation_analysis(statement: FinancialStatement,
                               statements: Optional[List[FinancialStatement]] = None,
                               benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Equity value by three approaches: market multiples, asset based (book
    and liquidation) and DCF, with the resulting valuation range.
    """
    analysis_id = 'inter.valuation.company'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    benchmarks = resolve_benchmarks(benchmarks)

    approaches = {}
    multiples = _multiples_values(st, benchmarks)
    if multiples and st.shares_outstanding:
        approaches['multiples'] = float(np.median(list(multiples.values()))) * st.shares_outstanding
    liquidation = sum(getattr(st, item) * rate for item, rate in _LIQUIDATION_RECOVERY.items()) - st.total_liabilities
    approaches['book_value'] = st.total_equity
    approaches['liquidation_value'] = liquidation
    if st.free_cash_flow > 0:
        try:
            dcf = dcf_analysis(st, statements, benchmarks)
            approaches['dcf'] = dcf.data['equity_value']
        except InsufficientDataError as e:
            logger.debug(f"DCF approach not applicable: {e}")

    going_concern = [v for k, v in approaches.items() if k in ('multiples', 'dcf') and v > 0]
    central = float(np.mean(going_concern)) if going_concern else max(st.total_equity, liquidation)
    ev = enterprise_value(st)

    return build_result(
        analysis_id, 'Company Valuation Analysis', CATEGORY,
        data={'approaches': rounded(approaches, 2), 'central_value': round(central, 2),
              'range': {'low': round(min(approaches.values()), 2), 'high': round(max(approaches.values()), 2)},
              'market_cap': st.market_cap or None, 'enterprise_value': round_or_none(ev, 2),
              'per_share': round_or_none(safe_divide(central, st.shares_outstanding), 4)},
        interpretation=(f"Central equity value {central:,.0f} "
                        f"(liquidation floor {liquidation:,.0f}, book {st.total_equity:,.0f})."),
        recommendations=(['Market value is below liquidation value'] if st.market_cap and st.market_cap < liquidation else []),
        value=central, benchmark=st.market_cap or None,
    )
