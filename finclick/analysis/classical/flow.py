"""
Flow and Movement Analysis
Cash flow structure, working capital, cost behaviour and break-even.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from finclick import config
from finclick.analysis.base import build_result, require, require_statement, resolve_benchmarks, rounded
from finclick.analysis.fundamental.efficiency import calculate_cash_conversion_cycle
from finclick.analysis.result import AnalysisResult, Rating
from finclick.core.utils import round_or_none, safe_divide
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement, sort_statements

logger = logging.getLogger(__name__)

CATEGORY = 'basic.flow'

# Margin of safety regarded as comfortable, in percent of revenue
SAFE_MARGIN_PCT = 20.0

# Sign pattern of (operating, investing, financing) cash flows
_CASH_FLOW_PATTERNS = {
    (1, -1, -1): ('mature', 'Operations fund investment and repay capital providers'),
    (1, -1, 1): ('growth', 'Operations and new financing fund expansion'),
    (1, 1, -1): ('restructuring', 'Asset sales and operations are used to repay financing'),
    (1, 1, 1): ('cash_accumulation', 'All activities bring in cash'),
    (-1, -1, 1): ('start_up', 'Financing covers operating losses and investment'),
    (-1, 1, 1): ('distress', 'Asset sales and financing cover operating cash burn'),
    (-1, 1, -1): ('decline', 'Asset sales fund operations and debt repayment'),
    (-1, -1, -1): ('cash_burn', 'Existing cash balances fund every activity'),
}


def _operating_costs(st: FinancialStatement) -> float:
    return st.revenue - st.ebit


def cost_behaviour(statement: FinancialStatement,
                   statements: Optional[List[FinancialStatement]] = None) -> Dict[str, Any]:
    """
    Split operating costs into fixed and variable parts.

    Uses the reported split when the statement carries one, the high-low
    method across years when several statements with different revenue are
    available, otherwise treats cost of sales as variable and the remaining
    operating costs as fixed.

    Returns:
        Dictionary with fixed_costs, variable_costs, variable_ratio and method
    """
    st = statement
    if st.fixed_costs or st.variable_costs:
        fixed, variable = st.fixed_costs, st.variable_costs
        method = 'reported'
    else:
        usable = [s for s in sort_statements(statements or []) if s.revenue > 0]
        high = max(usable, key=lambda s: s.revenue, default=None)
        low = min(usable, key=lambda s: s.revenue, default=None)
        rate = None
        if high is not None and high.revenue != low.revenue:
            rate = (_operating_costs(high) - _operating_costs(low)) / (high.revenue - low.revenue)
        if rate is not None and 0 < rate < 1:
            variable = rate * st.revenue
            fixed = _operating_costs(st) - variable
            method = 'high_low'
        else:
            variable = st.cost_of_goods_sold
            fixed = _operating_costs(st) - variable
            method = 'approximation'
        if fixed < 0:
            # Negative fixed cost from an unstable high-low fit
            variable, fixed = _operating_costs(st), 0.0

    return {
        'fixed_costs': round(fixed, 2),
        'variable_costs': round(variable, 2),
        'variable_ratio': round_or_none(safe_divide(variable, st.revenue), 4),
        'method': method
    }


def _break_even(st: FinancialStatement, statements, fixed_costs, variable_ratio) -> Dict[str, Any]:
    behaviour = cost_behaviour(st, statements)
    fixed = behaviour['fixed_costs'] if fixed_costs is None else fixed_costs
    ratio = behaviour['variable_ratio'] if variable_ratio is None else variable_ratio
    behaviour.update({'fixed_costs': fixed, 'variable_ratio': ratio})
    if ratio is None or ratio >= 1:
        return {**behaviour, 'contribution_margin_ratio': None, 'break_even_revenue': None}
    cm_ratio = 1 - ratio
    return {**behaviour, 'contribution_margin_ratio': round(cm_ratio, 4),
            'break_even_revenue': round(fixed / cm_ratio, 2)}


def basic_cash_flow_analysis(statement: FinancialStatement,
                             benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Sources and uses of cash by activity, free cash flow and quality of
    earnings (operating cash flow / net income).
    """
    analysis_id = 'flow.cash_basic'
    st = require_statement(statement, analysis_id)
    require(st.operating_cash_flow or st.investing_cash_flow or st.financing_cash_flow,
            "Cash flow statement is required", analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    ocf, icf, fcf_fin = st.operating_cash_flow, st.investing_cash_flow, st.financing_cash_flow
    net_change = ocf + icf + fcf_fin
    quality = safe_divide(ocf, st.net_income) if st.net_income > 0 else None
    pattern, pattern_text = _CASH_FLOW_PATTERNS.get(
        tuple(1 if v >= 0 else -1 for v in (ocf, icf, fcf_fin)), ('mixed', ''))

    reconciliation = None
    if st.beginning_cash or st.ending_cash:
        reconciliation = round(st.beginning_cash + net_change - st.ending_cash, 2)

    recs = []
    if ocf < 0:
        recs.append('Operating activities consume cash; prioritise collections and cost control')
    if quality is not None and quality < 0.8:
        recs.append('Earnings are not backed by cash; review accruals and working capital')
    if st.free_cash_flow < 0:
        recs.append('Free cash flow is negative; phase capital expenditure to cash generation')

    return build_result(
        analysis_id, 'Basic Cash Flow Analysis', CATEGORY,
        data={
            'operating': {'net_cash': ocf, 'pct_of_revenue': round_or_none(safe_divide(ocf, st.revenue) * 100, 2)
                          if st.revenue else None},
            'investing': {'net_cash': icf, 'capital_expenditures': -abs(st.capital_expenditures),
                          'acquisitions': -abs(st.acquisitions)},
            'financing': {'net_cash': fcf_fin, 'debt_issued': st.debt_issued, 'debt_repaid': -abs(st.debt_repaid),
                          'dividends_paid': -abs(st.dividends_paid),
                          'share_repurchases': -abs(st.share_repurchases)},
            'net_change_in_cash': round(net_change, 2),
            'free_cash_flow': round(st.free_cash_flow, 2),
            'quality_of_earnings': round_or_none(quality, 2),
            'pattern': pattern,
            'pattern_description': pattern_text,
            'reconciliation_difference': reconciliation,
        },
        interpretation=(f"Cash flow pattern is '{pattern}'. {pattern_text}."
                        + (f" Operating cash covers net income {quality:.2f}x." if quality is not None else '')),
        recommendations=recs,
        value=quality,
        benchmark=benchmarks.get('cash_flow_to_net_income'),
    )


def working_capital_analysis(statement: FinancialStatement,
                             previous: Optional[FinancialStatement] = None,
                             benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Working capital level, its components and the change from last year.
    """
    analysis_id = 'flow.working_capital'
    st = require_statement(statement, analysis_id, needs=('total_current_assets', 'total_current_liabilities'))
    benchmarks = resolve_benchmarks(benchmarks)

    wc = st.working_capital
    operating_wc = st.accounts_receivable + st.inventory - st.accounts_payable
    ratio = safe_divide(wc, st.total_assets)
    change = wc - previous.working_capital if previous is not None else None

    if wc < 0:
        interp = 'Negative working capital: current liabilities exceed current assets'
    elif ratio is not None and ratio < 0.1:
        interp = 'Thin working capital buffer'
    else:
        interp = 'Working capital provides a comfortable operating buffer'
    if change is not None:
        interp += f"; it {'increased' if change >= 0 else 'decreased'} by {abs(change):,.0f} over the year"

    recs = []
    if wc < 0:
        recs.append('Restore positive working capital by refinancing short-term debt into long-term')
    if st.revenue and operating_wc / st.revenue > 0.3:
        recs.append('Operating working capital exceeds 30% of sales; tighten receivables and inventory')

    return build_result(
        analysis_id, 'Working Capital Analysis', CATEGORY,
        data={
            'working_capital': round(wc, 2),
            'working_capital_ratio': round_or_none(ratio, 4),
            'operating_working_capital': round(operating_wc, 2),
            'working_capital_to_revenue': round_or_none(safe_divide(wc, st.revenue), 4) if st.revenue else None,
            'components': {'receivables': st.accounts_receivable, 'inventory': st.inventory,
                           'payables': st.accounts_payable, 'cash': st.cash},
            'change_from_previous': round_or_none(change, 2),
        },
        interpretation=interp + '.',
        recommendations=recs,
        value=ratio,
        benchmark=benchmarks.get('working_capital_ratio'),
    )


def cash_cycle_analysis(statement: FinancialStatement,
                        previous: Optional[FinancialStatement] = None,
                        benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Cash conversion cycle components and the cash tied up by the cycle.
    """
    analysis_id = 'flow.cash_cycle'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    benchmarks = resolve_benchmarks(benchmarks)

    cycle = calculate_cash_conversion_cycle(st, previous)
    ccc = cycle.get('cash_conversion_cycle')
    require(ccc is not None, "Inventory, receivables or payables are required", analysis_id)

    daily_sales = st.revenue / 365
    tied_up = ccc * daily_sales
    target = benchmarks.get('cash_conversion_cycle')
    release = (ccc - target) * daily_sales if target is not None and ccc > target else 0.0

    recs = []
    if release > 0:
        recs.append(f"Reaching the industry cycle of {target:.0f} days would release about {release:,.0f} of cash")
    if cycle['days_payables_outstanding'] < 30:
        recs.append('Supplier credit is short; negotiate longer payment terms')

    return build_result(
        analysis_id, 'Cash Cycle Analysis', CATEGORY,
        data={
            **{k: v for k, v in cycle.items() if k not in ('interpretation', 'formula')},
            'operating_cycle': round(cycle['days_inventory_outstanding'] + cycle['days_sales_outstanding'], 1),
            'cash_tied_up': round(tied_up, 2),
            'potential_cash_release': round(release, 2),
        },
        interpretation=cycle['interpretation'],
        recommendations=recs,
        value=ccc,
        benchmark=target,
        higher_is_better=False,
    )


def break_even_analysis(statement: FinancialStatement,
                        statements: Optional[List[FinancialStatement]] = None,
                        fixed_costs: Optional[float] = None,
                        variable_ratio: Optional[float] = None,
                        unit_price: Optional[float] = None) -> AnalysisResult:
    """
    Break-even revenue (and units when a unit price is given).

    Break-even revenue = Fixed Costs / Contribution Margin Ratio
    """
    analysis_id = 'flow.break_even'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    be = _break_even(st, statements, fixed_costs, variable_ratio)
    require(be['break_even_revenue'] is not None, "Variable costs absorb all revenue", analysis_id)

    be_revenue = be['break_even_revenue']
    coverage = be_revenue / st.revenue * 100
    units = None
    if unit_price:
        unit_cm = unit_price * be['contribution_margin_ratio']
        units = round(be['fixed_costs'] / unit_cm, 0) if unit_cm > 0 else None

    return build_result(
        analysis_id, 'Break-even Analysis', CATEGORY,
        data={**be, 'break_even_units': units, 'revenue': st.revenue,
              'break_even_pct_of_revenue': round(coverage, 2)},
        interpretation=(f"The company breaks even at {be_revenue:,.0f} of revenue, "
                        f"{coverage:.0f}% of current sales ({be['method']} cost split)."),
        recommendations=(['Sales are below break-even; cut fixed costs or raise prices']
                         if coverage > 100 else []),
        value=coverage,
        benchmark=100 - SAFE_MARGIN_PCT,
        higher_is_better=False,
    )


def margin_of_safety_analysis(statement: FinancialStatement,
                              statements: Optional[List[FinancialStatement]] = None,
                              fixed_costs: Optional[float] = None,
                              variable_ratio: Optional[float] = None) -> AnalysisResult:
    """
    Margin of Safety = (Actual Revenue - Break-even Revenue) / Actual Revenue
    """
    analysis_id = 'flow.margin_of_safety'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    be = _break_even(st, statements, fixed_costs, variable_ratio)
    require(be['break_even_revenue'] is not None, "Variable costs absorb all revenue", analysis_id)

    mos_amount = st.revenue - be['break_even_revenue']
    mos = mos_amount / st.revenue * 100

    if mos < 0:
        interp = 'Revenue is below break-even; the company operates at a loss'
    elif mos < 10:
        interp = 'Very thin safety margin; a small drop in sales leads to losses'
    elif mos < SAFE_MARGIN_PCT:
        interp = 'Moderate safety margin'
    else:
        interp = 'Comfortable safety margin against a fall in sales'

    return build_result(
        analysis_id, 'Margin of Safety Analysis', CATEGORY,
        data={'margin_of_safety_pct': round(mos, 2), 'margin_of_safety_amount': round(mos_amount, 2),
              'break_even_revenue': be['break_even_revenue'], 'method': be['method']},
        interpretation=interp + '.',
        recommendations=(['Lower the break-even point by converting fixed costs to variable']
                         if mos < SAFE_MARGIN_PCT else []),
        value=mos,
        benchmark=SAFE_MARGIN_PCT,
        evaluation=Rating.WEAK if mos < 0 else None,
    )


def cost_structure_analysis(statement: FinancialStatement,
                            benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Composition of total costs and the cost-to-income ratio.
    """
    analysis_id = 'flow.cost_structure'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    benchmarks = resolve_benchmarks(benchmarks)

    other_opex = max(st.operating_expenses - st.sga_expense - st.rd_expense - st.depreciation, 0.0)
    costs = {
        'cost_of_goods_sold': st.cost_of_goods_sold,
        'selling_general_admin': st.sga_expense,
        'research_development': st.rd_expense,
        'depreciation': st.depreciation,
        'other_operating': other_opex,
        'interest': st.interest_expense,
        'tax': st.tax_expense,
    }
    costs = {k: v for k, v in costs.items() if v}
    total = sum(costs.values())
    require(total > 0, "No cost lines reported", analysis_id)

    share_of_total = {k: round(v / total * 100, 2) for k, v in costs.items()}
    share_of_revenue = {k: round(v / st.revenue * 100, 2) for k, v in costs.items()}
    cost_to_income = _operating_costs(st) / st.revenue * 100
    largest = max(share_of_total, key=share_of_total.get)

    return build_result(
        analysis_id, 'Cost Structure Analysis', CATEGORY,
        data={'costs': rounded(costs, 2), 'pct_of_total_costs': share_of_total,
              'pct_of_revenue': share_of_revenue, 'total_costs': round(total, 2),
              'cost_to_income': round(cost_to_income, 2), 'largest_cost': largest},
        interpretation=(f"{largest.replace('_', ' ').capitalize()} is the largest cost at "
                        f"{share_of_total[largest]:.1f}% of total costs; operating costs absorb "
                        f"{cost_to_income:.1f}% of revenue."),
        recommendations=([f"Target savings in {largest.replace('_', ' ')}"] if cost_to_income > 90 else []),
        value=cost_to_income,
        benchmark=benchmarks.get('cost_to_income', 100 - benchmarks.get('operating_margin', 0.0)),
        higher_is_better=False,
    )


def fixed_variable_cost_analysis(statement: FinancialStatement,
                                 statements: Optional[List[FinancialStatement]] = None) -> AnalysisResult:
    """
    Fixed / variable split of operating costs, with a least-squares cost
    line across years when at least three are available.
    """
    analysis_id = 'flow.fixed_variable'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    behaviour = cost_behaviour(st, statements)
    total = behaviour['fixed_costs'] + behaviour['variable_costs']
    require(total > 0, "No operating costs to split", analysis_id)

    regression = None
    usable = [s for s in sort_statements(statements or []) if s.revenue > 0]
    if len(usable) >= 3:
        x = np.array([s.revenue for s in usable])
        y = np.array([_operating_costs(s) for s in usable])
        if np.ptp(x) > 0:
            slope, intercept = np.polyfit(x, y, 1)
            regression = {'variable_rate': round(float(slope), 4), 'fixed_costs': round(float(intercept), 2)}

    fixed_share = behaviour['fixed_costs'] / total * 100
    return build_result(
        analysis_id, 'Fixed and Variable Cost Analysis', CATEGORY,
        data={**behaviour, 'fixed_share_pct': round(fixed_share, 2),
              'variable_share_pct': round(100 - fixed_share, 2), 'regression': regression},
        interpretation=(f"Fixed costs are {fixed_share:.0f}% of operating costs ({behaviour['method']}); "
                        + ('profits are highly sensitive to sales volume.' if fixed_share > 50
                           else 'the cost base flexes with sales.')),
        recommendations=(['High fixed cost base; consider outsourcing or variable pay schemes']
                         if fixed_share > 60 else []),
        value=fixed_share,
    )


def operating_leverage_analysis(statement: FinancialStatement,
                                statements: Optional[List[FinancialStatement]] = None,
                                previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Degrees of operating, financial and total leverage.

        DOL = Contribution Margin / EBIT
        DFL = EBIT / (EBIT - Interest)
        DTL = DOL x DFL
    """
    analysis_id = 'flow.operating_leverage'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    require(st.ebit > 0, "Operating leverage needs positive operating profit", analysis_id)

    behaviour = cost_behaviour(st, statements)
    contribution = st.revenue - behaviour['variable_costs']
    dol = contribution / st.ebit
    ebt = st.ebit - st.interest_expense
    dfl = st.ebit / ebt if ebt > 0 else None
    dtl = dol * dfl if dfl is not None else None

    empirical = None
    if previous is not None and previous.revenue and previous.ebit:
        sales_chg = (st.revenue - previous.revenue) / previous.revenue
        if sales_chg:
            empirical = ((st.ebit - previous.ebit) / abs(previous.ebit)) / sales_chg

    return build_result(
        analysis_id, 'Operating Leverage Analysis', CATEGORY,
        data={'dol': round(dol, 2), 'dfl': round_or_none(dfl, 2), 'dtl': round_or_none(dtl, 2),
              'empirical_dol': round_or_none(empirical, 2), 'contribution_margin': round(contribution, 2),
              'ebit': st.ebit, 'method': behaviour['method']},
        interpretation=(f"A 1% change in sales moves operating profit by about {dol:.1f}%"
                        + (f" and net profit by {dtl:.1f}%." if dtl is not None else '.')),
        recommendations=(['Leverage amplifies downturns; keep a liquidity buffer']
                         if dtl is not None and dtl > 4 else []),
        value=dol,
    )


def contribution_margin_analysis(statement: FinancialStatement,
                                 statements: Optional[List[FinancialStatement]] = None) -> AnalysisResult:
    """
    Contribution margin and ratio after variable costs.
    """
    analysis_id = 'flow.contribution_margin'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    behaviour = cost_behaviour(st, statements)
    contribution = st.revenue - behaviour['variable_costs']
    ratio = contribution / st.revenue * 100
    covers = safe_divide(contribution, behaviour['fixed_costs'])

    return build_result(
        analysis_id, 'Contribution Margin Analysis', CATEGORY,
        data={'contribution_margin': round(contribution, 2), 'contribution_margin_ratio': round(ratio, 2),
              'fixed_cost_coverage': round_or_none(covers, 2), **behaviour},
        interpretation=(f"Each unit of revenue contributes {ratio / 100:.2f} towards fixed costs and profit"
                        + (f"; contribution covers fixed costs {covers:.2f}x." if covers is not None else '.')),
        recommendations=(['Contribution does not cover fixed costs; revisit pricing and product mix']
                         if covers is not None and covers < 1 else []),
        value=ratio,
    )


def free_cash_flow_analysis(statement: FinancialStatement,
                            benchmarks: Optional[IndustryBenchmarks] = None,
                            tax_rate: Optional[float] = None) -> AnalysisResult:
    """
    Free cash flow to the firm and to equity, and cash conversion.

        FCFF = EBIT x (1 - t) + D&A - CapEx - Increase in Working Capital
        FCFE = FCFF - Interest x (1 - t) + Net Borrowing
    """
    analysis_id = 'flow.free_cash_flow'
    st = require_statement(statement, analysis_id)
    require(st.operating_cash_flow or st.ebit, "Operating cash flow or EBIT is required", analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    if tax_rate is None:
        tax_rate = st.effective_tax_rate
        if tax_rate is None or not 0 <= tax_rate < 1:
            tax_rate = config.DEFAULT_TAX_RATE

    capex = abs(st.capital_expenditures)
    # Reported working capital change is a cash effect (negative = investment)
    wc_investment = -st.changes_in_working_capital
    fcff = st.ebit * (1 - tax_rate) + st.depreciation - capex - wc_investment
    net_borrowing = st.debt_issued - abs(st.debt_repaid)
    fcfe = fcff - st.interest_expense * (1 - tax_rate) + net_borrowing
    simple = st.free_cash_flow

    margin = safe_divide(simple, st.revenue)
    margin = margin * 100 if margin is not None else None
    conversion = safe_divide(simple, st.net_income) if st.net_income > 0 else None

    return build_result(
        analysis_id, 'Free Cash Flow Analysis', CATEGORY,
        data={'free_cash_flow': round(simple, 2), 'fcff': round(fcff, 2), 'fcfe': round(fcfe, 2),
              'fcf_margin': round_or_none(margin, 2), 'fcf_conversion': round_or_none(conversion, 2),
              'capex_to_ocf': round_or_none(safe_divide(capex, st.operating_cash_flow), 4),
              'tax_rate': round(tax_rate, 4), 'net_borrowing': round(net_borrowing, 2)},
        interpretation=(f"Free cash flow is {simple:,.0f}"
                        + (f" ({margin:.1f}% of revenue)" if margin is not None else '')
                        + f"; cash available to equity holders is {fcfe:,.0f}."),
        recommendations=(['Free cash flow is negative; align capital spending with cash generation']
                         if simple < 0 else []),
        value=margin,
        benchmark=benchmarks.get('fcf_margin'),
    )
