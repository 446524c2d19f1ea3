"""
Structural Analysis
Vertical, horizontal and trend views of the financial statements, plus the
simple multi-year comparisons built on them.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from finclick import config
from finclick.analysis.base import (
    KEY_ITEMS, build_result, item_series, reported_items, require, require_statement,
    resolve_benchmarks, rounded, series_to_dict, statement_frame, trend_direction
)
from finclick.analysis.classical.ratios import compare_to_peers, ratio_values
from finclick.analysis.result import AnalysisResult, rate_score
from finclick.core.utils import cagr, pct_change, round_or_none, safe_divide
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement, require_statements

logger = logging.getLogger(__name__)

CATEGORY = 'basic.structural'

_ASSET_ITEMS = ('cash', 'marketable_securities', 'accounts_receivable', 'inventory',
                'other_current_assets', 'total_current_assets', 'ppe', 'intangible_assets',
                'investments', 'other_non_current_assets', 'total_non_current_assets')
_FUNDING_ITEMS = ('accounts_payable', 'short_term_debt', 'other_current_liabilities',
                  'total_current_liabilities', 'long_term_debt', 'other_non_current_liabilities',
                  'total_non_current_liabilities', 'total_liabilities', 'common_stock',
                  'retained_earnings', 'other_equity', 'total_equity')
_INCOME_ITEMS = ('cost_of_goods_sold', 'gross_profit', 'sga_expense', 'rd_expense',
                 'depreciation', 'operating_expenses', 'operating_income', 'interest_expense',
                 'income_before_tax', 'tax_expense', 'net_income')

# Items where a decrease is the favourable direction
_COST_ITEMS = {'cost_of_goods_sold', 'operating_expenses', 'sga_expense', 'interest_expense',
               'tax_expense', 'total_liabilities', 'total_current_liabilities', 'short_term_debt',
               'long_term_debt', 'accounts_payable'}

_TREND_ITEMS = ('revenue', 'net_income', 'total_assets', 'total_equity')


def _shares(st: FinancialStatement, items: Sequence[str], base: float) -> Dict[str, Optional[float]]:
    return {item: round_or_none(safe_divide(getattr(st, item), base) * 100, 2)
            for item in items if getattr(st, item) and base}


def _linear_trend(series: pd.Series) -> Dict[str, Any]:
    x = np.arange(len(series))
    fit = stats.linregress(x, series.values)
    return {
        'slope': round(float(fit.slope), 4),
        'intercept': round(float(fit.intercept), 4),
        'r_squared': round(float(fit.rvalue ** 2), 4),
        'p_value': round(float(fit.pvalue), 4) if len(series) > 2 else None,
        'fitted': np.round(fit.intercept + fit.slope * x, 4).tolist(),
        'next': round(float(fit.intercept + fit.slope * len(series)), 4)
    }


def vertical_analysis(statement: FinancialStatement,
                      benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Common-size view of one year.

    Assets as % of total assets, liabilities and equity as % of total
    liabilities + equity, income items as % of revenue.
    """
    analysis_id = 'struct.vertical'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    benchmarks = resolve_benchmarks(benchmarks)

    funding_total = st.total_liabilities + st.total_equity
    assets = _shares(st, _ASSET_ITEMS, st.total_assets)
    funding = _shares(st, _FUNDING_ITEMS, funding_total)
    income = _shares(st, _INCOME_ITEMS, st.revenue) if st.revenue else {}

    current_share = assets.get('total_current_assets', 0.0)
    debt_share = funding.get('total_liabilities', 0.0)
    net_margin = income.get('net_income')

    parts = [f"Current assets make up {current_share:.1f}% of total assets",
             f"liabilities fund {debt_share:.1f}% of the balance sheet"]
    if net_margin is not None:
        parts.append(f"{net_margin:.1f}% of revenue reaches net income")
    interpretation = '; '.join(parts) + '.'

    recs = []
    if current_share < 20:
        recs.append('Asset base is heavily non-current; monitor liquidity headroom')
    if debt_share > 70:
        recs.append('Balance sheet relies mainly on liabilities; strengthen equity funding')
    if net_margin is not None and net_margin < (benchmarks.get('net_margin') or 0):
        recs.append('Cost structure absorbs more revenue than the industry; review expense lines')

    return build_result(
        analysis_id, 'Vertical Analysis', CATEGORY,
        data={
            'year': st.year,
            'assets_pct_of_total_assets': assets,
            'liabilities_equity_pct_of_total': funding,
            'income_pct_of_revenue': income,
            'balance_check': round(st.total_assets - funding_total, 2),
        },
        interpretation=interpretation,
        recommendations=recs,
        value=net_margin,
        benchmark=benchmarks.get('net_margin'),
    )


def _horizontal_changes(current: FinancialStatement, previous: FinancialStatement,
                        base: FinancialStatement, items: Sequence[str]) -> Dict[str, Dict[str, Any]]:
    changes = {}
    for item in items:
        cur, prev, first = getattr(current, item), getattr(previous, item), getattr(base, item)
        if not (cur or prev):
            continue
        changes[item] = {
            'value': cur,
            'absolute_change': round(cur - prev, 2),
            'pct_change': round_or_none(pct_change(cur, prev), 2),
            'pct_change_from_base': round_or_none(pct_change(cur, first), 2),
        }
    return changes


def _growth_summary(series: pd.Series) -> Dict[str, Any]:
    growth = series.pct_change().replace([np.inf, -np.inf], np.nan).dropna() * 100
    return {
        'total_growth_rate': round_or_none(pct_change(series.iloc[-1], series.iloc[0]), 2),
        'average_growth_rate': round_or_none(growth.mean(), 2) if len(growth) else None,
        'volatility': round_or_none(growth.std(), 2) if len(growth) > 1 else None,
        'trend': trend_direction(series.values)
    }


def horizontal_analysis(statements: List[FinancialStatement],
                        benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Year-on-year and base-year changes of the key line items.
    """
    analysis_id = 'struct.horizontal'
    ordered = require_statements(statements, 2, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    base = ordered[0]

    periods = []
    for previous, current in zip(ordered, ordered[1:]):
        periods.append({
            'period': f"{previous.year}-{current.year}",
            'changes': _horizontal_changes(current, previous, base, KEY_ITEMS)
        })

    revenue = item_series(ordered, 'revenue')
    summary = _growth_summary(revenue) if (revenue > 0).all() else {}
    avg_growth = summary.get('average_growth_rate')

    latest = periods[-1]['changes']
    rev_chg = latest.get('revenue', {}).get('pct_change')
    ni_chg = latest.get('net_income', {}).get('pct_change')
    interpretation = (f"Revenue trend is {summary.get('trend', 'undetermined')} with average growth of "
                      f"{avg_growth if avg_growth is not None else 'n/a'}% per year.")
    recs = []
    if rev_chg is not None and ni_chg is not None and ni_chg < rev_chg:
        interpretation += ' Profit grew more slowly than revenue in the latest year.'
        recs.append('Profit is lagging revenue growth; review cost growth')
    if summary.get('trend') == 'decreasing':
        recs.append('Revenue is declining; revisit pricing and market strategy')

    return build_result(
        analysis_id, 'Horizontal Analysis', CATEGORY,
        data={'base_year': base.year, 'periods': periods, 'summary': summary},
        interpretation=interpretation,
        recommendations=recs,
        value=avg_growth,
        benchmark=benchmarks.get('revenue_growth'),
    )


def combined_analysis(statements: List[FinancialStatement],
                      benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Vertical structure of the latest year together with horizontal changes,
    highlighting items whose share of the base moved by more than 5 points.
    """
    analysis_id = 'struct.combined'
    ordered = require_statements(statements, 2, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    vertical = vertical_analysis(ordered[-1], benchmarks)
    horizontal = horizontal_analysis(ordered, benchmarks)

    first, last = ordered[0], ordered[-1]
    shifts = {}
    for items, base_attr in ((_ASSET_ITEMS, 'total_assets'), (_INCOME_ITEMS, 'revenue')):
        before = _shares(first, items, getattr(first, base_attr))
        after = _shares(last, items, getattr(last, base_attr))
        for item in set(before) | set(after):
            delta = (after.get(item) or 0.0) - (before.get(item) or 0.0)
            if abs(delta) >= 5:
                shifts[item] = round(delta, 2)

    revenue_cagr = cagr(first.revenue, last.revenue, last.year - first.year or len(ordered) - 1)
    interpretation = vertical.interpretation + ' ' + horizontal.interpretation
    if shifts:
        interpretation += f" Structural shifts above 5 points: {', '.join(sorted(shifts))}."

    return build_result(
        analysis_id, 'Combined Horizontal and Vertical Analysis', CATEGORY,
        data={
            'vertical': vertical.data,
            'horizontal': horizontal.data,
            'structural_shifts_pct_points': shifts,
            'revenue_cagr': round_or_none(revenue_cagr, 2),
        },
        interpretation=interpretation,
        recommendations=list(dict.fromkeys(vertical.recommendations + horizontal.recommendations)),
        value=revenue_cagr,
        benchmark=benchmarks.get('revenue_growth'),
    )


def trend_analysis(statements: List[FinancialStatement],
                   items: Sequence[str] = _TREND_ITEMS) -> AnalysisResult:
    """
    Least-squares trend line per item with one- and three-year projections
    and residual outliers (|z| > 2).
    """
    analysis_id = 'struct.trend'
    ordered = require_statements(statements, 3, analysis_id)

    lines, forecasts, outliers = {}, {}, {}
    for item in items:
        series = item_series(ordered, item)
        if not (series != 0).any():
            continue
        line = _linear_trend(series)
        lines[item] = line
        forecasts[item] = [round(line['intercept'] + line['slope'] * (len(series) + k), 2) for k in range(3)]
        residuals = series.values - np.asarray(line['fitted'])
        spread = residuals.std()
        if spread > 0:
            z = residuals / spread
            flagged = [int(year) for year, score in zip(series.index, z) if abs(score) > 2]
            if flagged:
                outliers[item] = flagged
    require(lines, "No line items with data to trend", analysis_id)

    revenue = lines.get('revenue')
    growth = None
    if revenue:
        mean_revenue = float(np.mean(item_series(ordered, 'revenue')))
        growth = safe_divide(revenue['slope'], mean_revenue)
        growth = growth * 100 if growth is not None else None

    fits = {k: v['r_squared'] for k, v in lines.items()}
    interpretation = ', '.join(
        f"{item} {'rising' if v['slope'] > 0 else 'falling'} (R² {v['r_squared']:.2f})"
        for item, v in lines.items())
    recs = [f"Trend in {item} is erratic (R² below 0.5); avoid extrapolating it"
            for item, r2 in fits.items() if r2 < 0.5]

    return build_result(
        analysis_id, 'Trend Analysis', CATEGORY,
        data={
            'years': [st.year for st in ordered],
            'trend_lines': lines,
            'forecast_next_year': {k: v[0] for k, v in forecasts.items()},
            'forecast_three_years': forecasts,
            'outliers': outliers,
            'revenue_trend_growth_pct': round_or_none(growth, 2),
        },
        interpretation=interpretation.capitalize() + '.',
        recommendations=recs,
        value=growth,
    )


def basic_comparative_analysis(statement: FinancialStatement,
                               benchmarks: Optional[IndustryBenchmarks] = None,
                               peers: Optional[List[FinancialStatement]] = None,
                               previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Company ratios against the industry averages and, when supplied, peer
    company statements.
    """
    analysis_id = 'struct.comparative'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    company = ratio_values(st, previous)
    peer_ratios = [ratio_values(p) for p in (peers or [])]
    require(company, "No ratios could be computed from the statement", analysis_id)

    metrics, favourable = {}, 0
    for key, value in company.items():
        benchmark = benchmarks.get(key)
        if benchmark is None:
            continue
        lower = benchmarks.is_lower_better(key)
        better = value <= benchmark if lower else value >= benchmark
        favourable += better
        peer_sample = [p[key] for p in peer_ratios if key in p] or benchmarks.peer_values(key)
        metrics[key] = {
            'company': value,
            'industry_average': benchmark,
            'favourable': better,
            'peers': compare_to_peers(value, peer_sample, lower),
        }
    require(metrics, "No ratio has an industry benchmark", analysis_id)

    score = favourable / len(metrics) * 100
    strengths = [k for k, m in metrics.items() if m['favourable']]
    weaknesses = [k for k, m in metrics.items() if not m['favourable']]

    return build_result(
        analysis_id, 'Basic Comparative Analysis', CATEGORY,
        data={
            'metrics': metrics,
            'favourable_share_pct': round(score, 1),
            'peer_count': len(peer_ratios) or None,
            'strengths': strengths,
            'weaknesses': weaknesses,
        },
        interpretation=(f"{favourable} of {len(metrics)} ratios are at or better than the "
                        f"{benchmarks.sector} industry average."),
        recommendations=[f"Close the gap to the industry on {k.replace('_', ' ')}" for k in weaknesses[:3]],
        value=score,
        evaluation=rate_score(score),
    )


def value_added_analysis(statement: FinancialStatement,
                         benchmarks: Optional[IndustryBenchmarks] = None,
                         personnel_costs: float = 0.0,
                         cost_of_capital: float = config.DEFAULT_DISCOUNT_RATE) -> AnalysisResult:
    """
    Gross and net value added, its distribution between stakeholders, EVA
    and MVA.

    Gross value added = EBITDA + personnel costs.
    """
    analysis_id = 'struct.value_added'
    st = require_statement(statement, analysis_id, needs=('revenue',))

    gross = st.ebitda + personnel_costs
    net = gross - st.depreciation
    tax_rate = st.effective_tax_rate
    if tax_rate is None or not 0 <= tax_rate < 1:
        tax_rate = config.DEFAULT_TAX_RATE
    eva = st.ebit * (1 - tax_rate) - cost_of_capital * st.invested_capital
    mva = st.market_cap - st.total_equity if st.market_cap else None

    dividends = abs(st.dividends_paid)
    distribution = {
        'employees': personnel_costs,
        'government': st.tax_expense,
        'lenders': st.interest_expense,
        'shareholders': dividends,
        'retained': st.net_income - dividends + st.depreciation,
    }
    shares = {k: round_or_none(safe_divide(v, gross) * 100, 2) if gross else None
              for k, v in distribution.items()}

    margin = safe_divide(gross, st.revenue) * 100
    recs = []
    if eva < 0:
        recs.append('Returns fall short of the cost of capital; improve asset efficiency or margins')
    if margin < 15:
        recs.append('Low value added relative to sales; reduce reliance on bought-in inputs')

    return build_result(
        analysis_id, 'Value Added Analysis', CATEGORY,
        data={
            'gross_value_added': round(gross, 2),
            'net_value_added': round(net, 2),
            'economic_value_added': round(eva, 2),
            'market_value_added': round_or_none(mva, 2),
            'distribution': rounded(distribution, 2),
            'distribution_pct': shares,
            'value_added_margin': round(margin, 2),
            'value_added_per_employee': round_or_none(safe_divide(gross, st.employees), 2),
            'value_added_per_asset': round_or_none(safe_divide(gross, st.total_assets), 4),
        },
        interpretation=(f"The company adds {margin:.1f}% of revenue as value; economic value added is "
                        f"{'positive' if eva >= 0 else 'negative'} at a {cost_of_capital:.0%} cost of capital."),
        recommendations=recs,
        value=margin,
        benchmark=resolve_benchmarks(benchmarks).get('ebitda_margin'),
    )


def common_size_analysis(statements: List[FinancialStatement],
                         benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Common-size statements for every year and the change in structure
    between the first and last year.
    """
    analysis_id = 'struct.common_size'
    ordered = require_statements(statements, 1, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    require(all(st.total_assets for st in ordered), "Total assets are required for every year", analysis_id)

    years = {}
    for st in ordered:
        years[st.year] = {
            'balance_sheet': _shares(st, _ASSET_ITEMS + _FUNDING_ITEMS, st.total_assets),
            'income_statement': _shares(st, _INCOME_ITEMS, st.revenue) if st.revenue else {},
        }

    first, last = years[ordered[0].year], years[ordered[-1].year]
    changes = {}
    for section in ('balance_sheet', 'income_statement'):
        for item in set(first[section]) | set(last[section]):
            changes[item] = round((last[section].get(item) or 0.0) - (first[section].get(item) or 0.0), 2)
    largest = sorted(changes, key=lambda k: abs(changes[k]), reverse=True)[:5]

    gross_margin = last['income_statement'].get('gross_profit')
    industry = {key: {'company': last['income_statement'].get(item), 'industry': benchmarks.get(key)}
                for item, key in (('gross_profit', 'gross_margin'), ('operating_income', 'operating_margin'),
                                  ('net_income', 'net_margin'))}

    return build_result(
        analysis_id, 'Common Size Analysis', CATEGORY,
        data={
            'statements': years,
            'structural_changes_pct_points': {k: changes[k] for k in largest},
            'industry_comparison': industry,
        },
        interpretation=(f"Largest structural movements since {ordered[0].year}: "
                        + ', '.join(f"{k} ({changes[k]:+.1f} pts)" for k in largest) + '.'
                        if len(ordered) > 1 and largest else 'Single-year common-size statement.'),
        value=gross_margin,
        benchmark=benchmarks.get('gross_margin'),
    )


def simple_time_series_analysis(statements: List[FinancialStatement], item: str = 'revenue',
                                window: int = 3, smoothing: float = 0.3) -> AnalysisResult:
    """
    Linear trend, moving averages and a next-year projection for one item.
    """
    analysis_id = 'struct.time_series'
    ordered = require_statements(statements, 3, analysis_id)
    series = item_series(ordered, item)
    require((series != 0).any(), f"No data for {item}", analysis_id)

    window = min(window, len(series))
    weights = np.arange(1, window + 1)
    sma = series.rolling(window).mean()
    wma = series.rolling(window).apply(lambda x: np.dot(x, weights) / weights.sum(), raw=True)
    ema = series.ewm(alpha=smoothing, adjust=False).mean()
    line = _linear_trend(series)
    irregular = series.values - np.asarray(line['fitted'])

    return build_result(
        analysis_id, 'Simple Time Series Analysis', CATEGORY,
        data={
            'item': item,
            'values': series_to_dict(series, 2),
            'trend': line,
            'irregular_component': np.round(irregular, 2).tolist(),
            'moving_averages': {
                'simple': series_to_dict(sma.dropna(), 2),
                'weighted': series_to_dict(wma.dropna(), 2),
                'exponential': series_to_dict(ema, 2),
            },
            'next_year_projection': line['next'],
        },
        interpretation=(f"{item.replace('_', ' ').capitalize()} follows a "
                        f"{trend_direction(series.values)} trend; the linear model projects "
                        f"{line['next']:,.0f} for next year (R² {line['r_squared']:.2f})."),
        value=line['next'],
    )


def relative_change_analysis(statements: List[FinancialStatement]) -> AnalysisResult:
    """
    Percentage change per item and period, with the most volatile and most
    stable items.
    """
    analysis_id = 'struct.relative_change'
    ordered = require_statements(statements, 2, analysis_id)
    items = reported_items(ordered)
    frame = statement_frame(ordered, items)

    changes = (frame.pct_change() * 100).replace([np.inf, -np.inf], np.nan).iloc[1:]
    periods = [{'period': f"{a}-{b}",
                'pct_changes': {k: round_or_none(v, 2) for k, v in changes.loc[b].items()},
                'absolute_changes': {k: round(float(v), 2) for k, v in (frame.loc[b] - frame.loc[a]).items()}}
               for a, b in zip(frame.index, frame.index[1:])]

    dispersion = changes.abs().mean().dropna().sort_values()
    require(len(dispersion), "No item has a computable percentage change", analysis_id)
    latest_mean = float(changes.iloc[-1].abs().mean())

    return build_result(
        analysis_id, 'Relative Change Analysis', CATEGORY,
        data={
            'periods': periods,
            'most_volatile': list(dispersion.index[::-1][:3]),
            'most_stable': list(dispersion.index[:3]),
            'average_absolute_change_pct': series_to_dict(dispersion, 2),
        },
        interpretation=(f"Most volatile items: {', '.join(dispersion.index[::-1][:3])}; most stable: "
                        f"{', '.join(dispersion.index[:3])}."),
        value=latest_mean,
    )


def growth_rate_analysis(statements: List[FinancialStatement],
                         benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Year-on-year growth and CAGR of the key items plus the sustainable
    growth rate (ROE x retention ratio).
    """
    analysis_id = 'struct.growth_rate'
    ordered = require_statements(statements, 2, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    first, last = ordered[0], ordered[-1]
    periods = (last.year - first.year) or (len(ordered) - 1)

    growth = {}
    for item in ('revenue', 'gross_profit', 'operating_income', 'net_income', 'total_assets',
                 'total_equity', 'operating_cash_flow'):
        series = item_series(ordered, item)
        if not (series != 0).any():
            continue
        yoy = [round_or_none(pct_change(b, a), 2) for a, b in zip(series.values, series.values[1:])]
        growth[item] = {
            'yoy': dict(zip([str(y) for y in series.index[1:]], yoy)),
            'cagr': round_or_none(cagr(series.iloc[0], series.iloc[-1], periods), 2),
        }
    require('revenue' in growth, "Revenue is required for growth analysis", analysis_id)

    retention = 1 - safe_divide(abs(last.dividends_paid), last.net_income, 0.0) if last.net_income > 0 else None
    roe = safe_divide(last.net_income, last.total_equity)
    sustainable = roe * retention * 100 if roe is not None and retention is not None else None

    revenue_cagr = growth['revenue']['cagr']
    recs = []
    if revenue_cagr is not None and sustainable is not None and revenue_cagr > sustainable:
        recs.append('Growth exceeds the self-financed rate; plan external funding or slow expansion')
    ni = growth.get('net_income', {}).get('cagr')
    if ni is not None and revenue_cagr is not None and ni < revenue_cagr:
        recs.append('Earnings grow slower than sales; protect margins as the business scales')

    return build_result(
        analysis_id, 'Growth Rate Analysis', CATEGORY,
        data={
            'growth': growth,
            'sustainable_growth_rate': round_or_none(sustainable, 2),
            'retention_ratio': round_or_none(retention, 4),
            'years': periods,
        },
        interpretation=(f"Revenue compounded at {revenue_cagr}% a year over {periods} year(s)"
                        + (f" against a sustainable rate of {sustainable:.1f}%." if sustainable is not None else '.')),
        recommendations=recs,
        value=revenue_cagr,
        benchmark=benchmarks.get('revenue_growth'),
    )


def basic_deviation_analysis(statement: FinancialStatement,
                             benchmarks: Optional[IndustryBenchmarks] = None,
                             plan: Optional[Dict[str, float]] = None,
                             previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Deviation of actual figures from plan, or of ratios from the industry
    when no plan is supplied.
    """
    analysis_id = 'struct.deviation'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    deviations = {}
    if plan:
        basis = 'plan'
        for item, target in plan.items():
            actual = getattr(st, item, None)
            if actual is None or target is None:
                continue
            favourable = actual <= target if item in _COST_ITEMS else actual >= target
            deviations[item] = {'actual': actual, 'target': target,
                                'deviation': round(actual - target, 2),
                                'deviation_pct': round_or_none(pct_change(actual, target), 2),
                                'favourable': favourable}
    else:
        basis = 'industry'
        for key, actual in ratio_values(st, previous).items():
            target = benchmarks.get(key)
            if target is None:
                continue
            favourable = actual <= target if benchmarks.is_lower_better(key) else actual >= target
            deviations[key] = {'actual': actual, 'target': target,
                               'deviation': round(actual - target, 4),
                               'deviation_pct': round_or_none(pct_change(actual, target), 2),
                               'favourable': favourable}
    require(deviations, "Nothing to compare: no plan items or benchmarked ratios", analysis_id)

    adverse = sorted((k for k, d in deviations.items() if not d['favourable']),
                     key=lambda k: abs(deviations[k]['deviation_pct'] or 0), reverse=True)
    share = (len(deviations) - len(adverse)) / len(deviations) * 100

    return build_result(
        analysis_id, 'Basic Deviation Analysis', CATEGORY,
        data={'basis': basis, 'deviations': deviations, 'largest_adverse': adverse[:5]},
        interpretation=(f"{len(deviations) - len(adverse)} of {len(deviations)} items meet or beat the {basis}"
                        + (f"; largest adverse deviation in {adverse[0]}." if adverse else '.')),
        recommendations=[f"Investigate the adverse deviation in {k.replace('_', ' ')}" for k in adverse[:3]],
        value=share,
        evaluation=rate_score(share),
    )


def simple_variance_analysis(statements: List[FinancialStatement]) -> AnalysisResult:
    """
    Mean, variance, standard deviation and coefficient of variation per item.
    """
    analysis_id = 'struct.variance'
    ordered = require_statements(statements, 2, analysis_id)
    frame = statement_frame(ordered, reported_items(ordered))

    table = {}
    for item in frame.columns:
        col = frame[item]
        mean = float(col.mean())
        std = float(col.std())
        cv = abs(std / mean) * 100 if mean else None
        if cv is None:
            stability = 'undefined'
        elif cv < 10:
            stability = 'stable'
        elif cv < 25:
            stability = 'moderate'
        else:
            stability = 'volatile'
        table[item] = {'mean': round(mean, 2), 'variance': round(float(col.var()), 2),
                       'std': round(std, 2), 'cv_pct': round_or_none(cv, 2), 'stability': stability}

    volatile = [k for k, v in table.items() if v['stability'] == 'volatile']
    revenue_cv = table.get('revenue', {}).get('cv_pct')

    return build_result(
        analysis_id, 'Simple Variance Analysis', CATEGORY,
        data={'items': table, 'volatile_items': volatile},
        interpretation=(f"{len(volatile)} of {len(table)} items vary by more than 25% around their mean"
                        + (f"; revenue CV is {revenue_cv:.1f}%." if revenue_cv is not None else '.')),
        recommendations=[f"Investigate the drivers of instability in {k.replace('_', ' ')}" for k in volatile[:3]],
        value=revenue_cv,
    )


def difference_analysis(statements: List[FinancialStatement]) -> AnalysisResult:
    """
    Absolute differences between consecutive years and the largest moves.
    """
    analysis_id = 'struct.difference'
    ordered = require_statements(statements, 2, analysis_id)
    frame = statement_frame(ordered, reported_items(ordered))
    diffs = frame.diff().iloc[1:]

    latest = diffs.iloc[-1].sort_values()
    periods = {f"{a}-{b}": {k: round(float(v), 2) for k, v in diffs.loc[b].items()}
               for a, b in zip(frame.index, frame.index[1:])}
    cumulative = (frame.iloc[-1] - frame.iloc[0])
    net_income_diff = float(latest.get('net_income', 0.0))

    return build_result(
        analysis_id, 'Difference Analysis', CATEGORY,
        data={
            'periods': periods,
            'cumulative_difference': series_to_dict(cumulative, 2),
            'largest_increases': [k for k, v in latest[::-1].items() if v > 0][:3],
            'largest_decreases': [k for k, v in latest.items() if v < 0][:3],
        },
        interpretation=(f"Net income changed by {net_income_diff:,.0f} in the latest year; "
                        f"{int((latest > 0).sum())} items increased and {int((latest < 0).sum())} decreased."),
        value=net_income_diff,
    )


def exceptional_items_analysis(statements: List[FinancialStatement], z_threshold: float = 2.0,
                               change_threshold: float = 50.0) -> AnalysisResult:
    """
    Flag unusual values per line item.

    A value is exceptional when its z-score within the item history exceeds
    `z_threshold`, or its year-on-year change exceeds `change_threshold` %.
    """
    analysis_id = 'struct.exceptional_items'
    ordered = require_statements(statements, 3, analysis_id)
    frame = statement_frame(ordered, reported_items(ordered))

    flagged = []
    for item in frame.columns:
        col = frame[item]
        std = col.std()
        z = (col - col.mean()) / std if std > 0 else pd.Series(0.0, index=col.index)
        change = (col.pct_change() * 100).replace([np.inf, -np.inf], np.nan)
        for year in col.index:
            reasons = []
            if abs(z[year]) > z_threshold:
                reasons.append('z_score')
            if year != col.index[0] and pd.notna(change[year]) and abs(change[year]) > change_threshold:
                reasons.append('jump')
            if reasons:
                flagged.append({'item': item, 'year': int(year), 'value': round(float(col[year]), 2),
                                'z_score': round(float(z[year]), 2),
                                'pct_change': round_or_none(change[year], 2), 'reasons': reasons})

    items = sorted({f['item'] for f in flagged})
    return build_result(
        analysis_id, 'Exceptional Items Analysis', CATEGORY,
        data={'exceptional_items': flagged, 'items_affected': items,
              'z_threshold': z_threshold, 'change_threshold_pct': change_threshold},
        interpretation=(f"{len(flagged)} exceptional values found across {len(items)} items."
                        if flagged else 'No exceptional movements detected.'),
        recommendations=[f"Review the notes for the unusual movement in {i.replace('_', ' ')}" for i in items[:3]],
        value=len(flagged),
    )


def index_number_analysis(statements: List[FinancialStatement],
                          base_year: Optional[int] = None) -> AnalysisResult:
    """
    Index numbers with the base year set to 100.
    """
    analysis_id = 'struct.index_number'
    ordered = require_statements(statements, 2, analysis_id)
    frame = statement_frame(ordered, reported_items(ordered))
    base_year = base_year if base_year in frame.index else int(frame.index[0])

    base = frame.loc[base_year]
    usable = [c for c in frame.columns if base[c] > 0]
    require(usable, f"No positive base-year values in {base_year}", analysis_id)
    index = frame[usable].div(base[usable]) * 100

    latest = index.iloc[-1]
    revenue_index = float(latest['revenue']) if 'revenue' in latest else None
    return build_result(
        analysis_id, 'Index Number Analysis', CATEGORY,
        data={
            'base_year': base_year,
            'indices': {str(year): series_to_dict(row, 2) for year, row in index.iterrows()},
            'fastest_growing': list(latest.sort_values(ascending=False).index[:3]),
        },
        interpretation=(f"Relative to {base_year} = 100, revenue stands at {revenue_index:.1f}."
                        if revenue_index is not None else f"Indices computed against {base_year} = 100."),
        value=revenue_index,
    )
