"""
Performance and Efficiency Analysis
DuPont decomposition, productivity, costing, scorecards, KPIs and
variance analysis.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from finclick.analysis.base import (
    benchmark_score, build_result, require, require_statement, resolve_benchmarks, rounded
)
from finclick.analysis.classical.ratios import ratio_values
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, pct_change, round_or_none, safe_divide, weighted_score
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)

CATEGORY = 'intermediate.performance'

# Variances below this share of budget are not flagged
SIGNIFICANCE_PCT = 10.0

# Items where spending more than budget is unfavourable
_COST_ITEMS = {
    'cost_of_goods_sold', 'operating_expenses', 'sga_expense', 'rd_expense',
    'depreciation', 'interest_expense', 'tax_expense', 'capital_expenditures',
    'fixed_costs', 'variable_costs',
}

_DEFAULT_CSF = {
    'profitability': ('net_margin', 0.25),
    'cost_control': ('operating_margin', 0.20),
    'cash_generation': ('operating_cash_flow_ratio', 0.20),
    'growth': ('revenue_growth', 0.20),
    'financial_stability': ('debt_to_equity', 0.15),
}


def _average(current: float, previous: Optional[FinancialStatement], attr: str) -> float:
    if previous is None or not getattr(previous, attr):
        return current
    return (current + getattr(previous, attr)) / 2


def dupont_components(st: FinancialStatement, previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Five DuPont factors.

    Formula:
        ROE = Tax Burden x Interest Burden x EBIT Margin x Asset Turnover x Equity Multiplier
            = NI/EBT x EBT/EBIT x EBIT/Sales x Sales/Assets x Assets/Equity
    """
    assets = _average(st.total_assets, previous, 'total_assets')
    equity = _average(st.total_equity, previous, 'total_equity')
    ebt = st.income_before_tax or (st.ebit - st.interest_expense)
    return {
        'tax_burden': safe_divide(st.net_income, ebt),
        'interest_burden': safe_divide(ebt, st.ebit),
        'ebit_margin': safe_divide(st.ebit, st.revenue),
        'net_margin': safe_divide(st.net_income, st.revenue),
        'asset_turnover': safe_divide(st.revenue, assets),
        'equity_multiplier': safe_divide(assets, equity),
    }


def _attribution(old: Dict[str, float], new: Dict[str, float], factors: List[str]) -> Dict[str, float]:
    """Change in the product explained by each factor, by sequential substitution."""
    current = dict(old)
    contributions = {}
    for f in factors:
        before = float(np.prod([current[k] for k in factors]))
        current[f] = new[f]
        after = float(np.prod([current[k] for k in factors]))
        contributions[f] = round((after - before) * 100, 4)
    return contributions


def dupont_analysis(statement: FinancialStatement,
                    previous: Optional[FinancialStatement] = None,
                    benchmarks: Optional[IndustryBenchmarks] = None,
                    before_previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Three- and five-factor DuPont decomposition of ROE, with the
    year-over-year change attributed to each factor when a prior year is
    available.
    """
    analysis_id = 'inter.perf.dupont'
    st = require_statement(statement, analysis_id, needs=('revenue', 'total_assets', 'total_equity'))
    benchmarks = resolve_benchmarks(benchmarks)

    current = dupont_components(st, previous)
    three = ['net_margin', 'asset_turnover', 'equity_multiplier']
    five = ['tax_burden', 'interest_burden', 'ebit_margin', 'asset_turnover', 'equity_multiplier']
    require(all(current[k] is not None for k in three), "DuPont factors cannot be computed", analysis_id)
    roe = float(np.prod([current[k] for k in three])) * 100

    data = {
        'roe': round(roe, 2),
        'three_factor': {k: round(current[k], 4) for k in three},
        'five_factor': {k: round_or_none(current[k]) for k in five},
        'attribution': None,
    }

    if previous is not None and previous.revenue and previous.total_assets and previous.total_equity:
        prior = dupont_components(previous, before_previous)
        if all(prior[k] is not None for k in three):
            prior_roe = float(np.prod([prior[k] for k in three])) * 100
            data['attribution'] = {
                'previous_roe': round(prior_roe, 2),
                'roe_change': round(roe - prior_roe, 2),
                'three_factor': _attribution(prior, current, three),
            }
            if all(prior[k] is not None and current[k] is not None for k in five):
                data['attribution']['five_factor'] = _attribution(prior, current, five)

    driver = max(three, key=lambda k: benchmark_score(
        current[k] * (100 if k == 'net_margin' else 1),
        benchmarks.get('net_margin' if k == 'net_margin' else 'asset_turnover' if k == 'asset_turnover'
                       else 'financial_leverage'), False) or 0)
    interpretation = (f"ROE of {roe:.1f}% = net margin {current['net_margin'] * 100:.1f}% x asset turnover "
                      f"{current['asset_turnover']:.2f} x equity multiplier {current['equity_multiplier']:.2f}; "
                      f"{driver.replace('_', ' ')} is the main driver.")

    recommendations = []
    if current['equity_multiplier'] > 3:
        recommendations.append('ROE relies heavily on leverage; check solvency')
    if current['asset_turnover'] < (benchmarks.get('asset_turnover') or 0):
        recommendations.append('Asset turnover trails the industry; review idle assets')
    if current['net_margin'] * 100 < (benchmarks.get('net_margin') or 0):
        recommendations.append('Net margin trails the industry; review pricing and costs')

    return build_result(
        analysis_id, 'DuPont Analysis', CATEGORY,
        data=data, interpretation=interpretation, recommendations=recommendations,
        value=roe, benchmark=benchmarks.get('roe'),
    )


def productivity_analysis(statement: FinancialStatement,
                          previous: Optional[FinancialStatement] = None,
                          benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Revenue and profit per employee, value added per employee and asset
    productivity.
    """
    analysis_id = 'inter.perf.productivity'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    benchmarks = resolve_benchmarks(benchmarks)

    value_added = st.revenue - st.cost_of_goods_sold
    metrics = {
        'revenue_per_employee': safe_divide(st.revenue, st.employees),
        'profit_per_employee': safe_divide(st.net_income, st.employees),
        'value_added_per_employee': safe_divide(value_added, st.employees),
        'asset_productivity': safe_divide(st.revenue, st.total_assets),
        'fixed_asset_productivity': safe_divide(st.revenue, st.ppe),
        'capital_productivity': safe_divide(value_added, st.invested_capital),
    }
    require(any(v is not None for v in metrics.values()), "No productivity measure available", analysis_id)

    growth = {}
    if previous is not None:
        for key in ('revenue_per_employee', 'asset_productivity'):
            prior = {'revenue_per_employee': safe_divide(previous.revenue, previous.employees),
                     'asset_productivity': safe_divide(previous.revenue, previous.total_assets)}[key]
            growth[key] = round_or_none(pct_change(metrics[key], prior), 2) if metrics[key] is not None else None

    headline = metrics['asset_productivity']
    parts = []
    if headline is not None:
        parts.append(f"Each unit of assets generates {headline:.2f} of revenue")
    if metrics['revenue_per_employee'] is not None:
        parts.append(f"revenue per employee is {metrics['revenue_per_employee']:,.0f}")
    text = '; '.join(parts)

    return build_result(
        analysis_id, 'Productivity Analysis', CATEGORY,
        data={'metrics': rounded(metrics, 2), 'growth_pct': growth, 'employees': st.employees},
        interpretation=text + '.',
        recommendations=([] if st.employees else ['Report headcount to enable labour productivity measures']),
        value=headline, benchmark=benchmarks.get('asset_turnover'),
    )


def operational_efficiency_analysis(statement: FinancialStatement,
                                    previous: Optional[FinancialStatement] = None,
                                    benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Cost ratios and asset utilisation combined into an efficiency score
    (50 = industry par).
    """
    analysis_id = 'inter.perf.operational_efficiency'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    benchmarks = resolve_benchmarks(benchmarks)
    ratios = ratio_values(st, previous)

    operating_costs = st.revenue - st.ebit
    measures = {
        'cost_to_revenue_pct': operating_costs / st.revenue * 100,
        'opex_ratio_pct': safe_divide(st.operating_expenses or st.sga_expense, st.revenue, 0.0) * 100,
        'cogs_ratio_pct': st.cost_of_goods_sold / st.revenue * 100,
        'working_capital_turnover': safe_divide(st.revenue, st.working_capital) if st.working_capital > 0 else None,
    }
    scores = {
        key: benchmark_score(ratios.get(key), benchmarks.get(key), benchmarks.is_lower_better(key))
        for key in ('operating_margin', 'asset_turnover', 'inventory_turnover', 'receivables_turnover',
                    'cash_conversion_cycle')
    }
    scores = {k: round(v, 1) for k, v in scores.items() if v is not None}
    require(scores, "No efficiency ratio could be benchmarked", analysis_id)
    score = float(np.mean(list(scores.values())))
    weakest = min(scores, key=scores.get)

    return build_result(
        analysis_id, 'Operational Efficiency Analysis', CATEGORY,
        data={'measures': rounded(measures, 2), 'ratio_scores': scores, 'efficiency_score': round(score, 1)},
        interpretation=f"Operational efficiency scores {score:.0f}/100 against the industry (50 = par).",
        recommendations=[f"Improve {weakest.replace('_', ' ')}"] if scores[weakest] < 50 else [],
        value=score, benchmark=50.0,
    )


def value_chain_analysis(statement: FinancialStatement,
                         activity_costs: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Cost share of each value-chain activity and the margin left.

    Without a supplied activity breakdown, statement lines stand in for
    the activities.
    """
    analysis_id = 'inter.perf.value_chain'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    if activity_costs is None:
        other_opex = max(st.operating_expenses - st.sga_expense - st.rd_expense - st.depreciation, 0.0)
        activity_costs = {
            'operations': st.cost_of_goods_sold,
            'technology_development': st.rd_expense,
            'marketing_sales_admin': st.sga_expense,
            'infrastructure': st.depreciation + other_opex,
        }
    activity_costs = {k: float(v) for k, v in activity_costs.items() if v}
    require(activity_costs, "No activity costs available", analysis_id)

    total = sum(activity_costs.values())
    shares = {k: round(v / total * 100, 2) for k, v in activity_costs.items()}
    of_revenue = {k: round(v / st.revenue * 100, 2) for k, v in activity_costs.items()}
    margin = (st.revenue - total) / st.revenue * 100
    largest = max(shares, key=shares.get)

    return build_result(
        analysis_id, 'Value Chain Analysis', CATEGORY,
        data={'activity_costs': activity_costs, 'cost_share_pct': shares, 'pct_of_revenue': of_revenue,
              'total_cost': round(total, 2), 'margin_pct': round(margin, 2), 'largest_activity': largest},
        interpretation=(f"{largest.replace('_', ' ').capitalize()} absorbs {shares[largest]:.0f}% of activity "
                        f"costs, leaving a margin of {margin:.1f}%."),
        recommendations=[f"Review cost drivers in {largest.replace('_', ' ')}"] if shares[largest] > 60 else [],
        value=margin,
    )


def activity_based_costing_analysis(cost_pools: Dict[str, Dict[str, float]],
                                    products: Dict[str, Dict[str, float]]) -> AnalysisResult:
    """
    Activity-based costing.

    Args:
        cost_pools: Pool name -> {'cost': total pool cost, 'driver_total': driver volume}
        products: Product name -> {pool name: driver units consumed, 'revenue': ...,
            'direct_cost': ..., 'units': ...}

    Returns:
        Overhead allocated per product, full cost, profit and unit cost.
    """
    analysis_id = 'inter.perf.abc'
    require(cost_pools and products, "Cost pools and products are required", analysis_id)

    rates = {}
    for pool, spec in cost_pools.items():
        driver = float(spec.get('driver_total') or 0)
        require(driver > 0, f"Cost pool '{pool}' has no driver volume", analysis_id)
        rates[pool] = float(spec.get('cost', 0)) / driver

    allocation = {}
    for product, usage in products.items():
        overhead = {pool: rate * float(usage.get(pool, 0)) for pool, rate in rates.items()}
        total_overhead = sum(overhead.values())
        full_cost = float(usage.get('direct_cost', 0)) + total_overhead
        revenue = float(usage.get('revenue', 0))
        units = float(usage.get('units', 0))
        allocation[product] = {
            'overhead_by_pool': rounded(overhead, 2),
            'overhead': round(total_overhead, 2),
            'full_cost': round(full_cost, 2),
            'profit': round(revenue - full_cost, 2),
            'margin_pct': round_or_none(safe_divide(revenue - full_cost, revenue) * 100, 2) if revenue else None,
            'unit_cost': round_or_none(safe_divide(full_cost, units), 4),
        }

    pooled = sum(float(p.get('cost', 0)) for p in cost_pools.values())
    allocated = sum(a['overhead'] for a in allocation.values())
    loss_makers = [p for p, a in allocation.items() if a['profit'] < 0]
    total_profit = sum(a['profit'] for a in allocation.values())

    return build_result(
        analysis_id, 'Activity-Based Costing Analysis', CATEGORY,
        data={'activity_rates': rounded(rates, 4), 'products': allocation,
              'allocated_overhead': round(allocated, 2), 'unallocated_overhead': round(pooled - allocated, 2),
              'loss_making_products': loss_makers},
        interpretation=(f"Overhead of {allocated:,.0f} allocated to {len(allocation)} products; "
                        f"{len(loss_makers)} are loss-making on a full-cost basis."),
        recommendations=[f"Reprice or redesign {p}" for p in loss_makers],
        value=total_profit,
    )


def balanced_scorecard_analysis(statement: FinancialStatement,
                                previous: Optional[FinancialStatement] = None,
                                benchmarks: Optional[IndustryBenchmarks] = None,
                                perspective_scores: Optional[Dict[str, float]] = None,
                                weights: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Financial, customer, internal process and learning & growth
    perspectives scored 0-100.

    Supplied perspective scores take precedence; otherwise financial
    proxies are used (growth for customer, margins and turnover for
    internal process, R&D intensity and revenue per employee growth for
    learning).
    """
    analysis_id = 'inter.perf.scorecard'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    benchmarks = resolve_benchmarks(benchmarks)
    ratios = ratio_values(st, previous)
    supplied = perspective_scores or {}

    def score(keys):
        values = [benchmark_score(ratios.get(k), benchmarks.get(k), benchmarks.is_lower_better(k)) for k in keys]
        values = [v for v in values if v is not None]
        return float(np.mean(values)) if values else None

    growth = pct_change(st.revenue, previous.revenue) if previous is not None else None
    customer = benchmark_score(growth, benchmarks.get('revenue_growth')) if growth is not None else None
    learning = clip_score(st.rd_expense / st.revenue * 1000) if st.rd_expense else None
    if previous is not None and st.employees and previous.employees:
        staff_growth = pct_change(st.revenue / st.employees, previous.revenue / previous.employees)
        learning = clip_score(50 + staff_growth * 2) if learning is None else (learning + clip_score(50 + staff_growth * 2)) / 2

    perspectives = {
        'financial': supplied.get('financial', score(('roe', 'net_margin', 'roa'))),
        'customer': supplied.get('customer', customer),
        'internal_process': supplied.get('internal_process', score(('operating_margin', 'asset_turnover',
                                                                      'inventory_turnover'))),
        'learning_growth': supplied.get('learning_growth', learning),
    }
    measured = {k: round(v, 1) for k, v in perspectives.items() if v is not None}
    require(measured, "No scorecard perspective could be measured", analysis_id)
    weights = weights or {'financial': 0.35, 'customer': 0.25, 'internal_process': 0.25, 'learning_growth': 0.15}
    overall = weighted_score(measured, weights)
    missing = [k for k in perspectives if k not in measured]

    return build_result(
        analysis_id, 'Balanced Scorecard Analysis', CATEGORY,
        data={'perspectives': measured, 'unmeasured': missing, 'weights': weights,
              'overall_score': round(overall, 1),
              'sources': {k: 'supplied' if k in supplied else 'financial_proxy' for k in measured}},
        interpretation=f"Balanced scorecard result {overall:.0f}/100 across {len(measured)} perspectives.",
        recommendations=([f"Collect measures for the {', '.join(missing)} perspective(s)"] if missing else [])
        + [f"Strengthen the {k.replace('_', ' ')} perspective" for k, v in measured.items() if v < 45],
        value=overall, evaluation=rate_score(overall),
    )


def kpi_analysis(statement: FinancialStatement,
                 kpi_targets: Optional[Dict[str, float]] = None,
                 previous: Optional[FinancialStatement] = None,
                 benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Achievement of key performance indicators against targets.

    Targets default to the industry averages of the core ratios.
    """
    analysis_id = 'inter.perf.kpi'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    actuals = ratio_values(st, previous)
    if previous is not None:
        actuals['revenue_growth'] = pct_change(st.revenue, previous.revenue)
        actuals['net_income_growth'] = pct_change(st.net_income, previous.net_income)
    if kpi_targets is None:
        kpi_targets = {k: benchmarks.get(k) for k in ('roe', 'net_margin', 'current_ratio', 'debt_to_equity',
                                                    'asset_turnover', 'revenue_growth')}
    kpis = {}
    for key, target in kpi_targets.items():
        actual = actuals.get(key)
        if actual is None and hasattr(st, key):
            actual = float(getattr(st, key))
        if actual is None or target in (None, 0):
            continue
        lower = benchmarks.is_lower_better(key)
        achievement = (target / actual if actual else 0.0) if lower else actual / target
        kpis[key] = {'actual': round(actual, 4), 'target': target, 'achievement_pct': round(achievement * 100, 1),
                     'status': 'achieved' if achievement >= 1 else 'near' if achievement >= 0.9 else 'missed'}
    require(kpis, "No KPI could be measured against its target", analysis_id)

    achieved = sum(1 for k in kpis.values() if k['status'] == 'achieved')
    rate = achieved / len(kpis) * 100
    missed = [k for k, v in kpis.items() if v['status'] == 'missed']

    return build_result(
        analysis_id, 'Key Performance Indicators Analysis', CATEGORY,
        data={'kpis': kpis, 'achieved': achieved, 'total': len(kpis), 'missed': missed},
        interpretation=f"{achieved} of {len(kpis)} KPIs achieved their target.",
        recommendations=[f"Action plan for {k.replace('_', ' ')}" for k in missed],
        value=rate, evaluation=rate_score(rate),
    )


def critical_success_factors_analysis(statement: FinancialStatement,
                                      previous: Optional[FinancialStatement] = None,
                                      benchmarks: Optional[IndustryBenchmarks] = None,
                                      factors: Optional[Dict[str, Any]] = None) -> AnalysisResult:
    """
    Status of each critical success factor, measured by one ratio and
    weighted into a readiness score.

    Args:
        factors: Factor name -> (ratio key, weight)
    """
    analysis_id = 'inter.perf.csf'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    values = ratio_values(st, previous)
    if previous is not None:
        values['revenue_growth'] = pct_change(st.revenue, previous.revenue)
    factors = factors or _DEFAULT_CSF

    status, scores, weights = {}, {}, {}
    for name, (key, weight) in factors.items():
        s = benchmark_score(values.get(key), benchmarks.get(key), benchmarks.is_lower_better(key))
        if s is None:
            continue
        scores[name] = s
        weights[name] = weight
        status[name] = {'measure': key, 'value': round_or_none(values.get(key)), 'benchmark': benchmarks.get(key),
                        'score': round(s, 1),
                        'status': 'on_track' if s >= 50 else 'at_risk' if s >= 35 else 'critical'}
    require(status, "No success factor could be measured", analysis_id)

    readiness = weighted_score(scores, weights)
    critical = [k for k, v in status.items() if v['status'] != 'on_track']
    return build_result(
        analysis_id, 'Critical Success Factors Analysis', CATEGORY,
        data={'factors': status, 'readiness_score': round(readiness, 1), 'needs_attention': critical},
        interpretation=(f"{len(status) - len(critical)} of {len(status)} critical success factors are on track "
                        f"(readiness {readiness:.0f}/100)."),
        recommendations=[f"Secure {c.replace('_', ' ')}" for c in critical],
        value=readiness, benchmark=50.0,
    )


def advanced_variance_analysis(actual_sales: Dict[str, Dict[str, float]],
                               budget_sales: Dict[str, Dict[str, float]]) -> AnalysisResult:
    """
    Revenue variance split into price, volume and mix effects.

    Args:
        actual_sales / budget_sales: Product -> {'units': ..., 'price': ...}

    Formula:
        Price  = (AP - BP) x AQ
        Mix    = (AQ - AQtot x BMix) x BP
        Volume = (AQtot - BQtot) x BMix x BP
    """
    analysis_id = 'inter.perf.advanced_variance'
    require(actual_sales and budget_sales, "Actual and budget sales are required", analysis_id)
    products = sorted(set(actual_sales) | set(budget_sales))

    def get(book, p, key):
        return float((book.get(p) or {}).get(key, 0.0))

    actual_total_units = sum(get(actual_sales, p, 'units') for p in products)
    budget_total_units = sum(get(budget_sales, p, 'units') for p in products)
    require(budget_total_units > 0, "Budget units must be positive", analysis_id)

    detail = {}
    for p in products:
        aq, ap = get(actual_sales, p, 'units'), get(actual_sales, p, 'price')
        bq, bp = get(budget_sales, p, 'units'), get(budget_sales, p, 'price')
        if not ap:
            ap = bp
        budget_mix = bq / budget_total_units
        detail[p] = {
            'price_variance': round((ap - bp) * aq, 2),
            'mix_variance': round((aq - actual_total_units * budget_mix) * bp, 2),
            'volume_variance': round((actual_total_units - budget_total_units) * budget_mix * bp, 2),
            'actual_revenue': round(aq * ap, 2),
            'budget_revenue': round(bq * bp, 2),
        }
    totals = {key: round(sum(d[key] for d in detail.values()), 2)
              for key in ('price_variance', 'mix_variance', 'volume_variance', 'actual_revenue', 'budget_revenue')}
    total_variance = totals['actual_revenue'] - totals['budget_revenue']
    main = max(('price_variance', 'mix_variance', 'volume_variance'), key=lambda k: abs(totals[k]))

    return build_result(
        analysis_id, 'Advanced Variance Analysis', CATEGORY,
        data={'products': detail, 'totals': totals, 'total_variance': round(total_variance, 2),
              'main_driver': main},
        interpretation=(f"Revenue is {abs(total_variance):,.0f} {'above' if total_variance >= 0 else 'below'} "
                        f"budget, driven mainly by the {main.replace('_', ' ')}."),
        recommendations=([f"Investigate the unfavourable {k.replace('_', ' ')}" for k in
                          ('price_variance', 'mix_variance', 'volume_variance') if totals[k] < 0]),
        value=total_variance, benchmark=0.0,
        evaluation=Rating.GOOD if total_variance >= 0 else Rating.WEAK,
    )


def variance_deviation_analysis(statement: FinancialStatement,
                                budget: Dict[str, float]) -> AnalysisResult:
    """
    Budget vs actual for each budgeted line item, flagged favourable or
    unfavourable and significant above the threshold.
    """
    analysis_id = 'inter.perf.variance_deviation'
    st = require_statement(statement, analysis_id)
    require(budget, "A budget is required", analysis_id)

    lines = {}
    for item, planned in budget.items():
        if not hasattr(st, item) or not planned:
            continue
        actual = float(getattr(st, item))
        variance = actual - planned
        favourable = variance <= 0 if item in _COST_ITEMS else variance >= 0
        pct = variance / abs(planned) * 100
        lines[item] = {'budget': planned, 'actual': round(actual, 2), 'variance': round(variance, 2),
                       'variance_pct': round(pct, 2), 'favourable': favourable,
                       'significant': abs(pct) >= SIGNIFICANCE_PCT}
    require(lines, "No budget line matches a statement item", analysis_id)

    unfavourable = [k for k, v in lines.items() if not v['favourable'] and v['significant']]
    share = sum(v['favourable'] for v in lines.values()) / len(lines) * 100
    return build_result(
        analysis_id, 'Variance and Deviation Analysis', CATEGORY,
        data={'lines': lines, 'significant_unfavourable': unfavourable, 'favourable_pct': round(share, 1),
              'threshold_pct': SIGNIFICANCE_PCT},
        interpretation=(f"{len(unfavourable)} budget lines show significant unfavourable deviation "
                        f"of {len(lines)} compared."),
        recommendations=[f"Explain the deviation in {k.replace('_', ' ')}" for k in unfavourable],
        value=share, evaluation=rate_score(share),
    )


def flexibility_analysis(statement: FinancialStatement,
                         benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Financial slack: liquid funds plus unused debt capacity at the
    industry leverage, against operating rigidity (fixed cost share) and
    self-funding of capital expenditure.
    """
    analysis_id = 'inter.perf.flexibility'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    benchmarks = resolve_benchmarks(benchmarks)

    liquid = st.cash + st.marketable_securities
    target_de = benchmarks.get('debt_to_equity') or 1.0
    debt_capacity = max(target_de * max(st.total_equity, 0.0) - st.total_debt, 0.0)
    slack = liquid + debt_capacity
    operating_costs = st.revenue - st.ebit
    fixed = st.fixed_costs or (operating_costs - st.cost_of_goods_sold)
    rigidity = safe_divide(fixed, operating_costs)
    capex_cover = safe_divide(st.operating_cash_flow, abs(st.capital_expenditures)) if st.capital_expenditures else None

    components = {
        'slack': clip_score(slack / st.total_assets * 200),
        'cost_flexibility': clip_score((1 - rigidity) * 100) if rigidity is not None else None,
        'self_funding': clip_score(capex_cover * 50) if capex_cover is not None else None,
    }
    measured = {k: round(v, 1) for k, v in components.items() if v is not None}
    score = float(np.mean(list(measured.values())))

    return build_result(
        analysis_id, 'Financial Flexibility Analysis', CATEGORY,
        data={'liquid_funds': round(liquid, 2), 'unused_debt_capacity': round(debt_capacity, 2),
              'financial_slack': round(slack, 2), 'slack_to_assets_pct': round(slack / st.total_assets * 100, 2),
              'fixed_cost_share': round_or_none(rigidity), 'capex_coverage': round_or_none(capex_cover, 2),
              'components': measured, 'flexibility_score': round(score, 1)},
        interpretation=(f"Financial slack of {slack:,.0f} ({slack / st.total_assets * 100:.0f}% of assets); "
                        f"flexibility score {score:.0f}/100."),
        recommendations=(['Build liquidity or debt headroom'] if measured['slack'] < 30 else [])
        + (['High fixed-cost share limits the ability to adjust'] if rigidity is not None and rigidity > 0.6 else []),
        value=score, evaluation=rate_score(score),
    )


def _net_income(revenue, cogs, opex, interest, tax_rate):
    ebt = revenue - cogs - opex - interest
    return ebt - max(ebt, 0.0) * tax_rate


def sensitivity_analysis(statement: FinancialStatement, shock: float = 0.10,
                         drivers: Optional[List[str]] = None) -> AnalysisResult:
    """
    One-way sensitivity (tornado) of net income to +/- `shock` in each
    driver, holding the others at their base values.
    """
    analysis_id = 'inter.perf.sensitivity'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    base = {
        'revenue': st.revenue,
        'cogs': st.cost_of_goods_sold,
        'opex': st.revenue - st.cost_of_goods_sold - st.ebit,
        'interest': st.interest_expense,
        'tax_rate': st.effective_tax_rate or 0.0,
    }
    drivers = drivers or list(base)
    base_ni = _net_income(**base)

    tornado = {}
    for d in drivers:
        if d not in base:
            continue
        low = _net_income(**{**base, d: base[d] * (1 - shock)})
        high = _net_income(**{**base, d: base[d] * (1 + shock)})
        elasticity = safe_divide((high - low) / base_ni, 2 * shock) if base_ni else None
        tornado[d] = {'low': round(low, 2), 'high': round(high, 2), 'swing': round(abs(high - low), 2),
                      'elasticity': round_or_none(elasticity, 3)}
    require(tornado, "No known driver was requested", analysis_id)

    ordered = sorted(tornado, key=lambda k: tornado[k]['swing'], reverse=True)
    top = ordered[0]
    return build_result(
        analysis_id, 'Sensitivity Analysis', CATEGORY,
        data={'base_net_income': round(base_ni, 2), 'shock_pct': shock * 100,
              'tornado': {k: tornado[k] for k in ordered}, 'most_sensitive': top},
        interpretation=(f"Net income is most sensitive to {top} (a {shock * 100:.0f}% change moves it by "
                        f"{tornado[top]['swing'] / 2:,.0f})."),
        recommendations=[f"Monitor and hedge exposure to {top}"],
        value=tornado[top]['elasticity'],
    )
