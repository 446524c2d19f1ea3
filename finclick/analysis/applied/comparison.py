"""
Advanced Comparison Analysis
Company ratios set against industry averages, peers, its own history,
targets and competitors.
"""

import logging
import math
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from finclick import config
from finclick.analysis.base import (
    benchmark_score, build_result, require, require_statement, resolve_benchmarks
)
from finclick.analysis.classical.ratios import RATIOS, compare_to_peers, ratio_values
from finclick.analysis.quantitative.risk_metrics import information_ratio, tracking_error
from finclick.analysis.result import AnalysisResult, Rating, rate_against_benchmark, rate_score
from finclick.core.utils import cagr, clip_score, pct_change, round_or_none, safe_divide, weighted_score
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.market import to_series
from finclick.data.statements import FinancialStatement, require_statements, sort_statements

logger = logging.getLogger(__name__)

CATEGORY = 'intermediate.comparison'

_GROUP_OF = {spec.key: spec.group for spec in RATIOS}

_RATING_POINTS = {Rating.EXCELLENT: 100, Rating.VERY_GOOD: 80, Rating.GOOD: 60,
                  Rating.ACCEPTABLE: 40, Rating.WEAK: 20}

# Dimensions of the competitive position score: (ratio keys, default weight)
_POSITION_DIMENSIONS = {
    'profitability': (('roe', 'net_margin', 'operating_margin'), 0.30),
    'growth': (('revenue_growth',), 0.20),
    'efficiency': (('asset_turnover', 'inventory_turnover'), 0.20),
    'liquidity': (('current_ratio', 'quick_ratio'), 0.15),
    'solvency': (('debt_to_equity', 'interest_coverage'), 0.15),
}


def _with_growth(statement: FinancialStatement, previous: Optional[FinancialStatement]) -> Dict[str, float]:
    values = ratio_values(statement, previous)
    if previous is not None:
        for key, item in (('revenue_growth', 'revenue'), ('net_income_growth', 'net_income'),
                          ('asset_growth', 'total_assets')):
            growth = pct_change(getattr(statement, item), getattr(previous, item))
            if growth is not None:
                values[key] = growth
    return values


def _is_lower(benchmarks: IndustryBenchmarks, key: str) -> bool:
    return benchmarks.is_lower_better(key)


def industrial_comparative_analysis(statement: FinancialStatement,
                                    benchmarks: Optional[IndustryBenchmarks] = None,
                                    previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Every available ratio rated against the sector average, with a score per
    ratio group and an overall 0-100 score.
    """
    analysis_id = 'inter.comp.industry'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    comparisons, group_points = {}, {}
    for key, value in _with_growth(st, previous).items():
        benchmark = benchmarks.get(key)
        rating = rate_against_benchmark(value, benchmark, not _is_lower(benchmarks, key))
        if rating is None:
            continue
        comparisons[key] = {'company': round(value, 4), 'industry': benchmark, 'rating': rating.value,
                            'difference_pct': round_or_none(pct_change(value, benchmark), 2)}
        group_points.setdefault(_GROUP_OF.get(key, 'growth'), []).append(_RATING_POINTS[rating])
    require(comparisons, "No ratio could be compared with the industry", analysis_id)

    group_scores = {g: round(float(np.mean(p)), 1) for g, p in group_points.items()}
    overall = float(np.mean([_RATING_POINTS[Rating(c['rating'])] for c in comparisons.values()]))
    weakest = min(group_scores, key=group_scores.get)
    strongest = max(group_scores, key=group_scores.get)

    return build_result(
        analysis_id, 'Industrial Comparative Analysis', CATEGORY,
        data={'sector': benchmarks.sector, 'comparison_level': benchmarks.comparison_level,
              'ratios': comparisons, 'group_scores': group_scores, 'overall_score': round(overall, 1)},
        interpretation=(f"Against the {benchmarks.sector} sector the company scores {overall:.0f}/100; "
                        f"strongest in {strongest}, weakest in {weakest}."),
        recommendations=[f"Prioritise improvement in {weakest} ratios"] if group_scores[weakest] < 60 else [],
        value=overall,
        evaluation=rate_score(overall),
    )


def peer_comparative_analysis(statement: FinancialStatement,
                              peers: Optional[List[FinancialStatement]] = None,
                              benchmarks: Optional[IndustryBenchmarks] = None,
                              previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Rank and percentile of each ratio within a peer group.

    Peer statements are used when supplied; otherwise the synthetic peer
    sample around the sector average.
    """
    analysis_id = 'inter.comp.peers'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    peer_values = [ratio_values(p) for p in (peers or [])]

    ranks = {}
    for key, value in ratio_values(st, previous).items():
        sample = [p[key] for p in peer_values if key in p] or benchmarks.peer_values(key)
        if not sample:
            continue
        ranks[key] = {'company': value, **compare_to_peers(value, sample, _is_lower(benchmarks, key))}
    require(ranks, "No peer data for any ratio", analysis_id)

    avg_percentile = float(np.mean([r['percentile'] for r in ranks.values()]))
    top = sorted(ranks, key=lambda k: ranks[k]['percentile'], reverse=True)[:3]
    bottom = sorted(ranks, key=lambda k: ranks[k]['percentile'])[:3]

    return build_result(
        analysis_id, 'Peer Comparative Analysis', CATEGORY,
        data={'ranks': ranks, 'average_percentile': round(avg_percentile, 1),
              'peer_source': 'statements' if peer_values else 'synthetic', 'top_ratios': top,
              'bottom_ratios': bottom},
        interpretation=(f"The company sits at the {avg_percentile:.0f}th percentile of its peers on average; "
                        f"best placed on {', '.join(top)}."),
        recommendations=[f"Peers outperform on {k.replace('_', ' ')}" for k in bottom
                         if ranks[k]['percentile'] < 40],
        value=avg_percentile,
        evaluation=rate_score(avg_percentile),
    )


def historical_comparative_analysis(statements: List[FinancialStatement],
                                    benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Latest ratios compared with the company's own historical average and
    best year.
    """
    analysis_id = 'inter.comp.historical'
    ordered = require_statements(statements, 2, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    history = pd.DataFrame({st.year: ratio_values(st, prev)
                            for prev, st in zip([None] + ordered[:-1], ordered)}).T
    latest_year = ordered[-1].year
    comparisons = {}
    for key in history.columns:
        col = history[key].dropna()
        if len(col) < 2 or latest_year not in col.index:
            continue
        past = col.drop(latest_year)
        lower = _is_lower(benchmarks, key)
        latest = float(col[latest_year])
        average = float(past.mean())
        best = float(past.min() if lower else past.max())
        improved = latest <= average if lower else latest >= average
        comparisons[key] = {'latest': round(latest, 4), 'historical_average': round(average, 4),
                            'best': round(best, 4), 'improved': bool(improved),
                            'series': {str(k): round(float(v), 4) for k, v in col.items()}}
    require(comparisons, "Ratios are not available for two or more years", analysis_id)

    improving = [k for k, c in comparisons.items() if c['improved']]
    share = len(improving) / len(comparisons) * 100
    deteriorating = [k for k in comparisons if k not in improving]

    return build_result(
        analysis_id, 'Historical Comparative Analysis', CATEGORY,
        data={'ratios': comparisons, 'improving': improving, 'deteriorating': deteriorating,
              'years': [st.year for st in ordered]},
        interpretation=f"{len(improving)} of {len(comparisons)} ratios are at or better than their historical average.",
        recommendations=[f"Reverse the deterioration in {k.replace('_', ' ')}" for k in deteriorating[:3]],
        value=share,
        evaluation=rate_score(share),
    )


def benchmarking_analysis(statement: FinancialStatement,
                          benchmarks: Optional[IndustryBenchmarks] = None,
                          best_in_class: Optional[Dict[str, float]] = None,
                          previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Gaps to the industry average and to best-in-class performance.

    Best-in-class defaults to the best value in the peer sample.
    """
    analysis_id = 'inter.comp.benchmarking'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    best_in_class = best_in_class or {}

    gaps, closure = {}, []
    for key, value in ratio_values(st, previous).items():
        lower = _is_lower(benchmarks, key)
        peers = benchmarks.peer_values(key)
        best = best_in_class.get(key)
        if best is None and peers:
            best = min(peers) if lower else max(peers)
        if best is None:
            continue
        reached = benchmark_score(value, best, lower) / 50 * 100
        closure.append(min(reached, 100.0))
        gaps[key] = {'company': value, 'industry_average': benchmarks.get(key), 'best_in_class': best,
                     'gap_to_best': round(best - value, 4), 'pct_of_best': round(reached, 1)}
    require(gaps, "No best-in-class reference available", analysis_id)

    avg_closure = float(np.mean(closure))
    widest = sorted(gaps, key=lambda k: gaps[k]['pct_of_best'])[:3]
    return build_result(
        analysis_id, 'Benchmarking Analysis', CATEGORY,
        data={'gaps': gaps, 'widest_gaps': widest, 'average_pct_of_best': round(avg_closure, 1)},
        interpretation=f"On average the company achieves {avg_closure:.0f}% of best-in-class performance.",
        recommendations=[f"Study best practice in {k.replace('_', ' ')}" for k in widest],
        value=avg_closure,
        evaluation=rate_score(avg_closure),
    )


def gap_analysis(statement: FinancialStatement,
                 targets: Optional[Dict[str, float]] = None,
                 statements: Optional[List[FinancialStatement]] = None,
                 benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Gap between actual and target per measure, with the years needed to
    close line-item gaps at the historical growth rate.

    Targets may name statement items (e.g. 'revenue') or ratio keys; the
    industry averages are used when no targets are given.
    """
    analysis_id = 'inter.comp.gap'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    ratios = ratio_values(st)
    targets = targets or {k: benchmarks.get(k) for k in ratios if benchmarks.get(k) is not None}
    require(targets, "No targets to compare against", analysis_id)

    ordered = sort_statements(statements or [])
    gaps = {}
    for key, target in targets.items():
        if key in ratios:
            actual = ratios[key]
        elif hasattr(st, key):
            actual = float(getattr(st, key))
        else:
            continue
        lower = _is_lower(benchmarks, key)
        met = actual <= target if lower else actual >= target
        entry = {'actual': round(actual, 4), 'target': target, 'gap': round(target - actual, 4),
                 'gap_pct': round_or_none(safe_divide(target - actual, abs(target)) * 100, 2) if target else None,
                 'met': bool(met), 'years_to_close': None}
        if not met and key not in ratios and len(ordered) >= 2:
            growth = cagr(getattr(ordered[0], key), getattr(ordered[-1], key), len(ordered) - 1)
            if growth and growth > 0 and actual > 0 and target > actual:
                entry['years_to_close'] = round(math.log(target / actual) / math.log(1 + growth / 100), 1)
        gaps[key] = entry
    require(gaps, "None of the targets match a statement item or ratio", analysis_id)

    met_share = sum(g['met'] for g in gaps.values()) / len(gaps) * 100
    open_gaps = sorted((k for k, g in gaps.items() if not g['met']),
                       key=lambda k: abs(gaps[k]['gap_pct'] or 0), reverse=True)
    return build_result(
        analysis_id, 'Gap Analysis', CATEGORY,
        data={'gaps': gaps, 'open_gaps': open_gaps, 'targets_met_pct': round(met_share, 1)},
        interpretation=f"{len(gaps) - len(open_gaps)} of {len(gaps)} targets are met.",
        recommendations=[f"Close the gap in {k.replace('_', ' ')} ({gaps[k]['gap_pct']}%)" for k in open_gaps[:3]],
        value=met_share,
        evaluation=rate_score(met_share),
    )


def competitive_position_analysis(statement: FinancialStatement,
                                  benchmarks: Optional[IndustryBenchmarks] = None,
                                  previous: Optional[FinancialStatement] = None,
                                  weights: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Weighted score across profitability, growth, efficiency, liquidity and
    solvency, each dimension scored against the industry (50 = par).
    """
    analysis_id = 'inter.comp.position'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    values = _with_growth(st, previous)

    dimension_scores, detail = {}, {}
    for dimension, (keys, _) in _POSITION_DIMENSIONS.items():
        scores = {k: benchmark_score(values.get(k), benchmarks.get(k), _is_lower(benchmarks, k)) for k in keys}
        scores = {k: round(v, 1) for k, v in scores.items() if v is not None}
        if scores:
            dimension_scores[dimension] = round(float(np.mean(list(scores.values()))), 1)
            detail[dimension] = scores
    require(dimension_scores, "No dimension could be scored", analysis_id)

    weights = weights or {d: w for d, (_, w) in _POSITION_DIMENSIONS.items()}
    score = weighted_score(dimension_scores, weights)
    if score >= 65:
        position = 'leader'
    elif score >= 52:
        position = 'challenger'
    elif score >= 40:
        position = 'follower'
    else:
        position = 'laggard'

    weakest = min(dimension_scores, key=dimension_scores.get)
    return build_result(
        analysis_id, 'Competitive Position Analysis', CATEGORY,
        data={'dimension_scores': dimension_scores, 'ratio_scores': detail, 'weights': weights,
              'score': round(score, 1), 'position': position},
        interpretation=f"Weighted competitive score is {score:.0f}/100 (50 = industry par): {position}.",
        recommendations=[f"Strengthen {weakest} to improve competitive standing"] if dimension_scores[weakest] < 50 else [],
        value=score,
        benchmark=50.0,
    )


def market_share_analysis(statement: FinancialStatement,
                          market_size: Optional[float] = None,
                          competitors: Optional[Dict[str, float]] = None,
                          previous: Optional[FinancialStatement] = None,
                          previous_market_size: Optional[float] = None) -> AnalysisResult:
    """
    Market share, relative share, concentration (HHI, CR3/CR5) and share
    change.

    Args:
        statement: Company statement (revenue is used as sales)
        market_size: Total market sales; defaults to company + competitors
        competitors: Competitor name -> sales
    """
    analysis_id = 'inter.comp.market_share'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    competitors = competitors or {}
    require(market_size or competitors, "Market size or competitor sales are required", analysis_id)

    tracked = st.revenue + sum(competitors.values())
    market = market_size or tracked
    require(market >= st.revenue, "Market size is smaller than company sales", analysis_id)

    share = st.revenue / market * 100
    shares = {name: sales / market * 100 for name, sales in competitors.items()}
    all_shares = sorted([share] + list(shares.values()), reverse=True)
    hhi = sum(s ** 2 for s in all_shares)
    largest_rival = max(shares.values()) if shares else None
    relative = share / largest_rival if largest_rival else None

    if hhi < 1500:
        structure = 'competitive'
    elif hhi < 2500:
        structure = 'moderately_concentrated'
    else:
        structure = 'highly_concentrated'

    change = None
    if previous is not None and previous.revenue and previous_market_size:
        change = share - previous.revenue / previous_market_size * 100

    return build_result(
        analysis_id, 'Market Share Analysis', CATEGORY,
        data={'market_share_pct': round(share, 2),
              'competitor_shares_pct': {k: round(v, 2) for k, v in shares.items()},
              'others_pct': round(max(100 - sum(all_shares), 0.0), 2),
              'relative_market_share': round_or_none(relative, 2),
              'rank': all_shares.index(share) + 1,
              'hhi': round(hhi, 0), 'cr3': round(sum(all_shares[:3]), 2), 'cr5': round(sum(all_shares[:5]), 2),
              'market_structure': structure, 'share_change_pct_points': round_or_none(change, 2)},
        interpretation=(f"The company holds {share:.1f}% of a {structure.replace('_', ' ')} market "
                        f"(HHI {hhi:.0f})" + (f", {relative:.2f}x the largest rival." if relative else '.')),
        recommendations=(['Share is falling; review pricing and distribution'] if change is not None and change < 0 else []),
        value=share,
    )


def competitive_capability_analysis(statements: List[FinancialStatement],
                                    benchmarks: Optional[IndustryBenchmarks] = None) -> AnalysisResult:
    """
    Capability index from financial capacity, innovation intensity,
    operating efficiency, growth momentum and investment capacity.
    """
    analysis_id = 'inter.comp.capability'
    ordered = require_statements(statements, 1, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    st = ordered[-1]
    require(st.revenue > 0, "Revenue is required", analysis_id)

    growth = cagr(ordered[0].revenue, st.revenue, len(ordered) - 1) if len(ordered) > 1 else None
    fcf_margin = st.free_cash_flow / st.revenue * 100
    operating_margin = st.ebit / st.revenue * 100
    rd_intensity = st.rd_expense / st.revenue * 100
    cash_cover = safe_divide(st.cash + st.marketable_securities, st.total_current_liabilities)

    capabilities = {
        'financial_capacity': benchmark_score(cash_cover, benchmarks.get('cash_ratio')),
        'innovation': clip_score(rd_intensity * 10) if st.rd_expense else None,
        'operating_efficiency': benchmark_score(operating_margin, benchmarks.get('operating_margin')),
        'growth_momentum': benchmark_score(growth, benchmarks.get('revenue_growth')),
        'investment_capacity': benchmark_score(fcf_margin, benchmarks.get('fcf_margin')),
    }
    capabilities = {k: round(v, 1) for k, v in capabilities.items() if v is not None}
    require(capabilities, "No capability could be measured", analysis_id)
    index = float(np.mean(list(capabilities.values())))
    gaps = [k for k, v in capabilities.items() if v < 40]

    return build_result(
        analysis_id, 'Competitive Capability Analysis', CATEGORY,
        data={'capabilities': capabilities, 'capability_index': round(index, 1),
              'rd_intensity_pct': round(rd_intensity, 2), 'revenue_cagr': round_or_none(growth, 2),
              'capability_gaps': gaps},
        interpretation=f"Capability index of {index:.0f}/100 (50 = industry par).",
        recommendations=[f"Build capability in {g.replace('_', ' ')}" for g in gaps],
        value=index,
        benchmark=50.0,
    )


def financial_strength_weakness_analysis(statement: FinancialStatement,
                                         benchmarks: Optional[IndustryBenchmarks] = None,
                                         previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Classify every ratio as a strength, neutral or weakness by its rating
    against the industry.
    """
    analysis_id = 'inter.comp.strength_weakness'
    st = require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    strengths, neutral, weaknesses = {}, {}, {}
    for key, value in ratio_values(st, previous).items():
        rating = rate_against_benchmark(value, benchmarks.get(key), not _is_lower(benchmarks, key))
        if rating is None:
            continue
        entry = {'value': value, 'industry': benchmarks.get(key), 'rating': rating.value,
                 'group': _GROUP_OF.get(key)}
        if rating in (Rating.EXCELLENT, Rating.VERY_GOOD):
            strengths[key] = entry
        elif rating == Rating.WEAK:
            weaknesses[key] = entry
        else:
            neutral[key] = entry
    total = len(strengths) + len(neutral) + len(weaknesses)
    require(total, "No ratio could be rated", analysis_id)

    balance = (len(strengths) + 0.5 * len(neutral)) / total * 100
    return build_result(
        analysis_id, 'Financial Strength and Weakness Analysis', CATEGORY,
        data={'strengths': strengths, 'neutral': neutral, 'weaknesses': weaknesses,
              'strength_balance': round(balance, 1)},
        interpretation=(f"{len(strengths)} financial strengths and {len(weaknesses)} weaknesses "
                        f"out of {total} rated ratios."),
        recommendations=[f"Address weak {k.replace('_', ' ')}" for k in list(weaknesses)[:3]],
        value=balance,
        evaluation=rate_score(balance),
    )


def relative_performance_analysis(returns: Optional[pd.Series] = None,
                                  benchmark_returns: Optional[pd.Series] = None,
                                  statements: Optional[List[FinancialStatement]] = None,
                                  benchmarks: Optional[IndustryBenchmarks] = None,
                                  periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Performance relative to a benchmark.

    With return series: excess return, tracking error, information ratio,
    capture ratios and hit rate. Otherwise revenue and profit growth
    against the industry.
    """
    analysis_id = 'inter.comp.relative'
    r = to_series(returns)
    b = to_series(benchmark_returns)

    if r is not None and b is not None:
        joined = pd.concat([r, b], axis=1, join='inner').dropna()
        require(len(joined) >= 20, "Relative performance needs 20 aligned returns", analysis_id)
        r, b = joined.iloc[:, 0], joined.iloc[:, 1]
        excess = (r.mean() - b.mean()) * periods_per_year * 100
        up, down = b > 0, b < 0
        up_capture = safe_divide(r[up].mean(), b[up].mean())
        down_capture = safe_divide(r[down].mean(), b[down].mean())
        hit_rate = float((r > b).mean() * 100)
        te = tracking_error(r, b, periods_per_year)
        ir = information_ratio(r, b, periods_per_year)
        return build_result(
            analysis_id, 'Relative Performance Analysis', CATEGORY,
            data={'basis': 'returns', 'annual_excess_return_pct': round(excess, 2),
                  'tracking_error': te, 'information_ratio': ir,
                  'up_capture': round_or_none(up_capture, 3), 'down_capture': round_or_none(down_capture, 3),
                  'hit_rate_pct': round(hit_rate, 1), 'observations': len(joined)},
            interpretation=(f"The asset {'outperformed' if excess > 0 else 'underperformed'} its benchmark by "
                            f"{abs(excess):.1f}% a year, beating it in {hit_rate:.0f}% of periods."),
            recommendations=(['Downside capture above 1: losses exceed the market in falling periods']
                             if down_capture is not None and down_capture > 1 else []),
            value=excess,
            benchmark=0.0,
            evaluation=Rating.GOOD if excess >= 0 else Rating.WEAK,
        )

    ordered = require_statements(statements, 2, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)
    periods = len(ordered) - 1
    company = {
        'revenue_growth': cagr(ordered[0].revenue, ordered[-1].revenue, periods),
        'net_income_growth': cagr(ordered[0].net_income, ordered[-1].net_income, periods),
        'asset_growth': cagr(ordered[0].total_assets, ordered[-1].total_assets, periods),
    }
    reference = {k: benchmarks.get(k) for k in company}
    relative = {k: round_or_none(company[k] - reference[k], 2)
                if company[k] is not None and reference[k] is not None else None for k in company}
    usable = [v for v in relative.values() if v is not None]
    require(usable, "Growth could not be measured", analysis_id)
    avg = float(np.mean(usable))

    return build_result(
        analysis_id, 'Relative Performance Analysis', CATEGORY,
        data={'basis': 'statements', 'company_growth': {k: round_or_none(v, 2) for k, v in company.items()},
              'reference_growth': reference, 'relative_growth_pct_points': relative},
        interpretation=(f"Company growth runs {abs(avg):.1f} points {'above' if avg >= 0 else 'below'} the "
                        f"{benchmarks.sector} reference on average."),
        value=company['revenue_growth'],
        benchmark=reference['revenue_growth'],
    )
