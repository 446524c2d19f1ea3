"""
Financial Ratios Analysis
Thirty standard ratios, each measured against the industry average and a
peer group, plus a grouped summary of all of them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from finclick.analysis.base import build_result, require, require_statement, resolve_benchmarks
from finclick.analysis.fundamental import efficiency, liquidity, profitability, solvency
from finclick.analysis.fundamental.valuation import ratios as market
from finclick.analysis.result import AnalysisResult, Rating
from finclick.core.exceptions import InsufficientDataError
from finclick.core.utils import round_or_none
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)

CATEGORY = 'basic.ratios'

GROUPS = ('liquidity', 'activity', 'leverage', 'profitability', 'market')

# Points per rating used for the group performance average
_RATING_POINTS = {
    Rating.EXCELLENT: 5, Rating.VERY_GOOD: 4, Rating.GOOD: 3,
    Rating.ACCEPTABLE: 2, Rating.WEAK: 1,
}


@dataclass(frozen=True)
class RatioSpec:
    analysis_id: str
    key: str
    name: str
    group: str
    compute: Callable[[FinancialStatement, Optional[FinancialStatement]], Dict[str, Any]]
    improve: str
    maintain: str


RATIOS: List[RatioSpec] = [
    # Liquidity
    RatioSpec('ratio.current', 'current_ratio', 'Current Ratio', 'liquidity',
              lambda st, prev: liquidity.calculate_current_ratio(st),
              'Raise current assets or refinance short-term liabilities to restore liquidity',
              'Keep working capital discipline at the current level'),
    RatioSpec('ratio.quick', 'quick_ratio', 'Quick Ratio', 'liquidity',
              lambda st, prev: liquidity.calculate_quick_ratio(st),
              'Speed up receivable collection and reduce reliance on inventory',
              'Maintain the quick liquidity buffer'),
    RatioSpec('ratio.cash', 'cash_ratio', 'Cash Ratio', 'liquidity',
              lambda st, prev: liquidity.calculate_cash_ratio(st),
              'Build cash reserves to cover short-term obligations',
              'Cash level is adequate; consider investing any surplus'),
    RatioSpec('ratio.operating_cash_flow', 'operating_cash_flow_ratio', 'Operating Cash Flow Ratio', 'liquidity',
              lambda st, prev: liquidity.calculate_operating_cash_flow_ratio(st),
              'Improve operating cash generation through a shorter cash conversion cycle',
              'Operating cash flow covers current liabilities comfortably'),
    RatioSpec('ratio.working_capital', 'working_capital_ratio', 'Working Capital Ratio', 'liquidity',
              lambda st, prev: liquidity.calculate_working_capital(st),
              'Increase working capital to improve financial flexibility',
              'Working capital is managed efficiently'),
    # Activity
    RatioSpec('ratio.inventory_turnover', 'inventory_turnover', 'Inventory Turnover', 'activity',
              efficiency.calculate_inventory_turnover,
              'Reduce slow-moving stock and tighten inventory planning',
              'Inventory moves efficiently'),
    RatioSpec('ratio.receivables_turnover', 'receivables_turnover', 'Receivables Turnover', 'activity',
              efficiency.calculate_receivables_turnover,
              'Tighten credit terms and follow up overdue accounts',
              'Collections are efficient'),
    RatioSpec('ratio.dso', 'days_sales_outstanding', 'Days Sales Outstanding', 'activity',
              efficiency.calculate_receivables_turnover,
              'Shorten the collection period with stricter credit control',
              'Collection period is in line with the industry'),
    RatioSpec('ratio.payables_turnover', 'payables_turnover', 'Payables Turnover', 'activity',
              efficiency.calculate_payables_turnover,
              'Review supplier payment terms to balance liquidity and relationships',
              'Supplier payments are well balanced'),
    RatioSpec('ratio.dpo', 'days_payables_outstanding', 'Days Payables Outstanding', 'activity',
              efficiency.calculate_payables_turnover,
              'Negotiate longer supplier terms to ease cash pressure',
              'Payment period is in line with the industry'),
    RatioSpec('ratio.fixed_asset_turnover', 'fixed_asset_turnover', 'Fixed Asset Turnover', 'activity',
              efficiency.calculate_fixed_asset_turnover,
              'Raise utilisation of plant and equipment or dispose of idle assets',
              'Fixed assets are used productively'),
    RatioSpec('ratio.asset_turnover', 'asset_turnover', 'Total Asset Turnover', 'activity',
              efficiency.calculate_asset_turnover,
              'Grow revenue from the existing asset base',
              'Assets generate revenue efficiently'),
    RatioSpec('ratio.operating_cycle', 'operating_cycle', 'Operating Cycle', 'activity',
              efficiency.calculate_operating_cycle,
              'Shorten the operating cycle through faster inventory and receivable turns',
              'Operating cycle is efficient'),
    RatioSpec('ratio.cash_conversion_cycle', 'cash_conversion_cycle', 'Cash Conversion Cycle', 'activity',
              efficiency.calculate_cash_conversion_cycle,
              'Reduce the cash conversion cycle to free up working capital',
              'Cash conversion is efficient'),
    # Leverage
    RatioSpec('ratio.debt_to_assets', 'debt_to_assets', 'Debt to Assets', 'leverage',
              lambda st, prev: solvency.calculate_debt_to_assets(st),
              'Reduce liabilities relative to assets to lower financial risk',
              'Balance sheet leverage is sound'),
    RatioSpec('ratio.debt_to_equity', 'debt_to_equity', 'Debt to Equity', 'leverage',
              lambda st, prev: solvency.calculate_debt_to_equity(st),
              'Deleverage or strengthen equity to reduce financial risk',
              'Capital structure is balanced'),
    RatioSpec('ratio.interest_coverage', 'interest_coverage', 'Interest Coverage', 'leverage',
              lambda st, prev: solvency.calculate_interest_coverage(st),
              'Lift operating profit or refinance expensive debt',
              'Interest obligations are well covered'),
    RatioSpec('ratio.debt_service_coverage', 'debt_service_coverage', 'Debt Service Coverage', 'leverage',
              lambda st, prev: solvency.calculate_debt_service_coverage(st),
              'Reschedule principal repayments to match cash generation',
              'Debt service is comfortably covered'),
    RatioSpec('ratio.equity_to_assets', 'equity_to_assets', 'Equity to Assets', 'leverage',
              lambda st, prev: solvency.calculate_equity_ratio(st),
              'Retain earnings or raise equity to strengthen the capital base',
              'Equity base is solid'),
    # Profitability
    RatioSpec('ratio.gross_margin', 'gross_margin', 'Gross Profit Margin', 'profitability',
              lambda st, prev: profitability.calculate_gross_profit_margin(st),
              'Review pricing and direct costs to lift gross margin',
              'Gross margin is competitive'),
    RatioSpec('ratio.operating_margin', 'operating_margin', 'Operating Profit Margin', 'profitability',
              lambda st, prev: profitability.calculate_operating_margin(st),
              'Control operating expenses to improve operating margin',
              'Operating margin is healthy'),
    RatioSpec('ratio.net_margin', 'net_margin', 'Net Profit Margin', 'profitability',
              lambda st, prev: profitability.calculate_net_profit_margin(st),
              'Improve cost efficiency and financing costs to raise net margin',
              'Net margin is strong'),
    RatioSpec('ratio.roa', 'roa', 'Return on Assets', 'profitability',
              profitability.calculate_roa,
              'Improve asset productivity or divest low-return assets',
              'Assets earn a good return'),
    RatioSpec('ratio.roe', 'roe', 'Return on Equity', 'profitability',
              profitability.calculate_roe,
              'Raise profitability or use leverage more effectively',
              'Shareholders earn a good return'),
    RatioSpec('ratio.roic', 'roic', 'Return on Invested Capital', 'profitability',
              lambda st, prev: profitability.calculate_roic(st),
              'Focus capital on projects earning above the cost of capital',
              'Invested capital earns attractive returns'),
    # Market
    RatioSpec('ratio.pe', 'pe_ratio', 'Price to Earnings', 'market',
              lambda st, prev: market.calculate_pe_ratio(st),
              'Valuation is demanding relative to earnings; verify growth expectations',
              'Earnings multiple is reasonable'),
    RatioSpec('ratio.pb', 'pb_ratio', 'Price to Book', 'market',
              lambda st, prev: market.calculate_pb_ratio(st),
              'Market price is high relative to book value; check return on equity supports it',
              'Price to book is reasonable'),
    RatioSpec('ratio.dividend_yield', 'dividend_yield', 'Dividend Yield', 'market',
              lambda st, prev: market.calculate_dividend_yield(st),
              'Review the payout policy against peers',
              'Dividend yield is competitive'),
    RatioSpec('ratio.eps', 'eps', 'Earnings per Share', 'market',
              lambda st, prev: profitability.calculate_eps(st),
              'Grow earnings per share through profit growth or buybacks',
              'Earnings per share is improving'),
    RatioSpec('ratio.book_value_per_share', 'book_value_per_share', 'Book Value per Share', 'market',
              lambda st, prev: profitability.calculate_book_value_per_share(st),
              'Rebuild book value through retained profits',
              'Book value per share is growing'),
]

RATIO_INDEX: Dict[str, RatioSpec] = {spec.analysis_id: spec for spec in RATIOS}

# Ratios benchmarked against the prior year instead of the industry
_PRIOR_YEAR_BENCHMARK = {'eps', 'book_value_per_share'}


def compare_to_peers(value: float, peers: List[float], lower_is_better: bool = False) -> Dict[str, Any]:
    """
    Rank a value within a peer sample.

    Rank 1 is the best. The company is counted in the total.
    """
    if not peers:
        return {'average': round_or_none(value), 'rank': 1, 'total': 1, 'percentile': 100.0}
    ordered = sorted(peers) if lower_is_better else sorted(peers, reverse=True)
    beaten_by = sum(1 for p in ordered if (p < value if lower_is_better else p > value))
    rank = beaten_by + 1
    total = len(peers) + 1
    return {
        'average': round(sum(peers) / len(peers), 4),
        'rank': rank,
        'total': total,
        'percentile': round((total - rank) / (total - 1) * 100, 1)
    }


def competitive_position(value: float, benchmark: Optional[float], lower_is_better: bool = False) -> str:
    if not benchmark:
        return 'unrated'
    diff = (value - benchmark) / abs(benchmark) * 100
    if lower_is_better:
        diff = -diff
    if diff > 20:
        return 'leader'
    if diff > 10:
        return 'strong'
    if diff > 0:
        return 'above_average'
    if diff > -10:
        return 'average'
    return 'lagging'


def _comparison(value: float, benchmark: Optional[float]) -> Optional[str]:
    if benchmark is None:
        return None
    if abs(value - benchmark) <= abs(benchmark) * 0.01:
        return 'equal'
    return 'above' if value > benchmark else 'below'


def _ratio_analysis(analysis_id: str, statement: FinancialStatement,
                    benchmarks: Optional[IndustryBenchmarks] = None,
                    previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    spec = RATIO_INDEX[analysis_id]
    require_statement(statement, analysis_id)
    benchmarks = resolve_benchmarks(benchmarks)

    raw = spec.compute(statement, previous)
    value = raw.get(spec.key)
    require(value is not None, f"{spec.name} cannot be computed: {raw.get('interpretation', 'N/A')}",
            analysis_id)

    lower_is_better = benchmarks.is_lower_better(spec.key)
    if spec.key in _PRIOR_YEAR_BENCHMARK:
        prior = spec.compute(previous, None).get(spec.key) if previous is not None else None
        benchmark, benchmark_source, peers = prior, 'prior_year', []
    else:
        benchmark, benchmark_source = benchmarks.get(spec.key), 'industry_average'
        peers = benchmarks.peer_values(spec.key)

    difference = round((value - benchmark) / abs(benchmark) * 100, 2) if benchmark else None
    position = competitive_position(value, benchmark, lower_is_better)

    result = build_result(
        analysis_id, spec.name, CATEGORY,
        data={
            spec.key: value,
            'formula': raw.get('formula'),
            'group': spec.group,
            'industry_average': benchmark,
            'benchmark_source': benchmark_source,
            'comparison': _comparison(value, benchmark),
            'percentage_difference': difference,
            'peer_comparison': compare_to_peers(value, peers, lower_is_better),
            'competitive_position': position,
            'lower_is_better': lower_is_better,
            'details': {k: v for k, v in raw.items() if k not in (spec.key, 'formula', 'interpretation')},
        },
        interpretation=raw.get('interpretation', ''),
        value=value,
        benchmark=benchmark,
        higher_is_better=not lower_is_better,
    )
    if result.evaluation in (Rating.WEAK, Rating.ACCEPTABLE):
        result.recommendations.append(spec.improve)
    else:
        result.recommendations.append(spec.maintain)
    return result


# Liquidity

def current_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.current', statement, benchmarks)


def quick_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.quick', statement, benchmarks)


def cash_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.cash', statement, benchmarks)


def operating_cash_flow_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.operating_cash_flow', statement, benchmarks)


def working_capital_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.working_capital', statement, benchmarks)


# Activity

def inventory_turnover_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.inventory_turnover', statement, benchmarks, previous)


def receivables_turnover_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.receivables_turnover', statement, benchmarks, previous)


def days_sales_outstanding_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.dso', statement, benchmarks, previous)


def payables_turnover_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.payables_turnover', statement, benchmarks, previous)


def days_payables_outstanding_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.dpo', statement, benchmarks, previous)


def fixed_asset_turnover_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.fixed_asset_turnover', statement, benchmarks, previous)


def total_asset_turnover_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.asset_turnover', statement, benchmarks, previous)


def operating_cycle_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.operating_cycle', statement, benchmarks, previous)


def cash_conversion_cycle_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.cash_conversion_cycle', statement, benchmarks, previous)


# Leverage

def debt_to_assets_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.debt_to_assets', statement, benchmarks)


def debt_to_equity_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.debt_to_equity', statement, benchmarks)


def interest_coverage_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.interest_coverage', statement, benchmarks)


def debt_service_coverage_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.debt_service_coverage', statement, benchmarks)


def equity_to_assets_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.equity_to_assets', statement, benchmarks)


# Profitability

def gross_margin_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.gross_margin', statement, benchmarks)


def operating_margin_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.operating_margin', statement, benchmarks)


def net_margin_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.net_margin', statement, benchmarks)


def roa_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.roa', statement, benchmarks, previous)


def roe_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.roe', statement, benchmarks, previous)


def roic_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.roic', statement, benchmarks)


# Market

def pe_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.pe', statement, benchmarks)


def pb_ratio_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.pb', statement, benchmarks)


def dividend_yield_analysis(statement, benchmarks=None):
    return _ratio_analysis('ratio.dividend_yield', statement, benchmarks)


def eps_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.eps', statement, benchmarks, previous)


def book_value_per_share_analysis(statement, benchmarks=None, previous=None):
    return _ratio_analysis('ratio.book_value_per_share', statement, benchmarks, previous)


def ratio_values(statement: FinancialStatement,
                 previous: Optional[FinancialStatement] = None) -> Dict[str, float]:
    """
    Headline value of every ratio that can be computed, keyed like the
    industry benchmarks.
    """
    values = {}
    for spec in RATIOS:
        value = spec.compute(statement, previous).get(spec.key)
        if value is not None:
            values[spec.key] = value
    return values


def _group_summary(results: List[AnalysisResult]) -> Dict[str, Any]:
    points = [_RATING_POINTS[r.evaluation] for r in results if r.evaluation in _RATING_POINTS]
    average = sum(points) / len(points) if points else None

    if average is None:
        performance = None
    elif average >= 4.5:
        performance = Rating.EXCELLENT.value
    elif average >= 3.5:
        performance = Rating.VERY_GOOD.value
    elif average >= 2.5:
        performance = Rating.GOOD.value
    elif average >= 1.5:
        performance = Rating.ACCEPTABLE.value
    else:
        performance = Rating.WEAK.value

    return {
        'average_score': round(average, 2) if average is not None else None,
        'performance': performance,
        'strengths': [r.name for r in results if r.evaluation in (Rating.EXCELLENT, Rating.VERY_GOOD)],
        'weaknesses': [r.name for r in results if r.evaluation == Rating.WEAK],
        'recommendations': [rec for r in results if r.evaluation in (Rating.WEAK, Rating.ACCEPTABLE)
                            for rec in r.recommendations][:3]
    }


def calculate_all_financial_ratios(statement: FinancialStatement,
                                   benchmarks: Optional[IndustryBenchmarks] = None,
                                   previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Run all thirty ratios and group them.

    Ratios whose inputs are missing (e.g. market ratios without a share
    price) are listed under `unavailable` instead of failing the group.

    Returns:
        {'groups': {group: {'ratios': [AnalysisResult], 'summary': {...}}},
         'unavailable': [analysis_id, ...]}
    """
    benchmarks = resolve_benchmarks(benchmarks)
    grouped: Dict[str, List[AnalysisResult]] = {g: [] for g in GROUPS}
    unavailable = []

    for spec in RATIOS:
        try:
            grouped[spec.group].append(_ratio_analysis(spec.analysis_id, statement, benchmarks, previous))
        except InsufficientDataError as e:
            logger.debug(f"{spec.analysis_id} unavailable: {e}")
            unavailable.append(spec.analysis_id)

    return {
        'groups': {
            group: {'ratios': results, 'summary': _group_summary(results)}
            for group, results in grouped.items() if results
        },
        'unavailable': unavailable
    }
