"""
Catalogue Building Blocks
Helpers shared by every catalogue analysis: result construction, input
checks and statement-to-series conversion.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from finclick.analysis.result import AnalysisResult, Rating, rate_against_benchmark
from finclick.core.exceptions import InsufficientDataError
from finclick.core.utils import round_or_none
from finclick.data.benchmarks import IndustryBenchmarks, get_industry_benchmarks
from finclick.data.market import to_frame, to_series
from finclick.data.statements import FinancialStatement, sort_statements

logger = logging.getLogger(__name__)


# Line items shown by the structural analyses, in statement order
KEY_ITEMS = (
    'revenue', 'cost_of_goods_sold', 'gross_profit', 'operating_expenses',
    'operating_income', 'interest_expense', 'net_income',
    'total_current_assets', 'total_non_current_assets', 'total_assets',
    'total_current_liabilities', 'total_non_current_liabilities',
    'total_liabilities', 'total_equity',
    'operating_cash_flow', 'investing_cash_flow', 'financing_cash_flow',
)


def build_result(
    analysis_id: str,
    name: str,
    category: str,
    data: Dict[str, Any],
    interpretation: str = '',
    recommendations: Optional[List[str]] = None,
    value: Optional[float] = None,
    benchmark: Optional[float] = None,
    higher_is_better: bool = True,
    evaluation: Optional[Rating] = None,
    description: str = ''
) -> AnalysisResult:
    """
    Assemble an AnalysisResult.

    The evaluation is derived from value vs benchmark unless given.
    """
    value = round_or_none(value)
    benchmark = round_or_none(benchmark)
    if evaluation is None:
        evaluation = rate_against_benchmark(value, benchmark, higher_is_better)
    return AnalysisResult(
        analysis_id=analysis_id,
        name=name,
        category=category,
        description=description,
        data=data,
        interpretation=interpretation,
        recommendations=list(recommendations or []),
        value=value,
        benchmark=benchmark,
        evaluation=evaluation,
    )


def require(condition: Any, message: str, analysis_id: str = None):
    """Raise InsufficientDataError unless `condition` holds."""
    if not condition:
        raise InsufficientDataError(message, analysis_id)


def require_statement(statement: Optional[FinancialStatement], analysis_id: str = None,
                      needs: Sequence[str] = ()) -> FinancialStatement:
    """
    Check a statement is present and the listed fields are non-zero.
    """
    require(statement is not None, "A financial statement is required", analysis_id)
    missing = [f for f in needs if not getattr(statement, f)]
    require(not missing, f"Statement is missing: {', '.join(missing)}", analysis_id)
    return statement


def _varies(series: pd.Series) -> bool:
    spread = float(series.std())
    return np.isfinite(spread) and spread > 0


def require_series(values: Any, minimum: int, analysis_id: str = None,
                   label: str = 'returns', varying: bool = False) -> pd.Series:
    """
    Coerce to a float Series and check its length.

    With `varying`, a constant series (zero variance) is rejected too.
    """
    series = to_series(values, label) if values is not None else None
    count = 0 if series is None else len(series)
    require(count >= minimum, f"{label} needs at least {minimum} observations, got {count}", analysis_id)
    if varying:
        require(_varies(series), f"{label} are constant; the model needs variation", analysis_id)
    return series


def require_frame(values: Any, minimum: int, analysis_id: str = None,
                  min_columns: int = 1, label: str = 'data', varying: bool = False) -> pd.DataFrame:
    """Coerce to a float DataFrame and check its shape (and, with `varying`, that no column is constant)."""
    frame = to_frame(values) if values is not None else None
    rows = 0 if frame is None else len(frame.dropna())
    require(rows >= minimum, f"{label} needs at least {minimum} complete rows, got {rows}", analysis_id)
    require(frame.shape[1] >= min_columns, f"{label} needs at least {min_columns} columns", analysis_id)
    frame = frame.dropna()
    if varying:
        constant = [str(c) for c in frame.columns if not _varies(frame[c])]
        require(not constant, f"{label} has constant columns: {', '.join(constant)}", analysis_id)
    return frame


def resolve_benchmarks(benchmarks: Optional[IndustryBenchmarks]) -> IndustryBenchmarks:
    if benchmarks is None:
        return get_industry_benchmarks('general')
    if isinstance(benchmarks, dict):
        return IndustryBenchmarks.from_dict(benchmarks)
    return benchmarks


def statement_frame(statements: Iterable[FinancialStatement],
                    items: Sequence[str] = KEY_ITEMS) -> pd.DataFrame:
    """Line items by fiscal year (rows = years, oldest first)."""
    ordered = sort_statements(statements)
    rows = {st.year: {item: float(getattr(st, item)) for item in items} for st in ordered}
    return pd.DataFrame.from_dict(rows, orient='index')[list(items)]


def item_series(statements: Iterable[FinancialStatement], item: str) -> pd.Series:
    """One line item (or derived property) by fiscal year."""
    ordered = sort_statements(statements)
    return pd.Series([float(getattr(st, item) or 0.0) for st in ordered],
                     index=[st.year for st in ordered], name=item)


def reported_items(statements: Iterable[FinancialStatement],
                   items: Sequence[str] = KEY_ITEMS) -> List[str]:
    """Items that carry a non-zero amount in at least one statement."""
    frame = statement_frame(statements, items)
    return [c for c in frame.columns if (frame[c] != 0).any()]


def rounded(values: Dict[str, Optional[float]], digits: int = 4) -> Dict[str, Optional[float]]:
    return {k: round_or_none(v, digits) for k, v in values.items()}


def series_to_dict(series: pd.Series, digits: int = 4) -> Dict[str, Optional[float]]:
    return {str(k): round_or_none(v, digits) for k, v in series.items()}


def trend_direction(values: Sequence[float], tolerance: float = 0.01) -> str:
    """'increasing', 'decreasing' or 'stable' from the slope of a linear fit."""
    y = np.asarray(values, dtype=float)
    if len(y) < 2:
        return 'stable'
    slope = np.polyfit(np.arange(len(y)), y, 1)[0]
    scale = np.mean(np.abs(y)) or 1.0
    if slope / scale > tolerance:
        return 'increasing'
    if slope / scale < -tolerance:
        return 'decreasing'
    return 'stable'


def benchmark_score(value: Optional[float], benchmark: Optional[float],
                    lower_is_better: bool = False) -> Optional[float]:
    """
    0-100 score of a value against its benchmark.

    Matching the benchmark scores 50 and twice as good scores 100.
    """
    if value is None or not benchmark:
        return None
    if lower_is_better:
        ratio = benchmark / value if value > 0 else 2.0
    else:
        ratio = value / benchmark if benchmark > 0 else 1 + (value - benchmark) / abs(benchmark)
    return float(max(0.0, min(100.0, 50.0 * ratio)))


def require_paired(returns: Any, benchmark_returns: Any, minimum: int, analysis_id: str = None,
                   varying: bool = False):
    """
    Two return series aligned on their common index, checked for length.

    With `varying`, both series must have non-zero variance.
    """
    r = to_series(returns, 'returns') if returns is not None else None
    b = to_series(benchmark_returns, 'benchmark') if benchmark_returns is not None else None
    require(r is not None and b is not None, "Asset and benchmark returns are required", analysis_id)
    joined = pd.concat([r.rename('returns'), b.rename('benchmark')], axis=1, join='inner').dropna()
    require(len(joined) >= minimum, f"Need at least {minimum} aligned returns, got {len(joined)}", analysis_id)
    if varying:
        require(_varies(joined['returns']) and _varies(joined['benchmark']),
                "Asset and benchmark returns must both vary", analysis_id)
    return joined['returns'], joined['benchmark']


# Accepted column names in a transactions frame
TRANSACTION_COLUMNS = {
    'sender': ('sender', 'from', 'from_address', 'source', 'account'),
    'receiver': ('receiver', 'to', 'to_address', 'destination', 'counterparty'),
    'amount': ('amount', 'value', 'quantity_value'),
    'timestamp': ('timestamp', 'date', 'time', 'datetime'),
    'asset': ('asset', 'symbol', 'ticker', 'security'),
    'side': ('side', 'action', 'direction', 'type'),
    'quantity': ('quantity', 'qty', 'shares', 'units'),
    'price': ('price', 'trade_price'),
}


def require_transactions(transactions: Any, analysis_id: str = None,
                         needs: Sequence[str] = ('amount',), minimum: int = 5) -> pd.DataFrame:
    """
    Normalise a transactions table (records, dict of lists or DataFrame)
    to canonical column names and check the listed columns exist.
    """
    require(transactions is not None, "A transactions table is required", analysis_id)
    frame = transactions.copy() if isinstance(transactions, pd.DataFrame) else pd.DataFrame(transactions)
    lowered = {str(c).strip().lower(): c for c in frame.columns}
    renamed = {}
    for canonical, aliases in TRANSACTION_COLUMNS.items():
        for alias in aliases:
            if alias in lowered and lowered[alias] not in renamed:
                renamed[lowered[alias]] = canonical
                break
    frame = frame.rename(columns=renamed)
    missing = [c for c in needs if c not in frame.columns]
    require(not missing, f"Transactions are missing columns: {', '.join(missing)}", analysis_id)

    for column in ('amount', 'quantity', 'price'):
        if column in frame.columns:
            frame[column] = pd.to_numeric(frame[column], errors='coerce')
    if 'timestamp' in frame.columns:
        frame['timestamp'] = pd.to_datetime(frame['timestamp'], errors='coerce')
    frame = frame.dropna(subset=list(needs)).reset_index(drop=True)
    require(len(frame) >= minimum, f"Need at least {minimum} transactions, got {len(frame)}", analysis_id)
    return frame
