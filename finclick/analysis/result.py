"""
Analysis Result Module
Common result shape returned by every catalogue analysis.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from finclick.core.utils import sanitize_for_json


class Rating(str, Enum):
    EXCELLENT = 'excellent'
    VERY_GOOD = 'very_good'
    GOOD = 'good'
    ACCEPTABLE = 'acceptable'
    WEAK = 'weak'


STATUS_SUCCESS = 'success'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'


@dataclass
class AnalysisResult:
    """
    Output of one analysis.

    Attributes:
        analysis_id: Catalogue id (e.g. 'ratio.current')
        name: Display name
        category: Catalogue category key
        data: Computed sub-metrics
        interpretation: Plain-language reading of the numbers
        recommendations: Suggested actions
        charts: Chart configurations for the dashboard
        value: Headline figure, if the analysis has one
        benchmark: Comparable industry figure for `value`
        evaluation: Rating of `value` against `benchmark`
        status: success, skipped or failed
    """
    analysis_id: str
    name: str
    category: str = ''
    description: str = ''
    data: Dict[str, Any] = field(default_factory=dict)
    interpretation: str = ''
    recommendations: List[str] = field(default_factory=list)
    charts: List[Dict[str, Any]] = field(default_factory=list)
    value: Optional[float] = None
    benchmark: Optional[float] = None
    evaluation: Optional[Rating] = None
    status: str = STATUS_SUCCESS
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return sanitize_for_json({
            'id': self.analysis_id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'data': self.data,
            'interpretation': self.interpretation,
            'recommendations': list(self.recommendations),
            'charts': list(self.charts),
            'value': self.value,
            'benchmark': self.benchmark,
            'evaluation': self.evaluation.value if self.evaluation else None,
            'status': self.status,
            'error': self.error,
        })

    @classmethod
    def skipped(cls, analysis_id: str, name: str, category: str = '', reason: str = '') -> 'AnalysisResult':
        return cls(analysis_id=analysis_id, name=name, category=category,
                   status=STATUS_SKIPPED, error=reason,
                   interpretation=reason or 'Not enough data to run this analysis')

    @classmethod
    def failed(cls, analysis_id: str, name: str, category: str = '', error: str = '') -> 'AnalysisResult':
        return cls(analysis_id=analysis_id, name=name, category=category,
                   status=STATUS_FAILED, error=error,
                   interpretation='Analysis could not be completed')


def rate_against_benchmark(value: Optional[float], benchmark: Optional[float],
                           higher_is_better: bool = True) -> Optional[Rating]:
    """
    Rate a value by its ratio to the benchmark.

    Ratio >= 1.2 excellent, >= 1.05 very good, >= 0.95 good, >= 0.8
    acceptable, else weak. For lower-is-better measures the ratio is
    inverted. Returns None when either side is missing or the benchmark
    is zero.
    """
    if value is None or benchmark is None or benchmark == 0:
        return None
    if benchmark < 0:
        # Negative benchmarks: compare distance instead of ratio
        ratio = 1 + (value - benchmark) / abs(benchmark)
    else:
        ratio = value / benchmark
    if not higher_is_better:
        if ratio <= 0:
            return Rating.EXCELLENT
        ratio = 1 / ratio

    if ratio >= 1.2:
        return Rating.EXCELLENT
    if ratio >= 1.05:
        return Rating.VERY_GOOD
    if ratio >= 0.95:
        return Rating.GOOD
    if ratio >= 0.8:
        return Rating.ACCEPTABLE
    return Rating.WEAK


def rate_score(score: Optional[float]) -> Optional[Rating]:
    """Rate a 0-100 score."""
    if score is None:
        return None
    if score >= 85:
        return Rating.EXCELLENT
    if score >= 70:
        return Rating.VERY_GOOD
    if score >= 55:
        return Rating.GOOD
    if score >= 40:
        return Rating.ACCEPTABLE
    return Rating.WEAK
