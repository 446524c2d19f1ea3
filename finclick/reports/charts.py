"""
Chart Configuration Module
Dashboard chart configs (bar, line, pie, gauge, radar) built from analysis
results. Every config carries a bilingual title and a `data` list ready for
the front-end chart library.
"""

import logging
from numbers import Number
from typing import Any, Dict, List, Optional

from finclick.i18n import normalize_language, translate

logger = logging.getLogger(__name__)

GAUGE_PREFIXES = ('adv.risk.', 'adv.detect.')
LINE_PREFIXES = ('struct.horizontal', 'struct.trend', 'struct.time_series', 'struct.index_number',
                 'adv.model.forecasting', 'adv.stat.arima', 'adv.ml.')
MAX_POINTS = 12

_TITLES = {
    'struct.vertical': {'ar': 'التحليل الرأسي - توزيع الأصول', 'en': 'Vertical Analysis - Asset Distribution'},
    'struct.horizontal': {'ar': 'التحليل الأفقي - النمو عبر السنوات', 'en': 'Horizontal Analysis - Growth Over Years'},
    'flow.cash_basic': {'ar': 'تحليل التدفقات النقدية', 'en': 'Cash Flow Analysis'},
}


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _numeric_items(mapping: Any) -> Dict[str, float]:
    if not isinstance(mapping, dict):
        return {}
    return {str(k): float(v) for k, v in mapping.items() if _is_number(v)}


def _year_keyed(mapping: Any) -> bool:
    numbers = _numeric_items(mapping)
    return len(numbers) >= 2 and all(str(k).isdigit() and len(str(k)) == 4 for k in numbers)


def _bar(title: Dict[str, str], points: List[Dict[str, Any]], begin_at_zero: bool = True) -> Dict[str, Any]:
    return {
        'type': 'bar',
        'title': title,
        'data': points,
        'options': {'scales': {'y': {'beginAtZero': begin_at_zero}}, 'plugins': {'legend': {'position': 'top'}}},
    }


def _benchmark_bar(title: Dict[str, str], value: Optional[float], benchmark: Optional[float],
                   language: str) -> Dict[str, Any]:
    points = [{'name': translate('chart.company', language), 'value': value}]
    if benchmark is not None:
        points.append({'name': translate('chart.benchmark', language), 'value': benchmark})
    return _bar(title, points)


def _vertical_pie(data: Dict[str, Any], language: str) -> Optional[Dict[str, Any]]:
    shares = data.get('assets_pct_of_total_assets') or {}
    current = shares.get('total_current_assets')
    non_current = shares.get('total_non_current_assets')
    if not (_is_number(current) and _is_number(non_current)):
        return None
    return {
        'type': 'pie',
        'title': _TITLES['struct.vertical'],
        'data': [{'name': translate('chart.current_assets', language), 'value': current},
                 {'name': translate('chart.non_current_assets', language), 'value': non_current}],
        'options': {'plugins': {'legend': {'position': 'right'}}},
    }


def _cash_flow_bar(data: Dict[str, Any], language: str) -> Optional[Dict[str, Any]]:
    points = []
    for key in ('operating', 'investing', 'financing'):
        section = data.get(key)
        if isinstance(section, dict) and _is_number(section.get('net_cash')):
            points.append({'name': translate(f'chart.{key}', language), 'value': section['net_cash']})
    return _bar(_TITLES['flow.cash_basic'], points, begin_at_zero=False) if points else None


def _line(title: Dict[str, str], series: Dict[str, float], label: str) -> Dict[str, Any]:
    return {
        'type': 'line',
        'title': title,
        'data': [{'period': k, 'value': v} for k, v in list(series.items())[-MAX_POINTS:]],
        'options': {'scales': {'y': {'beginAtZero': False}}, 'plugins': {'legend': {'position': 'top'}},
                    'label': label},
    }


def _find_line_series(data: Dict[str, Any]) -> Optional[Dict[str, float]]:
    for value in data.values():
        if _year_keyed(value):
            return _numeric_items(value)
    forecast = data.get('forecast')
    if isinstance(forecast, list) and len(forecast) >= 2 and all(_is_number(v) for v in forecast):
        return {str(i + 1): float(v) for i, v in enumerate(forecast[:MAX_POINTS])}
    return None


def _radar(title: Dict[str, str], scores: Dict[str, float]) -> Dict[str, Any]:
    return {
        'type': 'radar',
        'title': title,
        'data': [{'axis': k, 'value': v} for k, v in scores.items()],
        'options': {'scales': {'r': {'min': 0, 'max': 100}}},
    }


def _gauge(title: Dict[str, str], value: float) -> Dict[str, Any]:
    upper = max(100.0, abs(value) * 1.5) if abs(value) > 1 else 1.0
    return {
        'type': 'gauge',
        'title': title,
        'data': [{'value': value, 'min': 0, 'max': round(upper, 4)}],
        'options': {},
    }


def generate_chart_config(analysis_id: str, value: Optional[float], benchmark: Optional[float],
                          language: Optional[str] = None, data: Optional[Dict[str, Any]] = None,
                          title: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Chart config for one analysis result.

    The chart type follows what the result contains: an asset-mix pie for
    vertical analysis, a cash-flow bar for cash flow analysis, a radar for
    scored perspectives, a line for year-keyed or forecast series and a
    gauge for risk and detection scores. Anything else falls back to a
    company-vs-benchmark bar chart.

    Args:
        analysis_id: Catalogue id
        value: Headline value
        benchmark: Industry benchmark for the headline value
        language: Language of the series labels
        data: The result's `data` mapping
        title: Bilingual title, used when the analysis has no dedicated one

    Returns:
        Chart config dictionary with type, title, data and options
    """
    language = normalize_language(language)
    data = data or {}
    title = _TITLES.get(analysis_id) or title or {'ar': analysis_id, 'en': analysis_id}

    if analysis_id == 'struct.vertical':
        chart = _vertical_pie(data, language)
        if chart:
            return chart
    if analysis_id == 'flow.cash_basic':
        chart = _cash_flow_bar(data, language)
        if chart:
            return chart

    for key in ('perspectives', 'dimension_scores', 'component_scores', 'detector_scores'):
        scores = _numeric_items(data.get(key))
        if len(scores) >= 3:
            return _radar(title, scores)

    series = _find_line_series(data)
    if series and (value is None or analysis_id.startswith(LINE_PREFIXES)):
        label = translate('chart.forecast' if 'forecast' in data else 'chart.actual', language)
        return _line(title, series, label)

    if value is not None and benchmark is None and analysis_id.startswith(GAUGE_PREFIXES):
        return _gauge(title, value)

    return _benchmark_bar(title, value, benchmark, language)
