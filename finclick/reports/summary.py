"""
Executive Summary Module
Condenses a run of analysis results into a results table, SWOT, key risks,
forecasts, prioritised recommendations and an overall score.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from finclick.analysis.fundamental.swot import swot_score
from finclick.analysis.result import AnalysisResult, Rating, STATUS_SUCCESS, rate_score
from finclick.i18n import evaluation_label, rating_label, translate

logger = logging.getLogger(__name__)

RATING_POINTS = {
    Rating.EXCELLENT.value: 100,
    Rating.VERY_GOOD.value: 85,
    Rating.GOOD.value: 70,
    Rating.ACCEPTABLE.value: 55,
    Rating.WEAK.value: 35,
}

STRONG = (Rating.EXCELLENT.value, Rating.VERY_GOOD.value)
WEAK = (Rating.WEAK.value, Rating.ACCEPTABLE.value)

OPPORTUNITY_CATEGORIES = ('intermediate.valuation',)
OPPORTUNITY_IDS = ('struct.growth_rate', 'struct.trend', 'inter.comp.market_share', 'inter.comp.relative',
                   'flow.free_cash_flow', 'adv.model.real_options', 'adv.model.scenario')
THREAT_CATEGORIES = ('advanced.risk', 'advanced.detection')
FORECAST_IDS = ('adv.model.forecasting', 'adv.model.monte_carlo', 'adv.stat.arima', 'adv.stat.garch',
                'adv.stat.var', 'adv.ml.neural_network', 'adv.ml.lstm', 'adv.ml.gradient_boosting',
                'adv.detect.volatility')
HIGH_RISK_LEVELS = ('high', 'critical', 'elevated')

MAX_ITEMS = 8
MAX_RECOMMENDATIONS = 10


def _as_dict(result: Any) -> Dict[str, Any]:
    return result.to_dict() if isinstance(result, AnalysisResult) else dict(result)


def _unique(items: Iterable[str], limit: int) -> List[str]:
    seen, out = set(), []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
        if len(out) >= limit:
            break
    return out


def _risk_flagged(result: Dict[str, Any]) -> bool:
    data = result.get('data') or {}
    level = data.get('risk_level') or data.get('alert_level')
    return isinstance(level, str) and level.lower() in HIGH_RISK_LEVELS


def results_table(results: List[Dict[str, Any]], language: str) -> List[Dict[str, Any]]:
    """One row per successful analysis with a headline value."""
    rows = []
    for r in results:
        if r.get('status') != STATUS_SUCCESS or r.get('value') is None:
            continue
        rows.append({
            'index': len(rows) + 1,
            'id': r['id'],
            'name': r['name'],
            'value': r['value'],
            'benchmark': r.get('benchmark'),
            'evaluation': evaluation_label(r['value'], r.get('benchmark'), language),
            'rating': rating_label(r.get('evaluation'), language),
        })
    return rows


def overall_score(results: List[Dict[str, Any]]) -> Optional[float]:
    """Mean rating points (0-100) over rated analyses."""
    points = [RATING_POINTS[r['evaluation']] for r in results if r.get('evaluation') in RATING_POINTS]
    if not points:
        return None
    return round(float(np.mean(points)), 1)


def build_executive_summary(results: Iterable[Any], language: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the executive summary of an analysis run.

    Strong ratings become strengths and weak ones weaknesses. Favourable
    growth and valuation outcomes are opportunities, while poorly rated or
    flagged risk and detection analyses are threats. Recommendations are
    taken from the weakest results first and de-duplicated.

    Args:
        results: AnalysisResult objects or their dict form
        language: 'ar' or 'en'

    Returns:
        Dictionary with table, swot, swot_balance, risks, forecasts,
        recommendations, overall_score, overall_rating and counts
    """
    results = [_as_dict(r) for r in results]
    done = [r for r in results if r.get('status') == STATUS_SUCCESS]

    strengths, weaknesses, opportunities, threats, risks, forecasts = [], [], [], [], [], []
    for r in done:
        name, rating, category = r['name'], r.get('evaluation'), r.get('category', '')
        is_threat_area = category in THREAT_CATEGORIES
        if rating in STRONG and not is_threat_area:
            strengths.append(translate('summary.strength', language, name=name))
        elif rating in WEAK and not is_threat_area:
            weaknesses.append(translate('summary.weakness', language, name=name))

        if (category in OPPORTUNITY_CATEGORIES or r['id'] in OPPORTUNITY_IDS) and rating in STRONG + (
                Rating.GOOD.value,):
            opportunities.append(translate('summary.opportunity', language, name=name))

        if is_threat_area and (rating in WEAK or _risk_flagged(r)):
            threats.append(translate('summary.threat', language, name=name))
            risks.append(translate('summary.risk', language, name=name))

        if r['id'] in FORECAST_IDS and r.get('value') is not None:
            forecasts.append(translate('summary.forecast', language, name=name, value=round(r['value'], 4)))

    def priority(r):
        rating = r.get('evaluation')
        if rating == Rating.WEAK.value or (r.get('category') in THREAT_CATEGORIES and _risk_flagged(r)):
            return 0
        if rating == Rating.ACCEPTABLE.value:
            return 1
        return 2

    ranked = sorted(done, key=priority)
    recommendations = [rec for r in ranked if priority(r) < 2 for rec in r.get('recommendations', [])]
    recommendations += [translate('summary.improve', language, name=r['name'])
                        for r in ranked if r.get('evaluation') in WEAK]
    if not recommendations:
        recommendations = [translate('summary.maintain', language)]
    swot = {
        'strengths': _unique(strengths, MAX_ITEMS),
        'weaknesses': _unique(weaknesses, MAX_ITEMS),
        'opportunities': _unique(opportunities, MAX_ITEMS),
        'threats': _unique(threats, MAX_ITEMS),
    }
    balance = swot_score(swot)
    if not swot['weaknesses']:
        swot['weaknesses'] = [translate('summary.no_weakness', language)]

    score = overall_score(done)
    summary = {
        'table': results_table(results, language),
        'swot': swot,
        'swot_balance': balance,
        'risks': _unique(risks, MAX_ITEMS),
        'forecasts': _unique(forecasts, MAX_ITEMS),
        'recommendations': _unique(recommendations, MAX_RECOMMENDATIONS),
        'overall_score': score,
        'overall_rating': rating_label(rate_score(score), language),
        'counts': {
            'total': len(results),
            'completed': len(done),
            'rated': sum(r.get('evaluation') is not None for r in done),
        },
    }
    logger.debug(f"Executive summary: score={score}, {len(summary['table'])} table rows")
    return summary
