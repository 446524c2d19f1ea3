"""
Report Generator Module
Assembles the comprehensive analysis report and its bilingual section
structure from a run summary.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from finclick.i18n import category_label, normalize_language, translate

logger = logging.getLogger(__name__)

CATEGORY_ORDER = (
    'basic.structural', 'basic.ratios', 'basic.flow',
    'intermediate.comparison', 'intermediate.valuation', 'intermediate.performance',
    'advanced.modeling', 'advanced.statistical', 'advanced.risk', 'advanced.detection',
)


def bilingual(key: str, **params) -> Dict[str, str]:
    return {'ar': translate(key, 'ar', **params), 'en': translate(key, 'en', **params)}


def _option(options: Any, key: str, default: Any = None) -> Any:
    if options is None:
        return default
    if isinstance(options, dict):
        return options.get(key, default)
    return getattr(options, key, default)


def generate_bilingual_report(summary: Dict[str, Any], company: Dict[str, Any],
                              language: Optional[str] = None) -> Dict[str, Any]:
    """
    Section structure of the report with Arabic and English headings.

    Section items are the summary texts, already in `language`.

    Args:
        summary: Output of build_executive_summary
        company: Company profile mapping (name, sector, legal_entity, comparison_level)
        language: Language the summary texts were produced in

    Returns:
        Dictionary with title, subtitle, company rows, sections, overall and disclaimer
    """
    language = normalize_language(language)
    name = company.get('name') or ''
    swot = summary.get('swot', {})

    sections = [
        {'key': 'strengths', 'title': bilingual('report.strengths'), 'items': swot.get('strengths', [])},
        {'key': 'weaknesses', 'title': bilingual('report.weaknesses'), 'items': swot.get('weaknesses', [])},
        {'key': 'opportunities', 'title': bilingual('report.opportunities'),
         'items': swot.get('opportunities', [])},
        {'key': 'threats', 'title': bilingual('report.threats'), 'items': swot.get('threats', [])},
        {'key': 'risks', 'title': bilingual('report.risks'), 'items': summary.get('risks', [])},
        {'key': 'forecasts', 'title': bilingual('report.forecasts'), 'items': summary.get('forecasts', [])},
        {'key': 'recommendations', 'title': bilingual('report.recommendations'),
         'items': summary.get('recommendations', [])},
    ]

    return {
        'language': language,
        'direction': 'rtl' if language == 'ar' else 'ltr',
        'title': bilingual('report.title'),
        'subtitle': {'ar': f"{translate('report.company', 'ar')} {name}".strip(),
                     'en': f"{translate('report.company', 'en')} {name}".strip()},
        'company': [
            {'label': bilingual('report.sector'), 'value': company.get('sector')},
            {'label': bilingual('report.legal_entity'), 'value': company.get('legal_entity')},
            {'label': bilingual('report.comparison_level'), 'value': company.get('comparison_level')},
        ],
        'sections': sections,
        'overall': {
            'label': bilingual('report.overall_score'),
            'score': summary.get('overall_score'),
            'rating': summary.get('overall_rating'),
        },
        'disclaimer': bilingual('report.disclaimer'),
    }


def group_by_category(analyses: List[Dict[str, Any]], language: str) -> List[Dict[str, Any]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for analysis in analyses:
        grouped.setdefault(analysis.get('category', ''), []).append(analysis)
    ordered = [c for c in CATEGORY_ORDER if c in grouped] + sorted(c for c in grouped if c not in CATEGORY_ORDER)
    return [{'category': c, 'label': category_label(c, language), 'analyses': grouped[c]} for c in ordered]


def generate_analysis_report(results: Dict[str, Any], options: Any = None) -> Dict[str, Any]:
    """
    Build the comprehensive report from a run summary.

    Args:
        results: Output of run_comprehensive_analysis
        options: AnalysisOptions or dict; overrides the run's language and company name

    Returns:
        Report dictionary: title, subtitle, company, executiveSummary,
        completed analyses grouped by category, charts, skipped analyses and
        the bilingual section structure
    """
    language = normalize_language(_option(options, 'language', results.get('language')))
    company = dict(results.get('company') or {})
    company_name = _option(options, 'company_name') or company.get('name') or ''
    company['name'] = company_name

    analyses = results.get('analyses', [])
    completed = [a for a in analyses if a.get('status') == 'success']
    not_run = [{'id': a['id'], 'name': a['name'], 'status': a['status'], 'reason': a.get('error')}
               for a in analyses if a.get('status') != 'success']

    charts = [dict(chart, analysis_id=a['id']) for a in completed for chart in a.get('charts', [])]

    report = {
        'format': 'comprehensive',
        'title': translate('report.title', language),
        'subtitle': f"{translate('report.company', language)} {company_name}".strip(),
        'createdAt': datetime.now(timezone.utc).isoformat(),
        'language': language,
        'company': company,
        'executiveSummary': results.get('executiveSummary', {}),
        'categories': group_by_category(completed, language),
        'charts': charts,
        'skipped': not_run,
        'counts': results.get('counts', {}),
        'bilingualReport': results.get('report') or generate_bilingual_report(
            results.get('executiveSummary', {}), company, language),
        'downloads': {'docx': '/api/reports/word'},
    }
    logger.info(f"Report generated for '{company_name}': {len(completed)} analyses, {len(not_run)} not run")
    return report
