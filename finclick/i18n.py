"""
Arabic / English labels for catalogue entries, ratings and report sections.
"""

import logging
from typing import Optional

from finclick import config

logger = logging.getLogger(__name__)


TRANSLATIONS = {
    # Ratings
    'rating.excellent': {'ar': 'ممتاز', 'en': 'Excellent'},
    'rating.very_good': {'ar': 'جيد جداً', 'en': 'Very good'},
    'rating.good': {'ar': 'جيد', 'en': 'Good'},
    'rating.acceptable': {'ar': 'مقبول', 'en': 'Acceptable'},
    'rating.weak': {'ar': 'ضعيف', 'en': 'Weak'},

    # Benchmark comparison
    'comparison.above': {'ar': 'أفضل من المعيار', 'en': 'above'},
    'comparison.equal': {'ar': 'مساوٍ للمعيار', 'en': 'equal'},
    'comparison.below': {'ar': 'أضعف من المعيار', 'en': 'below'},
    'evaluation.good': {'ar': 'جيد', 'en': 'good'},
    'evaluation.below': {'ar': 'أضعف من المعيار', 'en': 'below'},

    # Analysis levels
    'level.basic': {'ar': 'أساسي كلاسيكي', 'en': 'Basic classical'},
    'level.intermediate': {'ar': 'تطبيقي متوسط', 'en': 'Applied intermediate'},
    'level.advanced': {'ar': 'متقدم ومتطور', 'en': 'Advanced'},
    'level.comprehensive': {'ar': 'شامل', 'en': 'Comprehensive'},

    # Categories
    'category.basic.structural': {'ar': 'التحليل الهيكلي', 'en': 'Structural Analysis'},
    'category.basic.ratios': {'ar': 'النسب المالية', 'en': 'Financial Ratios'},
    'category.basic.flow': {'ar': 'تحليل التدفقات والحركة', 'en': 'Flow & Movement Analysis'},
    'category.intermediate.comparison': {'ar': 'المقارنات المتقدمة', 'en': 'Advanced Comparison'},
    'category.intermediate.valuation': {'ar': 'التقييم والاستثمار', 'en': 'Valuation & Investment'},
    'category.intermediate.performance': {'ar': 'الأداء والكفاءة', 'en': 'Performance & Efficiency'},
    'category.advanced.modeling': {'ar': 'النمذجة والمحاكاة', 'en': 'Modeling & Simulation'},
    'category.advanced.statistical': {'ar': 'التحليل الإحصائي والكمي', 'en': 'Statistical & Quantitative'},
    'category.advanced.risk': {'ar': 'تحليل المخاطر والمحافظ', 'en': 'Risk & Portfolio Analysis'},
    'category.advanced.detection': {'ar': 'الكشف والتنبؤ الذكي', 'en': 'Intelligent Detection & Prediction'},

    # Report sections
    'report.title': {'ar': 'تقرير التحليل المالي الشامل', 'en': 'Comprehensive Financial Analysis Report'},
    'report.company': {'ar': 'شركة', 'en': 'Company:'},
    'report.company_info': {'ar': 'بيانات الشركة', 'en': 'Company Information'},
    'report.sector': {'ar': 'القطاع', 'en': 'Sector'},
    'report.legal_entity': {'ar': 'الكيان القانوني', 'en': 'Legal entity'},
    'report.comparison_level': {'ar': 'مستوى المقارنة', 'en': 'Comparison level'},
    'report.executive_summary': {'ar': 'الملخص التنفيذي', 'en': 'Executive Summary'},
    'report.summary_table': {'ar': 'جدول النتائج', 'en': 'Results Table'},
    'report.analyses': {'ar': 'التحليلات التفصيلية', 'en': 'Detailed Analyses'},
    'report.swot': {'ar': 'تحليل SWOT', 'en': 'SWOT Analysis'},
    'report.strengths': {'ar': 'نقاط القوة', 'en': 'Strengths'},
    'report.weaknesses': {'ar': 'نقاط الضعف', 'en': 'Weaknesses'},
    'report.opportunities': {'ar': 'الفرص', 'en': 'Opportunities'},
    'report.threats': {'ar': 'التهديدات', 'en': 'Threats'},
    'report.risks': {'ar': 'المخاطر الرئيسية', 'en': 'Key Risks'},
    'report.forecasts': {'ar': 'التوقعات', 'en': 'Forecasts'},
    'report.recommendations': {'ar': 'التوصيات', 'en': 'Recommendations'},
    'report.overall_score': {'ar': 'التقييم العام', 'en': 'Overall Score'},
    'report.interpretation': {'ar': 'التفسير', 'en': 'Interpretation'},
    'report.skipped': {'ar': 'تحليلات لم تُنفذ لعدم كفاية البيانات', 'en': 'Analyses skipped for lack of data'},
    'report.disclaimer': {
        'ar': 'هذا التقرير لأغراض تحليلية فقط ولا يمثل توصية استثمارية.',
        'en': 'This report is for analytical purposes only and is not investment advice.',
    },

    # Table headers
    'table.index': {'ar': '#', 'en': '#'},
    'table.name': {'ar': 'التحليل', 'en': 'Analysis'},
    'table.value': {'ar': 'القيمة', 'en': 'Value'},
    'table.benchmark': {'ar': 'المعيار', 'en': 'Benchmark'},
    'table.evaluation': {'ar': 'التقييم', 'en': 'Evaluation'},

    # Chart labels
    'chart.company': {'ar': 'الشركة', 'en': 'Company'},
    'chart.benchmark': {'ar': 'معيار الصناعة', 'en': 'Industry Benchmark'},
    'chart.current_assets': {'ar': 'الأصول المتداولة', 'en': 'Current Assets'},
    'chart.non_current_assets': {'ar': 'الأصول غير المتداولة', 'en': 'Non-current Assets'},
    'chart.operating': {'ar': 'التشغيل', 'en': 'Operating'},
    'chart.investing': {'ar': 'الاستثمار', 'en': 'Investing'},
    'chart.financing': {'ar': 'التمويل', 'en': 'Financing'},
    'chart.forecast': {'ar': 'التنبؤ', 'en': 'Forecast'},
    'chart.actual': {'ar': 'الفعلي', 'en': 'Actual'},

    # Executive summary phrases
    'summary.strength': {'ar': '{name} أفضل من معيار الصناعة', 'en': '{name} stronger than industry benchmark'},
    'summary.weakness': {'ar': '{name} دون معيار الصناعة', 'en': '{name} below industry benchmark'},
    'summary.opportunity': {'ar': 'فرصة: {name}', 'en': 'Opportunity: {name}'},
    'summary.threat': {'ar': 'تهديد: {name}', 'en': 'Threat: {name}'},
    'summary.risk': {'ar': 'مخاطر مرتفعة في {name}', 'en': 'Elevated risk in {name}'},
    'summary.forecast': {'ar': '{name}: {value}', 'en': '{name}: {value}'},
    'summary.improve': {'ar': 'تحسين {name} للوصول إلى معيار الصناعة',
                        'en': 'Improve {name} toward the industry benchmark'},
    'summary.no_weakness': {'ar': 'لا توجد نقاط ضعف جوهرية', 'en': 'No material weaknesses identified'},
    'summary.maintain': {'ar': 'الحفاظ على المستوى الحالي للأداء', 'en': 'Maintain current performance levels'},
}


def normalize_language(language: Optional[str]) -> str:
    language = (language or config.DEFAULT_LANGUAGE).lower()[:2]
    return language if language in config.SUPPORTED_LANGUAGES else config.DEFAULT_LANGUAGE


def translate(key: str, language: Optional[str] = None, **params) -> str:
    """
    Look up a label. Unknown keys return the key itself.

    Args:
        key: Dotted label key (e.g. 'report.title')
        language: 'ar' or 'en' (defaults to the configured language)
        **params: Values substituted into `{placeholders}`
    """
    entry = TRANSLATIONS.get(key)
    if entry is None:
        logger.debug(f"Missing translation key: {key}")
        return key
    text = entry[normalize_language(language)]
    return text.format(**params) if params else text


def t(ar: str, en: str, language: Optional[str] = None) -> str:
    """Pick the Arabic or English variant."""
    return ar if normalize_language(language) == 'ar' else en


def pick(labels: dict, language: Optional[str] = None) -> str:
    """Pick from an {'ar': ..., 'en': ...} mapping, falling back to English."""
    if not labels:
        return ''
    return labels.get(normalize_language(language)) or labels.get('en') or next(iter(labels.values()))


def rating_label(rating, language: Optional[str] = None) -> Optional[str]:
    if rating is None:
        return None
    value = getattr(rating, 'value', rating)
    return translate(f'rating.{value}', language)


def category_label(category: str, language: Optional[str] = None) -> str:
    return translate(f'category.{category}', language)


def evaluation_label(value: Optional[float], benchmark: Optional[float],
                     language: Optional[str] = None, higher_is_better: bool = True) -> Optional[str]:
    """'good' / 'below' style verdict of a value against its benchmark."""
    if value is None or benchmark is None:
        return None
    good = value >= benchmark if higher_is_better else value <= benchmark
    return translate('evaluation.good' if good else 'evaluation.below', language)
