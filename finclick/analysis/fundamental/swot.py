"""
SWOT Analysis Framework
SWOT generation from financial ratios and the balance of a SWOT.
"""

from typing import Dict, List, Any, Optional

from finclick.i18n import t


def generate_swot_analysis(
    metrics: Dict[str, Optional[float]],
    industry_avg: Dict[str, float],
    language: str = 'en'
) -> Dict[str, List[str]]:
    """
    Generate a SWOT analysis from company ratios.

    Args:
        metrics: Company ratios keyed like the benchmark table (net_margin,
            roe, current_ratio, debt_to_equity, revenue_growth, ...)
        industry_avg: Industry averages for the same keys
        language: 'ar' or 'en'

    Returns:
        Dictionary with strengths, weaknesses, opportunities, threats
    """
    strengths, weaknesses, opportunities, threats = [], [], [], []

    def m(key):
        return metrics.get(key)

    def avg(key, default):
        return industry_avg.get(key, default)

    # Profitability
    if m('net_margin') is not None:
        if m('net_margin') > avg('net_margin', 8):
            strengths.append(t(f"هامش ربح صافٍ قوي ({m('net_margin'):.1f}%)",
                               f"Strong net margin ({m('net_margin'):.1f}% vs {avg('net_margin', 8):.1f}%)", language))
        else:
            weaknesses.append(t(f"هامش ربح صافٍ دون المتوسط ({m('net_margin'):.1f}%)",
                                f"Below-average net margin ({m('net_margin'):.1f}%)", language))
    if m('roe') is not None and m('roe') > avg('roe', 12):
        strengths.append(t(f"عائد مرتفع على حقوق الملكية ({m('roe'):.1f}%)",
                           f"Superior return on equity ({m('roe'):.1f}%)", language))

    # Financial health
    if m('current_ratio') is not None:
        if m('current_ratio') >= max(avg('current_ratio', 1.5), 2):
            strengths.append(t('مركز سيولة قوي', 'Strong liquidity position', language))
        elif m('current_ratio') < 1:
            weaknesses.append(t('مخاوف محتملة بشأن السيولة', 'Potential liquidity concerns', language))
    if m('debt_to_equity') is not None:
        if m('debt_to_equity') < 0.5:
            strengths.append(t('مديونية منخفضة توفر مرونة مالية',
                               'Low debt levels provide financial flexibility', language))
        elif m('debt_to_equity') > 2:
            weaknesses.append(t(f"مديونية مرتفعة ({m('debt_to_equity'):.2f})",
                                f"High debt levels (D/E: {m('debt_to_equity'):.2f})", language))
            threats.append(t('حساسية لارتفاع أسعار الفائدة', 'Interest rate sensitivity on borrowing costs', language))
    if m('interest_coverage') is not None and m('interest_coverage') < 1.5:
        threats.append(t('ضعف تغطية الفوائد', 'Weak interest coverage', language))

    # Growth
    if m('revenue_growth') is not None:
        if m('revenue_growth') > avg('revenue_growth', 6):
            opportunities.append(t('نمو يفوق متوسط القطاع', 'Outpacing industry growth rate', language))
        elif m('revenue_growth') < 0:
            weaknesses.append(t('تراجع الإيرادات', 'Declining revenue', language))
            threats.append(t('فقدان حصة سوقية', 'Possible loss of market share', language))
    if m('gross_margin') is not None and m('gross_margin') < avg('gross_margin', 35):
        opportunities.append(t('تحسين هيكل التكاليف لرفع الهامش الإجمالي',
                               'Cost restructuring to lift gross margin', language))
    if m('asset_turnover') is not None and m('asset_turnover') < avg('asset_turnover', 0.9):
        opportunities.append(t('رفع كفاءة استخدام الأصول', 'Improve asset utilisation', language))
    if m('pe_ratio') is not None and m('pe_ratio') > 40:
        threats.append(t('تقييم سوقي مرتفع قد يحد من الارتفاع', 'High valuation may limit upside', language))

    threats.append(t('تقلبات الاقتصاد الكلي', 'Macroeconomic uncertainty', language))

    return {
        'strengths': strengths[:5],
        'weaknesses': weaknesses[:5],
        'opportunities': opportunities[:5],
        'threats': threats[:5]
    }


def swot_score(swot: Dict[str, List[Any]]) -> Dict[str, Any]:
    """
    Calculate overall SWOT balance.

    Returns:
        Dictionary with quadrant counts, net score and outlook
    """
    positive_score = len(swot['strengths']) + len(swot['opportunities'])
    negative_score = len(swot['weaknesses']) + len(swot['threats'])
    total_score = positive_score - negative_score

    if total_score >= 4:
        outlook = 'Strong Positive'
    elif total_score >= 1:
        outlook = 'Moderately Positive'
    elif total_score >= -2:
        outlook = 'Neutral'
    else:
        outlook = 'Cautious'

    return {
        'strengths_count': len(swot['strengths']),
        'weaknesses_count': len(swot['weaknesses']),
        'opportunities_count': len(swot['opportunities']),
        'threats_count': len(swot['threats']),
        'net_score': total_score,
        'outlook': outlook
    }
