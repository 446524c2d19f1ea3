"""
Qualitative Fundamental Analysis Module
ESG scoring, moat assessment, and management quality indicators.
"""

from typing import Dict, Any, List, Optional

import numpy as np

from finclick.core.utils import clip_score, weighted_score, safe_divide
from finclick.data.statements import FinancialStatement, sort_statements


ESG_WEIGHTS = {'environmental': 0.35, 'social': 0.30, 'governance': 0.35}


def esg_score_analysis(scores: Dict[str, Any],
                       weights: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    """
    Combine supplied ESG factor scores into a pillar and overall rating.

    Args:
        scores: Either pillar scores {'environmental': 62, ...} or nested
            factor scores {'environmental': {'emissions': 55, 'waste': 70}, ...},
            each on a 0-100 scale
        weights: Pillar weights (default 35/30/35)

    Returns:
        Dictionary with pillar scores, overall score and letter rating
    """
    weights = weights or ESG_WEIGHTS
    pillars = {}
    factors = {}
    for pillar in ('environmental', 'social', 'governance'):
        raw = scores.get(pillar)
        if raw is None:
            continue
        if isinstance(raw, dict):
            values = [clip_score(float(v)) for v in raw.values() if v is not None]
            if not values:
                continue
            factors[pillar] = {k: clip_score(float(v)) for k, v in raw.items() if v is not None}
            pillars[pillar] = round(float(np.mean(values)), 1)
        else:
            pillars[pillar] = round(clip_score(float(raw)), 1)

    if not pillars:
        return {'overall_score': None, 'interpretation': 'N/A (no ESG scores supplied)'}

    overall = round(weighted_score(pillars, weights), 1)

    if overall >= 70:
        rating = 'A - Strong ESG'
    elif overall >= 60:
        rating = 'B - Good ESG'
    elif overall >= 50:
        rating = 'C - Average ESG'
    else:
        rating = 'D - Below Average ESG'

    weakest = min(pillars, key=pillars.get)
    return {
        'scores': pillars,
        'factors': factors,
        'overall_score': overall,
        'rating': rating,
        'weakest_pillar': weakest,
        'interpretation': f'{rating}; weakest pillar is {weakest} ({pillars[weakest]:.0f}/100)'
    }


def _margins(statements: List[FinancialStatement], attr: str) -> List[float]:
    out = []
    for st in statements:
        if st.revenue > 0:
            value = getattr(st, attr)
            out.append(value / st.revenue * 100)
    return out


def moat_assessment(statements: List[FinancialStatement]) -> Dict[str, Any]:
    """
    Assess economic moat (competitive advantage durability) from
    statement history.

    Analyzes factors that create sustainable competitive advantages:
    - High and stable gross margins (pricing power)
    - Returns on invested capital above cost of capital
    - Revenue growth capability
    - Scale relative to the asset base

    Args:
        statements: Yearly statements (any order)

    Returns:
        Dictionary with moat assessment
    """
    statements = sort_statements(statements)
    if not statements:
        return {'moat_score': None, 'interpretation': 'N/A (no statements)'}
    latest = statements[-1]

    moat_factors = {}
    moat_score = 0

    # 1. Pricing power
    gross = _margins(statements, 'gross_profit')
    if gross and np.mean(gross) > 40:
        moat_factors['high_margins'] = {
            'present': True,
            'gross_margin': round(float(np.mean(gross)), 1),
            'implies': 'Pricing power / brand strength'
        }
        moat_score += 25
    else:
        moat_factors['high_margins'] = {
            'present': False,
            'gross_margin': round(float(np.mean(gross)), 1) if gross else None
        }

    # 2. Margin stability
    if len(gross) >= 2:
        spread = float(np.std(gross))
        stable = spread < 3
        moat_factors['margin_stability'] = {'present': stable, 'std_dev': round(spread, 2)}
        if stable:
            moat_score += 15

    # 3. Return on invested capital
    roic_values = []
    for st in statements:
        if st.invested_capital > 0:
            tax = st.effective_tax_rate if st.effective_tax_rate is not None else 0.2
            roic_values.append(st.ebit * (1 - tax) / st.invested_capital * 100)
    avg_roic = float(np.mean(roic_values)) if roic_values else None
    if avg_roic is not None and avg_roic > 15:
        moat_factors['high_roic'] = {
            'present': True,
            'roic': round(avg_roic, 1),
            'implies': 'Sustainable competitive advantage'
        }
        moat_score += 30
    elif avg_roic is not None and avg_roic > 8:
        moat_factors['high_roic'] = {'present': 'Moderate', 'roic': round(avg_roic, 1)}
        moat_score += 15
    else:
        moat_factors['high_roic'] = {'present': False, 'roic': round(avg_roic, 1) if avg_roic is not None else None}

    # 4. Growth capability
    if len(statements) >= 2 and statements[0].revenue > 0:
        growth = ((latest.revenue / statements[0].revenue) ** (1 / (len(statements) - 1)) - 1) * 100 \
            if latest.revenue > 0 else -100.0
        if growth > 10:
            moat_factors['growth_capability'] = {'present': True, 'revenue_cagr': round(growth, 1)}
            moat_score += 15
        elif growth > 0:
            moat_factors['growth_capability'] = {'present': 'Moderate', 'revenue_cagr': round(growth, 1)}
            moat_score += 7
        else:
            moat_factors['growth_capability'] = {'present': False, 'revenue_cagr': round(growth, 1)}

    # 5. Asset-light scale
    turnover = safe_divide(latest.revenue, latest.total_assets)
    if turnover is not None and turnover > 1:
        moat_factors['asset_efficiency'] = {'present': True, 'asset_turnover': round(turnover, 2)}
        moat_score += 15

    normalized_score = round(moat_score, 1)

    # Moat classification
    if normalized_score >= 70:
        moat_rating = 'Wide Moat'
        moat_description = 'Strong, durable competitive advantages likely to persist 20+ years'
    elif normalized_score >= 45:
        moat_rating = 'Narrow Moat'
        moat_description = 'Modest competitive advantages, may persist 10+ years'
    else:
        moat_rating = 'No Moat'
        moat_description = 'Limited competitive advantages, vulnerable to competition'

    return {
        'moat_rating': moat_rating,
        'moat_score': normalized_score,
        'description': moat_description,
        'factors': moat_factors,
        'interpretation': f'{moat_rating}: {moat_description}'
    }


def management_quality_indicators(statements: List[FinancialStatement],
                                  scores: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    """
    Assess management quality from capital allocation and earnings record.

    Considers:
    - Capital allocation (payout ratio, reinvestment)
    - Earnings quality (cash conversion)
    - Earnings consistency
    - Supplied governance scores (board independence, disclosure, ...)

    Args:
        statements: Yearly statements
        scores: Optional 0-100 scores from a governance review

    Returns:
        Dictionary with management quality assessment
    """
    statements = sort_statements(statements)
    if not statements:
        return {'quality_score': None, 'interpretation': 'N/A (no statements)'}
    latest = statements[-1]

    indicators = {}
    quality_score = 50  # Start neutral

    # 1. Capital allocation
    payout = safe_divide(abs(latest.dividends_paid), latest.net_income) if latest.net_income > 0 else None
    if payout is not None and 0 < payout < 0.75:
        indicators['capital_allocation'] = {
            'status': 'Prudent',
            'payout_ratio': round(payout * 100, 2),
            'interpretation': 'Sustainable dividend policy'
        }
        quality_score += 10
    elif payout is not None and payout >= 0.75:
        indicators['capital_allocation'] = {
            'status': 'Aggressive',
            'payout_ratio': round(payout * 100, 2),
            'interpretation': 'High payout may limit reinvestment'
        }
    else:
        indicators['capital_allocation'] = {
            'status': 'Growth-focused',
            'interpretation': 'Retaining earnings for reinvestment'
        }
        quality_score += 5

    # 2. Earnings quality
    conversion = safe_divide(latest.operating_cash_flow, latest.net_income) if latest.net_income > 0 else None
    if conversion is not None and conversion >= 1:
        indicators['earnings_quality'] = {'status': 'High', 'cash_conversion': round(conversion, 2)}
        quality_score += 15
    elif conversion is not None:
        indicators['earnings_quality'] = {'status': 'Moderate', 'cash_conversion': round(conversion, 2)}
        quality_score += 5
    else:
        indicators['earnings_quality'] = {'status': 'Unprofitable/Uncertain'}
        quality_score -= 10

    # 3. Consistency
    if len(statements) >= 3:
        incomes = [s.net_income for s in statements]
        growing_years = sum(1 for a, b in zip(incomes, incomes[1:]) if b >= a)
        share = growing_years / (len(incomes) - 1)
        indicators['consistency'] = {'status': 'Consistent' if share >= 0.66 else 'Volatile',
                                     'improving_years_pct': round(share * 100, 1)}
        quality_score += 10 if share >= 0.66 else -5

    # 4. Governance review
    if scores:
        review = float(np.mean([clip_score(float(v)) for v in scores.values()]))
        indicators['governance_review'] = {'score': round(review, 1)}
        quality_score += (review - 50) / 5

    quality_score = round(clip_score(quality_score), 1)

    # Final rating
    if quality_score >= 80:
        rating = 'Excellent'
    elif quality_score >= 65:
        rating = 'Good'
    elif quality_score >= 50:
        rating = 'Average'
    else:
        rating = 'Below Average'

    return {
        'quality_score': quality_score,
        'rating': rating,
        'indicators': indicators,
        'interpretation': f'{rating} management quality ({quality_score:.0f}/100)'
    }
