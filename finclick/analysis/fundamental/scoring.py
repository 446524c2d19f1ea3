"""
Distress and Manipulation Scoring Models

Altman Z, Beneish M, Piotroski F, Ohlson O, Zmijewski, Springate and
Taffler scores, plus a Benford first-digit test.
"""

import logging
import math
from typing import Dict, Any, Iterable, Optional

import numpy as np
from scipy import stats

from finclick.core.utils import safe_divide
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)


# Coefficients and zone cut-offs per Altman variant
ALTMAN_MODELS = {
    'public': {
        'coefficients': (1.2, 1.4, 3.3, 0.6, 1.0),
        'safe': 2.99, 'distress': 1.81,
    },
    'private': {
        'coefficients': (0.717, 0.847, 3.107, 0.420, 0.998),
        'safe': 2.9, 'distress': 1.23,
    },
    'non_manufacturing': {
        'coefficients': (6.56, 3.26, 6.72, 1.05, 0.0),
        'safe': 2.6, 'distress': 1.1,
    },
}


def altman_z_score(st: FinancialStatement, model: str = 'auto') -> Dict[str, Any]:
    """
    Altman Z-Score family.

    Formula (public manufacturer):
        Z = 1.2 X1 + 1.4 X2 + 3.3 X3 + 0.6 X4 + 1.0 X5

        X1 = Working Capital / Total Assets
        X2 = Retained Earnings / Total Assets
        X3 = EBIT / Total Assets
        X4 = Market Cap / Total Liabilities (book equity for Z' and Z'')
        X5 = Revenue / Total Assets

    Args:
        st: Statement for the year
        model: 'public', 'private' (Z'), 'non_manufacturing' (Z'') or
            'auto' (public when a market cap is available)

    Returns:
        Dictionary with score, zone and components
    """
    if st.total_assets <= 0:
        return {'z_score': None, 'zone': None, 'interpretation': 'N/A (no total assets)'}

    if model == 'auto':
        model = 'public' if st.market_cap else 'private'
    params = ALTMAN_MODELS[model]

    ta = st.total_assets
    equity_value = st.market_cap if model == 'public' and st.market_cap else st.total_equity
    x1 = st.working_capital / ta
    x2 = st.retained_earnings / ta
    x3 = st.ebit / ta
    x4 = safe_divide(equity_value, st.total_liabilities, default=1.0)
    x5 = st.revenue / ta

    c = params['coefficients']
    z = c[0] * x1 + c[1] * x2 + c[2] * x3 + c[3] * x4 + c[4] * x5

    if z > params['safe']:
        zone, interp = 'safe', 'Safe zone - low bankruptcy risk'
    elif z > params['distress']:
        zone, interp = 'grey', 'Grey zone - moderate bankruptcy risk, monitor closely'
    else:
        zone, interp = 'distress', 'Distress zone - high bankruptcy risk'

    return {
        'z_score': round(z, 3),
        'model': model,
        'zone': zone,
        'components': {
            'working_capital_to_assets': round(x1, 4),
            'retained_earnings_to_assets': round(x2, 4),
            'ebit_to_assets': round(x3, 4),
            'equity_to_liabilities': round(x4, 4),
            'sales_to_assets': round(x5, 4),
        },
        'thresholds': {'safe': params['safe'], 'distress': params['distress']},
        'interpretation': interp
    }


def beneish_m_score(st: FinancialStatement, previous: FinancialStatement) -> Dict[str, Any]:
    """
    Beneish M-Score (8-variable model).

    Formula:
        M = -4.84 + 0.920 DSRI + 0.528 GMI + 0.404 AQI + 0.892 SGI
            + 0.115 DEPI - 0.172 SGAI + 4.679 TATA - 0.327 LVGI

    M > -1.78 suggests likely manipulation; M < -2.22 is clean.
    Missing index inputs default to the neutral value 1.
    """
    if st.revenue <= 0 or previous.revenue <= 0 or st.total_assets <= 0:
        return {'m_score': None, 'interpretation': 'N/A (revenue and assets required for both years)'}

    def ratio(a, b, default=1.0):
        return safe_divide(a, b, default=default)

    dsri = ratio(ratio(st.accounts_receivable, st.revenue, 0.0),
                 ratio(previous.accounts_receivable, previous.revenue, 0.0))
    gmi = ratio(ratio(previous.gross_profit, previous.revenue), ratio(st.gross_profit, st.revenue))

    def soft_assets(s: FinancialStatement) -> float:
        return 1 - (s.total_current_assets + s.ppe) / s.total_assets if s.total_assets else 0.0

    aqi = ratio(soft_assets(st), soft_assets(previous))
    sgi = st.revenue / previous.revenue
    depi = ratio(ratio(previous.depreciation, previous.depreciation + previous.ppe),
                 ratio(st.depreciation, st.depreciation + st.ppe))
    sgai = ratio(ratio(st.sga_expense, st.revenue), ratio(previous.sga_expense, previous.revenue))
    lvgi = ratio(ratio(st.long_term_debt + st.total_current_liabilities, st.total_assets),
                 ratio(previous.long_term_debt + previous.total_current_liabilities, previous.total_assets))
    tata = (st.net_income - st.operating_cash_flow) / st.total_assets

    m = (-4.84 + 0.920 * dsri + 0.528 * gmi + 0.404 * aqi + 0.892 * sgi
         + 0.115 * depi - 0.172 * sgai + 4.679 * tata - 0.327 * lvgi)

    if m > -1.78:
        risk, interp = 'high', 'Likely earnings manipulator'
    elif m > -2.22:
        risk, interp = 'moderate', 'Grey zone - some manipulation signals'
    else:
        risk, interp = 'low', 'Unlikely manipulator'

    flags = []
    if dsri > 1.31:
        flags.append(f"DSRI {dsri:.2f}: receivables growing faster than revenue")
    if gmi > 1.14:
        flags.append(f"GMI {gmi:.2f}: gross margin deteriorating")
    if aqi > 1.25:
        flags.append(f"AQI {aqi:.2f}: asset quality declining")
    if sgi > 1.32:
        flags.append(f"SGI {sgi:.2f}: rapid growth increases manipulation pressure")
    if tata > 0.031:
        flags.append(f"TATA {tata:.3f}: earnings well ahead of operating cash")
    if lvgi > 1.11:
        flags.append(f"LVGI {lvgi:.2f}: leverage increasing")

    return {
        'm_score': round(m, 4),
        'risk_level': risk,
        'components': {
            'dsri': round(dsri, 3), 'gmi': round(gmi, 3), 'aqi': round(aqi, 3),
            'sgi': round(sgi, 3), 'depi': round(depi, 3), 'sgai': round(sgai, 3),
            'lvgi': round(lvgi, 3), 'tata': round(tata, 4),
        },
        'red_flags': flags,
        'thresholds': {'manipulator': -1.78, 'clean': -2.22},
        'interpretation': interp
    }


def piotroski_f_score(st: FinancialStatement, previous: FinancialStatement) -> Dict[str, Any]:
    """
    Piotroski F-Score: nine binary signals on profitability, leverage and efficiency.

    8-9 strong, 5-7 average, 0-4 weak.
    """
    roa = safe_divide(st.net_income, st.total_assets, 0.0)
    roa_prev = safe_divide(previous.net_income, previous.total_assets, 0.0)
    lev = safe_divide(st.long_term_debt, st.total_assets, 0.0)
    lev_prev = safe_divide(previous.long_term_debt, previous.total_assets, 0.0)
    cr = safe_divide(st.total_current_assets, st.total_current_liabilities, 0.0)
    cr_prev = safe_divide(previous.total_current_assets, previous.total_current_liabilities, 0.0)
    gm = safe_divide(st.gross_profit, st.revenue, 0.0)
    gm_prev = safe_divide(previous.gross_profit, previous.revenue, 0.0)
    at = safe_divide(st.revenue, st.total_assets, 0.0)
    at_prev = safe_divide(previous.revenue, previous.total_assets, 0.0)

    signals = {
        'positive_roa': roa > 0,
        'positive_operating_cash_flow': st.operating_cash_flow > 0,
        'improving_roa': roa > roa_prev,
        'cash_flow_exceeds_income': st.operating_cash_flow > st.net_income,
        'lower_leverage': lev <= lev_prev,
        'higher_current_ratio': cr > cr_prev,
        'no_dilution': not st.shares_outstanding or not previous.shares_outstanding
                       or st.shares_outstanding <= previous.shares_outstanding,
        'higher_gross_margin': gm > gm_prev,
        'higher_asset_turnover': at > at_prev,
    }
    score = sum(1 for v in signals.values() if v)

    if score >= 8:
        interp = 'Strong financial position'
    elif score >= 5:
        interp = 'Average financial position'
    else:
        interp = 'Weak financial position'

    return {
        'f_score': score,
        'signals': signals,
        'interpretation': interp
    }


def ohlson_o_score(st: FinancialStatement, previous: Optional[FinancialStatement] = None,
                   size_unit: float = 1e6) -> Dict[str, Any]:
    """
    Ohlson O-Score (1980) and implied probability of default.

    O = -1.32 - 0.407 log(TA) + 6.03 TL/TA - 1.43 WC/TA + 0.0757 CL/CA
        - 1.72 [TL > TA] - 2.37 NI/TA - 1.83 FFO/TL + 0.285 [NI < 0 two years]
        - 0.521 (NI_t - NI_t-1) / (|NI_t| + |NI_t-1|)

    Args:
        size_unit: Divisor bringing total assets to millions for the size term
    """
    ta = st.total_assets
    if ta <= 0:
        return {'o_score': None, 'probability': None, 'interpretation': 'N/A'}

    tl = st.total_liabilities
    size = math.log(max(ta / size_unit, 1e-6))
    ffo = st.net_income + st.depreciation
    losses_two_years = 1.0 if previous is not None and st.net_income < 0 and previous.net_income < 0 else 0.0
    if previous is not None and (abs(st.net_income) + abs(previous.net_income)) > 0:
        chin = (st.net_income - previous.net_income) / (abs(st.net_income) + abs(previous.net_income))
    else:
        chin = 0.0

    o = (-1.32 - 0.407 * size + 6.03 * tl / ta - 1.43 * st.working_capital / ta
         + 0.0757 * safe_divide(st.total_current_liabilities, st.total_current_assets, 0.0)
         - 1.72 * (1.0 if tl > ta else 0.0) - 2.37 * st.net_income / ta
         - 1.83 * safe_divide(ffo, tl, 0.0) + 0.285 * losses_two_years - 0.521 * chin)
    probability = 1 / (1 + math.exp(-o))

    return {
        'o_score': round(o, 4),
        'probability': round(probability, 4),
        'interpretation': 'Elevated default probability' if probability > 0.5 else 'Low default probability'
    }


def zmijewski_score(st: FinancialStatement) -> Dict[str, Any]:
    """
    Zmijewski (1984) probit score.

    X = -4.336 - 4.513 NI/TA + 5.679 TL/TA + 0.004 CA/CL
    P(distress) = Phi(X)
    """
    if st.total_assets <= 0:
        return {'x_score': None, 'probability': None, 'interpretation': 'N/A'}
    x = (-4.336 - 4.513 * st.net_income / st.total_assets
         + 5.679 * st.total_liabilities / st.total_assets
         + 0.004 * safe_divide(st.total_current_assets, st.total_current_liabilities, 0.0))
    probability = float(stats.norm.cdf(x))
    return {
        'x_score': round(x, 4),
        'probability': round(probability, 4),
        'interpretation': 'Distressed profile' if x > 0 else 'Healthy profile'
    }


def springate_s_score(st: FinancialStatement) -> Dict[str, Any]:
    """
    Springate (1978) S-Score.

    S = 1.03 WC/TA + 3.07 EBIT/TA + 0.66 EBT/CL + 0.4 Sales/TA
    S < 0.862 classifies the company as failing.
    """
    if st.total_assets <= 0:
        return {'s_score': None, 'interpretation': 'N/A'}
    ta = st.total_assets
    s = (1.03 * st.working_capital / ta + 3.07 * st.ebit / ta
         + 0.66 * safe_divide(st.income_before_tax, st.total_current_liabilities, 0.0)
         + 0.4 * st.revenue / ta)
    return {
        's_score': round(s, 4),
        'threshold': 0.862,
        'failing': s < 0.862,
        'interpretation': 'Classified as failing' if s < 0.862 else 'Classified as sound'
    }


def taffler_z_score(st: FinancialStatement) -> Dict[str, Any]:
    """
    Taffler (1983) UK model.

    Z = 3.20 + 12.18 PBT/CL + 2.50 CA/TL - 10.68 CL/TA + 0.029 NCI
    NCI (no-credit interval, days) = (Quick Assets - CL) / daily operating costs.
    Z < 0 indicates an at-risk company.
    """
    if st.total_assets <= 0 or st.total_current_liabilities <= 0 or st.total_liabilities <= 0:
        return {'t_score': None, 'interpretation': 'N/A'}
    operating_costs = (st.revenue - st.ebit - st.depreciation) or st.operating_expenses
    daily_costs = operating_costs / 365 if operating_costs > 0 else None
    quick_assets = st.total_current_assets - st.inventory
    nci = safe_divide(quick_assets - st.total_current_liabilities, daily_costs, 0.0)

    t = (3.20 + 12.18 * st.income_before_tax / st.total_current_liabilities
         + 2.50 * st.total_current_assets / st.total_liabilities
         - 10.68 * st.total_current_liabilities / st.total_assets
         + 0.029 * nci)
    return {
        't_score': round(t, 4),
        'no_credit_interval_days': round(nci, 1),
        'at_risk': t < 0,
        'interpretation': 'At risk of failure' if t < 0 else 'Not at risk'
    }


BENFORD_EXPECTED = np.log10(1 + 1 / np.arange(1, 10))


def benford_analysis(values: Iterable[float], min_count: int = 10) -> Dict[str, Any]:
    """
    Benford's law first-digit test.

    Conformity uses Nigrini's mean absolute deviation bands:
    < 0.006 close, < 0.012 acceptable, < 0.015 marginal, else nonconformity.

    Args:
        values: Amounts to test (zeros and non-numbers are ignored)
        min_count: Minimum usable amounts

    Returns:
        Dictionary with observed/expected frequencies, MAD and chi-square
    """
    digits = []
    for v in values:
        try:
            v = abs(float(v))
        except (TypeError, ValueError):
            continue
        if v == 0 or not math.isfinite(v):
            continue
        digits.append(int(f"{v:e}"[0]))

    if len(digits) < min_count:
        return {
            'conformity': None,
            'sample_size': len(digits),
            'interpretation': f'N/A (need at least {min_count} non-zero amounts)'
        }

    counts = np.bincount(digits, minlength=10)[1:10]
    n = counts.sum()
    observed = counts / n
    mad = float(np.mean(np.abs(observed - BENFORD_EXPECTED)))
    chi2, p_value = stats.chisquare(counts, BENFORD_EXPECTED * n)

    if mad < 0.006:
        conformity = 'close'
    elif mad < 0.012:
        conformity = 'acceptable'
    elif mad < 0.015:
        conformity = 'marginal'
    else:
        conformity = 'nonconformity'

    return {
        'observed': {str(d): round(float(f), 4) for d, f in zip(range(1, 10), observed)},
        'expected': {str(d): round(float(f), 4) for d, f in zip(range(1, 10), BENFORD_EXPECTED)},
        'mad': round(mad, 5),
        'chi_square': round(float(chi2), 3),
        'p_value': round(float(p_value), 4),
        'sample_size': int(n),
        'conformity': conformity,
        'interpretation': ('Digit pattern consistent with natural data' if conformity in ('close', 'acceptable')
                           else 'Digit pattern deviates from Benford - review for manipulation')
    }


def statement_amounts(st: FinancialStatement) -> list:
    """All non-zero reported amounts of a statement, for Benford testing."""
    return [v for k, v in st.to_dict().items()
            if k not in ('year', 'employees', 'share_price', 'dividends_per_share') and v]
