"""
Valuation Ratios Module
Market multiples computed from a statement with share price and share count.
"""

from typing import Dict, Any, Optional

from finclick.data.statements import FinancialStatement


def _no_market_data(key: str) -> Dict[str, Any]:
    return {key: None, 'interpretation': 'N/A (share price or share count not reported)'}


def enterprise_value(st: FinancialStatement) -> Optional[float]:
    """EV = Market Cap + Total Debt - Cash"""
    if st.market_cap is None:
        return None
    return st.market_cap + st.net_debt


def calculate_pe_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Price-to-Earnings Ratio.

    Formula:
        P/E = Share Price / EPS
    """
    eps = st.eps
    if st.share_price <= 0 or eps is None:
        return _no_market_data('pe_ratio')
    if eps <= 0:
        return {
            'pe_ratio': None,
            'eps': eps,
            'interpretation': 'N/A (negative or zero earnings)'
        }

    pe = st.share_price / eps

    # Interpretation
    if pe < 10:
        interp = 'Low valuation (potentially undervalued or declining business)'
    elif pe < 20:
        interp = 'Moderate valuation'
    elif pe < 30:
        interp = 'High valuation (growth expectations)'
    else:
        interp = 'Very high valuation (high growth or overvalued)'

    return {
        'pe_ratio': round(pe, 2),
        'formula': 'Share Price / EPS',
        'eps': round(eps, 4),
        'interpretation': interp
    }


def calculate_peg_ratio(pe_ratio: Optional[float], earnings_growth_pct: Optional[float]) -> Dict[str, Any]:
    """
    PEG Ratio = P/E / Earnings Growth (%)
    """
    if not pe_ratio or not earnings_growth_pct or earnings_growth_pct <= 0:
        return {'peg_ratio': None, 'interpretation': 'N/A (no positive earnings growth)'}

    peg = pe_ratio / earnings_growth_pct
    if peg < 1:
        interp = 'Potentially undervalued relative to growth'
    elif peg < 2:
        interp = 'Fairly valued relative to growth'
    else:
        interp = 'Expensive relative to growth'
    return {'peg_ratio': round(peg, 2), 'interpretation': interp}


def calculate_pb_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Price-to-Book Ratio.

    Formula:
        P/B = Share Price / Book Value per Share
    """
    bvps = st.book_value_per_share
    if st.share_price <= 0 or bvps is None:
        return _no_market_data('pb_ratio')
    if bvps <= 0:
        return {'pb_ratio': None, 'interpretation': 'N/A (negative book value)'}

    pb = st.share_price / bvps
    if pb < 1:
        interp = 'Trading below book value'
    elif pb < 3:
        interp = 'Moderate premium to book value'
    else:
        interp = 'High premium to book value'

    return {
        'pb_ratio': round(pb, 2),
        'formula': 'Share Price / Book Value per Share',
        'book_value_per_share': round(bvps, 4),
        'interpretation': interp
    }


def calculate_ps_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """P/S = Market Cap / Revenue"""
    if st.market_cap is None:
        return _no_market_data('ps_ratio')
    if st.revenue <= 0:
        return {'ps_ratio': None, 'interpretation': 'N/A (no revenue)'}
    ps = st.market_cap / st.revenue
    return {
        'ps_ratio': round(ps, 2),
        'formula': 'Market Cap / Revenue',
        'interpretation': f'Market pays {ps:.1f}x annual sales'
    }


def calculate_ev_ebitda(st: FinancialStatement) -> Dict[str, Any]:
    """EV/EBITDA = (Market Cap + Net Debt) / EBITDA"""
    ev = enterprise_value(st)
    if ev is None:
        return _no_market_data('ev_ebitda')
    if st.ebitda <= 0:
        return {'ev_ebitda': None, 'interpretation': 'N/A (negative EBITDA)'}
    multiple = ev / st.ebitda
    if multiple < 8:
        interp = 'Low multiple (value territory)'
    elif multiple < 14:
        interp = 'Average multiple'
    else:
        interp = 'High multiple (growth priced in)'
    return {
        'ev_ebitda': round(multiple, 2),
        'enterprise_value': round(ev, 2),
        'formula': '(Market Cap + Net Debt) / EBITDA',
        'interpretation': interp
    }


def calculate_ev_sales(st: FinancialStatement) -> Dict[str, Any]:
    """EV/Sales = (Market Cap + Net Debt) / Revenue"""
    ev = enterprise_value(st)
    if ev is None:
        return _no_market_data('ev_sales')
    if st.revenue <= 0:
        return {'ev_sales': None, 'interpretation': 'N/A (no revenue)'}
    return {
        'ev_sales': round(ev / st.revenue, 2),
        'formula': '(Market Cap + Net Debt) / Revenue',
        'interpretation': f'Enterprise valued at {ev / st.revenue:.1f}x sales'
    }


def calculate_dividend_yield(st: FinancialStatement) -> Dict[str, Any]:
    """
    Dividend Yield = Dividend per Share / Share Price x 100

    Dividend per share falls back to dividends paid / shares outstanding.
    """
    if st.share_price <= 0:
        return _no_market_data('dividend_yield')

    dps = st.dividends_per_share
    if not dps and st.shares_outstanding > 0:
        dps = abs(st.dividends_paid) / st.shares_outstanding
    if dps <= 0:
        return {
            'dividend_yield': 0.0,
            'dividend_per_share': 0.0,
            'interpretation': 'No dividend'
        }

    yield_pct = dps / st.share_price * 100

    # Interpretation
    if yield_pct < 2:
        interp = 'Low yield (growth focus)'
    elif yield_pct < 4:
        interp = 'Moderate yield'
    elif yield_pct < 6:
        interp = 'High yield'
    else:
        interp = 'Very high yield (verify sustainability)'

    return {
        'dividend_yield': round(yield_pct, 2),
        'dividend_per_share': round(dps, 4),
        'formula': 'Dividend per Share / Share Price',
        'interpretation': interp
    }


def comprehensive_valuation(st: FinancialStatement,
                            earnings_growth_pct: Optional[float] = None) -> Dict[str, Any]:
    """All market multiples for a statement."""
    pe = calculate_pe_ratio(st)
    return {
        'pe_ratio': pe,
        'peg_ratio': calculate_peg_ratio(pe.get('pe_ratio'), earnings_growth_pct),
        'pb_ratio': calculate_pb_ratio(st),
        'ps_ratio': calculate_ps_ratio(st),
        'ev_ebitda': calculate_ev_ebitda(st),
        'ev_sales': calculate_ev_sales(st),
        'dividend_yield': calculate_dividend_yield(st),
    }
