"""
Profitability Ratios Module

Returns and margins are expressed in percent.
"""

from typing import Dict, Any, Optional

from finclick import config
from finclick.data.statements import FinancialStatement


def _average(st: FinancialStatement, previous: Optional[FinancialStatement], attr: str) -> float:
    current = getattr(st, attr)
    if previous is None:
        return current
    return (current + getattr(previous, attr)) / 2


def calculate_roe(st: FinancialStatement, previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Return on Equity (ROE).

    Formula:
        ROE = Net Income / Shareholders' Equity

    With the prior year available, average equity is used:
        ROE = Net Income / ((Beginning Equity + Ending Equity) / 2)

    Args:
        st: Statement for the year
        previous: Prior-year statement (optional, for averaging)

    Returns:
        Dictionary with ROE and interpretation
    """
    avg_equity = _average(st, previous, 'total_equity')
    if avg_equity <= 0:
        return {
            'roe': None,
            'interpretation': 'N/A (negative or zero equity)'
        }

    roe = (st.net_income / avg_equity) * 100

    # Interpretation
    if roe < 0:
        interp = 'Negative return (company losing money)'
    elif roe < 10:
        interp = 'Below average return on equity'
    elif roe < 15:
        interp = 'Average return on equity'
    elif roe < 20:
        interp = 'Good return on equity'
    else:
        interp = 'Excellent return on equity'

    return {
        'roe': round(roe, 2),
        'formula': 'Net Income / Average Shareholders Equity',
        'net_income': st.net_income,
        'equity': avg_equity,
        'interpretation': interp
    }


def calculate_roa(st: FinancialStatement, previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Return on Assets (ROA).

    Formula:
        ROA = Net Income / Average Total Assets
    """
    avg_assets = _average(st, previous, 'total_assets')
    if avg_assets <= 0:
        return {
            'roa': None,
            'interpretation': 'N/A'
        }

    roa = (st.net_income / avg_assets) * 100

    if roa < 0:
        interp = 'Negative return (company losing money)'
    elif roa < 2:
        interp = 'Low asset efficiency'
    elif roa < 5:
        interp = 'Average asset efficiency'
    elif roa < 10:
        interp = 'Good asset efficiency'
    else:
        interp = 'Excellent asset efficiency'

    return {
        'roa': round(roa, 2),
        'formula': 'Net Income / Average Total Assets',
        'net_income': st.net_income,
        'total_assets': avg_assets,
        'interpretation': interp
    }


def calculate_roic(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Return on Invested Capital (ROIC).

    Formula:
        ROIC = NOPAT / Invested Capital
        NOPAT = EBIT x (1 - Tax Rate)
        Invested Capital = Equity + Debt - Cash

    The effective tax rate is used when the statement allows it, else the
    configured default.
    """
    invested_capital = st.invested_capital
    if invested_capital <= 0:
        return {
            'roic': None,
            'interpretation': 'N/A (no invested capital)'
        }

    tax_rate = st.effective_tax_rate
    if tax_rate is None or not 0 <= tax_rate < 1:
        tax_rate = config.DEFAULT_TAX_RATE
    nopat = st.ebit * (1 - tax_rate)
    roic = (nopat / invested_capital) * 100

    if roic < 0:
        interp = 'Destroying value (below cost of capital)'
    elif roic < 8:
        interp = 'Likely below cost of capital'
    elif roic < 15:
        interp = 'Generating adequate returns'
    elif roic < 25:
        interp = 'Strong returns on capital'
    else:
        interp = 'Exceptional returns (competitive advantage)'

    return {
        'roic': round(roic, 2),
        'formula': 'EBIT x (1 - Tax Rate) / (Equity + Debt - Cash)',
        'nopat': round(nopat, 2),
        'tax_rate': round(tax_rate, 4),
        'invested_capital': invested_capital,
        'interpretation': interp
    }


def _margin(key: str, numerator: float, revenue: float, label: str, formula: str) -> Dict[str, Any]:
    if revenue <= 0:
        return {
            key: None,
            'interpretation': 'N/A (no revenue)'
        }
    margin = (numerator / revenue) * 100
    return {
        key: round(margin, 2),
        'formula': formula,
        'revenue': revenue,
        'interpretation': f'{margin:.1f}% of revenue remains as {label}'
    }


def calculate_net_profit_margin(st: FinancialStatement) -> Dict[str, Any]:
    """Net Profit Margin = Net Income / Revenue x 100"""
    return _margin('net_margin', st.net_income, st.revenue, 'net profit',
                   'Net Income / Revenue')


def calculate_gross_profit_margin(st: FinancialStatement) -> Dict[str, Any]:
    """Gross Margin = (Revenue - COGS) / Revenue x 100"""
    return _margin('gross_margin', st.gross_profit, st.revenue, 'gross profit',
                   '(Revenue - COGS) / Revenue')


def calculate_operating_margin(st: FinancialStatement) -> Dict[str, Any]:
    """Operating Margin = EBIT / Revenue x 100"""
    return _margin('operating_margin', st.ebit, st.revenue, 'operating profit',
                   'Operating Income / Revenue')


def calculate_ebitda_margin(st: FinancialStatement) -> Dict[str, Any]:
    """EBITDA Margin = (EBIT + Depreciation) / Revenue x 100"""
    return _margin('ebitda_margin', st.ebitda, st.revenue, 'EBITDA',
                   'EBITDA / Revenue')


def calculate_eps(st: FinancialStatement, preferred_dividends: float = 0.0) -> Dict[str, Any]:
    """
    Calculate Earnings Per Share (EPS).

    Formula:
        EPS = (Net Income - Preferred Dividends) / Shares Outstanding
    """
    if st.shares_outstanding <= 0:
        return {
            'eps': None,
            'interpretation': 'N/A (shares outstanding not reported)'
        }

    eps = (st.net_income - preferred_dividends) / st.shares_outstanding

    return {
        'eps': round(eps, 4),
        'formula': '(Net Income - Preferred Dividends) / Shares Outstanding',
        'net_income': st.net_income,
        'shares': st.shares_outstanding,
        'interpretation': 'Loss per share' if eps < 0 else f'{eps:.2f} earned per share'
    }


def calculate_book_value_per_share(st: FinancialStatement) -> Dict[str, Any]:
    """Book Value per Share = Shareholders' Equity / Shares Outstanding"""
    if st.shares_outstanding <= 0:
        return {
            'book_value_per_share': None,
            'interpretation': 'N/A (shares outstanding not reported)'
        }
    bvps = st.total_equity / st.shares_outstanding
    return {
        'book_value_per_share': round(bvps, 4),
        'formula': 'Shareholders Equity / Shares Outstanding',
        'interpretation': 'Negative book value' if bvps < 0 else f'{bvps:.2f} of equity per share'
    }


def comprehensive_profitability(st: FinancialStatement,
                                previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """Calculate all profitability ratios for a statement."""
    return {
        'gross_margin': calculate_gross_profit_margin(st),
        'operating_margin': calculate_operating_margin(st),
        'net_margin': calculate_net_profit_margin(st),
        'ebitda_margin': calculate_ebitda_margin(st),
        'roa': calculate_roa(st, previous),
        'roe': calculate_roe(st, previous),
        'roic': calculate_roic(st),
        'eps': calculate_eps(st),
        'book_value_per_share': calculate_book_value_per_share(st),
    }
