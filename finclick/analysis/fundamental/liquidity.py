"""
Liquidity Ratios Module
"""

from typing import Dict, Any

from finclick.data.statements import FinancialStatement


def calculate_current_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Current Ratio.

    Formula:
        Current Ratio = Current Assets / Current Liabilities

    Measures ability to pay short-term obligations.

    Args:
        st: Financial statement for the year

    Returns:
        Dictionary with ratio and interpretation
    """
    ca, cl = st.total_current_assets, st.total_current_liabilities
    if cl <= 0:
        return {
            'current_ratio': None,
            'interpretation': 'N/A (no current liabilities)'
        }

    ratio = ca / cl

    # Interpretation
    if ratio < 1:
        interp = 'Poor liquidity - may struggle to meet short-term obligations'
    elif ratio < 1.5:
        interp = 'Adequate liquidity'
    elif ratio < 3:
        interp = 'Good liquidity'
    else:
        interp = 'Very high liquidity (may indicate idle current assets)'

    return {
        'current_ratio': round(ratio, 2),
        'formula': 'Current Assets / Current Liabilities',
        'current_assets': ca,
        'current_liabilities': cl,
        'interpretation': interp
    }


def calculate_quick_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Quick Ratio (Acid Test).

    Formula:
        Quick Ratio = (Current Assets - Inventory) / Current Liabilities
    """
    cl = st.total_current_liabilities
    if cl <= 0:
        return {
            'quick_ratio': None,
            'interpretation': 'N/A'
        }

    quick_assets = st.total_current_assets - st.inventory
    ratio = quick_assets / cl

    if ratio < 0.5:
        interp = 'Poor quick liquidity'
    elif ratio < 1:
        interp = 'Below ideal quick liquidity'
    elif ratio < 1.5:
        interp = 'Good quick liquidity'
    else:
        interp = 'Strong quick liquidity'

    return {
        'quick_ratio': round(ratio, 2),
        'formula': '(Current Assets - Inventory) / Current Liabilities',
        'quick_assets': quick_assets,
        'current_liabilities': cl,
        'interpretation': interp
    }


def calculate_cash_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Cash Ratio.

    Formula:
        Cash Ratio = (Cash + Marketable Securities) / Current Liabilities

    Most conservative liquidity measure.
    """
    cl = st.total_current_liabilities
    if cl <= 0:
        return {
            'cash_ratio': None,
            'interpretation': 'N/A'
        }

    cash = st.cash + st.marketable_securities
    ratio = cash / cl

    if ratio < 0.2:
        interp = 'Low cash coverage'
    elif ratio < 0.5:
        interp = 'Adequate cash coverage'
    elif ratio < 1:
        interp = 'Good cash coverage'
    else:
        interp = 'Strong cash coverage (may be holding too much cash)'

    return {
        'cash_ratio': round(ratio, 2),
        'formula': '(Cash + Marketable Securities) / Current Liabilities',
        'cash': cash,
        'current_liabilities': cl,
        'interpretation': interp
    }


def calculate_working_capital(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Working Capital and the working capital ratio.

    Formula:
        Working Capital = Current Assets - Current Liabilities
        Working Capital Ratio = Working Capital / Total Assets
    """
    working_capital = st.working_capital
    ratio = working_capital / st.total_assets if st.total_assets > 0 else None

    if working_capital < 0:
        interp = 'Negative working capital (short-term liabilities exceed assets)'
    elif working_capital == 0:
        interp = 'Zero working capital'
    else:
        interp = 'Positive working capital'

    return {
        'working_capital': round(working_capital, 2),
        'working_capital_ratio': round(ratio, 4) if ratio is not None else None,
        'formula': '(Current Assets - Current Liabilities) / Total Assets',
        'current_assets': st.total_current_assets,
        'current_liabilities': st.total_current_liabilities,
        'interpretation': interp
    }


def calculate_operating_cash_flow_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Operating Cash Flow Ratio.

    Formula:
        OCF Ratio = Operating Cash Flow / Current Liabilities
    """
    cl = st.total_current_liabilities
    if cl <= 0:
        return {
            'operating_cash_flow_ratio': None,
            'interpretation': 'N/A'
        }

    ratio = st.operating_cash_flow / cl

    return {
        'operating_cash_flow_ratio': round(ratio, 2),
        'formula': 'Operating Cash Flow / Current Liabilities',
        'operating_cash_flow': st.operating_cash_flow,
        'current_liabilities': cl,
        'interpretation': f"Operating cash can cover {ratio:.1f}x current liabilities"
    }


def comprehensive_liquidity(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate all liquidity ratios for a statement.

    Returns:
        Dictionary keyed by ratio name
    """
    return {
        'current_ratio': calculate_current_ratio(st),
        'quick_ratio': calculate_quick_ratio(st),
        'cash_ratio': calculate_cash_ratio(st),
        'working_capital': calculate_working_capital(st),
        'operating_cash_flow_ratio': calculate_operating_cash_flow_ratio(st),
    }
