"""
Solvency and Leverage Ratios Module
"""

from typing import Dict, Any

from finclick.data.statements import FinancialStatement


def calculate_debt_to_equity(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Debt-to-Equity (D/E) Ratio.

    Formula:
        D/E = Total Debt / Shareholders' Equity

    Total debt is interest-bearing debt (short-term + long-term); when the
    statement reports none, total liabilities are used instead.
    """
    equity = st.total_equity
    if equity <= 0:
        return {
            'debt_to_equity': None,
            'interpretation': 'N/A (negative or zero equity)'
        }

    debt = st.total_debt or st.total_liabilities
    ratio = debt / equity

    # Interpretation
    if ratio < 0.5:
        interp = 'Low leverage - conservative capital structure'
    elif ratio < 1:
        interp = 'Moderate leverage'
    elif ratio < 2:
        interp = 'High leverage'
    else:
        interp = 'Very high leverage - significant debt load'

    return {
        'debt_to_equity': round(ratio, 2),
        'formula': 'Total Debt / Shareholders Equity',
        'total_debt': debt,
        'equity': equity,
        'interpretation': interp
    }


def calculate_debt_to_assets(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Debt-to-Assets Ratio.

    Formula:
        D/A = Total Liabilities / Total Assets
    """
    if st.total_assets <= 0:
        return {
            'debt_to_assets': None,
            'interpretation': 'N/A'
        }

    ratio = st.total_liabilities / st.total_assets

    if ratio < 0.3:
        interp = 'Low debt relative to assets'
    elif ratio < 0.5:
        interp = 'Moderate debt levels'
    elif ratio < 0.7:
        interp = 'High debt levels'
    else:
        interp = 'Very high debt - assets largely financed by creditors'

    return {
        'debt_to_assets': round(ratio, 4),
        'debt_percentage': round(ratio * 100, 1),
        'formula': 'Total Liabilities / Total Assets',
        'interpretation': interp
    }


def calculate_interest_coverage(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Interest Coverage Ratio.

    Formula:
        Interest Coverage = EBIT / Interest Expense
    """
    interest = abs(st.interest_expense)
    if interest <= 0:
        return {
            'interest_coverage': None,
            'interpretation': 'No interest expense'
        }

    ratio = st.ebit / interest

    if ratio < 1:
        interp = 'Critical - cannot cover interest payments'
    elif ratio < 1.5:
        interp = 'Weak coverage - high risk'
    elif ratio < 3:
        interp = 'Adequate coverage'
    elif ratio < 8:
        interp = 'Good coverage'
    else:
        interp = 'Strong coverage - low debt risk'

    return {
        'interest_coverage': round(ratio, 2),
        'formula': 'EBIT / Interest Expense',
        'ebit': st.ebit,
        'interest_expense': interest,
        'interpretation': interp
    }


def calculate_equity_ratio(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Equity Ratio.

    Formula:
        Equity Ratio = Shareholders' Equity / Total Assets
    """
    if st.total_assets <= 0:
        return {
            'equity_to_assets': None,
            'interpretation': 'N/A'
        }

    ratio = st.total_equity / st.total_assets

    return {
        'equity_to_assets': round(ratio, 4),
        'equity_percentage': round(ratio * 100, 1),
        'formula': 'Shareholders Equity / Total Assets',
        'interpretation': f'{ratio * 100:.1f}% of assets financed by equity'
    }


def calculate_debt_service_coverage(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Debt Service Coverage Ratio (DSCR).

    Formula:
        DSCR = EBITDA / (Interest + Principal Repaid)

    Principal falls back to short-term debt when no repayments are reported.
    """
    principal = abs(st.debt_repaid) or st.short_term_debt
    debt_service = abs(st.interest_expense) + principal
    if debt_service <= 0:
        return {
            'debt_service_coverage': None,
            'interpretation': 'No debt service'
        }

    ratio = st.ebitda / debt_service

    if ratio < 1:
        interp = 'Insufficient income to cover debt service'
    elif ratio < 1.25:
        interp = 'Marginal coverage'
    elif ratio < 1.5:
        interp = 'Adequate coverage'
    else:
        interp = 'Strong debt service coverage'

    return {
        'debt_service_coverage': round(ratio, 2),
        'formula': 'EBITDA / (Interest + Principal)',
        'debt_service': debt_service,
        'interpretation': interp
    }


def calculate_financial_leverage(st: FinancialStatement) -> Dict[str, Any]:
    """
    Calculate Financial Leverage (Equity Multiplier).

    Formula:
        Financial Leverage = Total Assets / Shareholders' Equity
    """
    if st.total_equity <= 0:
        return {
            'financial_leverage': None,
            'interpretation': 'N/A'
        }

    leverage = st.total_assets / st.total_equity

    return {
        'financial_leverage': round(leverage, 2),
        'formula': 'Total Assets / Shareholders Equity',
        'interpretation': f'{leverage:.1f}x equity multiplier'
    }


def comprehensive_solvency(st: FinancialStatement) -> Dict[str, Any]:
    """Calculate all solvency ratios for a statement."""
    return {
        'debt_to_equity': calculate_debt_to_equity(st),
        'debt_to_assets': calculate_debt_to_assets(st),
        'equity_to_assets': calculate_equity_ratio(st),
        'financial_leverage': calculate_financial_leverage(st),
        'interest_coverage': calculate_interest_coverage(st),
        'debt_service_coverage': calculate_debt_service_coverage(st),
    }
