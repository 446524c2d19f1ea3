"""
Efficiency (Activity) Ratios Module

Balances are averaged with the prior year when it is supplied.
"""

from typing import Dict, Any, Optional

from finclick.data.statements import FinancialStatement

DAYS_IN_YEAR = 365


def _average(st: FinancialStatement, previous: Optional[FinancialStatement], attr: str) -> float:
    current = getattr(st, attr)
    if previous is None:
        return current
    return (current + getattr(previous, attr)) / 2


def _cogs(st: FinancialStatement) -> float:
    # Service businesses often report no COGS
    return st.cost_of_goods_sold or (st.revenue - st.gross_profit if st.gross_profit else 0.0)


def _component_days(days: Optional[float], balance: float) -> Optional[float]:
    # No balance at all contributes zero days to a cycle
    if days is None and balance <= 0:
        return 0.0
    return days


def calculate_asset_turnover(st: FinancialStatement,
                             previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Asset Turnover Ratio.

    Formula:
        Asset Turnover = Revenue / Average Total Assets

    Measures efficiency of using assets to generate sales.
    """
    avg_assets = _average(st, previous, 'total_assets')
    if avg_assets <= 0:
        return {
            'asset_turnover': None,
            'interpretation': 'N/A'
        }

    ratio = st.revenue / avg_assets

    return {
        'asset_turnover': round(ratio, 2),
        'formula': 'Revenue / Average Total Assets',
        'revenue': st.revenue,
        'avg_assets': avg_assets,
        'interpretation': f"{ratio:.2f} of revenue per 1 of assets"
    }


def calculate_inventory_turnover(st: FinancialStatement,
                                 previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Inventory Turnover Ratio.

    Formula:
        Inventory Turnover = COGS / Average Inventory
        Days Inventory Outstanding = 365 / Inventory Turnover
    """
    avg_inventory = _average(st, previous, 'inventory')
    cogs = _cogs(st)
    if avg_inventory <= 0 or cogs <= 0:
        return {
            'inventory_turnover': None,
            'days_inventory_outstanding': None,
            'interpretation': 'N/A (no inventory)'
        }

    turnover = cogs / avg_inventory
    days = DAYS_IN_YEAR / turnover

    return {
        'inventory_turnover': round(turnover, 2),
        'days_inventory_outstanding': round(days, 1),
        'formula': 'COGS / Average Inventory',
        'interpretation': f"Inventory turns over {turnover:.1f}x per year ({days:.0f} days)"
    }


def calculate_receivables_turnover(st: FinancialStatement,
                                   previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Receivables Turnover Ratio.

    Formula:
        Receivables Turnover = Revenue / Average Accounts Receivable
        DSO = 365 / Receivables Turnover
    """
    avg_receivables = _average(st, previous, 'accounts_receivable')
    if avg_receivables <= 0 or st.revenue <= 0:
        return {
            'receivables_turnover': None,
            'days_sales_outstanding': None,
            'interpretation': 'N/A'
        }

    turnover = st.revenue / avg_receivables
    dso = DAYS_IN_YEAR / turnover

    return {
        'receivables_turnover': round(turnover, 2),
        'days_sales_outstanding': round(dso, 1),
        'formula': 'Revenue / Average Accounts Receivable',
        'interpretation': f"Collects receivables {turnover:.1f}x per year ({dso:.0f} days average)"
    }


def calculate_payables_turnover(st: FinancialStatement,
                                previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Payables Turnover Ratio.

    Formula:
        Payables Turnover = COGS / Average Accounts Payable
        DPO = 365 / Payables Turnover
    """
    avg_payables = _average(st, previous, 'accounts_payable')
    cogs = _cogs(st)
    if avg_payables <= 0 or cogs <= 0:
        return {
            'payables_turnover': None,
            'days_payables_outstanding': None,
            'interpretation': 'N/A'
        }

    turnover = cogs / avg_payables
    dpo = DAYS_IN_YEAR / turnover

    return {
        'payables_turnover': round(turnover, 2),
        'days_payables_outstanding': round(dpo, 1),
        'formula': 'COGS / Average Accounts Payable',
        'interpretation': f"Pays suppliers {turnover:.1f}x per year ({dpo:.0f} days average)"
    }


def calculate_operating_cycle(st: FinancialStatement,
                              previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Operating Cycle = Days Inventory Outstanding + Days Sales Outstanding
    """
    dio = _component_days(calculate_inventory_turnover(st, previous)['days_inventory_outstanding'],
                          _average(st, previous, 'inventory'))
    dso = _component_days(calculate_receivables_turnover(st, previous)['days_sales_outstanding'],
                          _average(st, previous, 'accounts_receivable'))
    if dio is None or dso is None or dio + dso <= 0:
        return {
            'operating_cycle': None,
            'interpretation': 'N/A'
        }
    cycle = dio + dso
    return {
        'operating_cycle': round(cycle, 1),
        'days_inventory_outstanding': dio,
        'days_sales_outstanding': dso,
        'formula': 'DIO + DSO',
        'interpretation': f"Cash is tied up in inventory and receivables for {cycle:.0f} days"
    }


def calculate_cash_conversion_cycle(st: FinancialStatement,
                                    previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Cash Conversion Cycle.

    Formula:
        CCC = Days Inventory + Days Receivables - Days Payable

    Measures time to convert inventory investment back to cash.
    """
    dio = _component_days(calculate_inventory_turnover(st, previous)['days_inventory_outstanding'],
                          _average(st, previous, 'inventory'))
    dso = _component_days(calculate_receivables_turnover(st, previous)['days_sales_outstanding'],
                          _average(st, previous, 'accounts_receivable'))
    dpo = _component_days(calculate_payables_turnover(st, previous)['days_payables_outstanding'],
                          _average(st, previous, 'accounts_payable'))
    if None in (dio, dso, dpo) or dio == dso == dpo == 0:
        return {
            'cash_conversion_cycle': None,
            'interpretation': 'N/A'
        }

    ccc = dio + dso - dpo

    # Interpretation
    if ccc < 0:
        interp = 'Negative CCC - company receives cash before paying suppliers'
    elif ccc < 30:
        interp = 'Efficient cash conversion'
    elif ccc < 60:
        interp = 'Average cash conversion'
    else:
        interp = 'Long cash conversion cycle'

    return {
        'cash_conversion_cycle': round(ccc, 1),
        'days_inventory_outstanding': dio,
        'days_sales_outstanding': dso,
        'days_payables_outstanding': dpo,
        'formula': 'DIO + DSO - DPO',
        'interpretation': interp
    }


def calculate_fixed_asset_turnover(st: FinancialStatement,
                                   previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """
    Calculate Fixed Asset Turnover Ratio.

    Formula:
        Fixed Asset Turnover = Revenue / Average Net PP&E
    """
    avg_fixed = _average(st, previous, 'ppe')
    if avg_fixed <= 0:
        return {
            'fixed_asset_turnover': None,
            'interpretation': 'N/A'
        }

    ratio = st.revenue / avg_fixed

    return {
        'fixed_asset_turnover': round(ratio, 2),
        'formula': 'Revenue / Average Net PP&E',
        'interpretation': f"{ratio:.2f} of revenue per 1 of fixed assets"
    }


def comprehensive_efficiency(st: FinancialStatement,
                             previous: Optional[FinancialStatement] = None) -> Dict[str, Any]:
    """Calculate all activity ratios for a statement."""
    return {
        'asset_turnover': calculate_asset_turnover(st, previous),
        'fixed_asset_turnover': calculate_fixed_asset_turnover(st, previous),
        'inventory_turnover': calculate_inventory_turnover(st, previous),
        'receivables_turnover': calculate_receivables_turnover(st, previous),
        'payables_turnover': calculate_payables_turnover(st, previous),
        'operating_cycle': calculate_operating_cycle(st, previous),
        'cash_conversion_cycle': calculate_cash_conversion_cycle(st, previous),
    }
