"""
Sample inputs shared by the analysis tests.

Three fiscal years of a company growing 10% a year, plus seeded market
series.
"""

import numpy as np
import pandas as pd

from finclick.data.statements import FinancialStatement


def make_statement(year: int, scale: float = 1.0, **overrides) -> FinancialStatement:
    s = scale
    data = {
        'year': year,
        'cash': 150 * s, 'accounts_receivable': 200 * s, 'inventory': 250 * s,
        'ppe': 800 * s, 'intangible_assets': 100 * s,
        'accounts_payable': 150 * s, 'short_term_debt': 100 * s, 'long_term_debt': 400 * s,
        'common_stock': 500 * s, 'retained_earnings': 350 * s,
        'revenue': 1500 * s, 'cost_of_goods_sold': 900 * s, 'sga_expense': 250 * s,
        'depreciation': 50 * s, 'interest_expense': 30 * s, 'tax_expense': 40 * s,
        'operating_cash_flow': 220 * s, 'capital_expenditures': -90 * s,
        'investing_cash_flow': -120 * s, 'financing_cash_flow': -60 * s,
        'dividends_paid': 30 * s, 'debt_repaid': 30 * s,
        'shares_outstanding': 100, 'share_price': 25 * s, 'dividends_per_share': 0.3 * s,
        'employees': 120,
    }
    data.update(overrides)
    return FinancialStatement.from_dict(data)


def make_statements():
    # Totals: assets 1500, liabilities 650, equity 850, operating income 300, net income 230
    return [make_statement(2021, 1.0), make_statement(2022, 1.1), make_statement(2023, 1.21)]


def make_returns(n: int = 300, seed: int = 7):
    rng = np.random.default_rng(seed)
    dates = pd.date_range('2022-01-03', periods=n, freq='B')
    benchmark = pd.Series(rng.normal(0.0004, 0.01, n), index=dates)
    returns = 1.1 * benchmark + pd.Series(rng.normal(0.0002, 0.006, n), index=dates)
    return returns, benchmark


def make_asset_returns(n: int = 300, seed: int = 11) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    common = rng.normal(0.0003, 0.008, n)
    return pd.DataFrame({
        'AAA': common + rng.normal(0.0002, 0.006, n),
        'BBB': common + rng.normal(0.0001, 0.012, n),
        'CCC': rng.normal(0.0002, 0.004, n),
    }, index=pd.date_range('2022-01-03', periods=n, freq='B'))


def make_prices(n: int = 300, seed: int = 3) -> pd.Series:
    rng = np.random.default_rng(seed)
    return pd.Series(100 * np.exp(np.cumsum(rng.normal(0.0004, 0.012, n))),
                     index=pd.date_range('2022-01-03', periods=n, freq='B'))
