"""
Financial Statements Module
One fiscal year of balance sheet, income statement and cash flow data.
"""

import logging
import re
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Iterable, List, Optional

from finclick.core.exceptions import InsufficientDataError
from finclick.core.utils import to_number

logger = logging.getLogger(__name__)


# Nested keys whose flat name differs from the snake_case conversion
_ALIASES = {
    'total_operating_cash_flow': 'operating_cash_flow',
    'total_investing_cash_flow': 'investing_cash_flow',
    'total_financing_cash_flow': 'financing_cash_flow',
    'cogs': 'cost_of_goods_sold',
    'capex': 'capital_expenditures',
    'sga': 'sga_expense',
    'sales': 'revenue',
    'total_revenue': 'revenue',
    'depreciation_and_amortization': 'depreciation',
    'shares': 'shares_outstanding',
    'price': 'share_price',
    'fiscal_year': 'year',
}


def _snake(name: str) -> str:
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
    return name.replace('-', '_').replace(' ', '_').lower()


@dataclass
class FinancialStatement:
    """
    Flat financial statement for a single fiscal year.

    All amounts share the statement currency. Totals left at zero are
    derived from their components by `complete()`.
    """
    year: int = 0

    # Balance sheet - current assets
    cash: float = 0.0
    marketable_securities: float = 0.0
    accounts_receivable: float = 0.0
    inventory: float = 0.0
    other_current_assets: float = 0.0
    total_current_assets: float = 0.0
    # Non-current assets
    ppe: float = 0.0
    intangible_assets: float = 0.0
    investments: float = 0.0
    other_non_current_assets: float = 0.0
    total_non_current_assets: float = 0.0
    total_assets: float = 0.0
    # Liabilities
    accounts_payable: float = 0.0
    short_term_debt: float = 0.0
    other_current_liabilities: float = 0.0
    total_current_liabilities: float = 0.0
    long_term_debt: float = 0.0
    other_non_current_liabilities: float = 0.0
    total_non_current_liabilities: float = 0.0
    total_liabilities: float = 0.0
    # Equity
    common_stock: float = 0.0
    retained_earnings: float = 0.0
    other_equity: float = 0.0
    total_equity: float = 0.0

    # Income statement
    revenue: float = 0.0
    cost_of_goods_sold: float = 0.0
    gross_profit: float = 0.0
    operating_expenses: float = 0.0
    sga_expense: float = 0.0
    rd_expense: float = 0.0
    depreciation: float = 0.0
    operating_income: float = 0.0
    interest_expense: float = 0.0
    other_income: float = 0.0
    income_before_tax: float = 0.0
    tax_expense: float = 0.0
    net_income: float = 0.0

    # Cash flow statement
    operating_cash_flow: float = 0.0
    changes_in_working_capital: float = 0.0
    capital_expenditures: float = 0.0
    acquisitions: float = 0.0
    investing_cash_flow: float = 0.0
    debt_issued: float = 0.0
    debt_repaid: float = 0.0
    dividends_paid: float = 0.0
    share_repurchases: float = 0.0
    financing_cash_flow: float = 0.0
    beginning_cash: float = 0.0
    ending_cash: float = 0.0

    # Market and cost data
    shares_outstanding: float = 0.0
    share_price: float = 0.0
    dividends_per_share: float = 0.0
    fixed_costs: float = 0.0
    variable_costs: float = 0.0
    employees: float = 0.0

    def complete(self) -> 'FinancialStatement':
        """Fill zero totals from their components. Returns self."""
        if not self.total_current_assets:
            self.total_current_assets = (self.cash + self.marketable_securities +
                                         self.accounts_receivable + self.inventory +
                                         self.other_current_assets)
        if not self.total_non_current_assets:
            self.total_non_current_assets = (self.ppe + self.intangible_assets +
                                             self.investments + self.other_non_current_assets)
        if not self.total_assets:
            self.total_assets = self.total_current_assets + self.total_non_current_assets

        if not self.total_current_liabilities:
            self.total_current_liabilities = (self.accounts_payable + self.short_term_debt +
                                              self.other_current_liabilities)
        if not self.total_non_current_liabilities:
            self.total_non_current_liabilities = self.long_term_debt + self.other_non_current_liabilities
        if not self.total_liabilities:
            self.total_liabilities = self.total_current_liabilities + self.total_non_current_liabilities

        if not self.total_equity:
            components = self.common_stock + self.retained_earnings + self.other_equity
            self.total_equity = components if components else self.total_assets - self.total_liabilities

        if not self.gross_profit and self.revenue:
            self.gross_profit = self.revenue - self.cost_of_goods_sold
        if not self.operating_expenses:
            self.operating_expenses = self.sga_expense + self.rd_expense + self.depreciation
        if not self.operating_income and self.revenue:
            self.operating_income = self.gross_profit - self.operating_expenses
        if not self.income_before_tax and (self.net_income or self.operating_income):
            if self.net_income:
                self.income_before_tax = self.net_income + self.tax_expense
            else:
                self.income_before_tax = self.operating_income - self.interest_expense + self.other_income
        if not self.net_income and self.income_before_tax:
            self.net_income = self.income_before_tax - self.tax_expense

        if not self.ending_cash and self.cash:
            self.ending_cash = self.cash
        return self

    # ------------------------------------------------------------------
    # Derived measures
    # ------------------------------------------------------------------
    @property
    def total_debt(self) -> float:
        return self.short_term_debt + self.long_term_debt

    @property
    def net_debt(self) -> float:
        return self.total_debt - self.cash - self.marketable_securities

    @property
    def ebit(self) -> float:
        return self.operating_income or (self.income_before_tax + self.interest_expense)

    @property
    def ebitda(self) -> float:
        return self.ebit + self.depreciation

    @property
    def working_capital(self) -> float:
        return self.total_current_assets - self.total_current_liabilities

    @property
    def free_cash_flow(self) -> float:
        # Capex may be reported signed or unsigned
        return self.operating_cash_flow - abs(self.capital_expenditures)

    @property
    def invested_capital(self) -> float:
        return self.total_equity + self.total_debt - self.cash

    @property
    def effective_tax_rate(self) -> Optional[float]:
        if self.income_before_tax <= 0:
            return None
        return self.tax_expense / self.income_before_tax

    @property
    def market_cap(self) -> Optional[float]:
        if self.share_price <= 0 or self.shares_outstanding <= 0:
            return None
        return self.share_price * self.shares_outstanding

    @property
    def eps(self) -> Optional[float]:
        if self.shares_outstanding <= 0:
            return None
        return self.net_income / self.shares_outstanding

    @property
    def book_value_per_share(self) -> Optional[float]:
        if self.shares_outstanding <= 0:
            return None
        return self.total_equity / self.shares_outstanding

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------
    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FinancialStatement':
        """
        Build a statement from a flat or nested mapping.

        Accepts snake_case or camelCase keys and the nested
        balanceSheet / incomeStatement / cashFlowStatement layout.
        Unknown keys are ignored. Derived totals are filled in.
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise TypeError(f"Expected a mapping, got {type(data).__name__}")

        known = set(cls.field_names())
        values: Dict[str, Any] = {}

        def walk(mapping: Dict[str, Any]):
            for key, value in mapping.items():
                if isinstance(value, dict):
                    walk(value)
                    continue
                name = _snake(str(key))
                name = _ALIASES.get(name, name)
                if name not in known or value is None or value == '':
                    continue
                # First occurrence wins (netIncome appears in two sections)
                values.setdefault(name, value)

        walk(data)

        kwargs = {}
        for name, value in values.items():
            number = to_number(value)
            if number is None:
                logger.warning(f"Ignoring non-numeric value for {name}: {value!r}")
                continue
            kwargs[name] = int(number) if name == 'year' else number
        return cls(**kwargs).complete()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CompanyProfile:
    """Descriptive data about the analysed company."""
    name: str = ''
    sector: str = 'general'
    activity: str = ''
    legal_entity: str = ''
    comparison_level: str = 'local'
    currency: str = 'SAR'
    country: str = ''


def sort_statements(statements: Iterable[FinancialStatement]) -> List[FinancialStatement]:
    """Return statements ordered by fiscal year, oldest first."""
    return sorted(statements, key=lambda s: s.year)


def require_statements(statements: Optional[Iterable[FinancialStatement]], minimum: int = 1,
                       analysis_id: str = None) -> List[FinancialStatement]:
    """
    Sort statements and check there are enough of them.

    Raises:
        InsufficientDataError: fewer than `minimum` statements were given
    """
    ordered = sort_statements(statements or [])
    if len(ordered) < minimum:
        raise InsufficientDataError(
            f"At least {minimum} financial statement(s) required, got {len(ordered)}",
            analysis_id,
        )
    return ordered
