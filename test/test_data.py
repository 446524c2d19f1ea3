import json
import unittest
from unittest import mock
import pandas as pd
import numpy as np

from finclick.data.statements import FinancialStatement, require_statements, sort_statements
from finclick.data.market import MarketData, Portfolio, returns_from_prices, to_series
from finclick.data.benchmarks import get_industry_benchmarks, normalize_sector, IndustryBenchmarks
from finclick.data.parser import (
    extract_financial_data, parse_table, match_line_item, extract_year, to_number
)
from finclick.core.exceptions import InsufficientDataError, StatementParseError


class TestFinancialStatement(unittest.TestCase):
    def test_from_nested_camel_case(self):
        st = FinancialStatement.from_dict({
            'year': 2023,
            'balanceSheet': {'cash': 100, 'accountsReceivable': 50, 'totalLiabilities': 80},
            'incomeStatement': {'revenue': 1000, 'costOfGoodsSold': 600, 'netIncome': 90},
        })
        self.assertEqual(st.year, 2023)
        self.assertEqual(st.total_current_assets, 150)
        self.assertEqual(st.total_assets, 150)
        self.assertEqual(st.total_equity, 70)
        self.assertEqual(st.gross_profit, 400)

    def test_aliases_and_bad_values(self):
        st = FinancialStatement.from_dict({'fiscal_year': '2022', 'sales': 500, 'capex': -40,
                                           'operating_cash_flow': 100, 'inventory': 'n/a'})
        self.assertEqual(st.year, 2022)
        self.assertEqual(st.revenue, 500)
        self.assertEqual(st.inventory, 0.0)
        self.assertEqual(st.free_cash_flow, 60)

    def test_formatted_amounts(self):
        st = FinancialStatement.from_dict({'year': '2023', 'revenue': '1,200', 'net_income': '(350)',
                                           'cash': '٢٥٠٫٥', 'inventory': '3٬400'})
        self.assertEqual(st.revenue, 1200.0)
        self.assertEqual(st.net_income, -350.0)
        self.assertEqual(st.cash, 250.5)
        self.assertEqual(st.inventory, 3400.0)

    def test_per_share_measures(self):
        st = FinancialStatement(net_income=100, total_equity=500, shares_outstanding=50,
                                share_price=20)
        self.assertEqual(st.eps, 2)
        self.assertEqual(st.book_value_per_share, 10)
        self.assertEqual(st.market_cap, 1000)
        self.assertIsNone(FinancialStatement().eps)

    def test_require_statements(self):
        ordered = require_statements([FinancialStatement(year=2023), FinancialStatement(year=2021)], 2)
        self.assertEqual([s.year for s in ordered], [2021, 2023])
        with self.assertRaises(InsufficientDataError):
            require_statements([FinancialStatement(year=2023)], 2)
        self.assertEqual(sort_statements([]), [])


class TestMarketData(unittest.TestCase):
    def test_returns_from_prices(self):
        returns = returns_from_prices([100, 110, 99])
        np.testing.assert_allclose(returns.values, [0.1, -0.1])

    def test_market_data_derives_returns(self):
        market = MarketData.from_dict({'prices': [100, 110, 121], 'riskFreeRate': 0.03})
        self.assertEqual(len(market.returns), 2)
        self.assertEqual(market.risk_free_rate, 0.03)

    def test_to_series_drops_missing(self):
        self.assertEqual(len(to_series([1.0, None, 2.0])), 2)
        self.assertIsNone(to_series(None))

    def test_portfolio_weights(self):
        frame = pd.DataFrame({'A': [0.01, 0.02], 'B': [0.03, 0.0]})
        portfolio = Portfolio(frame, weights=[2, 2])
        np.testing.assert_allclose(portfolio.normalized_weights(), [0.5, 0.5])
        np.testing.assert_allclose(portfolio.portfolio_returns().values, [0.02, 0.01])
        with self.assertRaises(ValueError):
            Portfolio(frame, weights=[1.0])


class TestBenchmarks(unittest.TestCase):
    def test_sector_alias_and_level(self):
        local = get_industry_benchmarks('tech')
        self.assertEqual(local.sector, 'technology')
        self.assertEqual(local.get('gross_margin'), 60.0)
        self.assertAlmostEqual(get_industry_benchmarks('tech', comparison_level='global').get('gross_margin'), 67.2)

    def test_unknown_sector_falls_back(self):
        self.assertEqual(normalize_sector('space mining'), 'general')
        self.assertEqual(get_industry_benchmarks('space mining').get('current_ratio'), 1.5)

    def test_peer_values_and_overrides(self):
        bm = IndustryBenchmarks.from_dict({'sector': 'retail', 'ratios': {'roe': 20},
                                           'peers': {'current_ratio': [1.0, 1.4]}})
        self.assertEqual(bm.get('roe'), 20.0)
        self.assertEqual(bm.peer_values('current_ratio'), [1.0, 1.4])
        self.assertEqual(len(bm.peer_values('roe')), 5)
        self.assertTrue(bm.is_lower_better('debt_to_equity'))
        self.assertFalse(bm.is_lower_better('roe'))


class TestParser(unittest.TestCase):
    def test_match_line_item(self):
        self.assertEqual(match_line_item('Total current assets'), 'total_current_assets')
        self.assertEqual(match_line_item('Net Income'), 'net_income')
        self.assertEqual(match_line_item('صافي الربح'), 'net_income')
        self.assertIsNone(match_line_item('Notes'))

    def test_extract_year(self):
        self.assertEqual(extract_year('FY2024'), 2024)
        self.assertEqual(extract_year('FY24'), 2024)
        self.assertEqual(extract_year('2023-24'), 2024)
        self.assertEqual(extract_year(2023.0), 2023)
        self.assertIsNone(extract_year('Item'))

    def test_to_number(self):
        self.assertEqual(to_number('(1,234)'), -1234)
        self.assertEqual(to_number('1,000.5'), 1000.5)
        self.assertIsNone(to_number('-'))

    def test_parse_table(self):
        frame = pd.DataFrame({'Item': ['Revenue', 'Net income', 'Unrelated'],
                              '2022': [1000, 100, 5], '2023': [1200, 150, 7]})
        statements = parse_table(frame)
        self.assertEqual([s.year for s in statements], [2022, 2023])
        self.assertEqual(statements[1].revenue, 1200)
        self.assertEqual(statements[0].net_income, 100)

    def test_extract_csv(self):
        raw = b"Item,2022,2023\nRevenue,1000,1200\nNet income,100,150\nTotal assets,2000,2200\n"
        statements = extract_financial_data(raw, 'statements.csv')
        self.assertEqual(len(statements), 2)
        self.assertEqual(statements[-1].total_assets, 2200)

    def test_extract_json(self):
        raw = json.dumps({'statements': [{'year': 2023, 'revenue': 10}]}).encode()
        self.assertEqual(extract_financial_data(raw, 'data.json')[0].revenue, 10)

    def test_extract_json_formatted_amounts(self):
        raw = '[{"year": 2023, "revenue": "1,200", "netIncome": "(35)"}]'.encode()
        st = extract_financial_data(raw, 'data.json')[0]
        self.assertEqual(st.revenue, 1200.0)
        self.assertEqual(st.net_income, -35.0)

    def test_legacy_excel_uses_xlrd(self):
        frame = pd.DataFrame({'Item': ['Revenue', 'Net income'], '2023': [1200, 150]})
        with mock.patch('finclick.data.parser.pd.read_excel', return_value={'Sheet1': frame}) as read_excel:
            statements = extract_financial_data(b'\xd0\xcf\x11\xe0', 'statements.xls')
        self.assertEqual(read_excel.call_args.kwargs['engine'], 'xlrd')
        self.assertEqual(statements[0].revenue, 1200)

    def test_rejects_unsupported_or_empty(self):
        with self.assertRaises(StatementParseError):
            extract_financial_data(b'hello', 'notes.txt')
        with self.assertRaises(StatementParseError):
            extract_financial_data(b'Item,2023\nNotes,1\n', 'empty.csv')
        with self.assertRaises(StatementParseError):
            extract_financial_data(b'{not json', 'bad.json')


if __name__ == '__main__':
    unittest.main()
