import unittest

from finclick.analysis.classical.structural import (
    vertical_analysis, horizontal_analysis, combined_analysis, trend_analysis,
    growth_rate_analysis, index_number_analysis
)
from finclick.analysis.classical.ratios import (
    current_ratio_analysis, gross_margin_analysis, pe_ratio_analysis, eps_analysis,
    days_sales_outstanding_analysis, days_payables_outstanding_analysis,
    calculate_all_financial_ratios, compare_to_peers, competitive_position, RATIOS, GROUPS
)
from finclick.analysis.classical.flow import (
    basic_cash_flow_analysis, working_capital_analysis, break_even_analysis,
    margin_of_safety_analysis, cost_behaviour
)
from finclick.analysis.result import Rating, STATUS_SUCCESS
from finclick.core.exceptions import InsufficientDataError
from finclick.data.benchmarks import get_industry_benchmarks
from finclick.data.statements import FinancialStatement

from sample_data import make_statement, make_statements


class TestStructuralAnalysis(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.benchmarks = get_industry_benchmarks('general')

    def test_vertical_analysis(self):
        result = vertical_analysis(self.statements[0], self.benchmarks)
        self.assertEqual(result.status, STATUS_SUCCESS)
        self.assertEqual(result.data['assets_pct_of_total_assets']['total_current_assets'], 40.0)
        self.assertAlmostEqual(result.data['income_pct_of_revenue']['net_income'], 15.33, places=2)
        self.assertEqual(result.data['balance_check'], 0)
        self.assertEqual(result.evaluation, Rating.EXCELLENT)

    def test_vertical_requires_total_assets(self):
        with self.assertRaises(InsufficientDataError):
            vertical_analysis(FinancialStatement(year=2023, revenue=100))

    def test_horizontal_analysis(self):
        result = horizontal_analysis(self.statements, self.benchmarks)
        self.assertEqual(result.data['base_year'], 2021)
        self.assertEqual(len(result.data['periods']), 2)
        revenue = result.data['periods'][-1]['changes']['revenue']
        self.assertAlmostEqual(revenue['pct_change'], 10.0, places=2)
        self.assertAlmostEqual(revenue['pct_change_from_base'], 21.0, places=2)
        self.assertEqual(result.data['summary']['trend'], 'increasing')

    def test_horizontal_needs_two_years(self):
        with self.assertRaises(InsufficientDataError):
            horizontal_analysis(self.statements[:1])

    def test_combined_analysis_has_no_shifts_for_proportional_growth(self):
        result = combined_analysis(self.statements, self.benchmarks)
        self.assertEqual(result.data['structural_shifts_pct_points'], {})
        self.assertAlmostEqual(result.data['revenue_cagr'], 10.0, places=2)

    def test_trend_needs_three_years(self):
        self.assertEqual(trend_analysis(self.statements).status, STATUS_SUCCESS)
        with self.assertRaises(InsufficientDataError):
            trend_analysis(self.statements[:2])

    def test_growth_rate_analysis(self):
        result = growth_rate_analysis(self.statements, self.benchmarks)
        self.assertAlmostEqual(result.value, 10.0, places=2)
        self.assertEqual(result.data['years'], 2)
        self.assertIsNotNone(result.data['sustainable_growth_rate'])

    def test_index_numbers(self):
        result = index_number_analysis(self.statements)
        self.assertEqual(result.data['indices']['2021']['revenue'], 100.0)
        self.assertAlmostEqual(result.value, 121.0, places=1)


class TestFinancialRatios(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.statement = self.statements[-1]
        self.previous = self.statements[-2]
        self.benchmarks = get_industry_benchmarks('general')

    def test_thirty_ratios_in_five_groups(self):
        self.assertEqual(len(RATIOS), 30)
        self.assertEqual({spec.group for spec in RATIOS}, set(GROUPS))
        self.assertEqual(len({spec.analysis_id for spec in RATIOS}), 30)

    def test_current_ratio(self):
        result = current_ratio_analysis(self.statements[0], self.benchmarks)
        self.assertAlmostEqual(result.value, 2.4, places=4)
        self.assertEqual(result.benchmark, 1.5)
        self.assertEqual(result.evaluation, Rating.EXCELLENT)
        self.assertEqual(result.data['competitive_position'], 'leader')
        self.assertEqual(result.data['peer_comparison']['rank'], 1)
        self.assertEqual(result.data['comparison'], 'above')
        self.assertEqual(len(result.recommendations), 1)

    def test_gross_margin(self):
        result = gross_margin_analysis(self.statement, self.benchmarks)
        self.assertAlmostEqual(result.value, 40.0, places=2)

    def test_market_ratio_needs_price(self):
        with self.assertRaises(InsufficientDataError):
            pe_ratio_analysis(make_statement(2023, share_price=0))

    def test_collection_days_need_revenue(self):
        statement = FinancialStatement(year=2023, accounts_receivable=100, accounts_payable=80, total_assets=500)
        with self.assertRaises(InsufficientDataError):
            days_sales_outstanding_analysis(statement)
        with self.assertRaises(InsufficientDataError):
            days_payables_outstanding_analysis(statement)

    def test_eps_benchmarked_against_prior_year(self):
        result = eps_analysis(self.statement, self.benchmarks, self.previous)
        self.assertEqual(result.data['benchmark_source'], 'prior_year')
        self.assertGreater(result.value, result.benchmark)

    def test_all_ratios_grouped(self):
        report = calculate_all_financial_ratios(self.statement, self.benchmarks, self.previous)
        self.assertTrue(set(report['groups']).issubset(GROUPS))
        total = sum(len(g['ratios']) for g in report['groups'].values()) + len(report['unavailable'])
        self.assertEqual(total, 30)
        self.assertIn('performance', report['groups']['liquidity']['summary'])

    def test_peer_ranking(self):
        self.assertEqual(compare_to_peers(5, [1, 2, 3])['rank'], 1)
        ranked = compare_to_peers(2, [1, 3], lower_is_better=True)
        self.assertEqual((ranked['rank'], ranked['total'], ranked['percentile']), (2, 3, 50.0))
        self.assertEqual(compare_to_peers(2, [])['total'], 1)

    def test_competitive_position(self):
        self.assertEqual(competitive_position(2.4, 1.5), 'leader')
        self.assertEqual(competitive_position(1.45, 1.5), 'average')
        self.assertEqual(competitive_position(60, 45, lower_is_better=True), 'lagging')
        self.assertEqual(competitive_position(1.0, None), 'unrated')


class TestFlowAnalysis(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.statement = self.statements[0]

    def test_basic_cash_flow(self):
        result = basic_cash_flow_analysis(self.statement)
        self.assertEqual(result.data['pattern'], 'mature')
        self.assertEqual(result.data['free_cash_flow'], 130)
        self.assertEqual(result.data['net_change_in_cash'], 40)
        self.assertAlmostEqual(result.data['quality_of_earnings'], 0.96, places=2)

    def test_cash_flow_requires_statement_of_cash_flows(self):
        with self.assertRaises(InsufficientDataError):
            basic_cash_flow_analysis(FinancialStatement(year=2023, revenue=10))

    def test_working_capital(self):
        result = working_capital_analysis(self.statements[1], self.statements[0])
        self.assertAlmostEqual(result.data['working_capital'], 385.0, places=2)
        self.assertAlmostEqual(result.data['change_from_previous'], 35.0, places=2)

    def test_cost_behaviour_approximation(self):
        behaviour = cost_behaviour(self.statement)
        self.assertEqual(behaviour['method'], 'approximation')
        self.assertEqual(behaviour['fixed_costs'], 300)
        self.assertEqual(behaviour['variable_ratio'], 0.6)

    def test_break_even(self):
        result = break_even_analysis(self.statement)
        self.assertEqual(result.data['break_even_revenue'], 750)
        self.assertEqual(result.data['break_even_pct_of_revenue'], 50.0)

    def test_break_even_units(self):
        result = break_even_analysis(self.statement, fixed_costs=400, variable_ratio=0.5, unit_price=10)
        self.assertEqual(result.data['break_even_revenue'], 800)
        self.assertEqual(result.data['break_even_units'], 80)

    def test_margin_of_safety(self):
        self.assertEqual(margin_of_safety_analysis(self.statement).value, 50.0)
        loss = margin_of_safety_analysis(self.statement, fixed_costs=1000, variable_ratio=0.5)
        self.assertLess(loss.value, 0)
        self.assertEqual(loss.evaluation, Rating.WEAK)

    def test_break_even_impossible(self):
        with self.assertRaises(InsufficientDataError):
            break_even_analysis(self.statement, fixed_costs=100, variable_ratio=1.2)


if __name__ == '__main__':
    unittest.main()
