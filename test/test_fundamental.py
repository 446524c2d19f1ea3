import unittest

from finclick.analysis.fundamental import (
    altman_z_score, calculate_current_ratio, calculate_debt_to_equity, calculate_roe, comprehensive_liquidity,
    comprehensive_solvency, esg_score_analysis, generate_swot_analysis, management_quality_indicators,
    moat_assessment, piotroski_f_score, swot_score
)
from finclick.analysis.fundamental import efficiency
from finclick.analysis.fundamental.valuation import dcf, ddm
from finclick.analysis.fundamental.valuation.ratios import calculate_pe_ratio
from finclick.data.statements import FinancialStatement

from sample_data import make_statement, make_statements


class TestRatios(unittest.TestCase):
    def setUp(self):
        self.st = make_statement(2023)

    def test_current_ratio(self):
        result = calculate_current_ratio(self.st)
        self.assertEqual(result['current_ratio'], 2.4)
        self.assertEqual(result['interpretation'], 'Good liquidity')

    def test_current_ratio_without_liabilities(self):
        result = calculate_current_ratio(make_statement(2023, accounts_payable=0, short_term_debt=0))
        self.assertIsNone(result['current_ratio'])

    def test_leverage_and_returns(self):
        self.assertEqual(calculate_debt_to_equity(self.st)['debt_to_equity'], 0.59)
        roe = calculate_roe(self.st)
        self.assertEqual(roe['roe'], 27.06)
        self.assertEqual(roe['interpretation'], 'Excellent return on equity')
        self.assertEqual(calculate_pe_ratio(self.st)['pe_ratio'], 10.87)

    def test_day_counts_without_revenue(self):
        st = FinancialStatement(year=2023, accounts_receivable=100, inventory=50, accounts_payable=80,
                                total_assets=500)
        self.assertIsNone(efficiency.calculate_receivables_turnover(st)['days_sales_outstanding'])
        self.assertIsNone(efficiency.calculate_inventory_turnover(st)['days_inventory_outstanding'])
        self.assertIsNone(efficiency.calculate_payables_turnover(st)['days_payables_outstanding'])
        self.assertIsNone(efficiency.calculate_operating_cycle(st)['operating_cycle'])
        self.assertIsNone(efficiency.calculate_cash_conversion_cycle(st)['cash_conversion_cycle'])

    def test_operating_cycle_without_inventory(self):
        # Service business: no stock, so the cycle is the collection period
        st = FinancialStatement(year=2023, revenue=1000, accounts_receivable=100, total_assets=500)
        self.assertEqual(efficiency.calculate_operating_cycle(st)['operating_cycle'], 36.5)

    def test_comprehensive_groups(self):
        self.assertEqual(set(comprehensive_liquidity(self.st)),
                         {'current_ratio', 'quick_ratio', 'cash_ratio', 'working_capital',
                          'operating_cash_flow_ratio'})
        self.assertIn('debt_service_coverage', comprehensive_solvency(self.st))


class TestScores(unittest.TestCase):
    def test_altman_public_model(self):
        result = altman_z_score(make_statement(2023))
        self.assertEqual(result['model'], 'public')
        self.assertEqual(result['zone'], 'safe')
        self.assertAlmostEqual(result['z_score'], 4.574, places=3)

    def test_piotroski(self):
        # Lower revenue a year earlier: net income 130 on the same asset base
        result = piotroski_f_score(make_statement(2023), make_statement(2022, revenue=1400))
        signals = result['signals']
        self.assertTrue(signals['improving_roa'])
        self.assertFalse(signals['cash_flow_exceeds_income'])
        self.assertFalse(signals['higher_current_ratio'])
        self.assertEqual(result['f_score'], 7)
        self.assertEqual(result['interpretation'], 'Average financial position')


class TestValuationModels(unittest.TestCase):
    def test_dcf_of_flat_perpetuity(self):
        result = dcf.dcf_valuation(0.10, cash_flows=[100, 100, 100], terminal_growth_rate=0.0,
                                   shares_outstanding=10)
        self.assertAlmostEqual(result['enterprise_value'], 1000.0, places=1)
        self.assertAlmostEqual(result['fair_value_per_share'], 100.0, places=2)
        self.assertEqual(result['terminal_method'], 'perpetuity_growth')

    def test_dcf_needs_flows(self):
        with self.assertRaises(ValueError):
            dcf.dcf_valuation(0.10)

    def test_sensitivity_grid(self):
        grid = dcf.sensitivity_analysis([100, 100, 100], 0.10, 0.0, shares_outstanding=10)
        self.assertEqual(len(grid['values']), 5)
        self.assertAlmostEqual(grid['values'][2][2], 100.0, places=2)
        self.assertGreater(grid['max'], grid['min'])

    def test_wacc(self):
        result = dcf.calculate_wacc(600, 400, 0.10, 0.05, tax_rate=0.2)
        self.assertAlmostEqual(result['wacc'], 0.076)

    def test_dividend_models(self):
        gordon = ddm.gordon_growth_model(2.0, 0.05, 0.10)
        self.assertAlmostEqual(gordon['fair_value'], 42.0)
        self.assertEqual(gordon['implied_dividend_yield'], 5.0)
        self.assertIsNone(ddm.gordon_growth_model(2.0, 0.12, 0.10)['fair_value'])
        self.assertAlmostEqual(ddm.h_model_ddm(2.0, 0.10, 0.04, 5, 0.10)['fair_value'], 44.6667, places=3)


class TestQualitative(unittest.TestCase):
    def test_esg_pillars(self):
        result = esg_score_analysis({'environmental': 80, 'social': {'labour': 50, 'community': 70},
                                     'governance': 40})
        self.assertEqual(result['scores'], {'environmental': 80.0, 'social': 60.0, 'governance': 40.0})
        self.assertEqual(result['overall_score'], 60.0)
        self.assertEqual(result['rating'], 'B - Good ESG')
        self.assertEqual(result['weakest_pillar'], 'governance')
        self.assertIsNone(esg_score_analysis({})['overall_score'])

    def test_wide_moat(self):
        statements = [make_statement(2021 + i, s, cost_of_goods_sold=600 * s, ppe=700 * s)
                      for i, s in enumerate((1.0, 1.2, 1.44))]
        result = moat_assessment(statements)
        self.assertEqual(result['moat_rating'], 'Wide Moat')
        self.assertTrue(result['factors']['high_margins']['present'])
        self.assertEqual(result['factors']['growth_capability']['revenue_cagr'], 20.0)

    def test_management_quality(self):
        result = management_quality_indicators(make_statements())
        self.assertEqual(result['quality_score'], 75.0)
        self.assertEqual(result['rating'], 'Good')
        self.assertEqual(result['indicators']['capital_allocation']['status'], 'Prudent')
        self.assertEqual(result['indicators']['consistency']['status'], 'Consistent')


class TestSwot(unittest.TestCase):
    metrics = {'net_margin': 15, 'roe': 20, 'current_ratio': 2.5, 'debt_to_equity': 2.5,
               'revenue_growth': -3, 'interest_coverage': 1.2}

    def test_quadrants(self):
        swot = generate_swot_analysis(self.metrics, {})
        self.assertEqual(len(swot['strengths']), 3)
        self.assertEqual(swot['weaknesses'], ['High debt levels (D/E: 2.50)', 'Declining revenue'])
        self.assertEqual(swot['opportunities'], [])
        self.assertEqual(len(swot['threats']), 4)
        self.assertEqual(swot['threats'][-1], 'Macroeconomic uncertainty')

    def test_arabic_labels(self):
        swot = generate_swot_analysis({'current_ratio': 0.8}, {}, language='ar')
        self.assertEqual(swot['weaknesses'], ['مخاوف محتملة بشأن السيولة'])

    def test_balance(self):
        balance = swot_score(generate_swot_analysis(self.metrics, {}))
        self.assertEqual(balance['net_score'], -3)
        self.assertEqual(balance['outlook'], 'Cautious')


if __name__ == '__main__':
    unittest.main()
