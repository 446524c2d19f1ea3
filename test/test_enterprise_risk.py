import unittest

from finclick.analysis.advanced.enterprise_risk import (
    altman_default_probability, operational_risk_analysis, credit_risk_analysis, liquidity_risk_analysis,
    cyber_risk_analysis, geopolitical_risk_analysis, environmental_climate_risk_analysis, merton_model,
    icaap_ilaap_analysis, basel_iii_analysis
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_statement, make_statements


class TestCreditRisk(unittest.TestCase):
    def setUp(self):
        self.statement = make_statement(2023)

    def test_altman_pd_calibration(self):
        self.assertAlmostEqual(altman_default_probability(1.81, 'public'), 0.15, places=6)
        self.assertAlmostEqual(altman_default_probability(2.99, 'public'), 0.01, places=6)
        self.assertLess(altman_default_probability(5.0, 'public'), 0.01)

    def test_expected_loss(self):
        result = credit_risk_analysis(self.statement)
        data = result.data
        self.assertEqual(data['ead'], 500.0)
        self.assertEqual(data['lgd_pct'], 45.0)
        self.assertAlmostEqual(data['expected_loss'], data['pd_pct'] / 100 * 0.45 * 500, delta=0.01)
        self.assertAlmostEqual(data['risk_weighted_assets'], data['irb_capital'] * 12.5, delta=0.1)

    def test_collateral_reduces_lgd(self):
        result = credit_risk_analysis(self.statement, collateral=250)
        self.assertEqual(result.data['lgd_pct'], 22.5)

    def test_merton_solution(self):
        result = merton_model(equity_value=100, equity_volatility=0.4, debt=100, risk_free_rate=0.05)
        self.assertTrue(result['converged'])
        self.assertGreater(result['asset_value'], 100)
        self.assertLess(result['asset_volatility'], 0.4)
        self.assertGreater(result['distance_to_default'], 0)
        self.assertLess(result['default_probability'], 0.5)


class TestOperationalAndLiquidity(unittest.TestCase):
    def test_basic_indicator_approach(self):
        statements = make_statements()
        result = operational_risk_analysis(statements[-1], statements)
        # 15% of average gross income (600, 660, 726)
        self.assertAlmostEqual(result.data['basic_indicator']['capital'], 99.3, places=2)
        self.assertNotIn('loss_distribution', result.data)

    def test_standardised_approach(self):
        result = operational_risk_analysis(make_statement(2023), business_lines={'retail_banking': 1000,
                                                                                 'trading_and_sales': 500})
        self.assertEqual(result.data['standardised']['capital'], 210.0)

    def test_loss_distribution_approach(self):
        losses = [5, 12, 8, 30, 4, 9, 15, 7]
        result = operational_risk_analysis(make_statement(2023), loss_events=losses, observation_years=4,
                                           simulations=5000)
        lda = result.data['loss_distribution']
        self.assertEqual(lda['frequency_per_year'], 2.0)
        self.assertGreater(lda['op_var'], lda['expected_annual_loss'])

    def test_cash_runway(self):
        result = liquidity_risk_analysis(make_statement(2023, operating_cash_flow=-120))
        self.assertEqual(result.data['current_ratio'], 2.4)
        self.assertEqual(result.data['quick_ratio'], 1.4)
        self.assertEqual(result.data['cash_runway_months'], 15.0)
        self.assertEqual(result.data['funding_gap'], 0.0)

    def test_liquidity_needs_current_liabilities(self):
        with self.assertRaises(InsufficientDataError):
            liquidity_risk_analysis(make_statement(2023, accounts_payable=0, short_term_debt=0))


class TestScoredRisks(unittest.TestCase):
    def test_cyber_index(self):
        result = cyber_risk_analysis({'control_gaps': 80, 'incident_history': 40})
        self.assertEqual(result.data['risk_index'], 60.0)
        self.assertEqual(result.data['risk_level'], 'high')
        self.assertEqual(result.data['highest_risks'], ['control_gaps'])
        self.assertEqual(len(result.data['unassessed_factors']), 3)

    def test_cyber_needs_scores(self):
        with self.assertRaises(InsufficientDataError):
            cyber_risk_analysis({})

    def test_geopolitical_exposure(self):
        result = geopolitical_risk_analysis({'home': {'share': 60, 'risk': 20},
                                             'frontier': {'share': 40, 'risk': 80}},
                                            statement=make_statement(2023))
        self.assertEqual(result.data['risk_index'], 44.0)
        self.assertEqual(result.data['risk_level'], 'moderate')
        self.assertEqual(result.data['exposure_hhi'], 0.52)
        self.assertEqual(result.data['revenue_at_risk'], 600.0)

    def test_carbon_price_stress(self):
        result = environmental_climate_risk_analysis(make_statement(2023), emissions=3000)
        # 3000 t over revenue of 1500 (0.0015 million) is a very high intensity
        self.assertEqual(result.data['carbon_price_stress']['200']['carbon_cost'], 600000.0)
        self.assertEqual(result.evaluation, Rating.WEAK)


class TestBankCapital(unittest.TestCase):
    def setUp(self):
        self.bank = {'cet1': 80, 'additional_tier1': 10, 'tier2': 20, 'rwa': 1000, 'exposure': 2000,
                     'hqla': 150, 'net_outflows': 100, 'available_stable_funding': 120,
                     'required_stable_funding': 100}

    def test_compliant_bank(self):
        result = basel_iii_analysis(self.bank)
        self.assertEqual(result.data['breaches'], [])
        self.assertEqual(result.data['ratios']['cet1_ratio']['value'], 8.0)
        self.assertEqual(result.data['ratios']['leverage_ratio']['value'], 4.5)
        self.assertEqual(result.data['estimated_inputs'], [])

    def test_undercapitalised_bank(self):
        self.bank['cet1'] = 60
        result = basel_iii_analysis(self.bank)
        self.assertEqual(result.data['breaches'], ['cet1_ratio', 'tier1_ratio', 'total_capital_ratio'])
        self.assertEqual(result.data['capital_shortfall'], 15.0)
        self.assertEqual(result.evaluation, Rating.WEAK)

    def test_estimates_from_statement(self):
        result = basel_iii_analysis(statement=make_statement(2023))
        self.assertIn('rwa', result.data['estimated_inputs'])
        self.assertIn('cet1', result.data['estimated_inputs'])

    def test_icaap_coverage(self):
        result = icaap_ilaap_analysis(make_statement(2023))
        # Required: 8% of 1250 RWA + 15% of 600 gross income + 3% of 1500 assets = 235
        self.assertEqual(result.data['capital_required'], 235.0)
        self.assertEqual(result.data['capital_available'], 750.0)
        self.assertAlmostEqual(result.value, 3.1915, places=4)


if __name__ == '__main__':
    unittest.main()
