import unittest

import numpy as np
import pandas as pd

from finclick.analysis.advanced.market_risk import (
    ewma_historical_var, component_var, value_at_risk_analysis, expected_shortfall_analysis,
    stress_testing_analysis, catastrophic_scenario_analysis, market_risk_analysis,
    backtesting_validation_analysis, HISTORICAL_SCENARIOS
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError
from finclick.data.market import Portfolio

from sample_data import make_asset_returns, make_returns, make_statement


class TestValueAtRisk(unittest.TestCase):
    def setUp(self):
        self.returns, self.benchmark = make_returns()
        self.portfolio = Portfolio(asset_returns=make_asset_returns(), weights=[0.5, 0.3, 0.2], value=2_000_000)

    def test_every_method_reported(self):
        result = value_at_risk_analysis(self.returns, horizon=1, portfolio_value=1_000_000)
        methods = result.data['methods']
        self.assertEqual(set(methods), {'historical', 'parametric_normal', 'parametric_student_t',
                                        'cornish_fisher', 'ewma_historical', 'monte_carlo'})
        for estimate in methods.values():
            self.assertGreater(estimate['var_pct'], 0)
        self.assertEqual(result.data['horizon_scaling']['1d'], methods['historical']['var_pct'])
        self.assertIsNotNone(result.data['backtest'])

    def test_component_var_adds_up(self):
        components = component_var(self.portfolio)
        self.assertAlmostEqual(sum(components['components_pct'].values()), components['portfolio_var_pct'], delta=0.01)
        self.assertLessEqual(components['portfolio_var_pct'], components['undiversified_var_pct'])

    def test_portfolio_var_uses_portfolio_value(self):
        result = value_at_risk_analysis(portfolio=self.portfolio)
        self.assertEqual(result.data['portfolio_value'], 2_000_000)
        self.assertIsNotNone(result.data['component_var'])

    def test_needs_returns(self):
        with self.assertRaises(InsufficientDataError):
            value_at_risk_analysis()
        with self.assertRaises(InsufficientDataError):
            value_at_risk_analysis(self.returns[:10])

    def test_recent_losses_weigh_more(self):
        calm_then_crash = pd.Series(np.r_[np.full(200, 0.001), np.linspace(-0.05, -0.01, 20)])
        crash_then_calm = calm_then_crash[::-1].reset_index(drop=True)
        self.assertGreater(ewma_historical_var(calm_then_crash), ewma_historical_var(crash_then_calm))

    def test_expected_shortfall_exceeds_var(self):
        result = expected_shortfall_analysis(self.returns)
        self.assertGreaterEqual(result.data['es_historical_pct'], result.data['var_pct'])
        self.assertGreater(result.data['tail_observations'], 0)


class TestStressTesting(unittest.TestCase):
    def setUp(self):
        self.returns, self.benchmark = make_returns()

    def test_shocks_scale_with_beta(self):
        result = stress_testing_analysis(self.returns, self.benchmark)
        beta = result.data['beta_used']
        self.assertAlmostEqual(beta, 1.1, delta=0.1)
        crisis = result.data['historical_scenarios']['financial_crisis_2008']
        self.assertAlmostEqual(crisis['portfolio_change_pct'],
                               round(beta * HISTORICAL_SCENARIOS['financial_crisis_2008'] * 100, 2), delta=0.02)
        self.assertEqual(result.data['worst_scenario'], 'financial_crisis_2008')
        self.assertAlmostEqual(result.data['reverse_stress']['market_shock_to_break_pct'], -25 / beta, delta=0.05)

    def test_custom_shock_and_balance_sheet(self):
        statement = make_statement(2023, marketable_securities=200)
        result = stress_testing_analysis(self.returns, shocks={'sector_collapse': -0.6}, statement=statement)
        self.assertEqual(result.data['beta_used'], 1.0)
        self.assertEqual(result.data['worst_scenario'], 'sector_collapse')
        self.assertEqual(result.data['balance_sheet_impact']['worst_case_loss'], -120.0)

    def test_catastrophic_tails_are_ordered(self):
        result = catastrophic_scenario_analysis(self.returns)
        tails = result.data['tail_losses_pct']
        self.assertLess(tails['1_in_100'], tails['1_in_1000'])
        self.assertLess(tails['1_in_1000'], tails['1_in_10000'])

    def test_catastrophic_survival(self):
        result = catastrophic_scenario_analysis(statement=make_statement(2023))
        survival = result.data['survival']
        self.assertEqual(survival['liquid_assets'], 150.0)
        self.assertGreater(survival['monthly_cash_deficit'], 0)
        self.assertIsNotNone(result.evaluation)

    def test_catastrophic_needs_inputs(self):
        with self.assertRaises(InsufficientDataError):
            catastrophic_scenario_analysis()


class TestMarketRiskSensitivities(unittest.TestCase):
    def setUp(self):
        self.returns, self.benchmark = make_returns()

    def test_duration_and_currency(self):
        result = market_risk_analysis(self.returns, self.benchmark, statement=make_statement(2023),
                                      duration=5.0, fx_exposure=0.4)
        self.assertEqual(result.data['interest_rate']['price_change_pct'], -5.0)
        self.assertLess(result.data['interest_rate']['net_income_impact'], 0)
        self.assertEqual(result.data['currency']['revenue_impact'], -60.0)
        self.assertEqual(result.data['currency']['operating_income_impact'], -12.0)
        self.assertIn('beta', result.data['equity'])

    def test_backtesting_validation(self):
        result = backtesting_validation_analysis(self.returns)
        self.assertIn('historical', result.data)
        self.assertIn('parametric_normal', result.data)
        self.assertIn(result.evaluation, (Rating.GOOD, Rating.ACCEPTABLE, Rating.WEAK))

    def test_backtesting_needs_history(self):
        with self.assertRaises(InsufficientDataError):
            backtesting_validation_analysis(self.returns[:30])


if __name__ == '__main__':
    unittest.main()
