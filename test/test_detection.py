import unittest

import numpy as np
import pandas as pd
import pytest

from finclick.analysis.advanced.detection import (
    ai_fraud_detection_analysis, money_laundering_detection_analysis, market_manipulation_detection_analysis,
    advanced_bankruptcy_prediction_analysis, financial_crisis_prediction_analysis,
    realtime_anomaly_detection_analysis, volatility_prediction_analysis, early_warning_system_analysis,
    intelligent_behavioral_analysis, explainable_ai_analysis, benford_law_analysis, earnings_quality_analysis
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_statement, make_statements, make_returns


def make_peers(count: int = 8):
    return [make_statement(2023, 1.0 + 0.1 * i, revenue=1200 + 60 * i, retained_earnings=200 + 40 * i,
                           operating_cash_flow=150 + 25 * i)
            for i in range(count)]


class TestFraudAndLaundering(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()

    def test_fraud_composite_without_peers(self):
        result = ai_fraud_detection_analysis(self.statements[-1], self.statements[-2], self.statements)
        scores = result.data['detector_scores']
        # (278.3 - 266.2) / average assets of 1732.5
        self.assertEqual(scores['accruals'], 7.0)
        self.assertIn('benford', scores)
        self.assertNotIn('isolation_forest', scores)
        self.assertIn(result.data['risk_level'], ('low', 'elevated', 'high'))

    def test_fraud_uses_isolation_forest_with_peers(self):
        result = ai_fraud_detection_analysis(self.statements[-1], self.statements[-2], self.statements,
                                             peers=make_peers())
        self.assertIn('isolation_forest', result.data['detector_scores'])

    def test_structuring_is_flagged(self):
        transactions = [
            {'sender': 'S1', 'receiver': 'R1', 'amount': 9500},
            {'sender': 'S1', 'receiver': 'R2', 'amount': 9600},
            {'sender': 'S1', 'receiver': 'R3', 'amount': 9700},
            {'sender': 'S2', 'receiver': 'R1', 'amount': 1234.5},
            {'sender': 'S3', 'receiver': 'R2', 'amount': 2345.6},
            {'sender': 'S4', 'receiver': 'R3', 'amount': 3456.7},
            {'sender': 'S5', 'receiver': 'R1', 'amount': 12500.2},
        ]
        result = money_laundering_detection_analysis(transactions)
        self.assertEqual(result.data['structuring_accounts'], ['S1'])
        self.assertEqual(result.data['near_threshold_transactions'], 3)
        self.assertEqual(result.data['reportable_transactions'], 1)
        self.assertEqual(result.data['alerts'], ['structuring'])
        self.assertEqual(len(result.recommendations), 2)

    def test_clean_transactions(self):
        transactions = pd.DataFrame({'from': ['A', 'B', 'C', 'D', 'E'],
                                     'to': ['B', 'C', 'D', 'E', 'A'],
                                     'value': [120.5, 340.25, 75.1, 980.9, 45.3]})
        result = money_laundering_detection_analysis(transactions)
        self.assertEqual(result.data['alerts'], [])
        self.assertEqual(result.data['round_amount_share_pct'], 0.0)

    def test_laundering_needs_amounts(self):
        with self.assertRaises(InsufficientDataError):
            money_laundering_detection_analysis([{'sender': 'A', 'receiver': 'B'}] * 5)

    def test_pump_and_dump_episode(self):
        rng = np.random.default_rng(5)
        n = 100
        prices = 100 * (1 + rng.normal(0, 0.002, n))
        volumes = 1000 * (1 + rng.normal(0, 0.05, n))
        prices[60:65] = [105.0, 110.25, 115.76, 121.55, 127.63]
        prices[65:70] = [120.0, 110.0, 100.0, 100.0, 100.0]
        volumes[60:65] = 5000
        result = market_manipulation_detection_analysis(pd.Series(prices), pd.Series(volumes))
        episodes = result.data['pump_and_dump_episodes']
        self.assertEqual(len(episodes), 1)
        self.assertIn(episodes[0]['peak_index'], (63, 64))
        self.assertLess(episodes[0]['reversal_pct'], 0)
        self.assertEqual(result.data['screen_scores']['pump_and_dump'], 50.0)


class TestDistressSignals(unittest.TestCase):
    def test_bankruptcy_ensemble_on_healthy_company(self):
        statements = make_statements()
        result = advanced_bankruptcy_prediction_analysis(statements[-1], statements[-2])
        data = result.data
        self.assertIn('altman', data['probabilities'])
        self.assertLess(data['ensemble_probability'], 0.5)
        self.assertLessEqual(data['distress_votes'], data['models_voting'])
        self.assertTrue(1 <= data['models_voting'] <= 5)

    def test_crisis_prediction_is_stable_for_growing_company(self):
        result = financial_crisis_prediction_analysis(make_statements())
        self.assertEqual(result.data['crisis_index'], 0.0)
        self.assertEqual(result.data['level'], 'stable')
        # Market indicators need returns
        self.assertEqual(result.data['indicators_assessed'], 6)

    def test_crisis_prediction_signals(self):
        statements = [make_statement(2022), make_statement(2023, revenue=1200, operating_cash_flow=-40)]
        result = financial_crisis_prediction_analysis(statements)
        self.assertIn('revenue_growth', result.data['active_signals'])
        self.assertIn('operating_cash_flow_margin', result.data['active_signals'])
        self.assertGreater(result.data['crisis_index'], 15)

    def test_crisis_needs_two_years(self):
        with self.assertRaises(InsufficientDataError):
            financial_crisis_prediction_analysis([make_statement(2023)])

    def test_early_warning_green(self):
        statements = make_statements()
        result = early_warning_system_analysis(statements[-1], statements[-2])
        self.assertEqual(result.data['level'], 'green')
        self.assertEqual(result.data['breaches'], [])
        self.assertEqual(result.evaluation, Rating.EXCELLENT)

    def test_early_warning_red(self):
        # Interest of 400 turns a 300 operating profit into a loss
        result = early_warning_system_analysis(make_statement(2023, interest_expense=400, operating_cash_flow=-50))
        self.assertEqual(result.data['breaches'], ['interest_coverage', 'net_margin', 'operating_cash_flow'])
        self.assertEqual(result.data['warning_score'], 50.0)
        self.assertEqual(result.data['level'], 'red')
        self.assertIsNone(result.data['indicators']['revenue_growth']['breached'])

    def test_early_warning_custom_threshold(self):
        result = early_warning_system_analysis(make_statement(2023), thresholds={'current_ratio': 3.0})
        self.assertEqual(result.data['breaches'], ['current_ratio'])


class TestMarketSignals(unittest.TestCase):
    def test_realtime_spike(self):
        returns, _ = make_returns()
        returns = returns.copy()
        returns.iloc[-1] = 0.2
        result = realtime_anomaly_detection_analysis(returns)
        self.assertIn('return_spike', result.data['alerts'])
        self.assertIn(result.data['status'], ('warning', 'alert'))
        self.assertTrue(result.recommendations)

    def test_realtime_from_prices(self):
        returns, _ = make_returns()
        prices = 100 * (1 + returns).cumprod()
        result = realtime_anomaly_detection_analysis(prices=prices)
        self.assertEqual(result.data['observations'], len(prices) - 1)
        self.assertIn(result.data['status'], ('normal', 'warning', 'alert'))

    def test_volatility_prediction_short_sample(self):
        returns, _ = make_returns(n=80)
        result = volatility_prediction_analysis(returns)
        self.assertEqual(set(result.data['forecasts']), {'realised', 'ewma'})
        self.assertNotIn('garch', result.data)
        self.assertGreater(result.data['combined_forecast'], 0)

    @pytest.mark.slow
    def test_volatility_prediction_with_garch(self):
        returns, _ = make_returns(n=300)
        result = volatility_prediction_analysis(returns)
        self.assertIn('garch', result.data['forecasts'])


class TestStatementForensics(unittest.TestCase):
    def test_behavioural_biases(self):
        trades = [
            {'asset': 'X', 'side': 'buy', 'quantity': 10, 'price': 100},
            {'asset': 'X', 'side': 'buy', 'quantity': 10, 'price': 110},
            {'asset': 'X', 'side': 'sell', 'quantity': 20, 'price': 120},
            {'asset': 'Y', 'side': 'buy', 'quantity': 10, 'price': 50},
            {'asset': 'Y', 'side': 'buy', 'quantity': 5, 'price': 40},
        ]
        result = intelligent_behavioral_analysis(trades)
        data = result.data
        self.assertEqual(data['realised_gains'], 1)
        self.assertEqual(data['paper_losses'], 1)
        self.assertEqual(data['round_trips'], 1)
        self.assertEqual(data['disposition_effect'], 1.0)
        self.assertEqual(data['trend_chasing_share'], 0.5)
        self.assertIsNone(data['trades_per_month'])
        self.assertEqual(data['bias_index'], 50.0)
        self.assertEqual(data['dominant_bias'], 'disposition_effect')

    def test_behavioural_needs_buys(self):
        trades = [{'asset': 'X', 'side': 'sell', 'quantity': 1, 'price': 10}] * 5
        with self.assertRaises(InsufficientDataError):
            intelligent_behavioral_analysis(trades)

    def test_explainable_model(self):
        result = explainable_ai_analysis(make_statements(), peers=make_peers(5), n_repeats=3)
        data = result.data
        self.assertEqual(data['samples'], 8)
        self.assertEqual(data['target'], 'altman_z_score')
        self.assertEqual(set(data['local_contributions']), set(data['features']))
        self.assertEqual(set(data['global_importance']), set(data['features']))

    def test_explainable_needs_six_statements(self):
        with self.assertRaises(InsufficientDataError):
            explainable_ai_analysis(make_statements())

    def test_benford_conformity(self):
        rng = np.random.default_rng(0)
        amounts = list(10 ** rng.uniform(0, 5, 20000))
        result = benford_law_analysis(make_statements(), amounts=amounts)
        self.assertGreaterEqual(result.data['sample_size'], 20000)
        self.assertIn(result.data['conformity'], ('close', 'acceptable'))
        self.assertIsInstance(result.data['largest_deviation_digit'], int)
        self.assertIn(result.data['largest_deviation_digit'], range(1, 10))

    def test_benford_needs_enough_amounts(self):
        with self.assertRaises(InsufficientDataError):
            benford_law_analysis([make_statement(2023)], min_count=500)

    def test_earnings_quality(self):
        result = earnings_quality_analysis(make_statements())
        data = result.data
        # Operating cash flow is 220/230 of net income every year
        self.assertAlmostEqual(data['cash_conversion'], 0.9565, places=3)
        self.assertIsNone(data['persistence'])
        self.assertAlmostEqual(data['average_accrual_ratio'], 0.007, places=3)
        self.assertGreater(data['quality_score'], 80)
        self.assertEqual(result.recommendations, [])


if __name__ == '__main__':
    unittest.main()
