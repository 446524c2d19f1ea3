import unittest
import pandas as pd
import numpy as np

from finclick.analysis.quantitative.backtesting import (
    VaRBacktest, count_exceptions, kupiec_test, christoffersen_test,
    traffic_light_zone, backtest_var
)
from finclick.core.exceptions import InsufficientDataError


class TestVaRBacktesting(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        self.returns = pd.Series(rng.normal(0, 0.01, 600))

    def test_count_exceptions(self):
        bt = count_exceptions(pd.Series([0.01, -0.03, -0.01, -0.05]), 0.02)
        self.assertEqual(bt.exceptions, 2)
        self.assertEqual(bt.exception_indices, [1, 3])
        self.assertAlmostEqual(bt.exception_rate, 0.5)
        self.assertAlmostEqual(bt.expected_exceptions, 4 * 0.05)

    def test_kupiec_accepts_calibrated_model(self):
        bt = VaRBacktest(observations=250, exceptions=12, expected_rate=0.05)
        self.assertFalse(kupiec_test(bt)['reject_model'])

    def test_kupiec_rejects_too_many_exceptions(self):
        bt = VaRBacktest(observations=250, exceptions=40, expected_rate=0.05)
        self.assertTrue(kupiec_test(bt)['reject_model'])

    def test_kupiec_needs_observations(self):
        with self.assertRaises(InsufficientDataError):
            kupiec_test(VaRBacktest(observations=0, exceptions=0, expected_rate=0.05))

    def test_christoffersen_detects_clustering(self):
        bt = VaRBacktest(observations=200, exceptions=10, expected_rate=0.05,
                         exception_indices=list(range(100, 110)))
        result = christoffersen_test(bt)
        self.assertEqual(result['clustered_exceptions'], 9)
        self.assertTrue(result['reject_independence'])

    def test_traffic_light(self):
        self.assertEqual(traffic_light_zone(VaRBacktest(250, 2, 0.01)), 'green')
        self.assertEqual(traffic_light_zone(VaRBacktest(250, 7, 0.01)), 'yellow')
        self.assertEqual(traffic_light_zone(VaRBacktest(250, 15, 0.01)), 'red')

    def test_rolling_backtest(self):
        result = backtest_var(self.returns, window=250)
        self.assertEqual(result['observations'], 350)
        self.assertIn(result['traffic_light'], ('green', 'yellow', 'red'))
        self.assertIn('p_value', result['kupiec'])

    def test_rolling_backtest_too_short(self):
        with self.assertRaises(InsufficientDataError):
            backtest_var(self.returns[:40], window=250)


if __name__ == '__main__':
    unittest.main()
