import unittest
import pandas as pd
import numpy as np

from finclick.analysis.quantitative.monte_carlo import (
    geometric_brownian_motion, monte_carlo_simulation, value_at_risk, expected_shortfall,
    historical_var, parametric_expected_shortfall
)


class TestMonteCarlo(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        self.returns = pd.Series(rng.normal(0.001, 0.02, 1000))
        self.current_price = 100.0

    def test_gbm_shape_and_start(self):
        paths = geometric_brownian_motion(100.0, 0.05, 0.2, T=1.0, dt=1 / 252, num_simulations=50)
        self.assertEqual(paths.shape, (50, 253))
        self.assertTrue(np.all(paths[:, 0] == 100.0))
        self.assertTrue(np.all(paths > 0))

    def test_gbm_is_seeded(self):
        a = geometric_brownian_motion(100.0, 0.05, 0.2, 1.0, 1 / 12, 20)
        b = geometric_brownian_motion(100.0, 0.05, 0.2, 1.0, 1 / 12, 20)
        np.testing.assert_array_equal(a, b)

    def test_monte_carlo_simulation(self):
        result = monte_carlo_simulation(
            current_price=self.current_price,
            historical_returns=self.returns,
            days_forward=10,
            num_simulations=200
        )
        self.assertIn('mean_final_price', result)
        self.assertGreater(result['mean_final_price'], 0)
        p = result['percentiles']
        self.assertLessEqual(p['p5'], p['p50'])
        self.assertLessEqual(p['p50'], p['p95'])
        self.assertEqual(len(result['mean_path']), 11)

    def test_value_at_risk_methods(self):
        for method in ('historical', 'parametric', 'student_t', 'cornish_fisher', 'monte_carlo'):
            var = value_at_risk(10000, self.returns, method=method)
            self.assertGreater(var['var_value'], 0, method)
            self.assertEqual(var['method'], method)

    def test_unknown_var_method(self):
        with self.assertRaises(ValueError):
            value_at_risk(10000, self.returns, method='astrology')

    def test_horizon_scaling(self):
        one_day = value_at_risk(10000, self.returns, time_horizon=1)['var_value']
        ten_day = value_at_risk(10000, self.returns, time_horizon=10)['var_value']
        self.assertAlmostEqual(ten_day / one_day, np.sqrt(10), delta=0.01)

    def test_expected_shortfall(self):
        es = expected_shortfall(self.returns)
        self.assertGreater(es, historical_var(self.returns))

        # Small samples keep at least the worst observation
        self.assertAlmostEqual(expected_shortfall(pd.Series([-0.05, -0.02, 0.01, 0.03, 0.04])), 0.05)

    def test_parametric_expected_shortfall_exceeds_var(self):
        var = value_at_risk(1.0, self.returns, method='parametric')['var_percentage'] / 100
        self.assertGreater(parametric_expected_shortfall(self.returns), var)


if __name__ == '__main__':
    unittest.main()
