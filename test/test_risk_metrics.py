import unittest
import pandas as pd
import numpy as np

from finclick.analysis.quantitative.risk_metrics import (
    sharpe_ratio, sortino_ratio, calmar_ratio, maximum_drawdown, omega_ratio,
    treynor_ratio, information_ratio, beta, comprehensive_risk_analysis, annualized_return
)


class TestRiskMetrics(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        dates = pd.date_range(start='2020-01-01', periods=250, freq='B')
        self.benchmark_returns = pd.Series(rng.normal(0.0005, 0.01, 250), index=dates)
        self.returns = 1.2 * self.benchmark_returns + pd.Series(rng.normal(0.0002, 0.005, 250), index=dates)

        self.consistent_returns = pd.Series([0.01] * 100)  # no dispersion, no downside

    def test_sharpe_ratio(self):
        # Zero standard deviation is handled, not divided by
        self.assertEqual(sharpe_ratio(self.consistent_returns), 0.0)
        self.assertIsInstance(sharpe_ratio(self.returns), float)

    def test_sortino_without_downside(self):
        self.assertIsNone(sortino_ratio(self.consistent_returns))
        self.assertIsInstance(sortino_ratio(pd.Series([0.1, -0.1, 0.1, -0.05])), float)

    def test_maximum_drawdown(self):
        # Wealth 1.1 -> 1.21 -> 1.089: a 10% fall from the peak
        result = maximum_drawdown(pd.Series([0.1, 0.1, -0.1]))
        self.assertAlmostEqual(result['max_drawdown'], -0.1, places=4)
        self.assertEqual(result['peak_index'], 1)
        self.assertEqual(result['trough_index'], 2)
        self.assertIsNone(result['recovery_index'])

    def test_drawdown_recovery(self):
        result = maximum_drawdown(pd.Series([0.1, -0.1, 0.2]))
        self.assertEqual(result['recovery_index'], 2)
        self.assertEqual(result['recovery_duration'], 1)

    def test_calmar_and_omega(self):
        self.assertIsNone(calmar_ratio(self.consistent_returns))
        self.assertIsNone(omega_ratio(self.consistent_returns))
        self.assertAlmostEqual(omega_ratio(pd.Series([0.02, -0.01])), 2.0)

    def test_beta_of_identical_series(self):
        result = beta(self.benchmark_returns, self.benchmark_returns)
        self.assertAlmostEqual(result['beta'], 1.0, places=4)
        self.assertAlmostEqual(result['alpha'], 0.0, places=4)
        self.assertAlmostEqual(result['r_squared'], 1.0, places=4)

    def test_beta_recovers_leverage(self):
        self.assertAlmostEqual(beta(self.returns, self.benchmark_returns)['beta'], 1.2, delta=0.1)

    def test_relative_ratios(self):
        self.assertIsInstance(treynor_ratio(self.returns, self.benchmark_returns), float)
        self.assertIsNone(information_ratio(self.benchmark_returns, self.benchmark_returns))

    def test_annualized_return(self):
        # 252 daily returns of 0 compound to nothing
        self.assertEqual(annualized_return(pd.Series([0.0] * 252)), 0.0)

    def test_comprehensive_risk_analysis(self):
        report = comprehensive_risk_analysis(self.returns, self.benchmark_returns)
        for key in ('sharpe_ratio', 'sortino_ratio', 'max_drawdown', 'volatility',
                    'beta_alpha', 'tracking_error'):
            self.assertIn(key, report)
        self.assertNotIn('drawdown_series', report['max_drawdown'])


if __name__ == '__main__':
    unittest.main()
