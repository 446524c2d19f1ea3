import unittest
import pandas as pd
import numpy as np

from finclick.analysis.quantitative.portfolio_optimization import (
    mean_variance_optimization, min_variance_portfolio, risk_parity, risk_contributions,
    diversification_ratio, kelly_criterion, black_litterman_returns, portfolio_rebalance_signals
)


class TestPortfolioOptimization(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        n = 500
        self.returns = pd.DataFrame({
            'A': rng.normal(0.0008, 0.010, n),
            'B': rng.normal(0.0005, 0.020, n),
            'C': rng.normal(0.0003, 0.005, n),
        })

    def test_mean_variance_optimization(self):
        result = mean_variance_optimization(self.returns, frontier_points=5)
        weights = result['max_sharpe_portfolio']['weights']
        self.assertAlmostEqual(sum(weights.values()), 1.0, places=3)
        self.assertTrue(all(w >= -1e-6 for w in weights.values()))
        self.assertEqual(len(result['efficient_frontier']), 5)
        self.assertEqual(result['assets'], ['A', 'B', 'C'])

    def test_min_variance_prefers_low_volatility(self):
        weights = min_variance_portfolio(self.returns)['weights']
        self.assertGreater(weights['C'], weights['B'])

    def test_unconstrained_min_variance_is_fully_invested(self):
        weights = min_variance_portfolio(self.returns, long_only=False)['weights']
        self.assertAlmostEqual(sum(weights.values()), 1.0, places=3)

    def test_risk_parity_equalises_contributions(self):
        result = risk_parity(self.returns)
        contributions = list(result['risk_contribution'].values())
        self.assertAlmostEqual(sum(contributions), 100.0, delta=0.1)
        self.assertLess(max(contributions) - min(contributions), 2.0)

    def test_risk_contributions_sum_to_one(self):
        cov = self.returns.cov().values
        w = np.array([0.5, 0.3, 0.2])
        self.assertAlmostEqual(risk_contributions(w, cov).sum(), 1.0)
        self.assertGreaterEqual(diversification_ratio(w, cov), 1.0)

    def test_kelly_criterion(self):
        result = kelly_criterion(0.6, 1.0, 1.0)
        self.assertAlmostEqual(result['kelly_percentage'], 20.0)
        self.assertIsNone(kelly_criterion(0.6, 1.0, 0)['kelly_percentage'])

    def test_black_litterman_without_views(self):
        cov = self.returns.cov() * 252
        weights = {'A': 0.5, 'B': 0.3, 'C': 0.2}
        equilibrium = black_litterman_returns(weights, [], cov)
        tilted = black_litterman_returns(weights, [{'asset': 'A', 'view': 25, 'confidence': 0.9}], cov)
        self.assertGreater(tilted['A'], equilibrium['A'])

    def test_rebalance_signals(self):
        result = portfolio_rebalance_signals({'A': 0.7, 'B': 0.3}, {'A': 0.5, 'B': 0.5})
        self.assertTrue(result['needs_rebalance'])
        self.assertTrue(result['actions']['A'].startswith('REDUCE'))
        self.assertTrue(result['actions']['B'].startswith('ADD'))


if __name__ == '__main__':
    unittest.main()
