import unittest

import numpy as np
import pandas as pd

from finclick.analysis.advanced.portfolio import (
    modern_portfolio_theory_analysis, capm_analysis, apt_analysis, fama_french_analysis,
    systematic_risk_analysis, abnormal_returns_analysis, concentration_analysis,
    dynamic_correlation_analysis, risk_parity_analysis, drawdown_analysis
)
from finclick.core.exceptions import InsufficientDataError
from finclick.data.market import Portfolio

from sample_data import make_asset_returns, make_returns


class TestPortfolioAnalyses(unittest.TestCase):
    def setUp(self):
        self.portfolio = Portfolio(asset_returns=make_asset_returns(), weights=[50, 30, 20])

    def test_modern_portfolio_theory(self):
        result = modern_portfolio_theory_analysis(self.portfolio, frontier_points=5)
        current = result.data['current']['weights']
        self.assertEqual(current, {'AAA': 0.5, 'BBB': 0.3, 'CCC': 0.2})
        self.assertEqual(len(result.data['efficient_frontier']), 5)
        self.assertLessEqual(result.value, result.benchmark + 1e-3)
        self.assertGreaterEqual(result.data['diversification_ratio'], 1.0)

    def test_portfolio_from_dict(self):
        result = concentration_analysis({'asset_returns': make_asset_returns().to_dict('list'),
                                         'weights': [1, 1, 1]})
        self.assertAlmostEqual(result.data['effective_positions'], 3.0)
        self.assertEqual(result.data['normalised_hhi'], 0.0)

    def test_concentration(self):
        result = concentration_analysis(self.portfolio)
        self.assertEqual(result.data['hhi'], 0.38)
        self.assertEqual(result.data['top_weight_pct'], 50.0)
        self.assertAlmostEqual(sum(result.data['risk_contribution_pct'].values()), 100.0, delta=0.05)

    def test_single_asset_rejected(self):
        with self.assertRaises(InsufficientDataError):
            concentration_analysis(Portfolio(asset_returns=make_asset_returns()[['AAA']]))

    def test_risk_parity(self):
        result = risk_parity_analysis(self.portfolio)
        contributions = result.data['risk_parity_portfolio']['risk_contribution']
        self.assertLess(max(contributions.values()) - min(contributions.values()), 2.0)
        self.assertGreater(result.data['risk_budget_deviation_pct'], 0)

    def test_dynamic_correlation(self):
        result = dynamic_correlation_analysis(asset_returns=make_asset_returns())
        self.assertEqual(set(result.data['pairs']), {'AAA/BBB', 'AAA/CCC', 'BBB/CCC'})
        # AAA and BBB share a common factor, CCC does not
        self.assertGreater(result.data['pairs']['AAA/BBB']['full_sample'],
                           result.data['pairs']['AAA/CCC']['full_sample'])
        self.assertIn(result.data['regime'], ('rising', 'falling', 'stable'))


class TestAssetPricing(unittest.TestCase):
    def setUp(self):
        self.returns, self.benchmark = make_returns()

    def test_capm(self):
        result = capm_analysis(self.returns, self.benchmark)
        self.assertAlmostEqual(result.data['beta'], 1.1, delta=0.1)
        self.assertEqual(result.data['risk_profile'], 'neutral')
        self.assertIn(result.data['sml_position'], ('above', 'below'))

    def test_capm_needs_aligned_history(self):
        with self.assertRaises(InsufficientDataError):
            capm_analysis(self.returns[:20], self.benchmark[:20])

    def test_apt_recovers_loadings(self):
        rng = np.random.default_rng(5)
        factors = pd.DataFrame({'market': self.benchmark.values,
                                'inflation': rng.normal(0, 0.004, len(self.benchmark))},
                               index=self.benchmark.index)
        returns = 0.9 * factors['market'] + 0.5 * factors['inflation'] + rng.normal(0, 0.002, len(factors))
        result = apt_analysis(returns, factors)
        self.assertAlmostEqual(result.data['loadings']['market'], 0.9, delta=0.05)
        self.assertAlmostEqual(result.data['loadings']['inflation'], 0.5, delta=0.1)
        self.assertEqual(sorted(result.data['significant_factors']), ['inflation', 'market'])

    def test_fama_french_tilts(self):
        rng = np.random.default_rng(9)
        n = len(self.benchmark)
        factors = pd.DataFrame({'Mkt-RF': self.benchmark.values, 'SMB': rng.normal(0, 0.005, n),
                                'HML': rng.normal(0, 0.005, n)}, index=self.benchmark.index)
        returns = factors['Mkt-RF'] + 0.6 * factors['SMB'] + rng.normal(0, 0.003, n)
        result = fama_french_analysis(returns, factors)
        self.assertEqual(result.data['model'], '3-factor')
        self.assertEqual(result.data['tilts']['size'], 'small_cap')
        self.assertEqual(result.data['tilts']['style'], 'blend')

    def test_fama_french_needs_factors(self):
        factors = pd.DataFrame({'A': self.benchmark.values, 'B': self.benchmark.values, 'C': self.benchmark.values},
                               index=self.benchmark.index)
        with self.assertRaises(InsufficientDataError):
            fama_french_analysis(self.returns, factors)

    def test_systematic_risk(self):
        result = systematic_risk_analysis(self.returns, self.benchmark)
        self.assertAlmostEqual(result.value, 1.1, delta=0.1)
        self.assertGreater(result.data['systematic_share_pct'], 50)
        self.assertEqual(result.data['rolling_beta']['window'], 60)

    def test_event_study(self):
        shocked = self.returns.copy()
        shocked.iloc[200] += 0.12
        result = abnormal_returns_analysis(shocked, self.benchmark, event_index=200)
        event = result.data['event_study']
        self.assertEqual(event['event_window'], [195, 205])
        self.assertEqual(len(event['abnormal_returns']), 11)
        self.assertGreater(event['car_total_pct'], 6)
        self.assertTrue(event['significant'])

    def test_drawdown(self):
        result = drawdown_analysis(self.returns)
        self.assertLessEqual(result.value, 0)
        self.assertLessEqual(len(result.data['worst_episodes']), 3)
        self.assertIsNotNone(result.evaluation)


if __name__ == '__main__':
    unittest.main()
