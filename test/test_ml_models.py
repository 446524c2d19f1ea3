import unittest
import pandas as pd
import numpy as np
from sklearn.linear_model import LinearRegression

from finclick.analysis.quantitative.ml_models import (
    pca_analysis, kmeans_clustering, regime_detection,
    feature_importance_analysis, lag_matrix
)
from finclick.core.exceptions import InsufficientDataError


class TestMLModels(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(42)
        dates = pd.date_range(start='2020-01-01', periods=100)
        base = rng.normal(0.001, 0.02, 100)
        self.returns = pd.DataFrame({
            'StockA': base,
            'StockB': base + 0.5 * rng.normal(0.001, 0.02, 100),  # Correlated
            'StockC': rng.normal(0.0005, 0.01, 100),
            'StockD': rng.normal(0.002, 0.03, 100)
        }, index=dates)

        # Two well separated groups of companies
        self.companies = pd.DataFrame({
            'margin': [0.30, 0.32, 0.31, 0.29, 0.05, 0.04, 0.06, 0.05],
            'leverage': [0.2, 0.25, 0.22, 0.18, 0.8, 0.85, 0.9, 0.82]
        }, index=list('ABCDEFGH'))

    def test_pca_analysis(self):
        res = pca_analysis(self.returns, n_components=2)
        self.assertEqual(res['n_components'], 2)
        self.assertEqual(len(res['explained_variance_ratio']), 2)
        self.assertGreaterEqual(res['explained_variance_ratio'][0], res['explained_variance_ratio'][1])
        self.assertIn('StockA', res['loadings']['PC1'])
        self.assertEqual(len(res['scores']), 100)

    def test_pca_needs_two_columns(self):
        with self.assertRaises(InsufficientDataError):
            pca_analysis(self.returns[['StockA']])

    def test_kmeans_finds_two_groups(self):
        res = kmeans_clustering(self.companies)
        self.assertEqual(res['n_clusters'], 2)
        labels = res['labels']
        self.assertEqual(labels['A'], labels['D'])
        self.assertNotEqual(labels['A'], labels['E'])
        self.assertEqual(sum(p['count'] for p in res['profiles'].values()), 8)

    def test_kmeans_needs_rows(self):
        with self.assertRaises(InsufficientDataError):
            kmeans_clustering(self.companies.head(3))

    def test_regime_detection(self):
        res = regime_detection(self.returns['StockA'])
        self.assertIn(res['current_regime'], [
            'Bull High Volatility', 'Bull Low Volatility',
            'Bear High Volatility', 'Bear Low Volatility'
        ])
        self.assertEqual(len(res['regime_history']), 5)
        self.assertAlmostEqual(sum(res['regime_shares'].values()), 100.0, delta=0.5)

    def test_feature_importance_analysis(self):
        X = self.returns[['StockA', 'StockC']]
        y = 3 * X['StockA'] + 0.01 * X['StockC']
        model = LinearRegression().fit(X, y)
        importance = feature_importance_analysis(model, X, y, n_repeats=5)
        self.assertEqual(list(importance.keys())[0], 'StockA')

    def test_lag_matrix(self):
        X, y = lag_matrix(pd.Series(range(10)), 3)
        self.assertEqual(X.shape, (7, 3))
        self.assertEqual(list(X[0]), [0, 1, 2])
        self.assertEqual(y[0], 3)
        with self.assertRaises(InsufficientDataError):
            lag_matrix(pd.Series(range(4)), 3)


if __name__ == '__main__':
    unittest.main()
