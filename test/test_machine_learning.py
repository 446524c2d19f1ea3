import unittest

import numpy as np
import pandas as pd
import pytest

from finclick import config
from finclick.analysis.advanced.machine_learning import (
    neural_network_forecast_analysis, lstm_time_series_analysis, random_forest_credit_analysis,
    gradient_boosting_forecast_analysis, clustering_classification_analysis, autoencoder_anomaly_analysis,
    ai_sentiment_analysis, blockchain_analytics_analysis
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_statement, make_statements, make_prices, make_asset_returns


class TestForecastModels(unittest.TestCase):
    def setUp(self):
        self.prices = make_prices()

    @pytest.mark.slow
    def test_neural_network_forecast(self):
        result = neural_network_forecast_analysis(self.prices)
        self.assertEqual(len(result.data['forecast']), config.FORECAST_HORIZON)
        self.assertEqual(result.data['target'], 'prices')
        self.assertIn('beats_naive', result.data)

    @pytest.mark.slow
    def test_lstm_forecast(self):
        result = lstm_time_series_analysis(self.prices)
        self.assertEqual(len(result.data['forecast']), config.FORECAST_HORIZON)
        self.assertIn('beats_naive', result.data)

    @pytest.mark.slow
    def test_gradient_boosting_forecast(self):
        result = gradient_boosting_forecast_analysis(returns=self.prices.pct_change().dropna())
        importance = result.data['feature_importance']
        self.assertEqual(len(importance), 8)
        self.assertAlmostEqual(sum(importance.values()), 1.0, places=2)
        self.assertEqual(result.data['target'], 'returns')

    def test_forecast_needs_history(self):
        with self.assertRaises(InsufficientDataError):
            neural_network_forecast_analysis(self.prices.iloc[:20])


class TestClassification(unittest.TestCase):
    def test_credit_forest_on_observed_defaults(self):
        rng = np.random.default_rng(4)
        good = pd.DataFrame({'current_ratio': rng.uniform(1.5, 3.0, 12),
                             'debt_to_equity': rng.uniform(0.2, 1.0, 12), 'default': 0})
        bad = pd.DataFrame({'current_ratio': rng.uniform(0.5, 0.9, 8),
                            'debt_to_equity': rng.uniform(2.0, 4.0, 8), 'default': 1})
        result = random_forest_credit_analysis(make_statement(2023), credit_data=pd.concat([good, bad]))
        data = result.data
        self.assertEqual(data['label_source'], 'observed defaults')
        self.assertEqual(data['training_rows'], 20)
        self.assertEqual(data['bad_share'], 0.4)
        self.assertLess(data['default_probability'], 0.3)
        self.assertIsNotNone(data['cv_accuracy'])
        self.assertEqual(set(data['feature_importance']), {'current_ratio', 'debt_to_equity'})

    def test_credit_forest_needs_labels(self):
        with self.assertRaises(InsufficientDataError):
            random_forest_credit_analysis(make_statement(2023), make_statements())
        with self.assertRaises(InsufficientDataError):
            random_forest_credit_analysis(make_statement(2023), credit_data={'current_ratio': [1.0, 2.0]})

    def test_clustering_groups_similar_companies(self):
        healthy = [make_statement(2023, 1.0 + 0.1 * i) for i in range(3)]
        distressed = [make_statement(2023, 1.0 + 0.1 * i, revenue=600, retained_earnings=-200,
                                     short_term_debt=400, operating_cash_flow=-80) for i in range(3)]
        result = clustering_classification_analysis(make_statement(2023), healthy + distressed, n_clusters=2)
        self.assertEqual(result.data['n_clusters'], 2)
        self.assertEqual(result.data['similar_companies'], ['peer_1', 'peer_2', 'peer_3'])
        self.assertEqual(result.data['cluster_rank_by_roa'], 1)
        self.assertEqual(result.evaluation, Rating.VERY_GOOD)

    def test_clustering_needs_peers(self):
        with self.assertRaises(InsufficientDataError):
            clustering_classification_analysis(make_statement(2023), [make_statement(2022)])

    def test_autoencoder_flags_outlier(self):
        frame = make_asset_returns()
        frame.iloc[-1] = [0.2, -0.2, 0.2]
        result = autoencoder_anomaly_analysis(frame)
        data = result.data
        self.assertEqual(data['observations'], 300)
        self.assertEqual(data['features'], ['AAA', 'BBB', 'CCC'])
        self.assertTrue(data['latest_is_anomaly'])
        self.assertIn(299, data['anomaly_indices'])
        self.assertEqual(data['anomaly_count'], len(data['anomaly_indices']))


class TestTextAndChain(unittest.TestCase):
    def test_sentiment_polarity(self):
        bullish = ai_sentiment_analysis(['Record profit and strong growth as analysts upgrade the stock',
                                         'Dividend raised after a strong quarter'])
        bearish = ai_sentiment_analysis(['Losses widen amid fraud investigation and bankruptcy fears'])
        self.assertEqual(bullish.data['overall_sentiment'], 'bullish')
        self.assertEqual(bullish.data['positive_count'], 2)
        self.assertEqual(bearish.data['overall_sentiment'], 'bearish')
        self.assertEqual(len(bearish.recommendations), 1)
        self.assertGreater(bullish.value, bearish.value)

    def test_sentiment_arabic_lexicon(self):
        result = ai_sentiment_analysis(['خسائر كبيرة وتعثر في السداد'])
        self.assertLess(result.data['texts'][0]['lexicon_polarity'], 0)

    def test_sentiment_needs_text(self):
        with self.assertRaises(InsufficientDataError):
            ai_sentiment_analysis(['', '   '])

    def test_blockchain_circular_flow(self):
        transfers = [
            {'from': 'A', 'to': 'B', 'value': 100},
            {'from': 'B', 'to': 'C', 'value': 100},
            {'from': 'C', 'to': 'A', 'value': 100},
            {'from': 'D', 'to': 'E', 'value': 10},
            {'from': 'E', 'to': 'F', 'value': 5},
        ]
        result = blockchain_analytics_analysis(transfers)
        data = result.data
        self.assertEqual(data['addresses'], 6)
        self.assertEqual(data['total_volume'], 315.0)
        self.assertEqual(data['circular_flows'], [['A', 'B', 'C', 'A']])
        self.assertEqual(set(data['whales']), {'A', 'B', 'C'})
        self.assertEqual(data['self_transfers'], 0)
        self.assertEqual(len(result.recommendations), 1)

    def test_blockchain_needs_receivers(self):
        with self.assertRaises(InsufficientDataError):
            blockchain_analytics_analysis([{'sender': 'A', 'amount': 1}] * 5)


if __name__ == '__main__':
    unittest.main()
