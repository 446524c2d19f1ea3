"""
Machine Learning Analysis
Neural network, LSTM and gradient boosting forecasts, credit
classification, clustering, autoencoder anomalies, text sentiment and
on-chain transaction analytics.
"""

import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingRegressor, RandomForestClassifier
from sklearn.model_selection import cross_val_score
from sklearn.neural_network import MLPRegressor
from sklearn.preprocessing import StandardScaler
from textblob import TextBlob

from finclick import config
from finclick.analysis.advanced.detection import feature_frame
from finclick.analysis.base import (
    build_result, require, require_frame, require_series, require_transactions
)
from finclick.analysis.fundamental.scoring import altman_z_score
from finclick.analysis.quantitative.ml_models import kmeans_clustering, lag_matrix
from finclick.analysis.quantitative.model_accuracy import forecast_accuracy
from finclick.analysis.quantitative.recurrent import lstm_forecast
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, round_or_none, safe_divide
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.detection'

# Finance-specific polarity lexicon (English and Arabic), weights in [-1, 1]
FINANCIAL_LEXICON = {
    'profit': 0.5, 'profits': 0.5, 'growth': 0.5, 'beat': 0.6, 'beats': 0.6, 'record': 0.4,
    'upgrade': 0.7, 'upgraded': 0.7, 'outperform': 0.6, 'dividend': 0.3, 'surge': 0.6,
    'strong': 0.4, 'expansion': 0.4, 'recovery': 0.4, 'rally': 0.5, 'gain': 0.4, 'gains': 0.4,
    'loss': -0.6, 'losses': -0.6, 'decline': -0.5, 'declines': -0.5, 'miss': -0.6, 'missed': -0.6,
    'downgrade': -0.7, 'downgraded': -0.7, 'default': -0.9, 'bankruptcy': -1.0, 'lawsuit': -0.6,
    'impairment': -0.6, 'writedown': -0.6, 'layoffs': -0.5, 'fraud': -1.0, 'investigation': -0.5,
    'weak': -0.4, 'slump': -0.6, 'debt': -0.2, 'restatement': -0.8, 'warning': -0.5,
    'ربح': 0.5, 'أرباح': 0.5, 'نمو': 0.5, 'ارتفاع': 0.4, 'توزيعات': 0.3, 'قوي': 0.4,
    'خسارة': -0.6, 'خسائر': -0.6, 'انخفاض': -0.5, 'تراجع': -0.5, 'إفلاس': -1.0, 'تعثر': -0.8,
    'احتيال': -1.0, 'ديون': -0.2, 'ضعيف': -0.4,
}

_TOKEN = re.compile(r"[\w']+", re.UNICODE)


def _target_series(analysis_id: str, prices: Any, returns: Any, minimum: int) -> pd.Series:
    if prices is not None:
        return require_series(prices, minimum, analysis_id, 'prices').reset_index(drop=True)
    return require_series(returns, minimum, analysis_id).reset_index(drop=True)


def _holdout(n: int, test_size: float) -> int:
    return max(int(n * test_size), 1)


def _recursive_forecast(model, scaler_x: StandardScaler, history: List[float], lags: int,
                        steps: int, extra_features=None) -> List[float]:
    out = []
    window = list(history[-lags:])
    for _ in range(steps):
        x = np.asarray(window[-lags:], dtype=float)[None, :]
        if extra_features is not None:
            x = np.hstack([x, extra_features(np.asarray(window[-lags:]))[None, :]])
        nxt = float(model.predict(scaler_x.transform(x))[0])
        out.append(nxt)
        window.append(nxt)
    return out


def neural_network_forecast_analysis(prices: Any = None,
                                     returns: Any = None,
                                     lags: int = 5,
                                     hidden_layers: Sequence[int] = (32, 16),
                                     steps: int = config.FORECAST_HORIZON,
                                     test_size: float = 0.2) -> AnalysisResult:
    """
    Multilayer perceptron (scikit-learn MLPRegressor) on lagged values.

    The network is trained on the leading part of the series and scored
    on the holdout against a naive last-value forecast, then refit on the
    full series to forecast `steps` ahead recursively.
    """
    analysis_id = 'adv.ml.neural_network'
    series = _target_series(analysis_id, prices, returns, lags + 30)
    X, y = lag_matrix(series, lags)
    n_test = _holdout(len(y), test_size)

    def fit(X_train, y_train):
        scaler = StandardScaler().fit(X_train)
        model = MLPRegressor(hidden_layer_sizes=tuple(hidden_layers), max_iter=2000, early_stopping=False,
                             random_state=config.RANDOM_SEED)
        model.fit(scaler.transform(X_train), y_train)
        return model, scaler

    model, scaler = fit(X[:-n_test], y[:-n_test])
    predicted = model.predict(scaler.transform(X[-n_test:]))
    actual = y[-n_test:]
    naive = X[-n_test:, -1]
    accuracy = forecast_accuracy(actual, predicted)
    naive_rmse = float(np.sqrt(np.mean((actual - naive) ** 2)))

    final, final_scaler = fit(X, y)
    forecast = _recursive_forecast(final, final_scaler, list(series.values), lags, steps)
    beats = accuracy['rmse'] < naive_rmse

    return build_result(
        analysis_id, 'Neural Network Forecasting', CATEGORY,
        data={'architecture': list(hidden_layers), 'lags': lags, 'test_size': n_test,
              'accuracy': accuracy, 'naive_rmse': round(naive_rmse, 6), 'beats_naive': beats,
              'forecast': [round(v, 4) for v in forecast], 'target': 'prices' if prices is not None else 'returns'},
        interpretation=(f"The network's holdout RMSE is {accuracy['rmse']:.4f} against {naive_rmse:.4f} for a "
                        f"naive forecast; next value {forecast[0]:.4f}."),
        recommendations=[] if beats else ['The network does not beat a naive forecast; do not rely on it for decisions'],
        value=accuracy['rmse'], benchmark=naive_rmse, higher_is_better=False,
    )


def lstm_time_series_analysis(prices: Any = None,
                              returns: Any = None,
                              lookback: int = 10,
                              hidden_size: int = 32,
                              steps: int = config.FORECAST_HORIZON) -> AnalysisResult:
    """LSTM forecast (recurrent reservoir with a ridge readout) scored on a holdout."""
    analysis_id = 'adv.ml.lstm'
    series = _target_series(analysis_id, prices, returns, lookback * 3 + 10)
    result = lstm_forecast(series, lookback=lookback, hidden_size=hidden_size, steps=steps)
    return build_result(
        analysis_id, 'LSTM Time Series Analysis', CATEGORY,
        data={**result, 'target': 'prices' if prices is not None else 'returns'},
        interpretation=(f"LSTM holdout RMSE {result['test_rmse']:.4f} against a naive {result['naive_rmse']:.4f}; "
                        f"forecast path starts at {result['forecast'][0]:.4f}."),
        recommendations=([] if result['beats_naive'] else
                         ['The LSTM adds no accuracy over a naive forecast for this series']),
        value=result['test_rmse'], benchmark=result['naive_rmse'], higher_is_better=False,
    )


def random_forest_credit_analysis(statement: FinancialStatement,
                                  statements: Optional[List[FinancialStatement]] = None,
                                  peers: Optional[List[FinancialStatement]] = None,
                                  credit_data: Any = None,
                                  label_column: str = 'default') -> AnalysisResult:
    """
    Random forest credit classification.

    With `credit_data` (ratio features plus a 0/1 `label_column`) the
    forest learns from observed defaults. Otherwise it learns the Altman
    distress/grey zone from the company's history and its peers. The
    latest statement is then scored.
    """
    analysis_id = 'adv.ml.credit_rf'
    require(statement is not None, "A financial statement is required", analysis_id)
    if credit_data is not None:
        training = credit_data if isinstance(credit_data, pd.DataFrame) else pd.DataFrame(credit_data)
        require(label_column in training.columns, f"Credit data needs a '{label_column}' column", analysis_id)
        labels = training[label_column].astype(int)
        features = training.drop(columns=[label_column]).apply(pd.to_numeric, errors='coerce')
        features = features.fillna(features.median())
        label_source = 'observed defaults'
        target_row = feature_frame([statement]).reindex(columns=features.columns)
        target_row = target_row.fillna(features.median())
    else:
        history = list(statements or [statement])
        pool = history + list(peers or [])
        features = feature_frame(history, peers)
        labels = pd.Series([int((altman_z_score(st)['zone'] or 'safe') != 'safe') for st in pool],
                           index=features.index)
        label_source = 'altman_zone'
        target_row = feature_frame([statement]).reindex(columns=features.columns).fillna(features.median())
    require(len(features) >= 8, f"Credit model needs at least 8 labelled rows, got {len(features)}", analysis_id)
    require(labels.nunique() == 2, "Labelled rows must contain both good and bad credits", analysis_id)

    model = RandomForestClassifier(n_estimators=300, random_state=config.RANDOM_SEED, class_weight='balanced',
                                   min_samples_leaf=2)
    folds = int(min(5, labels.value_counts().min()))
    cv_accuracy = float(cross_val_score(model, features, labels, cv=folds).mean()) if folds >= 2 else None
    model.fit(features, labels)
    probability = float(model.predict_proba(target_row)[0][list(model.classes_).index(1)])
    importance = dict(sorted(((str(c), round(float(v), 4)) for c, v in
                              zip(features.columns, model.feature_importances_)), key=lambda kv: kv[1], reverse=True))
    grade = ('AAA-A' if probability < 0.05 else 'BBB' if probability < 0.15 else 'BB' if probability < 0.3
             else 'B' if probability < 0.5 else 'CCC-D')

    return build_result(
        analysis_id, 'Random Forest Credit Classification', CATEGORY,
        data={'default_probability': round(probability, 4), 'credit_grade': grade, 'label_source': label_source,
              'training_rows': int(len(features)), 'bad_share': round(float(labels.mean()), 4),
              'cv_accuracy': round_or_none(cv_accuracy), 'feature_importance': importance},
        interpretation=(f"Predicted probability of a bad credit outcome {probability * 100:.1f}% "
                        f"(grade {grade}); most influential: {', '.join(list(importance)[:3])}."),
        recommendations=(['Tighten credit limits or require collateral'] if probability >= 0.3 else []),
        value=probability * 100, benchmark=15.0, higher_is_better=False,
        evaluation=rate_score(clip_score(100 - probability * 200)),
    )


def _gb_features(window: np.ndarray) -> np.ndarray:
    return np.array([window.mean(), window.std(), window[-1] - window[0]])


def gradient_boosting_forecast_analysis(prices: Any = None,
                                        returns: Any = None,
                                        lags: int = 5,
                                        steps: int = config.FORECAST_HORIZON,
                                        test_size: float = 0.2,
                                        n_estimators: int = 300,
                                        learning_rate: float = 0.05) -> AnalysisResult:
    """
    Gradient boosted trees on lags plus window mean, spread and momentum.
    """
    analysis_id = 'adv.ml.gradient_boosting'
    series = _target_series(analysis_id, prices, returns, lags + 30)
    X, y = lag_matrix(series, lags)
    X = np.hstack([X, np.vstack([_gb_features(row) for row in X])])
    names = [f'lag_{lags - i}' for i in range(lags)] + ['window_mean', 'window_std', 'window_momentum']
    n_test = _holdout(len(y), test_size)

    def fit(X_train, y_train):
        scaler = StandardScaler().fit(X_train)
        model = GradientBoostingRegressor(n_estimators=n_estimators, learning_rate=learning_rate, max_depth=3,
                                          subsample=0.8, random_state=config.RANDOM_SEED)
        model.fit(scaler.transform(X_train), y_train)
        return model, scaler

    model, scaler = fit(X[:-n_test], y[:-n_test])
    predicted = model.predict(scaler.transform(X[-n_test:]))
    actual = y[-n_test:]
    accuracy = forecast_accuracy(actual, predicted)
    naive_rmse = float(np.sqrt(np.mean((actual - X[-n_test:, lags - 1]) ** 2)))

    final, final_scaler = fit(X, y)
    forecast = _recursive_forecast(final, final_scaler, list(series.values), lags, steps, _gb_features)
    importance = dict(sorted(zip(names, np.round(final.feature_importances_, 4).tolist()),
                             key=lambda kv: kv[1], reverse=True))

    return build_result(
        analysis_id, 'Gradient Boosting Forecasting', CATEGORY,
        data={'accuracy': accuracy, 'naive_rmse': round(naive_rmse, 6), 'beats_naive': accuracy['rmse'] < naive_rmse,
              'feature_importance': importance, 'forecast': [round(v, 4) for v in forecast],
              'target': 'prices' if prices is not None else 'returns'},
        interpretation=(f"Boosted trees reach a holdout RMSE of {accuracy['rmse']:.4f} "
                        f"(naive {naive_rmse:.4f}); strongest driver {next(iter(importance))}."),
        value=accuracy['rmse'], benchmark=naive_rmse, higher_is_better=False,
    )


def clustering_classification_analysis(statement: FinancialStatement,
                                       peers: List[FinancialStatement],
                                       n_clusters: Optional[int] = None) -> AnalysisResult:
    """
    K-Means on ratio profiles of the company and its peers; the number
    of clusters maximises the silhouette score unless fixed.
    """
    analysis_id = 'adv.ml.clustering'
    require(statement is not None, "A financial statement is required", analysis_id)
    require(peers and len(peers) >= 3, "Clustering needs at least 3 peer statements", analysis_id)
    frame = feature_frame([statement], peers)
    frame.index = ['company'] + [f'peer_{i + 1}' for i in range(len(peers))]
    result = kmeans_clustering(frame, n_clusters=n_clusters)
    cluster = result['labels'][frame.index[0]]
    profile = result['profiles'][f'Cluster_{cluster}']
    peer_group = [m for m in profile['members'] if m != frame.index[0]]
    centroid = pd.DataFrame({k: v['centroid'] for k, v in result['profiles'].items()}).T
    # Rank clusters by ROA of their centroid to name the company's tier
    order = list(centroid['roa'].sort_values(ascending=False).index) if 'roa' in centroid else []
    tier = (order.index(f'Cluster_{cluster}') + 1) if order else None

    return build_result(
        analysis_id, 'Clustering Financial Classification', CATEGORY,
        data={**result, 'company_cluster': cluster, 'similar_companies': peer_group,
              'cluster_rank_by_roa': tier, 'features': list(frame.columns)},
        interpretation=(f"{result['n_clusters']} financial profiles found (silhouette {result['silhouette_score']:.2f}); "
                        f"the company groups with {len(peer_group)} peer(s)"
                        + (f" in the number {tier} profile by ROA." if tier else '.')),
        value=result['silhouette_score'] * 100, benchmark=50.0,
        evaluation=None if tier is None else Rating.VERY_GOOD if tier == 1 else
        Rating.WEAK if tier == result['n_clusters'] else Rating.ACCEPTABLE,
    )


def _autoencoder_features(analysis_id: str, asset_returns: Any, returns: Any) -> pd.DataFrame:
    if asset_returns is not None:
        frame = require_frame(asset_returns, 40, analysis_id, min_columns=2, label='asset returns')
        return frame.reset_index(drop=True)
    r = require_series(returns, 45, analysis_id).reset_index(drop=True)
    frame = pd.DataFrame({
        'return': r,
        'abs_return': r.abs(),
        'mean_5': r.rolling(5).mean(),
        'vol_5': r.rolling(5).std(),
        'momentum_20': r.rolling(20).sum(),
    })
    return frame.dropna().reset_index(drop=True)


def autoencoder_anomaly_analysis(asset_returns: Any = None,
                                 returns: Any = None,
                                 bottleneck: int = 2,
                                 threshold_quantile: float = 0.99) -> AnalysisResult:
    """
    Autoencoder anomaly detection.

    An MLPRegressor with a narrow middle layer is trained to reproduce
    its standardised inputs; observations it reconstructs badly (error
    above the `threshold_quantile` of training errors, or beyond mean + 3
    standard deviations) are anomalies.
    """
    analysis_id = 'adv.ml.autoencoder'
    frame = _autoencoder_features(analysis_id, asset_returns, returns)
    require(len(frame) >= 40, "Autoencoder needs at least 40 observations", analysis_id)
    X = StandardScaler().fit_transform(frame.values)
    width = max(bottleneck * 2, min(16, X.shape[1] * 2))
    model = MLPRegressor(hidden_layer_sizes=(width, bottleneck, width), activation='tanh', max_iter=3000,
                         random_state=config.RANDOM_SEED)
    model.fit(X, X)
    errors = np.mean((model.predict(X) - X) ** 2, axis=1)
    threshold = float(min(np.quantile(errors, threshold_quantile), errors.mean() + 3 * errors.std()))
    flagged = np.where(errors > threshold)[0]
    rate = len(flagged) / len(errors) * 100
    worst = frame.columns[np.argmax(np.abs(model.predict(X[-1:]) - X[-1:]))]

    return build_result(
        analysis_id, 'Autoencoder Anomaly Detection', CATEGORY,
        data={'observations': int(len(frame)), 'features': [str(c) for c in frame.columns],
              'bottleneck': bottleneck, 'threshold': round(threshold, 6),
              'mean_error': round(float(errors.mean()), 6), 'anomaly_count': int(len(flagged)),
              'anomaly_rate': round(rate, 2), 'anomaly_indices': [int(i) for i in flagged],
              'latest_error': round(float(errors[-1]), 6), 'latest_is_anomaly': bool(errors[-1] > threshold),
              'latest_worst_feature': str(worst)},
        interpretation=(f"{len(flagged)} of {len(errors)} observations ({rate:.1f}%) are poorly reconstructed; "
                        f"the latest observation is {'anomalous' if errors[-1] > threshold else 'normal'}."),
        recommendations=(['Review the latest observation; its joint pattern is unlike the history']
                         if errors[-1] > threshold else []),
        value=rate, benchmark=(1 - threshold_quantile) * 100, higher_is_better=False,
    )


def _lexicon_score(text: str) -> Optional[float]:
    hits = [FINANCIAL_LEXICON[t] for t in _TOKEN.findall(text.lower()) if t in FINANCIAL_LEXICON]
    return float(np.mean(hits)) if hits else None


def ai_sentiment_analysis(texts: Sequence[str], lexicon_weight: float = 0.5) -> AnalysisResult:
    """
    Sentiment of news or filings: TextBlob polarity blended with a
    financial lexicon (general-purpose polarity misreads words such as
    'liability' or 'default'). Texts without lexicon hits use TextBlob only.
    """
    analysis_id = 'adv.ml.sentiment'
    items = [t for t in (texts or []) if isinstance(t, str) and t.strip()]
    require(items, "At least one text is required", analysis_id)

    scored = []
    for text in items:
        blob = TextBlob(text).sentiment
        lexicon = _lexicon_score(text)
        polarity = blob.polarity if lexicon is None else (1 - lexicon_weight) * blob.polarity + lexicon_weight * lexicon
        label = 'positive' if polarity > 0.1 else 'negative' if polarity < -0.1 else 'neutral'
        scored.append({'text': text[:120], 'textblob_polarity': round(blob.polarity, 3),
                       'lexicon_polarity': round_or_none(lexicon, 3), 'polarity': round(polarity, 3),
                       'subjectivity': round(blob.subjectivity, 3), 'sentiment': label})

    counts = defaultdict(int)
    for s in scored:
        counts[s['sentiment']] += 1
    avg = float(np.mean([s['polarity'] for s in scored]))
    overall = 'bullish' if avg > 0.1 else 'bearish' if avg < -0.1 else 'neutral'
    score = (avg + 1) * 50

    return build_result(
        analysis_id, 'AI Sentiment Analysis', CATEGORY,
        data={'texts': scored, 'avg_polarity': round(avg, 3), 'overall_sentiment': overall,
              'positive_count': counts['positive'], 'negative_count': counts['negative'],
              'neutral_count': counts['neutral'], 'total_count': len(scored),
              'bullish_ratio': round(counts['positive'] / len(scored) * 100, 1)},
        interpretation=(f"Overall sentiment is {overall} (average polarity {avg:+.2f}) across {len(scored)} text(s)."),
        recommendations=(['Monitor negative coverage for emerging risks'] if overall == 'bearish' else []),
        value=score, benchmark=50.0, evaluation=rate_score(score),
    )


def _cycles(edges: Dict[str, set], max_length: int = 4, limit: int = 50) -> List[List[str]]:
    """Simple directed cycles up to `max_length` nodes, each reported once."""
    found, seen = [], set()
    for start in sorted(edges):
        stack = [(start, [start])]
        while stack and len(found) < limit:
            node, path = stack.pop()
            for nxt in edges.get(node, ()):
                if nxt == start and len(path) >= 2:
                    key = frozenset(path)
                    if key not in seen:
                        seen.add(key)
                        found.append(path + [start])
                elif nxt not in path and len(path) < max_length and nxt > start:
                    stack.append((nxt, path + [nxt]))
    return found


def blockchain_analytics_analysis(transactions: Any,
                                  whale_share: float = 0.05,
                                  max_cycle_length: int = 4) -> AnalysisResult:
    """
    Address graph analytics on a transfers table (sender, receiver,
    amount): activity concentration (HHI, Gini, top-10 share), whales
    (addresses moving at least `whale_share` of volume), hubs by degree
    and circular flows (value returning to its origin within
    `max_cycle_length` hops).
    """
    analysis_id = 'adv.ml.blockchain'
    tx = require_transactions(transactions, analysis_id, needs=('sender', 'receiver', 'amount'))
    tx['sender'] = tx['sender'].astype(str)
    tx['receiver'] = tx['receiver'].astype(str)
    total = float(tx['amount'].sum())
    require(total > 0, "Transfers carry no value", analysis_id)

    sent = tx.groupby('sender')['amount'].sum()
    received = tx.groupby('receiver')['amount'].sum()
    activity = sent.add(received, fill_value=0.0).sort_values(ascending=False)
    shares = activity / activity.sum()
    hhi = float((shares ** 2).sum() * 10000)
    values = np.sort(activity.values)
    n = len(values)
    gini = float((2 * np.arange(1, n + 1) - n - 1).dot(values) / (n * values.sum())) if n > 1 else 0.0
    top10 = float(shares.iloc[:10].sum() * 100)

    volume_share = sent / total
    whales = volume_share[volume_share >= whale_share].sort_values(ascending=False)
    edges: Dict[str, set] = defaultdict(set)
    for s, r in zip(tx['sender'], tx['receiver']):
        if s != r:
            edges[s].add(r)
    out_degree = {a: len(v) for a, v in edges.items()}
    in_degree = tx.groupby('receiver')['sender'].nunique()
    hubs = sorted(set(out_degree) | set(in_degree.index),
                  key=lambda a: out_degree.get(a, 0) + int(in_degree.get(a, 0)), reverse=True)[:5]
    cycles = _cycles(edges, max_cycle_length)
    self_transfers = int((tx['sender'] == tx['receiver']).sum())

    risk = clip_score(0.4 * min(hhi / 25, 100) + 0.4 * min(len(cycles) * 20, 100)
                      + 0.2 * min(self_transfers / len(tx) * 500, 100))
    return build_result(
        analysis_id, 'Blockchain Analytics', CATEGORY,
        data={'transfers': int(len(tx)), 'addresses': int(n), 'total_volume': round(total, 2),
              'hhi': round(hhi, 1), 'gini': round(gini, 4), 'top10_share_pct': round(top10, 2),
              'whales': {a: round(float(s) * 100, 2) for a, s in whales.items()},
              'hubs': hubs, 'circular_flows': cycles, 'self_transfers': self_transfers,
              'average_transfer': round(float(tx['amount'].mean()), 2),
              'network_density': round_or_none(safe_divide(sum(out_degree.values()), n * (n - 1)), 4),
              'risk_score': round(risk, 1)},
        interpretation=(f"{n} addresses, activity Gini {gini:.2f}, {len(whales)} whale(s) and "
                        f"{len(cycles)} circular flow(s) detected."),
        recommendations=(['Trace the circular flows; they are a wash-trading and layering pattern']
                         if cycles else []),
        value=risk, benchmark=30.0, evaluation=rate_score(100 - risk),
    )
