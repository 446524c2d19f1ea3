"""
Machine Learning Models for Financial Analysis
PCA, clustering, regime detection and model explanation.
"""

import logging
import warnings
from typing import Dict, Any, Optional

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.decomposition import PCA
from sklearn.inspection import permutation_importance
from sklearn.metrics import silhouette_score
from sklearn.preprocessing import StandardScaler

from finclick import config
from finclick.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

# Filter sklearn parallel warning
warnings.filterwarnings("ignore", message=".*sklearn.utils.parallel.delayed.*")


def pca_analysis(
    data: pd.DataFrame,
    n_components: int = 3
) -> Dict[str, Any]:
    """
    Principal Component Analysis for factor decomposition.

    Standardizes the columns, then reduces them to the leading components.

    Args:
        data: DataFrame of observations (rows) by variables (columns)
        n_components: Number of principal components

    Returns:
        Dictionary with explained variance, loadings and scores
    """
    data = data.dropna()
    if len(data) < 3 or data.shape[1] < 2:
        raise InsufficientDataError("PCA needs at least 3 rows and 2 columns")

    n_components = min(n_components, data.shape[1], len(data))
    X = StandardScaler().fit_transform(data.values)
    pca = PCA(n_components=n_components)
    scores = pca.fit_transform(X)

    # Loadings: correlation of each variable with each component
    loadings = pca.components_.T * np.sqrt(pca.explained_variance_)
    loading_df = pd.DataFrame(
        loadings,
        index=[str(c) for c in data.columns],
        columns=[f'PC{i + 1}' for i in range(n_components)]
    )

    ratios = pca.explained_variance_ratio_
    return {
        'n_components': n_components,
        'explained_variance_ratio': [round(float(r) * 100, 2) for r in ratios],
        'cumulative_variance': round(float(ratios.sum()) * 100, 2),
        'eigenvalues': [round(float(v), 4) for v in pca.explained_variance_],
        'loadings': loading_df.round(4).to_dict(),
        'scores': np.round(scores[:, 0], 4).tolist(),
        'components': {
            f'PC{i + 1}': _interpret_pc(loading_df[f'PC{i + 1}'])
            for i in range(n_components)
        }
    }


def _interpret_pc(loadings: pd.Series, top_n: int = 3) -> Dict[str, Any]:
    """Interpret a principal component based on loadings."""
    return {
        'top_positive': {k: round(float(v), 4) for k, v in loadings.nlargest(top_n).items()},
        'top_negative': {k: round(float(v), 4) for k, v in loadings.nsmallest(top_n).items()}
    }


def kmeans_clustering(
    features: pd.DataFrame,
    n_clusters: Optional[int] = None,
    max_clusters: int = 6
) -> Dict[str, Any]:
    """
    K-Means clustering with silhouette-based choice of k.

    Args:
        features: Rows are entities (companies, assets, periods), columns are features
        n_clusters: Fixed number of clusters; None picks the best silhouette
        max_clusters: Upper bound when searching k

    Returns:
        Dictionary with labels, silhouette score and cluster profiles
    """
    features = features.dropna()
    if len(features) < 4:
        raise InsufficientDataError("Clustering needs at least 4 rows")

    X = StandardScaler().fit_transform(features.values)
    candidates = [n_clusters] if n_clusters else range(2, min(max_clusters, len(features) - 1) + 1)

    best = None
    scores = {}
    for k in candidates:
        model = KMeans(n_clusters=k, n_init=10, random_state=config.RANDOM_SEED)
        labels = model.fit_predict(X)
        if len(set(labels)) < 2:
            continue
        score = float(silhouette_score(X, labels))
        scores[int(k)] = round(score, 4)
        if best is None or score > best[0]:
            best = (score, k, labels, model)

    if best is None:
        raise InsufficientDataError("Data does not separate into clusters")

    score, k, labels, model = best
    profiles = {}
    for cluster in range(k):
        members = features.index[labels == cluster]
        profiles[f'Cluster_{cluster}'] = {
            'count': int(len(members)),
            'members': [str(m) for m in members],
            'centroid': {str(c): round(float(v), 4) for c, v in features.loc[members].mean().items()}
        }

    return {
        'n_clusters': int(k),
        'silhouette_score': round(score, 4),
        'silhouette_by_k': scores,
        'labels': {str(i): int(lbl) for i, lbl in zip(features.index, labels)},
        'profiles': profiles,
        'inertia': round(float(model.inertia_), 4)
    }


def regime_detection(
    returns: pd.Series,
    window: int = 20
) -> Dict[str, Any]:
    """
    Detect market regimes based on rolling return and volatility.

    Regimes:
        - Bull High Volatility: strong up, volatile
        - Bull Low Volatility: steady up, calm
        - Bear High Volatility: down, volatile
        - Bear Low Volatility: drifting down, calm

    Args:
        returns: Series of returns
        window: Rolling window for calculations

    Returns:
        Dictionary with current regime, history and regime shares
    """
    returns = pd.Series(returns).dropna()
    if len(returns) < window + 5:
        raise InsufficientDataError(f"Regime detection needs at least {window + 5} observations")

    rolling_mean = returns.rolling(window).mean().dropna()
    rolling_vol = returns.rolling(window).std().dropna()

    vol_threshold = rolling_vol.median()

    def classify_regime(mean_val, vol_val):
        up = mean_val > 0
        high_vol = vol_val > vol_threshold
        if up and high_vol:
            return 'Bull High Volatility'
        elif up:
            return 'Bull Low Volatility'
        elif high_vol:
            return 'Bear High Volatility'
        return 'Bear Low Volatility'

    regimes = [classify_regime(m, v) for m, v in zip(rolling_mean, rolling_vol)]
    current = regimes[-1]
    recent = regimes[-5:]
    shares = pd.Series(regimes).value_counts(normalize=True)

    return {
        'current_regime': current,
        'regime_history': recent,
        'stability': round(recent.count(current) / len(recent) * 100, 1),
        'regime_shares': {k: round(float(v) * 100, 1) for k, v in shares.items()},
        'current_volatility': round(float(rolling_vol.iloc[-1]), 6),
        'volatility_threshold': round(float(vol_threshold), 6)
    }


def feature_importance_analysis(model, X: pd.DataFrame, y: pd.Series,
                                n_repeats: int = 10) -> Dict[str, float]:
    """
    Permutation importance of a fitted scikit-learn model.

    Returns:
        Feature -> mean importance, sorted descending
    """
    result = permutation_importance(model, X, y, n_repeats=n_repeats,
                                    random_state=config.RANDOM_SEED)
    importance = {str(col): round(float(v), 4) for col, v in zip(X.columns, result.importances_mean)}
    return dict(sorted(importance.items(), key=lambda x: x[1], reverse=True))


def lag_matrix(series: pd.Series, lags: int) -> tuple:
    """Design matrix of `lags` lagged values and the aligned target."""
    values = np.asarray(pd.Series(series).dropna(), dtype=float)
    if len(values) <= lags + 2:
        raise InsufficientDataError(f"Need more than {lags + 2} observations for {lags} lags")
    X = np.column_stack([values[i:len(values) - lags + i] for i in range(lags)])
    y = values[lags:]
    return X, y
