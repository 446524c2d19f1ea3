"""
Detection and Early Warning
Fraud, money laundering, market manipulation, distress and crisis
signals, live anomalies, volatility outlook and investor behaviour.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.ensemble import RandomForestRegressor

from finclick import config
from finclick.analysis.advanced.enterprise_risk import altman_default_probability
from finclick.analysis.base import (
    build_result, require, require_series, require_statement, require_transactions
)
from finclick.analysis.fundamental.scoring import (
    altman_z_score, benford_analysis, beneish_m_score, ohlson_o_score, springate_s_score,
    statement_amounts, taffler_z_score, zmijewski_score
)
from finclick.analysis.quantitative.anomaly_detection import (
    detect_spikes, detect_volatility_cluster, detect_volume_spikes, iqr_anomalies,
    isolation_forest_anomalies, zscore_anomalies
)
from finclick.analysis.quantitative.ml_models import feature_importance_analysis
from finclick.analysis.quantitative.risk_metrics import maximum_drawdown
from finclick.analysis.quantitative.time_series import (
    classify_volatility_regime, ewma_volatility, garch_volatility_forecast
)
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, pct_change, round_or_none, safe_divide, weighted_score
from finclick.data.market import to_series
from finclick.data.statements import FinancialStatement, require_statements, sort_statements

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.detection'

FRAUD_WEIGHTS = {'beneish': 0.4, 'accruals': 0.25, 'benford': 0.2, 'isolation_forest': 0.15}

_BENFORD_RISK = {'close': 0.0, 'acceptable': 20.0, 'marginal': 60.0, 'nonconformity': 100.0}

# Early warning indicators: (direction, default threshold, weight)
EARLY_WARNING_INDICATORS = {
    'current_ratio': ('below', 1.0, 0.15),
    'interest_coverage': ('below', 1.5, 0.15),
    'debt_to_equity': ('above', 2.0, 0.15),
    'net_margin': ('below', 0.0, 0.15),
    'operating_cash_flow': ('below', 0.0, 0.15),
    'revenue_growth': ('below', -10.0, 0.10),
    'altman_z': ('below', 1.81, 0.15),
}

# Crisis indicators: (direction, threshold, noise-to-signal ratio)
CRISIS_INDICATORS = {
    'revenue_growth': ('below', -5.0, 0.45),
    'leverage_change': ('above', 10.0, 0.55),
    'interest_coverage': ('below', 1.5, 0.35),
    'current_ratio': ('below', 1.0, 0.40),
    'operating_cash_flow_margin': ('below', 0.0, 0.30),
    'short_term_debt_share': ('above', 50.0, 0.60),
    'drawdown': ('above', 20.0, 0.50),
    'volatility_ratio': ('above', 1.5, 0.65),
}


def ratio_features(st: FinancialStatement,
                   previous: Optional[FinancialStatement] = None) -> Dict[str, Optional[float]]:
    """Scale-free ratio features of one statement, used by the model-based analyses."""
    ta = st.total_assets
    features = {
        'current_ratio': safe_divide(st.total_current_assets, st.total_current_liabilities),
        'debt_to_equity': safe_divide(st.total_debt, st.total_equity),
        'debt_to_assets': safe_divide(st.total_liabilities, ta),
        'net_margin': safe_divide(st.net_income, st.revenue),
        'operating_margin': safe_divide(st.operating_income, st.revenue),
        'roa': safe_divide(st.net_income, ta),
        'asset_turnover': safe_divide(st.revenue, ta),
        'ocf_to_assets': safe_divide(st.operating_cash_flow, ta),
        'interest_coverage': safe_divide(st.ebit, st.interest_expense),
        'retained_to_assets': safe_divide(st.retained_earnings, ta),
    }
    if previous is not None:
        growth = pct_change(st.revenue, previous.revenue)
        features['revenue_growth'] = growth / 100 if growth is not None else None
    return features


def feature_frame(statements: List[FinancialStatement],
                  peers: Optional[List[FinancialStatement]] = None) -> pd.DataFrame:
    """Ratio features by statement (company years first, then peers), gaps filled with medians."""
    rows, index = [], []
    for label, group in (('company', statements), ('peer', peers or [])):
        for i, st in enumerate(group):
            rows.append(ratio_features(st))
            index.append(f"{label}:{st.year}:{i}")
    frame = pd.DataFrame(rows, index=index, dtype=float)
    frame = frame.replace([np.inf, -np.inf], np.nan)
    # Keep features reported for most rows, then fill the gaps with the column median
    frame = frame.loc[:, frame.notna().mean() >= 0.8]
    return frame.fillna(frame.median())


def _accrual_ratio(st: FinancialStatement, previous: Optional[FinancialStatement] = None) -> Optional[float]:
    """Sloan accruals: (net income - operating cash flow) / average total assets."""
    assets = (st.total_assets + previous.total_assets) / 2 if previous is not None else st.total_assets
    return safe_divide(st.net_income - st.operating_cash_flow, assets)


def _pooled_amounts(statements: List[FinancialStatement]) -> List[float]:
    amounts = []
    for st in statements:
        amounts.extend(statement_amounts(st))
    return amounts


def ai_fraud_detection_analysis(statement: FinancialStatement,
                                previous: Optional[FinancialStatement] = None,
                                statements: Optional[List[FinancialStatement]] = None,
                                peers: Optional[List[FinancialStatement]] = None,
                                contamination: float = 0.1) -> AnalysisResult:
    """
    Composite fraud risk from four detectors.

    The Beneish M-score is a probit index, so its manipulation
    probability is Phi(M). Benford conformity and Sloan accruals are
    mapped to 0-100 risk scores. When ten or more statements (own history
    plus peers) are available an isolation forest checks whether the
    latest ratios are an outlier. Missing detectors drop out of the
    weighted composite.
    """
    analysis_id = 'adv.detect.fraud'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    history = sort_statements(statements or [s for s in (previous, st) if s is not None])
    scores: Dict[str, Optional[float]] = {}
    data: Dict[str, Any] = {}

    if previous is not None:
        beneish = beneish_m_score(st, previous)
        data['beneish'] = beneish
        if beneish['m_score'] is not None:
            probability = float(stats.norm.cdf(beneish['m_score']))
            data['beneish']['manipulation_probability'] = round(probability, 4)
            scores['beneish'] = probability * 100

    accruals = _accrual_ratio(st, previous)
    data['accrual_ratio'] = round_or_none(accruals)
    if accruals is not None:
        scores['accruals'] = clip_score(accruals / 0.10 * 100)

    benford = benford_analysis(_pooled_amounts(history))
    data['benford'] = benford
    if benford['conformity'] is not None:
        scores['benford'] = _BENFORD_RISK[benford['conformity']]

    frame = feature_frame(history, peers)
    if len(frame) >= 10 and frame.shape[1] >= 2:
        forest = isolation_forest_anomalies(frame, contamination=contamination)
        latest_label = frame.index[len(history) - 1]
        flagged = {a['index'] for a in forest['anomalies']}
        data['isolation_forest'] = {'anomaly_count': forest['anomaly_count'],
                                    'latest_is_anomaly': latest_label in flagged}
        scores['isolation_forest'] = 100.0 if latest_label in flagged else 0.0

    require(scores, "No fraud detector could run on the supplied statements", analysis_id)
    risk = weighted_score(scores, FRAUD_WEIGHTS)
    level = 'high' if risk >= 60 else 'elevated' if risk >= 35 else 'low'
    data.update({'detector_scores': {k: round(v, 1) for k, v in scores.items()},
                 'fraud_risk_score': round(risk, 1), 'risk_level': level})

    recommendations = []
    if scores.get('beneish', 0) >= 50:
        recommendations.append('Beneish indices point to earnings manipulation; review receivables and revenue recognition')
    if scores.get('accruals', 0) >= 50:
        recommendations.append('Earnings run well ahead of operating cash flow; test accrual estimates')
    if scores.get('benford', 0) >= 60:
        recommendations.append("Reported amounts deviate from Benford's law; sample the underlying entries")
    if level == 'high':
        recommendations.append('Commission a forensic accounting review')

    return build_result(
        analysis_id, 'AI Fraud Detection', CATEGORY,
        data=data,
        interpretation=(f"Composite fraud risk {risk:.0f}/100 ({level}) from "
                        f"{len(scores)} detector(s): {', '.join(sorted(scores))}."),
        recommendations=recommendations,
        value=risk, benchmark=35.0, evaluation=rate_score(100 - risk),
    )


def money_laundering_detection_analysis(transactions: Any,
                                        reporting_threshold: float = 10000.0,
                                        structuring_band: float = 0.1,
                                        velocity_limit: int = 10,
                                        rapid_hours: float = 48.0,
                                        round_unit: float = 1000.0) -> AnalysisResult:
    """
    Typology screening of a transactions table.

    Structuring: repeated amounts just below the reporting threshold.
    Velocity: accounts with many transfers in a single day.
    Rapid movement: funds received and passed on (within 10%) inside
    `rapid_hours`. Round amounts: share of exact multiples of `round_unit`.
    """
    analysis_id = 'adv.detect.aml'
    tx = require_transactions(transactions, analysis_id, needs=('amount',))
    has_sender = 'sender' in tx.columns
    has_time = 'timestamp' in tx.columns and tx['timestamp'].notna().any()

    lower = reporting_threshold * (1 - structuring_band)
    near = tx[(tx['amount'] >= lower) & (tx['amount'] < reporting_threshold)]
    if has_sender:
        per_account = near.groupby('sender').size()
        structuring_accounts = sorted(str(a) for a in per_account[per_account >= 3].index)
    else:
        structuring_accounts = ['(all)'] if len(near) >= 3 else []
    large = int((tx['amount'] >= reporting_threshold).sum())

    round_share = float(((tx['amount'] % round_unit) == 0).mean())

    velocity_accounts: List[str] = []
    rapid_count = 0
    if has_sender and has_time:
        daily = tx.groupby(['sender', tx['timestamp'].dt.date]).size()
        velocity_accounts = sorted({str(a) for (a, _), n in daily.items() if n >= velocity_limit})
        if 'receiver' in tx.columns:
            incoming = tx[['receiver', 'amount', 'timestamp']].rename(
                columns={'receiver': 'account', 'amount': 'in_amount', 'timestamp': 'in_time'})
            incoming['in_id'] = incoming.index
            outgoing = tx[['sender', 'amount', 'timestamp']].rename(
                columns={'sender': 'account', 'amount': 'out_amount', 'timestamp': 'out_time'})
            pairs = incoming.merge(outgoing, on='account')
            gap = (pairs['out_time'] - pairs['in_time']).dt.total_seconds() / 3600
            matched = pairs[(gap >= 0) & (gap <= rapid_hours)
                            & (pairs['out_amount'] >= 0.9 * pairs['in_amount'])
                            & (pairs['out_amount'] <= 1.1 * pairs['in_amount'])]
            rapid_count = int(matched['in_id'].nunique())

    accounts = tx['sender'].nunique() if has_sender else 1
    scores = {
        'structuring': clip_score(len(structuring_accounts) / max(accounts, 1) * 400),
        'round_amounts': clip_score((round_share - 0.1) / 0.4 * 100),
        'velocity': clip_score(len(velocity_accounts) / max(accounts, 1) * 400),
        'rapid_movement': clip_score(rapid_count / len(tx) * 500),
    }
    risk = max(scores.values()) * 0.6 + weighted_score(scores, {}) * 0.4
    alerts = [k for k, v in scores.items() if v >= 50]

    return build_result(
        analysis_id, 'Money Laundering Detection', CATEGORY,
        data={'transactions': int(len(tx)), 'accounts': int(accounts),
              'structuring_accounts': structuring_accounts, 'near_threshold_transactions': int(len(near)),
              'reportable_transactions': large, 'round_amount_share_pct': round(round_share * 100, 2),
              'high_velocity_accounts': velocity_accounts, 'rapid_pass_through': rapid_count,
              'typology_scores': {k: round(v, 1) for k, v in scores.items()},
              'risk_score': round(risk, 1), 'alerts': alerts},
        interpretation=(f"Money-laundering risk {risk:.0f}/100"
                        + (f"; alerts on {', '.join(alerts)}." if alerts else "; no typology alerts.")),
        recommendations=(['File suspicious activity reports for the flagged accounts',
                          'Apply enhanced due diligence to accounts with structuring or pass-through patterns']
                         if alerts else []),
        value=risk, benchmark=30.0, evaluation=rate_score(100 - risk),
    )


def market_manipulation_detection_analysis(prices: Any,
                                           volumes: Any,
                                           pump_window: int = 5,
                                           pump_threshold: float = 0.20,
                                           volume_multiple: float = 2.0,
                                           lookback: int = 20) -> AnalysisResult:
    """
    Price-volume screens for manipulation: joint anomalies (isolation
    forest), pump-and-dump episodes (a sharp rise on heavy volume that
    reverses by half within the same window) and wash-trade proxies
    (volume spikes with no price impact).
    """
    analysis_id = 'adv.detect.manipulation'
    price = require_series(prices, lookback + pump_window * 2, analysis_id, 'prices').reset_index(drop=True)
    volume = require_series(volumes, lookback + pump_window * 2, analysis_id, 'volumes').reset_index(drop=True)
    n = min(len(price), len(volume))
    price, volume = price.iloc[-n:].reset_index(drop=True), volume.iloc[-n:].reset_index(drop=True)
    require(n >= lookback + pump_window * 2, "Prices and volumes do not overlap enough", analysis_id)

    returns = price.pct_change()
    volume_ratio = (volume / volume.shift(1).rolling(lookback).mean()).replace([np.inf, -np.inf], np.nan)
    spikes = detect_volume_spikes(volume, lookback=lookback, spike_threshold=volume_multiple)

    episodes = []
    run_up = price / price.shift(pump_window) - 1
    for t in range(lookback + pump_window, n - pump_window):
        if run_up.iloc[t] >= pump_threshold and volume_ratio.iloc[t - pump_window + 1:t + 1].max() >= volume_multiple:
            peak = price.iloc[t]
            gain = peak - price.iloc[t - pump_window]
            after = price.iloc[t + 1:t + pump_window + 1].min()
            if peak - after >= 0.5 * gain:
                if not episodes or t - episodes[-1]['peak_index'] > pump_window:
                    episodes.append({'peak_index': int(t), 'run_up_pct': round(float(run_up.iloc[t]) * 100, 2),
                                     'reversal_pct': round(float((after / peak - 1) * 100), 2)})

    quiet = returns.abs() < 0.25 * returns.std()
    wash = volume_ratio[(volume_ratio >= volume_multiple) & quiet].dropna()

    features = pd.DataFrame({'return': returns, 'log_volume_change': np.log(volume).diff()}).replace(
        [np.inf, -np.inf], np.nan).dropna()
    forest = isolation_forest_anomalies(features, contamination=0.05)

    scores = {
        'pump_and_dump': clip_score(len(episodes) * 50),
        'wash_trading': clip_score(len(wash) / n * 1000),
        'price_volume_anomalies': clip_score((forest['anomaly_rate'] - 5) * 10),
        'volume_spikes': clip_score(spikes['spike_count'] / n * 500),
    }
    risk = max(scores.values()) * 0.6 + weighted_score(scores, {}) * 0.4
    return build_result(
        analysis_id, 'Market Manipulation Detection', CATEGORY,
        data={'observations': n, 'pump_and_dump_episodes': episodes,
              'wash_trade_days': [int(i) for i in wash.index], 'volume_spikes': spikes,
              'price_volume_anomalies': {k: forest[k] for k in ('anomaly_count', 'anomaly_rate', 'latest_is_anomaly')},
              'screen_scores': {k: round(v, 1) for k, v in scores.items()}, 'risk_score': round(risk, 1)},
        interpretation=(f"Manipulation risk {risk:.0f}/100: {len(episodes)} pump-and-dump episode(s), "
                        f"{len(wash)} high-volume day(s) without price impact."),
        recommendations=(['Refer the flagged sessions to market surveillance for order-level review']
                         if risk >= 50 else []),
        value=risk, benchmark=30.0, evaluation=rate_score(100 - risk),
    )


def advanced_bankruptcy_prediction_analysis(statement: FinancialStatement,
                                            previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Ensemble of five failure models. Altman, Ohlson and Zmijewski give
    probabilities that are averaged; Springate and Taffler add votes.
    """
    analysis_id = 'adv.detect.bankruptcy'
    st = require_statement(statement, analysis_id, needs=('total_assets', 'total_liabilities'))
    altman = altman_z_score(st)
    models = {
        'altman': altman,
        'ohlson': ohlson_o_score(st, previous),
        'zmijewski': zmijewski_score(st),
        'springate': springate_s_score(st),
        'taffler': taffler_z_score(st),
    }

    probabilities = {}
    if altman['z_score'] is not None:
        probabilities['altman'] = altman_default_probability(altman['z_score'], altman['model'])
    for key in ('ohlson', 'zmijewski'):
        if models[key].get('probability') is not None:
            probabilities[key] = models[key]['probability']
    require(probabilities, "None of the failure models could be computed", analysis_id)

    votes = {
        'altman': altman['zone'] == 'distress' if altman['zone'] else None,
        'ohlson': probabilities['ohlson'] > 0.5 if 'ohlson' in probabilities else None,
        'zmijewski': probabilities['zmijewski'] > 0.5 if 'zmijewski' in probabilities else None,
        'springate': models['springate'].get('failing'),
        'taffler': models['taffler'].get('at_risk'),
    }
    cast = {k: v for k, v in votes.items() if v is not None}
    distress_votes = sum(1 for v in cast.values() if v)
    probability = float(np.mean(list(probabilities.values())))
    agreement = max(distress_votes, len(cast) - distress_votes) / len(cast) * 100 if cast else None
    score = clip_score(100 - probability * 200)

    return build_result(
        analysis_id, 'Advanced Bankruptcy Prediction', CATEGORY,
        data={'models': models, 'probabilities': {k: round(v, 4) for k, v in probabilities.items()},
              'ensemble_probability': round(probability, 4), 'distress_votes': distress_votes,
              'models_voting': len(cast), 'model_agreement_pct': round_or_none(agreement, 1)},
        interpretation=(f"Ensemble failure probability {probability * 100:.1f}%; "
                        f"{distress_votes} of {len(cast)} models signal distress."),
        recommendations=(['Prepare a liquidity and refinancing plan; several failure models signal distress']
                         if distress_votes * 2 >= len(cast) and cast else []),
        value=probability * 100, benchmark=5.0, evaluation=rate_score(score),
    )


def _breached(value: Optional[float], direction: str, threshold: float) -> Optional[bool]:
    if value is None:
        return None
    return value < threshold if direction == 'below' else value > threshold


def financial_crisis_prediction_analysis(statements: List[FinancialStatement],
                                         returns: Any = None,
                                         thresholds: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Signal-extraction early warning: each indicator signals when it
    crosses its threshold, and signals are weighted by the inverse of the
    indicator's noise-to-signal ratio.
    """
    analysis_id = 'adv.detect.crisis'
    ordered = require_statements(statements, 2, analysis_id)
    st, prev = ordered[-1], ordered[-2]
    values = {
        'revenue_growth': pct_change(st.revenue, prev.revenue),
        'leverage_change': pct_change(safe_divide(st.total_liabilities, st.total_assets),
                                      safe_divide(prev.total_liabilities, prev.total_assets)),
        'interest_coverage': safe_divide(st.ebit, st.interest_expense),
        'current_ratio': safe_divide(st.total_current_assets, st.total_current_liabilities),
        'operating_cash_flow_margin': safe_divide(st.operating_cash_flow * 100, st.revenue),
        'short_term_debt_share': safe_divide(st.short_term_debt * 100, st.total_debt),
        'drawdown': None,
        'volatility_ratio': None,
    }
    r = to_series(returns)
    if r is not None and len(r) >= 60:
        values['drawdown'] = abs(maximum_drawdown(r)['max_drawdown_pct'])
        values['volatility_ratio'] = safe_divide(r.iloc[-20:].std(), r.std())

    limits = dict(thresholds or {})
    signals = {}
    for key, (direction, default, nsr) in CRISIS_INDICATORS.items():
        threshold = limits.get(key, default)
        signals[key] = {'value': round_or_none(values[key], 4), 'threshold': threshold, 'direction': direction,
                        'signal': _breached(values[key], direction, threshold), 'weight': round(1 / nsr, 3)}
    assessed = {k: s for k, s in signals.items() if s['signal'] is not None}
    require(assessed, "No crisis indicator could be computed", analysis_id)
    total = sum(s['weight'] for s in assessed.values())
    index = sum(s['weight'] for s in assessed.values() if s['signal']) / total * 100
    active = [k for k, s in assessed.items() if s['signal']]
    level = 'crisis' if index >= 60 else 'vulnerable' if index >= 35 else 'watch' if index >= 15 else 'stable'

    return build_result(
        analysis_id, 'Financial Crisis Prediction', CATEGORY,
        data={'indicators': signals, 'crisis_index': round(index, 1), 'level': level,
              'active_signals': active, 'indicators_assessed': len(assessed)},
        interpretation=(f"Crisis index {index:.0f}/100 ({level}) with {len(active)} of {len(assessed)} "
                        "indicators signalling."),
        recommendations=[f"Address the {k.replace('_', ' ')} signal" for k in active],
        value=index, benchmark=35.0, evaluation=rate_score(100 - index),
    )


def realtime_anomaly_detection_analysis(returns: Any = None,
                                        prices: Any = None,
                                        volumes: Any = None,
                                        window: int = 20,
                                        threshold: float = 3.0) -> AnalysisResult:
    """
    Streaming-style checks on the latest observation: rolling z-score
    spike, volatility cluster and volume spike, plus the whole-sample
    z-score and IQR outlier counts for context.
    """
    analysis_id = 'adv.detect.realtime'
    if returns is None and prices is not None:
        returns = require_series(prices, window + 2, analysis_id, 'prices').pct_change().dropna()
    r = require_series(returns, window + 5, analysis_id)

    spikes = detect_spikes(r, window=window, threshold=threshold)
    cluster = detect_volatility_cluster(r, long_window=window)
    zscores = zscore_anomalies(r, threshold)
    iqr = iqr_anomalies(r, 3.0)
    data = {'observations': len(r), 'spikes': spikes, 'volatility_cluster': cluster,
            'zscore_outliers': zscores['anomaly_count'], 'iqr_outliers': iqr['anomaly_count']}

    alerts = []
    if spikes['latest_is_spike']:
        alerts.append('return_spike')
    if cluster['detected']:
        alerts.append('volatility_cluster')
    if volumes is not None:
        volume = require_series(volumes, window + 1, analysis_id, 'volumes')
        data['volume_spike'] = detect_volume_spikes(volume, lookback=window)
        if data['volume_spike']['detected']:
            alerts.append('volume_spike')
    status = 'alert' if len(alerts) >= 2 else 'warning' if alerts else 'normal'
    data.update({'alerts': alerts, 'status': status})
    anomaly_rate = spikes['spike_count'] / len(r) * 100

    return build_result(
        analysis_id, 'Real-Time Anomaly Detection', CATEGORY,
        data=data,
        interpretation=(f"Latest observation status: {status}"
                        + (f" ({', '.join(alerts)})" if alerts else '')
                        + f"; {spikes['spike_count']} spikes in the history."),
        recommendations=['Investigate the latest move before acting on automated signals'] if alerts else [],
        value=anomaly_rate, benchmark=1.0, higher_is_better=False,
        evaluation=Rating.WEAK if status == 'alert' else Rating.ACCEPTABLE if alerts else None,
    )


def volatility_prediction_analysis(returns: Any,
                                   horizon: int = config.FORECAST_HORIZON,
                                   lam: float = config.EWMA_LAMBDA,
                                   periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Next-period volatility from GARCH(1,1), EWMA and realised
    volatility, averaged. GARCH needs the minimum sample in config and
    drops out below it.
    """
    analysis_id = 'adv.detect.volatility'
    r = require_series(returns, 30, analysis_id)
    ann = np.sqrt(periods_per_year)
    realised = float(r.iloc[-20:].std() * ann * 100)
    long_run = float(r.std() * ann * 100)
    ewma = float(ewma_volatility(r, lam, periods_per_year).iloc[-1] * 100)
    forecasts = {'realised': realised, 'ewma': ewma}
    data: Dict[str, Any] = {}
    if len(r) >= config.GARCH_MIN_OBSERVATIONS:
        garch = garch_volatility_forecast(r, forecast_horizon=horizon, periods_per_year=periods_per_year)
        forecasts['garch'] = garch['volatility_forecast'][0]
        data['garch'] = {k: garch[k] for k in ('volatility_forecast', 'persistence', 'half_life',
                                               'long_run_volatility', 'volatility_trend')}
    else:
        logger.debug(f"GARCH skipped: {len(r)} observations")

    combined = float(np.mean(list(forecasts.values())))
    regime = classify_volatility_regime(combined, long_run)
    data.update({'forecasts': {k: round(v, 2) for k, v in forecasts.items()},
                 'combined_forecast': round(combined, 2), 'long_run_volatility': round(long_run, 2),
                 'regime': regime})
    return build_result(
        analysis_id, 'Market Volatility Prediction', CATEGORY,
        data=data,
        interpretation=(f"Expected annualised volatility {combined:.1f}% against a long-run {long_run:.1f}%; "
                        f"{regime['regime'].lower()} and {regime['trend'].lower()}."),
        recommendations=(['Reduce position sizes or hedge while volatility is expanding']
                         if regime['trend'] == 'Expanding' else []),
        value=combined, benchmark=long_run, higher_is_better=False,
    )


def early_warning_system_analysis(statement: FinancialStatement,
                                  previous: Optional[FinancialStatement] = None,
                                  thresholds: Optional[Dict[str, float]] = None,
                                  weights: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Weighted threshold breaches on solvency, liquidity and profitability
    indicators. Thresholds and weights can be overridden per indicator.
    """
    analysis_id = 'adv.detect.early_warning'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    altman = altman_z_score(st)
    values = {
        'current_ratio': safe_divide(st.total_current_assets, st.total_current_liabilities),
        'interest_coverage': safe_divide(st.ebit, st.interest_expense),
        'debt_to_equity': safe_divide(st.total_debt, st.total_equity),
        'net_margin': safe_divide(st.net_income * 100, st.revenue),
        'operating_cash_flow': st.operating_cash_flow,
        'revenue_growth': pct_change(st.revenue, previous.revenue) if previous is not None else None,
        'altman_z': altman['z_score'],
    }
    limits, custom_weights = thresholds or {}, weights or {}
    indicators, breached_weight, assessed_weight = {}, 0.0, 0.0
    for key, (direction, default, weight) in EARLY_WARNING_INDICATORS.items():
        threshold = limits.get(key, default)
        weight = custom_weights.get(key, weight)
        breach = _breached(values[key], direction, threshold)
        indicators[key] = {'value': round_or_none(values[key], 4), 'threshold': threshold,
                           'direction': direction, 'breached': breach, 'weight': weight}
        if breach is not None:
            assessed_weight += weight
            breached_weight += weight if breach else 0.0
    require(assessed_weight > 0, "No warning indicator could be computed", analysis_id)
    score = round(breached_weight / assessed_weight * 100, 1)
    level = 'red' if score >= 50 else 'orange' if score >= 30 else 'yellow' if score > 0 else 'green'
    breaches = [k for k, v in indicators.items() if v['breached']]

    return build_result(
        analysis_id, 'Early Warning System', CATEGORY,
        data={'indicators': indicators, 'warning_score': score, 'level': level, 'breaches': breaches},
        interpretation=(f"Warning level {level} ({score:.0f}/100)"
                        + (f"; breached: {', '.join(breaches)}." if breaches else '; no thresholds breached.')),
        recommendations=[f"Bring {k.replace('_', ' ')} back inside its threshold" for k in breaches],
        value=score, benchmark=30.0, evaluation=rate_score(100 - score),
    )


def intelligent_behavioral_analysis(transactions: Any) -> AnalysisResult:
    """
    Investor behaviour from a trade blotter (asset, side, quantity,
    price, optional timestamp).

    Disposition effect: proportion of gains realised minus proportion of
    losses realised (Odean). Paper gains and losses are open positions
    marked at the last traded price. Overtrading: trades per month and
    round trips. Trend chasing: share of buys made after the price rose
    since the previous trade in the same asset.
    """
    analysis_id = 'adv.detect.behavioral'
    tx = require_transactions(transactions, analysis_id, needs=('asset', 'side', 'quantity', 'price'))
    if 'timestamp' in tx.columns:
        tx = tx.sort_values('timestamp', kind='stable').reset_index(drop=True)
    side = tx['side'].astype(str).str.lower()
    tx['is_buy'] = side.isin(('buy', 'b', 'purchase', 'long'))
    require(tx['is_buy'].any(), "No buy trades found", analysis_id)

    positions: Dict[str, List[float]] = {}
    realised_gains = realised_losses = round_trips = 0
    chased = buys_with_history = 0
    last_price: Dict[str, float] = {}
    for row in tx.itertuples(index=False):
        asset, qty, price = str(row.asset), abs(float(row.quantity)), float(row.price)
        held, cost = positions.get(asset, [0.0, 0.0])
        if row.is_buy:
            if asset in last_price:
                buys_with_history += 1
                chased += price > last_price[asset]
            positions[asset] = [held + qty, (held * cost + qty * price) / (held + qty)]
        elif held > 0:
            if price > cost:
                realised_gains += 1
            elif price < cost:
                realised_losses += 1
            remaining = max(held - qty, 0.0)
            if remaining == 0:
                round_trips += 1
            positions[asset] = [remaining, cost]
        last_price[asset] = price

    paper_gains = sum(1 for a, (h, c) in positions.items() if h > 0 and last_price[a] > c)
    paper_losses = sum(1 for a, (h, c) in positions.items() if h > 0 and last_price[a] < c)
    pgr = safe_divide(realised_gains, realised_gains + paper_gains)
    plr = safe_divide(realised_losses, realised_losses + paper_losses)
    disposition = pgr - plr if pgr is not None and plr is not None else None

    trades_per_month = None
    if 'timestamp' in tx.columns and tx['timestamp'].notna().sum() >= 2:
        span_days = (tx['timestamp'].max() - tx['timestamp'].min()).days
        trades_per_month = len(tx) / max(span_days / 30.0, 1.0)
    chasing = safe_divide(chased, buys_with_history)

    biases = {
        'disposition_effect': clip_score(disposition * 200) if disposition is not None else None,
        'overtrading': clip_score((trades_per_month - 10) * 5) if trades_per_month is not None else None,
        'trend_chasing': clip_score((chasing - 0.5) * 200) if chasing is not None else None,
    }
    assessed = {k: v for k, v in biases.items() if v is not None}
    require(assessed, "Not enough trades to measure behavioural biases", analysis_id)
    bias_index = weighted_score(assessed, {})
    dominant = max(assessed, key=assessed.get)

    return build_result(
        analysis_id, 'Intelligent Behavioural Analysis', CATEGORY,
        data={'trades': int(len(tx)), 'realised_gains': realised_gains, 'realised_losses': realised_losses,
              'paper_gains': paper_gains, 'paper_losses': paper_losses,
              'pgr': round_or_none(pgr), 'plr': round_or_none(plr), 'disposition_effect': round_or_none(disposition),
              'round_trips': round_trips, 'trades_per_month': round_or_none(trades_per_month, 2),
              'trend_chasing_share': round_or_none(chasing), 'bias_scores': {k: round(v, 1) for k, v in assessed.items()},
              'bias_index': round(bias_index, 1), 'dominant_bias': dominant if assessed[dominant] >= 30 else None},
        interpretation=(f"Behavioural bias index {bias_index:.0f}/100"
                        + (f"; strongest bias is {dominant.replace('_', ' ')}." if assessed[dominant] >= 30 else '.')),
        recommendations=(['Set stop-loss and take-profit rules in advance to counter the disposition effect']
                         if biases['disposition_effect'] and biases['disposition_effect'] >= 30 else [])
                        + (['Reduce trading frequency; costs erode returns'] if biases['overtrading'] and biases['overtrading'] >= 30 else []),
        value=bias_index, benchmark=30.0, evaluation=rate_score(100 - bias_index),
    )


def explainable_ai_analysis(statements: List[FinancialStatement],
                            peers: Optional[List[FinancialStatement]] = None,
                            n_repeats: int = 10) -> AnalysisResult:
    """
    Which ratios drive financial strength.

    A random forest learns the Altman Z-score from ratio features over the
    company's years and its peers. Global importance is permutation
    importance; the local explanation for the latest year replaces each
    feature by its sample mean and records the change in prediction.
    """
    analysis_id = 'adv.detect.explainable'
    ordered = require_statements(statements, 1, analysis_id)
    pool = ordered + list(peers or [])
    frame = feature_frame(ordered, peers)
    target = pd.Series([altman_z_score(st)['z_score'] for st in pool], index=frame.index, dtype=float)
    keep = target.notna()
    frame, target = frame[keep], target[keep]
    require(len(frame) >= 6, f"Explainable model needs at least 6 statements, got {len(frame)}", analysis_id)
    require(frame.shape[1] >= 2 and target.std() > 0, "Features or target do not vary", analysis_id)

    model = RandomForestRegressor(n_estimators=200, random_state=config.RANDOM_SEED, min_samples_leaf=1)
    model.fit(frame, target)
    importance = feature_importance_analysis(model, frame, target, n_repeats=n_repeats)

    latest_label = f"company:{ordered[-1].year}:{len(ordered) - 1}"
    require(latest_label in frame.index, "The latest statement has no Altman Z-score", analysis_id)
    latest = frame.loc[[latest_label]]
    base_prediction = float(model.predict(latest)[0])
    contributions = {}
    for column in frame.columns:
        perturbed = latest.copy()
        perturbed[column] = frame[column].mean()
        contributions[column] = round(base_prediction - float(model.predict(perturbed)[0]), 4)
    fit = float(model.score(frame, target))
    top = list(importance)[:3]

    return build_result(
        analysis_id, 'Explainable AI Analysis', CATEGORY,
        data={'samples': int(len(frame)), 'features': list(frame.columns), 'target': 'altman_z_score',
              'global_importance': importance, 'local_contributions': contributions,
              'latest_prediction': round(base_prediction, 3), 'in_sample_r2': round(fit, 4)},
        interpretation=(f"Financial strength is driven mainly by {', '.join(top)}; the model explains "
                        f"{fit * 100:.0f}% of the variation in Z-scores."),
        recommendations=[f"Prioritise improving {k.replace('_', ' ')}" for k, v in
                         sorted(contributions.items(), key=lambda kv: kv[1])[:2] if v < 0],
        value=fit * 100, benchmark=70.0,
    )


def benford_law_analysis(statements: List[FinancialStatement],
                         amounts: Optional[List[float]] = None,
                         min_count: int = 30) -> AnalysisResult:
    """First-digit test over every reported amount (and any extra amounts)."""
    analysis_id = 'adv.detect.benford'
    ordered = require_statements(statements, 1, analysis_id)
    pool = _pooled_amounts(ordered) + list(amounts or [])
    result = benford_analysis(pool, min_count=min_count)
    require(result['conformity'] is not None, result['interpretation'], analysis_id)
    observed = result['observed']
    deviations = {d: round(observed[d] - result['expected'][d], 4) for d in observed}
    worst = int(max(deviations, key=lambda d: abs(deviations[d])))
    return build_result(
        analysis_id, "Benford's Law Analysis", CATEGORY,
        data={**result, 'digit_deviation': deviations, 'largest_deviation_digit': worst},
        interpretation=(f"{result['sample_size']} amounts tested; conformity is {result['conformity']} "
                        f"(MAD {result['mad']:.4f}). {result['interpretation']}."),
        recommendations=([f"Sample entries starting with digit {worst} for substantive testing"]
                         if result['conformity'] in ('marginal', 'nonconformity') else []),
        value=result['mad'], benchmark=0.012, higher_is_better=False,
    )


def earnings_quality_analysis(statements: List[FinancialStatement]) -> AnalysisResult:
    """
    Cash backing and sustainability of earnings: Sloan accruals, cash
    conversion, earnings persistence (AR(1) slope of net income scaled by
    assets) and smoothing (earnings volatility relative to cash flow).
    """
    analysis_id = 'adv.detect.earnings_quality'
    ordered = require_statements(statements, 2, analysis_id)
    accruals = [_accrual_ratio(st, prev) for prev, st in zip(ordered, ordered[1:])]
    accruals = [a for a in accruals if a is not None]
    require(accruals, "Total assets are required to measure accruals", analysis_id)
    conversion = [safe_divide(st.operating_cash_flow, st.net_income) for st in ordered if st.net_income > 0]
    conversion = [c for c in conversion if c is not None]

    scaled = np.array([safe_divide(st.net_income, st.total_assets, 0.0) for st in ordered])
    persistence = None
    if len(scaled) >= 4 and np.std(scaled[:-1]) > 0:
        persistence = float(np.polyfit(scaled[:-1], scaled[1:], 1)[0])
    ocf = np.array([st.operating_cash_flow for st in ordered], dtype=float)
    income = np.array([st.net_income for st in ordered], dtype=float)
    smoothing = safe_divide(float(np.std(income)), float(np.std(ocf))) if len(ordered) >= 3 else None

    avg_accruals = float(np.mean(accruals))
    avg_conversion = float(np.mean(conversion)) if conversion else None
    components = {
        'accruals': clip_score(100 - abs(avg_accruals) / 0.10 * 100),
        'cash_conversion': clip_score(avg_conversion / 1.2 * 100) if avg_conversion is not None else None,
        'persistence': clip_score(persistence * 100) if persistence is not None else None,
        'smoothing': clip_score(100 - abs(1 - smoothing) * 100) if smoothing is not None else None,
    }
    score = weighted_score(components, {'accruals': 0.35, 'cash_conversion': 0.35,
                                        'persistence': 0.15, 'smoothing': 0.15})
    return build_result(
        analysis_id, 'Earnings Quality Analysis', CATEGORY,
        data={'accrual_ratios': [round(a, 4) for a in accruals], 'average_accrual_ratio': round(avg_accruals, 4),
              'cash_conversion': round_or_none(avg_conversion), 'persistence': round_or_none(persistence),
              'smoothing_ratio': round_or_none(smoothing),
              'component_scores': {k: round_or_none(v, 1) for k, v in components.items()},
              'quality_score': round(score, 1)},
        interpretation=(f"Earnings quality {score:.0f}/100; accruals average {avg_accruals * 100:.1f}% of assets"
                        + (f" and operating cash flow is {avg_conversion:.2f}x net income." if avg_conversion is not None
                           else '.')),
        recommendations=(['Earnings rely heavily on accruals; reconcile profit with cash generation']
                         if components['accruals'] < 50 else []),
        value=score, benchmark=60.0, evaluation=rate_score(score),
    )
