"""
Advanced Statistical Analysis
Regression, time series, multivariate, dependence, tail, duration, regime
and nonlinear models on return and price data.
"""

import logging
import math
import warnings
from itertools import combinations
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from scipy.special import gammaln
from sklearn.decomposition import FactorAnalysis
from sklearn.preprocessing import StandardScaler
from statsmodels.stats.diagnostic import het_breuschpagan
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.stats.stattools import durbin_watson
from statsmodels.tsa.api import VAR
from statsmodels.tsa.regime_switching.markov_regression import MarkovRegression
from statsmodels.tsa.seasonal import seasonal_decompose
from statsmodels.tsa.vector_ar.vecm import VECM, coint_johansen, select_coint_rank

from finclick import config
from finclick.analysis.base import build_result, require, require_frame, require_series, series_to_dict
from finclick.analysis.quantitative.ml_models import pca_analysis, regime_detection
from finclick.analysis.quantitative.statistics import (
    autocorrelation, dfa_exponent, distribution_moments, hurst_exponent, jarque_bera_test, ljung_box_test
)
from finclick.analysis.quantitative.time_series import (
    arima_forecast, check_cointegration, garch_volatility_forecast, gjr_garch_volatility_forecast,
    select_arima_order, stationarity_test
)
from finclick.analysis.quantitative.wavelet_denoising import denoise_series, multiresolution_energy
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, round_or_none, safe_divide
from finclick.data.market import returns_from_prices

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.statistical'


def _returns(returns: Any, prices: Any, analysis_id: str, minimum: int) -> pd.Series:
    """Returns as given, else derived from prices."""
    if returns is None and prices is not None:
        returns = returns_from_prices(require_series(prices, minimum + 1, analysis_id, 'prices', varying=True))
    return require_series(returns, minimum, analysis_id, varying=True).reset_index(drop=True)


def _levels(asset_returns: Any, levels: Any, analysis_id: str, minimum: int) -> pd.DataFrame:
    """Log price levels, given directly or rebuilt from asset returns."""
    if levels is not None:
        frame = require_frame(levels, minimum, analysis_id, 2, 'levels')
        require((frame > 0).all().all(), "Price levels must be positive", analysis_id)
        return np.log(frame).reset_index(drop=True)
    frame = require_frame(asset_returns, minimum, analysis_id, 2, 'asset_returns')
    return np.log1p(frame).cumsum().reset_index(drop=True)


def multiple_regression_analysis(returns: Any = None,
                                 factor_returns: Any = None,
                                 asset_returns: Any = None,
                                 dependent: Optional[str] = None) -> AnalysisResult:
    """
    OLS of a dependent series on several explanatory series, with
    multicollinearity (VIF), heteroskedasticity (Breusch-Pagan) and
    residual autocorrelation (Durbin-Watson) diagnostics.

    The dependent variable is `returns` regressed on `factor_returns`, or
    the `dependent` column of `asset_returns` regressed on the rest.
    """
    analysis_id = 'adv.stat.regression'
    if returns is not None and factor_returns is not None:
        X = require_frame(factor_returns, 20, analysis_id, 1, 'factor_returns')
        y = require_series(returns, 20, analysis_id, varying=True)
        frame = pd.concat([y.reset_index(drop=True).rename('y'), X.reset_index(drop=True)], axis=1).dropna()
        y, X = frame['y'], frame.drop(columns='y')
        target = 'returns'
    else:
        frame = require_frame(asset_returns, 20, analysis_id, 3, 'asset_returns')
        target = dependent if dependent in frame.columns else frame.columns[0]
        y, X = frame[target], frame.drop(columns=target)
    require(len(y) > X.shape[1] + 10, "Too few observations for the number of regressors", analysis_id)

    exog = sm.add_constant(X)
    fit = sm.OLS(y, exog).fit()
    vif = {str(c): round(float(variance_inflation_factor(exog.values, i)), 3)
           for i, c in enumerate(exog.columns) if c != 'const'} if X.shape[1] > 1 else {str(X.columns[0]): 1.0}
    bp = het_breuschpagan(fit.resid, exog)
    dw = float(durbin_watson(fit.resid))
    significant = [str(c) for c in X.columns if fit.pvalues[c] < 0.05]
    collinear = [c for c, v in vif.items() if v > 10]

    recommendations = []
    if collinear:
        recommendations.append(f"Drop or combine collinear regressors: {', '.join(collinear)}")
    if bp[1] < 0.05:
        recommendations.append('Residuals are heteroskedastic; use robust standard errors')

    return build_result(
        analysis_id, 'Multiple Regression Analysis', CATEGORY,
        data={'dependent': str(target), 'observations': int(fit.nobs),
              'coefficients': {str(k): round(float(v), 6) for k, v in fit.params.items()},
              't_values': {str(k): round(float(v), 3) for k, v in fit.tvalues.items()},
              'p_values': {str(k): round(float(v), 4) for k, v in fit.pvalues.items()},
              'r_squared': round(float(fit.rsquared), 4), 'adj_r_squared': round(float(fit.rsquared_adj), 4),
              'f_statistic': round(float(fit.fvalue), 3), 'f_p_value': round(float(fit.f_pvalue), 4),
              'vif': vif, 'breusch_pagan_p_value': round(float(bp[1]), 4), 'durbin_watson': round(dw, 3),
              'significant_regressors': significant},
        interpretation=(f"The regressors explain {fit.rsquared * 100:.1f}% of the variation in {target}; "
                        f"{len(significant)} of {X.shape[1]} are significant at 5%."),
        recommendations=recommendations,
        value=float(fit.rsquared_adj) * 100, evaluation=rate_score(float(fit.rsquared_adj) * 100 + 30),
    )


def advanced_time_series_analysis(returns: Any = None,
                                  prices: Any = None,
                                  period: int = 5,
                                  nlags: int = 10) -> AnalysisResult:
    """
    Trend/seasonal/residual decomposition of the level series plus
    stationarity, autocorrelation and distribution diagnostics of returns.
    """
    analysis_id = 'adv.stat.time_series'
    r = _returns(returns, prices, analysis_id, 4 * period)
    level = (require_series(prices, 4 * period, analysis_id, 'prices').reset_index(drop=True)
             if prices is not None else 100 * (1 + r).cumprod())

    decomposition = seasonal_decompose(level.values, model='additive', period=period)
    trend = pd.Series(decomposition.trend).dropna()
    resid = pd.Series(decomposition.resid).dropna()
    seasonal = pd.Series(decomposition.seasonal)
    detrended = pd.Series(decomposition.resid + decomposition.seasonal).dropna()
    deseasonalised = (resid + trend.loc[resid.index]).var()
    trend_strength = max(0.0, 1 - resid.var() / deseasonalised) if deseasonalised > 0 else 0.0
    seasonal_strength = max(0.0, 1 - resid.var() / detrended.var()) if detrended.var() > 0 else 0.0

    level_adf = stationarity_test(level)
    returns_adf = stationarity_test(r)
    acf = autocorrelation(r, nlags)
    ljung = ljung_box_test(r, nlags)
    moments = distribution_moments(r)
    normality = jarque_bera_test(r) if len(r) >= 8 else None

    return build_result(
        analysis_id, 'Advanced Time Series Analysis', CATEGORY,
        data={'decomposition': {'period': period, 'trend_strength': round(float(trend_strength), 4),
                                'seasonal_strength': round(float(seasonal_strength), 4),
                                'seasonal_pattern': np.round(seasonal.iloc[:period].values, 6).tolist(),
                                'trend_direction': 'up' if trend.iloc[-1] > trend.iloc[0] else 'down'},
              'level_stationarity': level_adf, 'returns_stationarity': returns_adf,
              'autocorrelation': acf, 'ljung_box': ljung, 'moments': moments, 'normality': normality},
        interpretation=(f"Levels are {'stationary' if level_adf['is_stationary'] else 'non-stationary'} and returns "
                        f"{'stationary' if returns_adf['is_stationary'] else 'non-stationary'}; "
                        f"returns {'show' if ljung['autocorrelated'] else 'show no'} significant autocorrelation "
                        f"and the trend explains {trend_strength * 100:.0f}% of level variation."),
        recommendations=(['Return autocorrelation suggests exploitable momentum or mean reversion']
                         if ljung['autocorrelated'] else []),
        value=float(trend_strength) * 100,
    )


def arima_analysis(returns: Any = None,
                   prices: Any = None,
                   steps: int = config.FORECAST_HORIZON,
                   order: Optional[Tuple[int, int, int]] = None,
                   alpha: float = 0.05) -> AnalysisResult:
    """ARIMA forecast of prices (or returns) with order chosen by AIC."""
    analysis_id = 'adv.stat.arima'
    series = (require_series(prices, 30, analysis_id, 'prices', varying=True) if prices is not None
              else require_series(returns, 30, analysis_id, varying=True)).reset_index(drop=True)
    selection = select_arima_order(series) if order is None else None
    forecast = arima_forecast(series, order=tuple(selection['order']) if selection else tuple(order),
                              steps=steps, alpha=alpha)
    last = float(series.iloc[-1])
    end = forecast['forecast'][-1]
    width = (forecast['upper'][-1] - forecast['lower'][-1]) / 2
    change = safe_divide((end - last) * 100, abs(last)) if prices is not None else None

    return build_result(
        analysis_id, 'ARIMA Forecast', CATEGORY,
        data={'series': 'prices' if prices is not None else 'returns', 'last_value': round(last, 6),
              **forecast, 'expected_change_pct': round_or_none(change, 2),
              'order_candidates': selection['candidates'] if selection else None},
        interpretation=(f"ARIMA{tuple(forecast['order'])} projects {end:,.4f} after {steps} periods "
                        f"(±{width:,.4f} at {int((1 - alpha) * 100)}% confidence)."),
        value=change,
    )


def garch_analysis(returns: Any = None,
                   prices: Any = None,
                   horizon: int = config.FORECAST_HORIZON,
                   confidence: float = config.VAR_CONFIDENCE,
                   periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    GARCH(1,1) and GJR-GARCH(1,1,1) volatility models; the better fit by
    AIC drives the one-period VaR.
    """
    analysis_id = 'adv.stat.garch'
    r = _returns(returns, prices, analysis_id, config.GARCH_MIN_OBSERVATIONS)
    symmetric = garch_volatility_forecast(r, horizon, periods_per_year=periods_per_year)
    asymmetric = gjr_garch_volatility_forecast(r, horizon, periods_per_year)
    best = 'gjr_garch' if asymmetric['aic'] < symmetric['aic'] else 'garch'
    chosen = asymmetric if best == 'gjr_garch' else symmetric
    next_sigma = chosen['volatility_forecast'][0] / 100 / math.sqrt(periods_per_year)
    var = (stats.norm.ppf(confidence) * next_sigma - float(r.mean())) * 100
    realised = float(r.std() * math.sqrt(periods_per_year) * 100)

    return build_result(
        analysis_id, 'GARCH Volatility Analysis', CATEGORY,
        data={'garch': {k: v for k, v in symmetric.items() if k != 'conditional_volatility'},
              'gjr_garch': asymmetric, 'selected_model': best,
              'conditional_volatility': symmetric['conditional_volatility'][-60:],
              'next_period_var_pct': round(var, 4), 'confidence': confidence,
              'realised_volatility': round(realised, 2)},
        interpretation=(f"Volatility is {symmetric['current_volatility_annualized']:.1f}% annualised with persistence "
                        f"{symmetric['persistence']:.2f}"
                        + (f" (half-life {symmetric['half_life']:.0f} periods)" if symmetric['half_life'] else '')
                        + f"; {asymmetric['leverage_description'].lower()}. Next-period VaR {var:.2f}%."),
        recommendations=(['Shocks are highly persistent; size positions for sustained high volatility']
                         if symmetric['persistence'] > 0.97 else []),
        value=symmetric['current_volatility_annualized'], benchmark=realised, higher_is_better=False,
    )


def pca_statistical_analysis(asset_returns: Any, n_components: int = 3,
                             variance_target: float = 80.0) -> AnalysisResult:
    analysis_id = 'adv.stat.pca'
    frame = require_frame(asset_returns, 20, analysis_id, 2, 'asset_returns')
    full = pca_analysis(frame, frame.shape[1])
    cumulative = np.cumsum(full['explained_variance_ratio'])
    needed = int(np.searchsorted(cumulative, variance_target) + 1)
    first = full['explained_variance_ratio'][0]
    keep = [f'PC{i + 1}' for i in range(min(n_components, full['n_components']))]

    return build_result(
        analysis_id, 'Principal Component Analysis', CATEGORY,
        data={'explained_variance_ratio': full['explained_variance_ratio'],
              'cumulative_variance': np.round(cumulative, 2).tolist(), 'eigenvalues': full['eigenvalues'],
              'components_for_target': min(needed, full['n_components']), 'variance_target': variance_target,
              'loadings': {pc: full['loadings'][pc] for pc in keep},
              'components': {pc: full['components'][pc] for pc in keep},
              'kaiser_components': sum(1 for v in full['eigenvalues'] if v > 1)},
        interpretation=(f"The first component explains {first:.1f}% of variance; {min(needed, full['n_components'])} "
                        f"of {frame.shape[1]} components reach {variance_target:.0f}%."),
        recommendations=(['A single factor dominates; diversification across these assets is limited']
                         if first > 60 else []),
        value=first, benchmark=50.0, higher_is_better=False,
    )


def factor_analysis(asset_returns: Any, n_factors: int = 2) -> AnalysisResult:
    """
    Latent factor model (scikit-learn FactorAnalysis) on standardised
    returns: loadings, communalities and unique variances.
    """
    analysis_id = 'adv.stat.factor'
    frame = require_frame(asset_returns, 30, analysis_id, 3, 'asset_returns')
    n_factors = max(1, min(n_factors, frame.shape[1] - 1))
    X = StandardScaler().fit_transform(frame.values)
    model = FactorAnalysis(n_components=n_factors, random_state=config.RANDOM_SEED).fit(X)
    loadings = pd.DataFrame(model.components_.T, index=[str(c) for c in frame.columns],
                            columns=[f'F{i + 1}' for i in range(n_factors)])
    communality = (loadings ** 2).sum(axis=1)
    variance_share = (loadings ** 2).sum(axis=0) / frame.shape[1] * 100
    dominant = {f: str(loadings[f].abs().idxmax()) for f in loadings.columns}

    return build_result(
        analysis_id, 'Factor Analysis', CATEGORY,
        data={'n_factors': n_factors, 'loadings': loadings.round(4).to_dict(),
              'communalities': communality.round(4).to_dict(),
              'uniqueness': dict(zip(loadings.index, np.round(model.noise_variance_, 4).tolist())),
              'variance_explained_pct': variance_share.round(2).to_dict(),
              'total_variance_explained_pct': round(float(variance_share.sum()), 2),
              'dominant_asset': dominant, 'log_likelihood': round(float(model.score(X) * len(X)), 2)},
        interpretation=(f"{n_factors} common factor(s) explain {variance_share.sum():.1f}% of standardised "
                        f"variance; {dominant['F1']} loads most on the first factor."),
        value=float(variance_share.sum()),
    )


def variance_anova_analysis(asset_returns: Any = None,
                            groups: Optional[Dict[str, List[float]]] = None) -> AnalysisResult:
    """
    One-way ANOVA of group means, with Kruskal-Wallis as the rank-based
    check and Levene's test for equal variances.
    """
    analysis_id = 'adv.stat.anova'
    if groups:
        samples = {str(k): np.asarray(v, dtype=float) for k, v in groups.items()}
    else:
        frame = require_frame(asset_returns, 3, analysis_id, 2, 'asset_returns')
        samples = {str(c): frame[c].values for c in frame.columns}
    samples = {k: v[~np.isnan(v)] for k, v in samples.items()}
    require(len(samples) >= 2 and all(len(v) >= 3 for v in samples.values()),
            "ANOVA needs at least two groups of three observations", analysis_id)

    values = list(samples.values())
    f_stat, f_p = stats.f_oneway(*values)
    h_stat, h_p = stats.kruskal(*values)
    l_stat, l_p = stats.levene(*values)
    pooled = np.concatenate(values)
    ss_between = sum(len(v) * (v.mean() - pooled.mean()) ** 2 for v in values)
    ss_total = float(((pooled - pooled.mean()) ** 2).sum())
    eta = safe_divide(ss_between, ss_total, 0.0)

    return build_result(
        analysis_id, 'Variance Analysis (ANOVA)', CATEGORY,
        data={'groups': {k: {'n': int(len(v)), 'mean': round(float(v.mean()), 6), 'std': round(float(v.std(ddof=1)), 6)}
                         for k, v in samples.items()},
              'f_statistic': round(float(f_stat), 4), 'p_value': round(float(f_p), 4),
              'kruskal_h': round(float(h_stat), 4), 'kruskal_p_value': round(float(h_p), 4),
              'levene_statistic': round(float(l_stat), 4), 'levene_p_value': round(float(l_p), 4),
              'eta_squared': round(float(eta), 4), 'means_differ': bool(f_p < 0.05),
              'variances_differ': bool(l_p < 0.05)},
        interpretation=(f"Group means {'differ' if f_p < 0.05 else 'do not differ'} significantly "
                        f"(F={f_stat:.2f}, p={f_p:.3f}); group membership explains {eta * 100:.1f}% of variance."),
        recommendations=(["Variances are unequal; rely on the Kruskal-Wallis result"] if l_p < 0.05 else []),
        value=float(eta) * 100,
    )


def cointegration_analysis(asset_returns: Any = None, levels: Any = None,
                           det_order: int = 0, k_ar_diff: int = 1) -> AnalysisResult:
    """
    Long-run equilibrium between price levels: Engle-Granger for each pair
    and the Johansen trace test for the system rank.
    """
    analysis_id = 'adv.stat.cointegration'
    frame = _levels(asset_returns, levels, analysis_id, 30)
    pairs = {}
    for a, b in combinations(frame.columns, 2):
        test = check_cointegration(frame[a], frame[b])
        pairs[f'{a}~{b}'] = test

    johansen = coint_johansen(frame.values, det_order, k_ar_diff)
    trace = johansen.lr1
    critical = johansen.cvt[:, 1]
    rank = 0
    for stat_value, crit in zip(trace, critical):
        if stat_value > crit:
            rank += 1
        else:
            break
    cointegrated_pairs = [k for k, v in pairs.items() if v['is_cointegrated']]

    return build_result(
        analysis_id, 'Cointegration Analysis', CATEGORY,
        data={'engle_granger': pairs, 'cointegrated_pairs': cointegrated_pairs,
              'johansen': {'trace_statistics': np.round(trace, 4).tolist(),
                           'critical_values_95': np.round(critical, 4).tolist(),
                           'rank': rank,
                           'cointegrating_vector': np.round(johansen.evec[:, 0], 4).tolist()}},
        interpretation=(f"Johansen finds {rank} cointegrating relation(s) among {frame.shape[1]} series; "
                        f"{len(cointegrated_pairs)} pair(s) pass Engle-Granger at 5%."),
        recommendations=([f"Pairs {', '.join(cointegrated_pairs)} are candidates for spread trading"]
                         if cointegrated_pairs else []),
        value=rank, evaluation=Rating.GOOD if rank else Rating.ACCEPTABLE,
    )


def var_model_analysis(asset_returns: Any, maxlags: int = 5, horizon: int = 10,
                       steps: int = config.FORECAST_HORIZON) -> AnalysisResult:
    """
    Vector autoregression with lag order by AIC, pairwise Granger
    causality and cumulative impulse responses.
    """
    analysis_id = 'adv.stat.var'
    frame = require_frame(asset_returns, 50, analysis_id, 2, 'asset_returns').reset_index(drop=True)
    frame.columns = [str(c) for c in frame.columns]
    model = VAR(frame)
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        fit = model.fit(maxlags=maxlags, ic='aic')
        if fit.k_ar == 0:
            fit = model.fit(1)

    causality = {}
    for caused in frame.columns:
        for causing in frame.columns:
            if caused != causing:
                p = float(fit.test_causality(caused, [causing], kind='f').pvalue)
                causality[f'{causing}->{caused}'] = round(p, 4)
    responses = fit.irf(horizon).cum_effects[-1]
    forecast = fit.forecast(frame.values[-fit.k_ar:], steps)
    significant = [k for k, p in causality.items() if p < 0.05]

    return build_result(
        analysis_id, 'VAR Model', CATEGORY,
        data={'lag_order': int(fit.k_ar), 'aic': round(float(fit.aic), 4),
              'granger_p_values': causality, 'significant_causality': significant,
              'cumulative_impulse_response': {
                  f'{imp}->{resp}': round(float(responses[j, i]), 6)
                  for i, imp in enumerate(frame.columns) for j, resp in enumerate(frame.columns)},
              'forecast': {c: np.round(forecast[:, i], 6).tolist() for i, c in enumerate(frame.columns)},
              'stable': bool(fit.is_stable())},
        interpretation=(f"A VAR({fit.k_ar}) finds {len(significant)} significant Granger-causal link(s)"
                        + (f": {', '.join(significant)}." if significant else '.')),
        recommendations=([f"Use {significant[0].split('->')[0]} as a leading indicator"] if significant else []),
        value=len(significant),
    )


def vecm_analysis(asset_returns: Any = None, levels: Any = None, k_ar_diff: int = 1,
                  steps: int = config.FORECAST_HORIZON) -> AnalysisResult:
    """Vector error correction model on cointegrated price levels."""
    analysis_id = 'adv.stat.vecm'
    frame = _levels(asset_returns, levels, analysis_id, 50)
    frame.columns = [str(c) for c in frame.columns]
    rank = int(select_coint_rank(frame.values, det_order=0, k_ar_diff=k_ar_diff, method='trace', signif=0.05).rank)
    if rank == 0:
        return build_result(
            analysis_id, 'VECM Analysis', CATEGORY,
            data={'cointegration_rank': 0, 'model': None},
            interpretation='No cointegration was found, so there is no error-correction mechanism; '
                           'model the differenced series with a VAR instead.',
            value=0, evaluation=Rating.ACCEPTABLE,
        )
    rank = min(rank, frame.shape[1] - 1)
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        fit = VECM(frame.values, k_ar_diff=k_ar_diff, coint_rank=rank, deterministic='ci').fit()
    alpha = fit.alpha
    adjusting = [c for i, c in enumerate(frame.columns) if fit.pvalues_alpha[i, 0] < 0.05]
    forecast = np.exp(fit.predict(steps=steps)) / np.exp(frame.values[-1])

    return build_result(
        analysis_id, 'VECM Analysis', CATEGORY,
        data={'cointegration_rank': rank,
              'adjustment_speeds': {c: np.round(alpha[i], 6).tolist() for i, c in enumerate(frame.columns)},
              'cointegrating_vectors': np.round(fit.beta, 4).tolist(),
              'error_correcting_series': adjusting,
              'forecast_relative_level': {c: np.round(forecast[:, i], 6).tolist()
                                          for i, c in enumerate(frame.columns)}},
        interpretation=(f"{rank} long-run relation(s); "
                        + (f"{', '.join(adjusting)} adjust significantly towards equilibrium."
                           if adjusting else "no series adjusts significantly towards equilibrium.")),
        value=rank, evaluation=Rating.GOOD,
    )


def _gaussian_copula_loglik(z1: np.ndarray, z2: np.ndarray, rho: float) -> float:
    det = 1 - rho ** 2
    return float(np.sum(-0.5 * np.log(det) - (rho ** 2 * (z1 ** 2 + z2 ** 2) - 2 * rho * z1 * z2) / (2 * det)))


def _t_copula_loglik(u1: np.ndarray, u2: np.ndarray, rho: float, nu: float) -> float:
    x1, x2 = stats.t.ppf(u1, nu), stats.t.ppf(u2, nu)
    det = 1 - rho ** 2
    joint = (gammaln((nu + 2) / 2) - gammaln(nu / 2) - np.log(nu * np.pi) - 0.5 * np.log(det)
             - (nu + 2) / 2 * np.log1p((x1 ** 2 + x2 ** 2 - 2 * rho * x1 * x2) / (nu * det)))
    return float(np.sum(joint - stats.t.logpdf(x1, nu) - stats.t.logpdf(x2, nu)))


def copula_analysis(asset_returns: Any = None,
                    returns: Any = None,
                    benchmark_returns: Any = None,
                    tail_quantile: float = 0.05) -> AnalysisResult:
    """
    Dependence beyond correlation.

    Gaussian and Student-t copulas are fitted to rank-transformed pairs
    (correlation from Kendall's tau, degrees of freedom by maximum
    likelihood); the t copula's tail dependence is compared with the
    empirical joint-crash frequency.
    """
    analysis_id = 'adv.stat.copula'
    if returns is not None and benchmark_returns is not None:
        frame = pd.concat([require_series(returns, 30, analysis_id, varying=True).reset_index(drop=True),
                           require_series(benchmark_returns, 30, analysis_id, varying=True).reset_index(drop=True)],
                          axis=1, keys=['asset', 'benchmark']).dropna()
    else:
        frame = require_frame(asset_returns, 30, analysis_id, 2, 'asset_returns').iloc[:, :2]
    require(len(frame) >= 30, "Copula fitting needs at least 30 paired observations", analysis_id)
    a, b = frame.columns[:2]
    n = len(frame)
    u1 = frame[a].rank().values / (n + 1)
    u2 = frame[b].rank().values / (n + 1)

    tau = float(stats.kendalltau(frame[a], frame[b])[0])
    rho = float(np.clip(math.sin(math.pi * tau / 2), -0.99, 0.99))
    gauss_ll = _gaussian_copula_loglik(stats.norm.ppf(u1), stats.norm.ppf(u2), rho)
    grid = [2, 3, 4, 5, 6, 8, 10, 15, 20, 30]
    t_lls = {nu: _t_copula_loglik(u1, u2, rho, nu) for nu in grid}
    nu = max(t_lls, key=t_lls.get)
    t_tail = 2 * stats.t.cdf(-math.sqrt((nu + 1) * (1 - rho) / (1 + rho)), nu + 1)
    lower = safe_divide(float(((u1 <= tail_quantile) & (u2 <= tail_quantile)).mean()), tail_quantile, 0.0)
    upper = safe_divide(float(((u1 > 1 - tail_quantile) & (u2 > 1 - tail_quantile)).mean()), tail_quantile, 0.0)
    aic = {'gaussian': 2 - 2 * gauss_ll, 'student_t': 4 - 2 * t_lls[nu]}
    best = min(aic, key=aic.get)

    return build_result(
        analysis_id, 'Copula Dependence Analysis', CATEGORY,
        data={'pair': [str(a), str(b)], 'kendall_tau': round(tau, 4),
              'spearman_rho': round(float(stats.spearmanr(frame[a], frame[b])[0]), 4),
              'copula_correlation': round(rho, 4), 'student_t_dof': nu,
              'aic': {k: round(v, 3) for k, v in aic.items()}, 'best_copula': best,
              'model_tail_dependence': round(float(t_tail), 4) if best == 'student_t' else 0.0,
              'empirical_lower_tail_dependence': round(lower, 4),
              'empirical_upper_tail_dependence': round(upper, 4)},
        interpretation=(f"Kendall's tau is {tau:.2f}; the {best.replace('_', '-')} copula fits best"
                        + (f" with tail dependence {t_tail:.2f}, so joint crashes are more likely than "
                           "correlation implies." if best == 'student_t' else ", with no tail dependence.")),
        recommendations=(['Diversification fails in the lower tail; stress test joint losses']
                         if lower > 0.3 else []),
        value=lower * 100, benchmark=tail_quantile * 100 * 4, higher_is_better=False,
    )


def _gpd_tail(losses: np.ndarray, u: float, xi: float, beta: float, q: float) -> Tuple[float, Optional[float]]:
    n, nu = len(losses), int((losses > u).sum())
    ratio = n / nu * (1 - q)
    var = u + beta * math.log(1 / ratio) if abs(xi) < 1e-6 else u + beta / xi * (ratio ** -xi - 1)
    es = (var + beta - xi * u) / (1 - xi) if xi < 1 else None
    return var, es


def extreme_value_analysis(returns: Any = None,
                           prices: Any = None,
                           block_size: int = 21,
                           threshold_quantile: float = 0.95,
                           confidence: float = 0.99) -> AnalysisResult:
    """
    Extreme value theory on losses.

    Block maxima are fitted with a generalised extreme value distribution
    and threshold exceedances with a generalised Pareto distribution,
    whose tail gives EVT VaR and expected shortfall.
    """
    analysis_id = 'adv.stat.evt'
    r = _returns(returns, prices, analysis_id, 10 * block_size)
    losses = -r.values
    blocks = len(losses) // block_size
    maxima = losses[:blocks * block_size].reshape(blocks, block_size).max(axis=1)
    c, loc, scale = stats.genextreme.fit(maxima)
    gev_xi = -c
    return_levels = {f'1_in_{k}_blocks': round(float(stats.genextreme.ppf(1 - 1 / k, c, loc, scale)) * 100, 4)
                     for k in (10, 50, 100)}

    u = float(np.quantile(losses, threshold_quantile))
    excess = losses[losses > u] - u
    require(len(excess) >= 10, "Too few threshold exceedances for a Pareto fit", analysis_id)
    xi, _, beta = stats.genpareto.fit(excess, floc=0)
    var, es = _gpd_tail(losses, u, xi, beta, confidence)
    historical = float(np.quantile(losses, confidence))

    if gev_xi > 0.05:
        tail = 'heavy (Frechet)'
    elif gev_xi < -0.05:
        tail = 'bounded (Weibull)'
    else:
        tail = 'thin (Gumbel)'

    return build_result(
        analysis_id, 'Extreme Value Analysis', CATEGORY,
        data={'gev': {'shape_xi': round(float(gev_xi), 4), 'location': round(float(loc), 6),
                      'scale': round(float(scale), 6), 'blocks': int(blocks), 'block_size': block_size,
                      'return_levels_pct': return_levels},
              'gpd': {'threshold_pct': round(u * 100, 4), 'exceedances': int(len(excess)),
                      'shape_xi': round(float(xi), 4), 'scale': round(float(beta), 6)},
              'tail_type': tail, 'confidence': confidence,
              'evt_var_pct': round(var * 100, 4), 'evt_es_pct': round_or_none(es * 100 if es else None, 4),
              'historical_var_pct': round(historical * 100, 4)},
        interpretation=(f"The loss tail is {tail}; EVT {confidence * 100:.0f}% VaR is {var * 100:.2f}% "
                        f"against {historical * 100:.2f}% historical"
                        + (f", with expected shortfall {es * 100:.2f}%." if es else '.')),
        recommendations=(['Tail risk is heavier than normal; base capital on EVT rather than parametric VaR']
                         if gev_xi > 0.05 or xi > 0.1 else []),
        value=var * 100, benchmark=historical * 100, higher_is_better=False,
    )


def _drawdown_spells(returns: pd.Series) -> Tuple[np.ndarray, np.ndarray]:
    """Underwater spell lengths and whether each recovered."""
    wealth = (1 + returns).cumprod().values
    peak = np.maximum.accumulate(wealth)
    durations, events, length = [], [], 0
    for w, p in zip(wealth, peak):
        if w < p:
            length += 1
        elif length:
            durations.append(length)
            events.append(1)
            length = 0
    if length:
        durations.append(length)
        events.append(0)
    return np.asarray(durations, dtype=float), np.asarray(events, dtype=int)


def kaplan_meier(durations: np.ndarray, events: np.ndarray) -> pd.DataFrame:
    """Product-limit survival curve with Greenwood standard errors."""
    rows, survival, greenwood = [], 1.0, 0.0
    for t in np.unique(durations[events == 1]):
        at_risk = int((durations >= t).sum())
        failed = int(((durations == t) & (events == 1)).sum())
        survival *= 1 - failed / at_risk
        if at_risk > failed:
            greenwood += failed / (at_risk * (at_risk - failed))
        rows.append({'time': float(t), 'at_risk': at_risk, 'events': failed, 'survival': survival,
                     'std_error': survival * math.sqrt(greenwood)})
    return pd.DataFrame(rows, columns=['time', 'at_risk', 'events', 'survival', 'std_error'])


def survival_analysis(durations: Optional[List[float]] = None,
                      events: Optional[List[int]] = None,
                      returns: Any = None,
                      horizons: Tuple[int, ...] = (5, 21, 63)) -> AnalysisResult:
    """
    Time-to-event analysis with Kaplan-Meier and an exponential hazard.

    Durations (with event flags, 0 = censored) can describe defaults,
    churn or loan prepayment; without them the recovery times of return
    drawdowns are used, the ongoing drawdown being censored.
    """
    analysis_id = 'adv.stat.survival'
    if durations is not None:
        d = np.asarray(durations, dtype=float)
        e = np.ones(len(d), dtype=int) if events is None else np.asarray(events, dtype=int)
        require(len(e) == len(d), "Events must match durations", analysis_id)
        subject = 'duration'
    else:
        d, e = _drawdown_spells(require_series(returns, 60, analysis_id))
        subject = 'drawdown recovery'
    require(len(d) >= 5 and e.sum() >= 2, "Survival analysis needs at least five spells and two events", analysis_id)

    curve = kaplan_meier(d, e)
    below = curve[curve['survival'] <= 0.5]
    km_median = float(below['time'].iloc[0]) if len(below) else None
    hazard = e.sum() / d.sum()
    exp_median = math.log(2) / hazard

    def km_at(t):
        earlier = curve[curve['time'] <= t]
        return float(earlier['survival'].iloc[-1]) if len(earlier) else 1.0

    comparison = {str(h): {'kaplan_meier': round(km_at(h), 4), 'exponential': round(math.exp(-hazard * h), 4)}
                  for h in horizons}

    return build_result(
        analysis_id, 'Survival Analysis', CATEGORY,
        data={'subject': subject, 'spells': int(len(d)), 'events': int(e.sum()), 'censored': int((e == 0).sum()),
              'kaplan_meier': curve.round(4).to_dict(orient='records'),
              'median_survival_km': km_median, 'hazard_rate': round(float(hazard), 6),
              'median_survival_exponential': round(exp_median, 2),
              'mean_duration': round(float(d.mean()), 2), 'survival_at': comparison},
        interpretation=(f"Median {subject} time is "
                        + (f"{km_median:.0f} periods (Kaplan-Meier)" if km_median is not None else "beyond the sample")
                        + f" against {exp_median:.1f} under a constant hazard of {hazard:.4f} per period."),
        value=km_median if km_median is not None else exp_median,
    )


def markov_model_analysis(returns: Any = None,
                          prices: Any = None,
                          n_states: int = 3) -> AnalysisResult:
    """
    Return-state Markov chain: quantile states, empirical transition
    matrix, stationary distribution, expected durations and a chi-square
    test of whether today's state depends on yesterday's.
    """
    analysis_id = 'adv.stat.markov'
    r = _returns(returns, prices, analysis_id, 30 * n_states)
    labels = ['down', 'flat', 'up'] if n_states == 3 else [f'state_{i + 1}' for i in range(n_states)]
    states = pd.qcut(r, n_states, labels=False, duplicates='drop').astype(int).values
    k = int(states.max()) + 1
    require(k >= 2, "Returns do not separate into states", analysis_id)
    labels = labels[:k]

    counts = np.zeros((k, k))
    for a, b in zip(states[:-1], states[1:]):
        counts[a, b] += 1
    P = counts / counts.sum(axis=1, keepdims=True)
    eigenvalues, eigenvectors = np.linalg.eig(P.T)
    stationary = np.real(eigenvectors[:, np.argmin(np.abs(eigenvalues - 1))])
    stationary = stationary / stationary.sum()
    durations = [round(float(1 / (1 - P[i, i])), 2) if P[i, i] < 1 else None for i in range(k)]
    chi2, p_value, _, _ = stats.chi2_contingency(counts)
    current = int(states[-1])

    return build_result(
        analysis_id, 'Markov Model Analysis', CATEGORY,
        data={'states': labels, 'transition_matrix': {labels[i]: dict(zip(labels, np.round(P[i], 4).tolist()))
                                                       for i in range(k)},
              'stationary_distribution': dict(zip(labels, np.round(stationary, 4).tolist())),
              'expected_durations': dict(zip(labels, durations)),
              'current_state': labels[current],
              'next_state_probabilities': dict(zip(labels, np.round(P[current], 4).tolist())),
              'chi_square': round(float(chi2), 4), 'dependence_p_value': round(float(p_value), 4)},
        interpretation=(f"From the current '{labels[current]}' state the most likely next state is "
                        f"'{labels[int(np.argmax(P[current]))]}' ({P[current].max() * 100:.0f}%); state dependence "
                        f"is {'significant' if p_value < 0.05 else 'not significant'} (p={p_value:.3f})."),
        value=float(P[current].max()) * 100,
    )


def threshold_model_analysis(returns: Any = None,
                             prices: Any = None,
                             delay: int = 1,
                             trim: float = 0.15) -> AnalysisResult:
    """
    Two-regime threshold autoregression TAR(1): the AR coefficient
    switches when the series `delay` periods back crosses a threshold,
    chosen by grid search over the trimmed quantile range.
    """
    analysis_id = 'adv.stat.threshold'
    r = _returns(returns, prices, analysis_id, 60).values
    start = max(1, delay)
    y, lag, switch = r[start:], r[start - 1:-1], r[start - delay:len(r) - delay]
    X = np.column_stack([np.ones_like(lag), lag])

    def ssr(mask):
        total, params = 0.0, []
        for part in (mask, ~mask):
            coef, *_ = np.linalg.lstsq(X[part], y[part], rcond=None)
            total += float(((y[part] - X[part] @ coef) ** 2).sum())
            params.append(coef)
        return total, params

    linear_coef, *_ = np.linalg.lstsq(X, y, rcond=None)
    ssr_linear = float(((y - X @ linear_coef) ** 2).sum())
    candidates = np.unique(np.quantile(switch, np.linspace(trim, 1 - trim, 50)))
    best = None
    for tau in candidates:
        mask = switch <= tau
        if mask.sum() < 10 or (~mask).sum() < 10:
            continue
        total, params = ssr(mask)
        if best is None or total < best[0]:
            best = (total, tau, params, int(mask.sum()))
    require(best is not None, "No admissible threshold", analysis_id)
    ssr_tar, tau, (low, high), n_low = best
    n = len(y)
    f_stat = ((ssr_linear - ssr_tar) / 2) / (ssr_tar / (n - 4))
    p_value = float(stats.f.sf(f_stat, 2, n - 4))
    regime = 'lower' if switch[-1] <= tau else 'upper'

    return build_result(
        analysis_id, 'Threshold Model Analysis', CATEGORY,
        data={'threshold': round(float(tau), 6), 'delay': delay,
              'lower_regime': {'intercept': round(float(low[0]), 6), 'ar_coefficient': round(float(low[1]), 4),
                               'observations': n_low},
              'upper_regime': {'intercept': round(float(high[0]), 6), 'ar_coefficient': round(float(high[1]), 4),
                               'observations': n - n_low},
              'linear_ar_coefficient': round(float(linear_coef[1]), 4),
              'f_statistic': round(float(f_stat), 4), 'p_value_approximate': round(p_value, 4),
              'nonlinear': bool(p_value < 0.05), 'current_regime': regime},
        interpretation=(f"Below a threshold of {tau * 100:.2f}% returns follow AR({low[1]:.2f}), above it "
                        f"AR({high[1]:.2f}); the threshold model "
                        f"{'significantly improves' if p_value < 0.05 else 'does not significantly improve'} on a linear AR."),
        value=f_stat,
    )


def regime_switching_analysis(returns: Any = None,
                              prices: Any = None,
                              k_regimes: int = 2) -> AnalysisResult:
    """
    Hamilton Markov-switching model (statsmodels MarkovRegression) with
    regime-specific mean and variance.
    """
    analysis_id = 'adv.stat.regime'
    r = _returns(returns, prices, analysis_id, 100)
    scaled = r.values * 100
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore')
        fit = MarkovRegression(scaled, k_regimes=k_regimes, trend='c', switching_variance=True).fit(disp=False)
    params = dict(zip(fit.model.param_names, np.asarray(fit.params)))
    smoothed = np.asarray(fit.smoothed_marginal_probabilities)
    regimes = {}
    for i in range(k_regimes):
        regimes[f'regime_{i}'] = {
            'mean_pct': round(float(params[f'const[{i}]']), 4),
            'volatility_pct': round(math.sqrt(float(params[f'sigma2[{i}]'])), 4),
            'expected_duration': round(float(np.asarray(fit.expected_durations)[i]), 2),
            'share_of_time': round(float((smoothed.argmax(axis=1) == i).mean()), 4),
        }
    turbulent = max(regimes, key=lambda k: regimes[k]['volatility_pct'])
    current = f'regime_{int(smoothed[-1].argmax())}'
    probability = float(smoothed[-1].max())

    return build_result(
        analysis_id, 'Regime Switching Analysis', CATEGORY,
        data={'regimes': regimes, 'turbulent_regime': turbulent, 'current_regime': current,
              'current_probability': round(probability, 4),
              'turbulent_probability_recent': np.round(smoothed[-20:, int(turbulent.split('_')[1])], 4).tolist(),
              'aic': round(float(fit.aic), 3), 'rolling_regimes': regime_detection(r)},
        interpretation=(f"The market is in {current.replace('_', ' ')} with {probability * 100:.0f}% probability"
                        + (", the turbulent high-volatility regime." if current == turbulent else
                           ", the calm regime.")),
        recommendations=(['Reduce risk while the turbulent regime persists'] if current == turbulent else []),
        value=probability * 100,
        evaluation=Rating.WEAK if current == turbulent else Rating.GOOD,
    )


def _embed(x: np.ndarray, dim: int, delay: int) -> np.ndarray:
    n = len(x) - (dim - 1) * delay
    return np.column_stack([x[i * delay:i * delay + n] for i in range(dim)])


def largest_lyapunov(x: np.ndarray, dim: int = 3, delay: int = 1, horizon: int = 10,
                     min_separation: int = 10) -> float:
    """Rosenstein estimate: average log divergence of nearest neighbours per step."""
    points = _embed(x, dim, delay)
    m = len(points)
    distances = np.linalg.norm(points[:, None, :] - points[None, :, :], axis=2)
    for i in range(m):
        distances[i, max(0, i - min_separation):i + min_separation + 1] = np.inf
    neighbours = distances.argmin(axis=1)
    divergence = []
    for k in range(horizon):
        logs = []
        for i, j in enumerate(neighbours):
            if i + k < m and j + k < m:
                d = np.linalg.norm(points[i + k] - points[j + k])
                if d > 0:
                    logs.append(math.log(d))
        divergence.append(np.mean(logs) if logs else np.nan)
    steps = np.arange(horizon)[~np.isnan(divergence)]
    return float(np.polyfit(steps, np.asarray(divergence)[~np.isnan(divergence)], 1)[0])


def correlation_dimension(x: np.ndarray, dim: int = 3, delay: int = 1) -> float:
    """Grassberger-Procaccia slope of log C(r) against log r."""
    points = _embed(x, dim, delay)
    distances = np.linalg.norm(points[:, None, :] - points[None, :, :], axis=2)
    pairs = distances[np.triu_indices(len(points), 1)]
    pairs = pairs[pairs > 0]
    radii = np.logspace(np.log10(np.quantile(pairs, 0.05)), np.log10(np.quantile(pairs, 0.5)), 10)
    corr = np.array([(pairs < r).mean() for r in radii])
    valid = corr > 0
    return float(np.polyfit(np.log(radii[valid]), np.log(corr[valid]), 1)[0])


def chaos_theory_analysis(returns: Any = None,
                          prices: Any = None,
                          embedding_dim: int = 3,
                          delay: int = 1,
                          max_points: int = 500) -> AnalysisResult:
    """
    Deterministic chaos diagnostics on standardised returns: the largest
    Lyapunov exponent (positive means nearby trajectories diverge) and the
    correlation dimension of the reconstructed attractor.
    """
    analysis_id = 'adv.stat.chaos'
    r = _returns(returns, prices, analysis_id, 100).values[-max_points:]
    x = (r - r.mean()) / r.std()
    lyapunov = largest_lyapunov(x, embedding_dim, delay)
    dimension = correlation_dimension(x, embedding_dim, delay)
    shuffled = np.random.default_rng(config.RANDOM_SEED).permutation(x)
    surrogate = correlation_dimension(shuffled, embedding_dim, delay)
    structured = dimension < surrogate * 0.9

    return build_result(
        analysis_id, 'Chaos Theory Analysis', CATEGORY,
        data={'embedding_dimension': embedding_dim, 'delay': delay, 'points_used': int(len(x)),
              'largest_lyapunov_exponent': round(lyapunov, 4), 'correlation_dimension': round(dimension, 4),
              'surrogate_dimension': round(surrogate, 4), 'low_dimensional_structure': bool(structured),
              'chaotic': bool(lyapunov > 0 and structured)},
        interpretation=(f"Largest Lyapunov exponent {lyapunov:.3f} and correlation dimension {dimension:.2f} "
                        f"(shuffled {surrogate:.2f}): "
                        + ("returns show low-dimensional chaotic structure." if lyapunov > 0 and structured
                           else "behaviour is consistent with stochastic noise rather than chaos.")),
        value=lyapunov,
    )


def fractal_analysis(returns: Any = None, prices: Any = None) -> AnalysisResult:
    analysis_id = 'adv.stat.fractal'
    r = _returns(returns, prices, analysis_id, 64)
    hurst = hurst_exponent(r)
    alpha = dfa_exponent(r)
    dimension = 2 - hurst['hurst']
    abs_hurst = hurst_exponent(r.abs())

    return build_result(
        analysis_id, 'Fractal Analysis', CATEGORY,
        data={'hurst_exponent': hurst['hurst'], 'behaviour': hurst['behaviour'], 'dfa_alpha': round(alpha, 4),
              'fractal_dimension': round(dimension, 4), 'volatility_hurst': abs_hurst['hurst'],
              'volatility_long_memory': abs_hurst['hurst'] > 0.55},
        interpretation=(f"Hurst {hurst['hurst']:.2f} and DFA {alpha:.2f} indicate {hurst['behaviour'].replace('_', ' ')} "
                        f"returns (fractal dimension {dimension:.2f}); volatility "
                        f"{'has' if abs_hurst['hurst'] > 0.55 else 'lacks'} long memory."),
        recommendations={'persistent': ['Trend-following rules suit this persistence'],
                         'mean_reverting': ['Mean-reversion rules suit this anti-persistence']}.get(hurst['behaviour'], []),
        value=hurst['hurst'], benchmark=0.5,
        evaluation=rate_score(clip_score(100 - abs(hurst['hurst'] - 0.5) * 200)),
    )


def bootstrap_analysis(returns: Any = None,
                       prices: Any = None,
                       samples: int = config.BOOTSTRAP_SAMPLES,
                       confidence: float = 0.95,
                       var_confidence: float = config.VAR_CONFIDENCE,
                       block_size: int = 1,
                       risk_free_rate: float = config.RISK_FREE_RATE,
                       periods_per_year: int = config.TRADING_DAYS,
                       seed: Optional[int] = config.RANDOM_SEED) -> AnalysisResult:
    """
    Percentile bootstrap intervals for the annualised mean return, the
    Sharpe ratio and historical VaR. A `block_size` above one resamples
    moving blocks to keep serial dependence.
    """
    analysis_id = 'adv.stat.bootstrap'
    x = _returns(returns, prices, analysis_id, 30).values
    n = len(x)
    rng = np.random.default_rng(seed)
    if block_size > 1:
        blocks = math.ceil(n / block_size)
        starts = rng.integers(0, n - block_size + 1, (samples, blocks))
        idx = (starts[:, :, None] + np.arange(block_size)).reshape(samples, -1)[:, :n]
    else:
        idx = rng.integers(0, n, (samples, n))
    draws = x[idx]
    rf = risk_free_rate / periods_per_year
    means = draws.mean(axis=1) * periods_per_year
    sharpes = (draws.mean(axis=1) - rf) / draws.std(axis=1, ddof=1) * math.sqrt(periods_per_year)
    vars_ = -np.quantile(draws, 1 - var_confidence, axis=1)
    tail = (1 - confidence) / 2 * 100

    def interval(values, point, scale=1.0):
        return {'estimate': round(float(point) * scale, 4),
                'lower': round(float(np.percentile(values, tail)) * scale, 4),
                'upper': round(float(np.percentile(values, 100 - tail)) * scale, 4),
                'std_error': round(float(values.std()) * scale, 4)}

    sharpe_point = (x.mean() - rf) / x.std(ddof=1) * math.sqrt(periods_per_year)
    sharpe = interval(sharpes, sharpe_point)
    mean = interval(means, x.mean() * periods_per_year, 100)
    significant = sharpe['lower'] > 0

    return build_result(
        analysis_id, 'Bootstrap Analysis', CATEGORY,
        data={'samples': samples, 'confidence': confidence, 'block_size': block_size,
              'annual_mean_return_pct': mean, 'sharpe_ratio': sharpe,
              'var_pct': interval(vars_, -np.quantile(x, 1 - var_confidence), 100),
              'probability_sharpe_positive': round(float((sharpes > 0).mean()), 4)},
        interpretation=(f"The Sharpe ratio of {sharpe['estimate']:.2f} has a {confidence * 100:.0f}% interval "
                        f"of {sharpe['lower']:.2f} to {sharpe['upper']:.2f}; "
                        + ("performance is statistically positive." if significant
                           else "positive performance is not statistically established.")),
        value=sharpe['estimate'], evaluation=Rating.GOOD if significant else Rating.ACCEPTABLE,
    )


def wavelet_analysis(returns: Any = None,
                     prices: Any = None,
                     wavelet: str = 'db4',
                     level: Optional[int] = None) -> AnalysisResult:
    """
    Multiresolution decomposition (PyWavelets): energy by time scale and
    the noise share removed by universal-threshold denoising.
    """
    analysis_id = 'adv.stat.wavelet'
    r = _returns(returns, prices, analysis_id, 32)
    energy = multiresolution_energy(r.values, wavelet, level)
    denoised = denoise_series(r.values, wavelet, energy['level'])
    noise_share = safe_divide(float(np.var(r.values - denoised['denoised'])) * 100, float(np.var(r.values)), 0.0)
    finest = energy['energy_pct'].get('D1', 0.0)

    return build_result(
        analysis_id, 'Wavelet Analysis', CATEGORY,
        data={**energy, 'noise_share_pct': round(noise_share, 2),
              'denoised_tail': series_to_dict(pd.Series(denoised['denoised'][-20:]), 6)},
        interpretation=(f"{finest:.0f}% of return energy sits at the finest scale and "
                        f"{energy['trend_energy_pct']:.0f}% in the trend; denoising removes {noise_share:.0f}% "
                        f"of variance."),
        recommendations=(['Short-horizon noise dominates; filter signals before trading on them']
                         if finest > 50 else []),
        value=noise_share, benchmark=50.0, higher_is_better=False,
    )
