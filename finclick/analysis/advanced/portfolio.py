"""
Portfolio and Asset Pricing Analysis
Modern portfolio theory, CAPM, factor models, systematic risk, abnormal
returns, concentration and drawdowns.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from finclick import config
from finclick.analysis.base import (
    build_result, require, require_frame, require_paired, require_series, series_to_dict
)
from finclick.analysis.quantitative.correlation import (
    calculate_correlation_matrix, ewma_correlation, rolling_beta, rolling_correlation,
    average_pairwise_correlation
)
from finclick.analysis.quantitative.portfolio_optimization import (
    calculate_portfolio_returns, calculate_portfolio_volatility, diversification_ratio,
    efficient_frontier, max_sharpe_portfolio, min_variance_portfolio, risk_contributions, risk_parity
)
from finclick.analysis.quantitative.risk_metrics import (
    annualized_return, annualized_volatility, beta, calmar_ratio, maximum_drawdown, sharpe_ratio
)
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, round_or_none
from finclick.data.market import Portfolio

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.risk'

# Accepted column names per Fama-French factor
_FACTOR_ALIASES = {
    'MKT': ('MKT', 'MKT_RF', 'MKT-RF', 'MARKET', 'MKTRF'),
    'SMB': ('SMB', 'SIZE'),
    'HML': ('HML', 'VALUE'),
    'RMW': ('RMW', 'PROFITABILITY'),
    'CMA': ('CMA', 'INVESTMENT'),
}


def _require_portfolio(portfolio: Any, analysis_id: str, min_rows: int = 30) -> Portfolio:
    require(portfolio is not None, "A portfolio is required", analysis_id)
    if isinstance(portfolio, dict):
        portfolio = Portfolio.from_dict(portfolio)
    require(portfolio.asset_returns.shape[1] >= 2, "A portfolio needs at least two assets", analysis_id)
    require(len(portfolio.asset_returns) >= min_rows,
            f"Portfolio needs at least {min_rows} return observations", analysis_id)
    return portfolio


def _ols(y: pd.Series, X: pd.DataFrame):
    return sm.OLS(y, sm.add_constant(X)).fit()


def modern_portfolio_theory_analysis(portfolio: Portfolio,
                                     risk_free_rate: float = config.RISK_FREE_RATE,
                                     periods_per_year: int = config.TRADING_DAYS,
                                     frontier_points: int = 15) -> AnalysisResult:
    """
    Current portfolio against the efficient frontier: tangency,
    minimum-variance and equal-risk portfolios, and the diversification
    ratio.
    """
    analysis_id = 'adv.risk.mpt'
    pf = _require_portfolio(portfolio, analysis_id)
    returns = pf.asset_returns
    w = pf.normalized_weights()
    mu = returns.mean().values * periods_per_year
    cov = returns.cov().values * periods_per_year

    current_return = calculate_portfolio_returns(w, mu)
    current_vol = calculate_portfolio_volatility(w, cov)
    current_sharpe = (current_return - risk_free_rate) / current_vol if current_vol > 0 else 0.0
    tangency = max_sharpe_portfolio(returns, risk_free_rate, periods_per_year)
    min_var = min_variance_portfolio(returns, risk_free_rate, periods_per_year)
    erc = risk_parity(returns, periods_per_year, risk_free_rate)
    frontier = efficient_frontier(returns, frontier_points, risk_free_rate, periods_per_year)
    dr = diversification_ratio(w, cov)
    efficiency = current_sharpe / tangency['sharpe_ratio'] * 100 if tangency['sharpe_ratio'] > 0 else None

    return build_result(
        analysis_id, 'Modern Portfolio Theory Analysis', CATEGORY,
        data={'current': {'weights': dict(zip(pf.names, np.round(w, 4).tolist())),
                          'expected_return': round(current_return * 100, 2),
                          'volatility': round(current_vol * 100, 2),
                          'sharpe_ratio': round(current_sharpe, 4)},
              'max_sharpe': tangency, 'min_variance': min_var, 'risk_parity': erc,
              'efficient_frontier': frontier, 'diversification_ratio': round(dr, 3),
              'sharpe_efficiency_pct': round_or_none(efficiency, 1)},
        interpretation=(f"The portfolio's Sharpe ratio is {current_sharpe:.2f} against {tangency['sharpe_ratio']:.2f} "
                        f"for the tangency portfolio; diversification ratio {dr:.2f}."),
        recommendations=(['Rebalance toward the tangency weights'] if efficiency is not None and efficiency < 80 else []),
        value=current_sharpe, benchmark=tangency['sharpe_ratio'],
    )


def capm_analysis(returns: pd.Series, benchmark_returns: pd.Series,
                  risk_free_rate: float = config.RISK_FREE_RATE,
                  market_return: Optional[float] = None,
                  periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Capital asset pricing model.

    Formula:
        E(R) = Rf + beta x (E(Rm) - Rf)

    Beta and alpha come from an OLS regression of excess asset returns on
    excess market returns.
    """
    analysis_id = 'adv.risk.capm'
    r, m = require_paired(returns, benchmark_returns, 30, analysis_id, varying=True)
    rf_period = risk_free_rate / periods_per_year
    fit = _ols(r - rf_period, (m - rf_period).to_frame('market'))
    b = float(fit.params['market'])
    alpha = float(fit.params['const']) * periods_per_year
    market = market_return if market_return is not None else float(m.mean() * periods_per_year)
    required = risk_free_rate + b * (market - risk_free_rate)
    actual = float(r.mean() * periods_per_year)

    if b > 1.2:
        profile = 'aggressive'
    elif b < 0.8:
        profile = 'defensive'
    else:
        profile = 'neutral'

    return build_result(
        analysis_id, 'CAPM Analysis', CATEGORY,
        data={'beta': round(b, 4), 'beta_t_stat': round(float(fit.tvalues['market']), 3),
              'alpha_annual_pct': round(alpha * 100, 3), 'alpha_p_value': round(float(fit.pvalues['const']), 4),
              'r_squared': round(float(fit.rsquared), 4), 'market_return_pct': round(market * 100, 2),
              'risk_free_rate_pct': round(risk_free_rate * 100, 2),
              'required_return_pct': round(required * 100, 2), 'actual_return_pct': round(actual * 100, 2),
              'sml_position': 'above' if actual > required else 'below', 'risk_profile': profile},
        interpretation=(f"Beta of {b:.2f} ({profile}) implies a required return of {required * 100:.1f}%; "
                        f"the asset earned {actual * 100:.1f}%, {'above' if actual > required else 'below'} "
                        f"the security market line."),
        recommendations=(['Alpha is statistically significant'] if fit.pvalues['const'] < 0.05 else []),
        value=actual * 100, benchmark=required * 100,
    )


def apt_analysis(returns: pd.Series, factor_returns: pd.DataFrame,
                 risk_free_rate: float = config.RISK_FREE_RATE,
                 periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Arbitrage pricing theory: multi-factor OLS of excess returns on the
    supplied factors, factor premia and the implied expected return.
    """
    analysis_id = 'adv.risk.apt'
    r = require_series(returns, 30, analysis_id)
    factors = require_frame(factor_returns, 30, analysis_id)
    joined = pd.concat([r.rename('__asset__'), factors], axis=1, join='inner').dropna()
    require(len(joined) >= 30, "Factors and returns overlap on fewer than 30 periods", analysis_id)
    y = joined['__asset__'] - risk_free_rate / periods_per_year
    X = joined.drop(columns='__asset__')
    fit = _ols(y, X)

    premia = X.mean() * periods_per_year
    loadings = fit.params.drop('const')
    contributions = loadings * premia
    expected = risk_free_rate + float(contributions.sum())

    return build_result(
        analysis_id, 'Arbitrage Pricing Theory Analysis', CATEGORY,
        data={'loadings': series_to_dict(loadings), 't_stats': series_to_dict(fit.tvalues.drop('const'), 3),
              'p_values': series_to_dict(fit.pvalues.drop('const')),
              'factor_premia_pct': series_to_dict(premia * 100, 3),
              'return_contribution_pct': series_to_dict(contributions * 100, 3),
              'alpha_annual_pct': round(float(fit.params['const']) * periods_per_year * 100, 3),
              'r_squared': round(float(fit.rsquared), 4), 'adj_r_squared': round(float(fit.rsquared_adj), 4),
              'expected_return_pct': round(expected * 100, 2),
              'significant_factors': [str(k) for k, p in fit.pvalues.drop('const').items() if p < 0.05]},
        interpretation=(f"{len(loadings)} factors explain {fit.rsquared * 100:.0f}% of return variance; "
                        f"implied expected return {expected * 100:.1f}%."),
        value=expected * 100,
    )


def _match_factors(frame: pd.DataFrame) -> Dict[str, str]:
    upper = {str(c).upper().replace(' ', ''): c for c in frame.columns}
    found = {}
    for name, aliases in _FACTOR_ALIASES.items():
        for alias in aliases:
            if alias in upper:
                found[name] = upper[alias]
                break
    return found


def fama_french_analysis(returns: pd.Series, factor_returns: pd.DataFrame,
                         risk_free_rate: float = config.RISK_FREE_RATE,
                         periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Fama-French three- or five-factor regression (five when RMW and CMA
    are present) with size, value, profitability and investment tilts.
    """
    analysis_id = 'adv.risk.fama_french'
    r = require_series(returns, 30, analysis_id)
    factors = require_frame(factor_returns, 30, analysis_id, min_columns=3)
    columns = _match_factors(factors)
    require(all(k in columns for k in ('MKT', 'SMB', 'HML')), "MKT, SMB and HML factors are required", analysis_id)
    names = ['MKT', 'SMB', 'HML'] + ([k for k in ('RMW', 'CMA') if k in columns]
                                     if 'RMW' in columns and 'CMA' in columns else [])
    X = factors[[columns[k] for k in names]].set_axis(names, axis=1)
    joined = pd.concat([r.rename('__asset__'), X], axis=1, join='inner').dropna()
    require(len(joined) >= 30, "Factors and returns overlap on fewer than 30 periods", analysis_id)
    fit = _ols(joined['__asset__'] - risk_free_rate / periods_per_year, joined[names])

    params = fit.params
    tilts = {
        'size': 'small_cap' if params['SMB'] > 0.1 else 'large_cap' if params['SMB'] < -0.1 else 'neutral',
        'style': 'value' if params['HML'] > 0.1 else 'growth' if params['HML'] < -0.1 else 'blend',
    }
    if 'RMW' in params:
        tilts['profitability'] = 'robust' if params['RMW'] > 0.1 else 'weak' if params['RMW'] < -0.1 else 'neutral'
        tilts['investment'] = 'conservative' if params['CMA'] > 0.1 else 'aggressive' if params['CMA'] < -0.1 else 'neutral'
    alpha = float(params['const']) * periods_per_year

    return build_result(
        analysis_id, 'Fama-French Analysis', CATEGORY,
        data={'model': f"{len(names)}-factor", 'loadings': series_to_dict(params.drop('const')),
              't_stats': series_to_dict(fit.tvalues, 3), 'alpha_annual_pct': round(alpha * 100, 3),
              'alpha_p_value': round(float(fit.pvalues['const']), 4),
              'r_squared': round(float(fit.rsquared), 4), 'tilts': tilts},
        interpretation=(f"{len(names)}-factor model: market beta {params['MKT']:.2f}, {tilts['size'].replace('_', ' ')} "
                        f"and {tilts['style']} tilt; annual alpha {alpha * 100:.2f}%."),
        recommendations=(['Alpha is significant after controlling for factors'] if fit.pvalues['const'] < 0.05 else []),
        value=alpha * 100, benchmark=0.0,
    )


def systematic_risk_analysis(returns: pd.Series, benchmark_returns: pd.Series,
                             window: int = 60,
                             periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Beta with its stability over time, upside/downside beta and the split
    of variance into systematic and idiosyncratic parts.
    """
    analysis_id = 'adv.risk.beta'
    r, m = require_paired(returns, benchmark_returns, max(window + 10, 30), analysis_id,
                          varying=True)
    stats = beta(r, m, periods_per_year)
    b = stats['beta']
    rolling = rolling_beta(r, m, window).dropna()
    up, down = m > 0, m < 0
    up_beta = float(r[up].cov(m[up]) / m[up].var()) if up.sum() > 2 and m[up].var() > 0 else None
    down_beta = float(r[down].cov(m[down]) / m[down].var()) if down.sum() > 2 and m[down].var() > 0 else None
    total_var = float(r.var() * periods_per_year)
    systematic_var = b ** 2 * float(m.var() * periods_per_year)

    return build_result(
        analysis_id, 'Beta and Systematic Risk Analysis', CATEGORY,
        data={**stats, 'rolling_beta': {'current': round_or_none(rolling.iloc[-1], 4) if len(rolling) else None,
                                        'mean': round_or_none(rolling.mean(), 4), 'min': round_or_none(rolling.min(), 4),
                                        'max': round_or_none(rolling.max(), 4), 'std': round_or_none(rolling.std(), 4),
                                        'window': window},
              'upside_beta': round_or_none(up_beta, 4), 'downside_beta': round_or_none(down_beta, 4),
              'total_volatility_pct': round(np.sqrt(total_var) * 100, 2),
              'systematic_share_pct': round(min(systematic_var / total_var, 1.0) * 100, 2) if total_var else None},
        interpretation=(f"Beta {b:.2f}: {stats['r_squared'] * 100:.0f}% of the variance is market driven."
                        + (f" Downside beta {down_beta:.2f} vs upside {up_beta:.2f}." if up_beta and down_beta else '')),
        recommendations=(['Losses amplify in falling markets (downside beta above upside beta)']
                         if up_beta is not None and down_beta is not None and down_beta > up_beta * 1.1 else []),
        value=b, benchmark=1.0, higher_is_better=False,
    )


def abnormal_returns_analysis(returns: pd.Series, benchmark_returns: pd.Series,
                              risk_free_rate: float = config.RISK_FREE_RATE,
                              event_index: Optional[int] = None,
                              estimation_window: int = 120,
                              event_window: Tuple[int, int] = (-5, 5),
                              periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Jensen's alpha over the full sample and, with an event position,
    the market-model abnormal returns and CAR over the event window.
    """
    analysis_id = 'adv.risk.alpha'
    r, m = require_paired(returns, benchmark_returns, 30, analysis_id, varying=True)
    rf = risk_free_rate / periods_per_year
    fit = _ols(r - rf, (m - rf).to_frame('market'))
    jensen = float(fit.params['const']) * periods_per_year
    data = {'jensen_alpha_pct': round(jensen * 100, 3), 'alpha_t_stat': round(float(fit.tvalues['const']), 3),
            'beta': round(float(fit.params['market']), 4), 'event_study': None}

    if event_index is not None:
        start, end = event_index + event_window[0], event_index + event_window[1]
        est_end = start
        est_start = max(est_end - estimation_window, 0)
        require(est_end - est_start >= 20 and end < len(r), "Not enough data around the event", analysis_id)
        est = _ols(r.iloc[est_start:est_end], m.iloc[est_start:est_end].to_frame('market'))
        window_r, window_m = r.iloc[start:end + 1], m.iloc[start:end + 1]
        expected = est.params['const'] + est.params['market'] * window_m
        ar = window_r - expected
        car = ar.cumsum()
        sigma = float(np.sqrt(est.mse_resid))
        t_car = float(car.iloc[-1] / (sigma * np.sqrt(len(ar)))) if sigma > 0 else None
        data['event_study'] = {
            'abnormal_returns': [round(float(v), 6) for v in ar],
            'car': [round(float(v), 6) for v in car],
            'car_total_pct': round(float(car.iloc[-1]) * 100, 3),
            't_statistic': round_or_none(t_car, 3),
            'significant': t_car is not None and abs(t_car) > 1.96,
            'estimation_window': [est_start, est_end - 1], 'event_window': [start, end],
        }

    event = data['event_study']
    text = f"Jensen's alpha of {jensen * 100:.2f}% a year."
    if event:
        text += f" Cumulative abnormal return around the event: {event['car_total_pct']:.2f}%."
    return build_result(
        analysis_id, 'Alpha and Abnormal Returns Analysis', CATEGORY,
        data=data, interpretation=text,
        value=jensen * 100, benchmark=0.0,
    )


def concentration_analysis(portfolio: Portfolio) -> AnalysisResult:
    """
    Weight and risk concentration: HHI, effective number of positions,
    top holdings share and the HHI of risk contributions.
    """
    analysis_id = 'adv.risk.concentration'
    pf = _require_portfolio(portfolio, analysis_id, min_rows=10)
    w = pf.normalized_weights()
    cov = pf.asset_returns.cov().values
    hhi = float(np.sum(w ** 2))
    rc = risk_contributions(w, cov)
    risk_hhi = float(np.sum(rc ** 2))
    top = np.sort(w)[::-1]
    n = len(w)
    normalised = (hhi - 1 / n) / (1 - 1 / n) if n > 1 else 1.0
    score = clip_score((1 - normalised) * 100)

    return build_result(
        analysis_id, 'Concentration and Diversification Analysis', CATEGORY,
        data={'hhi': round(hhi, 4), 'normalised_hhi': round(normalised, 4),
              'effective_positions': round(1 / hhi, 2), 'positions': n,
              'top_weight_pct': round(float(top[0]) * 100, 2), 'top3_weight_pct': round(float(top[:3].sum()) * 100, 2),
              'risk_contribution_pct': dict(zip(pf.names, np.round(rc * 100, 2).tolist())),
              'risk_hhi': round(risk_hhi, 4), 'effective_risk_positions': round(1 / risk_hhi, 2) if risk_hhi else None,
              'diversification_score': round(score, 1)},
        interpretation=(f"{n} positions behave like {1 / hhi:.1f} equal weights "
                        f"({1 / risk_hhi:.1f} in risk terms)." if risk_hhi else f"{n} positions."),
        recommendations=(['Risk is concentrated in few holdings'] if risk_hhi and 1 / risk_hhi < n / 2 else []),
        value=score, evaluation=rate_score(score),
    )


def dynamic_correlation_analysis(asset_returns: Optional[pd.DataFrame] = None,
                                 returns: Optional[pd.Series] = None,
                                 benchmark_returns: Optional[pd.Series] = None,
                                 window: int = 60,
                                 lam: float = config.EWMA_LAMBDA) -> AnalysisResult:
    """
    Rolling and EWMA correlations for each asset pair (or the asset and
    its benchmark), comparing the current level with the average.
    """
    analysis_id = 'adv.risk.dynamic_correlation'
    if asset_returns is not None:
        frame = require_frame(asset_returns, window + 10, analysis_id, min_columns=2, varying=True)
    else:
        r, m = require_paired(returns, benchmark_returns, window + 10, analysis_id, varying=True)
        frame = pd.concat([r, m], axis=1)
    frame = frame.iloc[:, :8]
    static = calculate_correlation_matrix(frame)

    pairs = {}
    cols = list(frame.columns)
    for i in range(len(cols)):
        for j in range(i + 1, len(cols)):
            a, b = frame[cols[i]], frame[cols[j]]
            rolling = rolling_correlation(a, b, window).dropna()
            ewma = ewma_correlation(a, b, lam).dropna()
            pairs[f"{cols[i]}/{cols[j]}"] = {
                'full_sample': round(float(static.iloc[i, j]), 4),
                'rolling_current': round_or_none(rolling.iloc[-1], 4),
                'rolling_mean': round_or_none(rolling.mean(), 4),
                'rolling_min': round_or_none(rolling.min(), 4),
                'rolling_max': round_or_none(rolling.max(), 4),
                'ewma_current': round_or_none(ewma.iloc[-1], 4),
            }
    current = float(np.mean([p['ewma_current'] for p in pairs.values() if p['ewma_current'] is not None]))
    average = average_pairwise_correlation(static)
    regime = 'rising' if current > average + 0.1 else 'falling' if current < average - 0.1 else 'stable'

    return build_result(
        analysis_id, 'Dynamic Correlation Analysis', CATEGORY,
        data={'pairs': pairs, 'average_correlation': round_or_none(average, 4),
              'current_ewma_correlation': round(current, 4), 'regime': regime, 'window': window},
        interpretation=f"Current correlation {current:.2f} vs a long-run {average:.2f}: correlations are {regime}.",
        recommendations=(['Diversification benefit is shrinking as correlations rise'] if regime == 'rising' else []),
        value=current, benchmark=average, higher_is_better=False,
    )


def risk_parity_analysis(portfolio: Portfolio,
                         risk_free_rate: float = config.RISK_FREE_RATE,
                         periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """Current risk contributions against the equal-risk-contribution portfolio."""
    analysis_id = 'adv.risk.risk_parity'
    pf = _require_portfolio(portfolio, analysis_id)
    w = pf.normalized_weights()
    cov = pf.asset_returns.cov().values * periods_per_year
    current_rc = risk_contributions(w, cov)
    erc = risk_parity(pf.asset_returns, periods_per_year, risk_free_rate)
    target = 1 / len(w)
    deviation = float(np.abs(current_rc - target).sum() / 2 * 100)

    return build_result(
        analysis_id, 'Risk Parity Analysis', CATEGORY,
        data={'current_weights': dict(zip(pf.names, np.round(w, 4).tolist())),
              'current_risk_contribution_pct': dict(zip(pf.names, np.round(current_rc * 100, 2).tolist())),
              'risk_parity_portfolio': erc, 'risk_budget_deviation_pct': round(deviation, 2)},
        interpretation=(f"{deviation:.0f}% of portfolio risk would need to shift to reach equal risk "
                        f"contributions."),
        recommendations=(['Move toward the risk parity weights'] if deviation > 20 else []),
        value=deviation, benchmark=10.0, higher_is_better=False,
    )


def _drawdown_episodes(returns: pd.Series, top: int = 3):
    wealth = (1 + returns.reset_index(drop=True)).cumprod()
    peak = wealth.cummax().clip(lower=1.0)
    dd = wealth / peak - 1
    episodes, start = [], None
    for i, value in enumerate(dd):
        if value < 0 and start is None:
            start = i
        elif value >= 0 and start is not None:
            episodes.append((start, i))
            start = None
    if start is not None:
        episodes.append((start, len(dd)))
    described = [{'start': s, 'end': e, 'depth_pct': round(float(dd.iloc[s:e].min()) * 100, 2),
                  'length': e - s, 'recovered': e < len(dd)} for s, e in episodes]
    return sorted(described, key=lambda x: x['depth_pct'])[:top], dd


def drawdown_analysis(returns: pd.Series,
                      periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Maximum drawdown with duration and recovery, the deepest episodes,
    ulcer and pain indices and the Calmar ratio.
    """
    analysis_id = 'adv.risk.drawdown'
    r = require_series(returns, 20, analysis_id)
    mdd = maximum_drawdown(r)
    mdd.pop('drawdown_series', None)
    episodes, dd = _drawdown_episodes(r)
    ulcer = float(np.sqrt(np.mean((dd * 100) ** 2)))
    pain = float(-dd.mean() * 100)
    calmar = calmar_ratio(r, periods_per_year)

    return build_result(
        analysis_id, 'Drawdown Analysis', CATEGORY,
        data={**mdd, 'worst_episodes': episodes, 'ulcer_index': round(ulcer, 3), 'pain_index': round(pain, 3),
              'calmar_ratio': calmar, 'time_under_water_pct': round(float((dd < 0).mean() * 100), 1),
              'annualized_return_pct': round(annualized_return(r, periods_per_year) * 100, 2),
              'annualized_volatility_pct': round(annualized_volatility(r, periods_per_year) * 100, 2),
              'sharpe_ratio': sharpe_ratio(r)},
        interpretation=(f"Maximum drawdown {mdd['max_drawdown_pct']:.1f}%"
                        + (f", recovered after {mdd['recovery_duration']} periods." if mdd['recovery_duration']
                           else ', not yet recovered.' if mdd['max_drawdown'] < 0 else '.')),
        recommendations=(['Drawdowns exceed 20%; review position sizing and stops'] if mdd['max_drawdown'] < -0.2 else []),
        value=mdd['max_drawdown_pct'], benchmark=-20.0,
        evaluation=(Rating.EXCELLENT if mdd['max_drawdown'] > -0.05 else Rating.GOOD if mdd['max_drawdown'] > -0.15
                    else Rating.ACCEPTABLE if mdd['max_drawdown'] > -0.25 else Rating.WEAK),
    )
