"""
Market Risk Analysis
Value at Risk, expected shortfall, stress testing, catastrophic scenarios,
market risk sensitivities and VaR backtesting.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats

from finclick import config
from finclick.analysis.base import build_result, require, require_paired, require_series
from finclick.analysis.quantitative.backtesting import backtest_var
from finclick.analysis.quantitative.monte_carlo import (
    cornish_fisher_var, expected_shortfall, historical_var, monte_carlo_var,
    parametric_expected_shortfall, parametric_var
)
from finclick.analysis.quantitative.risk_metrics import annualized_volatility, beta, maximum_drawdown
from finclick.analysis.quantitative.time_series import classify_volatility_regime, ewma_volatility
from finclick.analysis.result import AnalysisResult, Rating
from finclick.core.exceptions import InsufficientDataError
from finclick.core.utils import round_or_none, safe_divide
from finclick.data.market import Portfolio
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.risk'

# Peak-to-trough equity market moves
HISTORICAL_SCENARIOS = {
    'black_monday_1987': -0.226,
    'asian_crisis_1997': -0.19,
    'dotcom_bubble_2000': -0.49,
    'financial_crisis_2008': -0.568,
    'covid_crash_2020': -0.34,
}


def _returns_from(returns: Any, portfolio: Any, analysis_id: str, minimum: int):
    if returns is None and portfolio is not None:
        pf = Portfolio.from_dict(portfolio) if isinstance(portfolio, dict) else portfolio
        returns = pf.portfolio_returns()
    return require_series(returns, minimum, analysis_id)


def _portfolio_value(portfolio: Any, portfolio_value: Optional[float]) -> float:
    if portfolio_value is not None:
        return float(portfolio_value)
    if isinstance(portfolio, Portfolio):
        return float(portfolio.value)
    return 1_000_000.0


def ewma_historical_var(returns: pd.Series, confidence: float = config.VAR_CONFIDENCE,
                        lam: float = 0.98) -> float:
    """
    Age-weighted historical VaR.

    Observation i (0 = oldest) weighs lam^(n-1-i) (1-lam) / (1-lam^n); the
    VaR is the loss where the cumulative weight of the sorted returns
    reaches 1 - confidence.
    """
    values = np.asarray(returns, dtype=float)
    n = len(values)
    ages = np.arange(n)[::-1]
    weights = lam ** ages * (1 - lam) / (1 - lam ** n)
    order = np.argsort(values)
    cumulative = np.cumsum(weights[order])
    idx = int(np.searchsorted(cumulative, 1 - confidence))
    return float(-values[order][min(idx, n - 1)])


def component_var(portfolio: Portfolio, confidence: float = config.VAR_CONFIDENCE) -> Dict[str, Any]:
    """
    Parametric component VaR; the components add up to the portfolio VaR.

    CVaR_i = w_i x (Σw)_i / σ_p x z
    """
    w = portfolio.normalized_weights()
    cov = portfolio.asset_returns.cov().values
    sigma = float(np.sqrt(w @ cov @ w))
    z = stats.norm.ppf(confidence)
    if sigma <= 0:
        return {'portfolio_var_pct': 0.0, 'components_pct': {}, 'marginal_var': {}}
    marginal = cov @ w / sigma * z
    components = w * marginal
    total = float(components.sum())
    return {
        'portfolio_var_pct': round(total * 100, 3),
        'components_pct': dict(zip(portfolio.names, np.round(components * 100, 3).tolist())),
        'contribution_share_pct': dict(zip(portfolio.names, np.round(components / total * 100, 2).tolist())),
        'marginal_var': dict(zip(portfolio.names, np.round(marginal, 4).tolist())),
        'undiversified_var_pct': round(float(np.sum(w * np.sqrt(np.diag(cov))) * z) * 100, 3),
    }


def value_at_risk_analysis(returns: Optional[pd.Series] = None,
                           portfolio: Optional[Portfolio] = None,
                           confidence: float = config.VAR_CONFIDENCE,
                           horizon: int = config.VAR_HORIZON_DAYS,
                           portfolio_value: Optional[float] = None) -> AnalysisResult:
    """
    VaR by every method side by side.

    Parametric (normal, Student-t, Cornish-Fisher), historical,
    age-weighted historical and Monte Carlo estimates, square-root-of-time
    horizon scaling, component VaR for portfolios and a Kupiec backtest of
    the rolling historical VaR.
    """
    analysis_id = 'adv.risk.var'
    r = _returns_from(returns, portfolio, analysis_id, 30)
    value = _portfolio_value(portfolio, portfolio_value)
    scale = np.sqrt(horizon)

    methods = {
        'historical': historical_var(r, confidence) * scale,
        'parametric_normal': parametric_var(r, confidence) * scale,
        'parametric_student_t': parametric_var(r, confidence, 't') * scale,
        'cornish_fisher': cornish_fisher_var(r, confidence) * scale,
        'ewma_historical': ewma_historical_var(r, confidence) * scale,
        'monte_carlo': monte_carlo_var(r, confidence, horizon),
    }
    estimates = {k: {'var_pct': round(v * 100, 3), 'var_value': round(v * value, 2)} for k, v in methods.items()}
    headline = methods['historical']
    spread = max(methods.values()) - min(methods.values())

    data = {'confidence_level': confidence * 100, 'horizon_days': horizon, 'portfolio_value': value,
            'methods': estimates,
            'horizon_scaling': {f"{d}d": round(headline / scale * np.sqrt(d) * 100, 3) for d in (1, 5, 10, 20)},
            'model_spread_pct': round(spread * 100, 3), 'component_var': None, 'backtest': None}
    if portfolio is not None:
        pf = Portfolio.from_dict(portfolio) if isinstance(portfolio, dict) else portfolio
        data['component_var'] = component_var(pf, confidence)
    if len(r) >= 60:
        try:
            bt = backtest_var(r, confidence=confidence)
            data['backtest'] = {'exceptions': bt['exceptions'], 'expected_exceptions': bt['expected_exceptions'],
                                'kupiec_p_value': bt['kupiec']['p_value'], 'traffic_light': bt['traffic_light']}
        except InsufficientDataError as e:
            logger.debug(f"VaR backtest skipped: {e}")

    recs = []
    if methods['cornish_fisher'] > methods['parametric_normal'] * 1.2:
        recs.append('Returns have fat tails; prefer Cornish-Fisher or historical VaR over the normal model')
    if data['backtest'] and data['backtest']['traffic_light'] != 'green':
        recs.append('VaR model failed its backtest; recalibrate')
    return build_result(
        analysis_id, 'Value at Risk Analysis', CATEGORY,
        data=data,
        interpretation=(f"With {confidence * 100:.0f}% confidence the {horizon}-day loss should not exceed "
                        f"{headline * 100:.2f}% ({headline * value:,.0f}); estimates range from "
                        f"{min(methods.values()) * 100:.2f}% to {max(methods.values()) * 100:.2f}%."),
        recommendations=recs,
        value=headline * 100, benchmark=methods['parametric_normal'] * 100, higher_is_better=False,
    )


def _student_t_es(returns: pd.Series, confidence: float) -> float:
    df, loc, scale = stats.t.fit(returns)
    alpha = 1 - confidence
    q = stats.t.ppf(alpha, df)
    tail = stats.t.pdf(q, df) / alpha * (df + q ** 2) / (df - 1) if df > 1 else np.inf
    return float(-(loc - scale * tail))


def expected_shortfall_analysis(returns: Optional[pd.Series] = None,
                                portfolio: Optional[Portfolio] = None,
                                confidence: float = config.VAR_CONFIDENCE,
                                portfolio_value: Optional[float] = None) -> AnalysisResult:
    """
    Expected shortfall (CVaR): historical, normal and Student-t, plus the
    97.5% ES used for regulatory capital.
    """
    analysis_id = 'adv.risk.es'
    r = _returns_from(returns, portfolio, analysis_id, 30)
    value = _portfolio_value(portfolio, portfolio_value)
    var = historical_var(r, confidence)
    es = expected_shortfall(r, confidence)
    es_normal = parametric_expected_shortfall(r, confidence)
    es_t = _student_t_es(r, confidence)
    es_975 = expected_shortfall(r, 0.975)
    tail = r[r <= -var]
    ratio = safe_divide(es, var)

    return build_result(
        analysis_id, 'Expected Shortfall Analysis', CATEGORY,
        data={'confidence_level': confidence * 100, 'var_pct': round(var * 100, 3),
              'es_historical_pct': round(es * 100, 3), 'es_normal_pct': round(es_normal * 100, 3),
              'es_student_t_pct': round_or_none(es_t * 100, 3), 'es_97_5_pct': round(es_975 * 100, 3),
              'es_value': round(es * value, 2), 'es_to_var': round_or_none(ratio, 3),
              'tail_observations': int(len(tail)),
              'worst_loss_pct': round(float(-r.min()) * 100, 3)},
        interpretation=(f"When losses exceed the {confidence * 100:.0f}% VaR of {var * 100:.2f}%, they average "
                        f"{es * 100:.2f}% (ES/VaR {ratio:.2f})." if ratio else
                        f"Expected shortfall {es * 100:.2f}%."),
        recommendations=(['Tail losses are much deeper than VaR suggests; size limits on ES'] if ratio and ratio > 1.5 else []),
        value=es * 100, benchmark=es_normal * 100, higher_is_better=False,
    )


def stress_testing_analysis(returns: Optional[pd.Series] = None,
                            benchmark_returns: Optional[pd.Series] = None,
                            portfolio: Optional[Portfolio] = None,
                            statement: Optional[FinancialStatement] = None,
                            shocks: Optional[Dict[str, float]] = None,
                            critical_loss: float = 0.25,
                            portfolio_value: Optional[float] = None,
                            window: int = 20) -> AnalysisResult:
    """
    Historical and hypothetical market shocks propagated through beta,
    the worst observed window, per-asset losses and a reverse stress test.
    """
    analysis_id = 'adv.risk.stress'
    r = _returns_from(returns, portfolio, analysis_id, window + 10)
    value = _portfolio_value(portfolio, portfolio_value)
    pf = (Portfolio.from_dict(portfolio) if isinstance(portfolio, dict) else portfolio) if portfolio is not None else None

    market_beta = 1.0
    if benchmark_returns is not None:
        r_aligned, m = require_paired(r, benchmark_returns, 30, analysis_id)
        market_beta = beta(r_aligned, m)['beta']

    def impact(shock: float) -> Dict[str, float]:
        loss = market_beta * shock
        return {'market_shock_pct': round(shock * 100, 1), 'portfolio_change_pct': round(loss * 100, 2),
                'portfolio_change_value': round(loss * value, 2)}

    historical = {name: impact(shock) for name, shock in HISTORICAL_SCENARIOS.items()}
    scenario_shocks = dict(config.STRESS_SHOCKS)
    scenario_shocks.update(shocks or {})
    hypothetical = {name: impact(shock) for name, shock in scenario_shocks.items()}

    rolling = (1 + r).rolling(window).apply(np.prod, raw=True) - 1
    worst_window = float(rolling.min())

    asset_losses = None
    if pf is not None:
        reference = pf.benchmark_returns if pf.benchmark_returns is not None else pf.portfolio_returns()
        betas = {name: beta(pf.asset_returns[col], reference)['beta']
                 for name, col in zip(pf.names, pf.asset_returns.columns)}
        crash = scenario_shocks.get('market_crash', -0.30)
        w = pf.normalized_weights()
        asset_losses = {name: round(b * crash * wi * 100, 2) for (name, b), wi in zip(betas.items(), w)}

    breaking_shock = -critical_loss / market_beta if market_beta > 0 else None
    all_impacts = {**historical, **hypothetical}
    worst_name = min(all_impacts, key=lambda k: all_impacts[k]['portfolio_change_pct'])
    worst = all_impacts[worst_name]

    data = {'beta_used': round(market_beta, 4), 'historical_scenarios': historical,
            'hypothetical_scenarios': hypothetical,
            'worst_observed_window': {'window': window, 'return_pct': round(worst_window * 100, 2)},
            'asset_losses_in_market_crash_pct': asset_losses,
            'reverse_stress': {'critical_loss_pct': critical_loss * 100,
                               'market_shock_to_break_pct': round_or_none(breaking_shock * 100 if breaking_shock else None, 2),
                               'breaches_in_scenarios': [k for k, v in all_impacts.items()
                                                         if v['portfolio_change_pct'] <= -critical_loss * 100]},
            'worst_scenario': worst_name}

    if statement is not None:
        exposure = statement.marketable_securities + statement.investments
        loss = exposure * worst['portfolio_change_pct'] / 100
        data['balance_sheet_impact'] = {
            'market_exposure': round(exposure, 2), 'worst_case_loss': round(loss, 2),
            'loss_to_equity_pct': round_or_none(safe_divide(-loss * 100, statement.total_equity), 2),
        }

    breaches = data['reverse_stress']['breaches_in_scenarios']
    return build_result(
        analysis_id, 'Stress Testing Analysis', CATEGORY,
        data=data,
        interpretation=(f"The worst scenario ({worst_name.replace('_', ' ')}) costs "
                        f"{-worst['portfolio_change_pct']:.1f}% of value; {len(breaches)} scenarios breach the "
                        f"{critical_loss * 100:.0f}% loss limit."),
        recommendations=(['Hedge tail exposure or reduce beta; several scenarios breach the loss limit']
                         if len(breaches) > 1 else []),
        value=worst['portfolio_change_pct'], benchmark=-critical_loss * 100,
    )


def catastrophic_scenario_analysis(returns: Optional[pd.Series] = None,
                                   statement: Optional[FinancialStatement] = None,
                                   revenue_shock: float = 0.5,
                                   stress_horizon: int = 20,
                                   volatility_multiplier: float = 3.0) -> AnalysisResult:
    """
    Rare-event losses from a Student-t tail fit (1-in-100 to 1-in-10,000
    periods), a volatility-spike path loss and the company's survival
    horizon when revenue collapses.
    """
    analysis_id = 'adv.risk.catastrophic'
    require(returns is not None or statement is not None, "Returns or a financial statement are required", analysis_id)
    data: Dict[str, Any] = {}
    headline = None

    if returns is not None:
        r = require_series(returns, 50, analysis_id)
        df, loc, scale = stats.t.fit(r)
        tail = {f"1_in_{int(round(1 / (1 - p)))}": round(float(-stats.t.ppf(1 - p, df, loc=loc, scale=scale)) * 100, 3)
                for p in (0.99, 0.999, 0.9999)}
        sigma = float(r.std())
        spike_loss = stats.norm.ppf(0.99) * sigma * volatility_multiplier * np.sqrt(stress_horizon)
        mdd = maximum_drawdown(r)
        data['tail_losses_pct'] = tail
        data['student_t'] = {'df': round(float(df), 2), 'fat_tailed': bool(df < 6)}
        data['volatility_spike'] = {'multiplier': volatility_multiplier, 'horizon': stress_horizon,
                                    'loss_99_pct': round(min(spike_loss, 1.0) * 100, 2)}
        data['worst_observed_pct'] = round(float(r.min()) * 100, 3)
        data['max_drawdown_pct'] = mdd['max_drawdown_pct']
        headline = -spike_loss * 100

    if statement is not None:
        liquid = statement.cash + statement.marketable_securities
        variable = statement.variable_costs or statement.cost_of_goods_sold
        fixed = statement.fixed_costs or (statement.operating_expenses + statement.interest_expense)
        stressed_revenue = statement.revenue * (1 - revenue_shock)
        stressed_contribution = stressed_revenue - variable * (1 - revenue_shock)
        monthly_deficit = max(fixed - stressed_contribution, 0.0) / 12
        survival = liquid / monthly_deficit if monthly_deficit > 0 else None
        data['survival'] = {'revenue_shock_pct': revenue_shock * 100, 'liquid_assets': round(liquid, 2),
                            'monthly_cash_deficit': round(monthly_deficit, 2),
                            'survival_months': round_or_none(survival, 1),
                            'self_sustaining': monthly_deficit == 0}
        if headline is None:
            headline = survival

    survival = data.get('survival', {}).get('survival_months')
    parts = []
    if 'tail_losses_pct' in data:
        parts.append(f"A 1-in-1000 period loss is about {data['tail_losses_pct']['1_in_1000']:.1f}%")
    if 'survival' in data:
        parts.append(f"survival horizon {survival:.0f} months after a {revenue_shock * 100:.0f}% revenue collapse"
                     if survival is not None else 'operations stay cash positive after the revenue collapse')
    recs = []
    if survival is not None and survival < 12:
        recs.append('Build liquidity buffers: the company would run out of cash within a year')
    if data.get('student_t', {}).get('fat_tailed'):
        recs.append('Returns are fat-tailed; consider tail hedges')
    return build_result(
        analysis_id, 'Catastrophic Scenario Analysis', CATEGORY,
        data=data, interpretation='; '.join(parts) + '.', recommendations=recs,
        value=headline,
        evaluation=(None if survival is None else Rating.EXCELLENT if survival >= 24 else Rating.GOOD
                    if survival >= 12 else Rating.ACCEPTABLE if survival >= 6 else Rating.WEAK),
    )


def market_risk_analysis(returns: pd.Series,
                         benchmark_returns: Optional[pd.Series] = None,
                         statement: Optional[FinancialStatement] = None,
                         duration: Optional[float] = None,
                         convexity: float = 0.0,
                         rate_shock_bps: float = 100,
                         fx_exposure: float = 0.0,
                         fx_shock: float = 0.10,
                         confidence: float = config.VAR_CONFIDENCE,
                         periods_per_year: int = config.TRADING_DAYS) -> AnalysisResult:
    """
    Equity, interest rate and currency risk: volatility regime, beta,
    VaR, duration-convexity price change and FX earnings sensitivity.
    """
    analysis_id = 'adv.risk.market'
    r = require_series(returns, 30, analysis_id)
    vol = annualized_volatility(r, periods_per_year)
    ewma = ewma_volatility(r, periods_per_year=periods_per_year)
    current = float(ewma.iloc[-1]) if len(ewma) else vol
    regime = classify_volatility_regime(current * 100, vol * 100)
    data: Dict[str, Any] = {
        'equity': {'annualized_volatility_pct': round(vol * 100, 2), 'ewma_volatility_pct': round(current * 100, 2),
                   'regime': regime, 'var_pct': round(historical_var(r, confidence) * 100, 3)},
    }
    if benchmark_returns is not None:
        r_aligned, m = require_paired(r, benchmark_returns, 30, analysis_id)
        data['equity']['beta'] = beta(r_aligned, m, periods_per_year)

    dy = rate_shock_bps / 10_000
    rates: Dict[str, Any] = {'shock_bps': rate_shock_bps}
    if duration is not None:
        rates['price_change_pct'] = round((-duration * dy + 0.5 * convexity * dy ** 2) * 100, 3)
        rates['dv01_pct'] = round(duration * 0.0001 * 100, 4)
    if statement is not None and statement.total_debt:
        extra_interest = statement.total_debt * dy * (1 - config.DEFAULT_TAX_RATE)
        rates['net_income_impact'] = round(-extra_interest, 2)
        rates['net_income_impact_pct'] = round_or_none(
            -extra_interest / abs(statement.net_income) * 100 if statement.net_income else None, 2)
    data['interest_rate'] = rates

    if statement is not None and fx_exposure:
        fx_revenue = statement.revenue * fx_exposure
        margin = safe_divide(statement.operating_income, statement.revenue, 0.0)
        data['currency'] = {'exposure_pct': fx_exposure * 100, 'shock_pct': fx_shock * 100,
                            'revenue_impact': round(-fx_revenue * fx_shock, 2),
                            'operating_income_impact': round(-fx_revenue * fx_shock * margin, 2)}

    recs = []
    if regime['trend'] == 'Expanding':
        recs.append('Volatility is expanding; tighten risk limits')
    if rates.get('net_income_impact_pct') is not None and rates['net_income_impact_pct'] < -10:
        recs.append('Earnings are sensitive to rates; consider fixing debt costs')
    return build_result(
        analysis_id, 'Market Risk Analysis', CATEGORY,
        data=data,
        interpretation=(f"Volatility is {regime['regime'].lower()} at {current * 100:.1f}% ({regime['trend'].lower()})"
                        + (f"; a {rate_shock_bps:.0f}bp rise moves the position {rates['price_change_pct']:.2f}%"
                           if 'price_change_pct' in rates else '') + '.'),
        recommendations=recs,
        value=current * 100, benchmark=vol * 100, higher_is_better=False,
    )


def backtesting_validation_analysis(returns: pd.Series,
                                    var_series: Optional[Any] = None,
                                    confidence: float = config.VAR_CONFIDENCE,
                                    window: Optional[int] = None) -> AnalysisResult:
    """
    Kupiec POF, Christoffersen independence and Basel traffic light for a
    supplied VaR series, or for rolling historical and normal VaR forecasts.
    """
    analysis_id = 'adv.risk.backtest'
    r = require_series(returns, 60, analysis_id)
    primary = backtest_var(r, var_series, confidence, window)
    data = {'historical' if var_series is None else 'supplied': primary}

    if var_series is None:
        values = r.reset_index(drop=True)
        w = window or max(min(len(values) // 2, 250), 20)
        normal = -(values.rolling(w).mean() + stats.norm.ppf(1 - confidence) * values.rolling(w).std()).shift(1)
        mask = normal.notna()
        data['parametric_normal'] = backtest_var(values[mask], normal[mask], confidence)

    zone = primary['traffic_light']
    return build_result(
        analysis_id, 'Backtesting Validation Analysis', CATEGORY,
        data=data,
        interpretation=(f"{primary['exceptions']} exceptions against {primary['expected_exceptions']} expected; "
                        f"Kupiec p-value {primary['kupiec']['p_value']:.3f}, {zone} zone."),
        recommendations=(['Recalibrate the VaR model'] if zone != 'green' or primary['kupiec']['reject_model'] else [])
                        + (['Exceptions cluster in time; use a conditional volatility model']
                           if primary['christoffersen']['reject_independence'] else []),
        value=primary['exceptions'], benchmark=primary['expected_exceptions'],
        evaluation={'green': Rating.GOOD, 'yellow': Rating.ACCEPTABLE, 'red': Rating.WEAK}[zone],
    )
