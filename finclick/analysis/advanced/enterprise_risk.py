"""
Enterprise Risk Analysis
Operational, credit, liquidity and non-financial (cyber, geopolitical,
climate, governance, social) risks, structural credit models and bank
capital adequacy (ICAAP/ILAAP, Basel III).
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from scipy.optimize import fsolve

from finclick import config
from finclick.analysis.base import (
    build_result, require, require_series, require_statement, resolve_benchmarks
)
from finclick.analysis.fundamental.qualitative import esg_score_analysis, management_quality_indicators
from finclick.analysis.fundamental.scoring import (
    ALTMAN_MODELS, altman_z_score, ohlson_o_score, zmijewski_score
)
from finclick.analysis.quantitative.risk_metrics import annualized_volatility
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, round_or_none, safe_divide, weighted_score
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement, sort_statements

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.risk'

# Basel II standardised approach betas per business line
BUSINESS_LINE_BETAS = {
    'corporate_finance': 0.18,
    'trading_and_sales': 0.18,
    'retail_banking': 0.12,
    'commercial_banking': 0.15,
    'payment_and_settlement': 0.18,
    'agency_services': 0.15,
    'asset_management': 0.12,
    'retail_brokerage': 0.12,
}
BASIC_INDICATOR_ALPHA = 0.15

# Minimum ratios including the 2.5% capital conservation buffer
BASEL_MINIMUMS = {
    'cet1_ratio': 7.0,
    'tier1_ratio': 8.5,
    'total_capital_ratio': 10.5,
    'leverage_ratio': 3.0,
    'lcr': 100.0,
    'nsfr': 100.0,
}

# Balance sheet risk weights used when risk-weighted assets are not supplied
_RISK_WEIGHTS = {
    'cash': 0.0, 'marketable_securities': 0.2, 'accounts_receivable': 1.0, 'inventory': 1.0,
    'other_current_assets': 1.0, 'ppe': 1.0, 'investments': 1.0, 'other_non_current_assets': 1.0,
}


def _risk_level(index: float) -> str:
    if index < 25:
        return 'low'
    if index < 50:
        return 'moderate'
    if index < 75:
        return 'high'
    return 'critical'


def _scored_risk(analysis_id: str, scores: Dict[str, Any],
                 weights: Optional[Dict[str, float]] = None,
                 expected: Sequence[str] = ()) -> Dict[str, Any]:
    """Weighted 0-100 risk index from factor risk scores (100 = most severe)."""
    require(scores, "Factor risk scores are required", analysis_id)
    factors = {k: clip_score(float(v)) for k, v in scores.items() if v is not None}
    require(factors, "Factor risk scores are required", analysis_id)
    index = weighted_score(factors, weights or {})
    top = sorted(factors.items(), key=lambda kv: kv[1], reverse=True)
    return {
        'factors': factors,
        'risk_index': round(index, 1),
        'risk_level': _risk_level(index),
        'highest_risks': [k for k, v in top if v >= 60][:3],
        'unassessed_factors': [f for f in expected if f not in factors],
    }


def _gross_income(statements: List[FinancialStatement]) -> List[float]:
    return [st.gross_profit + st.other_income for st in statements]


def operational_risk_analysis(statement: FinancialStatement,
                              statements: Optional[List[FinancialStatement]] = None,
                              business_lines: Optional[Dict[str, float]] = None,
                              loss_events: Optional[Sequence[float]] = None,
                              observation_years: Optional[float] = None,
                              confidence: float = 0.999,
                              simulations: int = config.MONTE_CARLO_SIMULATIONS,
                              seed: Optional[int] = config.RANDOM_SEED) -> AnalysisResult:
    """
    Operational risk capital.

    Basic indicator approach: 15% of the average positive gross income
    over the last three years. Standardised approach: gross income per
    business line times its beta. With a loss history, a loss
    distribution approach (Poisson frequency, lognormal severity,
    Monte Carlo aggregation) gives the 99.9% operational VaR.
    """
    analysis_id = 'adv.risk.operational'
    st = require_statement(statement, analysis_id)
    history = sort_statements(statements or [st])[-3:]
    positive = [g for g in _gross_income(history) if g > 0]
    require(positive or business_lines or loss_events is not None, "Gross income or loss history is required", analysis_id)
    bia = BASIC_INDICATOR_ALPHA * float(np.mean(positive)) if positive else None
    data: Dict[str, Any] = {'basic_indicator': {'alpha': BASIC_INDICATOR_ALPHA,
                                                'average_gross_income': round_or_none(np.mean(positive) if positive else None, 2),
                                                'capital': round_or_none(bia, 2)}}

    if business_lines:
        lines = {k: float(v) for k, v in business_lines.items()}
        charges = {k: v * BUSINESS_LINE_BETAS.get(k, 0.15) for k, v in lines.items()}
        data['standardised'] = {'charges': {k: round(v, 2) for k, v in charges.items()},
                                'capital': round(max(sum(charges.values()), 0.0), 2)}

    if loss_events is not None and len(loss_events) >= 5:
        losses = np.asarray([x for x in loss_events if x > 0], dtype=float)
        years = observation_years or len(statements or []) or 1
        lam = len(losses) / years
        shape, _, scale = stats.lognorm.fit(losses, floc=0)
        rng = np.random.default_rng(seed)
        counts = rng.poisson(lam, simulations)
        draws = rng.lognormal(np.log(scale), shape, int(counts.sum()))
        annual = np.bincount(np.repeat(np.arange(simulations), counts), weights=draws, minlength=simulations)
        op_var = float(np.percentile(annual, confidence * 100))
        expected = float(annual.mean())
        data['loss_distribution'] = {
            'events': int(len(losses)), 'frequency_per_year': round(lam, 3),
            'severity_mu': round(float(np.log(scale)), 4), 'severity_sigma': round(float(shape), 4),
            'expected_annual_loss': round(expected, 2), 'op_var': round(op_var, 2),
            'unexpected_loss': round(op_var - expected, 2), 'confidence': confidence * 100,
        }

    capital = (data.get('loss_distribution', {}).get('unexpected_loss')
               or data.get('standardised', {}).get('capital') or bia or 0.0)
    to_equity = safe_divide(capital, st.total_equity)
    data['capital_to_equity_pct'] = round_or_none(to_equity * 100 if to_equity is not None else None, 2)

    return build_result(
        analysis_id, 'Operational Risk Analysis', CATEGORY,
        data=data,
        interpretation=(f"Operational risk capital of {capital:,.0f}"
                        + (f", {to_equity * 100:.1f}% of equity." if to_equity is not None else '.')),
        recommendations=(['Operational risk capital is a large share of equity; strengthen controls']
                         if to_equity is not None and to_equity > 0.15 else []),
        value=to_equity * 100 if to_equity is not None else None, benchmark=10.0, higher_is_better=False,
    )


def altman_default_probability(z: float, model: str) -> float:
    """
    Logistic map of an Altman Z to a one-year PD, calibrated to 15% at the
    distress threshold and 1% at the safe threshold.
    """
    params = ALTMAN_MODELS[model]
    logit_distress, logit_safe = math.log(0.15 / 0.85), math.log(0.01 / 0.99)
    a = (logit_distress - logit_safe) / (params['safe'] - params['distress'])
    b = params['distress'] + logit_distress / a
    return 1 / (1 + math.exp(min(a * (z - b), 50.0)))


def credit_risk_analysis(statement: FinancialStatement,
                         exposure: Optional[float] = None,
                         undrawn: float = 0.0,
                         ccf: float = 0.75,
                         lgd: Optional[float] = None,
                         collateral: float = 0.0,
                         confidence: float = 0.999) -> AnalysisResult:
    """
    Expected and unexpected credit loss.

    Formula:
        EL = PD x LGD x EAD
        EAD = drawn + CCF x undrawn

    PD comes from the Altman Z mapping; LGD defaults to 45% unsecured,
    reduced by collateral. Unexpected loss uses the Basel IRB
    single-factor formula.
    """
    analysis_id = 'adv.risk.credit'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    z = altman_z_score(st)
    pd_ = altman_default_probability(z['z_score'], z['model'])
    ead = (exposure if exposure is not None else st.total_debt) + ccf * undrawn
    require(ead > 0, "No credit exposure to assess", analysis_id)
    if lgd is None:
        lgd = 0.45 * max(1 - collateral / ead, 0.0)
    el = pd_ * lgd * ead

    # Basel IRB corporate correlation and capital
    rho = 0.12 * (1 - math.exp(-50 * pd_)) / (1 - math.exp(-50)) \
        + 0.24 * (1 - (1 - math.exp(-50 * pd_)) / (1 - math.exp(-50)))
    conditional = stats.norm.cdf((stats.norm.ppf(pd_) + math.sqrt(rho) * stats.norm.ppf(confidence))
                                 / math.sqrt(1 - rho))
    capital = lgd * ead * (conditional - pd_)
    ul = ead * lgd * math.sqrt(pd_ * (1 - pd_))

    if pd_ < 0.005:
        grade = 'investment_grade'
    elif pd_ < 0.03:
        grade = 'speculative'
    else:
        grade = 'high_risk'

    return build_result(
        analysis_id, 'Credit Risk Analysis', CATEGORY,
        data={'altman': {'z_score': z['z_score'], 'zone': z['zone'], 'model': z['model']},
              'pd_pct': round(pd_ * 100, 3), 'lgd_pct': round(lgd * 100, 2), 'ead': round(ead, 2),
              'expected_loss': round(el, 2), 'unexpected_loss': round(ul, 2),
              'irb_correlation': round(rho, 4), 'irb_capital': round(capital, 2),
              'risk_weighted_assets': round(capital * 12.5, 2), 'grade': grade},
        interpretation=(f"PD of {pd_ * 100:.2f}% ({grade.replace('_', ' ')}) on an exposure of {ead:,.0f} "
                        f"gives an expected loss of {el:,.0f}."),
        recommendations=(['Require collateral or covenants'] if grade == 'high_risk' else []),
        value=pd_ * 100, benchmark=1.0, higher_is_better=False,
    )


def liquidity_profile(st: FinancialStatement, debt_runoff: float = 0.25,
                      inflow_rate: float = 0.5) -> Dict[str, float]:
    """
    30-day stressed liquidity position.

    HQLA = cash + 85% of marketable securities. Outflows are a month of
    cash operating costs plus a run-off share of short-term debt; inflows
    are a stressed share of a month's revenue, capped at 75% of outflows.
    """
    hqla = st.cash + 0.85 * st.marketable_securities
    cash_costs = max(st.cost_of_goods_sold + st.operating_expenses + st.interest_expense
                     + st.tax_expense - st.depreciation, 0.0)
    outflows = cash_costs / 12 + st.short_term_debt * debt_runoff
    inflows = min(st.revenue / 12 * inflow_rate, 0.75 * outflows)
    net = outflows - inflows
    daily_costs = cash_costs / 365
    return {
        'hqla': hqla,
        'outflows_30d': outflows,
        'inflows_30d': inflows,
        'net_outflows_30d': net,
        'lcr': hqla / net * 100 if net > 0 else None,
        'survival_days': hqla / daily_costs if daily_costs > 0 else None,
    }


def liquidity_risk_analysis(statement: FinancialStatement,
                            benchmarks: Optional[IndustryBenchmarks] = None,
                            debt_runoff: float = 0.25,
                            inflow_rate: float = 0.5) -> AnalysisResult:
    """LCR-style coverage, cash runway, funding gap and liquidity ratios."""
    analysis_id = 'adv.risk.liquidity'
    st = require_statement(statement, analysis_id, needs=('total_current_liabilities',))
    bm = resolve_benchmarks(benchmarks)
    profile = liquidity_profile(st, debt_runoff, inflow_rate)
    current = st.total_current_assets / st.total_current_liabilities
    quick = (st.total_current_assets - st.inventory) / st.total_current_liabilities
    burn = -st.operating_cash_flow / 12 if st.operating_cash_flow < 0 else 0.0
    runway = (st.cash + st.marketable_securities) / burn if burn > 0 else None
    lcr = profile['lcr']

    return build_result(
        analysis_id, 'Liquidity Risk Analysis', CATEGORY,
        data={**{k: round_or_none(v, 2) for k, v in profile.items()},
              'current_ratio': round(current, 3), 'quick_ratio': round(quick, 3),
              'current_ratio_benchmark': bm.get('current_ratio'),
              'monthly_cash_burn': round(burn, 2), 'cash_runway_months': round_or_none(runway, 1),
              'funding_gap': round(max(st.total_current_liabilities - st.total_current_assets, 0.0), 2)},
        interpretation=(f"Stressed liquidity coverage {lcr:.0f}% with {profile['survival_days']:.0f} days of "
                        f"costs covered by liquid assets." if lcr is not None and profile['survival_days']
                        else f"Current ratio {current:.2f}."),
        recommendations=(['Liquidity coverage is below 100%; raise liquid reserves or term out debt']
                         if lcr is not None and lcr < 100 else [])
                        + (['Cash burn leaves less than a year of runway'] if runway is not None and runway < 12 else []),
        value=lcr, benchmark=100.0 if lcr is not None else None,
    )


CYBER_FACTORS = ('control_gaps', 'incident_history', 'data_sensitivity',
                 'third_party_exposure', 'recovery_weakness')


def cyber_risk_analysis(cyber_scores: Dict[str, float],
                        statement: Optional[FinancialStatement] = None,
                        weights: Optional[Dict[str, float]] = None,
                        breach_cost_share: float = 0.05) -> AnalysisResult:
    """
    Cyber risk index from factor risk scores, with the revenue exposed to
    a breach scaled by the index.
    """
    analysis_id = 'adv.risk.cyber'
    scored = _scored_risk(analysis_id, cyber_scores, weights, CYBER_FACTORS)
    if statement is not None and statement.revenue:
        scored['potential_loss'] = round(statement.revenue * breach_cost_share * scored['risk_index'] / 100, 2)
    index = scored['risk_index']
    return build_result(
        analysis_id, 'Cyber Risk Analysis', CATEGORY,
        data=scored,
        interpretation=f"Cyber risk index {index:.0f}/100 ({scored['risk_level']}).",
        recommendations=[f"Address {f.replace('_', ' ')}" for f in scored['highest_risks']],
        value=index, evaluation=rate_score(100 - index),
    )


def geopolitical_risk_analysis(country_exposure: Dict[str, Dict[str, float]],
                               statement: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Exposure-weighted country risk.

    Args:
        country_exposure: {country: {'share': revenue or asset share, 'risk': 0-100}}
    """
    analysis_id = 'adv.risk.geopolitical'
    require(country_exposure, "Country exposures are required", analysis_id)
    frame = pd.DataFrame.from_dict(country_exposure, orient='index').astype(float)
    require({'share', 'risk'} <= set(frame.columns), "Each country needs a share and a risk score", analysis_id)
    shares = frame['share'] / frame['share'].sum()
    risk = frame['risk'].clip(0, 100)
    index = float((shares * risk).sum())
    hhi = float((shares ** 2).sum())
    high = shares[risk >= 60]
    data = {'risk_index': round(index, 1), 'risk_level': _risk_level(index),
            'exposure_hhi': round(hhi, 4), 'effective_countries': round(1 / hhi, 2),
            'high_risk_share_pct': round(float(high.sum()) * 100, 2),
            'countries': {c: {'share_pct': round(float(shares[c]) * 100, 2), 'risk': float(risk[c])}
                          for c in frame.index}}
    if statement is not None and statement.revenue:
        data['revenue_at_risk'] = round(statement.revenue * float(high.sum()), 2)
    return build_result(
        analysis_id, 'Geopolitical Risk Analysis', CATEGORY,
        data=data,
        interpretation=(f"Geopolitical risk index {index:.0f}/100; {high.sum() * 100:.0f}% of exposure sits in "
                        f"high-risk countries."),
        recommendations=(['Diversify away from high-risk jurisdictions'] if high.sum() > 0.25 else []),
        value=index, evaluation=rate_score(100 - index),
    )


def environmental_climate_risk_analysis(statement: FinancialStatement,
                                        emissions: Optional[float] = None,
                                        carbon_prices: Sequence[float] = (50, 100, 200),
                                        climate_scores: Optional[Dict[str, float]] = None,
                                        benchmark_intensity: float = 150.0) -> AnalysisResult:
    """
    Carbon intensity (tCO2e per million of revenue), carbon-price stress on
    operating income and an optional physical/transition risk index.
    """
    analysis_id = 'adv.risk.climate'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    require(emissions is not None or climate_scores, "Emissions or climate risk scores are required", analysis_id)
    data: Dict[str, Any] = {}
    intensity = None
    if emissions is not None:
        intensity = emissions / (st.revenue / 1e6)
        stress = {}
        for price in carbon_prices:
            cost = emissions * price
            stress[str(price)] = {'carbon_cost': round(cost, 2),
                                  'share_of_operating_income_pct': round_or_none(
                                      safe_divide(cost * 100, st.operating_income) if st.operating_income > 0 else None, 2),
                                  'margin_after_pct': round((st.operating_income - cost) / st.revenue * 100, 2)}
        data.update({'emissions_tco2e': emissions, 'carbon_intensity': round(intensity, 2),
                     'benchmark_intensity': benchmark_intensity, 'carbon_price_stress': stress})
    if climate_scores:
        data['climate_risk'] = _scored_risk(analysis_id, climate_scores,
                                            expected=('physical', 'transition', 'regulatory', 'market'))

    worst = data.get('carbon_price_stress', {}).get(str(max(carbon_prices)), {})
    return build_result(
        analysis_id, 'Environmental and Climate Risk Analysis', CATEGORY,
        data=data,
        interpretation=(f"Carbon intensity {intensity:.0f} tCO2e per million of revenue; at {max(carbon_prices)} per "
                        f"tonne the operating margin falls to {worst.get('margin_after_pct', 0):.1f}%."
                        if intensity is not None else
                        f"Climate risk index {data['climate_risk']['risk_index']:.0f}/100."),
        recommendations=(['Set an emissions reduction pathway; carbon costs would erase most operating profit']
                         if (worst.get('share_of_operating_income_pct') or 0) > 50 else []),
        value=intensity, benchmark=benchmark_intensity if intensity is not None else None, higher_is_better=False,
        evaluation=None if intensity is not None else rate_score(100 - data['climate_risk']['risk_index']),
    )


def governance_analysis(governance_scores: Dict[str, float],
                        statements: Optional[List[FinancialStatement]] = None) -> AnalysisResult:
    """
    Governance quality from review scores (board independence, disclosure,
    audit, shareholder rights, 0-100 higher is better), combined with the
    management record when statements are available.
    """
    analysis_id = 'adv.risk.governance'
    require(governance_scores, "Governance scores are required", analysis_id)
    esg = esg_score_analysis({'governance': governance_scores})
    score = esg['overall_score']
    data = {'pillar': esg, 'management': None}
    if statements:
        management = management_quality_indicators(statements, governance_scores)
        data['management'] = management
        score = (score + management['quality_score']) / 2
    factors = esg['factors'].get('governance', {})
    weak = [k for k, v in factors.items() if v < 50]
    return build_result(
        analysis_id, 'Governance Analysis', CATEGORY,
        data={**data, 'score': round(score, 1), 'weak_areas': weak},
        interpretation=f"Governance score {score:.0f}/100." + (f" Weak: {', '.join(weak)}." if weak else ''),
        recommendations=[f"Improve {w.replace('_', ' ')}" for w in weak],
        value=score, evaluation=rate_score(score),
    )


def social_responsibility_analysis(social_scores: Dict[str, float],
                                   statement: Optional[FinancialStatement] = None,
                                   previous: Optional[FinancialStatement] = None) -> AnalysisResult:
    """Social pillar score with workforce indicators from the statements."""
    analysis_id = 'adv.risk.social'
    require(social_scores, "Social responsibility scores are required", analysis_id)
    esg = esg_score_analysis({'social': social_scores})
    score = esg['overall_score']
    data: Dict[str, Any] = {'pillar': esg}
    if statement is not None and statement.employees:
        data['revenue_per_employee'] = round(statement.revenue / statement.employees, 2)
        if previous is not None and previous.employees:
            data['headcount_growth_pct'] = round((statement.employees / previous.employees - 1) * 100, 2)
    factors = esg['factors'].get('social', {})
    weak = [k for k, v in factors.items() if v < 50]
    return build_result(
        analysis_id, 'Social Responsibility Analysis', CATEGORY,
        data={**data, 'score': score, 'weak_areas': weak},
        interpretation=f"Social responsibility score {score:.0f}/100.",
        recommendations=[f"Improve {w.replace('_', ' ')}" for w in weak],
        value=score, evaluation=rate_score(score),
    )


def merton_model(equity_value: float, equity_volatility: float, debt: float,
                 risk_free_rate: float = config.RISK_FREE_RATE, horizon: float = 1.0) -> Dict[str, float]:
    """
    Merton structural model solved for asset value and volatility.

        E = V N(d1) - D e^(-rT) N(d2)
        σE E = N(d1) σV V
    """
    def d1_d2(v, sv):
        d1 = (math.log(v / debt) + (risk_free_rate + 0.5 * sv ** 2) * horizon) / (sv * math.sqrt(horizon))
        return d1, d1 - sv * math.sqrt(horizon)

    def equations(x):
        v, sv = abs(x[0]), abs(x[1]) or 1e-6
        d1, d2 = d1_d2(v, sv)
        return [v * stats.norm.cdf(d1) - debt * math.exp(-risk_free_rate * horizon) * stats.norm.cdf(d2) - equity_value,
                stats.norm.cdf(d1) * sv * v - equity_volatility * equity_value]

    v0 = equity_value + debt
    solution = fsolve(equations, [v0, equity_volatility * equity_value / v0], full_output=True)
    v, sv = abs(solution[0][0]), abs(solution[0][1])
    dd = (math.log(v / debt) + (risk_free_rate - 0.5 * sv ** 2) * horizon) / (sv * math.sqrt(horizon))
    return {'asset_value': v, 'asset_volatility': sv, 'distance_to_default': dd,
            'default_probability': float(stats.norm.cdf(-dd)), 'converged': solution[2] == 1}


def credit_risk_models_analysis(statement: FinancialStatement,
                                previous: Optional[FinancialStatement] = None,
                                returns: Optional[pd.Series] = None,
                                equity_volatility: Optional[float] = None,
                                risk_free_rate: float = config.RISK_FREE_RATE,
                                horizon: float = 1.0) -> AnalysisResult:
    """
    Merton distance to default (KMV default point: current liabilities plus
    half the long-term liabilities) next to the Ohlson logit and Zmijewski
    probit default probabilities and the Altman-implied PD.
    """
    analysis_id = 'adv.risk.credit_models'
    st = require_statement(statement, analysis_id, needs=('total_assets', 'total_liabilities'))
    if equity_volatility is None:
        r = require_series(returns, 30, analysis_id)
        equity_volatility = annualized_volatility(r)
    require(equity_volatility > 0, "Equity volatility must be positive", analysis_id)
    equity = st.market_cap or st.total_equity
    require(equity > 0, "Equity value must be positive", analysis_id)
    default_point = st.total_current_liabilities + 0.5 * st.total_non_current_liabilities
    require(default_point > 0, "No liabilities to default on", analysis_id)

    merton = merton_model(equity, equity_volatility, default_point, risk_free_rate, horizon)
    ohlson = ohlson_o_score(st, previous)
    zmijewski = zmijewski_score(st)
    z = altman_z_score(st)
    altman_pd = altman_default_probability(z['z_score'], z['model'])
    pds = {'merton': merton['default_probability'], 'ohlson_logit': ohlson['probability'],
           'zmijewski_probit': zmijewski['probability'], 'altman': altman_pd}
    consensus = float(np.median([p for p in pds.values() if p is not None]))

    return build_result(
        analysis_id, 'Credit Risk Models Analysis', CATEGORY,
        data={'merton': {k: (round(v, 4) if isinstance(v, float) else v) for k, v in merton.items()},
              'default_point': round(default_point, 2), 'equity_volatility': round(equity_volatility, 4),
              'default_probabilities_pct': {k: round_or_none(v * 100 if v is not None else None, 3) for k, v in pds.items()},
              'consensus_pd_pct': round(consensus * 100, 3)},
        interpretation=(f"Distance to default {merton['distance_to_default']:.2f} standard deviations; "
                        f"models agree on a median PD of {consensus * 100:.2f}%."),
        recommendations=(['Default risk is elevated across models'] if consensus > 0.05 else []),
        value=merton['distance_to_default'], benchmark=3.0,
    )


def _estimated_rwa(st: FinancialStatement) -> float:
    return sum(getattr(st, item) * weight for item, weight in _RISK_WEIGHTS.items())


def icaap_ilaap_analysis(statement: FinancialStatement,
                         statements: Optional[List[FinancialStatement]] = None,
                         risk_weighted_assets: Optional[float] = None,
                         capital_add_ons: Optional[Dict[str, float]] = None,
                         stress_loss_pct: float = 0.03) -> AnalysisResult:
    """
    Internal capital and liquidity adequacy.

    Capital needs are Pillar 1 (8% of risk-weighted assets for credit,
    8% of trading securities for market risk, basic indicator for
    operational risk) plus Pillar 2 add-ons and a stress buffer; available
    capital is equity less intangibles. The liquidity side reuses the
    30-day stressed profile.
    """
    analysis_id = 'adv.risk.icaap'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    rwa = risk_weighted_assets if risk_weighted_assets is not None else _estimated_rwa(st)
    history = sort_statements(statements or [st])[-3:]
    positive = [g for g in _gross_income(history) if g > 0]
    pillar1 = {
        'credit': 0.08 * rwa,
        'market': 0.08 * st.marketable_securities,
        'operational': BASIC_INDICATOR_ALPHA * float(np.mean(positive)) if positive else 0.0,
    }
    pillar2 = {k: float(v) for k, v in (capital_add_ons or {}).items()}
    stress_buffer = stress_loss_pct * st.total_assets
    required = sum(pillar1.values()) + sum(pillar2.values()) + stress_buffer
    available = st.total_equity - st.intangible_assets
    coverage = safe_divide(available, required)
    liquidity = liquidity_profile(st)

    return build_result(
        analysis_id, 'ICAAP / ILAAP Analysis', CATEGORY,
        data={'risk_weighted_assets': round(rwa, 2), 'rwa_estimated': risk_weighted_assets is None,
              'pillar1': {k: round(v, 2) for k, v in pillar1.items()},
              'pillar2': {k: round(v, 2) for k, v in pillar2.items()},
              'stress_buffer': round(stress_buffer, 2), 'capital_required': round(required, 2),
              'capital_available': round(available, 2), 'capital_surplus': round(available - required, 2),
              'capital_coverage': round_or_none(coverage, 3),
              'liquidity': {k: round_or_none(v, 2) for k, v in liquidity.items()}},
        interpretation=(f"Available capital covers {coverage:.2f}x the internal requirement"
                        + (f"; stressed liquidity coverage {liquidity['lcr']:.0f}%." if liquidity['lcr'] else '.')
                        if coverage is not None else 'No capital requirement could be derived.'),
        recommendations=(['Capital falls short of the internal requirement'] if coverage is not None and coverage < 1 else [])
                        + (['Liquidity buffer is below stressed outflows'] if liquidity['lcr'] and liquidity['lcr'] < 100 else []),
        value=coverage, benchmark=1.0 if coverage is not None else None,
    )


def basel_iii_analysis(bank_data: Optional[Dict[str, float]] = None,
                       statement: Optional[FinancialStatement] = None) -> AnalysisResult:
    """
    Basel III capital, leverage and liquidity ratios against minimums
    including the conservation buffer.

    Args:
        bank_data: cet1, additional_tier1, tier2, rwa, exposure, hqla,
            net_outflows, available_stable_funding, required_stable_funding;
            missing figures are estimated from the statement
    """
    analysis_id = 'adv.risk.basel3'
    require(bank_data or statement is not None, "Bank capital data or a statement is required", analysis_id)
    bank = dict(bank_data or {})
    estimated = []

    def figure(key, fallback):
        if bank.get(key) is not None:
            return float(bank[key])
        require(statement is not None, f"Missing {key} and no statement to estimate it from", analysis_id)
        estimated.append(key)
        return float(fallback())

    cet1 = figure('cet1', lambda: statement.total_equity - statement.intangible_assets)
    at1 = float(bank.get('additional_tier1', 0.0))
    tier2 = float(bank.get('tier2', 0.0))
    rwa = figure('rwa', lambda: _estimated_rwa(statement))
    exposure = figure('exposure', lambda: statement.total_assets)
    require(rwa > 0 and exposure > 0, "Risk-weighted assets and exposure must be positive", analysis_id)
    hqla = figure('hqla', lambda: liquidity_profile(statement)['hqla'])
    outflows = figure('net_outflows', lambda: liquidity_profile(statement)['net_outflows_30d'])
    asf = figure('available_stable_funding',
                 lambda: statement.total_equity + statement.total_non_current_liabilities
                 + 0.9 * statement.other_current_liabilities)
    rsf = figure('required_stable_funding',
                 lambda: 0.5 * statement.marketable_securities + 0.85 * (statement.accounts_receivable + statement.inventory)
                 + statement.total_non_current_assets)

    ratios = {
        'cet1_ratio': cet1 / rwa * 100,
        'tier1_ratio': (cet1 + at1) / rwa * 100,
        'total_capital_ratio': (cet1 + at1 + tier2) / rwa * 100,
        'leverage_ratio': (cet1 + at1) / exposure * 100,
        'lcr': hqla / outflows * 100 if outflows > 0 else None,
        'nsfr': asf / rsf * 100 if rsf > 0 else None,
    }
    checks = {k: {'value': round_or_none(v, 2), 'minimum': BASEL_MINIMUMS[k],
                  'compliant': v is None or v >= BASEL_MINIMUMS[k]} for k, v in ratios.items()}
    breaches = [k for k, c in checks.items() if not c['compliant']]
    headroom = ratios['cet1_ratio'] - BASEL_MINIMUMS['cet1_ratio']

    return build_result(
        analysis_id, 'Basel III Analysis', CATEGORY,
        data={'ratios': checks, 'breaches': breaches, 'estimated_inputs': estimated,
              'cet1_headroom_pct': round(headroom, 2),
              'capital_shortfall': round(max(BASEL_MINIMUMS['total_capital_ratio'] / 100 * rwa
                                             - (cet1 + at1 + tier2), 0.0), 2)},
        interpretation=(f"CET1 ratio {ratios['cet1_ratio']:.1f}% against a {BASEL_MINIMUMS['cet1_ratio']:.1f}% minimum; "
                        + (f"breaches: {', '.join(breaches)}." if breaches else 'all Basel III minimums are met.')),
        recommendations=[f"Restore the {b.replace('_', ' ')} above its minimum" for b in breaches],
        value=ratios['cet1_ratio'], benchmark=BASEL_MINIMUMS['cet1_ratio'],
        evaluation=Rating.WEAK if breaches else None,
    )
