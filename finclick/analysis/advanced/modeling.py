"""
Financial Modeling Analysis
Scenarios, simulation, projection, sensitivity, decision and option
models, optimisation and programming, game theory and exposure networks.
"""

import logging
import math
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from scipy.optimize import linprog, minimize, minimize_scalar
from statsmodels.tsa.holtwinters import Holt

from finclick import config
from finclick.analysis.applied.valuation import npv
from finclick.analysis.base import (
    build_result, item_series, require, require_series, require_statement, resolve_benchmarks
)
from finclick.analysis.fundamental.valuation.dcf import calculate_cost_of_equity, calculate_wacc
from finclick.analysis.quantitative.model_accuracy import calculate_mape
from finclick.analysis.quantitative.monte_carlo import geometric_brownian_motion
from finclick.analysis.quantitative.time_series import arima_forecast
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import cagr, clip_score, pct_change, round_or_none, safe_divide
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement, require_statements

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.modeling'

DEFAULT_SCENARIOS = {
    'bear': {'probability': 0.25, 'revenue_growth': -0.10, 'margin_change': -0.03},
    'base': {'probability': 0.50, 'revenue_growth': None, 'margin_change': 0.0},
    'bull': {'probability': 0.25, 'revenue_growth': 0.15, 'margin_change': 0.02},
}

DEFAULT_WHAT_IF = {
    'revenue': -0.10,
    'cost_of_goods_sold': 0.10,
    'operating_expenses': 0.10,
    'interest_expense': 0.20,
}


def _historical_growth(statements: Optional[List[FinancialStatement]], default: float = 0.05) -> float:
    if not statements or len(statements) < 2:
        return default
    revenue = item_series(statements, 'revenue')
    growth = cagr(revenue.iloc[0], revenue.iloc[-1], len(revenue) - 1)
    return float(np.clip(growth / 100, -0.2, 0.3)) if growth is not None else default


def _tax_rate(st: FinancialStatement) -> float:
    rate = st.effective_tax_rate
    return rate if rate is not None and 0 <= rate < 0.6 else config.DEFAULT_TAX_RATE


def _income(revenue: float, cogs: float, opex: float, interest: float, other: float,
            tax_rate: float, shares: float = 0.0) -> Dict[str, Optional[float]]:
    gross = revenue - cogs
    ebit = gross - opex
    ebt = ebit - interest + other
    tax = max(ebt, 0.0) * tax_rate
    net = ebt - tax
    return {'revenue': revenue, 'gross_profit': gross, 'operating_income': ebit, 'income_before_tax': ebt,
            'tax': tax, 'net_income': net, 'net_margin': safe_divide(net * 100, revenue),
            'interest_coverage': safe_divide(ebit, interest), 'eps': safe_divide(net, shares) if shares else None}


def advanced_scenario_analysis(statement: FinancialStatement,
                               statements: Optional[List[FinancialStatement]] = None,
                               benchmarks: Optional[IndustryBenchmarks] = None,
                               scenarios: Optional[Dict[str, Dict[str, float]]] = None) -> AnalysisResult:
    """
    Probability-weighted bear/base/bull projection of next-year net
    income, EPS and equity value (earnings times the industry P/E).
    A base growth of None uses the historical revenue CAGR.
    """
    analysis_id = 'adv.model.scenario'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    pe = resolve_benchmarks(benchmarks).get('pe_ratio') or 15.0
    base_growth = _historical_growth(statements)
    margin = st.net_income / st.revenue
    cases = scenarios or DEFAULT_SCENARIOS
    total_probability = sum(float(c.get('probability', 0)) for c in cases.values())
    require(total_probability > 0, "Scenario probabilities must be positive", analysis_id)

    outcomes = {}
    for name, case in cases.items():
        growth = case.get('revenue_growth')
        growth = base_growth if growth is None else float(growth)
        case_margin = margin + float(case.get('margin_change', 0.0))
        revenue = st.revenue * (1 + growth)
        income = revenue * case_margin
        outcomes[name] = {
            'probability': float(case.get('probability', 0)) / total_probability,
            'revenue_growth_pct': round(growth * 100, 2), 'net_margin_pct': round(case_margin * 100, 2),
            'revenue': round(revenue, 2), 'net_income': round(income, 2),
            'eps': round_or_none(safe_divide(income, st.shares_outstanding)),
            'equity_value': round(max(income, 0.0) * pe, 2),
        }
    expected = sum(o['probability'] * o['net_income'] for o in outcomes.values())
    spread = math.sqrt(sum(o['probability'] * (o['net_income'] - expected) ** 2 for o in outcomes.values()))
    worst = min(outcomes.values(), key=lambda o: o['net_income'])
    expected_value = sum(o['probability'] * o['equity_value'] for o in outcomes.values())
    change = pct_change(expected, st.net_income)

    return build_result(
        analysis_id, 'Advanced Scenario Analysis', CATEGORY,
        data={'scenarios': outcomes, 'expected_net_income': round(expected, 2),
              'net_income_std': round(spread, 2), 'expected_equity_value': round(expected_value, 2),
              'downside_net_income': worst['net_income'], 'pe_used': pe,
              'expected_change_pct': round_or_none(change, 2)},
        interpretation=(f"Probability-weighted net income {expected:,.0f} "
                        f"({change:+.1f}% vs current); the worst case gives {worst['net_income']:,.0f}."
                        if change is not None else f"Probability-weighted net income {expected:,.0f}."),
        recommendations=(['Prepare contingency actions for the downside case; it turns profit into loss']
                         if worst['net_income'] < 0 else []),
        value=expected, benchmark=st.net_income,
    )


def monte_carlo_analysis(statement: Optional[FinancialStatement] = None,
                         statements: Optional[List[FinancialStatement]] = None,
                         cash_flows: Optional[Sequence[float]] = None,
                         discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                         cash_flow_volatility: float = 0.20,
                         growth_std: float = 0.10,
                         margin_std: float = 0.02,
                         years: int = 5,
                         simulations: int = config.MONTE_CARLO_SIMULATIONS,
                         seed: Optional[int] = config.RANDOM_SEED) -> AnalysisResult:
    """
    Distribution of project NPV or company profit.

    With `cash_flows` (first entry the outlay) each future flow is scaled
    by a lognormal shock with `cash_flow_volatility`. Otherwise revenue
    growth and net margin are drawn each year around their historical
    levels and the distribution of final-year net income is reported.
    """
    analysis_id = 'adv.model.monte_carlo'
    rng = np.random.default_rng(seed)
    if cash_flows is not None:
        flows = np.asarray(cash_flows, dtype=float)
        require(len(flows) >= 2, "Cash flows need an outlay and at least one inflow", analysis_id)
        shocks = rng.lognormal(-0.5 * cash_flow_volatility ** 2, cash_flow_volatility, (simulations, len(flows) - 1))
        discount = (1 + discount_rate) ** -np.arange(1, len(flows))
        outcomes = flows[0] + (flows[1:] * shocks * discount).sum(axis=1)
        measure, static = 'npv', npv(discount_rate, list(flows))
    else:
        st = require_statement(statement, analysis_id, needs=('revenue',))
        growth = _historical_growth(statements)
        margin = st.net_income / st.revenue
        g = rng.normal(growth, growth_std, (simulations, years))
        m = rng.normal(margin, margin_std, simulations)
        revenue = st.revenue * np.prod(1 + g, axis=1)
        outcomes = revenue * m
        measure, static = 'net_income', st.revenue * (1 + growth) ** years * margin

    percentiles = {f'p{p}': round(float(np.percentile(outcomes, p)), 2) for p in (5, 25, 50, 75, 95)}
    prob_loss = float((outcomes < 0).mean())
    mean = float(outcomes.mean())
    tail = outcomes[outcomes <= np.percentile(outcomes, 5)]

    return build_result(
        analysis_id, 'Monte Carlo Analysis', CATEGORY,
        data={'measure': measure, 'simulations': simulations, 'mean': round(mean, 2),
              'std': round(float(outcomes.std()), 2), 'percentiles': percentiles,
              'probability_of_loss': round(prob_loss, 4), 'expected_shortfall_5pct': round(float(tail.mean()), 2),
              'deterministic_estimate': round(float(static), 2),
              'histogram': np.histogram(outcomes, bins=20)[0].tolist()},
        interpretation=(f"Mean simulated {measure.replace('_', ' ')} {mean:,.0f}; 90% of outcomes lie between "
                        f"{percentiles['p5']:,.0f} and {percentiles['p95']:,.0f}; probability of a loss "
                        f"{prob_loss * 100:.1f}%."),
        recommendations=(['The chance of a loss is material; add risk mitigation before committing']
                         if prob_loss > 0.2 else []),
        value=prob_loss * 100, benchmark=10.0, higher_is_better=False,
        evaluation=rate_score(clip_score(100 - prob_loss * 200)),
    )


def complex_financial_modeling_analysis(statement: FinancialStatement,
                                        statements: Optional[List[FinancialStatement]] = None,
                                        years: int = 5,
                                        revenue_growth: Optional[float] = None,
                                        debt_repayment: float = 0.10,
                                        payout_ratio: Optional[float] = None) -> AnalysisResult:
    """
    Linked three-statement projection.

    Working capital follows days of sales and cost, fixed assets roll
    forward with capex and depreciation, debt amortises at
    `debt_repayment` a year and cash is the balancing item, so the
    projected balance sheets balance by construction.
    """
    analysis_id = 'adv.model.financial_model'
    st = require_statement(statement, analysis_id, needs=('revenue', 'total_assets'))
    g = _historical_growth(statements) if revenue_growth is None else revenue_growth
    tax = _tax_rate(st)
    cogs_ratio = st.cost_of_goods_sold / st.revenue
    opex_ratio = st.operating_expenses / st.revenue
    dso = st.accounts_receivable / st.revenue * 365
    dio = safe_divide(st.inventory * 365, st.cost_of_goods_sold, 0.0)
    dpo = safe_divide(st.accounts_payable * 365, st.cost_of_goods_sold, 0.0)
    capex_ratio = abs(st.capital_expenditures) / st.revenue
    dep_rate = safe_divide(st.depreciation, st.ppe, 0.10)
    interest_rate = safe_divide(st.interest_expense, st.total_debt, 0.06)
    payout = payout_ratio if payout_ratio is not None else \
        min(safe_divide(abs(st.dividends_paid), st.net_income, 0.0) if st.net_income > 0 else 0.0, 1.0)

    other_assets = (st.total_assets - st.cash - st.marketable_securities - st.accounts_receivable
                    - st.inventory - st.ppe)
    other_liabilities = st.total_liabilities - st.accounts_payable - st.total_debt
    opening_gap = st.total_assets - st.total_liabilities - st.total_equity
    state = {'cash': st.cash + st.marketable_securities, 'ar': st.accounts_receivable, 'inventory': st.inventory,
             'ppe': st.ppe, 'ap': st.accounts_payable, 'debt': st.total_debt, 'equity': st.total_equity,
             'revenue': st.revenue}

    projections = []
    for year in range(1, years + 1):
        revenue = state['revenue'] * (1 + g)
        cogs = revenue * cogs_ratio
        depreciation = state['ppe'] * dep_rate
        income = _income(revenue, cogs, revenue * opex_ratio, state['debt'] * interest_rate, 0.0, tax)
        net = income['net_income']
        ar, inventory, ap = revenue * dso / 365, cogs * dio / 365, cogs * dpo / 365
        capex = revenue * capex_ratio
        repayment = state['debt'] * debt_repayment
        dividends = max(net, 0.0) * payout

        ocf = net + depreciation - (ar - state['ar']) - (inventory - state['inventory']) + (ap - state['ap'])
        icf = -capex
        fcf_fin = -repayment - dividends
        cash = state['cash'] + ocf + icf + fcf_fin
        ppe = state['ppe'] + capex - depreciation
        debt = state['debt'] - repayment
        equity = state['equity'] + net - dividends
        assets = cash + ar + inventory + ppe + other_assets
        liabilities = ap + debt + other_liabilities
        check = assets - liabilities - equity - opening_gap

        projections.append({
            'year': st.year + year,
            'income_statement': {k: round_or_none(v, 2) for k, v in income.items() if k != 'eps'},
            'balance_sheet': {'cash': round(cash, 2), 'receivables': round(ar, 2), 'inventory': round(inventory, 2),
                              'ppe': round(ppe, 2), 'total_assets': round(assets, 2), 'payables': round(ap, 2),
                              'debt': round(debt, 2), 'total_liabilities': round(liabilities, 2),
                              'equity': round(equity, 2)},
            'cash_flow': {'operating': round(ocf, 2), 'investing': round(icf, 2), 'financing': round(fcf_fin, 2),
                          'free_cash_flow': round(ocf - capex, 2)},
            'balance_check': round(check, 4),
        })
        state = {'cash': cash, 'ar': ar, 'inventory': inventory, 'ppe': ppe, 'ap': ap, 'debt': debt,
                 'equity': equity, 'revenue': revenue}

    final = projections[-1]
    min_cash = min(p['balance_sheet']['cash'] for p in projections)
    return build_result(
        analysis_id, 'Complex Financial Modeling', CATEGORY,
        data={'assumptions': {'revenue_growth': round(g, 4), 'cogs_ratio': round(cogs_ratio, 4),
                              'opex_ratio': round(opex_ratio, 4), 'tax_rate': round(tax, 4),
                              'dso': round(dso, 1), 'dio': round(dio, 1), 'dpo': round(dpo, 1),
                              'capex_ratio': round(capex_ratio, 4), 'depreciation_rate': round(dep_rate, 4),
                              'interest_rate': round(interest_rate, 4), 'payout_ratio': round(payout, 4),
                              'debt_repayment': debt_repayment},
              'projections': projections, 'opening_imbalance': round(opening_gap, 2),
              'balanced': all(abs(p['balance_check']) < 1e-6 * max(st.total_assets, 1) for p in projections),
              'minimum_cash': round(min_cash, 2)},
        interpretation=(f"By {final['year']} revenue reaches {final['income_statement']['revenue']:,.0f} and "
                        f"equity {final['balance_sheet']['equity']:,.0f}; cash bottoms at {min_cash:,.0f}."),
        recommendations=(['The projection runs out of cash; arrange funding or slow capex'] if min_cash < 0 else []),
        value=final['income_statement']['net_income'], benchmark=st.net_income,
    )


def _latin_hypercube(rng: np.random.Generator, samples: int, dims: int) -> np.ndarray:
    """Stratified uniform draws: one point per stratum in every dimension."""
    u = (rng.random((samples, dims)) + np.arange(samples)[:, None]) / samples
    for d in range(dims):
        u[:, d] = u[rng.permutation(samples), d]
    return u


def multivariate_sensitivity_analysis(statement: FinancialStatement,
                                      ranges: Optional[Dict[str, Tuple[float, float]]] = None,
                                      samples: int = 500,
                                      seed: Optional[int] = config.RANDOM_SEED) -> AnalysisResult:
    """
    Joint sweep of the profit drivers.

    Drivers are sampled together on a Latin hypercube, next-year net
    income is recomputed for every draw and an OLS regression gives each
    driver's standardised effect and elasticity at the mean.
    """
    analysis_id = 'adv.model.multivariate_sensitivity'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    gm = st.gross_profit / st.revenue
    opex = st.operating_expenses / st.revenue
    rate = safe_divide(st.interest_expense, st.total_debt, 0.06)
    tax = _tax_rate(st)
    bounds = {
        'revenue_growth': (-0.10, 0.15),
        'gross_margin': (gm - 0.05, gm + 0.05),
        'opex_ratio': (max(opex - 0.03, 0.0), opex + 0.03),
        'interest_rate': (rate * 0.5, rate * 1.5),
        'tax_rate': (max(tax - 0.05, 0.0), tax + 0.05),
    }
    bounds.update(ranges or {})
    names = list(bounds)
    rng = np.random.default_rng(seed)
    u = _latin_hypercube(rng, samples, len(names))
    draws = pd.DataFrame({n: bounds[n][0] + u[:, i] * (bounds[n][1] - bounds[n][0]) for i, n in enumerate(names)})

    revenue = st.revenue * (1 + draws['revenue_growth'])
    ebit = revenue * (draws['gross_margin'] - draws['opex_ratio'])
    ebt = ebit - st.total_debt * draws['interest_rate'] + st.other_income
    net_income = ebt - ebt.clip(lower=0) * draws['tax_rate']

    varying = [n for n in names if draws[n].std() > 0]
    require(varying, "Driver ranges do not vary", analysis_id)
    X = draws[varying]
    standardised = sm.OLS((net_income - net_income.mean()) / net_income.std(),
                          sm.add_constant((X - X.mean()) / X.std())).fit()
    raw = sm.OLS(net_income, sm.add_constant(X)).fit()
    mean_income = float(net_income.mean())
    effects = {n: round(float(standardised.params[n]), 4) for n in varying}
    elasticities = {n: round_or_none(safe_divide(float(raw.params[n]) * float(X[n].mean()), mean_income), 4)
                    for n in varying}
    ranking = sorted(effects, key=lambda n: abs(effects[n]), reverse=True)
    prob_loss = float((net_income < 0).mean())

    return build_result(
        analysis_id, 'Multivariate Sensitivity Analysis', CATEGORY,
        data={'ranges': {n: [round(float(a), 4), round(float(b), 4)] for n, (a, b) in bounds.items()},
              'samples': samples, 'standardised_effects': effects, 'elasticities': elasticities,
              'driver_ranking': ranking, 'r_squared': round(float(raw.rsquared), 4),
              'net_income': {'mean': round(mean_income, 2), 'p5': round(float(net_income.quantile(0.05)), 2),
                             'p95': round(float(net_income.quantile(0.95)), 2)},
              'probability_of_loss': round(prob_loss, 4)},
        interpretation=(f"Net income is most sensitive to {ranking[0].replace('_', ' ')}"
                        + (f" and {ranking[1].replace('_', ' ')}" if len(ranking) > 1 else '')
                        + f"; {prob_loss * 100:.1f}% of joint draws produce a loss."),
        recommendations=[f"Monitor and hedge {ranking[0].replace('_', ' ')}; it dominates profit variability"],
        value=prob_loss * 100, benchmark=10.0, higher_is_better=False,
        evaluation=rate_score(clip_score(100 - prob_loss * 200)),
    )


def _solve_tree(node: Any, analysis_id: str, path: str = 'root') -> Dict[str, Any]:
    """Backward induction; returns EMV, policy and the payoff distribution under it."""
    if isinstance(node, (int, float)):
        return {'emv': float(node), 'policy': {}, 'outcomes': [(1.0, float(node))]}
    require(isinstance(node, dict), f"Invalid tree node at {path}", analysis_id)
    kind = node.get('type', 'terminal')
    if kind == 'terminal':
        return _solve_tree(float(node.get('value', 0.0)), analysis_id, path)
    if kind == 'chance':
        branches = node.get('outcomes') or []
        require(branches, f"Chance node {path} has no outcomes", analysis_id)
        total = sum(float(b.get('probability', 0)) for b in branches)
        require(abs(total - 1) < 1e-6, f"Probabilities at {path} sum to {total:.4f}, not 1", analysis_id)
        emv, policy, outcomes = 0.0, {}, []
        for b in branches:
            p = float(b['probability'])
            child = _solve_tree(b.get('node', b.get('value', 0.0)), analysis_id,
                                f"{path}/{b.get('name', 'outcome')}")
            emv += p * child['emv']
            policy.update(child['policy'])
            outcomes.extend((p * q, v) for q, v in child['outcomes'])
        return {'emv': emv, 'policy': policy, 'outcomes': outcomes}
    if kind == 'decision':
        options = node.get('options') or []
        require(options, f"Decision node {path} has no options", analysis_id)
        evaluated = []
        for option in options:
            label = option.get('name', 'option')
            child = _solve_tree(option.get('node', option.get('value', 0.0)), analysis_id, f"{path}/{label}")
            cost = float(option.get('cost', 0.0))
            evaluated.append((child['emv'] - cost, label, child, cost))
        best_emv, label, child, cost = max(evaluated, key=lambda e: e[0])
        policy = {node.get('name', path): {'choice': label,
                                           'alternatives': {e[1]: round(e[0], 2) for e in evaluated}}}
        policy.update(child['policy'])
        return {'emv': best_emv, 'policy': policy, 'outcomes': [(p, v - cost) for p, v in child['outcomes']]}
    require(False, f"Unknown node type '{kind}' at {path}", analysis_id)


def decision_tree_analysis(decision_tree: Dict[str, Any]) -> AnalysisResult:
    """
    Expected monetary value of a decision tree by backward induction.

    Nodes are dicts with type 'decision' (options with name, optional
    cost and child node), 'chance' (outcomes with name, probability and
    child node or value) or 'terminal' (value). Bare numbers are payoffs.
    """
    analysis_id = 'adv.model.decision_tree'
    require(decision_tree, "A decision tree is required", analysis_id)
    solved = _solve_tree(decision_tree, analysis_id)
    probs = np.array([p for p, _ in solved['outcomes']])
    values = np.array([v for _, v in solved['outcomes']])
    std = float(np.sqrt(np.sum(probs * (values - solved['emv']) ** 2)))
    loss_probability = float(probs[values < 0].sum())
    root = solved['policy'].get(decision_tree.get('name', 'root'), {})

    return build_result(
        analysis_id, 'Decision Tree Analysis', CATEGORY,
        data={'emv': round(solved['emv'], 2), 'policy': solved['policy'], 'risk_profile':
              sorted(({'probability': round(float(p), 4), 'payoff': round(float(v), 2)}
                      for p, v in solved['outcomes']), key=lambda o: o['payoff']),
              'payoff_std': round(std, 2), 'probability_of_loss': round(loss_probability, 4)},
        interpretation=(f"Choose '{root.get('choice', '-')}' for an expected value of {solved['emv']:,.0f} "
                        f"(standard deviation {std:,.0f}, loss probability {loss_probability * 100:.0f}%)."),
        recommendations=(['The best option still has a material chance of loss; consider staging the commitment']
                         if loss_probability > 0.25 else []),
        value=solved['emv'], evaluation=Rating.GOOD if solved['emv'] > 0 else Rating.WEAK,
    )


def black_scholes(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0,
                  option_type: str = 'call') -> Dict[str, float]:
    d1 = (math.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * math.sqrt(T))
    d2 = d1 - sigma * math.sqrt(T)
    if option_type == 'call':
        price = S * math.exp(-q * T) * stats.norm.cdf(d1) - K * math.exp(-r * T) * stats.norm.cdf(d2)
        delta = math.exp(-q * T) * stats.norm.cdf(d1)
    else:
        price = K * math.exp(-r * T) * stats.norm.cdf(-d2) - S * math.exp(-q * T) * stats.norm.cdf(-d1)
        delta = -math.exp(-q * T) * stats.norm.cdf(-d1)
    vega = S * math.exp(-q * T) * stats.norm.pdf(d1) * math.sqrt(T)
    return {'value': float(price), 'delta': float(delta), 'vega': float(vega), 'd1': d1, 'd2': d2}


def binomial_option(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0,
                    option_type: str = 'call', steps: int = 200, american: bool = True) -> float:
    """Cox-Ross-Rubinstein tree; American exercise by default."""
    dt = T / steps
    u = math.exp(sigma * math.sqrt(dt))
    d = 1 / u
    p = (math.exp((r - q) * dt) - d) / (u - d)
    disc = math.exp(-r * dt)
    prices = S * u ** np.arange(steps, -1, -1) * d ** np.arange(0, steps + 1)
    payoff = np.maximum(prices - K, 0) if option_type == 'call' else np.maximum(K - prices, 0)
    for i in range(steps, 0, -1):
        prices = prices[:-1] / u
        payoff = disc * (p * payoff[:-1] + (1 - p) * payoff[1:])
        if american:
            exercise = np.maximum(prices - K, 0) if option_type == 'call' else np.maximum(K - prices, 0)
            payoff = np.maximum(payoff, exercise)
    return float(payoff[0])


def real_options_analysis(underlying_value: float,
                          exercise_price: float,
                          volatility: float = 0.30,
                          maturity: float = 1.0,
                          risk_free_rate: float = config.RISK_FREE_RATE,
                          dividend_yield: float = 0.0,
                          option_type: str = 'call',
                          steps: int = 200) -> AnalysisResult:
    """
    Value of managerial flexibility.

    A call models the option to expand or defer (underlying = PV of
    project cash flows, strike = investment); a put models the option to
    abandon (strike = salvage value). European Black-Scholes and an
    American binomial tree are both reported.
    """
    analysis_id = 'adv.model.real_options'
    require(underlying_value and underlying_value > 0, "Underlying value must be positive", analysis_id)
    require(exercise_price and exercise_price > 0, "Exercise price must be positive", analysis_id)
    require(volatility > 0 and maturity > 0, "Volatility and maturity must be positive", analysis_id)
    option_type = 'put' if option_type in ('put', 'abandon') else 'call'
    bs = black_scholes(underlying_value, exercise_price, maturity, risk_free_rate, volatility,
                       dividend_yield, option_type)
    american = binomial_option(underlying_value, exercise_price, maturity, risk_free_rate, volatility,
                               dividend_yield, option_type, steps)
    static = (underlying_value - exercise_price) if option_type == 'call' else (exercise_price - underlying_value)
    flexibility = american - max(static, 0.0)
    expanded_npv = (underlying_value - exercise_price) + american if option_type == 'put' else american

    return build_result(
        analysis_id, 'Real Options Analysis', CATEGORY,
        data={'option_type': option_type, 'black_scholes_value': round(bs['value'], 2),
              'binomial_american_value': round(american, 2), 'early_exercise_premium': round(american - bs['value'], 2),
              'delta': round(bs['delta'], 4), 'vega': round(bs['vega'], 2),
              'static_npv': round(static, 2), 'flexibility_value': round(flexibility, 2),
              'expanded_npv': round(expanded_npv, 2)},
        interpretation=(f"The {'abandonment' if option_type == 'put' else 'expansion/deferral'} option is worth "
                        f"{american:,.0f} against a static NPV of {static:,.0f}; flexibility adds {flexibility:,.0f}."),
        recommendations=(['Keep the option open rather than committing now; waiting has value']
                         if flexibility > 0 and option_type == 'call' and static > 0 else []),
        value=american, benchmark=max(static, 0.0) or None,
    )


def financial_forecasting_models_analysis(statements: List[FinancialStatement],
                                          item: str = 'revenue',
                                          horizon: int = 3,
                                          test_size: int = 1) -> AnalysisResult:
    """
    Linear trend, Holt exponential smoothing and ARIMA compared on the
    most recent `test_size` years; the most accurate method is refit on
    the full history for the forecast. ARIMA needs eight years.
    """
    analysis_id = 'adv.model.forecasting'
    ordered = require_statements(statements, 4, analysis_id)
    series = item_series(ordered, item)
    require((series != 0).any(), f"No values reported for {item}", analysis_id)
    train, test = series.iloc[:-test_size], series.iloc[-test_size:]

    def linear(data: pd.Series, steps: int) -> np.ndarray:
        x = np.arange(len(data))
        slope, intercept = np.polyfit(x, data.values, 1)
        return intercept + slope * np.arange(len(data), len(data) + steps)

    def holt(data: pd.Series, steps: int) -> np.ndarray:
        fitted = Holt(np.asarray(data, dtype=float), initialization_method='estimated').fit()
        return np.asarray(fitted.forecast(steps))

    def arima(data: pd.Series, steps: int) -> np.ndarray:
        return np.asarray(arima_forecast(data.reset_index(drop=True), order=None, steps=steps)['forecast'])

    methods = {'linear_trend': linear, 'holt': holt}
    if len(train) >= 8:
        methods['arima'] = arima

    scores, forecasts = {}, {}
    for name, method in methods.items():
        try:
            predicted = method(train, len(test))
            scores[name] = round(float(calculate_mape(test.values, predicted)), 2)
            forecasts[name] = [round(float(v), 2) for v in method(series, horizon)]
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.warning(f"{name} forecast failed for {item}: {e}")
    require(scores, f"No forecasting model could be fitted to {item}", analysis_id)
    best = min(scores, key=scores.get)
    next_value = forecasts[best][0]
    years = [int(series.index[-1]) + i for i in range(1, horizon + 1)]

    return build_result(
        analysis_id, 'Financial Forecasting Models', CATEGORY,
        data={'item': item, 'history': {str(k): round(float(v), 2) for k, v in series.items()},
              'holdout_mape': scores, 'forecasts': forecasts, 'best_model': best,
              'forecast_years': years, 'best_forecast': dict(zip(map(str, years), forecasts[best]))},
        interpretation=(f"{best.replace('_', ' ').title()} tracked {item.replace('_', ' ')} best "
                        f"(MAPE {scores[best]:.1f}%) and projects {next_value:,.0f} for {years[0]}."),
        value=scores[best], benchmark=10.0, higher_is_better=False,
    )


def what_if_analysis(statement: FinancialStatement,
                     changes: Optional[Dict[str, float]] = None) -> AnalysisResult:
    """
    Net income, margin, EPS and interest cover after proportional changes
    to income statement drivers, one at a time and combined.
    """
    analysis_id = 'adv.model.what_if'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    changes = changes or DEFAULT_WHAT_IF
    drivers = ('revenue', 'cost_of_goods_sold', 'operating_expenses', 'interest_expense', 'other_income')
    unknown = [k for k in changes if k not in drivers]
    require(not unknown, f"Unsupported what-if drivers: {', '.join(unknown)}", analysis_id)
    tax = _tax_rate(st)
    base_values = {d: float(getattr(st, d)) for d in drivers}

    def run(adjust: Dict[str, float]) -> Dict[str, Optional[float]]:
        v = {d: base_values[d] * (1 + adjust.get(d, 0.0)) for d in drivers}
        # Cost of sales moves with revenue volume unless changed directly
        if 'revenue' in adjust and 'cost_of_goods_sold' not in adjust:
            v['cost_of_goods_sold'] = base_values['cost_of_goods_sold'] * (1 + adjust['revenue'])
        return _income(v['revenue'], v['cost_of_goods_sold'], v['operating_expenses'],
                       v['interest_expense'], v['other_income'], tax, st.shares_outstanding)

    base = run({})
    cases = {f"{k} {v * 100:+.0f}%": run({k: v}) for k, v in changes.items()}
    cases['combined'] = run(changes)
    impact = {name: round_or_none(pct_change(c['net_income'], base['net_income']), 2) for name, c in cases.items()}
    worst = min(cases, key=lambda n: cases[n]['net_income'])

    return build_result(
        analysis_id, 'What-If Analysis', CATEGORY,
        data={'base': {k: round_or_none(v, 4) for k, v in base.items()},
              'cases': {n: {k: round_or_none(v, 4) for k, v in c.items()} for n, c in cases.items()},
              'net_income_impact_pct': impact, 'worst_case': worst},
        interpretation=(f"Combined changes move net income from {base['net_income']:,.0f} to "
                        f"{cases['combined']['net_income']:,.0f}; the most damaging single change is {worst}."),
        recommendations=(['The combined case produces a loss; plan mitigations for these drivers']
                         if cases['combined']['net_income'] < 0 else []),
        value=cases['combined']['net_income'], benchmark=base['net_income'],
    )


def _ornstein_uhlenbeck_fit(values: np.ndarray, dt: float) -> Optional[Dict[str, float]]:
    x, y = values[:-1], values[1:]
    b, a = np.polyfit(x, y, 1)
    if not 0 < b < 1:
        return None
    resid = y - (a + b * x)
    theta = -math.log(b) / dt
    mu = a / (1 - b)
    sigma = float(np.std(resid)) * math.sqrt(2 * theta / (1 - b ** 2))
    return {'theta': theta, 'mu': mu, 'sigma': sigma, 'half_life': math.log(2) / theta, 'b': b}


def stochastic_simulation_analysis(prices: Any = None,
                                   returns: Any = None,
                                   horizon: int = config.TRADING_DAYS,
                                   simulations: int = 1000,
                                   periods_per_year: int = config.TRADING_DAYS,
                                   seed: Optional[int] = config.RANDOM_SEED) -> AnalysisResult:
    """
    Terminal value distributions under geometric Brownian motion and,
    where the level series mean-reverts, an Ornstein-Uhlenbeck process
    fitted by AR(1) regression.
    """
    analysis_id = 'adv.model.stochastic'
    if prices is not None:
        level = require_series(prices, 30, analysis_id, 'prices').reset_index(drop=True)
    else:
        r = require_series(returns, 30, analysis_id).reset_index(drop=True)
        level = 100 * (1 + r).cumprod()
    require((level > 0).all(), "Prices must be positive", analysis_id)
    log_returns = np.log(level).diff().dropna()
    dt = 1 / periods_per_year
    sigma = float(log_returns.std() * math.sqrt(periods_per_year))
    mu = float(log_returns.mean() * periods_per_year + 0.5 * sigma ** 2)
    s0 = float(level.iloc[-1])

    paths = geometric_brownian_motion(s0, mu, sigma, horizon * dt, dt, simulations, seed)
    terminal = paths[:, -1]
    data = {'start_value': round(s0, 4), 'horizon_periods': horizon,
            'gbm': {'mu': round(mu, 4), 'sigma': round(sigma, 4), 'mean': round(float(terminal.mean()), 4),
                    'p5': round(float(np.percentile(terminal, 5)), 4),
                    'p95': round(float(np.percentile(terminal, 95)), 4),
                    'probability_below_start': round(float((terminal < s0).mean()), 4)}}

    ou = _ornstein_uhlenbeck_fit(level.values.astype(float), dt)
    if ou is not None:
        rng = np.random.default_rng(seed)
        x = np.full(simulations, s0)
        decay = math.exp(-ou['theta'] * dt)
        step_sd = ou['sigma'] * math.sqrt((1 - decay ** 2) / (2 * ou['theta']))
        for _ in range(horizon):
            x = ou['mu'] + (x - ou['mu']) * decay + step_sd * rng.standard_normal(simulations)
        data['ornstein_uhlenbeck'] = {'theta': round(ou['theta'], 4), 'long_run_mean': round(ou['mu'], 4),
                                      'sigma': round(ou['sigma'], 4), 'half_life_years': round(ou['half_life'], 4),
                                      'mean': round(float(x.mean()), 4),
                                      'p5': round(float(np.percentile(x, 5)), 4),
                                      'p95': round(float(np.percentile(x, 95)), 4)}
    data['mean_reverting'] = ou is not None

    return build_result(
        analysis_id, 'Stochastic Simulation', CATEGORY,
        data=data,
        interpretation=(f"Under GBM the value after {horizon} periods centres on {data['gbm']['mean']:,.2f} "
                        f"(90% band {data['gbm']['p5']:,.2f} to {data['gbm']['p95']:,.2f})"
                        + (f"; the series mean-reverts towards {ou['mu']:,.2f} with a half-life of "
                           f"{ou['half_life']:.2f} years." if ou else "; no mean reversion detected.")),
        value=data['gbm']['probability_below_start'] * 100, benchmark=50.0, higher_is_better=False,
    )


def _credit_spread(coverage: float) -> float:
    """Smooth synthetic-rating spread over the risk-free rate by interest cover."""
    return 0.004 + 0.20 / (1 + max(coverage, 0.0) ** 1.5)


def optimization_models_analysis(statement: FinancialStatement,
                                 beta: float = 1.0,
                                 risk_free_rate: float = config.RISK_FREE_RATE,
                                 market_risk_premium: float = config.MARKET_RISK_PREMIUM,
                                 max_debt_ratio: float = 0.8) -> AnalysisResult:
    """
    WACC-minimising capital structure (scipy minimize_scalar).

    Beta is relevered with Hamada's formula and the cost of debt follows
    a spread that widens as interest cover falls.
    """
    analysis_id = 'adv.model.optimization'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    require(st.ebit > 0, "Positive EBIT is needed to size debt capacity", analysis_id)
    tax = _tax_rate(st)
    equity = st.market_cap or st.total_equity
    require(equity > 0, "Equity value must be positive", analysis_id)
    firm_value = equity + st.total_debt
    current_ratio = st.total_debt / firm_value
    unlevered = beta / (1 + (1 - tax) * current_ratio / (1 - current_ratio))

    def cost(w: float) -> Dict[str, float]:
        debt = w * firm_value
        rd = risk_free_rate + 0.01
        for _ in range(20):
            rd = risk_free_rate + _credit_spread(safe_divide(st.ebit, rd * debt, 100.0))
        levered = unlevered * (1 + (1 - tax) * w / (1 - w))
        re = calculate_cost_of_equity(levered, risk_free_rate, market_risk_premium)
        wacc = calculate_wacc((1 - w) * firm_value, debt, re, rd, tax)['wacc']
        return {'wacc': wacc, 'cost_of_equity': re, 'cost_of_debt': rd, 'beta': levered}

    result = minimize_scalar(lambda w: cost(w)['wacc'], bounds=(0.0, max_debt_ratio), method='bounded')
    grid = np.linspace(0, max_debt_ratio, 17)
    best_grid = min(grid, key=lambda w: cost(w)['wacc'])
    optimum = result.x if cost(result.x)['wacc'] <= cost(best_grid)['wacc'] else best_grid
    at_optimum, at_current = cost(optimum), cost(current_ratio)
    value_gain = (firm_value * (at_current['wacc'] / at_optimum['wacc'] - 1)
                  if at_optimum['wacc'] > 0 else None)

    return build_result(
        analysis_id, 'Optimization Models', CATEGORY,
        data={'current_debt_ratio': round(current_ratio, 4), 'optimal_debt_ratio': round(float(optimum), 4),
              'current': {k: round(v, 4) for k, v in at_current.items()},
              'optimal': {k: round(v, 4) for k, v in at_optimum.items()},
              'unlevered_beta': round(unlevered, 4), 'estimated_value_gain': round_or_none(value_gain, 2),
              'wacc_curve': {f'{w:.2f}': round(cost(w)['wacc'], 4) for w in grid}},
        interpretation=(f"WACC is minimised at a {optimum * 100:.0f}% debt ratio ({at_optimum['wacc'] * 100:.2f}%) "
                        f"against {at_current['wacc'] * 100:.2f}% at today's {current_ratio * 100:.0f}%."),
        recommendations=([f"Move leverage towards {optimum * 100:.0f}% debt to lower the cost of capital"]
                         if abs(optimum - current_ratio) > 0.1 else []),
        value=at_current['wacc'] * 100, benchmark=at_optimum['wacc'] * 100, higher_is_better=False,
    )


def financial_linear_programming_analysis(products: List[Dict[str, Any]],
                                          resources: Dict[str, float]) -> AnalysisResult:
    """
    Contribution-maximising product mix (scipy linprog, HiGHS).

    Each product has a unit `margin`, `usage` per resource and optional
    `min_units` / `max_units`; resources give capacities. Shadow prices
    are the contribution from one more unit of each resource.
    """
    analysis_id = 'adv.model.linear_programming'
    require(products and resources, "Products and resource capacities are required", analysis_id)
    names = [p.get('name', f'product_{i + 1}') for i, p in enumerate(products)]
    resource_names = list(resources)
    c = -np.array([float(p['margin']) for p in products])
    A = np.array([[float(p.get('usage', {}).get(r, 0.0)) for p in products] for r in resource_names])
    b = np.array([float(resources[r]) for r in resource_names])
    bounds = [(float(p.get('min_units', 0.0)), p.get('max_units')) for p in products]
    res = linprog(c, A_ub=A, b_ub=b, bounds=bounds, method='highs')
    require(res.status == 0, f"No feasible production plan: {res.message}", analysis_id)

    units = dict(zip(names, np.round(res.x, 4).tolist()))
    used = A @ res.x
    shadow = -np.asarray(res.ineqlin.marginals)
    binding = [r for r, u, cap in zip(resource_names, used, b) if cap - u < 1e-7 * max(cap, 1)]
    contribution = float(-res.fun)

    return build_result(
        analysis_id, 'Financial Linear Programming', CATEGORY,
        data={'production_plan': units, 'total_contribution': round(contribution, 2),
              'resource_usage': {r: {'used': round(float(u), 4), 'capacity': float(cap),
                                     'utilisation_pct': round_or_none(safe_divide(u * 100, cap), 2)}
                                 for r, u, cap in zip(resource_names, used, b)},
              'shadow_prices': {r: round(float(s), 4) for r, s in zip(resource_names, shadow)},
              'binding_constraints': binding},
        interpretation=(f"The optimal mix earns {contribution:,.0f}; "
                        + (f"capacity of {', '.join(binding)} limits further contribution."
                           if binding else "no resource is fully used.")),
        recommendations=[f"Adding capacity in {r} is worth {s:,.2f} per unit"
                         for r, s in zip(resource_names, shadow) if s > 0],
        value=contribution,
    )


def dynamic_programming_analysis(projects: List[Dict[str, Any]], budget: float) -> AnalysisResult:
    """
    Capital rationing as a 0/1 knapsack solved by dynamic programming
    over the cost/NPV Pareto frontier, compared with ranking by
    profitability index.
    """
    analysis_id = 'adv.model.dynamic_programming'
    require(projects and budget and budget > 0, "Projects and a positive budget are required", analysis_id)
    items = [(p.get('name', f'project_{i + 1}'), float(p['cost']), float(p['npv'])) for i, p in enumerate(projects)]

    frontier: List[Tuple[float, float, Tuple[str, ...]]] = [(0.0, 0.0, ())]
    for name, cost, value in items:
        if value <= 0:
            continue
        extended = [(c + cost, v + value, chosen + (name,)) for c, v, chosen in frontier if c + cost <= budget]
        merged = sorted(frontier + extended, key=lambda s: (s[0], -s[1]))
        frontier = []
        for state in merged:
            if not frontier or state[1] > frontier[-1][1]:
                frontier.append(state)
    spent, best_value, chosen = frontier[-1]

    greedy, greedy_cost, greedy_value = [], 0.0, 0.0
    for name, cost, value in sorted(items, key=lambda i: (i[2] / i[1]) if i[1] > 0 else float('inf'), reverse=True):
        if value > 0 and greedy_cost + cost <= budget:
            greedy.append(name)
            greedy_cost += cost
            greedy_value += value

    return build_result(
        analysis_id, 'Dynamic Programming Analysis', CATEGORY,
        data={'budget': budget, 'selected_projects': list(chosen), 'total_cost': round(spent, 2),
              'total_npv': round(best_value, 2), 'unused_budget': round(budget - spent, 2),
              'greedy_selection': greedy, 'greedy_npv': round(greedy_value, 2),
              'improvement_over_greedy': round(best_value - greedy_value, 2)},
        interpretation=(f"Funding {', '.join(chosen) or 'nothing'} maximises NPV at {best_value:,.0f} "
                        f"within the {budget:,.0f} budget ({best_value - greedy_value:,.0f} above ranking by PI)."),
        value=best_value, benchmark=greedy_value,
    )


def optimal_allocation_analysis(projects: List[Dict[str, Any]], budget: float) -> AnalysisResult:
    """
    Budget allocation with diminishing returns.

    Each project's marginal return starts at `rate` and falls linearly to
    zero at `capacity`; the optimum (scipy SLSQP) equalises marginal
    returns across funded projects.
    """
    analysis_id = 'adv.model.optimal_allocation'
    require(projects and budget and budget > 0, "Projects and a positive budget are required", analysis_id)
    names = [p.get('name', f'project_{i + 1}') for i, p in enumerate(projects)]
    rates = np.array([float(p['rate']) for p in projects])
    caps = np.array([float(p['capacity']) for p in projects])
    require((caps > 0).all(), "Project capacities must be positive", analysis_id)

    def total_return(x):
        return float(np.sum(rates * x - rates * x ** 2 / (2 * caps)))

    x0 = np.minimum(caps, budget / len(caps))
    res = minimize(lambda x: -total_return(x), x0, method='SLSQP',
                   jac=lambda x: -(rates - rates * x / caps),
                   bounds=list(zip(np.zeros_like(caps), caps)),
                   constraints=[{'type': 'ineq', 'fun': lambda x: budget - x.sum(), 'jac': lambda x: -np.ones_like(x)}])
    x = np.clip(res.x, 0, caps)
    marginal = rates * (1 - x / caps)
    equal = np.full(len(caps), budget / len(caps))
    equal = np.minimum(equal, caps)

    return build_result(
        analysis_id, 'Optimal Allocation Analysis', CATEGORY,
        data={'allocation': {n: round(float(v), 2) for n, v in zip(names, x)},
              'marginal_returns': {n: round(float(m), 4) for n, m in zip(names, marginal)},
              'total_return': round(total_return(x), 2), 'allocated': round(float(x.sum()), 2),
              'unallocated': round(float(budget - x.sum()), 2),
              'equal_split_return': round(total_return(equal), 2), 'converged': bool(res.success)},
        interpretation=(f"The optimal split returns {total_return(x):,.0f} against {total_return(equal):,.0f} "
                        "for an equal split; marginal returns are equalised across funded projects."),
        value=total_return(x), benchmark=total_return(equal),
    )


def _pure_equilibria(A: np.ndarray, B: np.ndarray) -> List[Tuple[int, int]]:
    return [(i, j) for i in range(A.shape[0]) for j in range(A.shape[1])
            if A[i, j] >= A[:, j].max() - 1e-12 and B[i, j] >= B[i, :].max() - 1e-12]


def _mixed_equilibria(A: np.ndarray, B: np.ndarray, tol: float = 1e-9) -> List[Tuple[np.ndarray, np.ndarray]]:
    """Support enumeration over equal-size supports."""
    m, n = A.shape
    found = []
    for k in range(2, min(m, n) + 1):
        for rows in combinations(range(m), k):
            for cols in combinations(range(n), k):
                # Column mix q makes the row player indifferent over `rows`
                M = np.vstack([np.hstack([A[np.ix_(rows, cols)], -np.ones((k, 1))]),
                               np.append(np.ones(k), 0.0)])
                N = np.vstack([np.hstack([B[np.ix_(rows, cols)].T, -np.ones((k, 1))]),
                               np.append(np.ones(k), 0.0)])
                rhs = np.append(np.zeros(k), 1.0)
                try:
                    qv = np.linalg.solve(M, rhs)
                    pu = np.linalg.solve(N, rhs)
                except np.linalg.LinAlgError:
                    continue
                q_s, v = qv[:-1], qv[-1]
                p_s, u = pu[:-1], pu[-1]
                if (q_s < -tol).any() or (p_s < -tol).any():
                    continue
                p, q = np.zeros(m), np.zeros(n)
                p[list(rows)], q[list(cols)] = p_s, q_s
                if (A @ q).max() > v + 1e-7 or (p @ B).max() > u + 1e-7:
                    continue
                found.append((p, q))
    return found


def financial_game_theory_analysis(payoffs: Dict[str, Any]) -> AnalysisResult:
    """
    Two-player strategic interaction (pricing, entry, capacity).

    `payoffs` holds `player_a` (row player's matrix), optional
    `player_b` (column player's matrix; zero-sum when omitted) and
    optional `strategies_a` / `strategies_b` labels. Pure equilibria come
    from mutual best responses and mixed ones from support enumeration.
    """
    analysis_id = 'adv.model.game_theory'
    require(payoffs and payoffs.get('player_a') is not None, "A payoff matrix is required", analysis_id)
    A = np.asarray(payoffs['player_a'], dtype=float)
    require(A.ndim == 2 and A.shape[0] >= 2 and A.shape[1] >= 2, "Payoffs must be at least 2x2", analysis_id)
    zero_sum = payoffs.get('player_b') is None
    B = -A if zero_sum else np.asarray(payoffs['player_b'], dtype=float)
    require(B.shape == A.shape, "Payoff matrices must have the same shape", analysis_id)
    rows = list(payoffs.get('strategies_a') or [f'A{i + 1}' for i in range(A.shape[0])])
    cols = list(payoffs.get('strategies_b') or [f'B{j + 1}' for j in range(A.shape[1])])

    pure = [{'strategies': [rows[i], cols[j]], 'payoffs': [float(A[i, j]), float(B[i, j])]}
            for i, j in _pure_equilibria(A, B)]
    mixed = []
    if max(A.shape) <= 6:
        for p, q in _mixed_equilibria(A, B):
            mixed.append({'player_a': {rows[i]: round(float(v), 4) for i, v in enumerate(p) if v > 1e-9},
                          'player_b': {cols[j]: round(float(v), 4) for j, v in enumerate(q) if v > 1e-9},
                          'expected_payoffs': [round(float(p @ A @ q), 4), round(float(p @ B @ q), 4)]})

    game_value = None
    if zero_sum:
        # Row player's maximin by linear programming on a positively shifted matrix
        shift = 1 - A.min()
        res = linprog(np.ones(A.shape[0]), A_ub=-(A + shift).T, b_ub=-np.ones(A.shape[1]),
                      bounds=[(0, None)] * A.shape[0], method='highs')
        if res.status == 0:
            game_value = float(1 / res.x.sum() - shift)

    dominant = [rows[i] for i in range(A.shape[0])
                if all((A[i] >= A[k]).all() for k in range(A.shape[0]) if k != i)]
    social = max(((i, j) for i in range(A.shape[0]) for j in range(A.shape[1])), key=lambda c: A[c] + B[c])
    first = pure[0] if pure else None

    return build_result(
        analysis_id, 'Financial Game Theory Analysis', CATEGORY,
        data={'zero_sum': zero_sum, 'pure_equilibria': pure, 'mixed_equilibria': mixed,
              'dominant_strategy_a': dominant[0] if dominant else None, 'game_value': round_or_none(game_value, 4),
              'joint_optimum': {'strategies': [rows[social[0]], cols[social[1]]],
                                'payoffs': [float(A[social]), float(B[social])]}},
        interpretation=((f"Equilibrium at ({first['strategies'][0]}, {first['strategies'][1]}) with payoffs "
                         f"{first['payoffs'][0]:,.0f} / {first['payoffs'][1]:,.0f}" if first else
                         "No pure-strategy equilibrium; players should randomise")
                        + (f"; {len(mixed)} mixed equilibrium(s) found." if mixed else '.')),
        recommendations=(['The equilibrium is inefficient; explore commitments or cooperation that reach the joint optimum']
                         if first and (A[social] + B[social]) > sum(first['payoffs']) + 1e-9 and not zero_sum else []),
        value=first['payoffs'][0] if first else game_value,
    )


def financial_network_analysis(exposures: Dict[str, Dict[str, float]],
                               capital: Dict[str, float],
                               loss_given_default: float = 1.0,
                               shock_node: Optional[str] = None) -> AnalysisResult:
    """
    Interconnectedness and default contagion.

    `exposures[lender][borrower]` is what the lender loses (times LGD) if
    the borrower defaults. Eigenvector centrality ranks systemic
    importance; a default cascade is run from every node (or from
    `shock_node`) until no further institution's losses exceed its
    capital.
    """
    analysis_id = 'adv.model.network'
    require(exposures and capital, "Exposures and capital are required", analysis_id)
    nodes = sorted(set(exposures) | {b for v in exposures.values() for b in v} | set(capital))
    require(len(nodes) >= 3, "A network needs at least three institutions", analysis_id)
    index = {n: i for i, n in enumerate(nodes)}
    W = np.zeros((len(nodes), len(nodes)))
    for lender, row in exposures.items():
        for borrower, amount in row.items():
            if lender != borrower:
                W[index[lender], index[borrower]] = float(amount)
    cap = np.array([float(capital.get(n, 0.0)) for n in nodes])

    symmetric = W + W.T
    eigenvalues, eigenvectors = np.linalg.eigh(symmetric)
    principal = np.abs(eigenvectors[:, np.argmax(eigenvalues)])
    centrality = principal / principal.sum() if principal.sum() > 0 else principal

    def cascade(seed: int) -> List[str]:
        defaulted = np.zeros(len(nodes), dtype=bool)
        defaulted[seed] = True
        while True:
            losses = (W[:, defaulted] * loss_given_default).sum(axis=1)
            new = (~defaulted) & (losses >= cap)
            if not new.any():
                return [nodes[i] for i in np.where(defaulted)[0]]
            defaulted |= new

    seeds = [index[shock_node]] if shock_node in index else range(len(nodes))
    cascades = {nodes[s]: cascade(s) for s in seeds}
    worst = max(cascades, key=lambda n: len(cascades[n]))
    systemic_share = (len(cascades[worst]) - 1) / (len(nodes) - 1) * 100
    density = float((W > 0).sum() / (len(nodes) * (len(nodes) - 1)))
    leverage = {n: round_or_none(safe_divide(W[index[n]].sum(), cap[index[n]]), 4) for n in nodes}

    return build_result(
        analysis_id, 'Financial Network Analysis', CATEGORY,
        data={'nodes': nodes, 'density': round(density, 4),
              'eigenvector_centrality': {n: round(float(c), 4) for n, c in zip(nodes, centrality)},
              'interbank_leverage': leverage,
              'cascades': {k: {'defaults': v, 'size': len(v)} for k, v in cascades.items()},
              'most_systemic': worst, 'contagion_share_pct': round(systemic_share, 2)},
        interpretation=(f"A default of {worst} brings down {len(cascades[worst]) - 1} other institution(s) "
                        f"({systemic_share:.0f}% of the network)."),
        recommendations=([f"Cap exposures to {worst} or raise capital buffers of its creditors"]
                         if systemic_share > 0 else []),
        value=systemic_share, benchmark=20.0, higher_is_better=False,
        evaluation=rate_score(100 - systemic_share),
    )
