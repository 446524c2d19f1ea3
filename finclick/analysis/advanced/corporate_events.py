"""
Corporate Events Analysis
Valuation and risk around transactions and distress: forensic valuation,
M&A, LBO, IPO, spin-off, restructuring, bankruptcy workout and forensic
accounting review.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from finclick import config
from finclick.analysis.applied.valuation import company_valuation_analysis, npv
from finclick.analysis.base import build_result, require, require_statement, resolve_benchmarks
from finclick.analysis.fundamental.scoring import benford_analysis, beneish_m_score, statement_amounts
from finclick.analysis.result import AnalysisResult, Rating, rate_score
from finclick.core.utils import clip_score, pct_change, round_or_none, safe_divide
from finclick.data.benchmarks import IndustryBenchmarks
from finclick.data.statements import FinancialStatement

logger = logging.getLogger(__name__)

CATEGORY = 'advanced.risk'

# Liquidation recovery rates by balance sheet item
LIQUIDATION_RECOVERY = {
    'cash': 1.0, 'marketable_securities': 0.9, 'accounts_receivable': 0.75, 'inventory': 0.5,
    'other_current_assets': 0.3, 'ppe': 0.4, 'intangible_assets': 0.0, 'investments': 0.6,
    'other_non_current_assets': 0.2,
}


def _as_statement(value: Any, analysis_id: str, label: str) -> FinancialStatement:
    require(value is not None, f"{label} statement is required", analysis_id)
    return FinancialStatement.from_dict(value) if isinstance(value, dict) else value


def _tax(st: FinancialStatement, tax_rate: Optional[float]) -> float:
    if tax_rate is not None:
        return tax_rate
    return st.effective_tax_rate or config.DEFAULT_TAX_RATE


def forensic_valuation_analysis(statement: FinancialStatement,
                                statements: Optional[List[FinancialStatement]] = None,
                                benchmarks: Optional[IndustryBenchmarks] = None,
                                claimed_value: Optional[float] = None,
                                non_recurring: float = 0.0) -> AnalysisResult:
    """
    Independent valuation for disputes: normalises earnings for
    non-recurring items, values the company by several approaches and
    tests a claimed value against the supported range.
    """
    analysis_id = 'adv.risk.forensic_valuation'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    valuation = company_valuation_analysis(st, statements, benchmarks)
    low, high = valuation.data['range']['low'], valuation.data['range']['high']
    central = valuation.data['central_value']

    tax = _tax(st, None)
    adjustment = (st.other_income + non_recurring) * (1 - tax)
    normalised_income = st.net_income - adjustment
    pe = resolve_benchmarks(benchmarks).get('pe_ratio')
    normalised_value = normalised_income * pe if pe and normalised_income > 0 else None

    data = {'approaches': valuation.data['approaches'], 'central_value': central,
            'supported_range': {'low': low, 'high': high},
            'normalised_net_income': round(normalised_income, 2),
            'earnings_adjustment': round(adjustment, 2),
            'normalised_earnings_value': round_or_none(normalised_value, 2),
            'claimed_value': claimed_value, 'claim_assessment': None}
    if claimed_value is not None:
        deviation = pct_change(claimed_value, central)
        within = low <= claimed_value <= high
        data['claim_assessment'] = {'deviation_pct': round_or_none(deviation, 2), 'within_range': within,
                                    'verdict': 'supported' if within else
                                    'overstated' if claimed_value > high else 'understated'}

    claim = data['claim_assessment']
    return build_result(
        analysis_id, 'Forensic Valuation Analysis', CATEGORY,
        data=data,
        interpretation=(f"Supported value range {low:,.0f} to {high:,.0f} (central {central:,.0f})"
                        + (f"; the claimed {claimed_value:,.0f} is {claim['verdict']}." if claim else '.')),
        recommendations=(['The claimed value falls outside the supportable range; obtain an independent opinion']
                         if claim and not claim['within_range'] else []),
        value=central, benchmark=claimed_value,
        evaluation=(None if claim is None else Rating.GOOD if claim['within_range'] else Rating.WEAK),
    )


def merger_acquisition_analysis(statement: FinancialStatement,
                                target: Any,
                                purchase_price: Optional[float] = None,
                                premium: float = 0.25,
                                stock_share: float = 0.5,
                                cost_of_debt: float = 0.06,
                                synergies: float = 0.0,
                                integration_costs: float = 0.0,
                                synergy_years: int = 5,
                                discount_rate: float = config.DEFAULT_DISCOUNT_RATE,
                                tax_rate: Optional[float] = None) -> AnalysisResult:
    """
    Accretion/dilution of the acquirer's EPS and the value of synergies.

    The price is paid partly in new acquirer shares (issued at the
    acquirer's share price) and partly in cash funded with new debt.
    """
    analysis_id = 'adv.risk.ma'
    acq = require_statement(statement, analysis_id, needs=('shares_outstanding', 'share_price'))
    tgt = _as_statement(target, analysis_id, 'Target')
    if purchase_price is None:
        base = tgt.market_cap or tgt.total_equity
        require(base > 0, "Target value is needed to price the deal", analysis_id)
        purchase_price = base * (1 + premium)
    tax = _tax(acq, tax_rate)

    new_shares = purchase_price * stock_share / acq.share_price
    new_debt = purchase_price * (1 - stock_share)
    after_tax_interest = new_debt * cost_of_debt * (1 - tax)
    standalone_eps = acq.net_income / acq.shares_outstanding
    pro_forma_income = acq.net_income + tgt.net_income + synergies * (1 - tax) - after_tax_interest
    pro_forma_shares = acq.shares_outstanding + new_shares
    pro_forma_eps = pro_forma_income / pro_forma_shares
    accretion = pct_change(pro_forma_eps, standalone_eps)

    synergy_flows = [-integration_costs] + [synergies * (1 - tax)] * synergy_years
    synergy_npv = npv(discount_rate, synergy_flows)
    paid_premium = purchase_price - (tgt.market_cap or tgt.total_equity)
    breakeven = ((standalone_eps * pro_forma_shares - acq.net_income - tgt.net_income + after_tax_interest)
                 / (1 - tax)) if tax < 1 else None

    return build_result(
        analysis_id, 'Merger and Acquisition Analysis', CATEGORY,
        data={'purchase_price': round(purchase_price, 2), 'new_shares': round(new_shares, 2),
              'new_debt': round(new_debt, 2), 'standalone_eps': round(standalone_eps, 4),
              'pro_forma_eps': round(pro_forma_eps, 4), 'accretion_dilution_pct': round_or_none(accretion, 2),
              'deal_type': 'accretive' if pro_forma_eps >= standalone_eps else 'dilutive',
              'synergy_npv': round(synergy_npv, 2), 'premium_paid': round(paid_premium, 2),
              'value_created': round(synergy_npv - paid_premium, 2),
              'breakeven_synergies': round_or_none(max(breakeven, 0.0) if breakeven is not None else None, 2),
              'pro_forma_ownership_pct': round(acq.shares_outstanding / pro_forma_shares * 100, 2)},
        interpretation=(f"The deal is {'accretive' if pro_forma_eps >= standalone_eps else 'dilutive'} "
                        f"({accretion:+.1f}% EPS); synergies are worth {synergy_npv:,.0f} against a premium of "
                        f"{paid_premium:,.0f}." if accretion is not None else
                        f"Synergies are worth {synergy_npv:,.0f} against a premium of {paid_premium:,.0f}."),
        recommendations=(['The premium exceeds the value of synergies; renegotiate the price']
                         if synergy_npv < paid_premium else []),
        value=synergy_npv - paid_premium, benchmark=0.0,
        evaluation=Rating.GOOD if synergy_npv >= paid_premium else Rating.WEAK,
    )


def lbo_analysis(statement: FinancialStatement,
                 entry_multiple: float = 8.0,
                 exit_multiple: Optional[float] = None,
                 debt_share: float = 0.6,
                 interest_rate: float = 0.08,
                 ebitda_growth: float = 0.05,
                 holding_years: int = 5,
                 cash_sweep: float = 1.0,
                 tax_rate: Optional[float] = None,
                 target_irr: float = 0.20) -> AnalysisResult:
    """
    Leveraged buyout returns with a year-by-year debt schedule.

    Free cash flow after interest, tax, capex and working capital sweeps
    the acquisition debt; exit equity = exit EV - remaining debt.
    """
    analysis_id = 'adv.risk.lbo'
    st = require_statement(statement, analysis_id, needs=('revenue',))
    require(st.ebitda > 0, "LBO needs positive EBITDA", analysis_id)
    tax = _tax(st, tax_rate)
    exit_multiple = exit_multiple if exit_multiple is not None else entry_multiple
    entry_ev = st.ebitda * entry_multiple
    debt = entry_ev * debt_share
    equity = entry_ev - debt
    capex_ratio = safe_divide(abs(st.capital_expenditures), st.ebitda, 0.0)
    wc_ratio = safe_divide(st.working_capital, st.revenue, 0.0)
    depreciation_ratio = safe_divide(st.depreciation, st.ebitda, 0.0)

    schedule = []
    ebitda, revenue = st.ebitda, st.revenue
    for year in range(1, holding_years + 1):
        ebitda *= 1 + ebitda_growth
        new_revenue = revenue * (1 + ebitda_growth)
        interest = debt * interest_rate
        taxes = max(ebitda * (1 - depreciation_ratio) - interest, 0.0) * tax
        fcf = ebitda - interest - taxes - ebitda * capex_ratio - (new_revenue - revenue) * wc_ratio
        repayment = min(max(fcf, 0.0) * cash_sweep, debt)
        debt -= repayment
        revenue = new_revenue
        schedule.append({'year': year, 'ebitda': round(ebitda, 2), 'interest': round(interest, 2),
                         'free_cash_flow': round(fcf, 2), 'repayment': round(repayment, 2),
                         'closing_debt': round(debt, 2), 'leverage': round(debt / ebitda, 2)})

    exit_ev = ebitda * exit_multiple
    exit_equity = exit_ev - debt
    moic = exit_equity / equity if equity > 0 else None
    irr = moic ** (1 / holding_years) - 1 if moic and moic > 0 else None
    entry_leverage = entry_ev * debt_share / st.ebitda

    return build_result(
        analysis_id, 'LBO / Private Equity Analysis', CATEGORY,
        data={'entry_ev': round(entry_ev, 2), 'entry_equity': round(equity, 2),
              'entry_debt': round(entry_ev * debt_share, 2), 'entry_leverage': round(entry_leverage, 2),
              'debt_schedule': schedule, 'exit_ev': round(exit_ev, 2), 'exit_equity': round(exit_equity, 2),
              'moic': round_or_none(moic, 2), 'irr_pct': round_or_none(irr * 100 if irr is not None else None, 2),
              'target_irr_pct': target_irr * 100},
        interpretation=(f"Entering at {entry_multiple:.1f}x EBITDA with {entry_leverage:.1f}x leverage returns "
                        f"{moic:.2f}x money ({irr * 100:.1f}% IRR) over {holding_years} years."
                        if irr is not None else 'The equity is wiped out at exit.'),
        recommendations=(['Returns fall short of the target; lower the entry price or raise leverage capacity']
                         if irr is None or irr < target_irr else []),
        value=irr * 100 if irr is not None else None, benchmark=target_irr * 100,
    )


def ipo_analysis(statement: FinancialStatement,
                 benchmarks: Optional[IndustryBenchmarks] = None,
                 new_shares: Optional[float] = None,
                 raise_amount: Optional[float] = None,
                 ipo_discount: float = 0.15) -> AnalysisResult:
    """
    IPO price range from sector multiple ranges (P/E, EV/EBITDA, P/S),
    with the usual issue discount, post-money value and dilution.
    """
    analysis_id = 'adv.risk.ipo'
    st = require_statement(statement, analysis_id, needs=('shares_outstanding',))
    bm = resolve_benchmarks(benchmarks)
    ranges = {}
    for key, base in (('pe_ratio', st.net_income), ('ev_ebitda', st.ebitda), ('ps_ratio', st.revenue)):
        peers = bm.peer_values(key)
        if base > 0 and peers:
            adjust = -st.net_debt if key == 'ev_ebitda' else 0.0
            ranges[key] = {'low': base * min(peers) + adjust, 'mid': base * float(np.median(peers)) + adjust,
                           'high': base * max(peers) + adjust}
    require(ranges, "No positive earnings, EBITDA or revenue to value", analysis_id)
    low = float(np.median([r['low'] for r in ranges.values()]))
    mid = float(np.median([r['mid'] for r in ranges.values()]))
    high = float(np.median([r['high'] for r in ranges.values()]))
    pre_money = mid * (1 - ipo_discount)
    price_low = low * (1 - ipo_discount) / st.shares_outstanding
    price_high = high * (1 - ipo_discount) / st.shares_outstanding
    price_mid = pre_money / st.shares_outstanding
    if new_shares is None and raise_amount is not None:
        new_shares = raise_amount / price_mid if price_mid > 0 else 0.0
    new_shares = new_shares or 0.0
    proceeds = new_shares * price_mid
    dilution = new_shares / (st.shares_outstanding + new_shares)

    return build_result(
        analysis_id, 'IPO Analysis', CATEGORY,
        data={'valuation_by_multiple': {k: {kk: round(vv, 2) for kk, vv in v.items()} for k, v in ranges.items()},
              'equity_value_range': {'low': round(low, 2), 'mid': round(mid, 2), 'high': round(high, 2)},
              'ipo_discount_pct': ipo_discount * 100, 'pre_money_value': round(pre_money, 2),
              'price_range': {'low': round(price_low, 4), 'mid': round(price_mid, 4), 'high': round(price_high, 4)},
              'new_shares': round(new_shares, 2), 'proceeds': round(proceeds, 2),
              'post_money_value': round(pre_money + proceeds, 2), 'dilution_pct': round(dilution * 100, 2)},
        interpretation=(f"Indicative price range {price_low:.2f} to {price_high:.2f} per share after a "
                        f"{ipo_discount * 100:.0f}% issue discount; existing holders are diluted {dilution * 100:.1f}%."),
        recommendations=(['Dilution above 30%; consider a smaller primary tranche'] if dilution > 0.3 else []),
        value=price_mid,
    )


def spinoff_analysis(segments: Dict[str, Dict[str, float]],
                     statement: Optional[FinancialStatement] = None,
                     benchmarks: Optional[IndustryBenchmarks] = None,
                     consolidated_value: Optional[float] = None,
                     dis_synergies: float = 0.0,
                     separation_costs: float = 0.0) -> AnalysisResult:
    """
    Sum-of-the-parts value of the segments against the consolidated value.

    Args:
        segments: {name: {'ebitda': ..., 'multiple': ...}}; segments without
            a multiple use the sector EV/EBITDA
    """
    analysis_id = 'adv.risk.spinoff'
    require(segments, "Segment data is required", analysis_id)
    bm = resolve_benchmarks(benchmarks)
    default_multiple = bm.get('ev_ebitda', 10.0)
    parts = {}
    for name, seg in segments.items():
        ebitda = float(seg.get('ebitda', 0.0))
        multiple = float(seg.get('multiple') or default_multiple)
        parts[name] = {'ebitda': ebitda, 'multiple': multiple, 'value': ebitda * multiple}
    require(any(p['ebitda'] > 0 for p in parts.values()), "Segments need positive EBITDA", analysis_id)
    dis_value = dis_synergies * default_multiple
    sotp = sum(p['value'] for p in parts.values()) - dis_value - separation_costs

    if consolidated_value is None:
        require(statement is not None, "A consolidated value or statement is required", analysis_id)
        consolidated_value = ((statement.market_cap + statement.net_debt) if statement.market_cap
                              else statement.ebitda * default_multiple)
    discount = safe_divide(sotp - consolidated_value, sotp)
    total = sum(p['value'] for p in parts.values())

    return build_result(
        analysis_id, 'Spin-off Analysis', CATEGORY,
        data={'segments': {k: {kk: round(vv, 2) for kk, vv in v.items()} for k, v in parts.items()},
              'segment_share_pct': {k: round(v['value'] / total * 100, 2) for k, v in parts.items()} if total else {},
              'dis_synergy_cost': round(dis_value, 2), 'separation_costs': round(separation_costs, 2),
              'sum_of_parts': round(sotp, 2), 'consolidated_value': round(consolidated_value, 2),
              'conglomerate_discount_pct': round_or_none(discount * 100 if discount is not None else None, 2)},
        interpretation=(f"Sum of the parts {sotp:,.0f} vs consolidated {consolidated_value:,.0f}: "
                        + (f"a {discount * 100:.1f}% conglomerate discount." if discount and discount > 0
                           else 'no value is unlocked by separation.')),
        recommendations=(['A spin-off would unlock value'] if discount and discount > 0.1 else []),
        value=sotp, benchmark=consolidated_value,
    )


def restructuring_analysis(statement: FinancialStatement,
                           target_leverage: float = 3.0,
                           cost_savings: float = 0.0,
                           asset_sales: float = 0.0,
                           minimum_cash: Optional[float] = None) -> AnalysisResult:
    """
    Liquidity bridge over the next year and sustainable debt capacity.

    Bridge: cash + operating cash flow - capex - interest - debt due; debt
    capacity = target Debt/EBITDA x (EBITDA + savings).
    """
    analysis_id = 'adv.risk.restructuring'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    minimum_cash = minimum_cash if minimum_cash is not None else st.revenue / 12 * 0.5
    bridge = {
        'opening_cash': st.cash + st.marketable_securities,
        'operating_cash_flow': st.operating_cash_flow + cost_savings,
        'capital_expenditures': -abs(st.capital_expenditures),
        'asset_sales': asset_sales,
        'debt_maturing': -st.short_term_debt,
    }
    closing = sum(bridge.values())
    funding_gap = max(minimum_cash - closing, 0.0)
    ebitda = st.ebitda + cost_savings
    capacity = max(ebitda, 0.0) * target_leverage
    remaining_debt = max(st.total_debt - asset_sales, 0.0)
    excess = remaining_debt - capacity
    leverage = safe_divide(remaining_debt, ebitda) if ebitda > 0 else None
    coverage = safe_divide(ebitda, st.interest_expense)

    if excess <= 0 and funding_gap == 0:
        path = 'operational_turnaround'
    elif excess <= 0:
        path = 'liquidity_financing'
    elif excess < remaining_debt * 0.3:
        path = 'debt_amend_and_extend'
    else:
        path = 'debt_for_equity_swap'

    return build_result(
        analysis_id, 'Restructuring Analysis', CATEGORY,
        data={'liquidity_bridge': {k: round(v, 2) for k, v in bridge.items()},
              'closing_liquidity': round(closing, 2), 'minimum_cash': round(minimum_cash, 2),
              'funding_gap': round(funding_gap, 2), 'pro_forma_ebitda': round(ebitda, 2),
              'debt_capacity': round(capacity, 2), 'excess_debt': round(max(excess, 0.0), 2),
              'pro_forma_leverage': round_or_none(leverage, 2), 'interest_coverage': round_or_none(coverage, 2),
              'recommended_path': path},
        interpretation=(f"Liquidity closes the year at {closing:,.0f}; debt of {remaining_debt:,.0f} against a "
                        f"capacity of {capacity:,.0f} suggests a {path.replace('_', ' ')}."),
        recommendations=([f"Raise {funding_gap:,.0f} of new liquidity"] if funding_gap > 0 else [])
                        + ([f"Reduce debt by {excess:,.0f}"] if excess > 0 else []),
        value=leverage, benchmark=target_leverage if leverage is not None else None, higher_is_better=False,
    )


def bankruptcy_workout_analysis(statement: FinancialStatement,
                                going_concern_multiple: float = 5.0,
                                recovery_rates: Optional[Dict[str, float]] = None,
                                administrative_cost_pct: float = 0.05) -> AnalysisResult:
    """
    Liquidation vs going-concern recovery with an absolute-priority
    waterfall: administrative costs, secured (long-term) debt, priority
    claims, unsecured creditors, then equity.
    """
    analysis_id = 'adv.risk.bankruptcy'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    rates = dict(LIQUIDATION_RECOVERY)
    rates.update(recovery_rates or {})
    liquidation = sum(getattr(st, item) * rate for item, rate in rates.items())
    going_concern = max(st.ebitda, 0.0) * going_concern_multiple
    best = max(liquidation, going_concern)
    strategy = 'reorganisation' if going_concern > liquidation else 'liquidation'
    distributable = best * (1 - administrative_cost_pct)

    claims = {
        'secured': st.long_term_debt,
        'priority': st.other_current_liabilities,
        'unsecured': st.accounts_payable + st.short_term_debt + st.other_non_current_liabilities,
    }
    waterfall, remaining = {}, distributable
    for cls_name, claim in claims.items():
        paid = min(claim, remaining)
        remaining -= paid
        waterfall[cls_name] = {'claim': round(claim, 2), 'recovery': round(paid, 2),
                               'recovery_pct': round(paid / claim * 100, 2) if claim else None}
    waterfall['equity'] = {'recovery': round(remaining, 2)}
    total_claims = sum(claims.values())
    overall = safe_divide(distributable - remaining, total_claims)

    return build_result(
        analysis_id, 'Bankruptcy Workout Analysis', CATEGORY,
        data={'liquidation_value': round(liquidation, 2), 'going_concern_value': round(going_concern, 2),
              'preferred_strategy': strategy, 'administrative_costs': round(best - distributable, 2),
              'distributable_value': round(distributable, 2), 'waterfall': waterfall,
              'creditor_recovery_pct': round_or_none(overall * 100 if overall is not None else None, 2)},
        interpretation=(f"{strategy.capitalize()} yields the higher value ({best:,.0f}); creditors recover "
                        f"{overall * 100:.0f}% of claims." if overall is not None else
                        f"{strategy.capitalize()} yields the higher value ({best:,.0f})."),
        recommendations=(['Pursue a negotiated reorganisation: the business is worth more alive']
                         if strategy == 'reorganisation' else ['An orderly liquidation maximises recoveries']),
        value=overall * 100 if overall is not None else None, benchmark=100.0 if overall is not None else None,
    )


def forensic_financial_analysis(statement: FinancialStatement,
                                previous: Optional[FinancialStatement] = None,
                                statements: Optional[List[FinancialStatement]] = None) -> AnalysisResult:
    """
    Forensic accounting review: red flags from cash conversion, receivable
    and inventory build-ups, accruals (Sloan ratio), Beneish M-score and a
    Benford test over every reported amount.
    """
    analysis_id = 'adv.risk.forensic'
    st = require_statement(statement, analysis_id, needs=('total_assets',))
    flags: List[str] = []
    data: Dict[str, Any] = {}

    sloan = (st.net_income - st.operating_cash_flow - st.investing_cash_flow) / st.total_assets
    data['sloan_accrual_ratio'] = round(sloan, 4)
    if abs(sloan) > 0.10:
        flags.append('High accruals relative to assets')
    if st.net_income > 0 and st.operating_cash_flow < st.net_income * 0.8:
        flags.append('Operating cash flow lags reported profit')

    if previous is not None:
        revenue_growth = pct_change(st.revenue, previous.revenue)
        receivable_growth = pct_change(st.accounts_receivable, previous.accounts_receivable)
        inventory_growth = pct_change(st.inventory, previous.inventory)
        data['growth_pct'] = {'revenue': round_or_none(revenue_growth, 2),
                              'receivables': round_or_none(receivable_growth, 2),
                              'inventory': round_or_none(inventory_growth, 2)}
        if revenue_growth is not None and receivable_growth is not None and receivable_growth > revenue_growth + 20:
            flags.append('Receivables growing much faster than revenue')
        if revenue_growth is not None and inventory_growth is not None and inventory_growth > revenue_growth + 20:
            flags.append('Inventory building faster than sales')
        m = beneish_m_score(st, previous)
        data['beneish'] = m
        if m.get('m_score') is not None and m['m_score'] > -1.78:
            flags.append('Beneish M-score indicates likely manipulation')

    amounts = [a for s in (statements or [st]) for a in statement_amounts(s)]
    benford = benford_analysis(amounts)
    data['benford'] = benford
    if benford['conformity'] == 'nonconformity':
        flags.append("Reported amounts deviate from Benford's law")

    score = clip_score(100 - 20 * len(flags))
    data['red_flags'] = flags
    data['integrity_score'] = score
    return build_result(
        analysis_id, 'Forensic Financial Analysis', CATEGORY,
        data=data,
        interpretation=(f"{len(flags)} red flags: {'; '.join(flags)}." if flags else 'No forensic red flags found.'),
        recommendations=(['Commission a detailed forensic audit'] if len(flags) >= 2 else []),
        value=score, evaluation=rate_score(score),
    )
