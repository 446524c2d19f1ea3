"""
Industry Benchmarks Module
Sector averages used to evaluate company ratios.

Margins, returns, growth and yields are expressed in percent; turnovers as
times per year; day counts in days; everything else as plain ratios.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from finclick import config

logger = logging.getLogger(__name__)


# Ratios where a lower value is the better outcome
LOWER_IS_BETTER = {
    'days_sales_outstanding', 'operating_cycle', 'cash_conversion_cycle',
    'days_inventory_outstanding', 'debt_to_assets', 'debt_to_equity',
    'pe_ratio', 'pb_ratio', 'financial_leverage', 'cost_to_income',
}

_GENERAL = {
    # Liquidity
    'current_ratio': 1.5,
    'quick_ratio': 1.0,
    'cash_ratio': 0.3,
    'operating_cash_flow_ratio': 0.4,
    'working_capital_ratio': 0.15,
    # Activity
    'inventory_turnover': 6.0,
    'receivables_turnover': 8.0,
    'days_sales_outstanding': 45.0,
    'days_inventory_outstanding': 60.0,
    'payables_turnover': 7.0,
    'days_payables_outstanding': 52.0,
    'fixed_asset_turnover': 2.5,
    'asset_turnover': 0.9,
    'operating_cycle': 105.0,
    'cash_conversion_cycle': 53.0,
    # Leverage
    'debt_to_assets': 0.40,
    'debt_to_equity': 0.80,
    'interest_coverage': 5.0,
    'debt_service_coverage': 1.5,
    'equity_to_assets': 0.50,
    'financial_leverage': 2.0,
    # Profitability (percent)
    'gross_margin': 35.0,
    'operating_margin': 12.0,
    'net_margin': 8.0,
    'ebitda_margin': 18.0,
    'roa': 6.0,
    'roe': 12.0,
    'roic': 10.0,
    # Market
    'pe_ratio': 18.0,
    'pb_ratio': 2.0,
    'dividend_yield': 2.5,
    'ev_ebitda': 10.0,
    'ps_ratio': 1.8,
    # Growth (percent)
    'revenue_growth': 6.0,
    'net_income_growth': 7.0,
    'asset_growth': 5.0,
    # Cash flow
    'fcf_margin': 7.0,
    'cash_flow_to_net_income': 1.1,
}

_SECTOR_OVERRIDES = {
    'technology': {
        'current_ratio': 2.2, 'quick_ratio': 1.9, 'cash_ratio': 0.9,
        'gross_margin': 60.0, 'operating_margin': 22.0, 'net_margin': 18.0,
        'ebitda_margin': 28.0, 'roa': 10.0, 'roe': 20.0, 'roic': 16.0,
        'debt_to_equity': 0.45, 'debt_to_assets': 0.25, 'equity_to_assets': 0.60,
        'interest_coverage': 15.0, 'pe_ratio': 28.0, 'pb_ratio': 6.0,
        'dividend_yield': 1.0, 'revenue_growth': 12.0, 'asset_turnover': 0.7,
        'ev_ebitda': 18.0, 'ps_ratio': 5.0, 'inventory_turnover': 12.0,
    },
    'manufacturing': {
        'current_ratio': 1.6, 'quick_ratio': 0.9, 'gross_margin': 28.0,
        'operating_margin': 10.0, 'net_margin': 6.5, 'roa': 5.5, 'roe': 12.0,
        'inventory_turnover': 5.0, 'fixed_asset_turnover': 2.0,
        'asset_turnover': 0.8, 'debt_to_equity': 0.9, 'pe_ratio': 16.0,
    },
    'retail': {
        'current_ratio': 1.2, 'quick_ratio': 0.5, 'cash_ratio': 0.2,
        'gross_margin': 30.0, 'operating_margin': 6.0, 'net_margin': 3.5,
        'roa': 6.0, 'roe': 16.0, 'inventory_turnover': 8.0,
        'receivables_turnover': 30.0, 'days_sales_outstanding': 12.0,
        'asset_turnover': 1.8, 'fixed_asset_turnover': 4.5,
        'cash_conversion_cycle': 30.0, 'pe_ratio': 20.0,
    },
    'banking': {
        'current_ratio': 1.1, 'quick_ratio': 1.1, 'cash_ratio': 0.25,
        'net_margin': 25.0, 'operating_margin': 35.0, 'roa': 1.2, 'roe': 12.0,
        'debt_to_assets': 0.85, 'debt_to_equity': 6.0, 'equity_to_assets': 0.11,
        'financial_leverage': 9.0, 'asset_turnover': 0.06, 'pe_ratio': 12.0,
        'pb_ratio': 1.3, 'dividend_yield': 4.0, 'cost_to_income': 45.0,
        'interest_coverage': 2.0,
    },
    'real_estate': {
        'current_ratio': 1.3, 'quick_ratio': 0.6, 'gross_margin': 45.0,
        'operating_margin': 30.0, 'net_margin': 20.0, 'roa': 4.0, 'roe': 9.0,
        'debt_to_equity': 1.2, 'debt_to_assets': 0.50, 'asset_turnover': 0.15,
        'fixed_asset_turnover': 0.2, 'dividend_yield': 4.5, 'pb_ratio': 1.1,
        'interest_coverage': 3.0,
    },
    'energy': {
        'current_ratio': 1.4, 'quick_ratio': 1.1, 'gross_margin': 40.0,
        'operating_margin': 18.0, 'net_margin': 11.0, 'ebitda_margin': 30.0,
        'roa': 7.0, 'roe': 14.0, 'debt_to_equity': 0.6,
        'fixed_asset_turnover': 0.9, 'asset_turnover': 0.6, 'pe_ratio': 12.0,
        'dividend_yield': 4.5, 'ev_ebitda': 6.0,
    },
    'healthcare': {
        'current_ratio': 1.8, 'quick_ratio': 1.3, 'gross_margin': 55.0,
        'operating_margin': 15.0, 'net_margin': 10.0, 'roa': 7.0, 'roe': 15.0,
        'debt_to_equity': 0.6, 'pe_ratio': 22.0, 'pb_ratio': 3.5,
        'revenue_growth': 8.0,
    },
    'telecom': {
        'current_ratio': 0.9, 'quick_ratio': 0.8, 'gross_margin': 55.0,
        'operating_margin': 20.0, 'net_margin': 12.0, 'ebitda_margin': 38.0,
        'roa': 5.0, 'roe': 14.0, 'debt_to_equity': 1.1, 'asset_turnover': 0.45,
        'fixed_asset_turnover': 0.8, 'pe_ratio': 15.0, 'dividend_yield': 5.0,
        'ev_ebitda': 7.0, 'revenue_growth': 3.0,
    },
}

SECTOR_BENCHMARKS: Dict[str, Dict[str, float]] = {'general': dict(_GENERAL)}
for _sector, _overrides in _SECTOR_OVERRIDES.items():
    SECTOR_BENCHMARKS[_sector] = {**_GENERAL, **_overrides}

# Profit benchmarks tighten as the comparison universe widens
_LEVEL_SCALE = {'local': 1.0, 'regional': 1.05, 'gcc': 1.05, 'arab': 1.05, 'global': 1.12}
_PROFIT_KEYS = ('gross_margin', 'operating_margin', 'net_margin', 'ebitda_margin',
                'roa', 'roe', 'roic')

# Spread used to synthesise a peer group around the sector average
_PEER_SPREAD = (0.70, 0.85, 1.0, 1.10, 1.30)

_SECTOR_ALIASES = {
    'tech': 'technology', 'it': 'technology', 'software': 'technology',
    'industrial': 'manufacturing', 'industry': 'manufacturing',
    'bank': 'banking', 'banks': 'banking', 'finance': 'banking', 'financial': 'banking',
    'realestate': 'real_estate', 'real estate': 'real_estate', 'property': 'real_estate',
    'oil': 'energy', 'oil_gas': 'energy', 'utilities': 'energy',
    'health': 'healthcare', 'pharma': 'healthcare',
    'telecommunications': 'telecom', 'communications': 'telecom',
    'consumer': 'retail', 'trade': 'retail',
}


@dataclass
class IndustryBenchmarks:
    """Benchmark ratios, peer samples and market parameters for one sector."""
    sector: str = 'general'
    legal_entity: str = ''
    comparison_level: str = 'local'
    ratios: Dict[str, float] = field(default_factory=lambda: dict(_GENERAL))
    peers: Dict[str, List[float]] = field(default_factory=dict)
    market: Dict[str, float] = field(default_factory=dict)

    def get(self, key: str, default: Optional[float] = None) -> Optional[float]:
        return self.ratios.get(key, default)

    def peer_values(self, key: str) -> List[float]:
        if key in self.peers:
            return list(self.peers[key])
        base = self.ratios.get(key)
        if base is None:
            return []
        return [round(base * s, 4) for s in _PEER_SPREAD]

    def is_lower_better(self, key: str) -> bool:
        return key in LOWER_IS_BETTER

    @classmethod
    def from_dict(cls, data: Dict) -> 'IndustryBenchmarks':
        if isinstance(data, cls):
            return data
        base = get_industry_benchmarks(data.get('sector', 'general'),
                                       data.get('legal_entity', ''),
                                       data.get('comparison_level', 'local'))
        base.ratios.update({k: float(v) for k, v in (data.get('ratios') or {}).items()})
        base.peers.update(data.get('peers') or {})
        base.market.update(data.get('market') or {})
        return base

    def to_dict(self) -> Dict:
        return {
            'sector': self.sector,
            'legal_entity': self.legal_entity,
            'comparison_level': self.comparison_level,
            'ratios': dict(self.ratios),
            'peers': {k: list(v) for k, v in self.peers.items()},
            'market': dict(self.market),
        }


def normalize_sector(sector: str) -> str:
    key = (sector or 'general').strip().lower().replace('-', '_')
    key = _SECTOR_ALIASES.get(key, key)
    return key if key in SECTOR_BENCHMARKS else 'general'


def get_industry_benchmarks(sector: str, legal_entity: str = '',
                            comparison_level: str = 'local') -> IndustryBenchmarks:
    """
    Benchmarks for a sector and comparison level.

    Unknown sectors fall back to `general`. Regional and global comparison
    levels raise the profitability bar.

    Args:
        sector: Sector name or common alias ('tech', 'bank', ...)
        legal_entity: Legal form, carried through for reporting
        comparison_level: local, regional/gcc/arab or global

    Returns:
        IndustryBenchmarks
    """
    key = normalize_sector(sector)
    if key == 'general' and sector and sector.lower() != 'general':
        logger.info(f"No benchmarks for sector '{sector}', using general averages")

    ratios = copy.deepcopy(SECTOR_BENCHMARKS[key])
    scale = _LEVEL_SCALE.get((comparison_level or 'local').lower(), 1.0)
    for k in _PROFIT_KEYS:
        ratios[k] = round(ratios[k] * scale, 4)

    market = {
        'market_return': 0.08,
        'risk_free_rate': config.RISK_FREE_RATE,
        'market_risk_premium': config.MARKET_RISK_PREMIUM,
        'growth': ratios['revenue_growth'] / 100,
    }
    return IndustryBenchmarks(
        sector=key,
        legal_entity=legal_entity,
        comparison_level=comparison_level or 'local',
        ratios=ratios,
        market=market,
    )
