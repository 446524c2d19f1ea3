# Fundamental Analysis Module
from .profitability import (
    calculate_roe, calculate_roa, calculate_roic,
    calculate_net_profit_margin, calculate_gross_profit_margin,
    calculate_operating_margin, calculate_ebitda_margin,
    calculate_eps, calculate_book_value_per_share, comprehensive_profitability
)
from .liquidity import (
    calculate_current_ratio, calculate_quick_ratio,
    calculate_cash_ratio, calculate_working_capital,
    calculate_operating_cash_flow_ratio, comprehensive_liquidity
)
from .solvency import (
    calculate_debt_to_equity, calculate_debt_to_assets,
    calculate_interest_coverage, calculate_equity_ratio,
    calculate_debt_service_coverage, calculate_financial_leverage,
    comprehensive_solvency
)
from .efficiency import (
    calculate_asset_turnover, calculate_inventory_turnover,
    calculate_receivables_turnover, calculate_payables_turnover,
    calculate_operating_cycle, calculate_cash_conversion_cycle,
    calculate_fixed_asset_turnover, comprehensive_efficiency
)
from .scoring import (
    altman_z_score, beneish_m_score, piotroski_f_score, ohlson_o_score,
    zmijewski_score, springate_s_score, taffler_z_score, benford_analysis,
    statement_amounts
)
from .swot import (
    generate_swot_analysis, swot_score
)
from .qualitative import (
    esg_score_analysis, moat_assessment, management_quality_indicators
)

__all__ = [
    # Profitability
    'calculate_roe', 'calculate_roa', 'calculate_roic',
    'calculate_net_profit_margin', 'calculate_gross_profit_margin',
    'calculate_operating_margin', 'calculate_ebitda_margin',
    'calculate_eps', 'calculate_book_value_per_share', 'comprehensive_profitability',
    # Liquidity
    'calculate_current_ratio', 'calculate_quick_ratio',
    'calculate_cash_ratio', 'calculate_working_capital',
    'calculate_operating_cash_flow_ratio', 'comprehensive_liquidity',
    # Solvency
    'calculate_debt_to_equity', 'calculate_debt_to_assets',
    'calculate_interest_coverage', 'calculate_equity_ratio',
    'calculate_debt_service_coverage', 'calculate_financial_leverage',
    'comprehensive_solvency',
    # Efficiency
    'calculate_asset_turnover', 'calculate_inventory_turnover',
    'calculate_receivables_turnover', 'calculate_payables_turnover',
    'calculate_operating_cycle', 'calculate_cash_conversion_cycle',
    'calculate_fixed_asset_turnover', 'comprehensive_efficiency',
    # Scoring
    'altman_z_score', 'beneish_m_score', 'piotroski_f_score', 'ohlson_o_score',
    'zmijewski_score', 'springate_s_score', 'taffler_z_score', 'benford_analysis',
    'statement_amounts',
    # SWOT
    'generate_swot_analysis', 'swot_score',
    # Qualitative
    'esg_score_analysis', 'moat_assessment', 'management_quality_indicators'
]
