# Applied (Intermediate) Analysis Module
from .comparison import (
    industrial_comparative_analysis, peer_comparative_analysis, historical_comparative_analysis,
    benchmarking_analysis, gap_analysis, competitive_position_analysis, market_share_analysis,
    competitive_capability_analysis, financial_strength_weakness_analysis,
    relative_performance_analysis
)
from .performance import (
    dupont_components, dupont_analysis, productivity_analysis, operational_efficiency_analysis,
    value_chain_analysis, activity_based_costing_analysis, balanced_scorecard_analysis,
    kpi_analysis, critical_success_factors_analysis, advanced_variance_analysis,
    variance_deviation_analysis, flexibility_analysis, sensitivity_analysis
)
from .valuation import (
    npv, irr_roots, mirr, payback_period, profitability_index, equivalent_annual_annuity,
    time_value_of_money_analysis, npv_analysis, irr_analysis, payback_analysis, dcf_analysis,
    roi_analysis, eva_analysis, mva_analysis, gordon_growth_analysis, dividend_discount_analysis,
    fair_value_analysis, cost_benefit_analysis, financial_feasibility_analysis,
    investment_project_analysis, investment_alternatives_analysis, company_valuation_analysis
)

__all__ = [
    # Comparison
    'industrial_comparative_analysis', 'peer_comparative_analysis', 'historical_comparative_analysis',
    'benchmarking_analysis', 'gap_analysis', 'competitive_position_analysis', 'market_share_analysis',
    'competitive_capability_analysis', 'financial_strength_weakness_analysis',
    'relative_performance_analysis',
    # Performance
    'dupont_components', 'dupont_analysis', 'productivity_analysis', 'operational_efficiency_analysis',
    'value_chain_analysis', 'activity_based_costing_analysis', 'balanced_scorecard_analysis',
    'kpi_analysis', 'critical_success_factors_analysis', 'advanced_variance_analysis',
    'variance_deviation_analysis', 'flexibility_analysis', 'sensitivity_analysis',
    # Valuation
    'npv', 'irr_roots', 'mirr', 'payback_period', 'profitability_index', 'equivalent_annual_annuity',
    'time_value_of_money_analysis', 'npv_analysis', 'irr_analysis', 'payback_analysis', 'dcf_analysis',
    'roi_analysis', 'eva_analysis', 'mva_analysis', 'gordon_growth_analysis', 'dividend_discount_analysis',
    'fair_value_analysis', 'cost_benefit_analysis', 'financial_feasibility_analysis',
    'investment_project_analysis', 'investment_alternatives_analysis', 'company_valuation_analysis'
]
