# Valuation Module
from .ratios import (
    calculate_pe_ratio, calculate_peg_ratio, calculate_pb_ratio,
    calculate_ps_ratio, calculate_ev_ebitda, calculate_ev_sales,
    calculate_dividend_yield, comprehensive_valuation, enterprise_value
)
from .dcf import (
    calculate_wacc, calculate_cost_of_equity,
    calculate_terminal_value_perpetuity, calculate_terminal_value_exit_multiple,
    discount_cash_flows, project_cash_flows, dcf_valuation, sensitivity_analysis
)
from .ddm import (
    gordon_growth_model, multi_stage_ddm, two_stage_ddm, h_model_ddm,
    estimate_growth_rate, implied_growth_rate
)

__all__ = [
    # Ratios
    'calculate_pe_ratio', 'calculate_peg_ratio', 'calculate_pb_ratio',
    'calculate_ps_ratio', 'calculate_ev_ebitda', 'calculate_ev_sales',
    'calculate_dividend_yield', 'comprehensive_valuation', 'enterprise_value',
    # DCF
    'calculate_wacc', 'calculate_cost_of_equity',
    'calculate_terminal_value_perpetuity', 'calculate_terminal_value_exit_multiple',
    'discount_cash_flows', 'project_cash_flows', 'dcf_valuation', 'sensitivity_analysis',
    # DDM
    'gordon_growth_model', 'multi_stage_ddm', 'two_stage_ddm', 'h_model_ddm',
    'estimate_growth_rate', 'implied_growth_rate'
]
