# Classical (Basic) Analysis Module
from .structural import (
    vertical_analysis, horizontal_analysis, combined_analysis, trend_analysis,
    basic_comparative_analysis, value_added_analysis, common_size_analysis,
    simple_time_series_analysis, relative_change_analysis, growth_rate_analysis,
    basic_deviation_analysis, simple_variance_analysis, difference_analysis,
    exceptional_items_analysis, index_number_analysis
)
from .ratios import (
    RatioSpec, RATIOS, RATIO_INDEX, ratio_values, compare_to_peers, competitive_position,
    calculate_all_financial_ratios,
    current_ratio_analysis, quick_ratio_analysis, cash_ratio_analysis,
    operating_cash_flow_ratio_analysis, working_capital_ratio_analysis,
    inventory_turnover_analysis, receivables_turnover_analysis, days_sales_outstanding_analysis,
    payables_turnover_analysis, days_payables_outstanding_analysis, fixed_asset_turnover_analysis,
    total_asset_turnover_analysis, operating_cycle_analysis, cash_conversion_cycle_analysis,
    debt_to_assets_analysis, debt_to_equity_analysis, interest_coverage_analysis,
    debt_service_coverage_analysis, equity_to_assets_analysis,
    gross_margin_analysis, operating_margin_analysis, net_margin_analysis,
    roa_analysis, roe_analysis, roic_analysis,
    pe_ratio_analysis, pb_ratio_analysis, dividend_yield_analysis, eps_analysis,
    book_value_per_share_analysis
)
from .flow import (
    cost_behaviour, basic_cash_flow_analysis, working_capital_analysis, cash_cycle_analysis,
    break_even_analysis, margin_of_safety_analysis, cost_structure_analysis,
    fixed_variable_cost_analysis, operating_leverage_analysis, contribution_margin_analysis,
    free_cash_flow_analysis
)

__all__ = [
    # Structural
    'vertical_analysis', 'horizontal_analysis', 'combined_analysis', 'trend_analysis',
    'basic_comparative_analysis', 'value_added_analysis', 'common_size_analysis',
    'simple_time_series_analysis', 'relative_change_analysis', 'growth_rate_analysis',
    'basic_deviation_analysis', 'simple_variance_analysis', 'difference_analysis',
    'exceptional_items_analysis', 'index_number_analysis',
    # Ratios
    'RatioSpec', 'RATIOS', 'RATIO_INDEX', 'ratio_values', 'compare_to_peers', 'competitive_position',
    'calculate_all_financial_ratios',
    'current_ratio_analysis', 'quick_ratio_analysis', 'cash_ratio_analysis',
    'operating_cash_flow_ratio_analysis', 'working_capital_ratio_analysis',
    'inventory_turnover_analysis', 'receivables_turnover_analysis', 'days_sales_outstanding_analysis',
    'payables_turnover_analysis', 'days_payables_outstanding_analysis', 'fixed_asset_turnover_analysis',
    'total_asset_turnover_analysis', 'operating_cycle_analysis', 'cash_conversion_cycle_analysis',
    'debt_to_assets_analysis', 'debt_to_equity_analysis', 'interest_coverage_analysis',
    'debt_service_coverage_analysis', 'equity_to_assets_analysis',
    'gross_margin_analysis', 'operating_margin_analysis', 'net_margin_analysis',
    'roa_analysis', 'roe_analysis', 'roic_analysis',
    'pe_ratio_analysis', 'pb_ratio_analysis', 'dividend_yield_analysis', 'eps_analysis',
    'book_value_per_share_analysis',
    # Flow
    'cost_behaviour', 'basic_cash_flow_analysis', 'working_capital_analysis', 'cash_cycle_analysis',
    'break_even_analysis', 'margin_of_safety_analysis', 'cost_structure_analysis',
    'fixed_variable_cost_analysis', 'operating_leverage_analysis', 'contribution_margin_analysis',
    'free_cash_flow_analysis'
]
