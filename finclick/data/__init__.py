# Data module
from .statements import (
    FinancialStatement, CompanyProfile, sort_statements, require_statements
)
from .market import (
    MarketData, Portfolio, returns_from_prices, to_series, to_frame
)
from .benchmarks import (
    IndustryBenchmarks, SECTOR_BENCHMARKS, LOWER_IS_BETTER,
    get_industry_benchmarks, normalize_sector
)
from .parser import extract_financial_data, parse_table, match_line_item, extract_year

__all__ = [
    # Statements
    'FinancialStatement', 'CompanyProfile', 'sort_statements', 'require_statements',
    # Market
    'MarketData', 'Portfolio', 'returns_from_prices', 'to_series', 'to_frame',
    # Benchmarks
    'IndustryBenchmarks', 'SECTOR_BENCHMARKS', 'LOWER_IS_BETTER',
    'get_industry_benchmarks', 'normalize_sector',
    # Parser
    'extract_financial_data', 'parse_table', 'match_line_item', 'extract_year'
]
