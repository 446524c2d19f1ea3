# Reports Module
from .summary import build_executive_summary, overall_score, results_table
from .charts import generate_chart_config
from .generator import generate_analysis_report, generate_bilingual_report, group_by_category
from .word import generate_word_report

__all__ = [
    # Summary
    'build_executive_summary', 'overall_score', 'results_table',
    # Charts
    'generate_chart_config',
    # Generator
    'generate_analysis_report', 'generate_bilingual_report', 'group_by_category',
    # Word
    'generate_word_report'
]
