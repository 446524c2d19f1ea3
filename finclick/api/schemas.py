"""
Request bodies accepted by the analysis API.
Field aliases follow the camelCase names the dashboard posts.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from finclick import config
from finclick.analysis.analyzer import AnalysisOptions


class OptionsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    company_name: str = Field('', alias='companyName')
    sector: str = 'general'
    activity: str = ''
    legal_entity: str = Field('', alias='legalEntity')
    comparison_level: str = Field('local', alias='comparisonLevel')
    years_count: int = Field(0, ge=0, le=50, alias='yearsCount')
    analysis_type: Literal['basic', 'intermediate', 'advanced', 'comprehensive'] = Field(
        'comprehensive', alias='analysisType')
    language: Literal['ar', 'en'] = config.DEFAULT_LANGUAGE
    analyses: Optional[List[str]] = None
    params: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def to_options(self) -> AnalysisOptions:
        return AnalysisOptions(**self.model_dump())


class AnalysisInputs(BaseModel):
    """
    Inputs shared by single and comprehensive runs.

    `inputs` carries any other named argument (cash_flows, transactions,
    texts, peers, portfolio, ...).
    """
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    statements: List[Dict[str, Any]] = Field(default_factory=list, alias='financialData')
    market: Optional[Dict[str, Any]] = None
    benchmarks: Optional[Dict[str, Any]] = None
    inputs: Dict[str, Any] = Field(default_factory=dict)
    options: OptionsModel = Field(default_factory=OptionsModel)


class RunRequest(AnalysisInputs):
    """Inputs plus keyword arguments passed to the analysis function."""
    params: Dict[str, Any] = Field(default_factory=dict)


class WordReportRequest(AnalysisInputs):
    """Either a generated report, or inputs to generate one."""
    report: Optional[Dict[str, Any]] = None
