"""
Analysis Runner
Binds company statements and market data to catalogue analyses by argument
name, runs one analysis or a whole level, and assembles the comprehensive
summary (localised results, charts, executive summary, bilingual report).
"""

import inspect
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from finclick import config
from finclick.analysis.catalog import AnalysisDefinition, CONTEXT_INPUTS, LEVELS, get_analysis, list_analyses
from finclick.analysis.result import AnalysisResult, STATUS_FAILED, STATUS_SKIPPED, STATUS_SUCCESS
from finclick.core.exceptions import InsufficientDataError
from finclick.data.benchmarks import IndustryBenchmarks, get_industry_benchmarks
from finclick.data.market import MarketData, Portfolio
from finclick.data.statements import CompanyProfile, FinancialStatement, sort_statements
from finclick.i18n import normalize_language, pick
from finclick.reports.charts import generate_chart_config
from finclick.reports.generator import generate_bilingual_report
from finclick.reports.summary import build_executive_summary

logger = logging.getLogger(__name__)

ANALYSIS_TYPES = LEVELS + ('comprehensive',)

_OPTION_ALIASES = {
    'companyName': 'company_name',
    'legalEntity': 'legal_entity',
    'comparisonLevel': 'comparison_level',
    'yearsCount': 'years_count',
    'analysisType': 'analysis_type',
}


@dataclass
class AnalysisOptions:
    """
    What to analyse and how to present it.

    Attributes:
        analysis_type: basic, intermediate, advanced or comprehensive (all levels)
        years_count: keep only the latest N statements (0 keeps all)
        analyses: explicit list of analysis ids, overrides analysis_type
        params: per-analysis keyword arguments, keyed by analysis id
    """
    company_name: str = ''
    sector: str = 'general'
    activity: str = ''
    legal_entity: str = ''
    comparison_level: str = 'local'
    years_count: int = 0
    analysis_type: str = 'comprehensive'
    language: str = config.DEFAULT_LANGUAGE
    analyses: Optional[List[str]] = None
    params: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.language = normalize_language(self.language)
        self.analysis_type = (self.analysis_type or 'comprehensive').lower()
        if self.analysis_type not in ANALYSIS_TYPES:
            raise ValueError(f"analysis_type must be one of {', '.join(ANALYSIS_TYPES)}")
        self.years_count = int(self.years_count or 0)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AnalysisOptions':
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            key = _OPTION_ALIASES.get(key, key)
            if key in known and value is not None:
                kwargs[key] = value
        return cls(**kwargs)

    def profile(self) -> CompanyProfile:
        return CompanyProfile(name=self.company_name, sector=self.sector, activity=self.activity,
                              legal_entity=self.legal_entity, comparison_level=self.comparison_level)


@dataclass
class AnalysisContext:
    """
    Every input an analysis may ask for, looked up by argument name.

    `statement`, `previous` and `before_previous` are the latest three
    statements. Anything in `extra` is matched to other argument names
    (cash_flows, target, payoffs, ...).
    """
    statements: List[FinancialStatement] = field(default_factory=list)
    benchmarks: Optional[IndustryBenchmarks] = None
    peers: Optional[List[FinancialStatement]] = None
    returns: Optional[pd.Series] = None
    benchmark_returns: Optional[pd.Series] = None
    asset_returns: Optional[pd.DataFrame] = None
    portfolio: Optional[Portfolio] = None
    factor_returns: Optional[pd.DataFrame] = None
    prices: Optional[pd.Series] = None
    volumes: Optional[pd.Series] = None
    transactions: Any = None
    texts: Optional[List[str]] = None
    risk_free_rate: float = config.RISK_FREE_RATE
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.statements = sort_statements(self.statements or [])
        if self.portfolio is None and self.asset_returns is not None and not self.asset_returns.empty:
            try:
                self.portfolio = Portfolio(asset_returns=self.asset_returns,
                                           weights=self.extra.get('weights'),
                                           benchmark_returns=self.benchmark_returns)
            except ValueError as e:
                logger.warning(f"Portfolio not built from asset returns: {e}")

    @property
    def statement(self) -> Optional[FinancialStatement]:
        return self.statements[-1] if self.statements else None

    @property
    def previous(self) -> Optional[FinancialStatement]:
        return self.statements[-2] if len(self.statements) > 1 else None

    @property
    def before_previous(self) -> Optional[FinancialStatement]:
        return self.statements[-3] if len(self.statements) > 2 else None

    def get(self, name: str) -> Any:
        if name in CONTEXT_INPUTS:
            value = getattr(self, name, None)
            if name in ('statements', 'peers', 'texts') and not value:
                return None
            if value is not None:
                return value
        return self.extra.get(name)

    @classmethod
    def from_inputs(cls, statements: Optional[Sequence[Any]] = None,
                    benchmarks: Optional[Union[IndustryBenchmarks, Dict]] = None,
                    market: Optional[Union[MarketData, Dict]] = None,
                    extra: Optional[Dict[str, Any]] = None) -> 'AnalysisContext':
        """
        Build a context from loosely-typed inputs (dicts as posted to the API).

        Args:
            statements: FinancialStatement objects or mappings
            benchmarks: IndustryBenchmarks or its dict form
            market: MarketData or its dict form
            extra: remaining inputs; `peers`, `portfolio`, `transactions`
                and `texts` are lifted into their own fields
        """
        extra = dict(extra or {})
        if isinstance(market, dict):
            market = MarketData.from_dict(market)
        market = market or MarketData()
        if isinstance(benchmarks, dict):
            benchmarks = IndustryBenchmarks.from_dict(benchmarks)

        peers = extra.pop('peers', None)
        if peers:
            peers = [_as_statement(p) for p in peers]
        portfolio = extra.pop('portfolio', None)
        if isinstance(portfolio, dict):
            portfolio = Portfolio.from_dict(portfolio)
        texts = extra.pop('texts', None)
        if isinstance(texts, str):
            texts = [texts]

        return cls(
            statements=[_as_statement(s) for s in statements or []],
            benchmarks=benchmarks,
            peers=peers,
            returns=market.returns,
            benchmark_returns=market.benchmark_returns,
            asset_returns=market.asset_returns,
            portfolio=portfolio,
            factor_returns=market.factor_returns,
            prices=market.prices,
            volumes=market.volumes,
            transactions=extra.pop('transactions', None),
            texts=texts,
            risk_free_rate=market.risk_free_rate,
            extra=extra,
        )


def _as_statement(item: Any) -> FinancialStatement:
    if isinstance(item, FinancialStatement):
        return item
    return FinancialStatement.from_dict(item)


def bind_arguments(definition: AnalysisDefinition, context: AnalysisContext,
                   params: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], List[str]]:
    """
    Match function arguments to explicit params first, then the context.

    Returns:
        (keyword arguments, names of required arguments with no value)
    """
    params = params or {}
    kwargs, missing = {}, []
    for name, parameter in definition.parameters.items():
        if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
            continue
        value = params[name] if name in params else context.get(name)
        if value is None:
            if parameter.default is inspect.Parameter.empty:
                missing.append(name)
            continue
        kwargs[name] = value
    return kwargs, missing


def _localise(result: AnalysisResult, definition: AnalysisDefinition, language: str) -> AnalysisResult:
    result.name = definition.label(language)
    result.category = definition.category
    result.description = pick(definition.description, language)
    result.charts.append(generate_chart_config(definition.id, result.value, result.benchmark,
                                               language, data=result.data, title=definition.name))
    return result


def run_analysis(analysis_id: str, context: AnalysisContext, language: Optional[str] = None,
                 **kwargs) -> AnalysisResult:
    """
    Run one catalogue analysis.

    Args:
        analysis_id: Catalogue id (e.g. 'ratio.current')
        context: Inputs bound to the function by argument name
        language: Language of the returned name and chart labels
        **kwargs: Extra arguments, taking precedence over the context

    Raises:
        UnknownAnalysisError: no analysis with this id
        InsufficientDataError: required inputs missing or unusable
    """
    definition = get_analysis(analysis_id)
    language = normalize_language(language)
    arguments, missing = bind_arguments(definition, context, kwargs)
    if missing:
        raise InsufficientDataError(f"Missing inputs: {', '.join(missing)}", analysis_id)

    logger.debug(f"Running {analysis_id} with {sorted(arguments)}", extra={'analysis_id': analysis_id})
    result = definition.func(**arguments)
    return _localise(result, definition, language)


def _run_safely(definition: AnalysisDefinition, context: AnalysisContext,
                options: AnalysisOptions) -> AnalysisResult:
    name = definition.label(options.language)
    try:
        return run_analysis(definition.id, context, options.language,
                            **options.params.get(definition.id, {}))
    except InsufficientDataError as e:
        logger.warning(f"Skipped {definition.id}: {e}", extra={'analysis_id': definition.id})
        return AnalysisResult.skipped(definition.id, name, definition.category, str(e))
    except Exception as e:
        logger.error(f"Analysis {definition.id} failed: {e}", exc_info=True,
                     extra={'analysis_id': definition.id})
        return AnalysisResult.failed(definition.id, name, definition.category, str(e))


def select_analyses(options: AnalysisOptions) -> List[AnalysisDefinition]:
    if options.analyses:
        return [get_analysis(analysis_id) for analysis_id in options.analyses]
    return list_analyses(level=options.analysis_type)


def run_comprehensive_analysis(statements: Sequence[Any],
                               options: Optional[Union[AnalysisOptions, Dict]] = None,
                               benchmarks: Optional[Union[IndustryBenchmarks, Dict]] = None,
                               market: Optional[Union[MarketData, Dict]] = None,
                               extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Run every analysis of the selected level against one company.

    Analyses whose inputs are missing come back `skipped`, analyses that
    raise come back `failed`; neither stops the run.

    Args:
        statements: Yearly statements (objects or mappings)
        options: AnalysisOptions or its dict form (camelCase accepted)
        benchmarks: Industry benchmarks; looked up from the sector when omitted
        market: Market data for the risk and statistical analyses
        extra: Additional named inputs (cash_flows, transactions, texts, ...)

    Returns:
        Dictionary with company, analyses, counts, executiveSummary and report
    """
    if not isinstance(options, AnalysisOptions):
        options = AnalysisOptions.from_dict(options)
    statements = sort_statements(_as_statement(s) for s in statements or [])
    if options.years_count > 0:
        statements = statements[-options.years_count:]
    if benchmarks is None:
        benchmarks = get_industry_benchmarks(options.sector, options.legal_entity, options.comparison_level)

    context = AnalysisContext.from_inputs(statements, benchmarks, market, extra)
    definitions = select_analyses(options)
    logger.info(f"Running {len(definitions)} {options.analysis_type} analyses for "
                f"'{options.company_name or 'company'}' on {len(statements)} statement(s)")

    results = [_run_safely(definition, context, options) for definition in definitions]

    counts = {
        'total': len(results),
        STATUS_SUCCESS: sum(r.status == STATUS_SUCCESS for r in results),
        STATUS_SKIPPED: sum(r.status == STATUS_SKIPPED for r in results),
        STATUS_FAILED: sum(r.status == STATUS_FAILED for r in results),
    }
    logger.info(f"Analysis run complete: {counts}")

    company = vars(options.profile())
    summary = build_executive_summary(results, options.language)
    return {
        'company': company,
        'analysisType': options.analysis_type,
        'language': options.language,
        'years': [s.year for s in statements],
        'analyses': [r.to_dict() for r in results],
        'counts': counts,
        'executiveSummary': summary,
        'report': generate_bilingual_report(summary, company, options.language),
    }
