"""
Analysis Catalogue
Registry of every analysis: id, bilingual name and description, category,
level and the function that computes it.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from finclick.analysis import advanced
from finclick.analysis.applied import comparison, performance, valuation
from finclick.analysis.classical import flow, ratios, structural
from finclick.core.exceptions import UnknownAnalysisError
from finclick.i18n import pick

logger = logging.getLogger(__name__)

# Inputs the runner can supply from an AnalysisContext
CONTEXT_INPUTS = (
    'statements', 'statement', 'previous', 'before_previous', 'peers', 'benchmarks',
    'returns', 'benchmark_returns', 'asset_returns', 'portfolio', 'factor_returns',
    'prices', 'volumes', 'transactions', 'texts', 'risk_free_rate',
)

LEVELS = ('basic', 'intermediate', 'advanced')

CATEGORIES: Dict[str, Dict[str, str]] = {
    'basic.structural': {'ar': 'التحليل الهيكلي', 'en': 'Structural Analysis'},
    'basic.ratios': {'ar': 'النسب المالية', 'en': 'Financial Ratios'},
    'basic.flow': {'ar': 'تحليل التدفقات والحركة', 'en': 'Flow & Movement Analysis'},
    'intermediate.comparison': {'ar': 'المقارنات المتقدمة', 'en': 'Advanced Comparison'},
    'intermediate.valuation': {'ar': 'التقييم والاستثمار', 'en': 'Valuation & Investment'},
    'intermediate.performance': {'ar': 'الأداء والكفاءة', 'en': 'Performance & Efficiency'},
    'advanced.modeling': {'ar': 'النمذجة والمحاكاة', 'en': 'Modeling & Simulation'},
    'advanced.statistical': {'ar': 'التحليل الإحصائي والكمي', 'en': 'Statistical & Quantitative'},
    'advanced.risk': {'ar': 'تحليل المخاطر والمحافظ', 'en': 'Risk & Portfolio Analysis'},
    'advanced.detection': {'ar': 'الكشف والتنبؤ الذكي', 'en': 'Intelligent Detection & Prediction'},
}

MEASURES: Dict[str, Dict[str, str]] = {
    'basic.structural': {'ar': 'نِسب وتغيرات', 'en': 'Percents and changes'},
    'basic.ratios': {'ar': 'مرة/نسبة', 'en': 'x/ratio'},
    'basic.flow': {'ar': 'قيمة/نسبة', 'en': 'Value/ratio'},
    'intermediate.comparison': {'ar': 'فجوات وترتيب', 'en': 'Gaps and ranks'},
    'intermediate.valuation': {'ar': 'قيمة/عائد', 'en': 'Value/return'},
    'intermediate.performance': {'ar': 'مؤشرات أداء', 'en': 'Performance indicators'},
    'advanced.modeling': {'ar': 'توزيعات وسيناريوهات', 'en': 'Distributions/scenarios'},
    'advanced.statistical': {'ar': 'تقديرات/اختبارات', 'en': 'Estimates/tests'},
    'advanced.risk': {'ar': 'قيمة/احتمال', 'en': 'Value/probability'},
    'advanced.detection': {'ar': 'احتمالات/إنذارات', 'en': 'Probabilities/alerts'},
}


@dataclass(frozen=True)
class AnalysisDefinition:
    id: str
    name: Dict[str, str]
    category: str
    func: Callable = field(repr=False, compare=False)
    description: Dict[str, str] = field(default_factory=dict, compare=False)
    measures: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def level(self) -> str:
        return self.category.split('.')[0]

    @property
    def parameters(self) -> Dict[str, inspect.Parameter]:
        return dict(inspect.signature(self.func).parameters)

    @property
    def inputs(self) -> Tuple[str, ...]:
        """Context fields the function accepts."""
        return tuple(p for p in self.parameters if p in CONTEXT_INPUTS)

    @property
    def required_inputs(self) -> Tuple[str, ...]:
        """Arguments without a default; all must be supplied to run."""
        return tuple(name for name, p in self.parameters.items()
                     if p.default is inspect.Parameter.empty
                     and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD))

    def label(self, language: Optional[str] = None) -> str:
        return pick(self.name, language)

    def to_dict(self, language: Optional[str] = None) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'label': self.label(language),
            'category': self.category,
            'category_label': pick(CATEGORIES.get(self.category, {}), language),
            'level': self.level,
            'description': self.description,
            'measures': self.measures,
            'inputs': list(self.inputs),
            'required_inputs': list(self.required_inputs),
        }


def _summary(func: Callable) -> str:
    doc = inspect.getdoc(func) or ''
    return doc.split('\n\n')[0].replace('\n', ' ').strip()


def _define(category: str, entries: List[Tuple[str, Callable, str, str]]) -> List[AnalysisDefinition]:
    category_ar = CATEGORIES[category]['ar']
    return [
        AnalysisDefinition(
            id=analysis_id, name={'ar': ar, 'en': en}, category=category, func=func,
            description={'ar': f'{ar} ضمن {category_ar}', 'en': _summary(func) or en},
            measures=MEASURES[category],
        )
        for analysis_id, func, ar, en in entries
    ]


_STRUCTURAL = [
    ('struct.vertical', structural.vertical_analysis, 'التحليل الرأسي', 'Vertical Analysis'),
    ('struct.horizontal', structural.horizontal_analysis, 'التحليل الأفقي', 'Horizontal Analysis'),
    ('struct.combined', structural.combined_analysis, 'التحليل المختلط', 'Combined Analysis'),
    ('struct.trend', structural.trend_analysis, 'تحليل الاتجاه', 'Trend Analysis'),
    ('struct.comparative', structural.basic_comparative_analysis, 'التحليل المقارن الأساسي',
     'Basic Comparative Analysis'),
    ('struct.value_added', structural.value_added_analysis, 'تحليل القيمة المضافة', 'Value Added Analysis'),
    ('struct.common_size', structural.common_size_analysis, 'تحليل الحجم المشترك', 'Common Size Analysis'),
    ('struct.time_series', structural.simple_time_series_analysis, 'تحليل السلاسل الزمنية البسيط',
     'Simple Time Series Analysis'),
    ('struct.relative_change', structural.relative_change_analysis, 'تحليل التغير النسبي',
     'Relative Change Analysis'),
    ('struct.growth_rate', structural.growth_rate_analysis, 'تحليل معدلات النمو', 'Growth Rate Analysis'),
    ('struct.deviation', structural.basic_deviation_analysis, 'تحليل الانحرافات الأساسي',
     'Basic Deviation Analysis'),
    ('struct.variance', structural.simple_variance_analysis, 'تحليل التباين البسيط', 'Simple Variance Analysis'),
    ('struct.difference', structural.difference_analysis, 'تحليل الفروقات', 'Difference Analysis'),
    ('struct.exceptional_items', structural.exceptional_items_analysis, 'تحليل البنود الاستثنائية',
     'Exceptional Items Analysis'),
    ('struct.index_number', structural.index_number_analysis, 'تحليل الأرقام القياسية', 'Index Number Analysis'),
]

_RATIOS = [
    ('ratio.current', ratios.current_ratio_analysis, 'النسبة الجارية', 'Current Ratio'),
    ('ratio.quick', ratios.quick_ratio_analysis, 'النسبة السريعة', 'Quick Ratio'),
    ('ratio.cash', ratios.cash_ratio_analysis, 'نسبة النقد', 'Cash Ratio'),
    ('ratio.operating_cash_flow', ratios.operating_cash_flow_ratio_analysis, 'نسبة التدفق النقدي التشغيلي',
     'Operating Cash Flow Ratio'),
    ('ratio.working_capital', ratios.working_capital_ratio_analysis, 'نسبة رأس المال العامل',
     'Working Capital Ratio'),
    ('ratio.inventory_turnover', ratios.inventory_turnover_analysis, 'معدل دوران المخزون', 'Inventory Turnover'),
    ('ratio.receivables_turnover', ratios.receivables_turnover_analysis, 'معدل دوران الذمم المدينة',
     'Receivables Turnover'),
    ('ratio.dso', ratios.days_sales_outstanding_analysis, 'فترة التحصيل', 'Days Sales Outstanding'),
    ('ratio.payables_turnover', ratios.payables_turnover_analysis, 'معدل دوران الذمم الدائنة',
     'Payables Turnover'),
    ('ratio.dpo', ratios.days_payables_outstanding_analysis, 'فترة السداد', 'Days Payables Outstanding'),
    ('ratio.fixed_asset_turnover', ratios.fixed_asset_turnover_analysis, 'معدل دوران الأصول الثابتة',
     'Fixed Asset Turnover'),
    ('ratio.asset_turnover', ratios.total_asset_turnover_analysis, 'معدل دوران إجمالي الأصول',
     'Total Asset Turnover'),
    ('ratio.operating_cycle', ratios.operating_cycle_analysis, 'الدورة التشغيلية', 'Operating Cycle'),
    ('ratio.cash_conversion_cycle', ratios.cash_conversion_cycle_analysis, 'دورة التحويل النقدي',
     'Cash Conversion Cycle'),
    ('ratio.debt_to_assets', ratios.debt_to_assets_analysis, 'نسبة الديون إلى الأصول', 'Debt to Assets'),
    ('ratio.debt_to_equity', ratios.debt_to_equity_analysis, 'نسبة الديون إلى حقوق الملكية', 'Debt to Equity'),
    ('ratio.interest_coverage', ratios.interest_coverage_analysis, 'نسبة تغطية الفوائد', 'Interest Coverage'),
    ('ratio.debt_service_coverage', ratios.debt_service_coverage_analysis, 'نسبة تغطية خدمة الدين',
     'Debt Service Coverage'),
    ('ratio.equity_to_assets', ratios.equity_to_assets_analysis, 'نسبة حقوق الملكية إلى الأصول',
     'Equity to Assets'),
    ('ratio.gross_margin', ratios.gross_margin_analysis, 'هامش الربح الإجمالي', 'Gross Profit Margin'),
    ('ratio.operating_margin', ratios.operating_margin_analysis, 'هامش الربح التشغيلي', 'Operating Profit Margin'),
    ('ratio.net_margin', ratios.net_margin_analysis, 'هامش صافي الربح', 'Net Profit Margin'),
    ('ratio.roa', ratios.roa_analysis, 'العائد على الأصول', 'Return on Assets'),
    ('ratio.roe', ratios.roe_analysis, 'العائد على حقوق الملكية', 'Return on Equity'),
    ('ratio.roic', ratios.roic_analysis, 'العائد على رأس المال المستثمر', 'Return on Invested Capital'),
    ('ratio.pe', ratios.pe_ratio_analysis, 'مكرر الربحية', 'Price to Earnings'),
    ('ratio.pb', ratios.pb_ratio_analysis, 'مضاعف القيمة الدفترية', 'Price to Book'),
    ('ratio.dividend_yield', ratios.dividend_yield_analysis, 'عائد التوزيعات', 'Dividend Yield'),
    ('ratio.eps', ratios.eps_analysis, 'ربحية السهم', 'Earnings per Share'),
    ('ratio.book_value_per_share', ratios.book_value_per_share_analysis, 'القيمة الدفترية للسهم',
     'Book Value per Share'),
]

_FLOW = [
    ('flow.cash_basic', flow.basic_cash_flow_analysis, 'تحليل التدفقات النقدية الأساسي',
     'Basic Cash Flow Analysis'),
    ('flow.working_capital', flow.working_capital_analysis, 'تحليل رأس المال العامل', 'Working Capital Analysis'),
    ('flow.cash_cycle', flow.cash_cycle_analysis, 'تحليل الدورة النقدية', 'Cash Cycle Analysis'),
    ('flow.break_even', flow.break_even_analysis, 'تحليل نقطة التعادل', 'Break-even Analysis'),
    ('flow.margin_of_safety', flow.margin_of_safety_analysis, 'تحليل هامش الأمان', 'Margin of Safety Analysis'),
    ('flow.cost_structure', flow.cost_structure_analysis, 'تحليل هيكل التكاليف', 'Cost Structure Analysis'),
    ('flow.fixed_variable', flow.fixed_variable_cost_analysis, 'تحليل التكاليف الثابتة والمتغيرة',
     'Fixed & Variable Cost Analysis'),
    ('flow.operating_leverage', flow.operating_leverage_analysis, 'تحليل الرافعة التشغيلية',
     'Operating Leverage Analysis'),
    ('flow.contribution_margin', flow.contribution_margin_analysis, 'تحليل هامش المساهمة',
     'Contribution Margin Analysis'),
    ('flow.free_cash_flow', flow.free_cash_flow_analysis, 'تحليل التدفق النقدي الحر', 'Free Cash Flow Analysis'),
]

_COMPARISON = [
    ('inter.comp.industry', comparison.industrial_comparative_analysis, 'التحليل المقارن الصناعي',
     'Industry Comparative'),
    ('inter.comp.peers', comparison.peer_comparative_analysis, 'المقارنة مع المنافسين', 'Peer Comparative'),
    ('inter.comp.historical', comparison.historical_comparative_analysis, 'المقارنة التاريخية',
     'Historical Comparative'),
    ('inter.comp.benchmarking', comparison.benchmarking_analysis, 'المقارنة المرجعية', 'Benchmarking'),
    ('inter.comp.gap', comparison.gap_analysis, 'تحليل الفجوات', 'Gap Analysis'),
    ('inter.comp.position', comparison.competitive_position_analysis, 'تحليل المركز التنافسي',
     'Competitive Position'),
    ('inter.comp.market_share', comparison.market_share_analysis, 'تحليل الحصة السوقية', 'Market Share Analysis'),
    ('inter.comp.capability', comparison.competitive_capability_analysis, 'تحليل القدرة التنافسية',
     'Competitive Capability'),
    ('inter.comp.strength_weakness', comparison.financial_strength_weakness_analysis,
     'تحليل نقاط القوة والضعف المالية', 'Financial Strengths & Weaknesses'),
    ('inter.comp.relative', comparison.relative_performance_analysis, 'تحليل الأداء النسبي',
     'Relative Performance'),
]

_PERFORMANCE = [
    ('inter.perf.dupont', performance.dupont_analysis, 'تحليل دوبونت', 'DuPont Analysis'),
    ('inter.perf.productivity', performance.productivity_analysis, 'تحليل الإنتاجية', 'Productivity Analysis'),
    ('inter.perf.operational_efficiency', performance.operational_efficiency_analysis, 'تحليل الكفاءة التشغيلية',
     'Operational Efficiency'),
    ('inter.perf.value_chain', performance.value_chain_analysis, 'تحليل سلسلة القيمة', 'Value Chain Analysis'),
    ('inter.perf.abc', performance.activity_based_costing_analysis, 'التكاليف على أساس الأنشطة',
     'Activity-Based Costing'),
    ('inter.perf.scorecard', performance.balanced_scorecard_analysis, 'بطاقة الأداء المتوازن',
     'Balanced Scorecard'),
    ('inter.perf.kpi', performance.kpi_analysis, 'مؤشرات الأداء الرئيسية', 'KPI Analysis'),
    ('inter.perf.csf', performance.critical_success_factors_analysis, 'عوامل النجاح الحرجة',
     'Critical Success Factors'),
    ('inter.perf.advanced_variance', performance.advanced_variance_analysis, 'تحليل الانحرافات المتقدم',
     'Advanced Variance Analysis'),
    ('inter.perf.variance_deviation', performance.variance_deviation_analysis, 'تحليل الانحراف عن الموازنة',
     'Budget Variance Deviation'),
    ('inter.perf.flexibility', performance.flexibility_analysis, 'تحليل المرونة المالية', 'Financial Flexibility'),
    ('inter.perf.sensitivity', performance.sensitivity_analysis, 'تحليل الحساسية', 'Sensitivity Analysis'),
]

_VALUATION = [
    ('inter.valuation.tvm', valuation.time_value_of_money_analysis, 'القيمة الزمنية للنقود', 'Time Value of Money'),
    ('inter.valuation.npv', valuation.npv_analysis, 'تحليل صافي القيمة الحالية', 'Net Present Value (NPV)'),
    ('inter.valuation.irr', valuation.irr_analysis, 'معدل العائد الداخلي', 'Internal Rate of Return (IRR)'),
    ('inter.valuation.payback', valuation.payback_analysis, 'فترة الاسترداد', 'Payback Period'),
    ('inter.valuation.dcf', valuation.dcf_analysis, 'التدفقات النقدية المخصومة', 'Discounted Cash Flow (DCF)'),
    ('inter.valuation.roi', valuation.roi_analysis, 'العائد على الاستثمار', 'Return on Investment (ROI)'),
    ('inter.valuation.eva', valuation.eva_analysis, 'القيمة الاقتصادية المضافة', 'Economic Value Added (EVA)'),
    ('inter.valuation.mva', valuation.mva_analysis, 'القيمة السوقية المضافة', 'Market Value Added (MVA)'),
    ('inter.valuation.gordon', valuation.gordon_growth_analysis, 'نموذج جوردن للنمو', 'Gordon Growth Model'),
    ('inter.valuation.ddm', valuation.dividend_discount_analysis, 'نموذج خصم التوزيعات', 'Dividend Discount Model'),
    ('inter.valuation.fair_value', valuation.fair_value_analysis, 'القيمة العادلة', 'Fair Value'),
    ('inter.valuation.cost_benefit', valuation.cost_benefit_analysis, 'تحليل التكلفة والعائد',
     'Cost-Benefit Analysis'),
    ('inter.valuation.feasibility', valuation.financial_feasibility_analysis, 'دراسة الجدوى المالية',
     'Financial Feasibility'),
    ('inter.valuation.project', valuation.investment_project_analysis, 'تحليل المشروع الاستثماري',
     'Investment Project Analysis'),
    ('inter.valuation.alternatives', valuation.investment_alternatives_analysis, 'المفاضلة بين البدائل الاستثمارية',
     'Investment Alternatives'),
    ('inter.valuation.company', valuation.company_valuation_analysis, 'تقييم الشركة', 'Company Valuation'),
]

_MODELING = [
    ('adv.model.scenario', advanced.advanced_scenario_analysis, 'تحليل السيناريوهات المتقدم',
     'Advanced Scenario Analysis'),
    ('adv.model.monte_carlo', advanced.monte_carlo_analysis, 'محاكاة مونت كارلو', 'Monte Carlo Simulation'),
    ('adv.model.financial_model', advanced.complex_financial_modeling_analysis, 'النمذجة المالية المركبة',
     'Complex Financial Modeling'),
    ('adv.model.multivariate_sensitivity', advanced.multivariate_sensitivity_analysis,
     'تحليل الحساسية متعدد المتغيرات', 'Multivariate Sensitivity'),
    ('adv.model.decision_tree', advanced.decision_tree_analysis, 'تحليل شجرة القرار', 'Decision Tree Analysis'),
    ('adv.model.real_options', advanced.real_options_analysis, 'تحليل الخيارات الحقيقية', 'Real Options Analysis'),
    ('adv.model.forecasting', advanced.financial_forecasting_models_analysis, 'نماذج التنبؤ المالي',
     'Financial Forecasting Models'),
    ('adv.model.what_if', advanced.what_if_analysis, 'تحليل ماذا لو', 'What-If Analysis'),
    ('adv.model.stochastic', advanced.stochastic_simulation_analysis, 'المحاكاة العشوائية',
     'Stochastic Simulation'),
    ('adv.model.optimization', advanced.optimization_models_analysis, 'نماذج التحسين', 'Optimization Models'),
    ('adv.model.linear_programming', advanced.financial_linear_programming_analysis, 'البرمجة الخطية المالية',
     'Financial Linear Programming'),
    ('adv.model.dynamic_programming', advanced.dynamic_programming_analysis, 'البرمجة الديناميكية',
     'Dynamic Programming'),
    ('adv.model.optimal_allocation', advanced.optimal_allocation_analysis, 'التخصيص الأمثل للموارد',
     'Optimal Allocation'),
    ('adv.model.game_theory', advanced.financial_game_theory_analysis, 'نظرية الألعاب المالية',
     'Financial Game Theory'),
    ('adv.model.network', advanced.financial_network_analysis, 'تحليل الشبكات المالية', 'Financial Network Analysis'),
]

_STATISTICAL = [
    ('adv.stat.regression', advanced.multiple_regression_analysis, 'الانحدار المتعدد', 'Multiple Regression'),
    ('adv.stat.time_series', advanced.advanced_time_series_analysis, 'تحليل السلاسل الزمنية المتقدم',
     'Advanced Time Series'),
    ('adv.stat.arima', advanced.arima_analysis, 'نماذج ARIMA', 'ARIMA Models'),
    ('adv.stat.garch', advanced.garch_analysis, 'نماذج GARCH للتقلب', 'GARCH Volatility'),
    ('adv.stat.pca', advanced.pca_statistical_analysis, 'تحليل المكونات الرئيسية', 'Principal Component Analysis'),
    ('adv.stat.factor', advanced.factor_analysis, 'التحليل العاملي', 'Factor Analysis'),
    ('adv.stat.anova', advanced.variance_anova_analysis, 'تحليل التباين ANOVA', 'Variance Analysis (ANOVA)'),
    ('adv.stat.cointegration', advanced.cointegration_analysis, 'تحليل التكامل المشترك', 'Cointegration Analysis'),
    ('adv.stat.var', advanced.var_model_analysis, 'نموذج الانحدار الذاتي المتجه VAR', 'VAR Model'),
    ('adv.stat.vecm', advanced.vecm_analysis, 'نموذج تصحيح الخطأ المتجه VECM', 'VECM Model'),
    ('adv.stat.copula', advanced.copula_analysis, 'تحليل الكوبولا', 'Copula Analysis'),
    ('adv.stat.evt', advanced.extreme_value_analysis, 'نظرية القيم المتطرفة', 'Extreme Value Theory'),
    ('adv.stat.survival', advanced.survival_analysis, 'تحليل البقاء', 'Survival Analysis'),
    ('adv.stat.markov', advanced.markov_model_analysis, 'نماذج ماركوف', 'Markov Model'),
    ('adv.stat.threshold', advanced.threshold_model_analysis, 'نماذج العتبة', 'Threshold Model'),
    ('adv.stat.regime', advanced.regime_switching_analysis, 'نماذج تبدل الأنظمة', 'Regime Switching'),
    ('adv.stat.chaos', advanced.chaos_theory_analysis, 'تحليل نظرية الفوضى', 'Chaos Theory Analysis'),
    ('adv.stat.fractal', advanced.fractal_analysis, 'التحليل الكسوري', 'Fractal Analysis'),
    ('adv.stat.bootstrap', advanced.bootstrap_analysis, 'تحليل البوتستراب', 'Bootstrap Analysis'),
    ('adv.stat.wavelet', advanced.wavelet_analysis, 'تحليل المويجات', 'Wavelet Analysis'),
]

_RISK = [
    ('adv.risk.mpt', advanced.modern_portfolio_theory_analysis, 'نظرية المحفظة الحديثة',
     'Modern Portfolio Theory'),
    ('adv.risk.capm', advanced.capm_analysis, 'نموذج تسعير الأصول الرأسمالية', 'CAPM'),
    ('adv.risk.apt', advanced.apt_analysis, 'نظرية التسعير بالمراجحة', 'Arbitrage Pricing Theory'),
    ('adv.risk.fama_french', advanced.fama_french_analysis, 'نموذج فاما-فرنش', 'Fama-French Model'),
    ('adv.risk.beta', advanced.systematic_risk_analysis, 'تحليل المخاطر المنتظمة (بيتا)', 'Systematic Risk (Beta)'),
    ('adv.risk.alpha', advanced.abnormal_returns_analysis, 'تحليل ألفا والعوائد غير العادية',
     'Alpha & Abnormal Returns'),
    ('adv.risk.concentration', advanced.concentration_analysis, 'تحليل التركز والتنويع',
     'Concentration & Diversification'),
    ('adv.risk.dynamic_correlation', advanced.dynamic_correlation_analysis, 'الارتباط الديناميكي',
     'Dynamic Correlation'),
    ('adv.risk.risk_parity', advanced.risk_parity_analysis, 'تعادل المخاطر', 'Risk Parity'),
    ('adv.risk.drawdown', advanced.drawdown_analysis, 'تحليل التراجع الأقصى', 'Drawdown Analysis'),
    ('adv.risk.var', advanced.value_at_risk_analysis, 'القيمة المعرضة للخطر', 'Value at Risk (VaR)'),
    ('adv.risk.es', advanced.expected_shortfall_analysis, 'العجز المتوقع', 'Expected Shortfall'),
    ('adv.risk.stress', advanced.stress_testing_analysis, 'اختبارات الضغط', 'Stress Testing'),
    ('adv.risk.catastrophic', advanced.catastrophic_scenario_analysis, 'سيناريوهات الكوارث',
     'Catastrophic Scenarios'),
    ('adv.risk.market', advanced.market_risk_analysis, 'مخاطر السوق', 'Market Risk'),
    ('adv.risk.backtest', advanced.backtesting_validation_analysis, 'الاختبار الرجعي للنماذج',
     'Backtesting Validation'),
    ('adv.risk.operational', advanced.operational_risk_analysis, 'المخاطر التشغيلية', 'Operational Risk'),
    ('adv.risk.credit', advanced.credit_risk_analysis, 'مخاطر الائتمان', 'Credit Risk'),
    ('adv.risk.liquidity', advanced.liquidity_risk_analysis, 'مخاطر السيولة', 'Liquidity Risk'),
    ('adv.risk.cyber', advanced.cyber_risk_analysis, 'المخاطر السيبرانية', 'Cyber Risk'),
    ('adv.risk.geopolitical', advanced.geopolitical_risk_analysis, 'المخاطر الجيوسياسية', 'Geopolitical Risk'),
    ('adv.risk.climate', advanced.environmental_climate_risk_analysis, 'المخاطر البيئية والمناخية',
     'Environmental & Climate Risk'),
    ('adv.risk.governance', advanced.governance_analysis, 'تحليل الحوكمة', 'Governance Analysis'),
    ('adv.risk.social', advanced.social_responsibility_analysis, 'المسؤولية الاجتماعية', 'Social Responsibility'),
    ('adv.risk.credit_models', advanced.credit_risk_models_analysis, 'نماذج مخاطر الائتمان', 'Credit Risk Models'),
    ('adv.risk.icaap', advanced.icaap_ilaap_analysis, 'تقييم كفاية رأس المال والسيولة', 'ICAAP / ILAAP'),
    ('adv.risk.basel3', advanced.basel_iii_analysis, 'متطلبات بازل 3', 'Basel III'),
    ('adv.risk.forensic_valuation', advanced.forensic_valuation_analysis, 'التقييم الجنائي', 'Forensic Valuation'),
    ('adv.risk.ma', advanced.merger_acquisition_analysis, 'تحليل الاندماج والاستحواذ', 'Mergers & Acquisitions'),
    ('adv.risk.lbo', advanced.lbo_analysis, 'الاستحواذ بالرافعة والملكية الخاصة', 'LBO / Private Equity'),
    ('adv.risk.ipo', advanced.ipo_analysis, 'تحليل الطرح العام الأولي', 'IPO Analysis'),
    ('adv.risk.spinoff', advanced.spinoff_analysis, 'تحليل الانفصال', 'Spin-off Analysis'),
    ('adv.risk.restructuring', advanced.restructuring_analysis, 'تحليل إعادة الهيكلة', 'Restructuring Analysis'),
    ('adv.risk.bankruptcy', advanced.bankruptcy_workout_analysis, 'تسوية الإفلاس', 'Bankruptcy Workout'),
    ('adv.risk.forensic', advanced.forensic_financial_analysis, 'التحليل المالي الجنائي',
     'Forensic Financial Analysis'),
]

_DETECTION = [
    ('adv.detect.fraud', advanced.ai_fraud_detection_analysis, 'كشف الاحتيال بالذكاء الاصطناعي',
     'AI Fraud Detection'),
    ('adv.detect.aml', advanced.money_laundering_detection_analysis, 'كشف غسل الأموال',
     'Money Laundering Detection'),
    ('adv.detect.manipulation', advanced.market_manipulation_detection_analysis, 'كشف التلاعب بالسوق',
     'Market Manipulation Detection'),
    ('adv.detect.bankruptcy', advanced.advanced_bankruptcy_prediction_analysis, 'التنبؤ المتقدم بالإفلاس',
     'Advanced Bankruptcy Prediction'),
    ('adv.detect.crisis', advanced.financial_crisis_prediction_analysis, 'التنبؤ بالأزمات المالية',
     'Financial Crisis Prediction'),
    ('adv.detect.realtime', advanced.realtime_anomaly_detection_analysis, 'كشف الشذوذ اللحظي',
     'Real-time Anomaly Detection'),
    ('adv.detect.volatility', advanced.volatility_prediction_analysis, 'التنبؤ بتقلبات السوق',
     'Market Volatility Prediction'),
    ('adv.detect.early_warning', advanced.early_warning_system_analysis, 'نظام الإنذار المبكر',
     'Early Warning System'),
    ('adv.detect.behavioral', advanced.intelligent_behavioral_analysis, 'التحليل السلوكي الذكي',
     'Intelligent Behavioral Analysis'),
    ('adv.detect.explainable', advanced.explainable_ai_analysis, 'الذكاء الاصطناعي القابل للتفسير',
     'Explainable AI'),
    ('adv.detect.benford', advanced.benford_law_analysis, 'تحليل قانون بنفورد', "Benford's Law Analysis"),
    ('adv.detect.earnings_quality', advanced.earnings_quality_analysis, 'جودة الأرباح', 'Earnings Quality'),
    ('adv.ml.neural_network', advanced.neural_network_forecast_analysis, 'التنبؤ بالشبكات العصبية',
     'Neural Network Forecasting'),
    ('adv.ml.lstm', advanced.lstm_time_series_analysis, 'السلاسل الزمنية بنموذج LSTM', 'LSTM Time Series'),
    ('adv.ml.credit_rf', advanced.random_forest_credit_analysis, 'تصنيف الائتمان بالغابات العشوائية',
     'Random Forest Credit Classification'),
    ('adv.ml.gradient_boosting', advanced.gradient_boosting_forecast_analysis, 'التنبؤ بالتعزيز التدرجي',
     'Gradient Boosting Forecasting'),
    ('adv.ml.clustering', advanced.clustering_classification_analysis, 'التصنيف المالي بالتجميع',
     'Clustering Financial Classification'),
    ('adv.ml.autoencoder', advanced.autoencoder_anomaly_analysis, 'كشف الشذوذ بالمشفر التلقائي',
     'Autoencoder Anomaly Detection'),
    ('adv.ml.sentiment', advanced.ai_sentiment_analysis, 'تحليل المشاعر بالذكاء الاصطناعي', 'AI Sentiment Analysis'),
    ('adv.ml.blockchain', advanced.blockchain_analytics_analysis, 'تحليلات البلوك تشين', 'Blockchain Analytics'),
]

ANALYSES: List[AnalysisDefinition] = (
    _define('basic.structural', _STRUCTURAL)
    + _define('basic.ratios', _RATIOS)
    + _define('basic.flow', _FLOW)
    + _define('intermediate.comparison', _COMPARISON)
    + _define('intermediate.valuation', _VALUATION)
    + _define('intermediate.performance', _PERFORMANCE)
    + _define('advanced.modeling', _MODELING)
    + _define('advanced.statistical', _STATISTICAL)
    + _define('advanced.risk', _RISK)
    + _define('advanced.detection', _DETECTION)
)

_INDEX: Dict[str, AnalysisDefinition] = {}
for _definition in ANALYSES:
    if _definition.id in _INDEX:
        raise ValueError(f"Duplicate analysis id: {_definition.id}")
    _INDEX[_definition.id] = _definition


def get_analysis(analysis_id: str) -> AnalysisDefinition:
    try:
        return _INDEX[analysis_id]
    except KeyError:
        raise UnknownAnalysisError(analysis_id) from None


def list_analyses(category: Optional[str] = None, level: Optional[str] = None) -> List[AnalysisDefinition]:
    """
    Catalogue entries filtered by category key and/or level.

    `level='comprehensive'` (or None) returns every level.
    """
    selected = ANALYSES
    if category:
        selected = [d for d in selected if d.category == category]
    if level and level != 'comprehensive':
        selected = [d for d in selected if d.level == level]
    return list(selected)
