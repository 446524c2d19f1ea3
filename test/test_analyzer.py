import unittest
from unittest import mock

import pytest

from finclick.analysis.analyzer import (
    AnalysisContext, AnalysisOptions, bind_arguments, run_analysis, run_comprehensive_analysis, select_analyses
)
from finclick.analysis.catalog import AnalysisDefinition, get_analysis
from finclick.analysis.result import STATUS_FAILED, STATUS_SKIPPED, STATUS_SUCCESS
from finclick.core.exceptions import InsufficientDataError, UnknownAnalysisError

from sample_data import make_statement, make_statements


def _broken_analysis(statement):
    """Always fails."""
    raise ZeroDivisionError('division by zero')


class TestOptions(unittest.TestCase):
    def test_camel_case_aliases(self):
        options = AnalysisOptions.from_dict({'companyName': 'Acme', 'analysisType': 'BASIC',
                                             'yearsCount': '2', 'language': 'EN-us', 'unknown': 1})
        self.assertEqual(options.company_name, 'Acme')
        self.assertEqual(options.analysis_type, 'basic')
        self.assertEqual(options.years_count, 2)
        self.assertEqual(options.language, 'en')
        self.assertEqual(options.profile().name, 'Acme')

    def test_unsupported_language_falls_back(self):
        options = AnalysisOptions.from_dict({'language': 'fr'})
        self.assertIn(options.language, ('ar', 'en'))

    def test_bad_analysis_type(self):
        with self.assertRaises(ValueError):
            AnalysisOptions.from_dict({'analysisType': 'everything'})

    def test_explicit_analyses_override_level(self):
        options = AnalysisOptions(analysis_type='basic', analyses=['adv.stat.garch'])
        self.assertEqual([d.id for d in select_analyses(options)], ['adv.stat.garch'])


class TestBinding(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.context = AnalysisContext(statements=list(reversed(self.statements)))

    def test_context_is_sorted(self):
        self.assertEqual(self.context.statement.year, 2023)
        self.assertEqual(self.context.previous.year, 2022)
        self.assertEqual(self.context.before_previous.year, 2021)

    def test_bind_from_context(self):
        kwargs, missing = bind_arguments(get_analysis('ratio.current'), self.context)
        self.assertEqual(missing, [])
        self.assertIs(kwargs['statement'], self.statements[-1])
        self.assertNotIn('benchmarks', kwargs)

    def test_explicit_params_win(self):
        other = make_statement(2030)
        kwargs, _ = bind_arguments(get_analysis('ratio.current'), self.context, {'statement': other})
        self.assertIs(kwargs['statement'], other)

    def test_missing_required_input(self):
        _, missing = bind_arguments(get_analysis('ratio.current'), AnalysisContext())
        self.assertEqual(missing, ['statement'])

    def test_extra_inputs(self):
        context = AnalysisContext(extra={'cash_flows': [-100, 60, 60]})
        self.assertEqual(context.get('cash_flows'), [-100, 60, 60])
        self.assertIsNone(context.get('statements'))
        self.assertIsNone(context.get('texts'))

    def test_from_inputs_accepts_mappings(self):
        context = AnalysisContext.from_inputs(
            [{'year': 2023, 'revenue': 100, 'totalAssets': 400}],
            extra={'texts': 'Strong growth', 'peers': [{'year': 2023, 'revenue': 80}]})
        self.assertEqual(context.statement.revenue, 100.0)
        self.assertEqual(context.texts, ['Strong growth'])
        self.assertEqual(context.peers[0].revenue, 80.0)
        self.assertNotIn('texts', context.extra)


class TestRunner(unittest.TestCase):
    def setUp(self):
        self.context = AnalysisContext(statements=make_statements())

    def test_run_single_analysis(self):
        result = run_analysis('ratio.current', self.context, 'en')
        self.assertTrue(result.ok)
        self.assertEqual(result.name, 'Current Ratio')
        self.assertEqual(result.value, 2.4)
        self.assertEqual(len(result.charts), 1)

    def test_run_in_arabic(self):
        result = run_analysis('ratio.current', self.context, 'ar')
        self.assertEqual(result.name, 'النسبة الجارية')

    def test_run_missing_inputs(self):
        with self.assertRaises(InsufficientDataError):
            run_analysis('ratio.current', AnalysisContext())

    def test_run_unknown(self):
        with self.assertRaises(UnknownAnalysisError):
            run_analysis('ratio.imaginary', self.context)

    def test_missing_inputs_are_skipped(self):
        summary = run_comprehensive_analysis(make_statements(),
                                             {'analyses': ['ratio.current', 'adv.stat.garch'], 'language': 'en'})
        statuses = {a['id']: a['status'] for a in summary['analyses']}
        self.assertEqual(statuses, {'ratio.current': STATUS_SUCCESS, 'adv.stat.garch': STATUS_SKIPPED})
        self.assertEqual(summary['counts'], {'total': 2, STATUS_SUCCESS: 1, STATUS_SKIPPED: 1, STATUS_FAILED: 0})

    def test_constant_returns_are_skipped(self):
        # A stale price feed: every model needing variation is skipped, none fails
        ids = ['adv.risk.capm', 'adv.risk.alpha', 'adv.risk.beta', 'adv.risk.dynamic_correlation',
               'adv.stat.markov', 'adv.stat.regime', 'adv.stat.chaos', 'adv.stat.time_series',
               'adv.stat.garch', 'adv.stat.arima']
        summary = run_comprehensive_analysis(make_statements(), {'analyses': ids, 'language': 'en'},
                                             market={'returns': [0.0] * 150, 'benchmark_returns': [0.0] * 150})
        statuses = {a['id']: a['status'] for a in summary['analyses']}
        self.assertEqual(statuses, {analysis_id: STATUS_SKIPPED for analysis_id in ids})

    def test_exceptions_are_reported_as_failed(self):
        broken = AnalysisDefinition(id='test.broken', name={'ar': 'معطل', 'en': 'Broken'},
                                    category='basic.ratios', func=_broken_analysis)
        with mock.patch.dict('finclick.analysis.catalog._INDEX', {'test.broken': broken}):
            summary = run_comprehensive_analysis(make_statements(), {'analyses': ['test.broken'], 'language': 'en'})
        analysis = summary['analyses'][0]
        self.assertEqual(analysis['status'], STATUS_FAILED)
        self.assertEqual(analysis['name'], 'Broken')
        self.assertIn('division by zero', analysis['error'])

    def test_basic_run(self):
        summary = run_comprehensive_analysis(make_statements(), {'analysisType': 'basic', 'companyName': 'Acme',
                                                                 'language': 'en', 'yearsCount': 2})
        counts = summary['counts']
        self.assertEqual(counts['total'], 55)
        self.assertEqual(counts[STATUS_SUCCESS] + counts[STATUS_SKIPPED] + counts[STATUS_FAILED], 55)
        self.assertGreater(counts[STATUS_SUCCESS], 30)
        self.assertEqual(summary['years'], [2022, 2023])
        self.assertEqual(summary['company']['name'], 'Acme')
        self.assertEqual(summary['report']['direction'], 'ltr')
        self.assertIn('swot', summary['executiveSummary'])

    def test_params_are_passed_per_analysis(self):
        summary = run_comprehensive_analysis(
            make_statements(),
            {'analyses': ['adv.model.monte_carlo'], 'language': 'en',
             'params': {'adv.model.monte_carlo': {'simulations': 500}}},
            extra={'cash_flows': [-1000, 400, 400, 400]})
        analysis = summary['analyses'][0]
        self.assertEqual(analysis['status'], STATUS_SUCCESS)
        self.assertEqual(analysis['data']['measure'], 'npv')

    @pytest.mark.slow
    def test_comprehensive_run_covers_catalogue(self):
        summary = run_comprehensive_analysis(make_statements(), {'language': 'ar'})
        self.assertEqual(summary['counts']['total'], 183)
        self.assertEqual(summary['report']['direction'], 'rtl')


if __name__ == '__main__':
    unittest.main()
