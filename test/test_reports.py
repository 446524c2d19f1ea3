import io
import unittest

from docx import Document

from finclick.analysis.analyzer import run_comprehensive_analysis
from finclick.analysis.result import AnalysisResult, Rating
from finclick.reports import (
    build_executive_summary, generate_analysis_report, generate_bilingual_report, generate_chart_config,
    generate_word_report
)

from sample_data import make_statements


def sample_results():
    return [
        AnalysisResult(analysis_id='ratio.current', name='Current Ratio', category='basic.ratios',
                       value=2.4, benchmark=1.5, evaluation=Rating.EXCELLENT),
        AnalysisResult(analysis_id='ratio.net_margin', name='Net Margin', category='basic.ratios',
                       value=3.0, benchmark=10.0, evaluation=Rating.WEAK, recommendations=['Cut overheads']),
        AnalysisResult(analysis_id='adv.detect.fraud', name='AI Fraud Detection', category='advanced.detection',
                       value=70.0, benchmark=35.0, evaluation=Rating.ACCEPTABLE, data={'risk_level': 'high'},
                       recommendations=['Commission a forensic accounting review']),
        AnalysisResult.skipped('adv.stat.garch', 'GARCH Volatility', 'advanced.statistical', 'No returns'),
    ]


class TestExecutiveSummary(unittest.TestCase):
    def setUp(self):
        self.summary = build_executive_summary(sample_results(), 'en')

    def test_swot(self):
        swot = self.summary['swot']
        self.assertEqual(swot['strengths'], ['Current Ratio stronger than industry benchmark'])
        self.assertEqual(swot['weaknesses'], ['Net Margin below industry benchmark'])
        self.assertEqual(swot['threats'], ['Threat: AI Fraud Detection'])
        self.assertEqual(self.summary['risks'], ['Elevated risk in AI Fraud Detection'])
        self.assertEqual(self.summary['swot_balance']['net_score'], -1)
        self.assertEqual(self.summary['swot_balance']['outlook'], 'Neutral')

    def test_recommendations_start_with_weakest(self):
        recommendations = self.summary['recommendations']
        self.assertEqual(recommendations[:2], ['Cut overheads', 'Commission a forensic accounting review'])

    def test_score_and_counts(self):
        # Mean of 100, 35 and 55 rating points
        self.assertEqual(self.summary['overall_score'], 63.3)
        self.assertEqual(self.summary['overall_rating'], 'Good')
        self.assertEqual(self.summary['counts'], {'total': 4, 'completed': 3, 'rated': 3})
        self.assertEqual([row['id'] for row in self.summary['table']],
                         ['ratio.current', 'ratio.net_margin', 'adv.detect.fraud'])

    def test_empty_run(self):
        summary = build_executive_summary([], 'en')
        self.assertIsNone(summary['overall_score'])
        self.assertEqual(summary['recommendations'], ['Maintain current performance levels'])
        self.assertEqual(summary['swot']['weaknesses'], ['No material weaknesses identified'])
        self.assertEqual(summary['swot_balance']['weaknesses_count'], 0)

    def test_bilingual_report_sections(self):
        report = generate_bilingual_report(self.summary, {'name': 'Acme', 'sector': 'retail'}, 'ar')
        self.assertEqual(report['direction'], 'rtl')
        self.assertEqual(report['subtitle']['en'], 'Company: Acme')
        self.assertEqual([s['key'] for s in report['sections']],
                         ['strengths', 'weaknesses', 'opportunities', 'threats', 'risks', 'forecasts',
                          'recommendations'])
        self.assertEqual(report['overall']['score'], 63.3)
        self.assertIn('ar', report['disclaimer'])


class TestCharts(unittest.TestCase):
    def test_vertical_pie(self):
        chart = generate_chart_config('struct.vertical', None, None, 'en',
                                      data={'assets_pct_of_total_assets': {'total_current_assets': 40.0,
                                                                           'total_non_current_assets': 60.0}})
        self.assertEqual(chart['type'], 'pie')
        self.assertEqual(chart['data'][0], {'name': 'Current Assets', 'value': 40.0})

    def test_radar_for_scores(self):
        chart = generate_chart_config('adv.detect.earnings_quality', 80.0, 60.0, 'en',
                                      data={'component_scores': {'accruals': 90, 'cash_conversion': 70,
                                                                 'smoothing': 95, 'persistence': None}})
        self.assertEqual(chart['type'], 'radar')
        self.assertEqual(len(chart['data']), 3)

    def test_line_for_year_series(self):
        chart = generate_chart_config('struct.horizontal', 10.0, None, 'en',
                                      data={'revenue': {'2021': 1500, '2022': 1650, '2023': 1815}})
        self.assertEqual(chart['type'], 'line')
        self.assertEqual([p['period'] for p in chart['data']], ['2021', '2022', '2023'])
        self.assertEqual(chart['title']['en'], 'Horizontal Analysis - Growth Over Years')

    def test_gauge_for_risk_score(self):
        chart = generate_chart_config('adv.risk.cyber', 60.0, None, 'en')
        self.assertEqual(chart['type'], 'gauge')
        self.assertEqual(chart['data'][0]['max'], 100.0)

    def test_benchmark_bar(self):
        chart = generate_chart_config('ratio.current', 2.4, 1.5, 'ar', title={'ar': 'النسبة الجارية',
                                                                          'en': 'Current Ratio'})
        self.assertEqual(chart['type'], 'bar')
        self.assertEqual([p['value'] for p in chart['data']], [2.4, 1.5])
        self.assertEqual(chart['title']['en'], 'Current Ratio')


class TestReportDocuments(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.summary_run = run_comprehensive_analysis(make_statements(),
                                                     {'analysisType': 'basic', 'companyName': 'Acme',
                                                      'sector': 'retail', 'language': 'en'})

    def test_analysis_report(self):
        report = generate_analysis_report(self.summary_run)
        self.assertEqual(report['format'], 'comprehensive')
        self.assertEqual(report['subtitle'], 'Company: Acme')
        self.assertEqual(report['counts'], self.summary_run['counts'])
        categories = [group['category'] for group in report['categories']]
        self.assertEqual(categories, ['basic.structural', 'basic.ratios', 'basic.flow'])
        self.assertTrue(all('analysis_id' in chart for chart in report['charts']))
        counts = self.summary_run['counts']
        self.assertEqual(len(report['skipped']), counts['total'] - counts['success'])

    def test_report_language_override(self):
        report = generate_analysis_report(self.summary_run, {'language': 'ar', 'company_name': 'أكمي'})
        self.assertEqual(report['language'], 'ar')
        self.assertEqual(report['company']['name'], 'أكمي')

    def test_word_document(self):
        content = generate_word_report(generate_analysis_report(self.summary_run))
        self.assertTrue(content.startswith(b'PK'))
        document = Document(io.BytesIO(content))
        text = '\n'.join(p.text for p in document.paragraphs)
        self.assertIn('Comprehensive Financial Analysis Report', text)
        self.assertIn('Acme', text)

    def test_word_document_written_to_path(self):
        import tempfile
        from pathlib import Path
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'report.docx'
            content = generate_word_report(generate_analysis_report(self.summary_run, {'language': 'ar'}), path)
            self.assertEqual(path.read_bytes(), content)


if __name__ == '__main__':
    unittest.main()
