import unittest

import pytest

from finclick.analysis.catalog import (
    ANALYSES, CATEGORIES, get_analysis, list_analyses
)
from finclick.core.exceptions import UnknownAnalysisError


@pytest.mark.unit
class TestCatalogue(unittest.TestCase):
    def test_every_analysis_is_registered_once(self):
        ids = [d.id for d in ANALYSES]
        self.assertEqual(len(ids), 183)
        self.assertEqual(len(set(ids)), 183)

    def test_levels(self):
        self.assertEqual(len(list_analyses(level='basic')), 55)
        self.assertEqual(len(list_analyses(level='intermediate')), 38)
        self.assertEqual(len(list_analyses(level='advanced')), 90)
        self.assertEqual(len(list_analyses(level='comprehensive')), 183)
        self.assertEqual(len(list_analyses()), 183)

    def test_categories(self):
        self.assertEqual(len(list_analyses(category='basic.ratios')), 30)
        self.assertEqual(len(list_analyses(category='advanced.detection')), 20)
        self.assertEqual(list_analyses(category='basic.ratios', level='advanced'), [])
        self.assertEqual({d.category for d in ANALYSES}, set(CATEGORIES))

    def test_unknown_id(self):
        with self.assertRaises(UnknownAnalysisError) as ctx:
            get_analysis('ratio.imaginary')
        self.assertEqual(ctx.exception.analysis_id, 'ratio.imaginary')
        self.assertIn('ratio.imaginary', str(ctx.exception))

    def test_definition_metadata(self):
        definition = get_analysis('ratio.current')
        self.assertEqual(definition.level, 'basic')
        self.assertEqual(definition.label('en'), 'Current Ratio')
        self.assertEqual(definition.label('ar'), 'النسبة الجارية')
        self.assertEqual(definition.required_inputs, ('statement',))
        self.assertEqual(set(definition.inputs), {'statement', 'benchmarks'})

    def test_to_dict(self):
        data = get_analysis('adv.ml.sentiment').to_dict('en')
        self.assertEqual(data['level'], 'advanced')
        self.assertEqual(data['category_label'], 'Intelligent Detection & Prediction')
        self.assertEqual(data['required_inputs'], ['texts'])
        self.assertTrue(data['description']['en'])
        self.assertIn('ar', data['name'])


if __name__ == '__main__':
    unittest.main()
