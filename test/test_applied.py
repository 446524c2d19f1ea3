import unittest

from finclick.analysis.applied.comparison import (
    peer_comparative_analysis, market_share_analysis, relative_performance_analysis
)
from finclick.analysis.applied.performance import (
    dupont_analysis, activity_based_costing_analysis, advanced_variance_analysis, sensitivity_analysis
)
from finclick.analysis.applied.valuation import (
    npv, irr_roots, mirr, payback_period, profitability_index, equivalent_annual_annuity,
    time_value_of_money_analysis, npv_analysis, irr_analysis, cost_benefit_analysis,
    investment_alternatives_analysis, dcf_analysis, gordon_growth_analysis
)
from finclick.analysis.result import Rating, STATUS_SUCCESS
from finclick.core.exceptions import InsufficientDataError
from finclick.data.benchmarks import get_industry_benchmarks

from sample_data import make_statements, make_returns


class TestComparison(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.benchmarks = get_industry_benchmarks('general')

    def test_peer_comparison_uses_synthetic_sample(self):
        result = peer_comparative_analysis(self.statements[-1], benchmarks=self.benchmarks)
        self.assertEqual(result.data['peer_source'], 'synthetic')
        self.assertIn('current_ratio', result.data['ranks'])
        self.assertTrue(0 <= result.value <= 100)

    def test_peer_comparison_with_statements(self):
        result = peer_comparative_analysis(self.statements[-1], peers=self.statements[:2],
                                           benchmarks=self.benchmarks)
        self.assertEqual(result.data['peer_source'], 'statements')

    def test_market_share(self):
        result = market_share_analysis(self.statements[0], competitors={'X': 3000, 'Y': 1500})
        self.assertEqual(result.data['market_share_pct'], 25.0)
        self.assertEqual(result.data['rank'], 2)
        self.assertEqual(result.data['hhi'], 3750)
        self.assertEqual(result.data['market_structure'], 'highly_concentrated')
        self.assertEqual(result.data['relative_market_share'], 0.5)

    def test_market_share_needs_market(self):
        with self.assertRaises(InsufficientDataError):
            market_share_analysis(self.statements[0])

    def test_relative_performance_on_returns(self):
        returns, benchmark = make_returns()
        result = relative_performance_analysis(returns, benchmark)
        self.assertEqual(result.data['basis'], 'returns')
        self.assertEqual(result.data['observations'], 300)

    def test_relative_performance_on_statements(self):
        result = relative_performance_analysis(statements=self.statements, benchmarks=self.benchmarks)
        self.assertEqual(result.data['basis'], 'statements')
        self.assertAlmostEqual(result.value, 10.0, places=2)
        self.assertEqual(result.benchmark, 6.0)


class TestPerformance(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()

    def test_dupont_matches_roe(self):
        result = dupont_analysis(self.statements[0])
        # 230 / 850
        self.assertAlmostEqual(result.data['roe'], 27.06, places=2)
        self.assertIsNone(result.data['attribution'])

    def test_dupont_attribution_adds_up(self):
        result = dupont_analysis(self.statements[2], self.statements[1], before_previous=self.statements[0])
        attribution = result.data['attribution']
        self.assertAlmostEqual(sum(attribution['three_factor'].values()), attribution['roe_change'], delta=0.02)

    def test_activity_based_costing(self):
        result = activity_based_costing_analysis(
            cost_pools={'setup': {'cost': 1000, 'driver_total': 10},
                        'machining': {'cost': 2000, 'driver_total': 100}},
            products={'A': {'setup': 4, 'machining': 30, 'revenue': 2000, 'direct_cost': 500, 'units': 100},
                      'B': {'setup': 6, 'machining': 70, 'revenue': 1500, 'direct_cost': 400}},
        )
        self.assertEqual(result.data['products']['A']['overhead'], 1000)
        self.assertEqual(result.data['products']['A']['unit_cost'], 15)
        self.assertEqual(result.data['loss_making_products'], ['B'])
        self.assertEqual(result.data['unallocated_overhead'], 0)

    def test_price_mix_volume_variance(self):
        result = advanced_variance_analysis(
            actual_sales={'A': {'units': 150, 'price': 11}, 'B': {'units': 50, 'price': 20}},
            budget_sales={'A': {'units': 100, 'price': 10}, 'B': {'units': 100, 'price': 20}},
        )
        totals = result.data['totals']
        self.assertEqual(totals['price_variance'], 150)
        self.assertEqual(totals['mix_variance'], -500)
        self.assertEqual(totals['volume_variance'], 0)
        self.assertEqual(result.data['total_variance'], -350)
        self.assertEqual(result.data['main_driver'], 'mix_variance')
        self.assertEqual(result.evaluation, Rating.WEAK)

    def test_sensitivity(self):
        result = sensitivity_analysis(self.statements[0])
        self.assertEqual(result.data['most_sensitive'], 'revenue')
        with self.assertRaises(InsufficientDataError):
            sensitivity_analysis(self.statements[0], drivers=['weather'])


class TestValuation(unittest.TestCase):
    def test_capital_budgeting_primitives(self):
        self.assertAlmostEqual(npv(0.1, [-100, 110]), 0.0)
        self.assertEqual(len(irr_roots([-100, 110])), 1)
        self.assertAlmostEqual(irr_roots([-100, 110])[0], 0.1, places=6)
        self.assertAlmostEqual(mirr([-100, 0, 121], 0.1, 0.1), 0.1)
        self.assertAlmostEqual(payback_period([-100, 50, 50, 50]), 2.0)
        self.assertAlmostEqual(profitability_index(0.0, [-100, 60, 60]), 1.2)
        self.assertAlmostEqual(equivalent_annual_annuity(0.0, [-100, 60, 60]), 10.0)
        self.assertIsNone(payback_period([-100, 10, 10]))

    def test_multiple_irr(self):
        result = irr_analysis([-100, 230, -132])
        self.assertTrue(result.data['multiple_irr'])
        self.assertEqual(result.data['sign_changes'], 2)
        self.assertIsNone(result.data['irr'])
        candidates = result.data['irr_candidates']
        self.assertAlmostEqual(candidates[0], 0.1, places=6)
        self.assertAlmostEqual(candidates[1], 0.2, places=6)

    def test_time_value_of_money(self):
        self.assertAlmostEqual(time_value_of_money_analysis(present_value=100, rate=0.1, periods=2).value, 121.0)
        solved = time_value_of_money_analysis(present_value=100, future_value=121, rate=0.1)
        self.assertEqual(solved.data['solved_for'], 'periods')
        self.assertAlmostEqual(solved.value, 2.0, places=4)
        with self.assertRaises(InsufficientDataError):
            time_value_of_money_analysis(present_value=100)

    def test_npv_analysis(self):
        result = npv_analysis([-1000, 500, 500, 500], 0.1)
        self.assertAlmostEqual(result.value, 243.43, places=2)
        self.assertEqual(result.data['decision'], 'accept')
        self.assertEqual(result.evaluation, Rating.GOOD)

    def test_flows_need_outlay_and_return(self):
        with self.assertRaises(InsufficientDataError):
            npv_analysis([100, 200])

    def test_cost_benefit(self):
        result = cost_benefit_analysis([0, 110], [100], 0.1)
        self.assertAlmostEqual(result.value, 1.0)

    def test_unequal_lives_ranked_by_eaa(self):
        result = investment_alternatives_analysis({'A': [-100, 60, 60], 'B': [-100, 20, 20, 120]})
        self.assertEqual(result.data['ranking_basis'], 'eaa')
        self.assertEqual(len(result.data['ranking']), 2)

    def test_dcf(self):
        statements = make_statements()
        result = dcf_analysis(statements[-1], statements)
        self.assertEqual(result.status, STATUS_SUCCESS)
        self.assertGreater(result.data['enterprise_value'], 0)
        self.assertEqual(len(result.data['growth_rates']), 5)
        self.assertAlmostEqual(result.data['growth_rates'][0], 10.0, places=1)

    def test_gordon_growth(self):
        statements = make_statements()
        result = gordon_growth_analysis(statements[-1], statements[-2])
        self.assertGreater(result.value, 0)


if __name__ == '__main__':
    unittest.main()
