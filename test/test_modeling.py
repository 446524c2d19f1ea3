import math
import unittest

from finclick.analysis.advanced.modeling import (
    advanced_scenario_analysis, monte_carlo_analysis, complex_financial_modeling_analysis,
    decision_tree_analysis, black_scholes, binomial_option, real_options_analysis, what_if_analysis,
    financial_linear_programming_analysis, dynamic_programming_analysis, optimal_allocation_analysis,
    financial_game_theory_analysis, financial_network_analysis
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_statement, make_statements


class TestOptionPricing(unittest.TestCase):
    def test_black_scholes_reference_value(self):
        call = black_scholes(100, 100, 1.0, 0.05, 0.2)
        self.assertAlmostEqual(call['value'], 10.4506, places=3)
        self.assertAlmostEqual(call['delta'], 0.6368, places=3)

    def test_put_call_parity(self):
        call = black_scholes(100, 95, 0.5, 0.03, 0.25)['value']
        put = black_scholes(100, 95, 0.5, 0.03, 0.25, option_type='put')['value']
        self.assertAlmostEqual(call - put, 100 - 95 * math.exp(-0.03 * 0.5), places=4)

    def test_binomial_converges_to_black_scholes(self):
        european = binomial_option(100, 100, 1.0, 0.05, 0.2, steps=500, american=False)
        self.assertAlmostEqual(european, 10.4506, delta=0.02)

    def test_american_put_worth_at_least_european(self):
        american = binomial_option(100, 110, 1.0, 0.05, 0.2, option_type='put')
        european = binomial_option(100, 110, 1.0, 0.05, 0.2, option_type='put', american=False)
        self.assertGreaterEqual(american, european)

    def test_real_options(self):
        result = real_options_analysis(underlying_value=120, exercise_price=100)
        self.assertTrue(result.ok)
        self.assertGreater(result.value, 20)

        with self.assertRaises(InsufficientDataError):
            real_options_analysis(underlying_value=0, exercise_price=100)


class TestDecisionAnalysis(unittest.TestCase):
    def setUp(self):
        self.tree = {
            'type': 'decision', 'name': 'launch',
            'options': [
                {'name': 'build', 'cost': 50, 'node': {
                    'type': 'chance',
                    'outcomes': [{'name': 'high', 'probability': 0.6, 'value': 200},
                                 {'name': 'low', 'probability': 0.4, 'value': 20}]}},
                {'name': 'wait', 'value': 60},
            ],
        }

    def test_backward_induction(self):
        # build: 0.6 * 200 + 0.4 * 20 - 50 = 78 beats waiting at 60
        result = decision_tree_analysis(self.tree)
        self.assertAlmostEqual(result.value, 78.0)
        self.assertEqual(result.data['policy']['launch']['choice'], 'build')
        self.assertEqual(result.data['probability_of_loss'], 0.4)
        self.assertEqual(result.evaluation, Rating.GOOD)

    def test_probabilities_must_sum_to_one(self):
        self.tree['options'][0]['node']['outcomes'][0]['probability'] = 0.5
        with self.assertRaises(InsufficientDataError):
            decision_tree_analysis(self.tree)

    def test_game_theory_prisoners_dilemma(self):
        result = financial_game_theory_analysis({
            'player_a': [[3, 0], [5, 1]],
            'player_b': [[3, 5], [0, 1]],
            'strategies_a': ['hold_price', 'cut_price'],
            'strategies_b': ['hold_price', 'cut_price'],
        })
        self.assertEqual(result.data['pure_equilibria'][0]['strategies'], ['cut_price', 'cut_price'])
        self.assertEqual(result.data['dominant_strategy_a'], 'cut_price')
        self.assertEqual(result.data['joint_optimum']['strategies'], ['hold_price', 'hold_price'])
        self.assertEqual(len(result.recommendations), 1)

    def test_zero_sum_game_value(self):
        # Matching pennies: value 0, both players mix 50/50
        result = financial_game_theory_analysis({'player_a': [[1, -1], [-1, 1]]})
        self.assertEqual(result.data['pure_equilibria'], [])
        self.assertAlmostEqual(result.data['game_value'], 0.0, places=4)
        self.assertEqual(result.data['mixed_equilibria'][0]['player_a'], {'A1': 0.5, 'A2': 0.5})


class TestOptimisation(unittest.TestCase):
    def test_linear_programming_product_mix(self):
        result = financial_linear_programming_analysis(
            products=[{'name': 'x', 'margin': 3, 'usage': {'machine': 1, 'labour': 1}},
                      {'name': 'y', 'margin': 5, 'usage': {'machine': 2, 'labour': 1}}],
            resources={'machine': 14, 'labour': 8},
        )
        # Vertex x=2, y=6 earns 36
        self.assertAlmostEqual(result.data['total_contribution'], 36.0)
        self.assertAlmostEqual(result.data['production_plan']['y'], 6.0)
        self.assertEqual(sorted(result.data['binding_constraints']), ['labour', 'machine'])

    def test_dynamic_programming_beats_greedy(self):
        projects = [{'name': 'A', 'cost': 60, 'npv': 72}, {'name': 'B', 'cost': 50, 'npv': 55},
                    {'name': 'C', 'cost': 50, 'npv': 55}]
        result = dynamic_programming_analysis(projects, budget=100)
        self.assertEqual(sorted(result.data['selected_projects']), ['B', 'C'])
        self.assertEqual(result.data['total_npv'], 110.0)
        self.assertEqual(result.data['greedy_selection'], ['A'])
        self.assertEqual(result.data['improvement_over_greedy'], 38.0)

    def test_dynamic_programming_needs_budget(self):
        with self.assertRaises(InsufficientDataError):
            dynamic_programming_analysis([{'cost': 10, 'npv': 5}], budget=0)

    def test_optimal_allocation_equalises_marginal_returns(self):
        result = optimal_allocation_analysis(
            [{'name': 'P', 'rate': 0.3, 'capacity': 100}, {'name': 'Q', 'rate': 0.2, 'capacity': 100}],
            budget=100)
        marginal = result.data['marginal_returns']
        self.assertAlmostEqual(marginal['P'], marginal['Q'], delta=0.005)
        self.assertGreater(result.data['allocation']['P'], result.data['allocation']['Q'])
        self.assertGreaterEqual(result.value, result.benchmark)

    def test_network_contagion(self):
        result = financial_network_analysis(
            exposures={'A': {'B': 50}, 'B': {'C': 80}, 'C': {}},
            capital={'A': 40, 'B': 60, 'C': 100},
        )
        # C fails -> B loses 80 > 60 -> A loses 50 > 40
        self.assertEqual(result.data['cascades']['C']['size'], 3)
        self.assertEqual(result.data['most_systemic'], 'C')
        self.assertEqual(result.data['contagion_share_pct'], 100.0)


class TestCompanyModels(unittest.TestCase):
    def setUp(self):
        self.statements = make_statements()
        self.statement = self.statements[-1]

    def test_scenarios_are_probability_weighted(self):
        result = advanced_scenario_analysis(self.statement, self.statements)
        probabilities = [s['probability'] for s in result.data['scenarios'].values()]
        self.assertAlmostEqual(sum(probabilities), 1.0)
        self.assertGreater(result.data['expected_net_income'], 0)

    def test_monte_carlo_is_seeded(self):
        first = monte_carlo_analysis(cash_flows=[-1000, 400, 400, 400], simulations=2000)
        second = monte_carlo_analysis(cash_flows=[-1000, 400, 400, 400], simulations=2000)
        self.assertEqual(first.data['mean'], second.data['mean'])
        self.assertEqual(first.data['measure'], 'npv')
        p = first.data['percentiles']
        self.assertLess(p['p5'], p['p95'])

    def test_monte_carlo_needs_inputs(self):
        with self.assertRaises(InsufficientDataError):
            monte_carlo_analysis()

    def test_three_statement_model_balances(self):
        result = complex_financial_modeling_analysis(self.statement, self.statements, years=4)
        self.assertEqual(len(result.data['projections']), 4)
        self.assertTrue(result.data['balanced'])
        self.assertAlmostEqual(result.data['assumptions']['revenue_growth'], 0.10, places=4)
        self.assertEqual(result.data['projections'][0]['year'], 2024)

    def test_what_if(self):
        result = what_if_analysis(make_statement(2023), {'revenue': -0.10})
        self.assertLess(result.value, result.benchmark)
        self.assertIn('revenue -10%', result.data['cases'])

        with self.assertRaises(InsufficientDataError):
            what_if_analysis(make_statement(2023), {'weather': 0.1})


if __name__ == '__main__':
    unittest.main()
