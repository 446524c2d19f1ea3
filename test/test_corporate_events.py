import unittest

from finclick.analysis.advanced.corporate_events import (
    forensic_valuation_analysis, merger_acquisition_analysis, lbo_analysis, ipo_analysis, spinoff_analysis,
    restructuring_analysis, bankruptcy_workout_analysis, forensic_financial_analysis
)
from finclick.analysis.result import Rating
from finclick.core.exceptions import InsufficientDataError

from sample_data import make_statement, make_statements


class TestTransactions(unittest.TestCase):
    def setUp(self):
        # Effective tax 40 / 270, EBITDA 350, market cap 2500
        self.acquirer = make_statement(2023)
        self.target = make_statement(2023, 0.5)

    def test_stock_and_debt_funded_deal(self):
        result = merger_acquisition_analysis(self.acquirer, self.target)
        data = result.data
        # Target market cap 1250 plus a 25% premium
        self.assertEqual(data['purchase_price'], 1562.5)
        self.assertEqual(data['new_shares'], 31.25)
        self.assertEqual(data['new_debt'], 781.25)
        self.assertEqual(data['premium_paid'], 312.5)
        self.assertEqual(data['deal_type'], 'accretive')
        self.assertEqual(data['pro_forma_ownership_pct'], 76.19)
        self.assertEqual(result.evaluation, Rating.WEAK)
        self.assertEqual(len(result.recommendations), 1)

    def test_synergies_cover_premium(self):
        result = merger_acquisition_analysis(self.acquirer, self.target.to_dict(), synergies=100)
        self.assertAlmostEqual(result.data['value_created'], 10.42, places=1)
        self.assertEqual(result.evaluation, Rating.GOOD)
        self.assertEqual(result.recommendations, [])

    def test_lbo_debt_paydown(self):
        result = lbo_analysis(self.acquirer)
        data = result.data
        self.assertEqual(data['entry_ev'], 2800.0)
        self.assertEqual(data['entry_debt'], 1680.0)
        self.assertEqual(data['entry_leverage'], 4.8)
        closing = [row['closing_debt'] for row in data['debt_schedule']]
        self.assertEqual(len(closing), 5)
        self.assertEqual(closing, sorted(closing, reverse=True))
        self.assertGreater(data['moic'], 2.0)
        self.assertTrue(15 < data['irr_pct'] < 20)
        self.assertEqual(len(result.recommendations), 1)

    def test_lbo_needs_positive_ebitda(self):
        with self.assertRaises(InsufficientDataError):
            lbo_analysis(make_statement(2023, revenue=500))

    def test_ipo_dilution(self):
        result = ipo_analysis(self.acquirer, new_shares=25)
        data = result.data
        prices = data['price_range']
        self.assertLessEqual(prices['low'], prices['mid'])
        self.assertLessEqual(prices['mid'], prices['high'])
        self.assertEqual(data['dilution_pct'], 20.0)
        self.assertAlmostEqual(data['proceeds'], 25 * prices['mid'], delta=0.01)
        self.assertAlmostEqual(data['post_money_value'], data['pre_money_value'] + data['proceeds'], delta=0.02)

    def test_spinoff_discount(self):
        result = spinoff_analysis({'retail': {'ebitda': 200, 'multiple': 10},
                                   'logistics': {'ebitda': 100, 'multiple': 6}},
                                  consolidated_value=2000)
        self.assertEqual(result.data['sum_of_parts'], 2600.0)
        self.assertEqual(result.data['segment_share_pct']['retail'], 76.92)
        self.assertEqual(result.data['conglomerate_discount_pct'], 23.08)
        self.assertEqual(len(result.recommendations), 1)

    def test_spinoff_needs_segments(self):
        with self.assertRaises(InsufficientDataError):
            spinoff_analysis({})
        with self.assertRaises(InsufficientDataError):
            spinoff_analysis({'retail': {'ebitda': 200}})


class TestDistress(unittest.TestCase):
    def test_restructuring_for_healthy_company(self):
        result = restructuring_analysis(make_statement(2023))
        data = result.data
        # 150 + 220 - 90 - 100
        self.assertEqual(data['closing_liquidity'], 180.0)
        self.assertEqual(data['minimum_cash'], 62.5)
        self.assertEqual(data['funding_gap'], 0.0)
        self.assertEqual(data['debt_capacity'], 1050.0)
        self.assertEqual(data['recommended_path'], 'operational_turnaround')

    def test_restructuring_overleveraged(self):
        result = restructuring_analysis(make_statement(2023, long_term_debt=2400, cash=20))
        data = result.data
        self.assertEqual(data['funding_gap'], 12.5)
        self.assertEqual(data['excess_debt'], 1450.0)
        self.assertEqual(data['recommended_path'], 'debt_for_equity_swap')
        self.assertEqual(len(result.recommendations), 2)

    def test_workout_prefers_reorganisation(self):
        result = bankruptcy_workout_analysis(make_statement(2023))
        data = result.data
        # 150 + 0.75 * 200 + 0.5 * 250 + 0.4 * 800
        self.assertEqual(data['liquidation_value'], 745.0)
        self.assertEqual(data['going_concern_value'], 1750.0)
        self.assertEqual(data['preferred_strategy'], 'reorganisation')
        self.assertEqual(data['creditor_recovery_pct'], 100.0)
        self.assertIsNone(data['waterfall']['priority']['recovery_pct'])

    def test_workout_waterfall_in_liquidation(self):
        result = bankruptcy_workout_analysis(make_statement(2023, long_term_debt=800), going_concern_multiple=1.0)
        waterfall = result.data['waterfall']
        self.assertEqual(result.data['preferred_strategy'], 'liquidation')
        self.assertEqual(result.data['distributable_value'], 707.75)
        self.assertEqual(waterfall['secured']['recovery_pct'], 88.47)
        self.assertEqual(waterfall['unsecured']['recovery'], 0.0)
        self.assertEqual(waterfall['equity']['recovery'], 0.0)
        self.assertEqual(result.data['creditor_recovery_pct'], 67.4)


class TestForensics(unittest.TestCase):
    def test_claimed_value_outside_range(self):
        statements = make_statements()
        result = forensic_valuation_analysis(statements[-1], statements, claimed_value=1e9, non_recurring=100)
        self.assertEqual(result.data['claim_assessment']['verdict'], 'overstated')
        self.assertEqual(result.evaluation, Rating.WEAK)
        self.assertEqual(len(result.recommendations), 1)

    def test_normalised_earnings(self):
        result = forensic_valuation_analysis(make_statement(2023), non_recurring=100)
        self.assertAlmostEqual(result.data['earnings_adjustment'], 85.19, places=2)
        self.assertAlmostEqual(result.data['normalised_net_income'], 144.81, places=2)
        self.assertIsNone(result.data['claim_assessment'])

    def test_receivable_build_up_is_flagged(self):
        previous = make_statement(2022)
        current = make_statement(2023, 1.1, accounts_receivable=352)
        result = forensic_financial_analysis(current, previous)
        self.assertIn('Receivables growing much faster than revenue', result.data['red_flags'])
        self.assertEqual(result.data['growth_pct']['receivables'], 76.0)
        self.assertLess(result.data['integrity_score'], 100)

    def test_cash_backed_earnings(self):
        result = forensic_financial_analysis(make_statement(2023))
        self.assertNotIn('Operating cash flow lags reported profit', result.data['red_flags'])
        self.assertNotIn('growth_pct', result.data)


if __name__ == '__main__':
    unittest.main()
