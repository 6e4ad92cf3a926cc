from unittest.mock import MagicMock

from django.test import SimpleTestCase

from blood.services import stock
from blood.services.api import MutationResult


class StockHelpersTests(SimpleTestCase):
    def test_complete_stocks_fills_missing_types(self):
        rows = stock.complete_stocks([{'blood_type': 'O+', 'quantity': 12}, {'blood_type': 'O+', 'quantity': 3}, {'blood_type': 'XX', 'quantity': 9}])
        self.assertEqual([row['blood_type'] for row in rows], ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'])
        by_type = {row['blood_type']: row for row in rows}
        self.assertEqual(by_type['O+']['quantity'], 15)
        self.assertEqual(by_type['O+']['level'], 'medium')
        self.assertEqual(by_type['A-']['quantity'], 0)
        self.assertEqual(by_type['A-']['level'], 'empty')

    def test_stock_levels(self):
        self.assertEqual(stock.stock_level(0), 'empty')
        self.assertEqual(stock.stock_level(9), 'low')
        self.assertEqual(stock.stock_level(19), 'medium')
        self.assertEqual(stock.stock_level(20), 'healthy')

    def test_reduce_beyond_current_rejected(self):
        with self.assertRaises(stock.StockAdjustmentError):
            stock.validate_adjustment(4, stock.CHANGE_REDUCE, 5)

    def test_zero_amount_rejected(self):
        with self.assertRaises(stock.StockAdjustmentError):
            stock.validate_adjustment(4, stock.CHANGE_ADD, 0)

    def test_adjust_posts_payload(self):
        client = MagicMock()
        client.mutate.return_value = MutationResult(True, 'ok')
        stock.adjust_stock(client, 'inst-1', blood_type='A+', change_type='add', quantity='3', current=0, notes='Donation drive')
        client.mutate.assert_called_once_with(
            'POST',
            '/blood-stock/adjust',
            {'institution_id': 'inst-1', 'blood_type': 'A+', 'change_type': 'add', 'quantity_change': 3, 'notes': 'Donation drive'},
            fallback_message='Failed to adjust stock.',
        )

    def test_adjust_never_calls_api_when_invalid(self):
        client = MagicMock()
        with self.assertRaises(stock.StockAdjustmentError):
            stock.adjust_stock(client, 'inst-1', blood_type='A+', change_type='reduce', quantity=2, current=1)
        client.mutate.assert_not_called()

    def test_history_stats_mapping(self):
        client = MagicMock()
        client.get_data.return_value = {'totalAdded': 10, 'totalUsed': 4, 'totalExpired': 1, 'byBloodType': {'A+': 3}}
        stats = stock.stock_history_stats(client, 'inst-1')
        self.assertEqual(stats, {'total_added': 10, 'total_used': 4, 'total_expired': 1, 'by_blood_type': {'A+': 3}})
