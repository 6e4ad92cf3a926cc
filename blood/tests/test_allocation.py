from django.test import SimpleTestCase

from blood.services.allocation import (
    CAMPAIGN_NEEDED,
    PICKUP_READY,
    AllocationBatch,
    AllocationSnapshot,
    AllocationSummary,
    FreeStockBatch,
    PickupPlan,
    QuantityExceedsAvailable,
    classify_request,
    plan_pickup,
)


def allocation(allocation_id, allocated, picked_up=0):
    return AllocationBatch(allocation_id=allocation_id, quantity_allocated=allocated, quantity_picked_up=picked_up, batch_number=f'B-{allocation_id}')


def free(stock_id, quantity):
    return FreeStockBatch(stock_id=stock_id, quantity=quantity, batch_number=f'F-{stock_id}')


class PickupPlanTests(SimpleTestCase):
    def test_exact_match_uses_only_allocations(self):
        plan = plan_pickup(5, [allocation('a1', 3), allocation('a2', 4, picked_up=2)], [free('s1', 10)])
        self.assertEqual(plan.allocation_quantities, {'a1': 3, 'a2': 2})
        self.assertEqual(plan.free_stock_quantities, {'s1': 0})
        self.assertEqual(plan.total_selected, 5)

    def test_shortfall_is_topped_up_from_free_stock_in_order(self):
        plan = plan_pickup(10, [allocation('a1', 3)], [free('s1', 4), free('s2', 6)])
        self.assertEqual(plan.allocation_quantities['a1'], 3)
        self.assertEqual(plan.free_stock_quantities, {'s1': 4, 's2': 3})
        self.assertEqual(plan.total_from_free_stock, 7)
        self.assertEqual(plan.total_selected, 10)

    def test_free_stock_only(self):
        plan = plan_pickup(4, [], [free('s1', 3), free('s2', 3)])
        self.assertEqual(plan.free_stock_quantities, {'s1': 3, 's2': 1})
        self.assertTrue(plan.can_submit('2026-11-01', '09:00'))

    def test_more_pending_than_needed_fills_allocations_greedily(self):
        plan = plan_pickup(4, [allocation('a1', 3), allocation('a2', 3)], [free('s1', 5)])
        self.assertEqual(plan.allocation_quantities, {'a1': 3, 'a2': 1})
        self.assertEqual(plan.total_from_free_stock, 0)

    def test_insufficient_supply_stays_at_zero(self):
        plan = plan_pickup(10, [allocation('a1', 2)], [free('s1', 3)])
        self.assertFalse(plan.is_sufficient)
        self.assertEqual(plan.shortage, 5)
        self.assertEqual(plan.total_selected, 0)
        self.assertFalse(plan.can_submit('2026-11-01', '09:00'))

    def test_submit_needs_date_and_time(self):
        plan = plan_pickup(3, [allocation('a1', 3)])
        self.assertFalse(plan.can_submit(None, '09:00'))
        self.assertFalse(plan.can_submit('2026-11-01', ''))
        self.assertTrue(plan.can_submit('2026-11-01', '09:00'))

    def test_manual_override_above_ceiling_rejected(self):
        plan = plan_pickup(10, [allocation('a1', 3)], [free('s1', 4), free('s2', 6)])
        with self.assertRaises(QuantityExceedsAvailable):
            plan.set_free_stock_quantity('s1', 5)
        with self.assertRaises(QuantityExceedsAvailable):
            plan.set_allocation_quantity('a1', -1)
        self.assertEqual(plan.free_stock_quantities['s1'], 4)

    def test_manual_override_within_ceiling_is_kept(self):
        plan = plan_pickup(10, [allocation('a1', 3)], [free('s1', 4), free('s2', 6)])
        plan.set_free_stock_quantity('s1', 1)
        plan.set_free_stock_quantity('s2', 6)
        self.assertEqual(plan.total_selected, 10)
        self.assertEqual(plan.free_stock_quantities, {'s1': 1, 's2': 6})

    def test_manual_edit_below_need_blocks_submit(self):
        plan = plan_pickup(10, [allocation('a1', 3)], [free('s1', 4), free('s2', 6)])
        plan.set_free_stock_quantity('s2', 0)
        self.assertFalse(plan.can_submit('2026-11-01', '09:00'))

    def test_payload_omits_zero_rows(self):
        plan = plan_pickup(5, [allocation('a1', 5)], [free('s1', 4)])
        payload = plan.to_payload('2026-11-01', '09:30', notes='Cold box')
        self.assertEqual(payload, {
            'pickupDate': '2026-11-01',
            'pickupTime': '09:30',
            'allocations': [{'allocation_id': 'a1', 'quantity_picked_up': 5}],
            'free_stock': [],
            'notes': 'Cold box',
        })

    def test_negative_need_rejected(self):
        with self.assertRaises(ValueError):
            PickupPlan(-1)


class AllocationParsingTests(SimpleTestCase):
    def test_pending_derived_from_allocated_and_picked_up(self):
        batch = AllocationBatch.from_api({'allocation_id': 7, 'quantity_allocated': 5, 'quantity_picked_up': 5, 'status': 'picked_up'})
        self.assertEqual(batch.quantity_pending, 0)
        self.assertTrue(batch.is_picked_up)

    def test_snapshot_from_payload(self):
        snapshot = AllocationSnapshot.from_api({
            'allocations': [{'allocation_id': 'a1', 'quantity_allocated': 2}],
            'free_stock': [{'stock_id': 's1', 'quantity': 4, 'source': 'free_stock'}],
            'summary': {'total_available': 6, 'total_needed': 5, 'can_complete_pickup': True},
        })
        self.assertEqual(snapshot.allocations[0].quantity_pending, 2)
        self.assertEqual(snapshot.free_stock[0].quantity, 4)
        self.assertEqual(snapshot.summary.total_available, 6)


class ClassifyRequestTests(SimpleTestCase):
    def test_uses_server_total_available(self):
        self.assertEqual(classify_request(5, AllocationSummary(total_available=5)), PICKUP_READY)
        self.assertEqual(classify_request(6, AllocationSummary(total_available=5)), CAMPAIGN_NEEDED)

    def test_missing_summary_needs_campaign(self):
        self.assertEqual(classify_request(1, None), CAMPAIGN_NEEDED)
