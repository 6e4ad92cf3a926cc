import threading
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from blood.services.api import ApiUnexpectedError, ApiValidationError, Page, Pagination
from fulfillment.services.client import FulfillmentApi
from fulfillment.services.codes import InvalidDonorCode
from fulfillment.services.records import FulfillmentRequest

FULFILLMENT = {
    'id': 'f-1',
    'blood_request_id': 'r-1',
    'pmi_id': 'inst-1',
    'blood_type': 'A+',
    'quantity_needed': 4,
    'quantity_collected': 1,
    'status': 'in_progress',
    'campaign_id': 'c-1',
}


class FulfillmentApiTests(SimpleTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.api = FulfillmentApi(self.client)

    def test_search_and_create_returns_id(self):
        self.client.post.return_value = {'success': True, 'fulfillment_id': 77}
        with self.settings(FULFILLMENT_DEFAULT_SEARCH_RADIUS_KM=20, FULFILLMENT_DEFAULT_TARGET_DONORS=50):
            fulfillment_id = self.api.search_and_create(
                blood_request_id='r-1', pmi_id='inst-1', patient_name='Budi', blood_type='O+', quantity_needed='3',
            )
        self.assertEqual(fulfillment_id, '77')
        payload = self.client.post.call_args[0][1]
        self.assertEqual(payload['quantity_needed'], 3)
        self.assertEqual(payload['search_radius_km'], 20)
        self.assertEqual(payload['target_donors'], 50)
        self.assertEqual(payload['urgency_level'], 'medium')

    def test_search_and_create_without_id_fails(self):
        self.client.post.return_value = {'success': True, 'data': {}}
        with self.assertRaises(ApiValidationError):
            self.api.search_and_create(blood_request_id='r-1', pmi_id='inst-1', patient_name='Budi', blood_type='O+', quantity_needed=3)

    def test_get_all_maps_records(self):
        self.client.get_page.return_value = Page(items=[FULFILLMENT], pagination=Pagination(total_items=1))
        items, pagination = self.api.get_all(status='in_progress', pmi_id='inst-1')
        self.assertEqual(items[0].id, 'f-1')
        self.assertEqual(pagination.total_items, 1)
        params = self.client.get_page.call_args.kwargs['params']
        self.assertEqual(params['status'], 'in_progress')

    def test_cancel_requires_reason(self):
        with self.assertRaises(ValueError):
            self.api.cancel(FulfillmentRequest.from_api(FULFILLMENT), ' ')
        self.client.patch.assert_not_called()

    def test_cancel_refuses_terminal(self):
        with self.assertRaises(ValueError):
            self.api.cancel(FulfillmentRequest.from_api({**FULFILLMENT, 'status': 'fulfilled'}), 'No longer needed')

    def test_cancel_patches_status(self):
        self.api.cancel(FulfillmentRequest.from_api(FULFILLMENT), 'Patient transferred')
        self.client.patch.assert_called_once_with(
            '/fulfillment/f-1/status',
            {'status': 'cancelled', 'cancellation_reason': 'Patient transferred'},
            fallback_message='Failed to cancel fulfillment',
        )

    def test_update_notes_patches_status(self):
        self.api.update_notes('f-1', 'Bring donor card')
        self.client.patch.assert_called_once_with(
            '/fulfillment/f-1/status',
            {'notes': 'Bring donor card'},
            fallback_message='Failed to update notes',
        )

    def test_search_donors_reads_either_envelope(self):
        self.client.get.return_value = {'eligible_donors': [{'donor_id': 'd1', 'full_name': 'Siti', 'final_score': 88}]}
        self.assertEqual(self.api.search_donors('f-1')[0].final_score, 88.0)
        self.client.get.return_value = {'data': {'eligible_donors': [{'donor_id': 'd2', 'full_name': 'Budi'}]}}
        self.assertEqual(self.api.search_donors('f-1')[0].donor_id, 'd2')

    def test_send_notifications(self):
        self.client.post.return_value = {'success': True, 'data': {'notified_count': 3}}
        self.assertEqual(self.api.send_notifications('c-1', 'f-1', 3), 3)
        with self.assertRaises(ValueError):
            self.api.send_notifications('c-1', 'f-1', 0)

    def test_verify_code_rejects_bad_format_before_calling(self):
        with self.assertRaises(InvalidDonorCode):
            self.api.verify_code('AB12CD34', 'inst-1')
        self.client.request.assert_not_called()

    def test_verify_code(self):
        self.client.request.return_value = {'success': True, 'data': {'confirmation': {'id': 'conf-1'}}}
        data = self.api.verify_code('dn2601051473', 'inst-1')
        self.assertEqual(data['confirmation']['id'], 'conf-1')
        self.assertEqual(self.client.request.call_args.kwargs['json'], {'unique_code': 'DN2601051473', 'pmi_id': 'inst-1'})

    def test_complete_donation_payload(self):
        self.api.complete_donation(confirmation_id='conf-1', pmi_id='inst-1', quantity=1, health_screening={'hemoglobin': 13.5})
        payload = self.client.mutate.call_args[0][2]
        self.assertEqual(payload['health_screening'], {'hemoglobin': 13.5})
        self.assertEqual(payload['quantity'], 1)

    def test_subscribe_fulfillment_polls_until_unsubscribed(self):
        self.client.get_data.return_value = FULFILLMENT
        received = threading.Event()
        snapshots = []

        def on_snapshot(fulfillment):
            snapshots.append(fulfillment)
            received.set()

        unsubscribe = self.api.subscribe_fulfillment('f-1', on_snapshot, interval=0.01)
        self.assertTrue(received.wait(2))
        unsubscribe()
        self.assertEqual(snapshots[0].status, 'in_progress')

    def test_subscribe_survives_errors(self):
        calls = []
        done = threading.Event()

        def get_page(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise ApiUnexpectedError('down')
            done.set()
            return Page(items=[FULFILLMENT])

        self.client.get_page.side_effect = get_page
        callback = MagicMock()
        unsubscribe = self.api.subscribe_fulfillments(callback, interval=0.01)
        self.assertTrue(done.wait(2))
        unsubscribe()
        self.assertGreaterEqual(len(calls), 2)
