from unittest.mock import MagicMock

from django.test import SimpleTestCase

from blood.services.api import ApiNotFound, ApiUnexpectedError, ApiValidationError
from fulfillment.services.records import DonorConfirmation, FulfillmentRequest
from fulfillment.services.store import FulfillmentStore

FULFILLMENT = FulfillmentRequest(
    id='f-1', blood_request_id='r-1', pmi_id='inst-1', blood_type='A+', quantity_needed=2, quantity_collected=1, status='in_progress',
)


class FulfillmentStoreTests(SimpleTestCase):
    def setUp(self):
        self.api = MagicMock()
        self.store = FulfillmentStore(self.api)

    def test_fetch_failure_sets_error(self):
        self.api.get_all.side_effect = ApiUnexpectedError('Failed to fetch fulfillments')
        self.assertEqual(self.store.fetch_fulfillments(status='in_progress'), [])
        self.assertEqual(self.store.error, 'Failed to fetch fulfillments')
        self.assertFalse(self.store.loading)

    def test_load_detail_and_progress(self):
        self.api.get_by_id.return_value = FULFILLMENT
        self.api.get_confirmations.return_value = [DonorConfirmation(id='c1', status='confirmed'), DonorConfirmation(id='c2', status='pending')]
        self.assertIs(self.store.load_detail('f-1'), FULFILLMENT)
        self.assertIsNone(self.store.error)
        self.assertEqual(self.store.progress.response_rate, 50)
        self.assertEqual(self.store.progress.quantity_progress, 50)

    def test_load_detail_missing(self):
        self.api.get_by_id.side_effect = ApiNotFound('Fulfillment not found')
        self.assertIsNone(self.store.load_detail('f-9'))
        self.assertEqual(self.store.error, 'Fulfillment not found')
        self.api.get_confirmations.assert_not_called()
        self.assertEqual(self.store.progress.total_notified, 0)

    def test_create_prepends(self):
        self.store.fulfillments = [FULFILLMENT]
        created = FulfillmentRequest(id='f-2', blood_request_id='r-2', pmi_id='inst-1', blood_type='B+', quantity_needed=1)
        self.api.create.return_value = created
        self.store.create({'blood_request_id': 'r-2'})
        self.assertEqual([item.id for item in self.store.fulfillments], ['f-2', 'f-1'])

    def test_cancel_validation_error_is_recorded(self):
        self.api.cancel.side_effect = ValueError('A cancellation reason is required.')
        self.assertFalse(self.store.cancel(FULFILLMENT, ''))
        self.assertEqual(self.store.error, 'A cancellation reason is required.')

    def test_cancel_refetches(self):
        self.api.get_by_id.return_value = FULFILLMENT
        self.assertTrue(self.store.cancel(FULFILLMENT, 'Patient discharged'))
        self.api.get_by_id.assert_called_once_with('f-1')

    def test_verify_code_reraises(self):
        self.api.verify_code.side_effect = ApiValidationError('Code expired')
        with self.assertRaises(ApiValidationError):
            self.store.verify_code('DN2601051473', 'inst-1')

    def test_complete_donation_refreshes_confirmations(self):
        self.store.current = FULFILLMENT
        self.api.get_confirmations.return_value = [DonorConfirmation(id='c1', status='completed')]
        self.store.complete_donation(confirmation_id='c1', pmi_id='inst-1')
        self.assertEqual(self.store.progress.completed_count, 1)
