from unittest.mock import MagicMock

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from notification.services.client import Notification, NotificationApi, _parse_content_range


def _response(status=200, body=None, headers=None):
    response = MagicMock()
    response.status_code = status
    response.content = b'[]' if body is not None else b''
    response.json.return_value = body
    response.headers = headers or {}
    return response


class ContentRangeTests(SimpleTestCase):
    def test_parse(self):
        self.assertEqual(_parse_content_range('0-0/57'), 57)
        self.assertEqual(_parse_content_range('*/0'), 0)
        self.assertIsNone(_parse_content_range('0-24/*'))
        self.assertIsNone(_parse_content_range(None))


class NotificationApiTests(SimpleTestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.api = NotificationApi(base_url='https://project.supabase.test/', api_key='anon-key', session=self.session)

    def test_headers(self):
        self.assertEqual(self.session.headers['apikey'], 'anon-key')
        self.assertEqual(self.session.headers['Authorization'], 'Bearer anon-key')

    def test_list_is_scoped_newest_first(self):
        self.session.request.return_value = _response(body=[{'id': 1, 'institution_id': 'inst-1', 'title': 'Stok menipis'}])
        rows = self.api.list('inst-1', limit=50)
        self.assertEqual(rows[0].title, 'Stok menipis')
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('GET', 'https://project.supabase.test/rest/v1/notifications'))
        self.assertEqual(kwargs['params'], {'select': '*', 'institution_id': 'eq.inst-1', 'order': 'created_at.desc', 'limit': 50})

    def test_count_unread_reads_content_range(self):
        self.session.request.return_value = _response(body=[{'id': 1}], headers={'Content-Range': '0-0/7'})
        self.assertEqual(self.api.count_unread('inst-1'), 7)
        kwargs = self.session.request.call_args.kwargs
        self.assertEqual(kwargs['headers'], {'Prefer': 'count=exact'})
        self.assertEqual(kwargs['params']['is_read'], 'eq.false')

    def test_mark_read_is_scoped_to_institution(self):
        self.session.request.return_value = _response(status=204)
        self.api.mark_read('n-1', 'inst-1', read_at='2026-01-05T03:00:00+00:00')
        args, kwargs = self.session.request.call_args
        self.assertEqual(args[0], 'PATCH')
        self.assertEqual(kwargs['params'], {'id': 'eq.n-1', 'institution_id': 'eq.inst-1'})
        self.assertEqual(kwargs['json'], {'is_read': True, 'read_at': '2026-01-05T03:00:00+00:00'})
        self.assertEqual(kwargs['headers'], {'Prefer': 'return=minimal'})

    def test_mark_all_read_only_touches_unread(self):
        self.session.request.return_value = _response(status=204)
        self.api.mark_all_read('inst-1')
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'institution_id': 'eq.inst-1', 'is_read': 'eq.false'})

    def test_changed_since(self):
        self.session.request.return_value = _response(body=[])
        self.api.changed_since({'institution_id': 'eq.inst-1'}, 'read_at', '2026-01-05T03:00:00+00:00')
        params = self.session.request.call_args.kwargs['params']
        self.assertEqual(params['read_at'], 'gt.2026-01-05T03:00:00+00:00')
        self.assertEqual(params['order'], 'read_at.asc')
        self.assertEqual(params['institution_id'], 'eq.inst-1')

    @override_settings(SUPABASE_URL='', SUPABASE_ANON_KEY='')
    def test_missing_configuration(self):
        with self.assertRaises(ImproperlyConfigured):
            NotificationApi()


class NotificationRecordTests(SimpleTestCase):
    def test_mark_read_copies(self):
        notification = Notification.from_api({'id': 5, 'institution_id': 'inst-1', 'title': 'Pickup'})
        read = notification.mark_read('2026-01-05T03:00:00+00:00')
        self.assertFalse(notification.is_read)
        self.assertTrue(read.is_read)
        self.assertEqual(read.as_dict()['read_at'], '2026-01-05T03:00:00+00:00')
