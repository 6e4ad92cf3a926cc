from unittest.mock import MagicMock

from django.test import SimpleTestCase

from blood.services.api import ApiUnexpectedError
from notification.services.client import Notification
from notification.services.feed import (
    EVENT_INSERT,
    EVENT_UNREAD,
    EVENT_UPDATE,
    ChangeFeed,
    NotificationFeed,
    PollingChangeFeed,
    ResourceFilter,
)


def notification(notification_id, *, is_read=False, created_at='2026-01-05T03:00:00+00:00', read_at=None):
    return Notification(
        id=notification_id,
        institution_id='inst-1',
        title=f'Notification {notification_id}',
        is_read=is_read,
        created_at=created_at,
        read_at=read_at,
    )


class FakeChangeFeed(ChangeFeed):
    def __init__(self):
        self.subscriptions = []
        self.unsubscribed = 0

    def subscribe(self, resource_filter, on_insert, on_update, *, since=None):
        self.subscriptions.append((resource_filter, on_insert, on_update, since))

        def unsubscribe():
            self.unsubscribed += 1

        return unsubscribe


class NotificationFeedTests(SimpleTestCase):
    def setUp(self):
        self.api = MagicMock()
        self.api.list.return_value = [
            notification('1', created_at='2026-01-05T01:00:00+00:00'),
            notification('2', is_read=True, created_at='2026-01-05T02:00:00+00:00'),
        ]
        self.events = []
        self.feed = NotificationFeed('inst-1', self.api, limit=50, on_change=lambda event, item: self.events.append(event))

    def test_load_sorts_and_counts_unread(self):
        rows = self.feed.load()
        self.assertEqual([row.id for row in rows], ['2', '1'])
        self.assertEqual(self.feed.unread_count, 1)

    def test_load_caps_to_limit(self):
        self.api.list.return_value = [notification(str(index), created_at=f'2026-01-05T03:00:{index:02d}+00:00') for index in range(5)]
        feed = NotificationFeed('inst-1', self.api, limit=3)
        self.assertEqual([row.id for row in feed.load()], ['4', '3', '2'])

    def test_load_failure(self):
        self.api.list.side_effect = ApiUnexpectedError('Failed to fetch notifications')
        self.assertEqual(self.feed.load(), [])
        self.assertEqual(self.feed.error, 'Failed to fetch notifications')

    def test_insert_prepends_and_counts(self):
        self.feed.load()
        self.feed.handle_insert(notification('3', created_at='2026-01-05T04:00:00+00:00'))
        self.assertEqual(self.feed.notifications[0].id, '3')
        self.assertEqual(self.feed.unread_count, 2)
        self.assertEqual(self.events, [EVENT_INSERT])

    def test_duplicate_insert_ignored(self):
        self.feed.load()
        self.feed.handle_insert(notification('1'))
        self.assertEqual(len(self.feed.notifications), 2)
        self.assertEqual(self.feed.unread_count, 1)
        self.assertEqual(self.events, [])

    def test_read_insert_does_not_count(self):
        self.feed.load()
        self.feed.handle_insert(notification('3', is_read=True))
        self.assertEqual(self.feed.unread_count, 1)

    def test_update_replaces_and_refreshes_count(self):
        self.feed.load()
        self.api.count_unread.return_value = 0
        self.feed.handle_update(notification('1', is_read=True, read_at='2026-01-05T05:00:00+00:00'))
        self.assertTrue(self.feed.notifications[1].is_read)
        self.assertEqual(self.feed.unread_count, 0)
        self.assertEqual(self.events, [EVENT_UPDATE, EVENT_UNREAD])

    def test_mark_as_read_is_optimistic(self):
        self.feed.load()
        self.assertTrue(self.feed.mark_as_read('1'))
        self.assertTrue(self.feed.notifications[1].is_read)
        self.assertEqual(self.feed.unread_count, 0)
        self.api.mark_read.assert_called_once_with('1', 'inst-1')

    def test_mark_as_read_rolls_back(self):
        self.feed.load()
        self.api.mark_read.side_effect = ApiUnexpectedError('Failed to mark notification as read')
        self.assertFalse(self.feed.mark_as_read('1'))
        self.assertFalse(self.feed.notifications[1].is_read)
        self.assertEqual(self.feed.unread_count, 1)
        self.assertEqual(self.feed.error, 'Failed to mark notification as read')

    def test_mark_already_read_skips_call(self):
        self.feed.load()
        self.assertTrue(self.feed.mark_as_read('2'))
        self.api.mark_read.assert_not_called()

    def test_mark_all_rolls_back(self):
        self.feed.load()
        self.api.mark_all_read.side_effect = ApiUnexpectedError('Failed to mark all notifications as read')
        self.assertFalse(self.feed.mark_all_as_read())
        self.assertEqual(self.feed.unread_count, 1)
        self.assertFalse(self.feed.notifications[1].is_read)

    def test_mark_all(self):
        self.feed.load()
        self.assertTrue(self.feed.mark_all_as_read())
        self.assertEqual(self.feed.unread_count, 0)
        self.assertTrue(all(item.is_read for item in self.feed.notifications))

    def test_refresh_failure_keeps_count(self):
        self.feed.load()
        self.api.count_unread.side_effect = ApiUnexpectedError('down')
        self.assertEqual(self.feed.refresh_unread_count(), 1)

    def test_start_subscribes_from_newest_and_stop_unsubscribes(self):
        change_feed = FakeChangeFeed()
        feed = NotificationFeed('inst-1', self.api, change_feed, refresh_interval=60)
        with feed:
            resource_filter, on_insert, on_update, since = change_feed.subscriptions[0]
            self.assertEqual(resource_filter.as_query(), 'institution_id=eq.inst-1')
            self.assertEqual(since, '2026-01-05T02:00:00+00:00')
            on_insert(notification('9'))
            self.assertEqual(feed.unread_count, 2)
        self.assertEqual(change_feed.unsubscribed, 1)
        self.assertIsNone(feed._timer)


class PollingChangeFeedTests(SimpleTestCase):
    def test_poller_advances_cursors(self):
        api = MagicMock()
        batches = {
            'created_at': [[notification('5', created_at='2026-01-05T06:00:00+00:00')], []],
            'read_at': [[notification('4', is_read=True, read_at='2026-01-05T07:00:00+00:00')], []],
        }
        api.changed_since.side_effect = lambda params, column, cursor: batches[column].pop(0)
        inserted, updated = [], []
        poll = PollingChangeFeed(api, interval=1).poller(
            ResourceFilter.for_institution('inst-1'),
            inserted.append,
            updated.append,
            since='2026-01-05T05:00:00+00:00',
        )
        poll()
        poll()
        self.assertEqual([item.id for item in inserted], ['5'])
        self.assertEqual([item.id for item in updated], ['4'])
        calls = api.changed_since.call_args_list
        self.assertEqual(calls[0].args, ({'institution_id': 'eq.inst-1'}, 'created_at', '2026-01-05T05:00:00+00:00'))
        self.assertEqual(calls[2].args[2], '2026-01-05T06:00:00+00:00')
        self.assertEqual(calls[3].args[2], '2026-01-05T07:00:00+00:00')
