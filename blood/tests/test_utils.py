import queue
import threading
from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings

from blood.utils import formatters
from blood.utils.numbers import percent, round_half_up
from blood.utils.pagination import paginate
from blood.utils.sse import event_stream
from blood.utils.timers import RepeatingTimer


@override_settings(TIME_ZONE='UTC')
class FormatterTests(SimpleTestCase):
    def test_format_date(self):
        self.assertEqual(formatters.format_date('2026-01-05T03:00:00Z'), '5 Jan 2026')
        self.assertEqual(formatters.format_date(None), '-')

    def test_format_date_to_api(self):
        self.assertEqual(formatters.format_date_to_api('2026-01-05T09:07:00Z'), '5-1-2026 9:07')

    def test_pad_id(self):
        self.assertEqual(formatters.pad_id(7), '00007')

    def test_relative_time(self):
        now = datetime(2026, 1, 5, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(formatters.relative_time('2026-01-05T11:58:00Z', now=now), '2 min ago')
        self.assertEqual(formatters.relative_time(now - timedelta(hours=3), now=now), '3 h ago')


class NumberTests(SimpleTestCase):
    def test_half_rounds_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(33.333), 33)

    def test_percent_zero_denominator(self):
        self.assertEqual(percent(5, 0), 0)
        self.assertEqual(percent(1, 3), 33)
        self.assertEqual(percent(2, 3), 67)


class PaginationTests(SimpleTestCase):
    def test_slices_and_clamps(self):
        rows = list(range(23))
        page = paginate(rows, 3, per_page=10)
        self.assertEqual(page.items, [20, 21, 22])
        self.assertEqual(page.total_pages, 3)
        self.assertFalse(page.has_next)
        self.assertEqual(paginate(rows, 99, per_page=10).number, 3)
        self.assertEqual(paginate(rows, 'abc', per_page=10).number, 1)

    def test_empty_list_has_one_page(self):
        page = paginate([], 1)
        self.assertEqual(page.total_pages, 1)
        self.assertEqual(page.items, [])


class RepeatingTimerTests(SimpleTestCase):
    def test_runs_until_cancelled(self):
        ticked = threading.Event()
        calls = []

        def tick():
            calls.append(1)
            ticked.set()

        timer = RepeatingTimer(0.01, tick).start()
        self.assertTrue(ticked.wait(2))
        timer.cancel()
        timer.join(2)
        self.assertFalse(timer.is_running)
        count = len(calls)
        threading.Event().wait(0.05)
        self.assertEqual(len(calls), count)

    def test_errors_do_not_stop_the_loop(self):
        calls = []
        done = threading.Event()

        def tick():
            calls.append(1)
            if len(calls) >= 2:
                done.set()
            raise RuntimeError('boom')

        timer = RepeatingTimer(0.01, tick).start()
        with self.assertLogs('blood.utils.timers', level='ERROR'):
            self.assertTrue(done.wait(2))
        timer.cancel()

    def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            RepeatingTimer(0, lambda: None)


class EventStreamTests(SimpleTestCase):
    def test_close_before_reading_runs_close_hook(self):
        closed = []
        stream = event_stream(queue.Queue(), heartbeat=1, on_close=lambda: closed.append(1))
        stream.close()
        self.assertEqual(closed, [1])

    def test_close_hook_runs_once_after_sentinel(self):
        closed = []
        events = queue.Queue()
        events.put(('unread', {'unread_count': 2}))
        events.put(None)
        stream = event_stream(events, heartbeat=1, on_close=lambda: closed.append(1), initial=[('hello', {})])
        chunks = list(stream)
        stream.close()
        self.assertEqual(len(chunks), 2)
        self.assertTrue(chunks[0].startswith('event: hello\n'))
        self.assertIn('"unread_count": 2', chunks[1])
        self.assertEqual(closed, [1])
