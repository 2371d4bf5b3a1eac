import threading
import unittest
from unittest.mock import MagicMock

from tradefly.services.refresh_scheduler import PeriodicTask, RefreshScheduler


class PeriodicTaskTest(unittest.TestCase):
    def test_ticks_repeatedly_until_stopped(self):
        ticked = threading.Event()
        calls = {"count": 0}

        def action():
            calls["count"] += 1
            if calls["count"] >= 3:
                ticked.set()

        task = PeriodicTask("test-task", 0.01, action)
        task.start()
        try:
            self.assertTrue(ticked.wait(1.0), "task did not tick three times")
            self.assertTrue(task.running)
        finally:
            task.stop()
            task.join(timeout=1.0)

        self.assertFalse(task.running)
        self.assertGreaterEqual(task.ticks, 3)

    def test_stop_wakes_a_sleeping_task_immediately(self):
        action = MagicMock()
        task = PeriodicTask("slow-task", 60.0, action)
        task.start()

        task.stop()
        task.join(timeout=1.0)

        self.assertFalse(task.running)
        action.assert_not_called()

    def test_run_immediately_ticks_before_first_interval(self):
        ran = threading.Event()
        task = PeriodicTask("eager-task", 60.0, ran.set, run_immediately=True)
        task.start()
        try:
            self.assertTrue(ran.wait(1.0))
        finally:
            task.stop()
            task.join(timeout=1.0)

        self.assertEqual(task.ticks, 1)

    def test_failing_action_is_recorded_and_loop_continues(self):
        done = threading.Event()
        calls = {"count": 0}

        def action():
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("provider exploded")
            done.set()

        task = PeriodicTask("flaky-task", 0.01, action)
        with self.assertLogs("tradefly.services.refresh_scheduler", level="ERROR"):
            task.start()
            try:
                self.assertTrue(done.wait(1.0))
            finally:
                task.stop()
                task.join(timeout=1.0)

        self.assertEqual(task.failures, 1)
        self.assertGreaterEqual(task.ticks, 1)
        self.assertIsNone(task.last_error)

    def test_run_once_reports_failure(self):
        task = PeriodicTask("once", 1.0, MagicMock(side_effect=ValueError("bad")))

        with self.assertLogs("tradefly.services.refresh_scheduler", level="ERROR"):
            ok = task.run_once()

        self.assertFalse(ok)
        self.assertEqual(task.status()["last_error"], "bad")
        self.assertEqual(task.status()["failures"], 1)

    def test_start_twice_keeps_single_worker(self):
        task = PeriodicTask("single", 60.0, MagicMock())
        task.start()
        first = task._thread
        task.start()
        try:
            self.assertIs(task._thread, first)
        finally:
            task.stop()
            task.join(timeout=1.0)

    def test_restart_during_in_flight_tick_leaves_one_worker(self):
        entered = threading.Event()
        release = threading.Event()

        def action():
            entered.set()
            release.wait(1.0)

        task = PeriodicTask("restart", 0.01, action)
        task.start()
        try:
            self.assertTrue(entered.wait(1.0), "first tick did not start")
            old_thread = task._thread
            task.stop()
            task.join(timeout=0.05)
            self.assertTrue(old_thread.is_alive())

            task.start()
            new_thread = task._thread
            release.set()
            old_thread.join(timeout=1.0)

            self.assertIsNot(new_thread, old_thread)
            self.assertFalse(old_thread.is_alive())
            self.assertTrue(new_thread.is_alive())
            self.assertTrue(task.running)
        finally:
            release.set()
            task.stop()
            task.join(timeout=1.0)

        self.assertFalse(task.running)

    def test_non_positive_interval_is_rejected(self):
        with self.assertRaises(ValueError):
            PeriodicTask("bad", 0, MagicMock())


class RefreshSchedulerTest(unittest.TestCase):
    def test_tick_refreshes_cached_tickers(self):
        price_service = MagicMock()
        price_service.refresh_cached_tickers.return_value = 2
        scheduler = RefreshScheduler(price_service, interval_sec=5.0)

        self.assertTrue(scheduler.run_once())

        price_service.refresh_cached_tickers.assert_called_once_with()
        self.assertEqual(scheduler.name, "price-refresh")
        self.assertEqual(scheduler.interval_sec, 5.0)


if __name__ == "__main__":
    unittest.main()
