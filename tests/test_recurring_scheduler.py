import threading
from datetime import datetime, timedelta, timezone

from services.recurring_scheduler import RecurringInvoiceScheduler, seconds_until_next_midnight

JUST_BEFORE_MIDNIGHT = datetime(2024, 1, 31, 23, 59, 59, 950000)
JUST_AFTER_MIDNIGHT = datetime(2024, 2, 1, 0, 0, 1)


def _counting_job(calls_needed, fail=False):
     calls = []
     done = threading.Event()

     def job():
          calls.append(1)
          if len(calls) >= calls_needed:
               done.set()
          if fail:
               raise RuntimeError("store unavailable")
          return len(calls)

     return job, calls, done


def test_seconds_until_next_midnight():
     assert seconds_until_next_midnight(datetime(2024, 2, 1, 23, 0)) == 3600
     assert seconds_until_next_midnight(datetime(2024, 2, 1, 0, 0)) == 86400
     aware = datetime(2024, 12, 31, 18, 30, tzinfo=timezone(timedelta(hours=-5)))
     assert seconds_until_next_midnight(aware) == 5.5 * 3600


def test_runs_on_start_then_waits_for_midnight():
     job, calls, done = _counting_job(1)
     scheduler = RecurringInvoiceScheduler(job, now=lambda: JUST_AFTER_MIDNIGHT)

     scheduler.start()
     try:
          assert done.wait(5)
          assert scheduler.is_running
     finally:
          scheduler.stop()

     assert len(calls) == 1
     assert scheduler.run_count == 1
     assert scheduler.last_run_at == JUST_AFTER_MIDNIGHT
     assert not scheduler.is_running


def test_runs_at_midnight_then_every_interval():
     job, calls, done = _counting_job(3)
     scheduler = RecurringInvoiceScheduler(
          job,
          now=lambda: JUST_BEFORE_MIDNIGHT,
          interval=timedelta(milliseconds=20),
          run_on_start=False,
     )

     scheduler.start()
     try:
          assert done.wait(5)
     finally:
          scheduler.stop()

     assert len(calls) >= 3


def test_job_failures_do_not_stop_the_scheduler():
     job, calls, done = _counting_job(3, fail=True)
     scheduler = RecurringInvoiceScheduler(
          job,
          now=lambda: JUST_BEFORE_MIDNIGHT,
          interval=timedelta(milliseconds=20),
     )

     scheduler.start()
     try:
          assert done.wait(5)
     finally:
          scheduler.stop()

     assert len(calls) >= 3
     assert scheduler.last_error == "store unavailable"


def test_run_once_returns_job_result_and_clears_error():
     results = iter([RuntimeError("boom"), "report"])

     def job():
          value = next(results)
          if isinstance(value, Exception):
               raise value
          return value

     scheduler = RecurringInvoiceScheduler(job, now=lambda: JUST_AFTER_MIDNIGHT)

     assert scheduler.run_once() is None
     assert scheduler.last_error == "boom"
     assert scheduler.run_once() == "report"
     assert scheduler.last_error is None
     assert scheduler.run_count == 2


def test_start_twice_and_stop_when_stopped_are_noops():
     job, calls, done = _counting_job(1)
     scheduler = RecurringInvoiceScheduler(job, now=lambda: JUST_AFTER_MIDNIGHT)

     scheduler.stop()
     scheduler.start()
     first_thread = scheduler._thread
     scheduler.start()
     try:
          assert scheduler._thread is first_thread
          assert done.wait(5)
     finally:
          scheduler.stop()
     scheduler.stop()

     assert len(calls) == 1


def test_restart_after_timed_out_stop_leaves_one_loop():
     release = threading.Event()
     first_call = threading.Event()
     calls_by_thread = {}
     new_thread_done = threading.Event()

     def job():
          current = threading.current_thread()
          calls_by_thread[current] = calls_by_thread.get(current, 0) + 1
          if not first_call.is_set():
               first_call.set()
               release.wait(5)
          elif calls_by_thread[current] >= 3:
               new_thread_done.set()

     scheduler = RecurringInvoiceScheduler(
          job,
          now=lambda: JUST_BEFORE_MIDNIGHT,
          interval=timedelta(milliseconds=20),
     )

     scheduler.start()
     assert first_call.wait(5)
     old_thread = scheduler._thread

     # The old thread is stuck in its first run when stop gives up on it
     scheduler.stop(timeout=0.05)
     assert old_thread.is_alive()

     scheduler.start()
     try:
          assert scheduler._thread is not old_thread
          assert new_thread_done.wait(5)
          release.set()
          old_thread.join(5)
          assert not old_thread.is_alive()
     finally:
          release.set()
          scheduler.stop()

     assert calls_by_thread[old_thread] == 1
