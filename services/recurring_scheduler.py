# services/recurring_scheduler.py
"""
Daily trigger for the recurring invoice scan.

Runs the job once when started, waits until the next local midnight, then
runs it every `interval` (24 hours by default). It is a best-effort timer:
time lost to process suspension is not made up, the next wake simply runs
late. The scan query uses next_invoice_date <= today, so late runs still
pick up everything that became due.
"""
import logging
import threading
from datetime import datetime, time, timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(hours=24)


def seconds_until_next_midnight(now: datetime) -> float:
     """Seconds from `now` to the start of the following day (same tzinfo)."""
     tomorrow = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
     return (tomorrow - now).total_seconds()


class RecurringInvoiceScheduler:
     """
     Owned scheduler with an explicit start/stop lifecycle.

     The job runs on a daemon thread. Exceptions raised by the job are
     logged and recorded in `last_error`; they never stop the scheduler.
     """

     def __init__(
          self,
          job: Callable[[], object],
          now: Callable[[], datetime] = datetime.now,
          interval: timedelta = DEFAULT_INTERVAL,
          run_on_start: bool = True,
     ):
          self.job = job
          self.now = now
          self.interval = interval
          self.run_on_start = run_on_start

          self.run_count = 0
          self.last_run_at: Optional[datetime] = None
          self.last_error: Optional[str] = None

          self._stop_event: Optional[threading.Event] = None
          self._thread: Optional[threading.Thread] = None
          self._lock = threading.Lock()

     @property
     def is_running(self) -> bool:
          return self._thread is not None and self._thread.is_alive()

     def start(self) -> None:
          with self._lock:
               if self.is_running:
                    logger.debug("Recurring invoice scheduler already running")
                    return
               # Each thread owns its event so a late-exiting thread never sees a new start
               self._stop_event = threading.Event()
               self._thread = threading.Thread(
                    target=self._run,
                    args=(self._stop_event,),
                    name="recurring-invoice-scheduler",
                    daemon=True,
               )
               self._thread.start()
          logger.info("Recurring invoice scheduler started")

     def stop(self, timeout: Optional[float] = 5.0) -> None:
          with self._lock:
               thread = self._thread
               if thread is None:
                    return
               self._stop_event.set()
               thread.join(timeout)
               if thread.is_alive():
                    logger.warning("Recurring invoice scheduler thread still finishing a run after %ss", timeout)
               self._thread = None
               self._stop_event = None
          logger.info("Recurring invoice scheduler stopped")

     def run_once(self) -> object:
          """Run the job now; returns its result, or None if it raised."""
          self.last_run_at = self.now()
          self.run_count += 1
          try:
               result = self.job()
          except Exception as e:
               logger.exception("Error in recurring invoice generation")
               self.last_error = str(e)
               return None
          self.last_error = None
          return result

     def _run(self, stop_event: threading.Event) -> None:
          if self.run_on_start:
               self.run_once()

          # Align the first scheduled run with local midnight
          delay = seconds_until_next_midnight(self.now())
          logger.debug("Next recurring invoice scan in %.0f seconds", delay)
          while not stop_event.wait(delay):
               self.run_once()
               delay = self.interval.total_seconds()
