# services/recurring_invoice_service.py
"""
Recurring Invoice Service - materializes due occurrences of recurring invoices.

One scan:
1. Query every template with is_recurring=True and next_invoice_date <= today
2. For each template, independently:
   - issue the occurrence today, carrying the template's payment terms
   - insert it as a draft with a fresh invoice number
   - advance the template's next_invoice_date by one interval from today
3. Collect a per-template result into a batch report

Failures never escape a scan. A failed query aborts that scan only; a failed
write affects only its template, which stays due and is retried next scan.

Without the claim guard two overlapping scans can both generate an
occurrence for the same template. With claim_guard=True the advance and the
insert happen in one conditional transaction and the losing scan skips.
"""
import enum
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from models.invoice import InvoiceStatus
from schemas.invoice import InvoiceRecord
from services.invoice_store import (
     ClaimConflictError,
     InvoiceFilter,
     InvoiceStore,
     SqlAlchemyInvoiceStore,
     StoreError,
)
from services.recurrence import (
     compute_next_due_date,
     compute_next_occurrence_date,
     derive_invoice_number,
)

logger = logging.getLogger(__name__)

# Compare-and-swap on the template row before inserting its occurrence
RECURRING_CLAIM_GUARD = os.getenv("RECURRING_CLAIM_GUARD", "false").lower() == "true"


class GenerationOutcome(str, enum.Enum):
     CREATED = "created"
     BUILD_FAILED = "build_failed"
     INSERT_FAILED = "insert_failed"
     ADVANCE_FAILED = "advance_failed"
     SKIPPED_CONFLICT = "skipped_conflict"


@dataclass
class GenerationResult:
     """What happened to one template during a scan."""
     source_invoice_id: int
     outcome: GenerationOutcome
     created_invoice_id: Optional[int] = None
     invoice_number: Optional[str] = None
     issue_date: Optional[date] = None
     due_date: Optional[date] = None
     next_invoice_date: Optional[date] = None
     reason: Optional[str] = None

     @property
     def occurrence_created(self) -> bool:
          return self.created_invoice_id is not None


@dataclass
class RecurrenceBatchReport:
     """Batch report of one scan."""
     run_date: date
     templates_found: int = 0
     results: List[GenerationResult] = field(default_factory=list)
     query_error: Optional[str] = None

     @property
     def created(self) -> List[Dict[str, int]]:
          """Every occurrence that now exists in the store, with its template."""
          return [
               {"created_invoice_id": r.created_invoice_id, "source_invoice_id": r.source_invoice_id}
               for r in self.results
               if r.occurrence_created
          ]

     @property
     def failures(self) -> List[GenerationResult]:
          return [r for r in self.results if r.outcome != GenerationOutcome.CREATED]

     @property
     def succeeded(self) -> bool:
          return self.query_error is None and not self.failures


class RecurringInvoiceService:
     """Service class for recurring invoice generation."""

     def __init__(
          self,
          store: InvoiceStore,
          clock: Callable[[], date] = date.today,
          claim_guard: bool = False,
          suffix_factory: Optional[Callable[[], str]] = None,
     ):
          """
          Args:
               store: Invoice persistence collaborator
               clock: Returns "today" in the deployment's local time zone
               claim_guard: Advance-then-insert atomically (compare-and-swap)
               suffix_factory: Produces invoice number suffixes (default: time + random digits)
          """
          self.store = store
          self.clock = clock
          self.claim_guard = claim_guard
          self.suffix_factory = suffix_factory

     def find_due_templates(self, today: date) -> List[InvoiceRecord]:
          """Recurring templates whose next_invoice_date is on or before `today`."""
          return self.store.query(InvoiceFilter(is_recurring=True, next_invoice_date_lte=today))

     def build_occurrence(self, template: InvoiceRecord, today: date) -> Dict:
          """
          Build the insert payload for the occurrence of `template` issued `today`.

          Only dates, status and invoice number differ from the template;
          amount, client and project are carried over unchanged.
          """
          suffix = self.suffix_factory() if self.suffix_factory else None
          return {
               "user_id": template.user_id,
               "project_id": template.project_id,
               "client_id": template.client_id,
               "invoice_number": derive_invoice_number(template.invoice_number, suffix),
               "status": InvoiceStatus.DRAFT,
               "issue_date": today,
               "due_date": compute_next_due_date(today, template.due_date, template.issue_date),
               "amount": template.amount,
               "paid_amount": Decimal("0"),
               "is_recurring": True,
               "recurring_interval": template.recurring_interval,
               "next_invoice_date": compute_next_occurrence_date(today, template.recurring_interval),
          }

     def scan_and_materialize_due_recurrences(self, today: Optional[date] = None) -> RecurrenceBatchReport:
          """
          Generate one occurrence for every due recurring template.

          Args:
               today: Run date (defaults to the injected clock)

          Returns:
               RecurrenceBatchReport with one GenerationResult per due template
          """
          today = today or self.clock()
          report = RecurrenceBatchReport(run_date=today)

          try:
               templates = self.find_due_templates(today)
          except StoreError as e:
               logger.error("Recurring invoice scan for %s aborted, query failed: %s", today, e)
               report.query_error = str(e)
               return report

          report.templates_found = len(templates)
          logger.info("Recurring invoice scan for %s found %d due template(s)", today, len(templates))

          for template in templates:
               try:
                    result = self._materialize(template, today)
               except Exception as e:
                    logger.exception(
                         "Unexpected error generating recurring invoice: template_id=%s interval=%s",
                         template.id,
                         template.recurring_interval,
                    )
                    result = GenerationResult(
                         source_invoice_id=template.id,
                         outcome=GenerationOutcome.INSERT_FAILED,
                         reason=str(e),
                    )
               report.results.append(result)

          logger.info(
               "Recurring invoice scan for %s finished: %d created, %d failed",
               today,
               len(report.created),
               len(report.failures),
          )
          return report

     def _materialize(self, template: InvoiceRecord, today: date) -> GenerationResult:
          try:
               record = self.build_occurrence(template, today)
          except (ArithmeticError, ValueError) as e:
               self._log_failure("Error computing recurring invoice dates", template, None, e)
               return GenerationResult(
                    source_invoice_id=template.id,
                    outcome=GenerationOutcome.BUILD_FAILED,
                    reason=str(e),
               )
          result = GenerationResult(
               source_invoice_id=template.id,
               outcome=GenerationOutcome.CREATED,
               invoice_number=record["invoice_number"],
               issue_date=record["issue_date"],
               due_date=record["due_date"],
               next_invoice_date=record["next_invoice_date"],
          )

          if self.claim_guard:
               try:
                    created = self.store.insert_and_advance(
                         record,
                         template_id=template.id,
                         expected_next=template.next_invoice_date,
                         new_next=record["next_invoice_date"],
                    )
               except ClaimConflictError as e:
                    logger.info("Skipping recurring invoice %s, already claimed: %s", template.id, e)
                    result.outcome = GenerationOutcome.SKIPPED_CONFLICT
                    result.reason = str(e)
                    return result
               except StoreError as e:
                    self._log_failure("Error creating recurring invoice", template, record, e)
                    result.outcome = GenerationOutcome.INSERT_FAILED
                    result.reason = str(e)
                    return result
               result.created_invoice_id = created.id
          else:
               try:
                    created = self.store.insert(record)
               except StoreError as e:
                    self._log_failure("Error creating recurring invoice", template, record, e)
                    result.outcome = GenerationOutcome.INSERT_FAILED
                    result.reason = str(e)
                    return result
               result.created_invoice_id = created.id

               try:
                    self.store.update(template.id, {"next_invoice_date": record["next_invoice_date"]})
               except StoreError as e:
                    self._log_failure("Error advancing recurring template", template, record, e)
                    result.outcome = GenerationOutcome.ADVANCE_FAILED
                    result.reason = str(e)
                    return result

          logger.info(
               "Created recurring invoice %s (%s) from template %s, next invoice on %s",
               created.id,
               record["invoice_number"],
               template.id,
               record["next_invoice_date"],
          )
          return result

     @staticmethod
     def _log_failure(message: str, template: InvoiceRecord, record: Optional[Dict], error: Exception) -> None:
          # Without a built occurrence, log the template's own dates
          dates = record or {
               "issue_date": template.issue_date,
               "due_date": template.due_date,
               "next_invoice_date": template.next_invoice_date,
          }
          logger.error(
               "%s: template_id=%s interval=%s issue_date=%s due_date=%s next_invoice_date=%s: %s",
               message,
               template.id,
               template.recurring_interval,
               dates["issue_date"],
               dates["due_date"],
               dates["next_invoice_date"],
               error,
          )


def build_recurring_invoice_service(session_factory: Optional[sessionmaker] = None) -> RecurringInvoiceService:
     """Wire the service to the invoices table using environment configuration."""
     if session_factory is None:
          from database import SessionLocal
          session_factory = SessionLocal
     return RecurringInvoiceService(
          SqlAlchemyInvoiceStore(session_factory),
          claim_guard=RECURRING_CLAIM_GUARD,
     )
