# services/__init__.py
from .recurrence import (
     RecurringInterval,
     compute_next_occurrence_date,
     compute_next_due_date,
     days_between,
     derive_invoice_number,
     preview_occurrences,
)
from .invoice_store import (
     InvoiceFilter,
     InvoiceStore,
     SqlAlchemyInvoiceStore,
     StoreError,
     StoreQueryError,
     StoreWriteError,
     DuplicateInvoiceNumberError,
     ClaimConflictError,
)
from .recurring_invoice_service import (
     GenerationOutcome,
     GenerationResult,
     RecurrenceBatchReport,
     RecurringInvoiceService,
     build_recurring_invoice_service,
)
from .recurring_scheduler import RecurringInvoiceScheduler, seconds_until_next_midnight

__all__ = [
     "RecurringInterval",
     "compute_next_occurrence_date",
     "compute_next_due_date",
     "days_between",
     "derive_invoice_number",
     "preview_occurrences",
     "InvoiceFilter",
     "InvoiceStore",
     "SqlAlchemyInvoiceStore",
     "StoreError",
     "StoreQueryError",
     "StoreWriteError",
     "DuplicateInvoiceNumberError",
     "ClaimConflictError",
     "GenerationOutcome",
     "GenerationResult",
     "RecurrenceBatchReport",
     "RecurringInvoiceService",
     "build_recurring_invoice_service",
     "RecurringInvoiceScheduler",
     "seconds_until_next_midnight",
]
