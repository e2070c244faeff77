# schemas/__init__.py
from .invoice import (
     InvoiceStatusEnum,
     InvoiceRecord,
     RecurringTemplateListResponse,
     ScheduledOccurrence,
     RecurrenceScheduleResponse,
     GenerationResultResponse,
     RecurrenceRunResponse,
     SchedulerStatusResponse,
)

__all__ = [
     "InvoiceStatusEnum",
     "InvoiceRecord",
     "RecurringTemplateListResponse",
     "ScheduledOccurrence",
     "RecurrenceScheduleResponse",
     "GenerationResultResponse",
     "RecurrenceRunResponse",
     "SchedulerStatusResponse",
]
