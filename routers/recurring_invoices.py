# routers/recurring_invoices.py
"""
Recurring invoice API routes.

Exposes the recurring invoice templates, a schedule preview per template,
a manual trigger for the daily generation scan, and the scheduler status.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from database import get_session
from models import Invoice
from schemas.invoice import (
     InvoiceRecord,
     RecurringTemplateListResponse,
     ScheduledOccurrence,
     RecurrenceScheduleResponse,
     GenerationResultResponse,
     RecurrenceRunResponse,
     SchedulerStatusResponse,
)
from services.invoice_store import StoreQueryError
from services.recurrence import days_between, preview_occurrences, resolve_interval
from services.recurring_invoice_service import (
     RecurrenceBatchReport,
     RecurringInvoiceService,
     build_recurring_invoice_service,
)

router = APIRouter(prefix="/api/recurring-invoices", tags=["recurring-invoices"])


def get_recurring_invoice_service() -> RecurringInvoiceService:
     """FastAPI dependency providing the recurring invoice service."""
     return build_recurring_invoice_service()


def _build_run_response(report: RecurrenceBatchReport) -> RecurrenceRunResponse:
     return RecurrenceRunResponse(
          run_date=report.run_date,
          templates_found=report.templates_found,
          created_count=len(report.created),
          failed_count=len(report.failures),
          query_error=report.query_error,
          results=[
               GenerationResultResponse(
                    source_invoice_id=r.source_invoice_id,
                    outcome=r.outcome.value,
                    created_invoice_id=r.created_invoice_id,
                    invoice_number=r.invoice_number,
                    issue_date=r.issue_date,
                    due_date=r.due_date,
                    next_invoice_date=r.next_invoice_date,
                    reason=r.reason,
               )
               for r in report.results
          ],
     )


@router.get(
     "",
     response_model=RecurringTemplateListResponse,
     summary="List recurring invoice templates"
)
def list_recurring_invoices(
     page: int = Query(1, ge=1, description="Page number"),
     page_size: int = Query(50, ge=1, le=100, description="Items per page"),
     db: Session = Depends(get_session),
):
     """
     Retrieve a paginated list of invoices flagged as recurring,
     ordered by the date their next occurrence is due.
     """
     query = db.query(Invoice).filter(Invoice.is_recurring == True)

     total = query.count()
     offset = (page - 1) * page_size
     invoices = query.order_by(Invoice.next_invoice_date, Invoice.id).offset(offset).limit(page_size).all()

     return RecurringTemplateListResponse(
          invoices=[InvoiceRecord.model_validate(inv) for inv in invoices],
          total=total,
          page=page,
          page_size=page_size
     )


@router.get(
     "/due",
     response_model=RecurringTemplateListResponse,
     summary="List recurring templates due for generation"
)
def list_due_recurring_invoices(
     as_of: Optional[date] = Query(None, description="Reference date (defaults to today)"),
     service: RecurringInvoiceService = Depends(get_recurring_invoice_service),
):
     """
     Templates the next scan would materialize: is_recurring and
     next_invoice_date on or before `as_of`.
     """
     try:
          invoices = service.find_due_templates(as_of or date.today())
     except StoreQueryError as e:
          raise HTTPException(
               status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
               detail=f"Could not load due recurring invoices: {e}"
          )
     return RecurringTemplateListResponse(
          invoices=invoices,
          total=len(invoices),
          page=1,
          page_size=len(invoices),
     )


@router.get(
     "/scheduler",
     response_model=SchedulerStatusResponse,
     summary="Recurring invoice scheduler status"
)
def get_scheduler_status(request: Request):
     """Report whether the daily recurring invoice scheduler is running."""
     scheduler = getattr(request.app.state, "recurring_scheduler", None)
     if scheduler is None:
          return SchedulerStatusResponse(enabled=False, running=False)
     return SchedulerStatusResponse(
          enabled=True,
          running=scheduler.is_running,
          run_count=scheduler.run_count,
          last_run_at=scheduler.last_run_at,
          last_error=scheduler.last_error,
     )


@router.post(
     "/run",
     response_model=RecurrenceRunResponse,
     summary="Generate due recurring invoices now"
)
def run_recurring_invoices(
     as_of: Optional[date] = Query(None, description="Run date (defaults to today)"),
     service: RecurringInvoiceService = Depends(get_recurring_invoice_service),
):
     """
     Run the generation scan immediately instead of waiting for midnight.

     Per-template failures are reported in the response; they do not
     fail the request.
     """
     report = service.scan_and_materialize_due_recurrences(as_of)
     return _build_run_response(report)


@router.get(
     "/{invoice_id}/schedule",
     response_model=RecurrenceScheduleResponse,
     summary="Preview upcoming occurrences of a recurring invoice"
)
def get_recurring_schedule(
     invoice_id: int,
     count: int = Query(6, ge=1, le=24, description="Number of occurrences to project"),
     db: Session = Depends(get_session),
):
     """
     Project the next issue and due dates of a recurring template,
     starting at its next_invoice_date.
     """
     invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()

     if not invoice:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Invoice with ID {invoice_id} not found"
          )

     if not invoice.is_recurring or invoice.next_invoice_date is None:
          raise HTTPException(
               status_code=status.HTTP_400_BAD_REQUEST,
               detail=f"Invoice with ID {invoice_id} is not a recurring invoice"
          )

     terms = days_between(invoice.issue_date, invoice.due_date)
     occurrences = preview_occurrences(invoice.next_invoice_date, invoice.recurring_interval, terms, count)

     return RecurrenceScheduleResponse(
          invoice_id=invoice.id,
          recurring_interval=invoice.recurring_interval,
          effective_interval=resolve_interval(invoice.recurring_interval).value,
          payment_terms_days=terms,
          occurrences=[ScheduledOccurrence(issue_date=i, due_date=d) for i, d in occurrences],
     )
