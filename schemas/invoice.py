# schemas/invoice.py
"""
Pydantic schemas for invoice records and recurring invoice API responses.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class InvoiceStatusEnum(str, Enum):
     """Invoice lifecycle status options."""
     DRAFT = "draft"
     SENT = "sent"
     PAID = "paid"
     OVERDUE = "overdue"
     CANCELLED = "cancelled"


class InvoiceRecord(BaseModel):
     """
     Detached snapshot of an invoice row.

     The invoice store hands these out instead of live ORM objects so callers
     never depend on an open session.
     """
     id: int
     user_id: str
     client_id: str
     project_id: Optional[str] = None
     invoice_number: str
     status: InvoiceStatusEnum
     issue_date: date
     due_date: date
     amount: Decimal
     paid_amount: Decimal = Decimal("0")
     notes: Optional[str] = None
     is_recurring: bool = False
     recurring_interval: Optional[str] = None
     next_invoice_date: Optional[date] = None
     created_at: Optional[datetime] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 1,
                    "user_id": "3f0c9a52-1111-4a4e-9a57-8f6d2c1b0e11",
                    "client_id": "7b2d4e10-2222-4c1f-8a0e-5d9c3b2a1f00",
                    "project_id": None,
                    "invoice_number": "INV-482913-071",
                    "status": "draft",
                    "issue_date": "2024-01-01",
                    "due_date": "2024-01-31",
                    "amount": 1500.00,
                    "paid_amount": 0,
                    "is_recurring": True,
                    "recurring_interval": "monthly",
                    "next_invoice_date": "2024-02-01",
               }
          }
     )


class RecurringTemplateListResponse(BaseModel):
     """Schema for paginated recurring template list response."""
     invoices: List[InvoiceRecord]
     total: int
     page: int = 1
     page_size: int = 50


class ScheduledOccurrence(BaseModel):
     """One projected occurrence of a recurring template."""
     issue_date: date
     due_date: date


class RecurrenceScheduleResponse(BaseModel):
     """Schema for the schedule preview of a recurring template."""
     invoice_id: int
     recurring_interval: Optional[str] = None
     effective_interval: str = Field(..., description="Interval actually applied (unknown tags step monthly)")
     payment_terms_days: int = Field(..., description="Issue-to-due offset carried into every occurrence")
     occurrences: List[ScheduledOccurrence]

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "invoice_id": 1,
                    "recurring_interval": "monthly",
                    "effective_interval": "monthly",
                    "payment_terms_days": 30,
                    "occurrences": [
                         {"issue_date": "2024-02-01", "due_date": "2024-03-02"},
                         {"issue_date": "2024-03-01", "due_date": "2024-03-31"},
                    ],
               }
          }
     )


class GenerationResultResponse(BaseModel):
     """Outcome of generating one occurrence from one template."""
     source_invoice_id: int
     outcome: str
     created_invoice_id: Optional[int] = None
     invoice_number: Optional[str] = None
     issue_date: Optional[date] = None
     due_date: Optional[date] = None
     next_invoice_date: Optional[date] = None
     reason: Optional[str] = None


class RecurrenceRunResponse(BaseModel):
     """Schema for the batch report of one recurring invoice scan."""
     run_date: date
     templates_found: int
     created_count: int
     failed_count: int
     query_error: Optional[str] = None
     results: List[GenerationResultResponse]

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "run_date": "2024-02-01",
                    "templates_found": 1,
                    "created_count": 1,
                    "failed_count": 0,
                    "query_error": None,
                    "results": [
                         {
                              "source_invoice_id": 1,
                              "outcome": "created",
                              "created_invoice_id": 2,
                              "invoice_number": "INV-482913-071",
                              "issue_date": "2024-02-01",
                              "due_date": "2024-03-02",
                              "next_invoice_date": "2024-03-01",
                              "reason": None,
                         }
                    ],
               }
          }
     )


class SchedulerStatusResponse(BaseModel):
     """Schema for the recurring invoice scheduler status."""
     enabled: bool
     running: bool
     run_count: int = 0
     last_run_at: Optional[datetime] = None
     last_error: Optional[str] = None
