from datetime import date
from decimal import Decimal

import pytest

from models.invoice import InvoiceStatus
from schemas.invoice import InvoiceStatusEnum
from services.invoice_store import (
     ClaimConflictError,
     DuplicateInvoiceNumberError,
     InvoiceFilter,
     StoreWriteError,
)


def _record(**overrides):
     record = {
          "user_id": "user-1",
          "client_id": "client-1",
          "project_id": None,
          "invoice_number": "INV-900001",
          "status": InvoiceStatus.DRAFT,
          "issue_date": date(2024, 2, 1),
          "due_date": date(2024, 3, 2),
          "amount": Decimal("250.00"),
          "paid_amount": Decimal("0"),
          "is_recurring": True,
          "recurring_interval": "monthly",
          "next_invoice_date": date(2024, 3, 1),
     }
     record.update(overrides)
     return record


def test_query_filters_recurring_and_next_date(store, make_invoice):
     due = make_invoice(next_invoice_date=date(2024, 2, 1))
     make_invoice(next_invoice_date=date(2024, 2, 2))
     one_off = make_invoice(is_recurring=False, recurring_interval=None, next_invoice_date=None)

     due_records = store.query(InvoiceFilter(is_recurring=True, next_invoice_date_lte=date(2024, 2, 1)))
     assert [r.id for r in due_records] == [due]

     one_offs = store.query(InvoiceFilter(is_recurring=False))
     assert [r.id for r in one_offs] == [one_off]

     assert len(store.query(InvoiceFilter())) == 3


def test_insert_returns_stored_record(store):
     created = store.insert(_record())

     assert created.id is not None
     assert created.status == InvoiceStatusEnum.DRAFT
     assert created.amount == Decimal("250.00")
     assert created.created_at is not None


def test_insert_rejects_duplicate_invoice_number(store):
     store.insert(_record())

     with pytest.raises(DuplicateInvoiceNumberError):
          store.insert(_record())


def test_insert_reports_other_constraint_failures_as_write_errors(store, all_invoices):
     with pytest.raises(StoreWriteError) as exc_info:
          store.insert(_record(client_id=None))

     assert not isinstance(exc_info.value, DuplicateInvoiceNumberError)
     assert "client_id" in str(exc_info.value)
     assert all_invoices() == []


def test_update_changes_fields_and_rejects_missing_invoice(store, make_invoice, fetch_invoice):
     invoice_id = make_invoice()

     store.update(invoice_id, {"next_invoice_date": date(2024, 3, 1)})
     assert fetch_invoice(invoice_id).next_invoice_date == date(2024, 3, 1)

     with pytest.raises(StoreWriteError):
          store.update(9999, {"next_invoice_date": date(2024, 3, 1)})


def test_insert_and_advance_conflict_writes_nothing(store, make_invoice, fetch_invoice, all_invoices):
     template_id = make_invoice(next_invoice_date=date(2024, 3, 1))

     with pytest.raises(ClaimConflictError):
          store.insert_and_advance(
               _record(),
               template_id=template_id,
               expected_next=date(2024, 2, 1),
               new_next=date(2024, 3, 1),
          )

     assert len(all_invoices()) == 1
     assert fetch_invoice(template_id).next_invoice_date == date(2024, 3, 1)


def test_insert_and_advance_rolls_back_claim_on_duplicate_number(store, make_invoice, fetch_invoice):
     make_invoice(invoice_number="INV-900001", is_recurring=False, recurring_interval=None, next_invoice_date=None)
     template_id = make_invoice(next_invoice_date=date(2024, 2, 1))

     with pytest.raises(DuplicateInvoiceNumberError):
          store.insert_and_advance(
               _record(),
               template_id=template_id,
               expected_next=date(2024, 2, 1),
               new_next=date(2024, 3, 1),
          )

     assert fetch_invoice(template_id).next_invoice_date == date(2024, 2, 1)


def test_invoice_model_helpers(make_invoice, fetch_invoice):
     invoice = fetch_invoice(make_invoice(amount=Decimal("100.00"), paid_amount=Decimal("40.00")))

     assert invoice.balance_due == Decimal("60.00")
     assert invoice.is_due_for_recurrence(date(2024, 2, 1))
     assert not invoice.is_due_for_recurrence(date(2024, 1, 31))
