# services/invoice_store.py
"""
Invoice Store - persistence contract consumed by the recurring invoice service.

The service only needs three primitives (query, insert, update) plus an
optional atomic insert-and-advance used as a compare-and-swap guard.
SqlAlchemyInvoiceStore implements them on top of the invoices table;
database faults are translated into the store error taxonomy here so the
service never sees SQLAlchemy exceptions.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import select, update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import get_session_context
from models import Invoice
from schemas.invoice import InvoiceRecord

logger = logging.getLogger(__name__)


class StoreError(Exception):
     """Base class for invoice store failures."""


class StoreQueryError(StoreError):
     """Reading invoices from the store failed."""


class StoreWriteError(StoreError):
     """Inserting or updating an invoice failed."""


class DuplicateInvoiceNumberError(StoreWriteError):
     """The invoice_number unique constraint rejected an insert."""


class ClaimConflictError(StoreWriteError):
     """A template's next_invoice_date moved before it could be claimed."""


@dataclass(frozen=True)
class InvoiceFilter:
     """Filter for InvoiceStore.query; unset fields do not constrain."""
     is_recurring: Optional[bool] = None
     next_invoice_date_lte: Optional[date] = None


class InvoiceStore(Protocol):
     def query(self, invoice_filter: InvoiceFilter) -> List[InvoiceRecord]: ...

     def insert(self, record: Dict[str, Any]) -> InvoiceRecord: ...

     def update(self, invoice_id: int, fields: Dict[str, Any]) -> None: ...

     def insert_and_advance(
          self,
          record: Dict[str, Any],
          template_id: int,
          expected_next: date,
          new_next: date,
     ) -> InvoiceRecord: ...


def _integrity_error(record: Dict[str, Any], error: IntegrityError) -> StoreWriteError:
     """Only a unique violation on invoice_number is a duplicate number."""
     message = str(error.orig).lower()
     if "invoice_number" in message and ("unique" in message or "duplicate" in message):
          return DuplicateInvoiceNumberError(
               f"Invoice number {record.get('invoice_number')!r} rejected: {error.orig}"
          )
     return StoreWriteError(f"Invoice rejected by a constraint: {error.orig}")


class SqlAlchemyInvoiceStore:
     """InvoiceStore backed by the invoices table."""

     def __init__(self, session_factory: sessionmaker):
          self.session_factory = session_factory

     def query(self, invoice_filter: InvoiceFilter) -> List[InvoiceRecord]:
          stmt = select(Invoice)
          if invoice_filter.is_recurring is not None:
               stmt = stmt.where(Invoice.is_recurring == invoice_filter.is_recurring)
          if invoice_filter.next_invoice_date_lte is not None:
               stmt = stmt.where(Invoice.next_invoice_date <= invoice_filter.next_invoice_date_lte)
          stmt = stmt.order_by(Invoice.id)

          try:
               with get_session_context(self.session_factory) as db:
                    rows = db.execute(stmt).scalars().all()
                    return [InvoiceRecord.model_validate(row) for row in rows]
          except SQLAlchemyError as e:
               raise StoreQueryError(f"Invoice query failed: {e}") from e

     def insert(self, record: Dict[str, Any]) -> InvoiceRecord:
          try:
               with get_session_context(self.session_factory) as db:
                    invoice = Invoice(**record)
                    db.add(invoice)
                    db.flush()  # Flush to get the ID and server defaults
                    db.refresh(invoice)
                    return InvoiceRecord.model_validate(invoice)
          except IntegrityError as e:
               raise _integrity_error(record, e) from e
          except SQLAlchemyError as e:
               raise StoreWriteError(f"Invoice insert failed: {e}") from e

     def update(self, invoice_id: int, fields: Dict[str, Any]) -> None:
          stmt = sa_update(Invoice).where(Invoice.id == invoice_id).values(**fields)
          try:
               with get_session_context(self.session_factory) as db:
                    result = db.execute(stmt)
                    if result.rowcount == 0:
                         raise StoreWriteError(f"Invoice with ID {invoice_id} not found")
          except SQLAlchemyError as e:
               raise StoreWriteError(f"Invoice update failed for ID {invoice_id}: {e}") from e

     def insert_and_advance(
          self,
          record: Dict[str, Any],
          template_id: int,
          expected_next: date,
          new_next: date,
     ) -> InvoiceRecord:
          """
          Atomically advance a template and insert its occurrence.

          The template's next_invoice_date only moves if it still equals
          `expected_next`; otherwise nothing is written and
          ClaimConflictError is raised.
          """
          claim = (
               sa_update(Invoice)
               .where(Invoice.id == template_id, Invoice.next_invoice_date == expected_next)
               .values(next_invoice_date=new_next)
          )
          try:
               with get_session_context(self.session_factory) as db:
                    result = db.execute(claim)
                    if result.rowcount != 1:
                         raise ClaimConflictError(
                              f"Invoice {template_id} no longer has next_invoice_date={expected_next}"
                         )
                    invoice = Invoice(**record)
                    db.add(invoice)
                    db.flush()
                    db.refresh(invoice)
                    return InvoiceRecord.model_validate(invoice)
          except IntegrityError as e:
               raise _integrity_error(record, e) from e
          except SQLAlchemyError as e:
               raise StoreWriteError(f"Invoice insert/advance failed for ID {template_id}: {e}") from e
