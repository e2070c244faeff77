# models/invoice.py
import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, Boolean, Text, Enum, Index, func
from .base import Base


class InvoiceStatus(str, enum.Enum):
     """Enumeration for invoice lifecycle status."""
     DRAFT = "draft"
     SENT = "sent"
     PAID = "paid"
     OVERDUE = "overdue"
     CANCELLED = "cancelled"


class Invoice(Base):
     """
     Invoice model - billing records a freelancer issues to clients.

     A row with is_recurring=True doubles as a template: its
     recurring_interval and next_invoice_date drive the generation of
     future occurrences by the recurring invoice service.
     """
     __tablename__ = "invoices"
     __table_args__ = (
          Index("ix_invoices_recurring_due", "is_recurring", "next_invoice_date"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)

     # References owned by the surrounding application (users, clients, projects)
     user_id = Column(String(36), nullable=False, index=True)
     client_id = Column(String(36), nullable=False, index=True)
     project_id = Column(String(36), nullable=True)

     # Invoice details
     invoice_number = Column(String(50), nullable=False, unique=True)
     status = Column(
          Enum(
               InvoiceStatus,
               name="invoice_status",
               values_callable=lambda statuses: [s.value for s in statuses],
               create_constraint=True,
          ),
          default=InvoiceStatus.DRAFT,
          nullable=False,
          index=True
     )
     issue_date = Column(Date, nullable=False)
     due_date = Column(Date, nullable=False, index=True)
     amount = Column(Numeric(12, 2), nullable=False)
     paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
     notes = Column(Text, nullable=True)

     # Recurrence
     is_recurring = Column(Boolean, nullable=False, default=False)
     recurring_interval = Column(String(20), nullable=True)  # weekly, monthly, quarterly, yearly
     next_invoice_date = Column(Date, nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<Invoice(id={self.id}, number='{self.invoice_number}', "
               f"recurring={self.is_recurring}, next_invoice_date={self.next_invoice_date})>"
          )

     @property
     def balance_due(self) -> Decimal:
          """Amount still owed on the invoice."""
          return Decimal(self.amount or 0) - Decimal(self.paid_amount or 0)

     def is_due_for_recurrence(self, today: date) -> bool:
          """Check if this template should materialize an occurrence on `today`."""
          return (
               bool(self.is_recurring)
               and self.next_invoice_date is not None
               and self.next_invoice_date <= today
          )
