import itertools
import os
from datetime import date
from decimal import Decimal

# Keep the application engine off the network during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RECURRING_SCHEDULER_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, Invoice
from models.invoice import InvoiceStatus
from services.invoice_store import SqlAlchemyInvoiceStore


@pytest.fixture
def engine():
     engine = create_engine(
          "sqlite://",
          connect_args={"check_same_thread": False},
          poolclass=StaticPool,
     )
     Base.metadata.create_all(bind=engine)
     yield engine
     engine.dispose()


@pytest.fixture
def session_factory(engine):
     return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
     return SqlAlchemyInvoiceStore(session_factory)


@pytest.fixture
def suffixes():
     """Deterministic invoice number suffixes: 000001, 000002, ..."""
     counter = itertools.count(1)
     return lambda: f"{next(counter):06d}"


@pytest.fixture
def make_invoice(session_factory):
     """Insert an invoice row directly and return its id."""
     numbers = itertools.count(1)

     def _make(**overrides):
          fields = {
               "user_id": "user-1",
               "client_id": "client-1",
               "project_id": "project-1",
               "invoice_number": f"INV-{next(numbers):04d}",
               "status": InvoiceStatus.SENT,
               "issue_date": date(2024, 1, 1),
               "due_date": date(2024, 1, 31),
               "amount": Decimal("1500.00"),
               "paid_amount": Decimal("0"),
               "is_recurring": True,
               "recurring_interval": "monthly",
               "next_invoice_date": date(2024, 2, 1),
          }
          fields.update(overrides)
          with session_factory() as session:
               invoice = Invoice(**fields)
               session.add(invoice)
               session.commit()
               return invoice.id

     return _make


@pytest.fixture
def fetch_invoice(session_factory):
     def _fetch(invoice_id):
          with session_factory() as session:
               return session.get(Invoice, invoice_id)

     return _fetch


@pytest.fixture
def all_invoices(session_factory):
     def _all():
          with session_factory() as session:
               return session.query(Invoice).order_by(Invoice.id).all()

     return _all
