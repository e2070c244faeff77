# routers/__init__.py
from .recurring_invoices import router as recurring_invoices_router

__all__ = [
     "recurring_invoices_router",
]
