import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import uvicorn

from database import check_connection
from routers import recurring_invoices_router
from services.recurring_invoice_service import build_recurring_invoice_service
from services.recurring_scheduler import RecurringInvoiceScheduler

# Load .env
load_dotenv()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
RECURRING_SCHEDULER_ENABLED = os.getenv("RECURRING_SCHEDULER_ENABLED", "true").lower() == "true"

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def run_recurring_invoice_scan():
    """Scheduler job: build a fresh service so each scan gets new sessions."""
    return build_recurring_invoice_service().scan_and_materialize_due_recurrences()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if RECURRING_SCHEDULER_ENABLED:
        scheduler = RecurringInvoiceScheduler(run_recurring_invoice_scan)
        scheduler.start()
    else:
        logger.info("Recurring invoice scheduler disabled (RECURRING_SCHEDULER_ENABLED=false)")
    app.state.recurring_scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()


# App instance
app = FastAPI(title="Freelancer Billing API", lifespan=lifespan)

# CORS
origins = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    scheduler = getattr(app.state, "recurring_scheduler", None)
    return {
        "status": "ok",
        "database": "ok" if check_connection() else "unavailable",
        "recurring_scheduler": "running" if scheduler is not None and scheduler.is_running else "stopped",
    }


app.include_router(recurring_invoices_router)


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
