"""
FastAPI app entrypoint.

Storefront checkout with pickup-slot reservations, the Stripe webhook, and staff/admin endpoints.
"""
import logging
import os
import threading
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from farmstand.api.routes import (
    admin,
    airbnb,
    capacity,
    checkout,
    links,
    orders,
    pickup_slots,
    pickups,
    products,
    stripe_webhook,
    waitlist,
    webhooks,
)
from farmstand.config import settings
from farmstand.core.constants import (
    HOLD_SWEEP_INTERVAL_SECONDS,
    HOLD_SWEEP_JOB_ID,
    OCCUPANCY_REFRESH_INTERVAL_HOURS,
    OCCUPANCY_REFRESH_JOB_ID,
    SLOT_GENERATION_HOUR,
    SLOT_GENERATION_JOB_ID,
    SLOT_GENERATION_MINUTE,
)
from farmstand.core.errors import (
    MSG_INTERNAL_ERROR,
    STATUS_BAD_REQUEST,
    STATUS_INTERNAL_ERROR,
    FarmstandError,
    error_body,
    farmstand_error_handler,
)
from farmstand.scheduler.hold_sweep_job import run_hold_sweep_job
from farmstand.scheduler.occupancy_job import run_occupancy_refresh_job
from farmstand.scheduler.slot_generation_job import run_slot_generation_job

logger = logging.getLogger(__name__)

# Cron times are farm wall-clock
_scheduler = BackgroundScheduler(timezone=settings.farm_timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
        yield
        return

    _scheduler.add_job(
        run_slot_generation_job,
        "cron",
        hour=SLOT_GENERATION_HOUR,
        minute=SLOT_GENERATION_MINUTE,
        id=SLOT_GENERATION_JOB_ID,
    )
    _scheduler.add_job(
        run_occupancy_refresh_job,
        "interval",
        hours=OCCUPANCY_REFRESH_INTERVAL_HOURS,
        id=OCCUPANCY_REFRESH_JOB_ID,
    )
    _scheduler.add_job(
        run_hold_sweep_job,
        "interval",
        seconds=HOLD_SWEEP_INTERVAL_SECONDS,
        id=HOLD_SWEEP_JOB_ID,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler

    def startup_background():
        # Make sure the slot window exists right after a deploy instead of waiting for midnight.
        try:
            run_slot_generation_job()
        except Exception as e:
            logger.warning("Slot generation on startup failed: %s", e, exc_info=True)

    threading.Thread(target=startup_background, daemon=True).start()
    logger.info("Backend ready; scheduler jobs: %s", ", ".join(j.id for j in _scheduler.get_jobs()))
    yield
    _scheduler.shutdown(wait=False)


app = FastAPI(title="Farmstand Pickup", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the storefront
_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=STATUS_BAD_REQUEST, content=error_body(f"{field}: {message}" if field else message))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=STATUS_INTERNAL_ERROR, content=error_body(MSG_INTERNAL_ERROR))


app.add_exception_handler(FarmstandError, farmstand_error_handler)
app.add_exception_handler(RequestValidationError, _validation_error_handler)
app.add_exception_handler(Exception, _unhandled_error_handler)

app.include_router(products.router, prefix="/api/products", tags=["checkout"])
app.include_router(checkout.router, prefix="/api/checkout", tags=["checkout"])
app.include_router(stripe_webhook.router, prefix="/api/stripe", tags=["stripe"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["stripe"])
app.include_router(pickup_slots.router, prefix="/api/pickup-slots", tags=["pickup-slots"])
app.include_router(capacity.router, prefix="/api/capacity", tags=["pickup-slots"])
app.include_router(airbnb.router, prefix="/api/airbnb", tags=["occupancy"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(pickups.router, prefix="/api/pickups", tags=["orders"])
app.include_router(waitlist.router, prefix="/api/waitlist", tags=["waitlist"])
app.include_router(admin.router, prefix="/api", tags=["admin"])
app.include_router(links.router, prefix="/api/links", tags=["links"])
app.include_router(links.redirect_router, tags=["links"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Farmstand Pickup API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
