"""
HMS application entry point
Hotel reservation lifecycle and billing core
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hms import __version__
from hms.config import settings
from hms.database import init_db
from hms.routers import reservations, front_desk, payments, rooms, daily_tasks
from hms.scheduler import ReconciliationScheduler
from hms.services.event_handlers import ledger_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    init_db()
    ledger_handlers.register()
    scheduler = None
    if settings.RECONCILIATION_SCHEDULER_ENABLED:
        scheduler = ReconciliationScheduler()
        scheduler.start()
    logger.info("%s %s started", settings.APP_NAME, __version__)

    yield

    if scheduler:
        scheduler.shutdown()
    ledger_handlers.unregister()


# Create the application
app = FastAPI(
    title=settings.APP_NAME,
    description="Hotel reservation lifecycle and billing core",
    version=__version__,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(reservations.router)
app.include_router(front_desk.router)
app.include_router(payments.router)
app.include_router(rooms.router)
app.include_router(daily_tasks.router)


@app.get("/")
def root():
    return {"name": settings.APP_NAME, "version": __version__}


@app.get("/health")
def health_check():
    """Health check"""
    return {"status": "healthy"}
