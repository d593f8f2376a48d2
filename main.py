# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.routers import (
    stock_router,
    history_router,
)

from app.core.config import (
    APP_ENV,
    APP_NAME,
    APP_VERSION,
    BASE_URI,
    CORS_ORIGINS,
    ENABLE_SCHEDULER,
    HTTP_PORT,
)
from app.core.db import AsyncSessionLocal, engine, get_db, init_models
from app.core.scheduler import scheduler
from app.core.exceptions import AppException, StorageFailure
from app.core.logging import setup_logging
from app.middleware.request_logging import request_logging_middleware
from app.services.stock.stock_ledger_service import StockLedger
from app.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting %s v%s", APP_NAME, APP_VERSION)

    # DB init ONLY in development
    if APP_ENV == "development":
        await init_models()
        logger.info("📦 Database models initialized (development)")
    else:
        logger.info("📦 %s mode: init_models() skipped", APP_ENV)

    app.state.ledger = StockLedger(AsyncSessionLocal)

    # Scheduler control
    if APP_ENV != "production" or ENABLE_SCHEDULER:
        scheduler.start()
        logger.info("🕒 Reconciliation scheduler started (%s)", APP_ENV)
    else:
        logger.info("🕒 Reconciliation scheduler disabled (production)")

    yield

    logger.info("🛑 Shutting down application")
    if scheduler.running:
        scheduler.shutdown()
    await engine.dispose()

# ------------------------------------------------------------------------------
# APP INIT
# ------------------------------------------------------------------------------
app = FastAPI(
    title=APP_NAME,
    description="Stock ledger per SKU and warehouse",
    version=APP_VERSION,
    docs_url="/docs" if APP_ENV != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ------------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ------------------------------------------------------------------------------
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ------------------------------------------------------------------------------
# MIDDLEWARE
# ------------------------------------------------------------------------------
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# HEALTH CHECK
# ------------------------------------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "ok",
        "service": "warehouse-stock-api",
        "environment": APP_ENV,
        "version": APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        raise StorageFailure("Database connection error during health check") from exc

    return {"status": "ok", "database_connection": "successful"}

# ------------------------------------------------------------------------------
# ROUTERS
# ------------------------------------------------------------------------------
app.include_router(stock_router, prefix=BASE_URI)
app.include_router(history_router, prefix=BASE_URI)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=HTTP_PORT)
