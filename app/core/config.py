# app/core/config.py

import os
from dotenv import load_dotenv
from sqlalchemy.engine import URL
from app.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV", "development")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

APP_NAME = "Appaka Warehouse – Stock API"
APP_VERSION = os.getenv("APP_VERSION", "0.0.1")

# =====================================================
# HTTP
# =====================================================
BASE_URI = "/" + os.getenv("BASE_URI", "/api").strip("/")
if BASE_URI == "/":
    BASE_URI = ""

HTTP_PORT = int(os.getenv("HTTP_PORT", 8000))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# =====================================================
# LOGGING
# =====================================================
LOG_PATH = os.getenv("LOG_PATH", "")

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE", "postgres")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", 54320))
DB_USER = os.getenv("DB_USER", "username")
DB_PASSWORD = os.getenv("DB_PASSWORD", "password")
DB_NAME = os.getenv("DB_NAME", "appdatabase")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL") or URL.create(
        "postgresql+asyncpg",
        username=DB_USER,
        password=DB_PASSWORD,
        host=DB_HOST,
        port=DB_PORT,
        database=DB_NAME,
    )

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    SQLITE_PATH = os.getenv("SQLITE_PATH", "./warehouse.db")
    DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
# the reference deployment runs with sslmode=disable
DB_SSL = os.getenv("DB_SSL", "false").lower() == "true"
if IS_PRODUCTION and not DB_SSL:
    logger.warning("Running in production without TLS to the database")

# =====================================================
# LEDGER
# =====================================================
# Upper bound for one atomic unit (insert + upsert + read back).
# 0 disables the bound.
LEDGER_TIMEOUT_SECONDS = float(os.getenv("LEDGER_TIMEOUT_SECONDS", 10))

# =====================================================
# SCHEDULER
# =====================================================
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
