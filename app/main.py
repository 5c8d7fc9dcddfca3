# app/main.py
import asyncio
import logging
import os

from dotenv import load_dotenv

# Load .env BEFORE anything reads the environment
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

# SlowAPI (Rate Limiting)
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# FastAPI Users imports
from .core.users import auth_backend_cookie, auth_backend_jwt, fastapi_users
from .db.engine import create_db_and_tables
from .db.engine_sync import create_sync_db_and_tables
from .services.billing_job import run_auto_billing_check

# API Routers
from .api.bills import main as bills_main_api
from .api.customers import main as customers_main_api
from .api.payments import main as payments_main_api
from .api.settings import main as settings_main_api
from .api.setup import main as setup_main_api
from .api.users import main as users_main_api
from .api.vcs import main as vcs_main_api

logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "development")
# Run the daily auto-billing job inside the API process (set to false when a
# separate scheduler process is used)
EMBEDDED_SCHEDULER = os.getenv("EMBEDDED_SCHEDULER", "false").lower() == "true"

app = FastAPI(title="Cable TV Billing", version="0.1.0")


# --- Database Initialization ---
@app.on_event("startup")
async def on_startup():
    """Create tables, then evaluate the auto-billing gate once."""
    await create_db_and_tables()
    await asyncio.to_thread(create_sync_db_and_tables)
    logger.info("Database tables initialized")

    await asyncio.to_thread(run_auto_billing_check)

    if EMBEDDED_SCHEDULER:
        from .scheduler import build_scheduler

        app.state.scheduler = build_scheduler()
        app.state.scheduler.start()
        logger.info("Embedded scheduler started")


@app.on_event("shutdown")
def on_shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler:
        scheduler.shutdown()


# --- SlowAPI ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        content={"error": f"Rate limit exceeded: {exc.detail}"}, status_code=429
    )


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)


# ============================================================================
# --- SECURITY: CORS ---
# ============================================================================
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "http://localhost:8000")
origins = allowed_origins_env.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# --- SECURITY: TRUSTED HOSTS ---
# ============================================================================
allowed_hosts = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)


# ============================================================================
# --- SECURITY: HTTP HEADERS ---
# ============================================================================
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.get("/health", tags=["System"])
def get_system_health():
    return {"status": "ok", "environment": APP_ENV}


# ============================================================================
# --- ROUTERS INCLUSION ---
# ============================================================================

# 1. FastAPI Users auth routers. Accounts are created by admins via /api/users.
app.include_router(
    fastapi_users.get_auth_router(auth_backend_jwt),
    prefix="/auth/jwt",
    tags=["Auth - JWT"],
)
app.include_router(
    fastapi_users.get_auth_router(auth_backend_cookie),
    prefix="/auth/cookie",
    tags=["Auth - Cookie"],
)

# 2. First-run setup
app.include_router(setup_main_api.router, prefix="/api")

# 3. Domain API Routers
app.include_router(customers_main_api.router, prefix="/api", tags=["Customers"])
app.include_router(vcs_main_api.router, prefix="/api", tags=["VC Inventory"])
app.include_router(bills_main_api.router, prefix="/api", tags=["Bills"])
app.include_router(payments_main_api.router, prefix="/api", tags=["Payments"])
app.include_router(settings_main_api.router, prefix="/api", tags=["Settings"])
app.include_router(users_main_api.router, prefix="/api", tags=["Users"])
