import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboarding.config import settings
from onboarding.database import create_all
from onboarding.logging_config import configure_logging
from onboarding.middleware.exceptions import register_exception_handlers
from onboarding.middleware.rate_limit import RateLimitMiddleware
from onboarding.middleware.security import HTTPSRedirectMiddleware, SecurityHeadersMiddleware
from onboarding.routers import admin, applications, health
from onboarding.utils.redis_client import close_redis

logger = logging.getLogger("onboarding")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.auto_create_tables:
        await create_all()
        logger.info("Database tables ensured")
    logger.info("Onboarding API started (%s)", settings.environment)
    yield
    await close_redis()
    logger.info("Onboarding API stopped")


app = FastAPI(
    title="Agent Onboarding",
    description="Agent applicant onboarding wizard: save, resume, submit, review",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

# HTTPS redirect (production only)
app.add_middleware(HTTPSRedirectMiddleware, force_https=False)

if settings.rate_limit_enabled:
    app.add_middleware(
        RateLimitMiddleware,
        default_limit=100,
        default_window=60,
        exempt_paths=["/health", "/health/ready", "/docs", "/openapi.json"],
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(applications.router, prefix="/api/applications", tags=["applications"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
