"""
Main FastAPI application for the Vizfolio service (AI proxy and public portfolios)
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from vizfolio import __version__
from vizfolio.config import settings, validate_required_config
from vizfolio.logging_config import logger
from vizfolio.routers import ai, portfolio


# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Vizfolio service", environment=settings.ENVIRONMENT)

    validate_required_config()

    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[FastApiIntegration()],
        )
        logger.info("Sentry initialized")

    if settings.AI_GENERATION_MODE == "simulated":
        logger.warning("AI generation is simulated; responses come from role templates")

    logger.info(
        "Vizfolio service started",
        ai_generation_mode=settings.AI_GENERATION_MODE,
        gemini_model=settings.GEMINI_MODEL
    )

    yield

    logger.info("Shutting down Vizfolio service")


# Create FastAPI app
app = FastAPI(
    title="Vizfolio",
    description="AI content proxy and public portfolio API for Vizfolio",
    version=__version__,
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in settings.CORS_ORIGINS.split(",")
    if origin.strip()
]

# Development allows any origin; production only the configured ones
if settings.ENVIRONMENT == "development" or settings.DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Cannot use credentials with wildcard origins
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _checks() -> dict:
    return {
        "supabase": {
            "configured": bool(settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY),
            "status": "ok" if settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY else "missing"
        },
        "ai_generation": {
            "mode": settings.AI_GENERATION_MODE,
            "status": "ok" if settings.AI_GENERATION_MODE == "simulated" or settings.GEMINI_API_KEY else "missing"
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Vizfolio",
        "version": __version__,
        "status": "running",
        "ai_generation_mode": settings.AI_GENERATION_MODE
    }


@app.get("/health")
async def health_check():
    """Configuration health check"""
    checks = _checks()
    all_ok = all(check["status"] == "ok" for check in checks.values())
    return {
        "status": "healthy" if all_ok else "degraded",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks
    }


@app.get("/readiness")
async def readiness_check():
    """Kubernetes readiness check"""
    checks = _checks()
    if checks["ai_generation"]["status"] == "ok":
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "checks": checks}
    )


# Include routers
app.include_router(ai.router, prefix="/api", tags=["AI Content"])
app.include_router(portfolio.router, prefix="/api", tags=["Portfolio"])


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler with Sentry integration"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        path=request.url.path,
        exc_info=True
    )

    if settings.SENTRY_DSN:
        sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.ENVIRONMENT == "development" else None
        }
    )


def run():
    import uvicorn
    reload_enabled = settings.ENVIRONMENT == "development" or settings.DEBUG
    uvicorn.run("vizfolio.main:app", host="0.0.0.0", port=8001, reload=reload_enabled)


if __name__ == "__main__":
    run()
