"""AdWizard — FastAPI Application Entry Point.

Publishes ad wizard creatives to Facebook Ads as paused campaigns and keeps a
local record of every publish attempt.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.campaign_routes import router as campaign_router
from app.api.deps import http_error
from app.api.meta_routes import router as meta_router
from app.config import settings
from app.connectors.meta.client import FacebookAPIError
from app.core.errors import AdWizardError
from app.core.logging import get_logger
from app.database import _mask_url, check_database, db_url, init_db

logger = get_logger("main")

VERSION = "1.0.0"
IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"🚀 AdWizard starting ({'serverless' if IS_SERVERLESS else 'local'}), "
        f"Graph API {settings.facebook_api_version}"
    )
    error = check_database()
    if error is None:
        init_db()
    else:
        logger.error("❌ Database unavailable; publishing endpoints will fail")
    yield
    logger.info("AdWizard shut down")


app = FastAPI(
    title="AdWizard",
    description="Publish ad wizard creatives as paused Facebook Ads campaigns and track every publish attempt.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(meta_router)
app.include_router(campaign_router)


@app.exception_handler(AdWizardError)
@app.exception_handler(FacebookAPIError)
async def domain_error_handler(request: Request, exc: Exception):
    """Errors not translated by a route still reach the caller with their message."""
    error = http_error(exc)
    logger.error(
        f"Unhandled {type(exc).__name__}: {exc}",
        extra={"endpoint": request.url.path, "status_code": error.status_code},
    )
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "healthy", "service": "adwizard", "version": VERSION}


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Database connectivity and backend, password masked."""
    error = check_database()
    return {
        "connected": error is None,
        "backend": "postgresql" if db_url.startswith("postgresql") else "sqlite",
        "url": _mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
        "error": error,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8000)),
        log_level=settings.log_level.lower(),
    )
