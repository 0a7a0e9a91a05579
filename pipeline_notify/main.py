"""Pipeline Notify - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pipeline_notify import __version__
from pipeline_notify.dependencies import get_notifier, get_settings
from pipeline_notify.errors import NotifyError
from pipeline_notify.routers import google, health, webhooks

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let fire-and-forget notifications settle before shutdown
    if get_notifier.cache_info().currsize:
        await get_notifier().aclose()


app = FastAPI(
    title="Pipeline Notify",
    description="Cloud Manager pipeline event notifications for Slack, Teams and email",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = webhooks.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(NotifyError)
async def notify_error_handler(request: Request, exc: NotifyError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(google.router, prefix="/google", tags=["google"])
