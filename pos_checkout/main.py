"""
POS Checkout: FastAPI application entry point.

Main application module with lifespan management, middleware configuration,
and router registration.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos_checkout.utils.config import settings
from pos_checkout.utils.structured_logging import configure_logging
from pos_checkout.routers import checkout, health
from pos_checkout.middleware.request_logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Lifespan
# -------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: logging setup, readiness flag, shutdown log."""
    configure_logging()

    app.state.is_ready = False
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(
        f"Commerce API: {settings.COMMERCE_API_BASE_URL} | Inventory API: {settings.INVENTORY_API_BASE_URL}"
    )

    app.state.is_ready = True
    logger.info("Application is READY to accept traffic")

    yield

    logger.info(f"Shut down {settings.APP_NAME}")


# -------------------------------------------------
# FastAPI App
# -------------------------------------------------

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# -------------------------------------------------
# Middleware
# -------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

# -------------------------------------------------
# Routers
# -------------------------------------------------

app.include_router(health.router, tags=["Health"])
app.include_router(checkout.router, prefix="/api/v1", tags=["Checkout"])


# -------------------------------------------------
# Root
# -------------------------------------------------

@app.get("/", tags=["Root"])
async def root():
    return {"message": f"{settings.APP_NAME} v{settings.APP_VERSION} is running", "docs": "/docs"}
