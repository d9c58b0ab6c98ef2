"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from coinfolio import __version__
from coinfolio.config import settings
from coinfolio.dependencies.services import get_price_subscriptions
from coinfolio.rate_limiter import limiter
from coinfolio.services.exceptions import (
    InvalidStateError,
    LockedError,
    NotFoundError,
    ServiceError,
    UpstreamUnavailable,
    ValidationError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the live price stream on startup and close it on shutdown."""
    # Honors dependency_overrides
    factory = app.dependency_overrides.get(get_price_subscriptions, get_price_subscriptions)
    subscriptions = factory()
    if settings.price_stream_enabled:
        subscriptions.start()
    else:
        logger.info("Live price stream disabled")
    yield
    subscriptions.stop()


# Create FastAPI app
app = FastAPI(
    title="Coinfolio API",
    description="Crypto portfolio valuation, market data and staking",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS: dict[type[Exception], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    InvalidStateError: 409,
    LockedError: 423,
    UpstreamUnavailable: 503,
}


def _status_for(exc: Exception) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(ServiceError)
@app.exception_handler(NotFoundError)
async def service_error_handler(request: Request, exc: ServiceError | NotFoundError) -> JSONResponse:
    """Map business rule failures to HTTP responses."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    body = {"error": exc.code, "message": exc.message}
    if isinstance(exc, LockedError):
        body["unlocks_at"] = exc.unlocks_at.isoformat()
        body["remaining_seconds"] = int(exc.remaining.total_seconds())
    return JSONResponse(status_code=status_code, content=body)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Coinfolio API", "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from coinfolio.routers import (  # noqa: E402
    dashboard,
    market_data,
    portfolios,
    prices,
    snapshots,
    staking,
    transactions,
)

app.include_router(dashboard.router)
app.include_router(market_data.router)
app.include_router(portfolios.router)
app.include_router(prices.router)
app.include_router(snapshots.router)
app.include_router(staking.router)
app.include_router(transactions.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("coinfolio.main:app", host="0.0.0.0", port=8000, reload=True)
