"""ShelfPrice - FastAPI Backend"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from shelfprice.api import analytics, prices, stores, devices, health
from shelfprice.core.config import settings
from shelfprice.core.database import engine
from shelfprice.core.errors import ShelfPriceError
from shelfprice.core.logging import get_logger

logger = get_logger("shelfprice.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup - initialize database
    from shelfprice.core.database import init_db
    await init_db()

    if settings.SEED_SAMPLE_DATA:
        from shelfprice.services.seed_service import seed_data
        await seed_data()

    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="ShelfPrice API",
    description="Crowd-sourced grocery prices with offline-safe submission",
    version=health.SERVICE_VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = prices.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS for admin and mobile web clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShelfPriceError)
async def handle_domain_error(request: Request, exc: ShelfPriceError) -> JSONResponse:
    """Render service errors with their mapped status and error code."""
    content = {
        "error": {
            "code": exc.error_code.value,
            "message": exc.message,
            "type": exc.__class__.__name__,
        }
    }
    if exc.details:
        content["error"]["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "type": exc.__class__.__name__,
            }
        },
    )


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(prices.router, prefix="/prices", tags=["Prices"])
app.include_router(stores.router, prefix="/stores", tags=["Stores"])
app.include_router(devices.router, prefix="/devices", tags=["Devices"])
app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("shelfprice.main:app", host="0.0.0.0", port=8000)
