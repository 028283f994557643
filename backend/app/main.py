"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.accounts import router as accounts_router
from backend.app.api.routes.auth import router as auth_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.organizations import router as organizations_router
from backend.app.config import get_settings
from backend.app.db.engine import create_schema, get_async_engine
from backend.app.middleware.request_logging import RequestLoggingMiddleware
from backend.app.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    if settings.create_schema_on_startup:
        await create_schema(get_async_engine())
    yield


app = FastAPI(title="Treasurer API", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(auth_router)
app.include_router(organizations_router)
app.include_router(accounts_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Treasurer API", "version": "0.1.0"}
