"""
FastAPI application factory for the Stockroom HTTP API.

This module creates the FastAPI app with:
- CORS configuration for the frontend
- Entity store lifecycle (load on startup, admin bootstrap)
- Inventory, account, group and warehouse routes under /api
- Uniform JSON error bodies for StockroomError and request validation

Usage:
    uvicorn --factory stockroom.api.app:create_app
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .._version import __version__
from ..access import GroupMembershipSynchronizer
from ..bootstrap import ensure_admin
from ..config import ServerConfig
from ..errors import StockroomError
from ..store import InventoryStore
from .config import Settings
from .routes import router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the store and make sure the administrator exists."""
    store: InventoryStore = app.state.store
    await store.initialize()
    await ensure_admin(store, app.state.server_config.bootstrap)

    yield


async def _stockroom_error_handler(request: Request, exc: StockroomError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "details": exc.details},
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        details.append(
            {
                "loc": loc,
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
                "field": loc[-1] if loc else None,
            }
        )
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "code": "VALIDATION_ERROR", "details": details},
    )


def create_app(
    store: InventoryStore | None = None,
    config: ServerConfig | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Entity store; built from config when omitted
        config: Server configuration; loaded from environment when omitted
        settings: HTTP settings; loaded from environment when omitted
    """
    config = config or ServerConfig.from_env()
    settings = settings or Settings()
    store = store or InventoryStore.from_config(config.storage, admin_id=config.bootstrap.admin_id)

    app = FastAPI(
        title="Stockroom",
        description="Electronic component inventory with per-warehouse access control.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.settings = settings
    app.state.server_config = config
    app.state.synchronizer = GroupMembershipSynchronizer(store)

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StockroomError, _stockroom_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "service": "stockroom",
            "initialized": store.is_initialized,
        }

    return app
