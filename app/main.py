"""
FastAPI Application Entry Point

Group Order Sessions - Hybrid Storage Architecture
Runs on an in-memory store (development) or a relational database
(staging/production) behind the same API.

Endpoints:
    - /api/menu-items: Shared menu CRUD
    - /api/order-sessions: Create, look up (by id or link) and finalize sessions
    - /api/order-sessions/{id}/orders|stats|summary|export: Session views
    - /api/orders: Place, delete and flag orders as paid
    - /api/orders/date-range: Orders across all sessions in a period
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic.alias_generators import to_camel
import uvicorn

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from app.core.config import get_settings, setup_logging
from app.core.exceptions import AppError, NotFoundError
from app.schemas import (
    DateRangeResponse,
    ErrorResponse,
    HealthResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OrderCreate,
    OrderResponse,
    OrderSessionCreate,
    OrderSessionResponse,
    PaymentStatusUpdate,
    SessionStats,
    SessionSummaryResponse,
)
from app.services.aggregation import AggregationEngine, resolve_date_range
from app.services.exporter import SessionExporter
from app.services.orders import OrderDesk
from app.services.sessions import SessionLifecycleManager
from app.services.storage import BaseStorage, get_storage

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Honour test overrides so the app never touches the configured backing
    storage_factory = app.dependency_overrides.get(get_storage, get_storage)
    storage = storage_factory()
    await storage.initialize()
    logger.info(f"✅ Storage: {storage.provider_name}")

    problems = settings.validate_production_config()
    if problems:
        logger.warning(f"⚠️ Production config uses development defaults: {problems}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await storage.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Group food ordering: open a session for a restaurant, share its link, "
        "collect everyone's orders and finalize to get the summary."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_session_manager(
    storage: BaseStorage = Depends(get_storage),
) -> SessionLifecycleManager:
    return SessionLifecycleManager(storage, link_bytes=settings.session_link_bytes)


def get_order_desk(storage: BaseStorage = Depends(get_storage)) -> OrderDesk:
    return OrderDesk(storage)


def get_aggregation_engine(
    storage: BaseStorage = Depends(get_storage),
) -> AggregationEngine:
    return AggregationEngine(storage)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    storage: BaseStorage = Depends(get_storage),
) -> HealthResponse:
    """Verify the storage backing is operational."""
    healthy = await storage.health_check()
    return HealthResponse(
        status="operational" if healthy else "degraded",
        storage=f"{storage.provider_name}: {'healthy' if healthy else 'unhealthy'}",
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU ITEM ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu-items",
    response_model=list[MenuItemResponse],
    tags=["Menu"],
)
async def list_menu_items(
    storage: BaseStorage = Depends(get_storage),
) -> list[MenuItemResponse]:
    """The full menu, available or not."""
    return await storage.list_menu_items()


@app.get(
    "/api/menu-items/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def get_menu_item(
    item_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> MenuItemResponse:
    item = await storage.get_menu_item(item_id)
    if item is None:
        raise NotFoundError("Menu item", item_id)
    return item


@app.post(
    "/api/menu-items",
    response_model=MenuItemResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def create_menu_item(
    item_data: MenuItemCreate,
    storage: BaseStorage = Depends(get_storage),
) -> MenuItemResponse:
    item = await storage.create_menu_item(item_data)
    logger.info(f"Menu item #{item.id} '{item.name}' created")
    return item


@app.put(
    "/api/menu-items/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def update_menu_item(
    item_id: int,
    item_data: MenuItemUpdate,
    storage: BaseStorage = Depends(get_storage),
) -> MenuItemResponse:
    """Partial update: only the fields present in the body change."""
    fields = {name: getattr(item_data, name) for name in item_data.model_fields_set}
    item = await storage.update_menu_item(item_id, **fields)
    if item is None:
        raise NotFoundError("Menu item", item_id)
    return item


@app.delete(
    "/api/menu-items/{item_id}",
    status_code=204,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> Response:
    if not await storage.delete_menu_item(item_id):
        raise NotFoundError("Menu item", item_id)
    logger.info(f"Menu item #{item_id} deleted")
    return Response(status_code=204)


# =============================================================================
# ORDER SESSION ENDPOINTS
# =============================================================================

@app.get(
    "/api/order-sessions",
    response_model=list[OrderSessionResponse],
    tags=["Order Sessions"],
)
async def list_order_sessions(
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> list[OrderSessionResponse]:
    return await manager.list_all()


@app.get(
    "/api/order-sessions/link/{session_link}",
    response_model=OrderSessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
    summary="Resolve a shared session link",
)
async def get_order_session_by_link(
    session_link: str,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> OrderSessionResponse:
    return await manager.get_by_link(session_link)


@app.get(
    "/api/order-sessions/{session_id}",
    response_model=OrderSessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
)
async def get_order_session(
    session_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> OrderSessionResponse:
    return await manager.get(session_id)


@app.post(
    "/api/order-sessions",
    response_model=OrderSessionResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
)
async def create_order_session(
    session_data: OrderSessionCreate,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> OrderSessionResponse:
    """Open a session; the shareable link is generated here."""
    session = await manager.create(session_data)
    logger.info(f"🔗 Share link: {settings.session_url(session.session_link)}")
    return session


@app.put(
    "/api/order-sessions/{session_id}/finalize",
    response_model=OrderSessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
    summary="Close a session to further orders",
)
async def finalize_order_session(
    session_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
) -> OrderSessionResponse:
    return await manager.finalize(session_id)


@app.get(
    "/api/order-sessions/{session_id}/orders",
    response_model=list[OrderResponse],
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
)
async def list_session_orders(
    session_id: int,
    desk: OrderDesk = Depends(get_order_desk),
) -> list[OrderResponse]:
    return await desk.list_for_session(session_id)


@app.get(
    "/api/order-sessions/{session_id}/stats",
    response_model=SessionStats,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
)
async def get_session_stats(
    session_id: int,
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> SessionStats:
    """Order count, total amount and participants, recomputed on every call."""
    return await engine.stats(session_id)


@app.get(
    "/api/order-sessions/{session_id}/summary",
    response_model=SessionSummaryResponse,
    responses=ERROR_RESPONSES,
    tags=["Order Sessions"],
)
async def get_session_summary(
    session_id: int,
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> SessionSummaryResponse:
    """Stats plus what each participant ordered and owes."""
    return await engine.summary(session_id)


@app.get(
    "/api/order-sessions/{session_id}/export",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, 404: {"model": ErrorResponse}},
    tags=["Order Sessions"],
    summary="Download the session's orders as CSV",
)
async def export_session(
    session_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> Response:
    filename, csv_text = await SessionExporter.export_session(storage, session_id)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def create_order(
    order_data: OrderCreate,
    desk: OrderDesk = Depends(get_order_desk),
) -> OrderResponse:
    """Place an order in an active session."""
    return await desk.place(order_data)


@app.get(
    "/api/orders/date-range",
    response_model=DateRangeResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Orders of all sessions within a period",
)
async def get_orders_by_date_range(
    start_date: Optional[str] = Query(None, alias="startDate", examples=["2024-01-01"]),
    end_date: Optional[str] = Query(None, alias="endDate", examples=["2024-01-07"]),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> DateRangeResponse:
    """
    Both bounds are inclusive. A bare date as ``endDate`` covers that
    whole day.
    """
    start, end = resolve_date_range(start_date, end_date)
    return await engine.date_range(start, end)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    desk: OrderDesk = Depends(get_order_desk),
) -> OrderResponse:
    return await desk.get(order_id)


@app.delete(
    "/api/orders/{order_id}",
    status_code=204,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def delete_order(
    order_id: int,
    desk: OrderDesk = Depends(get_order_desk),
) -> Response:
    await desk.delete(order_id)
    return Response(status_code=204)


@app.patch(
    "/api/orders/{order_id}/payment",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order_payment(
    order_id: int,
    payment: PaymentStatusUpdate,
    desk: OrderDesk = Depends(get_order_desk),
) -> OrderResponse:
    return await desk.set_payment(order_id, payment.is_paid)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

ENTITY_LABELS = (
    ("/api/menu-items", "menu item"),
    ("/api/order-sessions", "order session"),
    ("/api/orders", "order"),
)


def _validation_message(path: str) -> str:
    for prefix, label in ENTITY_LABELS:
        if path.startswith(prefix):
            return f"Invalid {label} data"
    return "Invalid request data"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report every violated field with a 400."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] == "path":
            # Body and query fields already arrive under their camelCase aliases
            loc[1] = to_camel(loc[1])
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc) or "body"
        errors.append({"field": field, "message": error.get("msg", "Invalid value")})

    logger.info(f"Rejected {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"message": _validation_message(request.url.path), "errors": errors},
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map service-layer errors onto their status codes."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "message": "An unexpected error occurred",
            "detail": str(exc) if settings.debug else None,
        },
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
