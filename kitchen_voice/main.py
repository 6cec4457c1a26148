"""
FastAPI Application Entry Point

Kitchen Voice Command Service - Hybrid Architecture
Supports both mock services (development) and real backends (production).

Endpoints:
    - POST /api/ai/process-command: Analyze, execute and answer a staff command
    - GET /api/ai/status: Language model availability probe
    - GET /api/orders: List orders (optionally by status)
    - PUT /api/orders/{order_id}/status: Direct status change
    - GET /api/menu: List menu items
    - GET /health: System health check

Version: 4.0.0
"""

import asyncio
import secrets
import sys
import logging
import uuid
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request, Header
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from kombu.exceptions import OperationalError
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from kitchen_voice.core.config import get_settings, setup_logging
from kitchen_voice.database import init_db, engine
from kitchen_voice.models import OrderStatus
from kitchen_voice.schemas import (
    AIStatusResponse,
    CommandRequest,
    CommandResponse,
    ErrorResponse,
    HealthResponse,
    MenuItemResponse,
    MenuListResponse,
    OrderListResponse,
    OrderResponse,
    StatusUpdateRequest,
)
from kitchen_voice.services.llm import (
    BaseLanguageModel,
    LanguageModelError,
    LanguageModelHTTPError,
    get_language_model,
)
from kitchen_voice.services.store import BaseDataStore, get_data_store
from kitchen_voice.services.voice import CommandOutcome, CommandProcessor
from kitchen_voice.tasks import export_command_to_excel

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

    if settings.use_real_services:
        await init_db()
        logger.info("✅ Database initialized")

    store = get_data_store()
    model = get_language_model()
    logger.info(f"✅ Data Store: {store.provider_name}")
    logger.info(f"✅ Language Model: {model.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await model.aclose()
    if settings.use_real_services:
        await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Voice and text command layer for restaurant staff. "
        "Commands are analyzed by a hosted language model with deterministic fallbacks."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store() -> BaseDataStore:
    return get_data_store()


def get_model() -> BaseLanguageModel:
    return get_language_model()


def get_command_processor(
    store: BaseDataStore = Depends(get_store),
    model: BaseLanguageModel = Depends(get_model),
) -> CommandProcessor:
    """A fresh processor per request; nothing is cached between commands."""
    return CommandProcessor(store, model, settings)


async def require_admin(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """
    Accept `Authorization: Bearer <key>` or `X-API-Key: <key>`.

    Raises:
        HTTPException: 401 when no configured key matches
    """
    supplied = x_api_key
    if authorization and authorization.lower().startswith("bearer "):
        supplied = authorization[7:].strip()

    if supplied:
        for key in settings.admin_api_keys_list:
            if secrets.compare_digest(supplied.encode(), key.encode()):
                return key

    raise HTTPException(status_code=401, detail="Unauthorized")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def command_log_record(outcome: CommandOutcome) -> dict[str, Any]:
    """Flatten a command outcome into one Excel log row."""
    data = outcome.execution_result.data or {}
    return {
        "command_id": uuid.uuid4().hex[:12],
        "date_time": datetime.now().isoformat(),
        "transcript": outcome.transcript,
        "normalized": outcome.normalized,
        "intent": outcome.analysis.intent.value,
        "confidence": outcome.analysis.confidence,
        "analysis_source": outcome.analysis.source.value,
        "success": outcome.execution_result.success,
        "response": outcome.response,
        "order_number": outcome.analysis.entities.order_number,
        "previous_status": data.get("previous_status"),
        "new_status": data.get("new_status"),
    }


async def queue_command_log(outcome: CommandOutcome) -> None:
    if not settings.command_log_enabled:
        return
    # Publishing retries while the broker is down; keep that off the event loop
    try:
        await asyncio.to_thread(export_command_to_excel.delay, command_log_record(outcome))
    except OperationalError as e:
        logger.warning(f"Command log not queued (broker unavailable): {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍜 Welcome to {settings.app_name}",
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
    store: BaseDataStore = Depends(get_store),
    model: BaseLanguageModel = Depends(get_model),
) -> HealthResponse:
    """Verify all system components are operational."""

    store_status = "healthy" if await store.health_check() else "unhealthy"

    # Redis only matters for the command log
    redis_status = "disabled"
    if settings.command_log_enabled:
        redis_status = "healthy"
        try:
            r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
            r.ping()
            r.close()
        except redis.RedisError as e:
            redis_status = f"unhealthy: {str(e)}"
            logger.error(f"Redis health check failed: {e}")

    model_status = "configured" if model.is_configured else "fallback-only"

    overall = "operational" if (
        store_status == "healthy" and redis_status in ("healthy", "disabled")
    ) else "degraded"

    return HealthResponse(
        status=overall,
        data_store=store_status,
        language_model=model_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# AI COMMAND ENDPOINTS
# =============================================================================

@app.post(
    "/api/ai/process-command",
    response_model=CommandResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["AI Commands"],
    summary="Process a staff voice/text command",
)
async def process_command(
    body: CommandRequest,
    _admin: str = Depends(require_admin),
    processor: CommandProcessor = Depends(get_command_processor),
) -> dict[str, Any]:
    """
    Analyze a command, execute it and return a spoken-style reply.

    Model failures never surface here: the analyzer and the synthesizer
    fall back to deterministic rules.
    """
    command = (body.command or "").strip()
    if not command:
        raise HTTPException(status_code=400, detail="Command is required")

    outcome = await processor.process(command)
    await queue_command_log(outcome)

    return outcome.to_payload()


@app.get(
    "/api/ai/status",
    response_model=AIStatusResponse,
    tags=["AI Commands"],
    summary="Language model availability",
)
async def ai_status(
    model: BaseLanguageModel = Depends(get_model),
) -> AIStatusResponse:
    """Send a tiny prompt to the model to check that it answers."""
    model_name = settings.gemini_model if model.is_configured else None

    if not model.is_configured:
        return AIStatusResponse(
            configured=False,
            working=False,
            status="unavailable",
            provider=model.provider_name,
            error="GEMINI_API_KEY not configured",
        )

    try:
        await model.generate("Reply with OK", timeout=settings.analysis_timeout_seconds)
    except LanguageModelHTTPError as e:
        return AIStatusResponse(
            configured=True,
            working=False,
            status="quota_exceeded" if e.is_quota_error else "error",
            provider=model.provider_name,
            model=model_name,
            error=str(e),
        )
    except LanguageModelError as e:
        return AIStatusResponse(
            configured=True,
            working=False,
            status="error",
            provider=model.provider_name,
            model=model_name,
            error=str(e),
        )

    return AIStatusResponse(
        configured=True,
        working=True,
        status="available",
        provider=model.provider_name,
        model=model_name,
    )


# =============================================================================
# ORDER & MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None),
    _admin: str = Depends(require_admin),
    store: BaseDataStore = Depends(get_store),
) -> OrderListResponse:
    """Retrieve orders, newest first."""
    status_enum = None
    if status:
        try:
            status_enum = OrderStatus(status.lower())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

    orders = await store.list_orders(status_enum)
    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse(**o.to_dict()) for o in orders],
    )


@app.put(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def update_order_status(
    order_id: int,
    body: StatusUpdateRequest,
    _admin: str = Depends(require_admin),
    store: BaseDataStore = Depends(get_store),
) -> OrderResponse:
    """Set an order's status directly."""
    updated = await store.update_order_status(order_id, OrderStatus(body.status.value))
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Order id {order_id} not found")

    logger.info(f"Order #{updated.order_number} set to {updated.status.value} via API")
    return OrderResponse(**updated.to_dict())


@app.get(
    "/api/menu",
    response_model=MenuListResponse,
    tags=["Menu"],
)
async def list_menu(
    store: BaseDataStore = Depends(get_store),
) -> MenuListResponse:
    items = await store.list_menu_items()
    return MenuListResponse(
        total=len(items),
        items=[MenuItemResponse(**m.to_dict()) for m in items],
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP errors as {success: false, error: ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Failed to process command" if request.url.path.startswith("/api/ai") else "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kitchen_voice.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
