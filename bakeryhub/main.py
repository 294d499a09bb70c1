"""FastAPI application for the bakery assistant."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bakeryhub.infra.config import config
from bakeryhub.infra.logging import app_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared services at startup; drain and release them at shutdown."""
    from bakeryhub.adapters.llm_client import build_model_client
    from bakeryhub.logging.audit_recorder import audit_recorder
    from bakeryhub.services.context_factory import ContextFactory
    from bakeryhub.services.orchestrator import ConversationOrchestrator
    from bakeryhub.tools.registry import build_default_registry

    app_logger.info("Application starting up", extra={"app_env": config.APP_ENV})

    # Duplicate tool names raise here and stop startup
    registry = build_default_registry(audit_recorder=audit_recorder)
    model_client = build_model_client()
    app.state.registry = registry
    app.state.audit_recorder = audit_recorder
    app.state.context_factory = ContextFactory()
    app.state.orchestrator = ConversationOrchestrator(registry=registry, model_client=model_client)

    yield

    app_logger.info("Application shutting down")
    await audit_recorder.drain()
    close = getattr(model_client, "close", None)
    if close is not None:
        await close()

    from bakeryhub.infra.database import engine
    engine.dispose()


app = FastAPI(
    title="Bakery Hub Agent API",
    description="""
    Conversational assistant for multi-tenant bakery operations.

    The assistant acts for one verified user of one bakery. Every tool it
    invokes is checked for tenant membership, role and subscription limits
    before it runs, and every invocation is audited.

    ## Authentication

    Calls come from the authenticated web tier with a shared key in the
    `X-API-Key` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {"name": "Agent", "description": "Chat with the assistant and inspect role capabilities"},
        {"name": "Health", "description": "Health check and monitoring endpoints"},
    ],
)

# Setup middleware
from bakeryhub.infra.middleware import (  # noqa: E402
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    TimeoutMiddleware,
    setup_cors,
)

app.add_middleware(TimeoutMiddleware, timeout=config.REQUEST_TIMEOUT)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
setup_cors(app)

from bakeryhub.api.routers import agent, health  # noqa: E402

app.include_router(agent.router)
app.include_router(health.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are input rejections."""
    return JSONResponse(
        status_code=400,
        content={"detail": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    error_id = str(uuid.uuid4())
    app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error. Error ID: {error_id}"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
