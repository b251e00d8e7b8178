"""HIVE Protocol API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly, one router per resource
    - Global error handlers map HiveError to structured JSON responses
    - CORS configured from settings
    - Database, provider gateway and webhook client are created in the lifespan
      and closed on shutdown
    - Every response carries X-Request-Id (echoed from the request when present)

Design Decisions:
    - Lifespan context manager instead of @app.on_event startup/shutdown hooks
    - Shared HTTP clients live on app.state so connection pools survive across requests
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from hive.api.error_handlers import register_error_handlers
from hive.api.routes import (
    admin, agent_respond, agents, dashboard, feedback, health, integrations,
    message_signatures, presence, rate_limits, swarms, templates, webhooks,
)
from hive.config import get_settings
from hive.infrastructure import database as db_module
from hive.infrastructure.anthropic_client import ResilientAnthropicClient
from hive.infrastructure.database import init_db
from hive.infrastructure.llm_providers import ProviderGateway
from hive.infrastructure.observability import generate_request_id, setup_logging
from hive.infrastructure.webhook_client import WebhookClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.provider_gateway = ProviderGateway(
        anthropic_factory=lambda key: ResilientAnthropicClient(
            api_key=key,
            max_retries=settings.anthropic_max_retries,
            timeout_seconds=settings.anthropic_timeout_seconds,
        ),
        timeout_seconds=settings.provider_timeout_seconds,
    )
    app.state.webhook_client = WebhookClient(
        timeout_seconds=settings.webhook_timeout_seconds,
        max_payload_bytes=settings.webhook_max_payload_bytes,
    )
    logger.info("HIVE API started")
    yield
    logger.info("HIVE API shutting down")
    await app.state.provider_gateway.aclose()
    await app.state.webhook_client.aclose()
    if db_module.db_manager is not None:
        await db_module.db_manager.dispose()


app = FastAPI(title="HIVE Protocol API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-Request-Id", "X-Agent-Id", "X-Agent-Name", "Retry-After",
        "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Window",
        "X-RateLimit-Reset",
    ],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or generate_request_id()
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(health.router)
app.include_router(agents.router)
app.include_router(swarms.router)
app.include_router(agent_respond.router)
app.include_router(presence.router)
app.include_router(templates.router)
app.include_router(webhooks.router)
app.include_router(integrations.router)
app.include_router(rate_limits.router)
app.include_router(message_signatures.router)
app.include_router(feedback.router)
app.include_router(dashboard.router)
app.include_router(admin.router)

register_error_handlers(app)
