"""FastAPI application factory and lifespan management."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from uniadmin.cache.hierarchy_cache import InMemoryHierarchyCache, RedisHierarchyCache
from uniadmin.cache.tree_cache import HierarchyTreeCache
from uniadmin.config import settings
from uniadmin.db.engine import create_db_engine, create_session_factory
from uniadmin.events.dispatcher import InProcessEventDispatcher
from uniadmin.events.hierarchy_events import ALL_EVENT_TYPES
from uniadmin.events.webhook_config import WebhookRegistry
from uniadmin.events.webhook_emitter import WebhookForwarder
from uniadmin.logging_config import configure_logging
from uniadmin.services.organizational.locks import UnitLocks

# Configure logging at import time
_json_logs = os.environ.get("UNIADMIN_LOCAL", "0") != "1"
configure_logging(log_level=settings.log_level, json_output=_json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev and tests, no migrations)
    if "sqlite" in db_url:
        from uniadmin.db.base import Base
        import uniadmin.db.models  # noqa: F401  registers all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    # Redis is optional; without it the in-memory hierarchy cache stays in place
    app.state.redis = None
    if not settings.local_mode:
        try:
            import redis.asyncio as aioredis

            app.state.redis = aioredis.from_url(settings.redis_url, decode_responses=True)
            await app.state.redis.ping()
            app.state.hierarchy_cache = RedisHierarchyCache(app.state.redis)
        except Exception as exc:
            logger.warning("Redis not available, using in-memory hierarchy cache: %s", exc)
            app.state.redis = None

    logger.info(
        "uniadmin API started (db=%s, cache=%s)",
        "sqlite" if "sqlite" in db_url else "postgresql",
        type(app.state.hierarchy_cache).__name__,
    )
    yield

    # Shutdown
    if app.state.redis is not None:
        await app.state.redis.aclose()
    await engine.dispose()
    logger.info("uniadmin API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="uniadmin API",
        version="0.1.0",
        description="University administration backend: organizational unit hierarchy, users and RBAC.",
        lifespan=lifespan,
    )

    # App-scoped hierarchy state shared by every request
    app.state.tree_cache = HierarchyTreeCache()
    app.state.hierarchy_cache = InMemoryHierarchyCache()
    app.state.unit_locks = UnitLocks()
    app.state.webhook_registry = WebhookRegistry.from_settings(settings)
    app.state.event_dispatcher = InProcessEventDispatcher()
    forwarder = WebhookForwarder(app.state.webhook_registry)
    for event_class in ALL_EVENT_TYPES:
        app.state.event_dispatcher.add_listener(event_class, forwarder)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from uniadmin.api.middleware.auth import AuthMiddleware
    from uniadmin.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from uniadmin.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from uniadmin.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
