"""Rulebook API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map RulebookError → {error_id, message | errors[]} responses
    - CORS configured from settings (not hardcoded)
    - Store, audit sink and MutationService built once on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Adapters chosen from settings (sql | memory store, sql | log audit): the core and
      the routes are identical across deployments
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rulebook.api.error_handlers import register_error_handlers
from rulebook.api.routes import health, resources
from rulebook.api.routes.health import SERVICE_VERSION
from rulebook.config import Settings, get_settings
from rulebook.db.session import create_schema
from rulebook.infrastructure.audit_sinks import LoggingAuditSink, SqlAuditSink
from rulebook.infrastructure.clock import SystemClock
from rulebook.infrastructure import database
from rulebook.infrastructure.database import init_db
from rulebook.infrastructure.memory_store import InMemoryResourceStore
from rulebook.infrastructure.observability import setup_logging
from rulebook.infrastructure.sql_store import SqlResourceStore
from rulebook.services.mutation_service import MutationService

logger = logging.getLogger(__name__)


async def build_mutation_service(settings: Settings) -> MutationService:
    """Wire the configured adapters around the core."""
    manager = None
    if settings.store_backend == "sql" or settings.audit_backend == "sql":
        manager = init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        if settings.create_schema:
            await create_schema(manager.engine)

    if settings.store_backend == "sql":
        store = SqlResourceStore(manager)
    else:
        store = InMemoryResourceStore()
    if settings.audit_backend == "sql":
        audit_sink = SqlAuditSink(manager)
    else:
        audit_sink = LoggingAuditSink()
    return MutationService(store, audit_sink, SystemClock())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.mutation_service = await build_mutation_service(settings)
    logger.info(
        f"Rulebook API started (store={settings.store_backend}, "
        f"audit={settings.audit_backend})",
    )
    yield
    logger.info("Rulebook API shutting down")
    if database.db_manager is not None:
        await database.db_manager.dispose()


app = FastAPI(
    title="Rulebook API", version=SERVICE_VERSION, lifespan=lifespan,
)

# CORS: configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration; health first so /health/* never hits /{collection}
app.include_router(health.router)
app.include_router(resources.router)

register_error_handlers(app)
