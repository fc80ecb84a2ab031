"""
Event Planner Service Main Application
GraphQL API over users, events, locations and participants with live subscriptions
"""
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from strawberry.fastapi import GraphQLRouter

from .config import Settings, settings as default_settings
from .core.bus import NotificationBus, build_notification_bus
from .core.mutations import MutationHandlers
from .core.observability import log_startup_info, setup_logging
from .core.relations import RelationshipResolver
from .core.store import EntityStore
from .graphql import schema

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[EntityStore] = None,
    bus: Optional[NotificationBus] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    store = store if store is not None else EntityStore.from_fixture(settings.FIXTURE_PATH)
    bus = bus or build_notification_bus(settings)
    relations = RelationshipResolver(store)
    mutations = MutationHandlers(store, notifier=bus)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        log_startup_info(settings)
        await bus.start()
        logger.info("event_planner_started", port=settings.PORT, **store.counts())
        try:
            yield
        finally:
            logger.info("event_planner_shutting_down")
            await bus.stop()

    app = FastAPI(
        title="Event Planner Service",
        description="GraphQL API for users, events, locations and participants",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.bus = bus
    app.state.relations = relations
    app.state.mutations = mutations

    # GraphQL context provider
    async def get_graphql_context():
        return {
            "store": store,
            "relations": relations,
            "mutations": mutations,
            "bus": bus,
        }

    graphql_app = GraphQLRouter(schema, context_getter=get_graphql_context)
    app.include_router(graphql_app, prefix="/graphql")

    if settings.ENABLE_METRICS:
        app.mount("/metrics", make_asgi_app())

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": settings.SERVICE_NAME,
            "version": settings.VERSION,
            "broker": settings.BROKER_BACKEND,
            "bus": bus.stats(),
            "records": store.counts(),
        }

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with service info"""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.VERSION,
            "status": "running",
            "endpoints": {
                "graphql": "/graphql",
                "subscriptions": "/graphql (websocket)",
                "health": "/health",
                "metrics": "/metrics",
            },
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred"
                }
            }
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(),
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
