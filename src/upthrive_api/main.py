from textwrap import dedent

from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from upthrive_api.errors import register_exception_handlers
from upthrive_api.identity import SupabaseIdentityProvider
from upthrive_api.monitoring.logger import configure_logger
from upthrive_api.monitoring.request_context import RequestContextMiddleware
from upthrive_api.routes.routes_health import ROUTER_HEALTH
from upthrive_api.routes.routes_requests import ROUTER_REQUESTS
from upthrive_api.settings import Settings
from upthrive_api.storage import SupabaseMediaStore
from upthrive_api.workflow.db.pool import DomainDBPool
from upthrive_api.workflow.db.repository_profile import ProfileRepository


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings.
    Local development can use a .env file in the working directory.
    """
    settings = settings or Settings()

    configure_logger(level=settings.log_level)

    logger.info(
        "Configuration loaded successfully",
        environment=settings.environment,
        supabase_url=settings.supabase_url,
        storage_bucket=settings.storage_bucket,
        database_configured=bool(settings.domain_db_connection_string),
    )

    app = FastAPI(
        title="Upthrive Requests API",
        version="v1",
        description=dedent(
            """
        Content request workflow between clients, managers and editors.

        | Role | Can |
        | --- | --- |
        | client | create requests, give the final review |
        | manager | assign requests to editors, review submitted work |
        | editor | submit and resubmit work |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_REQUESTS, prefix="/api")

    if settings.domain_db_connection_string:
        domain_db_pool = DomainDBPool(settings.domain_db_connection_string)
        app.state.domain_db_pool = domain_db_pool
        app.state.identity_provider = SupabaseIdentityProvider(
            supabase_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            profiles=ProfileRepository(domain_db_pool),
            timeout=settings.auth_timeout_seconds,
        )

        @app.on_event("startup")
        async def startup_workflow():
            """Initialize the request database."""
            await app.state.domain_db_pool.initialize()
            logger.success("Request database initialized")

        @app.on_event("shutdown")
        async def shutdown_workflow():
            """Close request database connections."""
            await app.state.domain_db_pool.close()
            logger.info("Request database closed")

    else:
        app.state.domain_db_pool = None
        app.state.identity_provider = None
        logger.warning("Request database not configured (domain_db_connection_string not set)")

    app.state.media_store = SupabaseMediaStore(
        supabase_url=settings.supabase_url,
        service_key=settings.supabase_service_key,
        bucket=settings.storage_bucket,
        max_bytes=settings.max_upload_bytes,
    )

    register_exception_handlers(app)

    logger.info("Starting Upthrive Requests API")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
