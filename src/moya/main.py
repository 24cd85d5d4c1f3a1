"""Moya FastAPI application.

Builds the storage backends, the embedding provider, the completion streamer
and the services on top of them once per process, and exposes them through
the API routers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import logfire
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from moya.api import dependencies
from moya.api import router as api_router
from moya.api.endpoints import core
from moya.core.base import ApplicationError
from moya.core.config import Settings, get_settings
from moya.core.errors import ConfigurationError
from moya.core.handlers import ErrorHandler
from moya.core.logging import get_logger, setup_logging
from moya.infrastructure.auth import StaticAuthenticator, SupabaseAuthenticator
from moya.infrastructure.completion import ZhipuCompletionStreamer
from moya.infrastructure.embeddings import create_embedding_provider
from moya.infrastructure.storage import create_storage_backends
from moya.services import ContinuationService, LibraryService, MemoryStore, PromptAssembler

settings = get_settings()

# Token is optional; without one nothing is sent to Logfire
logfire.configure(service_name="moya", token=settings.logfire_token, send_to_logfire="if-token-present")
setup_logging()
logger = get_logger(__name__)


async def build_services(settings: Settings) -> None:
    """Wire up the services into the API dependencies.

    A missing credential only disables the components that need it; the
    reason is kept in ``dependencies.startup_errors`` and reported by
    ``/health`` and by the endpoints that depend on the component.
    """
    try:
        backends = await create_storage_backends(settings)
    except ConfigurationError as e:
        logger.error("Storage unavailable", error=e.message)
        dependencies.startup_errors["storage"] = e
        return

    dependencies.library = LibraryService(backends.documents)
    if backends.supabase is not None:
        dependencies.authenticator = SupabaseAuthenticator(backends.supabase)
    else:
        dependencies.authenticator = StaticAuthenticator()

    try:
        embeddings = create_embedding_provider(settings)
    except ConfigurationError as e:
        dependencies.startup_errors["embeddings"] = e
        return
    memory = MemoryStore(backend=backends.fragments, embeddings=embeddings, settings=settings)
    dependencies.memory_store = memory

    try:
        streamer = ZhipuCompletionStreamer.from_settings(settings)
    except ConfigurationError as e:
        logger.error("Completion unavailable", error=e.message)
        dependencies.startup_errors["completion"] = e
        return

    dependencies.continuation = ContinuationService(
        assembler=PromptAssembler(embeddings, memory, settings),
        streamer=streamer,
        library=dependencies.library,
        settings=settings,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting Moya", storage_backend=settings.storage_backend, integrations=settings.integrations)
    try:
        await build_services(settings)
        if dependencies.startup_errors:
            logger.warning("Moya started with missing integrations", unavailable=sorted(dependencies.startup_errors))
        else:
            logger.info("Moya started")
        yield
    finally:
        logger.info("Shutting down Moya")
        dependencies.reset()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Moya API",
        description="Novel editor backend with memory-augmented story continuation",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable FastAPI instrumentation for request tracing
    logfire.instrument_fastapi(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApplicationError, ErrorHandler().handle_application_error)

    app.include_router(api_router, prefix="/api/v1")
    app.include_router(core.router)
    return app


app = create_app()


if __name__ == "__main__":
    logger.info("Starting Moya development server...")

    uvicorn.run("moya.main:app", host="0.0.0.0", port=8000, reload=settings.debug, log_level="info")
