"""Memory Gateway FastAPI application.

Wires the retrieval, forwarding and deferred memory pipeline together in the
application lifespan and exposes the OpenAI-compatible completion route.
"""

# Configure Logfire and logging
# Pass token from environment if available
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import logfire
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from neo4j import AsyncDriver

from memory_gateway.api import dependencies
from memory_gateway.api import router as api_router
from memory_gateway.core.config import Settings, settings
from memory_gateway.core.handlers import register_exception_handlers
from memory_gateway.core.logging import get_logger, setup_logging
from memory_gateway.infrastructure.analytics import AnalyticsClient
from memory_gateway.infrastructure.embeddings.cache import EmbeddingCache
from memory_gateway.infrastructure.embeddings.voyage import VoyageEmbeddingService
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery, create_neo4j_driver, ensure_vector_indexes
from memory_gateway.infrastructure.provider.client import ProviderClient
from memory_gateway.infrastructure.repositories.account import AccountRepository
from memory_gateway.infrastructure.repositories.context import DocumentContextRepository
from memory_gateway.infrastructure.repositories.memory import MemoryRepository
from memory_gateway.infrastructure.repositories.request_log import RequestLogRepository
from memory_gateway.services.accounts import AccountResolver
from memory_gateway.services.audit import AuditLogger
from memory_gateway.services.background import DeferredWorkSupervisor
from memory_gateway.services.extraction import FactExtractor
from memory_gateway.services.forwarder import CompletionForwarder
from memory_gateway.services.gateway import GatewayService
from memory_gateway.services.reconciler import MemoryReconciler
from memory_gateway.services.retrieval import SimilarityRetriever

logfire.configure(
    service_name="memory-gateway",
    token=os.getenv("LOGFIRE_TOKEN"),
    send_to_logfire="if-token-present",
)
setup_logging()
logger = get_logger(__name__)


def build_gateway(
    config: Settings,
    driver: AsyncDriver,
    embeddings: VoyageEmbeddingService,
    provider: ProviderClient,
    analytics: AnalyticsClient,
) -> GatewayService:
    """Assemble the gateway pipeline from explicitly configured collaborators."""
    store_query = Neo4jQuery(driver, timeout=config.store_timeout)
    memories = MemoryRepository(store_query, candidate_multiplier=config.vector_candidate_multiplier)
    contexts = DocumentContextRepository(store_query, candidate_multiplier=config.vector_candidate_multiplier)
    accounts = AccountResolver(AccountRepository(store_query))

    return GatewayService(
        accounts=accounts,
        retriever=SimilarityRetriever(
            embeddings,
            memories,
            contexts,
            memory_threshold=config.memory_match_threshold,
            memory_count=config.memory_match_count,
            snippet_threshold=config.snippet_match_threshold,
            snippet_count=config.snippet_match_count,
        ),
        forwarder=CompletionForwarder(provider),
        extractor=FactExtractor(
            provider,
            model=config.extraction_model,
            temperature=config.extraction_temperature,
        ),
        reconciler=MemoryReconciler(embeddings, memories),
        audit=AuditLogger(
            analytics,
            RequestLogRepository(store_query),
            accounts,
            token_price=config.token_price,
        ),
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle: connect collaborators, serve, drain deferred work."""
    logger.info("Starting Memory Gateway application...")

    driver_resource = create_neo4j_driver(
        settings.neo4j_uri,
        settings.neo4j_user,
        settings.neo4j_password.get_secret_value(),
    )
    neo4j_driver = await anext(driver_resource)
    provider: ProviderClient | None = None
    analytics: AnalyticsClient | None = None
    supervisor = DeferredWorkSupervisor()

    try:
        await ensure_vector_indexes(neo4j_driver, dimensions=settings.embedding_dimensions)

        embedding_service = VoyageEmbeddingService(
            api_key=settings.voyage_api_key.get_secret_value() or None,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            timeout=settings.embedding_timeout,
            cache=(
                EmbeddingCache(Neo4jQuery(neo4j_driver, timeout=settings.store_timeout))
                if settings.embedding_cache_enabled
                else None
            ),
        )
        logger.info(
            "Embedding service ready",
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            cache=settings.embedding_cache_enabled,
        )

        provider = ProviderClient(
            base_url=settings.provider_base_url,
            timeout=settings.provider_timeout,
            default_api_key=settings.provider_api_key.get_secret_value() or None,
        )
        analytics = AnalyticsClient(
            url=settings.analytics_url,
            token=settings.analytics_token.get_secret_value() or None,
            timeout=settings.analytics_timeout,
        )
        if not analytics.enabled:
            logger.info("Analytics token not configured, usage events disabled")

        # Set global dependencies for API endpoints
        dependencies.gateway_service = build_gateway(settings, neo4j_driver, embedding_service, provider, analytics)
        dependencies.supervisor = supervisor

        logger.info("Memory Gateway application started successfully")
        yield  # Application is running

    except Exception as e:
        logger.error(f"Failed to start Memory Gateway: {e}", exc_info=True)
        raise

    finally:
        logger.info("Shutting down Memory Gateway...")
        await supervisor.drain(timeout=settings.deferred_shutdown_timeout)

        dependencies.gateway_service = None
        dependencies.supervisor = None

        if provider is not None:
            await provider.aclose()
        if analytics is not None:
            await analytics.aclose()
        await driver_resource.aclose()

        logger.info("Memory Gateway shutdown complete")


def create_app() -> FastAPI:
    """Create the FastAPI application with routes, middleware and error handlers."""
    application = FastAPI(
        title="Memory Gateway API",
        description="Memory-augmented gateway for OpenAI-compatible chat completions",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable FastAPI instrumentation for request tracing
    logfire.instrument_fastapi(application)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    """Development server entry point."""
    logger.info("Starting Memory Gateway development server...")

    uvicorn.run(
        "memory_gateway.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=settings.debug,
        log_level="info",
        access_log=True,
    )
