"""Persona Coach API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CoachError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, scorer, transcript store and registry built on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - App-scoped services live on app.state so tests can install fakes without
      running the lifespan
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coach.api.error_handlers import register_error_handlers
from coach.api.routes import conversations, health, transcripts
from coach.config import Settings, get_settings
from coach.core.repository_protocols import EvaluationPersistence, TranscriptScorer
from coach.infrastructure.anthropic_client import ResilientAnthropicClient
from coach.infrastructure.database import init_db
from coach.infrastructure.observability import setup_logging
from coach.infrastructure.participation_log_repository import SqlParticipationLogRepository
from coach.infrastructure.transcript_store import LocalTranscriptStore
from coach.infrastructure.voice_transport import ElevenLabsVoiceTransport
from coach.services.conversation_registry import ConversationFactory, ConversationRegistry
from coach.services.transcript_scorer import AnthropicTranscriptScorer

logger = logging.getLogger(__name__)


def build_registry(
    settings: Settings,
    *,
    scorer: TranscriptScorer,
    persistence: EvaluationPersistence,
    transcript_store: LocalTranscriptStore,
) -> ConversationRegistry:
    def transport_factory(agent_id: str) -> ElevenLabsVoiceTransport:
        return ElevenLabsVoiceTransport(
            agent_id,
            settings.elevenlabs_api_key,
            base_url=settings.elevenlabs_base_url,
            timeout_seconds=settings.elevenlabs_timeout_seconds,
        )

    return ConversationRegistry(ConversationFactory(
        scorer=scorer,
        persistence=persistence,
        transcript_store=transcript_store,
        transport_factory=transport_factory,
        warning_seconds=settings.time_limit_warning_seconds,
        export_attempts=settings.export_max_attempts,
        export_delay_ms=settings.export_retry_delay_ms,
    ))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    client = ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    store = LocalTranscriptStore(settings.transcript_dir, settings.transcript_base_url)
    app.state.transcript_store = store
    app.state.registry = build_registry(
        settings,
        scorer=AnthropicTranscriptScorer(
            client, settings.scorer_model, settings.scorer_max_tokens,
        ),
        persistence=SqlParticipationLogRepository(manager.session),
        transcript_store=store,
    )
    logger.info("Persona Coach API started")
    yield
    logger.info("Persona Coach API shutting down")
    await app.state.registry.close()
    await manager.close()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Persona Coach API", version="1.0.0", lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(transcripts.router)
    register_error_handlers(app)
    return app


app = create_app()
