"""Service registration for the DI container."""
from __future__ import annotations

from datetime import timedelta
from typing import Optional

from contentforge.core.config import Settings, settings
from contentforge.domains.project.infrastructure.gateway import (
    BackendConfig,
    ConnectionSettingsStore,
    PersistenceGateway,
)
from contentforge.domains.project.infrastructure.repositories import (
    LocalDocumentStore,
    LocalProjectRepository,
)
from contentforge.infrastructure.di.container import Container
from contentforge.infrastructure.di.scopes import Scope
from contentforge.infrastructure.event_bus import EventBus, InMemoryEventBus, log_domain_event
from contentforge.infrastructure.resilience import CircuitBreaker
from contentforge.services.content_generator import ContentGenerator
from contentforge.services.llm_client import LLMClient
from contentforge.services.orchestrator import GenerationOrchestrator
from contentforge.services.workspace import ProjectWorkspace


def default_backend_config(app_settings: Settings) -> BackendConfig:
    """Environment-provided connection defaults."""
    return BackendConfig(url=app_settings.BACKEND_URL, key=app_settings.BACKEND_KEY)


def _event_bus() -> InMemoryEventBus:
    bus = InMemoryEventBus()
    bus.subscribe_all(log_domain_event)
    return bus


def configure_container(container: Container, app_settings: Optional[Settings] = None) -> None:
    """Configure application dependencies."""
    cfg = app_settings or settings

    # Persistence
    container.register(LocalDocumentStore, lambda c: LocalDocumentStore(cfg.LOCAL_STORE_PATH), Scope.SINGLETON)
    container.register(
        LocalProjectRepository,
        lambda c: LocalProjectRepository(c.resolve(LocalDocumentStore), cfg.LOCAL_STORE_NAMESPACE),
        Scope.SINGLETON,
    )
    container.register(
        ConnectionSettingsStore,
        lambda c: ConnectionSettingsStore(c.resolve(LocalDocumentStore), cfg.SETTINGS_NAMESPACE),
        Scope.SINGLETON,
    )
    container.register(
        PersistenceGateway,
        lambda c: PersistenceGateway(
            c.resolve(LocalProjectRepository),
            config=default_backend_config(cfg),
            auto_create_schema=cfg.BACKEND_AUTO_CREATE_SCHEMA,
        ),
        Scope.SINGLETON,
    )

    # Generation
    container.register(LLMClient, lambda c: LLMClient(), Scope.SINGLETON)
    container.register(
        ContentGenerator,
        lambda c: ContentGenerator(
            llm_client=c.resolve(LLMClient),
            breaker=CircuitBreaker(
                name="llm",
                failure_threshold=cfg.LLM_CIRCUIT_FAILURE_THRESHOLD,
                recovery_timeout=timedelta(seconds=cfg.LLM_CIRCUIT_RECOVERY_SECONDS),
            ),
            timeout=cfg.GENERATION_TIMEOUT,
            seo_draft_max_chars=cfg.SEO_DRAFT_MAX_CHARS,
        ),
        Scope.SINGLETON,
    )

    # Workflow
    container.register(EventBus, lambda c: _event_bus(), Scope.SINGLETON)
    container.register(
        ProjectWorkspace,
        lambda c: ProjectWorkspace(
            c.resolve(PersistenceGateway),
            event_bus=c.resolve(EventBus),
            save_retries=cfg.SAVE_RETRIES,
            save_backoff=cfg.SAVE_RETRY_BACKOFF,
        ),
        Scope.SINGLETON,
    )
    container.register(
        GenerationOrchestrator,
        lambda c: GenerationOrchestrator(
            c.resolve(ProjectWorkspace),
            c.resolve(ContentGenerator),
            settings_store=c.resolve(ConnectionSettingsStore),
            event_bus=c.resolve(EventBus),
        ),
        Scope.SINGLETON,
    )


def get_configured_container() -> Container:
    """Return a configured container instance."""
    container = Container.get_instance()
    if not container.is_registered(GenerationOrchestrator):
        configure_container(container)
    return container
