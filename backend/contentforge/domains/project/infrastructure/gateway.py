"""Persistence gateway: one resolved backend per call, local fallback for reads."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from contentforge.domains.project.domain.entities import Project
from contentforge.domains.project.infrastructure.repositories import (
    LocalDocumentStore,
    LocalProjectRepository,
    ProjectRepository,
    RemoteProjectRepository,
)
from contentforge.infrastructure.observability.metrics import PERSISTENCE_OPERATIONS
from contentforge.shared_kernel.exceptions import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


@dataclass(frozen=True)
class BackendConfig:
    """Connection parameters for the remote backend.

    ``url`` is a SQLAlchemy database URL and ``key`` the credential
    (database password) injected into it. Both must be set for remote
    mode; anything else means local-only.
    """

    url: Optional[str] = None
    key: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return bool((self.url or "").strip() and (self.key or "").strip())

    def database_url(self) -> URL:
        if not self.is_remote:
            raise ConfigurationError("Remote backend is not configured", code="BACKEND_NOT_CONFIGURED")
        try:
            url = make_url(self.url.strip())  # type: ignore[union-attr]
        except (ArgumentError, ValueError) as exc:
            raise ConfigurationError(
                "Backend URL is malformed",
                code="BACKEND_URL_INVALID",
            ) from exc
        drivername = _ASYNC_DRIVERS.get(url.drivername, url.drivername)
        return url.set(drivername=drivername, password=self.key.strip())  # type: ignore[union-attr]


class ConnectionSettingsStore:
    """User-entered connection settings kept in the local document.

    An entry with blank values is an explicit "local only" choice and
    still takes precedence over environment defaults.
    """

    def __init__(self, store: LocalDocumentStore, namespace: str) -> None:
        self.store = store
        self.namespace = namespace

    async def load(self) -> Optional[BackendConfig]:
        try:
            raw = await self.store.read(self.namespace)
        except PersistenceError:
            logger.exception("Failed to read stored backend settings")
            return None
        if not isinstance(raw, dict):
            return None
        return BackendConfig(url=raw.get("url") or None, key=raw.get("key") or None)

    async def save(self, config: BackendConfig) -> None:
        payload = {"url": (config.url or "").strip(), "key": (config.key or "").strip()}
        await self.store.update(self.namespace, lambda _current: payload)

    async def clear(self) -> None:
        await self.save(BackendConfig())


def resolve_startup_config(stored: Optional[BackendConfig], default: BackendConfig) -> BackendConfig:
    """Stored user settings win; environment values are the defaults."""
    return stored if stored is not None else default


RemoteFactory = Callable[[URL], ProjectRepository]


class PersistenceGateway:
    """Durable read/write/delete of projects over two interchangeable backends."""

    def __init__(
        self,
        local: LocalProjectRepository,
        config: Optional[BackendConfig] = None,
        remote_factory: Optional[RemoteFactory] = None,
        auto_create_schema: bool = True,
    ) -> None:
        self._local = local
        self._config = config or BackendConfig()
        self._remote: Optional[ProjectRepository] = None
        self._config_error: Optional[ConfigurationError] = None
        self._retired: List[ProjectRepository] = []
        self._remote_factory = remote_factory or (
            lambda url: RemoteProjectRepository(url, auto_create_schema=auto_create_schema)
        )

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def local(self) -> LocalProjectRepository:
        return self._local

    @property
    def backend_name(self) -> str:
        return self.resolve().name

    def configure(self, config: BackendConfig) -> None:
        """Swap connection parameters and invalidate the cached handle.

        The previous handle is retired rather than disposed, so calls that
        already resolved it complete against the backend they started with.
        """
        if self._remote is not None:
            self._retired.append(self._remote)
        self._remote = None
        self._config_error = None
        self._config = config
        logger.info("Backend configuration changed (remote=%s)", config.is_remote)

    def resolve(self) -> ProjectRepository:
        """Pick the backend for one call."""
        if not self._config.is_remote or self._config_error is not None:
            return self._local
        if self._remote is None:
            try:
                url = self._config.database_url()
                self._remote = self._remote_factory(url)
            except ConfigurationError as exc:
                self._config_error = exc
                logger.warning("Invalid backend settings, using local store: %s", exc)
                return self._local
            except (SQLAlchemyError, ImportError) as exc:
                self._config_error = ConfigurationError(
                    "Backend URL names an unsupported database or driver",
                    code="BACKEND_DIALECT_UNSUPPORTED",
                )
                logger.warning("Invalid backend settings, using local store: %s", exc)
                return self._local
        return self._remote

    async def list_projects(self) -> List[Project]:
        backend = self.resolve()
        try:
            projects = await backend.list_all()
            PERSISTENCE_OPERATIONS.labels(backend.name, "list", "success").inc()
        except PersistenceError as exc:
            PERSISTENCE_OPERATIONS.labels(backend.name, "list", "failure").inc()
            if backend is self._local:
                logger.error("Failed to load projects from local store: %s", exc)
                return []
            logger.error("Remote fetch failed, reading local store: %s", exc)
            try:
                projects = await self._local.list_all()
            except PersistenceError:
                logger.exception("Failed to load projects from local store")
                return []
        return sorted(projects, key=lambda project: project.updated_at, reverse=True)

    async def get_project(self, project_id: str) -> Optional[Project]:
        backend = self.resolve()
        try:
            return await backend.get(project_id)
        except PersistenceError as exc:
            if backend is self._local:
                logger.error("Failed to read project %s from local store: %s", project_id, exc)
                return None
            logger.error("Remote read failed for %s, reading local store: %s", project_id, exc)
            try:
                return await self._local.get(project_id)
            except PersistenceError:
                return None

    async def save_project(self, project: Project) -> None:
        """Upsert by id; failures surface instead of re-targeting another store."""
        backend = self.resolve()
        try:
            await backend.save(project)
        except PersistenceError:
            PERSISTENCE_OPERATIONS.labels(backend.name, "save", "failure").inc()
            logger.error("Save failed for project %s on %s backend", project.id, backend.name)
            raise
        PERSISTENCE_OPERATIONS.labels(backend.name, "save", "success").inc()

    async def delete_project(self, project_id: str) -> None:
        backend = self.resolve()
        try:
            await backend.delete(project_id)
        except PersistenceError:
            PERSISTENCE_OPERATIONS.labels(backend.name, "delete", "failure").inc()
            logger.error("Delete failed for project %s on %s backend", project_id, backend.name)
            raise
        PERSISTENCE_OPERATIONS.labels(backend.name, "delete", "success").inc()

    async def aclose(self) -> None:
        handles = list(self._retired)
        if self._remote is not None:
            handles.append(self._remote)
        self._retired = []
        self._remote = None
        for handle in handles:
            await handle.dispose()
