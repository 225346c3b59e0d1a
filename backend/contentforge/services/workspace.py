"""In-memory project workspace with optimistic updates and durable commit."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Optional

from contentforge.domains.project.domain.entities import Project
from contentforge.domains.project.infrastructure.gateway import PersistenceGateway
from contentforge.infrastructure.event_bus import EventBus
from contentforge.infrastructure.resilience import async_retry
from contentforge.shared_kernel.domain_events import (
    DomainEvent,
    ProjectCreatedEvent,
    ProjectDeletedEvent,
    ProjectSyncStatusChangedEvent,
)
from contentforge.shared_kernel.exceptions import EntityNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    SYNCED = "SYNCED"
    PENDING = "PENDING"
    FAILED = "FAILED"


Mutation = Callable[[Project], object]


class ProjectWorkspace:
    """Ordered set of loaded projects plus the active selection.

    Mutations land on the in-memory project first and are then persisted.
    Saves for one id are serialized and always write the freshest state;
    a per-project revision counter tells whether the durable copy has
    caught up.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        event_bus: Optional[EventBus] = None,
        save_retries: int = 2,
        save_backoff: float = 0.5,
    ) -> None:
        self.gateway = gateway
        self.event_bus = event_bus
        self.save_retries = save_retries
        self.save_backoff = save_backoff
        self.active_id: Optional[str] = None
        self._order: List[str] = []
        self._projects: Dict[str, Project] = {}
        self._status: Dict[str, SyncStatus] = {}
        self._errors: Dict[str, str] = {}
        self._revisions: Dict[str, int] = defaultdict(int)
        self._saved: Dict[str, int] = defaultdict(int)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def projects(self) -> List[Project]:
        return [self._projects[project_id] for project_id in self._order]

    @property
    def active(self) -> Optional[Project]:
        if self.active_id is None:
            return None
        return self._projects.get(self.active_id)

    def get(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise EntityNotFoundError(
                f"Project {project_id} not found",
                code="PROJECT_NOT_FOUND",
                details={"project_id": project_id},
            )
        return project

    def sync_status(self, project_id: str) -> SyncStatus:
        return self._status.get(project_id, SyncStatus.SYNCED)

    def sync_error(self, project_id: str) -> Optional[str]:
        return self._errors.get(project_id)

    def revision(self, project_id: str) -> int:
        return self._revisions[project_id]

    async def load(self) -> List[Project]:
        """Replace the workspace contents with the backend's project list."""
        projects = await self.gateway.list_projects()
        self._order = [project.id for project in projects]
        self._projects = {project.id: project for project in projects}
        self._status = {project.id: SyncStatus.SYNCED for project in projects}
        self._errors = {}
        for project in projects:
            self._saved[project.id] = max(self._saved[project.id], self._revisions[project.id])
        if self.active_id not in self._projects:
            self.active_id = None
        logger.info("Loaded %d projects from %s backend", len(projects), self.gateway.backend_name)
        return self.projects

    def activate(self, project_id: str) -> Project:
        project = self.get(project_id)
        self.active_id = project_id
        return project

    async def create(self) -> Project:
        project = Project.new()
        self._projects[project.id] = project
        self._order.insert(0, project.id)
        self.active_id = project.id
        self._revisions[project.id] += 1
        await self._publish(ProjectCreatedEvent(project_id=project.id))
        await self._set_status(project.id, SyncStatus.PENDING)
        await self.commit(project.id)
        return project

    async def update(self, project_id: str, mutate: Mutation) -> Project:
        """Apply ``mutate`` optimistically, then persist.

        Args:
            project_id: Project to change.
            mutate: Callable applied to the live project; it must raise
                before touching the project when the change is rejected.

        Returns:
            The live project. A failed save leaves it in memory with
            sync status ``FAILED``.
        """
        project = self.get(project_id)
        mutate(project)
        project.touch()
        self._revisions[project_id] += 1
        await self._set_status(project_id, SyncStatus.PENDING)
        await self.commit(project_id)
        return project

    async def commit(self, project_id: str) -> Optional[PersistenceError]:
        """Persist the freshest state of ``project_id``; return the failure, if any."""
        async with self._locks[project_id]:
            project = self._projects.get(project_id)
            if project is None:
                return None
            revision = self._revisions[project_id]
            if self._saved[project_id] >= revision:
                return None
            snapshot = project.copy()
            try:
                await async_retry(
                    self.gateway.save_project,
                    snapshot,
                    retries=self.save_retries,
                    backoff=self.save_backoff,
                    exceptions=(PersistenceError,),
                )
            except PersistenceError as exc:
                logger.error("Project %s not saved: %s", project_id, exc.message)
                await self._set_status(project_id, SyncStatus.FAILED, exc.message)
                return exc
            self._saved[project_id] = max(self._saved[project_id], revision)
            if project_id in self._projects and self._revisions[project_id] == revision:
                await self._set_status(project_id, SyncStatus.SYNCED)
            return None

    async def retry_sync(self, project_id: str) -> Optional[PersistenceError]:
        self.get(project_id)
        return await self.commit(project_id)

    async def refresh(self, project_id: str) -> Project:
        """Re-read one project from the backend.

        A project with unsaved local changes keeps its in-memory state, and
        so does one the backend no longer returns. A project loaded by
        another client is added to the front of the workspace.
        """
        async with self._locks[project_id]:
            stored = await self.gateway.get_project(project_id)
            current = self._projects.get(project_id)
            if stored is None:
                return self.get(project_id)
            if current is not None and self.sync_status(project_id) != SyncStatus.SYNCED:
                logger.info("Project %s has unsaved changes; keeping local state", project_id)
                return current
            if current is None:
                self._order.insert(0, project_id)
            self._projects[project_id] = stored
            self._saved[project_id] = max(self._saved[project_id], self._revisions[project_id])
            await self._set_status(project_id, SyncStatus.SYNCED)
            return stored

    async def delete(self, project_id: str) -> None:
        """Remove the project, reverting the removal if the backend refuses."""
        project = self.get(project_id)
        position = self._order.index(project_id)
        was_active = self.active_id == project_id
        self._order.remove(project_id)
        del self._projects[project_id]
        if was_active:
            self.active_id = None

        async with self._locks[project_id]:
            try:
                await self.gateway.delete_project(project_id)
            except PersistenceError:
                self._projects[project_id] = project
                self._order.insert(min(position, len(self._order)), project_id)
                if was_active and self.active_id is None:
                    self.active_id = project_id
                logger.warning("Delete of %s failed; project restored", project_id)
                raise

        self._status.pop(project_id, None)
        self._errors.pop(project_id, None)
        self._revisions.pop(project_id, None)
        self._saved.pop(project_id, None)
        self._locks.pop(project_id, None)
        await self._publish(ProjectDeletedEvent(project_id=project_id))

    async def _set_status(self, project_id: str, status: SyncStatus, error: Optional[str] = None) -> None:
        previous = self._status.get(project_id)
        self._status[project_id] = status
        if error:
            self._errors[project_id] = error
        else:
            self._errors.pop(project_id, None)
        if previous != status:
            await self._publish(
                ProjectSyncStatusChangedEvent(project_id=project_id, status=status.value, error=error)
            )

    async def _publish(self, event: DomainEvent) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)
