"""Project repositories: remote SQL table and local JSON document."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from contentforge.db.base import Base
from contentforge.domains.project.domain.entities import Project
from contentforge.models.project import ProjectRow
from contentforge.schemas.project import decode_project, encode_project
from contentforge.shared_kernel.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class ProjectRepository(ABC):
    """Durable key-value store of projects keyed by id."""

    name: str = "abstract"

    @abstractmethod
    async def list_all(self) -> List[Project]:
        raise NotImplementedError

    @abstractmethod
    async def get(self, project_id: str) -> Optional[Project]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, project: Project) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, project_id: str) -> None:
        raise NotImplementedError

    async def dispose(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Remote backend
# ---------------------------------------------------------------------------

_DB_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class RemoteProjectRepository(ProjectRepository):
    """Projects table reached through SQLAlchemy's asyncio engine."""

    name = "remote"

    def __init__(self, url: URL | str, auto_create_schema: bool = True) -> None:
        self.engine = create_async_engine(url, pool_pre_ping=True)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)
        self._auto_create_schema = auto_create_schema
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        if self._schema_ready or not self._auto_create_schema:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True
            logger.info("Remote projects table ready")

    @staticmethod
    def _row_to_project(row: ProjectRow) -> Project:
        data = dict(row.data or {})
        data["id"] = row.id
        data["updatedAt"] = row.updated_at
        return decode_project(data)

    async def list_all(self) -> List[Project]:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(ProjectRow).order_by(ProjectRow.updated_at.desc())
                )
                rows = result.scalars().all()
        except _DB_ERRORS as exc:
            raise PersistenceError(
                "Failed to fetch projects from backend",
                code="REMOTE_READ_FAILED",
            ) from exc

        projects = []
        for row in rows:
            try:
                projects.append(self._row_to_project(row))
            except PydanticValidationError:
                logger.warning("Skipping unreadable project row %s", row.id)
        return projects

    async def get(self, project_id: str) -> Optional[Project]:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                row = await session.get(ProjectRow, project_id)
        except _DB_ERRORS as exc:
            raise PersistenceError(
                "Failed to fetch project from backend",
                code="REMOTE_READ_FAILED",
                details={"project_id": project_id},
            ) from exc
        return self._row_to_project(row) if row is not None else None

    async def save(self, project: Project) -> None:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                async with session.begin():
                    await session.merge(
                        ProjectRow(
                            id=project.id,
                            updated_at=project.updated_at,
                            data=encode_project(project),
                        )
                    )
        except _DB_ERRORS as exc:
            raise PersistenceError(
                "Failed to save to backend",
                code="REMOTE_SAVE_FAILED",
                details={"project_id": project.id},
            ) from exc

    async def delete(self, project_id: str) -> None:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                async with session.begin():
                    await session.execute(delete(ProjectRow).where(ProjectRow.id == project_id))
        except _DB_ERRORS as exc:
            raise PersistenceError(
                "Failed to delete from backend",
                code="REMOTE_DELETE_FAILED",
                details={"project_id": project_id},
            ) from exc

    async def dispose(self) -> None:
        await self.engine.dispose()


# ---------------------------------------------------------------------------
# Local backend
# ---------------------------------------------------------------------------

def _atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class LocalDocumentStore:
    """Single JSON document on disk holding namespaced collections.

    Every namespace shares the file, so read-modify-write cycles are
    serialized by one lock. Blocking I/O runs in worker threads.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        try:
            document = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Corrupt local store at %s, starting fresh", self.path)
            return {}
        if not isinstance(document, dict):
            logger.warning("Unexpected local store layout at %s, starting fresh", self.path)
            return {}
        return document

    async def read(self, namespace: str, default: Any = None) -> Any:
        try:
            document = await asyncio.to_thread(self._read_document)
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(
                f"Failed to read local store at {self.path}",
                code="LOCAL_READ_FAILED",
            ) from exc
        return document.get(namespace, default)

    async def update(self, namespace: str, mutate: Callable[[Any], Any]) -> Any:
        """Replace ``document[namespace]`` with ``mutate(current)``."""
        async with self._lock:
            try:
                document = await asyncio.to_thread(self._read_document)
                value = mutate(document.get(namespace))
                document[namespace] = value
                payload = json.dumps(document, ensure_ascii=False, indent=2)
                await asyncio.to_thread(_atomic_write_text, self.path, payload)
            except (OSError, UnicodeDecodeError) as exc:
                raise PersistenceError(
                    f"Failed to write local store at {self.path}",
                    code="LOCAL_WRITE_FAILED",
                ) from exc
            return value


class LocalProjectRepository(ProjectRepository):
    """Projects serialized as one list under a fixed namespace key."""

    name = "local"

    def __init__(self, store: LocalDocumentStore, namespace: str) -> None:
        self.store = store
        self.namespace = namespace

    async def _records(self) -> List[Dict[str, Any]]:
        records = await self.store.read(self.namespace, default=[])
        return records if isinstance(records, list) else []

    @staticmethod
    def _decode(record: Any) -> Optional[Project]:
        try:
            return decode_project(record)
        except PydanticValidationError:
            logger.warning("Skipping unreadable local project record")
            return None

    async def list_all(self) -> List[Project]:
        projects = [self._decode(record) for record in await self._records()]
        return [project for project in projects if project is not None]

    async def get(self, project_id: str) -> Optional[Project]:
        for record in await self._records():
            if isinstance(record, dict) and record.get("id") == project_id:
                return self._decode(record)
        return None

    async def save(self, project: Project) -> None:
        document = encode_project(project)

        def upsert(records: Any) -> List[Dict[str, Any]]:
            records = records if isinstance(records, list) else []
            for index, record in enumerate(records):
                if isinstance(record, dict) and record.get("id") == project.id:
                    updated = list(records)
                    updated[index] = document
                    return updated
            return [document, *records]

        await self.store.update(self.namespace, upsert)

    async def delete(self, project_id: str) -> None:
        def remove(records: Any) -> List[Dict[str, Any]]:
            records = records if isinstance(records, list) else []
            return [
                record for record in records
                if not (isinstance(record, dict) and record.get("id") == project_id)
            ]

        await self.store.update(self.namespace, remove)
