from datetime import timedelta

import pytest
from sqlalchemy.engine import make_url

from contentforge.domains.project.domain.entities import Project
from contentforge.domains.project.infrastructure.gateway import (
    BackendConfig,
    PersistenceGateway,
    resolve_startup_config,
)
from contentforge.domains.project.infrastructure.repositories import (
    ProjectRepository,
    RemoteProjectRepository,
)
from contentforge.shared_kernel.exceptions import ConfigurationError, PersistenceError


class UnreachableRepository(ProjectRepository):
    name = "remote"

    def __init__(self):
        self.disposed = False

    async def list_all(self):
        raise PersistenceError("Failed to fetch projects from backend", code="REMOTE_READ_FAILED")

    async def get(self, project_id):
        raise PersistenceError("Failed to fetch project from backend", code="REMOTE_READ_FAILED")

    async def save(self, project):
        raise PersistenceError("Failed to save to backend", code="REMOTE_SAVE_FAILED")

    async def delete(self, project_id):
        raise PersistenceError("Failed to delete from backend", code="REMOTE_DELETE_FAILED")

    async def dispose(self):
        self.disposed = True


def _sqlite_config(tmp_path, name):
    return BackendConfig(url=f"sqlite:///{tmp_path / name}", key="secret")


@pytest.mark.parametrize(
    "url, key, expected",
    [
        (None, None, False),
        ("postgresql://db.example.com/content", None, False),
        ("", "secret", False),
        ("   ", "secret", False),
        ("postgresql://db.example.com/content", "secret", True),
    ],
)
def test_remote_mode_needs_url_and_key(url, key, expected):
    assert BackendConfig(url=url, key=key).is_remote is expected


def test_database_url_upgrades_driver_and_injects_key():
    url = BackendConfig(url="postgres://writer@db.example.com:5432/content", key="s3cret").database_url()
    assert url.drivername == "postgresql+asyncpg"
    assert url.password == "s3cret"
    assert url.host == "db.example.com"
    assert make_url("sqlite+aiosqlite:///x.db").drivername == BackendConfig(
        url="sqlite:///x.db", key="k"
    ).database_url().drivername


def test_malformed_url_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        BackendConfig(url="not a url", key="k").database_url()


def test_stored_settings_win_over_environment():
    env = BackendConfig(url="postgresql://env/db", key="env")
    stored = BackendConfig(url="postgresql://user/db", key="user")
    assert resolve_startup_config(stored, env) == stored
    assert resolve_startup_config(None, env) == env
    assert resolve_startup_config(BackendConfig(), env).is_remote is False


@pytest.mark.asyncio
async def test_unconfigured_gateway_uses_local(gateway, local_repo):
    project = Project.new()
    await gateway.save_project(project)

    assert gateway.backend_name == "local"
    assert await local_repo.list_all() == [project]
    assert await gateway.get_project(project.id) == project


@pytest.mark.asyncio
async def test_list_is_sorted_newest_first(gateway):
    old, new = Project.new(), Project.new()
    old.updated_at = new.updated_at - timedelta(days=1)
    await gateway.save_project(new)
    await gateway.save_project(old)

    assert [project.id for project in await gateway.list_projects()] == [new.id, old.id]


@pytest.mark.asyncio
async def test_malformed_backend_settings_fall_back_to_local(local_repo):
    gateway = PersistenceGateway(local_repo, config=BackendConfig(url="::::", key="secret"))
    project = Project.new()
    await gateway.save_project(project)

    assert gateway.backend_name == "local"
    assert await local_repo.list_all() == [project]


@pytest.mark.asyncio
async def test_missing_database_driver_falls_back_to_local(local_repo):
    attempts = []

    def missing_driver(url):
        attempts.append(url)
        raise ModuleNotFoundError("No module named 'psycopg2'")

    gateway = PersistenceGateway(
        local_repo,
        config=BackendConfig(url="postgresql+psycopg2://db/content", key="secret"),
        remote_factory=missing_driver,
    )
    project = Project.new()
    await gateway.save_project(project)

    assert gateway.backend_name == "local"
    assert await gateway.list_projects() == [project]
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_remote_read_failure_falls_back_to_local(local_repo):
    cached = Project.new()
    await local_repo.save(cached)
    gateway = PersistenceGateway(
        local_repo,
        config=BackendConfig(url="postgresql://db/content", key="k"),
        remote_factory=lambda url: UnreachableRepository(),
    )

    assert await gateway.list_projects() == [cached]
    assert await gateway.get_project(cached.id) == cached


@pytest.mark.asyncio
async def test_failed_remote_save_does_not_touch_local(local_repo):
    gateway = PersistenceGateway(
        local_repo,
        config=BackendConfig(url="postgresql://db/content", key="k"),
        remote_factory=lambda url: UnreachableRepository(),
    )

    with pytest.raises(PersistenceError) as exc_info:
        await gateway.save_project(Project.new())
    assert exc_info.value.message == "Failed to save to backend"
    assert await local_repo.list_all() == []


@pytest.mark.asyncio
async def test_failed_remote_delete_surfaces(local_repo):
    gateway = PersistenceGateway(
        local_repo,
        config=BackendConfig(url="postgresql://db/content", key="k"),
        remote_factory=lambda url: UnreachableRepository(),
    )
    with pytest.raises(PersistenceError):
        await gateway.delete_project("some-id")


@pytest.mark.asyncio
async def test_remote_handle_is_cached_until_reconfigured(local_repo):
    built = []

    def factory(url):
        repo = UnreachableRepository()
        built.append(repo)
        return repo

    gateway = PersistenceGateway(
        local_repo,
        config=BackendConfig(url="postgresql://db/content", key="k"),
        remote_factory=factory,
    )
    first = gateway.resolve()
    assert gateway.resolve() is first

    gateway.configure(BackendConfig(url="postgresql://db/other", key="k"))
    second = gateway.resolve()
    assert second is not first
    assert first.disposed is False
    assert len(built) == 2

    await gateway.aclose()
    assert first.disposed and second.disposed


@pytest.mark.asyncio
async def test_switching_backend_lists_only_new_backend(tmp_path, local_repo):
    gateway = PersistenceGateway(local_repo, config=_sqlite_config(tmp_path, "a.db"))
    try:
        in_a = Project.new()
        await gateway.save_project(in_a)
        assert gateway.backend_name == "remote"

        gateway.configure(_sqlite_config(tmp_path, "b.db"))
        in_b = Project.new()
        await gateway.save_project(in_b)
        assert [project.id for project in await gateway.list_projects()] == [in_b.id]

        gateway.configure(BackendConfig())
        assert await gateway.list_projects() == []

        gateway.configure(_sqlite_config(tmp_path, "a.db"))
        assert [project.id for project in await gateway.list_projects()] == [in_a.id]
    finally:
        await gateway.aclose()


@pytest.mark.asyncio
async def test_in_flight_call_keeps_its_backend(tmp_path, local_repo):
    gateway = PersistenceGateway(local_repo, config=_sqlite_config(tmp_path, "a.db"))
    try:
        handle = gateway.resolve()
        gateway.configure(BackendConfig())
        project = Project.new()
        await handle.save(project)

        assert isinstance(handle, RemoteProjectRepository)
        assert await handle.get(project.id) == project
        assert await local_repo.list_all() == []
    finally:
        await gateway.aclose()
