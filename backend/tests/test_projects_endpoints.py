from types import SimpleNamespace

import pytest

from conftest import TITLES
from contentforge.api import deps
from contentforge.api.v1.endpoints import projects as projects_module
from contentforge.domains.project.domain.entities import ProjectStage
from contentforge.infrastructure.di.container import Container
from contentforge.schemas.project import (
    DraftUpdateRequest,
    MetadataUpdateRequest,
    OutlineApproveRequest,
    OutlineUpdateRequest,
    RevisionRequest,
    StrategyRequest,
    TitleSelectRequest,
)
from contentforge.services.orchestrator import GenerationOrchestrator
from contentforge.services.workspace import ProjectWorkspace
from contentforge.shared_kernel.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
)


def _strategy_request():
    return StrategyRequest(topic=" Remote Work ", audience="HR Managers", keywords="remote,engagement")


def _deps(orchestrator, workspace):
    return {"orchestrator": orchestrator, "workspace": workspace}


def test_dependencies_resolve_from_app_container(orchestrator, workspace):
    container = Container()
    container.register_instance(GenerationOrchestrator, orchestrator)
    container.register_instance(ProjectWorkspace, workspace)
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(container=container)))

    assert deps.get_orchestrator(request) is orchestrator
    assert deps.get_workspace(request) is workspace


@pytest.mark.asyncio
async def test_create_and_list_projects(orchestrator, workspace):
    first = await projects_module.create_project(**_deps(orchestrator, workspace))
    second = await projects_module.create_project(**_deps(orchestrator, workspace))

    listing = await projects_module.list_projects(refresh=False, **_deps(orchestrator, workspace))

    assert [project.id for project in listing.projects] == [second.id, first.id]
    assert listing.total == 2
    assert listing.backend == "local"
    assert listing.projects[0].active is True
    assert listing.projects[1].active is False
    assert first.stage == ProjectStage.STRATEGY
    assert first.sync_status == "SYNCED"


@pytest.mark.asyncio
async def test_list_with_refresh_reloads_from_backend(orchestrator, workspace, local_repo):
    created = await projects_module.create_project(**_deps(orchestrator, workspace))
    await local_repo.delete(created.id)

    listing = await projects_module.list_projects(refresh=True, **_deps(orchestrator, workspace))

    assert listing.projects == []


@pytest.mark.asyncio
async def test_get_unknown_project_raises_not_found(orchestrator, workspace):
    with pytest.raises(EntityNotFoundError):
        await projects_module.get_project("missing", refresh=False, **_deps(orchestrator, workspace))
    with pytest.raises(EntityNotFoundError):
        await projects_module.get_project("missing", refresh=True, **_deps(orchestrator, workspace))


@pytest.mark.asyncio
async def test_get_with_refresh_rereads_backend_copy(orchestrator, workspace, local_repo):
    created = await projects_module.create_project(**_deps(orchestrator, workspace))
    stored = await local_repo.get(created.id)
    stored.name = "Renamed elsewhere"
    await local_repo.save(stored)

    cached = await projects_module.get_project(created.id, refresh=False, **_deps(orchestrator, workspace))
    refreshed = await projects_module.get_project(created.id, refresh=True, **_deps(orchestrator, workspace))

    assert cached.name == "Untitled Project"
    assert refreshed.name == "Renamed elsewhere"
    assert refreshed.sync_status == "SYNCED"
    assert workspace.get(created.id).name == "Renamed elsewhere"


@pytest.mark.asyncio
async def test_full_workflow_through_endpoints(orchestrator, workspace, generator):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id

    titles = await projects_module.submit_strategy(project_id, _strategy_request(), **both)
    assert titles.stage == ProjectStage.TITLES
    assert titles.generated_titles == TITLES
    assert titles.strategy.topic == "Remote Work"

    outline = await projects_module.select_title(project_id, TitleSelectRequest(index=1), **both)
    assert outline.stage == ProjectStage.OUTLINE
    assert outline.selected_title == TITLES[1]
    assert outline.name == TITLES[1]
    assert outline.outline.startswith(f"## {TITLES[1]}")

    edited = await projects_module.update_outline(project_id, OutlineUpdateRequest(outline="## Mine"), **both)
    assert edited.outline == "## Mine"

    drafting = await projects_module.approve_outline(project_id, OutlineApproveRequest(), **both)
    assert drafting.stage == ProjectStage.DRAFTING
    assert drafting.draft.startswith(f"# {TITLES[1]}")
    assert drafting.word_count > 0

    revised = await projects_module.revise_draft(project_id, RevisionRequest(instruction="Add a table"), **both)
    assert revised.draft.endswith("Add a table")
    assert revised.revision_history == ["Add a table"]

    metadata = await projects_module.generate_metadata(project_id, **both)
    assert metadata.slug == "remote-work"
    assert metadata.short_text == "Short summary."

    tweaked = await projects_module.update_metadata(project_id, MetadataUpdateRequest(slug="custom-slug"), **both)
    assert tweaked.slug == "custom-slug"
    assert tweaked.intro_text == "Hook."

    completed = await projects_module.complete_project(project_id, **both)
    assert completed.stage == ProjectStage.COMPLETED
    assert completed.read_only is True

    with pytest.raises(InvalidTransitionError):
        await projects_module.update_draft(project_id, DraftUpdateRequest(draft="late edit"), **both)
    assert generator.calls == ["titles", "outline", "draft", "revision", "seo_metadata"]


@pytest.mark.asyncio
async def test_incomplete_strategy_is_rejected(orchestrator, workspace):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id

    with pytest.raises(ValidationError):
        await projects_module.submit_strategy(
            project_id, StrategyRequest(topic="  ", audience="HR"), **both
        )
    assert workspace.get(project_id).stage == ProjectStage.STRATEGY


@pytest.mark.asyncio
async def test_regenerate_titles_outside_titles_stage_conflicts(orchestrator, workspace):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id

    with pytest.raises(InvalidTransitionError):
        await projects_module.regenerate_titles(project_id, **both)


@pytest.mark.asyncio
async def test_open_project_generates_missing_titles(orchestrator, workspace, generator):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id
    generator.fail.add("titles")
    failed = await orchestrator.submit_strategy(project_id, _strategy_request().to_entity())
    assert failed.is_failure
    assert workspace.get(project_id).stage == ProjectStage.TITLES

    generator.fail.clear()
    opened = await projects_module.open_project(project_id, **both)

    assert opened.generated_titles == TITLES
    assert opened.active is True


@pytest.mark.asyncio
async def test_delete_project_endpoint(orchestrator, workspace):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id

    result = await projects_module.delete_project(project_id, orchestrator=orchestrator)

    assert result is None
    assert workspace.projects == []


@pytest.mark.asyncio
async def test_retry_sync_endpoint_surfaces_persistent_failure(orchestrator, workspace, monkeypatch):
    both = _deps(orchestrator, workspace)
    project_id = (await projects_module.create_project(**both)).id

    async def failing_save(project):
        raise PersistenceError("Failed to save to backend", code="REMOTE_SAVE_FAILED")

    monkeypatch.setattr(workspace.gateway, "save_project", failing_save)
    renamed = await projects_module.submit_strategy(project_id, _strategy_request(), **both)
    assert renamed.sync_status == "FAILED"
    assert renamed.sync_error == "Failed to save to backend"

    with pytest.raises(PersistenceError):
        await projects_module.retry_sync(project_id, **both)

    monkeypatch.undo()
    synced = await projects_module.retry_sync(project_id, **both)
    assert synced.sync_status == "SYNCED"
    assert synced.sync_error is None
