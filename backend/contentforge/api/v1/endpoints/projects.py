"""Projects endpoints"""
import logging

from fastapi import APIRouter, Depends, Query, status

from contentforge.api.deps import get_orchestrator, get_workspace, unwrap
from contentforge.domains.project.domain.entities import Project
from contentforge.schemas.project import (
    DraftUpdateRequest,
    MetadataUpdateRequest,
    OutlineApproveRequest,
    OutlineUpdateRequest,
    ProjectList,
    ProjectResponse,
    RevisionRequest,
    StrategyRequest,
    TitleSelectRequest,
)
from contentforge.services.orchestrator import GenerationOrchestrator
from contentforge.services.workspace import ProjectWorkspace

router = APIRouter()
logger = logging.getLogger(__name__)


def _serialize(workspace: ProjectWorkspace, project: Project) -> ProjectResponse:
    return ProjectResponse.from_entity(
        project,
        sync_status=workspace.sync_status(project.id).value,
        active=workspace.active_id == project.id,
        sync_error=workspace.sync_error(project.id),
    )


@router.get("/", response_model=ProjectList)
async def list_projects(
    refresh: bool = Query(False, description="Reload the list from the backend"),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """List projects, most recently updated first."""
    if refresh:
        unwrap(await orchestrator.reload())
    projects = [_serialize(workspace, project) for project in workspace.projects]
    return ProjectList(projects=projects, total=len(projects), backend=workspace.gateway.backend_name)


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Create a project at the strategy stage and make it active."""
    project = unwrap(await orchestrator.create_project())
    return _serialize(workspace, project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    refresh: bool = Query(False, description="Re-read the project from the backend"),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    if refresh:
        return _serialize(workspace, unwrap(await orchestrator.refresh_project(project_id)))
    return _serialize(workspace, workspace.get(project_id))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Delete a project; the project is kept when the backend refuses."""
    unwrap(await orchestrator.delete_project(project_id))
    logger.info("Project %s deleted", project_id)


@router.post("/{project_id}/open", response_model=ProjectResponse)
async def open_project(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """
    Make a project active.

    Entering a stage whose content is still empty runs the matching
    generation (titles, outline or draft) before responding.
    """
    project = unwrap(await orchestrator.open_project(project_id))
    return _serialize(workspace, project)


@router.post("/{project_id}/strategy", response_model=ProjectResponse)
async def submit_strategy(
    project_id: str,
    payload: StrategyRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Store the strategy, move to the titles stage and generate titles."""
    project = unwrap(await orchestrator.submit_strategy(project_id, payload.to_entity()))
    return _serialize(workspace, project)


@router.post("/{project_id}/titles/regenerate", response_model=ProjectResponse)
async def regenerate_titles(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(await orchestrator.regenerate_titles(project_id))
    return _serialize(workspace, project)


@router.post("/{project_id}/titles/select", response_model=ProjectResponse)
async def select_title(
    project_id: str,
    payload: TitleSelectRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(await orchestrator.select_title(project_id, payload.index))
    return _serialize(workspace, project)


@router.put("/{project_id}/outline", response_model=ProjectResponse)
async def update_outline(
    project_id: str,
    payload: OutlineUpdateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(await orchestrator.edit_outline(project_id, payload.outline))
    return _serialize(workspace, project)


@router.post("/{project_id}/outline/approve", response_model=ProjectResponse)
async def approve_outline(
    project_id: str,
    payload: OutlineApproveRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Approve the outline (optionally replacing its text) and write the draft."""
    project = unwrap(await orchestrator.approve_outline(project_id, payload.outline))
    return _serialize(workspace, project)


@router.put("/{project_id}/draft", response_model=ProjectResponse)
async def update_draft(
    project_id: str,
    payload: DraftUpdateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(await orchestrator.edit_draft(project_id, payload.draft))
    return _serialize(workspace, project)


@router.post("/{project_id}/draft/revise", response_model=ProjectResponse)
async def revise_draft(
    project_id: str,
    payload: RevisionRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Rewrite the draft following a free-text instruction."""
    project = unwrap(await orchestrator.revise_draft(project_id, payload.instruction))
    return _serialize(workspace, project)


@router.post("/{project_id}/metadata/generate", response_model=ProjectResponse)
async def generate_metadata(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(await orchestrator.generate_seo_metadata(project_id))
    return _serialize(workspace, project)


@router.put("/{project_id}/metadata", response_model=ProjectResponse)
async def update_metadata(
    project_id: str,
    payload: MetadataUpdateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    project = unwrap(
        await orchestrator.edit_metadata(
            project_id,
            slug=payload.slug,
            short_text=payload.short_text,
            intro_text=payload.intro_text,
        )
    )
    return _serialize(workspace, project)


@router.post("/{project_id}/complete", response_model=ProjectResponse)
async def complete_project(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Approve the draft; the project becomes read-only."""
    project = unwrap(await orchestrator.approve_draft(project_id))
    return _serialize(workspace, project)


@router.post("/{project_id}/sync", response_model=ProjectResponse)
async def retry_sync(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    workspace: ProjectWorkspace = Depends(get_workspace),
):
    """Retry persisting a project whose last save failed."""
    project = unwrap(await orchestrator.retry_sync(project_id))
    return _serialize(workspace, project)
