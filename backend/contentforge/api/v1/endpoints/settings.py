"""Backend connection settings endpoints"""
from fastapi import APIRouter, Depends

from contentforge.api.deps import get_orchestrator, unwrap
from contentforge.schemas.settings import BackendSettingsResponse, BackendSettingsUpdate
from contentforge.services.orchestrator import GenerationOrchestrator

router = APIRouter()


def _describe(orchestrator: GenerationOrchestrator) -> BackendSettingsResponse:
    gateway = orchestrator.gateway
    config = gateway.config
    return BackendSettingsResponse(
        url=config.url,
        key_configured=bool((config.key or "").strip()),
        backend=gateway.backend_name,
    )


@router.get("/backend", response_model=BackendSettingsResponse)
async def get_backend_settings(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    """Current connection settings; the key itself is never returned."""
    return _describe(orchestrator)


@router.put("/backend", response_model=BackendSettingsResponse)
async def update_backend_settings(
    payload: BackendSettingsUpdate,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Store new connection settings and reload projects from that backend."""
    unwrap(await orchestrator.configure_backend(payload.url, payload.key))
    return _describe(orchestrator)


@router.delete("/backend", response_model=BackendSettingsResponse)
async def clear_backend_settings(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    """Forget the connection settings and switch to the local store."""
    unwrap(await orchestrator.clear_backend())
    return _describe(orchestrator)
