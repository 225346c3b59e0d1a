"""Project bounded context."""

from .domain.entities import Project, ProjectStage, ProjectStrategy, SeoMetadata
from .infrastructure.gateway import BackendConfig, PersistenceGateway

__all__ = [
    "Project",
    "ProjectStage",
    "ProjectStrategy",
    "SeoMetadata",
    "BackendConfig",
    "PersistenceGateway",
]
