"""Pydantic schemas for request/response validation"""
from contentforge.schemas.project import (
    ProjectRecord,
    StrategyRecord,
    StrategyRequest,
    TitleSelectRequest,
    OutlineUpdateRequest,
    OutlineApproveRequest,
    DraftUpdateRequest,
    RevisionRequest,
    MetadataUpdateRequest,
    ProjectResponse,
    ProjectList,
    encode_project,
    decode_project,
)
from contentforge.schemas.settings import (
    BackendSettingsUpdate,
    BackendSettingsResponse,
)

__all__ = [
    "ProjectRecord",
    "StrategyRecord",
    "StrategyRequest",
    "TitleSelectRequest",
    "OutlineUpdateRequest",
    "OutlineApproveRequest",
    "DraftUpdateRequest",
    "RevisionRequest",
    "MetadataUpdateRequest",
    "ProjectResponse",
    "ProjectList",
    "encode_project",
    "decode_project",
    "BackendSettingsUpdate",
    "BackendSettingsResponse",
]
