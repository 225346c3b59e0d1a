"""Project schemas: durable record shape and API payloads."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contentforge.domains.project.domain.entities import (
    Project,
    ProjectStage,
    ProjectStrategy,
    TargetLanguage,
    WritingTone,
)

_OPTIONAL_RECORD_KEYS = ("slug", "shortText", "introText")
_OPTIONAL_STRATEGY_KEYS = ("customTone", "customRules")


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StrategyRecord(BaseModel):
    """Strategy block of the durable record (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    audience: str = ""
    keywords: str = ""
    language: TargetLanguage = TargetLanguage.ENGLISH
    tone: WritingTone = WritingTone.PROFESSIONAL
    custom_tone: Optional[str] = Field(default=None, alias="customTone")
    custom_rules: Optional[str] = Field(default=None, alias="customRules")

    @classmethod
    def from_entity(cls, strategy: ProjectStrategy) -> "StrategyRecord":
        return cls(
            topic=strategy.topic,
            audience=strategy.audience,
            keywords=strategy.keywords,
            language=strategy.language,
            tone=strategy.tone,
            custom_tone=strategy.custom_tone,
            custom_rules=strategy.custom_rules,
        )

    def to_entity(self) -> ProjectStrategy:
        return ProjectStrategy(
            topic=self.topic,
            audience=self.audience,
            keywords=self.keywords,
            language=self.language,
            tone=self.tone,
            custom_tone=self.custom_tone,
            custom_rules=self.custom_rules,
        )


class ProjectRecord(BaseModel):
    """Durable form of a project, shared by the remote and local backends."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = "Untitled Project"
    updated_at: datetime = Field(alias="updatedAt")
    stage: ProjectStage = ProjectStage.STRATEGY
    strategy: StrategyRecord = Field(default_factory=StrategyRecord)
    generated_titles: List[str] = Field(default_factory=list, alias="generatedTitles")
    selected_title: Optional[str] = Field(default=None, alias="selectedTitle")
    outline: str = ""
    draft: str = ""
    revision_history: List[str] = Field(default_factory=list, alias="revisionHistory")
    slug: Optional[str] = None
    short_text: Optional[str] = Field(default=None, alias="shortText")
    intro_text: Optional[str] = Field(default=None, alias="introText")

    @field_validator("updated_at")
    @classmethod
    def normalize_updated_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("strategy", mode="before")
    @classmethod
    def default_empty_strategy(cls, v):
        """Older records stored an empty object (or nothing) before submission."""
        return v or {}

    @classmethod
    def from_entity(cls, project: Project) -> "ProjectRecord":
        return cls(
            id=project.id,
            name=project.name,
            updated_at=project.updated_at,
            stage=project.stage,
            strategy=StrategyRecord.from_entity(project.strategy),
            generated_titles=list(project.generated_titles),
            selected_title=project.selected_title,
            outline=project.outline,
            draft=project.draft,
            revision_history=list(project.revision_history),
            slug=project.slug,
            short_text=project.short_text,
            intro_text=project.intro_text,
        )

    def to_entity(self) -> Project:
        return Project(
            id=self.id,
            name=self.name,
            updated_at=self.updated_at,
            stage=self.stage,
            strategy=self.strategy.to_entity(),
            generated_titles=list(self.generated_titles),
            selected_title=self.selected_title,
            outline=self.outline,
            draft=self.draft,
            revision_history=list(self.revision_history),
            slug=self.slug,
            short_text=self.short_text,
            intro_text=self.intro_text,
        )

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready camelCase dict; unset optional fields are omitted."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in _OPTIONAL_RECORD_KEYS:
            if data.get(key) is None:
                data.pop(key, None)
        for key in _OPTIONAL_STRATEGY_KEYS:
            if data["strategy"].get(key) is None:
                data["strategy"].pop(key, None)
        return data


def encode_project(project: Project) -> Dict[str, Any]:
    return ProjectRecord.from_entity(project).to_document()


def decode_project(data: Dict[str, Any]) -> Project:
    return ProjectRecord.model_validate(data).to_entity()


# API payloads

class StrategyRequest(BaseModel):
    """Strategy form submitted at the first stage."""
    topic: str
    audience: str
    keywords: str = ""
    language: TargetLanguage = TargetLanguage.ENGLISH
    tone: WritingTone = WritingTone.PROFESSIONAL
    custom_tone: Optional[str] = None
    custom_rules: Optional[str] = None

    def to_entity(self) -> ProjectStrategy:
        return ProjectStrategy(
            topic=self.topic.strip(),
            audience=self.audience.strip(),
            keywords=self.keywords.strip(),
            language=self.language,
            tone=self.tone,
            custom_tone=self.custom_tone,
            custom_rules=self.custom_rules,
        )


class TitleSelectRequest(BaseModel):
    index: int = Field(..., ge=0)


class OutlineUpdateRequest(BaseModel):
    outline: str


class OutlineApproveRequest(BaseModel):
    outline: Optional[str] = None


class DraftUpdateRequest(BaseModel):
    draft: str


class RevisionRequest(BaseModel):
    instruction: str = Field(..., min_length=1)


class MetadataUpdateRequest(BaseModel):
    slug: Optional[str] = None
    short_text: Optional[str] = None
    intro_text: Optional[str] = None


class StrategyResponse(BaseModel):
    topic: str
    audience: str
    keywords: str
    language: TargetLanguage
    tone: WritingTone
    custom_tone: Optional[str] = None
    custom_rules: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    updated_at: datetime
    stage: ProjectStage
    strategy: StrategyResponse
    generated_titles: List[str]
    selected_title: Optional[str] = None
    outline: str
    draft: str
    revision_history: List[str]
    slug: Optional[str] = None
    short_text: Optional[str] = None
    intro_text: Optional[str] = None
    word_count: int
    read_only: bool
    sync_status: str
    sync_error: Optional[str] = None
    active: bool = False

    @classmethod
    def from_entity(
        cls,
        project: Project,
        sync_status: str,
        active: bool = False,
        sync_error: Optional[str] = None,
    ) -> "ProjectResponse":
        strategy = project.strategy
        return cls(
            id=project.id,
            name=project.name,
            updated_at=project.updated_at,
            stage=project.stage,
            strategy=StrategyResponse(
                topic=strategy.topic,
                audience=strategy.audience,
                keywords=strategy.keywords,
                language=strategy.language,
                tone=strategy.tone,
                custom_tone=strategy.custom_tone,
                custom_rules=strategy.custom_rules,
            ),
            generated_titles=list(project.generated_titles),
            selected_title=project.selected_title,
            outline=project.outline,
            draft=project.draft,
            revision_history=list(project.revision_history),
            slug=project.slug,
            short_text=project.short_text,
            intro_text=project.intro_text,
            word_count=project.word_count,
            read_only=project.read_only,
            sync_status=sync_status,
            sync_error=sync_error,
            active=active,
        )


class ProjectList(BaseModel):
    projects: List[ProjectResponse]
    total: int
    backend: str
