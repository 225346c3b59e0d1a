"""Project domain entities."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

DEFAULT_PROJECT_NAME = "Untitled Project"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ProjectStage(str, Enum):
    STRATEGY = "STRATEGY"
    TITLES = "TITLES"
    OUTLINE = "OUTLINE"
    DRAFTING = "DRAFTING"
    REVIEW = "REVIEW"
    COMPLETED = "COMPLETED"


class WritingTone(str, Enum):
    PROFESSIONAL = "Professional/Authoritative"
    CONVERSATIONAL = "Conversational/Casual"
    PERSUASIVE = "Persuasive/Sales"
    EDUCATIONAL = "Educational/How-to"
    JOURNALISTIC = "Journalistic"
    CUSTOM = "Custom"


class TargetLanguage(str, Enum):
    ENGLISH = "English"
    CHINESE = "Simplified Chinese"


@dataclass
class ProjectStrategy:
    """Creative and SEO brief driving every generation call."""

    topic: str = ""
    audience: str = ""
    keywords: str = ""
    language: TargetLanguage = TargetLanguage.ENGLISH
    tone: WritingTone = WritingTone.PROFESSIONAL
    custom_tone: Optional[str] = None
    custom_rules: Optional[str] = None

    @property
    def effective_tone(self) -> str:
        if self.tone == WritingTone.CUSTOM and (self.custom_tone or "").strip():
            return self.custom_tone.strip()  # type: ignore[union-attr]
        return self.tone.value

    @property
    def rules(self) -> str:
        return (self.custom_rules or "").strip()


@dataclass(frozen=True)
class SeoMetadata:
    slug: str = ""
    short_text: str = ""
    intro_text: str = ""


@dataclass
class Project:
    """Aggregate root for a content project."""

    id: str
    name: str
    updated_at: datetime
    stage: ProjectStage
    strategy: ProjectStrategy
    generated_titles: List[str] = field(default_factory=list)
    selected_title: Optional[str] = None
    outline: str = ""
    draft: str = ""
    revision_history: List[str] = field(default_factory=list)
    slug: Optional[str] = None
    short_text: Optional[str] = None
    intro_text: Optional[str] = None

    @classmethod
    def new(cls) -> "Project":
        return cls(
            id=str(uuid4()),
            name=DEFAULT_PROJECT_NAME,
            updated_at=utc_now(),
            stage=ProjectStage.STRATEGY,
            strategy=ProjectStrategy(),
        )

    @property
    def read_only(self) -> bool:
        return self.stage == ProjectStage.COMPLETED

    @property
    def word_count(self) -> int:
        if not self.draft.strip():
            return 0
        return len(self.draft.split())

    def touch(self) -> None:
        self.updated_at = utc_now()

    def copy(self) -> "Project":
        """Deep copy, so snapshots never alias live state."""
        return copy.deepcopy(self)
