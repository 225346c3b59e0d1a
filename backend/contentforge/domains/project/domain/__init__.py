"""Project domain types."""

from .entities import Project, ProjectStage, ProjectStrategy, SeoMetadata, TargetLanguage, WritingTone
from .stages import GenerationSlot, Trigger

__all__ = [
    "Project",
    "ProjectStage",
    "ProjectStrategy",
    "SeoMetadata",
    "TargetLanguage",
    "WritingTone",
    "GenerationSlot",
    "Trigger",
]
