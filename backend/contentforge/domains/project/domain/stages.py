"""Stage state machine for content projects.

Every stage change goes through ``TRANSITIONS``; nothing else writes
``Project.stage``. The functions here mutate the project they are given
and raise before touching it when a guard fails, so callers can apply
them to the live in-memory project as an optimistic update.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from contentforge.domains.project.domain.entities import (
    Project,
    ProjectStage,
    ProjectStrategy,
    SeoMetadata,
)
from contentforge.shared_kernel.exceptions import InvalidTransitionError, ValidationError


class Trigger(str, Enum):
    SUBMIT_STRATEGY = "submit_strategy"
    SELECT_TITLE = "select_title"
    APPROVE_OUTLINE = "approve_outline"
    APPROVE_DRAFT = "approve_draft"


class GenerationSlot(str, Enum):
    TITLES = "titles"
    OUTLINE = "outline"
    DRAFT = "draft"
    METADATA = "metadata"


DRAFT_STAGES: FrozenSet[ProjectStage] = frozenset({ProjectStage.DRAFTING, ProjectStage.REVIEW})

TRANSITIONS: Dict[Tuple[ProjectStage, Trigger], ProjectStage] = {
    (ProjectStage.STRATEGY, Trigger.SUBMIT_STRATEGY): ProjectStage.TITLES,
    (ProjectStage.TITLES, Trigger.SELECT_TITLE): ProjectStage.OUTLINE,
    (ProjectStage.OUTLINE, Trigger.APPROVE_OUTLINE): ProjectStage.DRAFTING,
    (ProjectStage.DRAFTING, Trigger.APPROVE_DRAFT): ProjectStage.COMPLETED,
    (ProjectStage.REVIEW, Trigger.APPROVE_DRAFT): ProjectStage.COMPLETED,
}

# Stages in which a generation slot's result is still relevant.
SLOT_STAGES: Dict[GenerationSlot, FrozenSet[ProjectStage]] = {
    GenerationSlot.TITLES: frozenset({ProjectStage.TITLES}),
    GenerationSlot.OUTLINE: frozenset({ProjectStage.OUTLINE}),
    GenerationSlot.DRAFT: DRAFT_STAGES,
    GenerationSlot.METADATA: DRAFT_STAGES,
}

_ORDER = {stage: index for index, stage in enumerate(ProjectStage)}


def stage_rank(stage: ProjectStage) -> int:
    """Position in the workflow; DRAFTING and REVIEW share a rank."""
    if stage == ProjectStage.REVIEW:
        return _ORDER[ProjectStage.DRAFTING]
    return _ORDER[stage]


def next_stage(stage: ProjectStage, trigger: Trigger) -> ProjectStage:
    target = TRANSITIONS.get((stage, trigger))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {trigger.value.replace('_', ' ')} while the project is in {stage.value}",
            code="INVALID_TRANSITION",
            details={"stage": stage.value, "trigger": trigger.value},
        )
    return target


def _advance(project: Project, trigger: Trigger) -> ProjectStage:
    target = next_stage(project.stage, trigger)
    if stage_rank(target) <= stage_rank(project.stage):
        raise InvalidTransitionError(
            f"Stage cannot move backward from {project.stage.value} to {target.value}",
            code="BACKWARD_TRANSITION",
            details={"stage": project.stage.value, "target": target.value},
        )
    project.stage = target
    return target


def require_stage(project: Project, allowed: Iterable[ProjectStage], action: str) -> None:
    allowed = frozenset(allowed)
    if project.stage not in allowed:
        if project.read_only:
            message = f"Project is completed and read-only; cannot {action}"
        else:
            names = ", ".join(sorted(stage.value for stage in allowed))
            message = f"Cannot {action} while the project is in {project.stage.value} (allowed: {names})"
        raise InvalidTransitionError(
            message,
            code="STAGE_GUARD",
            details={"stage": project.stage.value, "action": action},
        )


def validate_strategy(strategy: ProjectStrategy) -> None:
    missing = [
        name for name in ("topic", "audience")
        if not (getattr(strategy, name) or "").strip()
    ]
    if missing:
        raise ValidationError(
            f"Strategy is missing required fields: {', '.join(missing)}",
            code="STRATEGY_INCOMPLETE",
            details={"missing": missing},
        )


# Transitions

def submit_strategy(project: Project, strategy: ProjectStrategy) -> ProjectStage:
    next_stage(project.stage, Trigger.SUBMIT_STRATEGY)
    validate_strategy(strategy)
    project.strategy = strategy
    return _advance(project, Trigger.SUBMIT_STRATEGY)


def select_title(project: Project, index: int) -> ProjectStage:
    next_stage(project.stage, Trigger.SELECT_TITLE)
    if project.selected_title is not None:
        raise InvalidTransitionError(
            "A title has already been selected",
            code="TITLE_ALREADY_SELECTED",
        )
    if not 0 <= index < len(project.generated_titles):
        raise ValidationError(
            f"Title index {index} is out of range for {len(project.generated_titles)} titles",
            code="TITLE_INDEX_OUT_OF_RANGE",
            details={"index": index, "count": len(project.generated_titles)},
        )
    title = project.generated_titles[index]
    project.selected_title = title
    project.name = title
    return _advance(project, Trigger.SELECT_TITLE)


def approve_outline(project: Project, outline: Optional[str] = None) -> ProjectStage:
    next_stage(project.stage, Trigger.APPROVE_OUTLINE)
    text = project.outline if outline is None else outline
    if not text.strip():
        raise ValidationError("The outline is empty", code="OUTLINE_EMPTY")
    project.outline = text
    return _advance(project, Trigger.APPROVE_OUTLINE)


def approve_draft(project: Project) -> ProjectStage:
    return _advance(project, Trigger.APPROVE_DRAFT)


# Same-stage operations

def replace_titles(project: Project, titles: Iterable[str]) -> None:
    require_stage(project, SLOT_STAGES[GenerationSlot.TITLES], "replace titles")
    project.generated_titles = list(titles)


def edit_outline(project: Project, outline: str) -> None:
    require_stage(project, SLOT_STAGES[GenerationSlot.OUTLINE], "edit the outline")
    project.outline = outline


def edit_draft(project: Project, draft: str) -> None:
    require_stage(project, DRAFT_STAGES, "edit the draft")
    project.draft = draft


def apply_revision(project: Project, draft: str, instruction: str) -> None:
    require_stage(project, DRAFT_STAGES, "revise the draft")
    project.draft = draft
    project.revision_history.append(instruction)


def edit_metadata(
    project: Project,
    slug: Optional[str] = None,
    short_text: Optional[str] = None,
    intro_text: Optional[str] = None,
) -> None:
    require_stage(project, DRAFT_STAGES, "edit SEO metadata")
    if slug is not None:
        project.slug = slug
    if short_text is not None:
        project.short_text = short_text
    if intro_text is not None:
        project.intro_text = intro_text


def apply_metadata(project: Project, metadata: SeoMetadata) -> None:
    edit_metadata(
        project,
        slug=metadata.slug,
        short_text=metadata.short_text,
        intro_text=metadata.intro_text,
    )


def pending_generation(project: Project) -> Optional[GenerationSlot]:
    """Generation a stage entry needs, or ``None`` when the field is filled."""
    if project.stage == ProjectStage.TITLES and not project.generated_titles:
        return GenerationSlot.TITLES
    if project.stage == ProjectStage.OUTLINE and not project.outline.strip():
        return GenerationSlot.OUTLINE
    if project.stage in DRAFT_STAGES and not project.draft.strip() and project.outline.strip():
        return GenerationSlot.DRAFT
    return None


def slot_is_current(project: Project, slot: GenerationSlot) -> bool:
    return project.stage in SLOT_STAGES[slot]
