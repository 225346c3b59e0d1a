"""Generation orchestrator: drives the stage workflow and the content generator."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from contentforge.domains.project.domain import stages
from contentforge.domains.project.domain.entities import (
    Project,
    ProjectStage,
    ProjectStrategy,
    SeoMetadata,
)
from contentforge.domains.project.domain.stages import GenerationSlot
from contentforge.domains.project.infrastructure.gateway import (
    BackendConfig,
    ConnectionSettingsStore,
    PersistenceGateway,
)
from contentforge.infrastructure.event_bus import EventBus
from contentforge.services.content_generator import ContentGenerator
from contentforge.services.workspace import ProjectWorkspace
from contentforge.shared_kernel.domain_events import (
    ContentGeneratedEvent,
    DomainEvent,
    GenerationDiscardedEvent,
    ProjectStageChangedEvent,
)
from contentforge.shared_kernel.exceptions import (
    DomainException,
    EntityNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from contentforge.shared_kernel.result import Result

logger = logging.getLogger(__name__)

SlotKey = Tuple[str, GenerationSlot]
Produce = Callable[[Project], Awaitable[Any]]
Apply = Callable[[Project, Any], None]


def _size(value: Any) -> int:
    if isinstance(value, str):
        return len(value)
    if isinstance(value, SeoMetadata):
        return len(value.slug) + len(value.short_text) + len(value.intro_text)
    if isinstance(value, (list, tuple)):
        return sum(len(item) for item in value)
    return 0


class GenerationOrchestrator:
    """Workflow entry points returning ``Result`` values.

    Generation results are committed to the project they were requested
    for, by id. One call per (project, slot) is in flight at a time; a
    second trigger awaits the pending call. Each slot carries a sequence
    token bumped by direct edits and stage transitions, and a result whose
    token went stale is discarded.
    """

    def __init__(
        self,
        workspace: ProjectWorkspace,
        generator: ContentGenerator,
        settings_store: Optional[ConnectionSettingsStore] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.workspace = workspace
        self.generator = generator
        self.settings_store = settings_store
        self.event_bus = event_bus
        self._inflight: Dict[SlotKey, "asyncio.Task[Project]"] = {}
        self._requests: Dict[SlotKey, Optional[str]] = {}
        self._tokens: Dict[SlotKey, int] = defaultdict(int)

    @property
    def gateway(self) -> PersistenceGateway:
        return self.workspace.gateway

    def in_flight(self, project_id: str, slot: GenerationSlot) -> bool:
        return (project_id, slot) in self._inflight

    # Workspace

    async def reload(self) -> Result[List[Project], DomainException]:
        return await self._guard("reload", self.workspace.load())

    async def create_project(self) -> Result[Project, DomainException]:
        return await self._guard("create_project", self.workspace.create())

    async def open_project(self, project_id: str) -> Result[Project, DomainException]:
        async def run() -> Project:
            self.workspace.activate(project_id)
            return await self._enter_stage(project_id)

        return await self._guard("open_project", run())

    async def delete_project(self, project_id: str) -> Result[str, DomainException]:
        async def run() -> str:
            await self.workspace.delete(project_id)
            for slot in GenerationSlot:
                self._tokens.pop((project_id, slot), None)
            return project_id

        return await self._guard("delete_project", run())

    async def retry_sync(self, project_id: str) -> Result[Project, DomainException]:
        async def run() -> Project:
            error = await self.workspace.retry_sync(project_id)
            if error is not None:
                raise error
            return self.workspace.get(project_id)

        return await self._guard("retry_sync", run())

    async def refresh_project(self, project_id: str) -> Result[Project, DomainException]:
        return await self._guard("refresh_project", self.workspace.refresh(project_id))

    # Transitions

    async def submit_strategy(self, project_id: str, strategy: ProjectStrategy) -> Result[Project, DomainException]:
        return await self._guard(
            "submit_strategy",
            self._transition(project_id, lambda project: stages.submit_strategy(project, strategy)),
        )

    async def select_title(self, project_id: str, index: int) -> Result[Project, DomainException]:
        return await self._guard(
            "select_title",
            self._transition(project_id, lambda project: stages.select_title(project, index)),
        )

    async def approve_outline(self, project_id: str, outline: Optional[str] = None) -> Result[Project, DomainException]:
        return await self._guard(
            "approve_outline",
            self._transition(project_id, lambda project: stages.approve_outline(project, outline)),
        )

    async def approve_draft(self, project_id: str) -> Result[Project, DomainException]:
        return await self._guard("approve_draft", self._transition(project_id, stages.approve_draft))

    # Same-stage edits

    async def edit_outline(self, project_id: str, outline: str) -> Result[Project, DomainException]:
        return await self._guard(
            "edit_outline",
            self._edit(project_id, GenerationSlot.OUTLINE, lambda project: stages.edit_outline(project, outline)),
        )

    async def edit_draft(self, project_id: str, draft: str) -> Result[Project, DomainException]:
        return await self._guard(
            "edit_draft",
            self._edit(project_id, GenerationSlot.DRAFT, lambda project: stages.edit_draft(project, draft)),
        )

    async def edit_metadata(
        self,
        project_id: str,
        slug: Optional[str] = None,
        short_text: Optional[str] = None,
        intro_text: Optional[str] = None,
    ) -> Result[Project, DomainException]:
        return await self._guard(
            "edit_metadata",
            self._edit(
                project_id,
                GenerationSlot.METADATA,
                lambda project: stages.edit_metadata(
                    project,
                    slug=slug,
                    short_text=short_text,
                    intro_text=intro_text,
                ),
            ),
        )

    # Generation

    async def regenerate_titles(self, project_id: str) -> Result[Project, DomainException]:
        async def run() -> Project:
            project = self.workspace.get(project_id)
            stages.require_stage(project, stages.SLOT_STAGES[GenerationSlot.TITLES], "regenerate titles")
            return await self._generate_titles(project_id)

        return await self._guard("regenerate_titles", run())

    async def revise_draft(self, project_id: str, instruction: str) -> Result[Project, DomainException]:
        async def run() -> Project:
            project = self.workspace.get(project_id)
            stages.require_stage(project, stages.DRAFT_STAGES, "revise the draft")
            text = (instruction or "").strip()
            if not text:
                raise ValidationError("Revision instruction is required", code="INSTRUCTION_REQUIRED")
            self._require_draft(project)
            return await self._generate(
                project_id,
                GenerationSlot.DRAFT,
                lambda source: self.generator.revise_draft(source.draft, text, source.strategy),
                lambda target, draft: stages.apply_revision(target, draft, text),
                request=text,
            )

        return await self._guard("revise_draft", run())

    async def generate_seo_metadata(self, project_id: str) -> Result[Project, DomainException]:
        async def run() -> Project:
            project = self.workspace.get(project_id)
            stages.require_stage(project, stages.DRAFT_STAGES, "generate SEO metadata")
            self._require_draft(project)
            return await self._generate(
                project_id,
                GenerationSlot.METADATA,
                lambda source: self.generator.generate_seo_metadata(source.draft, source.strategy),
                stages.apply_metadata,
            )

        return await self._guard("generate_seo_metadata", run())

    # Backend settings

    async def configure_backend(self, url: Optional[str], key: Optional[str]) -> Result[List[Project], DomainException]:
        return await self._guard("configure_backend", self._switch_backend(BackendConfig(url=url, key=key)))

    async def clear_backend(self) -> Result[List[Project], DomainException]:
        return await self._guard("clear_backend", self._switch_backend(BackendConfig()))

    async def _switch_backend(self, config: BackendConfig) -> List[Project]:
        if self.settings_store is not None:
            await self.settings_store.save(config)
        self.gateway.configure(config)
        return await self.workspace.load()

    # Internals

    async def _guard(self, operation: str, call: Awaitable[Any]) -> Result[Any, DomainException]:
        try:
            return Result.success(await call)
        except DomainException as exc:
            logger.warning("%s failed [%s]: %s", operation, exc.code, exc.message)
            return Result.failure(exc)

    @staticmethod
    def _require_draft(project: Project) -> None:
        if not project.draft.strip():
            raise ValidationError("The draft is empty", code="DRAFT_EMPTY")

    def _bump(self, project_id: str, *slots: GenerationSlot) -> None:
        for slot in slots or tuple(GenerationSlot):
            self._tokens[(project_id, slot)] += 1

    async def _edit(self, project_id: str, slot: GenerationSlot, mutate: Callable[[Project], None]) -> Project:
        def edit(project: Project) -> None:
            mutate(project)
            self._bump(project_id, slot)

        return await self.workspace.update(project_id, edit)

    async def _transition(self, project_id: str, advance: Callable[[Project], ProjectStage]) -> Project:
        before = self.workspace.get(project_id).stage

        def move(project: Project) -> None:
            advance(project)
            self._bump(project_id)

        project = await self.workspace.update(project_id, move)
        logger.info("Project %s: %s -> %s", project_id, before.value, project.stage.value)
        await self._publish(
            ProjectStageChangedEvent(
                project_id=project_id,
                from_stage=before.value,
                to_stage=project.stage.value,
            )
        )
        return await self._enter_stage(project_id)

    async def _enter_stage(self, project_id: str) -> Project:
        """Run the generation the current stage needs, if any."""
        project = self.workspace.get(project_id)
        slot = stages.pending_generation(project)
        if slot is None:
            return project
        if slot == GenerationSlot.TITLES:
            return await self._generate_titles(project_id)
        if slot == GenerationSlot.OUTLINE:
            return await self._generate(
                project_id,
                slot,
                lambda source: self.generator.generate_outline(source.selected_title or source.name, source.strategy),
                stages.edit_outline,
            )
        return await self._generate(
            project_id,
            slot,
            lambda source: self.generator.generate_draft(
                source.selected_title or source.name,
                source.outline,
                source.strategy,
            ),
            stages.edit_draft,
        )

    async def _generate_titles(self, project_id: str) -> Project:
        return await self._generate(
            project_id,
            GenerationSlot.TITLES,
            lambda source: self.generator.generate_titles(source.strategy),
            stages.replace_titles,
        )

    async def _generate(
        self,
        project_id: str,
        slot: GenerationSlot,
        produce: Produce,
        apply: Apply,
        request: Optional[str] = None,
    ) -> Project:
        """Start or join the generation for ``slot``.

        A call joins the pending one only when both carry the same
        ``request``; a different request for a busy slot is rejected.
        """
        key = (project_id, slot)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._run_generation(key, produce, apply))
            self._inflight[key] = task
            self._requests[key] = request
        elif self._requests.get(key) != request:
            raise InvalidTransitionError(
                f"A {slot.value} generation is already running for this project",
                code="GENERATION_IN_FLIGHT",
                details={"project_id": project_id, "slot": slot.value},
            )
        else:
            logger.info("Generation of %s for %s already in flight; awaiting it", slot.value, project_id)
        return await asyncio.shield(task)

    async def _run_generation(self, key: SlotKey, produce: Produce, apply: Apply) -> Project:
        project_id, slot = key
        token = self._tokens[key]
        try:
            source = self.workspace.get(project_id).copy()
            result = await produce(source)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]
                self._requests.pop(key, None)

        try:
            project = self.workspace.get(project_id)
        except EntityNotFoundError:
            await self._discard(project_id, slot, "project deleted")
            raise
        if self._tokens[key] != token:
            await self._discard(project_id, slot, "superseded by a newer edit")
            return project
        if not stages.slot_is_current(project, slot):
            await self._discard(project_id, slot, f"project moved to {project.stage.value}")
            return project

        project = await self.workspace.update(project_id, lambda target: apply(target, result))
        await self._publish(ContentGeneratedEvent(project_id=project_id, slot=slot.value, characters=_size(result)))
        return project

    async def _discard(self, project_id: str, slot: GenerationSlot, reason: str) -> None:
        logger.info("Discarding %s result for %s: %s", slot.value, project_id, reason)
        await self._publish(GenerationDiscardedEvent(project_id=project_id, slot=slot.value, reason=reason))

    async def _publish(self, event: DomainEvent) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(event)
