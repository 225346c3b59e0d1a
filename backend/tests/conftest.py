import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("LOCAL_STORE_PATH", str(Path(tempfile.mkdtemp()) / "store.json"))
os.environ.setdefault("SAVE_RETRY_BACKOFF", "0.01")

from contentforge.domains.project.domain.entities import SeoMetadata  # noqa: E402
from contentforge.domains.project.infrastructure.gateway import (  # noqa: E402
    ConnectionSettingsStore,
    PersistenceGateway,
)
from contentforge.domains.project.infrastructure.repositories import (  # noqa: E402
    LocalDocumentStore,
    LocalProjectRepository,
)
from contentforge.infrastructure.event_bus import InMemoryEventBus  # noqa: E402
from contentforge.services.orchestrator import GenerationOrchestrator  # noqa: E402
from contentforge.services.workspace import ProjectWorkspace  # noqa: E402
from contentforge.shared_kernel.exceptions import GenerationError  # noqa: E402

TITLES = [
    "Remote Work Engagement: 7 Proven Tactics",
    "How HR Managers Keep Remote Teams Engaged",
    "The Remote Engagement Playbook for 2025",
    "Why Remote Employees Disengage (and How to Fix It)",
    "Remote Work Culture: A Practical Guide for HR",
]


class FakeGenerator:
    """In-process stand-in for the content generator.

    ``gates`` holds events a call waits on before answering; ``fail``
    names operations that raise ``GenerationError``.
    """

    def __init__(self):
        self.calls = []
        self.titles = list(TITLES)
        self.fail = set()
        self.gates = {}

    async def _answer(self, operation, value):
        self.calls.append(operation)
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        if operation in self.fail:
            raise GenerationError(f"Failed to generate {operation}.", code="GENERATION_FAILED")
        return value

    def count(self, operation):
        return self.calls.count(operation)

    async def generate_titles(self, strategy):
        return await self._answer("titles", list(self.titles))

    async def generate_outline(self, title, strategy):
        return await self._answer("outline", f"## {title}\n- Introduction\n- Key Takeaways")

    async def generate_draft(self, title, outline, strategy):
        return await self._answer("draft", f"# {title}\n\nRemote work is here to stay.")

    async def revise_draft(self, current_draft, instruction, strategy):
        return await self._answer("revision", f"{current_draft}\n\n{instruction}")

    async def generate_seo_metadata(self, draft, strategy):
        return await self._answer(
            "seo_metadata",
            SeoMetadata(slug="remote-work", short_text="Short summary.", intro_text="Hook."),
        )


class RecordingBus(InMemoryEventBus):
    def __init__(self):
        super().__init__()
        self.events = []

    async def publish(self, event):
        self.events.append(event)
        return await super().publish(event)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "contentforge_store.json"


@pytest.fixture
def document_store(store_path):
    return LocalDocumentStore(store_path)


@pytest.fixture
def local_repo(document_store):
    return LocalProjectRepository(document_store, "contentforge_projects_v1")


@pytest.fixture
def settings_store(document_store):
    return ConnectionSettingsStore(document_store, "contentforge_backend_v1")


@pytest.fixture
def gateway(local_repo):
    return PersistenceGateway(local_repo)


@pytest.fixture
def event_bus():
    return RecordingBus()


@pytest.fixture
def workspace(gateway, event_bus):
    return ProjectWorkspace(gateway, event_bus=event_bus, save_retries=1, save_backoff=0.001)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def orchestrator(workspace, generator, settings_store, event_bus):
    return GenerationOrchestrator(workspace, generator, settings_store=settings_store, event_bus=event_bus)


async def settle():
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout=2.0):
    """Poll until ``predicate()`` holds; local store I/O runs in threads."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
