"""Shared FastAPI dependencies."""
from typing import TypeVar

from fastapi import Request

from contentforge.infrastructure.di.container import Container
from contentforge.services.orchestrator import GenerationOrchestrator
from contentforge.services.workspace import ProjectWorkspace
from contentforge.shared_kernel.exceptions import DomainException
from contentforge.shared_kernel.result import Result

T = TypeVar("T")


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return get_container(request).resolve(GenerationOrchestrator)


def get_workspace(request: Request) -> ProjectWorkspace:
    return get_container(request).resolve(ProjectWorkspace)


def unwrap(result: Result[T, DomainException]) -> T:
    """Return the success value or raise the failure for the exception handlers."""
    if result.is_failure:
        raise result.error  # type: ignore[misc]
    return result.value
