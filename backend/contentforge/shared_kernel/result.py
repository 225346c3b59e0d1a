"""Result type returned by workflow operations."""
from dataclasses import dataclass
from typing import Generic, TypeVar, Optional

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Success value or the error that prevented it.

    Workflow entry points never raise domain errors; callers inspect
    ``is_failure`` or read ``value``, which re-raises the stored error.
    """

    _value: Optional[T] = None
    _error: Optional[E] = None

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def is_failure(self) -> bool:
        return self._error is not None

    @property
    def value(self) -> T:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> Optional[E]:
        return self._error

    @property
    def message(self) -> Optional[str]:
        """User-facing message for a failure, ``None`` on success."""
        if self._error is None:
            return None
        return getattr(self._error, "message", None) or str(self._error)

    @property
    def code(self) -> Optional[str]:
        return getattr(self._error, "code", None)

    @classmethod
    def success(cls, value: T) -> "Result[T, E]":
        return cls(_value=value)

    @classmethod
    def failure(cls, error: E) -> "Result[T, E]":
        return cls(_error=error)
