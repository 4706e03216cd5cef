from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class CrewboardError(Exception):
    message: str
    code: int

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class UsageError(CrewboardError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 2)


class ValidationError(CrewboardError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 3)


class ConflictError(CrewboardError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 4)


class IOErrorWithCode(CrewboardError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 5)


class InternalError(CrewboardError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 6)


class NotFoundError(ValidationError):
    pass


class InvalidRange(ValidationError):
    """Scope cannot be expanded: end before start, or a required window is missing."""


class PastDateRejected(ConflictError):
    """A single operation targeted a date before today."""
