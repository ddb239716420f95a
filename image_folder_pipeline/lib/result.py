from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, cast

from .errors import ImageNotFound, PipelineError, PredictionFailed

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Tag for a failed `Result`."""

    IMAGE_NOT_FOUND = "image_not_found"
    PREDICTION_FAILED = "prediction_failed"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an operation that can fail per item.

    Batch callers inspect `is_ok` and skip failed items.
    """

    value: Optional[T] = None
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    subject: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def err(
        cls, kind: ErrorKind, message: str, subject: Optional[str] = None
    ) -> "Result[T]":
        return cls(kind=kind, message=message, subject=subject)

    @property
    def is_ok(self) -> bool:
        return self.kind is None

    def unwrap(self) -> T:
        """Return the value or raise the exception matching the error kind."""
        if self.kind is None:
            return cast(T, self.value)

        subject = self.subject or ""
        if self.kind == ErrorKind.IMAGE_NOT_FOUND:
            raise ImageNotFound(subject)
        if self.kind == ErrorKind.PREDICTION_FAILED:
            raise PredictionFailed(subject, self.message or "unknown error")
        raise PipelineError(self.message)
