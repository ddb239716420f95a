import time
from typing import Optional

from .errors import TrainingTimeout


class CancellationToken:
    """Deadline handed to long-running collaborator calls."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self._cancelled = False

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that never expires."""
        return cls(None)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise TrainingTimeout(
                f"Training exceeded the time budget of {self.timeout_seconds} seconds"
                if not self._cancelled
                else "Training was cancelled"
            )
