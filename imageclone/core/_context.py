from __future__ import annotations

import threading
from typing import Any

from .data_model import DataModel
from .exceptions import CancelledError


class Context(DataModel):
    """Operation context.

    Attributes:
        id: Context id, shared by every operation of one attempt.
        data: Free-form data passed along with the operation.
        cancel_event: Event that signals the attempt should stop.
    """

    id: str | None = None
    data: dict[str, Any] | None = None
    cancel_event: threading.Event | None = None

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def raise_if_cancelled(self, step: str) -> None:
        if self.is_cancelled():
            raise CancelledError(f"Cancelled before {step}")
