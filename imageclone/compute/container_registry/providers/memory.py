"""
In memory image transfer.
"""

from __future__ import annotations

__all__ = ["Memory"]

import hashlib
from threading import Lock

from imageclone.core import Provider, Response
from imageclone.core.exceptions import TransferError

from .._models import CopyResult


class Memory(Provider):
    failures: set[str]
    copies: list[tuple[str, str]]

    # destination -> source
    _images: dict[str, str]
    _lock: Lock

    def __init__(
        self,
        failures: list[str] | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            failures:
                Source references whose copy fails with a transfer error.
        """
        self.failures = set(failures or [])
        self.copies = []
        self._images = dict()
        self._lock = Lock()
        super().__init__(**kwargs)

    def copy(self, source: str, destination: str) -> Response[CopyResult]:
        with self._lock:
            self.copies.append((source, destination))
            if source in self.failures:
                raise TransferError(
                    f"error copying image {source!r} to {destination!r}: "
                    "injected failure"
                )
            self._images[destination] = source
        digest = "sha256:" + hashlib.sha256(source.encode()).hexdigest()
        return Response(
            result=CopyResult(
                source=source, destination=destination, digest=digest
            )
        )

    def has_image(self, reference: str) -> bool:
        with self._lock:
            return reference in self._images

    def close(self) -> Response[None]:
        return Response(result=None)
