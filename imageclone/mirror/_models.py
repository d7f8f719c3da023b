from __future__ import annotations

from enum import Enum

from imageclone.compute.kubernetes import WorkloadKey
from imageclone.core import DataModel


class RewriteOutcome(str, Enum):
    ALREADY_MIRRORED = "already_mirrored"
    REWRITTEN = "rewritten"
    FAILED = "failed"


class ContainerRewrite(DataModel):
    """What happened to one container.

    Attributes:
        container: Container name.
        source: Image before the rewrite.
        destination: Mirrored image, if one was computed.
        outcome: Outcome.
    """

    container: str
    source: str
    destination: str | None = None
    outcome: RewriteOutcome


class RewriteResult(DataModel):
    rewrites: list[ContainerRewrite] = []
    error: Exception | None = None

    @property
    def changed(self) -> bool:
        return any(
            r.outcome == RewriteOutcome.REWRITTEN for r in self.rewrites
        )

    @property
    def failed(self) -> bool:
        return self.error is not None


class ReconcileStatus(str, Enum):
    NOT_FOUND = "not_found"
    UNCHANGED = "unchanged"
    COMMITTED = "committed"


class ReconcileResult(DataModel):
    key: WorkloadKey
    status: ReconcileStatus
    rewrite: RewriteResult | None = None
