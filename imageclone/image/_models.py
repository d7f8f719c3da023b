from __future__ import annotations

from pydantic import ConfigDict, model_validator

from imageclone.core import DataModel

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_REGISTRY_ALIAS = "docker.io"
DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"


class Registry(DataModel):
    """Registry authority (host[:port]).

    Two registries are the same registry when their authorities are equal.
    """

    model_config = ConfigDict(frozen=True)

    authority: str

    def __str__(self) -> str:
        return self.authority


class Digest(DataModel):
    """Content digest, e.g. ``sha256:33cef0ff...``."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    encoded: str

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.encoded}"


class ImageReference(DataModel):
    """Container image reference.

    Attributes:
        registry: Registry authority the image is served from.
        repository: Slash separated repository path.
        tag: Tag, set when the reference is tag-addressed.
        digest: Digest, set when the reference is digest-addressed.
    """

    model_config = ConfigDict(frozen=True)

    registry: Registry
    repository: str
    tag: str | None = None
    digest: Digest | None = None

    @model_validator(mode="after")
    def _check_identifier(self) -> ImageReference:
        if (self.tag is None) == (self.digest is None):
            raise ValueError(
                "Image reference needs exactly one of tag or digest"
            )
        return self

    @property
    def identifier(self) -> str | Digest:
        if self.digest is not None:
            return self.digest
        return self.tag  # type: ignore[return-value]

    @property
    def context(self) -> str:
        """Repository name including the registry, without identifier."""
        return f"{self.registry}/{self.repository}"

    @property
    def name(self) -> str:
        if self.digest is not None:
            return f"{self.context}@{self.digest}"
        return f"{self.context}:{self.tag}"

    def __str__(self) -> str:
        return self.name
