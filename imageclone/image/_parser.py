"""
Parsing and serialization of image references.

Parsing follows the docker conventions: a missing registry means Docker Hub
(``index.docker.io``), single segment Docker Hub repositories live in the
``library`` namespace and a missing identifier means the ``latest`` tag.
"""

from __future__ import annotations

import re

from imageclone.core.exceptions import ParseError

from ._models import (
    DEFAULT_NAMESPACE,
    DEFAULT_REGISTRY,
    DEFAULT_REGISTRY_ALIAS,
    DEFAULT_TAG,
    Digest,
    ImageReference,
    Registry,
)

_HOST_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
_AUTHORITY_PATTERN = re.compile(
    rf"(?:{_HOST_LABEL}(?:\.{_HOST_LABEL})*|\[[0-9a-fA-F:.]+\])"
    r"(?::[0-9]{1,5})?"
)
_PATH_COMPONENT_PATTERN = re.compile(
    r"[a-z0-9]+(?:(?:\.|_|__|-+)[a-z0-9]+)*"
)
_TAG_PATTERN = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}")
# digest tags must stay within the 128 character tag limit
_DIGEST_LENGTHS = {"sha256": 64}
_MAX_REPOSITORY_LENGTH = 255


def parse_registry(value: str) -> Registry:
    """Parse a registry authority (host[:port])."""
    if not _AUTHORITY_PATTERN.fullmatch(value or ""):
        raise ParseError(
            f"Registries must be valid URI authorities (host[:port]): {value!r}"
        )
    # hostnames are case-insensitive, ports are digits
    authority = value.lower()
    if authority == DEFAULT_REGISTRY_ALIAS:
        authority = DEFAULT_REGISTRY
    return Registry(authority=authority)


def parse_digest(value: str) -> Digest:
    algorithm, sep, encoded = value.partition(":")
    expected_length = _DIGEST_LENGTHS.get(algorithm)
    if (
        not sep
        or expected_length is None
        or len(encoded) != expected_length
        or not re.fullmatch(r"[0-9a-f]+", encoded)
    ):
        raise ParseError(f"Invalid digest: {value!r}")
    return Digest(algorithm=algorithm, encoded=encoded)


def _split_registry(name: str) -> tuple[str, str]:
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return first, rest
    return DEFAULT_REGISTRY, name


def _check_repository(repository: str, image: str) -> None:
    if len(repository) > _MAX_REPOSITORY_LENGTH:
        raise ParseError(f"Repository name too long in {image!r}")
    for component in repository.split("/"):
        if not _PATH_COMPONENT_PATTERN.fullmatch(component):
            raise ParseError(
                f"Invalid repository {repository!r} in image {image!r}"
            )


def parse(image: str) -> ImageReference:
    """Parse an image reference string.

    Args:
        image: Reference such as ``nginx``, ``grafana/grafana:main`` or
            ``ghcr.io/org/app@sha256:...``.

    Returns:
        Fully qualified image reference.

    Raises:
        ParseError: The string is not a valid image reference.
    """
    if not isinstance(image, str) or not image or image != image.strip():
        raise ParseError(f"Invalid image reference: {image!r}")

    digest: Digest | None = None
    tag: str | None = None
    name = image
    if "@" in image:
        name, _, digest_str = image.partition("@")
        digest = parse_digest(digest_str)
    # a tag is a ':' after the last '/', otherwise the ':' belongs to a port
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        name, tag = name[:colon], name[colon + 1 :]
        if not _TAG_PATTERN.fullmatch(tag):
            raise ParseError(f"Invalid tag {tag!r} in image {image!r}")
    if digest is not None:
        # the digest pins the content, a tag next to it is informational
        tag = None
    elif tag is None:
        tag = DEFAULT_TAG

    registry_str, repository = _split_registry(name)
    if not repository:
        raise ParseError(f"Missing repository in image {image!r}")
    registry = parse_registry(registry_str)
    if registry.authority == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"{DEFAULT_NAMESPACE}/{repository}"
    _check_repository(repository, image)

    return ImageReference(
        registry=registry,
        repository=repository,
        tag=tag,
        digest=digest,
    )


def serialize(reference: ImageReference) -> str:
    """Canonical, fully qualified form of a reference."""
    return reference.name
