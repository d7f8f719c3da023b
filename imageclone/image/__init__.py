from ._models import (
    DEFAULT_REGISTRY,
    DEFAULT_TAG,
    Digest,
    ImageReference,
    Registry,
)
from ._naming import destination, is_mirrored, sanitize_registry
from ._parser import parse, parse_digest, parse_registry, serialize

__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_TAG",
    "Digest",
    "ImageReference",
    "Registry",
    "destination",
    "is_mirrored",
    "parse",
    "parse_digest",
    "parse_registry",
    "sanitize_registry",
    "serialize",
]
