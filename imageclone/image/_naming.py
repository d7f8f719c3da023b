from __future__ import annotations

from ._models import ImageReference, Registry

_REGISTRY_REPLACEMENTS = str.maketrans({".": "_", ":": "_"})


def sanitize_registry(registry: Registry) -> str:
    """Turn a registry authority into a repository path segment.

    ``.`` and ``:`` are replaced with ``_``, e.g. ``ghcr.io`` -> ``ghcr_io``.
    """
    return registry.authority.translate(_REGISTRY_REPLACEMENTS)


def destination(source: ImageReference, backup: Registry) -> ImageReference:
    """Compute the reference of the mirrored copy of ``source``.

    The source registry becomes the first repository segment and digests are
    turned into tags, since ``:`` is not a valid tag character::

        nginx                   -> <backup>/index_docker_io/library/nginx:latest
        nginx:1.23              -> <backup>/index_docker_io/library/nginx:1.23
        nginx@sha256:33cef...   -> <backup>/index_docker_io/library/nginx:sha256_33cef...
        grafana/grafana:main    -> <backup>/index_docker_io/grafana/grafana:main
        ghcr.io/org/app:v0.1.0  -> <backup>/ghcr_io/org/app:v0.1.0
    """
    if source.digest is not None:
        tag = str(source.digest).replace(":", "_")
    else:
        tag = source.tag
    return ImageReference(
        registry=backup,
        repository=f"{sanitize_registry(source.registry)}/{source.repository}",
        tag=tag,
    )


def is_mirrored(source: ImageReference, backup: Registry) -> bool:
    """Whether ``source`` already points at the backup registry."""
    return source.registry == backup
