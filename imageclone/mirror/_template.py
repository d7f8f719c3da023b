from __future__ import annotations

from typing import Iterator

from imageclone.compute.container_registry import ContainerRegistry
from imageclone.compute.kubernetes import Container, PodTemplate
from imageclone.core import Context, get_logger
from imageclone.core.exceptions import ParseError, TransferError
from imageclone.image import (
    ImageReference,
    Registry,
    destination,
    is_mirrored,
    parse,
)

from ._models import ContainerRewrite, RewriteOutcome, RewriteResult

logger = get_logger(__name__)


def _containers(template: PodTemplate) -> Iterator[Container]:
    yield from template.containers
    yield from template.init_containers


class PodTemplateReconciler:
    """Mirrors the images of a pod template into the backup registry.

    Containers are processed one at a time, regular containers first, then
    init containers. Each image is copied before the container is pointed
    at the copy. The first failure stops the rewrite and is returned in the
    result; containers rewritten before it stay modified, so the caller has
    to discard the template when the result failed.
    """

    container_registry: ContainerRegistry
    backup_registry: Registry

    def __init__(
        self,
        container_registry: ContainerRegistry,
        backup_registry: Registry,
    ):
        self.container_registry = container_registry
        self.backup_registry = backup_registry

    def _plan(
        self, container: Container
    ) -> tuple[ImageReference, ImageReference | None]:
        try:
            source = parse(container.image)
        except ParseError as e:
            raise ParseError(
                f"failed parsing image {container.image!r} of container "
                f"{container.name!r}: {e}"
            ) from e
        if is_mirrored(source, self.backup_registry):
            logger.debug(
                "Container %s image %s is already specifying the backup "
                "registry",
                container.name,
                container.image,
            )
            return source, None
        return source, destination(source, self.backup_registry)

    def _skipped(self, container: Container) -> ContainerRewrite:
        return ContainerRewrite(
            container=container.name,
            source=container.image,
            outcome=RewriteOutcome.ALREADY_MIRRORED,
        )

    def _failed(
        self,
        result: RewriteResult,
        container: Container,
        target: ImageReference | None,
        error: Exception,
    ) -> RewriteResult:
        logger.error(
            "Failed copying image %s of container %s: %s",
            container.image,
            container.name,
            error,
        )
        result.rewrites.append(
            ContainerRewrite(
                container=container.name,
                source=container.image,
                destination=target.name if target else None,
                outcome=RewriteOutcome.FAILED,
            )
        )
        result.error = error
        return result

    def _rewritten(
        self, container: Container, target: ImageReference
    ) -> ContainerRewrite:
        logger.info(
            "Finished copying image %s to %s", container.image, target.name
        )
        rewrite = ContainerRewrite(
            container=container.name,
            source=container.image,
            destination=target.name,
            outcome=RewriteOutcome.REWRITTEN,
        )
        container.image = target.name
        return rewrite

    def rewrite(
        self,
        template: PodTemplate,
        context: Context | None = None,
    ) -> RewriteResult:
        """Copy every foreign image and point its container at the copy.

        Args:
            template: Pod template, modified in place.
            context: Attempt context, checked for cancellation before
                every copy.

        Returns:
            Per container outcomes, and the error that stopped the rewrite.

        Raises:
            CancelledError: The attempt was cancelled.
        """
        result = RewriteResult()
        for container in _containers(template):
            target = None
            try:
                source, target = self._plan(container)
                if target is None:
                    result.rewrites.append(self._skipped(container))
                    continue
                if context is not None:
                    context.raise_if_cancelled(f"copying {source.name}")
                logger.info(
                    "Copying image %s to the backup registry as %s",
                    source.name,
                    target.name,
                )
                self.container_registry.copy(
                    source=source.name,
                    destination=target.name,
                    __context__=context,
                )
            except (ParseError, TransferError) as e:
                return self._failed(result, container, target, e)
            result.rewrites.append(self._rewritten(container, target))
        return result

    async def arewrite(
        self,
        template: PodTemplate,
        context: Context | None = None,
    ) -> RewriteResult:
        result = RewriteResult()
        for container in _containers(template):
            target = None
            try:
                source, target = self._plan(container)
                if target is None:
                    result.rewrites.append(self._skipped(container))
                    continue
                if context is not None:
                    context.raise_if_cancelled(f"copying {source.name}")
                logger.info(
                    "Copying image %s to the backup registry as %s",
                    source.name,
                    target.name,
                )
                await self.container_registry.acopy(
                    source=source.name,
                    destination=target.name,
                    __context__=context,
                )
            except (ParseError, TransferError) as e:
                return self._failed(result, container, target, e)
            result.rewrites.append(self._rewritten(container, target))
        return result
