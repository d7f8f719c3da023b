"""
Image transfer through the local Docker daemon.

The image is pulled, tagged with the destination name and pushed. The
daemon only pulls the platform it runs on, so multi-platform indexes are
mirrored as a single-platform image. Insecure backup registries must be
listed in the daemon's ``insecure-registries``.
"""

__all__ = ["DockerLocal"]

from typing import Any

import docker
from docker.errors import DockerException

from imageclone.core import Context, Provider, Response, get_logger
from imageclone.core.exceptions import TransferError
from imageclone.image import parse

from .._models import CopyResult

logger = get_logger(__name__)


class DockerLocal(Provider):
    remove_local: bool
    nparams: dict[str, Any]

    _client: docker.DockerClient | None

    def __init__(
        self,
        remove_local: bool = True,
        nparams: dict[str, Any] = dict(),
        **kwargs,
    ):
        """Initialize.

        Args:
            remove_local:
                Remove the local images after the push.
            nparams:
                Native parameters to the docker client.
        """
        self.remove_local = remove_local
        self.nparams = nparams
        self._client = None
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        if self._client is not None:
            return
        try:
            self._client = docker.from_env(**self.nparams)
        except DockerException as e:
            raise TransferError(f"Docker daemon is not available: {e}") from e

    def copy(self, source: str, destination: str) -> Response[CopyResult]:
        self.__setup__()
        client = self._client
        dst = parse(destination)
        try:
            image = client.images.pull(source)
            image.tag(dst.context, tag=dst.tag)
            digest = self._push(client, dst.context, dst.tag)
        except DockerException as e:
            raise TransferError(
                f"error copying image {source!r} to {destination!r}: {e}"
            ) from e
        finally:
            if self.remove_local:
                self._remove(client, [destination, source])
        return Response(
            result=CopyResult(
                source=source, destination=destination, digest=digest
            )
        )

    def _push(
        self, client: docker.DockerClient, repository: str, tag: str | None
    ) -> str | None:
        digest = None
        # push errors are reported in the stream, not raised
        for line in client.images.push(
            repository, tag=tag, stream=True, decode=True
        ):
            if "error" in line:
                raise TransferError(
                    f"error pushing {repository}:{tag}: {line['error']}"
                )
            aux = line.get("aux") or {}
            if aux.get("Digest"):
                digest = aux["Digest"]
        return digest

    def _remove(self, client: docker.DockerClient, images: list[str]):
        for image in images:
            try:
                client.images.remove(image=image)
            except DockerException as e:
                logger.debug("Could not remove local image %s: %s", image, e)

    def close(self) -> Response[None]:
        if self._client is not None:
            self._client.close()
            self._client = None
        return Response(result=None)
