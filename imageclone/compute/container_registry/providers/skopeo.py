"""
Image transfer with the skopeo CLI.

Copies manifests and blobs registry to registry without a daemon, keeping
every platform of multi-platform images.
"""

__all__ = ["Skopeo"]

import os
import shutil
import subprocess
import tempfile

from imageclone.core import Provider, Response, get_logger
from imageclone.core.exceptions import TransferError

from .._models import CopyResult

logger = get_logger(__name__)


class Skopeo(Provider):
    binary: str
    all_images: bool
    src_tls_verify: bool
    dest_tls_verify: bool
    retry_times: int | None
    timeout: float | None

    def __init__(
        self,
        binary: str = "skopeo",
        all_images: bool = True,
        src_tls_verify: bool = True,
        dest_tls_verify: bool = True,
        retry_times: int | None = None,
        timeout: float | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            binary:
                Name or path of the skopeo executable.
            all_images:
                Copy every platform of an image index.
            src_tls_verify:
                Require HTTPS and verify certificates on the source.
            dest_tls_verify:
                Require HTTPS and verify certificates on the backup registry.
            retry_times:
                Number of times skopeo retries a failed copy.
            timeout:
                Seconds after which a copy is aborted.
        """
        self.binary = binary
        self.all_images = all_images
        self.src_tls_verify = src_tls_verify
        self.dest_tls_verify = dest_tls_verify
        self.retry_times = retry_times
        self.timeout = timeout
        super().__init__(**kwargs)

    def _build_command(
        self, source: str, destination: str, digest_file: str
    ) -> list[str]:
        cmd = [self.binary, "copy"]
        if self.all_images:
            cmd.append("--all")
        cmd.append(f"--src-tls-verify={str(self.src_tls_verify).lower()}")
        cmd.append(f"--dest-tls-verify={str(self.dest_tls_verify).lower()}")
        if self.retry_times:
            cmd.append(f"--retry-times={self.retry_times}")
        cmd.extend(
            [
                f"--digestfile={digest_file}",
                f"docker://{source}",
                f"docker://{destination}",
            ]
        )
        return cmd

    def copy(self, source: str, destination: str) -> Response[CopyResult]:
        if shutil.which(self.binary) is None:
            raise TransferError(f"{self.binary} executable not found")
        with tempfile.TemporaryDirectory() as tmp:
            digest_file = os.path.join(tmp, "digest")
            cmd = self._build_command(source, destination, digest_file)
            try:
                subprocess.run(
                    cmd,
                    check=True,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout,
                )
            except subprocess.CalledProcessError as e:
                raise TransferError(
                    (
                        f"error copying image {source!r} to {destination!r}:\n"
                        f"{e.stdout.decode('utf-8', errors='ignore')}"
                    )
                ) from e
            except subprocess.TimeoutExpired as e:
                raise TransferError(
                    f"copying image {source!r} to {destination!r} "
                    f"timed out after {self.timeout}s"
                ) from e
            digest = None
            if os.path.exists(digest_file):
                with open(digest_file, "r", encoding="utf-8") as f:
                    digest = f.read().strip() or None
        logger.debug(
            "skopeo copied %s to %s (%s)", source, destination, digest
        )
        return Response(
            result=CopyResult(
                source=source, destination=destination, digest=digest
            )
        )

    def close(self) -> Response[None]:
        return Response(result=None)
