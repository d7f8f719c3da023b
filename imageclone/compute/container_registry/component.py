from imageclone.core import Component, Response, operation

from ._models import CopyResult


class ContainerRegistry(Component):
    def __init__(self, **kwargs):
        """Initialize."""
        super().__init__(**kwargs)

    @operation()
    def copy(self, source: str, destination: str) -> Response[CopyResult]:
        """Copy an image between registries.

        Blocks until the destination holds the image.

        Args:
            source: Fully qualified source reference.
            destination: Fully qualified destination reference.

        Returns:
            Copy result.

        Raises:
            TransferError: The image could not be copied.
        """
        ...

    @operation()
    def close(self) -> Response[None]:
        """Close the registry client."""
        ...

    @operation()
    async def acopy(
        self, source: str, destination: str
    ) -> Response[CopyResult]:
        """Copy an image between registries.

        Args:
            source: Fully qualified source reference.
            destination: Fully qualified destination reference.

        Returns:
            Copy result.

        Raises:
            TransferError: The image could not be copied.
        """
        ...

    @operation()
    async def aclose(self) -> Response[None]:
        """Close the registry client."""
        ...
