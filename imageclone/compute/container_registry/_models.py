from imageclone.core import DataModel


class CopyResult(DataModel):
    """Result of mirroring an image.

    Attributes:
        source: Fully qualified source reference.
        destination: Fully qualified destination reference.
        digest: Digest of the pushed manifest, if the provider reports it.
    """

    source: str
    destination: str
    digest: str | None = None
