__all__ = [
    "BaseError",
    "BadRequestError",
    "CancelledError",
    "ConflictError",
    "GoneError",
    "InternalError",
    "LoadError",
    "NotFoundError",
    "NotSupportedError",
    "ParseError",
    "PreconditionFailedError",
    "TransferError",
]


class BaseError(Exception):
    """Base class for errors that a later attempt may resolve."""

    status_code: int


class BadRequestError(BaseError):
    status_code = 400


class ParseError(BadRequestError):
    """Malformed image reference."""


class NotFoundError(BaseError):
    status_code = 404


class ConflictError(BaseError):
    """Write rejected because the stored object changed since it was read."""

    status_code = 409


class GoneError(BaseError):
    """Requested resource version is no longer available."""

    status_code = 410


class PreconditionFailedError(BaseError):
    status_code = 412


class NotSupportedError(BaseError):
    status_code = 415


class CancelledError(BaseError):
    status_code = 499


class TransferError(BaseError):
    """Copying an image to the backup registry failed."""

    status_code = 502


class InternalError(Exception):
    status_code = 500


class LoadError(Exception):
    status_code = 500
