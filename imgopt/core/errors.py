"""
Failure taxonomy for the optimize endpoint.

Every error carries the HTTP status it maps to and a generic public message.
Details stay in the exception text and the operational log.
"""


class OptimizeError(Exception):
    status_code = 500
    message = "Image processing error."


class InvalidFormat(OptimizeError):
    status_code = 400
    message = "Invalid format"


class PathTraversalRejected(OptimizeError):
    status_code = 400
    message = "Invalid image name"


class DecodeError(OptimizeError):
    """Source image is unreadable or not a recognisable image."""


class SourceNotFound(DecodeError):
    status_code = 404
    message = "Image not found"


class EncodeError(OptimizeError):
    """Encoder failed or was given parameters it cannot honour."""


class CacheReadError(OptimizeError):
    """Cache entry exists but cannot be read or is corrupt."""


class CacheWriteError(OptimizeError):
    """Cache entry could not be published."""
