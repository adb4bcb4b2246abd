"""RTSP client exception hierarchy."""

from typing import Optional

__all__ = ["RTSPError", "RTSPValidationError", "RTSPProtocolError", "RTSPTransportError"]

class RTSPError(Exception):
    """Base RTSP exception."""
    pass

class RTSPValidationError(RTSPError):
    """Raised when configuration, URL or token validation fails."""
    pass

class RTSPProtocolError(RTSPError):
    """Raised when a response cannot be parsed or framed."""
    pass

class RTSPTransportError(RTSPError):
    """Socket-level failure (connect/send/receive).

    The originating OSError, if any, is chained as ``__cause__`` and its
    errno is kept for callers that inspect it after a failed ``open``.
    """

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno
