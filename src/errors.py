"""
SQRL Client Errors

Exception taxonomy for the SQRL test client. Protocol-level failures reported
through TIF flags are not errors; only transport, codec and bootstrap
problems are raised.
"""

from typing import Optional


class SQRLClientError(Exception):
    """Base class for all client failures"""

    def __init__(self, message: str, url: Optional[str] = None,
                 command: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        self.url = url
        self.command = command
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.command:
            parts.append(f"cmd={self.command}")
        if self.url:
            parts.append(f"url={self.url}")
        if self.cause is not None:
            parts.append(f"cause={self.cause!r}")
        return " ".join(parts)


class TransportError(SQRLClientError):
    """Connection failure or a non-2xx HTTP status"""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        self.status = status
        super().__init__(message, **kwargs)


class CodecError(SQRLClientError, ValueError):
    """Malformed SQRL payload"""


class NutNotFoundError(SQRLClientError):
    """No SQRL URL could be located in a bootstrap page"""
