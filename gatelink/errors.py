"""
Error taxonomy for the gate link.

Every failure the link, the parser or a collaborator can produce maps onto one
of these classes. The controller catches them and records them in the
diagnostic log; nothing is retried automatically.
"""


class GateLinkError(Exception):
    """Base class for all gatelink errors."""


class DeviceConnectionError(GateLinkError, ConnectionError):
    """Opening, reading from or writing to the device link failed."""


class ParseError(GateLinkError, ValueError):
    """An inbound message had a malformed payload."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class UnsupportedPlatformError(GateLinkError):
    """The runtime cannot drive a serial link at all."""


class ServiceError(GateLinkError):
    """The insight service could not produce a tip."""


class MissingCredentialError(ServiceError):
    """No API key is configured for the insight service."""


class ServiceUnavailableError(ServiceError):
    """The insight service is unreachable or returned an error."""


class DeviceSelectionError(GateLinkError):
    """The device picker did not yield a usable port."""


class PermissionDeniedError(DeviceSelectionError):
    """The selected device node is not readable and writable."""


class NoDeviceSelectedError(DeviceSelectionError):
    """No port was configured and none could be detected."""


class NotSupportedError(DeviceSelectionError):
    """Port enumeration is not available on this runtime."""
