"""Exception hierarchy for the Cocoro MQTT bridge.

Two families are kept apart so call sites can apply different policies:

- ``CocoroApiError``: the cloud API failed (network, auth, device fault).
  Contained at the boundary of a single device operation.
- ``DecodeError``: an inbound MQTT message could not be mapped to a device
  command. The message is dropped.
"""

from __future__ import annotations


class CocoroError(Exception):
    """Base class for all bridge errors."""


class CocoroApiError(CocoroError):
    """Cloud API request failed.

    Attributes:
        reason: Specific failure reason
        status: HTTP status code, if a response was received

    """

    def __init__(self, reason: str, status: int | None = None) -> None:
        self.reason: str = reason
        self.status: int | None = status
        if status is None:
            super().__init__(reason)
        else:
            super().__init__(f"{reason} (HTTP {status})")


class CocoroAuthenticationError(CocoroApiError):
    """Cloud API rejected the configured credentials."""


class DecodeError(CocoroError):
    """Inbound MQTT message could not be decoded into a command.

    Attributes:
        topic: Topic the message arrived on

    """

    def __init__(self, message: str, topic: str) -> None:
        self.topic: str = topic
        super().__init__(message)


class MalformedTopicError(DecodeError):
    """Topic does not have the ``<namespace>/<device-id>/<target>/set`` shape."""

    def __init__(self, topic: str) -> None:
        super().__init__(f"Malformed command topic: {topic}", topic)


class UnknownDeviceError(DecodeError):
    """Topic names a device id that is not in the registry."""

    def __init__(self, device_id: str, topic: str) -> None:
        self.device_id: str = device_id
        super().__init__(f"Unknown device: {device_id} ({topic})", topic)


class UnknownTargetError(DecodeError):
    """Topic names a control surface the bridge does not handle."""

    def __init__(self, target: str, topic: str) -> None:
        self.target: str = target
        super().__init__(f"Unknown command target: {target} ({topic})", topic)
