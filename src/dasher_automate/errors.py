"""Exception types shared across the relay, device and command client."""

from __future__ import annotations


class DasherError(Exception):
    """Base class for dasher_automate errors."""


class MessageError(DasherError):
    """A wire frame could not be decoded into a Message."""


class ConfigError(DasherError):
    """Configuration file or values are invalid."""


class RelayCommandError(DasherError):
    """The relay rejected a command request."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"relay returned {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class UnknownMessageType(MessageError):
    """A well-formed frame carried a type outside the protocol."""
