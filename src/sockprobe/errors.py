"""Exception types for sockprobe."""

from __future__ import annotations


class SockProbeError(Exception):
    """Base exception for sockprobe."""


class ConfigurationError(SockProbeError):
    """Raised when required settings are missing or invalid."""


class ConnectionFailedError(SockProbeError):
    """Raised when an endpoint session cannot be established."""


class SendError(SockProbeError):
    """Raised when a frame cannot be written to the endpoint session."""


class MailboxFullError(SockProbeError):
    """Raised when a bounded mailbox cannot accept another item."""


class ActorStoppedError(SockProbeError):
    """Raised when a stimulus is sent to a stopped connection actor."""


class ExpectationError(SockProbeError, AssertionError):
    """Base exception for failed expectations of a probe."""


class ExpectTimeoutError(ExpectationError):
    """Raised when no message arrives before the deadline."""


class UnexpectedMessageError(ExpectationError):
    """Raised when a received payload does not match the expectation."""


class ExtraMessageError(ExpectationError):
    """Raised when a message arrives inside a no-message window."""
