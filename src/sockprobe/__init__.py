"""sockprobe - non-blocking probes for streaming WebSocket endpoints."""

from .actor import ActorState, ConnectionActor
from .config import Settings, get_settings
from .endpoint import ConnectionEndpoint
from .envelope import Failure, Message, Stimulus
from .errors import (
    ActorStoppedError,
    ConfigurationError,
    ConnectionFailedError,
    ExpectationError,
    ExpectTimeoutError,
    ExtraMessageError,
    MailboxFullError,
    SendError,
    SockProbeError,
    UnexpectedMessageError,
)
from .mailbox import Address, Mailbox
from .probe import Probe
from .runtime import ProbeRuntime, UnitOutcome

__version__ = "0.1.0"

__all__ = [
    "ActorState",
    "ActorStoppedError",
    "Address",
    "ConfigurationError",
    "ConnectionActor",
    "ConnectionEndpoint",
    "ConnectionFailedError",
    "ExpectTimeoutError",
    "ExpectationError",
    "ExtraMessageError",
    "Failure",
    "Mailbox",
    "MailboxFullError",
    "Message",
    "Probe",
    "ProbeRuntime",
    "SendError",
    "Settings",
    "SockProbeError",
    "Stimulus",
    "UnexpectedMessageError",
    "UnitOutcome",
    "get_settings",
]
