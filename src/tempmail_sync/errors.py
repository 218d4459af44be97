# =============================================================================
# Exceptions
# =============================================================================
# Error taxonomy for tempmail-sync.
#
#   TempmailError
#   ├── GatewayError            (remote call failed; carries a FailureReason)
#   │   ├── NotFoundError       (entity absent remotely)
#   │   ├── InvalidKeyError     (restore key rejected)
#   │   └── TransportError      (network/remote failure)
#   ├── NoSessionError          (operation needs an active session)
#   └── SessionChangedError     (session changed while a call was in flight)
#
#   DataIntegrityWarning        (non-fatal, never raised by the core)
#
# Gateway errors reach the caller of the triggering operation. None of them
# leave the registry half-updated, and all are recoverable by retrying.
# =============================================================================

from enum import Enum


class FailureReason(Enum):
    """Why a remote operation failed, in a form the UI can switch on."""
    NOT_FOUND = "not_found"
    INVALID_KEY = "invalid_key"
    TRANSPORT = "transport"


class TempmailError(Exception):
    """Base exception for tempmail-sync."""
    pass


class GatewayError(TempmailError):
    """Base exception for failed gateway calls."""

    reason: FailureReason = FailureReason.TRANSPORT


class NotFoundError(GatewayError):
    """Raised when the session or address doesn't exist on the service."""

    reason = FailureReason.NOT_FOUND


class InvalidKeyError(GatewayError):
    """Raised when the service rejects a restore key (invalid or expired)."""

    reason = FailureReason.INVALID_KEY


class TransportError(GatewayError):
    """Raised when the service couldn't be reached or failed to answer."""

    reason = FailureReason.TRANSPORT


class NoSessionError(TempmailError):
    """Raised when an operation needs a session and none is set."""
    pass


class SessionChangedError(TempmailError):
    """Raised when the session changed while a request was in flight."""
    pass


class DataIntegrityWarning(UserWarning):
    """
    Incoming data conflicts with a field that is immutable locally.

    Reported (logged and collected in results) rather than raised: the
    conflicting value is ignored and the rest of the merge proceeds.
    """

    def __init__(self, address_id: str, field_name: str, local, incoming) -> None:
        self.address_id = address_id
        self.field_name = field_name
        self.local = local
        self.incoming = incoming
        super().__init__(
            f"Address {address_id}: ignoring conflicting {field_name} "
            f"({local!r} kept, {incoming!r} ignored)"
        )
