# =============================================================================
# Mail Model
# =============================================================================
# Represents a single message received by a disposable address.
#
# The sync core only cares about two things here:
#   - id: identity, used to deduplicate snapshots
#   - received_at: arrival time, used for chronological views
#
# Everything else (sender, subject, bodies, download link) is payload that is
# carried through untouched. Parsing or rendering it is somebody else's job.
# =============================================================================

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Mail:
    """
    A received message. Immutable once created.

    Attributes:
        id: Service-side identifier, unique across the service.
        received_at: When the service received the message (None if unknown).

        from_addr: Envelope sender.
        to_addr: Envelope recipient (the disposable address).
        subject: Decoded Subject header.

        text: Plain text body, if the service provided one.
        html: HTML body, if the service provided one.
        download_url: Link to the raw message on the service.
        raw_size: Size of the raw message in bytes.

    Example:
        >>> mail = Mail(
        ...     id="m1",
        ...     received_at=datetime(2024, 1, 15, 10, 30),
        ...     from_addr="alice@example.com",
        ...     subject="Hello",
        ... )
    """

    # Identity and ordering
    id: str
    received_at: datetime | None = None

    # Envelope
    from_addr: str = ""
    to_addr: str = ""
    subject: str = ""

    # Body references (opaque to the sync core)
    text: str = ""
    html: str = ""
    download_url: str = ""
    raw_size: int = 0

    @property
    def preview(self) -> str:
        """
        Returns a short preview of the message text (first ~100 chars).
        """
        text = " ".join((self.text or "").split())
        if len(text) > 100:
            return text[:97] + "..."
        return text

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.from_addr}: {self.subject}"
