# =============================================================================
# Gateway Protocol
# =============================================================================
# Capability contract for the remote mail service.
#
# Implementations wrap whatever transport the application uses (GraphQL over
# HTTP, a websocket, a test double) and translate its results into the core
# models. Failures must be reported with the exceptions from
# tempmail_sync.errors:
#
#   fetch_session      -> NotFoundError | TransportError
#   fetch_address      -> NotFoundError | TransportError
#   restore_address    -> InvalidKeyError | NotFoundError | TransportError
#   introduce_address  -> NotFoundError | TransportError
#
# Anything else escaping a gateway is treated as a bug, not a remote failure.
# =============================================================================

from dataclasses import dataclass, field
from typing import Protocol

from tempmail_sync.core import Address


@dataclass
class SessionSnapshot:
    """
    What the service currently knows about a session.

    Attributes:
        addresses: Addresses attached to the session, each with its mail.
    """
    addresses: list[Address] = field(default_factory=list)


class Gateway(Protocol):
    """
    Remote operations the sync core depends on.

    All methods are coroutines; the core awaits them and never assumes
    they complete in the order they were started.
    """

    async def fetch_session(self, session_id: str) -> SessionSnapshot:
        """Fetch the addresses (and their mail) attached to a session."""
        ...

    async def fetch_address(self, address_id: str) -> Address:
        """Fetch one address with its current mail list."""
        ...

    async def restore_address(self, restore_key: str) -> Address:
        """Resolve a restore key to the address it belongs to."""
        ...

    async def introduce_address(
        self,
        session_id: str,
        domain_id: str | None = None,
    ) -> Address:
        """Create a new address for a session (on any domain if None)."""
        ...
