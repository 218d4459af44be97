# =============================================================================
# Address Model
# =============================================================================
# Represents a disposable email address. An address is more than its string:
#   - It points at a Domain object (not just the domain name)
#   - It carries the restore key that lets a new session reclaim it
#   - It owns the list of mail it has received
#
# IMPORTANT: The restore key is a secret. It is hidden from repr() so it
# doesn't end up in logs, and storage keeps it out of SQLite (see
# storage/keys.py).
#
# The mail list is append-only from the client's point of view. Nothing in
# this module enforces that; the registry and the merge logic do.
# =============================================================================

from dataclasses import dataclass, field, replace

from tempmail_sync.core.domain import Domain
from tempmail_sync.core.mail import Mail


@dataclass
class Address:
    """
    A disposable address plus its restore key and mail history.

    Attributes:
        id: Service-side identifier. Globally unique and never reassigned.
        address: Full address string, "<login>@<domain name>".
        domain: The Domain object this address was issued under.
                Note: it's the Domain object, not the domain name string.
        restore_key: Secret that can re-attach this address to another
                     session. None when the holder never learned it (e.g.,
                     the address came from someone else's listing).
        mails: Every message received by this address, in the order the
               client first saw them.

    Example:
        >>> address = Address(
        ...     id="a1",
        ...     address="x@mail.test",
        ...     domain=Domain(id="d1", name="mail.test"),
        ...     restore_key="k-123",
        ... )
    """

    id: str
    address: str
    domain: Domain
    restore_key: str | None = field(default=None, repr=False)
    mails: list[Mail] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    @property
    def login(self) -> str:
        """The local part of the address (before "@")."""
        return self.address.rsplit("@", 1)[0]

    @property
    def domain_name(self) -> str:
        """The domain part of the address string (after "@")."""
        if "@" not in self.address:
            return ""
        return self.address.rsplit("@", 1)[1]

    @property
    def mail_ids(self) -> list[str]:
        """Ids of held mail, in storage order."""
        return [mail.id for mail in self.mails]

    def mails_chronological(self) -> list[Mail]:
        """
        Returns mail sorted by arrival time.

        Storage order is "first seen" order, which can differ from arrival
        order when snapshots come back out of order. Use this for display
        that must be strictly chronological. Mail with no timestamp goes
        last; ties keep storage order.
        """
        dated = [m for m in self.mails if m.received_at is not None]
        undated = [m for m in self.mails if m.received_at is None]
        return sorted(dated, key=lambda m: m.received_at) + undated

    def snapshot(self) -> "Address":
        """
        Returns a copy that shares no mutable state with this address.

        Mail and Domain are frozen, so copying the list is enough.
        """
        return replace(self, mails=list(self.mails))

    def __str__(self) -> str:
        """Human-readable representation."""
        count = len(self.mails)
        suffix = f" ({count})" if count else ""
        return f"{self.address}{suffix}"
