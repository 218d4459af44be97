# =============================================================================
# Address Registry
# =============================================================================
# In-memory set of addresses visible to the current session.
#
# The registry is the only shared mutable structure in tempmail-sync. Every
# mutation (upsert, merge, removal, reset) runs synchronously and never
# awaits, so on a single event loop no coroutine can observe an address
# halfway through an update.
#
# Update rules for an address we already hold:
#   - id, address, domain: immutable. Conflicting incoming values are ignored
#     and reported as DataIntegrityWarning
#   - restore_key: immutable once known. A missing local key may be filled in
#   - mails: merged append-only by MailSynchronizer
#
# Readers always get copies (Address.snapshot()), never the held objects.
# =============================================================================

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable

from tempmail_sync.core import Address, Mail
from tempmail_sync.errors import DataIntegrityWarning
from tempmail_sync.sync.merge import MailSynchronizer, MergeResult


logger = logging.getLogger(__name__)


class RegistryEventKind(Enum):
    """What changed in the registry."""
    ADDED = auto()          # A new address became visible
    MAIL_RECEIVED = auto()  # An address gained mail
    REMOVED = auto()        # An address was detached
    RESET = auto()          # Everything was dropped (session change)


@dataclass
class RegistryEvent:
    """
    Change notification sent to registry subscribers.

    Attributes:
        kind: What happened.
        address_id: The address concerned (None for RESET).
        new_mail_ids: Mail appended by this change, in append order.
    """
    kind: RegistryEventKind
    address_id: str | None = None
    new_mail_ids: list[str] = field(default_factory=list)


# Type alias for registry listeners
RegistryListener = Callable[[RegistryEvent], None]

# Shown instead of restore keys in warnings and logs
_HIDDEN = "<hidden>"


class AddressRegistry:
    """
    Addresses of the current session, in insertion order.

    Usage:
        >>> registry = AddressRegistry()
        >>> registry.subscribe(on_change)
        >>> result = registry.upsert_address(address)
        >>> registry.list_addresses()
    """

    def __init__(self) -> None:
        # dicts keep insertion order, which is the listing order
        self._addresses: dict[str, Address] = {}
        self._detached: set[str] = set()
        self._listeners: list[RegistryListener] = []

    # =========================================================================
    # Reads
    # =========================================================================

    def get_address(self, address_id: str) -> Address | None:
        """Returns a copy of the address, or None if it isn't held."""
        address = self._addresses.get(address_id)
        return address.snapshot() if address else None

    def list_addresses(self) -> list[Address]:
        """Returns copies of all visible addresses, in insertion order."""
        return [address.snapshot() for address in self._addresses.values()]

    def mails(self, address_id: str) -> list[Mail]:
        """Returns the mail of an address in storage order (empty if unknown)."""
        address = self._addresses.get(address_id)
        return list(address.mails) if address else []

    def mails_chronological(self, address_id: str) -> list[Mail]:
        """Returns the mail of an address sorted by arrival time."""
        address = self._addresses.get(address_id)
        return address.mails_chronological() if address else []

    def is_detached(self, address_id: str) -> bool:
        """True if the address was removed from this session's view."""
        return address_id in self._detached

    def __contains__(self, address_id: object) -> bool:
        return address_id in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    # =========================================================================
    # Mutations
    # =========================================================================

    def upsert_address(self, address: Address, *, attach: bool = False) -> MergeResult:
        """
        Insert an address, or merge it into the one already held.

        Args:
            address: Address as reported by the service. Not retained; the
                     registry keeps its own copy.
            attach: Re-attach the address even if it was removed earlier.
                    Session refreshes leave this off so a removal sticks;
                    restoration and creation turn it on.

        Returns:
            MergeResult describing what changed.
        """
        result = MergeResult(address_id=address.id)

        if address.id in self._detached:
            if not attach:
                logger.debug(f"Skipping detached address {address.address}")
                return result
            self._detached.discard(address.id)

        held = self._addresses.get(address.id)

        if held is None:
            # Copy, then dedupe the incoming list through the merge rules
            stored = address.snapshot()
            stored.mails = []
            result.new_mails = MailSynchronizer.merge(stored.mails, address.mails)
            result.inserted = True
            self._addresses[stored.id] = stored
            logger.info(
                f"Added address {stored.address} with {len(stored.mails)} mails"
            )
            self._notify(RegistryEvent(
                kind=RegistryEventKind.ADDED,
                address_id=stored.id,
                new_mail_ids=result.new_mail_ids,
            ))
            return result

        result.warnings = self._reconcile_fields(held, address)
        result.new_mails = MailSynchronizer.merge(held.mails, address.mails)

        if result.new_mails:
            logger.info(
                f"{held.address}: {len(result.new_mails)} new mails "
                f"({len(held.mails)} total)"
            )
            self._notify(RegistryEvent(
                kind=RegistryEventKind.MAIL_RECEIVED,
                address_id=held.id,
                new_mail_ids=result.new_mail_ids,
            ))
        else:
            logger.debug(f"{held.address}: no new mail")

        return result

    def remove_address(self, address_id: str) -> None:
        """
        Detach an address from the current session's view.

        The address still exists on the service (and can be restored with
        its key). Unknown ids are ignored.
        """
        address = self._addresses.pop(address_id, None)
        if address is None:
            return
        self._detached.add(address_id)
        logger.info(f"Removed address {address.address}")
        self._notify(RegistryEvent(
            kind=RegistryEventKind.REMOVED,
            address_id=address_id,
        ))

    def reset(self) -> None:
        """
        Drop every address and every removal.

        Called when the session changes: nothing held for the old session is
        valid for the new one.
        """
        had_addresses = bool(self._addresses)
        self._addresses.clear()
        self._detached.clear()
        if had_addresses:
            logger.debug("Registry reset")
            self._notify(RegistryEvent(kind=RegistryEventKind.RESET))

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: RegistryEvent) -> None:
        """Deliver an event. A failing listener doesn't stop the others."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in registry listener: {e}", exc_info=True)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _reconcile_fields(
        self,
        held: Address,
        incoming: Address,
    ) -> list[DataIntegrityWarning]:
        """
        Apply the immutable-field rules; first writer wins.

        Returns:
            Warnings for every conflicting value that was ignored.
        """
        warnings: list[DataIntegrityWarning] = []

        if incoming.address != held.address:
            warnings.append(DataIntegrityWarning(
                held.id, "address", held.address, incoming.address
            ))

        if incoming.domain != held.domain:
            warnings.append(DataIntegrityWarning(
                held.id, "domain", held.domain, incoming.domain
            ))

        if incoming.restore_key is not None:
            if held.restore_key is None:
                # Learning the key for the first time is not a conflict
                held.restore_key = incoming.restore_key
            elif incoming.restore_key != held.restore_key:
                warnings.append(DataIntegrityWarning(
                    held.id, "restore_key", _HIDDEN, _HIDDEN
                ))

        for warning in warnings:
            logger.warning(str(warning))

        return warnings
