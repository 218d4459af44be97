# =============================================================================
# Sync Context
# =============================================================================
# Ties the identity store, address registry, restoration flow and poll
# worker together behind the entry points a presentation layer calls.
#
# Flow of a refresh:
#   1. Identity store supplies the session id (and its generation)
#   2. Gateway fetches the session snapshot
#   3. If the session changed while we waited, the snapshot is discarded
#   4. Otherwise every address is upserted/merged into the registry
#   5. Registry subscribers hear about whatever actually changed
#
# Restoration and address creation skip step 2 and upsert a single address
# under the active session.
#
# There is no global instance: create one SyncContext per client, start() it
# when the client comes up and close() it when it goes away (or use
# `async with`).
# =============================================================================

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable

from tempmail_sync.config import Config
from tempmail_sync.core import Address, Mail, Session
from tempmail_sync.errors import DataIntegrityWarning, NoSessionError, SessionChangedError
from tempmail_sync.gateway import Gateway
from tempmail_sync.sync.identity import IdentityStore, SessionListener
from tempmail_sync.sync.merge import MergeResult
from tempmail_sync.sync.poller import PollWorker
from tempmail_sync.sync.registry import AddressRegistry, RegistryListener
from tempmail_sync.sync.restore import RestorationFlow, StatusCallback

if TYPE_CHECKING:
    from tempmail_sync.storage.repository import Repository


logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """How a refresh ended."""
    COMPLETE = auto()       # Snapshot applied
    DISCARDED = auto()      # Session changed mid-flight, snapshot dropped
    SKIPPED = auto()        # Nothing to refresh (address not held)


@dataclass
class SyncResult:
    """
    Result of a refresh.

    Attributes:
        status: How the refresh ended.
        added_addresses: Addresses that became visible.
        new_mails: Total mail appended across all addresses.
        warnings: Integrity conflicts ignored during the merge.
        duration_seconds: Time taken, gateway round trip included.
    """
    status: SyncStatus = SyncStatus.COMPLETE
    added_addresses: int = 0
    new_mails: int = 0
    warnings: list[DataIntegrityWarning] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def changed(self) -> bool:
        return bool(self.added_addresses or self.new_mails)

    def add(self, merge: MergeResult) -> None:
        """Fold one address's merge result into the totals."""
        if merge.inserted:
            self.added_addresses += 1
        self.new_mails += len(merge.new_mails)
        self.warnings.extend(merge.warnings)


class SyncContext:
    """
    Session, addresses and mail for one client.

    Usage:
        >>> async with SyncContext(gateway) as ctx:
        ...     ctx.new_session()
        ...     await ctx.create_address()
        ...     await ctx.refresh()
        ...     for address in ctx.list_addresses():
        ...         print(address, ctx.mails(address.id))

    Attributes:
        gateway: Remote service capability.
        config: Configuration (polling intervals etc.).
        identity: Current session holder.
        registry: Addresses visible to the current session.
        restoration: Restore-key flow.
    """

    def __init__(
        self,
        gateway: Gateway,
        config: Config | None = None,
        *,
        restore_status_callback: StatusCallback | None = None,
    ) -> None:
        self.gateway = gateway
        self.config = config or Config()
        self.identity = IdentityStore()
        self.registry = AddressRegistry()
        self.restoration = RestorationFlow(
            gateway,
            self.identity,
            self.registry,
            status_callback=restore_status_callback,
        )
        self._poller: PollWorker | None = None
        self._unsubscribe_identity = self.identity.subscribe(self._on_session_change)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start background work (polling, if configured)."""
        sync = self.config.sync
        if sync.poll_on_start and sync.poll_interval_seconds > 0:
            self.start_polling()

    async def close(self) -> None:
        """
        Stop background work and abandon in-flight restorations.

        The session and registry are left as they are so the caller can
        still save() them.
        """
        await self.stop_polling()
        await self.restoration.cancel_all()

    async def __aenter__(self) -> "SyncContext":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def start_polling(self) -> PollWorker | None:
        """
        Start (or return the already running) poll worker.

        Returns None without starting anything when the configured interval
        is 0 (manual refresh only).
        """
        if self.config.sync.poll_interval_seconds <= 0:
            logger.warning("Polling not started: poll_interval_seconds is 0 (manual only)")
            return None

        if self._poller is None:
            self._poller = PollWorker(
                self,
                interval=self.config.sync.poll_interval_seconds,
                max_failures=self.config.sync.max_poll_failures,
            )
        self._poller.start()
        return self._poller

    async def stop_polling(self) -> None:
        if self._poller is not None:
            await self._poller.stop()

    # =========================================================================
    # Session
    # =========================================================================

    @property
    def session(self) -> Session | None:
        """The current session (read-only)."""
        return self.identity.current_session()

    def set_session(self, session_id: str) -> Session:
        """Switch to a session id obtained elsewhere (e.g., from the server)."""
        return self.identity.set_session(session_id)

    def new_session(self) -> Session:
        """Start a fresh anonymous session with a client-generated id."""
        return self.identity.new_session()

    def clear_session(self) -> None:
        """End the current session (logout/reset). Safe without one."""
        self.identity.clear()

    def subscribe_session(self, listener: SessionListener) -> Callable[[], None]:
        """Listen for session changes."""
        return self.identity.subscribe(listener)

    def _on_session_change(self, session: Session | None) -> None:
        """Everything held for the previous session is stale now."""
        self.registry.reset()
        self.restoration.forget()

    def _require_session(self) -> Session:
        session = self.identity.current_session()
        if session is None:
            raise NoSessionError("No active session")
        return session

    # =========================================================================
    # Reads
    # =========================================================================

    def list_addresses(self) -> list[Address]:
        """Snapshots of the session's addresses, in insertion order."""
        return self.registry.list_addresses()

    def get_address(self, address_id: str) -> Address | None:
        return self.registry.get_address(address_id)

    def mails(self, address_id: str, *, chronological: bool = False) -> list[Mail]:
        """
        Mail of one address.

        Args:
            address_id: Address to read.
            chronological: Sort by arrival time instead of first-seen order.
        """
        if chronological:
            return self.registry.mails_chronological(address_id)
        return self.registry.mails(address_id)

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """Listen for registry changes (new addresses, new mail, removals)."""
        return self.registry.subscribe(listener)

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def refresh(self) -> SyncResult:
        """
        Fetch the current session and merge it into the registry.

        Addresses removed locally stay removed; everything else is upserted
        with the append-only mail merge.

        Raises:
            NoSessionError: If there is no current session.
            NotFoundError: If the service doesn't know the session.
            TransportError: If the service couldn't be reached.
        """
        session = self._require_session()
        generation = self.identity.generation
        start_time = datetime.now()

        snapshot = await self.gateway.fetch_session(session.id)

        result = SyncResult()
        if self.identity.generation != generation:
            logger.info(f"Discarding snapshot for stale session {session}")
            result.status = SyncStatus.DISCARDED
        else:
            for address in snapshot.addresses:
                result.add(self.registry.upsert_address(address))
            logger.debug(
                f"Session refresh: {len(snapshot.addresses)} addresses, "
                f"{result.added_addresses} added, {result.new_mails} new mails"
            )

        result.duration_seconds = (datetime.now() - start_time).total_seconds()
        return result

    async def refresh_address(self, address_id: str) -> SyncResult:
        """
        Fetch one address and merge its mail.

        Only addresses the registry holds are refreshed; anything else is
        reported as SKIPPED without contacting the service.

        Raises:
            NoSessionError: If there is no current session.
            NotFoundError: If the service no longer knows the address.
            TransportError: If the service couldn't be reached.
        """
        self._require_session()

        if address_id not in self.registry:
            logger.debug(f"Not refreshing unknown address {address_id}")
            return SyncResult(status=SyncStatus.SKIPPED)

        generation = self.identity.generation
        start_time = datetime.now()

        address = await self.gateway.fetch_address(address_id)

        result = SyncResult()
        if self.identity.generation != generation:
            logger.info(f"Discarding refresh of {address.address}: session changed")
            result.status = SyncStatus.DISCARDED
        else:
            result.add(self.registry.upsert_address(address))

        result.duration_seconds = (datetime.now() - start_time).total_seconds()
        return result

    async def restore(self, restore_key: str) -> Address:
        """
        Bring back an address from its restore key.

        See RestorationFlow.restore() for the failure modes.
        """
        return await self.restoration.restore(restore_key)

    async def create_address(self, domain_id: str | None = None) -> Address:
        """
        Ask the service for a new address in the current session.

        Args:
            domain_id: Domain to create the address under (service picks if None).

        Returns:
            Snapshot of the new address, restore key included.

        Raises:
            NoSessionError: If there is no current session.
            SessionChangedError: If the session changed mid-request.
            NotFoundError / TransportError: From the gateway.
        """
        session = self._require_session()
        generation = self.identity.generation

        address = await self.gateway.introduce_address(session.id, domain_id)

        if self.identity.generation != generation:
            logger.info(f"Discarding new address {address.address}: session changed")
            raise SessionChangedError("Session changed while creating an address")

        self.registry.upsert_address(address, attach=True)
        return self.registry.get_address(address.id)

    def remove_address(self, address_id: str) -> None:
        """Hide an address from this session. The service keeps it."""
        self.registry.remove_address(address_id)

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save(self, repo: "Repository") -> None:
        """
        Save the session and its addresses.

        Nothing is ever persisted implicitly; this is the only write path.
        Without a session, any previously saved session is cleared.
        """
        session = self.identity.current_session()
        if session is None:
            await repo.clear_session()
            return

        await repo.save_session(session)
        await repo.save_addresses(session.id, self.registry.list_addresses())

    async def load(self, repo: "Repository") -> Session | None:
        """
        Restore a previously saved session and its addresses.

        Returns:
            The loaded session, or None if nothing was saved.
        """
        saved = await repo.load_session()
        if saved is None:
            return None

        session = self.identity.set_session(saved.id)
        for address in await repo.load_addresses(saved.id):
            self.registry.upsert_address(address, attach=True)

        logger.info(f"Loaded session {session} with {len(self.registry)} addresses")
        return session
