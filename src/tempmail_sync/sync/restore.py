# =============================================================================
# Restoration Flow
# =============================================================================
# Re-attaches an existing address to the current session from its restore
# key.
#
# State machine (per key):
#
#   IDLE ──restore()──> REQUESTING ──ok──> RESTORED
#                            │
#                            └──error──> FAILED ──> IDLE   (retryable)
#
# Key concepts:
#   - Coalescing: at most one gateway call per key and session generation
#     is in flight. A second restore() for the same key in the same session
#     awaits the first one's task and gets the same Address or exception.
#     After a session change a new request is started instead
#   - Stale results: the session generation is captured before the call.
#     If the session changed by the time the gateway answers, the result is
#     dropped and callers get SessionChangedError
#   - Restoring never edits the address: id, address string, domain, key and
#     existing mail come through as the service reports them, and the
#     registry's first-writer rules protect anything already held
#   - Filling in a restore key the registry held as None is not a mutation:
#     the key was unknown locally, not changed
# =============================================================================

import asyncio
import logging
from enum import Enum, auto
from typing import Callable

from tempmail_sync.core import Address
from tempmail_sync.errors import (
    FailureReason,
    GatewayError,
    InvalidKeyError,
    NoSessionError,
    SessionChangedError,
)
from tempmail_sync.gateway import Gateway
from tempmail_sync.sync.identity import IdentityStore
from tempmail_sync.sync.registry import AddressRegistry


logger = logging.getLogger(__name__)


class RestoreStatus(Enum):
    """Where a restore key is in the restoration state machine."""
    IDLE = auto()           # Nothing in progress
    REQUESTING = auto()     # Waiting on the gateway
    RESTORED = auto()       # Address attached to the session
    FAILED = auto()         # Gateway refused; transient, falls back to IDLE


# Type alias for status callbacks: (restore_key, new_status)
StatusCallback = Callable[[str, RestoreStatus], None]


class RestorationFlow:
    """
    Coalescing restore-key handler.

    Usage:
        >>> flow = RestorationFlow(gateway, identity, registry)
        >>> address = await flow.restore("k-123")

    Attributes:
        gateway: Remote service capability.
        identity: Source of the current session.
        registry: Where restored addresses are attached.
        status_callback: Optional observer of state transitions.
    """

    def __init__(
        self,
        gateway: Gateway,
        identity: IdentityStore,
        registry: AddressRegistry,
        status_callback: StatusCallback | None = None,
    ) -> None:
        self.gateway = gateway
        self.identity = identity
        self.registry = registry
        self.status_callback = status_callback

        # (session generation, restore key) -> shared request
        self._inflight: dict[tuple[int, str], asyncio.Task] = {}
        self._status: dict[str, RestoreStatus] = {}
        self._failures: dict[str, FailureReason] = {}
        # restore key -> generation of the request that last set its status
        self._owner: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status(self, restore_key: str) -> RestoreStatus:
        """Returns the current state for a key (IDLE if never seen)."""
        return self._status.get(restore_key, RestoreStatus.IDLE)

    def last_failure(self, restore_key: str) -> FailureReason | None:
        """Returns why the last attempt with this key failed, if it did."""
        return self._failures.get(restore_key)

    @property
    def in_flight(self) -> int:
        """Number of restore requests waiting on the gateway."""
        return len(self._inflight)

    def _transition(self, restore_key: str, status: RestoreStatus) -> None:
        if status == RestoreStatus.IDLE:
            self._status.pop(restore_key, None)
            self._owner.pop(restore_key, None)
        else:
            self._status[restore_key] = status
        if self.status_callback:
            self.status_callback(restore_key, status)

    def _owns(self, restore_key: str, generation: int) -> bool:
        """True if the request from this generation still drives the key's status."""
        return self._owner.get(restore_key) == generation

    # -------------------------------------------------------------------------
    # Restoration
    # -------------------------------------------------------------------------

    async def restore(self, restore_key: str) -> Address:
        """
        Restore the address behind a key into the current session.

        Args:
            restore_key: Secret handed out when the address was created.

        Returns:
            A snapshot of the restored address, full mail history included.

        Raises:
            NoSessionError: If there is no current session.
            InvalidKeyError: If the key is empty or the service rejects it.
            NotFoundError: If the key points at nothing.
            TransportError: If the service couldn't be reached.
            SessionChangedError: If the session changed mid-request.
        """
        if not restore_key or not restore_key.strip():
            self._failures[restore_key] = FailureReason.INVALID_KEY
            raise InvalidKeyError("Restore key is empty")

        if self.identity.current_session() is None:
            raise NoSessionError("Cannot restore an address without a session")

        generation = self.identity.generation
        task = self._inflight.get((generation, restore_key))
        if task is None:
            self._owner[restore_key] = generation
            self._transition(restore_key, RestoreStatus.REQUESTING)
            task = asyncio.create_task(
                self._request(restore_key, generation),
                name="restore-address",
            )
            self._inflight[(generation, restore_key)] = task
            task.add_done_callback(
                lambda t, key=(generation, restore_key): self._finish(key, t)
            )
        else:
            logger.debug("Restore already in flight for this key, waiting on it")

        # shield: one impatient caller must not cancel the shared request
        return await asyncio.shield(task)

    async def _request(self, restore_key: str, generation: int) -> Address:
        """The single gateway round trip shared by coalesced callers."""
        try:
            address = await self.gateway.restore_address(restore_key)
        except GatewayError as e:
            logger.warning(f"Restore failed ({e.reason.value}): {e}")
            if self._owns(restore_key, generation):
                self._failures[restore_key] = e.reason
                self._transition(restore_key, RestoreStatus.FAILED)
                self._transition(restore_key, RestoreStatus.IDLE)
            raise
        except Exception:
            if self._owns(restore_key, generation):
                self._transition(restore_key, RestoreStatus.IDLE)
            raise

        if self.identity.generation != generation:
            logger.info(f"Discarding restore of {address.address}: session changed")
            # Leave the status alone if a newer request took it over
            if self._owns(restore_key, generation):
                self._transition(restore_key, RestoreStatus.IDLE)
            raise SessionChangedError("Session changed while restoring")

        self.registry.upsert_address(address, attach=True)
        self._failures.pop(restore_key, None)
        self._transition(restore_key, RestoreStatus.RESTORED)
        logger.info(
            f"Restored {address.address} into session {self.identity.session_id}"
        )
        return self.registry.get_address(address.id)

    def _finish(self, key: tuple[int, str], task: asyncio.Task) -> None:
        """Forget a finished request so the key can be tried again."""
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            generation, restore_key = key
            if self._owns(restore_key, generation):
                self._transition(restore_key, RestoreStatus.IDLE)
            return
        # Mark the exception retrieved even if every caller went away
        task.exception()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def forget(self) -> None:
        """
        Drop per-session state (RESTORED marks and failure reasons).

        In-flight requests keep running; their results are discarded by the
        generation check.
        """
        for key, status in list(self._status.items()):
            if status != RestoreStatus.REQUESTING:
                del self._status[key]
                self._owner.pop(key, None)
        self._failures.clear()

    async def cancel_all(self) -> None:
        """Cancel every in-flight request and wait for them to wind down."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
