# =============================================================================
# Sync Module
# =============================================================================
# Keeps the client's view of its session, addresses and mail consistent with
# the remote service:
#   - IdentityStore: current session and its lifecycle
#   - AddressRegistry: addresses of the session, append-only mail lists
#   - MailSynchronizer: idempotent snapshot merge
#   - RestorationFlow: restore-key recovery with request coalescing
#   - SyncContext: the entry points, plus the stale-session guard
#   - PollWorker: periodic background refresh
#
# Everything here runs on one asyncio event loop. Only gateway calls await;
# registry mutation is synchronous.
# =============================================================================

from tempmail_sync.sync.context import SyncContext, SyncResult, SyncStatus
from tempmail_sync.sync.identity import IdentityStore
from tempmail_sync.sync.merge import MailSynchronizer, MergeResult
from tempmail_sync.sync.poller import PollWorker
from tempmail_sync.sync.registry import (
    AddressRegistry,
    RegistryEvent,
    RegistryEventKind,
)
from tempmail_sync.sync.restore import RestorationFlow, RestoreStatus

__all__ = [
    # Context
    "SyncContext",
    "SyncResult",
    "SyncStatus",
    # Components
    "IdentityStore",
    "AddressRegistry",
    "RegistryEvent",
    "RegistryEventKind",
    "MailSynchronizer",
    "MergeResult",
    "RestorationFlow",
    "RestoreStatus",
    "PollWorker",
]
