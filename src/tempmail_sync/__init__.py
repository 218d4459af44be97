# =============================================================================
# tempmail-sync: Client Core for a Disposable Email Service
# =============================================================================
#
#   "Here today, restorable tomorrow."
#
# tempmail-sync is the state layer behind a temporary-address mail client.
# It keeps an anonymous session, the addresses attached to it and the mail
# each address has received consistent with a remote service, and lets a
# visitor win an address back in a fresh session with its restore key.
#
# Features:
#   - Anonymous sessions (client generated or server issued)
#   - Append-only, idempotent mail merging
#   - Restore-key recovery with request coalescing
#   - Change notifications for any presentation layer
#   - Periodic background refresh
#   - Optional SQLite + keyring persistence
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "tempmail-sync"

from tempmail_sync.sync.context import SyncContext

__all__ = ["SyncContext", "__version__", "__app_name__"]
