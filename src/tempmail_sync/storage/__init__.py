# =============================================================================
# Storage Module
# =============================================================================
# Optional, explicit persistence.
#
# Provides:
#   - Database initialization (SQLite via aiosqlite)
#   - Save/load of the current session, its addresses and their mail
#   - Restore keys kept in the system keyring, never in SQLite
#
# Nothing is written unless the application calls SyncContext.save().
# =============================================================================

from tempmail_sync.storage.database import Database
from tempmail_sync.storage.keys import RestoreKeyVault
from tempmail_sync.storage.repository import Repository

__all__ = ["Database", "Repository", "RestoreKeyVault"]
