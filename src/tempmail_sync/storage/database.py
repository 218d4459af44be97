# =============================================================================
# Database Connection and Schema Management
# =============================================================================
# Manages the SQLite database connection and schema.
#
# Schema overview:
#   - sessions: The saved session (at most one row is "current")
#   - domains: Domain reference data
#   - addresses: Addresses attached to a saved session (no restore keys!)
#   - mails: Mail per address, with the client's first-seen position
#
# Uses aiosqlite for async operations, with WAL mode for better
# concurrent performance.
# =============================================================================

from pathlib import Path

import aiosqlite

from tempmail_sync.config import Config


# Current schema version - increment when making schema changes
SCHEMA_VERSION = 1


class Database:
    """
    Manages the SQLite database connection and schema.

    Usage:
        >>> db = Database()
        >>> await db.connect()
        >>> await db.conn.execute("SELECT ...")
        >>> await db.close()

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        """
        Initialize the database manager.

        Args:
            db_path: Path to database file. Defaults to XDG data location.
        """
        self.db_path = db_path or Config.database_path()
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """
        Open the database connection and ensure schema is up to date.

        Creates the database file if it doesn't exist.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)

        # Enable foreign keys (off by default in SQLite)
        await self._connection.execute("PRAGMA foreign_keys = ON")

        # Enable WAL mode for better concurrent performance
        await self._connection.execute("PRAGMA journal_mode = WAL")

        await self._init_schema()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        """
        Get the active database connection.

        Raises:
            RuntimeError: If not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        try:
            async with self.conn.execute(
                "SELECT version FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
                current_version = row[0] if row else 0
        except aiosqlite.OperationalError:
            # Table doesn't exist, this is a fresh database
            current_version = 0

        if current_version < SCHEMA_VERSION:
            await self._create_schema()

    async def _create_schema(self) -> None:
        """Create the database schema from scratch."""
        schema = """
        -- Schema version tracking
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY
        );

        -- Saved sessions
        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            created_at TEXT NOT NULL,
            is_current INTEGER NOT NULL DEFAULT 0
        );

        -- Domains (reference data)
        CREATE TABLE IF NOT EXISTS domains (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL
        );

        -- Addresses per session. Restore keys are deliberately absent.
        CREATE TABLE IF NOT EXISTS addresses (
            session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
            id TEXT NOT NULL,
            address TEXT NOT NULL,
            domain_id TEXT NOT NULL REFERENCES domains(id),
            position INTEGER NOT NULL,
            PRIMARY KEY (session_id, id)
        );

        -- Mail per address; position is the client's first-seen order
        CREATE TABLE IF NOT EXISTS mails (
            address_id TEXT NOT NULL,
            id TEXT NOT NULL,
            position INTEGER NOT NULL,
            received_at TEXT,
            from_addr TEXT,
            to_addr TEXT,
            subject TEXT,
            text TEXT,
            html TEXT,
            download_url TEXT,
            raw_size INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (address_id, id)
        );

        CREATE INDEX IF NOT EXISTS idx_addresses_session ON addresses(session_id, position);
        CREATE INDEX IF NOT EXISTS idx_mails_address ON mails(address_id, position);
        """

        await self.conn.executescript(schema)

        await self.conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,)
        )
        await self.conn.commit()
