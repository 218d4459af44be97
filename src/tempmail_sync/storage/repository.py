# =============================================================================
# Repository - Data Access Layer
# =============================================================================
# Saves and loads sessions, addresses and mail.
#
# This is only used when the application explicitly asks for persistence
# (SyncContext.save()/load()). It handles:
#   - Converting between domain models and database rows
#   - Keeping mail append-only on disk too (saved rows keep their
#     position, unseen mail is numbered after the highest one)
#   - Routing restore keys to the keyring instead of SQLite
#
# All methods are async for non-blocking database access.
# =============================================================================

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from tempmail_sync.config import Config
from tempmail_sync.core import Address, Domain, Mail, Session
from tempmail_sync.storage.keys import RestoreKeyVault

if TYPE_CHECKING:
    from tempmail_sync.storage.database import Database


logger = logging.getLogger(__name__)


class Repository:
    """
    Data access layer for tempmail-sync.

    Usage:
        >>> repo = Repository(database, vault=RestoreKeyVault())
        >>> await repo.save_session(session)
        >>> await repo.save_addresses(session.id, addresses)
        >>> addresses = await repo.load_addresses(session.id)

    Attributes:
        db: Database instance for executing queries.
        vault: Where restore keys go. None means keys are not persisted.
    """

    def __init__(
        self,
        db: "Database",
        vault: RestoreKeyVault | None = None,
    ) -> None:
        self.db = db
        self.vault = vault

    @classmethod
    def from_config(cls, db: "Database", config: Config) -> "Repository":
        """Build a repository whose key handling follows config.storage."""
        vault = RestoreKeyVault() if config.storage.use_keyring else None
        return cls(db, vault=vault)

    # =========================================================================
    # Session Operations
    # =========================================================================

    async def save_session(self, session: Session) -> None:
        """
        Save a session and make it the current one.

        Previously saved sessions (and their addresses) are kept but no
        longer current.
        """
        await self.db.conn.execute("UPDATE sessions SET is_current = 0")
        # Upsert without REPLACE: a REPLACE would cascade-delete addresses
        await self.db.conn.execute(
            """INSERT INTO sessions (id, created_at, is_current)
               VALUES (?, ?, 1)
               ON CONFLICT(id) DO UPDATE SET is_current = 1""",
            (session.id, session.created_at.isoformat())
        )
        await self.db.conn.commit()

    async def load_session(self) -> Session | None:
        """
        Get the current saved session.

        Returns:
            Session if one was saved, None otherwise.
        """
        async with self.db.conn.execute(
            "SELECT id, created_at FROM sessions WHERE is_current = 1"
        ) as cursor:
            row = await cursor.fetchone()
            if not row:
                return None
            return Session(id=row[0], created_at=datetime.fromisoformat(row[1]))

    async def clear_session(self) -> None:
        """Unset the current session. Saved data stays on disk."""
        await self.db.conn.execute("UPDATE sessions SET is_current = 0")
        await self.db.conn.commit()

    # =========================================================================
    # Address Operations
    # =========================================================================

    async def save_addresses(self, session_id: str, addresses: list[Address]) -> None:
        """
        Save the addresses of a session, replacing the saved set.

        Addresses not in ``addresses`` are detached from the saved session.
        Mail is only ever added: anything already on disk keeps its position.

        Args:
            session_id: Session the addresses belong to (must be saved).
            addresses: Addresses in listing order, with their mail.
        """
        conn = self.db.conn
        keep_ids = [address.id for address in addresses]

        # Detach addresses that are no longer in the session
        async with conn.execute(
            "SELECT id FROM addresses WHERE session_id = ?", (session_id,)
        ) as cursor:
            saved_ids = {row[0] for row in await cursor.fetchall()}
        stale = saved_ids - set(keep_ids)
        if stale:
            await conn.executemany(
                "DELETE FROM addresses WHERE session_id = ? AND id = ?",
                [(session_id, address_id) for address_id in stale]
            )

        for position, address in enumerate(addresses):
            # Domains and address strings are immutable: never overwrite them
            await conn.execute(
                "INSERT OR IGNORE INTO domains (id, name) VALUES (?, ?)",
                (address.domain.id, address.domain.name)
            )
            await conn.execute(
                """INSERT INTO addresses (session_id, id, address, domain_id, position)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(session_id, id) DO UPDATE SET position = excluded.position""",
                (session_id, address.id, address.address, address.domain.id, position)
            )

            # Mail already on disk keeps its position; unseen mail goes after
            # everything saved so far, in held order. The held list may be
            # shorter than what is on disk (e.g. after a restore).
            async with conn.execute(
                "SELECT id, position FROM mails WHERE address_id = ?", (address.id,)
            ) as cursor:
                saved = {row[0]: row[1] for row in await cursor.fetchall()}
            next_position = max(saved.values(), default=-1) + 1

            new_rows = []
            for mail in address.mails:
                if mail.id in saved:
                    continue
                saved[mail.id] = next_position
                new_rows.append((
                    address.id, mail.id, next_position,
                    mail.received_at.isoformat() if mail.received_at else None,
                    mail.from_addr, mail.to_addr, mail.subject,
                    mail.text, mail.html, mail.download_url, mail.raw_size,
                ))
                next_position += 1

            if new_rows:
                await conn.executemany(
                    """INSERT INTO mails
                       (address_id, id, position, received_at, from_addr, to_addr,
                        subject, text, html, download_url, raw_size)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    new_rows
                )

            if self.vault is not None and address.restore_key:
                self.vault.put(address.id, address.restore_key)

        await conn.commit()
        logger.debug(f"Saved {len(addresses)} addresses for session {session_id}")

    async def load_addresses(self, session_id: str) -> list[Address]:
        """
        Load the saved addresses of a session, with their mail.

        Returns:
            Addresses in saved listing order. restore_key is filled in from
            the vault when there is one, otherwise None.
        """
        async with self.db.conn.execute(
            """SELECT a.id, a.address, d.id, d.name
               FROM addresses a JOIN domains d ON d.id = a.domain_id
               WHERE a.session_id = ?
               ORDER BY a.position""",
            (session_id,)
        ) as cursor:
            rows = await cursor.fetchall()

        addresses = []
        for row in rows:
            address = Address(
                id=row[0],
                address=row[1],
                domain=Domain(id=row[2], name=row[3]),
                restore_key=self.vault.get(row[0]) if self.vault else None,
                mails=await self._get_mails(row[0]),
            )
            addresses.append(address)
        return addresses

    async def delete_address(self, session_id: str, address_id: str) -> None:
        """
        Remove a saved address from a session and forget its restore key.

        Its mail stays on disk in case the address is restored later.
        """
        await self.db.conn.execute(
            "DELETE FROM addresses WHERE session_id = ? AND id = ?",
            (session_id, address_id)
        )
        await self.db.conn.commit()
        if self.vault is not None:
            self.vault.delete(address_id)

    # =========================================================================
    # Mail Operations
    # =========================================================================

    async def _get_mails(self, address_id: str) -> list[Mail]:
        """Load the mail of an address in first-seen order."""
        async with self.db.conn.execute(
            """SELECT id, received_at, from_addr, to_addr, subject,
                      text, html, download_url, raw_size
               FROM mails WHERE address_id = ? ORDER BY position""",
            (address_id,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_mail(row) for row in rows]

    def _row_to_mail(self, row) -> Mail:
        """Convert a database row to a Mail object."""
        return Mail(
            id=row[0],
            received_at=datetime.fromisoformat(row[1]) if row[1] else None,
            from_addr=row[2] or "",
            to_addr=row[3] or "",
            subject=row[4] or "",
            text=row[5] or "",
            html=row[6] or "",
            download_url=row[7] or "",
            raw_size=row[8] or 0,
        )
