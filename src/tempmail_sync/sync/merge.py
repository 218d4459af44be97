# =============================================================================
# Mail Synchronizer
# =============================================================================
# Merges a freshly fetched mail snapshot into the list held locally.
#
# Merge rules:
#   1. Collect the ids we already hold
#   2. Walk the incoming snapshot in the order the service sent it
#   3. Known id -> skip. Unknown id -> append (and remember it, so a snapshot
#      that lists the same mail twice only adds it once)
#   4. Never remove or reorder what we already hold
#
# Consequences:
#   - Idempotent: merging the same snapshot twice changes nothing the
#     second time
#   - Completion order doesn't matter: an older snapshot that lands late can
#     only add mail we haven't seen, never take any away
#   - Storage order is "first seen" order. If a strictly chronological view
#     is needed, sort at read time (Address.mails_chronological()).
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Iterable

from tempmail_sync.core import Mail
from tempmail_sync.errors import DataIntegrityWarning


logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """
    Outcome of merging into one address.

    Attributes:
        address_id: The address that was merged into.
        inserted: True if the address itself was new to the registry.
        new_mails: Mail appended by this merge, in append order.
        warnings: Integrity conflicts that were ignored along the way.
    """
    address_id: str = ""
    inserted: bool = False
    new_mails: list[Mail] = field(default_factory=list)
    warnings: list[DataIntegrityWarning] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True if the merge made any visible difference."""
        return self.inserted or bool(self.new_mails)

    @property
    def new_mail_ids(self) -> list[str]:
        return [mail.id for mail in self.new_mails]


class MailSynchronizer:
    """
    Stateless append-only merge of mail snapshots.

    Usage:
        >>> new = MailSynchronizer.merge(address.mails, snapshot)
        >>> if new:
        ...     notify()
    """

    @staticmethod
    def merge(local: list[Mail], incoming: Iterable[Mail]) -> list[Mail]:
        """
        Append the unseen mail from ``incoming`` to ``local`` in place.

        Args:
            local: The held mail list. Mutated: new entries go at the end.
            incoming: Snapshot from the service, in service order.

        Returns:
            The mail that was appended (empty if nothing was new). The
            registry turns this into a MergeResult.
        """
        known = {mail.id for mail in local}
        appended: list[Mail] = []

        for mail in incoming:
            if mail.id in known:
                continue
            known.add(mail.id)
            appended.append(mail)

        # Extend once, after the snapshot is fully read
        if appended:
            local.extend(appended)
            logger.debug(f"Merged {len(appended)} new mails")
        return appended
