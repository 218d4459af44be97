# =============================================================================
# tempmail-sync Core Module
# =============================================================================
# This module contains the core domain models for tempmail-sync. These are
# pure Python dataclasses with no external dependencies, so they can be imported
# anywhere without causing circular dependency issues.
#
# The core models represent the fundamental concepts of a temporary mailbox:
#   - Session: An anonymous client context
#   - Domain: The DNS domain an address lives under
#   - Address: A disposable address, its restore key and its mail
#   - Mail: A single received message
# =============================================================================

from tempmail_sync.core.address import Address
from tempmail_sync.core.domain import Domain
from tempmail_sync.core.mail import Mail
from tempmail_sync.core.session import Session

__all__ = [
    "Address",
    "Domain",
    "Mail",
    "Session",
]
