# =============================================================================
# Restore Key Vault
# =============================================================================
# Restore keys are the only secret tempmail-sync handles. Whoever holds one
# can take over the address, so they never go into the SQLite database.
# Instead they are kept in the system keyring, one entry per address:
#
#     service:  tempmail-sync:restore-key
#     username: <address id>
#
# which keeps them manageable from the keyring CLI if needed:
#     keyring get tempmail-sync:restore-key a1
# =============================================================================

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError


logger = logging.getLogger(__name__)


class RestoreKeyVault:
    """
    Keyring-backed storage for restore keys.

    Keyring failures are logged and treated as "no key": losing a saved key
    only means the user can't restore that address from this machine.

    Attributes:
        service: Keyring service name the keys are stored under.
    """

    SERVICE = "tempmail-sync:restore-key"

    def __init__(self, service: str = SERVICE) -> None:
        self.service = service

    def get(self, address_id: str) -> str | None:
        """Returns the saved key for an address, or None."""
        try:
            return keyring.get_password(self.service, address_id)
        except KeyringError as e:
            logger.warning(f"Could not read restore key for {address_id}: {e}")
            return None

    def put(self, address_id: str, restore_key: str) -> None:
        """Save (or overwrite) the key for an address."""
        try:
            keyring.set_password(self.service, address_id, restore_key)
        except KeyringError as e:
            logger.warning(f"Could not save restore key for {address_id}: {e}")

    def delete(self, address_id: str) -> None:
        """Forget the key for an address. Missing keys are ignored."""
        try:
            keyring.delete_password(self.service, address_id)
        except PasswordDeleteError:
            pass
        except KeyringError as e:
            logger.warning(f"Could not delete restore key for {address_id}: {e}")
