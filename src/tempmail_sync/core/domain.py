# =============================================================================
# Domain Model
# =============================================================================
# A mail domain offered by the service (e.g., "dropmail.test"). Domains are
# reference data: the service publishes them, addresses point at them, and
# nothing on the client ever changes them.
# =============================================================================

from dataclasses import dataclass


@dataclass(frozen=True)
class Domain:
    """
    A DNS domain that disposable addresses are issued under.

    Attributes:
        id: Service-side identifier of the domain.
        name: DNS name (e.g., "mail.test"). This is the part after "@".

    Example:
        >>> domain = Domain(id="d1", name="mail.test")
    """
    id: str
    name: str

    def __str__(self) -> str:
        return self.name
