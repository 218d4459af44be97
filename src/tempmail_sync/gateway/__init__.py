# =============================================================================
# Gateway Module
# =============================================================================
# The query/mutation gateway is the network layer that talks to the mail
# service. The sync core never speaks HTTP or GraphQL itself: it only needs
# something that implements the Gateway protocol and raises the errors from
# tempmail_sync.errors.
# =============================================================================

from tempmail_sync.gateway.base import Gateway, SessionSnapshot

__all__ = ["Gateway", "SessionSnapshot"]
