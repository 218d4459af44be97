# =============================================================================
# Session Model
# =============================================================================
# An anonymous client context. The id is opaque: it may be generated locally
# or handed out by the service, and the core never interprets it.
# =============================================================================

import uuid
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Session:
    """
    Identifies an anonymous client context.

    Attributes:
        id: Opaque session identifier.
        created_at: When this client started using the id.
    """
    id: str
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def generate(cls) -> "Session":
        """Create a session with a fresh client-side identifier."""
        return cls(id=uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.id
