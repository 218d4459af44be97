# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the tempmail-sync test suite.
# =============================================================================

import asyncio
from collections import Counter
from datetime import datetime

import pytest

from tempmail_sync.config import Config, SyncConfig
from tempmail_sync.core import Address, Domain, Mail
from tempmail_sync.errors import InvalidKeyError, NotFoundError
from tempmail_sync.gateway import SessionSnapshot
from tempmail_sync.sync import SyncContext


def make_mail(mail_id: str, minute: int = 0) -> Mail:
    """Build a Mail with a predictable arrival time."""
    return Mail(
        id=mail_id,
        received_at=datetime(2024, 1, 15, 10, minute),
        from_addr="sender@example.com",
        to_addr="x@mail.test",
        subject=f"Subject {mail_id}",
        text=f"Body of {mail_id}",
    )


class FakeGateway:
    """
    In-memory stand-in for the remote service.

    Attributes:
        sessions: session id -> address ids attached to it.
        addresses: address id -> Address as the service knows it.
        restore_keys: restore key -> address id.
        calls: How many times each method was called.
        gate: If set, every call waits on this event before answering.
        fail_with: method name -> exception to raise instead of answering.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, list[str]] = {}
        self.addresses: dict[str, Address] = {}
        self.restore_keys: dict[str, str] = {}
        self.calls: Counter = Counter()
        self.gate: asyncio.Event | None = None
        self.fail_with: dict[str, Exception] = {}
        self._next_id = 100

    def add_address(self, session_id: str, address: Address) -> None:
        self.sessions.setdefault(session_id, []).append(address.id)
        self.addresses[address.id] = address
        if address.restore_key:
            self.restore_keys[address.restore_key] = address.id

    async def _enter(self, method: str) -> None:
        self.calls[method] += 1
        if self.gate is not None:
            await self.gate.wait()
        if method in self.fail_with:
            raise self.fail_with[method]

    async def fetch_session(self, session_id: str) -> SessionSnapshot:
        await self._enter("fetch_session")
        if session_id not in self.sessions:
            raise NotFoundError(f"Unknown session {session_id}")
        return SessionSnapshot(addresses=[
            self.addresses[address_id].snapshot()
            for address_id in self.sessions[session_id]
        ])

    async def fetch_address(self, address_id: str) -> Address:
        await self._enter("fetch_address")
        if address_id not in self.addresses:
            raise NotFoundError(f"Unknown address {address_id}")
        return self.addresses[address_id].snapshot()

    async def restore_address(self, restore_key: str) -> Address:
        await self._enter("restore_address")
        if restore_key not in self.restore_keys:
            raise InvalidKeyError("Restore key rejected")
        return self.addresses[self.restore_keys[restore_key]].snapshot()

    async def introduce_address(
        self,
        session_id: str,
        domain_id: str | None = None,
    ) -> Address:
        await self._enter("introduce_address")
        self._next_id += 1
        address = Address(
            id=f"a{self._next_id}",
            address=f"new{self._next_id}@mail.test",
            domain=Domain(id=domain_id or "d1", name="mail.test"),
            restore_key=f"key-{self._next_id}",
        )
        self.add_address(session_id, address)
        return address.snapshot()


@pytest.fixture
def domain():
    """The domain every sample address lives under."""
    return Domain(id="d1", name="mail.test")


@pytest.fixture
def sample_address(domain):
    """Address a1 holding one mail (m1)."""
    return Address(
        id="a1",
        address="x@mail.test",
        domain=domain,
        restore_key="restore-a1",
        mails=[make_mail("m1", minute=1)],
    )


@pytest.fixture
def gateway():
    """An empty fake gateway."""
    return FakeGateway()


@pytest.fixture
def quiet_config():
    """Config with polling switched off."""
    return Config(sync=SyncConfig(poll_interval_seconds=0, poll_on_start=False))


@pytest.fixture
def context(gateway, quiet_config):
    """SyncContext over the fake gateway, no background polling."""
    return SyncContext(gateway, quiet_config)
