"""Tests for the poll worker."""

import asyncio

import pytest

from tempmail_sync.errors import NotFoundError, TransportError
from tempmail_sync.sync import PollWorker


@pytest.fixture
def worker(context):
    return PollWorker(context, interval=0.01)


@pytest.fixture
def polled_session(gateway, context, sample_address):
    gateway.add_address("s1", sample_address)
    context.set_session("s1")


@pytest.mark.asyncio
async def test_poll_once_refreshes(worker, context, polled_session):
    await worker.poll_once()

    assert [a.id for a in context.list_addresses()] == ["a1"]
    assert worker.consecutive_failures == 0


@pytest.mark.asyncio
async def test_poll_once_without_session_is_skipped(worker, gateway):
    await worker.poll_once()

    assert gateway.calls["fetch_session"] == 0
    assert worker.consecutive_failures == 0


@pytest.mark.asyncio
async def test_failures_are_counted_and_reset(worker, gateway, polled_session):
    gateway.fail_with["fetch_session"] = TransportError("offline")

    await worker.poll_once()
    await worker.poll_once()
    assert worker.consecutive_failures == 2

    del gateway.fail_with["fetch_session"]
    await worker.poll_once()
    assert worker.consecutive_failures == 0


@pytest.mark.asyncio
async def test_unexpected_errors_are_counted(worker, gateway, polled_session):
    gateway.fail_with["fetch_session"] = ValueError("bad payload")

    await worker.poll_once()

    assert worker.consecutive_failures == 1


@pytest.mark.asyncio
async def test_gives_up_after_max_failures(context, gateway, polled_session):
    gateway.fail_with["fetch_session"] = NotFoundError("session expired")
    worker = PollWorker(context, interval=0.001, max_failures=3)

    worker.start()
    await asyncio.wait_for(worker._task, timeout=1.0)

    assert not worker.is_running
    assert gateway.calls["fetch_session"] == 3


@pytest.mark.asyncio
async def test_start_and_stop(worker, gateway, polled_session):
    worker.start()
    worker.start()
    await asyncio.sleep(0.05)

    assert worker.is_running
    assert gateway.calls["fetch_session"] >= 1

    await worker.stop()
    assert not worker.is_running

    # Stopping twice is fine
    await worker.stop()


@pytest.mark.parametrize("interval", [0, -1])
def test_non_positive_interval_is_rejected(context, interval):
    with pytest.raises(ValueError):
        PollWorker(context, interval=interval)


@pytest.mark.asyncio
async def test_manual_only_config_never_polls(context, gateway, polled_session):
    assert context.start_polling() is None
    await asyncio.sleep(0.01)

    assert gateway.calls["fetch_session"] == 0
    await context.stop_polling()
