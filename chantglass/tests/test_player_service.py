"""Tests for video backend ownership and readiness."""

import asyncio

import pytest

from ..engine.player_service import PlayerService
from ..puzzle import BackendNotReady
from .fake_backend import FakeBackendFactory


def test_ensure_initialized_is_idempotent():
    factory = FakeBackendFactory()
    player = PlayerService(factory)
    first = player.ensure_initialized()
    second = player.ensure_initialized()
    assert first is second
    assert len(factory.created) == 1
    assert player.is_ready


def test_require_ready_before_signal():
    factory = FakeBackendFactory(auto_ready=False)
    player = PlayerService(factory)
    with pytest.raises(BackendNotReady):
        player.require_ready()
    player.ensure_initialized()
    with pytest.raises(BackendNotReady):
        player.require_ready()
    factory.latest.signal_ready()
    assert player.require_ready() is factory.latest


def test_release_destroys_and_recreates_fresh_handle():
    factory = FakeBackendFactory()
    player = PlayerService(factory)
    old = player.ensure_initialized()
    player.release()
    assert old.destroyed and old.stop_calls == 1
    assert player.handle is None and not player.is_ready

    new = player.ensure_initialized()
    assert new is not old
    assert len(factory.created) == 2


def test_stale_ready_signal_ignored():
    factory = FakeBackendFactory(auto_ready=False)
    player = PlayerService(factory)
    old = player.ensure_initialized()
    player.release()
    player.ensure_initialized()

    old.signal_ready()
    assert not player.is_ready
    factory.latest.signal_ready()
    assert player.is_ready


def test_release_tolerates_failing_destroy():
    factory = FakeBackendFactory()
    player = PlayerService(factory)
    backend = player.ensure_initialized()

    def broken():
        raise RuntimeError("already gone")

    backend.destroy = broken
    player.release()
    assert player.handle is None


def test_errors_forwarded_only_for_current_handle():
    errors = []
    factory = FakeBackendFactory()
    player = PlayerService(factory, error_listener=errors.append)
    old = player.ensure_initialized()
    old.signal_error("decode error")
    player.release()
    old.signal_error("late error")
    assert errors == ["decode error"]


@pytest.mark.asyncio
async def test_wait_ready_resolves_on_signal():
    factory = FakeBackendFactory(auto_ready=False)
    player = PlayerService(factory)
    assert await player.wait_ready(0.01) is False  # no handle yet

    backend = player.ensure_initialized()
    asyncio.get_running_loop().call_later(0.01, backend.signal_ready)
    assert await player.wait_ready(1.0) is True


@pytest.mark.asyncio
async def test_wait_ready_times_out_and_release_unblocks():
    factory = FakeBackendFactory(auto_ready=False)
    player = PlayerService(factory)
    player.ensure_initialized()
    assert await player.wait_ready(0.01) is False

    asyncio.get_running_loop().call_later(0.01, player.release)
    assert await player.wait_ready(1.0) is False


@pytest.mark.asyncio
async def test_cancelling_waiter_propagates():
    factory = FakeBackendFactory(auto_ready=False)
    player = PlayerService(factory)
    player.ensure_initialized()

    waiter = asyncio.ensure_future(player.wait_ready(5.0))
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    # Readiness still reaches later waiters
    factory.latest.signal_ready()
    assert await player.wait_ready(0.01) is True
