"""Tests for signal handling and graceful shutdown."""

from __future__ import annotations

import asyncio
import signal
import sys
import threading

import pytest

from docgate.utils.signals import GracefulShutdown, install_reload_handler


@pytest.mark.asyncio
async def test_graceful_shutdown_creation():
    """Test GracefulShutdown initialization."""
    shutdown = GracefulShutdown()

    assert not shutdown.is_shutting_down()
    assert len(shutdown._shutdown_handlers) == 0


@pytest.mark.asyncio
async def test_shutdown_execution():
    """Test sync and async handlers both run."""
    shutdown = GracefulShutdown()
    called = []

    def handler1():
        called.append("handler1")

    async def handler2():
        await asyncio.sleep(0.01)
        called.append("handler2")

    shutdown.register_handler(handler1)
    shutdown.register_handler(handler2)

    await shutdown.shutdown()

    assert shutdown.is_shutting_down()
    assert "handler1" in called
    assert "handler2" in called


@pytest.mark.asyncio
async def test_shutdown_lifo_order():
    """Test shutdown handlers execute in LIFO order."""
    shutdown = GracefulShutdown()
    order = []

    def handler1():
        order.append(1)

    def handler2():
        order.append(2)

    def handler3():
        order.append(3)

    shutdown.register_handler(handler1)
    shutdown.register_handler(handler2)
    shutdown.register_handler(handler3)

    await shutdown.shutdown()

    assert order == [3, 2, 1]


@pytest.mark.asyncio
async def test_shutdown_error_handling():
    """Test that errors in handlers don't stop shutdown."""
    shutdown = GracefulShutdown()
    called = []

    def failing_handler():
        raise RuntimeError("Handler error")

    def good_handler():
        called.append("good")

    shutdown.register_handler(good_handler)
    shutdown.register_handler(failing_handler)

    await shutdown.shutdown()

    assert called == ["good"]
    assert shutdown.is_shutting_down()


@pytest.mark.asyncio
async def test_shutdown_idempotent():
    """Test that multiple shutdown calls are handled correctly."""
    shutdown = GracefulShutdown()
    call_count = []

    def handler():
        call_count.append(1)

    shutdown.register_handler(handler)

    await shutdown.shutdown()
    await shutdown.shutdown()

    assert len(call_count) == 1


@pytest.mark.asyncio
async def test_wait_for_shutdown():
    """Test waiting for shutdown completion."""
    shutdown = GracefulShutdown()

    async def wait_task():
        await shutdown.wait_for_shutdown()
        return "completed"

    wait_future = asyncio.create_task(wait_task())

    await asyncio.sleep(0.01)
    assert not wait_future.done()

    await shutdown.shutdown()

    result = await wait_future
    assert result == "completed"


@pytest.mark.skipif(sys.platform == "win32", reason="SIGHUP is not available on Windows")
def test_reload_handler_runs_on_sighup():
    calls = []
    previous = signal.getsignal(signal.SIGHUP)
    try:
        assert install_reload_handler(lambda: calls.append("reload"))

        signal.getsignal(signal.SIGHUP)(signal.SIGHUP, None)
    finally:
        signal.signal(signal.SIGHUP, previous)

    assert calls == ["reload"]


@pytest.mark.skipif(sys.platform == "win32", reason="SIGHUP is not available on Windows")
def test_reload_handler_survives_failing_reload():
    previous = signal.getsignal(signal.SIGHUP)

    def broken():
        raise RuntimeError("bad config")

    try:
        install_reload_handler(broken)
        signal.getsignal(signal.SIGHUP)(signal.SIGHUP, None)
    finally:
        signal.signal(signal.SIGHUP, previous)


def test_reload_handler_skipped_off_main_thread():
    results = []
    worker = threading.Thread(target=lambda: results.append(install_reload_handler(lambda: None)))
    worker.start()
    worker.join()

    assert results == [False]
