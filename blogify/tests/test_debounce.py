"""Tests for the debouncer and periodic timer."""

import asyncio

from blogify.services.debounce import Debouncer, PeriodicTimer


async def test_debouncer_fires_once_after_last_trigger():
    calls = []

    async def callback():
        calls.append(asyncio.get_running_loop().time())

    debouncer = Debouncer(0.05, callback)
    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0.01)
    assert calls == []

    await asyncio.sleep(0.1)
    assert len(calls) == 1
    assert not debouncer.pending


async def test_cancel_drops_pending_call():
    callback = _counter()
    debouncer = Debouncer(0.02, callback)
    debouncer.trigger()
    debouncer.cancel()
    await asyncio.sleep(0.05)
    assert callback.count == 0


async def test_retrigger_does_not_cancel_running_callback():
    started = asyncio.Event()
    finished = []

    async def slow():
        started.set()
        await asyncio.sleep(0.05)
        finished.append(True)

    debouncer = Debouncer(0.01, slow)
    debouncer.trigger()
    await started.wait()

    debouncer.trigger()
    debouncer.cancel()
    await debouncer.drain()

    assert finished == [True]


async def test_callback_errors_are_logged(caplog):
    async def boom():
        raise RuntimeError("boom")

    debouncer = Debouncer(0.01, boom)
    debouncer.trigger()
    await asyncio.sleep(0.05)
    assert "Debounced callback failed" in caplog.text


async def test_periodic_timer_runs_until_stopped():
    callback = _counter()
    timer = PeriodicTimer(0.02, callback)
    timer.start()
    await asyncio.sleep(0.09)
    timer.stop()
    seen = callback.count
    await asyncio.sleep(0.05)

    assert seen >= 2
    assert callback.count == seen
    assert not timer.running


async def test_periodic_timer_survives_callback_error():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first call fails")

    timer = PeriodicTimer(0.01, flaky)
    timer.start()
    await asyncio.sleep(0.06)
    timer.stop()
    assert len(calls) >= 2


def _counter():
    async def callback():
        callback.count += 1

    callback.count = 0
    return callback
