from __future__ import annotations

import asyncio

from pipeline.filters import FilterConfig
from pipeline.refresh import RefreshLoop


def _loop(compute, **kw):
    kw.setdefault("interval_s", 0.01)
    kw.setdefault("debounce_s", 0.01)
    return RefreshLoop(compute, **kw)


def test_refresh_publishes_snapshot():
    async def compute(config):
        return {"range": config.time_range}

    loop = _loop(compute, config=FilterConfig.create("7d"))
    assert asyncio.run(loop.refresh()) is True
    assert loop.snapshot == {"range": "7d"}
    assert loop.snapshot_config == FilterConfig.create("7d")


def test_only_the_last_request_in_a_burst_fetches():
    calls = []

    async def compute(config):
        calls.append(config.time_range)
        return config.time_range

    async def go():
        loop = _loop(compute, debounce_s=0.05)
        results = await asyncio.gather(
            loop.request(FilterConfig.create("1h")),
            loop.request(FilterConfig.create("7d")),
            loop.request(FilterConfig.create("30d")),
        )
        return loop, results

    loop, results = asyncio.run(go())
    assert results == [False, False, True]
    assert calls == ["30d"]
    assert loop.snapshot == "30d"


def test_stale_result_never_overwrites_newer_one():
    release_slow = None

    async def compute(config):
        if config.time_range == "1h":
            await release_slow.wait()
        return config.time_range

    async def go():
        nonlocal release_slow
        release_slow = asyncio.Event()
        loop = _loop(compute, debounce_s=0)
        slow = asyncio.create_task(loop.request(FilterConfig.create("1h")))
        await asyncio.sleep(0.01)
        fast = await loop.request(FilterConfig.create("30d"))
        release_slow.set()
        return loop, await slow, fast

    loop, slow, fast = asyncio.run(go())
    assert fast is True
    assert slow is False
    assert loop.snapshot == "30d"
    assert loop.snapshot_config.time_range == "30d"


def test_failed_compute_keeps_previous_snapshot(caplog):
    state = {"fail": False}

    async def compute(config):
        if state["fail"]:
            raise RuntimeError("upstream down")
        return "good"

    async def go():
        loop = _loop(compute)
        await loop.refresh()
        state["fail"] = True
        ok = await loop.refresh()
        return loop, ok

    loop, ok = asyncio.run(go())
    assert ok is False
    assert loop.snapshot == "good"
    assert "keeping previous snapshot" in caplog.text


def test_run_loop_refreshes_until_stopped():
    calls = []

    async def compute(config):
        calls.append(config)
        return len(calls)

    async def go():
        loop = _loop(compute, interval_s=0.01)
        loop.start()
        await asyncio.sleep(0.1)
        await loop.stop()
        return loop

    loop = asyncio.run(go())
    assert len(calls) >= 2
    assert loop.snapshot == len(calls)
    assert loop._task is None
