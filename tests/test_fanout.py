import asyncio

import pytest

from solrlens.domain.services.fanout import run_all


@pytest.mark.asyncio
async def test_failures_stay_with_their_target():
    async def probe(n):
        if n == 2:
            raise RuntimeError("boom")
        return n * 10

    outcomes = await run_all([1, 2, 3], probe)
    assert [o.target for o in outcomes] == [1, 2, 3]
    assert [o.value for o in outcomes] == [10, None, 30]
    assert not outcomes[1].ok
    assert outcomes[1].error_message == "boom"


@pytest.mark.asyncio
async def test_timeout_becomes_failure():
    async def probe(n):
        if n == "slow":
            await asyncio.sleep(5)
        return n

    outcomes = await run_all(["fast", "slow"], probe, timeout=0.05)
    assert outcomes[0].ok
    assert outcomes[1].error_message == "Probe timed out"


@pytest.mark.asyncio
async def test_probes_run_concurrently():
    started = asyncio.Event()

    async def probe(n):
        if n == 0:
            await asyncio.wait_for(started.wait(), 1)
        else:
            started.set()
        return n

    outcomes = await run_all([0, 1], probe)
    assert all(o.ok for o in outcomes)


@pytest.mark.asyncio
async def test_limit_bounds_in_flight():
    in_flight = 0
    peak = 0

    async def probe(n):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return n

    outcomes = await run_all(list(range(8)), probe, limit=2)
    assert len(outcomes) == 8
    assert peak == 2


@pytest.mark.asyncio
async def test_empty_targets():
    assert await run_all([], lambda t: t) == []
