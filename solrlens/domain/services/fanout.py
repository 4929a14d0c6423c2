"""Concurrent join-all over probe targets.

``run_all`` dispatches one probe per target and waits for every one of them
to settle. A probe that raises or times out yields a failed ``ProbeOutcome``
for its own target only; siblings keep running. Outcomes come back in input
order so callers can zip them with parallel lists.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ProbeOutcome(Generic[T, R]):
    target: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        if isinstance(self.error, asyncio.TimeoutError):
            return "Probe timed out"
        return str(self.error) or type(self.error).__name__


async def run_all(
    targets: Sequence[T],
    probe: Callable[[T], Awaitable[R]],
    *,
    limit: int | None = None,
    timeout: float | None = None,
) -> list[ProbeOutcome[T, R]]:
    """
    Run *probe* for every target concurrently and collect every outcome.

    Parameters
    ----------
    limit : int | None
        Max probes in flight; ``None`` or ``0`` means unbounded.
    timeout : float | None
        Optional per-target deadline in seconds on top of the probe's own.
    """
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def _one(target: T) -> ProbeOutcome[T, R]:
        try:
            if semaphore is None:
                value = await _bounded(probe(target), timeout)
            else:
                async with semaphore:
                    value = await _bounded(probe(target), timeout)
        except Exception as exc:  # CancelledError is a BaseException and propagates
            logger.debug("Probe for %r failed: %s", target, exc)
            return ProbeOutcome(target=target, error=exc)
        return ProbeOutcome(target=target, value=value)

    return list(await asyncio.gather(*(_one(t) for t in targets)))


async def _bounded(coro: Awaitable[R], timeout: float | None) -> R:
    if timeout is None:
        return await coro
    return await asyncio.wait_for(coro, timeout)
