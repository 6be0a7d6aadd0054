"""
Concurrent Probe Scheduler
==========================

Runs a batch of probes on the event loop with a ceiling on how many are in
flight at once. Worst-case wall clock is roughly
``timeout * ceil(len(targets) / max_concurrent)``.
"""

import asyncio
import logging
from typing import List, Sequence

from .probe import ConnectionProbe, DEFAULT_TIMEOUT_MS
from ..models import ProbeResult, ProbeStatus, ProbeTarget

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 10


class ConcurrentProbeScheduler:
    """Probes many targets, at most ``max_concurrent`` at a time."""

    def __init__(self, probe: ConnectionProbe = None):
        self.probe = probe or ConnectionProbe()
        # Only touched from the event loop thread
        self.active = 0
        self.peak_active = 0

    async def run(self, targets: Sequence[ProbeTarget],
                  timeout_ms: int = DEFAULT_TIMEOUT_MS,
                  max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> List[ProbeResult]:
        """
        Probe every target and return the whole batch.

        Results are in completion order, one per target.

        Raises:
            ValueError: timeout_ms is not a positive number
        """
        if not isinstance(timeout_ms, (int, float)) or timeout_ms <= 0:
            raise ValueError(f'timeout_ms must be positive, got {timeout_ms!r}')
        if max_concurrent is None or max_concurrent <= 0:
            logger.warning(f"max_concurrent={max_concurrent!r} clamped to 1")
            max_concurrent = 1

        results: List[ProbeResult] = []
        semaphore = asyncio.Semaphore(max_concurrent)
        self.peak_active = 0

        async def probe_one(target: ProbeTarget):
            async with semaphore:
                self.active += 1
                self.peak_active = max(self.peak_active, self.active)
                try:
                    result = await self.probe.probe(target, timeout_ms)
                except Exception as e:
                    logger.warning(f"Probe of {target} raised: {e}")
                    result = ProbeResult(target.address, target.port, ProbeStatus.REFUSED, 0.0, str(e))
                finally:
                    self.active -= 1
                results.append(result)

        await asyncio.gather(*(probe_one(t) for t in targets))
        logger.debug(f"Probed {len(targets)} targets, peak concurrency {self.peak_active}")
        return results
