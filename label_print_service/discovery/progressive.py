"""
Progressive Discovery
=====================

Escalates quick -> smart -> comprehensive until enough printers are found
or the time budget runs out. A stage still running when the budget is
spent is cancelled and reported as incomplete. Printers found by several
stages are reported once, keyed by (address, port).
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from .strategies import DiscoveryService
from ..models import DiscoveryStage, ProbeResult, ProgressiveDiscoveryResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_DURATION_MS = 15000

# Remaining budget (ms) required before starting each stage
QUICK_MIN_REMAINING_MS = 3000
SMART_MIN_REMAINING_MS = 5000
COMPREHENSIVE_MIN_REMAINING_MS = 10000

STAGE_MIN_REMAINING_MS = {
    'quick': QUICK_MIN_REMAINING_MS,
    'smart': SMART_MIN_REMAINING_MS,
    'comprehensive': COMPREHENSIVE_MIN_REMAINING_MS,
}


class ProgressiveDiscovery:
    """Runs discovery strategies in order of increasing cost."""

    def __init__(self, service: DiscoveryService,
                 min_remaining_ms: Optional[Dict[str, int]] = None):
        self.service = service
        self.min_remaining_ms = {**STAGE_MIN_REMAINING_MS, **(min_remaining_ms or {})}

    async def run(self, min_printers: int = 1,
                  max_duration_ms: int = DEFAULT_MAX_DURATION_MS,
                  force_comprehensive: bool = False) -> ProgressiveDiscoveryResult:
        started = time.perf_counter()
        result = ProgressiveDiscoveryResult()
        printers: List[ProbeResult] = []

        def remaining_ms() -> float:
            return max_duration_ms - (time.perf_counter() - started) * 1000

        async def stage(name: str):
            stage_started = time.perf_counter()
            try:
                run = await asyncio.wait_for(self.service.discover(name), timeout=remaining_ms() / 1000)
            except asyncio.TimeoutError:
                elapsed = round((time.perf_counter() - stage_started) * 1000, 2)
                logger.warning(f"Progressive discovery: {name} stage cut off after {elapsed}ms")
                result.stages[name] = DiscoveryStage(False, 0, elapsed, 'Time budget exhausted')
                return
            if run.error:
                result.stages[name] = DiscoveryStage(False, 0, run.duration_ms, run.error)
                return
            known = {(p.address, p.port) for p in printers}
            printers.extend(p for p in run.found if (p.address, p.port) not in known)
            result.stages[name] = DiscoveryStage(True, len(run.found), run.duration_ms)

        if remaining_ms() > self.min_remaining_ms['quick']:
            await stage('quick')

        if len(printers) < min_printers and remaining_ms() > self.min_remaining_ms['smart']:
            await stage('smart')

        wants_comprehensive = force_comprehensive or not printers
        if wants_comprehensive and remaining_ms() > self.min_remaining_ms['comprehensive']:
            await stage('comprehensive')

        result.printers = printers
        result.duration_ms = round((time.perf_counter() - started) * 1000, 2)
        result.success = any(s.completed for s in result.stages.values()) or not result.stages
        if not result.success:
            result.error = 'All discovery stages failed'
        logger.info(f"Progressive discovery: {result.total_found} printers in {result.duration_ms}ms "
                    f"(stages: {', '.join(result.stages) or 'none'})")
        return result
