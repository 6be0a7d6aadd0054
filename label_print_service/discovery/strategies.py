"""
Discovery Strategies
====================

Quick, smart, comprehensive and custom scans. Each strategy builds a
target list, hands it to the scheduler, keeps the connected results sorted
by latency and reports aggregate figures.

Strategy entry points never raise: any failure is logged and turned into
an empty, zero-success DiscoveryRun.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .network import NetworkInfoProvider
from .scheduler import ConcurrentProbeScheduler
from ..models import (
    Coverage,
    DiscoveryOptions,
    DiscoveryRun,
    NetworkTopology,
    ProbeResult,
    ProbeTarget,
)

logger = logging.getLogger(__name__)

HOSTS_PER_SUBNET = 254

# Host endings printers are most often configured on
QUICK_HOSTS = [1, 100, 200, 201, 254]
SMART_HOSTS = [
    1, 2, 3, 4, 5, 10, 11, 12, 20, 50,
    100, 101, 102, 103, 110, 150, 200, 201, 202, 210, 250, 254,
]

SMART_SCAN_LIMIT = 100

# Raw TCP ports label printers commonly listen on
DEFAULT_PORTS = [9100, 9101, 9102]

# Per-strategy probe timeout (ms) and concurrency ceiling
STRATEGY_DEFAULTS = {
    'quick': {'timeout_ms': 2000, 'max_concurrent': 20},
    'smart': {'timeout_ms': 3000, 'max_concurrent': 15},
    'comprehensive': {'timeout_ms': 4000, 'max_concurrent': 10},
    'custom': {'timeout_ms': 3000, 'max_concurrent': 15},
}

METHODS = ('quick', 'smart', 'comprehensive', 'custom')


def generate_ip_range(network: str, strategy: str) -> List[str]:
    """
    Generate host addresses on a /24 prefix.

    Args:
        network: Subnet prefix, e.g. "192.168.1"
        strategy: quick, smart or comprehensive

    Returns:
        List of dotted addresses
    """
    if strategy == 'quick':
        hosts: Iterable[int] = QUICK_HOSTS
    elif strategy == 'smart':
        hosts = SMART_HOSTS
    elif strategy == 'comprehensive':
        hosts = range(1, HOSTS_PER_SUBNET + 1)
    else:
        raise ValueError(f'Unknown range strategy {strategy!r}')
    return [f'{network}.{host}' for host in hosts]


def build_targets(addresses: Iterable[str], ports: Sequence[int]) -> List[ProbeTarget]:
    return [ProbeTarget(address, port) for address in addresses for port in ports]


def success_rate(results: Sequence[ProbeResult]) -> float:
    """Percentage of connected results, two decimals; 0 for an empty batch."""
    if not results:
        return 0.0
    connected = sum(1 for r in results if r.connected)
    return round(connected / len(results) * 100, 2)


def sort_by_latency(results: Iterable[ProbeResult]) -> List[ProbeResult]:
    return sorted(results, key=lambda r: r.latency_ms)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class DiscoveryService:
    """Printer discovery over the local network."""

    def __init__(self,
                 network_provider: Optional[NetworkInfoProvider] = None,
                 scheduler: Optional[ConcurrentProbeScheduler] = None,
                 default_ports: Optional[Sequence[int]] = None,
                 strategy_defaults: Optional[Dict[str, Dict[str, int]]] = None):
        self.network_provider = network_provider or NetworkInfoProvider()
        self.scheduler = scheduler or ConcurrentProbeScheduler()
        self.default_ports = list(default_ports or DEFAULT_PORTS)
        self.strategy_defaults = strategy_defaults or STRATEGY_DEFAULTS

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def discover(self, method: str, options: Optional[DiscoveryOptions] = None,
                       targets: Optional[Sequence[ProbeTarget]] = None) -> DiscoveryRun:
        """Dispatch to a strategy by name."""
        if method == 'quick':
            return await self.quick_scan(options)
        if method == 'smart':
            return await self.smart_scan(options)
        if method == 'comprehensive':
            return await self.comprehensive_scan(options)
        if method == 'custom':
            return await self.custom_scan(targets or [], options)
        raise ValueError(f'Unknown discovery method {method!r}. Valid: {list(METHODS)}')

    async def quick_scan(self, options: Optional[DiscoveryOptions] = None) -> DiscoveryRun:
        """Most likely printer addresses on the current subnet (a few seconds)."""
        started_at, started = datetime.now(), time.perf_counter()
        try:
            topology = await self.detect_topology()
            addresses = generate_ip_range(topology.local_subnet_prefix, 'quick')
            targets = build_targets(addresses, self._ports(options))
            return await self._run('quick', targets, options, started_at, started)
        except Exception as e:
            logger.exception("Quick scan failed")
            return self._failed('quick', started_at, started, e)

    async def smart_scan(self, options: Optional[DiscoveryOptions] = None) -> DiscoveryRun:
        """Topology-driven scan of popular addresses (under ten seconds)."""
        started_at, started = datetime.now(), time.perf_counter()
        try:
            topology = await self.detect_topology()
            targets = self.smart_targets(topology, self._ports(options))
            run = await self._run('smart', targets, options, started_at, started)
            run.networks = list(topology.candidate_subnet_prefixes)
            return run
        except Exception as e:
            logger.exception("Smart scan failed")
            run = self._failed('smart', started_at, started, e)
            run.networks = []
            return run

    async def comprehensive_scan(self, options: Optional[DiscoveryOptions] = None) -> DiscoveryRun:
        """Every host on every candidate subnet and port."""
        started_at, started = datetime.now(), time.perf_counter()
        try:
            topology = await self.detect_topology()
            addresses = [
                address
                for network in topology.candidate_subnet_prefixes
                for address in generate_ip_range(network, 'comprehensive')
            ]
            targets = build_targets(addresses, self._ports(options))
            run = await self._run('comprehensive', targets, options, started_at, started)
            run.networks = list(topology.candidate_subnet_prefixes)
            run.coverage = Coverage(
                total_hosts=len(topology.candidate_subnet_prefixes) * HOSTS_PER_SUBNET,
                scanned_hosts=len({t.address for t in targets}),
            )
            return run
        except Exception as e:
            logger.exception("Comprehensive scan failed")
            run = self._failed('comprehensive', started_at, started, e)
            run.networks = []
            return run

    async def custom_scan(self, targets: Sequence[ProbeTarget],
                          options: Optional[DiscoveryOptions] = None) -> DiscoveryRun:
        """Probe caller-supplied targets only."""
        started_at, started = datetime.now(), time.perf_counter()
        targets = list(targets)
        if not targets:
            return DiscoveryRun(method='custom', started_at=started_at, duration_ms=0.0)
        try:
            return await self._run('custom', targets, options, started_at, started)
        except Exception as e:
            logger.exception("Custom scan failed")
            run = self._failed('custom', started_at, started, e)
            run.targets = targets
            run.scanned_count = len(targets)
            return run

    async def detect_topology(self) -> NetworkTopology:
        """Topology lookup in a worker thread, off the event loop (route commands block)."""
        return await asyncio.to_thread(self.network_provider.detect_topology)

    # =========================================================================
    # Target Generation
    # =========================================================================

    def smart_targets(self, topology: NetworkTopology, ports: Sequence[int]) -> List[ProbeTarget]:
        """Wide host list on the current subnet, quick list elsewhere, capped."""
        addresses = generate_ip_range(topology.local_subnet_prefix, 'smart')
        for network in topology.candidate_subnet_prefixes:
            if network != topology.local_subnet_prefix:
                addresses.extend(generate_ip_range(network, 'quick'))
        limit = max(1, SMART_SCAN_LIMIT // max(1, len(ports)))
        return build_targets(addresses[:limit], ports)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ports(self, options: Optional[DiscoveryOptions]) -> List[int]:
        if options and options.ports:
            return list(options.ports)
        return list(self.default_ports)

    def _settings(self, method: str, options: Optional[DiscoveryOptions]):
        defaults = self.strategy_defaults[method]
        timeout_ms = defaults['timeout_ms']
        max_concurrent = defaults['max_concurrent']
        if options and options.timeout_ms is not None:
            timeout_ms = options.timeout_ms
        if options and options.max_concurrent is not None:
            max_concurrent = options.max_concurrent
        return timeout_ms, max_concurrent

    async def _run(self, method: str, targets: List[ProbeTarget],
                   options: Optional[DiscoveryOptions],
                   started_at: datetime, started: float) -> DiscoveryRun:
        timeout_ms, max_concurrent = self._settings(method, options)
        logger.info(f"{method} scan: {len(targets)} targets, timeout {timeout_ms}ms, "
                    f"max {max_concurrent} concurrent")

        results = await self.scheduler.run(targets, timeout_ms=timeout_ms, max_concurrent=max_concurrent)
        found = sort_by_latency(r for r in results if r.connected)

        run = DiscoveryRun(
            method=method,
            started_at=started_at,
            duration_ms=_elapsed_ms(started),
            targets=targets,
            results=results,
            found=found,
            scanned_count=len(targets),
            success_rate=success_rate(results),
        )
        logger.info(f"{method} scan finished in {run.duration_ms}ms: "
                    f"{len(found)} found, {run.success_rate}% success")
        return run

    def _failed(self, method: str, started_at: datetime, started: float, error: Exception) -> DiscoveryRun:
        return DiscoveryRun(
            method=method,
            started_at=started_at,
            duration_ms=_elapsed_ms(started),
            error=str(error),
        )
