"""Tests for the discovery strategies."""

import asyncio
import time

import pytest

from label_print_service.discovery import (
    ConcurrentProbeScheduler, ConnectionProbe, DiscoveryService, NetworkInfoProvider,
    generate_ip_range, success_rate,
)
from label_print_service.discovery.strategies import SMART_SCAN_LIMIT, sort_by_latency
from label_print_service.models import DiscoveryOptions, ProbeResult, ProbeStatus, ProbeTarget
from tests.conftest import FakeNetwork, static_provider


def _service(net, provider=None):
    return DiscoveryService(
        network_provider=provider or static_provider(),
        scheduler=ConcurrentProbeScheduler(ConnectionProbe(net)),
    )


class RecordingScheduler:
    """Captures the arguments the strategies pass to the scheduler."""

    def __init__(self):
        self.calls = []

    async def run(self, targets, timeout_ms, max_concurrent):
        self.calls.append((list(targets), timeout_ms, max_concurrent))
        return [ProbeResult(t.address, t.port, ProbeStatus.REFUSED) for t in targets]


# =============================================================================
# Range Generation
# =============================================================================

def test_quick_range():
    assert generate_ip_range('192.168.1', 'quick') == [
        '192.168.1.1', '192.168.1.100', '192.168.1.200', '192.168.1.201', '192.168.1.254',
    ]


def test_smart_range():
    addresses = generate_ip_range('10.0.0', 'smart')
    assert len(addresses) == 22
    assert addresses[0] == '10.0.0.1'
    assert '10.0.0.150' in addresses


def test_comprehensive_range():
    addresses = generate_ip_range('172.16.0', 'comprehensive')
    assert len(addresses) == 254
    assert addresses[0] == '172.16.0.1'
    assert addresses[-1] == '172.16.0.254'


def test_unknown_range_strategy():
    with pytest.raises(ValueError):
        generate_ip_range('192.168.1', 'everything')


def test_success_rate():
    results = [
        ProbeResult('10.0.0.1', 9100, ProbeStatus.CONNECTED),
        ProbeResult('10.0.0.2', 9100, ProbeStatus.CONNECTED),
        ProbeResult('10.0.0.3', 9100, ProbeStatus.TIMEOUT),
    ]
    assert success_rate(results) == 66.67
    assert success_rate(results[:2]) == 100
    assert success_rate([]) == 0


def test_sort_by_latency():
    results = [
        ProbeResult('10.0.0.1', 9100, ProbeStatus.CONNECTED, 30.0),
        ProbeResult('10.0.0.2', 9100, ProbeStatus.CONNECTED, 5.0),
        ProbeResult('10.0.0.3', 9100, ProbeStatus.CONNECTED, 12.5),
    ]
    assert [r.latency_ms for r in sort_by_latency(results)] == [5.0, 12.5, 30.0]


# =============================================================================
# Strategies
# =============================================================================

@pytest.mark.asyncio
async def test_quick_scan_finds_single_printer():
    net = FakeNetwork(accepting=[('192.168.1.200', 9101)])
    run = await _service(net).quick_scan()

    assert run.method == 'quick'
    assert run.error is None
    assert run.scanned_count == 15
    assert len(run.results) == 15
    assert [(p.address, p.port) for p in run.found] == [('192.168.1.200', 9101)]
    assert run.success_rate == 6.67


@pytest.mark.asyncio
async def test_quick_scan_uses_strategy_defaults():
    scheduler = RecordingScheduler()
    service = DiscoveryService(network_provider=static_provider(), scheduler=scheduler)

    await service.quick_scan()

    targets, timeout_ms, max_concurrent = scheduler.calls[0]
    assert (timeout_ms, max_concurrent) == (2000, 20)
    assert {t.port for t in targets} == {9100, 9101, 9102}


@pytest.mark.asyncio
async def test_options_override_defaults():
    scheduler = RecordingScheduler()
    service = DiscoveryService(network_provider=static_provider(), scheduler=scheduler)

    await service.discover('quick', DiscoveryOptions(timeout_ms=500, max_concurrent=2, ports=[9100]))

    targets, timeout_ms, max_concurrent = scheduler.calls[0]
    assert (timeout_ms, max_concurrent) == (500, 2)
    assert len(targets) == 5


@pytest.mark.asyncio
async def test_found_sorted_by_latency():
    net = FakeNetwork(
        accepting=[('192.168.1.1', 9100), ('192.168.1.100', 9100), ('192.168.1.254', 9100)],
        delays={('192.168.1.1', 9100): 0.03, ('192.168.1.100', 9100): 0.01},
    )
    run = await _service(net).discover('quick', DiscoveryOptions(ports=[9100]))

    latencies = [p.latency_ms for p in run.found]
    assert latencies == sorted(latencies)
    assert run.found[-1].address == '192.168.1.1'


@pytest.mark.asyncio
async def test_smart_scan_reports_networks_and_caps_targets():
    scheduler = RecordingScheduler()
    service = DiscoveryService(network_provider=static_provider(), scheduler=scheduler)

    run = await service.smart_scan()

    targets, timeout_ms, max_concurrent = scheduler.calls[0]
    assert len(targets) <= SMART_SCAN_LIMIT
    assert (timeout_ms, max_concurrent) == (3000, 15)
    assert run.networks[0] == '192.168.1'
    assert targets[0].address == '192.168.1.1'


@pytest.mark.asyncio
async def test_comprehensive_scan_coverage():
    net = FakeNetwork(accepting=[('10.0.0.77', 9100)])
    provider = static_provider(gateway='10.0.0.1', interfaces=[])
    run = await _service(net, provider).comprehensive_scan(DiscoveryOptions(ports=[9100]))

    networks = run.networks
    assert networks[0] == '10.0.0'
    assert run.coverage.total_hosts == len(networks) * 254
    assert run.coverage.scanned_hosts == len(networks) * 254
    assert run.coverage.coverage_percent == 100.0
    assert [p.address for p in run.found] == ['10.0.0.77']


@pytest.mark.asyncio
async def test_comprehensive_without_interfaces_has_zero_coverage():
    def broken_interfaces():
        raise OSError('no interfaces')

    provider = NetworkInfoProvider(interface_source=broken_interfaces, route_source=lambda: '')
    run = await _service(FakeNetwork(), provider).comprehensive_scan()

    assert run.error is None
    assert run.networks == []
    assert run.coverage.total_hosts == 0
    assert run.coverage.coverage_percent == 0
    assert run.found == []


@pytest.mark.asyncio
async def test_custom_scan():
    net = FakeNetwork(accepting=[('10.0.0.5', 9100), ('10.0.0.6', 9100)])
    targets = [ProbeTarget('10.0.0.5', 9100), ProbeTarget('10.0.0.6', 9100), ProbeTarget('10.0.0.7', 9100)]

    run = await _service(net).custom_scan(targets)

    assert run.method == 'custom'
    assert run.scanned_count == 3
    assert sorted(str(r.target) for r in run.results) == sorted(str(t) for t in targets)
    assert run.success_rate == 66.67
    assert {p.address for p in run.found} == {'10.0.0.5', '10.0.0.6'}
    assert run.to_dict()['targets'][0] == {'address': '10.0.0.5', 'port': 9100}


@pytest.mark.asyncio
async def test_custom_scan_empty_input():
    scheduler = RecordingScheduler()
    service = DiscoveryService(network_provider=static_provider(), scheduler=scheduler)

    run = await service.discover('custom', targets=[])

    assert scheduler.calls == []
    assert run.found == []
    assert run.scanned_count == 0
    assert run.success_rate == 0


@pytest.mark.asyncio
async def test_custom_scan_invalid_target_is_a_result():
    run = await _service(FakeNetwork()).custom_scan([ProbeTarget('not-an-ip', 9100)])

    assert run.results[0].status == ProbeStatus.INVALID_ADDRESS
    assert run.found == []


@pytest.mark.asyncio
async def test_strategy_failure_yields_empty_run():
    class BrokenProvider:
        def detect_topology(self):
            raise RuntimeError('routing table unreadable')

    service = DiscoveryService(network_provider=BrokenProvider(), scheduler=RecordingScheduler())

    run = await service.smart_scan()

    assert run.found == []
    assert run.success_rate == 0
    assert run.networks == []
    assert 'routing table unreadable' in run.error


@pytest.mark.asyncio
async def test_unknown_method():
    with pytest.raises(ValueError):
        await _service(FakeNetwork()).discover('everything')


@pytest.mark.asyncio
async def test_slow_route_lookup_does_not_block_loop():
    def slow_routes():
        time.sleep(0.5)
        return 'default via 192.168.1.1 dev eth0'

    provider = NetworkInfoProvider(interface_source=lambda: [], route_source=slow_routes)
    service = DiscoveryService(network_provider=provider, scheduler=RecordingScheduler())
    gaps = []

    async def ticker():
        last = time.perf_counter()
        while True:
            await asyncio.sleep(0.02)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    task = asyncio.create_task(ticker())
    try:
        run = await service.quick_scan()
    finally:
        task.cancel()

    assert run.error is None
    assert len(gaps) > 5
    assert max(gaps) < 0.2
