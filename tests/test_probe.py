"""Tests for the single-target connection probe."""

import asyncio
import errno

import pytest

from label_print_service.discovery.probe import (
    ConnectionProbe, canonical_address, is_valid_address, is_valid_port,
)
from label_print_service.models import ProbeStatus, ProbeTarget
from tests.conftest import FakeNetwork


@pytest.mark.parametrize('address', ['192.168.1.1', '10.0.0.254', '0.0.0.0', '192.168.014.200'])
def test_valid_addresses(address):
    assert is_valid_address(address)


@pytest.mark.parametrize('address', ['192.168.1', '256.1.1.1', 'printer.local', '', None, '1.2.3.4.5'])
def test_invalid_addresses(address):
    assert not is_valid_address(address)


def test_port_validation():
    assert is_valid_port(9100)
    assert is_valid_port(65535)
    assert not is_valid_port(0)
    assert not is_valid_port(70000)
    assert not is_valid_port('9100')
    assert not is_valid_port(True)


def test_canonical_address_strips_leading_zeros():
    assert canonical_address('192.168.014.007') == '192.168.14.7'


@pytest.mark.asyncio
async def test_connected_closes_socket():
    net = FakeNetwork(accepting=[('192.168.1.200', 9100)])
    result = await ConnectionProbe(net).probe(ProbeTarget('192.168.1.200', 9100), 500)

    assert result.status == ProbeStatus.CONNECTED
    assert result.connected
    assert result.error is None
    assert result.latency_ms >= 0
    assert net.writers[0].closed


@pytest.mark.asyncio
async def test_refused():
    result = await ConnectionProbe(FakeNetwork()).probe(ProbeTarget('192.168.1.10', 9100), 500)

    assert result.status == ProbeStatus.REFUSED
    assert result.error == 'Connection refused'
    assert not result.connected


@pytest.mark.asyncio
async def test_timeout_latency_at_least_timeout():
    net = FakeNetwork(hang=[('10.0.0.9', 9100)])
    result = await ConnectionProbe(net).probe(ProbeTarget('10.0.0.9', 9100), 50)

    assert result.status == ProbeStatus.TIMEOUT
    assert result.latency_ms >= 50
    assert result.error == 'Connection timeout'


@pytest.mark.asyncio
async def test_unreachable():
    error = OSError(errno.EHOSTUNREACH, 'No route to host')
    net = FakeNetwork(errors={('10.1.1.1', 9100): error})
    result = await ConnectionProbe(net).probe(ProbeTarget('10.1.1.1', 9100), 500)

    assert result.status == ProbeStatus.UNREACHABLE
    assert result.error == 'No route to host'


@pytest.mark.asyncio
async def test_other_os_error_reported_as_refused():
    net = FakeNetwork(errors={('10.1.1.1', 9100): OSError('connection reset')})
    result = await ConnectionProbe(net).probe(ProbeTarget('10.1.1.1', 9100), 500)

    assert result.status == ProbeStatus.REFUSED
    assert 'connection reset' in result.error


@pytest.mark.asyncio
async def test_invalid_input_never_connects():
    net = FakeNetwork()
    probe = ConnectionProbe(net)

    bad_address = await probe.probe(ProbeTarget('999.1.1.1', 9100), 500)
    bad_port = await probe.probe(ProbeTarget('192.168.1.1', 99999), 500)

    assert bad_address.status == ProbeStatus.INVALID_ADDRESS
    assert bad_address.latency_ms == 0
    assert bad_port.status == ProbeStatus.INVALID_PORT
    assert net.attempts == []


@pytest.mark.asyncio
async def test_connects_to_canonical_address():
    net = FakeNetwork(accepting=[('192.168.14.200', 9101)])
    result = await ConnectionProbe(net).probe(ProbeTarget('192.168.014.200', 9101), 500)

    assert result.connected
    assert result.address == '192.168.014.200'
    assert net.attempts == [('192.168.14.200', 9101)]


@pytest.mark.asyncio
async def test_real_loopback_listener():
    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, '127.0.0.1', 0)
    port = server.sockets[0].getsockname()[1]
    try:
        result = await ConnectionProbe().probe(ProbeTarget('127.0.0.1', port), 1000)
    finally:
        server.close()
        await server.wait_closed()

    assert result.status == ProbeStatus.CONNECTED


def test_result_to_dict():
    net = FakeNetwork()
    result = asyncio.run(ConnectionProbe(net).probe(ProbeTarget('192.168.1.10', 9100), 500))
    data = result.to_dict()

    assert data['status'] == 'refused'
    assert data['address'] == '192.168.1.10'
    assert data['port'] == 9100
