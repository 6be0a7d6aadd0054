"""
Shared test doubles.

Network access is simulated with a connector callable that stands in for
``asyncio.open_connection``.
"""

import asyncio

from label_print_service.discovery import NetworkInfoProvider
from label_print_service.models import NetworkInterface


class FakeReader:
    def __init__(self, reply: bytes = b'', silent: bool = False):
        self.reply = reply
        self.silent = silent

    async def read(self, n: int = -1) -> bytes:
        if self.silent:
            await asyncio.sleep(3600)
        return self.reply if n < 0 else self.reply[:n]


class FakeWriter:
    def __init__(self):
        self.data = bytearray()
        self.writes = []
        self.closed = False

    def write(self, data: bytes):
        self.writes.append(bytes(data))
        self.data.extend(data)

    async def drain(self):
        pass

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


class FakeNetwork:
    """
    Connector double. Targets in ``accepting`` accept connections, ``replies``
    maps (address, port) to a status reply, ``errors`` to an exception to
    raise, and ``hang`` never completes the connect. Everything else is
    refused.
    """

    def __init__(self, accepting=(), replies=None, errors=None, hang=(), silent=(), delays=None):
        self.accepting = set(accepting)
        self.replies = dict(replies or {})
        self.errors = dict(errors or {})
        self.hang = set(hang)
        self.silent = set(silent)
        self.delays = dict(delays or {})
        self.attempts = []
        self.writers = []

    async def __call__(self, host, port):
        key = (host, port)
        self.attempts.append(key)
        if key in self.delays:
            await asyncio.sleep(self.delays[key])
        if key in self.errors:
            raise self.errors[key]
        if key in self.hang:
            await asyncio.sleep(3600)
        if key in self.accepting or key in self.replies or key in self.silent:
            writer = FakeWriter()
            self.writers.append(writer)
            return FakeReader(self.replies.get(key, b''), silent=key in self.silent), writer
        raise ConnectionRefusedError(f'{host}:{port} refused')


def static_provider(gateway='192.168.1.1', interfaces=None):
    """NetworkInfoProvider with a fixed interface list and route table."""
    if interfaces is None:
        interfaces = [NetworkInterface('eth0', '192.168.1.50', '192.168.1')]
    route = f'default via {gateway} dev eth0 proto dhcp metric 100\n' if gateway else ''
    return NetworkInfoProvider(interface_source=lambda: list(interfaces), route_source=lambda: route)
