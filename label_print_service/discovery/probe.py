"""
Connection Probe
================

One bounded TCP connection attempt per call, classified into a typed
ProbeResult. Expected failures (bad input, refused, unreachable, timeout)
are results, never exceptions.
"""

import asyncio
import errno
import logging
import re
import time
from typing import Any, Awaitable, Callable, Tuple

from ..models import ProbeResult, ProbeStatus, ProbeTarget

logger = logging.getLogger(__name__)

# (host, port) -> (reader, writer), e.g. asyncio.open_connection
Connector = Callable[[str, int], Awaitable[Tuple[Any, Any]]]

DEFAULT_TIMEOUT_MS = 3000

_DOTTED_QUAD = re.compile(r'^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$')

_UNREACHABLE_ERRNOS = {
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    getattr(errno, 'EHOSTDOWN', errno.EHOSTUNREACH),
}


def is_valid_address(address: Any) -> bool:
    """Decimal dotted IPv4 with every octet in 0..255."""
    if not isinstance(address, str):
        return False
    match = _DOTTED_QUAD.match(address.strip())
    return bool(match) and all(int(octet) <= 255 for octet in match.groups())


def is_valid_port(port: Any) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= 65535


def canonical_address(address: str) -> str:
    """Strip leading zeros so 192.168.014.200 is not read as octal by the resolver."""
    return '.'.join(str(int(octet)) for octet in address.strip().split('.'))


async def close_writer(writer: Any) -> None:
    """Close a stream writer and wait for the transport to go away."""
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug(f"Error while closing connection: {e}")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class ConnectionProbe:
    """Classifies single connection attempts."""

    def __init__(self, connector: Connector = asyncio.open_connection):
        self._connector = connector

    async def probe(self, target: ProbeTarget, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> ProbeResult:
        """
        Attempt one connection to ``target``.

        Args:
            target: Address and port to connect to
            timeout_ms: Give up after this many milliseconds

        Returns:
            ProbeResult; the socket, if any, is already closed
        """
        address, port = target.address, target.port

        if not is_valid_address(address):
            return ProbeResult(address, port, ProbeStatus.INVALID_ADDRESS, 0.0, 'Invalid IP address')
        if not is_valid_port(port):
            return ProbeResult(address, port, ProbeStatus.INVALID_PORT, 0.0, 'Invalid port number')

        started = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                self._connector(canonical_address(address), port),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            # The timer only fires after the full interval
            latency = max(_elapsed_ms(started), float(timeout_ms))
            return ProbeResult(address, port, ProbeStatus.TIMEOUT, latency, 'Connection timeout')
        except ConnectionRefusedError:
            return ProbeResult(address, port, ProbeStatus.REFUSED, _elapsed_ms(started), 'Connection refused')
        except OSError as e:
            latency = _elapsed_ms(started)
            if e.errno in _UNREACHABLE_ERRNOS:
                return ProbeResult(address, port, ProbeStatus.UNREACHABLE, latency,
                                   e.strerror or 'Host unreachable')
            return ProbeResult(address, port, ProbeStatus.REFUSED, latency, str(e) or 'Connection error')

        latency = _elapsed_ms(started)
        await close_writer(writer)
        logger.debug(f"Connected to {target} in {latency}ms")
        return ProbeResult(address, port, ProbeStatus.CONNECTED, latency)
