"""
Print Transport
===============

Streams finished command payloads to a printer over raw TCP. The wire
protocol has no acknowledgement, so completion is inferred: the payload is
written in small chunks, then the connection is held open for a settle
interval before closing.
"""

import asyncio
import logging
import time
from typing import Optional, Union

from .discovery.probe import Connector, canonical_address, close_writer, is_valid_address, is_valid_port
from .encoder import ImageSource, LabelRasterEncoder
from .handlers import Dialect
from .models import LabelCommand, PrintResult

logger = logging.getLogger(__name__)


class PrintTransport:
    """Sends command streams to a printer's raw port."""

    def __init__(self, connector: Connector = asyncio.open_connection,
                 chunk_size: int = 4096, chunk_delay_ms: int = 10,
                 settle_ms: int = 1000, timeout_ms: int = 10000):
        if chunk_size <= 0:
            raise ValueError(f'chunk_size must be positive, got {chunk_size}')
        self._connector = connector
        self.chunk_size = chunk_size
        self.chunk_delay_ms = chunk_delay_ms
        self.settle_ms = settle_ms
        self.timeout_ms = timeout_ms

    async def send(self, address: str, port: int, payload: Union[bytes, str, LabelCommand]) -> PrintResult:
        """
        Deliver a payload.

        Args:
            address: Printer IPv4 address
            port: Printer raw port (usually 9100-9102)
            payload: Command bytes, text, or a LabelCommand

        Returns:
            PrintResult; never raises for connection problems
        """
        if isinstance(payload, LabelCommand):
            payload = payload.payload
        elif isinstance(payload, str):
            payload = payload.encode('utf-8')

        if not is_valid_address(address):
            return PrintResult(False, address, port, error=f'Invalid printer address {address!r}')
        if not is_valid_port(port):
            return PrintResult(False, address, port, error=f'Invalid printer port {port!r}')
        if not payload:
            return PrintResult(False, address, port, error='Nothing to send')

        timeout = self.timeout_ms / 1000
        started = time.perf_counter()
        bytes_sent = 0
        chunks = 0
        writer = None
        phase = 'connect'
        try:
            _, writer = await asyncio.wait_for(self._connector(canonical_address(address), port), timeout)
            logger.info(f"Connected to {address}:{port}, sending {len(payload)} bytes")

            phase = 'send'
            for offset in range(0, len(payload), self.chunk_size):
                chunk = payload[offset:offset + self.chunk_size]
                writer.write(chunk)
                await asyncio.wait_for(writer.drain(), timeout)
                bytes_sent += len(chunk)
                chunks += 1
                if offset + self.chunk_size < len(payload) and self.chunk_delay_ms:
                    await asyncio.sleep(self.chunk_delay_ms / 1000)

            phase = 'settle'
            if self.settle_ms:
                await asyncio.sleep(self.settle_ms / 1000)

        except asyncio.TimeoutError:
            error = f'Timeout during {phase} to {address}:{port}'
        except ConnectionRefusedError:
            error = f'Connection refused by {address}:{port}'
        except OSError as e:
            error = f'Connection error during {phase} to {address}:{port}: {e}'
        else:
            error = None
        finally:
            if writer is not None:
                await close_writer(writer)

        duration = round((time.perf_counter() - started) * 1000, 2)
        if error:
            logger.warning(error)
            return PrintResult(False, address, port, bytes_sent=bytes_sent, chunks=chunks,
                               duration_ms=duration, error=error)

        logger.info(f"Sent {bytes_sent} bytes in {chunks} chunk(s) to {address}:{port}")
        return PrintResult(True, address, port, bytes_sent=bytes_sent, chunks=chunks, duration_ms=duration)


async def print_image(source: ImageSource, address: str, port: int,
                      dialect: Union[str, Dialect],
                      encoder: Optional[LabelRasterEncoder] = None,
                      transport: Optional[PrintTransport] = None) -> PrintResult:
    """Encode an image for ``dialect`` and send it to the printer."""
    encoder = encoder or LabelRasterEncoder()
    transport = transport or PrintTransport()

    command = encoder.encode(source, dialect)
    result = await transport.send(address, port, command)
    result.format = command.format
    return result
