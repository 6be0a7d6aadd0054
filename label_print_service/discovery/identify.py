"""
Printer Identification
======================

Tells printer dialects apart with a single status query. A device that
accepts the connection but never answers stays ``connected``: it can still
take raw commands even though its model is unknown.
"""

import asyncio
import dataclasses
import logging
import re
from typing import Optional

from .probe import ConnectionProbe, Connector, DEFAULT_TIMEOUT_MS, canonical_address, close_writer
from ..handlers import EZPL, get_dialect, match_dialect
from ..models import ProbeResult, ProbeTarget

logger = logging.getLogger(__name__)

# EZPL status request; ZPL devices answer it with an error string or their banner
STATUS_QUERY = EZPL.status_query

DEFAULT_REPLY_TIMEOUT_MS = 2000

GENERIC_MODEL = 'Generic Label Printer'
UNKNOWN_MODEL = 'Unknown Printer'
GENERIC_CAPABILITIES = {'protocols': ['RAW'], 'max_width_mm': 104, 'features': ['text']}

_FIRMWARE = re.compile(r'\bV\d+(?:\.\d+)+[A-Z]?\b', re.IGNORECASE)


def parse_firmware(reply: str) -> Optional[str]:
    match = _FIRMWARE.search(reply)
    return match.group(0) if match else None


def classify_reply(result: ProbeResult, reply: str) -> ProbeResult:
    """Attach model, dialect and capabilities derived from a raw status reply."""
    dialect = match_dialect(reply)
    if dialect is None:
        return dataclasses.replace(
            result,
            model=GENERIC_MODEL,
            capabilities=dict(GENERIC_CAPABILITIES),
            firmware_hint=parse_firmware(reply),
        )
    return dataclasses.replace(
        result,
        model=dialect.default_model,
        dialect=dialect.name,
        capabilities=dict(dialect.capabilities),
        firmware_hint=parse_firmware(reply),
    )


class PrinterIdentifier:
    """Connect, ask for status once, and classify whatever comes back."""

    def __init__(self, connector: Connector = asyncio.open_connection,
                 probe: Optional[ConnectionProbe] = None):
        self._connector = connector
        self.probe = probe or ConnectionProbe(connector)

    async def identify(self, address: str, port: int,
                       timeout_ms: int = DEFAULT_TIMEOUT_MS,
                       reply_timeout_ms: int = DEFAULT_REPLY_TIMEOUT_MS,
                       dialect: Optional[str] = None) -> ProbeResult:
        """
        Probe a printer and try to identify its dialect and model.

        Without a ``dialect`` hint the EZPL status query is sent, which both
        families answer. A hint sends that dialect's own status query.

        Returns:
            The probe result; when connected, enriched with model and
            capabilities or an ``identification_error`` marker

        Raises:
            ValueError: unknown dialect hint
        """
        query = get_dialect(dialect).status_query if dialect else STATUS_QUERY
        result = await self.probe.probe(ProbeTarget(address, port), timeout_ms)
        if not result.connected:
            return result

        writer = None
        try:
            reader, writer = await asyncio.wait_for(
                self._connector(canonical_address(address), port),
                timeout=timeout_ms / 1000,
            )
            writer.write(query)
            await asyncio.wait_for(writer.drain(), timeout=reply_timeout_ms / 1000)
            data = await asyncio.wait_for(reader.read(1024), timeout=reply_timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.debug(f"No status reply from {address}:{port}")
            return dataclasses.replace(result, model=UNKNOWN_MODEL,
                                       identification_error='Identification timeout')
        except OSError as e:
            logger.debug(f"Identification of {address}:{port} failed: {e}")
            return dataclasses.replace(result, model=UNKNOWN_MODEL,
                                       identification_error=f'Identification failed: {e}')
        finally:
            if writer is not None:
                await close_writer(writer)

        reply = data.decode('utf-8', errors='ignore').strip()
        if not reply:
            # Peer closed without answering
            return dataclasses.replace(result, model=UNKNOWN_MODEL,
                                       identification_error='Identification timeout')

        identified = classify_reply(result, reply)
        logger.info(f"Identified {address}:{port} as {identified.model}"
                    + (f" ({identified.dialect})" if identified.dialect else ""))
        return identified
