"""
Probe Models
============

A probe target is an address/port pair; a probe result is the classified
outcome of one bounded connection attempt against it.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class ProbeStatus(str, Enum):
    """Classified outcome of a single connection attempt."""

    CONNECTED = "connected"
    TIMEOUT = "timeout"
    REFUSED = "refused"
    UNREACHABLE = "unreachable"
    INVALID_ADDRESS = "invalid_address"
    INVALID_PORT = "invalid_port"


@dataclass(frozen=True)
class ProbeTarget:
    """Address and port to probe."""

    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return {'address': self.address, 'port': self.port}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProbeTarget':
        """Create from dictionary, accepting the legacy ``ip`` key.

        A numeric string port is converted; anything else is kept as given
        and later reported as an invalid port by the probe.
        """
        address = data.get('address', data.get('ip'))
        port = data.get('port')
        if isinstance(port, str):
            try:
                port = int(port.strip())
            except ValueError:
                pass
        return cls(address=address, port=port)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one target, optionally enriched by identification."""

    address: str
    port: int
    status: ProbeStatus
    latency_ms: float = 0.0
    error: Optional[str] = None

    # Identification (filled in by PrinterIdentifier)
    model: Optional[str] = None
    firmware_hint: Optional[str] = None
    dialect: Optional[str] = None
    capabilities: Optional[Dict[str, Any]] = field(default=None, compare=False)
    identification_error: Optional[str] = None

    @property
    def target(self) -> ProbeTarget:
        return ProbeTarget(self.address, self.port)

    @property
    def connected(self) -> bool:
        return self.status == ProbeStatus.CONNECTED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['status'] = self.status.value
        return data
