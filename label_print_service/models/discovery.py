"""
Discovery Models
================

Network topology snapshots and the aggregate results of discovery runs.
None of these are persisted; they are built per call and returned.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .probe import ProbeTarget, ProbeResult


@dataclass(frozen=True)
class NetworkInterface:
    """A private IPv4 address bound to a local interface."""

    name: str
    address: str
    subnet_prefix: str  # e.g. "192.168.1"


@dataclass
class NetworkTopology:
    """Local network as seen from this host, with subnets ranked for scanning."""

    local_subnet_prefix: str = "192.168.1"
    gateway_address: str = "192.168.1.1"
    candidate_subnet_prefixes: List[str] = field(default_factory=list)
    interfaces: List[NetworkInterface] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'local_subnet_prefix': self.local_subnet_prefix,
            'gateway_address': self.gateway_address,
            'candidate_subnet_prefixes': list(self.candidate_subnet_prefixes),
            'interfaces': [
                {'name': i.name, 'address': i.address, 'subnet_prefix': i.subnet_prefix}
                for i in self.interfaces
            ],
        }


@dataclass
class DiscoveryOptions:
    """Per-call overrides; ``None`` means use the strategy default."""

    timeout_ms: Optional[int] = None
    max_concurrent: Optional[int] = None
    ports: Optional[List[int]] = None


@dataclass(frozen=True)
class Coverage:
    """How much of the theoretical host space a comprehensive scan probed."""

    total_hosts: int
    scanned_hosts: int

    @property
    def coverage_percent(self) -> float:
        if self.total_hosts == 0:
            return 0.0
        return round(self.scanned_hosts / self.total_hosts * 100, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_hosts': self.total_hosts,
            'scanned_hosts': self.scanned_hosts,
            'coverage_percent': self.coverage_percent,
        }


@dataclass
class DiscoveryRun:
    """Result of one strategy invocation."""

    method: str
    started_at: datetime = field(default_factory=datetime.now)
    duration_ms: float = 0.0
    targets: List[ProbeTarget] = field(default_factory=list)
    results: List[ProbeResult] = field(default_factory=list)
    found: List[ProbeResult] = field(default_factory=list)
    scanned_count: int = 0
    success_rate: float = 0.0
    networks: Optional[List[str]] = None
    coverage: Optional[Coverage] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'method': self.method,
            'started_at': self.started_at.isoformat(),
            'duration_ms': self.duration_ms,
            'found': [r.to_dict() for r in self.found],
            'scanned_count': self.scanned_count,
            'success_rate': self.success_rate,
        }
        if self.networks is not None:
            data['networks'] = list(self.networks)
        if self.coverage is not None:
            data['coverage'] = self.coverage.to_dict()
        if self.method == 'custom':
            data['targets'] = [t.to_dict() for t in self.targets]
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class DiscoveryStage:
    """Outcome of one stage of a progressive discovery."""

    completed: bool
    found: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'completed': self.completed, 'found': self.found, 'duration_ms': self.duration_ms}
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class ProgressiveDiscoveryResult:
    """Merged outcome of quick, smart and (optionally) comprehensive stages."""

    stages: Dict[str, DiscoveryStage] = field(default_factory=dict)
    printers: List[ProbeResult] = field(default_factory=list)
    duration_ms: float = 0.0
    success: bool = False
    error: Optional[str] = None

    @property
    def total_found(self) -> int:
        return len(self.printers)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'total_found': self.total_found,
            'duration_ms': self.duration_ms,
            'stages': {name: stage.to_dict() for name, stage in self.stages.items()},
            'printers': [p.to_dict() for p in self.printers],
        }
        if self.error:
            data['error'] = self.error
        return data
