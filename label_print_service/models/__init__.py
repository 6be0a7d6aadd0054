"""
Label Print Service Models
"""

from .probe import ProbeStatus, ProbeTarget, ProbeResult
from .discovery import (
    NetworkInterface,
    NetworkTopology,
    DiscoveryOptions,
    Coverage,
    DiscoveryRun,
    DiscoveryStage,
    ProgressiveDiscoveryResult,
)
from .label import RasterImage, LabelCommand, PrintResult

__all__ = [
    'ProbeStatus', 'ProbeTarget', 'ProbeResult',
    'NetworkInterface', 'NetworkTopology', 'DiscoveryOptions', 'Coverage',
    'DiscoveryRun', 'DiscoveryStage', 'ProgressiveDiscoveryResult',
    'RasterImage', 'LabelCommand', 'PrintResult',
]
