"""
Label Print Service Discovery
=============================

Finding label printers on the local network.
"""

from .network import NetworkInfoProvider, suggest_printer_addresses
from .probe import ConnectionProbe, is_valid_address, is_valid_port
from .scheduler import ConcurrentProbeScheduler
from .strategies import DiscoveryService, generate_ip_range, success_rate
from .progressive import ProgressiveDiscovery
from .identify import PrinterIdentifier

__all__ = [
    'NetworkInfoProvider', 'suggest_printer_addresses',
    'ConnectionProbe', 'is_valid_address', 'is_valid_port',
    'ConcurrentProbeScheduler',
    'DiscoveryService', 'generate_ip_range', 'success_rate',
    'ProgressiveDiscovery',
    'PrinterIdentifier',
]
