"""
Network Detection
=================

Inspects local interfaces and the routing table to decide which /24
subnets are worth scanning for printers. Detection never raises: a host
without usable interfaces still gets a default topology, and custom target
lists remain usable regardless.
"""

import logging
import re
import socket
import subprocess
from typing import Callable, Iterable, List, Optional

import psutil

from ..models import NetworkInterface, NetworkTopology

logger = logging.getLogger(__name__)

DEFAULT_SUBNET = '192.168.1'

# Ranges printers are most often found on, after the local ones
COMMON_PRIVATE_SUBNETS = ['192.168.1', '192.168.0', '192.168.14', '10.0.0', '172.16.0']

# Host endings where printers are usually given static addresses
POPULAR_PRINTER_HOSTS = [1, 100, 101, 150, 200, 201, 250, 254]

ROUTE_COMMANDS = [
    ['ip', 'route', 'show', 'default'],
    ['route', '-n', 'get', 'default'],
    ['netstat', '-rn'],
]

_GATEWAY_PATTERNS = [
    re.compile(r'default via (\d+\.\d+\.\d+\.\d+)'),     # Linux
    re.compile(r'gateway:\s*(\d+\.\d+\.\d+\.\d+)'),      # macOS route get
    re.compile(r'default\s+(\d+\.\d+\.\d+\.\d+)'),       # BSD netstat
    re.compile(r'0\.0\.0\.0\s+(?:0\.0\.0\.0\s+)?(\d+\.\d+\.\d+\.\d+)'),  # Windows / Linux netstat
]


def subnet_prefix(address: str) -> str:
    """First three octets of an IPv4 address (192.168.1.100 -> 192.168.1)."""
    return '.'.join(address.split('.')[:3])


def is_private_prefix(prefix: str) -> bool:
    """Check whether a subnet prefix lies in an RFC 1918 range."""
    octets = prefix.split('.')
    try:
        first, second = int(octets[0]), int(octets[1])
    except (ValueError, IndexError):
        return False
    if first == 10:
        return True
    if first == 192 and second == 168:
        return True
    return first == 172 and 16 <= second <= 31


def parse_default_gateway(route_output: str) -> Optional[str]:
    """Extract the default gateway from ``ip route`` / ``route`` / ``netstat`` output."""
    for pattern in _GATEWAY_PATTERNS:
        match = pattern.search(route_output or '')
        if match and match.group(1) != '0.0.0.0':
            return match.group(1)
    return None


def rank_subnets(local_prefix: str, interfaces: Iterable[NetworkInterface]) -> List[str]:
    """Current subnet first, then other interface subnets, then common ranges."""
    ranked: List[str] = []
    for prefix in [local_prefix, *(i.subnet_prefix for i in interfaces), *COMMON_PRIVATE_SUBNETS]:
        if prefix and prefix not in ranked:
            ranked.append(prefix)
    return ranked


def suggest_printer_addresses(topology: NetworkTopology) -> List[str]:
    """Popular printer addresses on every candidate subnet, local subnet first."""
    suggestions: List[str] = []
    for prefix in topology.candidate_subnet_prefixes:
        for host in POPULAR_PRINTER_HOSTS:
            address = f'{prefix}.{host}'
            if address not in suggestions:
                suggestions.append(address)
    return suggestions


def _read_route_table() -> str:
    for command in ROUTE_COMMANDS:
        try:
            completed = subprocess.run(command, capture_output=True, text=True, timeout=2)
        except (OSError, subprocess.SubprocessError):
            continue
        if completed.returncode == 0 and completed.stdout.strip():
            return completed.stdout
    return ''


def _list_interfaces() -> List[NetworkInterface]:
    interfaces = []
    for name, addresses in psutil.net_if_addrs().items():
        for addr in addresses:
            if addr.family != socket.AF_INET:
                continue
            ip = addr.address
            if ip.startswith('127.') or ip.startswith('169.254.'):
                continue
            prefix = subnet_prefix(ip)
            if is_private_prefix(prefix):
                interfaces.append(NetworkInterface(name=name, address=ip, subnet_prefix=prefix))
    return interfaces


class NetworkInfoProvider:
    """Detects the local topology and ranks candidate subnets."""

    def __init__(self,
                 interface_source: Callable[[], List[NetworkInterface]] = _list_interfaces,
                 route_source: Callable[[], str] = _read_route_table):
        self._interface_source = interface_source
        self._route_source = route_source

    def detect_topology(self) -> NetworkTopology:
        """
        Build a NetworkTopology for this host.

        Routing-table failures are logged and treated as "no gateway". An
        interface enumeration failure leaves the candidate list empty;
        otherwise it always ends with the common private ranges.
        """
        enumeration_failed = False
        try:
            interfaces = list(self._interface_source())
        except Exception as e:
            logger.warning(f"Interface enumeration failed, no subnets will be suggested: {e}")
            interfaces = []
            enumeration_failed = True

        try:
            gateway = parse_default_gateway(self._route_source())
        except Exception as e:
            logger.warning(f"Route lookup failed, continuing without: {e}")
            gateway = None

        if gateway:
            local_prefix = subnet_prefix(gateway)
        elif interfaces:
            local_prefix = interfaces[0].subnet_prefix
        else:
            local_prefix = DEFAULT_SUBNET

        topology = NetworkTopology(
            local_subnet_prefix=local_prefix,
            gateway_address=gateway or f'{local_prefix}.1',
            candidate_subnet_prefixes=[] if enumeration_failed else rank_subnets(local_prefix, interfaces),
            interfaces=interfaces,
        )
        logger.debug(f"Detected topology: local={local_prefix} gateway={topology.gateway_address} "
                     f"candidates={topology.candidate_subnet_prefixes}")
        return topology
