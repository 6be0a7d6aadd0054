"""
Label Print Service - Main Application
======================================

HTTP front end for label printer discovery and image printing.

Run: python -m label_print_service
"""

import asyncio
import logging
import platform
import socket
import sys
from datetime import datetime

from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import (
    PORT, HOST, DEBUG, LOG_LEVEL, API_KEY, DEFAULT_PORTS, PROBE_TIMEOUT_MS,
    IDENTIFY_TIMEOUT_MS, PROGRESSIVE_MAX_DURATION_MS, LABEL_WIDTH_MM, LABEL_HEIGHT_MM,
    PRINTER_DPI, LUMINANCE_THRESHOLD, CHUNK_SIZE, CHUNK_DELAY_MS, SETTLE_MS,
    PRINT_TIMEOUT_MS, PRINTER_DIALECTS,
)
from .discovery import (
    ConnectionProbe, DiscoveryService, NetworkInfoProvider, PrinterIdentifier,
    ProgressiveDiscovery, suggest_printer_addresses,
)
from .discovery.strategies import METHODS
from .encoder import LabelRasterEncoder
from .handlers import DIALECTS
from .models import DiscoveryOptions, ProbeTarget
from .transport import PrintTransport, print_image

logger = logging.getLogger(__name__)

# =============================================================================
# Application Setup
# =============================================================================

app = Flask(__name__)
CORS(app)


def _check_api_key():
    """Validate API key from request."""
    data = request.get_json(silent=True) or {}
    auth_header = request.headers.get('Authorization', '')

    # Check body
    if data.get('api_key') == API_KEY:
        return True

    # Check header (Bearer token)
    if auth_header.startswith('Bearer ') and auth_header[7:] == API_KEY:
        return True

    return False


# Service factories, replaced in tests
def _network_provider() -> NetworkInfoProvider:
    return NetworkInfoProvider()


def _discovery_service() -> DiscoveryService:
    return DiscoveryService(network_provider=_network_provider(), default_ports=DEFAULT_PORTS)


def _probe() -> ConnectionProbe:
    return ConnectionProbe()


def _identifier() -> PrinterIdentifier:
    return PrinterIdentifier()


def _transport() -> PrintTransport:
    return PrintTransport(chunk_size=CHUNK_SIZE, chunk_delay_ms=CHUNK_DELAY_MS,
                          settle_ms=SETTLE_MS, timeout_ms=PRINT_TIMEOUT_MS)


class RequestError(ValueError):
    """Bad request parameters; reported as HTTP 400."""


@app.errorhandler(RequestError)
def _bad_request(e):
    return jsonify({'success': False, 'error': str(e)}), 400


@app.errorhandler(500)
def _server_error(e):
    original = getattr(e, 'original_exception', None) or e
    logger.exception(f"Unhandled error on {request.path}", exc_info=original)
    return jsonify({'success': False, 'error': str(original)}), 500


def _int_param(value, name: str, default=None):
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise RequestError(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RequestError(f'{name} must be an integer')


def _float_param(value, name: str, default=None):
    if value is None or value == '':
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RequestError(f'{name} must be a number')


def _bool_param(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or '').lower() in ('1', 'true', 'yes')


def _ports_param(value):
    """Ports from a comma list or a JSON list."""
    if value is None or value == '' or value == []:
        return None
    if isinstance(value, str):
        value = [p for p in value.split(',') if p.strip()]
    if not isinstance(value, (list, tuple)):
        raise RequestError('ports must be a list or comma separated string')
    return [_int_param(p, 'ports') for p in value]


def _discovery_options(source) -> DiscoveryOptions:
    return DiscoveryOptions(
        timeout_ms=_int_param(source.get('timeout'), 'timeout'),
        max_concurrent=_int_param(source.get('max_concurrent'), 'max_concurrent'),
        ports=_ports_param(source.get('ports')),
    )


def _printer_address(data):
    """(address, port) from a request body; address also accepted as ``ip``."""
    address = data.get('address') or data.get('ip')
    if not address:
        raise RequestError('address required')
    port = _int_param(data.get('port'), 'port', DEFAULT_PORTS[0])
    return address, port


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': socket.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'timestamp': datetime.now().isoformat(),
    })


@app.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'Label Print Service',
        'version': __version__,
        'status': 'running',
        'dialects': PRINTER_DIALECTS,
        'endpoints': {
            'health': '/health',
            'network_info': '/api/network-info',
            'discover': '/api/discover/<quick|smart|comprehensive>',
            'discover_custom': '/api/discover/custom',
            'discover_progressive': '/api/discover/progressive',
            'test': '/api/printers/test',
            'identify': '/api/printers/identify',
            'print': '/api/print',
        }
    })


# =============================================================================
# Network & Discovery API
# =============================================================================

@app.route('/api/network-info', methods=['GET'])
def network_info():
    """Detected topology plus suggested printer addresses."""
    topology = _network_provider().detect_topology()
    return jsonify({
        'success': True,
        'network': topology.to_dict(),
        'suggested_ips': suggest_printer_addresses(topology),
    })


@app.route('/api/discover/custom', methods=['POST'])
def discover_custom():
    """Probe caller-supplied targets.

    Body:
        {"targets": [{"address": "192.168.1.50", "port": 9100}, ...],
         "timeout": 3000, "max_concurrent": 15}
    """
    data = request.get_json(silent=True) or {}
    raw_targets = data.get('targets')
    if not isinstance(raw_targets, list):
        raise RequestError('targets must be a list')

    try:
        targets = [ProbeTarget.from_dict(t) for t in raw_targets]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise RequestError(f'Invalid target: {e}')

    options = _discovery_options(data)
    run = asyncio.run(_discovery_service().custom_scan(targets, options))
    return jsonify({'success': run.error is None, **run.to_dict()})


@app.route('/api/discover/progressive', methods=['GET'])
def discover_progressive():
    """Quick, then smart, then comprehensive until enough printers are found.

    Query params:
        min_printers=1, max_duration=15000, force_comprehensive=false
    """
    min_printers = _int_param(request.args.get('min_printers'), 'min_printers', 1)
    max_duration = _int_param(request.args.get('max_duration'), 'max_duration',
                              PROGRESSIVE_MAX_DURATION_MS)
    force = _bool_param(request.args.get('force_comprehensive'))

    progressive = ProgressiveDiscovery(_discovery_service())
    result = asyncio.run(progressive.run(min_printers=min_printers, max_duration_ms=max_duration,
                                         force_comprehensive=force))
    return jsonify(result.to_dict())


@app.route('/api/discover/<method>', methods=['GET'])
def discover(method):
    """Run a built-in discovery strategy.

    Query params:
        timeout, max_concurrent, ports (comma separated)
    """
    if method not in METHODS or method == 'custom':
        return jsonify({
            'success': False,
            'error': f'Unknown discovery method. Valid: {[m for m in METHODS if m != "custom"]}'
        }), 404

    options = _discovery_options(request.args)
    run = asyncio.run(_discovery_service().discover(method, options))
    return jsonify({'success': run.error is None, **run.to_dict()})


# =============================================================================
# Printer Actions
# =============================================================================

@app.route('/api/printers/test', methods=['POST'])
def test_printer():
    """Test connection to a printer (single TCP probe)."""
    data = request.get_json(silent=True) or {}
    address, port = _printer_address(data)
    timeout = _int_param(data.get('timeout'), 'timeout', PROBE_TIMEOUT_MS)

    result = asyncio.run(_probe().probe(ProbeTarget(address, port), timeout))
    return jsonify({'success': result.connected, 'printer': result.to_dict()})


@app.route('/api/printers/identify', methods=['POST'])
def identify_printer():
    """Probe a printer and identify its dialect and model."""
    data = request.get_json(silent=True) or {}
    address, port = _printer_address(data)
    timeout = _int_param(data.get('timeout'), 'timeout', PROBE_TIMEOUT_MS)
    dialect = str(data.get('dialect') or '').lower() or None
    if dialect is not None and dialect not in DIALECTS:
        raise RequestError(f'Invalid dialect. Valid: {list(DIALECTS.keys())}')

    result = asyncio.run(_identifier().identify(address, port, timeout_ms=timeout,
                                                reply_timeout_ms=IDENTIFY_TIMEOUT_MS,
                                                dialect=dialect))
    return jsonify({'success': result.connected, 'printer': result.to_dict()})


@app.route('/api/print', methods=['POST'])
def print_label():
    """Encode an image and print it.

    Body:
        {"address": "...", "port": 9100, "dialect": "zpl", "image_base64": "...",
         "label_width_mm": 80, "label_height_mm": 50, "dpi": 203, "threshold": 128,
         "copies": 1, "text": "...", "barcode": "..."}
    """
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    address, port = _printer_address(data)
    dialect = (data.get('dialect') or 'zpl').lower()
    if dialect not in DIALECTS:
        raise RequestError(f'Invalid dialect. Valid: {list(DIALECTS.keys())}')
    if not data.get('image_base64'):
        raise RequestError('image_base64 required')

    threshold = _int_param(data.get('threshold'), 'threshold', LUMINANCE_THRESHOLD)
    if not 0 <= threshold <= 256:
        raise RequestError('threshold must be within 0..256')
    copies = _int_param(data.get('copies'), 'copies', 1)
    if copies < 1:
        raise RequestError('copies must be at least 1')

    encoder = LabelRasterEncoder(
        label_width_mm=_float_param(data.get('label_width_mm'), 'label_width_mm', LABEL_WIDTH_MM),
        label_height_mm=_float_param(data.get('label_height_mm'), 'label_height_mm', LABEL_HEIGHT_MM),
        dpi=_int_param(data.get('dpi'), 'dpi', PRINTER_DPI),
        threshold=threshold,
        copies=copies,
        fallback_text=data.get('text') or 'Label',
        fallback_barcode=data.get('barcode') or '000000',
    )
    if min(encoder.canvas_size) <= 0:
        raise RequestError('label size and dpi must be positive')

    result = asyncio.run(print_image(data['image_base64'], address, port, dialect,
                                     encoder=encoder, transport=_transport()))
    return jsonify(result.to_dict()), (200 if result.success else 502)


# =============================================================================
# Main
# =============================================================================

def configure_logging(level: str = LOG_LEVEL):
    """Root logging setup for the service process."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def main():
    """Run the service."""
    configure_logging()

    print("=" * 60)
    print("  Label Print Service")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  Port: {PORT}")
    print(f"  Printer ports: {', '.join(str(p) for p in DEFAULT_PORTS)}")
    print("=" * 60)
    print("  API Endpoints:")
    print("    GET  /health                          - Health check")
    print("    GET  /api/network-info                - Network topology")
    print("    GET  /api/discover/{method}           - quick | smart | comprehensive")
    print("    POST /api/discover/custom             - Probe given targets")
    print("    GET  /api/discover/progressive        - Escalating discovery")
    print("    POST /api/printers/test               - Test connection")
    print("    POST /api/printers/identify           - Identify dialect/model")
    print("    POST /api/print                       - Print image")
    print("=" * 60)

    app.run(host=HOST, port=PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
