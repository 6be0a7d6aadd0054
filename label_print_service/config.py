"""
Label Print Service Configuration
"""

import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('LABEL_PRINT_PORT', 5100))
HOST = os.environ.get('LABEL_PRINT_HOST', '0.0.0.0')
DEBUG = os.environ.get('LABEL_PRINT_DEBUG', 'false').lower() == 'true'
LOG_LEVEL = os.environ.get('LABEL_PRINT_LOG_LEVEL', 'INFO').upper()

# API Key for authentication
API_KEY = os.environ.get('LABEL_PRINT_API_KEY', 'label-print-2026')

# =============================================================================
# Discovery Defaults
# =============================================================================

# Raw TCP ports label printers commonly listen on
DEFAULT_PORTS = [
    int(p) for p in os.environ.get('LABEL_PRINT_PORTS', '9100,9101,9102').split(',') if p.strip()
]

# Probe timeout for single-printer tests and identification
PROBE_TIMEOUT_MS = int(os.environ.get('LABEL_PRINT_PROBE_TIMEOUT_MS', 3000))

# Wait for a status reply after the query is written
IDENTIFY_TIMEOUT_MS = int(os.environ.get('LABEL_PRINT_IDENTIFY_TIMEOUT_MS', 2000))

# Progressive discovery budget
PROGRESSIVE_MAX_DURATION_MS = 15000

# =============================================================================
# Label Defaults
# =============================================================================

LABEL_WIDTH_MM = float(os.environ.get('LABEL_PRINT_WIDTH_MM', 80))
LABEL_HEIGHT_MM = float(os.environ.get('LABEL_PRINT_HEIGHT_MM', 50))
PRINTER_DPI = int(os.environ.get('LABEL_PRINT_DPI', 203))
LUMINANCE_THRESHOLD = int(os.environ.get('LABEL_PRINT_THRESHOLD', 128))

# =============================================================================
# Transport Defaults
# =============================================================================

CHUNK_SIZE = 4096
CHUNK_DELAY_MS = 10
SETTLE_MS = 1000  # no acknowledgement on the wire; wait before closing
PRINT_TIMEOUT_MS = 10000

# =============================================================================
# Supported Printer Dialects
# =============================================================================

PRINTER_DIALECTS = {
    'zpl': {
        'name': 'Zebra Programming Language',
        'brands': ['Zebra', 'CAB', 'GoDEX (ZPL emulation)'],
        'default_port': 9100,
    },
    'ezpl': {
        'name': 'GoDEX EZPL',
        'brands': ['GoDEX'],
        'default_port': 9101,
    },
}
