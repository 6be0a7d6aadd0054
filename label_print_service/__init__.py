"""
Label Print Service
===================

Network discovery and image printing for thermal label printers.

Supports:
- Zebra and compatible label printers (via ZPL, ^GFA graphics)
- GoDEX label printers (via EZPL, GM/GG graphics)

Usage:
    python -m label_print_service

API Endpoints:
    GET  /api/network-info           - Network topology
    GET  /api/discover/{method}      - Discover printers (quick, smart, comprehensive)
    POST /api/discover/custom        - Probe given addresses
    GET  /api/discover/progressive   - Escalating discovery
    POST /api/printers/test          - Test connection
    POST /api/printers/identify      - Identify printer dialect
    POST /api/print                  - Print image
"""

__version__ = '1.0.0'
__author__ = 'EGS Software AG'
