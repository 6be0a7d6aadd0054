"""
Label Print Service Client
==========================

Python SDK for interacting with Label Print Service.

Usage:
    from label_print_service.client import PrintClient

    client = PrintClient('http://localhost:5100', api_key='your-key')

    # Find printers
    printers = client.discover('quick')

    # Print image
    with open('label.png', 'rb') as f:
        result = client.print_image('192.168.1.200', f.read(), port=9101, dialect='ezpl')
"""

import base64
import requests
from typing import Dict, Any, Optional, List, Sequence


class PrintClient:
    """Client for Label Print Service."""

    def __init__(self, base_url: str = 'http://localhost:5100', api_key: str = None):
        """
        Initialize client.

        Args:
            base_url: Base URL of the print service
            api_key: API key for authentication
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def _request(self, method: str, endpoint: str, data: Dict = None,
                 params: Dict = None, timeout: int = 30) -> Dict[str, Any]:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'

        try:
            if method == 'GET':
                response = requests.get(url, params=params, headers=self._headers(), timeout=timeout)
            elif method == 'POST':
                response = requests.post(url, json=data or {}, headers=self._headers(), timeout=timeout)
            else:
                raise ValueError(f'Unknown method: {method}')

            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except ValueError as e:
            return {'success': False, 'error': f'Invalid response: {e}'}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    def network_info(self) -> Dict[str, Any]:
        """Detected network topology and suggested printer addresses."""
        return self._request('GET', '/api/network-info')

    # =========================================================================
    # Discovery
    # =========================================================================

    def discover(self, method: str = 'quick', timeout: int = None,
                 max_concurrent: int = None, ports: Sequence[int] = None) -> Dict[str, Any]:
        """
        Run a discovery strategy.

        Args:
            method: quick, smart or comprehensive
            timeout: Per-probe timeout in milliseconds
            max_concurrent: Concurrent probe ceiling
            ports: Ports to probe (default 9100-9102)
        """
        params = {}
        if timeout is not None:
            params['timeout'] = timeout
        if max_concurrent is not None:
            params['max_concurrent'] = max_concurrent
        if ports:
            params['ports'] = ','.join(str(p) for p in ports)
        # Comprehensive scans can run for minutes
        return self._request('GET', f'/api/discover/{method}', params=params,
                             timeout=600 if method == 'comprehensive' else 60)

    def discover_custom(self, targets: List[Dict[str, Any]], **options) -> Dict[str, Any]:
        """Probe specific targets, e.g. [{'address': '10.0.0.5', 'port': 9100}]."""
        return self._request('POST', '/api/discover/custom', {'targets': targets, **options}, timeout=60)

    def discover_progressive(self, min_printers: int = 1, max_duration: int = None,
                             force_comprehensive: bool = False) -> Dict[str, Any]:
        """Escalating discovery until ``min_printers`` are found."""
        params = {'min_printers': min_printers}
        if max_duration is not None:
            params['max_duration'] = max_duration
        if force_comprehensive:
            params['force_comprehensive'] = 'true'
        return self._request('GET', '/api/discover/progressive', params=params, timeout=600)

    def found_printers(self, method: str = 'quick') -> List[Dict[str, Any]]:
        """Just the printers found by a discovery run."""
        result = self.discover(method)
        return result.get('found', [])

    # =========================================================================
    # Printers
    # =========================================================================

    def test_connection(self, address: str, port: int = 9100) -> Dict[str, Any]:
        """Test printer connection (quick TCP check)."""
        return self._request('POST', '/api/printers/test', {'address': address, 'port': port})

    def is_printer_online(self, address: str, port: int = 9100) -> bool:
        """
        Quick check if a specific printer is online.

        Returns:
            True if online, False if offline or error
        """
        result = self.test_connection(address, port)
        return result.get('success', False)

    def identify(self, address: str, port: int = 9100,
                 dialect: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Identify printer model and dialect; None if unreachable."""
        data = {'address': address, 'port': port}
        if dialect:
            data['dialect'] = dialect
        result = self._request('POST', '/api/printers/identify', data)
        return result.get('printer') if result.get('success') else None

    # =========================================================================
    # Printing
    # =========================================================================

    def print_image(self, address: str, image_data: bytes, port: int = 9100,
                    dialect: str = 'zpl', **options) -> Dict[str, Any]:
        """
        Print an image.

        Args:
            address: Printer IP address
            image_data: Raw image bytes (PNG/JPEG)
            port: Printer raw port
            dialect: zpl or ezpl
            **options: label_width_mm, label_height_mm, dpi, threshold,
                copies, text, barcode
        """
        data = {
            'address': address,
            'port': port,
            'dialect': dialect,
            'image_base64': base64.b64encode(image_data).decode('utf-8'),
            **options,
        }
        if self.api_key:
            data['api_key'] = self.api_key
        return self._request('POST', '/api/print', data, timeout=60)

    def print_file(self, address: str, file_path: str, **options) -> Dict[str, Any]:
        """Print an image file."""
        with open(file_path, 'rb') as f:
            return self.print_image(address, f.read(), **options)
