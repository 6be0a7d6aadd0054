"""
ZPL Dialect
===========

Command templates for ZPL (Zebra Programming Language) printers.
Works with Zebra, CAB (in ZPL emulation mode) and GoDEX printers switched
to ZPL emulation.

Key Commands:
- ^XA / ^XZ          - Label start / end
- ^PW n, ^LL n       - Print width / label length in dots
- ^FO x,y            - Field origin
- ^GFA,t,t,r,data    - Graphic field, ASCII hex (total bytes, row bytes)
- ^A0N,h,w ^FD..^FS  - Text field
- ^BCN,h,Y,N,N       - Code 128 barcode
- ~HS                - Host status query
"""

import re

from .base import Dialect, LabelLayout
from ..models import RasterImage

# ~HS answers with three STX ... ETX framed, comma separated status strings
_HOST_STATUS_FRAME = re.compile(r'\x02\s*\d{3},[\d,]+\x03')


def _signature(reply: str) -> bool:
    upper = reply.upper()
    if 'ZEBRA' in upper or 'ZPL' in upper:
        return True
    return bool(_HOST_STATUS_FRAME.search(reply))


def bitmap_command(raster: RasterImage, layout: LabelLayout) -> bytes:
    """Wrap a packed raster in a ^GFA graphic field."""
    total_bytes = raster.total_bytes
    zpl = (
        "^XA\n"
        f"^PW{raster.width}\n"
        f"^LL{raster.height}\n"
        "^FO0,0\n"
        f"^GFA,{total_bytes},{total_bytes},{raster.row_bytes},{raster.hex()}^FS\n"
        f"^PQ{layout.copies}\n"
        "^XZ\n"
    )
    return zpl.encode('ascii')


def fallback_command(text: str, barcode: str, layout: LabelLayout) -> bytes:
    """Plain text plus Code 128 label used when the image cannot be rendered."""
    zpl = (
        "^XA\n"
        "^FO50,50\n"
        "^A0N,40,40\n"
        f"^FD{text}^FS\n"
        "^FO50,120\n"
        "^BY3\n"
        "^BCN,100,Y,N,N\n"
        f"^FD{barcode}^FS\n"
        f"^PQ{layout.copies}\n"
        "^XZ\n"
    )
    return zpl.encode('utf-8')


ZPL = Dialect(
    name='zpl',
    status_query=b'~HS\r\n',
    default_model='Zebra ZT230',
    signature=_signature,
    bitmap_command=bitmap_command,
    fallback_command=fallback_command,
    capabilities={
        'protocols': ['ZPL', 'EPL'],
        'max_width_mm': 108,
        'features': ['barcode', 'text', 'graphics'],
    },
)
