"""
EZPL Dialect
============

Command templates for GoDEX printers using EZPL (GoDEX Easy Printer
Language).

Key Commands:
- ^Q h,g           - Label length and gap in mm
- ^W w             - Label width in mm
- ^H n             - Print darkness
- ^P n             - Copies
- ^S n             - Print speed
- ^AT              - Thermal transfer mode
- ^C1              - Copies per label
- ^L ... E         - Label format start / end
- GM"name",t,r     - Download graphic (total bytes, row bytes) followed by hex
- GG x,y,"name"    - Place downloaded graphic
- AD x,y,...       - Text field
- BQ x,y,...       - Code 128 barcode
- ~!S              - Status query

Lines are terminated by CRLF.
"""

import re
from typing import List

from .base import Dialect, LabelLayout
from ..models import RasterImage

GRAPHIC_NAME = 'IMAGE'

# ~!S answers with a comma separated frame, e.g. "~STATUS,0,0,0,200,0,0,0,0"
_STATUS_TOKEN = re.compile(r'\bSTATUS\b', re.IGNORECASE)
_MIN_STATUS_FIELDS = 8

# Bare numeric frame some firmware sends instead, e.g. "00,0,0,0,0,0,0,0"
_BARE_STATUS_FRAME = re.compile(r'^~?\d+(?:,\d+){7,}$')


def _signature(reply: str) -> bool:
    if 'GODEX' in reply.upper():
        return True
    if _BARE_STATUS_FRAME.match(reply.strip()):
        return True
    if not _STATUS_TOKEN.search(reply):
        return False
    return len(reply.split(',')) >= _MIN_STATUS_FIELDS


def _header(layout: LabelLayout) -> List[str]:
    return [
        f'^Q{int(round(layout.height_mm))},3',
        f'^W{int(round(layout.width_mm))}',
        '^H10',
        f'^P{layout.copies}',
        '^S4',
        '^AT',
        '^C1',
        '^L',
    ]


def _join(commands: List[str]) -> bytes:
    return ('\r\n'.join(commands) + '\r\n').encode('utf-8')


def bitmap_command(raster: RasterImage, layout: LabelLayout) -> bytes:
    """Download the raster as a named graphic and place it at the origin."""
    commands = _header(layout)
    commands.extend([
        f'GM"{GRAPHIC_NAME}",{raster.total_bytes},{raster.row_bytes}',
        raster.hex(),
        f'GG0,0,"{GRAPHIC_NAME}"',
        'E',
    ])
    return _join(commands)


def fallback_command(text: str, barcode: str, layout: LabelLayout) -> bytes:
    """Plain text plus Code 128 label used when the image cannot be rendered."""
    commands = _header(layout)
    commands.extend([
        # AD x,y,x_mult,y_mult,gap,rotation,data
        f'AD,50,50,1,1,0,0,{text}',
        # BQ x,y,narrow,wide,height,rotation,readable,data
        f'BQ,50,120,2,5,100,0,1,{barcode}',
        'E',
    ])
    return _join(commands)


EZPL = Dialect(
    name='ezpl',
    status_query=b'~!S\r\n',
    default_model='GoDEX ZX420i',
    signature=_signature,
    bitmap_command=bitmap_command,
    fallback_command=fallback_command,
    capabilities={
        'protocols': ['EZPL'],
        'max_width_mm': 104,
        'features': ['barcode', 'text', 'graphics', 'thermal_transfer'],
    },
)
