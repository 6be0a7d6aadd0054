"""
Label Models
============

Transient values that exist for the duration of one print request: the
packed monochrome raster, the dialect command built from it, and the
outcome of sending that command.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class RasterImage:
    """Packed 1-bit image, MSB first, each row padded to a whole byte."""

    width: int
    height: int
    bitmap: bytes

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f'Raster dimensions must be positive, got {self.width}x{self.height}')
        expected = self.row_bytes * self.height
        if len(self.bitmap) != expected:
            raise ValueError(f'Bitmap has {len(self.bitmap)} bytes, expected {expected}')

    @property
    def row_bytes(self) -> int:
        return (self.width + 7) // 8

    @property
    def total_bytes(self) -> int:
        return self.row_bytes * self.height

    def hex(self) -> str:
        """Upper-case hex encoding of the bitmap."""
        return self.bitmap.hex().upper()


@dataclass(frozen=True)
class LabelCommand:
    """Dialect-specific command stream, sent to the printer as-is."""

    dialect: str
    payload: bytes
    fallback: bool = False

    def __len__(self) -> int:
        return len(self.payload)

    @property
    def format(self) -> str:
        if self.fallback:
            return f'{self.dialect}_fallback'
        return {'zpl': 'zpl_grf', 'ezpl': 'ezpl_graphic'}.get(self.dialect, self.dialect)


@dataclass
class PrintResult:
    """Outcome of delivering one command stream."""

    success: bool
    address: str
    port: int
    method: str = 'tcp'
    bytes_sent: int = 0
    chunks: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None
    format: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}
