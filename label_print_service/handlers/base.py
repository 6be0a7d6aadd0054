"""
Dialect Base
============

A printer dialect is a closed, tagged variant: a frozen record carrying the
dialect's status query, identification signature and command templates.
Adding a dialect means adding one more instance to the registry, not a new
subclass or new branches at call sites.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from ..models import RasterImage


@dataclass(frozen=True)
class LabelLayout:
    """Physical label settings shared by all command templates."""

    width_mm: float = 80
    height_mm: float = 50
    dpi: int = 203
    copies: int = 1

    @property
    def dots_per_mm(self) -> int:
        return max(1, round(self.dpi / 25.4))

    @property
    def width_dots(self) -> int:
        return int(round(self.width_mm * self.dots_per_mm))

    @property
    def height_dots(self) -> int:
        return int(round(self.height_mm * self.dots_per_mm))


@dataclass(frozen=True)
class Dialect:
    """One printer command language."""

    name: str
    status_query: bytes
    default_model: str
    signature: Callable[[str], bool]
    bitmap_command: Callable[[RasterImage, LabelLayout], bytes]
    fallback_command: Callable[[str, str, LabelLayout], bytes]
    capabilities: Dict[str, Any] = field(default_factory=dict)

    def matches(self, reply: str) -> bool:
        """Check whether a raw status reply carries this dialect's signature."""
        return bool(reply) and self.signature(reply)

    def __str__(self) -> str:
        return self.name
