"""
Label Raster Encoder
====================

Converts label images into printer bitmap commands:

    image -> flatten onto white -> fit printer canvas -> threshold
          -> 1 bit per pixel, MSB first, byte-aligned rows -> hex -> dialect command

Pure transform, no network I/O. An image that cannot be decoded becomes a
small text + barcode label instead of failing the print job.
"""

import base64
import binascii
import logging
import re
from io import BytesIO
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from .handlers import Dialect, LabelLayout, get_dialect
from .models import LabelCommand, RasterImage

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 128

ImageSource = Union[bytes, bytearray, str, Image.Image]

_DATA_URL_PREFIX = re.compile(r'^data:image/[\w.+-]+;base64,')


class EncodingError(ValueError):
    """Raised when an image cannot be turned into a raster."""


def canvas_size(width_mm: float, height_mm: float, dpi: int) -> Tuple[int, int]:
    """Printer canvas in dots (80x50 mm at 203 dpi -> 640x400)."""
    layout = LabelLayout(width_mm=width_mm, height_mm=height_mm, dpi=dpi)
    return layout.width_dots, layout.height_dots


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode an image from raw bytes, a base64 string (optionally a data URL)
    or an already opened PIL image.

    Raises:
        EncodingError: undecodable data or a zero-area image
    """
    if isinstance(source, Image.Image):
        img = source
    else:
        if isinstance(source, str):
            try:
                source = base64.b64decode(_DATA_URL_PREFIX.sub('', source.strip()), validate=True)
            except (binascii.Error, ValueError) as e:
                raise EncodingError(f'Invalid base64 image data: {e}') from e
        try:
            img = Image.open(BytesIO(source))
            img.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise EncodingError(f'Cannot decode image: {e}') from e

    if img.width <= 0 or img.height <= 0:
        raise EncodingError(f'Image has zero area ({img.width}x{img.height})')
    return img


def flatten(img: Image.Image) -> Image.Image:
    """Composite any transparency onto white and convert to 8-bit luminance."""
    has_alpha = img.mode in ('RGBA', 'LA', 'PA', 'RGBa', 'La') or (
        img.mode == 'P' and 'transparency' in img.info
    )
    if has_alpha:
        rgba = img.convert('RGBA')
        background = Image.new('RGBA', rgba.size, (255, 255, 255, 255))
        background.alpha_composite(rgba)
        return background.convert('L')
    return img.convert('L')


def fit_to_canvas(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Scale to fit within ``size`` keeping aspect ratio, centered on white.

    Neither side shrinks below one dot, so very thin images survive as a line.
    """
    scale = min(size[0] / img.width, size[1] / img.height)
    fitted_size = (min(size[0], max(1, round(img.width * scale))),
                   min(size[1], max(1, round(img.height * scale))))
    fitted = img if fitted_size == img.size else img.resize(fitted_size, Image.Resampling.LANCZOS)
    canvas = Image.new('L', size, 255)
    offset = ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2)
    canvas.paste(fitted, offset)
    return canvas


def pack_bitmap(img: Image.Image, threshold: int = DEFAULT_THRESHOLD) -> RasterImage:
    """
    Binarize and pack an image at its current size.

    Pixels with luminance below ``threshold`` are dark and set their bit.
    Each row starts on a byte boundary; unused trailing bits are zero.
    """
    if not 0 <= threshold <= 256:
        raise ValueError(f'threshold must be within 0..256, got {threshold}')
    if img.width <= 0 or img.height <= 0:
        raise EncodingError(f'Image has zero area ({img.width}x{img.height})')

    gray = img if img.mode == 'L' else flatten(img)
    lut = [255 if value < threshold else 0 for value in range(256)]
    mono = gray.point(lut, '1')

    width, height = mono.size
    row_bytes = (width + 7) // 8
    packed = bytearray(mono.tobytes())

    spare_bits = row_bytes * 8 - width
    if spare_bits:
        mask = (0xFF << spare_bits) & 0xFF
        for row in range(height):
            packed[row * row_bytes + row_bytes - 1] &= mask

    return RasterImage(width=width, height=height, bitmap=bytes(packed))


class LabelRasterEncoder:
    """Builds dialect bitmap commands sized for a physical label."""

    def __init__(self, label_width_mm: float = 80, label_height_mm: float = 50,
                 dpi: int = 203, threshold: int = DEFAULT_THRESHOLD, copies: int = 1,
                 fallback_text: str = 'Label', fallback_barcode: str = '000000'):
        self.layout = LabelLayout(width_mm=label_width_mm, height_mm=label_height_mm,
                                  dpi=dpi, copies=copies)
        self.threshold = threshold
        self.fallback_text = fallback_text
        self.fallback_barcode = fallback_barcode

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.layout.width_dots, self.layout.height_dots

    def rasterize(self, source: ImageSource) -> RasterImage:
        """Decode, flatten, fit and pack an image for this label size."""
        img = load_image(source)
        gray = flatten(img)
        return pack_bitmap(fit_to_canvas(gray, self.canvas_size), self.threshold)

    def encode(self, source: ImageSource, dialect: Union[str, Dialect]) -> LabelCommand:
        """
        Encode an image as a bitmap command for ``dialect``.

        Args:
            source: Image bytes, base64 string or PIL image
            dialect: Dialect instance or registry name ("zpl", "ezpl")

        Returns:
            LabelCommand; ``fallback`` is set when the image was unusable
        """
        if isinstance(dialect, str):
            dialect = get_dialect(dialect)

        try:
            raster = self.rasterize(source)
        except EncodingError as e:
            logger.warning(f"Image unusable, printing fallback label: {e}")
            payload = dialect.fallback_command(self.fallback_text, self.fallback_barcode, self.layout)
            return LabelCommand(dialect=dialect.name, payload=payload, fallback=True)

        logger.debug(f"Rasterized {raster.width}x{raster.height} ({raster.total_bytes} bytes) "
                     f"for {dialect.name}")
        return LabelCommand(dialect=dialect.name, payload=dialect.bitmap_command(raster, self.layout))
