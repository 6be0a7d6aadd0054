"""Tests for image to bitmap command encoding."""

import base64
from io import BytesIO

import pytest
from PIL import Image

from label_print_service.encoder import (
    EncodingError, LabelRasterEncoder, canvas_size, flatten, load_image, pack_bitmap,
)


def _png(img: Image.Image) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


def _checkerboard(width=16, height=8) -> Image.Image:
    img = Image.new('L', (width, height), 255)
    for y in range(height):
        for x in range(width):
            if (x + y) % 2 == 0:
                img.putpixel((x, y), 0)
    return img


def test_canvas_size():
    assert canvas_size(80, 50, 203) == (640, 400)
    assert LabelRasterEncoder().canvas_size == (640, 400)


def test_all_white_image_is_all_zero():
    raster = pack_bitmap(Image.new('L', (16, 4), 255))

    assert raster.bitmap == bytes(8)
    assert raster.row_bytes == 2


def test_all_black_image_pads_rows():
    raster = pack_bitmap(Image.new('L', (10, 3), 0))

    assert raster.row_bytes == 2
    assert raster.total_bytes == 6
    assert raster.bitmap == bytes([0xFF, 0xC0] * 3)


def test_checkerboard_bit_order():
    raster = pack_bitmap(_checkerboard())

    assert raster.bitmap[:4] == bytes([0xAA, 0xAA, 0x55, 0x55])
    assert raster.bitmap == bytes([0xAA, 0xAA, 0x55, 0x55] * 4)


def test_encoding_is_deterministic():
    encoder = LabelRasterEncoder(label_width_mm=2, label_height_mm=1, dpi=203)
    data = _png(_checkerboard())

    assert encoder.encode(data, 'zpl').payload == encoder.encode(data, 'zpl').payload


def test_threshold_boundary():
    img = Image.new('L', (8, 1), 0)
    for x, value in enumerate([0, 64, 127, 128, 129, 200, 254, 255]):
        img.putpixel((x, 0), value)

    assert pack_bitmap(img, threshold=128).bitmap == bytes([0b11100000])
    assert pack_bitmap(img, threshold=0).bitmap == bytes([0])
    assert pack_bitmap(img, threshold=256).bitmap == bytes([0xFF])


def test_threshold_out_of_range():
    with pytest.raises(ValueError):
        pack_bitmap(Image.new('L', (8, 1), 0), threshold=300)


def test_transparent_pixels_are_white():
    img = Image.new('RGBA', (8, 1), (0, 0, 0, 0))
    img.putpixel((0, 0), (0, 0, 0, 255))

    raster = pack_bitmap(flatten(img))

    assert raster.bitmap == bytes([0x80])


def test_load_image_accepts_base64_and_data_url():
    data = _png(Image.new('RGB', (4, 4), 'black'))
    encoded = base64.b64encode(data).decode()

    assert load_image(encoded).size == (4, 4)
    assert load_image('data:image/png;base64,' + encoded).size == (4, 4)


@pytest.mark.parametrize('source', [b'not an image', 'bm90IGFuIGltYWdl', '***'])
def test_load_image_rejects_garbage(source):
    with pytest.raises(EncodingError):
        load_image(source)


def test_image_fitted_and_centered():
    # 2:1 image on a 2:1 canvas fills it; a square one is pillarboxed
    encoder = LabelRasterEncoder(label_width_mm=2, label_height_mm=1, dpi=203)
    raster = encoder.rasterize(Image.new('L', (8, 8), 0))

    assert (raster.width, raster.height) == (16, 8)
    assert raster.bitmap[:2] == bytes([0x0F, 0xF0])


def test_encode_zpl():
    encoder = LabelRasterEncoder(label_width_mm=2, label_height_mm=1, dpi=203)
    command = encoder.encode(_png(Image.new('L', (16, 8), 0)), 'zpl')
    payload = command.payload.decode('ascii')

    assert not command.fallback
    assert command.format == 'zpl_grf'
    assert f'^GFA,16,16,2,{"FF" * 16}^FS' in payload


def test_encode_ezpl():
    encoder = LabelRasterEncoder(label_width_mm=2, label_height_mm=1, dpi=203)
    command = encoder.encode(Image.new('L', (16, 8), 255), 'ezpl')

    assert command.format == 'ezpl_graphic'
    assert b'GM"IMAGE",16,2\r\n' + b'00' * 16 + b'\r\n' in command.payload


def test_undecodable_image_prints_fallback():
    encoder = LabelRasterEncoder(fallback_text='Order 42', fallback_barcode='42')
    command = encoder.encode(b'\x89PNG broken', 'zpl')

    assert command.fallback
    assert command.format == 'zpl_fallback'
    assert b'^FDOrder 42^FS' in command.payload


def test_unknown_dialect():
    with pytest.raises(ValueError):
        LabelRasterEncoder().encode(Image.new('L', (4, 4), 0), 'sbpl')


@pytest.mark.parametrize('size', [(2000, 1), (1, 2000)])
def test_extreme_aspect_ratio_keeps_a_line(size):
    encoder = LabelRasterEncoder()
    raster = encoder.rasterize(Image.new('L', size, 0))

    assert (raster.width, raster.height) == (640, 400)
    assert any(raster.bitmap)


def test_extreme_aspect_ratio_encodes_bitmap():
    command = LabelRasterEncoder().encode(Image.new('L', (2000, 1), 0), 'zpl')

    assert not command.fallback
    assert command.format == 'zpl_grf'
