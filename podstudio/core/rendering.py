"""Apply operator adjustments to an asset.

Brightness and contrast follow the CSS filter functions used by the review
screen: ``brightness(b%)`` scales every colour channel by ``b/100`` and
``contrast(c%)`` scales the distance from mid grey by ``c/100``.  Alpha is
never touched.  Rotation is clockwise.
"""
from __future__ import annotations

from io import BytesIO

from PIL import Image

from podstudio.core.datauri import decode_data_url, encode_data_url
from podstudio.core.schema import Adjustments

_ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def _channel_table(brightness: int, contrast: int) -> list[int]:
    b = brightness / 100.0
    c = contrast / 100.0
    table: list[int] = []
    for value in range(256):
        shifted = value * b
        shifted = (shifted - 127.5) * c + 127.5
        table.append(max(0, min(255, int(round(shifted)))))
    return table


def render_image(image: Image.Image, adjustments: Adjustments) -> Image.Image:
    rendered = image.convert("RGBA")
    if adjustments.brightness != 100 or adjustments.contrast != 100:
        red, green, blue, alpha = rendered.split()
        table = _channel_table(adjustments.brightness, adjustments.contrast)
        rendered = Image.merge(
            "RGBA",
            (red.point(table), green.point(table), blue.point(table), alpha),
        )
    transpose = _ROTATIONS.get(adjustments.rotation)
    if transpose is not None:
        rendered = rendered.transpose(transpose)
    return rendered


def render_png(asset: str, adjustments: Adjustments | None = None) -> bytes:
    """Render ``asset`` with ``adjustments`` and return PNG bytes."""

    _, payload = decode_data_url(asset)
    with Image.open(BytesIO(payload)) as source:
        source.load()
        rendered = render_image(source, adjustments or Adjustments())
    buffer = BytesIO()
    rendered.save(buffer, format="PNG")
    return buffer.getvalue()


def render_adjustments(asset: str, adjustments: Adjustments) -> str:
    return encode_data_url(render_png(asset, adjustments), "image/png")
