"""
QR codes for short links.
"""

import io
from enum import Enum
from typing import Optional

import qrcode
import qrcode.image.svg
from qrcode.constants import ERROR_CORRECT_H

from linksnap_app.config import settings


class QRFormat(str, Enum):
    SVG = "svg"
    PNG = "png"


MEDIA_TYPES = {
    QRFormat.SVG: "image/svg+xml",
    QRFormat.PNG: "image/png",
}


def qr_filename(short_code: str, fmt: QRFormat) -> str:
    return f"qr-{short_code}.{fmt.value}"


def render_qr(data: str, fmt: QRFormat = QRFormat.SVG, size: Optional[int] = None,
              border: Optional[int] = None) -> bytes:
    """
    Render ``data`` as a QR code.

    High error correction (level H) with a quiet zone of ``border`` modules.
    The module size is chosen so the whole image is at most ``size`` pixels
    wide, never less than one pixel per module.

    Args:
        data: Text to encode (the short URL)
        fmt: Output format
        size: Target edge length in pixels (defaults to settings.qr_size)
        border: Quiet zone in modules (defaults to settings.qr_border)

    Returns:
        Encoded image bytes
    """
    size = size or settings.qr_size
    border = settings.qr_border if border is None else border

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    qr.box_size = max(1, size // (qr.modules_count + 2 * border))

    if fmt == QRFormat.SVG:
        image = qr.make_image(image_factory=qrcode.image.svg.SvgPathImage)
    else:
        image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()
