"""
Table QR Codes

The restaurant QR code points at the table-selection entry URL with the
owner id (and optionally a table number) as query parameters. It never
changes, so owners print it once.
"""

from io import BytesIO
from typing import Optional
from urllib.parse import urlencode

import qrcode


def shop_url(base_url: str, owner_id: str, table_number: Optional[int] = None) -> str:
    params = {"restaurant": owner_id}
    if table_number is not None:
        params["table"] = table_number
    return f"{base_url.rstrip('/')}/customer/table?{urlencode(params)}"


def render_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """Encode ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
