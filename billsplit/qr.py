import base64
from io import BytesIO

import qrcode
from django.conf import settings


def person_url(session_id, person_number):
    """Public URL a diner's per-person QR code points at"""
    base_url = settings.PUBLIC_BASE_URL.rstrip('/')
    return f"{base_url}/person/{session_id}/{person_number}"


def render_qr_data_url(data):
    """
    Render `data` as a black on white PNG QR code embedded in a data URL
    """
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode('ascii')
