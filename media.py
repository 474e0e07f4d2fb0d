import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError


def split_data_url(value):
    """Return (mime, base64_payload). Bare base64 strings come back with mime None."""
    if not value.startswith("data:"):
        return None, value
    header, _, payload = value.partition(",")
    mime = header[len("data:"):].split(";")[0] or None
    return mime, payload


def decode_data_url(value, default_mime="image/png"):
    """Decode a data URL into (bytes, mime).

    When the URL carries no MIME type, the bytes are sniffed with Pillow.
    """
    mime, payload = split_data_url(value)
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    if not mime:
        mime = sniff_image_mime(data, default_mime)
    return data, mime


def to_data_url(data, mime_type):
    b64 = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{b64}"


def sniff_image_mime(data, default="image/png"):
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except UnidentifiedImageError:
        return default
    return Image.MIME.get(fmt, default)
