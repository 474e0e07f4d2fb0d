import base64
import io

import pytest
from PIL import Image

from conftest import png_data_url
from media import decode_data_url, sniff_image_mime, split_data_url, to_data_url


def test_split_data_url():
    assert split_data_url("data:image/jpeg;base64,AAAA") == ("image/jpeg", "AAAA")


def test_split_bare_base64():
    assert split_data_url("AAAA") == (None, "AAAA")


def test_decode_uses_declared_mime():
    data, mime = decode_data_url(png_data_url())
    assert mime == "image/png"
    assert data.startswith(b"\x89PNG")


def test_decode_sniffs_missing_mime():
    buf = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buf, format="JPEG")
    payload = base64.b64encode(buf.getvalue()).decode()

    data, mime = decode_data_url(payload)

    assert mime == "image/jpeg"
    assert data == buf.getvalue()


def test_decode_rejects_bad_base64():
    with pytest.raises(ValueError):
        decode_data_url("data:image/png;base64,not base64!")


def test_sniff_unknown_bytes_uses_default():
    assert sniff_image_mime(b"definitely not an image", default="image/png") == "image/png"


def test_to_data_url_prefix():
    assert to_data_url(b"\x01\x02", "image/webp") == "data:image/webp;base64,AQI="
