# pethero/services/test_image_service.py
import base64
import io

import pytest
import requests
from PIL import Image

from pethero.core.exceptions import DownloadError
from pethero.services.image_service import ImageService

URL = "https://example.com/photos/cat.jpg"


def _dimensions(data: bytes):
    with Image.open(io.BytesIO(data)) as image:
        return image.format, image.size


@pytest.mark.parametrize("size, expected", [
    ((4000, 3000), (1024, 768)),
    ((3000, 4000), (768, 1024)),
    ((2048, 2048), (1024, 1024)),
    ((800, 600), (800, 600)),
])
def test_normalize_image_bounds_long_edge(settings, make_jpeg, size, expected):
    """긴 변은 1024 이하, 비율 유지, 작은 이미지는 확대하지 않음"""
    normalized = ImageService(settings).normalize_image(make_jpeg(*size))

    assert (normalized.width, normalized.height) == expected
    assert _dimensions(normalized.data) == ('JPEG', expected)
    assert normalized.mime_type == 'image/jpeg'


def test_normalize_image_converts_png_with_alpha(settings):
    buffer = io.BytesIO()
    Image.new('RGBA', (1200, 300), (10, 20, 30, 128)).save(buffer, format='PNG')

    normalized = ImageService(settings).normalize_image(buffer.getvalue())

    assert _dimensions(normalized.data) == ('JPEG', (1024, 256))


def test_encode_jpeg_keeps_size(settings, make_jpeg):
    """생성 이미지는 크기를 유지한 채 JPEG로만 바뀝니다."""
    encoded = ImageService(settings).encode_jpeg(make_jpeg(1600, 900, fmt='PNG'))

    assert _dimensions(encoded) == ('JPEG', (1600, 900))


def test_base64_matches_data(settings, make_jpeg):
    normalized = ImageService(settings).normalize_image(make_jpeg(10, 10))
    assert base64.b64decode(normalized.base64) == normalized.data


def test_fetch_image_uses_timeout(settings, make_jpeg, http):
    session = http.Session({URL: http.Response(make_jpeg(100, 50))})
    service = ImageService(settings, session=session)

    normalized = service.fetch_normalized(URL)

    assert (normalized.width, normalized.height) == (100, 50)
    assert session.requests == [(URL, 30)]


def test_fetch_image_http_error_raises_download_error(settings, http):
    service = ImageService(settings, session=http.Session({URL: http.Response(status_code=403)}))

    with pytest.raises(DownloadError) as exc_info:
        service.fetch_image(URL)
    assert exc_info.value.url == URL
    assert '403' in exc_info.value.reason


@pytest.mark.parametrize("error", [requests.Timeout("read timed out"), requests.ConnectionError("refused")])
def test_fetch_image_transport_errors_raise_download_error(settings, http, error):
    service = ImageService(settings, session=http.Session({URL: error}))

    with pytest.raises(DownloadError):
        service.fetch_image(URL)
