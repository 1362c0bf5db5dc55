# pethero/services/image_service.py
import base64
import io
import logging
from dataclasses import dataclass

import requests
from PIL import Image, ImageOps

from pethero.core.config import PipelineSettings
from pethero.core.exceptions import DownloadError


@dataclass(frozen=True)
class NormalizedImage:
    """모델 입력용으로 재인코딩된 JPEG 이미지"""
    data: bytes
    width: int
    height: int
    mime_type: str = 'image/jpeg'

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')


class ImageService:
    """
    원본 이미지를 내려받고 Gemini 입력 크기로 정규화하는 서비스.
    - 긴 변이 max_dimension을 넘지 않도록 비율을 유지해 축소합니다 (확대는 하지 않음).
    - 지정된 품질의 JPEG로 재인코딩합니다.
    """

    def __init__(self, settings: PipelineSettings, session: requests.Session = None):
        self.settings = settings
        self.session = session or requests.Session()

    def fetch_image(self, url: str) -> bytes:
        """
        이미지 URL에서 원본 바이트를 가져옵니다.

        :param url: 원본 이미지 URL
        :return: 응답 본문 바이트
        :raises DownloadError: HTTP 오류, 타임아웃, 네트워크 오류가 발생한 경우
        """
        try:
            response = self.session.get(url, timeout=self.settings.download_timeout_seconds)
            response.raise_for_status()
        except requests.Timeout:
            raise DownloadError(url, f"timed out after {self.settings.download_timeout_seconds}s")
        except requests.RequestException as e:
            raise DownloadError(url, str(e))

        logging.info(f"Image downloaded from {url}, size: {len(response.content)} bytes")
        return response.content

    def normalize_image(self, raw: bytes) -> NormalizedImage:
        """원본 바이트를 긴 변 기준으로 축소하고 JPEG로 재인코딩합니다."""
        max_dimension = self.settings.max_dimension
        with Image.open(io.BytesIO(raw)) as image:
            image = ImageOps.exif_transpose(image)
            if image.mode != "RGB":
                image = image.convert("RGB")

            # thumbnail은 비율을 유지하며 축소만 수행합니다.
            image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=self.settings.jpeg_quality)
            normalized = NormalizedImage(data=buffer.getvalue(), width=image.width, height=image.height)

        logging.info(f"Image normalized to {normalized.width}x{normalized.height}, size: {len(normalized.data)} bytes")
        return normalized

    def encode_jpeg(self, raw: bytes) -> bytes:
        """모델이 돌려준 이미지(PNG 등)를 크기 변경 없이 JPEG로 재인코딩합니다."""
        with Image.open(io.BytesIO(raw)) as image:
            if image.mode != "RGB":
                image = image.convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=self.settings.jpeg_quality)
        return buffer.getvalue()

    def fetch_normalized(self, url: str) -> NormalizedImage:
        return self.normalize_image(self.fetch_image(url))
