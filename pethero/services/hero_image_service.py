# pethero/services/hero_image_service.py
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pethero.core.config import PipelineSettings
from pethero.services.gemini_service import GeminiService, is_rate_limit_error
from pethero.services.image_service import ImageService, NormalizedImage
from pethero.services.storage_service import StorageService


@dataclass(frozen=True)
class HeroImageResult:
    """
    히어로 이미지 생성 결과.
    generated가 False이면 url은 원본 이미지 URL이며, 이 경우도 정상 결과로 취급합니다.
    """
    url: str
    generated: bool
    failure_reason: Optional[str] = None


def build_hero_prompt(theme: str) -> str:
    return f"Make pet a {theme} hero. Keep all faces exactly the same. Add only costumes around bodies."


class HeroImageService:
    """
    Gemini 이미지 모델로 히어로 이미지를 생성하고 Storage에 게시합니다.
    요청 한도를 아끼기 위해 모델 호출은 한 번만 수행하며, 어떤 실패든 원본 이미지로 대체합니다.
    """

    def __init__(self, gemini_service: GeminiService, storage_service: StorageService,
                 image_service: ImageService, settings: PipelineSettings):
        self.gemini_service = gemini_service
        self.storage_service = storage_service
        self.image_service = image_service
        self.settings = settings

    def generate_hero_image(self, original_url: str, theme: str,
                            image: Optional[NormalizedImage] = None,
                            on_publish: Optional[Callable[[], object]] = None) -> HeroImageResult:
        """
        :param original_url: 원본 이미지 URL (실패 시 그대로 반환됨)
        :param theme: 선택된 히어로 테마
        :param image: 앞 단계에서 정규화한 이미지. 없으면 원본을 다시 내려받습니다.
        :param on_publish: 업로드 직전에 호출되는 콜백 (파이프라인 단계 기록용)
        :return: HeroImageResult (예외를 던지지 않음)
        """
        try:
            if image is None:
                image = self.image_service.fetch_normalized(original_url)

            logging.info(f"Calling Gemini for hero image generation ({self.settings.image_model})")
            response = self.gemini_service.generate_content(
                self.settings.image_model, build_hero_prompt(theme), image
            )

            generated = response.image
            if generated is None:
                logging.warning("No image generated by Gemini, using original")
                return HeroImageResult(url=original_url, generated=False, failure_reason="no_image_in_response")

            logging.info(f"Generated image received from Gemini ({generated.mime_type})")
            jpeg_bytes = self.image_service.encode_jpeg(generated.data)

            if on_publish is not None:
                on_publish()
            public_url = self.storage_service.upload_generated_image(jpeg_bytes, original_url)
            return HeroImageResult(url=public_url, generated=True)

        except Exception as e:
            logging.error(f"Error generating hero image: {e}")
            if is_rate_limit_error(e):
                logging.info("Rate limited on image generation, using original image")
                return HeroImageResult(url=original_url, generated=False, failure_reason="rate_limited")
            return HeroImageResult(url=original_url, generated=False, failure_reason=type(e).__name__)
