# pethero/services/gemini_service.py
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from flask import Flask
from google import genai
from google.genai import types

from pethero.core.exceptions import InvalidResponseError
from pethero.services.image_service import NormalizedImage

RATE_LIMIT_SIGNATURES = ('429', 'quota', 'RESOURCE_EXHAUSTED')


def is_rate_limit_error(error: Exception) -> bool:
    """Gemini 오류가 요청 한도 초과(429 / quota / RESOURCE_EXHAUSTED)인지 판별합니다."""
    if getattr(error, 'code', None) == 429:
        return True
    message = str(error)
    return any(signature in message for signature in RATE_LIMIT_SIGNATURES)


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str = 'image/png'


@dataclass
class ModelResponse:
    """
    Gemini 응답을 경계에서 검증해 만든 타입 있는 응답.
    비즈니스 로직은 SDK 응답 객체를 직접 탐색하지 않고 이 객체만 사용합니다.
    """
    text_parts: List[str] = field(default_factory=list)
    inline_image_parts: List[InlineImage] = field(default_factory=list)

    @property
    def text(self) -> Optional[str]:
        """첫 번째로 내용이 있는 텍스트 파트"""
        for text in self.text_parts:
            if text and text.strip():
                return text
        return None

    @property
    def image(self) -> Optional[InlineImage]:
        return self.inline_image_parts[0] if self.inline_image_parts else None

    @classmethod
    def from_sdk(cls, response) -> "ModelResponse":
        """
        generate_content 응답(candidates[0].content.parts)을 ModelResponse로 변환합니다.

        :raises InvalidResponseError: candidates/content/parts가 없거나 inline 데이터가 손상된 경우
        """
        candidates = getattr(response, 'candidates', None)
        if not candidates:
            raise InvalidResponseError("Gemini response has no candidates")

        content = getattr(candidates[0], 'content', None)
        parts = getattr(content, 'parts', None) if content is not None else None
        if not parts:
            finish_reason = getattr(candidates[0], 'finish_reason', None)
            raise InvalidResponseError(f"Gemini response has no content parts (finish_reason: {finish_reason})")

        parsed = cls()
        for part in parts:
            text = getattr(part, 'text', None)
            if isinstance(text, str) and text:
                parsed.text_parts.append(text)

            inline_data = getattr(part, 'inline_data', None)
            data = getattr(inline_data, 'data', None) if inline_data is not None else None
            if not data:
                continue
            if isinstance(data, str):
                # REST 형태의 응답은 base64 문자열로 inline 데이터를 전달합니다.
                try:
                    data = base64.b64decode(data, validate=True)
                except (binascii.Error, ValueError) as e:
                    raise InvalidResponseError(f"Malformed inline image data: {e}")
            if not isinstance(data, (bytes, bytearray)):
                raise InvalidResponseError(f"Unexpected inline data type: {type(data).__name__}")
            mime_type = getattr(inline_data, 'mime_type', None) or 'image/png'
            parsed.inline_image_parts.append(InlineImage(data=bytes(data), mime_type=mime_type))
        return parsed


class GeminiService:
    """
    Google Gemini API 연동을 담당하는 서비스 클래스.
    클라이언트는 init_app에서 한 번만 생성되며, 테스트에서는 client를 직접 주입합니다.
    """

    def __init__(self, client=None):
        self.client = client

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Gemini 클라이언트를 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        api_key = app.config.get('GEMINI_API_KEY')
        if not api_key:
            raise ValueError("GEMINI_API_KEY 설정이 .env 파일에 필요합니다.")

        timeout_ms = int(app.config.get('GEMINI_TIMEOUT_SECONDS', 60)) * 1000
        self.client = genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=timeout_ms))
        logging.info("GeminiService: Gemini API 서비스가 성공적으로 초기화되었습니다.")

    def generate_content(self, model: str, text: str, image: Optional[NormalizedImage] = None) -> ModelResponse:
        """
        텍스트(와 선택적으로 이미지)를 모델에 전달하고 검증된 응답을 반환합니다.

        :param model: 호출할 모델 이름
        :param text: 지시 프롬프트
        :param image: 함께 전달할 JPEG 이미지 (멀티모달 모델에만 사용)
        :return: ModelResponse
        """
        if not self.client:
            raise RuntimeError("GeminiService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        contents = [types.Part.from_text(text=text)]
        if image is not None:
            contents.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))

        response = self.client.models.generate_content(model=model, contents=contents)
        return ModelResponse.from_sdk(response)
