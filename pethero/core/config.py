# pethero/core/config.py

import os  # 환경 변수를 읽기 위해 사용합니다.
from dataclasses import dataclass, field
from typing import List, Mapping


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(key: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(key, default).split(',') if item.strip()]


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명에 사용되는 키입니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # Gemini API 키가 없으면 파이프라인은 placeholder 모드로 동작합니다.
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
    GEMINI_ANALYSIS_MODELS = _env_list('GEMINI_ANALYSIS_MODELS', 'gemini-2.5-flash-image-preview,gemini-1.5-flash')
    GEMINI_IMAGE_MODEL = os.getenv('GEMINI_IMAGE_MODEL', 'gemini-2.5-flash-image-preview')
    GEMINI_TIMEOUT_SECONDS = int(os.getenv('GEMINI_TIMEOUT_SECONDS', 60))
    RATE_LIMIT_COOLDOWN_SECONDS = float(os.getenv('RATE_LIMIT_COOLDOWN_SECONDS', 20))

    IMAGE_DOWNLOAD_TIMEOUT_SECONDS = int(os.getenv('IMAGE_DOWNLOAD_TIMEOUT_SECONDS', 30))
    IMAGE_MAX_DIMENSION = int(os.getenv('IMAGE_MAX_DIMENSION', 1024))
    IMAGE_JPEG_QUALITY = int(os.getenv('IMAGE_JPEG_QUALITY', 85))

    # 신규 가입 사용자에게 지급하는 무료 크레딧
    INITIAL_FREE_CREDITS = int(os.getenv('INITIAL_FREE_CREDITS', 1))
    ALLOW_SELF_SERVICE_CREDITS = _env_bool('ALLOW_SELF_SERVICE_CREDITS', True)
    PROCESS_PHOTOS_IN_BACKGROUND = True


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length')
    # 테스트에서는 작업 생성 시 백그라운드 파이프라인을 시작하지 않습니다.
    PROCESS_PHOTOS_IN_BACKGROUND = False


class ProductionConfig(Config):
    """운영 환경 설정. 서비스 계정 경로가 없으면 Application Default Credentials를 사용합니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('PROD_FIREBASE_CREDENTIALS_PATH')
    ALLOW_SELF_SERVICE_CREDITS = _env_bool('ALLOW_SELF_SERVICE_CREDITS', False)


# FLASK_ENV 값에 따라 create_app 함수에서 적절한 설정을 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)


@dataclass(frozen=True)
class PipelineSettings:
    """
    사진 처리 파이프라인이 사용하는 설정 값 묶음.
    Flask 설정에서 한 번만 만들어 각 서비스에 명시적으로 전달합니다.
    """
    analysis_models: List[str] = field(default_factory=lambda: ['gemini-2.5-flash-image-preview', 'gemini-1.5-flash'])
    image_model: str = 'gemini-2.5-flash-image-preview'
    gemini_timeout_seconds: int = 60
    rate_limit_cooldown_seconds: float = 20.0
    download_timeout_seconds: int = 30
    max_dimension: int = 1024
    jpeg_quality: int = 85

    @classmethod
    def from_config(cls, config: Mapping) -> 'PipelineSettings':
        return cls(
            analysis_models=list(config.get('GEMINI_ANALYSIS_MODELS') or cls().analysis_models),
            image_model=config.get('GEMINI_IMAGE_MODEL', cls.image_model),
            gemini_timeout_seconds=config.get('GEMINI_TIMEOUT_SECONDS', cls.gemini_timeout_seconds),
            rate_limit_cooldown_seconds=config.get('RATE_LIMIT_COOLDOWN_SECONDS', cls.rate_limit_cooldown_seconds),
            download_timeout_seconds=config.get('IMAGE_DOWNLOAD_TIMEOUT_SECONDS', cls.download_timeout_seconds),
            max_dimension=config.get('IMAGE_MAX_DIMENSION', cls.max_dimension),
            jpeg_quality=config.get('IMAGE_JPEG_QUALITY', cls.jpeg_quality),
        )
