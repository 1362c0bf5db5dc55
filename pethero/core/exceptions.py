# pethero/core/exceptions.py
"""
사진 처리 파이프라인에서 사용하는 도메인 예외 모음.

예상 가능한 성능 저하 경로(분석 placeholder, 원본 이미지 fallback)는 예외가 아닌
결과 객체로 표현하고, 여기 정의된 예외는 작업 자체를 중단시켜야 하는 경우에만 사용합니다.
"""


class PetHeroError(Exception):
    """프로젝트 공통 예외의 기반 클래스"""


class DownloadError(PetHeroError):
    """원본 이미지 다운로드 실패 (HTTP 오류, 타임아웃, 네트워크 오류)"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download image from {url}: {reason}")


class JobNotFoundError(PetHeroError):
    """photos 문서가 없거나 소유자를 확인할 수 없는 경우"""

    def __init__(self, photo_id: str, message: str = None):
        self.photo_id = photo_id
        super().__init__(message or f"Photo document {photo_id} not found")


class InvalidResponseError(PetHeroError):
    """Gemini 응답이 예상한 구조(candidates → content → parts)를 따르지 않는 경우"""
