# pethero/models/photo_job.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class PhotoJobStatus(Enum):
    """사진 변환 작업의 상태. processing → done | error 로 한 번만 전이합니다."""
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass
class PhotoJob:
    """
    Firestore 'photos' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    문서 필드명은 모바일 클라이언트와 공유하는 계약이므로 camelCase로 저장됩니다.
    """
    photo_id: str
    user_id: str
    original_url: str
    status: PhotoJobStatus = PhotoJobStatus.PROCESSING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    result_url: Optional[str] = None
    theme: Optional[str] = None
    analysis: Optional[str] = None
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    credit_error: Optional[str] = None

    def to_firestore(self) -> Dict[str, Any]:
        """작업 생성 시 저장하는 트리거 문서 형태로 변환합니다."""
        return {
            'userId': self.user_id,
            'originalUrl': self.original_url,
            'status': self.status.value,
            'resultUrl': self.result_url,
            'createdAt': self.created_at,
        }

    def to_response(self) -> Dict[str, Any]:
        return {
            'photo_id': self.photo_id,
            'user_id': self.user_id,
            'original_url': self.original_url,
            'status': self.status.value,
            'result_url': self.result_url,
            'theme': self.theme,
            'analysis': self.analysis,
            'error': self.error,
            'credit_error': self.credit_error,
            'created_at': self.created_at,
            'processed_at': self.processed_at,
        }

    @classmethod
    def from_dict(cls, photo_id: str, data: Dict[str, Any]) -> "PhotoJob":
        """Firestore 문서 딕셔너리로부터 PhotoJob 인스턴스를 생성합니다."""
        try:
            status = PhotoJobStatus(data.get('status', PhotoJobStatus.PROCESSING.value))
        except ValueError:
            status = PhotoJobStatus.PROCESSING
        return cls(
            photo_id=photo_id,
            user_id=data.get('userId'),
            original_url=data.get('originalUrl'),
            status=status,
            created_at=data.get('createdAt'),
            result_url=data.get('resultUrl'),
            theme=data.get('theme'),
            analysis=data.get('analysis'),
            processed_at=data.get('processedAt'),
            error=data.get('error'),
            credit_error=data.get('creditError'),
        )
