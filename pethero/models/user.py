# pethero/models/user.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any


@dataclass
class UserAccount:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    credits는 완료된 사진 1건당 1씩 차감되는 잔액입니다.
    """
    user_id: str
    credits: int = 0
    premium: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated: Optional[datetime] = None
    fcm_token: Optional[str] = None  # 푸시 알림을 위한 FCM 토큰

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'credits': self.credits,
            'premium': self.premium,
            'createdAt': self.created_at,
            'lastUpdated': self.last_updated or self.created_at,
        }
        if self.fcm_token:
            data['fcmToken'] = self.fcm_token
        return data

    @classmethod
    def from_dict(cls, user_id: str, data: Dict[str, Any]) -> "UserAccount":
        return cls(
            user_id=user_id,
            credits=data.get('credits') or 0,
            premium=data.get('premium') or False,
            created_at=data.get('createdAt'),
            last_updated=data.get('lastUpdated'),
            fcm_token=data.get('fcmToken'),
        )
