# pethero/models/credit_usage.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class CreditUsagePurpose(Enum):
    """크레딧 사용 기록의 목적 태그"""
    IMAGE_GENERATION_COMPLETED = "image_generation_completed"
    IMAGE_GENERATION_COMPLETED_NO_CREDITS = "image_generation_completed_no_credits"


@dataclass
class CreditUsageLogEntry:
    """
    Firestore 'creditUsage' 컬렉션의 감사(audit) 기록.
    원장 트랜잭션 안에서 한 번 생성되며 이후 수정/삭제되지 않습니다.
    """
    user_id: str
    image_id: str
    credits_deducted: int
    purpose: CreditUsagePurpose
    remaining_credits: int
    theme: Optional[str] = None
    note: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'userId': self.user_id,
            'imageId': self.image_id,
            'creditsDeducted': self.credits_deducted,
            'purpose': self.purpose.value,
            'timestamp': self.timestamp,
            'remainingCredits': self.remaining_credits,
            'theme': self.theme,
        }
        if self.note:
            data['note'] = self.note
        return data
