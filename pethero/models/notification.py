# pethero/models/notification.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict


class NotificationType(Enum):
    """사진 처리 결과 푸시 알림 유형"""
    PHOTO_COMPLETE = "PHOTO_COMPLETE"
    PHOTO_FAILED = "PHOTO_FAILED"


@dataclass(frozen=True)
class PushContent:
    title: str
    body: str
    color: str  # 안드로이드 알림 색상


PUSH_CONTENT: Dict[NotificationType, PushContent] = {
    NotificationType.PHOTO_COMPLETE: PushContent(
        title='🦸‍♀️ Hero Transformation Complete!',
        body='Your pet has been transformed into an epic hero! Tap to see the amazing result.',
        color='#FF6B6B',
    ),
    NotificationType.PHOTO_FAILED: PushContent(
        title='😅 Oops! Something went wrong',
        body='We had trouble processing your pet photo. Please try again!',
        color='#FF4444',
    ),
}
