# pethero/services/notification_service.py
import logging
from typing import Callable, Optional

from firebase_admin import firestore, messaging

from pethero.models.notification import NotificationType, PUSH_CONTENT


class NotificationService:
    """
    사진 처리 결과를 FCM 푸시 알림으로 전달하는 공용 서비스 클래스.
    알림 전송은 best-effort이며, 실패해도 작업 결과에 영향을 주지 않습니다.
    """

    def __init__(self, db=None, sender: Optional[Callable[[messaging.Message], str]] = None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.sender = sender or messaging.send

    @staticmethod
    def build_message(token: str, photo_id: str, is_error: bool) -> messaging.Message:
        n_type = NotificationType.PHOTO_FAILED if is_error else NotificationType.PHOTO_COMPLETE
        content = PUSH_CONTENT[n_type]
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=content.title, body=content.body),
            # FCM data 페이로드의 값은 모두 문자열이어야 합니다.
            data={
                'type': 'photo_complete',
                'photoId': photo_id,
                'error': 'true' if is_error else 'false',
            },
            android=messaging.AndroidConfig(
                notification=messaging.AndroidNotification(icon='stock_ticker_update', color=content.color)
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(badge=1, sound='default'))
            ),
        )

    def send_photo_notification(self, user_id: str, photo_id: str, is_error: bool = False) -> bool:
        """
        사용자의 FCM 토큰으로 작업 완료/실패 알림을 보냅니다.

        :param user_id: 알림을 받을 사용자 ID
        :param photo_id: 라우팅 데이터로 전달할 작업 ID
        :param is_error: 실패 알림 여부
        :return: 실제로 전송했으면 True (토큰 없음/실패는 False)
        """
        try:
            user_doc = self.users_ref.document(user_id).get()
            user_data = user_doc.to_dict() if user_doc.exists else None
            token = (user_data or {}).get('fcmToken')
            if not token:
                logging.info(f"No FCM token for user {user_id}")
                return False

            self.sender(self.build_message(token, photo_id, is_error))
            logging.info(f"Notification sent to user {user_id} (photo: {photo_id}, error: {is_error})")
            return True
        except Exception as e:
            logging.error(f"알림 전송 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
            return False
