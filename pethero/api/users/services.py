# pethero/api/users/services.py
import logging
from typing import Dict, Any, Tuple

from firebase_admin import firestore

from pethero.models.user import UserAccount
from pethero.utils.datetime_utils import DateTimeUtils


class UserService:
    """'users' 컬렉션의 프로필/크레딧/FCM 토큰 관리를 담당합니다."""

    def __init__(self, db=None, initial_credits: int = 1):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.initial_credits = initial_credits

    def get_or_create_profile(self, user_id: str) -> Tuple[UserAccount, bool]:
        """
        사용자 프로필을 조회하고, 없으면 무료 크레딧과 함께 생성합니다.

        :return: (UserAccount, 신규 생성 여부)
        """
        user_ref = self.users_ref.document(user_id)
        doc = user_ref.get()
        if doc.exists:
            return UserAccount.from_dict(user_id, doc.to_dict() or {}), False

        now = DateTimeUtils.now()
        account = UserAccount(user_id=user_id, credits=self.initial_credits, created_at=now, last_updated=now)
        user_ref.set(account.to_firestore())
        logging.info(f"User profile created for {user_id} with {self.initial_credits} free credits")
        return account, True

    def update_fcm_token(self, user_id: str, fcm_token: str):
        """FCM 토큰을 저장합니다. 프로필 문서가 아직 없어도 병합 저장됩니다."""
        self.users_ref.document(user_id).set({
            'fcmToken': fcm_token,
            'tokenUpdatedAt': DateTimeUtils.now(),
        }, merge=True)
        logging.info(f"FCM token updated for user {user_id}")

    def get_credit_info(self, user_id: str) -> Dict[str, Any]:
        doc = self.users_ref.document(user_id).get()
        if not doc.exists:
            return {'exists': False, 'credits': 0, 'premium': False}

        account = UserAccount.from_dict(user_id, DateTimeUtils.from_firestore(doc.to_dict() or {}))
        return {
            'exists': True,
            'credits': account.credits,
            'premium': account.premium,
            'created_at': account.created_at,
            'last_updated': account.last_updated,
        }

    def add_credits(self, user_id: str, amount: int) -> int:
        """
        사용자 크레딧을 amount만큼 늘립니다. 프로필이 없으면 해당 잔액으로 생성합니다.

        :return: 변경 후 잔액
        """
        if amount <= 0:
            raise ValueError("추가할 크레딧은 1 이상이어야 합니다.")

        user_ref = self.users_ref.document(user_id)
        now = DateTimeUtils.now()
        if user_ref.get().exists:
            user_ref.update({
                'credits': firestore.Increment(amount),
                'lastUpdated': now,
            })
        else:
            user_ref.set(UserAccount(user_id=user_id, credits=amount, created_at=now, last_updated=now).to_firestore())

        balance = (user_ref.get().to_dict() or {}).get('credits') or 0
        logging.info(f"Added {amount} credits to user {user_id}. Balance: {balance}")
        return balance
