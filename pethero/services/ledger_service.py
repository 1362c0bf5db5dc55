# pethero/services/ledger_service.py
import logging
from dataclasses import dataclass
from typing import Optional

from firebase_admin import firestore
from firebase_admin.firestore import Transaction

from pethero.core.exceptions import JobNotFoundError
from pethero.models.credit_usage import CreditUsageLogEntry, CreditUsagePurpose
from pethero.models.photo_job import PhotoJobStatus
from pethero.utils.datetime_utils import DateTimeUtils

CREDIT_ERROR_MESSAGE = 'Failed to deduct credits - see logs'


@dataclass(frozen=True)
class LedgerOutcome:
    """원장 업데이트 결과. credit_error가 있으면 크레딧 차감 없이 작업만 완료 처리된 것입니다."""
    photo_id: str
    user_id: str
    credits_deducted: int
    remaining_credits: Optional[int]
    credit_error: Optional[str] = None
    already_terminal: bool = False


class LedgerService:
    """
    사진 작업의 완료 처리와 크레딧 차감을 하나의 Firestore 트랜잭션으로 묶는 서비스.
    - 작업이 done으로 기록될 때만 크레딧이 1 차감됩니다.
    - processing 상태가 아닌 작업(done, error)은 다시 기록하지 않습니다.
    - 트랜잭션 자체가 실패하면 크레딧 차감 없이 작업만 done으로 기록하고 creditError를 남깁니다.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.photos_ref = self.db.collection('photos')
        self.users_ref = self.db.collection('users')
        self.credit_usage_ref = self.db.collection('creditUsage')

    def complete_photo(self, photo_id: str, result_url: str, theme: str, analysis: str) -> LedgerOutcome:
        """
        작업을 done 상태로 전환하고 소유자의 크레딧을 차감합니다.

        :param photo_id: photos 문서 ID
        :param result_url: 최종 결과 이미지 URL (생성 실패 시 원본 URL)
        :param theme: 선택된 테마
        :param analysis: 분석 텍스트
        :return: LedgerOutcome
        :raises JobNotFoundError: 작업 문서가 없거나 userId가 없는 경우
        """
        photo_ref = self.photos_ref.document(photo_id)
        photo_doc = photo_ref.get()
        if not photo_doc.exists:
            raise JobNotFoundError(photo_id)

        user_id = (photo_doc.to_dict() or {}).get('userId')
        if not user_id:
            raise JobNotFoundError(photo_id, f"No userId found for photo {photo_id}")

        user_ref = self.users_ref.document(user_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _complete_in_transaction(transaction: Transaction) -> LedgerOutcome:
            # Firestore 트랜잭션은 모든 읽기가 쓰기보다 먼저 수행되어야 합니다.
            current_photo = photo_ref.get(transaction=transaction)
            user_doc = user_ref.get(transaction=transaction)

            status = (current_photo.to_dict() or {}).get('status')
            if status != PhotoJobStatus.PROCESSING.value:
                logging.warning(f"Photo {photo_id} is already '{status}', skipping completion")
                return LedgerOutcome(photo_id, user_id, credits_deducted=0, remaining_credits=None,
                                     already_terminal=True)

            now = DateTimeUtils.now()
            transaction.update(photo_ref, {
                'status': PhotoJobStatus.DONE.value,
                'resultUrl': result_url,
                'theme': theme,
                'analysis': analysis,
                'processedAt': now,
            })

            if not user_doc.exists:
                logging.warning(f"User {user_id} not found, skipping credit deduction")
                return LedgerOutcome(photo_id, user_id, credits_deducted=0, remaining_credits=None)

            current_credits = (user_doc.to_dict() or {}).get('credits') or 0
            usage_log_ref = self.credit_usage_ref.document()

            if current_credits > 0:
                transaction.update(user_ref, {
                    'credits': firestore.Increment(-1),
                    'lastUpdated': now,
                })
                entry = CreditUsageLogEntry(
                    user_id=user_id, image_id=photo_id, credits_deducted=1,
                    purpose=CreditUsagePurpose.IMAGE_GENERATION_COMPLETED,
                    remaining_credits=current_credits - 1, theme=theme, timestamp=now,
                )
                transaction.set(usage_log_ref, entry.to_firestore())
                logging.info(f"Deducted 1 credit from user {user_id} for photo {photo_id}. Remaining: {current_credits - 1}")
                return LedgerOutcome(photo_id, user_id, credits_deducted=1, remaining_credits=current_credits - 1)

            logging.warning(f"User {user_id} has no credits to deduct for photo {photo_id}")
            entry = CreditUsageLogEntry(
                user_id=user_id, image_id=photo_id, credits_deducted=0,
                purpose=CreditUsagePurpose.IMAGE_GENERATION_COMPLETED_NO_CREDITS,
                remaining_credits=0, theme=theme, note='User had no credits to deduct', timestamp=now,
            )
            transaction.set(usage_log_ref, entry.to_firestore())
            return LedgerOutcome(photo_id, user_id, credits_deducted=0, remaining_credits=0)

        try:
            outcome = _complete_in_transaction(transaction)
            logging.info(f"Photo {photo_id} completed and ledger updated")
            return outcome
        except Exception as e:
            logging.error(f"Ledger transaction failed for photo {photo_id}: {e}", exc_info=True)

        # 트랜잭션 실패 시 크레딧 차감 없이 작업만 완료 처리합니다. 이 쓰기마저 실패하면 예외를 전파합니다.
        latest_status = (photo_ref.get().to_dict() or {}).get('status')
        if latest_status != PhotoJobStatus.PROCESSING.value:
            logging.warning(f"Photo {photo_id} is already '{latest_status}', skipping fallback completion")
            return LedgerOutcome(photo_id, user_id, credits_deducted=0, remaining_credits=None,
                                 already_terminal=True)

        try:
            photo_ref.update({
                'status': PhotoJobStatus.DONE.value,
                'resultUrl': result_url,
                'theme': theme,
                'analysis': analysis,
                'processedAt': DateTimeUtils.now(),
                'creditError': CREDIT_ERROR_MESSAGE,
            })
        except Exception as e:
            logging.error(f"Failed to update photo {photo_id} even without credit deduction: {e}", exc_info=True)
            raise

        logging.warning(f"Photo {photo_id} marked as done despite credit error")
        return LedgerOutcome(photo_id, user_id, credits_deducted=0, remaining_credits=None,
                             credit_error=CREDIT_ERROR_MESSAGE)
