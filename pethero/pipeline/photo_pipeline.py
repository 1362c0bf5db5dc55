# pethero/pipeline/photo_pipeline.py
"""
photos 문서 하나를 끝까지 처리하는 파이프라인.

다운로드 → 분석 → 이미지 생성/게시 → 원장 업데이트 → 알림 순서로 한 단계씩 실행하며,
처리되지 않은 예외는 최상위 핸들러 하나가 받아 작업을 error 상태로 기록하고 실패 알림을 시도합니다.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Any, Optional

from firebase_admin import firestore

from pethero.core.config import PipelineSettings
from pethero.models.photo_job import PhotoJobStatus
from pethero.services.analysis_service import (
    AnalysisPolicy, AnalysisResult, AnalysisSource, generate_offline_analysis, resolve_analysis
)
from pethero.services.gemini_service import GeminiService
from pethero.services.hero_image_service import HeroImageResult, HeroImageService
from pethero.services.image_service import ImageService
from pethero.services.ledger_service import LedgerOutcome, LedgerService
from pethero.services.notification_service import NotificationService
from pethero.services.themes import select_theme
from pethero.utils.datetime_utils import DateTimeUtils


class PipelineStage(Enum):
    RECEIVED = "received"
    DOWNLOADING = "downloading"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    PUBLISHING = "publishing"
    LEDGER_UPDATING = "ledger-updating"
    NOTIFYING = "notifying"
    DONE = "done"
    ERROR = "error"


@dataclass
class PipelineResult:
    photo_id: str
    status: PhotoJobStatus
    theme: Optional[str] = None
    analysis: Optional[AnalysisResult] = None
    hero: Optional[HeroImageResult] = None
    ledger: Optional[LedgerOutcome] = None
    failed_stage: Optional[PipelineStage] = None
    error: Optional[str] = None
    skipped: bool = False


class PhotoPipeline:
    """사진 변환 작업 1건을 처리하는 오케스트레이터. gemini_service가 None이면 placeholder 모드로 동작합니다."""

    def __init__(self,
                 settings: PipelineSettings,
                 image_service: ImageService,
                 ledger_service: LedgerService,
                 notification_service: NotificationService,
                 gemini_service: Optional[GeminiService] = None,
                 hero_image_service: Optional[HeroImageService] = None,
                 db=None,
                 theme_selector: Callable[[], str] = select_theme,
                 sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.image_service = image_service
        self.ledger_service = ledger_service
        self.notification_service = notification_service
        self.gemini_service = gemini_service
        self.hero_image_service = hero_image_service
        self.analysis_policy = AnalysisPolicy.from_settings(settings)
        self.theme_selector = theme_selector
        self.sleep = sleep
        self.db = db or firestore.client()
        self.photos_ref = self.db.collection('photos')

    def process(self, photo_id: str, photo_data: Dict[str, Any]) -> PipelineResult:
        """
        :param photo_id: 트리거된 photos 문서 ID
        :param photo_data: 생성 시점의 문서 내용 {userId, originalUrl, status, createdAt}
        :return: PipelineResult (예외를 던지지 않음)

        상태 확인은 트리거 시점의 photo_data가 아니라 저장된 문서를 다시 읽어서 수행합니다.
        """
        user_id = photo_data.get('userId')
        original_url = photo_data.get('originalUrl')
        stage = PipelineStage.RECEIVED
        logging.info(f"Starting photo processing for {photo_id}")

        try:
            stored = self.photos_ref.document(photo_id).get()
            status = (stored.to_dict() or {}).get('status') if stored.exists else None
            if status != PhotoJobStatus.PROCESSING.value:
                logging.warning(f"Photo {photo_id} is in '{status}' state, skipping")
                try:
                    current = PhotoJobStatus(status)
                except ValueError:
                    current = PhotoJobStatus.ERROR
                return PipelineResult(photo_id, current, skipped=True)

            if not user_id or not original_url:
                raise ValueError(f"Photo {photo_id} is missing userId or originalUrl")

            stage = self._enter(photo_id, PipelineStage.DOWNLOADING)
            image = self.image_service.fetch_normalized(original_url)

            theme = self.theme_selector()
            logging.info(f"Selected theme for {photo_id}: {theme}")

            if self.gemini_service is None:
                logging.warning("Gemini AI not configured, using placeholder analysis")
                analysis = AnalysisResult(text=generate_offline_analysis(theme), source=AnalysisSource.PLACEHOLDER)
                hero = HeroImageResult(url=original_url, generated=False, failure_reason="gemini_not_configured")
            else:
                stage = self._enter(photo_id, PipelineStage.ANALYZING)
                analysis = resolve_analysis(self.gemini_service, self.analysis_policy, image, theme, self.sleep)
                logging.info(f"Analysis completed ({analysis.source.value}): {analysis.text[:200]}")

                stage = self._enter(photo_id, PipelineStage.GENERATING)
                hero = self.hero_image_service.generate_hero_image(
                    original_url, theme, image,
                    on_publish=lambda: self._enter(photo_id, PipelineStage.PUBLISHING),
                )
                if hero.generated:
                    logging.info(f"Hero image published for {photo_id}: {hero.url}")
                else:
                    logging.warning(f"Using original image for {photo_id} ({hero.failure_reason})")

            stage = self._enter(photo_id, PipelineStage.LEDGER_UPDATING)
            ledger = self.ledger_service.complete_photo(photo_id, hero.url, theme, analysis.text)

            stage = self._enter(photo_id, PipelineStage.NOTIFYING)
            if not ledger.already_terminal:
                self.notification_service.send_photo_notification(user_id, photo_id)

            self._enter(photo_id, PipelineStage.DONE)
            logging.info(f"Successfully processed photo {photo_id}")
            return PipelineResult(photo_id, PhotoJobStatus.DONE, theme=theme, analysis=analysis,
                                  hero=hero, ledger=ledger)

        except Exception as e:
            logging.error(f"Error processing photo {photo_id} during {stage.value}: {e}", exc_info=True)
            self._enter(photo_id, PipelineStage.ERROR)
            message = str(e) or 'Unknown error occurred'
            self._mark_failed(photo_id, user_id, message)
            return PipelineResult(photo_id, PhotoJobStatus.ERROR, failed_stage=stage, error=message)

    @staticmethod
    def _enter(photo_id: str, stage: PipelineStage) -> PipelineStage:
        logging.info(f"[{photo_id}] stage: {stage.value}")
        return stage

    def _mark_failed(self, photo_id: str, user_id: Optional[str], message: str) -> None:
        """
        작업을 error로 기록하고 실패 알림을 시도합니다. 여기서 발생한 오류는 로그만 남깁니다.
        그사이 다른 실행이 작업을 끝냈다면 상태를 덮어쓰지 않고 알림도 보내지 않습니다.
        """
        photo_ref = self.photos_ref.document(photo_id)

        @firestore.transactional
        def _fail_in_transaction(transaction) -> bool:
            current = photo_ref.get(transaction=transaction)
            status = (current.to_dict() or {}).get('status') if current.exists else None
            if status != PhotoJobStatus.PROCESSING.value:
                logging.warning(f"Photo {photo_id} is already '{status}', not marking as error")
                return False
            transaction.update(photo_ref, {
                'status': PhotoJobStatus.ERROR.value,
                'error': message,
                'processedAt': DateTimeUtils.now(),
            })
            return True

        try:
            if not _fail_in_transaction(self.db.transaction()):
                return
        except Exception as update_error:
            logging.error(f"Failed to mark photo {photo_id} as error: {update_error}", exc_info=True)

        if not user_id:
            return
        try:
            self.notification_service.send_photo_notification(user_id, photo_id, is_error=True)
        except Exception as notification_error:
            logging.error(f"Failed to send error notification: {notification_error}")
