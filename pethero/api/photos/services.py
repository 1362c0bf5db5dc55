# pethero/api/photos/services.py
import logging
import uuid
from typing import Dict, Any, List, Optional

from firebase_admin import firestore

from pethero.models.photo_job import PhotoJob
from pethero.utils.datetime_utils import DateTimeUtils

GALLERY_LIMIT = 50
UNKNOWN_THEME = 'Unknown Theme'


class PhotoJobService:
    """'photos' 컬렉션의 작업 생성/조회를 담당합니다. 작업 처리 자체는 PhotoPipeline이 수행합니다."""

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.photos_ref = self.db.collection('photos')

    def create_photo_job(self, user_id: str, original_url: str) -> PhotoJob:
        """processing 상태의 작업 문서를 생성합니다. 이 문서가 파이프라인의 입력이 됩니다."""
        photo_id = str(uuid.uuid4())
        job = PhotoJob(
            photo_id=photo_id,
            user_id=user_id,
            original_url=original_url,
            created_at=DateTimeUtils.now(),
        )
        self.photos_ref.document(photo_id).set(DateTimeUtils.for_firestore(job.to_firestore()))
        logging.info(f"Photo record created: {photo_id} (user: {user_id})")
        return job

    def get_job_by_id_and_owner(self, photo_id: str, user_id: str) -> Optional[PhotoJob]:
        doc = self.photos_ref.document(photo_id).get()
        if doc.exists:
            data = doc.to_dict() or {}
            if data.get('userId') == user_id:
                return PhotoJob.from_dict(photo_id, DateTimeUtils.from_firestore(data))
        return None

    def list_user_photos(self, user_id: str, limit: int = GALLERY_LIMIT) -> List[Dict[str, Any]]:
        """
        사용자의 갤러리를 최신순으로 조회합니다.
        복합 인덱스가 없어 정렬 쿼리가 실패하면 정렬 없는 쿼리로 다시 조회합니다.
        """
        base_query = self.photos_ref.where('userId', '==', user_id)
        try:
            docs = list(base_query.order_by('createdAt', direction=firestore.Query.DESCENDING).limit(limit).stream())
        except Exception as e:
            logging.warning(f"Ordered gallery query failed, falling back to unordered query: {e}")
            docs = list(base_query.limit(limit).stream())

        photos = []
        for doc in docs:
            data = DateTimeUtils.from_firestore(doc.to_dict() or {})
            photos.append({
                'photo_id': doc.id,
                'original_url': data.get('originalUrl'),
                'result_url': data.get('resultUrl') or data.get('originalUrl'),
                'theme': data.get('theme') or UNKNOWN_THEME,
                'analysis': data.get('analysis'),
                'status': data.get('status'),
                'created_at': data.get('createdAt'),
            })
        logging.info(f"Found {len(photos)} photos for user {user_id}")
        return photos
