# pethero/services/storage_service.py
import os
import uuid
import logging
from datetime import timedelta
from urllib.parse import unquote, urlparse

from flask import Flask
from firebase_admin import storage

from pethero.utils.datetime_utils import DateTimeUtils


class StorageService:
    """
    Firebase Storage 관련 로직을 담당하는 범용 서비스 클래스입니다.
    원본 사진 업로드용 Pre-signed URL 발급과 생성된 히어로 이미지 업로드를 담당합니다.
    """

    def __init__(self, bucket=None):
        """
        실제 버킷 객체는 init_app 메서드를 통해 주입됩니다.
        테스트에서는 버킷 객체를 직접 넘길 수 있습니다.
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.bucket

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        클라이언트가 Firebase Storage에 직접 PUT 업로드할 수 있는 Pre-signed URL을 생성합니다.

        :param user_id: JWT에서 추출한 현재 로그인된 사용자의 고유 ID
        :param upload_type: 업로드 목적 (현재는 "photo_original"만 지원)
        :param filename: 클라이언트가 업로드할 원본 파일명 (확장자 파악에 사용)
        :param content_type: 업로드할 파일의 MIME 타입 (예: "image/jpeg")
        :return: 업로드 URL과 파일 경로가 담긴 딕셔너리
        """
        bucket = self._require_bucket()

        path_map = {
            "photo_original": f"photos/{user_id}",
        }
        folder_path = path_map.get(upload_type)
        if not folder_path:
            raise ValueError(f"'{upload_type}'은(는) 유효한 업로드 타입이 아닙니다.")

        extension = filename.split('.')[-1] if '.' in filename else 'jpg'
        destination_blob_name = f"{folder_path}/{uuid.uuid4()}.{extension}"

        blob = bucket.blob(destination_blob_name)
        # 15분 동안 유효한 업로드 전용 URL을 생성합니다.
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    def make_public_and_get_url(self, file_path: str) -> str:
        """
        지정된 파일을 공개(public)로 설정하고 해당 URL을 반환합니다.

        :param file_path: 공개로 전환할 파일의 경로
        :return: 공개적으로 접근 가능한 URL
        """
        blob = self._require_bucket().blob(file_path)

        if not blob.exists():
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {file_path}")

        try:
            blob.make_public()
            return blob.public_url
        except Exception as e:
            logging.error(f"파일 공개 전환 실패: {e}", exc_info=True)
            raise

    @staticmethod
    def build_generated_filename(original_url: str, timestamp_ms: int) -> str:
        """
        원본 URL의 마지막 경로 조각(쿼리 제외, 퍼센트 디코딩)에 '_hero_<timestamp>' 접미사를 붙입니다.
        Firebase 다운로드 URL(.../o/photos%2Fuid%2Fa.jpg?alt=media)은 디코딩 후 원래 폴더 경로가 유지됩니다.
        """
        last_segment = urlparse(original_url).path.rstrip('/').split('/')[-1]
        decoded = unquote(last_segment) or 'generated'
        stem, _ = os.path.splitext(decoded)
        return f"{stem or 'generated'}_hero_{timestamp_ms}.jpg"

    def upload_generated_image(self, image_bytes: bytes, original_url: str) -> str:
        """
        생성된 히어로 이미지를 업로드하고 공개 URL을 반환합니다.
        실패 시 예외를 그대로 전파하며, 호출자가 원본 URL로 대체합니다.

        :param image_bytes: JPEG로 인코딩된 생성 이미지 바이트
        :param original_url: 파일명을 만들기 위한 원본 이미지 URL
        :return: 공개 URL
        """
        bucket = self._require_bucket()
        file_name = self.build_generated_filename(original_url, DateTimeUtils.now_ms())

        try:
            blob = bucket.blob(file_name)
            blob.upload_from_string(image_bytes, content_type='image/jpeg')
            blob.make_public()
        except Exception as e:
            logging.error(f"생성 이미지 업로드 실패 ({file_name}): {e}", exc_info=True)
            raise

        logging.info(f"Generated image uploaded: {blob.public_url}")
        return blob.public_url
