# pethero/api/photos/routes.py
import logging
import threading
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pethero.api.photos.schemas import PhotoCreateSchema, PhotoJobResponseSchema, PhotoGalleryItemSchema

photos_bp = Blueprint('photos_bp', __name__)


def process_photo_in_background(app, photo_id: str, photo_data: dict):
    """
    백그라운드에서 사진 변환 파이프라인을 실행하는 함수
    Threading으로 비동기 실행됩니다.
    """
    with app.app_context():
        try:
            pipeline = app.services['photo_pipeline']
            result = pipeline.process(photo_id, photo_data)
            logging.info(f"Photo pipeline finished: {photo_id} ({result.status.value})")
        except Exception as e:
            # 파이프라인은 자체적으로 오류를 기록하므로 여기서는 로그만 남깁니다.
            logging.error(f"백그라운드 사진 처리 중 오류: {photo_id} - {e}", exc_info=True)


@photos_bp.route('', methods=['POST'])
@jwt_required()
def create_photo():
    """
    사진 변환 작업을 생성합니다.
    - 요청 즉시 'processing' 상태의 작업 정보를 202 Accepted 코드와 함께 반환합니다.
    - 실제 처리는 백그라운드 Thread에서 진행되며, 완료 시 푸시 알림이 전송됩니다.
    """
    photo_service = current_app.services['photos']
    user_id = get_jwt_identity()
    try:
        data = PhotoCreateSchema().load(request.get_json() or {})

        # 1. Firestore에 작업 등록
        job = photo_service.create_photo_job(user_id, data['original_url'])

        # 2. 백그라운드 Thread로 파이프라인 시작
        if current_app.config.get('PROCESS_PHOTOS_IN_BACKGROUND', True):
            app = current_app._get_current_object()
            thread = threading.Thread(
                target=process_photo_in_background,
                args=[app, job.photo_id, job.to_firestore()]
            )
            thread.daemon = True
            thread.start()

        # 3. 즉시 응답 반환
        return jsonify(PhotoJobResponseSchema().dump(job.to_response())), 202

    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"사진 작업 생성 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "JOB_CREATION_FAILED", "message": "작업 생성 중 오류가 발생했습니다."}), 500


@photos_bp.route('/<string:photo_id>', methods=['GET'])
@jwt_required()
def get_photo(photo_id: str):
    """특정 사진 작업의 현재 상태를 조회합니다. 본인의 작업만 조회할 수 있습니다."""
    photo_service = current_app.services['photos']
    user_id = get_jwt_identity()
    try:
        job = photo_service.get_job_by_id_and_owner(photo_id, user_id)
        if not job:
            return jsonify({"error_code": "PHOTO_NOT_FOUND_OR_FORBIDDEN", "message": "작업을 찾을 수 없거나 조회 권한이 없습니다."}), 404
        return jsonify(PhotoJobResponseSchema().dump(job.to_response())), 200
    except Exception as e:
        logging.error(f"사진 작업 조회 중 오류 발생 (photo_id: {photo_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "작업 조회 중 오류가 발생했습니다."}), 500


@photos_bp.route('', methods=['GET'])
@jwt_required()
def list_my_photos():
    """현재 사용자의 갤러리 (최신순, 최대 50개)"""
    photo_service = current_app.services['photos']
    user_id = get_jwt_identity()
    try:
        photos = photo_service.list_user_photos(user_id)
        return jsonify({
            "success": True,
            "photos": PhotoGalleryItemSchema(many=True).dump(photos),
            "count": len(photos),
        }), 200
    except Exception as e:
        logging.error(f"갤러리 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "GALLERY_FETCH_FAILED", "message": "갤러리 조회 중 오류가 발생했습니다."}), 500
