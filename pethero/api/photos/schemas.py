# pethero/api/photos/schemas.py
from marshmallow import Schema, fields


class PhotoCreateSchema(Schema):
    """
    POST /api/photos
    업로드가 끝난 원본 이미지의 공개 URL로 변환 작업을 요청합니다.
    """
    original_url = fields.URL(
        required=True,
        error_messages={"required": "original_url은 필수 항목입니다."}
    )


class PhotoJobResponseSchema(Schema):
    """작업 생성/조회 응답 형식 (생성 직후에는 결과 필드가 비어 있음)"""
    photo_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    status = fields.Str(required=True)
    original_url = fields.Str(required=True)
    result_url = fields.Str(allow_none=True)
    theme = fields.Str(allow_none=True)
    analysis = fields.Str(allow_none=True)
    error = fields.Str(allow_none=True)
    credit_error = fields.Str(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
    processed_at = fields.DateTime(allow_none=True)


class PhotoGalleryItemSchema(Schema):
    photo_id = fields.Str(required=True)
    original_url = fields.Str(allow_none=True)
    result_url = fields.Str(allow_none=True)
    theme = fields.Str()
    analysis = fields.Str(allow_none=True)
    status = fields.Str(allow_none=True)
    created_at = fields.DateTime(allow_none=True)
