# pethero/api/users/schemas.py
from marshmallow import Schema, fields, validate


class FCMTokenSchema(Schema):
    """
    POST /api/users/me/fcm-token
    FCM 토큰 등록/업데이트 요청 본문의 유효성을 검사하는 스키마.
    """
    fcm_token = fields.Str(required=True, validate=validate.Length(min=1),
                           error_messages={"required": "fcm_token은 필수 항목입니다."})


class AddCreditsSchema(Schema):
    """POST /api/users/me/credits (테스트용 크레딧 충전)"""
    credits = fields.Int(required=True, validate=validate.Range(min=1, max=100),
                         error_messages={"required": "credits는 필수 항목입니다."})


class CreditInfoResponseSchema(Schema):
    exists = fields.Bool(required=True)
    credits = fields.Int(required=True)
    premium = fields.Bool(required=True)
    created_at = fields.DateTime(allow_none=True)
    last_updated = fields.DateTime(allow_none=True)
