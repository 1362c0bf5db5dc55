# pethero/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pethero.api.users.schemas import FCMTokenSchema, AddCreditsSchema, CreditInfoResponseSchema

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me/fcm-token', methods=['POST'])
@jwt_required()
def register_fcm_token():
    user_service = current_app.services['users']
    """
    클라이언트의 FCM 토큰을 등록/업데이트합니다.
    """
    user_id = get_jwt_identity()
    try:
        data = FCMTokenSchema().load(request.get_json() or {})
        user_service.update_fcm_token(user_id, data['fcm_token'])
        return jsonify({"message": "FCM 토큰이 성공적으로 업데이트되었습니다."}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"FCM 토큰 업데이트 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "FCM 토큰 업데이트 중 서버 오류가 발생했습니다."}), 500


@users_bp.route('/me/credits', methods=['GET'])
@jwt_required()
def get_my_credits():
    """현재 사용자의 크레딧 잔액과 프리미엄 여부를 조회합니다."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        info = user_service.get_credit_info(user_id)
        return jsonify(CreditInfoResponseSchema().dump(info)), 200
    except Exception as e:
        logging.error(f"크레딧 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "CREDIT_FETCH_FAILED", "message": "크레딧 조회 중 오류가 발생했습니다."}), 500


@users_bp.route('/me/credits', methods=['POST'])
@jwt_required()
def add_my_credits():
    """
    테스트용 크레딧 충전. ALLOW_SELF_SERVICE_CREDITS가 꺼져 있으면 403을 반환합니다.
    """
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        if not current_app.config.get('ALLOW_SELF_SERVICE_CREDITS', False):
            raise PermissionError("이 환경에서는 크레딧을 직접 충전할 수 없습니다.")

        data = AddCreditsSchema().load(request.get_json() or {})
        balance = user_service.add_credits(user_id, data['credits'])
        return jsonify({
            "success": True,
            "message": f"{data['credits']} 크레딧이 충전되었습니다.",
            "credits": balance,
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except Exception as e:
        logging.error(f"크레딧 충전 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "CREDIT_UPDATE_FAILED", "message": "크레딧 충전 중 서버 오류가 발생했습니다."}), 500
