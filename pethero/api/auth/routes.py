# pethero/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from marshmallow import ValidationError

from pethero.api.auth.schemas import FirebaseLoginSchema

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/firebase', methods=['POST'])
def firebase_login():
    """Firebase ID 토큰으로 로그인하고, 최초 로그인이면 사용자 프로필을 생성합니다."""
    auth_service = current_app.services['auth']
    try:
        validated_data = FirebaseLoginSchema().load(request.get_json() or {})
        user, is_new_user = auth_service.authenticate_with_firebase(validated_data['id_token'])

        identity = user.user_id
        access_token = create_access_token(identity=identity)
        refresh_token = create_refresh_token(identity=identity)

        return jsonify({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user_id": user.user_id,
            "is_new_user": is_new_user,
            "credits": user.credits,
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "INVALID_ID_TOKEN", "message": str(e)}), 401
    except Exception as e:
        logging.error(f"Firebase 로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200
