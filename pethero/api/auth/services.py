# pethero/api/auth/services.py
import logging
from typing import Callable, Dict, Any, Optional, Tuple

from firebase_admin import auth as firebase_auth

from pethero.api.users.services import UserService
from pethero.models.user import UserAccount


class AuthService:
    """
    모바일 앱이 Firebase Authentication으로 로그인한 뒤 받은 ID 토큰을 검증하고,
    최초 로그인 시 무료 크레딧이 담긴 사용자 프로필을 생성합니다.
    """

    def __init__(self, user_service: UserService,
                 verifier: Optional[Callable[[str], Dict[str, Any]]] = None):
        self.user_service = user_service
        self.verifier = verifier or firebase_auth.verify_id_token

    def authenticate_with_firebase(self, id_token: str) -> Tuple[UserAccount, bool]:
        """
        :param id_token: 클라이언트가 전달한 Firebase ID 토큰
        :return: (UserAccount, 신규 사용자 여부)
        :raises PermissionError: 토큰이 유효하지 않거나 만료/폐기된 경우
        """
        try:
            decoded = self.verifier(id_token)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.UserDisabledError) as e:
            logging.warning(f"Firebase ID 토큰 검증 실패: {e}")
            raise PermissionError("유효하지 않은 Firebase ID 토큰입니다.")

        user_id = decoded.get('uid') or decoded.get('sub')
        if not user_id:
            raise PermissionError("토큰에 사용자 ID가 없습니다.")

        return self.user_service.get_or_create_profile(user_id)
