# pethero/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from pethero.core.config import config_by_name, PipelineSettings

# - API 블루프린트
from pethero.api.auth.routes import auth_bp
from pethero.api.uploads.routes import uploads_bp
from pethero.api.users.routes import users_bp
from pethero.api.photos.routes import photos_bp

# - 서비스 모듈
from pethero.services.storage_service import StorageService
from pethero.services.gemini_service import GeminiService
from pethero.services.image_service import ImageService
from pethero.services.hero_image_service import HeroImageService
from pethero.services.ledger_service import LedgerService
from pethero.services.notification_service import NotificationService
from pethero.api.auth.services import AuthService
from pethero.api.users.services import UserService
from pethero.api.photos.services import PhotoJobService
from pethero.pipeline.photo_pipeline import PhotoPipeline


def _init_firebase(app: Flask):
    """Firebase Admin SDK를 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return

    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if cred_path:
        if not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        cred = credentials.Certificate(cred_path)
    else:
        # Cloud Run 등 서비스 계정이 연결된 환경에서는 기본 자격 증명을 사용합니다.
        logging.warning("FIREBASE_CREDENTIALS_PATH가 없어 Application Default Credentials를 사용합니다.")
        cred = credentials.ApplicationDefault()

    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def _init_services(app: Flask):
    settings = PipelineSettings.from_config(app.config)

    # 의존성이 없거나 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    # Gemini 키가 없으면 파이프라인은 placeholder 모드로 동작합니다.
    app.services['gemini'] = None
    if app.config.get('GEMINI_API_KEY'):
        try:
            gemini_instance = GeminiService()
            gemini_instance.init_app(app)
            app.services['gemini'] = gemini_instance
            logging.info("Gemini service initialized successfully")
        except Exception as e:
            logging.error(f"Failed to initialize Gemini service: {e}")
            raise
    else:
        logging.warning("GEMINI_API_KEY not set, photo pipeline will run in placeholder mode")

    app.services['image'] = ImageService(settings)
    app.services['notifications'] = NotificationService()
    app.services['ledger'] = LedgerService()

    # 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['hero_image'] = None
    if app.services['gemini'] is not None:
        app.services['hero_image'] = HeroImageService(
            gemini_service=app.services['gemini'],
            storage_service=app.services['storage'],
            image_service=app.services['image'],
            settings=settings
        )

    app.services['users'] = UserService(initial_credits=app.config.get('INITIAL_FREE_CREDITS', 1))
    app.services['auth'] = AuthService(user_service=app.services['users'])
    app.services['photos'] = PhotoJobService()
    app.services['photo_pipeline'] = PhotoPipeline(
        settings=settings,
        image_service=app.services['image'],
        ledger_service=app.services['ledger'],
        notification_service=app.services['notifications'],
        gemini_service=app.services['gemini'],
        hero_image_service=app.services['hero_image'],
    )
    logging.info("Photo pipeline initialized successfully")


def create_app(config_name: str = None, services: dict = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (없으면 FLASK_ENV)
    :param services: 테스트에서 주입할 서비스 딕셔너리. 주어지면 Firebase 초기화를 건너뜁니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화 + 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    JWTManager(app)

    app.services = {}
    if services is not None:
        app.services.update(services)
    else:
        _init_firebase(app)
        _init_services(app)

    # =====================================================================================
    # 5. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(photos_bp, url_prefix='/api/photos')

    # =====================================================================================
    # 6. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 7. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
