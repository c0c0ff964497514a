# melbox/__init__.py

# =====================================================================================
# 1. Environment (loaded before anything reads os.getenv)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Module imports
# =====================================================================================
import os
import logging
from typing import Optional, Dict, Any
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - settings
from melbox.core.config import config_by_name

# - API blueprints
from melbox.api.auth.routes import auth_bp
from melbox.api.uploads.routes import uploads_bp
from melbox.api.social.routes import social_bp
from melbox.api.reports.routes import reports_bp
from melbox.api.parties.routes import parties_bp
from melbox.api.bookings.routes import bookings_bp
from melbox.api.gallery.routes import gallery_bp
from melbox.api.courses.routes import courses_bp
from melbox.api.videos.routes import videos_bp
from melbox.api.games.routes import games_bp
from melbox.api.profile.routes import profile_bp

# - services
from melbox.services.storage_service import StorageService
from melbox.services.payment_service import PaymentService
from melbox.api.auth.services import AuthService
from melbox.api.social.services import SocialService
from melbox.api.reports.services import ReportService
from melbox.api.parties.services import PartyPackageService
from melbox.api.bookings.services import BookingService
from melbox.api.gallery.services import GalleryService
from melbox.api.courses.services import CourseService
from melbox.api.videos.services import VideoService
from melbox.api.games.services import GameProgressService
from melbox.api.profile.services import UserStatsService


def _init_firebase(app: Flask):
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def _build_services(app: Flask) -> Dict[str, Any]:
    services: Dict[str, Any] = {}

    # shared services first, domain services get them injected
    try:
        storage_instance = StorageService()
        storage_instance.init_app(app)
        services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    payment_instance = PaymentService()
    payment_instance.init_app(app)
    services['payments'] = payment_instance

    auth_instance = AuthService()
    auth_instance.init_app(app)
    services['auth'] = auth_instance

    services['social'] = SocialService(storage_service=services['storage'])
    services['reports'] = ReportService()
    services['packages'] = PartyPackageService()
    services['bookings'] = BookingService(
        payment_service=services['payments'],
        package_service=services['packages']
    )
    services['gallery'] = GalleryService(storage_service=services['storage'])
    services['courses'] = CourseService()
    services['videos'] = VideoService(storage_service=services['storage'])
    services['games'] = GameProgressService()
    services['stats'] = UserStatsService()
    return services


def create_app(config_name: Optional[str] = None, services: Optional[Dict[str, Any]] = None):
    """
    Flask application factory.

    :param config_name: key of config_by_name; defaults to FLASK_ENV
    :param services: prebuilt services (tests). When given, Firebase is not initialized.
    """
    # =====================================================================================
    # 3. App and settings
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. Extensions and external services
    # =====================================================================================
    jwt_manager = JWTManager(app)

    if services is None:
        _init_firebase(app)
        app.services = _build_services(app)
    else:
        app.services = dict(services)

    @jwt_manager.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return app.services['auth'].is_token_revoked(jwt_payload)

    # =====================================================================================
    # 5. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(social_bp, url_prefix='/api/social')
    app.register_blueprint(reports_bp, url_prefix='/api/social/reports')
    app.register_blueprint(parties_bp, url_prefix='/api/parties')
    app.register_blueprint(bookings_bp, url_prefix='/api')
    app.register_blueprint(gallery_bp, url_prefix='/api/gallery')
    app.register_blueprint(courses_bp, url_prefix='/api')
    app.register_blueprint(videos_bp, url_prefix='/api')
    app.register_blueprint(games_bp, url_prefix='/api/games')
    app.register_blueprint(profile_bp, url_prefix='/api/profile')

    # =====================================================================================
    # 6. Global error handlers
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        response = {"error_code": err.name.upper().replace(' ', '_'), "message": err.description}
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # everything no other handler caught
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected server error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 7. Logging
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
