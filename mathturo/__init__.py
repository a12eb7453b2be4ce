import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_marshmallow import Marshmallow

from config import config

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
ma = Marshmallow()

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('mathturo').setLevel(level)
    app.logger.setLevel(level)


def create_app(config_name='default', test_config=None):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if test_config:
        app.config.update(test_config)

    configure_logging(app)

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": "*"}}, supports_credentials=True)

    from mathturo.utils.cache import TTLResponseCache
    app.extensions['mathturo_cache'] = TTLResponseCache(
        ttl=app.config['CACHE_TTL'],
        max_size=app.config['CACHE_MAX_SIZE'],
        enabled=app.config['CACHE_ENABLED'],
    )

    register_jwt_callbacks()

    from mathturo.errors import register_error_handlers
    register_error_handlers(app)

    @app.route('/api/uploads/<bucket>/<path:filename>')
    def serve_upload(bucket, filename):
        if bucket not in app.config['STORAGE_BUCKETS']:
            return jsonify({'message': 'Bucket not found'}), 404
        bucket_folder = os.path.join(app.config['UPLOAD_FOLDER'], bucket)
        return send_from_directory(bucket_folder, filename)

    from mathturo.routes import (
        auth_bp, modules_bp, student_bp,
        teacher_bp, admin_bp, notifications_bp,
        videos_bp, storage_bp, activity_bp
    )

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(modules_bp, url_prefix='/api')
    app.register_blueprint(student_bp, url_prefix='/api/student')
    app.register_blueprint(teacher_bp, url_prefix='/api/teacher')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(videos_bp, url_prefix='/api/videos')
    app.register_blueprint(storage_bp, url_prefix='/api/storage')
    app.register_blueprint(activity_bp, url_prefix='/api/activity')

    from mathturo.cli import register_commands
    register_commands(app)

    logger.info("MathTuro API ready (%s)", config_name)
    return app


def register_jwt_callbacks():
    from mathturo.models import User

    @jwt.user_lookup_loader
    def load_user(jwt_header, jwt_payload):
        return db.session.get(User, int(jwt_payload['sub']))

    @jwt.user_lookup_error_loader
    def missing_user_callback(jwt_header, jwt_payload):
        return jsonify({
            'message': 'Account no longer exists',
            'error': 'user_not_found'
        }), 401

    # Password reset tokens are only accepted by the reset endpoint
    @jwt.token_verification_loader
    def reject_purpose_tokens(jwt_header, jwt_payload):
        return jwt_payload.get('purpose') is None

    @jwt.token_verification_failed_loader
    def purpose_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'message': 'This token cannot be used to sign in',
            'error': 'invalid_token'
        }), 401

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'message': 'Your session has expired. Please log in again.',
            'error': 'token_expired'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'message': f'Invalid token: {error}',
            'error': 'invalid_token'
        }), 422

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'message': 'Authorization token is missing',
            'error': 'authorization_required'
        }), 401
