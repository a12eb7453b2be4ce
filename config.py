import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

MB = 1024 * 1024

IMAGE_TYPES = ['image/jpeg', 'image/png', 'image/webp', 'image/gif']


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'jwt-secret-key')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    PASSWORD_RESET_EXPIRES = timedelta(hours=1)

    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///mathturo.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Object storage
    UPLOAD_FOLDER = os.getenv(
        'UPLOAD_FOLDER',
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'uploads')
    )
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', '')
    MAX_CONTENT_LENGTH = 20 * MB  # request body ceiling, buckets are stricter
    STORAGE_BUCKETS = {
        'quiz-screenshots': {
            'max_size': 5 * MB,
            'allowed_types': IMAGE_TYPES,
        },
        'learning-materials': {
            'max_size': 10 * MB,
            'allowed_types': IMAGE_TYPES + [
                'application/pdf',
                'application/msword',
                'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
                'text/plain',
                'video/mp4',
                'video/webm',
            ],
        },
        'avatars': {
            'max_size': 2 * MB,
            'allowed_types': IMAGE_TYPES,
        },
    }

    # Session polling
    SESSION_CHECK_INTERVAL = timedelta(minutes=5)
    SESSION_WARNING_BEFORE_EXPIRY = timedelta(minutes=5)

    # Cache
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_TTL = 5 * 60  # seconds
    CACHE_MAX_SIZE = 256

    # Validation limits
    MIN_PASSWORD_LENGTH = 6
    MAX_NAME_LENGTH = 100
    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000
    MAX_LESSON_CONTENT_LENGTH = 50000

    # Pagination
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret-key-with-enough-length'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    CACHE_ENABLED = True
    LOG_LEVEL = 'WARNING'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
