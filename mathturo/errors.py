import logging

from flask import jsonify
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """An operation failed in a way the caller should see as a message."""

    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        data = dict(self.payload or {})
        data['message'] = self.message
        return data


class PermissionDenied(APIError):
    status_code = 403


class NotFound(APIError):
    status_code = 404


class Conflict(APIError):
    status_code = 409


def first_error(messages):
    """Flatten marshmallow's nested error dict down to one readable string."""
    if isinstance(messages, dict):
        for value in messages.values():
            return first_error(value)
    if isinstance(messages, (list, tuple)) and messages:
        return first_error(messages[0])
    return str(messages)


def register_error_handlers(app):
    from mathturo import db

    @app.errorhandler(APIError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify({
            'message': first_error(error.messages),
            'errors': error.messages
        }), 400

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        logger.warning("Integrity error: %s", error.orig)
        return jsonify({'message': 'That record conflicts with existing data'}), 409

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        logger.exception("Database error")
        return jsonify({'message': 'A database error occurred. Please try again.'}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        messages = {
            404: 'Resource not found',
            405: 'Method not allowed',
            413: 'File is too large',
        }
        return jsonify({
            'message': messages.get(error.code, error.description)
        }), error.code
