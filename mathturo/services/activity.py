import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from mathturo import db
from mathturo.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(action, user_id=None, entity_type=None, entity_id=None, details=None):
    """Append an audit row in its own commit. Failures are logged, not raised."""
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details
    )
    if has_request_context():
        entry.ip_address = request.remote_addr
        entry.user_agent = request.headers.get('User-Agent')

    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not record activity %s for user %s", action, user_id)
        return None

    return entry
