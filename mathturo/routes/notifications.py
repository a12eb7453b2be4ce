from flask import Blueprint, jsonify
from flask_jwt_extended import current_user

from mathturo import db
from mathturo.models import Notification
from mathturo.utils.decorators import login_required
from mathturo.utils.helpers import bool_arg

notifications_bp = Blueprint('notifications', __name__)


def get_own_notification(notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        return None
    return notification


@notifications_bp.route('', methods=['GET'])
@login_required
def get_notifications():
    query = Notification.query.filter_by(user_id=current_user.id)
    if bool_arg('unread'):
        query = query.filter_by(is_read=False)

    notifications = query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    return jsonify([n.to_dict() for n in notifications]), 200


@notifications_bp.route('/unread-count', methods=['GET'])
@login_required
def get_unread_count():
    count = Notification.query.filter_by(user_id=current_user.id, is_read=False).count()
    return jsonify({'count': count}), 200


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    notification = get_own_notification(notification_id)
    if not notification:
        return jsonify({'message': 'Notification not found'}), 404

    notification.is_read = True
    db.session.commit()
    return jsonify(notification.to_dict()), 200


@notifications_bp.route('/read-all', methods=['POST'])
@login_required
def mark_all_read():
    updated = Notification.query.filter_by(user_id=current_user.id, is_read=False) \
        .update({'is_read': True})
    db.session.commit()
    return jsonify({'message': 'All notifications marked as read', 'updated': updated}), 200


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
@login_required
def delete_notification(notification_id):
    notification = get_own_notification(notification_id)
    if not notification:
        return jsonify({'message': 'Notification not found'}), 404

    db.session.delete(notification)
    db.session.commit()
    return jsonify({'message': 'Notification deleted'}), 200
