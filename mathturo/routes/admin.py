import logging

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import current_user
from sqlalchemy import func

from mathturo import db
from mathturo.models import (
    User, Module, Lesson, QuizSubmission, ActivityLog,
    StudentStreak, StudentNote, VideoView, ROLES
)
from mathturo.routes.auth import create_reset_token
from mathturo.schemas import AdminUserSchema, AdminUserUpdateSchema, ResetRequestSchema
from mathturo.services.activity import log_activity
from mathturo.utils.cache import get_cache, invalidate, PUBLISHED_MODULES_KEY, SYSTEM_STATS_KEY
from mathturo.utils.decorators import admin_required
from mathturo.utils.helpers import limit_arg

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def invalidate_stats():
    invalidate(SYSTEM_STATS_KEY)


def invalidate_account_caches():
    # The catalogue carries teacher names and drops with a deleted teacher's modules
    invalidate(SYSTEM_STATS_KEY, PUBLISHED_MODULES_KEY)


# ============== USERS ==============

@admin_bp.route('/users', methods=['GET'])
@admin_required
def get_users():
    role = request.args.get('role')
    query = User.query

    if role and role != 'all':
        if role not in ROLES:
            return jsonify({'message': 'Invalid role filter'}), 400
        query = query.filter_by(role=role)

    users = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify([u.to_dict() for u in users]), 200


@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    data = AdminUserSchema().load(request.get_json(silent=True) or {})
    email = data['email'].strip().lower()

    if User.query.filter_by(email=email).first():
        return jsonify({'message': 'Email already registered'}), 409

    user = User(email=email, full_name=data['full_name'].strip(), role=data['role'])
    user.set_password(data['password'])
    db.session.add(user)
    db.session.commit()

    invalidate_stats()
    logger.info("Admin %s created %s account %s", current_user.id, user.role, user.id)
    log_activity('create_user', user_id=current_user.id, entity_type='user',
                 entity_id=user.id, details={'role': user.role})

    return jsonify({
        'message': 'User created successfully',
        'user': user.to_dict()
    }), 201


@admin_bp.route('/users/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'message': 'User not found'}), 404

    data = AdminUserUpdateSchema().load(request.get_json(silent=True) or {})

    if user.id == current_user.id and (
            data.get('role', user.role) != 'admin' or data.get('is_active') is False):
        return jsonify({'message': 'You cannot demote or deactivate your own account'}), 400

    if 'full_name' in data:
        user.full_name = data['full_name'].strip()
    if 'role' in data:
        user.role = data['role']
    if 'is_active' in data:
        user.is_active = data['is_active']

    db.session.commit()
    invalidate_account_caches()
    log_activity('update_user', user_id=current_user.id, entity_type='user',
                 entity_id=user.id, details=data)

    return jsonify({
        'message': 'User updated successfully',
        'user': user.to_dict()
    }), 200


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    if user_id == current_user.id:
        return jsonify({'message': 'Cannot delete your own account'}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'message': 'User not found'}), 404

    email = user.email
    StudentStreak.query.filter_by(student_id=user.id).delete()
    StudentNote.query.filter_by(student_id=user.id).delete()
    VideoView.query.filter_by(student_id=user.id).delete()
    ActivityLog.query.filter_by(user_id=user.id).update({'user_id': None})
    QuizSubmission.query.filter_by(reviewed_by=user.id).update({'reviewed_by': None})
    db.session.delete(user)
    db.session.commit()

    invalidate_account_caches()
    logger.info("Admin %s deleted user %s", current_user.id, user_id)
    log_activity('delete_user', user_id=current_user.id, entity_type='user',
                 entity_id=user_id, details={'email': email})

    return jsonify({'message': 'User deleted successfully'}), 200


@admin_bp.route('/users/reset-password', methods=['POST'])
@admin_required
def reset_password():
    data = ResetRequestSchema().load(request.get_json(silent=True) or {})
    user = User.query.filter_by(email=data['email'].strip().lower()).first()
    if not user:
        return jsonify({'message': 'User not found'}), 404

    token = create_reset_token(user)
    log_activity('reset_password', user_id=current_user.id, entity_type='user', entity_id=user.id)

    return jsonify({
        'message': 'Password reset token issued',
        'reset_token': token,
        'expires_in': int(current_app.config['PASSWORD_RESET_EXPIRES'].total_seconds())
    }), 200


# ============== SYSTEM ==============

@admin_bp.route('/stats', methods=['GET'])
@admin_required
def get_system_stats():
    cache = get_cache()
    stats = cache.get(SYSTEM_STATS_KEY)
    if stats is not None:
        return jsonify(stats), 200

    role_counts = dict(
        db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
    )
    status_counts = dict(
        db.session.query(QuizSubmission.status, func.count(QuizSubmission.id))
        .group_by(QuizSubmission.status).all()
    )

    stats = {
        'total_users': sum(role_counts.values()),
        'total_students': role_counts.get('student', 0),
        'total_teachers': role_counts.get('teacher', 0),
        'total_admins': role_counts.get('admin', 0),
        'total_modules': Module.query.count(),
        'published_modules': Module.query.filter_by(status='published').count(),
        'total_lessons': Lesson.query.count(),
        'total_submissions': sum(status_counts.values()),
        'pending_submissions': status_counts.get('pending', 0),
        'approved_submissions': status_counts.get('approved', 0),
        'rejected_submissions': status_counts.get('rejected', 0)
    }
    cache.set(SYSTEM_STATS_KEY, stats)

    return jsonify(stats), 200


@admin_bp.route('/activity', methods=['GET'])
@admin_required
def get_activity_log():
    entries = ActivityLog.query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()) \
        .limit(limit_arg(50)).all()
    return jsonify([entry.to_dict() for entry in entries]), 200


@admin_bp.route('/cache', methods=['DELETE'])
@admin_required
def clear_cache():
    get_cache().clear()
    logger.info("Cache cleared by admin %s", current_user.id)
    return jsonify({'message': 'Cache cleared'}), 200
