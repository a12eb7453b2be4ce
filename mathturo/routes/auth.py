import logging
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_jwt,
    jwt_required,
    current_user
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError

from mathturo import db
from mathturo.models import User
from mathturo.schemas import (
    RegisterSchema, LoginSchema, ProfileSchema,
    PasswordChangeSchema, PasswordResetSchema
)
from mathturo.services import storage
from mathturo.services.activity import log_activity
from mathturo.utils.cache import get_cache, invalidate, PUBLISHED_MODULES_KEY, SYSTEM_STATS_KEY
from mathturo.utils.decorators import login_required

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

PASSWORD_RESET_PURPOSE = 'password_reset'


def issue_tokens(user):
    return {
        'access_token': create_access_token(identity=str(user.id)),
        'refresh_token': create_refresh_token(identity=str(user.id))
    }


def create_reset_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            'purpose': PASSWORD_RESET_PURPOSE,
            'pwd': user.password_version()
        },
        expires_delta=current_app.config['PASSWORD_RESET_EXPIRES']
    )


@auth_bp.route('/register', methods=['POST'])
def register():
    data = RegisterSchema().load(request.get_json(silent=True) or {})
    email = data['email'].strip().lower()

    if User.query.filter_by(email=email).first():
        return jsonify({'message': 'Email already registered'}), 409

    user = User(
        email=email,
        full_name=data['full_name'].strip(),
        role=data['role']
    )
    user.set_password(data['password'])

    db.session.add(user)
    db.session.commit()
    invalidate(SYSTEM_STATS_KEY)
    logger.info("Registered %s as %s", user.email, user.role)
    log_activity('register', user_id=user.id, entity_type='user', entity_id=user.id)

    return jsonify({
        'message': 'Registration successful',
        'user': user.to_dict(),
        **issue_tokens(user)
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = LoginSchema().load(request.get_json(silent=True) or {})
    user = User.query.filter_by(email=data['email'].strip().lower()).first()

    if not user or not user.check_password(data['password']):
        logger.info("Failed sign-in for %s", data['email'])
        return jsonify({'message': 'Invalid email or password'}), 401

    if not user.is_active:
        return jsonify({'message': 'Your account has been deactivated. Please contact an administrator.'}), 403

    user.last_login = datetime.utcnow()
    db.session.commit()
    logger.info("User %s signed in", user.id)
    log_activity('login', user_id=user.id, entity_type='user', entity_id=user.id)

    return jsonify({
        'message': 'Login successful',
        'user': user.to_dict(),
        **issue_tokens(user)
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    get_cache().clear()
    log_activity('logout', user_id=current_user.id, entity_type='user', entity_id=current_user.id)
    return jsonify({'message': 'Logout successful'}), 200


@auth_bp.route('/session', methods=['GET'])
@login_required
def get_session():
    """Expiry details for the client's periodic session check."""
    claims = get_jwt()
    expires_at = datetime.fromtimestamp(claims['exp'], tz=timezone.utc)
    remaining = max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))
    warning = current_app.config['SESSION_WARNING_BEFORE_EXPIRY'].total_seconds()

    return jsonify({
        'user': current_user.to_dict(),
        'expires_at': expires_at.isoformat(),
        'seconds_remaining': remaining,
        'expiring_soon': remaining <= warning,
        'check_interval': int(current_app.config['SESSION_CHECK_INTERVAL'].total_seconds())
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    if not current_user.is_active:
        return jsonify({'message': 'Account is deactivated'}), 403
    return jsonify({
        'access_token': create_access_token(identity=str(current_user.id))
    }), 200


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(current_user.to_dict()), 200


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = ProfileSchema().load(request.get_json(silent=True) or {})
    user = current_user

    if 'full_name' in data:
        if not data['full_name'].strip():
            return jsonify({'message': 'Full name is required'}), 400
        user.full_name = data['full_name'].strip()
    if 'avatar_url' in data:
        user.avatar_url = data['avatar_url']

    db.session.commit()
    if 'full_name' in data and user.is_teacher():
        invalidate(PUBLISHED_MODULES_KEY)

    return jsonify({
        'message': 'Profile updated',
        'user': user.to_dict()
    }), 200


@auth_bp.route('/password', methods=['PUT'])
@login_required
def change_password():
    data = PasswordChangeSchema().load(request.get_json(silent=True) or {})
    user = current_user

    if not user.check_password(data['current_password']):
        return jsonify({'message': 'Current password is incorrect'}), 400

    user.set_password(data['new_password'])
    db.session.commit()
    log_activity('password_change', user_id=user.id, entity_type='user', entity_id=user.id)

    return jsonify({'message': 'Password updated successfully'}), 200


@auth_bp.route('/avatar', methods=['POST'])
@login_required
def upload_avatar():
    file = request.files.get('file')
    user = current_user
    filename = file.filename if file else None

    result = storage.upload(storage.AVATARS, file, storage.avatar_path(user.id, filename))
    user.avatar_url = result['url']
    db.session.commit()

    return jsonify({
        'message': 'Avatar updated',
        'user': user.to_dict(),
        **result
    }), 200


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = PasswordResetSchema().load(request.get_json(silent=True) or {})

    try:
        claims = decode_token(data['token'])
    except (JWTExtendedException, PyJWTError) as e:
        logger.info("Rejected password reset token: %s", e)
        return jsonify({'message': 'Reset link is invalid or has expired'}), 400

    if claims.get('purpose') != PASSWORD_RESET_PURPOSE:
        return jsonify({'message': 'Reset link is invalid or has expired'}), 400

    user = db.session.get(User, int(claims['sub']))
    if not user:
        return jsonify({'message': 'User not found'}), 404

    # A reset or any other password change retires every token issued before it
    if claims.get('pwd') != user.password_version():
        return jsonify({'message': 'Reset link is invalid or has expired'}), 400

    user.set_password(data['new_password'])
    db.session.commit()
    log_activity('password_reset', user_id=user.id, entity_type='user', entity_id=user.id)

    return jsonify({'message': 'Password has been reset'}), 200
