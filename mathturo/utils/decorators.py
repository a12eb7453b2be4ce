from functools import wraps

from flask import jsonify
from flask_jwt_extended import jwt_required, current_user

from mathturo.errors import PermissionDenied


def role_required(*roles):
    """Require a signed-in, active user holding one of ``roles``."""
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            if not current_user.is_active:
                return jsonify({'message': 'Account is deactivated'}), 403
            if roles and current_user.role not in roles:
                return jsonify({'message': f"{' or '.join(r.title() for r in roles)} access required"}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def login_required(f):
    return role_required()(f)


def student_required(f):
    return role_required('student')(f)


def teacher_required(f):
    return role_required('teacher', 'admin')(f)


def admin_required(f):
    return role_required('admin')(f)


def ensure_module_owner(user, module):
    if user.role != 'admin' and module.teacher_id != user.id:
        raise PermissionDenied('Not authorized')


def can_view_module(user, module):
    if module.status == 'published':
        return True
    if user is None:
        return False
    return user.role == 'admin' or module.teacher_id == user.id
