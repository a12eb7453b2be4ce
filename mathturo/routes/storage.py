import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user

from mathturo import db
from mathturo.models import Lesson
from mathturo.services import storage
from mathturo.utils.decorators import login_required, teacher_required, ensure_module_owner

logger = logging.getLogger(__name__)

storage_bp = Blueprint('storage', __name__)


def upload_path(bucket, file):
    """Pick the conventional object path for an upload into ``bucket``."""
    filename = file.filename if file else None

    if bucket == storage.AVATARS:
        return storage.avatar_path(current_user.id, filename)

    lesson_id = request.form.get('lesson_id', type=int)
    lesson = db.session.get(Lesson, lesson_id) if lesson_id else None
    if lesson is None:
        return None

    if bucket == storage.QUIZ_SCREENSHOTS:
        return storage.screenshot_path(current_user.id, lesson.id, filename)

    if bucket == storage.LEARNING_MATERIALS:
        if not current_user.is_teacher():
            return None
        ensure_module_owner(current_user, lesson.module)
        return storage.material_path(lesson.module_id, lesson.id, filename)

    return None


@storage_bp.route('/<bucket>', methods=['POST'])
@login_required
def upload_file(bucket):
    storage.bucket_config(bucket)
    file = request.files.get('file')
    storage.validate_file(bucket, file)

    path = upload_path(bucket, file)
    if path is None:
        return jsonify({'message': 'A valid lesson is required for this upload'}), 400

    result = storage.upload(bucket, file, path)
    return jsonify({'message': 'File uploaded', **result}), 201


@storage_bp.route('/<bucket>/url', methods=['GET'])
@login_required
def get_public_url(bucket):
    storage.bucket_config(bucket)
    path = request.args.get('path')
    if not path:
        return jsonify({'message': 'path is required'}), 400
    return jsonify({'url': storage.public_url(bucket, path)}), 200


@storage_bp.route('/<bucket>/<path:path>', methods=['DELETE'])
@teacher_required
def delete_file(bucket, path):
    storage.delete(bucket, path)
    logger.info("User %s deleted %s/%s", current_user.id, bucket, path)
    return jsonify({'message': 'File deleted'}), 200
