"""
Bucket storage for uploaded files.

Each bucket is a folder under ``UPLOAD_FOLDER`` with its own size and MIME
limits. Files are publicly readable through ``/api/uploads/<bucket>/<path>``.
"""
import logging
import mimetypes
import os
import time

from flask import current_app
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from mathturo.errors import APIError, Conflict, NotFound

logger = logging.getLogger(__name__)

QUIZ_SCREENSHOTS = 'quiz-screenshots'
LEARNING_MATERIALS = 'learning-materials'
AVATARS = 'avatars'


def bucket_config(bucket):
    buckets = current_app.config['STORAGE_BUCKETS']
    if bucket not in buckets:
        raise NotFound(f'Unknown storage bucket: {bucket}')
    return buckets[bucket]


def _timestamp_ms():
    return int(time.time() * 1000)


def file_extension(filename, mimetype=None):
    filename = secure_filename(filename or '')
    if '.' in filename:
        return filename.rsplit('.', 1)[1].lower()
    guessed = mimetypes.guess_extension(mimetype or '') or ''
    return guessed.lstrip('.') or 'bin'


def screenshot_path(student_id, lesson_id, filename):
    return f'quiz_screenshots/{student_id}_lesson{lesson_id}_{_timestamp_ms()}.{file_extension(filename)}'


def material_path(module_id, lesson_id, filename):
    return f'learning_materials/{module_id}_{lesson_id}_{_timestamp_ms()}.{file_extension(filename)}'


def avatar_path(user_id, filename):
    return f'{user_id}/avatar_{_timestamp_ms()}.{file_extension(filename)}'


def public_url(bucket, path):
    base = current_app.config.get('PUBLIC_BASE_URL', '').rstrip('/')
    return f'{base}/api/uploads/{bucket}/{path}'


def resolve_path(bucket, path):
    bucket_config(bucket)
    bucket_folder = os.path.join(current_app.config['UPLOAD_FOLDER'], bucket)
    full_path = safe_join(bucket_folder, path) if path else None
    if full_path is None:
        raise APIError('Invalid file path')
    return full_path


def file_mimetype(file):
    mimetype = file.mimetype
    if not mimetype or mimetype == 'application/octet-stream':
        mimetype = mimetypes.guess_type(file.filename or '')[0] or mimetype
    return mimetype


def file_size(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_file(bucket, file):
    if file is None or not file.filename:
        raise APIError('No file selected')

    limits = bucket_config(bucket)
    mimetype = file_mimetype(file)
    if mimetype not in limits['allowed_types']:
        raise APIError(f'File type {mimetype or "unknown"} is not allowed')

    max_size = limits['max_size']
    if file_size(file) > max_size:
        raise APIError(f'File is too large. Maximum size is {max_size // (1024 * 1024)}MB')


def upload(bucket, file, path):
    """Store ``file`` at ``path`` inside ``bucket`` and return its public URL."""
    validate_file(bucket, file)

    full_path = resolve_path(bucket, path)
    if os.path.exists(full_path):
        raise Conflict('A file already exists at that path')

    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    file.save(full_path)
    logger.info("Stored %s/%s", bucket, path)

    return {
        'url': public_url(bucket, path),
        'path': path,
        'filename': os.path.basename(path)
    }


def delete(bucket, path):
    full_path = resolve_path(bucket, path)
    if not os.path.isfile(full_path):
        raise NotFound('File not found')
    os.remove(full_path)
    logger.info("Deleted %s/%s", bucket, path)
    return True
