import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_current_user, current_user
from sqlalchemy import func, or_

from mathturo import db
from mathturo.errors import NotFound
from mathturo.models import Module, Lesson, User
from mathturo.schemas import ModuleSchema, LessonSchema
from mathturo.services import storage
from mathturo.services.activity import log_activity
from mathturo.services.notifications import create_notification
from mathturo.utils.cache import get_cache, invalidate, PUBLISHED_MODULES_KEY, SYSTEM_STATS_KEY
from mathturo.utils.decorators import teacher_required, ensure_module_owner, can_view_module
from mathturo.utils.helpers import bool_arg

logger = logging.getLogger(__name__)

modules_bp = Blueprint('modules', __name__)


def get_visible_module(module_id, user):
    module = db.session.get(Module, module_id)
    if not module or not can_view_module(user, module):
        raise NotFound('Module not found')
    return module


def get_owned_module(module_id):
    module = db.session.get(Module, module_id)
    if not module:
        raise NotFound('Module not found')
    ensure_module_owner(current_user, module)
    return module


def get_owned_lesson(lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson:
        raise NotFound('Lesson not found')
    ensure_module_owner(current_user, lesson.module)
    return lesson


def invalidate_module_caches():
    invalidate(PUBLISHED_MODULES_KEY, SYSTEM_STATS_KEY)


def published_catalogue():
    cache = get_cache()
    modules = cache.get(PUBLISHED_MODULES_KEY)
    if modules is None:
        modules = [
            m.to_dict() for m in Module.query.filter_by(status='published')
            .order_by(Module.order_index, Module.id).all()
        ]
        cache.set(PUBLISHED_MODULES_KEY, modules)
    return modules


def notify_students_of_module(module):
    students = User.query.filter_by(role='student', is_active=True).all()
    for student in students:
        create_notification(
            user_id=student.id,
            title='New Module Available',
            message=f'A new module "{module.title}" is now available.',
            type='new_module',
            link=f'/student/modules/{module.id}'
        )
    return len(students)


# ============== MODULES ==============

@modules_bp.route('/modules', methods=['GET'])
@jwt_required(optional=True)
def get_modules():
    user = get_current_user()
    show_all = bool_arg('all') or request.args.get('active_only', '').lower() == 'false'

    if not show_all or user is None or not user.is_teacher():
        return jsonify(published_catalogue()), 200

    query = Module.query
    if user.role != 'admin':
        query = query.filter(or_(Module.status == 'published', Module.teacher_id == user.id))
    modules = query.order_by(Module.order_index, Module.id).all()

    return jsonify([m.to_dict() for m in modules]), 200


@modules_bp.route('/modules/<int:module_id>', methods=['GET'])
@jwt_required(optional=True)
def get_module(module_id):
    module = get_visible_module(module_id, get_current_user())
    return jsonify(module.to_dict(include_lessons=True)), 200


@modules_bp.route('/modules/<int:module_id>/lessons', methods=['GET'])
@jwt_required(optional=True)
def get_module_lessons(module_id):
    module = get_visible_module(module_id, get_current_user())
    return jsonify([lesson.to_dict() for lesson in module.lessons.all()]), 200


@modules_bp.route('/modules', methods=['POST'])
@teacher_required
def create_module():
    data = ModuleSchema().load(request.get_json(silent=True) or {})

    max_order = db.session.query(func.max(Module.order_index)).scalar()
    module = Module(
        title=data['title'].strip(),
        description=data['description'].strip(),
        cover_image_url=data.get('cover_image_url'),
        teacher_id=current_user.id,
        status='draft',
        order_index=data.get('order_index', (max_order or 0) + 1)
    )

    db.session.add(module)
    db.session.commit()
    invalidate(SYSTEM_STATS_KEY)
    logger.info("Teacher %s created module %s", current_user.id, module.id)
    log_activity('create_module', user_id=current_user.id, entity_type='module',
                 entity_id=module.id, details={'title': module.title})

    return jsonify({
        'message': 'Module created successfully',
        'module': module.to_dict()
    }), 201


@modules_bp.route('/modules/<int:module_id>', methods=['PUT'])
@teacher_required
def update_module(module_id):
    module = get_owned_module(module_id)
    data = ModuleSchema(partial=True).load(request.get_json(silent=True) or {})

    for field in ['title', 'description']:
        if field in data:
            setattr(module, field, data[field].strip())
    for field in ['cover_image_url', 'status', 'order_index']:
        if field in data:
            setattr(module, field, data[field])

    db.session.commit()
    invalidate_module_caches()
    log_activity('update_module', user_id=current_user.id, entity_type='module', entity_id=module.id)

    return jsonify({
        'message': 'Module updated successfully',
        'module': module.to_dict()
    }), 200


@modules_bp.route('/modules/<int:module_id>', methods=['DELETE'])
@teacher_required
def delete_module(module_id):
    module = get_owned_module(module_id)
    title = module.title

    for lesson in module.lessons.all():
        db.session.delete(lesson)
    db.session.delete(module)
    db.session.commit()

    invalidate_module_caches()
    logger.info("Module %s deleted by %s", module_id, current_user.id)
    log_activity('delete_module', user_id=current_user.id, entity_type='module',
                 entity_id=module_id, details={'title': title})

    return jsonify({'message': 'Module deleted successfully'}), 200


@modules_bp.route('/modules/<int:module_id>/publish', methods=['POST'])
@teacher_required
def toggle_publish(module_id):
    module = get_owned_module(module_id)

    module.status = 'draft' if module.status == 'published' else 'published'
    notified = 0
    if module.status == 'published':
        notified = notify_students_of_module(module)
    db.session.commit()

    invalidate_module_caches()
    log_activity('publish_module' if module.is_published else 'unpublish_module',
                 user_id=current_user.id, entity_type='module', entity_id=module.id)

    return jsonify({
        'message': f"Module {'published' if module.is_published else 'unpublished'}",
        'status': module.status,
        'notified_students': notified
    }), 200


# ============== LESSONS ==============

@modules_bp.route('/lessons/<int:lesson_id>', methods=['GET'])
@jwt_required(optional=True)
def get_lesson(lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson or not can_view_module(get_current_user(), lesson.module):
        return jsonify({'message': 'Lesson not found'}), 404
    return jsonify(lesson.to_dict(include_module=True)), 200


@modules_bp.route('/modules/<int:module_id>/lessons', methods=['POST'])
@teacher_required
def create_lesson(module_id):
    module = get_owned_module(module_id)
    data = LessonSchema().load(request.get_json(silent=True) or {})

    max_order = db.session.query(func.max(Lesson.order_index)) \
        .filter(Lesson.module_id == module.id).scalar()
    lesson = Lesson(
        module_id=module.id,
        title=data['title'].strip(),
        content=data['content'],
        video_url=data.get('video_url'),
        materials_url=data.get('materials_url'),
        duration_minutes=data.get('duration_minutes', 0),
        has_quiz=data.get('has_quiz', False),
        quiz_data=data.get('quiz_data'),
        order_index=data.get('order_index', (max_order or 0) + 1)
    )

    db.session.add(lesson)
    db.session.commit()
    invalidate_module_caches()
    log_activity('create_lesson', user_id=current_user.id, entity_type='lesson',
                 entity_id=lesson.id, details={'module_id': module.id})

    return jsonify({
        'message': 'Lesson created successfully',
        'lesson': lesson.to_dict()
    }), 201


@modules_bp.route('/lessons/<int:lesson_id>', methods=['PUT'])
@teacher_required
def update_lesson(lesson_id):
    lesson = get_owned_lesson(lesson_id)
    data = LessonSchema(partial=True).load(request.get_json(silent=True) or {})

    if 'title' in data:
        lesson.title = data['title'].strip()
    for field in ['content', 'video_url', 'materials_url', 'order_index',
                  'duration_minutes', 'has_quiz', 'quiz_data']:
        if field in data:
            setattr(lesson, field, data[field])

    db.session.commit()

    return jsonify({
        'message': 'Lesson updated successfully',
        'lesson': lesson.to_dict()
    }), 200


@modules_bp.route('/lessons/<int:lesson_id>', methods=['DELETE'])
@teacher_required
def delete_lesson(lesson_id):
    lesson = get_owned_lesson(lesson_id)
    module_id = lesson.module_id

    db.session.delete(lesson)
    db.session.commit()
    invalidate_module_caches()
    log_activity('delete_lesson', user_id=current_user.id, entity_type='lesson',
                 entity_id=lesson_id, details={'module_id': module_id})

    return jsonify({'message': 'Lesson deleted successfully'}), 200


@modules_bp.route('/lessons/<int:lesson_id>/materials', methods=['POST'])
@teacher_required
def upload_material(lesson_id):
    lesson = get_owned_lesson(lesson_id)
    file = request.files.get('file')

    path = storage.material_path(lesson.module_id, lesson.id, file.filename if file else None)
    result = storage.upload(storage.LEARNING_MATERIALS, file, path)

    lesson.materials_url = result['url']
    db.session.commit()
    log_activity('upload_material', user_id=current_user.id, entity_type='lesson',
                 entity_id=lesson.id, details={'path': result['path']})

    return jsonify({
        'message': 'Material uploaded successfully',
        'lesson': lesson.to_dict(),
        **result
    }), 201
