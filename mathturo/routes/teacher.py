import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user

from mathturo import db
from mathturo.errors import NotFound
from mathturo.models import Module, Lesson, LessonProgress, QuizSubmission, User
from mathturo.schemas import ReviewSchema, RejectSchema, NotificationSchema
from mathturo.services import progress as aggregation
from mathturo.services.activity import log_activity
from mathturo.services.notifications import notify_quiz_reviewed, create_notification
from mathturo.utils.cache import get_cache, SYSTEM_STATS_KEY
from mathturo.utils.decorators import teacher_required, ensure_module_owner

logger = logging.getLogger(__name__)

teacher_bp = Blueprint('teacher', __name__)

REVIEW_ACTIONS = {'approved': 'approve_quiz', 'rejected': 'reject_quiz'}


def scoped_modules(user):
    """Modules the user may review: their own, or every module for admins."""
    query = Module.query
    if user.role != 'admin':
        query = query.filter_by(teacher_id=user.id)
    return query


def scoped_submissions(user):
    query = QuizSubmission.query
    if user.role != 'admin':
        query = query.join(Module, QuizSubmission.module_id == Module.id) \
            .filter(Module.teacher_id == user.id)
    return query


def get_reviewable_submission(submission_id):
    submission = db.session.get(QuizSubmission, submission_id)
    if not submission:
        raise NotFound('Submission not found')
    ensure_module_owner(current_user, submission.module)
    return submission


def review_submission(submission, status, comment):
    previous_status = submission.status

    submission.status = status
    submission.teacher_comment = comment
    submission.reviewed_by = current_user.id
    submission.reviewed_at = datetime.utcnow()

    notify_quiz_reviewed(submission, previous_status)
    db.session.commit()

    get_cache().clear(SYSTEM_STATS_KEY)
    logger.info("Submission %s %s by %s", submission.id, status, current_user.id)
    log_activity(REVIEW_ACTIONS[status],
                 user_id=current_user.id, entity_type='quiz_submission',
                 entity_id=submission.id, details={'student_id': submission.student_id})
    return submission


@teacher_bp.route('/modules', methods=['GET'])
@teacher_required
def get_my_modules():
    modules = scoped_modules(current_user).order_by(Module.order_index, Module.id).all()
    return jsonify([m.to_dict() for m in modules]), 200


# ============== REVIEW ==============

@teacher_bp.route('/submissions/pending', methods=['GET'])
@teacher_required
def get_pending_submissions():
    submissions = scoped_submissions(current_user) \
        .filter(QuizSubmission.status == 'pending') \
        .order_by(QuizSubmission.submitted_at.asc(), QuizSubmission.id.asc()).all()
    return jsonify([s.to_dict(include_related=True) for s in submissions]), 200


@teacher_bp.route('/submissions/<int:submission_id>/approve', methods=['POST'])
@teacher_required
def approve_submission(submission_id):
    submission = get_reviewable_submission(submission_id)
    data = ReviewSchema().load(request.get_json(silent=True) or {})
    comment = (data.get('comment') or '').strip() or None

    review_submission(submission, 'approved', comment)

    return jsonify({
        'message': 'Submission approved',
        'submission': submission.to_dict()
    }), 200


@teacher_bp.route('/submissions/<int:submission_id>/reject', methods=['POST'])
@teacher_required
def reject_submission(submission_id):
    submission = get_reviewable_submission(submission_id)
    data = RejectSchema().load(request.get_json(silent=True) or {})

    review_submission(submission, 'rejected', data['comment'].strip())

    return jsonify({
        'message': 'Submission rejected',
        'submission': submission.to_dict()
    }), 200


@teacher_bp.route('/submissions/stats', methods=['GET'])
@teacher_required
def get_submission_stats():
    statuses = [s.status for s in scoped_submissions(current_user).all()]
    return jsonify(aggregation.status_counts(statuses)), 200


# ============== STUDENT PROGRESS ==============

@teacher_bp.route('/students', methods=['GET'])
@teacher_required
def get_students():
    students = User.query.filter_by(role='student').order_by(User.full_name).all()
    return jsonify([s.to_dict() for s in students]), 200


@teacher_bp.route('/students/<int:student_id>/progress', methods=['GET'])
@teacher_required
def get_student_progress(student_id):
    student = db.session.get(User, student_id)
    if not student or student.role != 'student':
        return jsonify({'message': 'Student not found'}), 404

    query = Module.query.filter_by(status='published')
    if current_user.role != 'admin':
        query = query.filter_by(teacher_id=current_user.id)
    modules = query.order_by(Module.order_index, Module.id).all()

    module_ids = [m.id for m in modules]
    grouped = {module_id: [] for module_id in module_ids}
    progress, submissions = [], []
    if module_ids:
        for lesson in Lesson.query.filter(Lesson.module_id.in_(module_ids)) \
                .order_by(Lesson.order_index, Lesson.id).all():
            grouped[lesson.module_id].append(lesson)
        progress = LessonProgress.query.filter(
            LessonProgress.student_id == student.id,
            LessonProgress.module_id.in_(module_ids)
        ).all()
        submissions = QuizSubmission.query.filter(
            QuizSubmission.student_id == student.id,
            QuizSubmission.module_id.in_(module_ids)
        ).all()

    return jsonify(aggregation.student_overview(student, modules, grouped, progress, submissions)), 200


@teacher_bp.route('/modules/<int:module_id>/students', methods=['GET'])
@teacher_required
def get_students_by_module(module_id):
    module = db.session.get(Module, module_id)
    if not module:
        return jsonify({'message': 'Module not found'}), 404
    ensure_module_owner(current_user, module)

    lessons = module.lessons.all()
    students = User.query.filter_by(role='student').order_by(User.full_name).all()
    progress = LessonProgress.query.filter_by(module_id=module.id).all()
    submissions = QuizSubmission.query.filter_by(module_id=module.id).all()

    return jsonify({
        'module': {'id': module.id, 'title': module.title, 'total_lessons': len(lessons)},
        'students': aggregation.students_for_module(students, lessons, progress, submissions)
    }), 200


# ============== NOTIFICATIONS ==============

@teacher_bp.route('/notifications', methods=['POST'])
@teacher_required
def send_notification():
    data = NotificationSchema().load(request.get_json(silent=True) or {})

    recipient = db.session.get(User, data['user_id'])
    if not recipient:
        return jsonify({'message': 'User not found'}), 404

    notification = create_notification(
        user_id=recipient.id,
        title=data['title'].strip(),
        message=data['message'].strip(),
        type=data['type'],
        link=data.get('link')
    )
    db.session.commit()
    log_activity('send_notification', user_id=current_user.id, entity_type='notification',
                 entity_id=notification.id, details={'recipient_id': recipient.id})

    return jsonify({
        'message': 'Notification sent',
        'notification': notification.to_dict()
    }), 201
