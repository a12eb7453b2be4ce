import logging
from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user
from sqlalchemy import or_

from mathturo import db
from mathturo.errors import NotFound
from mathturo.models import (
    Module, Lesson, LessonProgress, QuizSubmission,
    StudentNote, TutorialVideo, SUBMISSION_STATUSES
)
from mathturo.schemas import QuizScoreSchema, NoteSchema
from mathturo.services import progress as aggregation
from mathturo.services import storage
from mathturo.services.activity import log_activity
from mathturo.services.streaks import record_activity, get_streak
from mathturo.utils.cache import invalidate, SYSTEM_STATS_KEY
from mathturo.utils.decorators import student_required
from mathturo.utils.helpers import request_data, limit_arg, like_pattern, LIKE_ESCAPE

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__)

SEARCH_LIMIT = 5


def get_published_lesson(lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson or not lesson.module.is_published:
        raise NotFound('Lesson not found')
    return lesson


def get_own_submission(submission_id):
    submission = db.session.get(QuizSubmission, submission_id)
    if not submission or submission.student_id != current_user.id:
        raise NotFound('Submission not found')
    return submission


def save_screenshot(lesson):
    file = request.files.get('screenshot')
    if file is None or not file.filename:
        return None
    path = storage.screenshot_path(current_user.id, lesson.id, file.filename)
    return storage.upload(storage.QUIZ_SCREENSHOTS, file, path)['url']


def published_modules():
    return Module.query.filter_by(status='published').order_by(Module.order_index, Module.id).all()


def lessons_by_module(module_ids):
    grouped = {module_id: [] for module_id in module_ids}
    if not module_ids:
        return grouped
    lessons = Lesson.query.filter(Lesson.module_id.in_(module_ids)) \
        .order_by(Lesson.order_index, Lesson.id).all()
    for lesson in lessons:
        grouped[lesson.module_id].append(lesson)
    return grouped


def current_stats(student_id):
    modules = published_modules()
    grouped = lessons_by_module([m.id for m in modules])
    completed = LessonProgress.query.filter_by(student_id=student_id, status='completed').all()
    submissions = QuizSubmission.query.filter_by(student_id=student_id).all()
    module_lessons = {
        module_id: [lesson.id for lesson in lessons]
        for module_id, lessons in grouped.items()
    }
    return aggregation.dashboard_stats(module_lessons, completed, submissions)


# ============== PROGRESS ==============

@student_bp.route('/lessons/<int:lesson_id>/complete', methods=['POST'])
@student_required
def mark_lesson_complete(lesson_id):
    lesson = get_published_lesson(lesson_id)
    now = datetime.utcnow()

    progress = LessonProgress.query.filter_by(
        student_id=current_user.id,
        lesson_id=lesson.id
    ).first()

    if not progress:
        progress = LessonProgress(
            student_id=current_user.id,
            lesson_id=lesson.id,
            module_id=lesson.module_id,
            started_at=now
        )
        db.session.add(progress)

    progress.status = 'completed'
    progress.progress_percent = 100
    progress.completed_at = now
    progress.updated_at = now
    progress.started_at = progress.started_at or now

    streak = record_activity(current_user.id, now.date())
    db.session.commit()

    log_activity('complete_lesson', user_id=current_user.id, entity_type='lesson',
                 entity_id=lesson.id, details={'module_id': lesson.module_id})

    return jsonify({
        'message': 'Lesson marked as complete',
        'progress': progress.to_dict(),
        'streak': streak.to_dict()
    }), 200


@student_bp.route('/modules/<int:module_id>/progress', methods=['GET'])
@student_required
def get_module_progress(module_id):
    module = db.session.get(Module, module_id)
    if not module or not module.is_published:
        return jsonify({'message': 'Module not found'}), 404

    lessons = module.lessons.all()
    progress = LessonProgress.query.filter_by(student_id=current_user.id, module_id=module.id).all()
    submissions = QuizSubmission.query.filter_by(student_id=current_user.id, module_id=module.id).all()

    return jsonify(aggregation.module_progress(module, lessons, progress, submissions)), 200


@student_bp.route('/progress', methods=['GET'])
@student_required
def get_overall_progress():
    modules = published_modules()
    grouped = lessons_by_module([m.id for m in modules])
    progress = LessonProgress.query.filter_by(student_id=current_user.id).all()
    submissions = QuizSubmission.query.filter_by(student_id=current_user.id).all()

    return jsonify(aggregation.student_overview(current_user, modules, grouped, progress, submissions)), 200


# ============== QUIZ SUBMISSIONS ==============

@student_bp.route('/lessons/<int:lesson_id>/quiz', methods=['POST'])
@student_required
def submit_quiz_score(lesson_id):
    lesson = get_published_lesson(lesson_id)
    data = QuizScoreSchema().load(request_data())
    screenshot_url = save_screenshot(lesson)

    submission = QuizSubmission(
        student_id=current_user.id,
        lesson_id=lesson.id,
        module_id=lesson.module_id,
        score=data['score'],
        total_items=data['total_items'],
        screenshot_url=screenshot_url,
        status='pending',
        submitted_at=datetime.utcnow()
    )

    db.session.add(submission)
    db.session.commit()
    invalidate(SYSTEM_STATS_KEY)
    logger.info("Student %s submitted %s/%s for lesson %s",
                current_user.id, submission.score, submission.total_items, lesson.id)
    log_activity('submit_quiz', user_id=current_user.id, entity_type='quiz_submission',
                 entity_id=submission.id, details={'lesson_id': lesson.id})

    return jsonify({
        'message': 'Quiz score submitted for review',
        'submission': submission.to_dict()
    }), 201


@student_bp.route('/submissions', methods=['GET'])
@student_required
def get_quiz_submissions():
    status = request.args.get('status')
    query = QuizSubmission.query.filter_by(student_id=current_user.id)

    if status and status != 'all':
        if status not in SUBMISSION_STATUSES:
            return jsonify({'message': 'Invalid status filter'}), 400
        query = query.filter_by(status=status)

    submissions = query.order_by(QuizSubmission.submitted_at.desc(), QuizSubmission.id.desc()).all()
    return jsonify([s.to_dict(include_related=True) for s in submissions]), 200


@student_bp.route('/submissions/<int:submission_id>/resubmit', methods=['POST'])
@student_required
def request_resubmission(submission_id):
    submission = get_own_submission(submission_id)

    submission.status = 'pending'
    submission.teacher_comment = None
    submission.reviewed_by = None
    submission.reviewed_at = None
    submission.submitted_at = datetime.utcnow()
    db.session.commit()
    invalidate(SYSTEM_STATS_KEY)

    log_activity('resubmit_quiz', user_id=current_user.id, entity_type='quiz_submission',
                 entity_id=submission.id)

    return jsonify({
        'message': 'Submission sent back for review',
        'submission': submission.to_dict()
    }), 200


@student_bp.route('/submissions/<int:submission_id>', methods=['PUT'])
@student_required
def update_quiz_submission(submission_id):
    submission = get_own_submission(submission_id)
    data = QuizScoreSchema().load(request_data())

    screenshot_url = save_screenshot(submission.lesson)
    if screenshot_url:
        submission.screenshot_url = screenshot_url

    submission.score = data['score']
    submission.total_items = data['total_items']
    submission.status = 'pending'
    submission.teacher_comment = None
    submission.reviewed_by = None
    submission.reviewed_at = None
    submission.submitted_at = datetime.utcnow()
    db.session.commit()
    invalidate(SYSTEM_STATS_KEY)

    log_activity('update_quiz', user_id=current_user.id, entity_type='quiz_submission',
                 entity_id=submission.id)

    return jsonify({
        'message': 'Submission updated',
        'submission': submission.to_dict()
    }), 200


@student_bp.route('/reviews', methods=['GET'])
@student_required
def get_review_feed():
    submissions = QuizSubmission.query.filter(
        QuizSubmission.student_id == current_user.id,
        QuizSubmission.status.in_(['approved', 'rejected'])
    ).order_by(QuizSubmission.reviewed_at.desc(), QuizSubmission.id.desc()) \
        .limit(limit_arg()).all()

    return jsonify([s.to_dict(include_related=True) for s in submissions]), 200


# ============== DASHBOARD ==============

@student_bp.route('/dashboard', methods=['GET'])
@student_required
def get_dashboard():
    stats = current_stats(current_user.id)
    streak = get_streak(current_user.id)
    stats['currentStreak'] = streak.current_streak if streak else 0
    stats['longestStreak'] = streak.longest_streak if streak else 0
    return jsonify(stats), 200


@student_bp.route('/streak', methods=['GET'])
@student_required
def get_student_streak():
    streak = get_streak(current_user.id)
    if not streak:
        return jsonify({
            'student_id': current_user.id,
            'current_streak': 0,
            'longest_streak': 0,
            'last_activity_date': None
        }), 200
    return jsonify(streak.to_dict()), 200


@student_bp.route('/activity/recent', methods=['GET'])
@student_required
def get_recent_activity():
    rows = LessonProgress.query.filter_by(student_id=current_user.id) \
        .order_by(LessonProgress.updated_at.desc()) \
        .limit(limit_arg()).all()
    return jsonify([row.to_dict(include_lesson=True) for row in rows]), 200


@student_bp.route('/activity/weekly', methods=['GET'])
@student_required
def get_weekly_activity():
    now = datetime.utcnow()
    week_start = aggregation.start_of_week(now)
    timestamps = [
        row.updated_at for row in LessonProgress.query.filter(
            LessonProgress.student_id == current_user.id,
            LessonProgress.updated_at >= week_start
        ).all()
    ]
    return jsonify(aggregation.weekly_activity(timestamps, now)), 200


@student_bp.route('/achievements', methods=['GET'])
@student_required
def get_achievements():
    stats = current_stats(current_user.id)
    streak = get_streak(current_user.id)
    return jsonify(aggregation.achievements(stats, streak.current_streak if streak else 0)), 200


# ============== NOTES ==============

@student_bp.route('/notes', methods=['GET'])
@student_required
def get_note():
    lesson_id = request.args.get('lesson_id', type=int)
    note = StudentNote.query.filter_by(student_id=current_user.id, lesson_id=lesson_id).first()
    if not note:
        return jsonify({'lesson_id': lesson_id, 'content': ''}), 200
    return jsonify(note.to_dict()), 200


@student_bp.route('/notes', methods=['PUT'])
@student_required
def save_note():
    data = NoteSchema().load(request.get_json(silent=True) or {})
    lesson_id = data['lesson_id']
    if lesson_id is not None:
        get_published_lesson(lesson_id)

    note = StudentNote.query.filter_by(student_id=current_user.id, lesson_id=lesson_id).first()
    if not note:
        note = StudentNote(student_id=current_user.id, lesson_id=lesson_id)
        db.session.add(note)

    note.content = data['content']
    note.updated_at = datetime.utcnow()
    db.session.commit()

    return jsonify({
        'message': 'Note saved',
        'note': note.to_dict()
    }), 200


# ============== SEARCH ==============

@student_bp.route('/search', methods=['GET'])
@student_required
def search():
    q = (request.args.get('q') or '').strip()
    if len(q) < 2:
        return jsonify({'modules': [], 'lessons': [], 'videos': []}), 200

    pattern = like_pattern(q)

    def matches(*columns):
        return or_(*[column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns])

    modules = Module.query.filter(
        Module.status == 'published',
        matches(Module.title, Module.description)
    ).order_by(Module.order_index).limit(SEARCH_LIMIT).all()

    lessons = Lesson.query.join(Module).filter(
        Module.status == 'published',
        matches(Lesson.title, Lesson.content)
    ).order_by(Lesson.order_index).limit(SEARCH_LIMIT).all()

    videos = TutorialVideo.query.filter(
        TutorialVideo.is_active.is_(True),
        matches(TutorialVideo.title, TutorialVideo.description)
    ).order_by(TutorialVideo.order).limit(SEARCH_LIMIT).all()

    return jsonify({
        'modules': [{'id': m.id, 'title': m.title, 'description': m.description} for m in modules],
        'lessons': [{'id': lesson.id, 'title': lesson.title, 'module_id': lesson.module_id}
                    for lesson in lessons],
        'videos': [{'id': v.id, 'title': v.title, 'category': v.category} for v in videos]
    }), 200
