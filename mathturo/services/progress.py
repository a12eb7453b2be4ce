"""
Progress aggregation.

Everything here is a pure function over already-loaded rows so the same
rules serve the student dashboard, the teacher views and the tests. Rows
only need the attributes the functions read, so plain objects work too.
"""
import math
from collections import defaultdict
from datetime import datetime, timedelta

WEEKDAYS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

XP_PER_LESSON = 10
XP_PER_MODULE = 50
XP_PER_APPROVED_QUIZ = 20


def percentage(part, whole):
    """Whole-number percentage, halves rounded up. 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def _is_completed(row):
    return getattr(row, 'status', None) == 'completed'


def _submission_sort_key(submission):
    return (submission.submitted_at or datetime.min, submission.id or 0)


def latest_by_lesson(submissions):
    latest = {}
    for submission in submissions:
        current = latest.get(submission.lesson_id)
        if current is None or _submission_sort_key(submission) > _submission_sort_key(current):
            latest[submission.lesson_id] = submission
    return latest


def lesson_rows(lessons, progress, submissions):
    completed = {}
    for row in progress:
        if _is_completed(row):
            completed[row.lesson_id] = row
    latest = latest_by_lesson(submissions)

    rows = []
    for lesson in lessons:
        done = completed.get(lesson.id)
        submission = latest.get(lesson.id)
        rows.append({
            'lesson_id': lesson.id,
            'title': lesson.title,
            'completed': done is not None,
            'completed_at': done.completed_at.isoformat() if done and done.completed_at else None,
            'quiz_submitted': submission is not None,
            'quiz_score': submission.score if submission else None,
            'quiz_total_items': submission.total_items if submission else None,
            'quiz_status': submission.status if submission else None,
            'quiz_screenshot_url': submission.screenshot_url if submission else None,
            'teacher_comment': submission.teacher_comment if submission else None,
        })
    return rows


def module_progress(module, lessons, progress, submissions):
    lesson_ids = {lesson.id for lesson in lessons}
    progress = [row for row in progress if row.lesson_id in lesson_ids]
    submissions = [s for s in submissions if s.lesson_id in lesson_ids]

    rows = lesson_rows(lessons, progress, submissions)
    completed_lessons = sum(1 for row in rows if row['completed'])
    approved_lessons = {s.lesson_id for s in submissions if s.status == 'approved'}

    return {
        'module_id': module.id,
        'module_title': module.title,
        'total_lessons': len(lessons),
        'completed_lessons': completed_lessons,
        'completion_percentage': percentage(completed_lessons, len(lessons)),
        'quiz_submissions': len({s.lesson_id for s in submissions}),
        'approved_quizzes': len(approved_lessons),
        'lessons': rows,
    }


def student_overview(student, modules, lessons_by_module, progress, submissions):
    """One student's progress across ``modules``.

    ``lessons_by_module`` maps a module id to its lessons in display order.
    """
    module_rows = [
        module_progress(module, lessons_by_module.get(module.id, []), progress, submissions)
        for module in modules
    ]
    total_lessons = sum(row['total_lessons'] for row in module_rows)
    completed_lessons = sum(row['completed_lessons'] for row in module_rows)

    return {
        'student': {
            'id': student.id,
            'full_name': student.full_name,
            'email': student.email,
        },
        'modules': module_rows,
        'total_lessons': total_lessons,
        'completed_lessons': completed_lessons,
        'overall_completion': percentage(completed_lessons, total_lessons),
        'total_quizzes_submitted': sum(row['quiz_submissions'] for row in module_rows),
        'total_quizzes_approved': sum(row['approved_quizzes'] for row in module_rows),
    }


def students_for_module(students, lessons, progress, submissions):
    progress_by_student = defaultdict(list)
    for row in progress:
        progress_by_student[row.student_id].append(row)
    submissions_by_student = defaultdict(list)
    for submission in submissions:
        submissions_by_student[submission.student_id].append(submission)

    results = []
    for student in students:
        rows = lesson_rows(lessons, progress_by_student[student.id], submissions_by_student[student.id])
        completed = sum(1 for row in rows if row['completed'])
        results.append({
            'student_id': student.id,
            'full_name': student.full_name,
            'email': student.email,
            'total_lessons': len(lessons),
            'completed_lessons': completed,
            'completion_percentage': percentage(completed, len(lessons)),
            'submitted_quizzes': sum(1 for row in rows if row['quiz_submitted']),
            'approved_quizzes': sum(1 for row in rows if row['quiz_status'] == 'approved'),
            'lessons': rows,
        })
    return results


def dashboard_stats(module_lessons, completed_progress, submissions):
    """Headline numbers for the student dashboard.

    ``module_lessons`` maps each visible module id to its lesson ids.
    """
    completed_ids = {row.lesson_id for row in completed_progress}

    completed_modules = sum(
        1 for lesson_ids in module_lessons.values()
        if lesson_ids and all(lesson_id in completed_ids for lesson_id in lesson_ids)
    )
    total_lessons = sum(len(lesson_ids) for lesson_ids in module_lessons.values())
    completed_lessons = len(completed_ids)

    approved = [s for s in submissions if s.status == 'approved']
    average_score = 0
    if approved:
        total_percent = sum(s.score / s.total_items * 100 for s in approved)
        average_score = int(math.floor(total_percent / len(approved) + 0.5))

    xp = (completed_lessons * XP_PER_LESSON
          + completed_modules * XP_PER_MODULE
          + len(approved) * XP_PER_APPROVED_QUIZ)

    return {
        'totalModules': len(module_lessons),
        'completedModules': completed_modules,
        'totalLessons': total_lessons,
        'completedLessons': completed_lessons,
        'totalSubmissions': len(submissions),
        'approvedSubmissions': len(approved),
        'perfectScores': sum(1 for s in submissions if s.score == s.total_items),
        'averageScore': average_score,
        'xp': xp,
    }


ACHIEVEMENTS = [
    ('first_lesson', 'First Steps', 'Complete your first lesson', 'completedLessons', 1),
    ('five_lessons', 'Bookworm', 'Complete 5 lessons', 'completedLessons', 5),
    ('ten_lessons', 'Scholar', 'Complete 10 lessons', 'completedLessons', 10),
    ('quiz_master', 'Quiz Star', 'Get 5 quizzes approved', 'approvedSubmissions', 5),
    ('perfect_score', 'Perfectionist', 'Get a perfect quiz score', 'perfectScores', 1),
    ('module_complete', 'Module Master', 'Complete a module', 'completedModules', 1),
    ('streak_3', '3 Day Streak', 'Learn 3 days in a row', 'streak', 3),
    ('streak_7', 'Week Warrior', 'Learn 7 days in a row', 'streak', 7),
    ('xp_100', 'XP Hunter', 'Earn 100 XP', 'xp', 100),
    ('xp_500', 'XP Master', 'Earn 500 XP', 'xp', 500),
    ('xp_1000', 'XP Legend', 'Earn 1000 XP', 'xp', 1000),
]


def achievements(stats, streak):
    values = dict(stats)
    values['streak'] = streak or 0
    return [
        {
            'id': achievement_id,
            'name': name,
            'desc': desc,
            'earned': values.get(metric, 0) >= threshold,
        }
        for achievement_id, name, desc, metric, threshold in ACHIEVEMENTS
    ]


def start_of_week(now):
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def weekly_activity(timestamps, now):
    """Count ``timestamps`` per weekday, Monday first, for the week of ``now``."""
    week_start = start_of_week(now)
    counts = [0] * 7
    for ts in timestamps:
        if ts is not None and week_start <= ts < week_start + timedelta(days=7):
            counts[ts.weekday()] += 1
    return [{'day': day, 'count': count} for day, count in zip(WEEKDAYS, counts)]


def status_counts(statuses):
    counts = {'pending': 0, 'approved': 0, 'rejected': 0}
    for status in statuses:
        if status in counts:
            counts[status] += 1
    counts['total'] = sum(counts.values())
    return counts
