from datetime import datetime, timedelta
from types import SimpleNamespace

from mathturo.services import progress


def lesson(id, title=None):
    return SimpleNamespace(id=id, title=title or f'Lesson {id}')


def done(lesson_id, student_id=1, status='completed'):
    return SimpleNamespace(lesson_id=lesson_id, student_id=student_id, status=status,
                           completed_at=datetime(2024, 5, 1, 9, 0))


def submission(id, lesson_id, score, total, status='pending', student_id=1, submitted_at=None):
    return SimpleNamespace(
        id=id, lesson_id=lesson_id, student_id=student_id, score=score, total_items=total,
        status=status, screenshot_url=None, teacher_comment=None,
        submitted_at=submitted_at or datetime(2024, 5, 1) + timedelta(minutes=id)
    )


def test_percentage_rounds_half_up():
    assert progress.percentage(1, 3) == 33
    assert progress.percentage(2, 3) == 67
    assert progress.percentage(1, 8) == 13
    assert progress.percentage(3, 3) == 100


def test_percentage_of_nothing_is_zero():
    assert progress.percentage(0, 0) == 0
    assert progress.percentage(5, 0) == 0


def test_latest_by_lesson_keeps_newest_submission():
    older = submission(1, 10, 3, 10, status='rejected')
    newer = submission(2, 10, 9, 10, status='approved')
    other = submission(3, 11, 5, 10)

    latest = progress.latest_by_lesson([newer, older, other])

    assert latest[10] is newer
    assert latest[11] is other


def test_lesson_rows_report_completion_and_latest_quiz():
    lessons = [lesson(10), lesson(11)]
    rows = progress.lesson_rows(
        lessons,
        [done(10), done(11, status='in_progress')],
        [submission(1, 11, 4, 5, status='approved')]
    )

    assert rows[0]['completed'] is True
    assert rows[0]['completed_at'] == '2024-05-01T09:00:00'
    assert rows[0]['quiz_submitted'] is False
    assert rows[1]['completed'] is False
    assert rows[1]['quiz_score'] == 4
    assert rows[1]['quiz_total_items'] == 5
    assert rows[1]['quiz_status'] == 'approved'


def test_module_progress_counts_lessons_and_quizzes():
    module = SimpleNamespace(id=1, title='Fractions')
    lessons = [lesson(10), lesson(11), lesson(12)]
    result = progress.module_progress(
        module, lessons,
        [done(10), done(99)],
        [submission(1, 10, 5, 10, status='rejected'),
         submission(2, 10, 8, 10, status='approved'),
         submission(3, 11, 2, 10)]
    )

    assert result['total_lessons'] == 3
    assert result['completed_lessons'] == 1
    assert result['completion_percentage'] == 33
    assert result['quiz_submissions'] == 2
    assert result['approved_quizzes'] == 1
    assert len(result['lessons']) == 3


def test_module_progress_with_no_lessons():
    result = progress.module_progress(SimpleNamespace(id=2, title='Empty'), [], [], [])
    assert result['completion_percentage'] == 0
    assert result['lessons'] == []


def test_student_overview_totals_across_modules():
    student = SimpleNamespace(id=1, full_name='Sam', email='sam@example.com')
    modules = [SimpleNamespace(id=1, title='A'), SimpleNamespace(id=2, title='B')]
    grouped = {1: [lesson(10), lesson(11)], 2: [lesson(20)]}

    overview = progress.student_overview(
        student, modules, grouped,
        [done(10), done(20)],
        [submission(1, 10, 10, 10, status='approved'), submission(2, 20, 1, 4)]
    )

    assert overview['total_lessons'] == 3
    assert overview['completed_lessons'] == 2
    assert overview['overall_completion'] == 67
    assert overview['total_quizzes_submitted'] == 2
    assert overview['total_quizzes_approved'] == 1
    assert [m['module_id'] for m in overview['modules']] == [1, 2]


def test_students_for_module_builds_one_row_per_student():
    students = [
        SimpleNamespace(id=1, full_name='Sam', email='sam@example.com'),
        SimpleNamespace(id=2, full_name='Alex', email='alex@example.com'),
    ]
    lessons = [lesson(10), lesson(11)]

    rows = progress.students_for_module(
        students, lessons,
        [done(10, student_id=1), done(11, student_id=1), done(10, student_id=2)],
        [submission(1, 10, 7, 10, status='approved', student_id=2)]
    )

    assert rows[0]['completion_percentage'] == 100
    assert rows[0]['submitted_quizzes'] == 0
    assert rows[1]['completion_percentage'] == 50
    assert rows[1]['approved_quizzes'] == 1


def test_dashboard_stats_xp_and_average():
    stats = progress.dashboard_stats(
        {1: [10, 11], 2: [20], 3: []},
        [done(10), done(11)],
        [submission(1, 10, 8, 10, status='approved'),
         submission(2, 11, 10, 10, status='approved'),
         submission(3, 20, 5, 10)]
    )

    assert stats['totalModules'] == 3
    assert stats['completedModules'] == 1
    assert stats['totalLessons'] == 3
    assert stats['completedLessons'] == 2
    assert stats['approvedSubmissions'] == 2
    assert stats['averageScore'] == 90
    assert stats['perfectScores'] == 1
    assert stats['xp'] == 2 * 10 + 1 * 50 + 2 * 20


def test_dashboard_stats_for_new_student():
    stats = progress.dashboard_stats({}, [], [])
    assert stats['averageScore'] == 0
    assert stats['xp'] == 0


def test_achievements_flags():
    stats = {'completedLessons': 5, 'approvedSubmissions': 1, 'perfectScores': 0,
             'completedModules': 1, 'xp': 120}
    earned = {a['id']: a['earned'] for a in progress.achievements(stats, 3)}

    assert earned['first_lesson'] and earned['five_lessons']
    assert not earned['ten_lessons']
    assert not earned['quiz_master']
    assert not earned['perfect_score']
    assert earned['module_complete']
    assert earned['streak_3'] and not earned['streak_7']
    assert earned['xp_100'] and not earned['xp_500']
    assert len(earned) == 11


def test_weekly_activity_counts_current_week_only():
    now = datetime(2024, 5, 15, 12, 0)  # Wednesday
    timestamps = [
        datetime(2024, 5, 13, 8, 0),
        datetime(2024, 5, 15, 9, 0),
        datetime(2024, 5, 15, 10, 0),
        datetime(2024, 5, 12, 23, 59),
    ]

    week = progress.weekly_activity(timestamps, now)

    assert [d['day'] for d in week] == ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
    assert [d['count'] for d in week] == [1, 0, 2, 0, 0, 0, 0]


def test_status_counts():
    counts = progress.status_counts(['pending', 'approved', 'pending', 'rejected', 'bogus'])
    assert counts == {'pending': 2, 'approved': 1, 'rejected': 1, 'total': 4}
