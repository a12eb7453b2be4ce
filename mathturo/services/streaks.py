import logging
from datetime import datetime, timedelta

from mathturo import db
from mathturo.models import StudentStreak

logger = logging.getLogger(__name__)


def get_streak(student_id):
    return StudentStreak.query.filter_by(student_id=student_id).first()


def record_activity(student_id, today=None):
    """Advance the student's daily streak for activity on ``today``.

    The caller owns the transaction.
    """
    today = today or datetime.utcnow().date()
    streak = get_streak(student_id)

    if streak is None:
        streak = StudentStreak(
            student_id=student_id,
            current_streak=1,
            longest_streak=1,
            last_activity_date=today
        )
        db.session.add(streak)
        return streak

    if streak.last_activity_date == today:
        return streak

    if streak.last_activity_date == today - timedelta(days=1):
        streak.current_streak = (streak.current_streak or 0) + 1
    else:
        streak.current_streak = 1

    streak.longest_streak = max(streak.longest_streak or 0, streak.current_streak)
    streak.last_activity_date = today
    logger.debug("Student %s streak now %s", student_id, streak.current_streak)
    return streak
