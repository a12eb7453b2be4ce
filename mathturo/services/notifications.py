import logging

from mathturo import db
from mathturo.models import Notification

logger = logging.getLogger(__name__)

REVIEWED_STATUSES = ('approved', 'rejected')


def create_notification(user_id, title, message, type='info', link=None):
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        link=link
    )
    db.session.add(notification)
    return notification


def lesson_link(lesson_id):
    return f'/student/lessons/{lesson_id}'


def notify_quiz_reviewed(submission, previous_status):
    """Tell the student about a decision on a pending submission.

    Re-reviews of an already decided submission stay silent.
    """
    if previous_status != 'pending' or submission.status not in REVIEWED_STATUSES:
        return None

    if submission.status == 'approved':
        message = (f'Your quiz submission has been approved! '
                   f'Score: {submission.score}/{submission.total_items}')
    else:
        message = 'Your quiz submission has been reviewed. Please check the feedback.'

    logger.info("Notifying student %s of %s submission %s",
                submission.student_id, submission.status, submission.id)
    return create_notification(
        user_id=submission.student_id,
        title='Quiz Reviewed',
        message=message,
        type='quiz_reviewed',
        link=lesson_link(submission.lesson_id)
    )
