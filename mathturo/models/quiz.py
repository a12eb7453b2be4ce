from datetime import datetime
from mathturo import db

SUBMISSION_STATUSES = ('pending', 'approved', 'rejected')


class QuizSubmission(db.Model):
    """A student-reported quiz score waiting on a teacher's decision."""
    __tablename__ = 'quiz_submissions'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey('lessons.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    module_id = db.Column(db.Integer, db.ForeignKey('modules.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    total_items = db.Column(db.Integer, nullable=False)
    screenshot_url = db.Column(db.String(500))
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    teacher_comment = db.Column(db.Text)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    reviewed_at = db.Column(db.DateTime)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('User', back_populates='submissions', foreign_keys=[student_id])
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])
    lesson = db.relationship('Lesson', back_populates='submissions')
    module = db.relationship('Module')

    __table_args__ = (
        db.CheckConstraint('total_items > 0', name='ck_submission_total_items'),
        db.CheckConstraint('score >= 0 AND score <= total_items', name='ck_submission_score'),
        db.CheckConstraint("status IN ('pending', 'approved', 'rejected')",
                           name='ck_submission_status'),
    )

    def to_dict(self, include_related=False):
        data = {
            'id': self.id,
            'student_id': self.student_id,
            'lesson_id': self.lesson_id,
            'module_id': self.module_id,
            'score': self.score,
            'total_items': self.total_items,
            'screenshot_url': self.screenshot_url,
            'status': self.status,
            'teacher_comment': self.teacher_comment,
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_related:
            data['student'] = {'full_name': self.student.full_name if self.student else None}
            data['lesson'] = {'title': self.lesson.title, 'module_id': self.lesson.module_id}
            data['module'] = {'title': self.module.title}

        return data
