from datetime import datetime
from mathturo import db

MODULE_STATUSES = ('draft', 'published', 'archived')


class Module(db.Model):
    __tablename__ = 'modules'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    cover_image_url = db.Column(db.String(500))
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    status = db.Column(db.String(20), default='draft', nullable=False, index=True)
    order_index = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("status IN ('draft', 'published', 'archived')", name='ck_modules_status'),
    )

    teacher = db.relationship('User', back_populates='modules')
    lessons = db.relationship('Lesson', back_populates='module', lazy='dynamic',
                              order_by='Lesson.order_index', cascade='all, delete-orphan')

    @property
    def is_published(self):
        return self.status == 'published'

    @property
    def total_lessons(self):
        return self.lessons.count()

    def to_dict(self, include_lessons=False):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'cover_image_url': self.cover_image_url,
            'teacher_id': self.teacher_id,
            'teacher_name': self.teacher.full_name if self.teacher else None,
            'status': self.status,
            'order_index': self.order_index,
            'total_lessons': self.total_lessons,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_lessons:
            data['lessons'] = [lesson.to_dict() for lesson in self.lessons.all()]

        return data


class Lesson(db.Model):
    __tablename__ = 'lessons'

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey('modules.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text)
    video_url = db.Column(db.String(500))
    materials_url = db.Column(db.String(500))
    order_index = db.Column(db.Integer, default=0)
    duration_minutes = db.Column(db.Integer, default=0)
    has_quiz = db.Column(db.Boolean, default=False)
    quiz_data = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    module = db.relationship('Module', back_populates='lessons')
    progress = db.relationship('LessonProgress', back_populates='lesson', lazy='dynamic',
                               cascade='all, delete-orphan')
    submissions = db.relationship('QuizSubmission', back_populates='lesson', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def to_dict(self, include_module=False):
        data = {
            'id': self.id,
            'module_id': self.module_id,
            'title': self.title,
            'content': self.content,
            'video_url': self.video_url,
            'materials_url': self.materials_url,
            'order_index': self.order_index,
            'duration_minutes': self.duration_minutes,
            'has_quiz': self.has_quiz,
            'quiz_data': self.quiz_data,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_module:
            data['module'] = {'id': self.module_id, 'title': self.module.title}

        return data


class LessonProgress(db.Model):
    __tablename__ = 'lesson_progress'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey('lessons.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    module_id = db.Column(db.Integer, db.ForeignKey('modules.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    status = db.Column(db.String(20), default='not_started', nullable=False)
    progress_percent = db.Column(db.Integer, default=0)
    time_spent_minutes = db.Column(db.Integer, default=0)
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('User', back_populates='progress')
    lesson = db.relationship('Lesson', back_populates='progress')

    __table_args__ = (
        db.UniqueConstraint('student_id', 'lesson_id', name='unique_lesson_progress'),
        db.CheckConstraint('progress_percent >= 0 AND progress_percent <= 100',
                           name='ck_progress_percent'),
        db.CheckConstraint("status IN ('not_started', 'in_progress', 'completed')",
                           name='ck_progress_status'),
    )

    @property
    def completed(self):
        return self.status == 'completed'

    def to_dict(self, include_lesson=False):
        data = {
            'id': self.id,
            'student_id': self.student_id,
            'lesson_id': self.lesson_id,
            'module_id': self.module_id,
            'status': self.status,
            'completed': self.completed,
            'progress_percent': self.progress_percent,
            'time_spent_minutes': self.time_spent_minutes,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_lesson:
            data['lesson'] = {'title': self.lesson.title, 'module_id': self.lesson.module_id}

        return data
