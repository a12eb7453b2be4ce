import hashlib
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from mathturo import db

ROLES = ('student', 'teacher', 'admin')


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='student', index=True)
    avatar_url = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("role IN ('student', 'teacher', 'admin')", name='ck_users_role'),
    )

    modules = db.relationship('Module', back_populates='teacher', lazy='dynamic',
                              cascade='all, delete-orphan')
    progress = db.relationship('LessonProgress', back_populates='student', lazy='dynamic',
                               cascade='all, delete-orphan')
    submissions = db.relationship('QuizSubmission', back_populates='student', lazy='dynamic',
                                  foreign_keys='QuizSubmission.student_id',
                                  cascade='all, delete-orphan')
    notifications = db.relationship('Notification', back_populates='user', lazy='dynamic',
                                    cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def password_version(self):
        """Short digest of the stored hash; changes whenever the password does."""
        return hashlib.sha256(self.password_hash.encode()).hexdigest()[:16]

    def is_teacher(self):
        return self.role in ['teacher', 'admin']

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'avatar_url': self.avatar_url,
            'is_active': self.is_active,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
