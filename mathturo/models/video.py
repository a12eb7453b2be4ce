from datetime import datetime
from mathturo import db


class TutorialVideo(db.Model):
    __tablename__ = 'tutorial_videos'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100), nullable=False, default='general', index=True)
    video_url = db.Column(db.String(500), nullable=False)
    thumbnail_url = db.Column(db.String(500))
    duration = db.Column(db.String(20))
    is_featured = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True, index=True)
    order = db.Column(db.Integer, default=0)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    views = db.relationship('VideoView', back_populates='video', lazy='dynamic',
                            cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'video_url': self.video_url,
            'thumbnail_url': self.thumbnail_url,
            'duration': self.duration,
            'is_featured': self.is_featured,
            'is_active': self.is_active,
            'order': self.order,
            'created_by': self.created_by,
            'view_count': self.views.count(),
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class VideoView(db.Model):
    __tablename__ = 'video_views'

    id = db.Column(db.Integer, primary_key=True)
    video_id = db.Column(db.Integer, db.ForeignKey('tutorial_videos.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    viewed_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    watch_duration = db.Column(db.Integer, default=0)  # in seconds
    completed = db.Column(db.Boolean, default=False)

    video = db.relationship('TutorialVideo', back_populates='views')

    def to_dict(self):
        return {
            'id': self.id,
            'video_id': self.video_id,
            'student_id': self.student_id,
            'viewed_at': self.viewed_at.isoformat() if self.viewed_at else None,
            'watch_duration': self.watch_duration,
            'completed': self.completed
        }
