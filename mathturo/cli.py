import logging

import click

from mathturo import db
from mathturo.models import TutorialVideo, User

logger = logging.getLogger(__name__)

SAMPLE_VIDEO_URL = 'https://www.youtube.com/embed/dQw4w9WgXcQ'

STARTER_VIDEOS = [
    ('Getting Started with MathTuro', 'Learn how to navigate the MathTuro learning platform, access modules, and track your progress.', 'getting-started', '5:30', True),
    ('How to Take Quizzes', 'A complete guide on taking quizzes, submitting answers, and understanding your scores.', 'getting-started', '3:45', True),
    ('Introduction to Algebra', 'Master the basics of algebraic expressions, equations, and problem-solving techniques.', 'algebra', '12:20', False),
    ('Solving Linear Equations', 'Step-by-step guide to solving linear equations with one and two variables.', 'algebra', '8:15', False),
    ('Basic Geometry Concepts', 'Learn about points, lines, angles, and basic geometric shapes.', 'geometry', '10:00', False),
    ('Area and Perimeter', 'Calculate area and perimeter of common shapes including rectangles, triangles, and circles.', 'geometry', '7:30', False),
    ('Introduction to Limits', 'Understanding the concept of limits in calculus with visual examples.', 'calculus', '15:45', False),
    ('Derivatives Explained', 'Learn how to find derivatives and understand their real-world applications.', 'calculus', '18:20', False),
    ('Mean, Median, and Mode', 'Understanding measures of central tendency in statistics.', 'statistics', '6:45', False),
    ('Effective Study Techniques', 'Proven study strategies to improve your learning and retention.', 'tips', '9:00', True),
    ('Time Management for Students', 'Learn to balance studies, activities, and rest for optimal performance.', 'tips', '7:15', False),
    ('Overcoming Math Anxiety', 'Practical tips to build confidence and reduce stress when studying math.', 'tips', '8:30', False),
]


def seed_videos():
    """Insert the starter tutorial videos that are not present yet."""
    added = 0
    for order, (title, description, category, duration, featured) in enumerate(STARTER_VIDEOS, start=1):
        if TutorialVideo.query.filter_by(title=title).first():
            continue
        db.session.add(TutorialVideo(
            title=title,
            description=description,
            category=category,
            video_url=SAMPLE_VIDEO_URL,
            duration=duration,
            is_featured=featured,
            order=order
        ))
        added += 1
    db.session.commit()
    return added


def ensure_admin(email, password, full_name):
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user:
        user.role = 'admin'
        user.is_active = True
        if password:
            user.set_password(password)
    else:
        user = User(email=email, full_name=full_name, role='admin')
        user.set_password(password)
        db.session.add(user)
    db.session.commit()
    return user


def register_commands(app):
    @app.cli.command('seed')
    def seed():
        """Seed the database with starter tutorial videos."""
        db.create_all()
        added = seed_videos()
        click.echo(f'Database seeded! Added {added} tutorial videos.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option('--name', 'full_name', default='Administrator', show_default=True)
    def create_admin(email, password, full_name):
        """Create an admin account, or promote an existing one."""
        if len(password) < app.config['MIN_PASSWORD_LENGTH']:
            raise click.BadParameter(
                f"must be at least {app.config['MIN_PASSWORD_LENGTH']} characters",
                param_hint='--password'
            )
        db.create_all()
        user = ensure_admin(email, password, full_name)
        logger.info("Admin account ready: %s", user.email)
        click.echo(f'Admin account ready: {user.email}')
