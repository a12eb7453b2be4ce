import os
from mathturo import create_app, db
from mathturo.models import (
    User, Module, Lesson, LessonProgress, QuizSubmission,
    Notification, ActivityLog, TutorialVideo
)

app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'Module': Module,
        'Lesson': Lesson,
        'LessonProgress': LessonProgress,
        'QuizSubmission': QuizSubmission,
        'Notification': Notification,
        'ActivityLog': ActivityLog,
        'TutorialVideo': TutorialVideo
    }


if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
