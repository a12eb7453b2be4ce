from .user import User, ROLES
from .module import Module, Lesson, LessonProgress, MODULE_STATUSES
from .quiz import QuizSubmission, SUBMISSION_STATUSES
from .notification import Notification, ActivityLog, NOTIFICATION_TYPES
from .student import StudentStreak, StudentNote
from .video import TutorialVideo, VideoView
