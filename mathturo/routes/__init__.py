from .auth import auth_bp
from .modules import modules_bp
from .student import student_bp
from .teacher import teacher_bp
from .admin import admin_bp
from .notifications import notifications_bp
from .videos import videos_bp
from .storage import storage_bp
from .activity import activity_bp
