from marshmallow import fields, validate, validates, validates_schema, ValidationError, EXCLUDE

from config import Config
from mathturo import ma
from mathturo.models import ROLES, MODULE_STATUSES, NOTIFICATION_TYPES

SELF_SERVICE_ROLES = ('student', 'teacher')


class BaseSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE


def _trimmed_required(value, label):
    if not value or not value.strip():
        raise ValidationError(f'{label} is required')


class RegisterSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        validate=validate.Length(
            min=Config.MIN_PASSWORD_LENGTH,
            error=f'Password must be at least {Config.MIN_PASSWORD_LENGTH} characters'
        )
    )
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=Config.MAX_NAME_LENGTH))
    role = fields.String(
        load_default='student',
        validate=validate.OneOf(SELF_SERVICE_ROLES, error='Role must be student or teacher')
    )

    @validates('full_name')
    def validate_full_name(self, value, **kwargs):
        _trimmed_required(value, 'Full name')


class LoginSchema(BaseSchema):
    email = fields.String(required=True)
    password = fields.String(required=True)


class ProfileSchema(BaseSchema):
    full_name = fields.String(validate=validate.Length(min=1, max=Config.MAX_NAME_LENGTH))
    avatar_url = fields.String(allow_none=True)


class PasswordChangeSchema(BaseSchema):
    current_password = fields.String(required=True)
    new_password = fields.String(
        required=True,
        validate=validate.Length(
            min=Config.MIN_PASSWORD_LENGTH,
            error=f'Password must be at least {Config.MIN_PASSWORD_LENGTH} characters'
        )
    )


class PasswordResetSchema(BaseSchema):
    token = fields.String(required=True)
    new_password = fields.String(
        required=True,
        validate=validate.Length(
            min=Config.MIN_PASSWORD_LENGTH,
            error=f'Password must be at least {Config.MIN_PASSWORD_LENGTH} characters'
        )
    )


class ModuleSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=Config.MAX_TITLE_LENGTH))
    description = fields.String(required=True, validate=validate.Length(max=Config.MAX_DESCRIPTION_LENGTH))
    cover_image_url = fields.String(allow_none=True)
    status = fields.String(validate=validate.OneOf(MODULE_STATUSES))
    order_index = fields.Integer(validate=validate.Range(min=0))

    @validates('title')
    def validate_title(self, value, **kwargs):
        _trimmed_required(value, 'Title')

    @validates('description')
    def validate_description(self, value, **kwargs):
        _trimmed_required(value, 'Description')


class LessonSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=Config.MAX_TITLE_LENGTH))
    content = fields.String(required=True, validate=validate.Length(max=Config.MAX_LESSON_CONTENT_LENGTH))
    video_url = fields.String(allow_none=True)
    materials_url = fields.String(allow_none=True)
    order_index = fields.Integer(validate=validate.Range(min=0))
    duration_minutes = fields.Integer(validate=validate.Range(min=0))
    has_quiz = fields.Boolean()
    quiz_data = fields.Raw(allow_none=True)

    @validates('title')
    def validate_title(self, value, **kwargs):
        _trimmed_required(value, 'Title')

    @validates('content')
    def validate_content(self, value, **kwargs):
        _trimmed_required(value, 'Content')


class QuizScoreSchema(BaseSchema):
    score = fields.Integer(
        required=True,
        validate=validate.Range(min=0, error='Score must be a non-negative number')
    )
    total_items = fields.Integer(
        required=True,
        validate=validate.Range(min=1, error='Total items must be greater than 0')
    )

    @validates_schema
    def validate_score(self, data, **kwargs):
        if 'score' in data and 'total_items' in data and data['score'] > data['total_items']:
            raise ValidationError('Score cannot be greater than total items', 'score')


class ReviewSchema(BaseSchema):
    comment = fields.String(allow_none=True, load_default=None)


class RejectSchema(BaseSchema):
    comment = fields.String(required=True, error_messages={'required': 'A comment is required when rejecting'})

    @validates('comment')
    def validate_comment(self, value, **kwargs):
        if not value or not value.strip():
            raise ValidationError('A comment is required when rejecting')


class NotificationSchema(BaseSchema):
    user_id = fields.Integer(required=True)
    title = fields.String(required=True, validate=validate.Length(min=1, max=Config.MAX_TITLE_LENGTH))
    message = fields.String(required=True)
    type = fields.String(load_default='info', validate=validate.OneOf(NOTIFICATION_TYPES))
    link = fields.String(allow_none=True)

    @validates('message')
    def validate_message(self, value, **kwargs):
        _trimmed_required(value, 'Message')


class AdminUserSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        validate=validate.Length(
            min=Config.MIN_PASSWORD_LENGTH,
            error=f'Password must be at least {Config.MIN_PASSWORD_LENGTH} characters'
        )
    )
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=Config.MAX_NAME_LENGTH))
    role = fields.String(load_default='student', validate=validate.OneOf(ROLES))


class AdminUserUpdateSchema(BaseSchema):
    full_name = fields.String(validate=validate.Length(min=1, max=Config.MAX_NAME_LENGTH))
    role = fields.String(validate=validate.OneOf(ROLES))
    is_active = fields.Boolean()


class ResetRequestSchema(BaseSchema):
    email = fields.Email(required=True)


class ActivitySchema(BaseSchema):
    action = fields.String(required=True, validate=validate.Length(min=1, max=100))
    entity_type = fields.String(allow_none=True, validate=validate.Length(max=50))
    entity_id = fields.Integer(allow_none=True)
    details = fields.Dict(allow_none=True)


class NoteSchema(BaseSchema):
    lesson_id = fields.Integer(allow_none=True, load_default=None)
    content = fields.String(load_default='')


class VideoSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    category = fields.String(load_default='general', validate=validate.Length(min=1, max=100))
    video_url = fields.String(required=True, validate=validate.Length(min=1, max=500))
    thumbnail_url = fields.String(allow_none=True)
    duration = fields.String(allow_none=True)
    is_featured = fields.Boolean(load_default=False)
    is_active = fields.Boolean()
    order = fields.Integer(load_default=0)


class VideoViewSchema(BaseSchema):
    watch_duration = fields.Integer(load_default=0, validate=validate.Range(min=0))
    completed = fields.Boolean(load_default=False)
