import pytest
from flask_jwt_extended import create_access_token

from mathturo import create_app, db
from mathturo.models import User, Module, Lesson


@pytest.fixture
def app(tmp_path):
    app = create_app('testing', {'UPLOAD_FOLDER': str(tmp_path / 'uploads')})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, role='student', full_name=None, password='secret123', is_active=True):
    user = User(
        email=email,
        full_name=full_name or email.split('@')[0].title(),
        role=role,
        is_active=is_active
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def headers_for(user):
    return {'Authorization': f'Bearer {create_access_token(identity=str(user.id))}'}


@pytest.fixture
def student(app):
    return make_user('student@example.com', 'student', 'Sam Student')


@pytest.fixture
def other_student(app):
    return make_user('student2@example.com', 'student', 'Alex Learner')


@pytest.fixture
def teacher(app):
    return make_user('teacher@example.com', 'teacher', 'Tina Teacher')


@pytest.fixture
def other_teacher(app):
    return make_user('teacher2@example.com', 'teacher', 'Omar Other')


@pytest.fixture
def admin(app):
    return make_user('admin@example.com', 'admin', 'Ada Admin')


@pytest.fixture
def auth(app):
    return headers_for


def make_module(teacher, title='Algebra Basics', status='published', lessons=2, order_index=1):
    module = Module(
        title=title,
        description=f'{title} description',
        teacher_id=teacher.id,
        status=status,
        order_index=order_index
    )
    db.session.add(module)
    db.session.flush()
    for i in range(1, lessons + 1):
        db.session.add(Lesson(
            module_id=module.id,
            title=f'{title} lesson {i}',
            content=f'Content for lesson {i}',
            order_index=i,
            has_quiz=True
        ))
    db.session.commit()
    return module


@pytest.fixture
def module(teacher):
    return make_module(teacher)


@pytest.fixture
def lesson(module):
    return module.lessons.first()


@pytest.fixture
def module_factory(app):
    return make_module


@pytest.fixture
def user_factory(app):
    return make_user
