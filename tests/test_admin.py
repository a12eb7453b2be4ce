from mathturo import db
from mathturo.models import User, ActivityLog
from mathturo.services.activity import log_activity
from mathturo.utils.cache import get_cache, SYSTEM_STATS_KEY


def test_get_users_with_role_filter(client, admin, student, teacher, auth):
    response = client.get('/api/admin/users', headers=auth(admin))
    assert len(response.get_json()) == 3

    response = client.get('/api/admin/users?role=teacher', headers=auth(admin))
    assert [u['email'] for u in response.get_json()] == ['teacher@example.com']

    assert client.get('/api/admin/users?role=wizard', headers=auth(admin)).status_code == 400


def test_non_admin_is_refused(client, teacher, auth):
    response = client.get('/api/admin/users', headers=auth(teacher))
    assert response.status_code == 403
    assert response.get_json()['message'] == 'Admin access required'


def test_create_user_with_any_role(client, admin, auth):
    response = client.post('/api/admin/users', json={
        'email': 'second-admin@example.com',
        'password': 'secret123',
        'full_name': 'Second Admin',
        'role': 'admin'
    }, headers=auth(admin))

    assert response.status_code == 201
    assert response.get_json()['user']['role'] == 'admin'


def test_create_user_duplicate_email(client, admin, student, auth):
    response = client.post('/api/admin/users', json={
        'email': 'student@example.com', 'password': 'secret123', 'full_name': 'Copy'
    }, headers=auth(admin))
    assert response.status_code == 409


def test_deactivated_user_is_locked_out(client, admin, student, auth):
    response = client.put(f'/api/admin/users/{student.id}', json={'is_active': False},
                          headers=auth(admin))
    assert response.status_code == 200
    assert response.get_json()['user']['is_active'] is False

    assert client.get('/api/auth/profile', headers=auth(student)).status_code == 403
    response = client.post('/api/auth/login', json={
        'email': 'student@example.com', 'password': 'secret123'
    })
    assert response.status_code == 403


def test_admin_cannot_demote_self(client, admin, auth):
    response = client.put(f'/api/admin/users/{admin.id}', json={'role': 'student'},
                          headers=auth(admin))
    assert response.status_code == 400


def test_delete_user(client, admin, student, auth):
    log_activity('login', user_id=student.id)
    student_id = student.id

    response = client.delete(f'/api/admin/users/{student_id}', headers=auth(admin))

    assert response.status_code == 200
    assert db.session.get(User, student_id) is None
    assert ActivityLog.query.filter_by(action='login').one().user_id is None


def test_deleting_teacher_drops_their_modules_from_catalogue(client, admin, teacher, module, auth):
    assert len(client.get('/api/modules').get_json()) == 1
    module_id = module.id

    response = client.delete(f'/api/admin/users/{teacher.id}', headers=auth(admin))

    assert response.status_code == 200
    assert client.get('/api/modules').get_json() == []
    assert client.get(f'/api/modules/{module_id}').status_code == 404


def test_renaming_teacher_refreshes_catalogue(client, admin, teacher, module, auth):
    client.get('/api/modules')

    client.put(f'/api/admin/users/{teacher.id}', json={'full_name': 'Mr. Cruz'}, headers=auth(admin))

    assert client.get('/api/modules').get_json()[0]['teacher_name'] == 'Mr. Cruz'


def test_cannot_delete_self(client, admin, auth):
    response = client.delete(f'/api/admin/users/{admin.id}', headers=auth(admin))
    assert response.status_code == 400


def test_system_stats_are_cached(client, admin, student, teacher, lesson, auth):
    data = client.get('/api/admin/stats', headers=auth(admin)).get_json()

    assert data['total_users'] == 3
    assert data['total_students'] == 1
    assert data['published_modules'] == 1
    assert data['total_lessons'] == 2
    assert data['pending_submissions'] == 0
    assert SYSTEM_STATS_KEY in get_cache()

    # rows written outside the API are only seen once the entry is cleared
    db.session.add(User(email='direct@example.com', full_name='Direct', password_hash='x'))
    db.session.commit()
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['total_users'] == 3

    client.delete('/api/admin/cache', headers=auth(admin))
    fresh = client.get('/api/admin/stats', headers=auth(admin)).get_json()
    assert fresh['total_users'] == 4


def test_quiz_submission_refreshes_stats(client, admin, student, lesson, auth):
    client.get('/api/admin/stats', headers=auth(admin))

    client.post(f'/api/student/lessons/{lesson.id}/quiz', json={'score': 1, 'total_items': 2},
                headers=auth(student))

    assert SYSTEM_STATS_KEY not in get_cache()
    fresh = client.get('/api/admin/stats', headers=auth(admin)).get_json()
    assert fresh['pending_submissions'] == 1
    assert fresh['total_submissions'] == 1


def test_registration_refreshes_stats(client, admin, auth):
    client.get('/api/admin/stats', headers=auth(admin))

    client.post('/api/auth/register', json={
        'email': 'fresh@example.com', 'password': 'secret123',
        'full_name': 'Fresh Student', 'role': 'student'
    })

    data = client.get('/api/admin/stats', headers=auth(admin)).get_json()
    assert data['total_users'] == 2
    assert data['total_students'] == 1


def test_module_and_lesson_writes_refresh_stats(client, admin, teacher, auth):
    client.get('/api/admin/stats', headers=auth(admin))

    response = client.post('/api/modules', json={
        'title': 'Statistics', 'description': 'Averages and spread'
    }, headers=auth(teacher))
    module_id = response.get_json()['module']['id']
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['total_modules'] == 1

    client.post(f'/api/modules/{module_id}/publish', headers=auth(teacher))
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['published_modules'] == 1

    response = client.post(f'/api/modules/{module_id}/lessons', json={
        'title': 'Mean', 'content': 'Add and divide'
    }, headers=auth(teacher))
    lesson_id = response.get_json()['lesson']['id']
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['total_lessons'] == 1

    client.delete(f'/api/lessons/{lesson_id}', headers=auth(teacher))
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['total_lessons'] == 0

    client.delete(f'/api/modules/{module_id}', headers=auth(teacher))
    assert client.get('/api/admin/stats', headers=auth(admin)).get_json()['total_modules'] == 0


def test_activity_log_newest_first_with_limit(client, admin, student, auth):
    for action in ('first', 'second', 'third'):
        log_activity(action, user_id=student.id)

    response = client.get('/api/admin/activity?limit=2', headers=auth(admin))
    data = response.get_json()

    assert [entry['action'] for entry in data] == ['third', 'second']
    assert data[0]['user']['full_name'] == 'Sam Student'


def test_any_user_can_log_activity(client, student, auth):
    response = client.post('/api/activity', json={
        'action': 'view_lesson', 'entity_type': 'lesson', 'entity_id': 3,
        'details': {'source': 'dashboard'}
    }, headers={**auth(student), 'User-Agent': 'pytest-browser'})

    assert response.status_code == 201
    entry = ActivityLog.query.filter_by(action='view_lesson').one()
    assert entry.user_id == student.id
    assert entry.details == {'source': 'dashboard'}
    assert entry.user_agent == 'pytest-browser'


def test_log_activity_requires_action(client, student, auth):
    response = client.post('/api/activity', json={}, headers=auth(student))
    assert response.status_code == 400
