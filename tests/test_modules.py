import io

from mathturo import db
from mathturo.models import Module, Lesson, Notification


def test_public_catalogue_lists_published_only(client, teacher, module_factory):
    module_factory(teacher, 'Published', order_index=2)
    module_factory(teacher, 'Draft', status='draft', order_index=1)

    response = client.get('/api/modules')

    assert response.status_code == 200
    assert [m['title'] for m in response.get_json()] == ['Published']
    assert response.get_json()[0]['total_lessons'] == 2


def test_teacher_sees_published_and_own_drafts(client, teacher, other_teacher, auth, module_factory):
    module_factory(teacher, 'Mine', status='draft', order_index=1)
    module_factory(other_teacher, 'Theirs', status='draft', order_index=2)
    module_factory(other_teacher, 'Live', order_index=3)

    response = client.get('/api/modules?all=true', headers=auth(teacher))

    assert [m['title'] for m in response.get_json()] == ['Mine', 'Live']


def test_admin_sees_everything(client, teacher, admin, auth, module_factory):
    module_factory(teacher, 'Draft', status='draft')
    module_factory(teacher, 'Archived', status='archived')

    response = client.get('/api/modules?all=true', headers=auth(admin))

    assert len(response.get_json()) == 2


def test_get_module_includes_ordered_lessons(client, module):
    response = client.get(f'/api/modules/{module.id}')
    data = response.get_json()

    assert response.status_code == 200
    assert [lesson['order_index'] for lesson in data['lessons']] == [1, 2]


def test_draft_module_is_hidden_from_students(client, teacher, student, auth, module_factory):
    draft = module_factory(teacher, 'Draft', status='draft')

    assert client.get(f'/api/modules/{draft.id}').status_code == 404
    assert client.get(f'/api/modules/{draft.id}', headers=auth(student)).status_code == 404
    assert client.get(f'/api/modules/{draft.id}', headers=auth(teacher)).status_code == 200


def test_missing_module(client):
    response = client.get('/api/modules/999')
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Module not found'


def test_create_module_as_draft_with_next_order(client, teacher, auth, module_factory):
    module_factory(teacher, 'Existing', order_index=4)

    response = client.post('/api/modules', json={
        'title': 'Fractions', 'description': 'Parts of a whole'
    }, headers=auth(teacher))
    data = response.get_json()['module']

    assert response.status_code == 201
    assert data['status'] == 'draft'
    assert data['order_index'] == 5
    assert data['teacher_id'] == teacher.id


def test_first_module_gets_order_one(client, teacher, auth):
    response = client.post('/api/modules', json={
        'title': 'Fractions', 'description': 'Parts of a whole'
    }, headers=auth(teacher))
    assert response.get_json()['module']['order_index'] == 1


def test_create_module_requires_title_and_description(client, teacher, auth):
    response = client.post('/api/modules', json={'title': 'No description'}, headers=auth(teacher))
    assert response.status_code == 400
    assert 'description' in response.get_json()['errors']

    response = client.post('/api/modules', json={'title': '   ', 'description': 'x'},
                           headers=auth(teacher))
    assert response.status_code == 400


def test_student_cannot_create_module(client, student, auth):
    response = client.post('/api/modules', json={
        'title': 'Fractions', 'description': 'Parts of a whole'
    }, headers=auth(student))
    assert response.status_code == 403


def test_only_owner_or_admin_can_update(client, module, other_teacher, admin, auth):
    response = client.put(f'/api/modules/{module.id}', json={'title': 'Hijacked'},
                          headers=auth(other_teacher))
    assert response.status_code == 403

    response = client.put(f'/api/modules/{module.id}', json={'title': 'Renamed'},
                          headers=auth(admin))
    assert response.status_code == 200
    assert response.get_json()['module']['title'] == 'Renamed'
    assert response.get_json()['module']['status'] == 'published'


def test_toggle_publish_notifies_students(client, teacher, student, auth, module_factory):
    draft = module_factory(teacher, 'Ratios', status='draft')

    response = client.post(f'/api/modules/{draft.id}/publish', headers=auth(teacher))

    assert response.status_code == 200
    assert response.get_json()['status'] == 'published'
    notification = Notification.query.filter_by(user_id=student.id).one()
    assert notification.type == 'new_module'

    response = client.post(f'/api/modules/{draft.id}/publish', headers=auth(teacher))
    assert response.get_json()['status'] == 'draft'


def test_delete_module_removes_lessons(client, module, teacher, auth):
    module_id = module.id

    response = client.delete(f'/api/modules/{module_id}', headers=auth(teacher))

    assert response.status_code == 200
    assert db.session.get(Module, module_id) is None
    assert Lesson.query.filter_by(module_id=module_id).count() == 0


def test_create_lesson_appends_to_module(client, module, teacher, auth):
    response = client.post(f'/api/modules/{module.id}/lessons', json={
        'title': 'Word problems', 'content': 'Read carefully', 'has_quiz': True
    }, headers=auth(teacher))
    data = response.get_json()['lesson']

    assert response.status_code == 201
    assert data['order_index'] == 3
    assert data['has_quiz'] is True
    assert module.total_lessons == 3


def test_create_lesson_requires_content(client, module, teacher, auth):
    response = client.post(f'/api/modules/{module.id}/lessons', json={'title': 'Empty'},
                           headers=auth(teacher))
    assert response.status_code == 400


def test_get_lesson_includes_module_title(client, lesson):
    response = client.get(f'/api/lessons/{lesson.id}')
    assert response.status_code == 200
    assert response.get_json()['module']['title'] == 'Algebra Basics'


def test_update_and_delete_lesson(client, lesson, teacher, other_teacher, auth):
    response = client.put(f'/api/lessons/{lesson.id}', json={'duration_minutes': 15},
                          headers=auth(teacher))
    assert response.get_json()['lesson']['duration_minutes'] == 15

    assert client.delete(f'/api/lessons/{lesson.id}', headers=auth(other_teacher)).status_code == 403
    assert client.delete(f'/api/lessons/{lesson.id}', headers=auth(teacher)).status_code == 200


def test_upload_material_sets_materials_url(client, lesson, teacher, auth):
    response = client.post(f'/api/lessons/{lesson.id}/materials', data={
        'file': (io.BytesIO(b'%PDF-1.4 worksheet'), 'worksheet.pdf')
    }, headers=auth(teacher), content_type='multipart/form-data')
    data = response.get_json()

    assert response.status_code == 201
    assert data['path'].startswith(f'learning_materials/{lesson.module_id}_{lesson.id}_')
    assert data['path'].endswith('.pdf')
    assert data['lesson']['materials_url'] == data['url']


def test_upload_material_without_file(client, lesson, teacher, auth):
    response = client.post(f'/api/lessons/{lesson.id}/materials', data={},
                           headers=auth(teacher), content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'No file selected'
