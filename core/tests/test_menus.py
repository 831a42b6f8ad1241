from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from core.models import MealRating, Menu, StudentProfile, User
from core.services import push
from .helpers import auth_client

pytestmark = pytest.mark.django_db


@pytest.fixture
def student(db):
    user = User.objects.create_user(username='22CS001', password='x', role=User.ROLE_STUDENT)
    StudentProfile.objects.create(user=user, name='Ravi', roll_number='22CS001', gender='Male')
    return user


def test_save_menu_normalises_meals(warden_client):
    day = timezone.localdate() + timedelta(days=1)
    r = warden_client.post('/api/menus/date', {'date': day.isoformat(),
                                               'meals': {'breakfast': ['Idli', ' Idli ', '<b>Vada</b>']}},
                           format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['meals'] == {'breakfast': ['Idli', 'Vada'], 'lunch': [], 'dinner': []}
    r = warden_client.post('/api/menus/date', {'date': day.isoformat(), 'meals': {'lunch': ['Rice']}},
                           format='json')
    assert r.status_code == 200
    assert Menu.objects.get(date=day).meals == {'breakfast': [], 'lunch': ['Rice'], 'dinner': []}


def test_unknown_meal_type_is_rejected(warden_client):
    r = warden_client.post('/api/menus/date', {'date': '2024-01-01', 'meals': {'brunch': ['Tea']}}, format='json')
    assert r.status_code == 400


def test_saving_todays_menu_notifies_students(warden_client, monkeypatch, django_capture_on_commit_callbacks):
    sent = []
    monkeypatch.setattr(push, 'notify_all_students', lambda payload: sent.append(payload) or 0)
    with django_capture_on_commit_callbacks(execute=True):
        warden_client.post('/api/menus/date', {'date': timezone.localdate().isoformat(),
                                               'meals': {'dinner': ['Biryani']}}, format='json')
        warden_client.post('/api/menus/date', {'date': (timezone.localdate() + timedelta(days=3)).isoformat(),
                                               'meals': {'dinner': ['Dal']}}, format='json')
    assert len(sent) == 1
    assert sent[0]['data']['type'] == 'menu'


def test_get_menu_for_missing_date_is_empty(warden_client):
    r = warden_client.get('/api/menus/date', {'date': '2024-01-01'})
    assert r.status_code == 200
    assert r.data['data']['meals'] == {'breakfast': [], 'lunch': [], 'dinner': []}
    assert warden_client.get('/api/menus/date').status_code == 400


def test_students_read_but_cannot_edit(student):
    client = auth_client(student)
    assert client.get('/api/menus/today').status_code == 200
    r = client.post('/api/menus/date', {'date': '2024-01-01', 'meals': {}}, format='json')
    assert r.status_code == 403


def test_add_and_remove_items(warden_client):
    body = {'date': '2024-05-01', 'mealType': 'lunch', 'item': 'Sambar'}
    assert warden_client.post('/api/menus/item', body, format='json').status_code == 200
    assert warden_client.post('/api/menus/item', body, format='json').status_code == 400
    r = warden_client.delete('/api/menus/item', body, format='json')
    assert r.status_code == 200
    assert r.data['data']['meals']['lunch'] == []
    assert warden_client.delete('/api/menus/item', body, format='json').status_code == 404


def test_image_upload_replaces_previous(warden_client, monkeypatch):
    from core.services import storage
    deleted = []
    monkeypatch.setattr(storage, 'delete_file', deleted.append)
    for name in ('a.jpg', 'b.jpg'):
        f = SimpleUploadedFile(name, b'\xff\xd8\xff', content_type='image/jpeg')
        r = warden_client.post('/api/menus/image', {'date': '2024-05-01', 'image': f}, format='multipart')
        assert r.status_code == 200, r.data
    assert len(deleted) == 1
    assert Menu.objects.get().image != deleted[0]


def test_rating_and_stats(student, warden_client):
    today = timezone.localdate()
    Menu.objects.create(date=today, meals={'breakfast': ['Poha'], 'lunch': ['Rice'], 'dinner': []})
    client = auth_client(student)
    r = client.post('/api/menus/rating', {'mealType': 'breakfast', 'rating': 4, 'comment': 'Good'}, format='json')
    assert r.status_code == 201, r.data
    r = client.post('/api/menus/rating', {'mealType': 'breakfast', 'rating': 5}, format='json')
    assert r.status_code == 200
    assert MealRating.objects.count() == 1
    assert client.post('/api/menus/rating', {'mealType': 'dinner', 'rating': 3}, format='json').status_code == 400
    assert client.post('/api/menus/rating', {'mealType': 'lunch', 'rating': 6}, format='json').status_code == 400
    assert warden_client.post('/api/menus/rating', {'mealType': 'lunch', 'rating': 3},
                              format='json').status_code == 403
    other = User.objects.create_user(username='22CS002', password='x', role=User.ROLE_STUDENT)
    StudentProfile.objects.create(user=other, name='Sita', roll_number='22CS002', gender='Female')
    auth_client(other).post('/api/menus/rating', {'mealType': 'breakfast', 'rating': 2, 'comment': 'Cold'},
                            format='json')
    stats = warden_client.get('/api/menus/rating/stats').data['data']['meals']['breakfast']
    assert stats['averageRating'] == 3.5
    assert stats['totalRatings'] == 2
    assert stats['ratingCounts'] == {'1': 0, '2': 1, '3': 0, '4': 0, '5': 1}
    assert [c['comment'] for c in stats['comments']] == ['Cold']
    assert client.get('/api/menus/today').data['data']['myRatings']['breakfast']['rating'] == 5


def test_rating_a_day_without_menu_is_404(student):
    r = auth_client(student).post('/api/menus/rating', {'mealType': 'lunch', 'rating': 3, 'date': '2020-01-01'},
                                  format='json')
    assert r.status_code == 404
