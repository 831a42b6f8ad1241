import pytest
from django.core.cache import cache

from core.models import Room, User
from core.services import storage
from .helpers import auth_client


@pytest.fixture(autouse=True)
def _isolate(settings, monkeypatch):
    """No network in tests: locmem email, no SMS, no push, fake object storage."""
    cache.clear()
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.SMS_ENABLE = False
    settings.VAPID_PUBLIC_KEY = ''
    settings.VAPID_PRIVATE_KEY = ''
    uploads = []

    def fake_upload(f, folder):
        url = f'https://bucket.s3.ap-south-1.amazonaws.com/{folder}/{len(uploads) + 1}.jpg'
        uploads.append(url)
        return url

    monkeypatch.setattr(storage, 'upload_file', fake_upload)
    monkeypatch.setattr(storage, 'delete_file', lambda url: None)
    yield


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)


@pytest.fixture
def warden_user(db):
    return User.objects.create_user(username='warden1', password='P@ssw0rd1', role=User.ROLE_WARDEN)


@pytest.fixture
def admin_client(admin_user):
    return auth_client(admin_user)


@pytest.fixture
def warden_client(warden_user):
    return auth_client(warden_user)


@pytest.fixture
def male_room(db):
    return Room.objects.create(room_number='302', gender='Male', category='A+', bed_count=2)


@pytest.fixture
def female_room(db):
    return Room.objects.create(room_number='209', gender='Female', category='A+', bed_count=2)
