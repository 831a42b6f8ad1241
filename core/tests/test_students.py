import io

import openpyxl
import pytest
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from core.models import FeeReminder, Room, StudentProfile, TempCredential, User
from core.services.counters import peek_sequence
from core.services import fee_reminders, sms
from .helpers import auth_client, student_payload

pytestmark = pytest.mark.django_db

YY = f'{timezone.localdate().year % 100:02d}'


def create(client, **overrides):
    return client.post('/api/students', student_payload(**overrides), format='json')


def test_create_student_registers_everything(admin_client, male_room):
    r = create(admin_client)
    assert r.status_code == 201, r.data
    data = r.data['data']
    assert r.data['success'] is True
    assert data['hostelId'] == f'BH{YY}001'
    assert data['rollNumber'] == '22CS001'
    assert data['generatedPassword']
    profile = StudentProfile.objects.get(roll_number='22CS001')
    assert profile.user.username == '22CS001'
    assert profile.user.role == User.ROLE_STUDENT
    assert profile.user.check_password(data['generatedPassword'])
    assert TempCredential.objects.get(student=profile).generated_password == data['generatedPassword']
    reminder = FeeReminder.objects.get(student=profile)
    assert reminder.academic_year == '2024-2025'
    assert reminder.term1_amount == 15000


def test_roll_number_is_upper_cased_and_unique(admin_client, male_room):
    assert create(admin_client, rollNumber='22cs001').status_code == 201
    r = create(admin_client, rollNumber='22CS001')
    assert r.status_code == 400
    assert r.data['success'] is False
    assert 'already exists' in r.data['message']


def test_full_room_is_rejected_without_consuming_an_id(admin_client, male_room):
    assert create(admin_client, rollNumber='A1').status_code == 201
    assert create(admin_client, rollNumber='A2').status_code == 201
    r = create(admin_client, rollNumber='A3')
    assert r.status_code == 400
    assert r.data['message'] == 'Room 302 is full (0 beds available)'
    assert peek_sequence('BH', YY) == 2
    assert not User.objects.filter(username='A3').exists()


def test_unknown_room_for_category_is_404(admin_client, male_room):
    r = create(admin_client, category='A', roomNumber='302')
    assert r.status_code == 404


def test_category_must_match_gender(admin_client, male_room):
    r = create(admin_client, category='C')
    assert r.status_code == 400
    assert 'category' in r.data['error']


def test_invalid_phone_is_rejected(admin_client, male_room):
    r = create(admin_client, studentPhone='12345')
    assert r.status_code == 400
    assert r.data['error']['studentPhone']


def test_registration_notifications_after_commit(admin_client, male_room, settings, monkeypatch,
                                                 django_capture_on_commit_callbacks):
    settings.SMS_ENABLE = True
    sent = []
    monkeypatch.setattr(sms, 'send_sms', lambda phone, message, template_id=None: sent.append((phone, message)))
    with django_capture_on_commit_callbacks(execute=True):
        r = create(admin_client)
    assert r.status_code == 201
    assert sent and sent[0][0] == '9876543210'
    assert '22CS001' in sent[0][1]
    assert len(mail.outbox) == 1
    assert r.data['data']['hostelId'] in mail.outbox[0].body


def test_sms_failure_does_not_undo_the_student(admin_client, male_room, settings, monkeypatch,
                                               django_capture_on_commit_callbacks):
    settings.SMS_ENABLE = True

    def boom(*args, **kwargs):
        raise sms.SmsError('gateway down')

    monkeypatch.setattr(sms, 'send_sms', boom)
    with django_capture_on_commit_callbacks(execute=True):
        r = create(admin_client)
    assert r.status_code == 201
    assert StudentProfile.objects.filter(roll_number='22CS001').exists()


def test_photo_upload_is_stored(admin_client, male_room):
    data = student_payload()
    data['studentPhoto'] = SimpleUploadedFile('me.jpg', b'\xff\xd8\xff', content_type='image/jpeg')
    r = admin_client.post('/api/students', data, format='multipart')
    assert r.status_code == 201, r.data
    assert r.data['data']['studentPhoto'].startswith('https://bucket.s3')


def test_soft_delete_and_reactivation_keep_hostel_id(admin_client, male_room):
    sid = create(admin_client).data['data']['id']
    hostel_id = StudentProfile.objects.get(pk=sid).hostel_id
    r = admin_client.delete(f'/api/students/{sid}')
    assert r.status_code == 200
    assert StudentProfile.objects.get(pk=sid).is_active is False
    r = admin_client.put(f'/api/students/{sid}', {'isActive': True}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['isActive'] is True
    assert r.data['data']['hostelId'] == hostel_id
    assert peek_sequence('BH', YY) == 1


def test_deactivating_edit_lands_in_one_transaction(admin_client, male_room, monkeypatch):
    sid = create(admin_client).data['data']['id']
    r = admin_client.put(f'/api/students/{sid}', {'name': 'Ravi Kumar', 'isActive': False}, format='json')
    assert r.status_code == 200, r.data
    assert (r.data['data']['name'], r.data['data']['isActive']) == ('Ravi Kumar', False)

    admin_client.put(f'/api/students/{sid}', {'isActive': True}, format='json')

    def boom(*args, **kwargs):
        raise RuntimeError('pricing failed')

    monkeypatch.setattr(fee_reminders, 'price_student', boom)
    r = admin_client.put(f'/api/students/{sid}', {'name': 'Someone Else', 'category': 'A+', 'isActive': False},
                         format='json')
    assert r.status_code == 500
    profile = StudentProfile.objects.get(pk=sid)
    assert (profile.name, profile.is_active) == ('Ravi Kumar', True)


def test_reactivation_rechecks_capacity(admin_client, male_room):
    sid = create(admin_client, rollNumber='A1').data['data']['id']
    admin_client.delete(f'/api/students/{sid}')
    create(admin_client, rollNumber='A2')
    create(admin_client, rollNumber='A3')
    r = admin_client.put(f'/api/students/{sid}', {'isActive': True}, format='json')
    assert r.status_code == 400
    assert 'full' in r.data['message']


def test_edit_in_a_full_room_excludes_self(admin_client, male_room):
    sid = create(admin_client, rollNumber='A1').data['data']['id']
    create(admin_client, rollNumber='A2')
    r = admin_client.put(f'/api/students/{sid}', {'roomNumber': '302', 'bedNumber': '3'}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['bedNumber'] == '3'


def test_list_filters_and_paginates(admin_client, male_room, female_room):
    create(admin_client, rollNumber='A1', name='Arjun')
    create(admin_client, rollNumber='B1', name='Bhavana', gender='Female', roomNumber='209')
    r = admin_client.get('/api/students', {'gender': 'Female'})
    assert r.status_code == 200
    students = r.data['data']['students']
    assert [s['rollNumber'] for s in students] == ['B1']
    assert students[0]['hostelId'].startswith('GH')
    r = admin_client.get('/api/students', {'search': 'arj', 'limit': 1})
    assert r.data['data']['pagination'] == {'current': 1, 'limit': 1, 'total': 1, 'totalItems': 1}


def test_students_cannot_manage_students(admin_client, male_room):
    create(admin_client)
    student = User.objects.get(username='22CS001')
    r = auth_client(student).get('/api/students')
    assert r.status_code == 403
    r = auth_client(student).get('/api/student/profile')
    assert r.status_code == 200
    assert r.data['data']['rollNumber'] == '22CS001'


def test_anonymous_requests_are_rejected(client):
    r = client.get('/api/students')
    assert r.status_code == 401
    assert r.json()['success'] is False


def test_public_roll_number_search(admin_client, male_room, client):
    create(admin_client)
    r = client.get('/api/students/search', {'rollNumber': '22cs001'})
    assert r.status_code == 200
    data = r.json()['data']
    assert data['found'] is True
    assert data['type'] == 'student'
    assert 'studentPhone' not in data
    r = client.get('/api/students/search', {'rollNumber': 'NOPE1'})
    assert r.json()['data']['found'] is False


def test_temp_credentials_disappear_after_password_change(admin_client, male_room):
    password = create(admin_client).data['data']['generatedPassword']
    r = admin_client.get('/api/students/temp-credentials')
    assert [c['rollNumber'] for c in r.data['data']] == ['22CS001']
    student = User.objects.get(username='22CS001')
    r = auth_client(student).post('/api/auth/change-password',
                                  {'currentPassword': password, 'newPassword': 'N3wPassw0rd!'}, format='json')
    assert r.status_code == 200, r.data
    assert admin_client.get('/api/students/temp-credentials').data['data'] == []


def workbook(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(['Name', 'RollNumber', 'Degree', 'Branch', 'Year', 'RoomNumber', 'StudentPhone', 'ParentPhone',
               'Gender', 'Email'])
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return SimpleUploadedFile('students.xlsx', buf.getvalue(),
                              content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')


def test_import_adds_skips_and_reports(admin_client, male_room):
    Room.objects.create(room_number='101', gender='Female', category='B', bed_count=1)
    f = workbook([
        ['Ravi', '22cs001', 'B.Tech', 'CSE', 2, '302', 9876543210, 9876543211, 'Male', 'r@example.com'],
        ['Ravi again', '22CS001', 'B.Tech', 'CSE', 2, '302', '', '', 'Male', ''],
        ['', '22CS009', '', '', '', '', '', '', '', ''],
        ['Sita', '22CS002', 'B.Tech', 'ECE', 1, '101', '', '', 'Female', ''],
        ['Gita', '22CS003', 'B.Tech', 'ECE', 1, '101', '', '', 'Female', ''],
        ['Nobody', '22CS004', 'B.Tech', 'ECE', 1, '999', '', '', 'Male', ''],
        ['No Gender', '22CS005', 'B.Tech', 'ECE', 1, '', '', '', '', ''],
    ])
    r = admin_client.post('/api/students/import', {'file': f}, format='multipart')
    assert r.status_code == 200, r.data
    data = r.data['data']
    assert (data['added'], data['skipped']) == (3, 4)
    assert data['message'] == 'Added: 3, Skipped: 4'
    assert {e['rollNumber'] for e in data['errors']} == {'22CS003', '22CS004'}
    sita = StudentProfile.objects.get(roll_number='22CS002')
    assert sita.category == 'B'
    assert sita.hostel_id.startswith('GH')
    assert StudentProfile.objects.get(roll_number='22CS001').student_phone == '9876543210'
    assert StudentProfile.objects.get(roll_number='22CS005').hostel_id is None


def test_import_requires_name_and_roll_columns(admin_client):
    wb = openpyxl.Workbook()
    wb.active.append(['Name', 'Degree'])
    buf = io.BytesIO()
    wb.save(buf)
    f = SimpleUploadedFile('x.xlsx', buf.getvalue())
    r = admin_client.post('/api/students/import', {'file': f}, format='multipart')
    assert r.status_code == 400
    assert 'RollNumber' in r.data['message']
