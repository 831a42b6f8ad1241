from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail
from django.core.management import call_command
from django.utils import timezone

from core.models import FeeReminder, FeeStructure, StudentProfile, User
from core.services import fee_reminders, push
from core.services.fee_reminders import calculate_term_fees
from .helpers import auth_client

pytestmark = pytest.mark.django_db


def make_student(roll='22CS001', *, year='2024-2025', category='A+'):
    user = User.objects.create_user(username=roll, password='x', role=User.ROLE_STUDENT)
    return StudentProfile.objects.create(user=user, name=roll, roll_number=roll, gender='Male', category=category,
                                         academic_year=year, email=f'{roll.lower()}@example.com')


def test_concession_is_applied_term_by_term():
    fees = (Decimal('20000'), Decimal('15000'), Decimal('15000'))
    assert calculate_term_fees(fees, 0) == (20000, 15000, 15000, 50000)
    assert calculate_term_fees(fees, 5000) == (15000, 15000, 15000, 45000)
    assert calculate_term_fees(fees, 30000) == (0, 5000, 15000, 20000)
    assert calculate_term_fees(fees, 99999) == (0, 0, 0, 0)


def test_schedule_dates_and_default_amounts():
    profile = make_student()
    registered = timezone.now() - timedelta(days=1)
    reminder, created = fee_reminders.create_for_student(profile, registration_date=registered)
    assert created
    assert reminder.first_reminder_date == registered + timedelta(days=5)
    assert reminder.second_reminder_date == registered + timedelta(days=90)
    assert reminder.third_reminder_date == registered + timedelta(days=210)
    assert reminder.term1_amount == Decimal('15000')
    _, created = fee_reminders.create_for_student(profile)
    assert not created


def test_amounts_come_from_fee_structure():
    FeeStructure.objects.create(academic_year='2024-2025', category='A+', term1_fee=1000, term2_fee=2000,
                                term3_fee=3000)
    reminder, _ = fee_reminders.create_for_student(make_student())
    assert (reminder.term1_amount, reminder.term2_amount, reminder.term3_amount) == (1000, 2000, 3000)


def test_one_reminder_issued_per_run(django_capture_on_commit_callbacks, monkeypatch):
    pushed = []
    monkeypatch.setattr(push, 'send_to_user', lambda user, payload: pushed.append(payload) or 0)
    profile = make_student()
    now = timezone.now()
    fee_reminders.create_for_student(profile, registration_date=now - timedelta(days=100))
    with django_capture_on_commit_callbacks(execute=True):
        assert fee_reminders.process_due_reminders(now) == 1
    reminder = FeeReminder.objects.get()
    assert reminder.current_reminder == 1
    assert reminder.first_reminder_visible
    assert len(mail.outbox) == 1
    assert pushed[0]['data']['type'] == 'fee_reminder'
    with django_capture_on_commit_callbacks(execute=True):
        assert fee_reminders.process_due_reminders(now) == 1
    reminder.refresh_from_db()
    assert reminder.current_reminder == 2
    assert fee_reminders.process_due_reminders(now) == 0


def test_paid_terms_are_not_reminded():
    profile = make_student()
    now = timezone.now()
    reminder, _ = fee_reminders.create_for_student(profile, registration_date=now - timedelta(days=10))
    reminder.term1_status = FeeReminder.PAID
    reminder.save()
    assert fee_reminders.process_due_reminders(now) == 0


def test_visibility_window_is_three_days():
    profile = make_student()
    now = timezone.now()
    fee_reminders.create_for_student(profile, registration_date=now - timedelta(days=6))
    fee_reminders.process_due_reminders(now)
    reminder = FeeReminder.objects.get()
    assert [v['number'] for v in fee_reminders.visible_reminders(reminder, now + timedelta(days=2))] == [1]
    assert fee_reminders.visible_reminders(reminder, now + timedelta(days=4)) == []
    assert fee_reminders.refresh_visibility(now + timedelta(days=4)) == 1
    reminder.refresh_from_db()
    assert not reminder.first_reminder_visible


def test_student_sees_only_their_own(admin_client):
    mine = make_student('22CS001')
    other = make_student('22CS002')
    fee_reminders.create_for_student(mine)
    client = auth_client(mine.user)
    r = client.get(f'/api/fee-reminders/student/{mine.pk}')
    assert r.status_code == 200
    assert len(r.data['data']['reminders']) == 1
    assert r.data['data']['allTermsPaid'] is False
    assert client.get(f'/api/fee-reminders/student/{other.pk}').status_code == 403
    assert admin_client.get(f'/api/fee-reminders/student/{other.pk}').status_code == 200


def test_status_update_stats_and_list(admin_client, monkeypatch, django_capture_on_commit_callbacks):
    pushed = []
    monkeypatch.setattr(push, 'send_to_user', lambda user, payload: pushed.append(payload) or 0)
    reminder, _ = fee_reminders.create_for_student(make_student('22CS001'))
    fee_reminders.create_for_student(make_student('22CS002'))
    with django_capture_on_commit_callbacks(execute=True):
        r = admin_client.put(f'/api/fee-reminders/{reminder.pk}/status',
                             {'term1': 'Paid', 'term2': 'Paid', 'term3': 'Paid'}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['allTermsPaid'] is True
    assert r.data['data']['paidAmount'] == 45000.0
    assert pushed[0]['data']['type'] == 'fee_status'
    assert admin_client.put(f'/api/fee-reminders/{reminder.pk}/status', {'term1': 'Maybe'},
                            format='json').status_code == 400
    stats = admin_client.get('/api/fee-reminders/stats').data['data']
    assert (stats['totalStudents'], stats['paidStudents'], stats['pendingStudents']) == (2, 1, 1)
    assert stats['paymentRate'] == 50.0
    rows = admin_client.get('/api/fee-reminders', {'status': 'pending'}).data['data']['feeReminders']
    assert [row['student']['rollNumber'] for row in rows] == ['22CS002']


def test_create_all_and_manual_create(admin_client):
    make_student('22CS001')
    make_student('22CS002', year='')
    r = admin_client.post('/api/fee-reminders/create-all', {}, format='json')
    assert r.data['data'] == {'created': 1, 'skipped': 1}
    profile = StudentProfile.objects.get(roll_number='22CS002')
    r = admin_client.post('/api/fee-reminders', {'studentId': profile.pk, 'academicYear': '2024-2025'},
                          format='json')
    assert r.status_code == 201
    r = admin_client.post('/api/fee-reminders', {'studentId': profile.pk, 'academicYear': '2024-2025'},
                          format='json')
    assert r.status_code == 200


def test_fee_structure_upsert_is_for_managers(admin_client, warden_client):
    body = {'academicYear': '2024-2025', 'category': 'A', 'term1Fee': '100', 'term2Fee': '100', 'term3Fee': '50'}
    assert warden_client.post('/api/fee-structures', body, format='json').status_code == 403
    assert admin_client.post('/api/fee-structures', body, format='json').status_code == 201
    body['term3Fee'] = '75'
    r = admin_client.post('/api/fee-structures', body, format='json')
    assert r.status_code == 200
    assert r.data['data']['totalFee'] == 275.0
    assert FeeStructure.objects.count() == 1
    body['term1Fee'] = '-1'
    assert admin_client.post('/api/fee-structures', body, format='json').status_code == 400
    assert len(warden_client.get('/api/fee-structures').data['data']) == 1


def test_management_command(capsys):
    fee_reminders.create_for_student(make_student(), registration_date=timezone.now() - timedelta(days=6))
    call_command('process_fee_reminders')
    assert 'Issued 1 reminders' in capsys.readouterr().out
    assert FeeReminder.objects.get().current_reminder == 1
