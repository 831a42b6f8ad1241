from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from core.models import HostelSettings, Room, StaffGuest
from core.services import storage
from core.services.staff_guests import expire_monthly_staff

pytestmark = pytest.mark.django_db


def payload(**overrides):
    data = {
        'name': 'Mohan Rao',
        'type': 'staff',
        'gender': 'Male',
        'profession': 'Cook',
        'phoneNumber': '9123456780',
        'department': 'Mess',
        'stayType': 'daily',
        'checkinDate': (timezone.localdate() - timedelta(days=5)).isoformat(),
        'dailyRate': '100',
        'roomNumber': '302',
    }
    data.update(overrides)
    return data


def test_create_staff_prices_stay_and_issues_id(admin_client, male_room):
    r = admin_client.post('/api/staff-guests', payload(), format='json')
    assert r.status_code == 201, r.data
    data = r.data['data']
    assert data['calculatedCharges'] == 600.0
    assert data['hostelId'].startswith('BH')
    assert data['createdBy'] == 'admin1'


def test_guest_is_not_charged_and_has_no_department(admin_client, male_room):
    r = admin_client.post('/api/staff-guests', payload(type='guest'), format='json')
    assert r.status_code == 201
    assert r.data['data']['calculatedCharges'] == 0.0
    assert r.data['data']['department'] == ''


def test_staff_use_default_rate_when_no_override(admin_client, male_room):
    HostelSettings.objects.create(pk=1, default_daily_rate=Decimal('50'))
    r = admin_client.post('/api/staff-guests', payload(dailyRate=''), format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['calculatedCharges'] == 300.0
    assert r.data['data']['dailyRate'] is None


def test_monthly_stay_needs_month(admin_client, male_room):
    r = admin_client.post('/api/staff-guests', payload(stayType='monthly'), format='json')
    assert r.status_code == 400
    assert 'selectedMonth' in r.data['error']
    month = timezone.localdate().strftime('%Y-%m')
    r = admin_client.post('/api/staff-guests', payload(stayType='monthly', selectedMonth=month), format='json')
    assert r.status_code == 201


def test_duplicate_active_phone_is_rejected(admin_client, male_room):
    admin_client.post('/api/staff-guests', payload(), format='json')
    r = admin_client.post('/api/staff-guests', payload(name='Other Person', roomNumber=''), format='json')
    assert r.status_code == 400
    assert 'Phone number already exists' in r.data['message']


def test_staff_share_capacity_with_students(admin_client, male_room):
    assert admin_client.post('/api/staff-guests', payload(), format='json').status_code == 201
    assert admin_client.post('/api/staff-guests', payload(phoneNumber='9123456781'),
                             format='json').status_code == 201
    r = admin_client.post('/api/staff-guests', payload(phoneNumber='9123456782'), format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Room 302 is full (0 beds available)'


def test_update_reprices_when_dates_change(admin_client, male_room):
    sid = admin_client.post('/api/staff-guests', payload(), format='json').data['data']['id']
    checkin = timezone.localdate() - timedelta(days=1)
    r = admin_client.put(f'/api/staff-guests/{sid}', {'checkinDate': checkin.isoformat()}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['calculatedCharges'] == 200.0


def test_checkout_requires_checkin(admin_client, male_room):
    sid = admin_client.post('/api/staff-guests', payload(), format='json').data['data']['id']
    r = admin_client.post(f'/api/staff-guests/{sid}/check-in-out', {'action': 'checkout'}, format='json')
    assert r.status_code == 400
    r = admin_client.post(f'/api/staff-guests/{sid}/check-in-out', {'action': 'checkin'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['checkInTime']
    stats = admin_client.get('/api/staff-guests/stats').data['data']
    assert stats['checkedIn'] == 1
    assert stats['staff'] == 1


def test_soft_delete(admin_client, male_room):
    sid = admin_client.post('/api/staff-guests', payload(), format='json').data['data']['id']
    assert admin_client.delete(f'/api/staff-guests/{sid}').status_code == 200
    assert StaffGuest.objects.get(pk=sid).is_active is False
    listed = admin_client.get('/api/staff-guests').data['data']['staffGuests']
    assert listed == []


def test_expiry_sweep_frees_beds_once(male_room):
    today = date(2024, 3, 10)
    old = StaffGuest.objects.create(name='Old', type='staff', gender='Male', profession='Cook',
                                    phone_number='9000000001', stay_type='monthly', selected_month='2024-02',
                                    room_number='302', bed_number='1')
    current = StaffGuest.objects.create(name='Now', type='staff', gender='Male', profession='Cook',
                                        phone_number='9000000002', stay_type='monthly', selected_month='2024-03',
                                        room_number='302')
    assert expire_monthly_staff(today) == 1
    old.refresh_from_db()
    current.refresh_from_db()
    assert (old.is_active, old.room_number, old.bed_number) == (False, '', '')
    assert current.is_active is True
    assert expire_monthly_staff(today) == 0


def test_listing_runs_the_expiry_sweep(admin_client, male_room):
    StaffGuest.objects.create(name='Old', type='staff', gender='Male', profession='Cook',
                              phone_number='9000000001', stay_type='monthly', selected_month='2000-01',
                              room_number='302')
    r = admin_client.get('/api/staff-guests')
    assert r.status_code == 200
    assert r.data['data']['staffGuests'] == []
    assert StaffGuest.objects.get().room_number == ''


def test_rate_change_reprices_every_stay(admin_client, warden_client, male_room):
    today = timezone.localdate()
    sg = StaffGuest.objects.create(name='Daily', type='staff', gender='Male', profession='Cook',
                                   phone_number='9000000001', checkin_date=today - timedelta(days=2),
                                   checkout_date=today)
    guest = StaffGuest.objects.create(name='Guest', type='guest', gender='Male', profession='Visitor',
                                      phone_number='9000000002', checkin_date=today)
    override = StaffGuest.objects.create(name='Fixed', type='student', gender='Male', profession='Intern',
                                         phone_number='9000000003', checkin_date=today, checkout_date=today,
                                         daily_rate=Decimal('10'))
    assert warden_client.put('/api/settings/daily-rate', {'defaultDailyRate': '200'},
                             format='json').status_code == 403
    r = admin_client.put('/api/settings/daily-rate', {'defaultDailyRate': '200'}, format='json')
    assert r.status_code == 200, r.data
    assert r.data['data']['defaultDailyRate'] == 200.0
    assert r.data['data']['recalculated'] == 2
    sg.refresh_from_db()
    guest.refresh_from_db()
    override.refresh_from_db()
    assert sg.calculated_charges == Decimal('600')
    assert guest.calculated_charges == Decimal('0')
    assert override.calculated_charges == Decimal('10')
    assert warden_client.get('/api/settings/daily-rate').data['data']['defaultDailyRate'] == 200.0


@pytest.mark.parametrize('value', ['-1', 'abc', ''])
def test_invalid_rates_are_rejected(admin_client, value):
    r = admin_client.put('/api/settings/daily-rate', {'defaultDailyRate': value}, format='json')
    assert r.status_code == 400
    assert HostelSettings.objects.filter(default_daily_rate__gt=0).count() == 0


def test_failed_move_deletes_the_new_photo(admin_client, male_room, monkeypatch):
    Room.objects.create(room_number='303', gender='Male', category='A', bed_count=1)
    admin_client.post('/api/staff-guests', payload(phoneNumber='9123456781', roomNumber='303'), format='json')
    sid = admin_client.post('/api/staff-guests', payload(), format='json').data['data']['id']
    deleted = []
    monkeypatch.setattr(storage, 'delete_file', deleted.append)

    photo = SimpleUploadedFile('me.jpg', b'\xff\xd8\xff', content_type='image/jpeg')
    r = admin_client.put(f'/api/staff-guests/{sid}', {'roomNumber': '303', 'photo': photo}, format='multipart')
    assert r.status_code == 400
    assert r.data['message'] == 'Room 303 is full (0 beds available)'
    assert len(deleted) == 1 and deleted[0].startswith('https://bucket.s3')
    sg = StaffGuest.objects.get(pk=sid)
    assert (sg.room_number, sg.photo) == ('302', '')
