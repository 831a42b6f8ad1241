import pytest
from rest_framework.exceptions import NotFound, ValidationError

from core.models import Room, StaffGuest, StudentProfile, User
from core.services import occupancy

pytestmark = pytest.mark.django_db


def make_student(roll, room_number, *, active=True, bed=''):
    user = User.objects.create_user(username=roll, password='x', role=User.ROLE_STUDENT)
    return StudentProfile.objects.create(user=user, name=roll, roll_number=roll, gender='Male', category='A+',
                                         room_number=room_number, bed_number=bed, is_active=active)


def make_staff(name, room_number, *, active=True, bed=''):
    return StaffGuest.objects.create(name=name, type='staff', gender='Male', profession='Cook',
                                     phone_number='9000000000', room_number=room_number, bed_number=bed,
                                     is_active=active)


def test_counts_students_and_staff_together(male_room):
    make_student('S1', '302')
    make_staff('Cook', '302')
    av = occupancy.check_availability(male_room)
    assert (av.student_count, av.staff_count, av.total_occupancy) == (1, 1, 2)
    assert av.available_beds == 0
    assert not av.is_available


def test_inactive_occupants_do_not_count(male_room):
    make_student('S1', '302', active=False)
    make_staff('Cook', '302', active=False)
    assert occupancy.check_availability(male_room).available_beds == 2


def test_available_beds_never_negative(male_room):
    for i in range(3):
        make_student(f'S{i}', '302')
    assert occupancy.check_availability(male_room).available_beds == 0


def test_self_exclusion_lets_an_occupant_keep_their_bed(male_room):
    s1 = make_student('S1', '302')
    make_student('S2', '302')
    with pytest.raises(ValidationError):
        occupancy.reserve_student_bed('302', 'Male', 'A+')
    av = occupancy.reserve_student_bed('302', 'Male', 'A+', exclude_student_id=s1.pk)
    assert av.available_beds == 1


def test_full_room_message(male_room):
    make_student('S1', '302')
    make_staff('Cook', '302')
    with pytest.raises(ValidationError) as exc:
        occupancy.ensure_capacity(occupancy.check_availability(male_room))
    assert 'Room 302 is full (0 beds available)' in str(exc.value.detail)


def test_student_room_lookup_matches_gender_and_category(male_room):
    assert occupancy.room_for_student('302', 'Male', 'A+') == male_room
    with pytest.raises(NotFound):
        occupancy.room_for_student('302', 'Male', 'B')
    with pytest.raises(NotFound):
        occupancy.room_for_staff('302', 'Female')


def test_bed_collision(male_room):
    make_student('S1', '302', bed='1')
    with pytest.raises(ValidationError):
        occupancy.ensure_bed_free('302', '1')
    occupancy.ensure_bed_free('302', '2')


def test_occupancy_for_many_rooms(male_room, female_room):
    Room.objects.create(room_number='303', gender='Male', category='A', bed_count=4)
    make_student('S1', '302')
    make_staff('Cook', '303')
    by_number = {av.room.room_number: av for av in occupancy.occupancy_for_rooms(Room.objects.all())}
    assert by_number['302'].student_count == 1
    assert by_number['303'].staff_count == 1
    assert by_number['209'].total_occupancy == 0
    assert by_number['303'].as_dict()['availableBeds'] == 3
