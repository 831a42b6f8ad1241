"""Room inventory: CRUD, occupancy listings and per-room occupants."""
import logging
from collections import defaultdict

from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from core.models import Room, StaffGuest, StudentProfile
from core.services import occupancy

logger = logging.getLogger(__name__)


def get_or_404(pk, *, lock: bool = False) -> Room:
    qs = Room.objects.all()
    if lock:
        qs = qs.select_for_update()
    room = qs.filter(pk=pk).first()
    if room is None:
        raise NotFound('Room not found')
    return room


def serialize_room(av: occupancy.RoomAvailability) -> dict:
    room = av.room
    data = av.as_dict()
    data.update(
        id=room.id,
        isActive=room.is_active,
        occupancyRate=round(av.total_occupancy / room.bed_count * 100, 1) if room.bed_count else 0,
    )
    return data


def list_rooms(*, gender=None, category=None, active_only: bool = False) -> list[dict]:
    qs = Room.objects.all()
    if gender:
        qs = qs.filter(gender=gender)
    if category:
        qs = qs.filter(category=category)
    if active_only:
        qs = qs.filter(is_active=True)
    return [serialize_room(av) for av in occupancy.occupancy_for_rooms(qs.order_by('room_number'))]


def available_rooms(*, gender=None, category=None) -> list[dict]:
    return [r for r in list_rooms(gender=gender, category=category, active_only=True) if r['isAvailable']]


def stats() -> dict:
    rows = list_rooms()
    by_gender = defaultdict(lambda: {'rooms': 0, 'beds': 0, 'occupied': 0, 'available': 0})
    by_category = defaultdict(lambda: {'rooms': 0, 'beds': 0, 'occupied': 0, 'available': 0})
    for r in rows:
        for bucket in (by_gender[r['gender']], by_category[f"{r['gender']}/{r['category']}"]):
            bucket['rooms'] += 1
            bucket['beds'] += r['bedCount']
            bucket['occupied'] += r['totalOccupancy']
            bucket['available'] += r['availableBeds']
    beds = sum(r['bedCount'] for r in rows)
    occupied = sum(r['totalOccupancy'] for r in rows)
    return {
        'totalRooms': len(rows),
        'totalBeds': beds,
        'occupiedBeds': occupied,
        'availableBeds': sum(r['availableBeds'] for r in rows),
        'occupancyRate': round(occupied / beds * 100, 1) if beds else 0,
        'byGender': dict(by_gender),
        'byCategory': dict(by_category),
    }


def _room_number_free(room_number: str, exclude_id=None) -> None:
    qs = Room.objects.filter(room_number=room_number)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ValidationError(f'Room {room_number} already exists')


def create_room(data: dict) -> Room:
    _room_number_free(data['room_number'])
    try:
        room = Room.objects.create(**data)
    except IntegrityError:
        raise ValidationError(f"Room {data['room_number']} already exists")
    logger.info('room %s created', room.room_number)
    return room


def update_room(pk, data: dict) -> Room:
    with transaction.atomic():
        room = get_or_404(pk, lock=True)
        av = occupancy.check_availability(room)
        if av.total_occupancy and any(
                k in data and data[k] != getattr(room, k) for k in ('room_number', 'gender', 'category')):
            raise ValidationError('Cannot renumber or re-classify a room with active occupants')
        if 'bed_count' in data and data['bed_count'] < av.total_occupancy:
            raise ValidationError(f'Room {room.room_number} has {av.total_occupancy} active occupants; '
                                  f'bed count cannot be lower')
        if 'room_number' in data:
            _room_number_free(data['room_number'], exclude_id=room.pk)
        for field, value in data.items():
            setattr(room, field, value)
        room.save()
    return room


def delete_room(pk) -> None:
    with transaction.atomic():
        room = get_or_404(pk, lock=True)
        av = occupancy.check_availability(room)
        if av.total_occupancy:
            raise ValidationError(f'Room {room.room_number} has {av.total_occupancy} active occupants')
        room.delete()
    logger.info('room %s deleted', room.room_number)


def occupants(room: Room) -> dict:
    students = StudentProfile.objects.filter(room_number=room.room_number, is_active=True).order_by('bed_number')
    staff = StaffGuest.objects.filter(room_number=room.room_number, is_active=True).order_by('bed_number')
    return {
        'room': serialize_room(occupancy.check_availability(room)),
        'students': [
            {'id': s.id, 'name': s.name, 'rollNumber': s.roll_number, 'hostelId': s.hostel_id,
             'bedNumber': s.bed_number or None, 'lockerNumber': s.locker_number or None}
            for s in students
        ],
        'staffGuests': [
            {'id': g.id, 'name': g.name, 'type': g.type, 'hostelId': g.hostel_id,
             'bedNumber': g.bed_number or None}
            for g in staff
        ],
    }
