"""
Room occupancy accounting.

A room's beds are shared by active students and active staff/guest
records, so every availability decision counts both tables.  Students
are matched to rooms by gender and category, staff by gender only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from django.db.models import Count
from rest_framework.exceptions import NotFound, ValidationError

from core.models import Room, StaffGuest, StudentProfile

logger = logging.getLogger(__name__)


@dataclass
class RoomAvailability:
    room: Room
    student_count: int
    staff_count: int

    @property
    def total_occupancy(self) -> int:
        return self.student_count + self.staff_count

    @property
    def available_beds(self) -> int:
        return max(0, self.room.bed_count - self.total_occupancy)

    @property
    def is_available(self) -> bool:
        return self.available_beds > 0

    def as_dict(self) -> dict:
        return {
            'roomNumber': self.room.room_number,
            'gender': self.room.gender,
            'category': self.room.category,
            'bedCount': self.room.bed_count,
            'studentCount': self.student_count,
            'staffCount': self.staff_count,
            'totalOccupancy': self.total_occupancy,
            'availableBeds': self.available_beds,
            'isAvailable': self.is_available,
        }


def _lookup(lock: bool, **filters) -> Optional[Room]:
    qs = Room.objects.filter(**filters)
    if lock:
        qs = qs.select_for_update()
    return qs.first()


def room_for_student(room_number: str, gender: str, category: str, *, lock: bool = False) -> Room:
    room = _lookup(lock, room_number=room_number, gender=gender, category=category)
    if room is None:
        raise NotFound(f'Room {room_number} not found for {gender} students in category {category}')
    return room


def room_for_staff(room_number: str, gender: str, *, lock: bool = False) -> Room:
    room = _lookup(lock, room_number=room_number, gender=gender)
    if room is None:
        raise NotFound(f'Room {room_number} not found for gender {gender}')
    return room


def check_availability(room: Room, *, exclude_student_id: Optional[int] = None,
                       exclude_staff_id: Optional[int] = None) -> RoomAvailability:
    students = StudentProfile.objects.filter(room_number=room.room_number, is_active=True)
    if exclude_student_id:
        students = students.exclude(pk=exclude_student_id)
    staff = StaffGuest.objects.filter(room_number=room.room_number, is_active=True)
    if exclude_staff_id:
        staff = staff.exclude(pk=exclude_staff_id)
    return RoomAvailability(room=room, student_count=students.count(), staff_count=staff.count())


def ensure_capacity(availability: RoomAvailability) -> RoomAvailability:
    if not availability.is_available:
        raise ValidationError(
            f'Room {availability.room.room_number} is full '
            f'({availability.available_beds} beds available)'
        )
    return availability


def ensure_bed_free(room_number: str, bed_number: Optional[str], *, exclude_student_id: Optional[int] = None,
                    exclude_staff_id: Optional[int] = None) -> None:
    """Reject when another active occupant already holds ``(room, bed)``."""
    if not bed_number:
        return
    students = StudentProfile.objects.filter(room_number=room_number, bed_number=bed_number, is_active=True)
    if exclude_student_id:
        students = students.exclude(pk=exclude_student_id)
    staff = StaffGuest.objects.filter(room_number=room_number, bed_number=bed_number, is_active=True)
    if exclude_staff_id:
        staff = staff.exclude(pk=exclude_staff_id)
    if students.exists() or staff.exists():
        raise ValidationError(f'Bed {bed_number} in room {room_number} is already occupied')


def reserve_student_bed(room_number: str, gender: str, category: str, bed_number: Optional[str] = None,
                        *, exclude_student_id: Optional[int] = None) -> RoomAvailability:
    """Lock the room and verify a student may take a bed in it.

    Must run inside ``transaction.atomic`` so the lock is held until the
    occupant row is written.
    """
    room = room_for_student(room_number, gender, category, lock=True)
    availability = ensure_capacity(check_availability(room, exclude_student_id=exclude_student_id))
    ensure_bed_free(room_number, bed_number, exclude_student_id=exclude_student_id)
    return availability


def reserve_staff_bed(room_number: str, gender: str, bed_number: Optional[str] = None,
                      *, exclude_staff_id: Optional[int] = None) -> RoomAvailability:
    room = room_for_staff(room_number, gender, lock=True)
    availability = ensure_capacity(check_availability(room, exclude_staff_id=exclude_staff_id))
    ensure_bed_free(room_number, bed_number, exclude_staff_id=exclude_staff_id)
    return availability


def occupancy_for_rooms(rooms: Iterable[Room]) -> list[RoomAvailability]:
    """Availability of many rooms using two grouped queries."""
    rooms = list(rooms)
    numbers = [r.room_number for r in rooms]
    student_counts = dict(
        StudentProfile.objects.filter(room_number__in=numbers, is_active=True)
        .values('room_number').annotate(n=Count('id')).values_list('room_number', 'n')
    )
    staff_counts = dict(
        StaffGuest.objects.filter(room_number__in=numbers, is_active=True)
        .values('room_number').annotate(n=Count('id')).values_list('room_number', 'n')
    )
    return [
        RoomAvailability(room=r, student_count=student_counts.get(r.room_number, 0),
                         staff_count=staff_counts.get(r.room_number, 0))
        for r in rooms
    ]
