"""
Staff and guest occupancy records.

Creation and edits run in one transaction with the room lock held, so
the capacity check, hostel-ID allocation and the write either all land
or none of them do.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.models import StaffGuest, User
from core.services import occupancy, storage
from core.services.charges import CHARGEABLE_TYPES, charges_for
from core.services.counters import allocate_hostel_id
from core.services.hostel_settings import default_daily_rate

logger = logging.getLogger(__name__)

# Edits to any of these fields re-price the stay
PRICING_FIELDS = ('type', 'stay_type', 'selected_month', 'checkin_date', 'checkout_date', 'daily_rate')


def serialize_staff_guest(sg: StaffGuest) -> dict:
    return {
        'id': sg.id,
        'hostelId': sg.hostel_id,
        'name': sg.name,
        'type': sg.type,
        'gender': sg.gender,
        'profession': sg.profession,
        'phoneNumber': sg.phone_number,
        'email': sg.email,
        'department': sg.department,
        'purpose': sg.purpose,
        'stayType': sg.stay_type,
        'selectedMonth': sg.selected_month or None,
        'checkinDate': sg.checkin_date.isoformat() if sg.checkin_date else None,
        'checkoutDate': sg.checkout_date.isoformat() if sg.checkout_date else None,
        'dailyRate': float(sg.daily_rate) if sg.daily_rate is not None else None,
        'calculatedCharges': float(sg.calculated_charges),
        'roomNumber': sg.room_number or None,
        'bedNumber': sg.bed_number or None,
        'photo': sg.photo or None,
        'checkInTime': sg.check_in_time.isoformat() if sg.check_in_time else None,
        'checkOutTime': sg.check_out_time.isoformat() if sg.check_out_time else None,
        'isActive': sg.is_active,
        'createdBy': sg.created_by.username if sg.created_by_id else None,
        'lastModifiedBy': sg.last_modified_by.username if sg.last_modified_by_id else None,
        'createdAt': sg.created_at.isoformat() if sg.created_at else None,
        'updatedAt': sg.updated_at.isoformat() if sg.updated_at else None,
    }


def expire_monthly_staff(today: Optional[date] = None) -> int:
    """Deactivate monthly stays whose month is over and free their beds.

    A single UPDATE, so running it again right away finds nothing.
    """
    today = today or timezone.localdate()
    current_month = today.strftime('%Y-%m')
    expired = (
        StaffGuest.objects
        .filter(is_active=True, stay_type=StaffGuest.STAY_MONTHLY, selected_month__lt=current_month)
        .exclude(selected_month='')
        .update(is_active=False, room_number='', bed_number='', updated_at=timezone.now())
    )
    if expired:
        logger.info('expired %d monthly stays before %s', expired, current_month)
    return expired


def recalculate_all_charges(default_rate: Decimal, today: date) -> int:
    records = list(StaffGuest.objects.filter(is_active=True, type__in=CHARGEABLE_TYPES))
    for sg in records:
        sg.calculated_charges = charges_for(sg, default_rate, today)
    StaffGuest.objects.bulk_update(records, ['calculated_charges'], batch_size=500)
    return len(records)


def reprice(sg: StaffGuest, today: Optional[date] = None) -> Decimal:
    sg.calculated_charges = charges_for(sg, default_daily_rate(), today or timezone.localdate())
    return sg.calculated_charges


def _ensure_phone_unique(phone: str, exclude_id: Optional[int] = None) -> None:
    qs = StaffGuest.objects.filter(phone_number=phone, is_active=True)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ValidationError('Phone number already exists for an active staff/guest')


def create_staff_guest(data: dict, *, user: Optional[User] = None, photo=None,
                       today: Optional[date] = None) -> StaffGuest:
    data = dict(data)
    data.pop('is_active', None)
    _ensure_phone_unique(data['phone_number'])
    photo_url = storage.upload_or_reject(photo, storage.STAFF_GUEST_PHOTOS) if photo else ''
    try:
        with transaction.atomic():
            if data.get('room_number'):
                occupancy.reserve_staff_bed(data['room_number'], data['gender'], data.get('bed_number'))
            else:
                data['bed_number'] = ''
            sg = StaffGuest(**data, photo=photo_url, created_by=user, last_modified_by=user)
            sg.hostel_id = allocate_hostel_id(sg.gender)
            reprice(sg, today)
            sg.save()
    except Exception:
        storage.delete_quietly(photo_url)
        raise
    logger.info('staff/guest %s created (%s)', sg.pk, sg.hostel_id)
    return sg


def update_staff_guest(sg: StaffGuest, data: dict, *, user: Optional[User] = None, photo=None,
                       today: Optional[date] = None) -> StaffGuest:
    if 'phone_number' in data and (data.get('is_active', sg.is_active)):
        _ensure_phone_unique(data['phone_number'], exclude_id=sg.pk)
    new_photo = storage.upload_or_reject(photo, storage.STAFF_GUEST_PHOTOS) if photo else None
    old_photo = sg.photo
    reactivating = data.get('is_active') is True and not sg.is_active
    try:
        with transaction.atomic():
            for field, value in data.items():
                setattr(sg, field, value)
            if 'room_number' in data or 'bed_number' in data or 'gender' in data or reactivating:
                if sg.is_active and sg.room_number:
                    occupancy.reserve_staff_bed(sg.room_number, sg.gender, sg.bed_number or None,
                                                exclude_staff_id=sg.pk)
                elif not sg.room_number:
                    sg.bed_number = ''
            if reactivating:
                _ensure_phone_unique(sg.phone_number, exclude_id=sg.pk)
            if new_photo:
                sg.photo = new_photo
            if any(f in data for f in PRICING_FIELDS):
                reprice(sg, today)
            sg.last_modified_by = user
            sg.save()
    except Exception:
        storage.delete_quietly(new_photo)
        raise
    if new_photo and old_photo:
        storage.delete_quietly(old_photo)
    return sg


def deactivate(sg: StaffGuest, *, user: Optional[User] = None) -> StaffGuest:
    sg.is_active = False
    sg.last_modified_by = user
    sg.save(update_fields=['is_active', 'last_modified_by', 'updated_at'])
    return sg


def check_in_out(sg: StaffGuest, action: str, *, user: Optional[User] = None) -> StaffGuest:
    now = timezone.now()
    if action == 'checkin':
        sg.check_in_time = now
        sg.check_out_time = None
    else:
        if not sg.check_in_time:
            raise ValidationError('Cannot check out without checking in first')
        sg.check_out_time = now
    sg.last_modified_by = user
    sg.save(update_fields=['check_in_time', 'check_out_time', 'last_modified_by', 'updated_at'])
    return sg


def list_queryset(*, type=None, gender=None, department=None, stay_type=None, search=None, is_active=True):
    qs = StaffGuest.objects.select_related('created_by', 'last_modified_by').filter(is_active=is_active)
    if type:
        qs = qs.filter(type=type)
    if gender:
        qs = qs.filter(gender=gender)
    if department:
        qs = qs.filter(department=department)
    if stay_type:
        qs = qs.filter(stay_type=stay_type)
    if search:
        qs = qs.filter(
            Q(name__icontains=search) | Q(profession__icontains=search) | Q(phone_number__icontains=search)
            | Q(email__icontains=search) | Q(hostel_id__icontains=search)
        )
    return qs.order_by('-created_at', '-id')


def stats() -> dict:
    active = StaffGuest.objects.filter(is_active=True)
    by_type = dict(active.values('type').annotate(n=Count('id')).values_list('type', 'n'))
    checked_in = active.filter(check_in_time__isnull=False, check_out_time__isnull=True).count()
    total_charges = active.aggregate(s=Sum('calculated_charges'))['s'] or Decimal('0')
    return {
        'totalActive': active.count(),
        'staff': by_type.get('staff', 0),
        'guests': by_type.get('guest', 0),
        'students': by_type.get('student', 0),
        'checkedIn': checked_in,
        'monthlyStays': active.filter(stay_type=StaffGuest.STAY_MONTHLY).count(),
        'totalCharges': float(total_charges),
        'inactive': StaffGuest.objects.filter(is_active=False).count(),
    }
