"""
Student accounts: registration, edits, soft deletion and bulk import.

Registering a student touches several tables (user, profile, counter,
temporary credential, fee reminder) and always does so inside one
transaction.  Credential SMS and the welcome email are sent only after
that transaction commits, and their failures never undo the student.
"""
import logging
from datetime import datetime
from typing import Optional

from django.contrib.auth.hashers import make_password
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils.crypto import get_random_string
from rest_framework.exceptions import APIException, ValidationError

from core.models import Room, StudentProfile, TempCredential, User
from core.services import fee_reminders, mail, occupancy, sms, storage
from core.services.counters import allocate_hostel_id
from core.services.spreadsheet import read_student_rows

logger = logging.getLogger(__name__)

PASSWORD_CHARS = 'ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789'
PHOTO_FIELDS = {
    'studentPhoto': ('student_photo', storage.STUDENT_PHOTOS),
    'guardianPhoto1': ('guardian_photo1', storage.GUARDIAN_PHOTOS),
    'guardianPhoto2': ('guardian_photo2', storage.GUARDIAN_PHOTOS),
}
# Fields copied onto the profile as-is when present
PROFILE_FIELDS = (
    'name', 'gender', 'course', 'branch', 'year', 'category', 'room_number', 'bed_number', 'locker_number',
    'student_phone', 'parent_phone', 'mother_name', 'mother_phone', 'local_guardian_name',
    'local_guardian_phone', 'email', 'batch', 'academic_year', 'meal_type',
)


def generate_password(length: int = 10) -> str:
    return get_random_string(length, allowed_chars=PASSWORD_CHARS)


def serialize_student(p: StudentProfile) -> dict:
    return {
        'id': p.id,
        'userId': p.user_id,
        'name': p.name,
        'rollNumber': p.roll_number,
        'hostelId': p.hostel_id,
        'gender': p.gender,
        'course': p.course,
        'branch': p.branch,
        'year': p.year,
        'category': p.category,
        'roomNumber': p.room_number or None,
        'bedNumber': p.bed_number or None,
        'lockerNumber': p.locker_number or None,
        'studentPhone': p.student_phone,
        'parentPhone': p.parent_phone,
        'motherName': p.mother_name,
        'motherPhone': p.mother_phone,
        'localGuardianName': p.local_guardian_name,
        'localGuardianPhone': p.local_guardian_phone,
        'email': p.email,
        'batch': p.batch,
        'academicYear': p.academic_year,
        'mealType': p.meal_type,
        'studentPhoto': p.student_photo or None,
        'guardianPhoto1': p.guardian_photo1 or None,
        'guardianPhoto2': p.guardian_photo2 or None,
        'concession': float(p.concession),
        'calculatedTerm1Fee': float(p.calculated_term1_fee),
        'calculatedTerm2Fee': float(p.calculated_term2_fee),
        'calculatedTerm3Fee': float(p.calculated_term3_fee),
        'totalCalculatedFee': float(p.total_calculated_fee),
        'isActive': p.is_active,
        'isPasswordChanged': p.user.is_password_changed,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }


def ensure_roll_number_free(roll_number: str) -> None:
    if StudentProfile.objects.filter(roll_number=roll_number).exists() or \
            User.objects.filter(username__iexact=roll_number).exists():
        raise ValidationError(f'Student with roll number {roll_number} already exists')


def upload_photos(files) -> dict:
    """Upload any provided photos; returns ``{model_field: url}``."""
    urls = {}
    try:
        for key, (field, folder) in PHOTO_FIELDS.items():
            f = files.get(key) if files else None
            if f:
                urls[field] = storage.upload_or_reject(f, folder)
    except ValidationError:
        for url in urls.values():
            storage.delete_quietly(url)
        raise
    return urls


def _after_registration(profile: StudentProfile, password: str) -> None:
    sms.send_credentials_sms(profile.student_phone, profile.roll_number, password)
    mail.send_registration_email(to=profile.email, name=profile.name, roll_number=profile.roll_number,
                                 hostel_id=profile.hostel_id or '', password=password)


def register_student(data: dict, *, photo_urls: Optional[dict] = None, concession=None,
                     registration_date: Optional[datetime] = None, check_room: bool = True,
                     notify: bool = True) -> tuple[StudentProfile, str]:
    """Create user, profile, hostel ID, temporary credential and fee reminder.

    Must be called inside ``transaction.atomic``; the room row stays
    locked until the caller's transaction ends.
    """
    roll_number = data['roll_number']
    ensure_roll_number_free(roll_number)
    if check_room and data.get('room_number'):
        occupancy.reserve_student_bed(data['room_number'], data['gender'], data.get('category', ''),
                                      data.get('bed_number'))
    password = generate_password()
    try:
        user = User.objects.create(
            username=roll_number,
            password=make_password(password),
            role=User.ROLE_STUDENT,
            first_name=data['name'][:150],
            email=data.get('email') or '',
        )
    except IntegrityError:
        raise ValidationError(f'Student with roll number {roll_number} already exists')
    profile = StudentProfile(user=user, roll_number=roll_number,
                             **{f: data[f] for f in PROFILE_FIELDS if data.get(f) is not None})
    for field, url in (photo_urls or {}).items():
        setattr(profile, field, url)
    if profile.gender:
        profile.hostel_id = allocate_hostel_id(profile.gender)
    fee_reminders.price_student(profile, concession)
    profile.save()
    TempCredential.objects.create(
        student=profile,
        roll_number=roll_number,
        name=profile.name,
        student_phone=profile.student_phone,
        email=profile.email,
        generated_password=password,
    )
    if profile.academic_year:
        fee_reminders.create_for_student(profile, registration_date=registration_date)
    if notify:
        transaction.on_commit(lambda: _after_registration(profile, password))
    logger.info('student %s registered as %s', roll_number, profile.hostel_id)
    return profile, password


def create_student(data: dict, *, files=None) -> tuple[StudentProfile, str]:
    data = dict(data)
    concession = data.pop('concession', None)
    ensure_roll_number_free(data['roll_number'])
    photo_urls = upload_photos(files)
    try:
        with transaction.atomic():
            return register_student(data, photo_urls=photo_urls, concession=concession)
    except Exception:
        for url in photo_urls.values():
            storage.delete_quietly(url)
        raise


def update_student(profile: StudentProfile, data: dict, *, files=None) -> StudentProfile:
    """Apply an edit, including an ``is_active`` toggle, in one transaction."""
    data = dict(data)
    concession = data.pop('concession', None)
    reactivating = data.get('is_active') is True and not profile.is_active
    room_changed = any(k in data and data[k] != getattr(profile, k)
                       for k in ('room_number', 'bed_number', 'gender', 'category'))
    new_photos = upload_photos(files)
    old_photos = {field: getattr(profile, field) for field in new_photos}
    try:
        with transaction.atomic():
            for field, value in data.items():
                setattr(profile, field, value)
            if (room_changed or reactivating) and profile.is_active and profile.room_number:
                occupancy.reserve_student_bed(profile.room_number, profile.gender, profile.category,
                                              profile.bed_number or None, exclude_student_id=profile.pk)
            for field, url in new_photos.items():
                setattr(profile, field, url)
            if concession is not None or 'category' in data or 'academic_year' in data:
                fee_reminders.price_student(profile, concession)
            profile.save()
            user = profile.user
            user.first_name = profile.name[:150]
            user.email = profile.email
            user.save(update_fields=['first_name', 'email'])
    except Exception:
        for url in new_photos.values():
            storage.delete_quietly(url)
        raise
    for url in old_photos.values():
        storage.delete_quietly(url)
    return profile


def set_active(profile: StudentProfile, active: bool) -> StudentProfile:
    """Soft delete or restore; restoring re-checks the bed but keeps the hostel ID."""
    if active == profile.is_active:
        return profile
    with transaction.atomic():
        if active and profile.room_number:
            occupancy.reserve_student_bed(profile.room_number, profile.gender, profile.category,
                                          profile.bed_number or None, exclude_student_id=profile.pk)
        profile.is_active = active
        profile.save(update_fields=['is_active', 'updated_at'])
    return profile


def list_queryset(*, gender=None, category=None, room_number=None, course=None, branch=None, batch=None,
                  academic_year=None, search=None, is_active=True):
    qs = StudentProfile.objects.select_related('user').filter(is_active=is_active)
    filters = {
        'gender': gender, 'category': category, 'room_number': room_number, 'course__iexact': course,
        'branch__iexact': branch, 'batch': batch, 'academic_year': academic_year,
    }
    qs = qs.filter(**{k: v for k, v in filters.items() if v})
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(roll_number__icontains=search)
                       | Q(hostel_id__icontains=search) | Q(student_phone__icontains=search))
    return qs.order_by('-created_at', '-id')


def _room_for_import(room_number: str, gender: str) -> Optional[Room]:
    if not room_number or not gender:
        return None
    room = occupancy.room_for_staff(room_number, gender, lock=True)
    occupancy.ensure_capacity(occupancy.check_availability(room))
    return room


def import_students(f) -> dict:
    """Create students from a workbook; returns added/skipped counts and row errors."""
    added = skipped = 0
    errors = []
    for line, row in enumerate(read_student_rows(f), start=2):
        name = row.get('Name', '')
        roll = row.get('RollNumber', '').upper()
        if not name or not roll:
            skipped += 1
            continue
        if StudentProfile.objects.filter(roll_number=roll).exists():
            skipped += 1
            continue
        gender = row.get('Gender', '').title()
        if gender not in ('Male', 'Female'):
            gender = ''
        year = row.get('Year', '')
        data = {
            'name': name[:128],
            'roll_number': roll,
            'gender': gender,
            'course': row.get('Degree', '')[:64],
            'branch': row.get('Branch', '')[:64],
            'year': int(year) if year.isdigit() and 1 <= int(year) <= 10 else None,
            'student_phone': row.get('StudentPhone', '') if len(row.get('StudentPhone', '')) == 10 else '',
            'parent_phone': row.get('ParentPhone', '') if len(row.get('ParentPhone', '')) == 10 else '',
            'email': row.get('Email', ''),
        }
        try:
            with transaction.atomic():
                room = _room_for_import(row.get('RoomNumber', ''), gender)
                if room is not None:
                    data['room_number'] = room.room_number
                    data['category'] = room.category
                register_student(data, check_room=False, notify=False)
            added += 1
        except APIException as e:
            # unknown room (404) or full room (400)
            skipped += 1
            errors.append({'row': line, 'rollNumber': roll, 'error': _flatten(e.detail)})
    logger.info('student import: added %d, skipped %d', added, skipped)
    return {'added': added, 'skipped': skipped, 'errors': errors, 'message': f'Added: {added}, Skipped: {skipped}'}


def _flatten(detail) -> str:
    if isinstance(detail, (list, tuple)):
        return '; '.join(_flatten(d) for d in detail)
    if isinstance(detail, dict):
        return '; '.join(f'{k}: {_flatten(v)}' for k, v in detail.items())
    return str(detail)


def find_by_roll_number(roll_number: str) -> Optional[StudentProfile]:
    return StudentProfile.objects.select_related('user').filter(roll_number=roll_number).first()


def change_password(user: User, old_password: str, new_password: str) -> None:
    if not user.check_password(old_password):
        raise ValidationError('Current password is incorrect')
    if old_password == new_password:
        raise ValidationError('New password must differ from the current one')
    with transaction.atomic():
        user.set_password(new_password)
        user.is_password_changed = True
        user.save(update_fields=['password', 'is_password_changed'])
        TempCredential.objects.filter(student__user=user).delete()
