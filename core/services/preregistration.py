"""
Public pre-registration and its review by the hostel office.

Approval converts the application into a student in a single
transaction: if any step fails (room full, duplicate roll number) the
application stays pending and no hostel ID is consumed.
"""
import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.models import PreRegistration, StudentProfile, User
from core.services import storage
from core.services.audit import log_action
from core.services.students import register_student, upload_photos

logger = logging.getLogger(__name__)

PERSONAL_FIELDS = (
    'name', 'roll_number', 'gender', 'course', 'branch', 'year', 'batch', 'academic_year', 'student_phone',
    'parent_phone', 'mother_name', 'mother_phone', 'local_guardian_name', 'local_guardian_phone', 'email',
    'meal_type',
)
PHOTO_FIELDS = ('student_photo', 'guardian_photo1', 'guardian_photo2')


def serialize_preregistration(p: PreRegistration) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'rollNumber': p.roll_number,
        'gender': p.gender,
        'course': p.course,
        'branch': p.branch,
        'year': p.year,
        'batch': p.batch,
        'academicYear': p.academic_year,
        'studentPhone': p.student_phone,
        'parentPhone': p.parent_phone,
        'motherName': p.mother_name,
        'motherPhone': p.mother_phone,
        'localGuardianName': p.local_guardian_name,
        'localGuardianPhone': p.local_guardian_phone,
        'email': p.email,
        'mealType': p.meal_type,
        'studentPhoto': p.student_photo or None,
        'guardianPhoto1': p.guardian_photo1 or None,
        'guardianPhoto2': p.guardian_photo2 or None,
        'status': p.status,
        'rejectionReason': p.rejection_reason or None,
        'submittedAt': p.submitted_at.isoformat() if p.submitted_at else None,
        'processedAt': p.processed_at.isoformat() if p.processed_at else None,
    }


def submit(data: dict, *, files=None) -> PreRegistration:
    roll_number = data['roll_number']
    if StudentProfile.objects.filter(roll_number=roll_number).exists():
        raise ValidationError('A student with this roll number is already registered')
    if PreRegistration.objects.filter(
            roll_number=roll_number,
            status__in=[PreRegistration.STATUS_PENDING, PreRegistration.STATUS_APPROVED]).exists():
        raise ValidationError('A pre-registration for this roll number already exists')
    photo_urls = upload_photos(files)
    try:
        with transaction.atomic():
            # a rejected applicant may apply again; the new application replaces the old one
            stale = list(PreRegistration.objects.filter(roll_number=roll_number,
                                                        status=PreRegistration.STATUS_REJECTED))
            PreRegistration.objects.filter(pk__in=[p.pk for p in stale]).delete()
            prereg = PreRegistration.objects.create(**data, **photo_urls)
    except Exception:
        for url in photo_urls.values():
            storage.delete_quietly(url)
        raise
    for old in stale:
        for field in PHOTO_FIELDS:
            storage.delete_quietly(getattr(old, field))
    logger.info('pre-registration %s submitted for %s', prereg.pk, roll_number)
    return prereg


def get_or_404(pk, *, lock: bool = False) -> PreRegistration:
    qs = PreRegistration.objects.all()
    if lock:
        qs = qs.select_for_update()
    obj = qs.filter(pk=pk).first()
    if obj is None:
        raise NotFound('Pre-registration not found')
    return obj


def approve(pk, decision: dict, *, user: Optional[User] = None) -> tuple[StudentProfile, str]:
    """Turn a pending application into a student and delete the application.

    ``decision`` carries the office's choices: ``category``,
    ``room_number`` and optionally ``bed_number``, ``locker_number`` and
    ``concession``.
    """
    with transaction.atomic():
        prereg = get_or_404(pk, lock=True)
        if prereg.status != PreRegistration.STATUS_PENDING:
            raise ValidationError('Pre-registration is not pending')
        data = {f: getattr(prereg, f) for f in PERSONAL_FIELDS}
        data.update(
            category=decision['category'],
            room_number=decision['room_number'],
            bed_number=decision.get('bed_number') or '',
            locker_number=decision.get('locker_number') or '',
        )
        profile, password = register_student(
            data,
            photo_urls={f: getattr(prereg, f) for f in PHOTO_FIELDS if getattr(prereg, f)},
            concession=decision.get('concession'),
        )
        log_action(user=user, action='preregistration_approve', object_type='preregistration',
                   object_id=prereg.pk, detail={'rollNumber': prereg.roll_number, 'hostelId': profile.hostel_id})
        prereg.delete()
    logger.info('pre-registration for %s approved', profile.roll_number)
    return profile, password


def reject(pk, reason: str, *, user: Optional[User] = None) -> PreRegistration:
    with transaction.atomic():
        prereg = get_or_404(pk, lock=True)
        if prereg.status != PreRegistration.STATUS_PENDING:
            raise ValidationError('Pre-registration is not pending')
        prereg.status = PreRegistration.STATUS_REJECTED
        prereg.rejection_reason = reason
        prereg.processed_at = timezone.now()
        prereg.processed_by = user
        prereg.save(update_fields=['status', 'rejection_reason', 'processed_at', 'processed_by'])
        log_action(user=user, action='preregistration_reject', object_type='preregistration',
                   object_id=prereg.pk, detail={'rollNumber': prereg.roll_number, 'reason': reason})
    return prereg


def delete(pk) -> None:
    prereg = get_or_404(pk)
    photos = [getattr(prereg, f) for f in PHOTO_FIELDS]
    prereg.delete()
    for url in photos:
        storage.delete_quietly(url)
