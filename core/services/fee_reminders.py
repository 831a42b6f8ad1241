"""
Term fee pricing and the three-stage fee reminder schedule.

Reminders fall due 5, 90 and 210 days after registration, one per
term.  A reminder is issued only while its term is unpaid, and stays
visible to the student for three days after it was issued.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.models import FeeReminder, FeeStructure, StudentProfile, User
from core.services import mail, push

logger = logging.getLogger(__name__)

REMINDER_OFFSET_DAYS = (5, 90, 210)
VISIBLE_FOR = timedelta(days=3)
DEFAULT_TERM_FEE = Decimal('15000')
STAGES = ('first', 'second', 'third')
MESSAGES = (
    'First reminder: Please pay your hostel fees for Term 1.',
    'Second reminder: Please pay your hostel fees for Term 2.',
    'Final reminder: Please pay your hostel fees for Term 3.',
)


def calculate_term_fees(term_fees, concession) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """Apply ``concession`` to term 1, then whatever is left to term 2, then term 3."""
    remaining = max(Decimal('0'), Decimal(concession or 0))
    result = []
    for fee in term_fees:
        fee = Decimal(fee)
        result.append(max(Decimal('0'), fee - remaining))
        remaining = max(Decimal('0'), remaining - fee)
    t1, t2, t3 = result
    return t1, t2, t3, t1 + t2 + t3


def fee_structure_for(academic_year: str, category: str) -> Optional[FeeStructure]:
    if not academic_year or not category:
        return None
    return FeeStructure.objects.filter(academic_year=academic_year, category=category, is_active=True).first()


def price_student(profile: StudentProfile, concession=None) -> None:
    """Fill the calculated term fees of ``profile`` from its fee structure."""
    if concession is not None:
        profile.concession = Decimal(concession)
    structure = fee_structure_for(profile.academic_year, profile.category)
    if structure is None:
        return
    (profile.calculated_term1_fee, profile.calculated_term2_fee,
     profile.calculated_term3_fee, profile.total_calculated_fee) = calculate_term_fees(
        (structure.term1_fee, structure.term2_fee, structure.term3_fee), profile.concession)


def create_for_student(profile: StudentProfile, *, registration_date: Optional[datetime] = None,
                       academic_year: Optional[str] = None) -> tuple[FeeReminder, bool]:
    academic_year = academic_year or profile.academic_year
    if not academic_year:
        raise ValidationError('Student has no academic year')
    existing = FeeReminder.objects.filter(student=profile, academic_year=academic_year).first()
    if existing:
        return existing, False
    registered = registration_date or timezone.now()
    first, second, third = (registered + timedelta(days=d) for d in REMINDER_OFFSET_DAYS)
    if profile.total_calculated_fee:
        amounts = (profile.calculated_term1_fee, profile.calculated_term2_fee, profile.calculated_term3_fee)
    else:
        structure = fee_structure_for(academic_year, profile.category)
        amounts = ((structure.term1_fee, structure.term2_fee, structure.term3_fee) if structure
                   else (DEFAULT_TERM_FEE,) * 3)
    reminder = FeeReminder.objects.create(
        student=profile,
        academic_year=academic_year,
        registration_date=registered,
        first_reminder_date=first,
        second_reminder_date=second,
        third_reminder_date=third,
        term1_amount=amounts[0],
        term2_amount=amounts[1],
        term3_amount=amounts[2],
    )
    return reminder, True


def create_for_all_students(academic_year: Optional[str] = None) -> dict:
    created = skipped = 0
    for profile in StudentProfile.objects.filter(is_active=True):
        year = academic_year or profile.academic_year
        if not year:
            skipped += 1
            continue
        _, was_created = create_for_student(profile, academic_year=year)
        if was_created:
            created += 1
        else:
            skipped += 1
    return {'created': created, 'skipped': skipped}


def due_stage(reminder: FeeReminder, now: datetime) -> int:
    """Number (1-3) of the first reminder due now and not issued yet, or 0."""
    for n, stage in enumerate(STAGES, start=1):
        due = getattr(reminder, f'{stage}_reminder_date')
        issued = getattr(reminder, f'{stage}_reminder_issued_at')
        status = getattr(reminder, f'term{n}_status')
        if due <= now and issued is None and status == FeeReminder.UNPAID:
            return n
    return 0


def _notify_issued(reminder: FeeReminder, number: int) -> None:
    profile = reminder.student
    mail.send_fee_reminder_email(
        to=profile.email, name=profile.name, reminder_number=number, term=number,
        amount=getattr(reminder, f'term{number}_amount'), academic_year=reminder.academic_year,
    )
    push.send_to_user(profile.user, push.build_payload(
        MESSAGES[number - 1], type='fee_reminder', title=f'Hostel Fee Reminder {number}', related_id=reminder.pk))


def process_due_reminders(now: Optional[datetime] = None) -> int:
    """Issue at most one due reminder per record; returns how many were issued."""
    now = now or timezone.now()
    due = Q()
    for n, stage in enumerate(STAGES, start=1):
        due |= Q(**{f'{stage}_reminder_date__lte': now, f'{stage}_reminder_issued_at__isnull': True,
                    f'term{n}_status': FeeReminder.UNPAID})
    issued = 0
    for reminder in FeeReminder.objects.select_related('student__user').filter(due, is_active=True):
        number = due_stage(reminder, now)
        if not number:
            continue
        stage = STAGES[number - 1]
        setattr(reminder, f'{stage}_reminder_issued_at', now)
        setattr(reminder, f'{stage}_reminder_visible', True)
        reminder.current_reminder = number
        reminder.save()
        issued += 1
        transaction.on_commit(lambda r=reminder, n=number: _notify_issued(r, n))
    logger.info('issued %d fee reminders', issued)
    return issued


def refresh_visibility(now: Optional[datetime] = None) -> int:
    """Hide reminders issued more than three days ago."""
    now = now or timezone.now()
    cutoff = now - VISIBLE_FOR
    hidden = 0
    for stage in STAGES:
        hidden += FeeReminder.objects.filter(**{
            f'{stage}_reminder_visible': True, f'{stage}_reminder_issued_at__lt': cutoff,
        }).update(**{f'{stage}_reminder_visible': False})
    return hidden


def visible_reminders(reminder: FeeReminder, now: Optional[datetime] = None) -> list[dict]:
    now = now or timezone.now()
    out = []
    for n, stage in enumerate(STAGES, start=1):
        issued = getattr(reminder, f'{stage}_reminder_issued_at')
        if issued and now <= issued + VISIBLE_FOR:
            out.append({
                'number': n,
                'issuedAt': issued.isoformat(),
                'dueDate': getattr(reminder, f'{stage}_reminder_date').isoformat(),
                'status': 'Active',
            })
    return out


def update_status(reminder: FeeReminder, statuses: dict, *, user: Optional[User] = None) -> FeeReminder:
    """Set term statuses from ``{'term1': 'Paid', ...}`` and tell the student."""
    for term, value in statuses.items():
        setattr(reminder, f'{term}_status', value)
    reminder.last_updated_by = user
    reminder.last_updated_at = timezone.now()
    reminder.save()
    profile = reminder.student
    summary = ', '.join(f'{t.title()}: {v}' for t, v in sorted(statuses.items()))
    transaction.on_commit(lambda: push.send_to_user(profile.user, push.build_payload(
        f'Your fee status was updated ({summary})', type='fee_status', related_id=reminder.pk)))
    return reminder


def paid_amount(reminder: FeeReminder) -> Decimal:
    return sum(
        (getattr(reminder, f'term{n}_amount') for n in (1, 2, 3)
         if getattr(reminder, f'term{n}_status') == FeeReminder.PAID),
        Decimal('0'),
    )


def stats(academic_year: Optional[str] = None) -> dict:
    total_students = StudentProfile.objects.filter(is_active=True).count()
    qs = FeeReminder.objects.filter(is_active=True)
    if academic_year:
        qs = qs.filter(academic_year=academic_year)
    paid_q = Q(term1_status=FeeReminder.PAID, term2_status=FeeReminder.PAID, term3_status=FeeReminder.PAID)
    paid = qs.filter(paid_q).count()
    pending = qs.exclude(paid_q).count()
    active = qs.filter(current_reminder__gt=0).count()
    rate = round(paid / total_students * 100, 1) if total_students else 0
    return {
        'totalStudents': total_students,
        'paidStudents': paid,
        'pendingStudents': pending,
        'activeReminders': active,
        'paymentRate': rate,
    }


def serialize_reminder(reminder: FeeReminder, now: Optional[datetime] = None) -> dict:
    profile = reminder.student
    total = reminder.term1_amount + reminder.term2_amount + reminder.term3_amount
    paid = paid_amount(reminder)

    def _iso(v):
        return v.isoformat() if v else None

    return {
        'id': reminder.id,
        'student': {
            'id': profile.id,
            'name': profile.name,
            'rollNumber': profile.roll_number,
            'hostelId': profile.hostel_id,
        },
        'academicYear': reminder.academic_year,
        'registrationDate': _iso(reminder.registration_date),
        'reminderDates': {
            'first': _iso(reminder.first_reminder_date),
            'second': _iso(reminder.second_reminder_date),
            'third': _iso(reminder.third_reminder_date),
        },
        'issuedAt': {
            'first': _iso(reminder.first_reminder_issued_at),
            'second': _iso(reminder.second_reminder_issued_at),
            'third': _iso(reminder.third_reminder_issued_at),
        },
        'currentReminder': reminder.current_reminder,
        'feeStatus': {
            'term1': reminder.term1_status,
            'term2': reminder.term2_status,
            'term3': reminder.term3_status,
        },
        'feeAmounts': {
            'term1': float(reminder.term1_amount),
            'term2': float(reminder.term2_amount),
            'term3': float(reminder.term3_amount),
        },
        'totalFee': float(total),
        'paidAmount': float(paid),
        'pendingAmount': float(total - paid),
        'allTermsPaid': reminder.all_terms_paid(),
        'lastUpdatedAt': _iso(reminder.last_updated_at),
        'isActive': reminder.is_active,
    }
