"""Outbound email: registration credentials and fee reminders."""
import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def _send(subject: str, body: str, to: str) -> bool:
    if not to:
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to], fail_silently=False)
    except Exception:
        logger.exception('email "%s" to %s failed', subject, to)
        return False
    return True


def send_registration_email(*, to: str, name: str, roll_number: str, hostel_id: str, password: str) -> bool:
    body = (
        f'Dear {name},\n\n'
        f'Your hostel account has been created.\n'
        f'Hostel ID: {hostel_id}\n'
        f'Username: {roll_number}\n'
        f'Temporary password: {password}\n\n'
        f'Log in at {settings.LOGIN_URL_FOR_STUDENTS} and change your password.\n'
    )
    return _send('Hostel registration', body, to)


def send_fee_reminder_email(*, to: str, name: str, reminder_number: int, term: int, amount: Decimal,
                            academic_year: str) -> bool:
    body = (
        f'Dear {name},\n\n'
        f'This is fee reminder {reminder_number} for the academic year {academic_year}.\n'
        f'Term {term} hostel fee of {amount} is still unpaid. Please pay at the earliest.\n'
    )
    return _send(f'Hostel fee reminder {reminder_number}', body, to)
