"""The persisted hostel-wide settings row and its default daily rate."""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.models import HostelSettings, User
from core.services.audit import log_action

logger = logging.getLogger(__name__)

SETTINGS_PK = 1
MAX_RATE = Decimal('100000000')


def get_settings() -> HostelSettings:
    obj, _ = HostelSettings.objects.get_or_create(pk=SETTINGS_PK)
    return obj


def default_daily_rate() -> Decimal:
    return get_settings().default_daily_rate


def parse_rate(value) -> Decimal:
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError('Daily rate must be a number')
    if not rate.is_finite():
        raise ValidationError('Daily rate must be a number')
    if rate < 0:
        raise ValidationError('Daily rate cannot be negative')
    if rate >= MAX_RATE:
        raise ValidationError('Daily rate is too large')
    return rate.quantize(Decimal('0.01'))


def update_default_daily_rate(value, *, user: Optional[User] = None,
                              today: Optional[date] = None) -> tuple[HostelSettings, int]:
    """Store a new default rate and re-price every chargeable stay.

    Returns the settings row and the number of records re-priced.
    """
    from core.services.staff_guests import recalculate_all_charges

    rate = parse_rate(value)
    with transaction.atomic():
        get_settings()
        obj = HostelSettings.objects.select_for_update().get(pk=SETTINGS_PK)
        previous = obj.default_daily_rate
        obj.default_daily_rate = rate
        obj.updated_by = user
        obj.save()
        updated = recalculate_all_charges(rate, today or timezone.localdate())
        log_action(user=user, action='daily_rate_update', object_type='hostel_settings', object_id=obj.pk,
                   detail={'from': str(previous), 'to': str(rate), 'recalculated': updated})
    logger.info('default daily rate %s -> %s (%d records re-priced)', previous, rate, updated)
    return obj, updated


def serialize_settings(obj: HostelSettings) -> dict:
    return {
        'defaultDailyRate': float(obj.default_daily_rate),
        'updatedAt': obj.updated_at.isoformat() if obj.updated_at else None,
        'updatedBy': obj.updated_by.username if obj.updated_by else None,
    }
