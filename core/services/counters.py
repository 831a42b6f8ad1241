"""Hostel-ID issuance backed by the :class:`Counter` table."""
import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.models import Counter

logger = logging.getLogger(__name__)

MALE_PREFIX = 'BH'
FEMALE_PREFIX = 'GH'


def prefix_for_gender(gender: Optional[str]) -> str:
    # Anything that is not exactly "Male" gets the girls' hostel prefix
    return MALE_PREFIX if gender == 'Male' else FEMALE_PREFIX


def counter_key(prefix: str, yy: str) -> str:
    return f'hostel_{prefix}{yy}'


def next_sequence(key: str) -> int:
    """Increment the counter ``key`` and return the new value.

    The UPDATE takes a row lock, so concurrent callers serialise on it and
    each reads back its own value.  When called inside an outer
    transaction the increment is rolled back together with it.
    """
    with transaction.atomic():
        Counter.objects.get_or_create(key=key)
        Counter.objects.filter(key=key).update(sequence=F('sequence') + 1)
        return Counter.objects.values_list('sequence', flat=True).get(key=key)


def allocate_hostel_id(gender: Optional[str], *, today: Optional[date] = None) -> str:
    """Return the next ``<BH|GH><yy><seq>`` identifier for ``gender``."""
    today = today or timezone.localdate()
    prefix = prefix_for_gender(gender)
    yy = f'{today.year % 100:02d}'
    seq = next_sequence(counter_key(prefix, yy))
    hostel_id = f'{prefix}{yy}{seq:03d}'
    logger.info('allocated hostel id %s', hostel_id)
    return hostel_id


def peek_sequence(prefix: str, yy: str) -> int:
    """Current value of a counter without incrementing it (0 if unused)."""
    row = Counter.objects.filter(key=counter_key(prefix, yy)).values_list('sequence', flat=True).first()
    return row or 0
