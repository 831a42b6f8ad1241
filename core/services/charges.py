"""
Charge arithmetic for staff and student stays.

Pure functions over plain values; persistence lives in
:mod:`core.services.staff_guests`.
"""
from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Optional

CHARGEABLE_TYPES = ('staff', 'student')


def day_count(checkin: Optional[date], checkout: Optional[date], today: date) -> int:
    """Number of billable days, counting both the first and the last day.

    An open stay (no checkout) runs until ``today``.
    """
    if not checkin:
        return 0
    end = checkout or today
    return max(0, (end - checkin).days + 1)


def days_in_month(selected_month: str) -> int:
    """Days in a ``YYYY-MM`` month; 0 when the value is missing or malformed."""
    try:
        year, month = (int(p) for p in (selected_month or '').split('-'))
        return calendar.monthrange(year, month)[1]
    except (ValueError, calendar.IllegalMonthError):
        return 0


def effective_rate(override: Optional[Decimal], default: Decimal) -> Decimal:
    return Decimal(override) if override is not None else Decimal(default)


def calculate_charges(*, occupant_type: str, stay_type: str, checkin: Optional[date],
                      checkout: Optional[date], selected_month: str, daily_rate: Optional[Decimal],
                      default_rate: Decimal, today: date) -> Decimal:
    if occupant_type not in CHARGEABLE_TYPES:
        return Decimal('0')
    rate = effective_rate(daily_rate, default_rate)
    if stay_type == 'monthly':
        return days_in_month(selected_month) * rate
    return day_count(checkin, checkout, today) * rate


def charges_for(record, default_rate: Decimal, today: date) -> Decimal:
    """:func:`calculate_charges` for a ``StaffGuest``-shaped object."""
    return calculate_charges(
        occupant_type=record.type,
        stay_type=record.stay_type,
        checkin=record.checkin_date,
        checkout=record.checkout_date,
        selected_month=record.selected_month,
        daily_rate=record.daily_rate,
        default_rate=default_rate,
        today=today,
    )
