import re

import bleach
from rest_framework import serializers

PHONE_RE = re.compile(r'^\d{10}$')
YEAR_SPAN_RE = re.compile(r'^(\d{4})-(\d{4})$')
MONTH_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


def clean_text(v) -> str:
    return bleach.clean((v or '').strip(), tags=[], strip=True)


def check_phone(v, label='Phone number') -> str:
    v = (v or '').strip()
    if v and not PHONE_RE.match(v):
        raise serializers.ValidationError(f'{label} must be 10 digits')
    return v


def check_academic_year(v) -> str:
    """``YYYY-YYYY`` where the second year follows the first."""
    v = (v or '').strip()
    if not v:
        return v
    m = YEAR_SPAN_RE.match(v)
    if not m or int(m.group(2)) != int(m.group(1)) + 1:
        raise serializers.ValidationError('Academic year must look like 2024-2025')
    return v


def check_batch(v) -> str:
    v = (v or '').strip()
    m = YEAR_SPAN_RE.match(v) if v else None
    if v and (not m or int(m.group(2)) <= int(m.group(1))):
        raise serializers.ValidationError('Batch must look like 2022-2026')
    return v


class ListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200)
    search = serializers.CharField(required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False, default=True)
