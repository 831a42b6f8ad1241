"""Hostel-wide settings: currently the default daily rate for staff stays."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsStaffRole, require_manager
from core.responses import ok
from core.serializers.staff_guests import DailyRateSerializer
from core.services.hostel_settings import get_settings, serialize_settings, update_default_daily_rate


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaffRole])
def daily_rate(request):
    if request.method == 'GET':
        return ok(serialize_settings(get_settings()))
    require_manager(request, 'Only administrators can change the daily rate')
    s = DailyRateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    obj, updated = update_default_daily_rate(s.validated_data['defaultDailyRate'], user=request.user)
    data = serialize_settings(obj)
    data['recalculated'] = updated
    return ok(data, message=f'Default daily rate updated; {updated} records re-priced')
