"""
Staff and guest views.

Every listing first runs the monthly expiry sweep, so stays whose month
has ended never show up as active and their beds are released.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from core.models import StaffGuest
from core.permissions import IsStaffRole
from core.responses import ok, paginate
from core.serializers.staff_guests import CheckInOutSerializer, StaffGuestListQuerySerializer, StaffGuestSerializer
from core.services import staff_guests as svc


def _get(pk) -> StaffGuest:
    sg = StaffGuest.objects.select_related('created_by', 'last_modified_by').filter(pk=pk).first()
    if sg is None:
        raise NotFound('Staff/guest not found')
    return sg


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def staff_guests(request):
    if request.method == 'GET':
        svc.expire_monthly_staff()
        q = StaffGuestListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        v = q.validated_data
        qs = svc.list_queryset(type=v.get('type'), gender=v.get('gender'), department=v.get('department'),
                               stay_type=v.get('stayType'), search=v.get('search'), is_active=v['isActive'])
        items, pagination = paginate(qs, v.get('page'), v.get('limit'))
        return ok({'staffGuests': [svc.serialize_staff_guest(sg) for sg in items], 'pagination': pagination})

    s = StaffGuestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    sg = svc.create_staff_guest(s.validated_data, user=request.user, photo=request.FILES.get('photo'))
    return ok(svc.serialize_staff_guest(sg), message='Staff/guest registered successfully', status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def staff_guest_detail(request, pk: int):
    sg = _get(pk)
    if request.method == 'GET':
        return ok(svc.serialize_staff_guest(sg))
    if request.method == 'DELETE':
        svc.deactivate(sg, user=request.user)
        return ok(message='Staff/guest deactivated successfully')
    s = StaffGuestSerializer(sg, data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    sg = svc.update_staff_guest(sg, s.validated_data, user=request.user, photo=request.FILES.get('photo'))
    return ok(svc.serialize_staff_guest(sg), message='Staff/guest updated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def check_in_out(request, pk: int):
    sg = _get(pk)
    s = CheckInOutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    action = s.validated_data['action']
    sg = svc.check_in_out(sg, action, user=request.user)
    verb = 'checked in' if action == 'checkin' else 'checked out'
    return ok(svc.serialize_staff_guest(sg), message=f'{sg.name} {verb} successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def staff_guest_stats(request):
    svc.expire_monthly_staff()
    return ok(svc.stats())
