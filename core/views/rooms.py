"""
Room views.

Occupancy in every room listing counts active students and active
staff/guests together.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.permissions import IsStaffRole, require_manager
from core.responses import ok
from core.serializers.rooms import RoomQuerySerializer, RoomSerializer
from core.services import occupancy, rooms as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def rooms(request):
    if request.method == 'GET':
        q = RoomQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return ok(svc.list_rooms(gender=q.validated_data.get('gender'), category=q.validated_data.get('category')))
    require_manager(request, 'Only administrators can change rooms')
    s = RoomSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    room = svc.create_room(s.validated_data)
    return ok(svc.serialize_room(occupancy.check_availability(room)), message='Room created successfully',
              status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def room_availability(request):
    q = RoomQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return ok(svc.available_rooms(gender=q.validated_data.get('gender'), category=q.validated_data.get('category')))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def room_stats(request):
    return ok(svc.stats())


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def room_detail(request, pk: int):
    if request.method == 'GET':
        room = svc.get_or_404(pk)
        return ok(svc.serialize_room(occupancy.check_availability(room)))
    require_manager(request, 'Only administrators can change rooms')
    if request.method == 'DELETE':
        svc.delete_room(pk)
        return ok(message='Room deleted successfully')
    s = RoomSerializer(svc.get_or_404(pk), data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    room = svc.update_room(pk, s.validated_data)
    return ok(svc.serialize_room(occupancy.check_availability(room)), message='Room updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def room_occupants(request, pk: int):
    return ok(svc.occupants(svc.get_or_404(pk)))
