"""
Pre-registration views.

Applicants submit without an account; the office reviews the queue and
either approves (creating the student) or rejects with a reason.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.models import PreRegistration
from core.permissions import IsStaffRole
from core.responses import ok, paginate
from core.serializers.preregistration import (
    ApproveSerializer,
    PreRegistrationListQuerySerializer,
    PreRegistrationSerializer,
    RejectSerializer,
)
from core.services import preregistration as svc
from core.services.students import serialize_student


@api_view(['POST'])
@permission_classes([AllowAny])
def preregister(request):
    s = PreRegistrationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    prereg = svc.submit(s.validated_data, files=request.FILES)
    return ok({'id': prereg.id, 'rollNumber': prereg.roll_number, 'status': prereg.status},
              message='Pre-registration submitted successfully', status=201)

preregister.cls.throttle_scope = 'preregister'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def preregistrations(request):
    q = PreRegistrationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    qs = PreRegistration.objects.all()
    if v.get('status'):
        qs = qs.filter(status=v['status'])
    if v.get('search'):
        qs = qs.filter(Q(name__icontains=v['search']) | Q(roll_number__icontains=v['search'])
                       | Q(student_phone__icontains=v['search']))
    items, pagination = paginate(qs.order_by('-submitted_at', '-id'), v.get('page'), v.get('limit'))
    return ok({'preRegistrations': [svc.serialize_preregistration(p) for p in items], 'pagination': pagination})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def preregistration_detail(request, pk: int):
    if request.method == 'DELETE':
        svc.delete(pk)
        return ok(message='Pre-registration deleted')
    return ok(svc.serialize_preregistration(svc.get_or_404(pk)))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def approve(request, pk: int):
    prereg = svc.get_or_404(pk)
    s = ApproveSerializer(data=request.data, context={'gender': prereg.gender})
    s.is_valid(raise_exception=True)
    profile, password = svc.approve(pk, s.validated_data, user=request.user)
    data = serialize_student(profile)
    data['generatedPassword'] = password
    return ok(data, message='Pre-registration approved and student registered', status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def reject(request, pk: int):
    s = RejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    prereg = svc.reject(pk, s.validated_data['rejectionReason'], user=request.user)
    return ok(svc.serialize_preregistration(prereg), message='Pre-registration rejected')
