"""
Student management views.

The hostel office lists, creates, edits and soft-deletes students and
imports them in bulk from a workbook.  Students themselves can only
read their own profile; the roll-number search is public so that
applicants can check whether they are already registered.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.models import PreRegistration, StudentProfile, TempCredential
from core.permissions import IsStaffRole, IsStudentRole
from core.responses import ok, paginate
from core.serializers.students import (
    RollSearchSerializer,
    StudentCreateSerializer,
    StudentListQuerySerializer,
    StudentUpdateSerializer,
)
from core.services import students as svc
from core.services.audit import log_action

logger = logging.getLogger(__name__)


def _get_student(pk) -> StudentProfile:
    profile = StudentProfile.objects.select_related('user').filter(pk=pk).first()
    if profile is None:
        raise NotFound('Student not found')
    return profile


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def students(request):
    if request.method == 'GET':
        q = StudentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        v = q.validated_data
        qs = svc.list_queryset(
            gender=v.get('gender'), category=v.get('category'), room_number=v.get('roomNumber'),
            course=v.get('course'), branch=v.get('branch'), batch=v.get('batch'),
            academic_year=v.get('academicYear'), search=v.get('search'), is_active=v['isActive'],
        )
        items, pagination = paginate(qs, v.get('page'), v.get('limit'))
        return ok({'students': [svc.serialize_student(p) for p in items], 'pagination': pagination})

    s = StudentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile, password = svc.create_student(s.validated_data, files=request.FILES)
    log_action(user=request.user, action='student_create', object_type='student', object_id=profile.pk,
               detail={'rollNumber': profile.roll_number, 'hostelId': profile.hostel_id})
    data = svc.serialize_student(profile)
    data['generatedPassword'] = password
    return ok(data, message='Student registered successfully', status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def student_detail(request, pk: int):
    profile = _get_student(pk)
    if request.method == 'GET':
        return ok(svc.serialize_student(profile))

    if request.method == 'DELETE':
        svc.set_active(profile, False)
        log_action(user=request.user, action='student_deactivate', object_type='student', object_id=profile.pk)
        return ok(message='Student deactivated successfully')

    s = StudentUpdateSerializer(profile, data=request.data)
    s.is_valid(raise_exception=True)
    svc.update_student(profile, s.validated_data, files=request.FILES)
    profile.refresh_from_db()
    return ok(svc.serialize_student(profile), message='Student updated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def import_students(request):
    f = request.FILES.get('file')
    if not f:
        raise ValidationError('An .xlsx file is required')
    if not (f.name or '').lower().endswith('.xlsx'):
        raise ValidationError('Only .xlsx workbooks are supported')
    result = svc.import_students(f)
    log_action(user=request.user, action='student_import', object_type='student',
               detail={'added': result['added'], 'skipped': result['skipped']})
    return ok(result, message=result['message'])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def temp_credentials(request):
    qs = (TempCredential.objects.select_related('student', 'student__user')
          .filter(student__user__is_password_changed=False, student__is_active=True)
          .order_by('-created_at'))
    return ok([
        {
            'studentId': c.student_id,
            'name': c.name,
            'rollNumber': c.roll_number,
            'hostelId': c.student.hostel_id,
            'studentPhone': c.student_phone,
            'generatedPassword': c.generated_password,
            'createdAt': c.created_at.isoformat(),
        }
        for c in qs
    ])


@api_view(['GET'])
@permission_classes([AllowAny])
def search_by_roll_number(request):
    """Minimal public lookup: is this roll number a student, or a pending applicant?"""
    q = RollSearchSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    roll = q.validated_data['rollNumber']
    profile = svc.find_by_roll_number(roll)
    if profile is not None:
        return ok({'found': True, 'type': 'student', 'name': profile.name, 'rollNumber': profile.roll_number,
                   'hostelId': profile.hostel_id})
    prereg = PreRegistration.objects.filter(roll_number=roll).order_by('-submitted_at').first()
    if prereg is not None:
        return ok({'found': True, 'type': 'preregistration', 'name': prereg.name, 'rollNumber': prereg.roll_number,
                   'status': prereg.status})
    return ok({'found': False, 'rollNumber': roll})

search_by_roll_number.cls.throttle_scope = 'roll_search'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStudentRole])
def my_profile(request):
    profile = StudentProfile.objects.select_related('user').filter(user=request.user).first()
    if profile is None:
        raise NotFound('Student profile not found')
    return ok(svc.serialize_student(profile))
