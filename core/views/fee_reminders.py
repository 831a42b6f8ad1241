"""
Fee reminder views.

Students may read only their own reminders; everything else is for the
hostel office.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import FeeReminder, StudentProfile, User
from core.permissions import IsStaffRole, is_staff_user
from core.responses import ok, paginate
from core.serializers.fees import (
    AcademicYearSerializer,
    FeeReminderCreateSerializer,
    FeeReminderListQuerySerializer,
    FeeStatusSerializer,
)
from core.services import fee_reminders as svc
from core.services.audit import log_action

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def student_reminders(request, student_id: int):
    user = request.user
    profile = StudentProfile.objects.filter(pk=student_id).first()
    if user.role == User.ROLE_STUDENT:
        if profile is None or profile.user_id != user.id:
            raise PermissionDenied('You can only view your own fee reminders')
    elif not is_staff_user(user):
        raise PermissionDenied()
    if profile is None:
        raise NotFound('Student not found')
    now = timezone.now()
    reminders = []
    for reminder in FeeReminder.objects.select_related('student').filter(student=profile, is_active=True) \
            .order_by('-academic_year'):
        data = svc.serialize_reminder(reminder)
        data['visibleReminders'] = svc.visible_reminders(reminder, now)
        reminders.append(data)
    return ok({
        'reminders': reminders,
        'allTermsPaid': all(r['allTermsPaid'] for r in reminders) if reminders else False,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def fee_reminders(request):
    if request.method == 'GET':
        q = FeeReminderListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        v = q.validated_data
        qs = FeeReminder.objects.select_related('student').filter(is_active=v['isActive'])
        if v.get('academicYear'):
            qs = qs.filter(academic_year=v['academicYear'])
        paid_q = Q(term1_status=FeeReminder.PAID, term2_status=FeeReminder.PAID, term3_status=FeeReminder.PAID)
        if v.get('status') == 'paid':
            qs = qs.filter(paid_q)
        elif v.get('status') == 'pending':
            qs = qs.exclude(paid_q)
        if v.get('search'):
            s = v['search']
            qs = qs.filter(Q(student__name__icontains=s) | Q(student__roll_number__icontains=s)
                           | Q(student__hostel_id__icontains=s))
        items, pagination = paginate(qs.order_by('-created_at', '-id'), v.get('page'), v.get('limit'))
        return ok({'feeReminders': [svc.serialize_reminder(r) for r in items], 'pagination': pagination})

    s = FeeReminderCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    profile = StudentProfile.objects.filter(pk=v['studentId'], is_active=True).first()
    if profile is None:
        raise NotFound('Student not found')
    reminder, created = svc.create_for_student(profile, registration_date=v.get('registrationDate'),
                                               academic_year=v.get('academicYear') or None)
    return ok(svc.serialize_reminder(reminder),
              message='Fee reminder created' if created else 'Fee reminder already exists',
              status=201 if created else 200)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def fee_reminder_stats(request):
    q = AcademicYearSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return ok(svc.stats(q.validated_data.get('academicYear') or None))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def create_all(request):
    s = AcademicYearSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        result = svc.create_for_all_students(s.validated_data.get('academicYear') or None)
    return ok(result, message=f"Created {result['created']} fee reminders, skipped {result['skipped']}")


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffRole])
def update_status(request, pk: int):
    reminder = FeeReminder.objects.select_related('student__user').filter(pk=pk).first()
    if reminder is None:
        raise NotFound('Fee reminder not found')
    s = FeeStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        svc.update_status(reminder, s.validated_data, user=request.user)
        log_action(user=request.user, action='fee_status_update', object_type='fee_reminder', object_id=reminder.pk,
                   detail=dict(s.validated_data))
    return ok(svc.serialize_reminder(reminder), message='Fee status updated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def process(request):
    with transaction.atomic():
        issued = svc.process_due_reminders()
        hidden = svc.refresh_visibility()
    return ok({'issued': issued, 'hidden': hidden}, message=f'Issued {issued} fee reminders')
