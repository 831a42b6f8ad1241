"""Per academic year and room category term fees."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.models import FeeStructure
from core.permissions import IsStaffRole, require_manager
from core.responses import ok
from core.serializers.fees import AcademicYearSerializer, FeeStructureSerializer
from core.services.audit import log_action


def _serialize(fs: FeeStructure) -> dict:
    return {
        'id': fs.id,
        'academicYear': fs.academic_year,
        'category': fs.category,
        'term1Fee': float(fs.term1_fee),
        'term2Fee': float(fs.term2_fee),
        'term3Fee': float(fs.term3_fee),
        'totalFee': float(fs.total_fee),
        'isActive': fs.is_active,
        'updatedAt': fs.updated_at.isoformat() if fs.updated_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def fee_structures(request):
    if request.method == 'GET':
        q = AcademicYearSerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = FeeStructure.objects.filter(is_active=True)
        if q.validated_data.get('academicYear'):
            qs = qs.filter(academic_year=q.validated_data['academicYear'])
        return ok([_serialize(fs) for fs in qs.order_by('-academic_year', 'category')])

    require_manager(request, 'Only administrators can change fee structures')
    s = FeeStructureSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = dict(s.validated_data)
    fs, created = FeeStructure.objects.update_or_create(
        academic_year=v.pop('academic_year'), category=v.pop('category'),
        defaults={**v, 'is_active': True, 'updated_by': request.user},
    )
    log_action(user=request.user, action='fee_structure_upsert', object_type='fee_structure', object_id=fs.pk,
               detail={'academicYear': fs.academic_year, 'category': fs.category, 'total': str(fs.total_fee)})
    return ok(_serialize(fs), message='Fee structure saved', status=201 if created else 200)
