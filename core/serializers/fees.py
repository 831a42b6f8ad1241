from rest_framework import serializers

from core.models import CATEGORY_CHOICES, FeeReminder
from .common import ListQuerySerializer, check_academic_year

TERM_STATUS = [FeeReminder.PAID, FeeReminder.UNPAID]


class FeeStructureSerializer(serializers.Serializer):
    academicYear = serializers.CharField(source='academic_year')
    category = serializers.ChoiceField(choices=[c for c, _ in CATEGORY_CHOICES])
    term1Fee = serializers.DecimalField(source='term1_fee', max_digits=10, decimal_places=2, min_value=0)
    term2Fee = serializers.DecimalField(source='term2_fee', max_digits=10, decimal_places=2, min_value=0)
    term3Fee = serializers.DecimalField(source='term3_fee', max_digits=10, decimal_places=2, min_value=0)

    def validate_academicYear(self, v):
        v = check_academic_year(v)
        if not v:
            raise serializers.ValidationError('Academic year is required')
        return v


class FeeStatusSerializer(serializers.Serializer):
    term1 = serializers.ChoiceField(choices=TERM_STATUS, required=False)
    term2 = serializers.ChoiceField(choices=TERM_STATUS, required=False)
    term3 = serializers.ChoiceField(choices=TERM_STATUS, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide the status of at least one term')
        return attrs


class FeeReminderCreateSerializer(serializers.Serializer):
    studentId = serializers.IntegerField()
    academicYear = serializers.CharField(required=False, allow_blank=True)
    registrationDate = serializers.DateTimeField(required=False)

    def validate_academicYear(self, v):
        return check_academic_year(v)


class AcademicYearSerializer(serializers.Serializer):
    academicYear = serializers.CharField(required=False, allow_blank=True)

    def validate_academicYear(self, v):
        return check_academic_year(v)


class FeeReminderListQuerySerializer(ListQuerySerializer):
    academicYear = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(required=False, choices=['paid', 'pending'])
