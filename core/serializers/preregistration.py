from rest_framework import serializers

from core.models import CATEGORY_CHOICES, PreRegistration
from .common import ListQuerySerializer, clean_text
from .students import StudentPersonalSerializer, check_category


class PreRegistrationSerializer(StudentPersonalSerializer):
    email = serializers.EmailField()

    def validate(self, attrs):
        for key, label in (('student_phone', 'Student phone'), ('parent_phone', 'Parent phone')):
            if not attrs.get(key):
                raise serializers.ValidationError({key: f'{label} is required'})
        return attrs


class ApproveSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=[c for c, _ in CATEGORY_CHOICES])
    roomNumber = serializers.CharField(source='room_number', max_length=3)
    bedNumber = serializers.CharField(source='bed_number', required=False, allow_blank=True, max_length=16)
    lockerNumber = serializers.CharField(source='locker_number', required=False, allow_blank=True, max_length=16)
    concession = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)

    def validate(self, attrs):
        gender = self.context.get('gender')
        if gender:
            check_category(gender, attrs['category'])
        return attrs


class RejectSerializer(serializers.Serializer):
    rejectionReason = serializers.CharField(max_length=500)

    def validate_rejectionReason(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('A rejection reason is required')
        return v


class PreRegistrationListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(required=False, choices=[c for c, _ in PreRegistration.STATUS_CHOICES])
