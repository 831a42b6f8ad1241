from rest_framework import serializers

from core.models import CATEGORY_CHOICES, GENDER_CHOICES
from .students import check_category


class RoomSerializer(serializers.Serializer):
    roomNumber = serializers.RegexField(r'^\d{3}$', source='room_number',
                                        error_messages={'invalid': 'Room number must be 3 digits'})
    gender = serializers.ChoiceField(choices=[c for c, _ in GENDER_CHOICES])
    category = serializers.ChoiceField(choices=[c for c, _ in CATEGORY_CHOICES])
    bedCount = serializers.IntegerField(source='bed_count', min_value=1, max_value=50)
    isActive = serializers.BooleanField(source='is_active', required=False)

    def validate(self, attrs):
        inst = self.instance
        check_category(attrs.get('gender', getattr(inst, 'gender', None)),
                       attrs.get('category', getattr(inst, 'category', None)))
        return attrs


class RoomQuerySerializer(serializers.Serializer):
    gender = serializers.ChoiceField(required=False, choices=[c for c, _ in GENDER_CHOICES])
    category = serializers.ChoiceField(required=False, choices=[c for c, _ in CATEGORY_CHOICES])
