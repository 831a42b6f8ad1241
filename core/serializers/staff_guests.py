from rest_framework import serializers

from core.models import StaffGuest
from core.services.hostel_settings import parse_rate
from .common import MONTH_RE, ListQuerySerializer, check_phone, clean_text


class StaffGuestSerializer(serializers.Serializer):
    """Input for creating (and, with ``partial=True``, updating) a staff/guest."""
    name = serializers.CharField(max_length=100)
    type = serializers.ChoiceField(choices=[c for c, _ in StaffGuest.TYPE_CHOICES])
    gender = serializers.ChoiceField(choices=[c for c, _ in StaffGuest.GENDER_CHOICES])
    profession = serializers.CharField(max_length=100)
    phoneNumber = serializers.CharField(source='phone_number')
    email = serializers.EmailField(required=False, allow_blank=True)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    purpose = serializers.CharField(required=False, allow_blank=True, max_length=200)
    stayType = serializers.ChoiceField(source='stay_type', required=False,
                                       choices=[c for c, _ in StaffGuest.STAY_CHOICES])
    selectedMonth = serializers.CharField(source='selected_month', required=False, allow_blank=True)
    checkinDate = serializers.DateField(source='checkin_date', required=False, allow_null=True)
    checkoutDate = serializers.DateField(source='checkout_date', required=False, allow_null=True)
    dailyRate = serializers.CharField(source='daily_rate', required=False, allow_null=True, allow_blank=True)
    roomNumber = serializers.CharField(source='room_number', required=False, allow_blank=True)
    bedNumber = serializers.CharField(source='bed_number', required=False, allow_blank=True)
    isActive = serializers.BooleanField(source='is_active', required=False)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_profession(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Profession is required')
        return v

    def validate_phoneNumber(self, v):
        v = check_phone(v)
        if not v:
            raise serializers.ValidationError('Phone number is required')
        return v

    def validate_department(self, v):
        return clean_text(v)

    def validate_purpose(self, v):
        return clean_text(v)

    def validate_selectedMonth(self, v):
        v = (v or '').strip()
        if v and not MONTH_RE.match(v):
            raise serializers.ValidationError('Selected month must look like 2024-01')
        return v

    def validate_dailyRate(self, v):
        if v is None or str(v).strip() == '':
            return None
        return parse_rate(v)

    def validate(self, attrs):
        instance = self.instance
        def current(key, default=None):
            if key in attrs:
                return attrs[key]
            return getattr(instance, key, default) if instance is not None else default

        stay_type = current('stay_type', StaffGuest.STAY_DAILY)
        if stay_type == StaffGuest.STAY_MONTHLY and not current('selected_month'):
            raise serializers.ValidationError({'selectedMonth': 'Selected month is required for monthly stays'})
        checkin, checkout = current('checkin_date'), current('checkout_date')
        if checkin and checkout and checkout < checkin:
            raise serializers.ValidationError({'checkoutDate': 'Checkout date cannot be before check-in date'})
        if current('type') != 'staff':
            attrs['department'] = ''
        return attrs


class StaffGuestListQuerySerializer(ListQuerySerializer):
    type = serializers.ChoiceField(required=False, choices=[c for c, _ in StaffGuest.TYPE_CHOICES])
    gender = serializers.ChoiceField(required=False, choices=[c for c, _ in StaffGuest.GENDER_CHOICES])
    department = serializers.CharField(required=False, allow_blank=True)
    stayType = serializers.ChoiceField(required=False, choices=[c for c, _ in StaffGuest.STAY_CHOICES])


class CheckInOutSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['checkin', 'checkout'])


class DailyRateSerializer(serializers.Serializer):
    defaultDailyRate = serializers.CharField()

    def validate_defaultDailyRate(self, v):
        return parse_rate(v)
