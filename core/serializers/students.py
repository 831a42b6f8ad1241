import re

from rest_framework import serializers

from core.models import CATEGORY_CHOICES, GENDER_CHOICES, ROOM_CATEGORIES, StudentProfile
from .common import ListQuerySerializer, check_academic_year, check_batch, check_phone, clean_text

ROLL_RE = re.compile(r'^[A-Z0-9]+$')


def normalize_roll_number(v) -> str:
    v = (v or '').strip().upper()
    if not ROLL_RE.match(v):
        raise serializers.ValidationError('Roll number must contain only letters and digits')
    return v


class StudentPersonalSerializer(serializers.Serializer):
    """Fields shared by admin-created students and public pre-registrations."""
    name = serializers.CharField(max_length=128)
    rollNumber = serializers.CharField(source='roll_number', max_length=32)
    gender = serializers.ChoiceField(choices=[c for c, _ in GENDER_CHOICES])
    course = serializers.CharField(max_length=64)
    branch = serializers.CharField(max_length=64)
    year = serializers.IntegerField(min_value=1, max_value=10)
    batch = serializers.CharField(max_length=9)
    academicYear = serializers.CharField(source='academic_year', max_length=9)
    studentPhone = serializers.CharField(source='student_phone')
    parentPhone = serializers.CharField(source='parent_phone')
    motherName = serializers.CharField(source='mother_name', required=False, allow_blank=True, max_length=128)
    motherPhone = serializers.CharField(source='mother_phone', required=False, allow_blank=True)
    localGuardianName = serializers.CharField(source='local_guardian_name', required=False, allow_blank=True,
                                              max_length=128)
    localGuardianPhone = serializers.CharField(source='local_guardian_phone', required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    mealType = serializers.ChoiceField(source='meal_type', required=False,
                                       choices=[c for c, _ in StudentProfile.MEAL_CHOICES])

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_rollNumber(self, v):
        return normalize_roll_number(v)

    def validate_course(self, v):
        return clean_text(v)

    def validate_branch(self, v):
        return clean_text(v)

    def validate_batch(self, v):
        return check_batch(v)

    def validate_academicYear(self, v):
        return check_academic_year(v)

    def validate_studentPhone(self, v):
        return check_phone(v, 'Student phone')

    def validate_parentPhone(self, v):
        return check_phone(v, 'Parent phone')

    def validate_motherPhone(self, v):
        return check_phone(v, 'Mother phone')

    def validate_localGuardianPhone(self, v):
        return check_phone(v, 'Local guardian phone')

    def validate_motherName(self, v):
        return clean_text(v)

    def validate_localGuardianName(self, v):
        return clean_text(v)


def check_category(gender, category):
    if gender and category and category not in ROOM_CATEGORIES.get(gender, ()):
        raise serializers.ValidationError({'category': f'Category {category} is not valid for {gender} rooms'})


class StudentCreateSerializer(StudentPersonalSerializer):
    category = serializers.ChoiceField(choices=[c for c, _ in CATEGORY_CHOICES])
    roomNumber = serializers.CharField(source='room_number', max_length=3)
    bedNumber = serializers.CharField(source='bed_number', required=False, allow_blank=True, max_length=16)
    lockerNumber = serializers.CharField(source='locker_number', required=False, allow_blank=True, max_length=16)
    concession = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)

    def validate(self, attrs):
        check_category(attrs.get('gender'), attrs.get('category'))
        return attrs


class StudentUpdateSerializer(StudentCreateSerializer):
    """Partial update; the roll number and hostel ID are not editable."""
    isActive = serializers.BooleanField(source='is_active', required=False)

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)
        self.fields.pop('rollNumber')

    def validate(self, attrs):
        inst = self.instance
        check_category(attrs.get('gender', getattr(inst, 'gender', None)),
                       attrs.get('category', getattr(inst, 'category', None)))
        return attrs


class StudentListQuerySerializer(ListQuerySerializer):
    gender = serializers.ChoiceField(required=False, choices=[c for c, _ in GENDER_CHOICES])
    category = serializers.ChoiceField(required=False, choices=[c for c, _ in CATEGORY_CHOICES])
    roomNumber = serializers.CharField(required=False, allow_blank=True)
    course = serializers.CharField(required=False, allow_blank=True)
    branch = serializers.CharField(required=False, allow_blank=True)
    batch = serializers.CharField(required=False, allow_blank=True)
    academicYear = serializers.CharField(required=False, allow_blank=True)


class RollSearchSerializer(serializers.Serializer):
    rollNumber = serializers.CharField()

    def validate_rollNumber(self, v):
        return normalize_roll_number(v)
