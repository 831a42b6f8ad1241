"""
Database models for the hostel backend.

Students are regular :class:`User` accounts with a one-to-one
:class:`StudentProfile`; staff members and guests are standalone
:class:`StaffGuest` records that never log in.  Both kinds of occupant
share the :class:`Room` beds, which is why occupancy is always counted
across the two tables.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models


GENDER_CHOICES = [
    ('Male', 'Male'),
    ('Female', 'Female'),
]

# Valid room categories per gender
ROOM_CATEGORIES = {
    'Male': ('A+', 'A', 'B+', 'B'),
    'Female': ('A+', 'A', 'B', 'C'),
}
CATEGORY_CHOICES = [(c, c) for c in ('A+', 'A', 'B+', 'B', 'C')]

phone_validator = RegexValidator(r'^\d{10}$', 'Phone number must be 10 digits')
year_span_validator = RegexValidator(r'^\d{4}-\d{4}$', 'Use the format YYYY-YYYY')


class User(AbstractUser):
    """Account used for logging in.

    Administrative roles manage the hostel; students log in with their
    roll number as username.
    """
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_ADMIN = 'admin'
    ROLE_WARDEN = 'warden'
    ROLE_STUDENT = 'student'
    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Administrator'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_WARDEN, 'Warden'),
        (ROLE_STUDENT, 'Student'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_STUDENT, db_index=True)
    is_password_changed = models.BooleanField(default=False)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Room(models.Model):
    """A physical room with a fixed number of beds."""
    room_number = models.CharField(
        max_length=3, unique=True,
        validators=[RegexValidator(r'^\d{3}$', 'Room number must be 3 digits')],
    )
    gender = models.CharField(max_length=8, choices=GENDER_CHOICES)
    category = models.CharField(max_length=2, choices=CATEGORY_CHOICES)
    bed_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['room_number']
        indexes = [
            models.Index(fields=['gender', 'category']),
        ]

    def __str__(self) -> str:
        return f"Room {self.room_number} ({self.gender}/{self.category})"


class StudentProfile(models.Model):
    MEAL_CHOICES = [
        ('veg', 'Veg'),
        ('non-veg', 'Non-veg'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    name = models.CharField(max_length=128)
    roll_number = models.CharField(max_length=32, unique=True)
    hostel_id = models.CharField(max_length=16, unique=True, null=True, blank=True)
    gender = models.CharField(max_length=8, choices=GENDER_CHOICES)
    course = models.CharField(max_length=64, blank=True)
    branch = models.CharField(max_length=64, blank=True)
    year = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(10)],
    )
    category = models.CharField(max_length=2, choices=CATEGORY_CHOICES, blank=True)
    room_number = models.CharField(max_length=3, blank=True, db_index=True)
    bed_number = models.CharField(max_length=16, blank=True)
    locker_number = models.CharField(max_length=16, blank=True)
    student_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    parent_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    mother_name = models.CharField(max_length=128, blank=True)
    mother_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    local_guardian_name = models.CharField(max_length=128, blank=True)
    local_guardian_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    email = models.EmailField(blank=True)
    batch = models.CharField(max_length=9, blank=True, validators=[year_span_validator])
    academic_year = models.CharField(max_length=9, blank=True, validators=[year_span_validator])
    meal_type = models.CharField(max_length=8, choices=MEAL_CHOICES, default='non-veg')
    student_photo = models.URLField(max_length=500, blank=True)
    guardian_photo1 = models.URLField(max_length=500, blank=True)
    guardian_photo2 = models.URLField(max_length=500, blank=True)
    concession = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    calculated_term1_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    calculated_term2_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    calculated_term3_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    total_calculated_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['room_number', 'is_active']),
            models.Index(fields=['gender', 'category']),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.roll_number})"


class TempCredential(models.Model):
    """Generated password kept until the student sets their own."""
    student = models.OneToOneField(StudentProfile, on_delete=models.CASCADE, related_name='temp_credential')
    roll_number = models.CharField(max_length=32)
    name = models.CharField(max_length=128)
    student_phone = models.CharField(max_length=10, blank=True)
    email = models.EmailField(blank=True)
    generated_password = models.CharField(max_length=32)
    is_first_login = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"TempCredential {self.roll_number}"


class StaffGuest(models.Model):
    """Staff member, guest or short-stay student occupying hostel beds."""
    TYPE_CHOICES = [
        ('staff', 'Staff'),
        ('guest', 'Guest'),
        ('student', 'Student'),
    ]
    GENDER_CHOICES = GENDER_CHOICES + [('Other', 'Other')]
    STAY_DAILY = 'daily'
    STAY_MONTHLY = 'monthly'
    STAY_CHOICES = [
        (STAY_DAILY, 'Daily'),
        (STAY_MONTHLY, 'Monthly'),
    ]
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=8, choices=TYPE_CHOICES)
    gender = models.CharField(max_length=8, choices=GENDER_CHOICES)
    profession = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=10, validators=[phone_validator], db_index=True)
    email = models.EmailField(blank=True)
    department = models.CharField(max_length=100, blank=True)
    purpose = models.CharField(max_length=200, blank=True)
    stay_type = models.CharField(max_length=8, choices=STAY_CHOICES, default=STAY_DAILY)
    selected_month = models.CharField(
        max_length=7, blank=True,
        validators=[RegexValidator(r'^\d{4}-(0[1-9]|1[0-2])$', 'Use the format YYYY-MM')],
    )
    checkin_date = models.DateField(null=True, blank=True)
    checkout_date = models.DateField(null=True, blank=True)
    # Null means "use the hostel-wide default rate"
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    calculated_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    room_number = models.CharField(max_length=3, blank=True, db_index=True)
    bed_number = models.CharField(max_length=16, blank=True)
    hostel_id = models.CharField(max_length=16, unique=True, null=True, blank=True)
    photo = models.URLField(max_length=500, blank=True)
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff_guests_created'
    )
    last_modified_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff_guests_modified'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['type', 'is_active']),
            models.Index(fields=['stay_type', 'is_active']),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"


class Counter(models.Model):
    """Per-key integer sequence used to issue hostel IDs."""
    key = models.CharField(max_length=32, primary_key=True)
    sequence = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.key}={self.sequence}"


class HostelSettings(models.Model):
    """Singleton row (pk=1) holding runtime-editable business settings."""
    default_daily_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    updated_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'hostel settings'

    def __str__(self) -> str:
        return f"HostelSettings(rate={self.default_daily_rate})"


class Menu(models.Model):
    MEAL_TYPES = ('breakfast', 'lunch', 'dinner')
    date = models.DateField(unique=True)
    meals = models.JSONField(default=dict, blank=True)
    image = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Menu {self.date.isoformat()}"


class MealRating(models.Model):
    MEAL_TYPE_CHOICES = [(m, m.title()) for m in Menu.MEAL_TYPES]
    menu = models.ForeignKey(Menu, on_delete=models.CASCADE, related_name='ratings')
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='meal_ratings')
    meal_type = models.CharField(max_length=10, choices=MEAL_TYPE_CHOICES)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['menu', 'student', 'meal_type'], name='uniq_meal_rating'),
        ]


class FeeStructure(models.Model):
    academic_year = models.CharField(max_length=9, validators=[year_span_validator])
    category = models.CharField(max_length=2, choices=CATEGORY_CHOICES)
    term1_fee = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    term2_fee = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    term3_fee = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)
    updated_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['academic_year', 'category'], name='uniq_fee_structure'),
        ]

    @property
    def total_fee(self) -> Decimal:
        return self.term1_fee + self.term2_fee + self.term3_fee

    def __str__(self) -> str:
        return f"{self.academic_year} {self.category}"


class FeeReminder(models.Model):
    """Three-stage fee reminder schedule for one student and academic year."""
    PAID = 'Paid'
    UNPAID = 'Unpaid'
    STATUS_CHOICES = [(PAID, PAID), (UNPAID, UNPAID)]

    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='fee_reminders')
    academic_year = models.CharField(max_length=9)
    registration_date = models.DateTimeField()
    first_reminder_date = models.DateTimeField()
    second_reminder_date = models.DateTimeField()
    third_reminder_date = models.DateTimeField()
    first_reminder_issued_at = models.DateTimeField(null=True, blank=True)
    second_reminder_issued_at = models.DateTimeField(null=True, blank=True)
    third_reminder_issued_at = models.DateTimeField(null=True, blank=True)
    first_reminder_visible = models.BooleanField(default=False)
    second_reminder_visible = models.BooleanField(default=False)
    third_reminder_visible = models.BooleanField(default=False)
    current_reminder = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(3)])
    term1_status = models.CharField(max_length=6, choices=STATUS_CHOICES, default=UNPAID)
    term2_status = models.CharField(max_length=6, choices=STATUS_CHOICES, default=UNPAID)
    term3_status = models.CharField(max_length=6, choices=STATUS_CHOICES, default=UNPAID)
    term1_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('15000'))
    term2_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('15000'))
    term3_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('15000'))
    last_updated_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    last_updated_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['student', 'academic_year'], name='uniq_fee_reminder'),
        ]
        indexes = [
            models.Index(fields=['academic_year', 'is_active']),
        ]

    def all_terms_paid(self) -> bool:
        return all(s == self.PAID for s in (self.term1_status, self.term2_status, self.term3_status))

    def __str__(self) -> str:
        return f"FeeReminder {self.student_id} {self.academic_year}"


class PreRegistration(models.Model):
    """Application submitted by a prospective student, awaiting review."""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    name = models.CharField(max_length=128)
    roll_number = models.CharField(max_length=32, db_index=True)
    gender = models.CharField(max_length=8, choices=GENDER_CHOICES)
    course = models.CharField(max_length=64)
    branch = models.CharField(max_length=64)
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(10)])
    batch = models.CharField(max_length=9, validators=[year_span_validator])
    academic_year = models.CharField(max_length=9, validators=[year_span_validator])
    student_phone = models.CharField(max_length=10, validators=[phone_validator])
    parent_phone = models.CharField(max_length=10, validators=[phone_validator])
    mother_name = models.CharField(max_length=128, blank=True)
    mother_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    local_guardian_name = models.CharField(max_length=128, blank=True)
    local_guardian_phone = models.CharField(max_length=10, blank=True, validators=[phone_validator])
    email = models.EmailField()
    meal_type = models.CharField(max_length=8, choices=StudentProfile.MEAL_CHOICES, default='non-veg')
    student_photo = models.URLField(max_length=500, blank=True)
    guardian_photo1 = models.URLField(max_length=500, blank=True)
    guardian_photo2 = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    rejection_reason = models.CharField(max_length=500, blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    processed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    class Meta:
        ordering = ['-submitted_at']

    def __str__(self) -> str:
        return f"PreRegistration {self.roll_number} ({self.status})"


class PushSubscription(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='push_subscriptions')
    endpoint = models.CharField(max_length=500, unique=True)
    p256dh = models.CharField(max_length=255)
    auth = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"PushSubscription {self.user_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, null=True, blank=True)
    object_id = models.BigIntegerField(null=True, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
        ]
