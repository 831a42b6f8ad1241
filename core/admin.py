"""
Django admin registrations for the core models.

Lets superusers inspect and correct hostel data through ``/admin/``.
Hostel IDs are shown read-only: they are issued by the counter and
never edited by hand.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Counter,
    FeeReminder,
    FeeStructure,
    HostelSettings,
    MealRating,
    Menu,
    PreRegistration,
    PushSubscription,
    Room,
    StaffGuest,
    StudentProfile,
    TempCredential,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_password_changed', 'is_active', 'is_superuser')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email')
    exclude = ('password',)


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('room_number', 'gender', 'category', 'bed_count', 'is_active')
    list_filter = ('gender', 'category', 'is_active')
    search_fields = ('room_number',)


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ('roll_number', 'name', 'hostel_id', 'gender', 'category', 'room_number', 'is_active')
    list_filter = ('gender', 'category', 'is_active', 'academic_year')
    search_fields = ('roll_number', 'name', 'hostel_id', 'student_phone')
    readonly_fields = ('hostel_id', 'created_at', 'updated_at')


@admin.register(TempCredential)
class TempCredentialAdmin(admin.ModelAdmin):
    list_display = ('roll_number', 'name', 'is_first_login', 'created_at')
    search_fields = ('roll_number', 'name')


@admin.register(StaffGuest)
class StaffGuestAdmin(admin.ModelAdmin):
    list_display = ('name', 'type', 'hostel_id', 'stay_type', 'room_number', 'calculated_charges', 'is_active')
    list_filter = ('type', 'stay_type', 'gender', 'is_active')
    search_fields = ('name', 'phone_number', 'hostel_id')
    readonly_fields = ('hostel_id', 'calculated_charges', 'created_at', 'updated_at')


@admin.register(Counter)
class CounterAdmin(admin.ModelAdmin):
    list_display = ('key', 'sequence')


@admin.register(HostelSettings)
class HostelSettingsAdmin(admin.ModelAdmin):
    list_display = ('id', 'default_daily_rate', 'updated_by', 'updated_at')


@admin.register(Menu)
class MenuAdmin(admin.ModelAdmin):
    list_display = ('date', 'updated_at')
    date_hierarchy = 'date'


@admin.register(MealRating)
class MealRatingAdmin(admin.ModelAdmin):
    list_display = ('menu', 'student', 'meal_type', 'rating', 'created_at')
    list_filter = ('meal_type', 'rating')


@admin.register(FeeStructure)
class FeeStructureAdmin(admin.ModelAdmin):
    list_display = ('academic_year', 'category', 'term1_fee', 'term2_fee', 'term3_fee', 'is_active')
    list_filter = ('academic_year', 'category')


@admin.register(FeeReminder)
class FeeReminderAdmin(admin.ModelAdmin):
    list_display = ('student', 'academic_year', 'current_reminder', 'term1_status', 'term2_status',
                    'term3_status', 'is_active')
    list_filter = ('academic_year', 'term1_status', 'term2_status', 'term3_status')
    search_fields = ('student__roll_number', 'student__name')


@admin.register(PreRegistration)
class PreRegistrationAdmin(admin.ModelAdmin):
    list_display = ('roll_number', 'name', 'gender', 'status', 'submitted_at')
    list_filter = ('status', 'gender')
    search_fields = ('roll_number', 'name', 'student_phone')


@admin.register(PushSubscription)
class PushSubscriptionAdmin(admin.ModelAdmin):
    list_display = ('user', 'created_at')
    search_fields = ('user__username',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'object_type', 'object_id')
    list_filter = ('action',)
    search_fields = ('user__username', 'action')
