"""
URL mappings for the hostel backend API.

Paths are declared without trailing slashes, matching the front-end
client.
"""
from django.urls import path

from .auth_views import change_password_view, jwt_logout_view, jwt_refresh_view, login_view, me_view
from .views import (
    fee_reminders,
    fee_structures,
    health,
    menus,
    preregistrations,
    push,
    rooms,
    settings,
    staff_guests,
    students,
)


urlpatterns = [
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view),
    path('api/auth/change-password', change_password_view, name='change_password_view'),
    # Settings
    path('api/settings/daily-rate', settings.daily_rate),
    # Students
    path('api/students', students.students),
    path('api/students/import', students.import_students),
    path('api/students/temp-credentials', students.temp_credentials),
    path('api/students/search', students.search_by_roll_number),
    path('api/students/<int:pk>', students.student_detail),
    path('api/student/profile', students.my_profile),
    # Staff / guests
    path('api/staff-guests', staff_guests.staff_guests),
    path('api/staff-guests/stats', staff_guests.staff_guest_stats),
    path('api/staff-guests/<int:pk>', staff_guests.staff_guest_detail),
    path('api/staff-guests/<int:pk>/check-in-out', staff_guests.check_in_out),
    # Rooms
    path('api/rooms', rooms.rooms),
    path('api/rooms/availability', rooms.room_availability),
    path('api/rooms/stats', rooms.room_stats),
    path('api/rooms/<int:pk>', rooms.room_detail),
    path('api/rooms/<int:pk>/occupants', rooms.room_occupants),
    # Menus
    path('api/menus/date', menus.menu_by_date),
    path('api/menus/today', menus.today_menu),
    path('api/menus/item', menus.menu_item),
    path('api/menus/image', menus.menu_image),
    path('api/menus/rating', menus.rate_meal),
    path('api/menus/rating/stats', menus.rating_stats),
    # Fees
    path('api/fee-reminders', fee_reminders.fee_reminders),
    path('api/fee-reminders/stats', fee_reminders.fee_reminder_stats),
    path('api/fee-reminders/create-all', fee_reminders.create_all),
    path('api/fee-reminders/process', fee_reminders.process),
    path('api/fee-reminders/student/<int:student_id>', fee_reminders.student_reminders),
    path('api/fee-reminders/<int:pk>/status', fee_reminders.update_status),
    path('api/fee-structures', fee_structures.fee_structures),
    # Pre-registration
    path('api/preregister', preregistrations.preregister),
    path('api/preregistrations', preregistrations.preregistrations),
    path('api/preregistrations/<int:pk>', preregistrations.preregistration_detail),
    path('api/preregistrations/<int:pk>/approve', preregistrations.approve),
    path('api/preregistrations/<int:pk>/reject', preregistrations.reject),
    # Push notifications
    path('api/push/vapid-public-key', push.vapid_public_key),
    path('api/push/subscribe', push.subscribe),
    path('api/push/unsubscribe', push.unsubscribe),
]
