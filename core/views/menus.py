"""
Mess menu views.

The office maintains one menu per day; students read it and rate its
meals.  Saving or extending today's menu notifies subscribed students.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated

from core.models import User
from core.permissions import IsStaffRole, IsStudentRole, is_staff_user
from core.responses import ok
from core.serializers.menus import DateQuerySerializer, MealRatingSerializer, MenuItemSerializer, MenuSerializer
from core.services import menus as svc


def _menu_or_placeholder(day):
    menu = svc.get_menu(day)
    if menu is None:
        return {'date': day.isoformat(), 'meals': svc.empty_meals(), 'image': None}
    return svc.serialize_menu(menu)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def menu_by_date(request):
    if request.method == 'GET':
        q = DateQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return ok(_menu_or_placeholder(q.validated_data['date']))
    if not is_staff_user(request.user):
        raise PermissionDenied('Only hostel staff can edit menus')
    s = MenuSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    menu, created = svc.save_menu(s.validated_data['date'], s.validated_data['meals'])
    return ok(svc.serialize_menu(menu), message='Menu created successfully' if created else 'Menu updated successfully',
              status=201 if created else 200)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def today_menu(request):
    today = timezone.localdate()
    data = _menu_or_placeholder(today)
    if request.user.role == User.ROLE_STUDENT:
        data['myRatings'] = svc.my_ratings(request.user, today)
    return ok(data)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def menu_item(request):
    s = MenuItemSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    if request.method == 'POST':
        menu = svc.add_item(v['date'], v['mealType'], v['item'])
        return ok(svc.serialize_menu(menu), message=f"{v['item']} added to {v['mealType']}")
    menu = svc.remove_item(v['date'], v['mealType'], v['item'])
    return ok(svc.serialize_menu(menu), message=f"{v['item']} removed from {v['mealType']}")


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def menu_image(request):
    q = DateQuerySerializer(data=request.data)
    q.is_valid(raise_exception=True)
    f = request.FILES.get('image')
    if not f:
        raise ValidationError('An image file is required')
    menu = svc.set_image(q.validated_data['date'], f)
    return ok(svc.serialize_menu(menu), message='Menu image uploaded successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStudentRole])
def rate_meal(request):
    s = MealRatingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    day = v.get('date') or timezone.localdate()
    rating, created = svc.rate_meal(request.user, day, v['mealType'], v['rating'], v.get('comment', ''))
    return ok({'date': day.isoformat(), 'mealType': rating.meal_type, 'rating': rating.rating,
               'comment': rating.comment},
              message='Rating submitted' if created else 'Rating updated', status=201 if created else 200)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def rating_stats(request):
    day = timezone.localdate()
    if request.query_params.get('date'):
        q = DateQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        day = q.validated_data['date']
    return ok(svc.rating_stats(day))
