"""
Daily mess menus and the students' meal ratings.

A menu is keyed by calendar day; ``meals`` always carries the three
meal lists, even when some of them are empty.
"""
import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.models import MealRating, Menu, User
from core.services import push, storage

logger = logging.getLogger(__name__)


def empty_meals() -> dict:
    return {meal: [] for meal in Menu.MEAL_TYPES}


def _normalized(meals: Optional[dict]) -> dict:
    out = empty_meals()
    for meal in Menu.MEAL_TYPES:
        out[meal] = list((meals or {}).get(meal) or [])
    return out


def serialize_menu(menu: Menu) -> dict:
    return {
        'id': menu.id,
        'date': menu.date.isoformat(),
        'meals': _normalized(menu.meals),
        'image': menu.image or None,
        'updatedAt': menu.updated_at.isoformat() if menu.updated_at else None,
    }


def get_menu(day: date) -> Optional[Menu]:
    return Menu.objects.filter(date=day).first()


def get_menu_or_404(day: date) -> Menu:
    menu = get_menu(day)
    if menu is None:
        raise NotFound(f'No menu found for {day.isoformat()}')
    return menu


def _announce_if_today(menu: Menu) -> None:
    if menu.date != timezone.localdate():
        return
    payload = push.build_payload("Today's menu has been updated. Check it out!", type='menu', related_id=menu.pk)
    transaction.on_commit(lambda: push.notify_all_students(payload))


def save_menu(day: date, meals: dict) -> tuple[Menu, bool]:
    """Create or replace the menu of ``day``; returns ``(menu, created)``."""
    with transaction.atomic():
        menu, created = Menu.objects.select_for_update().get_or_create(date=day, defaults={'meals': empty_meals()})
        menu.meals = _normalized(meals)
        menu.save(update_fields=['meals', 'updated_at'])
        _announce_if_today(menu)
    logger.info('menu for %s %s', day, 'created' if created else 'replaced')
    return menu, created


def add_item(day: date, meal_type: str, item: str) -> Menu:
    with transaction.atomic():
        menu, _ = Menu.objects.select_for_update().get_or_create(date=day, defaults={'meals': empty_meals()})
        meals = _normalized(menu.meals)
        if item in meals[meal_type]:
            raise ValidationError(f'{item} is already on the {meal_type} menu')
        meals[meal_type].append(item)
        menu.meals = meals
        menu.save(update_fields=['meals', 'updated_at'])
        _announce_if_today(menu)
    return menu


def remove_item(day: date, meal_type: str, item: str) -> Menu:
    with transaction.atomic():
        menu = Menu.objects.select_for_update().filter(date=day).first()
        if menu is None:
            raise NotFound(f'No menu found for {day.isoformat()}')
        meals = _normalized(menu.meals)
        if item not in meals[meal_type]:
            raise NotFound(f'{item} is not on the {meal_type} menu')
        meals[meal_type].remove(item)
        menu.meals = meals
        menu.save(update_fields=['meals', 'updated_at'])
    return menu


def set_image(day: date, f) -> Menu:
    url = storage.upload_or_reject(f, storage.MENU_IMAGES)
    try:
        with transaction.atomic():
            menu, _ = Menu.objects.select_for_update().get_or_create(date=day, defaults={'meals': empty_meals()})
            old = menu.image
            menu.image = url
            menu.save(update_fields=['image', 'updated_at'])
    except Exception:
        storage.delete_quietly(url)
        raise
    storage.delete_quietly(old)
    return menu


def rate_meal(user: User, day: date, meal_type: str, rating: int, comment: str = '') -> tuple[MealRating, bool]:
    """Record (or change) ``user``'s rating of one meal of ``day``."""
    menu = get_menu_or_404(day)
    if not _normalized(menu.meals)[meal_type]:
        raise ValidationError(f'No {meal_type} was served on {day.isoformat()}')
    return MealRating.objects.update_or_create(
        menu=menu, student=user, meal_type=meal_type,
        defaults={'rating': rating, 'comment': comment or ''},
    )


def rating_stats(day: date) -> dict:
    menu = get_menu_or_404(day)
    out = {'date': day.isoformat(), 'meals': {}}
    for meal in Menu.MEAL_TYPES:
        qs = MealRating.objects.filter(menu=menu, meal_type=meal)
        agg = qs.aggregate(avg=Avg('rating'), n=Count('id'))
        counts = dict(qs.values('rating').annotate(n=Count('id')).values_list('rating', 'n'))
        comments = [
            {'comment': c, 'rating': r, 'createdAt': t.isoformat()}
            for c, r, t in qs.exclude(comment='').order_by('-created_at').values_list('comment', 'rating', 'created_at')
        ]
        out['meals'][meal] = {
            'averageRating': round(agg['avg'], 1) if agg['avg'] is not None else 0,
            'totalRatings': agg['n'],
            'ratingCounts': {str(n): counts.get(n, 0) for n in range(1, 6)},
            'comments': comments,
        }
    return out


def my_ratings(user: User, day: date) -> dict:
    menu = get_menu(day)
    if menu is None:
        return {}
    return {
        r.meal_type: {'rating': r.rating, 'comment': r.comment}
        for r in MealRating.objects.filter(menu=menu, student=user)
    }
