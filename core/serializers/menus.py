from rest_framework import serializers

from core.models import Menu
from .common import clean_text

MEAL_TYPES = list(Menu.MEAL_TYPES)


class MealsField(serializers.DictField):
    """``{"breakfast": [...], "lunch": [...], "dinner": [...]}`` with clean item names."""
    child = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=True)

    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        unknown = set(data) - set(MEAL_TYPES)
        if unknown:
            raise serializers.ValidationError(f'Unknown meal types: {", ".join(sorted(unknown))}')
        meals = {}
        for meal in MEAL_TYPES:
            items = [clean_text(i) for i in data.get(meal, [])]
            meals[meal] = list(dict.fromkeys(i for i in items if i))
        return meals


class MenuSerializer(serializers.Serializer):
    date = serializers.DateField()
    meals = MealsField()


class DateQuerySerializer(serializers.Serializer):
    date = serializers.DateField(error_messages={'required': 'Date is required'})


class MenuItemSerializer(serializers.Serializer):
    date = serializers.DateField()
    mealType = serializers.ChoiceField(choices=MEAL_TYPES)
    item = serializers.CharField(max_length=100)

    def validate_item(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Item is required')
        return v


class MealRatingSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    mealType = serializers.ChoiceField(choices=MEAL_TYPES)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate_comment(self, v):
        return clean_text(v)
