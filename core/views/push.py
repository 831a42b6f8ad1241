"""Web push subscription endpoints."""
from __future__ import annotations

from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.models import PushSubscription
from core.responses import ok
from core.serializers.push import SubscribeSerializer, UnsubscribeSerializer


@api_view(['GET'])
@permission_classes([AllowAny])
def vapid_public_key(request):
    return ok({'publicKey': settings.VAPID_PUBLIC_KEY or None})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def subscribe(request):
    s = SubscribeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    # an endpoint belongs to one browser; re-subscribing moves it to the caller
    sub, created = PushSubscription.objects.update_or_create(
        endpoint=v['endpoint'],
        defaults={'user': request.user, 'p256dh': v['keys']['p256dh'], 'auth': v['keys']['auth']},
    )
    return ok({'id': sub.id}, message='Subscribed to notifications', status=201 if created else 200)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def unsubscribe(request):
    s = UnsubscribeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    deleted, _ = PushSubscription.objects.filter(user=request.user, endpoint=s.validated_data['endpoint']).delete()
    if not deleted:
        raise NotFound('Subscription not found')
    return ok(message='Unsubscribed from notifications')
