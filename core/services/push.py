"""
Web push notifications (VAPID) to the browsers a user subscribed.

Delivery is best effort: failures are logged, and subscriptions the
push service reports as gone (404/410) are removed.
"""
import json
import logging
from typing import Iterable, Optional

from django.conf import settings
import requests
from pywebpush import WebPushException, webpush

from core.models import PushSubscription, User

logger = logging.getLogger(__name__)

ICON = '/icon-192x192.png'
BADGE = '/badge-72x72.png'

# notification type -> (default title, url pattern)
ROUTES = {
    'menu': ('Menu Updated', '/student/menu'),
    'fee_reminder': ('Fee Reminder', '/student/fees'),
    'fee_status': ('Fee Status Updated', '/student/fees'),
    'registration': ('Registration Update', '/student/profile'),
}


def build_payload(message: str, *, type: str = 'general', title: Optional[str] = None,
                  related_id=None) -> dict:
    default_title, url = ROUTES.get(type, ('New Notification', '/'))
    return {
        'title': title or default_title,
        'body': message,
        'icon': ICON,
        'badge': BADGE,
        'data': {'type': type, 'url': url, 'relatedId': related_id},
    }


def push_enabled() -> bool:
    return bool(settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY)


def send_to_subscription(sub: PushSubscription, payload: dict) -> bool:
    try:
        webpush(
            subscription_info={'endpoint': sub.endpoint, 'keys': {'p256dh': sub.p256dh, 'auth': sub.auth}},
            data=json.dumps(payload),
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            vapid_claims={'sub': settings.VAPID_CLAIM_EMAIL},
        )
        return True
    except WebPushException as e:
        status = getattr(getattr(e, 'response', None), 'status_code', None)
        if status in (404, 410):
            logger.info('removing expired push subscription %s', sub.pk)
            sub.delete()
        else:
            logger.warning('push to subscription %s failed: %s', sub.pk, e)
        return False
    except requests.RequestException as e:
        # push host unreachable; the subscription may still be valid
        logger.warning('push to subscription %s failed: %s', sub.pk, e)
        return False


def send_to_users(users: Iterable[User], payload: dict) -> int:
    """Push ``payload`` to every subscription of ``users``; returns deliveries."""
    if not push_enabled():
        logger.debug('push not configured; skipping %s', payload.get('title'))
        return 0
    subs = PushSubscription.objects.filter(user__in=list(users))
    return sum(1 for s in subs if send_to_subscription(s, payload))


def send_to_user(user: User, payload: dict) -> int:
    return send_to_users([user], payload)


def notify_all_students(payload: dict) -> int:
    students = User.objects.filter(role=User.ROLE_STUDENT, is_active=True, student_profile__is_active=True)
    return send_to_users(students, payload)
