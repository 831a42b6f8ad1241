import logging
from typing import Any, Dict, Optional

from core.models import AuditEvent, User

logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    actor = user if getattr(user, 'pk', None) else None
    logger.info('audit %s %s:%s by %s', action, object_type, object_id, getattr(actor, 'username', '-'))
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )
