"""Success envelope and list pagination shared by the API views."""
from typing import Any, Optional

from rest_framework.response import Response

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200, **extra) -> Response:
    body: dict[str, Any] = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    body.update(extra)
    return Response(body, status=status)


def paginate(qs, page, limit):
    """Slice ``qs`` and return ``(items, pagination)``."""
    try:
        page = max(1, int(page or 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    total = qs.count()
    start = (page - 1) * limit
    items = list(qs[start:start + limit])
    return items, {
        'current': page,
        'limit': limit,
        'total': (total + limit - 1) // limit,
        'totalItems': total,
    }
