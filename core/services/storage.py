"""
S3 object storage for photos and menu images.

Objects are stored under ``<folder>/<random hex><ext>`` and referenced
everywhere by their public HTTPS URL; deletion derives the key back
from that URL.
"""
import logging
import os
import secrets
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from rest_framework.exceptions import ValidationError

from core.exceptions import StorageError

logger = logging.getLogger(__name__)

STUDENT_PHOTOS = 'student-photos'
GUARDIAN_PHOTOS = 'guardian-photos'
STAFF_GUEST_PHOTOS = 'staff-guest-photos'
MENU_IMAGES = 'menu-images'


def _client():
    return boto3.client(
        's3',
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def validate_upload(f) -> str:
    size_mb = (getattr(f, 'size', 0) or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError(f'File too large (max {settings.UPLOAD_MAX_MB} MB)')
    ctype = getattr(f, 'content_type', '') or ''
    if not any(ctype.startswith(prefix) for prefix in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError('Unsupported file type')
    return ctype


def public_url(key: str) -> str:
    return f'https://{settings.AWS_S3_BUCKET}.s3.{settings.AWS_REGION}.amazonaws.com/{key}'


def key_from_url(url: str) -> Optional[str]:
    key = urlparse(url or '').path.lstrip('/')
    return key or None


def upload_file(f, folder: str) -> str:
    """Upload ``f`` and return its public URL."""
    ctype = validate_upload(f)
    if not settings.AWS_S3_BUCKET:
        raise StorageError('Object storage is not configured')
    ext = os.path.splitext(getattr(f, 'name', '') or '')[1].lower()
    key = f'{folder}/{secrets.token_hex(16)}{ext}'
    try:
        _client().upload_fileobj(f, settings.AWS_S3_BUCKET, key, ExtraArgs={'ContentType': ctype})
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f'Upload failed: {e}') from e
    logger.info('uploaded %s', key)
    return public_url(key)


def upload_or_reject(f, folder: str) -> str:
    """:func:`upload_file` for uploads the caller asked for; failures become a 400."""
    try:
        return upload_file(f, folder)
    except StorageError as e:
        logger.warning('upload to %s failed: %s', folder, e)
        raise ValidationError(str(e))


def delete_file(url: str) -> None:
    key = key_from_url(url)
    if not key:
        return
    if not settings.AWS_S3_BUCKET:
        raise StorageError('Object storage is not configured')
    try:
        _client().delete_object(Bucket=settings.AWS_S3_BUCKET, Key=key)
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f'Delete failed: {e}') from e


def delete_quietly(url: Optional[str]) -> None:
    """Delete a replaced object; never fails the caller."""
    if not url:
        return
    try:
        delete_file(url)
    except StorageError as e:
        logger.warning('could not delete %s: %s', url, e)
