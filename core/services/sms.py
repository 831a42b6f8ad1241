"""SMS delivery through the BulkSMS HTTP gateway."""
import logging
import re
from typing import Optional

import requests
from django.conf import settings

from core.exceptions import SmsError

logger = logging.getLogger(__name__)

CREDENTIAL_TEMPLATE = (
    'Welcome to the HOSTEL. Your Account is created with UserID: {username} '
    'Password: {password} login with link: {link}'
)

_MESSAGE_ID = re.compile(r'MessageId-(\d+)')


def extract_message_id(body: str) -> Optional[str]:
    body = body or ''
    m = _MESSAGE_ID.search(body)
    if m:
        return m.group(1)
    if body.strip().isdigit():
        return body.strip()
    return None


def send_sms(phone: str, message: str, template_id: Optional[str] = None) -> str:
    """Send one SMS and return the gateway message id."""
    if not settings.SMS_ENABLE:
        raise SmsError('SMS sending is disabled')
    params = {
        'apikey': settings.SMS_API_KEY,
        'sender': settings.SMS_SENDER_ID,
        'number': phone,
        'message': message,
    }
    if template_id:
        params['templateid'] = template_id
    try:
        r = requests.post(settings.SMS_API_URL, params=params, timeout=settings.SMS_TIMEOUT,
                          headers={'Accept': 'text/plain'})
        r.raise_for_status()
    except requests.RequestException as e:
        raise SmsError(f'SMS gateway error: {e}') from e
    message_id = extract_message_id(r.text)
    if not message_id:
        raise SmsError(f'Unexpected SMS gateway response: {r.text[:200]}')
    logger.info('sms sent to %s (id %s)', phone, message_id)
    return message_id


def send_credentials_sms(phone: str, username: str, password: str) -> Optional[str]:
    """Credential SMS after registration; failures are logged, not raised."""
    if not phone:
        return None
    message = CREDENTIAL_TEMPLATE.format(username=username, password=password,
                                         link=settings.LOGIN_URL_FOR_STUDENTS)
    try:
        return send_sms(phone, message, settings.SMS_CREDENTIAL_TEMPLATE_ID or None)
    except SmsError as e:
        logger.warning('credential sms to %s not sent: %s', phone, e)
        return None
