# One-time login codes and their delivery over WhatsApp (WATI)

import logging
import secrets
import threading
import time

import requests

logger = logging.getLogger(__name__)


def generate_otp():
    # Four digits, never a leading zero
    return str(1000 + secrets.randbelow(9000))


class OtpStore:
    """Pending codes keyed by phone, owned by one app instance.

    A code is valid for ``ttl_seconds`` and can be used once; issuing a new
    code for the same phone replaces the previous one.
    """

    def __init__(self, ttl_seconds=300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._codes = {}
        self._lock = threading.Lock()

    def issue(self, phone):
        code = generate_otp()
        with self._lock:
            self._codes[phone] = (code, self._clock() + self.ttl_seconds)
        return code

    def verify(self, phone, code):
        with self._lock:
            entry = self._codes.get(phone)
            if entry is None:
                return False
            stored, expires = entry
            if self._clock() > expires:
                del self._codes[phone]
                return False
            if not secrets.compare_digest(stored, str(code)):
                return False
            del self._codes[phone]
            return True

    def discard(self, phone):
        with self._lock:
            self._codes.pop(phone, None)


class WatiOtpSender:
    # Sends the code through a WATI WhatsApp template message

    def __init__(self, endpoint, token, template_name, timeout=10, session=None):
        self.endpoint = endpoint.rstrip('/') if endpoint else None
        self.token = token
        self.template_name = template_name
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def whatsapp_number(phone):
        return phone if phone.startswith('91') else f'91{phone}'

    def __call__(self, phone, code):
        if not self.endpoint or not self.token:
            logger.error('[OTP] WATI credentials not configured')
            return False

        number = self.whatsapp_number(phone)
        auth = self.token if self.token.startswith('Bearer ') else f'Bearer {self.token}'
        try:
            response = self.session.post(
                f'{self.endpoint}/api/v1/sendTemplateMessage',
                params={'whatsappNumber': number},
                headers={'Authorization': auth},
                json={
                    'template_name': self.template_name,
                    'broadcast_name': 'otp_login',
                    'parameters': [{'name': '1', 'value': code}],
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error('[OTP] Failed to send WhatsApp OTP to %s: %s', number, e)
            return False

        if data.get('result') is True:
            logger.info('[OTP] WhatsApp OTP sent to %s', number)
            return True
        logger.error('[OTP] WATI API error: %s', data)
        return False
