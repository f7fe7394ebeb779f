"""
Twilio WhatsApp client

Talks to the Twilio REST Messages resource with plain requests and carries
the phone and webhook-signature helpers shared by the webhook route and the
message services.
"""

import base64
import hashlib
import hmac
import logging
import re
import time
from typing import Optional

import requests

from logging_config import performance_logger

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = 'whatsapp:'
E164_PATTERN = re.compile(r'^\+[1-9]\d{1,14}$')
URUGUAY_COUNTRY_CODE = '598'


class TwilioAPIError(Exception):
    """Custom exception for Twilio API errors"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


def strip_channel_prefix(number: Optional[str]) -> str:
    """'whatsapp:+59899123456' -> '+59899123456'"""
    number = (number or '').strip()
    if number.startswith(WHATSAPP_PREFIX):
        return number[len(WHATSAPP_PREFIX):]
    return number


def with_channel_prefix(number: str) -> str:
    """Add the whatsapp: prefix unless the number already carries it"""
    number = number.strip()
    if number.startswith(WHATSAPP_PREFIX):
        return number
    return f'{WHATSAPP_PREFIX}{number}'


def validate_phone_number(phone: Optional[str]) -> bool:
    """Basic E.164 check"""
    return bool(phone) and E164_PATTERN.match(phone) is not None


def format_phone_number_for_uruguay(phone: str) -> str:
    """
    Normalize a Uruguayan number to E.164.

    Accepts local 8 digit numbers, numbers with a leading trunk 0 and
    numbers already carrying the country code with or without '+'.

    Raises:
        ValueError: If the number cannot be interpreted
    """
    phone = (phone or '').strip()
    digits = re.sub(r'\D', '', phone)

    if len(digits) == 8:
        return f'+{URUGUAY_COUNTRY_CODE}{digits}'
    if len(digits) == 9 and digits.startswith('0'):
        return f'+{URUGUAY_COUNTRY_CODE}{digits[1:]}'
    if len(digits) == 11 and digits.startswith(URUGUAY_COUNTRY_CODE):
        return f'+{digits}'
    if phone.startswith('+') and validate_phone_number(f'+{digits}'):
        return f'+{digits}'

    raise ValueError('Invalid phone number format for Uruguay')


def compute_webhook_signature(auth_token: str, url: str, raw_body: str) -> str:
    """base64(HMAC-SHA1(auth_token, url + raw_body))"""
    digest = hmac.new(
        auth_token.encode('utf-8'),
        (url + raw_body).encode('utf-8'),
        hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode('ascii')


def is_valid_webhook_signature(auth_token: str, url: str, raw_body: str, signature: Optional[str]) -> bool:
    if not signature:
        return False
    expected = compute_webhook_signature(auth_token, url, raw_body)
    return hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8'))


class TwilioService:
    """Sends WhatsApp messages through the Twilio REST API"""

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 default_from: Optional[str] = None,
                 base_url: str = 'https://api.twilio.com/2010-04-01'):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.default_from = default_from
        self.base_url = base_url.rstrip('/')
        self.timeout = (5, 30)  # Connection timeout, read timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    def send_message(self, to: str, body: str, from_number: Optional[str] = None) -> str:
        """
        Send a WhatsApp message.

        Args:
            to: Recipient number, with or without the whatsapp: prefix
            body: Message text
            from_number: Sender number, defaults to the configured one

        Returns:
            The provider message SID

        Raises:
            TwilioAPIError: On missing configuration or any API failure
        """
        if not self.is_configured:
            raise TwilioAPIError("Twilio credentials are not configured")

        sender = from_number or self.default_from
        if not sender:
            raise TwilioAPIError("Twilio phone number is required")

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        payload = {
            'Body': body,
            'From': with_channel_prefix(sender),
            'To': with_channel_prefix(to),
        }

        logger.info("Sending WhatsApp message via Twilio", extra={
            "to_number": strip_channel_prefix(to)[-4:],  # Log only last 4 digits for privacy
            "message_length": len(body or '')
        })

        started = time.monotonic()
        try:
            response = requests.post(
                url,
                data=payload,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
                verify=True
            )
        except requests.exceptions.Timeout as e:
            logger.error("Twilio API request timeout", extra={"timeout": self.timeout, "error": str(e)})
            raise TwilioAPIError("Request timeout") from e
        except requests.exceptions.RequestException as e:
            logger.error("Twilio API request failed", extra={"error": str(e)})
            raise TwilioAPIError(f"Twilio API request failed: {e}") from e

        duration_ms = (time.monotonic() - started) * 1000
        performance_logger.log_api_call('twilio', 'Messages.json', duration_ms, response.status_code)

        if response.status_code >= 400:
            response_body = response.text
            logger.error("Twilio API returned an error", extra={
                "status_code": response.status_code,
                "response_body": response_body[:500] if response_body else None  # Truncate for logs
            })
            raise TwilioAPIError(
                f"Twilio API error {response.status_code}",
                status_code=response.status_code,
                response_body=response_body
            )

        try:
            sid = response.json().get('sid')
        except ValueError as e:
            raise TwilioAPIError("Invalid JSON in Twilio response",
                                 status_code=response.status_code,
                                 response_body=response.text) from e

        if not sid:
            raise TwilioAPIError("Twilio response did not include a message SID",
                                 status_code=response.status_code,
                                 response_body=response.text)

        logger.info("WhatsApp message sent", extra={"message_sid": sid})
        return sid
