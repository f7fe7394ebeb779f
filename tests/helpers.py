"""
Constants and small builders shared by the test modules
"""
import base64
import hashlib
import hmac
from datetime import datetime, timezone
from urllib.parse import urlencode

TEST_ACCOUNT_ID = 1
TEST_ACCOUNT_PHONE = '+59899000000'
OTHER_ACCOUNT_ID = 2
OTHER_ACCOUNT_PHONE = '+59899111111'
TEST_PASSWORD = 'testpassword'

WEBHOOK_URL = 'http://localhost:3000/api/twilio/webhook'
TEST_AUTH_TOKEN = 'test_auth_token'


def sign_twilio_request(body: str, url: str = WEBHOOK_URL, auth_token: str = TEST_AUTH_TOKEN) -> str:
    """X-Twilio-Signature for a raw form body"""
    digest = hmac.new(auth_token.encode('utf-8'), (url + body).encode('utf-8'), hashlib.sha1).digest()
    return base64.b64encode(digest).decode('ascii')


def build_webhook_body(**overrides) -> str:
    fields = {
        'From': 'whatsapp:+59899123456',
        'To': f'whatsapp:{TEST_ACCOUNT_PHONE}',
        'Body': 'Hola',
        'MessageSid': 'SM00000000000000000000000000000001',
        'NumMedia': '0',
    }
    fields.update(overrides)
    return urlencode(fields)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
