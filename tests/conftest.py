# tests/conftest.py
"""
Shared fixtures for the pytest test suite.

The app fixture runs on an in-memory SQLite database seeded with two
accounts. Account 1 is the one requests act for (LOGIN_DISABLED), account 2
exists so tenant isolation can be checked.
"""
import os

# Must be set before the app and config modules are imported
os.environ['FLASK_ENV'] = 'testing'

from datetime import datetime, timezone

import pytest

from app import create_app
from extensions import db, bcrypt
from crm_database import User, Client, Message, Label, FAQ, AutoReplySettings

from tests.helpers import (
    TEST_ACCOUNT_ID, TEST_ACCOUNT_PHONE, OTHER_ACCOUNT_ID, OTHER_ACCOUNT_PHONE, TEST_PASSWORD
)


@pytest.fixture(scope='module')
def app():
    """
    A Flask application for one test module with a fresh in-memory database.
    """
    app = create_app(config_name='testing', test_config={
        'SERVER_NAME': 'localhost.localdomain'
    })

    with app.app_context():
        db.create_all()

        owner = User(
            id=TEST_ACCOUNT_ID,
            email='owner@example.com',
            password_hash=bcrypt.generate_password_hash(TEST_PASSWORD).decode('utf-8'),
            name='Test Owner',
            business_name='Test Business',
            twilio_phone_number=TEST_ACCOUNT_PHONE,
            is_active=True
        )
        other = User(
            id=OTHER_ACCOUNT_ID,
            email='other@example.com',
            password_hash=bcrypt.generate_password_hash(TEST_PASSWORD).decode('utf-8'),
            name='Other Owner',
            twilio_phone_number=OTHER_ACCOUNT_PHONE,
            is_active=True
        )
        db.session.add_all([owner, other])
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='module')
def client(app):
    """A test client for the app"""
    return app.test_client()


@pytest.fixture
def clean_db(app):
    """
    Empty every table except the seeded accounts before a test and hand
    out the session.
    """
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            if table.name != 'user':
                db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def make_client(clean_db):
    """Factory for stored clients of the test account"""
    def _make(phone='+59899123456', name='Ana', account_id=TEST_ACCOUNT_ID, **kwargs):
        client = Client(user_id=account_id, name=name, phone=phone, status=kwargs.pop('status', 'active'), **kwargs)
        clean_db.add(client)
        clean_db.commit()
        return client
    return _make


@pytest.fixture
def make_message(clean_db):
    def _make(client, content='Hola', direction='in', timestamp=None, **kwargs):
        message = Message(
            user_id=client.user_id,
            client_id=client.id,
            content=content,
            direction=direction,
            timestamp=timestamp or datetime.now(timezone.utc),
            **kwargs
        )
        clean_db.add(message)
        clean_db.commit()
        return message
    return _make


@pytest.fixture
def make_label(clean_db):
    def _make(name, type='auto', account_id=TEST_ACCOUNT_ID, **kwargs):
        label = Label(user_id=account_id, name=name, type=type, **kwargs)
        clean_db.add(label)
        clean_db.commit()
        return label
    return _make


@pytest.fixture
def make_faq(clean_db):
    def _make(question, answer, keywords=None, account_id=TEST_ACCOUNT_ID, **kwargs):
        faq = FAQ(user_id=account_id, question=question, answer=answer, keywords=keywords or [], **kwargs)
        clean_db.add(faq)
        clean_db.commit()
        return faq
    return _make


@pytest.fixture
def enable_auto_reply(clean_db):
    def _enable(account_id=TEST_ACCOUNT_ID, enabled=True, fallback_message=None):
        settings = AutoReplySettings(
            user_id=account_id,
            auto_reply_enabled=enabled,
            fallback_message=fallback_message
        )
        clean_db.add(settings)
        clean_db.commit()
        return settings
    return _enable
