"""
MessageRepository against the test database
"""

import pytest
from datetime import timedelta

from repositories.message_repository import MessageRepository
from crm_database import Message
from tests.helpers import utc, TEST_ACCOUNT_ID, OTHER_ACCOUNT_ID

NOW = utc(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def repository(clean_db):
    return MessageRepository(clean_db)


class TestAutoLabelQueries:

    def test_count_since_is_inclusive_and_counts_both_directions(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, timestamp=NOW - timedelta(days=30))
        make_message(client, direction='out', timestamp=NOW - timedelta(days=1))
        make_message(client, timestamp=NOW - timedelta(days=31))

        assert repository.count_for_client_since(client.id, NOW - timedelta(days=30)) == 2

    def test_latest_inbound(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, content='first', timestamp=NOW - timedelta(hours=3))
        latest = make_message(client, content='second', timestamp=NOW - timedelta(hours=2))
        make_message(client, direction='out', timestamp=NOW - timedelta(hours=1))

        assert repository.get_latest_inbound(client.id).id == latest.id

    def test_latest_inbound_none(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, direction='out', timestamp=NOW)

        assert repository.get_latest_inbound(client.id) is None

    def test_outbound_must_be_strictly_newer(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, direction='out', timestamp=NOW)

        assert repository.has_outbound_after(client.id, NOW) is False
        assert repository.has_outbound_after(client.id, NOW - timedelta(seconds=1)) is True


class TestConversationQueries:

    def test_latest_per_client(self, repository, make_client, make_message):
        ana = make_client(phone='+59899000001', name='Ana')
        bruno = make_client(phone='+59899000002', name='Bruno')
        make_message(ana, content='viejo', timestamp=NOW - timedelta(hours=5))
        make_message(ana, content='nuevo', timestamp=NOW - timedelta(hours=1))
        make_message(bruno, content='hola', timestamp=NOW - timedelta(hours=3))
        other = make_client(phone='+59899000003', account_id=OTHER_ACCOUNT_ID)
        make_message(other, content='ajeno', timestamp=NOW)

        latest = repository.get_latest_per_client(TEST_ACCOUNT_ID)

        assert [m.content for m in latest] == ['nuevo', 'hola']

    def test_list_for_client_oldest_first(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, content='b', timestamp=NOW)
        make_message(client, content='a', timestamp=NOW - timedelta(minutes=1))

        assert [m.content for m in repository.list_for_client(client.id)] == ['a', 'b']

    def test_count_for_account_filters(self, repository, make_client, make_message):
        client = make_client()
        make_message(client, status='delivered', timestamp=NOW - timedelta(days=2))
        make_message(client, status='read', timestamp=NOW - timedelta(hours=1))
        make_message(client, direction='out', status='sent', timestamp=NOW)

        assert repository.count_for_account(TEST_ACCOUNT_ID) == 3
        assert repository.count_for_account(TEST_ACCOUNT_ID, direction='in', status='delivered') == 1
        assert repository.count_for_account(TEST_ACCOUNT_ID, since=NOW - timedelta(days=1)) == 2
        assert repository.count_for_account(TEST_ACCOUNT_ID, since=NOW - timedelta(days=3),
                                            until=NOW - timedelta(hours=1)) == 1

    def test_search_for_account(self, repository, make_client, make_message):
        ana = make_client(phone='+59899000001')
        bruno = make_client(phone='+59899000002')
        make_message(ana, content='Quiero el precio', timestamp=NOW)
        make_message(bruno, content='Precio por favor', timestamp=NOW)
        make_message(bruno, content='Gracias', timestamp=NOW)

        assert len(repository.search_for_account(TEST_ACCOUNT_ID, 'precio')) == 2
        assert len(repository.search_for_account(TEST_ACCOUNT_ID, 'precio', client_id=ana.id)) == 1
        assert repository.search_for_account(TEST_ACCOUNT_ID, '') == []


def test_mark_as_read_only_touches_own_messages(repository, make_client, make_message, clean_db):
    mine = make_message(make_client(phone='+59899000001'))
    theirs = make_message(make_client(phone='+59899000002', account_id=OTHER_ACCOUNT_ID))

    updated = repository.mark_as_read(TEST_ACCOUNT_ID, [mine.id, theirs.id])
    repository.commit()

    assert updated == 1
    assert clean_db.get(Message, mine.id).status == 'read'
    assert clean_db.get(Message, theirs.id).status == 'delivered'
