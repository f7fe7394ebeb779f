"""
LabelRepository and ClientLabelRepository against the test database
"""

import pytest

from repositories.label_repository import LabelRepository
from repositories.client_label_repository import ClientLabelRepository
from tests.helpers import utc, TEST_ACCOUNT_ID, OTHER_ACCOUNT_ID


@pytest.fixture
def label_repository(clean_db):
    return LabelRepository(clean_db)


@pytest.fixture
def client_label_repository(clean_db):
    return ClientLabelRepository(clean_db)


class TestLabelRepository:

    def test_active_auto_labels_in_creation_order(self, label_repository, make_label):
        first = make_label('Nuevo')
        make_label('VIP', type='manual')
        make_label('Frecuente', active=False)
        last = make_label('Última hora')
        make_label('Nuevo', account_id=OTHER_ACCOUNT_ID)

        labels = label_repository.find_active_auto_labels(TEST_ACCOUNT_ID)

        assert [label.id for label in labels] == [first.id, last.id]

    def test_find_auto_label_by_name_ignores_manual(self, label_repository, make_label):
        make_label('Nuevo', type='manual')

        assert label_repository.find_auto_label_by_name(TEST_ACCOUNT_ID, 'Nuevo') is None

        auto = make_label('Nuevo')
        assert label_repository.find_auto_label_by_name(TEST_ACCOUNT_ID, 'Nuevo').id == auto.id

    def test_list_auto_before_manual(self, label_repository, make_label):
        manual = make_label('VIP', type='manual')
        auto = make_label('Nuevo')

        assert [label.id for label in label_repository.list_for_account(TEST_ACCOUNT_ID)] == [auto.id, manual.id]

    def test_get_for_account(self, label_repository, make_label):
        theirs = make_label('Nuevo', account_id=OTHER_ACCOUNT_ID)

        assert label_repository.get_for_account(theirs.id, TEST_ACCOUNT_ID) is None


class TestClientLabelRepository:

    def test_add_and_read(self, client_label_repository, make_client, make_label):
        client = make_client()
        nuevo = make_label('Nuevo')
        frecuente = make_label('Frecuente')

        client_label_repository.add_label(client.id, nuevo.id, assigned_at=utc(2024, 6, 1))
        client_label_repository.add_label(client.id, frecuente.id)
        client_label_repository.commit()

        assert client_label_repository.get_label_ids_for_client(client.id) == {nuevo.id, frecuente.id}

    def test_adding_twice_keeps_one_row(self, client_label_repository, make_client, make_label):
        client = make_client()
        label = make_label('Nuevo')

        first = client_label_repository.add_label(client.id, label.id)
        second = client_label_repository.add_label(client.id, label.id)
        client_label_repository.commit()

        assert first is second
        assert client_label_repository.count(client_id=client.id) == 1

    def test_remove(self, client_label_repository, make_client, make_label):
        client = make_client()
        label = make_label('Nuevo')
        client_label_repository.add_label(client.id, label.id)
        client_label_repository.commit()

        assert client_label_repository.remove_label(client.id, label.id) is True
        assert client_label_repository.remove_label(client.id, label.id) is False
        assert client_label_repository.get_label_ids_for_client(client.id) == set()

    def test_client_labels_property(self, client_label_repository, make_client, make_label, clean_db):
        client = make_client()
        label = make_label('Nuevo')
        client_label_repository.add_label(client.id, label.id)
        client_label_repository.commit()
        clean_db.expire(client)

        assert [l.name for l in client.labels] == ['Nuevo']
