"""
Tests for ClientService
"""

import pytest
from types import SimpleNamespace
from unittest.mock import Mock

from sqlalchemy.exc import SQLAlchemyError

from services.client_service import ClientService, normalize_client_phone
from repositories.client_repository import ClientRepository
from repositories.label_repository import LabelRepository
from tests.helpers import utc


@pytest.fixture
def mock_client_repository():
    repo = Mock(spec=ClientRepository)
    repo.find_by_phone.return_value = None
    repo.create.side_effect = lambda **kwargs: SimpleNamespace(id=20, **kwargs)
    repo.update.side_effect = lambda entity, **updates: SimpleNamespace(**{**vars(entity), **updates})
    return repo


@pytest.fixture
def mock_label_repository():
    return Mock(spec=LabelRepository)


@pytest.fixture
def client_service(mock_client_repository, mock_label_repository):
    return ClientService(mock_client_repository, mock_label_repository, timezone='America/Montevideo')


def stored_client(**kwargs):
    defaults = dict(id=10, user_id=1, name='Ana', phone='+59899123456', status='active')
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestNormalizeClientPhone:

    def test_keeps_e164(self):
        assert normalize_client_phone('+14155552671') == '+14155552671'

    def test_local_number(self):
        assert normalize_client_phone('099123456') == '+59899123456'

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            normalize_client_phone('abc')


class TestCreateClient:

    def test_creates_with_normalized_phone(self, client_service, mock_client_repository):
        # Act
        result = client_service.create_client(1, {'name': ' Ana ', 'phone': '099 123 456'})

        # Assert
        assert result.is_success
        mock_client_repository.create.assert_called_once_with(
            user_id=1, name='Ana', phone='+59899123456', status='active'
        )
        mock_client_repository.commit.assert_called_once()

    def test_name_and_phone_required(self, client_service):
        result = client_service.create_client(1, {'name': 'Ana'})

        assert result.error_code == 'VALIDATION_ERROR'

    def test_invalid_phone(self, client_service):
        result = client_service.create_client(1, {'name': 'Ana', 'phone': '12'})

        assert result.error_code == 'VALIDATION_ERROR'

    def test_invalid_status(self, client_service):
        result = client_service.create_client(1, {'name': 'Ana', 'phone': '+59899123456', 'status': 'vip'})

        assert result.error_code == 'VALIDATION_ERROR'

    def test_duplicate_phone(self, client_service, mock_client_repository):
        mock_client_repository.find_by_phone.return_value = stored_client()

        result = client_service.create_client(1, {'name': 'Ana', 'phone': '+59899123456'})

        assert result.error_code == 'DUPLICATE_CLIENT'
        mock_client_repository.create.assert_not_called()

    def test_database_error(self, client_service, mock_client_repository):
        mock_client_repository.create.side_effect = SQLAlchemyError('boom')

        result = client_service.create_client(1, {'name': 'Ana', 'phone': '+59899123456'})

        assert result.error_code == 'DATABASE_ERROR'
        mock_client_repository.rollback.assert_called_once()


class TestUpdateClient:

    def test_not_found(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = None

        assert client_service.update_client(1, 10, {'name': 'x'}).error_code == 'CLIENT_NOT_FOUND'

    def test_renames(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = stored_client()

        result = client_service.update_client(1, 10, {'name': 'Ana Maria'})

        assert result.data.name == 'Ana Maria'

    def test_phone_taken_by_another_client(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = stored_client()
        mock_client_repository.find_by_phone.return_value = stored_client(id=11)

        result = client_service.update_client(1, 10, {'phone': '+59899999999'})

        assert result.error_code == 'DUPLICATE_CLIENT'

    def test_same_phone_is_not_a_duplicate(self, client_service, mock_client_repository):
        client = stored_client()
        mock_client_repository.get_for_account.return_value = client
        mock_client_repository.find_by_phone.return_value = client

        result = client_service.update_client(1, 10, {'phone': '+59899123456'})

        assert result.is_success

    def test_empty_payload_changes_nothing(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = stored_client()

        result = client_service.update_client(1, 10, {})

        assert result.is_success
        mock_client_repository.update.assert_not_called()


class TestStatusChanges:

    def test_archive(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = stored_client()

        result = client_service.archive_client(1, 10)

        assert result.data.status == 'archived'

    def test_activate(self, client_service, mock_client_repository):
        mock_client_repository.get_for_account.return_value = stored_client(status='archived')

        result = client_service.activate_client(1, 10)

        assert result.data.status == 'active'

    def test_delete(self, client_service, mock_client_repository):
        client = stored_client()
        mock_client_repository.get_for_account.return_value = client

        result = client_service.delete_client(1, 10)

        assert result.is_success
        mock_client_repository.delete.assert_called_once_with(client)


class TestQueries:

    def test_clients_by_unknown_label(self, client_service, mock_label_repository):
        mock_label_repository.get_for_account.return_value = None

        assert client_service.get_clients_by_label(1, 5).error_code == 'LABEL_NOT_FOUND'

    def test_clients_by_label(self, client_service, mock_client_repository, mock_label_repository):
        mock_label_repository.get_for_account.return_value = SimpleNamespace(id=5)
        mock_client_repository.find_by_label.return_value = [stored_client()]

        result = client_service.get_clients_by_label(1, 5)

        assert len(result.data) == 1
        mock_client_repository.find_by_label.assert_called_once_with(1, 5)

    def test_stats_use_local_month_start(self, client_service, mock_client_repository):
        # Montevideo is UTC-3, so the local month starts at 03:00 UTC
        now = utc(2024, 6, 15, 12, 0, 0)
        mock_client_repository.get_stats_for_account.return_value = {'total': 0}

        client_service.get_client_stats(1, now=now)

        mock_client_repository.get_stats_for_account.assert_called_once_with(
            1,
            month_start=utc(2024, 6, 1, 3, 0, 0),
            recent_since=utc(2024, 6, 8, 12, 0, 0)
        )


def test_to_dict_includes_labels():
    label = SimpleNamespace(id=1, name='Nuevo', type='auto', color='#25D366')
    client = stored_client(last_message_at=utc(2024, 6, 1, 12), created_at=None, updated_at=None,
                           labels=[label])

    data = ClientService.to_dict(client)

    assert data['last_message_at'] == '2024-06-01T12:00:00+00:00'
    assert data['labels'] == [{'id': 1, 'name': 'Nuevo', 'type': 'auto', 'color': '#25D366'}]
    assert 'labels' not in ClientService.to_dict(client, include_labels=False)


class TestClientsPage:

    def test_clamps_page_and_size(self, client_service, mock_client_repository):
        client_service.get_clients_page(1, page=0, per_page=10_000, status='active')

        _, pagination = mock_client_repository.get_page_for_account.call_args.args
        assert pagination.page == 1
        assert pagination.per_page == 200
        assert mock_client_repository.get_page_for_account.call_args.kwargs == {'status': 'active'}
