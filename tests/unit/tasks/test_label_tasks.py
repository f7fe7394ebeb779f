"""Tests for the periodic auto label refresh tasks.

The tasks resolve AutoLabelService from the service registry of a fresh app,
so create_app is patched to hand back a mock app.
"""

import pytest
from unittest.mock import Mock, MagicMock, patch

from services.common.result import Result
from tasks.label_tasks import update_account_client_labels, refresh_all_account_labels
from celery_config import add_ssl_params


@pytest.fixture
def mock_app():
    app = MagicMock()
    app.services = Mock()
    return app


class TestUpdateAccountClientLabels:

    @patch('tasks.label_tasks.create_app')
    def test_refreshes_through_registry(self, mock_create_app, mock_app):
        # Arrange
        mock_create_app.return_value = mock_app
        auto_label_service = Mock()
        auto_label_service.update_all_clients_labels.return_value = Result.success({
            'updated': 3,
            'failed': [{'client_id': 9, 'error': 'boom'}],
            'message': 'Updated labels for 3 clients'
        })
        mock_app.services.get.return_value = auto_label_service

        # Act
        result = update_account_client_labels.apply(args=[1], task_id='test-task').get()

        # Assert
        mock_app.services.get.assert_called_once_with('auto_label')
        auto_label_service.update_all_clients_labels.assert_called_once_with(1)
        assert result['success'] is True
        assert result['account_id'] == 1
        assert result['updated'] == 3
        assert result['failed'] == [{'client_id': 9, 'error': 'boom'}]
        assert 'timestamp' in result

    @patch('tasks.label_tasks.create_app')
    def test_failure_is_retried(self, mock_create_app, mock_app):
        # Arrange
        mock_create_app.return_value = mock_app
        auto_label_service = Mock()
        auto_label_service.update_all_clients_labels.return_value = Result.failure(
            'Failed to list clients', code='DATABASE_ERROR'
        )
        mock_app.services.get.return_value = auto_label_service

        # Act
        with patch.object(update_account_client_labels, 'retry', side_effect=RuntimeError('retrying')) as mock_retry:
            result = update_account_client_labels.apply(args=[1], task_id='test-task')

        # Assert
        assert result.failed()
        mock_retry.assert_called_once()
        assert str(mock_retry.call_args.kwargs['exc']) == 'Failed to list clients'


class TestRefreshAllAccountLabels:

    @patch('tasks.label_tasks.update_account_client_labels.delay')
    @patch('tasks.label_tasks.create_app')
    def test_queues_one_task_per_active_account(self, mock_create_app, mock_delay, mock_app):
        # Arrange
        mock_create_app.return_value = mock_app
        user_repository = Mock()
        user_repository.find_active_ids.return_value = [1, 2, 5]
        mock_app.services.get.return_value = user_repository

        # Act
        result = refresh_all_account_labels.apply(task_id='test-task').get()

        # Assert
        mock_app.services.get.assert_called_once_with('user_repository')
        assert [c.args for c in mock_delay.call_args_list] == [(1,), (2,), (5,)]
        assert result['queued'] == 3

    @patch('tasks.label_tasks.update_account_client_labels.delay')
    @patch('tasks.label_tasks.create_app')
    def test_no_accounts(self, mock_create_app, mock_delay, mock_app):
        mock_create_app.return_value = mock_app
        mock_app.services.get.return_value.find_active_ids.return_value = []

        result = refresh_all_account_labels.apply(task_id='test-task').get()

        assert result['queued'] == 0
        mock_delay.assert_not_called()


class TestBeatSchedule:

    def test_refresh_is_scheduled(self):
        from celery_worker import celery

        schedule = celery.conf.beat_schedule['refresh-auto-labels']

        assert schedule['task'] == 'tasks.label_tasks.refresh_all_account_labels'
        assert 'tasks.label_tasks.refresh_all_account_labels' in celery.tasks


class TestAddSslParams:

    @pytest.mark.parametrize('url,expected', [
        ('redis://localhost:6379/0', 'redis://localhost:6379/0'),
        ('rediss://host:6380/0', 'rediss://host:6380/0?ssl_cert_reqs=CERT_NONE'),
        ('rediss://host:6380/0?foo=1', 'rediss://host:6380/0?foo=1&ssl_cert_reqs=CERT_NONE'),
        ('rediss://host:6380/0?ssl_cert_reqs=CERT_REQUIRED', 'rediss://host:6380/0?ssl_cert_reqs=CERT_REQUIRED'),
    ])
    def test_urls(self, url, expected):
        assert add_ssl_params(url) == expected
