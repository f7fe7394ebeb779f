"""
Unit tests for BaseRepository using a concrete repository over a plain class
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from repositories.base_repository import (
    BaseRepository,
    PaginationParams,
    PaginatedResult,
)


class FakeModel:
    """Stand-in model; attribute access is all the repository needs"""
    id = MagicMock()
    user_id = MagicMock()
    name = MagicMock()

    def __init__(self, **kwargs):
        for key, value in kwargs.items():
            setattr(self, key, value)


class FakeRepository(BaseRepository[FakeModel]):

    def search(self, query, fields=None):
        return self.find_by(name=query)


@pytest.fixture
def mock_session():
    session = MagicMock(spec=Session)
    query = MagicMock()
    query.filter.return_value = query
    query.order_by.return_value = query
    query.offset.return_value = query
    query.limit.return_value = query
    session.query.return_value = query
    return session


@pytest.fixture
def repository(mock_session):
    return FakeRepository(mock_session, FakeModel)


class TestCreate:

    def test_adds_and_flushes(self, repository, mock_session):
        # Act
        entity = repository.create(name='Nuevo')

        # Assert
        assert isinstance(entity, FakeModel)
        assert entity.name == 'Nuevo'
        mock_session.add.assert_called_once_with(entity)
        mock_session.flush.assert_called_once()
        mock_session.commit.assert_not_called()

    def test_error_rolls_back_and_raises(self, repository, mock_session):
        mock_session.flush.side_effect = SQLAlchemyError('boom')

        with pytest.raises(SQLAlchemyError):
            repository.create(name='Nuevo')

        mock_session.rollback.assert_called_once()


class TestRead:

    def test_get_by_id(self, repository, mock_session):
        mock_session.get.return_value = 'entity'

        assert repository.get_by_id(4) == 'entity'
        mock_session.get.assert_called_once_with(FakeModel, 4)

    def test_get_by_id_propagates_errors(self, repository, mock_session):
        mock_session.get.side_effect = SQLAlchemyError('gone')

        with pytest.raises(SQLAlchemyError):
            repository.get_by_id(4)

    def test_get_for_account_filters_on_owner(self, repository, mock_session):
        query = mock_session.query.return_value
        query.first.return_value = None

        assert repository.get_for_account(4, account_id=2) is None
        assert query.filter.call_count == 2

    def test_unknown_filter_columns_are_skipped(self, repository, mock_session):
        repository.find_by(colour='red')

        mock_session.query.return_value.filter.assert_not_called()

    def test_paginate(self, repository, mock_session):
        query = mock_session.query.return_value
        query.count.return_value = 5
        query.all.return_value = ['a', 'b']

        page = repository._paginate(query, PaginationParams(page=2, per_page=2))

        assert page == PaginatedResult(items=['a', 'b'], total=5, page=2, per_page=2)
        assert page.pages == 3
        assert page.has_next
        query.offset.assert_called_once_with(2)
        query.limit.assert_called_once_with(2)


class TestWrite:

    def test_update_sets_known_attributes(self, repository, mock_session):
        entity = FakeModel(id=1, name='old')

        repository.update(entity, name='new', unknown='ignored')

        assert entity.name == 'new'
        assert not hasattr(entity, 'unknown')
        mock_session.flush.assert_called_once()

    def test_delete(self, repository, mock_session):
        entity = FakeModel(id=1)

        assert repository.delete(entity) is True
        mock_session.delete.assert_called_once_with(entity)

    def test_commit_failure_rolls_back(self, repository, mock_session):
        mock_session.commit.side_effect = SQLAlchemyError('conflict')

        with pytest.raises(SQLAlchemyError):
            repository.commit()

        mock_session.rollback.assert_called_once()


class TestPaginationParams:

    @pytest.mark.parametrize('page,offset', [(1, 0), (3, 100), (0, 0)])
    def test_offset(self, page, offset):
        assert PaginationParams(page=page, per_page=50).offset == offset

    def test_empty_result_has_no_pages(self):
        assert PaginatedResult(items=[], total=0, page=1, per_page=0).pages == 0
