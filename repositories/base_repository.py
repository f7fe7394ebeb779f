"""
Base Repository - Abstract base class for all repositories

Every table except ``user`` is owned by an account through ``user_id``;
get_for_account() and find_by() are the tenant-safe ways to read it.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, List, Optional, Dict, Any, Type
from sqlalchemy.orm import Session, Query
from sqlalchemy.exc import SQLAlchemyError
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class PaginationParams:
    """Parameters for pagination"""
    page: int = 1
    per_page: int = 50

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.per_page


@dataclass
class PaginatedResult(Generic[T]):
    """One page of a query plus the total row count"""
    items: List[T]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page if self.per_page > 0 else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


class BaseRepository(ABC, Generic[T]):
    """
    Writes flush but do not commit; the service decides the transaction
    boundary with commit()/rollback().
    """

    def __init__(self, session: Session, model_class: Type[T]):
        self.session = session
        self.model_class = model_class

    def create(self, **kwargs) -> T:
        """
        Add a new row and flush so its primary key is populated.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            entity = self.model_class(**kwargs)
            self.session.add(entity)
            self.session.flush()
            logger.debug(f"Created {self.model_class.__name__}")
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    def get_by_id(self, entity_id: int) -> Optional[T]:
        try:
            return self.session.get(self.model_class, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model_class.__name__} by id {entity_id}: {e}")
            raise

    def get_for_account(self, entity_id: int, account_id: int) -> Optional[T]:
        """The row with this id, or None when it belongs to another account"""
        return self.find_one_by(id=entity_id, user_id=account_id)

    def find_by(self, **filters) -> List[T]:
        """Rows whose columns equal the given values"""
        return self._build_query(filters).all()

    def find_one_by(self, **filters) -> Optional[T]:
        return self._build_query(filters).first()

    def count(self, **filters) -> int:
        return self._build_query(filters).count()

    def update(self, entity: T, **updates) -> T:
        """
        Set known attributes on an entity and flush. Unknown keys are ignored.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            for field, value in updates.items():
                if hasattr(entity, field):
                    setattr(entity, field, value)
            self.session.flush()
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    def delete(self, entity: T) -> bool:
        try:
            self.session.delete(entity)
            self.session.flush()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction: {e}")
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()

    def _build_query(self, filters: Optional[Dict[str, Any]] = None) -> Query:
        """
        Equality filters on known columns. Lists become IN clauses and None
        becomes IS NULL; unknown column names are skipped.
        """
        query = self.session.query(self.model_class)
        for field, value in (filters or {}).items():
            column = getattr(self.model_class, field, None)
            if column is None:
                continue
            if isinstance(value, (list, tuple, set)):
                query = query.filter(column.in_(list(value)))
            elif value is None:
                query = query.filter(column.is_(None))
            else:
                query = query.filter(column == value)
        return query

    def _paginate(self, query: Query, pagination: PaginationParams) -> PaginatedResult[T]:
        """Count ``query`` then fetch one page of it; ordering is the caller's"""
        total = query.order_by(None).count()
        items = query.offset(pagination.offset).limit(pagination.per_page).all()
        return PaginatedResult(items=items, total=total, page=pagination.page, per_page=pagination.per_page)

    @abstractmethod
    def search(self, query: str, fields: Optional[List[str]] = None) -> List[T]:
        """
        Search entities by text query.

        Args:
            query: Search query string
            fields: Fields to search in (None for default fields)
        """
        pass
