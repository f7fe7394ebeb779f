"""
ClientRepository - Data access layer for an account's clients
"""

from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy import or_, func, case
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository, PaginationParams, PaginatedResult
from crm_database import Client, ClientLabel
import logging

logger = logging.getLogger(__name__)


class ClientRepository(BaseRepository[Client]):
    """Repository for Client data access"""

    def __init__(self, session):
        super().__init__(session, Client)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Client]:
        """
        Search clients by name or phone across all accounts.

        Args:
            query: Search query string
            fields: Fields to search in (default: name, phone)
        """
        if not query:
            return []
        return self._search_query(query, fields).all()

    def search_for_account(self, account_id: int, query: str) -> List[Client]:
        """Search one account's clients, most recently active first"""
        if not query:
            return self.list_for_account(account_id)
        search = self._search_query(query).filter(Client.user_id == account_id)
        return self._order_by_activity(search).all()

    def _search_query(self, query: str, fields: Optional[List[str]] = None):
        search_fields = fields or ['name', 'phone']
        conditions = [
            getattr(Client, field).ilike(f'%{query}%')
            for field in search_fields if hasattr(Client, field)
        ]
        return self.session.query(Client).filter(or_(*conditions))

    @staticmethod
    def _order_by_activity(query):
        # Most recent conversation first, clients without messages last
        return query.order_by(
            Client.last_message_at.is_(None),
            Client.last_message_at.desc(),
            Client.id.desc()
        )

    def find_by_phone(self, account_id: int, phone: str) -> Optional[Client]:
        return self.find_one_by(user_id=account_id, phone=phone)

    def _account_query(self, account_id: int, status: Optional[str] = None):
        filters = {'user_id': account_id}
        if status:
            filters['status'] = status
        return self._build_query(filters)

    def list_for_account(self, account_id: int, status: Optional[str] = None) -> List[Client]:
        return self._order_by_activity(self._account_query(account_id, status)).all()

    def get_page_for_account(self, account_id: int, pagination: PaginationParams,
                             status: Optional[str] = None) -> PaginatedResult[Client]:
        query = self._order_by_activity(self._account_query(account_id, status))
        return self._paginate(query, pagination)

    def find_active_ids_for_account(self, account_id: int) -> List[int]:
        rows = self.session.query(Client.id).filter(
            Client.user_id == account_id,
            Client.status == 'active'
        ).order_by(Client.id).all()
        return [row.id for row in rows]

    def find_by_label(self, account_id: int, label_id: int) -> List[Client]:
        query = self.session.query(Client).join(
            ClientLabel, ClientLabel.client_id == Client.id
        ).filter(
            Client.user_id == account_id,
            ClientLabel.label_id == label_id
        )
        return self._order_by_activity(query).all()

    def touch_last_message(self, client: Client, timestamp: datetime) -> Client:
        """Move last_message_at forward; an older timestamp never rewinds it"""
        try:
            current = client.last_message_at
            if current is None or current.replace(tzinfo=None) <= timestamp.replace(tzinfo=None):
                client.last_message_at = timestamp
                self.session.flush()
            return client
        except SQLAlchemyError as e:
            logger.error(f"Error updating last_message_at for client {client.id}: {e}")
            self.session.rollback()
            raise

    def get_stats_for_account(self, account_id: int, month_start: datetime,
                              recent_since: datetime) -> Dict[str, int]:
        """
        Aggregate client counts for the dashboard in a single query.

        Args:
            account_id: Owning account
            month_start: Clients created at or after this count as new this month
            recent_since: Clients with a message at or after this count as recent
        """
        row = self.session.query(
            func.count(Client.id),
            func.sum(case((Client.status == 'active', 1), else_=0)),
            func.sum(case((Client.status == 'archived', 1), else_=0)),
            func.sum(case((Client.created_at >= month_start, 1), else_=0)),
            func.sum(case((Client.last_message_at >= recent_since, 1), else_=0)),
        ).filter(Client.user_id == account_id).one()

        total, active, archived, new_this_month, with_recent = row
        return {
            'total': total or 0,
            'active': int(active or 0),
            'archived': int(archived or 0),
            'newThisMonth': int(new_this_month or 0),
            'withRecentMessages': int(with_recent or 0),
        }
