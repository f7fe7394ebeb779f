"""
MessageRepository - Data access layer for the per-client message log
"""

from datetime import datetime
from typing import List, Optional, Iterable
from sqlalchemy import func, and_
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository
from crm_database import Message
import logging

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    """Repository for Message data access"""

    def __init__(self, session):
        super().__init__(session, Message)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Message]:
        if not query:
            return []
        return self.session.query(Message).filter(
            Message.content.ilike(f'%{query}%')
        ).order_by(Message.timestamp.desc()).limit(200).all()

    def search_for_account(self, account_id: int, query: str,
                           client_id: Optional[int] = None) -> List[Message]:
        """Messages of one account whose content contains the query, newest first"""
        if not query:
            return []
        search = self.session.query(Message).filter(
            Message.user_id == account_id,
            Message.content.ilike(f'%{query}%')
        )
        if client_id is not None:
            search = search.filter(Message.client_id == client_id)
        return search.order_by(Message.timestamp.desc()).limit(200).all()

    def list_for_client(self, client_id: int) -> List[Message]:
        """Full conversation with a client, oldest first"""
        return self.session.query(Message).filter(
            Message.client_id == client_id
        ).order_by(Message.timestamp.asc(), Message.id.asc()).all()

    # Queries used by the auto label evaluator

    def count_for_client_since(self, client_id: int, since: datetime) -> int:
        """Messages in either direction with timestamp >= since"""
        return self.session.query(func.count(Message.id)).filter(
            Message.client_id == client_id,
            Message.timestamp >= since
        ).scalar() or 0

    def get_latest_inbound(self, client_id: int) -> Optional[Message]:
        return self.session.query(Message).filter(
            Message.client_id == client_id,
            Message.direction == 'in'
        ).order_by(Message.timestamp.desc(), Message.id.desc()).first()

    def has_outbound_after(self, client_id: int, timestamp: datetime) -> bool:
        """True if an outbound message is strictly newer than ``timestamp``"""
        return self.session.query(Message.id).filter(
            Message.client_id == client_id,
            Message.direction == 'out',
            Message.timestamp > timestamp
        ).first() is not None

    # Conversation views

    def get_latest_per_client(self, account_id: int) -> List[Message]:
        """
        The newest message of every conversation in the account, newest
        conversation first.
        """
        latest = self.session.query(
            Message.client_id.label('client_id'),
            func.max(Message.timestamp).label('latest')
        ).filter(Message.user_id == account_id).group_by(Message.client_id).subquery()

        rows = self.session.query(Message).join(
            latest,
            and_(Message.client_id == latest.c.client_id, Message.timestamp == latest.c.latest)
        ).order_by(Message.timestamp.desc(), Message.id.desc()).all()

        # Two messages sharing the max timestamp would list a client twice
        seen = set()
        result = []
        for message in rows:
            if message.client_id not in seen:
                seen.add(message.client_id)
                result.append(message)
        return result

    def count_for_account(self, account_id: int,
                          direction: Optional[str] = None,
                          status: Optional[str] = None,
                          since: Optional[datetime] = None,
                          until: Optional[datetime] = None) -> int:
        query = self.session.query(func.count(Message.id)).filter(Message.user_id == account_id)
        if direction:
            query = query.filter(Message.direction == direction)
        if status:
            query = query.filter(Message.status == status)
        if since is not None:
            query = query.filter(Message.timestamp >= since)
        if until is not None:
            query = query.filter(Message.timestamp < until)
        return query.scalar() or 0

    def mark_as_read(self, account_id: int, message_ids: Iterable[int]) -> int:
        """
        Set status 'read' on the given messages of the account.

        Returns:
            Number of updated messages
        """
        ids = list(message_ids)
        if not ids:
            return 0
        try:
            count = self.session.query(Message).filter(
                Message.user_id == account_id,
                Message.id.in_(ids)
            ).update({'status': 'read'}, synchronize_session=False)
            self.session.flush()
            return count
        except SQLAlchemyError as e:
            logger.error(f"Error marking messages as read: {e}")
            self.session.rollback()
            raise
