"""
FAQRepository - Data access layer for FAQ entries
"""

from typing import List, Optional
from sqlalchemy import or_
from repositories.base_repository import BaseRepository
from crm_database import FAQ


class FAQRepository(BaseRepository[FAQ]):
    """Repository for FAQ data access"""

    def __init__(self, session):
        super().__init__(session, FAQ)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[FAQ]:
        if not query:
            return []
        return self.session.query(FAQ).filter(
            or_(FAQ.question.ilike(f'%{query}%'), FAQ.answer.ilike(f'%{query}%'))
        ).all()

    def find_active_for_account(self, account_id: int) -> List[FAQ]:
        """
        Active FAQs in the order the matcher walks them. The matcher keeps
        the first FAQ on a tie, so this order is part of the behavior.
        """
        return self.session.query(FAQ).filter(
            FAQ.user_id == account_id,
            FAQ.active.is_(True)
        ).order_by(FAQ.created_at.asc(), FAQ.id.asc()).all()

    def list_for_account(self, account_id: int) -> List[FAQ]:
        """All FAQs of the account, newest first"""
        return self.session.query(FAQ).filter(
            FAQ.user_id == account_id
        ).order_by(FAQ.created_at.desc(), FAQ.id.desc()).all()

