"""
UserRepository - Data access layer for account owners
"""

from typing import List, Optional
from sqlalchemy import or_
from repositories.base_repository import BaseRepository
from crm_database import User


class UserRepository(BaseRepository[User]):
    """Repository for User (account) data access"""

    def __init__(self, session):
        super().__init__(session, User)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[User]:
        if not query:
            return []

        search_fields = fields or ['email', 'name', 'business_name']
        conditions = [
            getattr(User, field).ilike(f'%{query}%')
            for field in search_fields if hasattr(User, field)
        ]
        if not conditions:
            return []
        return self.session.query(User).filter(or_(*conditions)).all()

    def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self.find_one_by(email=email.strip().lower())

    def find_by_twilio_phone_number(self, phone_number: str) -> Optional[User]:
        """
        Find the account that owns a WhatsApp sender number.

        Args:
            phone_number: E.164 number without the channel prefix
        """
        if not phone_number:
            return None
        return self.find_one_by(twilio_phone_number=phone_number)

    def find_active_ids(self) -> List[int]:
        rows = self.session.query(User.id).filter(User.is_active.is_(True)).order_by(User.id).all()
        return [row.id for row in rows]
