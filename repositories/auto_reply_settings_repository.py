"""
AutoReplySettingsRepository - Data access layer for per-account auto-reply settings
"""

from typing import List, Optional
from sqlalchemy import or_
from repositories.base_repository import BaseRepository
from crm_database import AutoReplySettings


class AutoReplySettingsRepository(BaseRepository[AutoReplySettings]):
    """Repository for AutoReplySettings data access"""

    def __init__(self, session):
        super().__init__(session, AutoReplySettings)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[AutoReplySettings]:
        if not query:
            return []
        return self.session.query(AutoReplySettings).filter(or_(
            AutoReplySettings.welcome_message.ilike(f'%{query}%'),
            AutoReplySettings.fallback_message.ilike(f'%{query}%')
        )).all()

    def find_by_account(self, account_id: int) -> Optional[AutoReplySettings]:
        """There is at most one settings row per account"""
        return self.find_one_by(user_id=account_id)
