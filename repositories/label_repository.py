"""
LabelRepository - Data access layer for labels
"""

from typing import List, Optional
from repositories.base_repository import BaseRepository
from crm_database import Label


class LabelRepository(BaseRepository[Label]):
    """Repository for Label data access"""

    def __init__(self, session):
        super().__init__(session, Label)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Label]:
        if not query:
            return []
        return self.session.query(Label).filter(Label.name.ilike(f'%{query}%')).all()

    def find_active_auto_labels(self, account_id: int) -> List[Label]:
        return self.session.query(Label).filter(
            Label.user_id == account_id,
            Label.type == 'auto',
            Label.active.is_(True)
        ).order_by(Label.id.asc()).all()

    def find_auto_label_by_name(self, account_id: int, name: str) -> Optional[Label]:
        return self.session.query(Label).filter(
            Label.user_id == account_id,
            Label.type == 'auto',
            Label.name == name
        ).first()

    def list_for_account(self, account_id: int) -> List[Label]:
        return self.session.query(Label).filter(
            Label.user_id == account_id
        ).order_by(Label.type.asc(), Label.name.asc()).all()

