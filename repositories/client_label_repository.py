"""
ClientLabelRepository - Data access layer for the client/label junction

A row existing is the only signal that a label applies to a client.
"""

from datetime import datetime
from typing import List, Optional, Set
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository
from crm_database import ClientLabel
from utils.datetime_utils import utc_now
import logging

logger = logging.getLogger(__name__)


class ClientLabelRepository(BaseRepository[ClientLabel]):
    """Repository for ClientLabel data access"""

    def __init__(self, session):
        super().__init__(session, ClientLabel)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[ClientLabel]:
        # Junction rows carry no text
        return []

    def get_label_ids_for_client(self, client_id: int) -> Set[int]:
        rows = self.session.query(ClientLabel.label_id).filter(
            ClientLabel.client_id == client_id
        ).all()
        return {row.label_id for row in rows}

    def add_label(self, client_id: int, label_id: int,
                  assigned_at: Optional[datetime] = None) -> ClientLabel:
        """
        Attach a label to a client. Attaching twice returns the existing row.
        """
        existing = self.session.get(ClientLabel, (client_id, label_id))
        if existing is not None:
            return existing
        return self.create(
            client_id=client_id,
            label_id=label_id,
            assigned_at=assigned_at or utc_now()
        )

    def remove_label(self, client_id: int, label_id: int) -> bool:
        """
        Detach a label from a client.

        Returns:
            True if a row was deleted
        """
        try:
            count = self.session.query(ClientLabel).filter(
                ClientLabel.client_id == client_id,
                ClientLabel.label_id == label_id
            ).delete(synchronize_session=False)
            self.session.flush()
            return count > 0
        except SQLAlchemyError as e:
            logger.error(f"Error removing label {label_id} from client {client_id}: {e}")
            self.session.rollback()
            raise
