"""
LabelService - listing labels and creating manual ones
"""

import re
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError

from crm_database import Label
from repositories.label_repository import LabelRepository
from services.common.result import Result
from services.enums import LabelType
import logging

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = '#6B7280'
HEX_COLOR = re.compile(r'^#[0-9A-Fa-f]{6}$')


class LabelService:
    """Manual labels are owned by the user; auto labels by AutoLabelService"""

    def __init__(self, repository: LabelRepository):
        self.repository = repository

    def list_labels(self, account_id: int) -> List[Label]:
        return self.repository.list_for_account(account_id)

    def create_label(self, account_id: int, data: Dict[str, Any]) -> Result[Label]:
        name = (data.get('name') or '').strip()
        if not name:
            return Result.failure("Label name is required", code="VALIDATION_ERROR")

        color = data.get('color') or DEFAULT_LABEL_COLOR
        if not isinstance(color, str) or not HEX_COLOR.match(color):
            return Result.failure("Color must be a hex value like #25D366", code="VALIDATION_ERROR")

        try:
            label = self.repository.create(
                user_id=account_id,
                name=name,
                type=LabelType.MANUAL.value,
                color=color,
                active=True
            )
            self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Error creating label for account {account_id}: {e}")
            return Result.failure("Failed to create label", code="DATABASE_ERROR")

        return Result.success(label)

    @staticmethod
    def to_dict(label: Label) -> Dict[str, Any]:
        return {
            'id': label.id,
            'name': label.name,
            'type': label.type,
            'color': label.color,
            'active': label.active,
        }
