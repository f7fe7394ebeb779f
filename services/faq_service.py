"""
FAQService - Business logic for the FAQ entries that drive auto-replies
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from crm_database import FAQ
from repositories.faq_repository import FAQRepository
from services.common.result import Result
from utils.datetime_utils import format_utc_iso
import logging

logger = logging.getLogger(__name__)


def _clean_keywords(keywords: Any) -> List[str]:
    if not isinstance(keywords, (list, tuple)):
        return []
    cleaned = (keyword.strip() for keyword in keywords if isinstance(keyword, str))
    return [keyword for keyword in cleaned if keyword]


class FAQService:
    """Service for FAQ management with repository pattern"""

    def __init__(self, repository: FAQRepository):
        self.repository = repository

    def list_faqs(self, account_id: int) -> List[FAQ]:
        """All FAQs of the account, newest first"""
        return self.repository.list_for_account(account_id)

    def create_faq(self, account_id: int, data: Dict[str, Any]) -> Result[FAQ]:
        """
        Create a FAQ.

        Args:
            account_id: Owning account
            data: question, answer (required), keywords, active
        """
        question = (data.get('question') or '').strip()
        answer = (data.get('answer') or '').strip()
        if not question or not answer:
            return Result.failure("Question and answer are required", code="VALIDATION_ERROR")

        try:
            faq = self.repository.create(
                user_id=account_id,
                question=question,
                answer=answer,
                keywords=_clean_keywords(data.get('keywords')),
                active=bool(data.get('active', True))
            )
            self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Error creating FAQ for account {account_id}: {e}")
            return Result.failure("Failed to create FAQ", code="DATABASE_ERROR")

        logger.info(f"Created FAQ {faq.id} for account {account_id}")
        return Result.success(faq)

    def update_faq(self, account_id: int, data: Dict[str, Any]) -> Result[FAQ]:
        faq_id = data.get('id')
        if not faq_id:
            return Result.failure("FAQ ID is required", code="VALIDATION_ERROR")

        faq = self.repository.get_for_account(faq_id, account_id)
        if faq is None:
            return Result.failure("FAQ not found or unauthorized", code="FAQ_NOT_FOUND")

        updates: Dict[str, Any] = {}
        if 'keywords' in data:
            updates['keywords'] = _clean_keywords(data['keywords'])
        for field in ('question', 'answer'):
            if field in data:
                value = (data.get(field) or '').strip()
                if not value:
                    return Result.failure(f"{field.capitalize()} cannot be empty", code="VALIDATION_ERROR")
                updates[field] = value
        if 'active' in data:
            updates['active'] = bool(data['active'])

        try:
            faq = self.repository.update(faq, **updates)
            self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Error updating FAQ {faq_id}: {e}")
            return Result.failure("Failed to update FAQ", code="DATABASE_ERROR")

        return Result.success(faq)

    def delete_faq(self, account_id: int, faq_id: Optional[int]) -> Result[bool]:
        if not faq_id:
            return Result.failure("FAQ ID is required", code="VALIDATION_ERROR")

        faq = self.repository.get_for_account(faq_id, account_id)
        if faq is None:
            return Result.failure("FAQ not found or unauthorized", code="FAQ_NOT_FOUND")

        try:
            self.repository.delete(faq)
            self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Error deleting FAQ {faq_id}: {e}")
            return Result.failure("Failed to delete FAQ", code="DATABASE_ERROR")

        logger.info(f"Deleted FAQ {faq_id} for account {account_id}")
        return Result.success(True)

    @staticmethod
    def to_dict(faq: FAQ) -> Dict[str, Any]:
        return {
            'id': faq.id,
            'user_id': faq.user_id,
            'question': faq.question,
            'answer': faq.answer,
            'keywords': list(faq.keywords or []),
            'active': faq.active,
            'created_at': format_utc_iso(faq.created_at),
            'updated_at': format_utc_iso(faq.updated_at),
        }
