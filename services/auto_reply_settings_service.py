"""
AutoReplySettingsService - per-account auto-reply configuration
"""

from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from crm_database import AutoReplySettings
from repositories.auto_reply_settings_repository import AutoReplySettingsRepository
from services.common.result import Result
from utils.datetime_utils import format_utc_iso
import logging

logger = logging.getLogger(__name__)

DEFAULT_WELCOME_MESSAGE = '¡Hola! Gracias por contactarnos. Te responderemos pronto.'
DEFAULT_FALLBACK_MESSAGE = 'Gracias por tu mensaje. Nuestro equipo te responderá a la brevedad.'


def _clean_message(value: Any) -> Optional[str]:
    """Trim a message; blank or missing becomes None"""
    if not isinstance(value, str):
        return None
    return value.strip() or None


class AutoReplySettingsService:
    """Reads and upserts the single settings row of an account"""

    def __init__(self, repository: AutoReplySettingsRepository):
        self.repository = repository

    def get_for_account(self, account_id: int) -> Optional[AutoReplySettings]:
        """The stored row, or None when the account never saved settings"""
        return self.repository.find_by_account(account_id)

    def get_settings(self, account_id: int) -> Dict[str, Any]:
        """
        Settings as shown to the account owner. Built-in defaults stand in
        for an account without a stored row.
        """
        settings = self.repository.find_by_account(account_id)
        if settings is None:
            return {
                'auto_reply_enabled': True,
                'welcome_message': DEFAULT_WELCOME_MESSAGE,
                'fallback_message': DEFAULT_FALLBACK_MESSAGE,
            }
        return self.to_dict(settings)

    def save_settings(self, account_id: int, data: Dict[str, Any]) -> Result[AutoReplySettings]:
        """
        Create or update the account's settings.

        On create a missing ``auto_reply_enabled`` means enabled; on update
        a missing key leaves the stored flag untouched.
        """
        if 'auto_reply_enabled' in data and not isinstance(data['auto_reply_enabled'], bool):
            return Result.failure("auto_reply_enabled must be a boolean", code="VALIDATION_ERROR")

        welcome = _clean_message(data.get('welcome_message'))
        fallback = _clean_message(data.get('fallback_message'))

        try:
            settings = self.repository.find_by_account(account_id)
            if settings is None:
                settings = self.repository.create(
                    user_id=account_id,
                    auto_reply_enabled=data.get('auto_reply_enabled', True),
                    welcome_message=welcome,
                    fallback_message=fallback
                )
            else:
                updates = {'welcome_message': welcome, 'fallback_message': fallback}
                if 'auto_reply_enabled' in data:
                    updates['auto_reply_enabled'] = data['auto_reply_enabled']
                settings = self.repository.update(settings, **updates)
            self.repository.commit()
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Error saving auto-reply settings for account {account_id}: {e}")
            return Result.failure("Failed to save settings", code="DATABASE_ERROR")

        logger.info(f"Auto-reply settings saved for account {account_id}")
        return Result.success(settings)

    @staticmethod
    def to_dict(settings: AutoReplySettings) -> Dict[str, Any]:
        return {
            'id': settings.id,
            'user_id': settings.user_id,
            'auto_reply_enabled': settings.auto_reply_enabled,
            'welcome_message': settings.welcome_message,
            'fallback_message': settings.fallback_message,
            'created_at': format_utc_iso(settings.created_at),
            'updated_at': format_utc_iso(settings.updated_at),
        }
