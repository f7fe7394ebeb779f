"""
Repository Layer - Data Access Abstraction
Implements the Repository Pattern for database isolation
"""

from .base_repository import (
    BaseRepository,
    PaginationParams,
    PaginatedResult
)
from .client_repository import ClientRepository
from .message_repository import MessageRepository
from .faq_repository import FAQRepository
from .label_repository import LabelRepository
from .client_label_repository import ClientLabelRepository
from .auto_reply_settings_repository import AutoReplySettingsRepository
from .user_repository import UserRepository

__all__ = [
    'BaseRepository',
    'PaginationParams',
    'PaginatedResult',
    'ClientRepository',
    'MessageRepository',
    'FAQRepository',
    'LabelRepository',
    'ClientLabelRepository',
    'AutoReplySettingsRepository',
    'UserRepository',
]
