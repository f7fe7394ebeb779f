"""
MessageService - conversations, message history and outbound sends
"""

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from crm_database import Message
from repositories.client_repository import ClientRepository
from repositories.message_repository import MessageRepository
from repositories.user_repository import UserRepository
from services.common.result import Result
from services.enums import MessageDirection, MessageStatus
from services.twilio_service import TwilioService, TwilioAPIError
from utils.datetime_utils import utc_now, ensure_utc, start_of_local_day, format_utc_iso
import logging

logger = logging.getLogger(__name__)

VALID_STATUSES = {status.value for status in MessageStatus}


def one_month_before(moment: datetime) -> datetime:
    """Same day and time one calendar month earlier, clamped to the month's last day"""
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class MessageService:
    """Service for message history and manual sends"""

    def __init__(self,
                 message_repository: MessageRepository,
                 client_repository: ClientRepository,
                 user_repository: UserRepository,
                 twilio_service: TwilioService,
                 timezone: str = 'America/Montevideo'):
        self.message_repository = message_repository
        self.client_repository = client_repository
        self.user_repository = user_repository
        self.twilio_service = twilio_service
        self.timezone = timezone

    def send_message(self, account_id: int, client_id: Any, text: Any) -> Result[Dict[str, Any]]:
        """
        Send a WhatsApp message to a client from the account's number.

        A send that succeeded but could not be stored is still reported as
        sent; the provider already delivered it.

        Returns:
            Result with {'messageSid', 'message_id'}
        """
        if not client_id or not isinstance(text, str) or not text.strip():
            return Result.failure("Client ID and message are required", code="VALIDATION_ERROR")

        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")

        account = self.user_repository.get_by_id(account_id)
        if account is None or not account.twilio_phone_number:
            return Result.failure("Twilio phone number not configured", code="PHONE_NOT_CONFIGURED")

        try:
            sid = self.twilio_service.send_message(
                to=client.phone,
                body=text,
                from_number=account.twilio_phone_number
            )
        except TwilioAPIError as e:
            logger.error(f"Failed to send message to client {client.id}: {e}")
            return Result.failure("Failed to send message", code="SEND_FAILED")

        message_id = None
        try:
            sent_at = utc_now()
            message = self.message_repository.create(
                user_id=account_id,
                client_id=client.id,
                content=text,
                direction=MessageDirection.OUTBOUND.value,
                timestamp=sent_at,
                twilio_message_id=sid,
                status=MessageStatus.SENT.value
            )
            self.client_repository.touch_last_message(client, sent_at)
            self.message_repository.commit()
            message_id = message.id
        except SQLAlchemyError as e:
            self.message_repository.rollback()
            logger.error(f"Message {sid} was sent but could not be stored: {e}")

        logger.info(f"Message {sid} sent to client {client.id}")
        return Result.success({'messageSid': sid, 'message_id': message_id})

    def get_client_messages(self, account_id: int, client_id: int) -> Result[List[Message]]:
        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")
        return Result.success(self.message_repository.list_for_client(client.id))

    def get_conversations(self, account_id: int) -> List[Dict[str, Any]]:
        """One entry per client with its latest message, newest conversation first"""
        conversations = []
        for message in self.message_repository.get_latest_per_client(account_id):
            client = message.client
            conversations.append({
                'client_id': message.client_id,
                'client_name': client.name if client else None,
                'client_phone': client.phone if client else None,
                'client_status': client.status if client else None,
                'last_message': message.content,
                'last_message_time': format_utc_iso(message.timestamp),
                'last_message_direction': message.direction,
            })
        return conversations

    def get_unread_count(self, account_id: int) -> int:
        """Inbound messages still in 'delivered' state count as unread"""
        return self.message_repository.count_for_account(
            account_id,
            direction=MessageDirection.INBOUND.value,
            status=MessageStatus.DELIVERED.value
        )

    def mark_as_read(self, account_id: int, message_ids: Iterable[Any]) -> Result[int]:
        if not isinstance(message_ids, (list, tuple)) or not message_ids:
            return Result.failure("messageIds must be a non-empty list", code="VALIDATION_ERROR")
        if not all(isinstance(message_id, int) and not isinstance(message_id, bool) for message_id in message_ids):
            return Result.failure("messageIds must contain integers", code="VALIDATION_ERROR")

        try:
            count = self.message_repository.mark_as_read(account_id, message_ids)
            self.message_repository.commit()
        except SQLAlchemyError as e:
            self.message_repository.rollback()
            logger.error(f"Error marking messages as read for account {account_id}: {e}")
            return Result.failure("Failed to mark messages as read", code="DATABASE_ERROR")
        return Result.success(count)

    def update_status(self, account_id: int, message_id: int, status: Any) -> Result[Message]:
        if status not in VALID_STATUSES:
            return Result.failure(f"Invalid status: {status}", code="VALIDATION_ERROR")

        message = self.message_repository.get_for_account(message_id, account_id)
        if message is None:
            return Result.failure("Message not found", code="MESSAGE_NOT_FOUND")

        try:
            message = self.message_repository.update(message, status=status)
            self.message_repository.commit()
        except SQLAlchemyError as e:
            self.message_repository.rollback()
            logger.error(f"Error updating status of message {message_id}: {e}")
            return Result.failure("Failed to update message", code="DATABASE_ERROR")
        return Result.success(message)

    def search_messages(self, account_id: int, query: str, client_id: Optional[int] = None) -> List[Message]:
        return self.message_repository.search_for_account(account_id, (query or '').strip(), client_id=client_id)

    def get_message_stats(self, account_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Message counters. Day boundaries follow the account's timezone;
        week and month are trailing windows ending at ``now``.
        """
        now = ensure_utc(now) if now else utc_now()
        today = start_of_local_day(now, self.timezone)
        yesterday = start_of_local_day(today - timedelta(hours=1), self.timezone)
        count = self.message_repository.count_for_account

        return {
            'total': count(account_id),
            'incoming': count(account_id, direction=MessageDirection.INBOUND.value),
            'outgoing': count(account_id, direction=MessageDirection.OUTBOUND.value),
            'today': count(account_id, since=today),
            'yesterday': count(account_id, since=yesterday, until=today),
            'thisWeek': count(account_id, since=now - timedelta(days=7)),
            'thisMonth': count(account_id, since=one_month_before(now)),
            'read': count(account_id, status=MessageStatus.READ.value),
            'delivered': count(account_id, status=MessageStatus.DELIVERED.value),
            'failed': count(account_id, status=MessageStatus.FAILED.value),
        }

    @staticmethod
    def to_dict(message: Message) -> Dict[str, Any]:
        return {
            'id': message.id,
            'user_id': message.user_id,
            'client_id': message.client_id,
            'content': message.content,
            'direction': message.direction,
            'timestamp': format_utc_iso(message.timestamp),
            'twilio_message_id': message.twilio_message_id,
            'status': message.status,
            'created_at': format_utc_iso(message.created_at),
        }
