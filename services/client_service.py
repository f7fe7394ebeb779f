"""
ClientService - Business logic for an account's WhatsApp clients
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from crm_database import Client
from repositories.base_repository import PaginationParams, PaginatedResult
from repositories.client_repository import ClientRepository
from repositories.label_repository import LabelRepository
from services.common.result import Result
from services.enums import ClientStatus
from services.twilio_service import validate_phone_number, format_phone_number_for_uruguay
from utils.datetime_utils import utc_now, ensure_utc, start_of_local_month, format_utc_iso
import logging

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_WINDOW = timedelta(days=7)
MAX_PAGE_SIZE = 200


def normalize_client_phone(phone: str) -> str:
    """
    E.164 numbers are kept as given; anything else is read as a
    Uruguayan number.

    Raises:
        ValueError: If the number cannot be normalized
    """
    phone = (phone or '').strip()
    if validate_phone_number(phone):
        return phone
    return format_phone_number_for_uruguay(phone)


class ClientService:
    """Service for client management with repository pattern"""

    def __init__(self, client_repository: ClientRepository,
                 label_repository: LabelRepository,
                 timezone: str = 'America/Montevideo'):
        self.client_repository = client_repository
        self.label_repository = label_repository
        self.timezone = timezone

    def list_clients(self, account_id: int, status: Optional[str] = None) -> List[Client]:
        """Clients ordered by most recent conversation, silent clients last"""
        return self.client_repository.list_for_account(account_id, status=status)

    def get_clients_page(self, account_id: int, page: int = 1, per_page: int = 50,
                         status: Optional[str] = None) -> PaginatedResult[Client]:
        """One page of list_clients, same ordering"""
        pagination = PaginationParams(page=max(page, 1), per_page=min(max(per_page, 1), MAX_PAGE_SIZE))
        return self.client_repository.get_page_for_account(account_id, pagination, status=status)

    def search_clients(self, account_id: int, query: str) -> List[Client]:
        return self.client_repository.search_for_account(account_id, (query or '').strip())

    def get_client(self, account_id: int, client_id: int) -> Result[Client]:
        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")
        return Result.success(client)

    def create_client(self, account_id: int, data: Dict[str, Any]) -> Result[Client]:
        """
        Create a client by hand.

        Args:
            account_id: Owning account
            data: name and phone (required), status
        """
        name = (data.get('name') or '').strip()
        phone = (data.get('phone') or '').strip()
        if not name or not phone:
            return Result.failure("Name and phone are required", code="VALIDATION_ERROR")

        try:
            phone = normalize_client_phone(phone)
        except ValueError as e:
            return Result.failure(str(e), code="VALIDATION_ERROR")

        status = data.get('status') or ClientStatus.ACTIVE.value
        if status not in (ClientStatus.ACTIVE.value, ClientStatus.ARCHIVED.value):
            return Result.failure(f"Invalid status: {status}", code="VALIDATION_ERROR")

        if self.client_repository.find_by_phone(account_id, phone):
            return Result.failure(f"A client with phone {phone} already exists", code="DUPLICATE_CLIENT")

        try:
            client = self.client_repository.create(
                user_id=account_id,
                name=name,
                phone=phone,
                status=status
            )
            self.client_repository.commit()
        except SQLAlchemyError as e:
            self.client_repository.rollback()
            logger.error(f"Error creating client for account {account_id}: {e}")
            return Result.failure("Failed to create client", code="DATABASE_ERROR")

        logger.info(f"Created client {client.id} for account {account_id}")
        return Result.success(client)

    def update_client(self, account_id: int, client_id: int, data: Dict[str, Any]) -> Result[Client]:
        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")

        updates: Dict[str, Any] = {}
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                return Result.failure("Name cannot be empty", code="VALIDATION_ERROR")
            updates['name'] = name

        if 'phone' in data:
            try:
                phone = normalize_client_phone(data.get('phone'))
            except ValueError as e:
                return Result.failure(str(e), code="VALIDATION_ERROR")
            other = self.client_repository.find_by_phone(account_id, phone)
            if other is not None and other.id != client.id:
                return Result.failure(f"A client with phone {phone} already exists", code="DUPLICATE_CLIENT")
            updates['phone'] = phone

        if 'status' in data:
            if data['status'] not in (ClientStatus.ACTIVE.value, ClientStatus.ARCHIVED.value):
                return Result.failure(f"Invalid status: {data['status']}", code="VALIDATION_ERROR")
            updates['status'] = data['status']

        return self._apply_updates(client, updates)

    def archive_client(self, account_id: int, client_id: int) -> Result[Client]:
        return self._set_status(account_id, client_id, ClientStatus.ARCHIVED)

    def activate_client(self, account_id: int, client_id: int) -> Result[Client]:
        return self._set_status(account_id, client_id, ClientStatus.ACTIVE)

    def _set_status(self, account_id: int, client_id: int, status: ClientStatus) -> Result[Client]:
        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")
        return self._apply_updates(client, {'status': status.value})

    def _apply_updates(self, client: Client, updates: Dict[str, Any]) -> Result[Client]:
        if not updates:
            return Result.success(client)
        try:
            client = self.client_repository.update(client, **updates)
            self.client_repository.commit()
        except SQLAlchemyError as e:
            self.client_repository.rollback()
            logger.error(f"Error updating client {client.id}: {e}")
            return Result.failure("Failed to update client", code="DATABASE_ERROR")
        return Result.success(client)

    def delete_client(self, account_id: int, client_id: int) -> Result[bool]:
        """Delete a client together with its messages and label links"""
        client = self.client_repository.get_for_account(client_id, account_id)
        if client is None:
            return Result.failure("Client not found", code="CLIENT_NOT_FOUND")

        try:
            self.client_repository.delete(client)
            self.client_repository.commit()
        except SQLAlchemyError as e:
            self.client_repository.rollback()
            logger.error(f"Error deleting client {client_id}: {e}")
            return Result.failure("Failed to delete client", code="DATABASE_ERROR")

        logger.info(f"Deleted client {client_id} for account {account_id}")
        return Result.success(True)

    def get_clients_by_label(self, account_id: int, label_id: int) -> Result[List[Client]]:
        if self.label_repository.get_for_account(label_id, account_id) is None:
            return Result.failure("Label not found", code="LABEL_NOT_FOUND")
        return Result.success(self.client_repository.find_by_label(account_id, label_id))

    def get_client_stats(self, account_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Dashboard counters. "This month" follows the account's local
        calendar; recent activity is the trailing 7 days.
        """
        now = ensure_utc(now) if now else utc_now()
        return self.client_repository.get_stats_for_account(
            account_id,
            month_start=start_of_local_month(now, self.timezone),
            recent_since=now - RECENT_ACTIVITY_WINDOW
        )

    @staticmethod
    def to_dict(client: Client, include_labels: bool = True) -> Dict[str, Any]:
        data = {
            'id': client.id,
            'user_id': client.user_id,
            'name': client.name,
            'phone': client.phone,
            'status': client.status,
            'last_message_at': format_utc_iso(client.last_message_at),
            'created_at': format_utc_iso(client.created_at),
            'updated_at': format_utc_iso(client.updated_at),
        }
        if include_labels:
            data['labels'] = [
                {'id': label.id, 'name': label.name, 'type': label.type, 'color': label.color}
                for label in client.labels
            ]
        return data
