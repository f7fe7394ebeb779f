"""
Automatic client labels

The evaluator (evaluate_auto_labels) is a pure decision function over a
snapshot of one client taken at a single ``now``. AutoLabelService does the
reads and writes around it: it builds the snapshot through repositories,
applies the resulting delta to the client/label junction and commits.

Rules per AutoLabelKind:
    NEW            client created at most 24h ago (inclusive)
    LAST_HOUR      last message at most 1h ago
    FREQUENT       at least 5 messages, any direction, in the trailing 30 days
    DELAYED_REPLY  latest inbound message is at least 2h old and no outbound
                   message is strictly newer than it
    UNKNOWN        never added or removed
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from logging_config import get_logger
from services.common.result import Result
from services.enums import AutoLabelKind, LabelType
from repositories.client_repository import ClientRepository
from repositories.label_repository import LabelRepository
from repositories.client_label_repository import ClientLabelRepository
from repositories.message_repository import MessageRepository
from utils.datetime_utils import utc_now, ensure_utc

logger = get_logger(__name__)

NEW_CLIENT_WINDOW = timedelta(hours=24)
LAST_HOUR_WINDOW = timedelta(hours=1)
FREQUENT_WINDOW = timedelta(days=30)
FREQUENT_MIN_MESSAGES = 5
DELAYED_REPLY_AFTER = timedelta(hours=2)

DEFAULT_AUTO_LABELS = [
    (AutoLabelKind.NEW, '#25D366'),
    (AutoLabelKind.LAST_HOUR, '#FF6B6B'),
    (AutoLabelKind.FREQUENT, '#4ECDC4'),
    (AutoLabelKind.DELAYED_REPLY, '#FFA500'),
]


@dataclass(frozen=True)
class ClientSnapshot:
    id: int
    created_at: datetime
    last_message_at: Optional[datetime] = None


@dataclass(frozen=True)
class MessageHistorySnapshot:
    """Pre-fetched facts about a client's messages, all relative to one ``now``"""
    recent_message_count: int = 0
    last_inbound_at: Optional[datetime] = None
    replied_after_last_inbound: bool = False


@dataclass(frozen=True)
class LabelDelta:
    to_add: List[int] = field(default_factory=list)
    to_remove: List[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def should_apply(kind: AutoLabelKind, client: ClientSnapshot,
                 history: MessageHistorySnapshot, now: datetime) -> Optional[bool]:
    """
    Decide whether one rule holds for the client.

    Returns None for AutoLabelKind.UNKNOWN so the caller leaves the label alone.
    """
    if kind is AutoLabelKind.NEW:
        return now - ensure_utc(client.created_at) <= NEW_CLIENT_WINDOW

    if kind is AutoLabelKind.LAST_HOUR:
        if client.last_message_at is None:
            return False
        return now - ensure_utc(client.last_message_at) <= LAST_HOUR_WINDOW

    if kind is AutoLabelKind.FREQUENT:
        return history.recent_message_count >= FREQUENT_MIN_MESSAGES

    if kind is AutoLabelKind.DELAYED_REPLY:
        if history.last_inbound_at is None or history.replied_after_last_inbound:
            return False
        return now - ensure_utc(history.last_inbound_at) >= DELAYED_REPLY_AFTER

    return None


def evaluate_auto_labels(client: ClientSnapshot,
                         history: MessageHistorySnapshot,
                         current_label_ids: Iterable[int],
                         auto_labels: Iterable[Any],
                         now: datetime) -> LabelDelta:
    """
    Compute which auto labels to attach to and detach from a client.

    Args:
        client: Snapshot of the client row
        history: Message facts fetched against the same ``now``
        current_label_ids: Label ids currently attached to the client
        auto_labels: The account's labels; inactive and manual ones are ignored
        now: Evaluation instant (timezone-aware UTC)

    Returns:
        LabelDelta with label ids in the order the labels were given
    """
    now = ensure_utc(now)
    current: Set[int] = set(current_label_ids)
    to_add: List[int] = []
    to_remove: List[int] = []

    for label in auto_labels:
        if label.type != LabelType.AUTO.value or not label.active:
            continue

        applies = should_apply(AutoLabelKind.from_label_name(label.name), client, history, now)
        if applies is None:
            continue

        if applies and label.id not in current:
            to_add.append(label.id)
        elif not applies and label.id in current:
            to_remove.append(label.id)

    return LabelDelta(to_add=to_add, to_remove=to_remove)


class AutoLabelService:
    """Applies the auto label rules to stored clients"""

    def __init__(self,
                 client_repository: ClientRepository,
                 label_repository: LabelRepository,
                 client_label_repository: ClientLabelRepository,
                 message_repository: MessageRepository):
        self.client_repository = client_repository
        self.label_repository = label_repository
        self.client_label_repository = client_label_repository
        self.message_repository = message_repository

    def build_history_snapshot(self, client_id: int, now: datetime) -> MessageHistorySnapshot:
        """Read everything the rules need about a client's messages in one go"""
        recent_count = self.message_repository.count_for_client_since(client_id, now - FREQUENT_WINDOW)

        latest_inbound = self.message_repository.get_latest_inbound(client_id)
        if latest_inbound is None:
            return MessageHistorySnapshot(recent_message_count=recent_count)

        replied = self.message_repository.has_outbound_after(client_id, latest_inbound.timestamp)
        return MessageHistorySnapshot(
            recent_message_count=recent_count,
            last_inbound_at=ensure_utc(latest_inbound.timestamp),
            replied_after_last_inbound=replied
        )

    def update_client_labels(self, client_id: int, now: Optional[datetime] = None) -> Result[Dict[str, Any]]:
        """
        Re-evaluate a client's auto labels and persist the delta.

        Returns:
            Result with {'added', 'removed', 'message'}
        """
        now = ensure_utc(now) if now else utc_now()

        client = self.client_repository.get_by_id(client_id)
        if client is None:
            return Result.failure(f"Client {client_id} not found", code="CLIENT_NOT_FOUND")

        auto_labels = self.label_repository.find_active_auto_labels(client.user_id)
        if not auto_labels:
            return Result.success({'added': 0, 'removed': 0, 'message': 'No auto labels configured'})

        try:
            snapshot = ClientSnapshot(
                id=client.id,
                created_at=client.created_at,
                last_message_at=client.last_message_at
            )
            history = self.build_history_snapshot(client.id, now)
            current_ids = self.client_label_repository.get_label_ids_for_client(client.id)

            delta = evaluate_auto_labels(snapshot, history, current_ids, auto_labels, now)

            for label_id in delta.to_add:
                self.client_label_repository.add_label(client.id, label_id, assigned_at=now)
            for label_id in delta.to_remove:
                self.client_label_repository.remove_label(client.id, label_id)

            if not delta.is_empty:
                self.client_label_repository.commit()
        except SQLAlchemyError as e:
            self.client_label_repository.rollback()
            logger.error("Failed to update client labels", client_id=client_id, error=str(e))
            return Result.failure(f"Failed to update labels: {e}", code="DATABASE_ERROR")

        changed = len(delta.to_add) + len(delta.to_remove)
        logger.info("Client auto labels evaluated", client_id=client.id,
                    added=delta.to_add, removed=delta.to_remove)
        return Result.success({
            'added': len(delta.to_add),
            'removed': len(delta.to_remove),
            'message': f'Updated {changed} auto labels'
        })

    def update_all_clients_labels(self, account_id: int, now: Optional[datetime] = None) -> Result[Dict[str, Any]]:
        """
        Re-evaluate every active client of an account.

        One client failing does not stop the others; failures are collected
        and returned alongside the count of updated clients.
        """
        now = ensure_utc(now) if now else utc_now()

        try:
            client_ids = self.client_repository.find_active_ids_for_account(account_id)
        except SQLAlchemyError as e:
            logger.error("Failed to list clients for label refresh", account_id=account_id, error=str(e))
            return Result.failure(f"Failed to list clients: {e}", code="DATABASE_ERROR")

        if not client_ids:
            return Result.success({'updated': 0, 'failed': [], 'message': 'No clients found'})

        updated = 0
        failed: List[Dict[str, Any]] = []
        for client_id in client_ids:
            try:
                result = self.update_client_labels(client_id, now=now)
            except Exception as e:
                # A broken row must not stop the batch
                logger.error("Unexpected error updating client labels", client_id=client_id, error=str(e))
                failed.append({'client_id': client_id, 'error': str(e)})
                continue

            if result.is_success:
                updated += 1
            else:
                failed.append({'client_id': client_id, 'error': result.error})

        logger.info("Account auto labels refreshed", account_id=account_id,
                    updated=updated, failed=len(failed))
        return Result.success({
            'updated': updated,
            'failed': failed,
            'message': f'Updated labels for {updated} clients'
        })

    def create_default_auto_labels(self, account_id: int) -> Result[List[Any]]:
        """
        Create the built-in auto labels the account does not have yet.

        Returns:
            Result with the newly created labels (empty when all existed)
        """
        created = []
        try:
            for kind, color in DEFAULT_AUTO_LABELS:
                if self.label_repository.find_auto_label_by_name(account_id, kind.value):
                    continue
                created.append(self.label_repository.create(
                    user_id=account_id,
                    name=kind.value,
                    type=LabelType.AUTO.value,
                    color=color,
                    active=True
                ))
            if created:
                self.label_repository.commit()
        except SQLAlchemyError as e:
            self.label_repository.rollback()
            logger.error("Failed to create default auto labels", account_id=account_id, error=str(e))
            return Result.failure(f"Failed to create default labels: {e}", code="DATABASE_ERROR")

        logger.info("Default auto labels ensured", account_id=account_id, created=len(created))
        return Result.success(created)

