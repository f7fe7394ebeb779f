"""
InboundMessageService - processes one verified WhatsApp webhook event

Storage is the only step whose failure fails the event. Auto labels and
the auto-reply run only when the account has auto-reply enabled, and any
error inside them is logged and dropped so the webhook is still
acknowledged.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional
from xml.sax.saxutils import escape

from sqlalchemy.exc import SQLAlchemyError

from logging_config import get_logger
from repositories.auto_reply_settings_repository import AutoReplySettingsRepository
from repositories.client_repository import ClientRepository
from repositories.faq_repository import FAQRepository
from repositories.message_repository import MessageRepository
from repositories.user_repository import UserRepository
from services.auto_label_service import AutoLabelService
from services.common.result import Result
from services.enums import ClientStatus, MessageDirection, MessageStatus, PipelineState
from services.faq_matcher import match_faq, resolve_reply_text
from services.twilio_service import TwilioService, TwilioAPIError, strip_channel_prefix
from utils.datetime_utils import utc_now, ensure_utc

logger = get_logger(__name__)

DEFAULT_CLIENT_NAME = 'Cliente'
ACKNOWLEDGEMENT_TEXT = 'Gracias por tu mensaje. Te responderemos a la brevedad.'


@dataclass(frozen=True)
class InboundEvent:
    """A Twilio WhatsApp webhook payload with channel prefixes removed"""
    from_number: str
    to_number: str
    body: str
    message_sid: str = ''
    num_media: int = 0

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> 'InboundEvent':
        try:
            num_media = int(form.get('NumMedia') or 0)
        except (TypeError, ValueError):
            num_media = 0
        return cls(
            from_number=strip_channel_prefix(form.get('From')),
            to_number=strip_channel_prefix(form.get('To')),
            body=form.get('Body') or '',
            message_sid=form.get('MessageSid') or '',
            num_media=num_media
        )


@dataclass
class InboundOutcome:
    account_id: int
    client_id: int
    message_id: int
    client_created: bool = False
    labels_updated: bool = False
    reply_text: Optional[str] = None
    reply_sid: Optional[str] = None
    states: List[PipelineState] = field(default_factory=lambda: [PipelineState.RECEIVED, PipelineState.VERIFIED])

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    def advance(self, state: PipelineState) -> None:
        self.states.append(state)


class InboundMessageService:
    """Store, label and auto-reply to one inbound WhatsApp message"""

    def __init__(self,
                 user_repository: UserRepository,
                 client_repository: ClientRepository,
                 message_repository: MessageRepository,
                 faq_repository: FAQRepository,
                 settings_repository: AutoReplySettingsRepository,
                 auto_label_service: AutoLabelService,
                 twilio_service: TwilioService):
        self.user_repository = user_repository
        self.client_repository = client_repository
        self.message_repository = message_repository
        self.faq_repository = faq_repository
        self.settings_repository = settings_repository
        self.auto_label_service = auto_label_service
        self.twilio_service = twilio_service

    def process_inbound(self, event: InboundEvent, now: Optional[datetime] = None) -> Result[InboundOutcome]:
        """
        Run a verified event through the pipeline.

        Args:
            event: Parsed webhook payload
            now: Processing instant; the current time when omitted

        Returns:
            Result with an InboundOutcome whose last state is ACKNOWLEDGED,
            or a failure with ACCOUNT_NOT_FOUND / STORAGE_ERROR
        """
        now = ensure_utc(now) if now else utc_now()
        log = logger.bind(message_sid=event.message_sid, to_number=event.to_number)

        account = self.user_repository.find_by_twilio_phone_number(event.to_number)
        if account is None:
            log.warning("No account owns the destination number")
            return Result.failure(f"User not found for phone number {event.to_number}",
                                  code="ACCOUNT_NOT_FOUND")

        try:
            outcome = self._store_inbound(account.id, event, now)
        except SQLAlchemyError as e:
            self.message_repository.rollback()
            log.error("Failed to store inbound message", account_id=account.id, error=str(e))
            return Result.failure("Failed to store message", code="STORAGE_ERROR")

        log = log.bind(account_id=account.id, client_id=outcome.client_id)
        log.info("Inbound message stored", client_created=outcome.client_created,
                 num_media=event.num_media)

        settings = self._load_settings(account.id, log)
        if settings is None or not settings.auto_reply_enabled:
            log.info("Auto-reply disabled or settings not found")
            outcome.advance(PipelineState.ACKNOWLEDGED)
            return Result.success(outcome)

        self._update_labels(outcome, now, log)
        self._send_auto_reply(outcome, event, settings.fallback_message, now, log)

        outcome.advance(PipelineState.ACKNOWLEDGED)
        return Result.success(outcome)

    def _store_inbound(self, account_id: int, event: InboundEvent, now: datetime) -> InboundOutcome:
        client = self.client_repository.find_by_phone(account_id, event.from_number)
        created = client is None
        if created:
            client = self.client_repository.create(
                user_id=account_id,
                name=event.from_number or DEFAULT_CLIENT_NAME,
                phone=event.from_number,
                status=ClientStatus.ACTIVE.value,
                created_at=now
            )

        message = self.message_repository.create(
            user_id=account_id,
            client_id=client.id,
            content=event.body,
            direction=MessageDirection.INBOUND.value,
            timestamp=now,
            twilio_message_id=event.message_sid or None,
            status=MessageStatus.DELIVERED.value
        )
        self.client_repository.touch_last_message(client, now)
        self.message_repository.commit()

        outcome = InboundOutcome(
            account_id=account_id,
            client_id=client.id,
            message_id=message.id,
            client_created=created
        )
        outcome.advance(PipelineState.STORED)
        return outcome

    def _load_settings(self, account_id: int, log):
        try:
            return self.settings_repository.find_by_account(account_id)
        except SQLAlchemyError as e:
            # Treated as disabled; the message is already stored
            self.settings_repository.rollback()
            log.error("Auto-reply settings could not be read", error=str(e))
            return None

    def _update_labels(self, outcome: InboundOutcome, now: datetime, log) -> None:
        try:
            result = self.auto_label_service.update_client_labels(outcome.client_id, now=now)
        except Exception as e:
            # Labels never fail the webhook
            log.error("Auto label update raised", error=str(e))
            return

        if result.is_failure:
            log.error("Auto label update failed", error=result.error, error_code=result.error_code)
            return

        outcome.labels_updated = True
        outcome.advance(PipelineState.LABELED)

    def _send_auto_reply(self, outcome: InboundOutcome, event: InboundEvent,
                         fallback_message: Optional[str], now: datetime, log) -> None:
        try:
            faqs = self.faq_repository.find_active_for_account(outcome.account_id)
            match = match_faq(event.body, faqs)
            reply_text = resolve_reply_text(match, fallback_message)
            log.info("Auto-reply selected", faq_score=match.score,
                     faq_id=getattr(match.faq, 'id', None))

            sid = self.twilio_service.send_message(
                to=event.from_number,
                body=reply_text,
                from_number=event.to_number
            )
            outcome.reply_text = reply_text
            outcome.reply_sid = sid

            # The reply must sort strictly after the message it answers
            replied_at = utc_now()
            if replied_at <= now:
                replied_at = now + timedelta(microseconds=1)

            client = self.client_repository.get_by_id(outcome.client_id)
            self.message_repository.create(
                user_id=outcome.account_id,
                client_id=outcome.client_id,
                content=reply_text,
                direction=MessageDirection.OUTBOUND.value,
                timestamp=replied_at,
                twilio_message_id=sid,
                status=MessageStatus.SENT.value
            )
            if client is not None:
                self.client_repository.touch_last_message(client, replied_at)
            self.message_repository.commit()
        except TwilioAPIError as e:
            log.error("Auto-reply send failed", error=str(e), status_code=e.status_code)
            return
        except SQLAlchemyError as e:
            self.message_repository.rollback()
            log.error("Auto-reply could not be stored", error=str(e), reply_sid=outcome.reply_sid)
            return
        except Exception as e:
            # Replies never fail the webhook
            self.message_repository.rollback()
            log.error("Auto-reply raised", error=str(e), reply_sid=outcome.reply_sid)
            return

        log.info("Auto-reply sent", reply_sid=outcome.reply_sid)
        outcome.advance(PipelineState.REPLIED)


def build_twiml_acknowledgement(text: str = ACKNOWLEDGEMENT_TEXT) -> str:
    """TwiML body returned to Twilio once the event is handled"""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<Response><Message>{escape(text)}</Message></Response>'
    )
