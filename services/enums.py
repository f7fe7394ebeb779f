"""
Service layer enums
These enums mirror the string values stored in the database so services
can compare and assign them without importing models
"""

from enum import Enum
from typing import Optional


class MessageDirection(str, Enum):
    """Direction of a message relative to the account"""
    INBOUND = 'in'
    OUTBOUND = 'out'


class MessageStatus(str, Enum):
    """Delivery status reported for a message"""
    QUEUED = 'queued'
    SENT = 'sent'
    DELIVERED = 'delivered'
    READ = 'read'
    FAILED = 'failed'


class ClientStatus(str, Enum):
    ACTIVE = 'active'
    ARCHIVED = 'archived'


class LabelType(str, Enum):
    """Auto labels are managed by the evaluator, manual ones by the user"""
    AUTO = 'auto'
    MANUAL = 'manual'


class AutoLabelKind(str, Enum):
    """
    The automatic label rules the evaluator knows about.

    Values are the label names as stored for an account. Any other auto
    label name maps to UNKNOWN, which the evaluator leaves alone.
    """
    NEW = 'Nuevo'
    LAST_HOUR = 'Última hora'
    FREQUENT = 'Frecuente'
    DELAYED_REPLY = 'Respuesta atrasada'
    UNKNOWN = '__unknown__'

    @classmethod
    def from_label_name(cls, name: Optional[str]) -> 'AutoLabelKind':
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == name:
                return kind
        return cls.UNKNOWN


class PipelineState(str, Enum):
    """Progress of one inbound webhook event"""
    RECEIVED = 'received'
    VERIFIED = 'verified'
    STORED = 'stored'
    LABELED = 'labeled'
    REPLIED = 'replied'
    ACKNOWLEDGED = 'acknowledged'
