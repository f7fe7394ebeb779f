# crm_database.py

from extensions import db
from flask_login import UserMixin
from utils.datetime_utils import utc_now


# --- Account owner ---
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100), nullable=True)
    business_name = db.Column(db.String(150), nullable=True)
    business_logo_url = db.Column(db.String(500), nullable=True)
    onboarding_complete = db.Column(db.Boolean, default=False, nullable=False)
    # WhatsApp sender number, E.164 without the channel prefix
    twilio_phone_number = db.Column(db.String(20), unique=True, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    clients = db.relationship('Client', back_populates='user', lazy=True)


class Client(db.Model):
    __tablename__ = 'client'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'phone', name='uq_client_user_phone'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active')  # 'active' or 'archived'
    last_message_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = db.relationship('User', back_populates='clients')
    messages = db.relationship('Message', back_populates='client', lazy=True,
                               cascade='all, delete-orphan', order_by='Message.timestamp')
    label_links = db.relationship('ClientLabel', back_populates='client', lazy=True,
                                  cascade='all, delete-orphan')

    @property
    def labels(self):
        return [link.label for link in self.label_links]


class Message(db.Model):
    __tablename__ = 'message'
    __table_args__ = (
        db.Index('ix_message_client_timestamp', 'client_id', 'timestamp'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey('client.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    direction = db.Column(db.String(3), nullable=False)  # 'in' or 'out'
    timestamp = db.Column(db.DateTime, default=utc_now, nullable=False)
    twilio_message_id = db.Column(db.String(64), nullable=True, index=True)
    status = db.Column(db.String(20), nullable=False, default='delivered')
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    client = db.relationship('Client', back_populates='messages')


class FAQ(db.Model):
    __tablename__ = 'faq'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=False)
    keywords = db.Column(db.JSON, nullable=False, default=list)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class Label(db.Model):
    __tablename__ = 'label'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(10), nullable=False, default='manual')  # 'auto' or 'manual'
    color = db.Column(db.String(7), nullable=False, default='#6B7280')
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    client_links = db.relationship('ClientLabel', back_populates='label', lazy=True,
                                   cascade='all, delete-orphan')


# --- Association: a row means the label currently applies to the client ---
class ClientLabel(db.Model):
    __tablename__ = 'client_label'

    client_id = db.Column(db.Integer, db.ForeignKey('client.id'), primary_key=True)
    label_id = db.Column(db.Integer, db.ForeignKey('label.id'), primary_key=True)
    assigned_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    client = db.relationship('Client', back_populates='label_links')
    label = db.relationship('Label', back_populates='client_links')


class AutoReplySettings(db.Model):
    __tablename__ = 'auto_reply_settings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)
    auto_reply_enabled = db.Column(db.Boolean, nullable=False, default=True)
    welcome_message = db.Column(db.Text, nullable=True)
    fallback_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)
