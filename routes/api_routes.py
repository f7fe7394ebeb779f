from functools import wraps

from flask import Blueprint, Response, jsonify, request, current_app, abort

from auth_utils import login_required
from logging_config import get_logger, security_logger
from routes.api_helpers import error_response, status_for
from services.inbound_message_service import InboundEvent, build_twiml_acknowledgement
from services.twilio_service import is_valid_webhook_signature

logger = get_logger(__name__)

api_bp = Blueprint('api', __name__)


def webhook_url() -> str:
    """Public URL Twilio signs requests against"""
    base_url = current_app.config.get('APP_BASE_URL', 'http://localhost:3000').rstrip('/')
    return base_url + current_app.config.get('TWILIO_WEBHOOK_PATH', '/api/twilio/webhook')


def verify_twilio_signature(f):
    """Decorator to verify the X-Twilio-Signature of a webhook request."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_token = current_app.config.get('TWILIO_AUTH_TOKEN')
        if not auth_token:
            logger.error("Twilio auth token is not configured")
            abort(500)

        signature = request.headers.get('X-Twilio-Signature')
        if not signature:
            security_logger.log_webhook_signature_rejected('twilio', 'missing signature header', request.remote_addr)
            abort(403)

        raw_body = request.get_data(as_text=True)
        if not is_valid_webhook_signature(auth_token, webhook_url(), raw_body, signature):
            security_logger.log_webhook_signature_rejected('twilio', 'signature mismatch', request.remote_addr)
            abort(403)

        return f(*args, **kwargs)
    return decorated_function


@api_bp.route('/twilio/webhook', methods=['POST'])
@verify_twilio_signature
def twilio_webhook():
    event = InboundEvent.from_form(request.form)
    logger.info("Received WhatsApp message", message_sid=event.message_sid, num_media=event.num_media)

    inbound_service = current_app.services.get('inbound_message')
    result = inbound_service.process_inbound(event)
    if result.is_failure:
        return error_response(result.error, status_for(result.error_code), result.error_code)

    return Response(build_twiml_acknowledgement(), status=200, mimetype='text/xml')


@api_bp.route('/twilio/status')
@login_required
def twilio_status():
    phone_number = current_app.config.get('TWILIO_PHONE_NUMBER')
    account_sid = current_app.config.get('TWILIO_ACCOUNT_SID')
    return jsonify({
        'webhookUrl': webhook_url(),
        'twilioConfigured': bool(phone_number and account_sid),
        'phoneNumber': phone_number or 'Not configured',
        'accountSid': f'{account_sid[:8]}...' if account_sid else 'Not configured',
        'environment': current_app.config.get('FLASK_ENV') or 'development',
    })
