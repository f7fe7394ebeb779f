from flask import Blueprint, jsonify, current_app

from auth_utils import login_required, get_current_account_id
from routes.api_helpers import get_json_body, result_to_response

settings_bp = Blueprint('settings', __name__)


@settings_bp.route('/settings', methods=['GET'])
@login_required
def get_settings():
    settings_service = current_app.services.get('auto_reply_settings')
    return jsonify(settings_service.get_settings(get_current_account_id()))


@settings_bp.route('/settings', methods=['POST'])
@login_required
def save_settings():
    settings_service = current_app.services.get('auto_reply_settings')
    result = settings_service.save_settings(get_current_account_id(), get_json_body())
    return result_to_response(result, settings_service.to_dict)
