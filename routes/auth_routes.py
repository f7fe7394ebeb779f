"""
Session login for account owners
"""

from flask import Blueprint, jsonify, request, current_app

from auth_utils import login_required, get_current_account_id
from logging_config import security_logger
from routes.api_helpers import get_json_body, result_to_response, error_response

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    auth_service = current_app.services.get('auth')

    email = (data.get('email') or '').strip().lower()
    result = auth_service.authenticate(email, data.get('password'))
    security_logger.log_authentication_attempt(email, result.is_success, request.remote_addr)

    if result.is_failure:
        return result_to_response(result)

    auth_service.login(result.data, remember=bool(data.get('remember', False)))
    return jsonify(auth_service.to_dict(result.data))


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    current_app.services.get('auth').logout()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    auth_service = current_app.services.get('auth')
    account = auth_service.get_account(get_current_account_id())
    if account is None:
        return error_response("Account not found", 404, "ACCOUNT_NOT_FOUND")
    return jsonify(auth_service.to_dict(account))
