from flask import Blueprint, jsonify, request, current_app

from auth_utils import login_required, get_current_account_id
from routes.api_helpers import get_json_body, result_to_response, error_response

message_bp = Blueprint('messages', __name__)


@message_bp.route('/messages/send', methods=['POST'])
@login_required
def send_message():
    data = get_json_body()
    message_service = current_app.services.get('message')
    result = message_service.send_message(get_current_account_id(), data.get('clientId'), data.get('message'))
    if result.is_failure:
        return result_to_response(result)
    return jsonify({
        'success': True,
        'messageSid': result.data['messageSid'],
        'message': 'Message sent successfully'
    })


@message_bp.route('/messages/conversations')
@login_required
def conversations():
    message_service = current_app.services.get('message')
    return jsonify(message_service.get_conversations(get_current_account_id()))


@message_bp.route('/messages/unread-count')
@login_required
def unread_count():
    message_service = current_app.services.get('message')
    return jsonify({'count': message_service.get_unread_count(get_current_account_id())})


@message_bp.route('/messages/mark-read', methods=['POST'])
@login_required
def mark_read():
    message_service = current_app.services.get('message')
    result = message_service.mark_as_read(get_current_account_id(), get_json_body().get('messageIds'))
    return result_to_response(result, lambda count: {'updated': count})


@message_bp.route('/messages/<int:message_id>/status', methods=['PUT'])
@login_required
def update_status(message_id):
    message_service = current_app.services.get('message')
    result = message_service.update_status(get_current_account_id(), message_id, get_json_body().get('status'))
    return result_to_response(result, message_service.to_dict)


@message_bp.route('/messages/search')
@login_required
def search_messages():
    query = request.args.get('q', '').strip()
    if not query:
        return error_response("Query parameter 'q' is required", 400, "VALIDATION_ERROR")
    message_service = current_app.services.get('message')
    messages = message_service.search_messages(
        get_current_account_id(), query, client_id=request.args.get('clientId', type=int)
    )
    return jsonify([message_service.to_dict(message) for message in messages])


@message_bp.route('/messages/stats')
@login_required
def message_stats():
    message_service = current_app.services.get('message')
    return jsonify(message_service.get_message_stats(get_current_account_id()))


@message_bp.route('/clients/<int:client_id>/messages')
@login_required
def client_messages(client_id):
    message_service = current_app.services.get('message')
    result = message_service.get_client_messages(get_current_account_id(), client_id)
    return result_to_response(result, lambda messages: [message_service.to_dict(m) for m in messages])
