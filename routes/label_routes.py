from flask import Blueprint, jsonify, current_app

from auth_utils import login_required, get_current_account_id
from routes.api_helpers import get_json_body, result_to_response

label_bp = Blueprint('labels', __name__)


@label_bp.route('/labels', methods=['GET'])
@login_required
def list_labels():
    label_service = current_app.services.get('label')
    labels = label_service.list_labels(get_current_account_id())
    return jsonify([label_service.to_dict(label) for label in labels])


@label_bp.route('/labels', methods=['POST'])
@login_required
def create_label():
    label_service = current_app.services.get('label')
    result = label_service.create_label(get_current_account_id(), get_json_body())
    return result_to_response(result, label_service.to_dict, success_status=201)


@label_bp.route('/labels/defaults', methods=['POST'])
@login_required
def create_default_labels():
    label_service = current_app.services.get('label')
    auto_label_service = current_app.services.get('auto_label')
    result = auto_label_service.create_default_auto_labels(get_current_account_id())
    return result_to_response(result, lambda labels: {
        'created': [label_service.to_dict(label) for label in labels]
    })


@label_bp.route('/labels/refresh', methods=['POST'])
@login_required
def refresh_labels():
    auto_label_service = current_app.services.get('auto_label')
    return result_to_response(auto_label_service.update_all_clients_labels(get_current_account_id()))


@label_bp.route('/clients/<int:client_id>/labels/refresh', methods=['POST'])
@login_required
def refresh_client_labels(client_id):
    client_service = current_app.services.get('client')
    ownership = client_service.get_client(get_current_account_id(), client_id)
    if ownership.is_failure:
        return result_to_response(ownership)

    auto_label_service = current_app.services.get('auto_label')
    return result_to_response(auto_label_service.update_client_labels(client_id))
