from flask import Blueprint, jsonify, request, current_app

from auth_utils import login_required, get_current_account_id
from routes.api_helpers import get_json_body, result_to_response

client_bp = Blueprint('clients', __name__)


def _serialize_many(client_service, clients):
    return [client_service.to_dict(client) for client in clients]


@client_bp.route('/clients', methods=['GET'])
@login_required
def list_clients():
    client_service = current_app.services.get('client')
    account_id = get_current_account_id()
    query = request.args.get('q', '').strip()
    if query:
        clients = client_service.search_clients(account_id, query)
    elif 'page' in request.args:
        page = client_service.get_clients_page(
            account_id,
            page=request.args.get('page', 1, type=int),
            per_page=request.args.get('per_page', 50, type=int),
            status=request.args.get('status')
        )
        return jsonify({
            'clients': _serialize_many(client_service, page.items),
            'total': page.total,
            'page': page.page,
            'pages': page.pages,
            'hasNext': page.has_next,
        })
    else:
        clients = client_service.list_clients(account_id, status=request.args.get('status'))
    return jsonify(_serialize_many(client_service, clients))


@client_bp.route('/clients', methods=['POST'])
@login_required
def create_client():
    client_service = current_app.services.get('client')
    result = client_service.create_client(get_current_account_id(), get_json_body())
    return result_to_response(result, client_service.to_dict, success_status=201)


@client_bp.route('/clients/stats')
@login_required
def client_stats():
    client_service = current_app.services.get('client')
    return jsonify(client_service.get_client_stats(get_current_account_id()))


@client_bp.route('/clients/<int:client_id>', methods=['GET'])
@login_required
def get_client(client_id):
    client_service = current_app.services.get('client')
    return result_to_response(client_service.get_client(get_current_account_id(), client_id),
                              client_service.to_dict)


@client_bp.route('/clients/<int:client_id>', methods=['PUT'])
@login_required
def update_client(client_id):
    client_service = current_app.services.get('client')
    result = client_service.update_client(get_current_account_id(), client_id, get_json_body())
    return result_to_response(result, client_service.to_dict)


@client_bp.route('/clients/<int:client_id>/archive', methods=['POST'])
@login_required
def archive_client(client_id):
    client_service = current_app.services.get('client')
    return result_to_response(client_service.archive_client(get_current_account_id(), client_id),
                              client_service.to_dict)


@client_bp.route('/clients/<int:client_id>/activate', methods=['POST'])
@login_required
def activate_client(client_id):
    client_service = current_app.services.get('client')
    return result_to_response(client_service.activate_client(get_current_account_id(), client_id),
                              client_service.to_dict)


@client_bp.route('/clients/<int:client_id>', methods=['DELETE'])
@login_required
def delete_client(client_id):
    client_service = current_app.services.get('client')
    result = client_service.delete_client(get_current_account_id(), client_id)
    return result_to_response(result, lambda _: {'success': True})


@client_bp.route('/labels/<int:label_id>/clients')
@login_required
def clients_by_label(label_id):
    client_service = current_app.services.get('client')
    result = client_service.get_clients_by_label(get_current_account_id(), label_id)
    return result_to_response(result, lambda clients: _serialize_many(client_service, clients))
