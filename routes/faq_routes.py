from flask import Blueprint, jsonify, request, current_app

from auth_utils import login_required, get_current_account_id
from routes.api_helpers import get_json_body, result_to_response

faq_bp = Blueprint('faqs', __name__)


@faq_bp.route('/faqs', methods=['GET'])
@login_required
def list_faqs():
    faq_service = current_app.services.get('faq')
    faqs = faq_service.list_faqs(get_current_account_id())
    return jsonify([faq_service.to_dict(faq) for faq in faqs])


@faq_bp.route('/faqs', methods=['POST'])
@login_required
def create_faq():
    faq_service = current_app.services.get('faq')
    result = faq_service.create_faq(get_current_account_id(), get_json_body())
    return result_to_response(result, faq_service.to_dict, success_status=201)


@faq_bp.route('/faqs', methods=['PUT'])
@login_required
def update_faq():
    faq_service = current_app.services.get('faq')
    result = faq_service.update_faq(get_current_account_id(), get_json_body())
    return result_to_response(result, faq_service.to_dict)


@faq_bp.route('/faqs', methods=['DELETE'])
@login_required
def delete_faq():
    faq_service = current_app.services.get('faq')
    result = faq_service.delete_faq(get_current_account_id(), request.args.get('id', type=int))
    return result_to_response(result, lambda _: {'success': True})
