"""
Shared helpers for the JSON API blueprints
"""

from typing import Any, Callable, Dict, Optional

from flask import jsonify, request

from services.common.result import Result

# Result error codes and the HTTP status they map to
ERROR_STATUS: Dict[str, int] = {
    'VALIDATION_ERROR': 400,
    'PHONE_NOT_CONFIGURED': 400,
    'PASSWORD_TOO_SHORT': 400,
    'INVALID_CREDENTIALS': 401,
    'ACCOUNT_INACTIVE': 403,
    'ACCOUNT_NOT_FOUND': 404,
    'CLIENT_NOT_FOUND': 404,
    'FAQ_NOT_FOUND': 404,
    'LABEL_NOT_FOUND': 404,
    'MESSAGE_NOT_FOUND': 404,
    'USER_EXISTS': 409,
    'DUPLICATE_CLIENT': 409,
    'DATABASE_ERROR': 500,
    'STORAGE_ERROR': 500,
    'SEND_FAILED': 500,
}


def status_for(error_code: Optional[str]) -> int:
    return ERROR_STATUS.get(error_code or '', 500)


def error_response(message: str, status: int, code: Optional[str] = None):
    body = {'error': message}
    if code:
        body['code'] = code
    return jsonify(body), status


def result_to_response(result: Result, serializer: Optional[Callable[[Any], Any]] = None,
                       success_status: int = 200):
    """
    Turn a service Result into a Flask response.

    Failures become {'error', 'code'} with the mapped status; successes are
    serialized with ``serializer`` when given.
    """
    if result.is_failure:
        return error_response(result.error, status_for(result.error_code), result.error_code)
    data = serializer(result.data) if serializer else result.data
    return jsonify(data), success_status


def get_json_body() -> Dict[str, Any]:
    """Request JSON as a dict; anything else reads as empty"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
