# auth_utils.py
"""
Authentication utilities that respect LOGIN_DISABLED in tests
"""

from functools import wraps

from flask import current_app, g
from flask_login import current_user as flask_current_user


def get_current_account_id() -> int:
    """
    Id of the account the request acts for.

    With LOGIN_DISABLED (tests) this is LOGIN_DISABLED_ACCOUNT_ID, otherwise
    the logged-in user.
    """
    if current_app.config.get('LOGIN_DISABLED', False):
        return current_app.config.get('LOGIN_DISABLED_ACCOUNT_ID', 1)
    return flask_current_user.id


def login_required(f):
    """
    Custom login_required decorator that respects LOGIN_DISABLED config.

    The resolved account id is kept on ``g`` so request log lines carry it.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_app.config.get('LOGIN_DISABLED', False) and not flask_current_user.is_authenticated:
            return current_app.login_manager.unauthorized()

        g.account_id = get_current_account_id()
        return f(*args, **kwargs)
    return decorated_function
