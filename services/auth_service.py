"""
AuthService - account creation and password login
"""

import logging
from typing import Any, Dict, Optional

from flask_bcrypt import generate_password_hash, check_password_hash
from flask_login import login_user as flask_login_user, logout_user as flask_logout_user
from sqlalchemy.exc import SQLAlchemyError

from crm_database import User
from repositories.user_repository import UserRepository
from services.common.result import Result
from services.twilio_service import validate_phone_number
from utils.datetime_utils import format_utc_iso

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Service for authentication using Result pattern"""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    def validate_password(self, password: Optional[str]) -> Result[str]:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            return Result.failure(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                code="PASSWORD_TOO_SHORT"
            )
        return Result.success("Password is valid")

    def create_account(self, email: str, password: str, name: Optional[str] = None,
                       business_name: Optional[str] = None,
                       twilio_phone_number: Optional[str] = None) -> Result[User]:
        """
        Create an account owner.

        Args:
            email: Login email, stored lowercased
            password: Plain password, stored as a bcrypt hash
            twilio_phone_number: WhatsApp sender number in E.164
        """
        email = (email or '').strip().lower()
        if not email:
            return Result.failure("Email is required", code="VALIDATION_ERROR")

        password_result = self.validate_password(password)
        if password_result.is_failure:
            return Result.failure(password_result.error, code=password_result.error_code)

        if twilio_phone_number and not validate_phone_number(twilio_phone_number):
            return Result.failure("Twilio phone number must be in E.164 format", code="VALIDATION_ERROR")

        if self.user_repository.find_by_email(email):
            return Result.failure("User with this email already exists", code="USER_EXISTS")

        try:
            password_hash = generate_password_hash(password)
            if hasattr(password_hash, 'decode'):
                password_hash = password_hash.decode('utf-8')
            user = self.user_repository.create(
                email=email,
                password_hash=password_hash,
                name=name,
                business_name=business_name,
                twilio_phone_number=twilio_phone_number or None,
                is_active=True
            )
            self.user_repository.commit()
        except SQLAlchemyError as e:
            self.user_repository.rollback()
            logger.error(f"Failed to create account: {e}")
            return Result.failure(f"Failed to create account: {e}", code="DATABASE_ERROR")

        logger.info(f"Created account: {email}")
        return Result.success(user)

    def authenticate(self, email: str, password: str) -> Result[User]:
        if not email or not password:
            return Result.failure("Email and password are required", code="VALIDATION_ERROR")

        user = self.user_repository.find_by_email(email)
        if user is None or not check_password_hash(user.password_hash, password):
            return Result.failure("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.is_active:
            return Result.failure("Account is deactivated", code="ACCOUNT_INACTIVE")

        return Result.success(user)

    def login(self, user: User, remember: bool = False) -> None:
        flask_login_user(user, remember=remember)

    def logout(self) -> None:
        flask_logout_user()

    def get_account(self, account_id: int) -> Optional[User]:
        return self.user_repository.get_by_id(account_id)

    @staticmethod
    def to_dict(user: User) -> Dict[str, Any]:
        return {
            'id': user.id,
            'email': user.email,
            'name': user.name,
            'business_name': user.business_name,
            'twilio_phone_number': user.twilio_phone_number,
            'onboarding_complete': user.onboarding_complete,
            'created_at': format_utc_iso(user.created_at),
        }
