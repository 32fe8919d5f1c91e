from __future__ import annotations

import logging
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import isoformat
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.exceptions import AuthenticationError, NotFoundError, ValidationError
from .repository import UserRepository
from .security import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: dict

    def to_dict(self) -> dict:
        return {"token": self.token, "user": self.user}


class AuthService:
    """Use cases: login, profile and password change."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    @staticmethod
    def _check_password(password_hash: str, password: str) -> bool:
        try:
            return check_password_hash(password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            return False

    def login(self, username: str, password: str) -> LoginResult:
        username = require_non_empty(username, "Username")
        password = require_non_empty(password, "Password")

        user = self._users.get_by_username(username)
        if not user or not self._check_password(user.password_hash, password):
            logger.warning("Failed login for %r", username)
            raise AuthenticationError("Invalid username or password.")

        token = self._tokens.issue(user_id=user.user_id, role=user.role)
        logger.info("User %r logged in (%s)", user.username, user.role.value)
        return LoginResult(
            token=token,
            user={"id": user.user_id, "username": user.username, "role": user.role.value},
        )

    def get_profile(self, user_id: str) -> dict:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")
        return {
            "id": user.user_id,
            "username": user.username,
            "role": user.role.value,
            "created_at": isoformat(user.created_at),
        }

    def change_password(self, user_id: str, current_password: str, new_password: str) -> dict:
        current_password = require_non_empty(current_password, "Current password")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.")
        if not self._check_password(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect.")

        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("Password changed for %r", user.username)
        return {"message": "Password updated successfully."}
