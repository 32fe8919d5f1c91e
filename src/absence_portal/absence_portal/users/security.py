from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ..core.enums import Role
from ..core.exceptions import AuthenticationError

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class TokenService:
    """Issues and checks the signed session tokens handed out at login."""

    def __init__(self, secret: str, *, expires_hours: int = 8):
        self._secret = secret
        self._expires = timedelta(hours=int(expires_hours))

    def issue(self, *, user_id: str, role: Role, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "role": role.value,
            "iat": now,
            "exp": now + self._expires,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
            return TokenClaims(user_id=str(payload["user_id"]), role=Role(payload["role"]))
        except (jwt.InvalidTokenError, KeyError, ValueError):
            raise AuthenticationError("Invalid or expired token.")

    def try_decode(self, token: Optional[str]) -> Optional[TokenClaims]:
        if not token:
            return None
        try:
            return self.decode(token)
        except AuthenticationError:
            return None
