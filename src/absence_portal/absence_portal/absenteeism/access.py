from __future__ import annotations

import logging
from typing import Optional

from ..core.exceptions import AuthorizationError
from ..otp.service import OtpService
from ..users.security import TokenService

logger = logging.getLogger(__name__)


class LetterAccessGuard:
    """Decides who may open a stored letter.

    Checked in order: an admin session in the Authorization header, an admin
    session passed as ``?jwt=`` (for links opened in a new tab), then a
    verified parent link token passed as ``?token=``.
    """

    def __init__(self, tokens: TokenService, otps: OtpService):
        self._tokens = tokens
        self._otps = otps

    def _is_admin(self, jwt_value: Optional[str]) -> bool:
        claims = self._tokens.try_decode(jwt_value)
        return bool(claims and claims.is_admin)

    def check(
        self,
        absenteeism_id: str,
        *,
        bearer: Optional[str] = None,
        query_jwt: Optional[str] = None,
        link_token: Optional[str] = None,
    ) -> None:
        if self._is_admin(bearer) or self._is_admin(query_jwt):
            return
        if self._otps.authorize_file_access(absenteeism_id, link_token):
            return
        logger.warning("Denied file access to absenteeism %s", absenteeism_id)
        raise AuthorizationError("You are not allowed to access this file.")
