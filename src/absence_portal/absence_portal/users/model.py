from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an account that can log in (admin or parent).

    Plain data object; holds no DB access code.
    """

    user_id: str
    username: str
    password_hash: str
    role: Role
    created_at: Optional[datetime] = None
