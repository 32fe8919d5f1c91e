from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .absenteeism.access import LetterAccessGuard
from .absenteeism.mysql_absenteeism_repository import MySQLAbsenteeismRepository
from .absenteeism.repository import AbsenteeismRepository
from .absenteeism.service import AbsenteeismService
from .absenteeism.storage import LetterStorage
from .database.connection import DBConfig, DatabaseConnection
from .otp.mysql_otp_repository import MySQLOtpRepository
from .otp.repository import OtpRepository
from .otp.service import OtpService
from .students.mysql_parent_repository import MySQLParentRepository
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import ParentRepository, StudentRepository
from .students.service import StudentImportService, StudentService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.security import TokenService
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    students_repo: StudentRepository
    parents_repo: ParentRepository
    absenteeisms_repo: AbsenteeismRepository
    otps_repo: OtpRepository

    token_service: TokenService
    auth_service: AuthService
    student_service: StudentService
    student_import_service: StudentImportService
    otp_service: OtpService
    absenteeism_service: AbsenteeismService
    letter_storage: LetterStorage
    access_guard: LetterAccessGuard


def wire(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    students_repo: StudentRepository,
    parents_repo: ParentRepository,
    absenteeisms_repo: AbsenteeismRepository,
    otps_repo: OtpRepository,
    settings: Any,
    **overrides: Any,
) -> Container:
    """Build services on top of the given repositories.

    ``overrides`` are passed through to the service constructors (e.g. a fast
    ``password_hasher`` or a fixed ``clock`` in tests).
    """
    token_service = TokenService(
        getattr(settings, "JWT_SECRET"),
        expires_hours=int(getattr(settings, "JWT_EXPIRES_HOURS", 8)),
    )
    hasher_kwargs = {"password_hasher": overrides["password_hasher"]} if "password_hasher" in overrides else {}
    otp_kwargs = {k: overrides[k] for k in ("clock", "bcrypt_rounds") if k in overrides}

    letter_storage = LetterStorage(getattr(settings, "UPLOAD_DIR", "./uploads"))
    otp_service = OtpService(
        otps_repo,
        absenteeisms_repo,
        expiry_minutes=int(getattr(settings, "OTP_EXPIRY_MINUTES", 1440)),
        max_attempts=int(getattr(settings, "OTP_MAX_ATTEMPTS", 3)),
        **otp_kwargs,
    )
    absenteeism_service = AbsenteeismService(
        absenteeisms_repo,
        students_repo,
        otp_service,
        letter_storage,
        frontend_domain=str(getattr(settings, "FRONTEND_DOMAIN", "")),
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        students_repo=students_repo,
        parents_repo=parents_repo,
        absenteeisms_repo=absenteeisms_repo,
        otps_repo=otps_repo,
        token_service=token_service,
        auth_service=AuthService(users_repo, token_service),
        student_service=StudentService(students_repo, parents_repo, **hasher_kwargs),
        student_import_service=StudentImportService(students_repo, parents_repo, **hasher_kwargs),
        otp_service=otp_service,
        absenteeism_service=absenteeism_service,
        letter_storage=letter_storage,
        access_guard=LetterAccessGuard(token_service, otp_service),
    )


def build_container(*, db_config: dict, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        students_repo=MySQLStudentRepository(conn),
        parents_repo=MySQLParentRepository(conn),
        absenteeisms_repo=MySQLAbsenteeismRepository(conn),
        otps_repo=MySQLOtpRepository(conn),
        settings=settings,
    )
