from __future__ import annotations

from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

from src.absence_portal.absence_portal.container import wire
from src.absence_portal.absence_portal.core.enums import Role
from src.absence_portal.absence_portal.main import create_app
from src.absence_portal.absence_portal.users.model import User
from tests.fakes import (
    FakeClock,
    InMemoryAbsenteeisms,
    InMemoryOtps,
    InMemoryParents,
    InMemoryStudents,
    InMemoryUsers,
)


def fast_hash(password: str) -> str:
    return generate_password_hash(password, method="pbkdf2:sha256:1")


@pytest.fixture
def settings(tmp_path):
    return SimpleNamespace(
        JWT_SECRET="test-jwt-secret",
        JWT_EXPIRES_HOURS=8,
        OTP_EXPIRY_MINUTES=1440,
        OTP_MAX_ATTEMPTS=3,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        FRONTEND_DOMAIN="https://okul.example.com",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repos(clock):
    users = InMemoryUsers()
    parents = InMemoryParents(users)
    students = InMemoryStudents(parents)
    absenteeisms = InMemoryAbsenteeisms(students)
    otps = InMemoryOtps(clock)
    absenteeisms.otps = otps
    users.add(User(user_id="admin-1", username="admin", password_hash=fast_hash("admin123"), role=Role.ADMIN))
    return SimpleNamespace(users=users, parents=parents, students=students, absenteeisms=absenteeisms, otps=otps)


@pytest.fixture
def container(repos, settings, clock):
    return wire(
        conn=None,
        users_repo=repos.users,
        students_repo=repos.students,
        parents_repo=repos.parents,
        absenteeisms_repo=repos.absenteeisms,
        otps_repo=repos.otps,
        settings=settings,
        password_hasher=fast_hash,
        bcrypt_rounds=4,
        clock=clock,
    )


@pytest.fixture
def app(container):
    return create_app(container, settings_module="config.testing")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(container):
    token = container.token_service.issue(user_id="admin-1", role=Role.ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def parent_headers(container):
    token = container.token_service.issue(user_id="parent-user", role=Role.PARENT)
    return {"Authorization": f"Bearer {token}"}
