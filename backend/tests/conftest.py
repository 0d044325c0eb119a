import os

# settings are read at import time
os.environ.setdefault("database_url", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from avashift.auth.jwt_tokens import create_access_token, jwt_config_from_settings
from avashift.core.db import Base, get_db
from avashift.main import app
from avashift.models import ShiftAssignment, User
from avashift.services import notify
from avashift.services.projects import add_member, create_project
from avashift.services.shifts import create_assignment, create_shift


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'avashift_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture(autouse=True)
def sent(monkeypatch):
    """Records every notification instead of calling the notification service."""
    calls = []

    def fake_notify(recipient_email, recipient_name, template, fields=None):
        calls.append({"to": recipient_email, "name": recipient_name, "template": template, "fields": fields or {}})
        return True

    monkeypatch.setattr(notify, "notify", fake_notify)
    return calls


class Factory:
    def __init__(self, db):
        self.db = db
        self._n = 0

    def user(self, role: str, first_name: str | None = None, last_name: str = "Test", email: str | None = None) -> User:
        self._n += 1
        u = User(
            email=email or f"{role}{self._n}@example.com",
            first_name=first_name or f"{role.title()}{self._n}",
            last_name=last_name,
            role=role,
        )
        self.db.add(u)
        self.db.commit()
        return u

    def member(self, project, user, membership_type: str | None = None):
        return add_member(
            self.db, project_id=project.id, user_id=user.id, membership_type=membership_type or user.role
        )

    def shift(
        self,
        project,
        leader,
        gateman,
        *,
        start: datetime | None = None,
        hours: int = 8,
        required_students: int = 3,
        shift_type: str = "normal",
        time_type: str = "day",
    ):
        start = start or (datetime.now() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
        stop = start + timedelta(hours=hours)
        return create_shift(
            self.db,
            project_id=project.id,
            leader_id=leader.id,
            gateman_id=gateman.id,
            start_date=start.date(),
            start_time=start.time(),
            end_date=stop.date(),
            end_time=stop.time(),
            required_students=required_students,
            time_type=time_type,
            shift_type=shift_type,
            created_by=project.created_by,
        )

    def assign(self, shift, student, admin) -> ShiftAssignment:
        return create_assignment(self.db, shift_id=shift.id, student_id=student.id, assigned_by=admin.id)


@pytest.fixture()
def make(db):
    return Factory(db)


@pytest.fixture()
def world(db, make):
    """One project with an admin, a leader, a gateman and three students, plus a shift tomorrow."""
    admin = make.user("admin", "Ada", "Admin")
    leader = make.user("shift_leader", "Lena", "Leader")
    gateman = make.user("gateman", "Gus", "Gate")
    alice = make.user("student", "Alice", "Smith")
    bob = make.user("student", "Bob", "Jones")
    carol = make.user("student", "Carol", "White")

    project = create_project(db, name="Harbour Festival", admin_id=admin.id)
    for u in (leader, gateman, alice, bob, carol):
        make.member(project, u)

    shift = make.shift(project, leader, gateman)

    class World:
        pass

    w = World()
    w.admin, w.leader, w.gateman = admin, leader, gateman
    w.alice, w.bob, w.carol = alice, bob, carol
    w.project, w.shift = project, shift
    return w


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    def _login(user: User) -> TestClient:
        client.cookies.set("access_token", create_access_token(jwt_config_from_settings(), user.id, user.role))
        return client

    return _login
