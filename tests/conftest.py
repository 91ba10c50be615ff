"""
Pytest configuration and fixtures.

API tests run against an in-memory SQLite database swapped in through
``app.dependency_overrides``; the acting user is chosen per request with
``login_as`` instead of real bearer tokens.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, joinedload
from sqlalchemy.pool import StaticPool

from taskdesk.database import Base, get_db
from taskdesk.main import app
from taskdesk.models import Department, Role, User
from taskdesk.utils.auth import get_current_user
from taskdesk.utils.permissions import DEFAULT_ROLE_PERMISSIONS, ROLE_DISPLAY_NAMES


@pytest.fixture
def db_session():
    """Fresh in-memory database with the default roles seeded"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()

    for name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        session.add(Role(name=name, display_name=ROLE_DISPLAY_NAMES[name], permissions=dict(permissions)))
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def org(db_session):
    """A small organisation: two departments and one user per interesting role"""
    roles = {r.name: r for r in db_session.query(Role).all()}
    sales = Department(name="Sales")
    ops = Department(name="Operations")
    db_session.add_all([sales, ops])
    db_session.flush()

    def add(key, name, role, department):
        user = User(
            name=name,
            email=f"{key}@example.com",
            role_id=roles[role].id,
            department_id=department.id if department is not None else None,
            is_active=True,
        )
        db_session.add(user)
        return user

    people = {
        "boss": add("boss", "Main Director", "maindirector", None),
        "director": add("director", "Director", "director", None),
        "gm": add("gm", "General Manager", "generalmanager", None),
        "head": add("head", "Sales Head", "departmenthead", sales),
        "ops_head": add("ops_head", "Ops Head", "departmenthead", ops),
        "manager": add("manager", "Sales Manager", "manager", sales),
        "alice": add("alice", "Alice", "staff", sales),
        "bob": add("bob", "Bob", "staff", sales),
        "carol": add("carol", "Carol", "staff", sales),
        "dave": add("dave", "Dave", "staff", ops),
    }
    db_session.commit()
    return {key: user.id for key, user in people.items()}


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(db_session):
    """Select the acting user for subsequent requests"""

    def _login(user_id):
        def override_current_user():
            return db_session.query(User).options(
                joinedload(User.role),
                joinedload(User.department),
            ).filter(User.id == user_id).first()

        app.dependency_overrides[get_current_user] = override_current_user

    return _login
