"""
Shared pytest fixtures for the Rich Habits OS test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / admin_user / sales_user / ...: persisted users, one per role
    - login: sign a test client in through /api/auth/local/login
    - seeded: the permission matrix written into the store
    - grant: add a per-user permission override on top of the seed
"""

import pytest

from richhabits import create_app
from richhabits.models import db as _db
from richhabits.models.auth import Resource, User, UserPermission
from richhabits.models.catalog import Manufacturer
from richhabits.services.permission_service import invalidate_all_cache, seed_permissions
from richhabits.utils.crypto import hash_password

TEST_PASSWORD = "Passw0rd!"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Tables are recreated per test and ids are reused; the permission
        # cache is keyed by ids, so it must not outlive the test.
        invalidate_all_cache()
        yield
        invalidate_all_cache()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users ────────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: make_user("sales", email=...) → persisted, active User."""
    counter = {"n": 0}

    def _make(role="sales", email=None, password=TEST_PASSWORD, **kwargs):
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@richhabits.test",
            first_name=kwargs.pop("first_name", role.title()),
            last_name=kwargs.pop("last_name", str(counter["n"])),
            password_hash=hash_password(password),
            role=role,
            **kwargs,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def admin_user(make_user):
    return make_user("admin", email="admin@richhabits.test")


@pytest.fixture()
def sales_user(make_user):
    return make_user("sales", email="sales@richhabits.test")


@pytest.fixture()
def designer_user(make_user):
    return make_user("designer", email="designer@richhabits.test")


@pytest.fixture()
def ops_user(make_user):
    return make_user("ops", email="ops@richhabits.test")


@pytest.fixture()
def manufacturer():
    m = Manufacturer(name="Stitch Co")
    _db.session.add(m)
    _db.session.commit()
    return m


@pytest.fixture()
def manufacturer_user(make_user, manufacturer):
    return make_user("manufacturer", email="maker@richhabits.test",
                     manufacturer_id=manufacturer.id)


# ── Auth helpers ─────────────────────────────────────────────────────────


@pytest.fixture()
def login(app):
    """Return a function that signs a fresh test client in as ``user``."""

    def _login(user, password=TEST_PASSWORD):
        c = app.test_client()
        res = c.post("/api/auth/local/login",
                     json={"email": user.email, "password": password})
        assert res.status_code == 200, res.get_json()
        return c

    return _login


@pytest.fixture()
def seeded():
    """Write roles, resources and role rows from the static table."""
    return seed_permissions()


@pytest.fixture()
def password():
    """Plain-text password every ``make_user`` account is created with."""
    return TEST_PASSWORD


@pytest.fixture()
def grant(seeded):
    """Factory: grant(user, "orders", delete=True) → per-user override row.

    Flags left out are False, so ``viewAll`` stays off and role scoping
    still applies to the user.
    """

    def _grant(user, resource_name, read=False, create=False, edit=False, delete=False):
        resource = Resource.query.filter_by(name=resource_name).one()
        _db.session.add(UserPermission(
            user_id=user.id, resource_id=resource.id,
            can_view=read, can_create=create, can_edit=edit,
            can_delete=delete, page_visible=False,
        ))
        _db.session.commit()
        invalidate_all_cache()

    return _grant
