"""
Shared pytest fixtures for the Resolution Desk test suite.

Provides:
    - app: Flask application (session-scoped)
    - session: Per-test table recreate + store initialization (autouse)
    - client: Flask test client (function-scoped)
    - admin_user: the bootstrap admin row
    - make_user / make_category / make_resolution: factories writing through the gateway
    - auth_header: Bearer header for a user
"""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from resolution_desk import create_app
from resolution_desk.models import db as _db
from resolution_desk.models.auth import ROLE_CUSTOM, User, default_permissions
from resolution_desk.models.category import Category
from resolution_desk.models.resolution import Resolution
from resolution_desk.services.connectivity import get_connectivity, initialize_store
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.jwt_service import issue_token
from resolution_desk.services.user_service import BOOTSTRAP_ADMIN_ID

TODAY = date(2026, 5, 10)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(autouse=True)
def session(app, tmp_path):
    """Per-test: fresh tables, online store, bootstrap admin + synthetic roots."""
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    with app.app_context():
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        get_connectivity().mark_online()
        initialize_store()
        yield
        _db.session.rollback()
        get_connectivity().mark_online()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def admin_user():
    return get_gateway().get_user(BOOTSTRAP_ADMIN_ID)


@pytest.fixture()
def make_user():
    """Factory: a custom-role user with default permissions plus overrides."""
    counter = {"n": 0}

    def _make(title="معاون آموزش", workgroup_specific=None, password_hash=None, **sections):
        counter["n"] += 1
        perms = default_permissions()
        for section, flags in sections.items():
            perms[section] = flags
        perms["workgroup_specific"] = workgroup_specific or {}
        user = User(
            id=f"u-{counter['n']}",
            username=f"user{counter['n']}",
            password_hash=password_hash,
            full_name=f"User {counter['n']}",
            title=title,
            role=ROLE_CUSTOM,
            is_active=True,
            permissions=perms,
        )
        return get_gateway().save_user(user)

    return _make


@pytest.fixture()
def make_category():
    def _make(cid, name, category_type="workgroups", parent_id=None):
        return get_gateway().save_category(
            Category(id=cid, parent_id=parent_id, name=name, type=category_type)
        )

    return _make


@pytest.fixture()
def make_resolution():
    def _make(rid, parent_id, title="مصوبه", **fields):
        values = {
            "images": [],
            "is_approved": True,
            "progress": 0,
            "executor_claim": False,
            "is_completed": False,
            "reminder_type": "none",
        }
        values.update(fields)
        return get_gateway().save_resolution(
            Resolution(id=rid, parent_id=parent_id, title=title, **values)
        )

    return _make


@pytest.fixture()
def auth_header():
    def _header(user):
        return {"Authorization": f"Bearer {issue_token(user)['access_token']}"}

    return _header


@pytest.fixture()
def store_down(monkeypatch):
    """Make every query and commit fail as if the database were unreachable."""
    from sqlalchemy.orm import Query

    def _boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def _activate():
        monkeypatch.setattr(Query, "all", _boom)
        monkeypatch.setattr(Query, "first", _boom)
        monkeypatch.setattr(_db.session, "commit", _boom)

    return _activate
