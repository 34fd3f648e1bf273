"""
Auth Models — users and assignable responsibility titles.

A user's ``title`` is a free-text responsibility label (e.g. "معاون آموزش").
Task ownership is resolved by string-matching it against
``Resolution.executor``; it is deliberately not a foreign key.

Permissions are stored as a JSON document per user:

    {
        "programs":   {"can_view": true, "can_edit": false},
        "council":    {"can_view": true, "can_edit": false},
        "workgroups": {"can_view": true, "can_edit": false},
        "by_grade":   {"can_view": true, "can_edit": false},
        "workgroup_specific": {"<workgroup-id>": {"can_view": true, "can_edit": false}}
    }
"""

import uuid
from datetime import datetime, timezone

from resolution_desk.models import db


ROLE_ADMIN = "admin"
ROLE_CUSTOM = "custom"
USER_ROLES = {ROLE_ADMIN, ROLE_CUSTOM}

SECTIONS = ("programs", "council", "workgroups", "by_grade")

DEFAULT_USER_TITLE = "کاربر عادی"

# Built-in titles offered next to the admin-managed custom titles.
DEFAULT_TITLES = [
    "مدیر مجموعه",
    "معاون آموزش",
    "مسئول آموزش",
    "معاون پژوهش",
    "مسئول واحد قرآن",
    DEFAULT_USER_TITLE,
]


def default_permissions() -> dict:
    """Permissions granted to a self-registered user: view everything, edit nothing."""
    perms = {s: {"can_view": True, "can_edit": False} for s in SECTIONS}
    perms["workgroup_specific"] = {}
    return perms


def admin_permissions() -> dict:
    perms = {s: {"can_view": True, "can_edit": True} for s in SECTIONS}
    perms["workgroup_specific"] = {}
    return perms


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256))
    full_name = db.Column(db.String(200), default="")
    phone = db.Column(db.String(30), default="")
    title = db.Column(db.String(150), default=DEFAULT_USER_TITLE, index=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_CUSTOM)
    is_active = db.Column(db.Boolean, default=True)
    permissions = db.Column(db.JSON, default=default_permissions)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self, include_permissions=True):
        d = {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name or "",
            "phone": self.phone or "",
            "title": self.title or "",
            "role": self.role,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_permissions:
            d["permissions"] = self.permissions or default_permissions()
        return d

    def __repr__(self):
        return f"<User {self.username} role={self.role}>"


# ═══════════════════════════════════════════════════════════════
# 2. CUSTOM TITLES
# ═══════════════════════════════════════════════════════════════
class CustomTitle(db.Model):
    __tablename__ = "custom_titles"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), unique=True, nullable=False)

    def to_dict(self):
        return {"id": self.id, "title": self.title}
