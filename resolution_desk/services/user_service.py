"""
User Service — bootstrap admin, login, self-registration, admin edits.

Usernames are compared case-insensitively and stored lower-case.
Passwords are stored as bcrypt hashes (utils.crypto).
"""

import logging
import uuid

from flask import current_app

from resolution_desk.core.exceptions import DuplicateError, ValidationError
from resolution_desk.models.auth import (
    DEFAULT_USER_TITLE,
    ROLE_ADMIN,
    ROLE_CUSTOM,
    USER_ROLES,
    User,
    admin_permissions,
    default_permissions,
)
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.legacy_codec import decode_permissions
from resolution_desk.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_ID = "admin-1"
MIN_PASSWORD_LENGTH = 4


class AuthenticationError(Exception):
    """Wrong credentials or a deactivated account."""

    def __init__(self, message, status_code=401):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


# ═══════════════════════════════════════════════════════════════
# Bootstrap admin
# ═══════════════════════════════════════════════════════════════
def _admin_config() -> dict:
    cfg = current_app.config
    return {
        "username": normalize_username(cfg["ADMIN_USERNAME"]),
        "password": cfg["ADMIN_PASSWORD"],
        "full_name": cfg.get("ADMIN_FULL_NAME", ""),
        "title": cfg.get("ADMIN_TITLE", ""),
    }


def bootstrap_admin_stub() -> User:
    """Transient (never persisted) copy of the bootstrap admin, used while the store is offline."""
    cfg = _admin_config()
    return User(
        id=BOOTSTRAP_ADMIN_ID,
        username=cfg["username"],
        full_name=cfg["full_name"],
        title=cfg["title"],
        role=ROLE_ADMIN,
        is_active=True,
        permissions=admin_permissions(),
    )


def ensure_bootstrap_admin() -> User:
    """Upsert the configured admin account (by username). An existing password is kept."""
    gw = get_gateway()
    cfg = _admin_config()
    user = gw.find_user_by_username(cfg["username"])
    if user is None:
        user = User(
            id=BOOTSTRAP_ADMIN_ID,
            username=cfg["username"],
            password_hash=hash_password(cfg["password"]),
        )
        logger.info("Creating bootstrap admin '%s'", cfg["username"])
    user.full_name = user.full_name or cfg["full_name"]
    user.title = user.title or cfg["title"]
    user.role = ROLE_ADMIN
    user.is_active = True
    user.permissions = admin_permissions()
    return gw.save_user(user)


# ═══════════════════════════════════════════════════════════════
# Login / registration
# ═══════════════════════════════════════════════════════════════
def authenticate(username: str, password: str) -> User:
    """Return the user for valid credentials; raise AuthenticationError otherwise."""
    username = normalize_username(username)
    password = (password or "").strip()
    if not username or not password:
        raise ValidationError("username and password are required",
                              details={"username": "required", "password": "required"})

    gw = get_gateway()
    if not gw.is_online:
        # Degraded mode: only the configured admin may sign in.
        cfg = _admin_config()
        if username == cfg["username"] and password == cfg["password"]:
            logger.warning("Offline login for bootstrap admin '%s'", username)
            return bootstrap_admin_stub()
        raise AuthenticationError("The database is unreachable", 503)

    user = gw.find_user_by_username(username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for '%s'", username)
        raise AuthenticationError("Invalid username or password")
    if not user.is_active:
        logger.info("Login refused for inactive user '%s'", username)
        raise AuthenticationError("Account is inactive", 403)
    return user


def register(username: str, password: str, full_name: str = "", phone: str = "") -> User:
    """Self-registration: custom role, default permissions, default title."""
    username = normalize_username(username)
    password = (password or "").strip()
    errors = {}
    if not username:
        errors["username"] = "required"
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"at least {MIN_PASSWORD_LENGTH} characters"
    if errors:
        raise ValidationError("registration data is incomplete", details=errors)

    gw = get_gateway()
    if gw.find_user_by_username(username) is not None:
        raise DuplicateError("User", "username", username)

    user = User(
        id=uuid.uuid4().hex[:9],
        username=username,
        password_hash=hash_password(password),
        full_name=(full_name or "").strip(),
        phone=(phone or "").strip(),
        title=DEFAULT_USER_TITLE,
        role=ROLE_CUSTOM,
        is_active=True,
        permissions=default_permissions(),
    )
    user = gw.save_user(user)
    logger.info("Registered user '%s' (%s)", username, user.id)
    return user


# ═══════════════════════════════════════════════════════════════
# Admin edits
# ═══════════════════════════════════════════════════════════════
def update_user_access(user_id: str, data: dict) -> User:
    """Replace role, title and permissions of a user in one write.

    Accepts either spelling of the permission keys; missing pieces keep
    their current value.
    """
    gw = get_gateway()
    user = gw.get_user(user_id)

    role = data.get("role", user.role)
    if role not in USER_ROLES:
        raise ValidationError(f"unknown role: {role}", details={"role": "invalid"})
    title = (data.get("title", user.title) or "").strip() or DEFAULT_USER_TITLE
    raw_perms = data.get("permissions")
    perms = decode_permissions(raw_perms) if raw_perms is not None else (
        user.permissions or default_permissions())

    user = gw.update_user_permissions(user_id, perms, title, role)
    logger.info("Updated access of user %s: role=%s title=%s", user_id, role, title)
    return user


def set_active(user_id: str, is_active: bool) -> User:
    gw = get_gateway()
    user = gw.get_user(user_id)
    if user.id == BOOTSTRAP_ADMIN_ID and not is_active:
        raise ValidationError("the bootstrap admin cannot be deactivated",
                              details={"is_active": "locked"})
    user.is_active = bool(is_active)
    user = gw.save_user(user)
    logger.info("User %s is_active=%s", user_id, user.is_active)
    return user


def change_password(user_id: str, new_password: str) -> User:
    new_password = (new_password or "").strip()
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("password too short",
                              details={"password": f"at least {MIN_PASSWORD_LENGTH} characters"})
    gw = get_gateway()
    user = gw.get_user(user_id)
    user.password_hash = hash_password(new_password)
    return gw.save_user(user)


def list_users() -> list[User]:
    return get_gateway().get_users()
