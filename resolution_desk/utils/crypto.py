"""
Password hashing for user accounts.

New passwords are stored as bcrypt hashes. Accounts restored from older
backups may carry werkzeug hashes (``scrypt:`` / ``pbkdf2:``); those still
verify and are replaced by bcrypt the next time the password changes.

Cost factor: ``BCRYPT_ROUNDS`` from app config (12 outside an app context).
"""

import bcrypt
from flask import current_app, has_app_context
from werkzeug.security import check_password_hash

DEFAULT_ROUNDS = 12
BCRYPT_PREFIXES = ("$2b$", "$2a$", "$2y$")
WERKZEUG_PREFIXES = ("scrypt:", "pbkdf2:")


def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"),
                         bcrypt.gensalt(rounds=_rounds())).decode("utf-8")


def is_password_hash(value: str | None) -> bool:
    """True when ``value`` already looks like a stored hash rather than a plain password."""
    return bool(value) and value.startswith(BCRYPT_PREFIXES + WERKZEUG_PREFIXES)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    if password_hash.startswith(BCRYPT_PREFIXES):
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    if password_hash.startswith(WERKZEUG_PREFIXES):
        return check_password_hash(password_hash, plain_password)
    return False
