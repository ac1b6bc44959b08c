"""
Password hashing: bcrypt for everything written here.

Accounts carried over in older exports may still hold werkzeug
``scrypt:`` / ``pbkdf2:`` hashes. Those verify through werkzeug, and
``needs_rehash`` tells the login view to replace them with bcrypt once
the plain password is known.
"""

import bcrypt
from flask import current_app, has_app_context
from werkzeug.security import check_password_hash

DEFAULT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2b$", "$2a$", "$2y$")


def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_LOG_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    if password_hash.startswith(_BCRYPT_PREFIXES):
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    return check_password_hash(password_hash, plain_password)


def needs_rehash(password_hash: str | None) -> bool:
    """True for legacy werkzeug hashes and bcrypt hashes below the configured cost."""
    if not password_hash:
        return False
    if not password_hash.startswith(_BCRYPT_PREFIXES):
        return True
    try:
        cost = int(password_hash.split("$")[2])
    except (IndexError, ValueError):
        return True
    return cost < _rounds()
