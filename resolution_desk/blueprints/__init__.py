"""
Resolution Desk
Blueprint registry.
"""

from flask import request


def json_body() -> dict:
    """Request JSON as a dict; anything else (missing, malformed, a list) becomes {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def flag_arg(name: str) -> bool:
    """Boolean query parameter: 1/true/yes (case-insensitive) → True."""
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")
