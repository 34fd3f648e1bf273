"""
Legacy codec — reconciles the two field spellings at the store boundary.

Older clients and backups write every field twice over time: camelCase
(``parentId``, ``isApproved``, ``executorClaim``) and snake_case
(``parent_id``, ``is_approved``, ``executor_claim``). Roles were integers
(1 = admin, 2 = custom) and workgroup documents were resolution rows
carrying the ``PDF_MARKER`` lesson.

Everything past this module uses the canonical snake_case model only.

Usage:
    from resolution_desk.services.legacy_codec import decode_resolution

    fields = decode_resolution(request.get_json())   # canonical keys only
"""

import re
from datetime import datetime, timezone

from resolution_desk.models.auth import ROLE_ADMIN, ROLE_CUSTOM, SECTIONS, default_permissions
from resolution_desk.models.resolution import (
    DOCUMENT_ARCHIVE_LABEL,
    DOCUMENT_EXECUTOR_LABEL,
    PDF_MARKER,
)

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    """``executorClaimDate`` → ``executor_claim_date``; snake_case keys pass through."""
    return _CAMEL.sub("_", key).lower()


def _canonical(raw: dict, fields: tuple) -> dict:
    """Keep known fields; a snake_case spelling wins over its camelCase twin."""
    out = {}
    for key, value in (raw or {}).items():
        snake = to_snake(key)
        if snake not in fields:
            continue
        if snake in out and key != snake:
            continue
        out[snake] = value
    return out


RESOLUTION_FIELDS = (
    "id", "parent_id", "title", "description", "workgroup", "grade", "lesson",
    "executor", "images", "is_approved", "needs_date", "execution_date",
    "execution_term", "discussion_time", "progress", "progress_before_claim",
    "executor_claim", "executor_claim_date", "is_completed", "last_completed_at",
    "reminder_type", "reminder_start_date", "reminder_end_date", "created_at",
)

USER_FIELDS = (
    "id", "username", "password", "full_name", "phone", "title", "role",
    "is_active", "permissions",
)

CATEGORY_FIELDS = ("id", "parent_id", "name", "type")

DOCUMENT_FIELDS = ("id", "workgroup_id", "title", "description", "file_url", "created_at")

TIMESTAMP_FIELDS = ("executor_claim_date", "last_completed_at", "created_at")


def parse_timestamp(value):
    """ISO-8601 string (``Z`` suffix allowed) → aware datetime; other values pass through."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode_timestamps(data: dict) -> dict:
    for field in TIMESTAMP_FIELDS:
        if field in data:
            data[field] = parse_timestamp(data[field])
    return data


# ── Resolutions ──────────────────────────────────────────────────────────────

def decode_resolution(raw: dict) -> dict:
    data = _canonical(raw, RESOLUTION_FIELDS)
    if "images" in data and data["images"] is None:
        data["images"] = []
    return _decode_timestamps(data)


def is_legacy_document(raw: dict) -> bool:
    return (raw or {}).get("lesson") == PDF_MARKER


def decode_legacy_document(raw: dict) -> dict:
    """A sentinel resolution row → canonical WorkgroupDocument fields."""
    data = decode_resolution(raw)
    images = data.get("images") or []
    return {
        "id": data.get("id"),
        "workgroup_id": data.get("parent_id"),
        "title": data.get("title") or "",
        "description": data.get("description") or "",
        "file_url": images[0] if images else "",
        "created_at": data.get("created_at"),
    }


def encode_legacy_document(doc: dict) -> dict:
    """WorkgroupDocument dict → the sentinel resolution row older clients expect."""
    return {
        "id": doc["id"],
        "parent_id": doc["workgroup_id"],
        "title": doc["title"],
        "description": doc.get("description", ""),
        "images": [doc["file_url"]],
        "lesson": PDF_MARKER,
        "workgroup": DOCUMENT_ARCHIVE_LABEL,
        "executor": DOCUMENT_EXECUTOR_LABEL,
        "created_at": doc.get("created_at"),
        "is_approved": True,
    }


def decode_document(raw: dict) -> dict:
    return _decode_timestamps(_canonical(raw, DOCUMENT_FIELDS))


# ── Users ────────────────────────────────────────────────────────────────────

def decode_role(value) -> str:
    if value in (1, "1", ROLE_ADMIN, "ADMIN"):
        return ROLE_ADMIN
    return ROLE_CUSTOM


def _decode_pair(entry) -> dict:
    entry = _canonical(entry if isinstance(entry, dict) else {}, ("can_view", "can_edit"))
    return {"can_view": entry.get("can_view") is True, "can_edit": entry.get("can_edit") is True}


def decode_permissions(raw) -> dict:
    """Normalize a permissions document; missing sections fall back to the defaults."""
    if not isinstance(raw, dict):
        return default_permissions()
    flat = {to_snake(k): v for k, v in raw.items()}
    defaults = default_permissions()
    perms = {}
    for section in SECTIONS:
        perms[section] = _decode_pair(flat[section]) if section in flat else defaults[section]
    specific = flat.get("workgroup_specific") or {}
    perms["workgroup_specific"] = {
        str(wg_id): _decode_pair(entry) for wg_id, entry in specific.items()
    }
    return perms


def decode_user(raw: dict) -> dict:
    data = _canonical(raw, USER_FIELDS)
    if "role" in data:
        data["role"] = decode_role(data["role"])
    if "permissions" in data:
        data["permissions"] = decode_permissions(data["permissions"])
    return data


# ── Categories ───────────────────────────────────────────────────────────────

def decode_category(raw: dict) -> dict:
    data = _canonical(raw, CATEGORY_FIELDS)
    if data.get("parent_id") == "":
        data["parent_id"] = None
    return data
