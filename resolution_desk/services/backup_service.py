"""
Backup Service — full JSON export and legacy import.

Export:
    {
        "timestamp": "...",
        "format": "canonical" | "legacy",
        "resolutions": [...], "categories": [...], "users": [...],
        "custom_titles": [...], "workgroup_documents": [...]
    }
    User passwords are always masked as "***". In the legacy format the
    workgroup documents are written back as sentinel resolution rows.

Import (``flask import-legacy <file>``):
    Accepts exports of this service as well as older backups written with
    camelCase keys, integer roles and sentinel document rows. Rows are
    upserted by id in one commit; rows that fail validation are skipped and
    reported.
"""

import json
import logging
from datetime import datetime, timezone

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.models.auth import DEFAULT_USER_TITLE, ROLE_CUSTOM, CustomTitle, User
from resolution_desk.models.category import CATEGORY_TYPES, Category
from resolution_desk.models.resolution import REMINDER_TYPES, Resolution, WorkgroupDocument
from resolution_desk.services import legacy_codec
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.resolution_lifecycle import validate_progress
from resolution_desk.services.user_service import normalize_username
from resolution_desk.utils.crypto import hash_password, is_password_hash

logger = logging.getLogger(__name__)

PASSWORD_MASK = "***"


# ═══════════════════════════════════════════════════════════════
# Export
# ═══════════════════════════════════════════════════════════════
def build_backup(legacy: bool = False) -> dict:
    gw = get_gateway()
    documents = []
    for cat in gw.get_categories("workgroups"):
        documents.extend(d.to_dict() for d in gw.get_workgroup_documents(cat.id))

    resolutions = [r.to_dict() for r in gw.get_resolutions()]
    if legacy:
        resolutions.extend(legacy_codec.encode_legacy_document(d) for d in documents)

    users = []
    for user in gw.get_users():
        d = user.to_dict()
        d["password"] = PASSWORD_MASK
        users.append(d)

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "format": "legacy" if legacy else "canonical",
        "resolutions": resolutions,
        "categories": [c.to_dict() for c in gw.get_categories()],
        "users": users,
        "custom_titles": [t.to_dict() for t in gw.get_custom_titles()],
        "workgroup_documents": [] if legacy else documents,
    }


# ═══════════════════════════════════════════════════════════════
# Import
# ═══════════════════════════════════════════════════════════════
def _resolution_from(fields: dict) -> Resolution:
    if not fields.get("id") or not (fields.get("title") or "").strip():
        raise ValidationError("resolution row needs id and title")
    progress = fields.get("progress")
    fields["progress"] = validate_progress(int(progress)) if progress not in (None, "") else 0
    before = fields.get("progress_before_claim")
    fields["progress_before_claim"] = validate_progress(int(before)) if before not in (None, "") else None
    if (fields.get("reminder_type") or "none") not in REMINDER_TYPES:
        raise ValidationError(f"unknown reminder type {fields['reminder_type']!r}")
    for flag in ("is_approved", "needs_date", "executor_claim", "is_completed"):
        if flag in fields:
            fields[flag] = bool(fields[flag])
    if fields.get("is_approved") is None:
        fields["is_approved"] = True
    fields["images"] = list(fields.get("images") or [])
    if fields.get("created_at") is None:
        fields.pop("created_at", None)
    return Resolution(**fields)


def _document_from(fields: dict) -> WorkgroupDocument:
    if not fields.get("id") or not fields.get("workgroup_id") or not fields.get("title"):
        raise ValidationError("document row needs id, workgroup_id and title")
    if fields.get("created_at") is None:
        fields.pop("created_at", None)
    fields["file_url"] = fields.get("file_url") or ""
    return WorkgroupDocument(**fields)


def _category_from(fields: dict) -> Category:
    if not fields.get("id") or not fields.get("name") or fields.get("type") not in CATEGORY_TYPES:
        raise ValidationError("category row needs id, name and a known type")
    return Category(**fields)


def _user_from(fields: dict, existing: dict) -> User:
    username = normalize_username(fields.get("username"))
    if not fields.get("id") or not username:
        raise ValidationError("user row needs id and username")
    password = fields.pop("password", None)
    user = User(
        id=fields["id"],
        username=username,
        full_name=fields.get("full_name") or "",
        phone=fields.get("phone") or "",
        title=fields.get("title") or DEFAULT_USER_TITLE,
        role=fields.get("role") or ROLE_CUSTOM,
        is_active=bool(fields.get("is_active", True)),
        permissions=fields.get("permissions") or legacy_codec.decode_permissions(None),
    )
    if password and password != PASSWORD_MASK:
        user.password_hash = password if is_password_hash(password) else hash_password(password)
    elif user.id in existing:
        # Masked export: keep whatever hash is already stored.
        user.password_hash = existing[user.id].password_hash
    return user


def import_backup(payload: dict) -> dict:
    """
    Upsert every row of a backup payload.

    Returns:
        {"categories": n, "resolutions": n, "workgroup_documents": n,
         "users": n, "custom_titles": n, "skipped": [..reasons..]}
    """
    if not isinstance(payload, dict):
        raise ValidationError("backup must be a JSON object")

    gw = get_gateway()
    records = []
    counts = {"categories": 0, "resolutions": 0, "workgroup_documents": 0,
              "users": 0, "custom_titles": 0}
    skipped = []

    def _take(kind, build, raw):
        try:
            records.append(build())
            counts[kind] += 1
        except (ValidationError, KeyError, TypeError, ValueError) as exc:
            row_id = raw.get("id") if isinstance(raw, dict) else None
            skipped.append(f"{kind}:{row_id}: {exc}")

    for raw in payload.get("categories") or []:
        _take("categories", lambda raw=raw: _category_from(legacy_codec.decode_category(raw)), raw)

    for raw in payload.get("resolutions") or []:
        if legacy_codec.is_legacy_document(raw):
            _take("workgroup_documents",
                  lambda raw=raw: _document_from(legacy_codec.decode_legacy_document(raw)), raw)
        else:
            _take("resolutions",
                  lambda raw=raw: _resolution_from(legacy_codec.decode_resolution(raw)), raw)

    for raw in payload.get("workgroup_documents") or []:
        _take("workgroup_documents",
              lambda raw=raw: _document_from(legacy_codec.decode_document(raw)), raw)

    existing_users = {u.id: u for u in gw.get_users()}
    for raw in payload.get("users") or []:
        _take("users", lambda raw=raw: _user_from(legacy_codec.decode_user(raw), existing_users), raw)

    known_titles = {t.title for t in gw.get_custom_titles()}
    for raw in payload.get("custom_titles") or []:
        if isinstance(raw, dict) and raw.get("title") in known_titles:
            continue
        _take("custom_titles", lambda raw=raw: CustomTitle(id=raw.get("id"), title=raw["title"]), raw)

    gw.save_all(records)
    for reason in skipped:
        logger.warning("Import skipped %s", reason)
    logger.info("Import finished: %s (%d skipped)", counts, len(skipped))
    return {**counts, "skipped": skipped}


def import_file(path: str) -> dict:
    with open(path, encoding="utf-8") as fh:
        payload = json.load(fh)
    return import_backup(payload)
