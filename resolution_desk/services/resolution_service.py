"""
Resolution Service — content CRUD, listings, search and the by-grade views.

Lifecycle columns (progress, claim, completion) are never written here; they
change only through resolution_lifecycle.transition_resolution. Content
updates are full-record rewrites: the stored row is loaded, the submitted
content fields replace their counterparts, and the whole row is upserted.

Every listing is returned as *projected* dicts (see
resolution_lifecycle.project_resolution) with the caller's ``can_edit`` flag
and ``available_actions``.
"""

import logging
import uuid
from datetime import date

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.models.category import ROOT_IDS, SECTION_ROOTS
from resolution_desk.models.resolution import (
    COUNCIL_WORKGROUP_LABEL,
    GRADES,
    MAX_ATTACHMENTS,
    PDF_MARKER,
    REMINDER_TYPES,
    Resolution,
)
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.legacy_codec import decode_resolution
from resolution_desk.services.permission import BY_GRADE, PermissionChecker, normalize_section
from resolution_desk.services.reminders import REMINDER_NONE, parse_month_day
from resolution_desk.services.resolution_lifecycle import (
    STATE_COMPLETED,
    get_available_transitions,
    project_resolution,
    projected_state,
)

logger = logging.getLogger(__name__)

CONTENT_FIELDS = (
    "title", "description", "workgroup", "grade", "lesson", "executor", "images",
    "is_approved", "needs_date", "execution_date", "execution_term",
    "discussion_time", "reminder_type", "reminder_start_date", "reminder_end_date",
)

# Context labels used when a resolution sits directly under a section root.
_SECTION_LABELS = {
    "council": COUNCIL_WORKGROUP_LABEL,
    "programs": "برنامه‌های مدرسه",
    "workgroups": "کارگروه مربوطه",
}
_FALLBACK_LABEL = "ثبت شده در سامانه"


def serialize(res: Resolution, checker: PermissionChecker, today: date | None = None) -> dict:
    data = project_resolution(res, today)
    data["can_edit"] = checker.can_edit(res)
    data["available_actions"] = get_available_transitions(res, checker, today)
    return data


def _checker(user) -> PermissionChecker:
    return PermissionChecker(user, get_gateway().get_categories())


# ═══════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════
def _format_month_day(value) -> str | None:
    parsed = parse_month_day(value)
    return f"{parsed[0]:02d}/{parsed[1]:02d}" if parsed else None


def _normalize_content(fields: dict) -> dict:
    """Validate submitted content fields and bring them to their stored shape."""
    errors = {}
    out = {k: fields[k] for k in CONTENT_FIELDS if k in fields}

    if "title" in out:
        out["title"] = (out["title"] or "").strip()
        if not out["title"]:
            errors["title"] = "required"

    for key in ("description", "workgroup", "executor"):
        if key in out:
            out[key] = (out[key] or "").strip()
    for key in ("grade", "lesson", "execution_date", "execution_term", "discussion_time"):
        if key in out:
            out[key] = (out[key] or "").strip() or None

    if out.get("lesson") == PDF_MARKER:
        errors["lesson"] = "reserved value"
    if out.get("grade") and out["grade"] not in GRADES:
        errors["grade"] = "unknown grade"

    if "images" in out:
        images = out["images"] or []
        if not isinstance(images, list) or not all(isinstance(u, str) for u in images):
            errors["images"] = "must be a list of URLs"
        elif len(images) > MAX_ATTACHMENTS:
            errors["images"] = f"at most {MAX_ATTACHMENTS} attachments"
        out["images"] = images

    for key in ("is_approved", "needs_date"):
        if key in out:
            out[key] = bool(out[key])

    if "reminder_type" in out:
        rtype = out["reminder_type"] or REMINDER_NONE
        out["reminder_type"] = rtype
        if rtype not in REMINDER_TYPES:
            errors["reminder_type"] = "unknown reminder type"
        elif rtype == REMINDER_NONE:
            out["reminder_start_date"] = None
            out["reminder_end_date"] = None
        else:
            for key in ("reminder_start_date", "reminder_end_date"):
                formatted = _format_month_day(out.get(key))
                if formatted is None:
                    errors[key] = "MM/DD required"
                out[key] = formatted

    if errors:
        raise ValidationError("resolution data is invalid", details=errors)
    return out


def _apply_content(res: Resolution, content: dict) -> None:
    for key, value in content.items():
        setattr(res, key, value)
    if not res.needs_date:
        res.execution_date = None
        res.execution_term = None
    if res.is_approved:
        res.discussion_time = None
    if (res.reminder_type or REMINDER_NONE) != REMINDER_NONE and not (
            res.reminder_start_date and res.reminder_end_date):
        raise ValidationError("reminder window is incomplete",
                              details={"reminder_start_date": "MM/DD required",
                                       "reminder_end_date": "MM/DD required"})


def _context_label(parent_id: str, checker: PermissionChecker) -> str:
    for section, root_id in SECTION_ROOTS.items():
        if parent_id == root_id:
            return _SECTION_LABELS[section]
    parent = checker.categories_by_id.get(parent_id)
    return parent.name if parent is not None else _FALLBACK_LABEL


def _edit_target(parent_id: str, checker: PermissionChecker):
    """Permission target for writing under ``parent_id``: section name, category, or None."""
    for section, root_id in SECTION_ROOTS.items():
        if parent_id == root_id:
            return section
    return checker.categories_by_id.get(parent_id)


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════
def create_resolution(data: dict, user, today: date | None = None) -> dict:
    """Create a resolution (or a note when ``is_approved`` is false)."""
    fields = decode_resolution(data)
    parent_id = fields.get("parent_id")
    if not parent_id:
        raise ValidationError("parent_id is required", details={"parent_id": "required"})
    if not (fields.get("title") or "").strip():
        raise ValidationError("title is required", details={"title": "required"})

    gw = get_gateway()
    checker = _checker(user)
    target = _edit_target(parent_id, checker)
    if target is None:
        gw.get_category(parent_id)
    checker.require_edit(target)

    content = _normalize_content(fields)
    res = Resolution(
        id=uuid.uuid4().hex[:9],
        parent_id=parent_id,
        images=[],
        is_approved=True,
        needs_date=False,
        progress=0,
        executor_claim=False,
        is_completed=False,
        reminder_type=REMINDER_NONE,
    )
    if not content.get("workgroup"):
        content["workgroup"] = _context_label(parent_id, checker)
    _apply_content(res, content)

    res = gw.save_resolution(res)
    logger.info("Resolution created: %s under %s (approved=%s)", res.id, parent_id, res.is_approved)
    return serialize(res, checker, today)


def get_resolution(resolution_id: str, user, today: date | None = None) -> dict:
    gw = get_gateway()
    res = gw.get_resolution(resolution_id)
    checker = _checker(user)
    checker.require_view(res)
    return serialize(res, checker, today)


def update_resolution(resolution_id: str, data: dict, user, today: date | None = None) -> dict:
    """Rewrite the content fields of a resolution. Lifecycle fields in ``data`` are ignored."""
    gw = get_gateway()
    res = gw.get_resolution(resolution_id)
    checker = _checker(user)
    checker.require_edit(res)

    try:
        content = _normalize_content(decode_resolution(data))
        _apply_content(res, content)
    except ValidationError:
        gw.discard_changes()
        raise

    res = gw.save_resolution(res)
    logger.info("Resolution updated: %s (user=%s)", res.id, checker.user_id)
    return serialize(res, checker, today)


def delete_resolution(resolution_id: str, user) -> None:
    gw = get_gateway()
    res = gw.get_resolution(resolution_id)
    checker = _checker(user)
    checker.require_edit(res)
    gw.delete_resolution(res.id)
    logger.info("Resolution deleted: %s (user=%s)", resolution_id, checker.user_id)


# ═══════════════════════════════════════════════════════════════
# Listings
# ═══════════════════════════════════════════════════════════════
def _split(items: list[dict]) -> dict:
    return {
        "resolutions": [r for r in items if r["is_approved"]],
        "notes": [r for r in items if not r["is_approved"]],
    }


def list_for_category(category_id: str, user, today: date | None = None) -> dict:
    """Resolutions and notes directly under a node the user may open."""
    gw = get_gateway()
    checker = _checker(user)
    if category_id in ROOT_IDS:
        target = next(s for s, rid in SECTION_ROOTS.items() if rid == category_id)
    else:
        target = gw.get_category(category_id)
    checker.require_view(target)
    items = [serialize(r, checker, today) for r in gw.get_resolutions(parent_id=category_id)]
    return _split(items)


def list_for_section(section: str, user, today: date | None = None) -> dict:
    """Items filed directly under the synthetic root of ``programs`` / ``council``."""
    if section not in SECTION_ROOTS:
        raise ValidationError(f"section {section} has no root listing", details={"section": "invalid"})
    return list_for_category(SECTION_ROOTS[section], user, today)


def search(category_type: str, query: str, user, today: date | None = None) -> list[dict]:
    """Case-insensitive substring search within one tree, limited to items the user may open."""
    if category_type not in ("programs", "council", "workgroups"):
        raise ValidationError(f"unknown category type: {category_type}", details={"type": "invalid"})
    checker = _checker(user)
    checker.require_list(category_type)
    hits = get_gateway().search_resolutions(category_type, query)
    return [serialize(r, checker, today) for r in hits if checker.can_view(r)]


# ═══════════════════════════════════════════════════════════════
# By-grade virtual view
# ═══════════════════════════════════════════════════════════════
def list_grades(user) -> list[str]:
    _checker(user).require_view(BY_GRADE)
    return list(GRADES)


def list_executors(user) -> list[str]:
    """Distinct executor titles across all resolutions, in first-seen order."""
    _checker(user).require_view(BY_GRADE)
    titles = []
    for res in get_gateway().get_resolutions():
        if res.executor and res.executor not in titles:
            titles.append(res.executor)
    return titles


def by_grade(user, *, grade: str | None = None, executor: str | None = None,
             lesson: str | None = None, uncompleted: bool = False,
             today: date | None = None) -> list[dict]:
    """
    Virtual by-grade view: every resolution matching the filters.

    Gated only by ``permissions.by_grade``; matches are not re-checked against
    their own workgroup.
    """
    checker = _checker(user)
    checker.require_view(normalize_section("by-grade"))
    if not any((grade, executor, lesson, uncompleted)):
        raise ValidationError("one of grade, executor, lesson or uncompleted is required",
                              details={"filter": "required"})
    out = []
    for res in get_gateway().get_resolutions():
        if grade and res.grade != grade:
            continue
        if executor and res.executor != executor:
            continue
        if lesson and res.lesson != lesson:
            continue
        if uncompleted and projected_state(res, today) == STATE_COMPLETED:
            continue
        out.append(serialize(res, checker, today))
    return out
