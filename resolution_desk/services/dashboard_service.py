"""
Dashboard Service — derived views recomputed on every load.

    my_tasks        approved resolutions whose executor equals the user's
                    title, bucketed by projected state
    reminders       the same set, filtered by "reminder window active today"
    stats           counts over all resolutions and categories

Nothing here is cached or persisted.
"""

import logging
from datetime import date

from resolution_desk.models.category import COUNCIL_ROOT_ID, PROGRAMS_ROOT_ID
from resolution_desk.models.resolution import COUNCIL_WORKGROUP_LABEL
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.permission import PermissionChecker
from resolution_desk.services.reminders import is_reminder_active
from resolution_desk.services.resolution_lifecycle import (
    STATE_CLAIMED,
    STATE_COMPLETED,
    projected_state,
)
from resolution_desk.services.resolution_service import serialize

logger = logging.getLogger(__name__)


def _own_items(user, resolutions) -> list:
    title = (getattr(user, "title", "") or "").strip()
    if not title:
        return []
    return [r for r in resolutions if r.is_approved and (r.executor or "").strip() == title]


def my_tasks(user, today: date | None = None) -> dict:
    """
    Items assigned to the user's title, partitioned by projected state.

    Returns:
        {"pending": [...], "claimed": [...], "completed": [...]}
        ``pending`` includes in-progress items; ``claimed`` holds items
        waiting for an editor's approval.
    """
    gw = get_gateway()
    checker = PermissionChecker(user, gw.get_categories())
    buckets = {"pending": [], "claimed": [], "completed": []}
    for res in _own_items(user, gw.get_resolutions()):
        state = projected_state(res, today)
        if state == STATE_COMPLETED:
            key = "completed"
        elif state == STATE_CLAIMED:
            key = "claimed"
        else:
            key = "pending"
        buckets[key].append(serialize(res, checker, today))
    return buckets


def active_reminders(user, today: date | None = None) -> list[dict]:
    """The user's items whose reminder window is open today, regardless of completion."""
    gw = get_gateway()
    checker = PermissionChecker(user, gw.get_categories())
    return [
        serialize(res, checker, today)
        for res in _own_items(user, gw.get_resolutions())
        if is_reminder_active(res, today)
    ]


def compute_stats(resolutions, categories) -> dict:
    """Pure statistics over full resolution / category scans."""
    wg_ids = {c.id for c in categories if c.type == "workgroups"}
    program_ids = {c.id for c in categories if c.type == "programs"} | {PROGRAMS_ROOT_ID}
    return {
        "workgroup_resolutions": sum(1 for r in resolutions if r.parent_id in wg_ids),
        "council_resolutions": sum(
            1 for r in resolutions
            if r.parent_id == COUNCIL_ROOT_ID or r.workgroup == COUNCIL_WORKGROUP_LABEL
        ),
        "program_resolutions": sum(1 for r in resolutions if r.parent_id in program_ids),
        "workgroups": sum(1 for c in categories if c.type == "workgroups" and c.parent_id is None),
        "notes": sum(1 for r in resolutions if not r.is_approved),
    }


def stats() -> dict:
    gw = get_gateway()
    return compute_stats(gw.get_resolutions(), gw.get_categories())


def dashboard(user, today: date | None = None) -> dict:
    """Everything the landing screen shows, in one payload."""
    return {
        "stats": stats(),
        "tasks": my_tasks(user, today),
        "reminders": active_reminders(user, today),
        "is_online": get_gateway().is_online,
    }
