"""
Resolution Lifecycle Service

Manages the completion / approval / progress fields of a resolution:
  - Derived state (pending, in_progress, claimed, completed)
  - Transition validation (RESOLUTION_TRANSITIONS)
  - Actor checks: executor self-service vs. approver (edit rights on the context)
  - Reminder auto-reset projection for yearly recurring items

7 actions:
  claim, unclaim, approve, reject, ratify, revoke, set_progress

The yearly auto-reset is a read-time projection: ``project_resolution``
presents a stale claimed/completed item as pending for the new cycle without
touching the stored row. The reset is written only when someone next drives
a transition on the item.

Usage:
    from resolution_desk.services.resolution_lifecycle import transition_resolution

    result = transition_resolution("res-1", "approve", user)
"""

import logging
from datetime import date, datetime, timezone

from flask import current_app

from resolution_desk.core.exceptions import PermissionDenied, TransitionError, ValidationError
from resolution_desk.services.permission import PermissionChecker
from resolution_desk.services.reminders import is_reminder_active, is_window_active

logger = logging.getLogger(__name__)


STATE_PENDING = "pending"
STATE_IN_PROGRESS = "in_progress"
STATE_CLAIMED = "claimed"
STATE_COMPLETED = "completed"

_OPEN_STATES = [STATE_PENDING, STATE_IN_PROGRESS]

ACTOR_EXECUTOR = "executor"
ACTOR_APPROVER = "approver"

RESOLUTION_TRANSITIONS = {
    "claim": {"from": _OPEN_STATES, "actor": ACTOR_EXECUTOR},
    "unclaim": {"from": [STATE_CLAIMED], "actor": ACTOR_EXECUTOR},
    "approve": {"from": [STATE_CLAIMED], "actor": ACTOR_APPROVER},
    "reject": {"from": [STATE_CLAIMED], "actor": ACTOR_APPROVER},
    "ratify": {"from": _OPEN_STATES, "actor": ACTOR_APPROVER},
    "revoke": {"from": [STATE_COMPLETED], "actor": ACTOR_APPROVER},
    "set_progress": {"from": _OPEN_STATES, "actor": ACTOR_APPROVER},
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  Derived state
# ═══════════════════════════════════════════════════════════════════════════

def derive_state(is_completed, executor_claim, progress) -> str:
    if is_completed:
        return STATE_COMPLETED
    if executor_claim:
        return STATE_CLAIMED
    if progress and 0 < progress < 100:
        return STATE_IN_PROGRESS
    return STATE_PENDING


def stored_state(resolution) -> str:
    """State of the row exactly as persisted."""
    return derive_state(resolution.is_completed, resolution.executor_claim, resolution.progress)


def validate_progress(value) -> int:
    """Progress must be an integer in [0, 100]; out-of-range input is rejected, never clamped."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("progress must be an integer", details={"progress": "integer required"})
    if value < 0 or value > 100:
        raise ValidationError("progress must be between 0 and 100",
                              details={"progress": "out of range"})
    return value


# ═══════════════════════════════════════════════════════════════════════════
#  Yearly reminder auto-reset (projection)
# ═══════════════════════════════════════════════════════════════════════════

def _last_cycle_year(resolution) -> int | None:
    stamp = resolution.executor_claim_date or resolution.last_completed_at
    return stamp.year if stamp else None


def needs_cycle_reset(resolution, today: date | None = None) -> bool:
    """True when a yearly item finished in an earlier year and its window is open again."""
    today = today or date.today()
    if resolution.reminder_type != "yearly":
        return False
    if not (resolution.executor_claim or resolution.is_completed):
        return False
    if not is_window_active("yearly", resolution.reminder_start_date,
                            resolution.reminder_end_date, today):
        return False
    year = _last_cycle_year(resolution)
    return year is not None and year != today.year


def project_resolution(resolution, today: date | None = None) -> dict:
    """Serialize a resolution as it should be presented today.

    The stored row is never mutated. Adds ``state``, ``reminder_active`` and
    ``cycle_reset`` (True when the yearly auto-reset applied).
    """
    today = today or date.today()
    data = resolution.to_dict()
    reset = needs_cycle_reset(resolution, today)
    if reset:
        data["executor_claim"] = False
        data["is_completed"] = False
        data["progress"] = 0
    data["state"] = derive_state(data["is_completed"], data["executor_claim"], data["progress"])
    data["reminder_active"] = is_reminder_active(resolution, today)
    data["cycle_reset"] = reset
    return data


def projected_state(resolution, today: date | None = None) -> str:
    if needs_cycle_reset(resolution, today):
        return STATE_PENDING
    return stored_state(resolution)


def apply_cycle_reset(resolution) -> None:
    """Persist the projected new-cycle state onto the row (done on next interaction)."""
    resolution.executor_claim = False
    resolution.is_completed = False
    resolution.progress = 0
    resolution.progress_before_claim = None


# ═══════════════════════════════════════════════════════════════════════════
#  Transitions (pure: mutate the row, no persistence)
# ═══════════════════════════════════════════════════════════════════════════

def validate_transition(resolution, action: str) -> dict:
    """
    Validate whether an action is valid for the current stored state.

    Returns:
        {"valid": bool, "from": str, "reason": str|None}
    """
    current = stored_state(resolution)
    rule = RESOLUTION_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": current, "reason": f"Unknown action: {action}"}
    if current not in rule["from"]:
        return {"valid": False, "from": current,
                "reason": f"Cannot '{action}' from state '{current}'"}
    if action == "ratify" and (resolution.progress or 0) != 100:
        return {"valid": False, "from": current,
                "reason": "progress must be 100 before marking as done"}
    return {"valid": True, "from": current, "reason": None}


def _restore_progress(resolution) -> None:
    """Put back the progress recorded when the claim was made (kept as-is if none was)."""
    if resolution.progress_before_claim is not None:
        resolution.progress = resolution.progress_before_claim
    resolution.progress_before_claim = None


def apply_transition(
    resolution,
    action: str,
    *,
    now: datetime | None = None,
    progress: int | None = None,
    revoke_clears_claim: bool = False,
) -> tuple[str, str]:
    """
    Apply ``action`` to ``resolution`` in place.

    Returns:
        (previous_state, new_state)

    Raises:
        TransitionError, ValidationError
    """
    if action == "set_progress":
        progress = validate_progress(progress)

    validation = validate_transition(resolution, action)
    if not validation["valid"]:
        raise TransitionError(resolution.id, action, validation["from"], validation["reason"])

    now = now or _utcnow()
    previous = validation["from"]

    if action == "claim":
        resolution.executor_claim = True
        resolution.executor_claim_date = now
        resolution.progress_before_claim = resolution.progress or 0
        resolution.progress = 100
    elif action == "unclaim":
        resolution.executor_claim = False
        _restore_progress(resolution)
    elif action == "approve":
        resolution.is_completed = True
        resolution.last_completed_at = now
    elif action == "reject":
        resolution.executor_claim = False
        resolution.is_completed = False
        _restore_progress(resolution)
    elif action == "ratify":
        resolution.executor_claim = True
        resolution.executor_claim_date = now
        resolution.progress_before_claim = None
        resolution.is_completed = True
        resolution.last_completed_at = now
    elif action == "revoke":
        resolution.is_completed = False
        if revoke_clears_claim:
            resolution.executor_claim = False
    elif action == "set_progress":
        resolution.progress = progress

    return previous, stored_state(resolution)


# ═══════════════════════════════════════════════════════════════════════════
#  Actor checks
# ═══════════════════════════════════════════════════════════════════════════

def _actor_allowed(checker: PermissionChecker, resolution, action: str) -> bool:
    rule = RESOLUTION_TRANSITIONS[action]
    if checker.can_edit(resolution):
        return True
    if rule["actor"] == ACTOR_EXECUTOR:
        return checker.is_executor(resolution)
    return False


def get_available_transitions(resolution, checker: PermissionChecker,
                              today: date | None = None) -> list[str]:
    """Actions the checker's user may perform on the item as presented today."""
    state = projected_state(resolution, today)
    progress = 0 if needs_cycle_reset(resolution, today) else (resolution.progress or 0)
    actions = []
    for action, rule in RESOLUTION_TRANSITIONS.items():
        if state not in rule["from"]:
            continue
        if action == "ratify" and progress != 100:
            continue
        if _actor_allowed(checker, resolution, action):
            actions.append(action)
    return actions


# ═══════════════════════════════════════════════════════════════════════════
#  Service entry point
# ═══════════════════════════════════════════════════════════════════════════

def transition_resolution(
    resolution_id: str,
    action: str,
    user,
    *,
    progress: int | None = None,
    gateway=None,
    now: datetime | None = None,
    today: date | None = None,
) -> dict:
    """
    Execute a lifecycle transition and persist it.

    A pending yearly cycle reset is materialized first, so the action is
    validated against the state the user was shown.

    Returns:
        {"resolution_id", "action", "previous_state", "new_state", "resolution"}

    Raises:
        NotFoundError, PermissionDenied, TransitionError, ValidationError,
        ConnectivityError (store failure; the row keeps its previous state)
    """
    from resolution_desk.services.gateway import get_gateway

    gateway = gateway or get_gateway()
    now = now or _utcnow()
    today = today or now.date()

    res = gateway.get_resolution(resolution_id)
    checker = PermissionChecker(user, gateway.get_categories())

    if action not in RESOLUTION_TRANSITIONS:
        raise TransitionError(res.id, action, stored_state(res), f"Unknown action: {action}")
    if not _actor_allowed(checker, res, action):
        logger.warning("Transition %s denied for user=%s on resolution=%s",
                       action, checker.user_id, res.id)
        raise PermissionDenied(checker.user_id, action, res.id)

    reset = needs_cycle_reset(res, today)
    if reset:
        apply_cycle_reset(res)

    try:
        previous, new = apply_transition(
            res, action, now=now, progress=progress,
            revoke_clears_claim=current_app.config.get("REVOKE_CLEARS_CLAIM", False),
        )
    except (TransitionError, ValidationError):
        gateway.discard_changes()
        raise

    gateway.save_resolution(res)

    logger.info("Resolution %s: %s %s → %s (user=%s%s)", res.id, action, previous, new,
                checker.user_id, ", new cycle" if reset else "")
    return {
        "resolution_id": res.id,
        "action": action,
        "previous_state": previous,
        "new_state": new,
        "resolution": project_resolution(res, today),
    }
