"""
Permission Model — capability checks for sections, categories and resolutions.

Evaluation order (deny-by-default):
  1. Admin role → always allowed.
  2. Section context (top-level tab) → ``permissions[section]``.
  3. Workgroup category → the ``workgroup_specific`` entry of the workgroup
     root (the top of the node's workgroup tree, so grandchildren inherit the
     root's entry). The entry replaces the blanket ``workgroups`` flags
     entirely; no entry means no access.
  4. Programs / council category → blanket flags of that section, any depth.
  5. ``by_grade`` virtual view → ``permissions.by_grade`` only, whichever
     workgroup the matched resolutions belong to.

Two tiers are kept apart: *enumeration* (may the user see category names in
a listing — ``can_list``) and *content access* (may the user open the
category and read its resolutions — ``can_view``).

Usage:
    from resolution_desk.services.permission import PermissionChecker

    checker = PermissionChecker(user, categories)
    if checker.can_view(category): ...
    checker.require_edit(resolution)     # raises PermissionDenied
"""

import logging

from resolution_desk.core.exceptions import PermissionDenied
from resolution_desk.models.auth import ROLE_ADMIN, SECTIONS
from resolution_desk.models.category import ROOT_IDS, SECTION_ROOTS

logger = logging.getLogger(__name__)

BY_GRADE = "by_grade"

_ROOT_SECTIONS = {root_id: section for section, root_id in SECTION_ROOTS.items()}


def is_admin(user) -> bool:
    return user is not None and getattr(user, "role", None) == ROLE_ADMIN


def _entry_flag(entry, flag: str) -> bool:
    if not isinstance(entry, dict):
        return False
    return entry.get(flag) is True


def _section_flag(user, section: str, flag: str) -> bool:
    perms = getattr(user, "permissions", None) or {}
    return _entry_flag(perms.get(section), flag)


def workgroup_root_id(category, categories_by_id: dict | None = None) -> str:
    """Id whose ``workgroup_specific`` entry governs this workgroup node.

    Overrides exist for root workgroups only, so the ``parent_id`` chain is
    followed up to the root. Without a category map (or when an ancestor is
    missing from it) the walk stops at the last known parent.
    """
    categories_by_id = categories_by_id or {}
    node = category
    seen = {node.id}
    while node.parent_id is not None:
        parent = categories_by_id.get(node.parent_id)
        if parent is None or parent.id in seen or parent.type != "workgroups":
            return node.parent_id
        seen.add(parent.id)
        node = parent
    return node.id


def _category_flag(user, category, flag: str, categories_by_id=None) -> bool:
    if category.type == "workgroups":
        perms = getattr(user, "permissions", None) or {}
        specific = perms.get("workgroup_specific") or {}
        return _entry_flag(specific.get(workgroup_root_id(category, categories_by_id)), flag)
    if category.type in ("programs", "council"):
        return _section_flag(user, category.type, flag)
    return False


def _check(user, target, flag: str, categories_by_id=None) -> bool:
    if user is None:
        return False
    if is_admin(user):
        return True
    if target is None:
        return False
    if isinstance(target, str):
        section = normalize_section(target)
        if section is None:
            return False
        return _section_flag(user, section, flag)
    return _category_flag(user, target, flag, categories_by_id)


def normalize_section(name: str) -> str | None:
    """Map the UI spellings of a section (``by-grade``, ``byGrade``) to the stored key."""
    if name in ("by-grade", "byGrade"):
        return BY_GRADE
    return name if name in SECTIONS else None


def can_view(user, target, categories_by_id: dict | None = None) -> bool:
    """Content access for a section name or a category node."""
    return _check(user, target, "can_view", categories_by_id)


def can_edit(user, target, categories_by_id: dict | None = None) -> bool:
    """Edit rights for a section name or a category node."""
    return _check(user, target, "can_edit", categories_by_id)


def can_list(user, section: str) -> bool:
    """Enumeration tier: may category *names* of this section be listed."""
    return _check(user, section, "can_view")


def resolution_context(resolution, categories_by_id: dict):
    """Return the permission context of a resolution: a section name, a category, or None."""
    parent_id = getattr(resolution, "parent_id", None)
    if parent_id in _ROOT_SECTIONS:
        return _ROOT_SECTIONS[parent_id]
    return categories_by_id.get(parent_id)


# ═══════════════════════════════════════════════════════════════════════════
#  Capability-check service
# ═══════════════════════════════════════════════════════════════════════════

class PermissionChecker:
    """Binds the pure rules to one user and the current category set.

    Every blueprint goes through this object; no screen re-implements the
    rules. ``categories`` may be any iterable of Category-like objects.
    """

    def __init__(self, user, categories=()):
        self.user = user
        self.categories_by_id = {c.id: c for c in categories}

    @property
    def user_id(self):
        return getattr(self.user, "id", None)

    def _context(self, target):
        # A resolution is checked through its parent context; sections and
        # categories are checked as-is.
        if hasattr(target, "executor"):
            return resolution_context(target, self.categories_by_id)
        return target

    def can_view(self, target) -> bool:
        return can_view(self.user, self._context(target), self.categories_by_id)

    def can_edit(self, target) -> bool:
        return can_edit(self.user, self._context(target), self.categories_by_id)

    def can_list(self, section: str) -> bool:
        return can_list(self.user, section)

    def is_executor(self, resolution) -> bool:
        title = (getattr(self.user, "title", "") or "").strip()
        return bool(title) and title == (resolution.executor or "").strip()

    def require_view(self, target) -> None:
        if not self.can_view(target):
            self._deny("view", target)

    def require_edit(self, target) -> None:
        if not self.can_edit(target):
            self._deny("edit", target)

    def require_list(self, section: str) -> None:
        if not self.can_list(section):
            self._deny("list", section)

    def require_admin(self) -> None:
        if not is_admin(self.user):
            self._deny("admin", None)

    def visible_categories(self, categories, section: str) -> list:
        """Category nodes of ``section`` the user may enumerate, each flagged with access rights."""
        if not self.can_list(section):
            return []
        out = []
        for cat in categories:
            if cat.type != section or cat.id in ROOT_IDS:
                continue
            d = cat.to_dict()
            d["can_open"] = self.can_view(cat)
            d["can_edit"] = self.can_edit(cat)
            out.append(d)
        return out

    def _deny(self, action: str, target) -> None:
        label = getattr(target, "id", target)
        logger.warning("Permission denied: user=%s action=%s target=%s", self.user_id, action, label)
        raise PermissionDenied(self.user_id, action, str(label) if label is not None else None)
