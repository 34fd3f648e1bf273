"""
Category Service — tree navigation and maintenance for the three trees.

Navigation:
  - children of a node, filtered by the enumeration tier (``can_list``) and
    flagged with content access (``can_open`` / ``can_edit``)
  - breadcrumb path from the tree root down to a node
  - root workgroups (workgroup nodes with no parent)

Maintenance:
  - synthetic roots are upserted on every startup
  - creating / renaming a node needs edit rights on its parent context;
    root workgroups are admin-only
  - deletion follows CATEGORY_DELETE_POLICY:
        cascade → node, its subtree, their resolutions and documents
        block   → refused while the node has children or resolutions
        orphan  → only the node; children and resolutions stay (admin-only)
"""

import logging
import uuid

from flask import current_app

from resolution_desk.core.exceptions import DuplicateError, NotFoundError, ValidationError
from resolution_desk.models.category import (
    CATEGORY_TYPES,
    ROOT_IDS,
    SECTION_ROOTS,
    SYNTHETIC_ROOTS,
    WORKGROUP_NAME_PREFIX,
    Category,
)
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.legacy_codec import decode_category
from resolution_desk.services.permission import PermissionChecker

logger = logging.getLogger(__name__)

DELETE_POLICIES = ("cascade", "block", "orphan")


def ensure_synthetic_roots() -> None:
    """Upsert ``programs-root`` and ``council-root``."""
    gw = get_gateway()
    for root_id, attrs in SYNTHETIC_ROOTS.items():
        gw.save_category(Category(id=root_id, parent_id=None, **attrs))


def checker_for(user) -> PermissionChecker:
    return PermissionChecker(user, get_gateway().get_categories())


# ═══════════════════════════════════════════════════════════════
# Navigation
# ═══════════════════════════════════════════════════════════════
def get_category(category_id: str, user) -> dict:
    """A node the user may open, with its access flags."""
    gw = get_gateway()
    cat = gw.get_category(category_id)
    checker = PermissionChecker(user, gw.get_categories())
    checker.require_view(cat.type if cat.id in ROOT_IDS else cat)
    d = cat.to_dict()
    d["can_open"] = True
    d["can_edit"] = checker.can_edit(cat.type if cat.id in ROOT_IDS else cat)
    return d


def list_categories(user, category_type: str) -> list[dict]:
    """Every non-root node of one tree that the user may enumerate."""
    if category_type not in CATEGORY_TYPES:
        raise ValidationError(f"unknown category type: {category_type}", details={"type": "invalid"})
    categories = get_gateway().get_categories(category_type)
    checker = PermissionChecker(user, get_gateway().get_categories())
    return checker.visible_categories(categories, category_type)


def children(category_id: str, user) -> list[dict]:
    """Direct children of a node, filtered by the enumeration tier."""
    gw = get_gateway()
    parent = gw.get_category(category_id)
    all_cats = gw.get_categories()
    checker = PermissionChecker(user, all_cats)
    kids = [c for c in all_cats if c.parent_id == parent.id]
    return checker.visible_categories(kids, parent.type)


def root_workgroups(user=None) -> list:
    """Workgroup roots; with a user, only those the user may enumerate."""
    gw = get_gateway()
    all_cats = gw.get_categories()
    roots = [c for c in all_cats if c.type == "workgroups" and c.parent_id is None]
    if user is None:
        return roots
    return PermissionChecker(user, all_cats).visible_categories(roots, "workgroups")


def path(category_id: str) -> list[dict]:
    """Breadcrumb from the top of the tree down to ``category_id`` (synthetic roots excluded)."""
    by_id = {c.id: c for c in get_gateway().get_categories()}
    if category_id not in by_id:
        raise NotFoundError("Category", category_id)
    crumbs = []
    seen = set()
    node = by_id.get(category_id)
    while node is not None and node.id not in seen:
        seen.add(node.id)
        if node.id not in ROOT_IDS:
            crumbs.append(node.to_dict())
        node = by_id.get(node.parent_id)
    crumbs.reverse()
    return crumbs


def subtree_ids(category_id: str, categories) -> list[str]:
    """``category_id`` followed by every descendant id (breadth first)."""
    by_parent = {}
    for c in categories:
        by_parent.setdefault(c.parent_id, []).append(c.id)
    out, queue = [], [category_id]
    while queue:
        cid = queue.pop(0)
        if cid in out:
            continue
        out.append(cid)
        queue.extend(by_parent.get(cid, []))
    return out


# ═══════════════════════════════════════════════════════════════
# Maintenance
# ═══════════════════════════════════════════════════════════════
def workgroup_name(name: str) -> str:
    name = name.strip()
    return name if name.startswith(WORKGROUP_NAME_PREFIX) else f"{WORKGROUP_NAME_PREFIX} {name}"


def _require_parent_edit(checker: PermissionChecker, category_type: str, parent_id):
    if parent_id is None:
        if category_type == "workgroups":
            checker.require_admin()
        return
    if parent_id in ROOT_IDS:
        checker.require_edit(category_type)
        return
    parent = checker.categories_by_id.get(parent_id)
    if parent is None:
        checker.require_admin()
    else:
        checker.require_edit(parent)


def create_category(data: dict, user) -> Category:
    """
    Create a node.

    ``parent_id`` defaults to the synthetic root of programs / council; a
    workgroup without parent is a new root workgroup (admin only, name
    prefixed with کارگروه).
    """
    fields = decode_category(data)
    name = (fields.get("name") or "").strip()
    category_type = fields.get("type")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if category_type not in CATEGORY_TYPES:
        raise ValidationError("type must be programs, council or workgroups",
                              details={"type": "invalid"})

    gw = get_gateway()
    all_cats = gw.get_categories()
    checker = PermissionChecker(user, all_cats)
    parent_id = fields.get("parent_id") or SECTION_ROOTS.get(category_type)

    if parent_id is not None and parent_id not in ROOT_IDS:
        parent = gw.get_category(parent_id)
        if parent.type != category_type:
            raise ValidationError("parent belongs to another tree", details={"parent_id": "invalid"})
    elif parent_id in ROOT_IDS and SECTION_ROOTS.get(category_type) != parent_id:
        raise ValidationError("parent belongs to another tree", details={"parent_id": "invalid"})

    _require_parent_edit(checker, category_type, parent_id)

    if category_type == "workgroups" and parent_id is None:
        name = workgroup_name(name)
        if any(c.type == "workgroups" and c.parent_id is None and c.name == name for c in all_cats):
            raise DuplicateError("Category", "name", name)

    prefix = "wg-" if category_type == "workgroups" and parent_id is None else ""
    cat = Category(id=f"{prefix}{uuid.uuid4().hex[:12]}", parent_id=parent_id,
                   name=name, type=category_type)
    cat = gw.save_category(cat)
    logger.info("Category created: %s (%s, parent=%s)", cat.id, category_type, parent_id)
    return cat


def rename_category(category_id: str, name: str, user) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if category_id in ROOT_IDS:
        raise ValidationError("synthetic roots cannot be renamed", details={"id": "locked"})

    gw = get_gateway()
    cat = gw.get_category(category_id)
    all_cats = gw.get_categories()
    checker = PermissionChecker(user, all_cats)
    _require_parent_edit(checker, cat.type, cat.parent_id)

    if cat.type == "workgroups" and cat.parent_id is None:
        if any(c.id != cat.id and c.type == "workgroups" and c.parent_id is None and c.name == name
               for c in all_cats):
            raise DuplicateError("Category", "name", name)

    cat.name = name
    return gw.save_category(cat)


def delete_category(category_id: str, user, policy: str | None = None) -> dict:
    """
    Delete a node under the configured policy. Synthetic roots are a no-op.

    Returns:
        {"deleted_categories": [...], "deleted_resolutions": int, "policy": str}
    """
    policy = policy or current_app.config.get("CATEGORY_DELETE_POLICY", "cascade")
    if policy not in DELETE_POLICIES:
        raise ValidationError(f"unknown delete policy: {policy}", details={"policy": "invalid"})
    if category_id in ROOT_IDS:
        return {"deleted_categories": [], "deleted_resolutions": 0, "policy": policy}

    gw = get_gateway()
    cat = gw.get_category(category_id)
    all_cats = gw.get_categories()
    checker = PermissionChecker(user, all_cats)
    _require_parent_edit(checker, cat.type, cat.parent_id)

    ids = subtree_ids(cat.id, all_cats)
    resolutions = [r for r in gw.get_resolutions() if r.parent_id in ids]

    if policy == "block":
        if len(ids) > 1 or resolutions:
            raise ValidationError(
                "category is not empty",
                details={"children": len(ids) - 1, "resolutions": len(resolutions)},
            )
        gw.delete_categories(ids)
        deleted, removed = ids, 0
    elif policy == "cascade":
        gw.delete_categories(ids, with_contents=True)
        deleted, removed = ids, len(resolutions)
    else:
        gw.delete_category(cat.id)
        deleted, removed = [cat.id], 0

    logger.info("Category %s deleted (policy=%s, nodes=%d, resolutions=%d)",
                category_id, policy, len(deleted), removed)
    return {"deleted_categories": deleted, "deleted_resolutions": removed, "policy": policy}
