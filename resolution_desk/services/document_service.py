"""
Document Service — files archived against a workgroup node.

Reading needs content access to the workgroup; adding or removing a
document needs edit rights on it.
"""

import logging
import uuid

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.models.resolution import WorkgroupDocument
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.legacy_codec import decode_document
from resolution_desk.services.permission import PermissionChecker

logger = logging.getLogger(__name__)


def _workgroup_and_checker(workgroup_id: str, user):
    gw = get_gateway()
    workgroup = gw.get_category(workgroup_id)
    if workgroup.type != "workgroups":
        raise ValidationError("documents can only be attached to workgroups",
                              details={"workgroup_id": "not a workgroup"})
    return workgroup, PermissionChecker(user, gw.get_categories())


def list_documents(workgroup_id: str, user) -> list[dict]:
    workgroup, checker = _workgroup_and_checker(workgroup_id, user)
    checker.require_view(workgroup)
    return [d.to_dict() for d in get_gateway().get_workgroup_documents(workgroup.id)]


def add_document(workgroup_id: str, data: dict, user) -> dict:
    workgroup, checker = _workgroup_and_checker(workgroup_id, user)
    checker.require_edit(workgroup)

    fields = decode_document(data)
    errors = {}
    title = (fields.get("title") or "").strip()
    file_url = (fields.get("file_url") or "").strip()
    if not title:
        errors["title"] = "required"
    if not file_url:
        errors["file_url"] = "required"
    if errors:
        raise ValidationError("document data is incomplete", details=errors)

    doc = WorkgroupDocument(
        id=uuid.uuid4().hex[:9],
        workgroup_id=workgroup.id,
        title=title,
        description=(fields.get("description") or "").strip(),
        file_url=file_url,
    )
    doc = get_gateway().save_workgroup_document(doc)
    logger.info("Document %s archived under workgroup %s", doc.id, workgroup.id)
    return doc.to_dict()


def delete_document(document_id: str, user) -> None:
    gw = get_gateway()
    doc = gw.get_workgroup_document(document_id)
    workgroup, checker = _workgroup_and_checker(doc.workgroup_id, user)
    checker.require_edit(workgroup)
    gw.delete_workgroup_document(doc.id)
    logger.info("Document %s removed from workgroup %s", document_id, workgroup.id)
