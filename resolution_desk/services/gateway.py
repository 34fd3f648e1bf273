"""
Persistence Gateway — every read and write against the store goes through here.

Rules:
  - db.session.commit() happens only in this file.
  - Saves are full-record upserts by id (last write wins, no version check).
  - Driver failures are translated at this boundary:
        IntegrityError      → DuplicateError
        OperationalError    → ConnectivityError (and the connectivity state goes offline)
    Listing reads degrade to empty results while the store is unreachable;
    single-record reads and writes raise.
  - Any failed write rolls the session back, so the row keeps its prior state.
  - Resolution reads never return rows carrying the legacy PDF_MARKER lesson.

Usage:
    from resolution_desk.services.gateway import get_gateway

    gw = get_gateway()
    for res in gw.get_resolutions(parent_id="council-root"):
        ...
"""

import logging

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from resolution_desk.core.exceptions import ConnectivityError, DuplicateError, NotFoundError
from resolution_desk.models import db
from resolution_desk.models.auth import CustomTitle, User
from resolution_desk.models.category import ROOT_IDS, SECTION_ROOTS, Category
from resolution_desk.models.resolution import PDF_MARKER, Resolution, WorkgroupDocument
from resolution_desk.services import storage_service
from resolution_desk.services.connectivity import get_connectivity

logger = logging.getLogger(__name__)


def _not_document_row():
    return or_(Resolution.lesson.is_(None), Resolution.lesson != PDF_MARKER)


class PersistenceGateway:
    """CRUD over users, categories, resolutions, workgroup documents, titles and files."""

    def __init__(self, connectivity=None):
        self._connectivity = connectivity

    @property
    def connectivity(self):
        return self._connectivity or get_connectivity()

    @property
    def is_online(self) -> bool:
        return self.connectivity.is_online

    # ── Plumbing ─────────────────────────────────────────────────────────

    def _offline(self, operation: str, exc: Exception) -> ConnectivityError:
        db.session.rollback()
        reason = str(getattr(exc, "orig", None) or exc)
        self.connectivity.mark_offline(reason)
        return ConnectivityError(operation, reason)

    def _list(self, operation: str, query_fn, fallback=None):
        try:
            return query_fn()
        except OperationalError as exc:
            self._offline(operation, exc)
            logger.warning("%s degraded to empty result (store offline)", operation)
            return list(fallback or [])

    def _get(self, operation: str, query_fn):
        try:
            return query_fn()
        except OperationalError as exc:
            raise self._offline(operation, exc) from exc

    def _commit(self, operation: str, resource: str, unique_field: str, value=None) -> None:
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            logger.info("%s rejected as duplicate: %s", operation, exc.orig)
            raise DuplicateError(resource, unique_field, value) from exc
        except OperationalError as exc:
            raise self._offline(operation, exc) from exc
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("%s failed", operation)
            raise

    def save_all(self, records: list) -> int:
        """Upsert a batch of model instances in one commit (backup restore / legacy import)."""
        for record in records:
            db.session.merge(record)
        self._commit("save_all", "Record", "id")
        return len(records)

    def discard_changes(self) -> None:
        """Drop pending in-session edits; reloaded rows show the stored state again."""
        db.session.rollback()

    # ── Users ────────────────────────────────────────────────────────────

    def get_users(self) -> list[User]:
        from resolution_desk.services.user_service import bootstrap_admin_stub

        return self._list(
            "get_users",
            lambda: User.query.order_by(User.username).all(),
            fallback=[bootstrap_admin_stub()],
        )

    def get_user(self, user_id: str) -> User:
        user = self._get("get_user", lambda: db.session.get(User, user_id))
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_user_by_username(self, username: str) -> User | None:
        return self._get(
            "find_user_by_username",
            lambda: User.query.filter(func.lower(User.username) == username.lower()).first(),
        )

    def save_user(self, user: User) -> User:
        user = db.session.merge(user)
        self._commit("save_user", "User", "username", user.username)
        return user

    def update_user_permissions(self, user_id: str, perms: dict, title: str, role: str) -> User:
        user = self.get_user(user_id)
        user.permissions = perms
        user.title = title
        user.role = role
        self._commit("update_user_permissions", "User", "username", user.username)
        return user

    # ── Categories ───────────────────────────────────────────────────────

    def get_categories(self, category_type: str | None = None) -> list[Category]:
        def _query():
            q = Category.query
            if category_type:
                q = q.filter_by(type=category_type)
            return q.order_by(Category.name).all()

        return self._list("get_categories", _query)

    def get_category(self, category_id: str) -> Category:
        cat = self._get("get_category", lambda: db.session.get(Category, category_id))
        if cat is None:
            raise NotFoundError("Category", category_id)
        return cat

    def save_category(self, category: Category) -> Category:
        category = db.session.merge(category)
        self._commit("save_category", "Category", "name", category.name)
        return category

    def delete_category(self, category_id: str) -> None:
        """Delete one node; its children and resolutions are left in place."""
        self.delete_categories([category_id])

    def delete_categories(self, category_ids: list[str], *, with_contents: bool = False) -> None:
        """Delete several nodes in one commit (synthetic roots are skipped).

        ``with_contents`` also deletes the resolutions parented to those nodes
        and the documents archived against them.
        """
        ids = [cid for cid in category_ids if cid not in ROOT_IDS]
        if not ids:
            return
        for cid in ids:
            self.get_category(cid)
        try:
            if with_contents:
                Resolution.query.filter(Resolution.parent_id.in_(ids)).delete(synchronize_session=False)
                WorkgroupDocument.query.filter(
                    WorkgroupDocument.workgroup_id.in_(ids)).delete(synchronize_session=False)
            Category.query.filter(Category.id.in_(ids)).delete(synchronize_session=False)
        except OperationalError as exc:
            raise self._offline("delete_categories", exc) from exc
        self._commit("delete_categories", "Category", "id", ",".join(ids))

    # ── Resolutions ──────────────────────────────────────────────────────

    def get_resolutions(self, parent_id: str | None = None) -> list[Resolution]:
        def _query():
            q = Resolution.query.filter(_not_document_row())
            if parent_id:
                q = q.filter(Resolution.parent_id == parent_id)
            return q.order_by(Resolution.created_at.desc()).all()

        return self._list("get_resolutions", _query)

    def get_resolution(self, resolution_id: str) -> Resolution:
        res = self._get(
            "get_resolution",
            lambda: Resolution.query.filter(
                Resolution.id == resolution_id, _not_document_row(),
            ).first(),
        )
        if res is None:
            raise NotFoundError("Resolution", resolution_id)
        return res

    def search_resolutions(self, category_type: str, query: str) -> list[Resolution]:
        """Case-insensitive substring search over title/description within one tree."""
        needle = (query or "").strip().lower()
        if not needle:
            return []

        def _query():
            ids = [c.id for c in Category.query.filter_by(type=category_type).all()]
            if category_type in SECTION_ROOTS:
                ids.append(SECTION_ROOTS[category_type])
            if not ids:
                return []
            return (
                Resolution.query
                .filter(_not_document_row())
                .filter(Resolution.parent_id.in_(ids))
                .filter(or_(
                    func.lower(Resolution.title).contains(needle, autoescape=True),
                    func.lower(Resolution.description).contains(needle, autoescape=True),
                ))
                .order_by(Resolution.created_at.desc())
                .all()
            )

        return self._list("search_resolutions", _query)

    def save_resolution(self, resolution: Resolution) -> Resolution:
        resolution = db.session.merge(resolution)
        self._commit("save_resolution", "Resolution", "id", resolution.id)
        return resolution

    def delete_resolution(self, resolution_id: str) -> None:
        res = self.get_resolution(resolution_id)
        db.session.delete(res)
        self._commit("delete_resolution", "Resolution", "id", resolution_id)

    # ── Workgroup documents ──────────────────────────────────────────────

    def get_workgroup_documents(self, workgroup_id: str) -> list[WorkgroupDocument]:
        return self._list(
            "get_workgroup_documents",
            lambda: (
                WorkgroupDocument.query
                .filter_by(workgroup_id=workgroup_id)
                .order_by(WorkgroupDocument.created_at.desc())
                .all()
            ),
        )

    def get_workgroup_document(self, document_id: str) -> WorkgroupDocument:
        doc = self._get("get_workgroup_document", lambda: db.session.get(WorkgroupDocument, document_id))
        if doc is None:
            raise NotFoundError("WorkgroupDocument", document_id)
        return doc

    def save_workgroup_document(self, document: WorkgroupDocument) -> WorkgroupDocument:
        document = db.session.merge(document)
        self._commit("save_workgroup_document", "WorkgroupDocument", "id", document.id)
        return document

    def delete_workgroup_document(self, document_id: str) -> None:
        doc = self.get_workgroup_document(document_id)
        db.session.delete(doc)
        self._commit("delete_workgroup_document", "WorkgroupDocument", "id", document_id)

    # ── Custom titles ────────────────────────────────────────────────────

    def get_custom_titles(self) -> list[CustomTitle]:
        return self._list("get_custom_titles", lambda: CustomTitle.query.order_by(CustomTitle.id).all())

    def save_custom_title(self, title: str) -> CustomTitle:
        row = CustomTitle(title=title)
        db.session.add(row)
        self._commit("save_custom_title", "CustomTitle", "title", title)
        return row

    def update_custom_title(self, title_id: int, new_title: str) -> CustomTitle:
        row = self._get("update_custom_title", lambda: db.session.get(CustomTitle, title_id))
        if row is None:
            raise NotFoundError("CustomTitle", title_id)
        row.title = new_title
        self._commit("update_custom_title", "CustomTitle", "title", new_title)
        return row

    def delete_custom_title(self, title_id: int) -> None:
        row = self._get("delete_custom_title", lambda: db.session.get(CustomTitle, title_id))
        if row is None:
            raise NotFoundError("CustomTitle", title_id)
        db.session.delete(row)
        self._commit("delete_custom_title", "CustomTitle", "id", title_id)

    # ── Files ────────────────────────────────────────────────────────────

    def upload_file(self, data: bytes, file_name: str, folder: str = "general") -> str:
        return storage_service.upload_file(data, file_name, folder)

    def compress_image(self, base64_data) -> bytes:
        return storage_service.compress_image(base64_data)

    def store_upload(self, data, file_name: str, folder: str = "general") -> str:
        """Files endpoint entry point: images are compressed to JPEG before storage.

        ``data`` is raw bytes or, for images, a base64 string / data URL.
        """
        if storage_service.is_image(file_name):
            data = self.compress_image(data)
            file_name = f"{file_name.rsplit('.', 1)[0]}.jpg"
        return self.upload_file(data, file_name, folder)


def get_gateway() -> PersistenceGateway:
    """Gateway bound to the current application."""
    return current_app.extensions["gateway"]


def init_gateway(app) -> PersistenceGateway:
    gateway = PersistenceGateway(app.extensions.get("connectivity"))
    app.extensions["gateway"] = gateway
    return gateway
