"""
Resolution models.

Models:
    - Resolution: a decision / action item attached to a category node
    - WorkgroupDocument: an archived file (usually a PDF) attached to a workgroup

Lifecycle columns (progress, progress_before_claim, executor_claim*, is_completed,
last_completed_at, reminder_*) are only ever changed through services.resolution_lifecycle.
"""

import uuid
from datetime import datetime, timezone

from resolution_desk.models import db


# ── Constants ────────────────────────────────────────────────────────────────

REMINDER_TYPES = {"none", "once", "monthly", "quarterly", "yearly"}

GRADES = ["پایه ۱", "پایه ۲", "پایه ۳", "پایه ۴", "پایه ۵", "پایه ۶"]

MAX_ATTACHMENTS = 10

# Legacy storage encoded workgroup documents as resolution rows carrying this
# lesson value. Only legacy_codec and the read filters know about it.
PDF_MARKER = "__PDF_INTERNAL_DOC__"
DOCUMENT_ARCHIVE_LABEL = "بایگانی اسناد"
DOCUMENT_EXECUTOR_LABEL = "سیستم"

COUNCIL_WORKGROUP_LABEL = "شورای مدرسه"


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════════════════
#  RESOLUTION
# ═══════════════════════════════════════════════════════════════════════════

class Resolution(db.Model):
    """
    A resolution recorded under a programs / council / workgroup node.

    ``is_approved`` False marks a provisional note (follow-up item) that is
    not yet a ratified resolution; notes carry a ``discussion_time``.
    """

    __tablename__ = "resolutions"

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    parent_id = db.Column(db.String(64), nullable=True, index=True)
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, default="")
    workgroup = db.Column(db.String(300), default="")
    grade = db.Column(db.String(50), nullable=True, index=True)
    lesson = db.Column(db.String(200), nullable=True)
    executor = db.Column(db.String(150), default="", index=True)
    images = db.Column(db.JSON, default=list)
    is_approved = db.Column(db.Boolean, default=True)

    needs_date = db.Column(db.Boolean, default=False)
    execution_date = db.Column(db.String(30), nullable=True)
    execution_term = db.Column(db.String(100), nullable=True)
    discussion_time = db.Column(db.String(200), nullable=True)

    # Lifecycle
    progress = db.Column(db.Integer, default=0)
    progress_before_claim = db.Column(db.Integer, nullable=True)
    executor_claim = db.Column(db.Boolean, default=False)
    executor_claim_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_completed = db.Column(db.Boolean, default=False)
    last_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reminder_type = db.Column(db.String(20), default="none")
    reminder_start_date = db.Column(db.String(10), nullable=True, comment="MM/DD")
    reminder_end_date = db.Column(db.String(10), nullable=True, comment="MM/DD")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "title": self.title,
            "description": self.description or "",
            "workgroup": self.workgroup or "",
            "grade": self.grade,
            "lesson": self.lesson,
            "executor": self.executor or "",
            "images": list(self.images or []),
            "is_approved": bool(self.is_approved),
            "needs_date": bool(self.needs_date),
            "execution_date": self.execution_date,
            "execution_term": self.execution_term,
            "discussion_time": self.discussion_time,
            "progress": self.progress or 0,
            "progress_before_claim": self.progress_before_claim,
            "executor_claim": bool(self.executor_claim),
            "executor_claim_date": _iso(self.executor_claim_date),
            "is_completed": bool(self.is_completed),
            "last_completed_at": _iso(self.last_completed_at),
            "reminder_type": self.reminder_type or "none",
            "reminder_start_date": self.reminder_start_date,
            "reminder_end_date": self.reminder_end_date,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Resolution {self.id} parent={self.parent_id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  WORKGROUP DOCUMENT
# ═══════════════════════════════════════════════════════════════════════════

class WorkgroupDocument(db.Model):
    """A file archived against a workgroup (meeting minutes, circulars...)."""

    __tablename__ = "workgroup_documents"

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    workgroup_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, default="")
    file_url = db.Column(db.String(1000), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "workgroup_id": self.workgroup_id,
            "title": self.title,
            "description": self.description or "",
            "file_url": self.file_url,
            "created_at": _iso(self.created_at),
        }
