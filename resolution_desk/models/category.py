"""
Category model — nodes of the three independent trees.

Trees:
    programs    → rooted at the synthetic ``programs-root``
    council     → rooted at the synthetic ``council-root``
    workgroups  → every node with parent_id NULL is a workgroup root

``by-grade`` is not a category type: it is a virtual view computed from
resolution fields (see resolution_service).
"""

import uuid
from datetime import datetime, timezone

from resolution_desk.models import db


CATEGORY_TYPES = {"programs", "council", "workgroups"}

PROGRAMS_ROOT_ID = "programs-root"
COUNCIL_ROOT_ID = "council-root"
ROOT_IDS = {PROGRAMS_ROOT_ID, COUNCIL_ROOT_ID}

# Synthetic roots upserted on every startup; they can never be deleted.
SYNTHETIC_ROOTS = {
    PROGRAMS_ROOT_ID: {"name": "ریشه برنامه‌ها", "type": "programs"},
    COUNCIL_ROOT_ID: {"name": "ریشه مصوبات شورا", "type": "council"},
}

# Section → its synthetic root (workgroups have none)
SECTION_ROOTS = {"programs": PROGRAMS_ROOT_ID, "council": COUNCIL_ROOT_ID}

WORKGROUP_NAME_PREFIX = "کارگروه"


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    parent_id = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("type", "parent_id", "name", name="uq_category_type_parent_name"),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_synthetic_root(self) -> bool:
        return self.id in ROOT_IDS

    def to_dict(self):
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "name": self.name,
            "type": self.type,
        }

    def __repr__(self):
        return f"<Category {self.id} type={self.type}>"
