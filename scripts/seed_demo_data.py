#!/usr/bin/env python3
"""
Resolution Desk — Demo Data Seed Script.

School: a single primary school with two workgroups, a programs tree and
council resolutions.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --append
    python scripts/seed_demo_data.py --verbose
"""

import argparse
import sys
from datetime import datetime, timezone

sys.path.insert(0, ".")

from resolution_desk import create_app
from resolution_desk.models import db
from resolution_desk.models.auth import CustomTitle, User, default_permissions
from resolution_desk.models.category import COUNCIL_ROOT_ID, PROGRAMS_ROOT_ID, Category
from resolution_desk.models.resolution import Resolution, WorkgroupDocument
from resolution_desk.services.connectivity import initialize_store
from resolution_desk.services.gateway import get_gateway
from resolution_desk.utils.crypto import hash_password

CATEGORIES = [
    # (id, parent_id, name, type)
    ("wg-edu", None, "کارگروه آموزشی", "workgroups"),
    ("wg-edu-math", "wg-edu", "ریاضی", "workgroups"),
    ("wg-culture", None, "کارگروه فرهنگی", "workgroups"),
    ("prog-ramadan", PROGRAMS_ROOT_ID, "برنامه‌های ماه رمضان", "programs"),
    ("prog-ramadan-quran", "prog-ramadan", "محفل قرآنی", "programs"),
    ("council-1405", COUNCIL_ROOT_ID, "جلسات ۱۴۰۵", "council"),
]

RESOLUTIONS = [
    {
        "id": "demo-res-1", "parent_id": "wg-edu", "title": "بررسی وضعیت کلاس پنجم",
        "description": "گزارش پیشرفت درسی دانش‌آموزان پایه پنجم", "workgroup": "کارگروه آموزشی",
        "grade": "پایه ۵", "lesson": "ریاضی", "executor": "معاون آموزش",
        "reminder_type": "monthly", "reminder_start_date": "01/01", "reminder_end_date": "01/10",
    },
    {
        "id": "demo-res-2", "parent_id": "wg-edu-math", "title": "آزمون هماهنگ ریاضی",
        "workgroup": "کارگروه آموزشی", "grade": "پایه ۶", "lesson": "ریاضی",
        "executor": "مسئول آموزش", "progress": 40, "needs_date": True, "execution_date": "1405/09/15",
    },
    {
        "id": "demo-res-3", "parent_id": "prog-ramadan-quran", "title": "برگزاری محفل انس با قرآن",
        "workgroup": "برنامه‌های مدرسه", "executor": "معاون پرورشی",
        "reminder_type": "yearly", "reminder_start_date": "03/01", "reminder_end_date": "03/30",
    },
    {
        "id": "demo-res-4", "parent_id": COUNCIL_ROOT_ID, "title": "تصویب تقویم اجرایی سال تحصیلی",
        "workgroup": "شورای مدرسه", "executor": "مدیر مجموعه",
        "is_completed": True, "executor_claim": True, "progress": 100,
    },
    {
        "id": "demo-note-1", "parent_id": "wg-culture", "title": "پیشنهاد اردوی فرهنگی",
        "workgroup": "کارگروه فرهنگی", "is_approved": False, "discussion_time": "جلسه بعد",
    },
]


def seed(append: bool = False, verbose: bool = False) -> None:
    gw = get_gateway()
    if not append:
        db.drop_all()
        db.create_all()
    initialize_store()

    now = datetime.now(timezone.utc)
    records = []
    for cid, parent_id, name, ctype in CATEGORIES:
        records.append(Category(id=cid, parent_id=parent_id, name=name, type=ctype))

    for data in RESOLUTIONS:
        res = Resolution(**{"images": [], "is_approved": True, "progress": 0, **data})
        if res.is_completed:
            res.executor_claim_date = now
            res.last_completed_at = now
        records.append(res)

    records.append(WorkgroupDocument(
        id="demo-doc-1", workgroup_id="wg-edu", title="صورتجلسه مهرماه",
        description="نسخه اسکن شده", file_url="/api/v1/uploads/general/demo.pdf",
    ))
    if "مسئول کتابخانه" not in {t.title for t in gw.get_custom_titles()}:
        records.append(CustomTitle(title="مسئول کتابخانه"))

    perms = default_permissions()
    perms["workgroup_specific"] = {"wg-edu": {"can_view": True, "can_edit": False}}
    records.append(User(
        id="demo-staff", username="staff", password_hash=hash_password("staff"),
        full_name="معلم نمونه", title="معاون آموزش", role="custom", permissions=perms,
    ))

    count = gw.save_all(records)
    if verbose:
        for rec in records:
            print(f"  + {type(rec).__name__}: {getattr(rec, 'id', None) or getattr(rec, 'title', '')}")
    print(f"Seeded {count} records.")


def main():
    parser = argparse.ArgumentParser(description="Seed Resolution Desk demo data")
    parser.add_argument("--append", action="store_true", help="keep existing rows")
    parser.add_argument("--verbose", action="store_true", help="list every seeded row")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        seed(append=args.append, verbose=args.verbose)


if __name__ == "__main__":
    main()
