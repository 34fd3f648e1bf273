"""
Dashboard tests.

Test blocks:
  1. Statistics (pure)
  2. My tasks + reminders
  3. Workgroup access walkthrough over HTTP
"""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from resolution_desk.models.category import COUNCIL_ROOT_ID, PROGRAMS_ROOT_ID
from resolution_desk.models.resolution import COUNCIL_WORKGROUP_LABEL
from resolution_desk.services import dashboard_service

TODAY = date(2026, 5, 10)
TITLE = "معاون آموزش"


def _cat(cid, ctype, parent_id=None):
    return SimpleNamespace(id=cid, type=ctype, parent_id=parent_id)


def _res(parent_id, workgroup="", is_approved=True):
    return SimpleNamespace(parent_id=parent_id, workgroup=workgroup, is_approved=is_approved)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Stats
# ═════════════════════════════════════════════════════════════════════════════

class TestStats:
    def test_compute_stats(self):
        categories = [
            _cat("wg-1", "workgroups"),
            _cat("wg-1-a", "workgroups", "wg-1"),
            _cat("p-1", "programs", PROGRAMS_ROOT_ID),
        ]
        resolutions = [
            _res("wg-1"),
            _res("wg-1-a"),
            _res(COUNCIL_ROOT_ID),
            _res("p-1"),
            _res(PROGRAMS_ROOT_ID, is_approved=False),
            _res("wg-1", workgroup=COUNCIL_WORKGROUP_LABEL),
        ]
        assert dashboard_service.compute_stats(resolutions, categories) == {
            "workgroup_resolutions": 3,
            "council_resolutions": 2,
            "program_resolutions": 2,
            "workgroups": 1,
            "notes": 1,
        }

    def test_empty(self):
        assert set(dashboard_service.compute_stats([], []).values()) == {0}


# ═════════════════════════════════════════════════════════════════════════════
# 2. Tasks + reminders
# ═════════════════════════════════════════════════════════════════════════════

class TestMyTasks:
    @pytest.fixture()
    def user(self, make_category, make_resolution, make_user):
        last_year = datetime(2025, 5, 3, tzinfo=timezone.utc)
        this_year = datetime(2026, 5, 2, tzinfo=timezone.utc)
        make_category("wg-1", "کارگروه آموزشی")
        make_resolution("r1", "wg-1", executor=TITLE,
                        reminder_type="monthly", reminder_start_date="01/05", reminder_end_date="01/15")
        make_resolution("r2", "wg-1", executor=TITLE, executor_claim=True, progress=100)
        make_resolution("r3", "wg-1", executor=TITLE, executor_claim=True, is_completed=True,
                        progress=100, executor_claim_date=this_year, last_completed_at=this_year,
                        reminder_type="yearly", reminder_start_date="05/01", reminder_end_date="05/20")
        make_resolution("r4", "wg-1", executor="مسئول آموزش")
        make_resolution("n1", "wg-1", executor=TITLE, is_approved=False)
        make_resolution("r5", "wg-1", executor=TITLE, executor_claim=True, is_completed=True,
                        progress=100, executor_claim_date=last_year, last_completed_at=last_year,
                        reminder_type="yearly", reminder_start_date="05/01", reminder_end_date="05/31")
        return make_user(title=TITLE)

    def test_buckets(self, user):
        tasks = dashboard_service.my_tasks(user, TODAY)
        assert {r["id"] for r in tasks["pending"]} == {"r1", "r5"}
        assert [r["id"] for r in tasks["claimed"]] == ["r2"]
        assert [r["id"] for r in tasks["completed"]] == ["r3"]

    def test_yearly_item_presented_reset(self, user):
        [r5] = [r for r in dashboard_service.my_tasks(user, TODAY)["pending"] if r["id"] == "r5"]
        assert r5["cycle_reset"] is True
        assert r5["progress"] == 0

    def test_reminders_ignore_completion(self, user):
        ids = {r["id"] for r in dashboard_service.active_reminders(user, TODAY)}
        assert ids == {"r1", "r3", "r5"}

    def test_reminders_outside_window(self, user):
        assert dashboard_service.active_reminders(user, date(2026, 8, 20)) == []

    def test_user_without_title_has_no_tasks(self, make_user):
        user = make_user(title="")
        assert dashboard_service.my_tasks(user, TODAY) == {"pending": [], "claimed": [], "completed": []}

    def test_dashboard_endpoint(self, client, user, auth_header):
        res = client.get("/api/v1/dashboard", headers=auth_header(user))
        assert res.status_code == 200
        data = res.get_json()
        assert set(data) == {"stats", "tasks", "reminders", "is_online"}
        assert data["is_online"] is True
        assert data["stats"]["notes"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# 3. Walkthrough
# ═════════════════════════════════════════════════════════════════════════════

class TestWorkgroupWalkthrough:
    """Admin grants view-only access; the executor claims; an editor approves."""

    def test_view_only_executor_flow(self, client, admin_user, make_user, auth_header):
        admin = auth_header(admin_user)

        wid = client.post("/api/v1/admin/workgroups", headers=admin,
                          json={"name": "آموزشی"}).get_json()["id"]

        member = make_user(title=TITLE)
        res = client.put(f"/api/v1/admin/users/{member.id}/access", headers=admin, json={
            "permissions": {"workgroupSpecific": {wid: {"canView": True, "canEdit": False}}},
        })
        assert res.status_code == 200
        mine = auth_header(member)

        listed = client.get("/api/v1/categories?type=workgroups", headers=mine).get_json()
        assert [(c["id"], c["can_open"], c["can_edit"]) for c in listed] == [(wid, True, False)]

        rid = client.post("/api/v1/resolutions", headers=admin, json={
            "parent_id": wid, "title": "بررسی وضعیت کلاس پنجم", "executor": TITLE,
        }).get_json()["id"]

        assert client.get(f"/api/v1/categories/{wid}/resolutions", headers=mine).status_code == 200
        assert client.get(f"/api/v1/resolutions/{rid}", headers=mine).status_code == 200
        assert client.put(f"/api/v1/resolutions/{rid}", headers=mine,
                          json={"title": "x"}).status_code == 403

        tasks = client.get("/api/v1/dashboard/tasks", headers=mine).get_json()
        assert [r["id"] for r in tasks["pending"]] == [rid]

        claimed = client.post(f"/api/v1/resolutions/{rid}/transition", headers=mine,
                              json={"action": "claim"})
        assert claimed.status_code == 200
        tasks = client.get("/api/v1/dashboard/tasks", headers=mine).get_json()
        assert [r["id"] for r in tasks["claimed"]] == [rid]
        assert tasks["completed"] == []

        editor = make_user(title="مسئول آموزش",
                           workgroup_specific={wid: {"can_view": True, "can_edit": True}})
        approved = client.post(f"/api/v1/resolutions/{rid}/transition",
                               headers=auth_header(editor), json={"action": "approve"})
        assert approved.get_json()["new_state"] == "completed"

        tasks = client.get("/api/v1/dashboard/tasks", headers=mine).get_json()
        assert [r["id"] for r in tasks["completed"]] == [rid]
