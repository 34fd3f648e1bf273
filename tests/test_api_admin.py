"""
Admin API tests.

Test blocks:
  1. Admin gate
  2. User access + activation
  3. Root workgroups
  4. Executor titles
  5. Backup export
"""

import pytest

from resolution_desk.models.auth import DEFAULT_TITLES
from resolution_desk.services.gateway import get_gateway


@pytest.fixture()
def admin_headers(admin_user, auth_header):
    return auth_header(admin_user)


@pytest.fixture()
def member(make_user):
    return make_user()


# ═════════════════════════════════════════════════════════════════════════════
# 1. Gate
# ═════════════════════════════════════════════════════════════════════════════

class TestAdminGate:
    @pytest.mark.parametrize("method,url", [
        ("get", "/api/v1/admin/users"),
        ("get", "/api/v1/admin/workgroups"),
        ("post", "/api/v1/admin/titles"),
        ("get", "/api/v1/admin/backup"),
    ])
    def test_custom_user_forbidden(self, client, member, auth_header, method, url):
        res = getattr(client, method)(url, headers=auth_header(member), json={})
        assert res.status_code == 403

    def test_anonymous(self, client):
        assert client.get("/api/v1/admin/users").status_code == 401


# ═════════════════════════════════════════════════════════════════════════════
# 2. Users
# ═════════════════════════════════════════════════════════════════════════════

class TestUsers:
    def test_list(self, client, admin_headers, member):
        res = client.get("/api/v1/admin/users", headers=admin_headers)
        assert res.status_code == 200
        assert {u["id"] for u in res.get_json()} == {"admin-1", member.id}

    def test_update_access(self, client, admin_headers, member):
        res = client.put(f"/api/v1/admin/users/{member.id}/access", headers=admin_headers, json={
            "title": "مسئول آموزش",
            "permissions": {
                "programs": {"canView": True, "canEdit": True},
                "workgroupSpecific": {"wg-1": {"canView": True, "canEdit": True}},
            },
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["title"] == "مسئول آموزش"
        assert data["permissions"]["programs"]["can_edit"] is True
        assert data["permissions"]["workgroup_specific"]["wg-1"] == {"can_view": True, "can_edit": True}

    def test_update_access_unknown_role(self, client, admin_headers, member):
        res = client.put(f"/api/v1/admin/users/{member.id}/access", headers=admin_headers,
                         json={"role": "superuser"})
        assert res.status_code == 422

    def test_update_access_missing_user(self, client, admin_headers):
        res = client.put("/api/v1/admin/users/ghost/access", headers=admin_headers, json={})
        assert res.status_code == 404

    def test_deactivate(self, client, admin_headers, member):
        res = client.put(f"/api/v1/admin/users/{member.id}/active", headers=admin_headers,
                         json={"isActive": False})
        assert res.status_code == 200
        assert res.get_json()["is_active"] is False

    def test_bootstrap_admin_cannot_be_deactivated(self, client, admin_headers):
        res = client.put("/api/v1/admin/users/admin-1/active", headers=admin_headers,
                         json={"is_active": False})
        assert res.status_code == 422

    def test_active_flag_required(self, client, admin_headers, member):
        res = client.put(f"/api/v1/admin/users/{member.id}/active", headers=admin_headers, json={})
        assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# 3. Workgroups
# ═════════════════════════════════════════════════════════════════════════════

class TestWorkgroups:
    def _create(self, client, headers, name):
        return client.post("/api/v1/admin/workgroups", headers=headers, json={"name": name})

    def test_create_prefixes_name(self, client, admin_headers):
        res = self._create(client, admin_headers, "فرهنگی")
        assert res.status_code == 201
        data = res.get_json()
        assert data["name"] == "کارگروه فرهنگی"
        assert data["id"].startswith("wg-")
        assert data["parent_id"] is None

    def test_duplicate_name(self, client, admin_headers):
        self._create(client, admin_headers, "فرهنگی")
        assert self._create(client, admin_headers, "کارگروه فرهنگی").status_code == 409

    def test_list_only_roots(self, client, admin_headers, make_category):
        make_category("wg-1", "کارگروه آموزشی")
        make_category("wg-1-math", "ریاضی", parent_id="wg-1")
        make_category("p-1", "برنامه", "programs", "programs-root")
        res = client.get("/api/v1/admin/workgroups", headers=admin_headers)
        assert [c["id"] for c in res.get_json()] == ["wg-1"]

    def test_rename(self, client, admin_headers):
        wid = self._create(client, admin_headers, "فرهنگی").get_json()["id"]
        res = client.put(f"/api/v1/admin/workgroups/{wid}", headers=admin_headers,
                         json={"name": "هنری"})
        assert res.status_code == 200
        assert res.get_json()["name"] == "کارگروه هنری"

    def test_rename_requires_name(self, client, admin_headers):
        wid = self._create(client, admin_headers, "فرهنگی").get_json()["id"]
        res = client.put(f"/api/v1/admin/workgroups/{wid}", headers=admin_headers, json={"name": " "})
        assert res.status_code == 422

    def test_sub_workgroup_is_not_managed_here(self, client, admin_headers, make_category):
        make_category("wg-1", "کارگروه آموزشی")
        make_category("wg-1-math", "ریاضی", parent_id="wg-1")
        res = client.put("/api/v1/admin/workgroups/wg-1-math", headers=admin_headers,
                         json={"name": "هندسه"})
        assert res.status_code == 404

    def test_delete_cascades(self, client, admin_headers, make_category, make_resolution):
        make_category("wg-1", "کارگروه آموزشی")
        make_category("wg-1-math", "ریاضی", parent_id="wg-1")
        make_resolution("r1", "wg-1-math")
        res = client.delete("/api/v1/admin/workgroups/wg-1", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["deleted_categories"] == ["wg-1", "wg-1-math"]
        assert data["deleted_resolutions"] == 1
        assert get_gateway().get_resolutions() == []


# ═════════════════════════════════════════════════════════════════════════════
# 4. Titles
# ═════════════════════════════════════════════════════════════════════════════

class TestTitles:
    def test_crud(self, client, admin_headers):
        created = client.post("/api/v1/admin/titles", headers=admin_headers,
                              json={"title": "مسئول کتابخانه"})
        assert created.status_code == 201
        tid = created.get_json()["id"]

        renamed = client.put(f"/api/v1/admin/titles/{tid}", headers=admin_headers,
                             json={"title": "مسئول کارگاه"})
        assert renamed.get_json()["title"] == "مسئول کارگاه"

        listed = client.get("/api/v1/admin/titles", headers=admin_headers).get_json()
        assert [t["title"] for t in listed] == ["مسئول کارگاه"]

        assert client.delete(f"/api/v1/admin/titles/{tid}", headers=admin_headers).status_code == 200
        assert client.get("/api/v1/admin/titles", headers=admin_headers).get_json() == []

    def test_duplicate(self, client, admin_headers):
        client.post("/api/v1/admin/titles", headers=admin_headers, json={"title": "مسئول کتابخانه"})
        res = client.post("/api/v1/admin/titles", headers=admin_headers,
                          json={"title": "مسئول کتابخانه"})
        assert res.status_code == 409

    def test_blank(self, client, admin_headers):
        assert client.post("/api/v1/admin/titles", headers=admin_headers,
                           json={"title": ""}).status_code == 422

    def test_missing(self, client, admin_headers):
        assert client.delete("/api/v1/admin/titles/999", headers=admin_headers).status_code == 404

    def test_assignable_titles_for_any_user(self, client, admin_headers, member, auth_header):
        client.post("/api/v1/admin/titles", headers=admin_headers, json={"title": "مسئول کتابخانه"})
        res = client.get("/api/v1/titles", headers=auth_header(member))
        assert res.status_code == 200
        assert res.get_json() == DEFAULT_TITLES + ["مسئول کتابخانه"]


# ═════════════════════════════════════════════════════════════════════════════
# 5. Backup
# ═════════════════════════════════════════════════════════════════════════════

class TestBackup:
    def test_export(self, client, admin_headers, make_category, make_resolution):
        make_category("wg-1", "کارگروه آموزشی")
        make_resolution("r1", "wg-1")
        res = client.get("/api/v1/admin/backup", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["format"] == "canonical"
        assert [r["id"] for r in data["resolutions"]] == ["r1"]
        assert all(u["password"] == "***" for u in data["users"])

    def test_legacy_export(self, client, admin_headers):
        res = client.get("/api/v1/admin/backup?legacy=1", headers=admin_headers)
        assert res.get_json()["format"] == "legacy"
