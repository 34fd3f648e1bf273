"""
Backup export / legacy import tests.

Test blocks:
  1. Legacy import (camelCase rows, integer roles, sentinel documents)
  2. Export (password masking, legacy format)
  3. CLI command
"""

import json

import pytest

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.models.auth import ROLE_ADMIN
from resolution_desk.models.resolution import PDF_MARKER
from resolution_desk.services import backup_service, user_service
from resolution_desk.services.gateway import get_gateway

LEGACY_PAYLOAD = {
    "categories": [
        {"id": "wg-1", "parentId": None, "name": "کارگروه آموزشی", "type": "workgroups"},
        {"id": "bad-cat", "name": "", "type": "workgroups"},
    ],
    "resolutions": [
        {
            "id": "r1", "parentId": "wg-1", "title": "بررسی وضعیت کلاس پنجم",
            "isApproved": True, "executorClaim": True, "executorClaimDate": "2025-03-01T08:00:00Z",
            "progress": "100", "reminderType": "yearly",
            "reminderStartDate": "03/01", "reminderEndDate": "03/30",
        },
        {"id": "r2", "parent_id": "wg-1", "title": "بیش از حد", "progress": 150},
        {
            "id": "d1", "parentId": "wg-1", "title": "صورتجلسه", "lesson": PDF_MARKER,
            "images": ["https://files/minutes.pdf"], "workgroup": "بایگانی اسناد",
        },
    ],
    "users": [
        {"id": "u1", "username": "Moallem", "password": "secret1", "role": 2,
         "fullName": "معلم", "title": "معاون آموزش",
         "permissions": {"workgroupSpecific": {"wg-1": {"canView": True, "canEdit": False}}}},
    ],
    "custom_titles": [{"title": "مسئول کتابخانه"}],
}


# ═════════════════════════════════════════════════════════════════════════════
# 1. Import
# ═════════════════════════════════════════════════════════════════════════════

class TestImport:
    def test_legacy_payload(self):
        result = backup_service.import_backup(json.loads(json.dumps(LEGACY_PAYLOAD)))
        assert result["categories"] == 1
        assert result["resolutions"] == 1
        assert result["workgroup_documents"] == 1
        assert result["users"] == 1
        assert result["custom_titles"] == 1
        assert len(result["skipped"]) == 2

        gw = get_gateway()
        res = gw.get_resolution("r1")
        assert res.executor_claim is True
        assert res.progress == 100
        [doc] = gw.get_workgroup_documents("wg-1")
        assert doc.id == "d1"
        assert doc.file_url == "https://files/minutes.pdf"
        assert [r.id for r in gw.get_resolutions()] == ["r1"]

    def test_imported_user_can_log_in(self):
        backup_service.import_backup(json.loads(json.dumps(LEGACY_PAYLOAD)))
        user = user_service.authenticate("moallem", "secret1")
        assert user.id == "u1"
        assert user.permissions["workgroup_specific"]["wg-1"]["can_view"] is True

    def test_rejects_non_object(self):
        with pytest.raises(ValidationError):
            backup_service.import_backup(["not", "an", "object"])

    def test_existing_titles_skipped(self):
        get_gateway().save_custom_title("مسئول کتابخانه")
        result = backup_service.import_backup({"custom_titles": [{"title": "مسئول کتابخانه"}]})
        assert result["custom_titles"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# 2. Export
# ═════════════════════════════════════════════════════════════════════════════

class TestExport:
    def test_passwords_masked(self):
        payload = backup_service.build_backup()
        assert payload["format"] == "canonical"
        assert {u["password"] for u in payload["users"]} == {backup_service.PASSWORD_MASK}
        assert any(u["role"] == ROLE_ADMIN for u in payload["users"])

    def test_masked_reimport_keeps_password(self):
        payload = backup_service.build_backup()
        backup_service.import_backup(payload)
        assert user_service.authenticate("admin", "admin-pass").id == "admin-1"

    def test_legacy_format_writes_sentinel_rows(self):
        backup_service.import_backup(json.loads(json.dumps(LEGACY_PAYLOAD)))
        payload = backup_service.build_backup(legacy=True)
        assert payload["workgroup_documents"] == []
        sentinel = [r for r in payload["resolutions"] if r.get("lesson") == PDF_MARKER]
        assert [r["id"] for r in sentinel] == ["d1"]


# ═════════════════════════════════════════════════════════════════════════════
# 3. CLI
# ═════════════════════════════════════════════════════════════════════════════

class TestCli:
    def test_import_legacy_command(self, app, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps(LEGACY_PAYLOAD, ensure_ascii=False), encoding="utf-8")
        result = app.test_cli_runner().invoke(args=["import-legacy", str(path)])
        assert result.exit_code == 0, result.output
        assert "resolutions=1" in result.output
        assert get_gateway().get_resolution("r1").title == "بررسی وضعیت کلاس پنجم"
