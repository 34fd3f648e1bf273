"""Request ids, timing headers and the per-request access log line."""

import logging

import pytest

TIMING_LOGGER = "resolution_desk.middleware.timing"


@pytest.fixture()
def access_log(caplog):
    caplog.set_level(logging.DEBUG, logger=TIMING_LOGGER)
    return lambda: [r for r in caplog.records if r.name == TIMING_LOGGER]


class TestHeaders:
    def test_request_id_generated(self, client):
        res = client.get("/api/v1/health")
        assert len(res.headers["X-Request-ID"]) == 12
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"


class TestAccessLog:
    def test_write_logged_at_info_with_user(self, client, admin_user, auth_header, access_log):
        res = client.post("/api/v1/categories", headers=auth_header(admin_user),
                          json={"name": "جشن", "type": "programs"})
        assert res.status_code == 201
        (record,) = access_log()
        assert record.levelno == logging.INFO
        assert record.user_id == admin_user.id
        assert record.status == 201
        assert record.degraded is None

    def test_read_logged_at_debug(self, client, admin_user, auth_header, access_log):
        client.get("/api/v1/categories?type=programs", headers=auth_header(admin_user))
        (record,) = access_log()
        assert record.levelno == logging.DEBUG

    def test_health_not_logged(self, client, access_log):
        client.get("/api/v1/health")
        assert access_log() == []

    def test_offline_write_is_warning_tagged_degraded(self, client, admin_user, auth_header,
                                                      make_category, store_down, access_log):
        make_category("wg-1", "کارگروه آموزشی")
        headers = auth_header(admin_user)
        store_down()
        res = client.post("/api/v1/resolutions", headers=headers,
                          json={"parentId": "wg-1", "title": "بررسی", "executor": "معاون آموزش"})
        assert res.status_code == 503
        (record,) = access_log()
        assert record.levelno == logging.WARNING
        assert record.degraded is True
        assert record.getMessage().startswith("Write while offline")

    def test_slow_request_threshold_from_config(self, app, client, access_log, monkeypatch):
        monkeypatch.setitem(app.config, "SLOW_REQUEST_MS", -1)
        client.get("/api/v1/auth/me")
        (record,) = access_log()
        assert record.levelno == logging.WARNING
        assert record.getMessage().startswith("Slow request")
