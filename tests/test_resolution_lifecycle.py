"""
Resolution lifecycle tests.

Test blocks:
  1. Derived state
  2. Pure transitions (apply_transition)
  3. Yearly auto-reset projection
  4. transition_resolution: actors, persistence, failure rollback
"""

from datetime import date, datetime, timezone

import pytest

from resolution_desk.core.exceptions import (
    ConnectivityError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)
from resolution_desk.models.resolution import Resolution
from resolution_desk.services.gateway import get_gateway
from resolution_desk.services.permission import PermissionChecker
from resolution_desk.services.resolution_lifecycle import (
    STATE_CLAIMED,
    STATE_COMPLETED,
    STATE_IN_PROGRESS,
    STATE_PENDING,
    apply_transition,
    derive_state,
    get_available_transitions,
    project_resolution,
    stored_state,
    transition_resolution,
)

NOW = datetime(2026, 5, 10, 9, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _res(**fields):
    values = {
        "id": "r1", "parent_id": "wg-1", "title": "t", "executor": "معاون آموزش",
        "progress": 0, "executor_claim": False, "is_completed": False,
        "reminder_type": "none", "images": [], "is_approved": True,
    }
    values.update(fields)
    return Resolution(**values)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Derived state
# ═════════════════════════════════════════════════════════════════════════════

class TestDeriveState:
    @pytest.mark.parametrize("completed,claim,progress,expected", [
        (False, False, 0, STATE_PENDING),
        (False, False, 40, STATE_IN_PROGRESS),
        (False, False, 100, STATE_PENDING),
        (False, True, 100, STATE_CLAIMED),
        (True, True, 100, STATE_COMPLETED),
        (True, False, 0, STATE_COMPLETED),
    ])
    def test_derive(self, completed, claim, progress, expected):
        assert derive_state(completed, claim, progress) == expected


# ═════════════════════════════════════════════════════════════════════════════
# 2. Pure transitions
# ═════════════════════════════════════════════════════════════════════════════

class TestApplyTransition:
    def test_claim_sets_flag_date_and_full_progress(self):
        res = _res(progress=30)
        previous, new = apply_transition(res, "claim", now=NOW)
        assert (previous, new) == (STATE_IN_PROGRESS, STATE_CLAIMED)
        assert res.executor_claim is True
        assert res.executor_claim_date == NOW
        assert res.progress == 100

    def test_claim_then_reject_restores_progress_from_before_claim(self):
        res = _res(progress=40)
        apply_transition(res, "claim", now=NOW)
        assert res.progress == 100
        previous, new = apply_transition(res, "reject", now=NOW)
        assert previous == STATE_CLAIMED
        assert res.executor_claim is False
        assert res.is_completed is False
        assert res.progress == 40
        assert res.progress_before_claim is None
        assert new == STATE_IN_PROGRESS

    def test_reject_from_untouched_item_returns_to_pending(self):
        res = _res()
        apply_transition(res, "claim", now=NOW)
        _, new = apply_transition(res, "reject", now=NOW)
        assert res.progress == 0
        assert new == STATE_PENDING

    def test_reject_without_recorded_progress_keeps_current(self):
        res = _res(executor_claim=True, progress=100)
        apply_transition(res, "reject", now=NOW)
        assert res.progress == 100
        assert res.executor_claim is False

    def test_unclaim_withdraws_claim_and_restores_progress(self):
        res = _res(progress=70)
        apply_transition(res, "claim", now=NOW)
        previous, new = apply_transition(res, "unclaim", now=NOW)
        assert (previous, new) == (STATE_CLAIMED, STATE_IN_PROGRESS)
        assert res.executor_claim is False
        assert res.progress == 70

    @pytest.mark.parametrize("fields", [
        {},
        {"progress": 50},
        {"executor_claim": True, "is_completed": True, "progress": 100},
    ])
    def test_unclaim_only_from_claimed(self, fields):
        res = _res(**fields)
        with pytest.raises(TransitionError):
            apply_transition(res, "unclaim", now=NOW)

    def test_approve_keeps_claim(self):
        res = _res(executor_claim=True, progress=100)
        apply_transition(res, "approve", now=NOW)
        assert res.is_completed is True
        assert res.executor_claim is True
        assert res.last_completed_at == NOW

    def test_ratify_from_pending_at_full_progress(self):
        res = _res(progress=100)
        previous, new = apply_transition(res, "ratify", now=NOW)
        assert (previous, new) == (STATE_PENDING, STATE_COMPLETED)
        assert res.executor_claim is True
        assert res.is_completed is True
        assert res.executor_claim_date == NOW
        assert res.last_completed_at == NOW

    def test_ratify_requires_full_progress(self):
        with pytest.raises(TransitionError):
            apply_transition(_res(progress=60), "ratify", now=NOW)

    def test_revoke_keeps_claim_by_default(self):
        res = _res(executor_claim=True, is_completed=True, progress=100)
        previous, new = apply_transition(res, "revoke", now=NOW)
        assert res.is_completed is False
        assert res.executor_claim is True
        assert (previous, new) == (STATE_COMPLETED, STATE_CLAIMED)

    def test_revoke_can_clear_claim(self):
        res = _res(executor_claim=True, is_completed=True, progress=100)
        _, new = apply_transition(res, "revoke", now=NOW, revoke_clears_claim=True)
        assert res.executor_claim is False
        assert new == STATE_PENDING

    def test_set_progress_reaching_100_does_not_complete(self):
        res = _res()
        apply_transition(res, "set_progress", progress=100, now=NOW)
        assert res.progress == 100
        assert res.is_completed is False

    @pytest.mark.parametrize("value", [-1, 101, "50", 12.5, None, True])
    def test_set_progress_rejects_invalid(self, value):
        res = _res(progress=20)
        with pytest.raises(ValidationError):
            apply_transition(res, "set_progress", progress=value, now=NOW)
        assert res.progress == 20

    def test_wrong_state_raises(self):
        with pytest.raises(TransitionError):
            apply_transition(_res(), "approve", now=NOW)


# ═════════════════════════════════════════════════════════════════════════════
# 3. Yearly auto-reset
# ═════════════════════════════════════════════════════════════════════════════

class TestYearlyReset:
    def _completed_last_year(self, **fields):
        last_year = datetime(2025, 3, 1, tzinfo=timezone.utc)
        values = dict(
            executor_claim=True, is_completed=True, progress=100,
            executor_claim_date=last_year, last_completed_at=last_year,
            reminder_type="yearly", reminder_start_date="01/01", reminder_end_date="12/31",
        )
        values.update(fields)
        return _res(**values)

    def test_completed_last_year_presented_pending(self):
        res = self._completed_last_year()
        view = project_resolution(res, TODAY)
        assert view["state"] == STATE_PENDING
        assert view["cycle_reset"] is True
        assert view["is_completed"] is False
        assert view["executor_claim"] is False
        # stored row untouched
        assert res.is_completed is True
        assert res.executor_claim is True
        assert stored_state(res) == STATE_COMPLETED

    def test_same_year_not_reset(self):
        this_year = datetime(2026, 1, 5, tzinfo=timezone.utc)
        res = self._completed_last_year(executor_claim_date=this_year, last_completed_at=this_year)
        assert project_resolution(res, TODAY)["state"] == STATE_COMPLETED

    def test_window_closed_not_reset(self):
        res = self._completed_last_year(reminder_start_date="09/01", reminder_end_date="09/30")
        assert project_resolution(res, TODAY)["state"] == STATE_COMPLETED

    def test_claim_year_falls_back_to_last_completed(self):
        res = self._completed_last_year(executor_claim_date=None)
        assert project_resolution(res, TODAY)["cycle_reset"] is True

    def test_monthly_type_never_resets(self):
        res = self._completed_last_year(reminder_type="monthly",
                                        reminder_start_date="01/01", reminder_end_date="01/31")
        view = project_resolution(res, TODAY)
        assert view["state"] == STATE_COMPLETED
        assert view["reminder_active"] is True


# ═════════════════════════════════════════════════════════════════════════════
# 4. transition_resolution (service entry point)
# ═════════════════════════════════════════════════════════════════════════════

class TestTransitionService:
    @pytest.fixture()
    def setup(self, make_category, make_resolution, make_user):
        make_category("wg-1", "کارگروه آموزشی")
        make_resolution("r1", "wg-1", executor="معاون آموزش")
        executor = make_user(title="معاون آموزش",
                             workgroup_specific={"wg-1": {"can_view": True, "can_edit": False}})
        editor = make_user(title="مدیر مجموعه",
                           workgroup_specific={"wg-1": {"can_view": True, "can_edit": True}})
        outsider = make_user(title="مسئول آموزش")
        return {"executor": executor, "editor": editor, "outsider": outsider}

    def test_executor_claims_and_editor_approves(self, setup):
        result = transition_resolution("r1", "claim", setup["executor"], now=NOW)
        assert result["previous_state"] == STATE_PENDING
        assert result["new_state"] == STATE_CLAIMED
        result = transition_resolution("r1", "approve", setup["editor"], now=NOW)
        assert result["new_state"] == STATE_COMPLETED
        stored = get_gateway().get_resolution("r1")
        assert stored.is_completed is True
        assert stored.executor_claim is True

    def test_executor_cannot_approve(self, setup):
        transition_resolution("r1", "claim", setup["executor"], now=NOW)
        with pytest.raises(PermissionDenied):
            transition_resolution("r1", "approve", setup["executor"], now=NOW)

    def test_outsider_cannot_claim(self, setup):
        with pytest.raises(PermissionDenied):
            transition_resolution("r1", "claim", setup["outsider"], now=NOW)

    def test_executor_unclaims_own_claim(self, setup):
        transition_resolution("r1", "set_progress", setup["editor"], progress=25, now=NOW)
        transition_resolution("r1", "claim", setup["executor"], now=NOW)
        result = transition_resolution("r1", "unclaim", setup["executor"], now=NOW)
        assert result["previous_state"] == STATE_CLAIMED
        assert result["new_state"] == STATE_IN_PROGRESS
        stored = get_gateway().get_resolution("r1")
        assert stored.executor_claim is False
        assert stored.progress == 25

    def test_unclaim_unclaimed_item_rejected(self, setup):
        with pytest.raises(TransitionError):
            transition_resolution("r1", "unclaim", setup["executor"], now=NOW)

    def test_outsider_cannot_unclaim(self, setup):
        transition_resolution("r1", "claim", setup["executor"], now=NOW)
        with pytest.raises(PermissionDenied):
            transition_resolution("r1", "unclaim", setup["outsider"], now=NOW)
        assert get_gateway().get_resolution("r1").executor_claim is True

    def test_editor_reject_restores_progress(self, setup):
        transition_resolution("r1", "set_progress", setup["editor"], progress=60, now=NOW)
        transition_resolution("r1", "claim", setup["executor"], now=NOW)
        result = transition_resolution("r1", "reject", setup["editor"], now=NOW)
        assert result["resolution"]["progress"] == 60
        assert get_gateway().get_resolution("r1").progress == 60

    def test_executor_cannot_set_progress(self, setup):
        with pytest.raises(PermissionDenied):
            transition_resolution("r1", "set_progress", setup["executor"], progress=50, now=NOW)

    def test_unknown_action(self, setup):
        with pytest.raises(TransitionError):
            transition_resolution("r1", "teleport", setup["editor"], now=NOW)

    def test_invalid_progress_leaves_row_unchanged(self, setup):
        transition_resolution("r1", "set_progress", setup["editor"], progress=30, now=NOW)
        with pytest.raises(ValidationError):
            transition_resolution("r1", "set_progress", setup["editor"], progress=130, now=NOW)
        assert get_gateway().get_resolution("r1").progress == 30

    def test_store_failure_keeps_previous_state(self, setup, monkeypatch):
        from resolution_desk.models import db
        from sqlalchemy.exc import OperationalError

        def _boom():
            raise OperationalError("UPDATE", {}, Exception("connection lost"))

        monkeypatch.setattr(db.session, "commit", _boom)
        with pytest.raises(ConnectivityError):
            transition_resolution("r1", "claim", setup["executor"], now=NOW)
        monkeypatch.undo()
        stored = get_gateway().get_resolution("r1")
        assert stored.executor_claim is False
        assert get_gateway().is_online is False

    def test_pending_reset_materialized_on_interaction(self, setup, make_resolution):
        last_year = datetime(2025, 2, 1, tzinfo=timezone.utc)
        make_resolution(
            "r-yearly", "wg-1", executor="معاون آموزش",
            executor_claim=True, is_completed=True, progress=100,
            executor_claim_date=last_year, last_completed_at=last_year,
            reminder_type="yearly", reminder_start_date="01/01", reminder_end_date="12/31",
        )
        result = transition_resolution("r-yearly", "claim", setup["executor"], now=NOW, today=TODAY)
        assert result["previous_state"] == STATE_PENDING
        assert result["new_state"] == STATE_CLAIMED
        stored = get_gateway().get_resolution("r-yearly")
        assert stored.is_completed is False
        assert stored.executor_claim is True

    def test_available_actions(self, setup):
        gw = get_gateway()
        res = gw.get_resolution("r1")
        executor_checker = PermissionChecker(setup["executor"], gw.get_categories())
        editor_checker = PermissionChecker(setup["editor"], gw.get_categories())
        assert get_available_transitions(res, executor_checker, TODAY) == ["claim"]
        assert set(get_available_transitions(res, editor_checker, TODAY)) == {"claim", "set_progress"}
