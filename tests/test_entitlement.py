"""
tests/test_entitlement.py

Tier evaluation: PRO / Trial / Expired.
"""

import datetime as _dt

import pytest

from teleload.entitlement import Tier, describe, evaluate

from conftest import NOW, make_user

H = _dt.timedelta(hours=1)
D = _dt.timedelta(days=1)


class TestEvaluate:
    def test_fresh_user_is_on_trial(self):
        assert evaluate(make_user(trial_start=NOW - H), NOW) is Tier.TRIAL

    def test_trial_over_after_24h(self):
        assert evaluate(make_user(trial_start=NOW - 25 * H), NOW) is Tier.EXPIRED

    def test_trial_boundary_is_exclusive(self):
        assert evaluate(make_user(trial_start=NOW - 24 * H), NOW) is Tier.EXPIRED

    def test_pro_with_future_end(self):
        assert evaluate(make_user(is_pro=True, pro_end=NOW + D, trial_start=NOW - 30 * D), NOW) is Tier.PRO

    def test_pro_without_end_is_open_ended(self):
        assert evaluate(make_user(is_pro=True, pro_end=None, trial_start=NOW - 30 * D), NOW) is Tier.PRO

    def test_pro_past_end_is_expired(self):
        assert evaluate(make_user(is_pro=True, pro_end=NOW - H, trial_start=NOW - 30 * D), NOW) is Tier.EXPIRED

    def test_lapsed_pro_inside_trial_window_falls_back_to_trial(self):
        assert evaluate(make_user(is_pro=True, pro_end=NOW - H, trial_start=NOW - H), NOW) is Tier.TRIAL

    def test_pro_end_without_flag_is_not_pro(self):
        assert evaluate(make_user(is_pro=False, pro_end=NOW + D, trial_start=NOW - 30 * D), NOW) is Tier.EXPIRED

    def test_missing_trial_start_is_expired(self):
        assert evaluate(make_user(trial_start=None), NOW) is Tier.EXPIRED

    def test_timezone_aware_now_is_accepted(self):
        aware = NOW.replace(tzinfo=_dt.timezone.utc)
        assert evaluate(make_user(trial_start=NOW - H), aware) is Tier.TRIAL

    @pytest.mark.parametrize("hours_ago", [0, 1, 23, 24, 25, 100])
    def test_exactly_one_state(self, hours_ago):
        tier = evaluate(make_user(trial_start=NOW - hours_ago * H), NOW)
        assert [t for t in Tier if t is tier] == [tier]


class TestDescribe:
    def test_trial_until_is_trial_end(self):
        info = describe(make_user(trial_start=NOW - H), NOW)
        assert info.tier is Tier.TRIAL
        assert info.until == NOW + 23 * H
        assert info.has_access and not info.is_pro

    def test_expired_has_no_until(self):
        info = describe(make_user(trial_start=NOW - 48 * H), NOW)
        assert info.until is None
        assert not info.has_access

