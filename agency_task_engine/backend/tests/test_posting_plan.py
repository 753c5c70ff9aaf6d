# backend/tests/test_posting_plan.py
from __future__ import annotations

from datetime import datetime

from taskengine.domain import cadence
from taskengine.domain.cadence import calculate_task_due_date
from taskengine.domain.posting_plan import (
    CAT_BLOG_POSTING,
    CAT_SOCIAL_ACTIVITY,
    CAT_SOCIAL_COMMUNICATION,
    SourceTask,
    plan_posting_tasks,
    resolve_category,
    resolve_frequency,
)

ANCHOR = datetime(2024, 1, 1, 9, 0)  # Monday


def _sources():
    return [
        SourceTask(task_id=1, name="Facebook - 1", asset_type="social_site", asset_id=10, required_frequency=2, default_frequency=4),
        SourceTask(task_id=2, name="Medium", asset_type="web2_site", asset_id=20, default_frequency=3, priority="high"),
    ]


def test_resolve_frequency_prefers_required_then_default():
    assert resolve_frequency(2, 4) == 2
    assert resolve_frequency(None, 4) == 4
    assert resolve_frequency(0, 2.7) == 2
    assert resolve_frequency(-1, None) == 1
    assert resolve_frequency("x", float("nan")) == 1


def test_resolve_category():
    assert resolve_category("web2_site") == CAT_BLOG_POSTING
    assert resolve_category("social_site") == CAT_SOCIAL_ACTIVITY
    assert resolve_category("other_asset") == CAT_SOCIAL_ACTIVITY
    assert resolve_category(None) == CAT_SOCIAL_ACTIVITY


def test_plan_expands_copies_with_cycle_due_dates():
    plan = plan_posting_tasks(_sources(), anchor=ANCHOR, months=1)
    by_name = {i.name: i for i in plan.items}

    assert sorted(by_name) == sorted(
        [
            "Facebook -1",
            "Facebook -2",
            "Medium -1",
            "Medium -2",
            "Medium -3",
            "Facebook - Social Communication",
        ]
    )
    assert by_name["Facebook -1"].due_date == datetime(2024, 1, 15, 9, 0)
    assert by_name["Facebook -2"].due_date == datetime(2024, 1, 22, 9, 0)
    assert by_name["Medium -3"].due_date == datetime(2024, 1, 29, 9, 0)
    assert by_name["Medium -1"].category == CAT_BLOG_POSTING
    assert by_name["Facebook -2"].category == CAT_SOCIAL_ACTIVITY

    sc = by_name["Facebook - Social Communication"]
    assert sc.category == CAT_SOCIAL_COMMUNICATION
    # due with the last Facebook copy
    assert sc.due_date == by_name["Facebook -2"].due_date
    assert plan.skipped == 0 and plan.clamped == 0
    assert plan.last_due_date == datetime(2024, 1, 29, 9, 0)


def test_plan_months_multiply_copies_and_renewal_mode():
    plan = plan_posting_tasks(_sources()[:1], anchor=ANCHOR, months=3, mode="renewal")
    copies = [i for i in plan.items if i.category == CAT_SOCIAL_ACTIVITY]
    assert len(copies) == 6
    assert copies[0].due_date == datetime(2024, 1, 2, 9, 0)
    assert copies[1].due_date == datetime(2024, 1, 11, 9, 0)


def test_plan_skips_existing_names():
    plan = plan_posting_tasks(
        _sources(),
        anchor=ANCHOR,
        months=1,
        existing_names=["Facebook -1", "Facebook - Social Communication"],
    )
    names = {i.name for i in plan.items}
    assert "Facebook -1" not in names
    assert "Facebook - Social Communication" not in names
    assert plan.skipped == 2
    assert len(plan.items) == 4


def test_plan_clamps_to_contract_end():
    plan = plan_posting_tasks(_sources(), anchor=ANCHOR, months=1, end=datetime(2024, 1, 22, 9, 0))
    names = {i.name for i in plan.items}
    assert "Medium -3" not in names
    assert plan.clamped == 1
    assert all(i.due_date <= datetime(2024, 1, 22, 9, 0) for i in plan.items)


def test_plan_with_no_sources_is_empty():
    plan = plan_posting_tasks([], anchor=ANCHOR, months=2)
    assert plan.items == []
    assert plan.last_due_date is None


def test_plan_continues_numbering_from_first_cycle():
    fb = _sources()[0]
    plan = plan_posting_tasks([fb], anchor=ANCHOR, months=2, mode="renewal", first_cycle=3)

    copies = [i for i in plan.items if i.category == CAT_SOCIAL_ACTIVITY]
    assert [i.name for i in copies] == ["Facebook -3", "Facebook -4", "Facebook -5", "Facebook -6"]
    for item in copies:
        assert item.due_date == calculate_task_due_date(ANCHOR, item.cycle_number, "renewal")

    sc = [i for i in plan.items if i.category == CAT_SOCIAL_COMMUNICATION]
    assert sc[0].due_date == copies[-1].due_date


def test_plan_walks_the_chain_once_per_source(monkeypatch):
    calls = {"n": 0}
    real = cadence.add_working_days

    def counting(start, n):
        calls["n"] += 1
        return real(start, n)

    monkeypatch.setattr(cadence, "add_working_days", counting)

    busy = SourceTask(task_id=9, name="Pinterest", asset_type="social_site", default_frequency=400)
    plan = plan_posting_tasks([busy], anchor=ANCHOR, months=3, mode="initial")

    total = 400 * 3
    assert len(plan.items) == total + 1
    # one date step per copy; a per-copy recompute would need ~total**2 / 2
    assert calls["n"] <= total + 2
    assert plan.items[total - 1].due_date == real(ANCHOR, 10 + 5 * (total - 1))
