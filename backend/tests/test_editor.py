"""Itinerary editor commands, derived schedule and the state container."""

from types import SimpleNamespace

import pytest

from anvago.services.editor import (
    Activity, AdjustDuration, AdjustStartTime, DayPlan, EditorError, Insert, ItineraryEditor,
    Remove, Reorder, Replace, activity_times, apply_command, build_day_plans, day_end_time,
    describe_day, format_duration, format_time, order_payload, parse_clock, total_duration,
)


def day_one():
    return (
        DayPlan(day=1, start_time=360, items=(
            Activity(id="a", name="My Khe Beach", duration_mins=120),
            Activity(id="b", name="Han Market", duration_mins=90, transit_mins=30),
            Activity(id="c", name="Dragon Bridge", duration_mins=60),
        )),
        DayPlan(day=2, start_time=480),
    )


def ids(plan):
    return [item.id for item in plan.items]


# ============================================================================
# COMMANDS
# ============================================================================

def test_reorder_requires_permutation():
    days = apply_command(day_one(), Reorder(day=1, item_ids=("c", "a", "b")))
    assert ids(days[0]) == ["c", "a", "b"]

    with pytest.raises(EditorError):
        apply_command(day_one(), Reorder(day=1, item_ids=("a", "b")))
    with pytest.raises(EditorError):
        apply_command(day_one(), Reorder(day=1, item_ids=("a", "b", "b")))


def test_insert_assigns_fresh_id():
    new = Activity(id="a", name="Cong Caphe", duration_mins=45)
    days = apply_command(day_one(), Insert(day=1, position=1, item=new))
    plan = days[0]
    assert len(plan.items) == 4
    assert plan.items[1].name == "Cong Caphe"
    assert len(set(ids(plan))) == 4


def test_insert_position_out_of_range():
    with pytest.raises(EditorError):
        apply_command(day_one(), Insert(day=1, position=5, item=Activity(id="x", name="x")))


def test_remove_and_replace():
    days = apply_command(day_one(), Remove(day=1, item_id="b"))
    assert ids(days[0]) == ["a", "c"]

    days = apply_command(day_one(), Replace(day=1, item_id="b", item=Activity(id="z", name="Con Market")))
    assert days[0].items[1].name == "Con Market"
    assert days[0].items[1].id not in ("b", "z")

    with pytest.raises(EditorError):
        apply_command(day_one(), Remove(day=1, item_id="missing"))


def test_unknown_day_rejected():
    with pytest.raises(EditorError):
        apply_command(day_one(), AdjustStartTime(day=9, delta=30))


def test_commands_do_not_mutate_input():
    original = day_one()
    apply_command(original, Remove(day=1, item_id="a"))
    assert ids(original[0]) == ["a", "b", "c"]


@pytest.mark.parametrize("delta", [-10, -60, -1000, -10 ** 6])
def test_adjust_duration_floor(delta):
    days = apply_command(day_one(), AdjustDuration(day=1, item_id="c", delta=delta))
    assert days[0].items[2].duration_mins >= 15


def test_adjust_duration_increases():
    days = apply_command(day_one(), AdjustDuration(day=1, item_id="a", delta=30))
    assert days[0].items[0].duration_mins == 150


@pytest.mark.parametrize("delta,expected", [
    (-10 ** 5, 0),
    (-360, 0),
    (30, 390),
    (1020, 1380),
    (10 ** 5, 1380),
])
def test_adjust_start_time_clamped(delta, expected):
    days = apply_command(day_one(), AdjustStartTime(day=1, delta=delta))
    assert days[0].start_time == expected


def test_order_stays_dense_after_insert_and_remove():
    days = day_one()
    days = apply_command(days, Insert(day=1, position=0, item=Activity(id="n", name="Sunrise")))
    days = apply_command(days, Remove(day=1, item_id="b"))
    days = apply_command(days, Insert(day=2, position=0, item=Activity(id="m", name="Ba Na Hills")))

    payload = order_payload(days)
    for day in (1, 2):
        indexes = [p["orderIndex"] for p in payload if p["dayNumber"] == day]
        assert indexes == list(range(len(indexes)))


# ============================================================================
# DERIVED SCHEDULE
# ============================================================================

def test_activity_times_accumulate_duration_and_transit():
    plan = day_one()[0]
    # a: 360-480, +15 transit; b: 495-585, +30 transit; c: 615-675
    assert activity_times(plan) == [(360, 480), (495, 585), (615, 675)]
    assert total_duration(plan) == 120 + 15 + 90 + 30 + 60
    assert day_end_time(plan) == 675


def test_explicit_zero_transit_is_kept():
    plan = DayPlan(day=1, start_time=600, items=(
        Activity(id="a", name="A", duration_mins=30, transit_mins=0),
        Activity(id="b", name="B", duration_mins=30),
    ))
    assert activity_times(plan) == [(600, 630), (630, 660)]


def test_empty_day():
    plan = DayPlan(day=1)
    assert activity_times(plan) == []
    assert total_duration(plan) == 0
    assert day_end_time(plan) == plan.start_time


@pytest.mark.parametrize("minutes,label", [
    (0, "12:00 AM"),
    (390, "6:30 AM"),
    (720, "12:00 PM"),
    (795, "1:15 PM"),
    (1380, "11:00 PM"),
])
def test_format_time(minutes, label):
    assert format_time(minutes) == label


def test_format_duration_and_parse_clock():
    assert format_duration(90) == "1h 30m"
    assert format_duration(45) == "45m"
    assert format_duration(120) == "2h"
    assert parse_clock("06:30") == 390
    assert parse_clock("25:00") is None
    assert parse_clock("noon") is None
    assert parse_clock(None) is None


def test_describe_day_labels():
    described = describe_day(day_one()[0])
    assert described["title"] == "Day 1"
    assert described["startLabel"] == "6:00 AM"
    assert described["activities"][0]["endLabel"] == "8:00 AM"
    assert described["totalDurationLabel"] == "5h 15m"


# ============================================================================
# PERSISTED ITINERARY -> DAY PLANS
# ============================================================================

def stored_item(id, day, order, location, **fields):
    values = {"start_time": None, "end_time": None, "duration_mins": None, "transport_duration": None}
    values.update(fields)
    return SimpleNamespace(id=id, day_number=day, order_index=order, location=location,
                           location_id=location.id, **values)


def test_build_day_plans_from_itinerary():
    beach = SimpleNamespace(id="l1", name="My Khe Beach", category="beach", rating=4.7,
                            avg_duration_mins=120, is_hidden_gem=False)
    market = SimpleNamespace(id="l2", name="Con Market", category="market", rating=4.4,
                             avg_duration_mins=None, is_hidden_gem=True)
    itinerary = SimpleNamespace(duration_days=3, items=[
        stored_item("i2", 1, 1, market),
        stored_item("i1", 1, 0, beach, start_time="06:00", end_time="08:30"),
        stored_item("i3", 2, 0, beach, duration_mins=45, transport_duration=0),
    ])

    plans = build_day_plans(itinerary)
    assert [p.day for p in plans] == [1, 2, 3]
    assert ids(plans[0]) == ["i1", "i2"]
    assert plans[0].start_time == 360
    assert plans[0].items[0].duration_mins == 150
    assert plans[0].items[1].duration_mins == 60
    assert plans[0].items[1].is_local_gem
    assert plans[1].start_time == 360
    assert plans[1].items[0].duration_mins == 45
    assert plans[1].items[0].transit_mins == 0
    assert plans[2].items == ()


# ============================================================================
# STATE CONTAINER
# ============================================================================

def test_editor_tracks_dirty_state_and_payload():
    editor = ItineraryEditor(days=day_one())
    assert not editor.dirty

    editor.dispatch(Reorder(day=1, item_ids=("b", "c", "a")))
    editor.dispatch(AdjustStartTime(day=2, delta=-60))
    assert editor.dirty
    assert len(editor.history) == 2
    assert editor.day(2).start_time == 420
    assert editor.reorder_payload()[:3] == [
        {"id": "b", "dayNumber": 1, "orderIndex": 0},
        {"id": "c", "dayNumber": 1, "orderIndex": 1},
        {"id": "a", "dayNumber": 1, "orderIndex": 2},
    ]

    editor.mark_saved()
    assert not editor.dirty
    assert editor.history == []


def test_failed_command_leaves_state_untouched():
    editor = ItineraryEditor(days=day_one())
    with pytest.raises(EditorError):
        editor.dispatch(Remove(day=1, item_id="nope"))
    assert not editor.dirty
    assert ids(editor.day(1)) == ["a", "b", "c"]
