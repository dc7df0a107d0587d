from __future__ import annotations

import pytest

from mdjournal.markdown import parse_report
from mdjournal.models import ScheduleItem
from mdjournal.timeline import (
    TimelineConfig,
    build_timeline,
    calculate_break_slots,
    calculate_render_slots,
    get_time_range,
    top_percent_to_time,
)


def _schedule(*entries: str) -> list:
    items = []
    for index, entry in enumerate(entries):
        time, _, task = entry.partition(" ")
        items.append(ScheduleItem(id=f"p{index}", time=time, project="P99" if task else "", task=task))
    return items


def test_time_range_defaults_when_empty() -> None:
    window = get_time_range([])

    assert (window.start_hour, window.end_hour, window.total_hours) == (8, 20, 12)


@pytest.mark.parametrize(
    ("times", "expected"),
    [
        (["06:00 朝", "22:00 夜"], (4, 25, 21)),
        (["09:00 作業"], (6, 23, 17)),
        (["01:00 深夜", "35:00 徹夜"], (0, 36, 36)),
    ],
)
def test_time_range_pads_and_clamps(times: list, expected: tuple) -> None:
    window = get_time_range(_schedule(*times))

    assert (window.start_hour, window.end_hour, window.total_hours) == expected


@pytest.mark.parametrize(
    ("top_percent", "offset", "expected"),
    [
        (50, 0, "14:00"),
        (0, 10, "09:15"),
        (110, 0, "20:00"),
        (-5, 0, "08:00"),
        (413 / 720 * 100, 0, "15:00"),
    ],
)
def test_top_percent_to_time(top_percent: float, offset: float, expected: str) -> None:
    assert top_percent_to_time(top_percent, offset, start_hour=8, total_hours=12) == expected


def test_render_slots_layout() -> None:
    items = _schedule("13:00 レビュー", "08:00 朝礼", "12:00", "09:00 開発")

    slots = calculate_render_slots(items, start_hour=8, total_hours=12, pixels_per_hour=60)

    assert [slot.time for slot in slots] == ["08:00", "09:00", "13:00"]
    assert [slot.duration_minutes for slot in slots] == [60, 180, 60]
    development = slots[1]
    assert development.start_minutes == 540
    assert development.end_minutes == 720
    assert development.top_percent == pytest.approx(60 / 720 * 100)
    assert development.height_percent == pytest.approx(25.0)
    assert development.top_pixels == pytest.approx(60.0)
    assert development.height_pixels == pytest.approx(180.0)


def test_pixels_scale_with_hour_height() -> None:
    slots = calculate_render_slots(_schedule("10:00 作業", "10:30"), start_hour=8, total_hours=12, pixels_per_hour=90)

    assert slots[0].top_pixels == pytest.approx(180.0)
    assert slots[0].height_pixels == pytest.approx(45.0)


def test_break_slots() -> None:
    items = _schedule("08:00 朝礼", "12:00", "13:00 開発", "17:00")

    breaks = calculate_break_slots(items, start_hour=8, total_hours=12, pixels_per_hour=60)

    assert len(breaks) == 1
    lunch = breaks[0]
    assert (lunch.start_time, lunch.end_time, lunch.duration_minutes) == ("12:00", "13:00", 60)
    assert lunch.top_pixels == pytest.approx(240.0)
    assert lunch.height_percent == pytest.approx(60 / 720 * 100)


def test_break_markers_never_render_as_slots() -> None:
    items = _schedule("12:00", "08:00 朝礼", "10:00", "10:30", "11:00 開発", "18:00")

    slots = calculate_render_slots(items)

    assert all(slot.task for slot in slots)
    assert [slot.time for slot in slots] == ["08:00", "11:00"]
    assert [slot.duration_minutes for slot in slots] == [120, 60]


def test_build_timeline_for_report(sample_text: str) -> None:
    report = parse_report(sample_text)

    layout = build_timeline(report.plan)

    assert (layout.window.start_hour, layout.window.end_hour) == (6, 23)
    assert layout.pixels_per_hour == 60
    assert [slot.id for slot in layout.slots] == ["p0", "p1", "p3"]
    assert [(item.start_time, item.end_time) for item in layout.breaks] == [("12:00", "13:00")]
    assert layout.slots[0].top_percent == pytest.approx(120 / (17 * 60) * 100)


def test_build_timeline_uses_config() -> None:
    config = TimelineConfig(hour_height=100, default_start_hour=9, default_end_hour=18)

    layout = build_timeline([], config)

    assert (layout.window.start_hour, layout.window.end_hour, layout.window.total_hours) == (9, 18, 9)
    assert layout.pixels_per_hour == 100
    assert layout.slots == []


@pytest.mark.parametrize(("start", "end"), [(12, 12), (20, 8)])
def test_timeline_config_rejects_empty_window(start: int, end: int) -> None:
    with pytest.raises(ValueError):
        TimelineConfig(default_start_hour=start, default_end_hour=end)
