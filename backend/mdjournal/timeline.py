from __future__ import annotations

import math
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .models import ScheduleItem
from .stats import derive_durations, sort_schedule
from .utils import minutes_to_time, round_half_up, snap_minutes as snap, time_to_minutes


class TimelineConfig(BaseModel):
    hour_height: int = Field(default=60, ge=1)
    max_hours: int = Field(default=36, ge=1, le=48)
    default_start_hour: int = Field(default=8, ge=0, le=36)
    default_end_hour: int = Field(default=20, ge=0, le=36)
    snap_minutes: int = Field(default=15, ge=1, le=60)

    @model_validator(mode="after")
    def _validate_window(self) -> "TimelineConfig":
        if self.default_start_hour >= self.default_end_hour:
            raise ValueError("default_start_hour must be before default_end_hour")
        return self


class TimeRange(BaseModel):
    start_hour: int
    end_hour: int
    total_hours: int


class RenderSlot(BaseModel):
    id: str
    time: str
    project: str
    task: str
    description: Optional[str] = None
    duration_minutes: int
    start_minutes: int
    end_minutes: int
    top_percent: float
    height_percent: float
    top_pixels: float
    height_pixels: float


class BreakSlot(BaseModel):
    id: str
    start_time: str
    end_time: str
    start_minutes: int
    end_minutes: int
    duration_minutes: int
    top_percent: float
    height_percent: float
    top_pixels: float
    height_pixels: float


class TimelineLayout(BaseModel):
    window: TimeRange
    pixels_per_hour: int
    slots: List[RenderSlot]
    breaks: List[BreakSlot]


def _layout(start: int, duration: int, start_hour: int, total_hours: int, pixels_per_hour: int) -> dict:
    window_start = start_hour * 60
    window_total = total_hours * 60
    return {
        "top_percent": (start - window_start) / window_total * 100,
        "height_percent": duration / window_total * 100,
        "top_pixels": (start - window_start) / 60 * pixels_per_hour,
        "height_pixels": duration / 60 * pixels_per_hour,
    }


def calculate_render_slots(
    items: List[ScheduleItem],
    start_hour: int = 8,
    total_hours: int = 12,
    pixels_per_hour: int = 60,
) -> List[RenderSlot]:
    """Lay out every non-break item; durations come from the following start times."""
    ordered = sort_schedule(items)
    slots: List[RenderSlot] = []
    for item, duration in zip(ordered, derive_durations(ordered)):
        if duration is None:
            continue
        start = time_to_minutes(item.time)
        slots.append(
            RenderSlot(
                id=item.id,
                time=item.time,
                project=item.project,
                task=item.task,
                description=item.description,
                duration_minutes=duration,
                start_minutes=start,
                end_minutes=start + duration,
                **_layout(start, duration, start_hour, total_hours, pixels_per_hour),
            )
        )
    return slots


def calculate_break_slots(
    items: List[ScheduleItem],
    start_hour: int = 8,
    total_hours: int = 12,
    pixels_per_hour: int = 60,
) -> List[BreakSlot]:
    """Lay out break markers that are followed by an activity.

    A trailing marker only closes the previous activity and yields no slot.
    """
    ordered = sort_schedule(items)
    breaks: List[BreakSlot] = []
    for index, item in enumerate(ordered):
        if not item.is_break:
            continue
        following = next((later for later in ordered[index + 1:] if not later.is_break), None)
        if following is None:
            continue
        start = time_to_minutes(item.time)
        end = time_to_minutes(following.time)
        breaks.append(
            BreakSlot(
                id=item.id,
                start_time=item.time,
                end_time=minutes_to_time(end),
                start_minutes=start,
                end_minutes=end,
                duration_minutes=end - start,
                **_layout(start, end - start, start_hour, total_hours, pixels_per_hour),
            )
        )
    return breaks


def get_time_range(
    items: List[ScheduleItem],
    max_hours: int = 36,
    default_start_hour: int = 8,
    default_end_hour: int = 20,
) -> TimeRange:
    if not items:
        return TimeRange(
            start_hour=default_start_hour,
            end_hour=default_end_hour,
            total_hours=default_end_hour - default_start_hour,
        )

    starts = [time_to_minutes(item.time) for item in items]
    min_minutes = min([default_start_hour * 60] + starts)
    # The last item is drawn one hour tall.
    max_minutes = max([default_end_hour * 60] + starts) + 60

    start_hour = max(0, min_minutes // 60 - 2)
    end_hour = min(math.ceil(max_minutes / 60) + 2, start_hour + max_hours)
    return TimeRange(start_hour=start_hour, end_hour=end_hour, total_hours=end_hour - start_hour)


def top_percent_to_time(
    top_percent: float,
    offset: float = 0,
    start_hour: int = 8,
    total_hours: int = 12,
    snap_minutes: int = 15,
) -> str:
    """Map a drop position on the timeline back to a snapped ``HH:MM`` start time."""
    adjusted = max(0.0, min(100.0, top_percent + offset))
    minutes = round_half_up(adjusted / 100 * total_hours * 60 + start_hour * 60)
    return minutes_to_time(snap(minutes, snap_minutes))


def build_timeline(items: List[ScheduleItem], config: Optional[TimelineConfig] = None) -> TimelineLayout:
    config = config or TimelineConfig()
    window = get_time_range(
        items,
        max_hours=config.max_hours,
        default_start_hour=config.default_start_hour,
        default_end_hour=config.default_end_hour,
    )
    return TimelineLayout(
        window=window,
        pixels_per_hour=config.hour_height,
        slots=calculate_render_slots(items, window.start_hour, window.total_hours, config.hour_height),
        breaks=calculate_break_slots(items, window.start_hour, window.total_hours, config.hour_height),
    )
