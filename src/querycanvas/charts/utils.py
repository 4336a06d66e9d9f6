from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from querycanvas.charts.models import (
    FunnelStage,
    GanttTask,
    HeatmapPoint,
    TreemapNode,
    WaterfallPoint,
)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse a task date; naive values are taken as UTC, unparseable ones are None"""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def to_millis(value: Any) -> Optional[int]:
    dt = to_datetime(value)
    return int(dt.timestamp() * 1000) if dt is not None else None


def format_gantt_date(value: Any, fmt: str = "yyyy-MM-dd") -> str:
    dt = to_datetime(value)
    if dt is None:
        return ""
    return (
        fmt.replace("yyyy", f"{dt.year:04d}")
        .replace("MM", f"{dt.month:02d}")
        .replace("dd", f"{dt.day:02d}")
    )


def gantt_time_range(tasks: Iterable[GanttTask]) -> Optional[Tuple[datetime, datetime]]:
    dates = [
        d
        for task in tasks
        for d in (to_datetime(task.start), to_datetime(task.end))
        if d is not None
    ]
    if not dates:
        return None
    return min(dates), max(dates)


def heatmap_axes(points: Iterable[HeatmapPoint]) -> Tuple[List[str], List[str]]:
    points = list(points)
    return (
        sorted({str(p.x) for p in points}),
        sorted({str(p.y) for p in points}),
    )


def heatmap_range(points: Iterable[HeatmapPoint]) -> Tuple[float, float]:
    values = [p.value for p in points if is_number(p.value)]
    if not values:
        return 0, 100
    return min(values), max(values)


def tree_total(nodes: Iterable[TreemapNode]) -> float:
    def total(node: TreemapNode) -> float:
        if node.children:
            return sum(total(c) for c in node.children)
        return node.value if is_number(node.value) else 0

    return sum(total(n) for n in nodes)


@dataclass(frozen=True)
class WaterfallBar:
    start: float
    end: float
    value: float


def waterfall_cumulative(points: Iterable[WaterfallPoint]) -> List[WaterfallBar]:
    """Floating bar extents; a total bar spans from zero to the running sum"""
    bars = []
    running = 0
    for point in points:
        if point.is_total:
            bars.append(WaterfallBar(0, running, running))
        else:
            bars.append(WaterfallBar(running, running + point.value, point.value))
            running += point.value
    return bars


@dataclass(frozen=True)
class Conversion:
    name: Optional[str]
    rate: float


@dataclass(frozen=True)
class DropOff:
    source: Optional[str]
    target: Optional[str]
    rate: float


def funnel_conversion(stages: Sequence[FunnelStage]) -> List[Conversion]:
    if not stages:
        return []
    first = stages[0].value
    return [
        Conversion(s.name, (s.value / first) * 100 if first > 0 else 0)
        for s in stages
    ]


def funnel_dropoff(stages: Sequence[FunnelStage]) -> List[DropOff]:
    return [
        DropOff(
            current.name,
            following.name,
            (
                ((current.value - following.value) / current.value) * 100
                if current.value > 0
                else 0
            ),
        )
        for current, following in zip(stages, stages[1:])
    ]


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


def format_large_number(value: float) -> str:
    magnitude = abs(value)
    if magnitude >= 1_000_000_000:
        return f"{value / 1_000_000_000:.1f}B"
    if magnitude >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"{value / 1_000:.1f}K"
    return f"{value:.0f}"
