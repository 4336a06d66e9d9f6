"""
Chart wrappers.

Each wrapper validates its input, then yields a ``ChartRender`` in one of three
states: ``error`` with every validation message, ``empty`` when there is
nothing to draw, or ``ready`` with a declarative ECharts option dictionary.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from querycanvas.charts.models import (
    FunnelStage,
    GanttTask,
    HeatmapPoint,
    SankeyData,
    TreemapNode,
    WaterfallPoint,
)
from querycanvas.charts.utils import (
    format_large_number,
    format_percentage,
    funnel_conversion,
    funnel_dropoff,
    heatmap_axes,
    heatmap_range,
    to_millis,
    tree_total,
    waterfall_cumulative,
)
from querycanvas.charts.validation import (
    ValidationResult,
    validate_funnel,
    validate_gantt,
    validate_heatmap,
    validate_sankey,
    validate_treemap,
    validate_waterfall,
)

logger = structlog.get_logger(__name__)

PALETTES = {
    "default": ["#5470c6", "#91cc75", "#fac858", "#ee6666", "#73c0de", "#3ba272", "#fc8452", "#9a60b4", "#ea7ccc"],
    "business": ["#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd", "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22"],
    "pastel": ["#fbb4ae", "#b3cde3", "#ccebc5", "#decbe4", "#fed9a6", "#ffffcc", "#e5d8bd", "#fddaec", "#f2f2f2"],
}


class RenderState(StrEnum):
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


@dataclass
class ChartRender:
    state: RenderState
    errors: List[str] = field(default_factory=list)
    option: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def ready(self) -> bool:
        return self.state == RenderState.READY


def _render(
    chart: str,
    validation: ValidationResult,
    empty: Callable[[], bool],
    build: Callable[[], ChartRender],
) -> ChartRender:
    if not validation.is_valid:
        logger.debug("chart_invalid", chart=chart, errors=validation.errors)
        return ChartRender(RenderState.ERROR, errors=list(validation.errors))
    if empty():
        return ChartRender(RenderState.EMPTY)
    return build()


def _title(title: Optional[str]) -> Optional[Dict[str, Any]]:
    if not title:
        return None
    return {"text": title, "left": "center", "textStyle": {"fontSize": 16, "fontWeight": 600}}


def _option(title: Optional[str], **kw) -> Dict[str, Any]:
    option = {"animation": True, **kw}
    if title:
        option["title"] = _title(title)
    return option


def sankey_chart(
    data: SankeyData,
    title: Optional[str] = None,
    node_width: int = 20,
    node_gap: int = 8,
    layout_iterations: int = 32,
    orient: str = "horizontal",
) -> ChartRender:
    def build():
        series = {
            "type": "sankey",
            "layoutIterations": layout_iterations,
            "orient": orient,
            "emphasis": {"focus": "adjacency"},
            "nodeWidth": node_width,
            "nodeGap": node_gap,
            "data": [n.to_wire() for n in data.nodes],
            "links": [
                {"source": str(l.source), "target": str(l.target), "value": l.value}
                for l in data.links
            ],
            "lineStyle": {"color": "gradient", "curveness": 0.5},
        }
        return ChartRender(
            RenderState.READY,
            option=_option(title, tooltip={"trigger": "item"}, series=[series]),
        )

    return _render("sankey", validate_sankey(data), lambda: not data.links, build)


def gantt_chart(
    tasks: Sequence[GanttTask],
    title: Optional[str] = None,
    show_progress: bool = True,
) -> ChartRender:
    def build():
        categories = [t.name for t in tasks]
        bars, progress = [], []
        for i, task in enumerate(tasks):
            start, end = to_millis(task.start), to_millis(task.end)
            bars.append(
                {
                    "name": task.name,
                    "value": [i, start, end, end - start],
                    "itemStyle": {
                        "color": task.color
                        or ("#fbbf24" if task.milestone else "#3b82f6"),
                        "borderRadius": 0 if task.milestone else 4,
                    },
                }
            )
            done = start + (end - start) * (task.progress or 0) / 100
            if show_progress and done > start:
                progress.append(
                    {
                        "name": f"{task.name} Progress",
                        "value": [i, start, done, done - start],
                        "itemStyle": {"color": "#10b981", "opacity": 0.7},
                    }
                )

        series = [{"name": "Tasks", "type": "custom", "encode": {"x": [1, 2], "y": 0}, "data": bars}]
        if progress:
            series.append(
                {"name": "Progress", "type": "custom", "encode": {"x": [1, 2], "y": 0}, "data": progress}
            )
        return ChartRender(
            RenderState.READY,
            option=_option(
                title,
                tooltip={"trigger": "item"},
                xAxis={"type": "time", "splitLine": {"lineStyle": {"type": "dashed"}}},
                yAxis={"type": "category", "data": categories, "inverse": True},
                series=series,
            ),
        )

    return _render("gantt", validate_gantt(tasks), lambda: not tasks, build)


def heatmap_chart(
    points: Sequence[HeatmapPoint],
    title: Optional[str] = None,
    x_label: Optional[str] = None,
    y_label: Optional[str] = None,
    color_range: Sequence[str] = ("#e0f3f8", "#313695"),
    show_values: bool = False,
) -> ChartRender:
    def build():
        x_axis, y_axis = heatmap_axes(points)
        low, high = heatmap_range(points)
        cells = [
            [x_axis.index(str(p.x)), y_axis.index(str(p.y)), p.value] for p in points
        ]
        return ChartRender(
            RenderState.READY,
            option=_option(
                title,
                tooltip={"position": "top"},
                xAxis={"type": "category", "data": x_axis, "name": x_label,
                       "axisLabel": {"rotate": 45 if len(x_axis) > 12 else 0}},
                yAxis={"type": "category", "data": y_axis, "name": y_label},
                visualMap={
                    "min": low,
                    "max": high,
                    "calculable": True,
                    "orient": "vertical",
                    "inRange": {"color": list(color_range)},
                    "text": ["High", "Low"],
                },
                series=[
                    {
                        "name": "Heatmap",
                        "type": "heatmap",
                        "data": cells,
                        "label": {"show": show_values},
                    }
                ],
            ),
            stats={"min": low, "max": high},
        )

    return _render("heatmap", validate_heatmap(points), lambda: not points, build)


def treemap_chart(
    nodes: Sequence[TreemapNode],
    title: Optional[str] = None,
    breadcrumb: bool = True,
) -> ChartRender:
    def build():
        total = tree_total(nodes)
        return ChartRender(
            RenderState.READY,
            option=_option(
                title,
                tooltip={"trigger": "item"},
                series=[
                    {
                        "type": "treemap",
                        "roam": False,
                        "breadcrumb": {"show": breadcrumb},
                        "data": [n.to_wire() for n in nodes],
                    }
                ],
            ),
            stats={"total": total, "formatted_total": format_large_number(total)},
        )

    return _render(
        "treemap", validate_treemap(nodes), lambda: tree_total(nodes) == 0, build
    )


def waterfall_chart(
    points: Sequence[WaterfallPoint],
    title: Optional[str] = None,
    positive_color: str = "#10b981",
    negative_color: str = "#ef4444",
    total_color: str = "#3b82f6",
) -> ChartRender:
    def build():
        bars = waterfall_cumulative(points)
        assist, positive, negative, totals = [], [], [], []
        for point, bar in zip(points, bars):
            if point.is_total or point.is_subtotal:
                assist.append("-")
                positive.append("-")
                negative.append("-")
                totals.append(bar.end)
            elif point.value >= 0:
                assist.append(bar.start)
                positive.append(point.value)
                negative.append("-")
                totals.append("-")
            else:
                assist.append(bar.end)
                positive.append("-")
                negative.append(abs(point.value))
                totals.append("-")

        def stacked(name, data, color):
            return {"name": name, "type": "bar", "stack": "total", "data": data,
                    "itemStyle": {"color": color}}

        return ChartRender(
            RenderState.READY,
            option=_option(
                title,
                tooltip={"trigger": "axis", "axisPointer": {"type": "shadow"}},
                xAxis={"type": "category", "data": [p.name for p in points]},
                yAxis={"type": "value"},
                series=[
                    stacked("Assist", assist, "transparent"),
                    stacked("Increase", positive, positive_color),
                    stacked("Decrease", negative, negative_color),
                    stacked("Total", totals, total_color),
                ],
            ),
            stats={"final": bars[-1].end if bars else 0},
        )

    return _render("waterfall", validate_waterfall(points), lambda: not points, build)


def funnel_chart(
    stages: Sequence[FunnelStage],
    title: Optional[str] = None,
    sort: str = "descending",
    gap: int = 0,
    align: str = "center",
    show_conversion_rate: bool = True,
) -> ChartRender:
    def build():
        conversion = funnel_conversion(stages)
        dropoff = funnel_dropoff(stages)
        labels = []
        for stage, rate in zip(stages, conversion):
            label = f"{stage.name}\n{format_large_number(stage.value)}"
            if show_conversion_rate:
                label += f"\n{format_percentage(rate.rate)}"
            labels.append(label)

        data = []
        for stage, label in zip(stages, labels):
            item = {"name": stage.name, "value": stage.value, "label": {"formatter": label}}
            if stage.color:
                item["itemStyle"] = {"color": stage.color}
            data.append(item)

        stats = {}
        if show_conversion_rate:
            stats = {
                "entered": format_large_number(stages[0].value),
                "completed": format_large_number(stages[-1].value),
                "overall_conversion": format_percentage(conversion[-1].rate),
                "average_dropoff": format_percentage(
                    sum(d.rate for d in dropoff) / len(dropoff) if dropoff else 0
                ),
            }
        return ChartRender(
            RenderState.READY,
            option=_option(
                title,
                tooltip={"trigger": "item"},
                legend={"show": False},
                series=[
                    {
                        "name": "Funnel",
                        "type": "funnel",
                        "top": 80 if title else 60,
                        "bottom": 60,
                        "gap": gap,
                        "funnelAlign": align,
                        "sort": sort,
                        "label": {"show": True, "position": "inside"},
                        "data": data,
                    }
                ],
            ),
            stats=stats,
        )

    return _render("funnel", validate_funnel(stages), lambda: not stages, build)
