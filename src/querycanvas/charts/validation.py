"""
Validators for the advanced chart types.

Every validator collects all problems it finds rather than stopping at the
first one, so the error state of a chart can list them together.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from querycanvas.charts.models import (
    FunnelStage,
    GanttTask,
    HeatmapPoint,
    SankeyData,
    TreemapNode,
    WaterfallPoint,
)
from querycanvas.charts.utils import is_number, to_datetime


@dataclass(frozen=True)
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_sankey(data: SankeyData) -> ValidationResult:
    errors = []
    if not data.nodes:
        errors.append("Sankey diagram requires at least one node")
    if not data.links:
        errors.append("Sankey diagram requires at least one link")

    names = {n.name for n in data.nodes}
    for i, link in enumerate(data.links):
        if str(link.source) not in names:
            errors.append(f'Link {i}: source "{link.source}" not found in nodes')
        if str(link.target) not in names:
            errors.append(f'Link {i}: target "{link.target}" not found in nodes')
        if not is_number(link.value) or link.value <= 0:
            errors.append(f"Link {i}: value must be positive")
    return ValidationResult(errors)


def validate_gantt(tasks: Sequence[GanttTask]) -> ValidationResult:
    errors = []
    if not tasks:
        errors.append("Gantt chart requires at least one task")

    for i, task in enumerate(tasks):
        if not task.name:
            errors.append(f"Task {i}: name is required")
        start, end = to_datetime(task.start), to_datetime(task.end)
        if not task.start:
            errors.append(f"Task {i}: start date is required")
        elif start is None:
            errors.append(f"Task {i}: start date is not a valid date")
        if not task.end:
            errors.append(f"Task {i}: end date is required")
        elif end is None:
            errors.append(f"Task {i}: end date is not a valid date")

        if start is not None and end is not None and start > end:
            errors.append(
                f"Task {i} ({task.name}): start date must be before end date"
            )
    return ValidationResult(errors)


def validate_heatmap(points: Sequence[HeatmapPoint]) -> ValidationResult:
    errors = []
    if not points:
        errors.append("Heatmap requires at least one data point")

    for i, point in enumerate(points):
        if point.x is None:
            errors.append(f"Point {i}: x coordinate is required")
        if point.y is None:
            errors.append(f"Point {i}: y coordinate is required")
        if not is_number(point.value):
            errors.append(f"Point {i}: value must be a number")
    return ValidationResult(errors)


def validate_treemap(nodes: Sequence[TreemapNode]) -> ValidationResult:
    errors = []
    if not nodes:
        errors.append("Treemap requires at least one node")

    def visit(node: TreemapNode, path: str):
        if not node.name:
            errors.append(f"{path}: name is required")
        if node.children is not None:
            for i, child in enumerate(node.children):
                visit(child, f"{path}.children[{i}]")
        elif not is_number(node.value) or node.value <= 0:
            errors.append(f"{path}: leaf node must have positive value")

    for i, node in enumerate(nodes):
        visit(node, f"node[{i}]")
    return ValidationResult(errors)


def validate_waterfall(points: Sequence[WaterfallPoint]) -> ValidationResult:
    errors = []
    if not points:
        errors.append("Waterfall chart requires at least one data point")

    for i, point in enumerate(points):
        if not point.name:
            errors.append(f"Point {i}: name is required")
        if not is_number(point.value):
            errors.append(f"Point {i}: value must be a number")
    return ValidationResult(errors)


def validate_funnel(stages: Sequence[FunnelStage]) -> ValidationResult:
    errors = []
    if not stages:
        errors.append("Funnel chart requires at least one stage")

    for i, stage in enumerate(stages):
        if not stage.name:
            errors.append(f"Stage {i}: name is required")
        if not is_number(stage.value) or stage.value < 0:
            errors.append(f"Stage {i}: value must be a non-negative number")
    return ValidationResult(errors)
