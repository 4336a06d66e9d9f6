"""
Advanced chart support for querycanvas dashboards.

This package contains:
- Models: loose input shapes for each chart type
- Validation: per-chart validators collecting user-facing messages
- Utils: funnel, waterfall, gantt and heatmap math plus number formatting
- Wrappers: validate, then build ECharts option dictionaries
- Maps: coordinates, viewport fitting, colour scales and GeoJSON checks
"""

from .validation import ValidationResult
from .wrappers import (
    ChartRender,
    RenderState,
    funnel_chart,
    gantt_chart,
    heatmap_chart,
    sankey_chart,
    treemap_chart,
    waterfall_chart,
)

__all__ = [
    "ValidationResult",
    "ChartRender",
    "RenderState",
    "funnel_chart",
    "gantt_chart",
    "heatmap_chart",
    "sankey_chart",
    "treemap_chart",
    "waterfall_chart",
]
