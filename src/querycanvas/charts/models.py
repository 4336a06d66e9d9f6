"""
Input shapes of the advanced chart types.

Fields are deliberately loose (``Any`` values, optional names) so that bad
rows reach the validators, which report them in user-facing messages instead
of failing model construction.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Any, Dict, List, Optional, Union

from pydantic import ConfigDict, Field

from querycanvas.builder.models import WireModel


class ChartModel(WireModel):
    model_config = ConfigDict(extra="allow")


class SankeyNode(ChartModel):
    name: Optional[str] = None
    value: Any = None


class SankeyLink(ChartModel):
    source: Union[str, int, None] = None
    target: Union[str, int, None] = None
    value: Any = None


class SankeyData(ChartModel):
    nodes: List[SankeyNode] = Field(default_factory=list)
    links: List[SankeyLink] = Field(default_factory=list)


class GanttTask(ChartModel):
    id: Union[str, int, None] = None
    name: Optional[str] = None
    start: Union[datetime, date, str, None] = None
    end: Union[datetime, date, str, None] = None
    progress: Optional[float] = Field(default=None, ge=0, le=100)
    dependencies: List[Union[str, int]] = Field(default_factory=list)
    milestone: bool = False
    category: Optional[str] = None
    color: Optional[str] = None


class HeatmapPoint(ChartModel):
    x: Union[str, int, float, None] = None
    y: Union[str, int, float, None] = None
    value: Any = None
    label: Optional[str] = None


class TreemapNode(ChartModel):
    name: Optional[str] = None
    value: Any = None
    children: Optional[List["TreemapNode"]] = None


class WaterfallPoint(ChartModel):
    name: Optional[str] = None
    value: Any = None
    is_total: bool = False
    is_subtotal: bool = False
    color: Optional[str] = None


class FunnelStage(ChartModel):
    name: Optional[str] = None
    value: Any = None
    color: Optional[str] = None
    label: Optional[str] = None


class ScaleType(StrEnum):
    SEQUENTIAL = "sequential"
    DIVERGING = "diverging"
    CATEGORICAL = "categorical"


class ColorScale(ChartModel):
    type: ScaleType = ScaleType.SEQUENTIAL
    colors: List[str] = Field(min_length=1)
    domain: Optional[List[float]] = None
    steps: Optional[int] = None


class MapPoint(ChartModel):
    id: Union[str, int, None] = None
    lat: Any = None
    lng: Any = None
    value: Optional[float] = None
    label: Optional[str] = None
    properties: Dict[str, Any] = Field(default_factory=dict)


TreemapNode.model_rebuild()
