"""
Cross-filtering between dashboard charts.

A ``CrossFilterStore`` holds the active filters of one dashboard and is passed
explicitly to every chart that takes part. ``CrossFilterBridge`` turns a click
on a chart data point into a filter in that store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
from pydantic import Field

from querycanvas.builder.ids import IdGenerator
from querycanvas.builder.models import WireModel

logger = structlog.get_logger(__name__)


class FilterOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    BETWEEN = "between"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class FilterType(StrEnum):
    CHART = "chart"
    GLOBAL = "global"


class FilterCriteria(WireModel):
    id: Optional[str] = None
    source_chart_id: Optional[str] = None
    field_name: str
    operator: FilterOperator = FilterOperator.EQUALS
    value: Any = None
    label: Optional[str] = None
    type: FilterType = FilterType.CHART
    timestamp: Optional[datetime] = None


@dataclass
class ChartDataPoint:
    field_name: str
    value: Any
    label: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[List[FilterCriteria]], None]


class CrossFilterStore:
    def __init__(self, ids: Optional[IdGenerator] = None):
        self.ids = ids or IdGenerator()
        self._filters: List[FilterCriteria] = []
        self._listeners: List[Listener] = []

    def _publish(self):
        snapshot = self.list()
        for listener in list(self._listeners):
            listener(snapshot)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add(self, criteria: FilterCriteria) -> FilterCriteria:
        criteria = criteria.model_copy(
            update={
                "id": criteria.id or self.ids.next("filter"),
                "timestamp": criteria.timestamp or datetime.now(timezone.utc),
            }
        )
        self._filters = [*self._filters, criteria]
        logger.debug(
            "cross_filter_added",
            filter_id=criteria.id,
            source=criteria.source_chart_id,
            field=criteria.field_name,
        )
        self._publish()
        return criteria

    def remove(self, filter_id: str) -> bool:
        remaining = [f for f in self._filters if f.id != filter_id]
        if len(remaining) == len(self._filters):
            return False
        self._filters = remaining
        self._publish()
        return True

    def remove_by_source(self, chart_id: str) -> int:
        remaining = [f for f in self._filters if f.source_chart_id != chart_id]
        removed = len(self._filters) - len(remaining)
        if removed:
            self._filters = remaining
            self._publish()
        return removed

    def list(self) -> List[FilterCriteria]:
        return list(self._filters)

    def list_by_source(self, chart_id: str) -> List[FilterCriteria]:
        return [f for f in self._filters if f.source_chart_id == chart_id]

    def is_filtered(self, chart_id: str) -> bool:
        return any(f.source_chart_id == chart_id for f in self._filters)

    def clear(self):
        if self._filters:
            self._filters = []
            self._publish()


class CrossFilterBridge:
    def __init__(
        self,
        store: CrossFilterStore,
        chart_id: str,
        allow_multiple: bool = False,
        operator: FilterOperator = FilterOperator.EQUALS,
        enabled: bool = True,
        extract_filter: Optional[
            Callable[[ChartDataPoint], Optional[FilterCriteria]]
        ] = None,
    ):
        self.store = store
        self.chart_id = chart_id
        self.allow_multiple = allow_multiple
        self.operator = FilterOperator(operator)
        self.enabled = enabled
        self.extract_filter = extract_filter

    @property
    def filters(self) -> List[FilterCriteria]:
        return self.store.list_by_source(self.chart_id)

    @property
    def is_filtered(self) -> bool:
        return self.store.is_filtered(self.chart_id)

    def _criteria(self, point: ChartDataPoint) -> Optional[FilterCriteria]:
        if self.extract_filter is not None:
            return self.extract_filter(point)
        return FilterCriteria(
            field_name=point.field_name,
            operator=self.operator,
            value=point.value,
            label=point.label or f"{point.field_name}: {point.value}",
            type=FilterType.CHART,
        )

    def click(self, point: ChartDataPoint) -> Optional[FilterCriteria]:
        if not self.enabled:
            return None
        criteria = self._criteria(point)
        if criteria is None:
            return None
        if not self.allow_multiple:
            self.store.remove_by_source(self.chart_id)
        return self.store.add(
            criteria.model_copy(update={"source_chart_id": self.chart_id})
        )

    def clear(self) -> int:
        return self.store.remove_by_source(self.chart_id)


def data_point(field_name: str, params: Dict[str, Any]) -> ChartDataPoint:
    """A data point from ECharts click event params"""
    return ChartDataPoint(
        field_name=field_name,
        value=params.get("name") or params.get("value"),
        label=params.get("name"),
        data=params.get("data") or {},
    )


def _text(v: Any) -> str:
    return str(v).lower()


def matches_filter(value: Any, criteria: FilterCriteria) -> bool:
    if value is None:
        return False

    target = criteria.value
    try:
        match criteria.operator:
            case FilterOperator.EQUALS:
                return value == target
            case FilterOperator.NOT_EQUALS:
                return value != target
            case FilterOperator.IN:
                return isinstance(target, (list, tuple)) and value in target
            case FilterOperator.NOT_IN:
                return isinstance(target, (list, tuple)) and value not in target
            case FilterOperator.BETWEEN:
                if not isinstance(target, (list, tuple)) or len(target) != 2:
                    return False
                return target[0] <= value <= target[1]
            case FilterOperator.GREATER_THAN:
                return value > target
            case FilterOperator.LESS_THAN:
                return value < target
            case FilterOperator.CONTAINS:
                return _text(target) in _text(value)
            case FilterOperator.STARTS_WITH:
                return _text(value).startswith(_text(target))
            case FilterOperator.ENDS_WITH:
                return _text(value).endswith(_text(target))
    except TypeError:
        # incomparable types never match
        return False
    return False


def filter_rows(
    rows: Iterable[Dict[str, Any]], filters: Iterable[FilterCriteria]
) -> List[Dict[str, Any]]:
    """Rows that satisfy every filter on the fields they contain"""
    filters = list(filters)
    return [
        row
        for row in rows
        if all(
            matches_filter(row[f.field_name], f)
            for f in filters
            if f.field_name in row
        )
    ]
