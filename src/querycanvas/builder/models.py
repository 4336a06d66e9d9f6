"""
Visual query builder data model.

Wire names follow the BI API (camelCase); attributes are snake_case and
either form is accepted when validating.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, validate_assignment=True
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ColumnInfo(WireModel):
    name: str
    type: str
    is_primary_key: bool = False
    is_foreign_key: bool = False
    model_config = ConfigDict(frozen=True)


class TableSchema(WireModel):
    name: str
    # "schema" shadows a BaseModel attribute
    schema_name: Optional[str] = Field(default=None, alias="schema")
    columns: tuple[ColumnInfo, ...] = ()
    row_count: Optional[int] = None
    model_config = ConfigDict(frozen=True)

    def column(self, name: str) -> Optional[ColumnInfo]:
        return next((c for c in self.columns if c.name == name), None)

    @property
    def primary_keys(self) -> list[str]:
        return [c.name for c in self.columns if c.is_primary_key]


class Position(WireModel):
    x: float
    y: float


class TableNode(WireModel):
    id: str
    table_name: str
    position: Position


class JoinType(StrEnum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL_OUTER = "FULL OUTER"


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JoinEdge(WireModel):
    id: str
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    join_type: JoinType = JoinType.INNER

    def same_endpoints(
        self, from_table: str, from_column: str, to_table: str, to_column: str
    ) -> bool:
        """True if this edge joins the same columns, in either direction"""
        forward = (self.from_table, self.from_column, self.to_table, self.to_column)
        return forward == (from_table, from_column, to_table, to_column) or (
            forward == (to_table, to_column, from_table, from_column)
        )


class JoinSuggestion(WireModel):
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    join_type: JoinType = JoinType.INNER
    confidence: Confidence = Confidence.MEDIUM
    reason: str = ""
    model_config = ConfigDict(frozen=True)


class Logic(StrEnum):
    AND = "AND"
    OR = "OR"


class _Condition(WireModel):
    column: str
    logic: Logic = Logic.AND


class ComparisonCondition(_Condition):
    operator: Literal["=", "!=", ">", "<", ">=", "<=", "LIKE"]
    value: Union[str, int, float, bool, datetime]


class ListCondition(_Condition):
    operator: Literal["IN", "NOT IN"]
    value: list[Union[str, int, float, bool]] = Field(min_length=1)


class RangeCondition(_Condition):
    operator: Literal["BETWEEN"]
    value: tuple[Union[str, int, float, datetime], Union[str, int, float, datetime]]


class NullCondition(_Condition):
    operator: Literal["IS NULL", "IS NOT NULL"]


FilterCondition = Annotated[
    Union[ComparisonCondition, ListCondition, RangeCondition, NullCondition],
    Field(discriminator="operator"),
]


class FilterGroup(WireModel):
    logic: Logic = Logic.AND
    conditions: list[FilterCondition] = Field(default_factory=list)


class _Aggregation(WireModel):
    column: str
    alias: Optional[str] = None


class ColumnAggregation(_Aggregation):
    function: Literal["SUM", "AVG", "MIN", "MAX", "COUNT DISTINCT"]

    @field_validator("column")
    @classmethod
    def _no_star(cls, v: str) -> str:
        if v == "*":
            raise ValueError("only COUNT accepts *")
        return v


class CountAggregation(_Aggregation):
    function: Literal["COUNT"]
    column: str = "*"


Aggregation = Annotated[
    Union[ColumnAggregation, CountAggregation],
    Field(discriminator="function"),
]


class ColumnSelection(WireModel):
    table: str
    column: str
    alias: Optional[str] = None


class SortDirection(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


class OrderBy(WireModel):
    column: str
    direction: SortDirection = SortDirection.ASC


class VisualQueryConfig(WireModel):
    tables: list[TableNode] = Field(default_factory=list)
    columns: list[ColumnSelection] = Field(default_factory=list)
    joins: list[JoinEdge] = Field(default_factory=list)
    filters: FilterGroup = Field(default_factory=FilterGroup)
    aggregations: list[Aggregation] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list)
    having: FilterGroup = Field(default_factory=FilterGroup)
    order_by: list[OrderBy] = Field(default_factory=list)
    limit: Optional[int] = Field(default=1000, ge=0)


class SavedVisualQuery(WireModel):
    id: str
    name: str
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    config: VisualQueryConfig = Field(default_factory=VisualQueryConfig)
    updated_at: datetime
    connection_id: Optional[str] = None

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match on name, description or a tag"""
        needle = text.lower()
        return (
            needle in self.name.lower()
            or (self.description is not None and needle in self.description.lower())
            or any(needle in tag.lower() for tag in self.tags or [])
        )
