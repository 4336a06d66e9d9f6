import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from aiohttp import ClientError

from querycanvas.api.transport import ApiError
from querycanvas.builder.models import (
    ColumnAggregation,
    ComparisonCondition,
    FilterGroup,
    JoinEdge,
    Position,
    TableNode,
    VisualQueryConfig,
)
from querycanvas.builder.preview import (
    PLACEHOLDER_SQL,
    Complexity,
    SqlPreview,
    complexity,
    complexity_score,
)


def node(name: str) -> TableNode:
    return TableNode(id=f"t-{name}", table_name=name, position=Position(x=0, y=0))


def join() -> JoinEdge:
    return JoinEdge(
        id="j1", from_table="t1", from_column="a", to_table="t2", to_column="b"
    )


def condition() -> ComparisonCondition:
    return ComparisonCondition(column="a", operator=">", value=1)


class TestComplexity:
    def test_single_table_has_no_badge(self):
        config = VisualQueryConfig(tables=[node("t1")])
        assert complexity_score(config) == 0
        assert complexity(config) is None

    def test_moderate(self):
        config = VisualQueryConfig(
            tables=[node("t1"), node("t2")],
            joins=[join()],
            filters=FilterGroup(conditions=[condition()]),
        )
        assert complexity_score(config) == 3
        assert complexity(config) == Complexity.MODERATE
        assert complexity(config) == "Moderate"

    @pytest.mark.parametrize(
        "extra,expected",
        [
            ({}, Complexity.SIMPLE),
            ({"aggregations": [ColumnAggregation(function="SUM", column="x")]}, Complexity.SIMPLE),
            (
                {
                    "aggregations": [ColumnAggregation(function="SUM", column="x")],
                    "group_by": ["a"],
                    "having": FilterGroup(conditions=[condition()]),
                    "joins": [join()],
                },
                Complexity.COMPLEX,
            ),
        ],
    )
    def test_levels(self, extra, expected):
        config = VisualQueryConfig(tables=[node("t1"), node("t2")], **extra)
        assert complexity(config) == expected


class TestPreview:
    @pytest.mark.asyncio
    async def test_no_tables_placeholder_without_request(self, client):
        preview = SqlPreview("c1", client=client)
        with patch(
            "querycanvas.builder.preview.generate_sql", new_callable=AsyncMock
        ) as gen:
            sql = await preview.refresh(VisualQueryConfig())
        gen.assert_not_called()
        client.post.assert_not_called()
        assert sql == "-- Select tables to start building your query"
        assert sql == PLACEHOLDER_SQL
        assert preview.error is None
        assert preview.can_copy is False

    @pytest.mark.asyncio
    async def test_success(self, client):
        preview = SqlPreview("c1", client=client)
        config = VisualQueryConfig(tables=[node("orders")])
        with patch(
            "querycanvas.builder.preview.generate_sql",
            new_callable=AsyncMock,
            return_value="SELECT * FROM orders",
        ) as gen:
            await preview.refresh(config)
        gen.assert_awaited_once_with("c1", config, client=client)
        assert preview.sql == "SELECT * FROM orders"
        assert preview.loading is False
        assert preview.can_copy is True
        assert preview.copy() == "SELECT * FROM orders"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,message",
        [
            (ApiError(400, "Bad Request", detail="unknown column x"), "unknown column x"),
            (ApiError(500, "Internal Server Error"), "Failed to generate SQL"),
            (ClientError(), "Failed to generate SQL"),
        ],
    )
    async def test_failure(self, client, error, message):
        preview = SqlPreview("c1", client=client)
        with patch(
            "querycanvas.builder.preview.generate_sql",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            sql = await preview.refresh(VisualQueryConfig(tables=[node("orders")]))
        assert preview.error == message
        assert sql == f"-- Error generating SQL: {message}"
        assert preview.can_copy is False
        assert preview.copy() is None

    @pytest.mark.asyncio
    async def test_connection_id_override(self, client):
        preview = SqlPreview("c1", client=client)
        with patch(
            "querycanvas.builder.preview.generate_sql",
            new_callable=AsyncMock,
            return_value="SELECT 1",
        ) as gen:
            await preview.refresh(VisualQueryConfig(tables=[node("t")]), "c2")
        assert gen.call_args[0][0] == "c2"

    @pytest.mark.asyncio
    async def test_stale_response_never_overwrites_newer(self, client):
        preview = SqlPreview("c1", client=client)
        release_first = asyncio.Event()

        async def gen(connection_id, config, client=None):
            if config.tables[0].table_name == "old":
                await release_first.wait()
                return "SELECT old"
            return "SELECT new"

        with patch("querycanvas.builder.preview.generate_sql", new=gen):
            first = asyncio.create_task(
                preview.refresh(VisualQueryConfig(tables=[node("old")]))
            )
            await asyncio.sleep(0)
            await preview.refresh(VisualQueryConfig(tables=[node("new")]))
            release_first.set()
            await first

        assert preview.sql == "SELECT new"
        assert preview.loading is False

    @pytest.mark.asyncio
    async def test_placeholder_wins_over_inflight_request(self, client):
        preview = SqlPreview("c1", client=client)
        release = asyncio.Event()

        async def gen(connection_id, config, client=None):
            await release.wait()
            return "SELECT late"

        with patch("querycanvas.builder.preview.generate_sql", new=gen):
            first = asyncio.create_task(
                preview.refresh(VisualQueryConfig(tables=[node("t")]))
            )
            await asyncio.sleep(0)
            await preview.refresh(VisualQueryConfig())
            release.set()
            await first

        assert preview.sql == PLACEHOLDER_SQL
