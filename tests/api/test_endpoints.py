#
#  Copyright (C) 2017-2025 Dremio Corporation
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
#

import pytest
from aiohttp import ClientError

from querycanvas.api import dashboards, semantic, visual_queries
from querycanvas.api.schema import SchemaProvider, SchemaResponse
from querycanvas.api.transport import ApiError
from querycanvas.builder.models import (
    JoinSuggestion,
    Position,
    TableNode,
    VisualQueryConfig,
)
from querycanvas.dashboard.export import ExportJob, ExportOptions


class TestSchemaProvider:
    @pytest.mark.asyncio
    async def test_fetch(self, client, schemas):
        client.get.return_value = SchemaResponse(tables=schemas)
        provider = SchemaProvider("conn/1", client=client)
        tables = await provider.fetch()

        assert [t.name for t in tables] == [
            "customers",
            "orders",
            "products",
            "regions",
        ]
        assert client.get.call_args[0][0] == "/api/connections/conn%2F1/schema"
        assert provider.loading is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [ApiError(500, "boom"), ClientError("down"), ValueError("bad json")]
    )
    async def test_failure_keeps_previous_tables(self, client, schemas, error):
        client.get.return_value = SchemaResponse(tables=schemas)
        provider = SchemaProvider("c1", client=client)
        await provider.fetch()

        client.get.side_effect = error
        tables = await provider.fetch()
        assert len(tables) == 4
        assert provider.loading is False

    @pytest.mark.asyncio
    async def test_search_matches_table_and_column_names(self, client, schemas):
        client.get.return_value = SchemaResponse(tables=schemas)
        provider = SchemaProvider("c1", client=client)
        await provider.fetch()

        assert [t.name for t in provider.search("ORD")] == ["orders"]
        assert [t.name for t in provider.search("sku")] == ["products"]
        assert len(provider.search("")) == 4
        assert provider.get_table("regions").columns[0].name == "code"
        assert provider.get_table("missing") is None


class TestVisualQueries:
    @pytest.mark.asyncio
    async def test_generate_sql_body(self, client):
        client.post.return_value = visual_queries.GeneratedSql(sql="SELECT 1")
        config = VisualQueryConfig(
            tables=[TableNode(id="t1", table_name="orders", position=Position(x=50, y=50))]
        )
        sql = await visual_queries.generate_sql("c1", config, client=client)

        assert sql == "SELECT 1"
        endpoint = client.post.call_args[0][0]
        body = client.post.call_args.kwargs["body"]
        assert endpoint == "/api/visual-queries/generate-sql"
        assert body["connection_id"] == "c1"
        assert body["config"]["tables"][0]["tableName"] == "orders"
        assert body["config"]["groupBy"] == []
        assert body["config"]["limit"] == 1000

    @pytest.mark.asyncio
    async def test_generate_sql_null_is_empty(self, client):
        client.post.return_value = visual_queries.GeneratedSql(sql=None)
        assert await visual_queries.generate_sql("c1", VisualQueryConfig(), client) == ""

    @pytest.mark.asyncio
    async def test_join_suggestions_body(self, client):
        suggestion = JoinSuggestion(
            from_table="orders",
            from_column="customer_id",
            to_table="customers",
            to_column="id",
            confidence="high",
            reason="foreign key",
        )
        client.post.return_value = visual_queries.JoinSuggestions(
            suggestions=[suggestion]
        )
        result = await visual_queries.get_join_suggestions(
            "c1", ["orders", "customers"], client=client
        )
        assert result == [suggestion]
        assert client.post.call_args.kwargs["body"] == {
            "connectionId": "c1",
            "tableNames": ["orders", "customers"],
        }

    @pytest.mark.asyncio
    async def test_list_saved_queries_params(self, client):
        client.get.return_value = visual_queries.SavedQueries()
        assert await visual_queries.list_saved_queries("ws-1", client=client) == []
        assert client.get.call_args.kwargs["params"] == {"workspace_id": "ws-1"}

    @pytest.mark.asyncio
    async def test_save_requires_name(self, client):
        with pytest.raises(ValueError):
            await visual_queries.save_query(
                "ws-1", "c1", "  ", VisualQueryConfig(), client=client
            )
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_query(self, client):
        await visual_queries.delete_query("q 1", client=client)
        client.delete.assert_awaited_once_with("/api/visual-queries/q%201")


class TestSemantic:
    @pytest.mark.asyncio
    async def test_list_metrics_filtered_by_connection(self, client):
        client.get.return_value = [semantic.Metric(name="revenue")]
        result = await semantic.list_metrics("c1", client=client)

        assert result[0].name == "revenue"
        assert client.get.call_args[0][0] == "/api/semantic/metrics"
        assert client.get.call_args.kwargs["params"] == {"connectionId": "c1"}
        assert client.get.call_args.kwargs["top_level_list"] is True

    @pytest.mark.asyncio
    async def test_create_relationship_body(self, client):
        rel = semantic.Relationship(
            id="ignored",
            from_table="orders",
            from_column="customer_id",
            to_table="customers",
            to_column="id",
        )
        await semantic.create_entity(rel, "c1", client=client)
        endpoint = client.post.call_args[0][0]
        body = client.post.call_args.kwargs["body"]
        assert endpoint == "/api/semantic/relationships"
        assert body["connectionId"] == "c1"
        assert body["fromTable"] == "orders"
        assert body["type"] == "one-to-many"
        assert "id" not in body

    @pytest.mark.asyncio
    async def test_delete_dimension(self, client):
        await semantic.delete_entity(semantic.Dimension, "d1", client=client)
        client.delete.assert_awaited_once_with("/api/semantic/dimensions/d1")

    @pytest.mark.asyncio
    async def test_model_crud(self, client):
        with pytest.raises(ValueError):
            await semantic.create_model(semantic.ModelDefinition(name=" "), client)
        with pytest.raises(ValueError):
            await semantic.update_model(semantic.ModelDefinition(name="m"), client)

        model = semantic.ModelDefinition(id="m1", name="Sales")
        await semantic.update_model(model, client=client)
        assert client.put.call_args[0][0] == "/api/modeling/definitions/m1"

        await semantic.add_model_metric(
            "m1", semantic.MetricDefinition(name="aov", formula="SUM(x)/COUNT(*)"), client
        )
        assert client.post.call_args[0][0] == "/api/modeling/definitions/m1/metrics"
        assert client.post.call_args.kwargs["body"]["modelId"] == "m1"


class TestDashboards:
    @pytest.mark.asyncio
    async def test_schedule_rejects_blank_email(self, client):
        with pytest.raises(ValueError, match="Please enter an email address"):
            await dashboards.schedule_report("d1", "   ", client=client)
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_schedule_body(self, client):
        await dashboards.schedule_report(
            "d1",
            " me@example.com ",
            frequency=dashboards.Frequency.DAILY,
            format=dashboards.ReportFormat.CSV,
            client=client,
        )
        assert client.post.call_args[0][0] == "/api/dashboards/d1/schedule"
        assert client.post.call_args.kwargs["body"] == {
            "frequency": "DAILY",
            "email": "me@example.com",
            "format": "CSV",
        }

    @pytest.mark.asyncio
    async def test_explain_truncates_rows(self, client, mock_settings_instance):
        client.post.return_value = dashboards.Insights(insights=["up and to the right"])
        rows = [{"n": i} for i in range(120)]
        insights = await dashboards.explain_data(rows, title="Revenue", client=client)

        assert insights == ["up and to the right"]
        body = client.post.call_args.kwargs["body"]
        assert len(body["data"]) == 50
        assert body["data"][-1] == {"n": 49}
        assert '"Revenue"' in body["context"]

    @pytest.mark.asyncio
    async def test_export_endpoints(self, client):
        client.post.return_value = ExportJob(export_id="e1")
        job = await dashboards.start_export(
            "d1", ExportOptions(format="png", title="Q1"), client=client
        )
        assert job.export_id == "e1"
        assert client.post.call_args[0][0] == "/api/dashboards/d1/export"
        body = client.post.call_args.kwargs["body"]
        assert body["format"] == "png"
        assert body["pageSize"] == "A4"
        assert body["title"] == "Q1"

        client.get.return_value = ExportJob(export_id="e1", status="completed")
        await dashboards.get_export_status("d1", "e1", client=client)
        assert client.get.call_args[0][0] == "/api/dashboards/d1/export/e1"
