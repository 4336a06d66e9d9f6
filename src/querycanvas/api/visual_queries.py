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
from typing import List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from querycanvas.api.transport import AsyncHttpClient, BiAsyncHttpClient
from querycanvas.builder.models import (
    JoinSuggestion,
    SavedVisualQuery,
    VisualQueryConfig,
)


class GeneratedSql(BaseModel):
    sql: Optional[str] = ""


class JoinSuggestions(BaseModel):
    suggestions: List[JoinSuggestion] = Field(default_factory=list)


class SavedQueries(BaseModel):
    queries: List[SavedVisualQuery] = Field(default_factory=list)


async def generate_sql(
    connection_id: str,
    config: VisualQueryConfig,
    client: Optional[AsyncHttpClient] = None,
) -> str:
    client = client or BiAsyncHttpClient()
    result = await client.post(
        "/api/visual-queries/generate-sql",
        body={"connection_id": connection_id, "config": config.to_wire()},
        deser=GeneratedSql,
    )
    return (result.sql or "") if result is not None else ""


async def get_join_suggestions(
    connection_id: str,
    table_names: List[str],
    client: Optional[AsyncHttpClient] = None,
) -> List[JoinSuggestion]:
    client = client or BiAsyncHttpClient()
    result = await client.post(
        "/api/visual-queries/join-suggestions",
        body={"connectionId": connection_id, "tableNames": list(table_names)},
        deser=JoinSuggestions,
    )
    return list(result.suggestions) if result is not None else []


async def list_saved_queries(
    workspace_id: str, client: Optional[AsyncHttpClient] = None
) -> List[SavedVisualQuery]:
    client = client or BiAsyncHttpClient()
    result = await client.get(
        "/api/visual-queries",
        params={"workspace_id": workspace_id},
        deser=SavedQueries,
    )
    return list(result.queries) if result is not None else []


async def save_query(
    workspace_id: str,
    connection_id: str,
    name: str,
    config: VisualQueryConfig,
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
    client: Optional[AsyncHttpClient] = None,
) -> SavedVisualQuery:
    if not name or not name.strip():
        raise ValueError("Query name is required")
    client = client or BiAsyncHttpClient()
    body = {
        "workspace_id": workspace_id,
        "connectionId": connection_id,
        "name": name.strip(),
        "config": config.to_wire(),
        "tags": tags or [],
    }
    if description:
        body["description"] = description
    return await client.post("/api/visual-queries", body=body, deser=SavedVisualQuery)


async def delete_query(query_id: str, client: Optional[AsyncHttpClient] = None):
    client = client or BiAsyncHttpClient()
    await client.delete(f"/api/visual-queries/{quote(query_id, safe='')}")
