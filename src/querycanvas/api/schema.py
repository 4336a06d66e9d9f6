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

from aiohttp import ClientError
from pydantic import BaseModel, Field

from querycanvas import log
from querycanvas.api.transport import AsyncHttpClient, BiAsyncHttpClient
from querycanvas.builder.models import TableSchema


class SchemaResponse(BaseModel):
    tables: List[TableSchema] = Field(default_factory=list)


async def get_schema(
    connection_id: str, client: Optional[AsyncHttpClient] = None
) -> SchemaResponse:
    client = client or BiAsyncHttpClient()
    result = await client.get(
        f"/api/connections/{quote(connection_id, safe='')}/schema",
        deser=SchemaResponse,
    )
    return result if result is not None else SchemaResponse()


class SchemaProvider:
    """Tables and column metadata for one connection.

    A failed fetch keeps the previously loaded tables and is only logged.
    """

    def __init__(self, connection_id: str, client: Optional[AsyncHttpClient] = None):
        self.connection_id = connection_id
        self.client = client
        self.tables: List[TableSchema] = []
        self.loading = False

    async def fetch(self) -> List[TableSchema]:
        self.loading = True
        try:
            response = await get_schema(self.connection_id, client=self.client)
            self.tables = list(response.tables)
            log.logger(__name__).info(
                "schema_loaded",
                connection_id=self.connection_id,
                tables=len(self.tables),
            )
        except (RuntimeError, ValueError, ClientError) as e:
            log.logger(__name__).error(
                "schema_fetch_failed", connection_id=self.connection_id, error=str(e)
            )
        finally:
            self.loading = False
        return self.tables

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def get_table(self, name: str) -> Optional[TableSchema]:
        return next((t for t in self.tables if t.name == name), None)

    def search(self, text: str) -> List[TableSchema]:
        if not text:
            return list(self.tables)
        needle = text.lower()
        return [
            t
            for t in self.tables
            if needle in t.name.lower()
            or any(needle in c.name.lower() for c in t.columns)
        ]
