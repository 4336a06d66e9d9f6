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
from datetime import datetime
from enum import StrEnum
from typing import List, Optional, Type, TypeVar
from urllib.parse import quote

from pydantic import ConfigDict, Field

from querycanvas.api.transport import AsyncHttpClient, BiAsyncHttpClient
from querycanvas.builder.models import WireModel


class MetricType(StrEnum):
    SUM = "sum"
    AVG = "avg"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    MIN = "min"
    MAX = "max"
    CUSTOM = "custom"


class DimensionType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class RelationshipType(StrEnum):
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


class Metric(WireModel):
    id: Optional[str] = None
    connection_id: Optional[str] = None
    name: str
    label: Optional[str] = None
    type: MetricType = MetricType.SUM
    definition: str = ""
    description: Optional[str] = None


class Dimension(WireModel):
    id: Optional[str] = None
    connection_id: Optional[str] = None
    name: str
    label: Optional[str] = None
    type: DimensionType = DimensionType.STRING
    table_name: str = ""
    column_name: str = ""
    description: Optional[str] = None


class Relationship(WireModel):
    """A virtual relationship between two tables"""

    id: Optional[str] = None
    connection_id: Optional[str] = None
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    type: RelationshipType = RelationshipType.ONE_TO_MANY


class MetricDefinition(WireModel):
    id: Optional[str] = None
    model_id: Optional[str] = None
    name: str
    formula: str
    description: Optional[str] = None
    format: Optional[str] = None
    model_config = ConfigDict(protected_namespaces=())


class ModelDefinition(WireModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    connection_id: Optional[str] = None
    source_table: Optional[str] = None
    metrics: List[MetricDefinition] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


Entity = TypeVar("Entity", Metric, Dimension, Relationship)

_ENTITY_PATHS = {
    Metric: "/api/semantic/metrics",
    Dimension: "/api/semantic/dimensions",
    Relationship: "/api/semantic/relationships",
}


def _path(kind: Type[WireModel]) -> str:
    return _ENTITY_PATHS[kind]


async def list_entities(
    kind: Type[Entity], connection_id: str, client: Optional[AsyncHttpClient] = None
) -> List[Entity]:
    client = client or BiAsyncHttpClient()
    result = await client.get(
        _path(kind),
        params={"connectionId": connection_id},
        deser=kind,
        top_level_list=True,
    )
    return result or []


async def create_entity(
    entity: Entity, connection_id: str, client: Optional[AsyncHttpClient] = None
) -> Entity:
    client = client or BiAsyncHttpClient()
    body = entity.to_wire()
    body["connectionId"] = connection_id
    body.pop("id", None)
    return await client.post(_path(type(entity)), body=body, deser=type(entity))


async def delete_entity(
    kind: Type[Entity], entity_id: str, client: Optional[AsyncHttpClient] = None
):
    client = client or BiAsyncHttpClient()
    await client.delete(f"{_path(kind)}/{quote(entity_id, safe='')}")


async def list_metrics(connection_id: str, client=None) -> List[Metric]:
    return await list_entities(Metric, connection_id, client=client)


async def list_dimensions(connection_id: str, client=None) -> List[Dimension]:
    return await list_entities(Dimension, connection_id, client=client)


async def list_relationships(connection_id: str, client=None) -> List[Relationship]:
    return await list_entities(Relationship, connection_id, client=client)


_MODELS = "/api/modeling/definitions"


async def list_models(client: Optional[AsyncHttpClient] = None) -> List[ModelDefinition]:
    client = client or BiAsyncHttpClient()
    return (
        await client.get(_MODELS, deser=ModelDefinition, top_level_list=True) or []
    )


async def get_model(
    model_id: str, client: Optional[AsyncHttpClient] = None
) -> ModelDefinition:
    client = client or BiAsyncHttpClient()
    return await client.get(
        f"{_MODELS}/{quote(model_id, safe='')}", deser=ModelDefinition
    )


async def create_model(
    model: ModelDefinition, client: Optional[AsyncHttpClient] = None
) -> ModelDefinition:
    if not model.name.strip():
        raise ValueError("Model name is required")
    client = client or BiAsyncHttpClient()
    body = model.to_wire()
    for k in ("id", "createdAt", "updatedAt"):
        body.pop(k, None)
    return await client.post(_MODELS, body=body, deser=ModelDefinition)


async def update_model(
    model: ModelDefinition, client: Optional[AsyncHttpClient] = None
) -> ModelDefinition:
    if model.id is None:
        raise ValueError("Model id is required for an update")
    client = client or BiAsyncHttpClient()
    return await client.put(
        f"{_MODELS}/{quote(model.id, safe='')}",
        body=model.to_wire(),
        deser=ModelDefinition,
    )


async def delete_model(model_id: str, client: Optional[AsyncHttpClient] = None):
    client = client or BiAsyncHttpClient()
    await client.delete(f"{_MODELS}/{quote(model_id, safe='')}")


async def list_model_metrics(
    model_id: str, client: Optional[AsyncHttpClient] = None
) -> List[MetricDefinition]:
    client = client or BiAsyncHttpClient()
    return (
        await client.get(
            f"{_MODELS}/{quote(model_id, safe='')}/metrics",
            deser=MetricDefinition,
            top_level_list=True,
        )
        or []
    )


async def add_model_metric(
    model_id: str,
    metric: MetricDefinition,
    client: Optional[AsyncHttpClient] = None,
) -> MetricDefinition:
    client = client or BiAsyncHttpClient()
    body = metric.to_wire()
    body.pop("id", None)
    body["modelId"] = model_id
    return await client.post(
        f"{_MODELS}/{quote(model_id, safe='')}/metrics",
        body=body,
        deser=MetricDefinition,
    )
