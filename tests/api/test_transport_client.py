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
from unittest.mock import AsyncMock, MagicMock
from pydantic import BaseModel

from querycanvas.api.transport import (
    ApiError,
    AsyncHttpClient,
    BiAsyncHttpClient,
)
from querycanvas.config import settings


class Item(BaseModel):
    name: str


def response(status=200, text="", reason="OK"):
    r = MagicMock()
    r.status = status
    r.reason = reason
    r.text = AsyncMock(return_value=text)
    r.request_info.method = "GET"
    r.request_info.url = "https://bi.example.com/x"
    return r


def test_headers_carry_bearer_token():
    c = AsyncHttpClient("https://bi.example.com", "tok")
    assert c.headers["Authorization"] == "Bearer tok"
    assert "Authorization" not in AsyncHttpClient("https://bi.example.com").headers


@pytest.mark.asyncio
async def test_error_uses_body_error_field():
    c = AsyncHttpClient("https://bi.example.com")
    with pytest.raises(ApiError) as e:
        await c.handle_response(
            response(400, '{"error": "bad table"}', "Bad Request"), Item, "/x"
        )
    assert e.value.status == 400
    assert e.value.message == "bad table"
    assert e.value.detail == "bad table"
    assert e.value.endpoint == "/x"
    assert isinstance(e.value, RuntimeError)


@pytest.mark.asyncio
async def test_error_falls_back_to_reason():
    c = AsyncHttpClient("https://bi.example.com")
    with pytest.raises(ApiError) as e:
        await c.handle_response(
            response(502, "<html>gateway</html>", "Bad Gateway"), Item, "/x"
        )
    assert e.value.message == "Bad Gateway"
    assert e.value.detail is None


@pytest.mark.asyncio
async def test_deserialize_model_and_list():
    c = AsyncHttpClient("https://bi.example.com")
    item = await c.handle_response(response(text='{"name": "a"}'), Item, "/x")
    assert item == Item(name="a")

    items = await c.handle_response(
        response(text='[{"name": "a"}, {"name": "b"}]'), Item, "/x", top_level_list=True
    )
    assert [i.name for i in items] == ["a", "b"]


@pytest.mark.asyncio
async def test_empty_body_is_none():
    c = AsyncHttpClient("https://bi.example.com")
    assert await c.handle_response(response(204, ""), Item, "/x") is None


@pytest.mark.asyncio
async def test_malformed_body_raises_runtime_error():
    c = AsyncHttpClient("https://bi.example.com")
    with pytest.raises(RuntimeError):
        await c.handle_response(response(text='{"other": 1}'), Item, "/x")


def test_bi_client_requires_uri():
    old = settings._settings.get()
    try:
        settings._settings.set(settings.Settings())
        with pytest.raises(RuntimeError):
            BiAsyncHttpClient()
    finally:
        settings._settings.set(old)


def test_bi_client_from_settings(mock_settings_instance):
    c = BiAsyncHttpClient()
    assert c.uri == "https://bi.example.com"
    assert c.headers["Authorization"] == "Bearer test-token"
