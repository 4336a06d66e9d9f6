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
import logging
import asyncio

from aiohttp import ClientSession, ClientResponse
from typing import (
    AnyStr,
    Callable,
    Optional,
    Dict,
    TypeAlias,
    Union,
    Awaitable,
    Any,
)
from json import loads, JSONDecodeError
from pydantic import BaseModel, ValidationError
from http import HTTPStatus

from querycanvas import log
from querycanvas.config import settings

DeserializationStrategy: TypeAlias = Union[Callable, BaseModel]


class ApiError(RuntimeError):
    """A non-2xx response from the BI API"""

    def __init__(
        self,
        status: int,
        message: str,
        endpoint: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.endpoint = endpoint
        # the body's `error` field, when the server sent one
        self.detail = detail


class RetryConfig:
    def __init__(self):
        if settings.instance() and settings.instance().api:
            self.config = settings.instance().api.http_retry
        else:
            self.config = settings.HttpRetry()

    @property
    def max_retries(self) -> int:
        """Expose max_retries from config for convenience"""
        return self.config.max_retries

    def get_config_delay(self, attempt_number: int = 0) -> float:
        return self.config.initial_delay * (
            self.config.backoff_multiplier**attempt_number
        )

    def get_delay(
        self,
        response: ClientResponse,
        attempt_number: int,
    ) -> float:
        retry_after = response.headers.get("Retry-After")
        delay = self.get_config_delay(attempt_number=attempt_number)
        if retry_after is not None:
            try:
                delay = min(delay, int(retry_after))
            except (ValueError, TypeError) as e:
                log.logger(__name__).debug(
                    "invalid_retry_after", retry_after=retry_after, error=str(e)
                )

        return min(delay, self.config.max_delay)


async def retry_middleware(
    req, handler: Callable[[Any], Awaitable[ClientResponse]]
) -> ClientResponse:
    """
    Middleware that automatically retries requests on 429 (rate limit) errors.
    Uses exponential backoff with configurable parameters from settings.
    """
    retry_config = RetryConfig()
    for attempt in range(retry_config.max_retries + 1):
        response = await handler(req)
        if response.status != HTTPStatus.TOO_MANY_REQUESTS:
            break

        if attempt == retry_config.max_retries:
            break

        delay = retry_config.get_delay(response, attempt)
        log.logger(f"{__name__}.retry").warning(
            "rate_limited",
            method=req.method,
            path=req.url.path,
            attempt=attempt + 1,
            max_retries=retry_config.max_retries,
            delay=round(delay, 2),
        )
        await asyncio.sleep(delay)

    return response


async def error_detail(response: ClientResponse) -> Optional[str]:
    """The `error` field of a JSON error body"""
    try:
        body = loads(await response.text())
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
    except (JSONDecodeError, UnicodeDecodeError, ValueError):
        pass
    return None


class AsyncHttpClient:
    def __init__(self, uri: AnyStr, token: Optional[AnyStr] = None):
        self.uri = uri
        self.token = token
        self.headers = {"content-type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def deserialize(
        self,
        response: ClientResponse,
        deser: DeserializationStrategy,
        top_level_list: bool = False,
    ):
        js = await response.text()
        if not js:
            return None
        try:
            if isinstance(deser, type) and issubclass(deser, BaseModel):
                if top_level_list:
                    return [deser.model_validate(o) for o in loads(js)]
                return deser.model_validate_json(js)
            return loads(js, object_hook=deser)
        except ValidationError as e:
            log.logger(__name__).error(
                "response_validation_failed",
                method=response.request_info.method,
                url=str(response.request_info.url),
                errors=e.errors(),
                data=js,
            )
            raise RuntimeError(f"Unable to parse {e}, deser={deser}\n{e.errors()}")
        except Exception as e:
            log.logger(__name__).error(
                "response_parse_failed",
                method=response.request_info.method,
                url=str(response.request_info.url),
                deser=str(deser),
                data=js,
                error=str(e),
            )
            raise

    async def handle_response(
        self,
        response: ClientResponse,
        deser: DeserializationStrategy,
        endpoint: str,
        top_level_list: bool = False,
    ):
        if response.status >= 400:
            detail = await error_detail(response)
            message = detail or response.reason or f"HTTP {response.status}"
            log.logger(__name__).warning(
                "request_failed",
                endpoint=endpoint,
                status=response.status,
                error=message,
            )
            raise ApiError(response.status, message, endpoint, detail=detail)
        return await self.deserialize(response, deser, top_level_list=top_level_list)

    def log_request(
        self, method: str, endpoint: str, params: Optional[Dict[AnyStr, Any]] = None
    ):
        if log.is_enabled_for(logging.DEBUG):
            sanitized_headers = {
                k: (v if k != "Authorization" else "Bearer <redacted>")
                for k, v in self.headers.items()
            }
            log.logger(__name__).debug(
                "http_request",
                method=method,
                url=f"{self.uri}{endpoint}",
                headers=sanitized_headers,
                params=params,
            )

    async def request(
        self,
        method: str,
        endpoint: AnyStr,
        params: Optional[Dict[AnyStr, Any]] = None,
        body: Optional[Any] = None,
        deser: Optional[DeserializationStrategy] = None,
        top_level_list: bool = False,
    ):
        async with ClientSession(middlewares=(retry_middleware,)) as session:
            self.log_request(method, endpoint, params)
            async with session.request(
                method,
                f"{self.uri}{endpoint}",
                headers=self.headers,
                json=body,
                params=params,
            ) as response:
                return await self.handle_response(
                    response, deser, endpoint, top_level_list=top_level_list
                )

    async def get(
        self,
        endpoint: AnyStr,
        params: Dict[AnyStr, AnyStr] = None,
        deser: Optional[DeserializationStrategy] = None,
        top_level_list: bool = False,
    ):
        return await self.request(
            "GET", endpoint, params=params, deser=deser, top_level_list=top_level_list
        )

    async def post(
        self,
        endpoint: AnyStr,
        body: Optional[Any] = None,
        deser: Optional[DeserializationStrategy] = None,
        top_level_list: bool = False,
    ):
        return await self.request(
            "POST", endpoint, body=body, deser=deser, top_level_list=top_level_list
        )

    async def put(
        self,
        endpoint: AnyStr,
        body: Optional[Any] = None,
        deser: Optional[DeserializationStrategy] = None,
    ):
        return await self.request("PUT", endpoint, body=body, deser=deser)

    async def delete(self, endpoint: AnyStr):
        return await self.request("DELETE", endpoint)


class BiAsyncHttpClient(AsyncHttpClient):
    def __init__(self):
        api = settings.instance().api
        if api is None or api.uri is None:
            raise RuntimeError("api.uri is required")
        super().__init__(api.uri, api.token)
