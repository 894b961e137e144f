"""Tool executor: runs model-issued tool calls against the live service.

``ToolExecutor.execute`` never raises for ordinary failures. Bad input,
unconfigured backends and downstream errors are encoded as
``{"error": "<message>"}`` so the model can read them and adapt.
"""

import json
import logging
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from storyprobe.agents import tools
from storyprobe.backends.bus import DEFAULT_READ_TIMEOUT, MessageBusBackend, read_topic_snapshot
from storyprobe.backends.http import HTTPClient
from storyprobe.backends.sql import SQLArgs, SQLBackend
from storyprobe.core.models import ToolCall

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class HTTPRequestInput(BaseModel):
    method: str
    path: str
    body: Any = None


class SQLInput(BaseModel):
    query: str
    args: SQLArgs = None


class AssertCountInput(BaseModel):
    topic: str
    count: int


class AssertContainsInput(BaseModel):
    topic: str
    substr: str
    want_count: int


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def to_json(value: Any) -> str:
    """Encode a tool result; values JSON cannot represent are stringified."""
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def error_json(message: str) -> str:
    return to_json({"error": message})


def _decode(value: bytes | str) -> str:
    if isinstance(value, str):
        return value
    return value.decode("utf-8", errors="replace")


class ToolExecutor:
    """Dispatches tool calls to the HTTP client, SQL backend and message bus."""

    def __init__(
        self,
        http: HTTPClient,
        sql: SQLBackend | None = None,
        bus: MessageBusBackend | None = None,
        service_url: str = "",
        bus_read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self.http = http
        self.sql = sql
        self.bus = bus
        self.service_url = service_url
        self.bus_read_timeout = bus_read_timeout

        self._handlers: dict[str, Callable[[str], Awaitable[str]]] = {
            tools.HTTP_REQUEST: self._http_request,
            tools.SQL_EXEC: self._sql_exec,
            tools.SQL_QUERY_ONE: self._sql_query_one,
            tools.SQL_QUERY_ALL: self._sql_query_all,
            tools.KAFKA_ASSERT_COUNT: self._kafka_assert_count,
            tools.KAFKA_ASSERT_CONTAINS: self._kafka_assert_contains,
        }

    @property
    def has_sql(self) -> bool:
        return self.sql is not None

    @property
    def has_bus(self) -> bool:
        return self.bus is not None

    async def execute(self, call: ToolCall) -> tuple[str, str, str]:
        """Run ``call`` and return ``(tool_name, input_json, output_json)``."""
        handler = self._handlers.get(call.name)
        if handler is None:
            return call.name, call.input, error_json(f"unknown tool: {call.name}")

        logger.debug(f"Calling tool: {call.name} {call.input}")
        try:
            output = await handler(call.input or "{}")
        except ValidationError as e:
            output = error_json(f"invalid input: {e}")
        except Exception as e:
            logger.warning(f"Tool {call.name} failed: {e}")
            output = error_json(str(e) or type(e).__name__)

        return call.name, call.input, output

    # HTTP

    async def _http_request(self, raw: str) -> str:
        params = HTTPRequestInput.model_validate_json(raw)

        body = params.body
        if isinstance(body, str):
            if not body:
                body = None
            else:
                try:
                    body = json.loads(body)
                except ValueError:
                    pass  # sent as a JSON string

        method = params.method.upper()
        if method not in HTTP_METHODS:
            return error_json(f"unsupported method: {params.method}")

        if method in ("GET", "DELETE"):
            response = await self.http.request(method, params.path)
        else:
            response = await self.http.request(method, params.path, body)

        return to_json({"status": response.status_code, "body": response.json()})

    # SQL

    async def _sql_exec(self, raw: str) -> str:
        if self.sql is None:
            return error_json("postgres not configured")
        params = SQLInput.model_validate_json(raw)
        rows_affected = await self.sql.execute(params.query, params.args)
        return to_json({"rows_affected": rows_affected})

    async def _sql_query_one(self, raw: str) -> str:
        if self.sql is None:
            return error_json("postgres not configured")
        params = SQLInput.model_validate_json(raw)
        row = await self.sql.query_one(params.query, params.args)
        if row is None:
            return error_json("no rows")
        return to_json(row)

    async def _sql_query_all(self, raw: str) -> str:
        if self.sql is None:
            return error_json("postgres not configured")
        params = SQLInput.model_validate_json(raw)
        rows = await self.sql.query_all(params.query, params.args)
        return to_json(rows)

    # Message bus

    async def _read_topic(self, topic: str) -> list[str]:
        messages = await read_topic_snapshot(self.bus, topic, timeout=self.bus_read_timeout)
        return [_decode(message) for message in messages]

    async def _kafka_assert_count(self, raw: str) -> str:
        if self.bus is None:
            return error_json("kafka not configured")
        params = AssertCountInput.model_validate_json(raw)
        messages = await self._read_topic(params.topic)

        if len(messages) == params.count:
            return to_json({"ok": True, "total": len(messages)})
        return to_json(
            {
                "ok": False,
                "expected": params.count,
                "actual": len(messages),
                "messages": messages,
            }
        )

    async def _kafka_assert_contains(self, raw: str) -> str:
        if self.bus is None:
            return error_json("kafka not configured")
        params = AssertContainsInput.model_validate_json(raw)
        messages = await self._read_topic(params.topic)
        matched = sum(1 for message in messages if params.substr in message)

        if matched == params.want_count:
            return to_json({"ok": True, "matched": matched, "total": len(messages)})
        return to_json(
            {
                "ok": False,
                "matched": matched,
                "total": len(messages),
                "messages": messages,
            }
        )
