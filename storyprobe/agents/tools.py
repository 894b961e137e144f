"""Tool catalog offered to the model during story execution.

The catalog is capability gated: ``http_request`` is always available, the
SQL tools only when a SQL backend is configured and the message-bus tools
only when a bus backend is configured.
"""

from dataclasses import dataclass, field
from typing import Any

from storyprobe.core.models import ToolDefinition

HTTP_REQUEST = "http_request"
SQL_EXEC = "sql_exec"
SQL_QUERY_ONE = "sql_query_one"
SQL_QUERY_ALL = "sql_query_all"
KAFKA_ASSERT_COUNT = "kafka_assert_count"
KAFKA_ASSERT_CONTAINS = "kafka_assert_contains"

SQL_TOOLS = (SQL_EXEC, SQL_QUERY_ONE, SQL_QUERY_ALL)
BUS_TOOLS = (KAFKA_ASSERT_COUNT, KAFKA_ASSERT_CONTAINS)


@dataclass
class ToolParameter:
    """Describes a parameter for a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    items: dict[str, Any] | None = None


@dataclass
class ToolMetadata:
    """Describes a tool's capabilities and interface."""

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def to_schema(self) -> dict[str, Any]:
        """Convert to JSON schema format for LLM function calling."""
        properties = {}
        required = []

        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type, "description": param.description}
            if param.items is not None:
                prop["items"] = param.items
            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        return {"type": "object", "properties": properties, "required": required}

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name, description=self.description, input_schema=self.to_schema()
        )


def _sql_params(query_description: str) -> list[ToolParameter]:
    return [
        ToolParameter("query", "string", query_description),
        ToolParameter(
            "args",
            "array",
            "Positional query arguments, optional",
            required=False,
            items={},
        ),
    ]


CATALOG: dict[str, ToolMetadata] = {
    HTTP_REQUEST: ToolMetadata(
        name=HTTP_REQUEST,
        description=(
            "Make an HTTP request to the service under test. "
            "Returns status code and response body."
        ),
        parameters=[
            ToolParameter("method", "string", "HTTP method: GET, POST, PUT, PATCH, DELETE"),
            ToolParameter("path", "string", "URL path, e.g. /users or /users/1"),
            ToolParameter(
                "body",
                "string",
                "JSON body for POST/PUT/PATCH requests, optional",
                required=False,
            ),
        ],
    ),
    SQL_EXEC: ToolMetadata(
        name=SQL_EXEC,
        description=(
            "Execute a SQL statement (INSERT, UPDATE, DELETE, TRUNCATE, CREATE TABLE). "
            "Returns rows affected."
        ),
        parameters=_sql_params("SQL statement to execute"),
    ),
    SQL_QUERY_ONE: ToolMetadata(
        name=SQL_QUERY_ONE,
        description=(
            "Execute a SQL SELECT and return the first row as a JSON object. "
            'Returns {"error":"no rows"} if nothing found.'
        ),
        parameters=_sql_params("SQL SELECT statement"),
    ),
    SQL_QUERY_ALL: ToolMetadata(
        name=SQL_QUERY_ALL,
        description="Execute a SQL SELECT and return all rows as a JSON array of objects.",
        parameters=_sql_params("SQL SELECT statement"),
    ),
    KAFKA_ASSERT_COUNT: ToolMetadata(
        name=KAFKA_ASSERT_COUNT,
        description="Assert that a Kafka topic contains exactly the expected number of messages.",
        parameters=[
            ToolParameter("topic", "string", "Kafka topic name"),
            ToolParameter("count", "integer", "Expected number of messages"),
        ],
    ),
    KAFKA_ASSERT_CONTAINS: ToolMetadata(
        name=KAFKA_ASSERT_CONTAINS,
        description=(
            "Assert that a Kafka topic contains messages matching a substring. "
            "Returns matched count and total."
        ),
        parameters=[
            ToolParameter("topic", "string", "Kafka topic name"),
            ToolParameter("substr", "string", "Substring to search for in message values"),
            ToolParameter("want_count", "integer", "Expected number of matching messages"),
        ],
    ),
}


def available_tools(has_sql: bool = False, has_bus: bool = False) -> list[ToolDefinition]:
    """Return the tool definitions for the configured capabilities."""
    names = [HTTP_REQUEST]
    if has_sql:
        names.extend(SQL_TOOLS)
    if has_bus:
        names.extend(BUS_TOOLS)
    return [CATALOG[name].to_definition() for name in names]
